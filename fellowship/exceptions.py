"""
Fellowship Backend — Error Kinds and Exception Taxonomy
=========================================================

What:  Every expected failure in the application is a FellowshipError carrying
       one ErrorKind. The kind owns the machine-readable code, the HTTP status
       and the message template.
How:   Services and engines raise the named subclasses below. A single global
       handler in main.py reads `exc.kind` and renders the response, so adding
       a failure means adding an enum member, not another handler.

Families:
    FellowshipError
    ├── SelfRelationError, SelfFollowError            → 400
    ├── ValidationError                               → 400
    ├── NotFoundError
    │   ├── RequestNotFoundError                      → 404
    │   ├── FriendNotFoundError                       → 404
    │   ├── NotFollowingError                         → 404
    │   ├── UserNotFoundError                         → 404
    │   └── PostNotFoundError                         → 404
    ├── AlreadyExistsError
    │   ├── AlreadyRequestedError                     → 409
    │   ├── AlreadyFriendsError                       → 409
    │   ├── AlreadyFollowingError                     → 409
    │   └── UsernameTakenError                        → 409
    ├── NotAllowedError
    │   ├── NotAuthenticatedError                     → 401
    │   ├── AlreadyAuthenticatedError                 → 403
    │   └── PostAuthorMismatchError                   → 403
    └── StorageUnavailableError                       → 503

All of these are expected outcomes of precondition checks. They are never
retried or swallowed by the layer that raises them.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(Enum):
    """
    Tagged error kinds: (code, HTTP status, message template).

    Templates use str.format placeholders filled from the keyword arguments
    given to the raising exception.
    """

    SELF_RELATION = ("self_relation", 400, "Cannot send a friend request to yourself!")
    SELF_FOLLOW = ("self_follow", 400, "Cannot follow yourself!")
    VALIDATION = ("validation_error", 400, "{detail}")

    REQUEST_NOT_FOUND = (
        "request_not_found", 404, "Friend request from {from_id} to {to_id} does not exist!"
    )
    FRIEND_NOT_FOUND = ("friend_not_found", 404, "Friendship between {user} and {friend} does not exist!")
    NOT_FOLLOWING = ("not_following", 404, "{follower} is not following {followee}!")
    USER_NOT_FOUND = ("user_not_found", 404, "User {user} does not exist!")
    POST_NOT_FOUND = ("post_not_found", 404, "Post {post_id} does not exist!")

    ALREADY_REQUESTED = (
        "already_requested", 409, "A friend request between {from_id} and {to_id} already exists!"
    )
    ALREADY_FRIENDS = ("already_friends", 409, "{user} and {friend} are already friends!")
    ALREADY_FOLLOWING = ("already_following", 409, "{follower} is already following {followee}!")
    USERNAME_TAKEN = ("username_taken", 409, "User with username {username} already exists!")

    NOT_AUTHENTICATED = ("not_authenticated", 401, "You must be logged in!")
    ALREADY_AUTHENTICATED = ("already_authenticated", 403, "You must be logged out!")
    POST_AUTHOR_MISMATCH = ("post_author_mismatch", 403, "{user} is not the author of post {post_id}!")

    STORAGE_UNAVAILABLE = (
        "storage_unavailable", 503, "The relationship store is unavailable. Please retry shortly."
    )

    def __init__(self, code: str, status_code: int, template: str):
        self.code = code
        self.status_code = status_code
        self.template = template

    def render(self, **params: Any) -> str:
        try:
            return self.template.format(**params)
        except (KeyError, IndexError):
            return self.template


class FellowshipError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        kind:     The ErrorKind this failure belongs to
        message:  User-facing description rendered from the kind's template
        context:  Debug details; logged by the handler, never returned
    """

    kind: ErrorKind = ErrorKind.VALIDATION

    def __init__(self, context: Optional[Dict[str, Any]] = None, **params: Any):
        self.params = params
        self.message = self.kind.render(**params)
        self.context = context or {}
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return self.kind.status_code


# ── Self-relation guards ──────────────────────────────────────────────────

class SelfRelationError(FellowshipError):
    kind = ErrorKind.SELF_RELATION


class SelfFollowError(FellowshipError):
    kind = ErrorKind.SELF_FOLLOW


class ValidationError(FellowshipError):
    """Client input failed a business rule (empty username, empty post...)."""

    kind = ErrorKind.VALIDATION

    def __init__(self, detail: str = "Validation failed", field: Optional[str] = None, **kwargs: Any):
        super().__init__(detail=detail, **kwargs)
        self.field = field
        if field:
            self.context["field"] = field


# ── Not found family ──────────────────────────────────────────────────────

class NotFoundError(FellowshipError):
    kind = ErrorKind.USER_NOT_FOUND


class RequestNotFoundError(NotFoundError):
    kind = ErrorKind.REQUEST_NOT_FOUND


class FriendNotFoundError(NotFoundError):
    kind = ErrorKind.FRIEND_NOT_FOUND


class NotFollowingError(NotFoundError):
    kind = ErrorKind.NOT_FOLLOWING


class UserNotFoundError(NotFoundError):
    kind = ErrorKind.USER_NOT_FOUND


class PostNotFoundError(NotFoundError):
    kind = ErrorKind.POST_NOT_FOUND


# ── Already exists family ─────────────────────────────────────────────────

class AlreadyExistsError(FellowshipError):
    kind = ErrorKind.ALREADY_REQUESTED


class AlreadyRequestedError(AlreadyExistsError):
    kind = ErrorKind.ALREADY_REQUESTED


class AlreadyFriendsError(AlreadyExistsError):
    kind = ErrorKind.ALREADY_FRIENDS


class AlreadyFollowingError(AlreadyExistsError):
    kind = ErrorKind.ALREADY_FOLLOWING


class UsernameTakenError(AlreadyExistsError):
    kind = ErrorKind.USERNAME_TAKEN


# ── Not allowed family ────────────────────────────────────────────────────

class NotAllowedError(FellowshipError):
    kind = ErrorKind.NOT_AUTHENTICATED


class NotAuthenticatedError(NotAllowedError):
    kind = ErrorKind.NOT_AUTHENTICATED


class AlreadyAuthenticatedError(NotAllowedError):
    kind = ErrorKind.ALREADY_AUTHENTICATED


class PostAuthorMismatchError(NotAllowedError):
    kind = ErrorKind.POST_AUTHOR_MISMATCH


# ── Infrastructure ────────────────────────────────────────────────────────

class StorageUnavailableError(FellowshipError):
    """
    The document store failed or timed out mid-operation.

    The transaction has already been rolled back when this is raised; the
    caller may retry after `retry_after` seconds.
    """

    kind = ErrorKind.STORAGE_UNAVAILABLE

    def __init__(self, retry_after: int = 5, context: Optional[Dict[str, Any]] = None):
        super().__init__(context=context)
        self.retry_after = retry_after
