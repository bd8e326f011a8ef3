"""
Fellowship Backend — Session Issuer (Sessioning concept)
==========================================================

What:  Issues, verifies and revokes the bearer tokens that identify the acting
       user on each request.
How:   HS256 JWTs (python-jose) carrying `sub` (user id), `jti` and `exp`.
       Logging out records the token's jti until the token would have
       expired anyway; the revocation list lives in process memory.
"""

import logging
import time
import uuid
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from jose import JWTError, jwt

from fellowship.config import settings
from fellowship.exceptions import AlreadyAuthenticatedError, NotAuthenticatedError

logger = logging.getLogger(__name__)


class SessionIssuer:
    def __init__(
        self,
        secret: Optional[str] = None,
        algorithm: Optional[str] = None,
        ttl_minutes: Optional[int] = None,
    ):
        self._secret = secret or settings.session_secret
        self._algorithm = algorithm or settings.session_algorithm
        self._ttl = timedelta(minutes=ttl_minutes or settings.session_ttl_minutes)
        # jti → expiry (unix seconds)
        self._revoked: Dict[str, float] = {}

    def start(self, user_id: uuid.UUID) -> str:
        """Issue a token for `user_id`."""
        expires = datetime.now(timezone.utc) + self._ttl
        claims = {"sub": str(user_id), "jti": uuid.uuid4().hex, "exp": expires}
        return jwt.encode(claims, self._secret, algorithm=self._algorithm)

    def get_user(self, token: Optional[str]) -> uuid.UUID:
        """
        Identity behind a token.

        Raises:
            NotAuthenticatedError: missing, malformed, expired or revoked token
        """
        claims = self._decode(token)
        if claims is None:
            raise NotAuthenticatedError()
        try:
            return uuid.UUID(claims["sub"])
        except (KeyError, ValueError) as e:
            raise NotAuthenticatedError(context={"reason": "bad subject"}) from e

    def is_logged_in(self, token: Optional[str]) -> bool:
        return self._decode(token) is not None

    def assert_logged_out(self, token: Optional[str]) -> None:
        if self.is_logged_in(token):
            raise AlreadyAuthenticatedError()

    def end(self, token: Optional[str]) -> None:
        """Revoke a token. Raises NotAuthenticatedError if it is not live."""
        claims = self._decode(token)
        if claims is None:
            raise NotAuthenticatedError()
        self._prune()
        self._revoked[claims["jti"]] = float(claims["exp"])
        logger.info("Session ended for %s", claims.get("sub"))

    def _decode(self, token: Optional[str]) -> Optional[dict]:
        if not token:
            return None
        try:
            claims = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except JWTError:
            return None
        if claims.get("jti") in self._revoked:
            return None
        return claims

    def _prune(self) -> None:
        now = time.time()
        for jti in [j for j, exp in self._revoked.items() if exp < now]:
            del self._revoked[jti]
