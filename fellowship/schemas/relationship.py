"""
Fellowship Backend — Relationship Schemas
===========================================

What:  Records returned by the relationship engines (identity-level, no HTTP
       concerns) and the username-level shapes the route layer returns.
"""

import uuid
from datetime import datetime
from typing import Iterable, List, Tuple

from pydantic import BaseModel, Field

from fellowship.models.relationship import RequestStatus


# ── Engine records ────────────────────────────────────────────────────────

class FriendRequestRecord(BaseModel):
    from_id: uuid.UUID
    to_id: uuid.UUID
    status: RequestStatus
    created_at: datetime

    model_config = {"from_attributes": True, "frozen": True}


class FollowEdgeRecord(BaseModel):
    follower_id: uuid.UUID
    followee_id: uuid.UUID
    created_at: datetime

    model_config = {"from_attributes": True, "frozen": True}


class RequestInbox:
    """Splits a user's pending requests into the ones they received and sent."""

    @staticmethod
    def partition(
        user: uuid.UUID, records: Iterable[FriendRequestRecord]
    ) -> Tuple[List[FriendRequestRecord], List[FriendRequestRecord]]:
        incoming, outgoing = [], []
        for record in records:
            if record.to_id == user:
                incoming.append(record)
            elif record.from_id == user:
                outgoing.append(record)
        return incoming, outgoing


# ── API shapes ────────────────────────────────────────────────────────────

class SendFriendRequest(BaseModel):
    to: str = Field(min_length=1, description="Username to send the request to")


class FriendRequestResponse(BaseModel):
    from_user: str = Field(alias="from")
    to_user: str = Field(alias="to")
    status: RequestStatus
    created_at: datetime

    model_config = {"populate_by_name": True}


class SendFriendRequestResponse(BaseModel):
    msg: str
    request: FriendRequestResponse


class FriendRequestsResponse(BaseModel):
    incoming: List[FriendRequestResponse]
    outgoing: List[FriendRequestResponse]


class FollowRequest(BaseModel):
    followee: str = Field(min_length=1, description="Username to follow")


class FollowersResponse(BaseModel):
    followers: List[str]


class FollowingResponse(BaseModel):
    following: List[str]


class FollowerCountResponse(BaseModel):
    follower_count: int = Field(alias="followerCount")

    model_config = {"populate_by_name": True}


class FollowStatusResponse(BaseModel):
    is_following: bool = Field(alias="isFollowing")

    model_config = {"populate_by_name": True}
