"""
Fellowship Backend — Concept Composition
==========================================

What:  The application is a composition of concepts built once per process
       by create_app() and handed to the routes through app.state.
How:   build_concepts() constructs every concept against one session factory;
       routes receive the container via the get_concepts dependency.
"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from fellowship.services.following import FollowingEngine
from fellowship.services.friending import FriendingEngine
from fellowship.services.posts import PostService
from fellowship.services.sessioning import SessionIssuer
from fellowship.services.users import UserService


@dataclass(frozen=True)
class Concepts:
    users: UserService
    sessions: SessionIssuer
    posts: PostService
    friending: FriendingEngine
    following: FollowingEngine


def build_concepts(
    session_factory: async_sessionmaker[AsyncSession],
    sessions: Optional[SessionIssuer] = None,
) -> Concepts:
    return Concepts(
        users=UserService(),
        sessions=sessions or SessionIssuer(),
        posts=PostService(),
        friending=FriendingEngine(session_factory),
        following=FollowingEngine(session_factory),
    )
