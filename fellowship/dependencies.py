"""
Fellowship Backend — Route Dependencies
=========================================

What:  FastAPI dependencies shared by the routers: the concept container,
       the bearer token and the acting user's identity.
"""

import uuid
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from fellowship.concepts import Concepts

bearer_scheme = HTTPBearer(auto_error=False)


def get_concepts(request: Request) -> Concepts:
    return request.app.state.concepts


def get_session_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[str]:
    return credentials.credentials if credentials else None


def get_current_user_id(
    token: Optional[str] = Depends(get_session_token),
    concepts: Concepts = Depends(get_concepts),
) -> uuid.UUID:
    """Identity of the logged-in caller; NotAuthenticatedError (401) otherwise."""
    return concepts.sessions.get_user(token)
