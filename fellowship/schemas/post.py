"""
Fellowship Backend — Post Schemas
===================================

What:  API contract for the Posting concept. Authors are exposed by username;
       the route layer translates author ids before building PostResponse.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class PostOptions(BaseModel):
    background_color: Optional[str] = Field(default=None, max_length=32)


class CreatePostRequest(BaseModel):
    content: str = Field(min_length=1)
    options: Optional[PostOptions] = None


class UpdatePostRequest(BaseModel):
    content: Optional[str] = Field(default=None, min_length=1)
    options: Optional[PostOptions] = None


class PostResponse(BaseModel):
    id: uuid.UUID
    author: str = Field(description="Author username")
    content: str
    options: Optional[PostOptions] = None
    created_at: datetime
    updated_at: datetime


class CreatePostResponse(BaseModel):
    msg: str
    post: PostResponse
