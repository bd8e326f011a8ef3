"""
Fellowship Backend — User and Session Schemas
===============================================
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class UserResponse(BaseModel):
    id: uuid.UUID
    username: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class CreateUserRequest(BaseModel):
    username: str = Field(min_length=1, max_length=64)


class CreateUserResponse(BaseModel):
    msg: str
    user: UserResponse


class UpdateUsernameRequest(BaseModel):
    username: str = Field(min_length=1, max_length=64)


class LoginRequest(BaseModel):
    username: str = Field(min_length=1, max_length=64)


class LoginResponse(BaseModel):
    msg: str
    access_token: str
    token_type: str = "bearer"
