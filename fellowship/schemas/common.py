"""
Fellowship Backend — Shared Response Schemas
==============================================

What:  Response shapes used by more than one router: plain acknowledgement
       messages, the error envelope and the health probe.
"""

from typing import Optional

from pydantic import BaseModel, Field


class MessageResponse(BaseModel):
    msg: str = Field(description="Human-readable acknowledgement")


class ErrorResponse(BaseModel):
    """
    Error envelope returned by the global exception handlers.

    Example:
        {
            "error": "already_requested",
            "message": "A friend request between alice and bob already exists!",
            "request_id": "1a2b3c4d"
        }
    """
    error: str = Field(description="Machine-readable error code (the ErrorKind code)")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")
