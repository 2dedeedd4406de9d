"""
WaterTrack Backend: Shared Pydantic Schemas
===========================================

What:  Base model with the camelCase wire format, plus error and health
       payloads used across routers.

Wire format:
    Fields are snake_case in Python and camelCase on the wire
    (daily_water_goal ↔ dailyWaterGoal). Requests accept either spelling;
    responses are always camelCase.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class MessageResponse(CamelModel):
    message: str = Field(description="Human-readable outcome")


class LetterResponse(CamelModel):
    """A composed email, echoed when MAIL_ECHO_LETTERS is enabled."""

    to: str
    subject: str
    html: str


class ErrorResponse(BaseModel):
    """
    Standard error envelope for every non-2xx response.

    Example:
        {
            "error": "not_found",
            "message": "water intake with ID '...' was not found",
            "details": {"resource": "water intake", "resource_id": "..."},
            "request_id": "a1b2c3d4"
        }
    """

    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
