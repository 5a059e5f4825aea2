"""Shared API response models."""

from pydantic import BaseModel, Field

from provisioning.models.errors import ErrorCode, ErrorResponse

__all__ = ["ErrorCode", "ErrorResponse", "StatusResponse"]


class StatusResponse(BaseModel):
    """Service status returned by / and /health."""

    status: str = Field(..., examples=["online"])
    message: str
    timestamp: str
    environment: str
    sandbox_mode: bool
