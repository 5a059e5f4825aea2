"""Credential-generation request/response models."""

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from provisioning.models.enums import NotificationOutcome


class CredentialRequest(BaseModel):
    """Body of POST /credentials/generate."""

    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr
    plan_duration: int = Field(..., gt=0, alias="planDuration", examples=[30])


class CredentialResponse(BaseModel):
    """Successful credential generation."""

    success: bool = True
    message: str
    email: str
    username: str
    created: bool
    notification: NotificationOutcome


class CredentialErrorResponse(BaseModel):
    """Credential request rejected before any work was done."""

    success: bool = False
    message: str
    error: str | None = None
