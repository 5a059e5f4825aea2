"""Result models returned by the pipeline and the provisioner."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from .enums import AccessLevel, NotificationOutcome, PlanKind


class ProcessingResult(BaseModel):
    """Outcome of processing one webhook delivery."""

    success: bool
    message: str
    data: dict[str, Any] | None = None
    error: str | None = None

    @classmethod
    def ok(cls, message: str, data: dict[str, Any] | None = None) -> "ProcessingResult":
        return cls(success=True, message=message, data=data)

    @classmethod
    def failed(cls, message: str, error: str | None = None) -> "ProcessingResult":
        return cls(success=False, message=message, error=error)


class ProvisionResult(BaseModel):
    """Outcome of provisioning a user for a plan.

    ``success`` reflects the account and plan assignment only; the
    credential e-mail outcome is reported separately in ``notification``.
    """

    success: bool
    uid: str
    plan_kind: PlanKind
    created: bool = Field(..., description="True when a new identity was created")
    plan_expiration: datetime
    notification: NotificationOutcome


class CredentialsResult(BaseModel):
    """Outcome of the credential-generation endpoint operation."""

    success: bool
    message: str
    email: str
    username: str
    created: bool
    notification: NotificationOutcome


class PlanStatus(BaseModel):
    """Current plan state for a user."""

    plan: PlanKind
    access_level: AccessLevel
    is_active: bool
    days_remaining: int
    features: list[str]
    expiration_date: datetime
