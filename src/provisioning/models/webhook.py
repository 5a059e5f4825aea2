"""PerfectPay webhook payload models.

A WebhookEvent is built only by validating an inbound request body;
instances are frozen afterwards.
"""

import json
from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    ValidationError,
    field_validator,
)

from .enums import EventKind, SubscriptionStatus
from .errors import ErrorCode, WebhookError

PHONE_PATTERN = r"^\+\d{12,13}$"


class Customer(BaseModel):
    """Buyer data sent with every event."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    name: str = Field(..., min_length=1)
    email: EmailStr
    phone: str = Field(..., pattern=PHONE_PATTERN, examples=["+5511999999999"])


class Product(BaseModel):
    """Purchased product as named on the PerfectPay checkout."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    price: Decimal = Field(..., gt=0)

    @field_validator("name")
    @classmethod
    def name_matches_catalog(cls, value: str) -> str:
        from provisioning.services.plan_resolver import identify_plan_kind

        if identify_plan_kind(value) is None:
            raise ValueError(f"Unknown plan product name: {value!r}")
        return value


class SubscriptionPayload(BaseModel):
    """Subscription object attached to recurring-payment events."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    status: SubscriptionStatus
    start_date: datetime
    end_date: datetime | None = None
    last_payment_date: datetime | None = None
    next_payment_date: datetime | None = None
    plan_type: str
    price: Decimal = Field(..., gt=0)
    billing_cycle: str | None = None
    payment_method: str | None = None

    @field_validator("plan_type")
    @classmethod
    def plan_type_in_catalog(cls, value: str) -> str:
        from provisioning.services.plan_catalog import get_plan_by_name

        if get_plan_by_name(value) is None:
            raise ValueError("Tipo de plano inválido")
        return value


class WebhookEvent(BaseModel):
    """A validated PerfectPay webhook delivery."""

    model_config = ConfigDict(frozen=True)

    # Kept as a plain string so unknown kinds reach the dispatcher
    event: str = Field(..., min_length=1, examples=[EventKind.PAYMENT_APPROVED.value])
    transaction_id: str = Field(..., min_length=1)
    status: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0)
    payment_method: str = Field(..., min_length=1)
    created_at: datetime
    customer: Customer
    product: Product
    checkout_url: str | None = None
    subscription: SubscriptionPayload | None = None

    @property
    def event_kind(self) -> EventKind | None:
        """The event as an EventKind, or None when not recognized."""
        try:
            return EventKind(self.event)
        except ValueError:
            return None


def parse_raw_payload(raw_body: bytes | str) -> tuple[dict[str, Any], WebhookEvent]:
    """Decode and validate a raw webhook body.

    Args:
        raw_body: Request body exactly as received

    Returns:
        Tuple of (decoded JSON object, validated WebhookEvent)

    Raises:
        WebhookError: INVALID_PAYLOAD if the body is not JSON or fails validation
    """
    try:
        data = json.loads(raw_body)
    except (TypeError, ValueError) as e:
        raise WebhookError(ErrorCode.INVALID_PAYLOAD, error=f"Invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise WebhookError(ErrorCode.INVALID_PAYLOAD, error="Body must be a JSON object")

    try:
        event = WebhookEvent.model_validate(data)
    except ValidationError as e:
        raise WebhookError(
            ErrorCode.INVALID_PAYLOAD,
            error="; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
                for err in e.errors()
            ),
        ) from e

    return data, event
