"""Persisted record models for the document store collections.

Collections:
- payments: PaymentRecord, one per transaction_id
- subscriptions: SubscriptionRecord, one per provider subscription id
- users: UserPlanRecord, one per identity provider uid
- app-credentials: UserCredentials audit entries, one per e-mail
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from .enums import AccessLevel, PaymentStatus, PlanKind, SubscriptionStatus


class CustomerSnapshot(BaseModel):
    """Customer data as stored on a payment (phone normalized)."""

    name: str
    email: str
    phone: str


class ProductSnapshot(BaseModel):
    """Product data as stored on a payment."""

    name: str
    price: Decimal


class PaymentRecord(BaseModel):
    """Audit record for a PerfectPay transaction.

    Created on the first approval (or by the payment stub), then only its
    status and timestamps change. Never deleted.
    """

    transaction_id: str = Field(..., description="PerfectPay transaction id (key)")
    status: PaymentStatus
    amount: Decimal = Field(..., gt=0)
    payment_method: str
    customer: CustomerSnapshot
    product: ProductSnapshot | None = None
    plan: PlanKind | None = None
    created_at: datetime
    claimed_at: datetime | None = None
    processed_at: datetime | None = None
    user_uid: str | None = None
    error_message: str | None = None


class SubscriptionRecord(BaseModel):
    """Stored subscription, keyed by the provider subscription id."""

    subscription_id: str = Field(..., description="Provider subscription id (key)")
    status: SubscriptionStatus
    start_date: datetime
    end_date: datetime | None = None
    last_payment_date: datetime | None = None
    next_payment_date: datetime | None = None
    plan_type: str
    price: Decimal
    billing_cycle: str | None = None
    payment_method: str | None = None
    customer: CustomerSnapshot
    created_at: datetime
    updated_at: datetime | None = None
    cancelled_at: datetime | None = None
    expired_at: datetime | None = None


class UserPlanRecord(BaseModel):
    """Plan assignment for an identity provider user.

    Overwritten on every approved payment for that user.
    """

    model_config = ConfigDict(strict=True)

    uid: str
    email: str
    name: str
    phone: str
    plan: PlanKind
    access_level: AccessLevel = AccessLevel.FULL
    plan_expiration: datetime
    plan_duration: int = Field(..., gt=0, description="Plan duration in days")
    features: list[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class UserCredentials(BaseModel):
    """Audit entry written when login credentials are issued.

    The one-time password is delivered by e-mail only and never stored.
    """

    model_config = ConfigDict(strict=True)

    email: str
    app_username: str
    plan_duration: int = Field(..., gt=0)
    created_at: datetime
    expires_at: datetime
