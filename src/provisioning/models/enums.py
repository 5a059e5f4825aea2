"""Enumeration types for webhook and provisioning models."""

from enum import Enum


class PlanKind(str, Enum):
    """Closed set of plan tiers sold through PerfectPay.

    Display names (with emoji) live only in the plan catalog.
    """

    THIRTY_DAY = "30d"
    NINETY_DAY = "90d"
    HUNDRED_EIGHTY_DAY = "180d"


class EventKind(str, Enum):
    """Webhook event kinds handled by the dispatcher."""

    PAYMENT_APPROVED = "payment.approved"
    PAYMENT_REJECTED = "payment.rejected"
    PAYMENT_CANCELLED = "payment.cancelled"
    PAYMENT_REFUNDED = "payment.refunded"
    SUBSCRIPTION_CREATED = "subscription.created"
    SUBSCRIPTION_UPDATED = "subscription.updated"
    SUBSCRIPTION_CANCELLED = "subscription.cancelled"
    SUBSCRIPTION_EXPIRED = "subscription.expired"


class SubscriptionStatus(str, Enum):
    """Status of a provider subscription."""

    ACTIVE = "active"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    PENDING = "pending"
    FAILED = "failed"


class PaymentStatus(str, Enum):
    """Status of a stored payment record."""

    PENDING = "pending"
    PROCESSING = "processing"  # Claimed by an in-flight approval
    APPROVED = "approved"
    PROVISIONING_FAILED = "provisioning_failed"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class AccessLevel(str, Enum):
    """Access level granted by a plan. There is a single tier."""

    FULL = "full"


class NotificationOutcome(str, Enum):
    """Outcome of the best-effort credential e-mail step."""

    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"  # Existing identity, no new password to send
