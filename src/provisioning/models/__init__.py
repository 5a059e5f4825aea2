"""Pydantic models for PerfectPay webhook provisioning."""

from .enums import (
    AccessLevel,
    EventKind,
    NotificationOutcome,
    PaymentStatus,
    PlanKind,
    SubscriptionStatus,
)
from .errors import (
    ERROR_MESSAGES,
    ERROR_RECOVERY,
    ErrorCode,
    ErrorResponse,
    IdentityUserExistsError,
    NotificationError,
    WebhookError,
)
from .plan import PlanDetails
from .records import (
    CustomerSnapshot,
    PaymentRecord,
    ProductSnapshot,
    SubscriptionRecord,
    UserCredentials,
    UserPlanRecord,
)
from .results import CredentialsResult, PlanStatus, ProcessingResult, ProvisionResult
from .webhook import (
    Customer,
    Product,
    SubscriptionPayload,
    WebhookEvent,
    parse_raw_payload,
)

__all__ = [
    # Enums
    "AccessLevel",
    "EventKind",
    "NotificationOutcome",
    "PaymentStatus",
    "PlanKind",
    "SubscriptionStatus",
    # Errors
    "ERROR_MESSAGES",
    "ERROR_RECOVERY",
    "ErrorCode",
    "ErrorResponse",
    "IdentityUserExistsError",
    "NotificationError",
    "WebhookError",
    # Plan
    "PlanDetails",
    # Records
    "CustomerSnapshot",
    "PaymentRecord",
    "ProductSnapshot",
    "SubscriptionRecord",
    "UserCredentials",
    "UserPlanRecord",
    # Results
    "CredentialsResult",
    "PlanStatus",
    "ProcessingResult",
    "ProvisionResult",
    # Webhook payload
    "Customer",
    "Product",
    "SubscriptionPayload",
    "WebhookEvent",
    "parse_raw_payload",
]
