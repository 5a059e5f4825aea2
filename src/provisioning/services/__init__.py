"""Backend services for PerfectPay webhook provisioning."""

from .dynamodb import DynamoDBService, get_dynamodb_service, reset_dynamodb_service
from .identity_registry import (
    IdentityRegistry,
    IdentityUser,
    get_identity_registry,
    reset_identity_registry,
)
from .notifier import CredentialNotifier
from .payment_service import PaymentService
from .plan_access import PlanAccessService
from .ssm_service import SSMService, SSMServiceError, get_ssm_service
from .user_provisioner import UserProvisioner
from .webhook_handler import WebhookProcessor

__all__ = [
    "CredentialNotifier",
    "DynamoDBService",
    "IdentityRegistry",
    "IdentityUser",
    "PaymentService",
    "PlanAccessService",
    "SSMService",
    "SSMServiceError",
    "UserProvisioner",
    "WebhookProcessor",
    "get_dynamodb_service",
    "get_identity_registry",
    "get_ssm_service",
    "reset_dynamodb_service",
    "reset_identity_registry",
]
