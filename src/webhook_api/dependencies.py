"""FastAPI dependency injection providers for shared services.

Services are built lazily from a single WebhookSettings instance and
cached with @lru_cache.

Service Dependency Graph:
    WebhookSettings (from environment / SSM)
        ├── DynamoDBService (singleton via get_dynamodb_service)
        └── UserProvisioner
                ├── DynamoDBService
                ├── IdentityRegistry (singleton via get_identity_registry)
                └── CredentialNotifier
        WebhookProcessor
                ├── DynamoDBService
                └── UserProvisioner

Testing:
    Use reset_services() to clear cached instances between tests.
"""

from functools import lru_cache

from provisioning.config import WebhookSettings
from provisioning.services.dynamodb import DynamoDBService, get_dynamodb_service
from provisioning.services.identity_registry import get_identity_registry
from provisioning.services.notifier import CredentialNotifier
from provisioning.services.user_provisioner import UserProvisioner
from provisioning.services.webhook_handler import WebhookProcessor


@lru_cache
def get_settings() -> WebhookSettings:
    """Get the settings, read once from the environment."""
    return WebhookSettings.from_environment()


@lru_cache
def get_db() -> DynamoDBService:
    return get_dynamodb_service(get_settings().table_prefix)


@lru_cache
def get_credential_notifier() -> CredentialNotifier:
    settings = get_settings()
    return CredentialNotifier(
        from_email=settings.ses_from_email,
        login_url=settings.login_url,
        region=settings.ses_region,
    )


@lru_cache
def get_user_provisioner() -> UserProvisioner:
    """Get cached UserProvisioner instance.

    Returns:
        UserProvisioner wired to DynamoDB, Cognito and SES.
    """
    settings = get_settings()
    return UserProvisioner(
        db=get_db(),
        identity=get_identity_registry(settings.cognito_user_pool_id),
        notifier=get_credential_notifier(),
        default_country_code=settings.default_country_code,
    )


@lru_cache
def get_webhook_processor() -> WebhookProcessor:
    """Get cached WebhookProcessor instance.

    Returns:
        WebhookProcessor configured with all required dependencies.
    """
    return WebhookProcessor(
        db=get_db(),
        provisioner=get_user_provisioner(),
        settings=get_settings(),
    )


def reset_services() -> None:
    """Clear all cached service instances.

    Also resets the underlying DynamoDB and Cognito singletons.

    Example:
        @pytest.fixture(autouse=True)
        def reset_state():
            yield
            reset_services()
    """
    from provisioning.services.dynamodb import reset_dynamodb_service
    from provisioning.services.identity_registry import reset_identity_registry

    get_settings.cache_clear()
    get_db.cache_clear()
    get_credential_notifier.cache_clear()
    get_user_provisioner.cache_clear()
    get_webhook_processor.cache_clear()

    reset_dynamodb_service()
    reset_identity_registry()
