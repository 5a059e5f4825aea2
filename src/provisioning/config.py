"""Service configuration.

Settings are read once from the environment (and SSM Parameter Store for
secrets) into a frozen model, then passed to services explicitly. Nothing
below the API layer reads os.environ.
"""

import os
from typing import Mapping

from pydantic import BaseModel, ConfigDict, Field, model_validator

from provisioning.utils.logging import get_logger

logger = get_logger(__name__)

PRODUCTION_ENVIRONMENTS = frozenset({"prod", "production"})

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})


def _env_flag(value: str | None) -> bool:
    return (value or "").strip().lower() in _TRUE_VALUES


class WebhookSettings(BaseModel):
    """Immutable runtime configuration for the webhook service."""

    model_config = ConfigDict(frozen=True)

    environment: str = "dev"
    sandbox_mode: bool = False

    perfectpay_api_key: str = Field(default="", repr=False)
    perfectpay_webhook_secret: str = Field(default="", repr=False)
    perfectpay_base_url: str = "https://api.perfectpay.com.br"

    ses_from_email: str = "suporte@queimadefinitiva.shop"
    ses_region: str | None = None
    cognito_user_pool_id: str = ""

    dynamodb_table_prefix: str = ""
    default_country_code: str = Field(default="55", pattern=r"^\d{1,3}$")
    login_url: str = "https://secaexpress.io/login"
    port: int = 3000

    @model_validator(mode="after")
    def sandbox_not_in_production(self) -> "WebhookSettings":
        if self.sandbox_mode and self.environment.lower() in PRODUCTION_ENVIRONMENTS:
            raise ValueError("SANDBOX_MODE cannot be enabled in production")
        return self

    @property
    def table_prefix(self) -> str:
        """DynamoDB table prefix, defaulting to queima-<environment>."""
        return self.dynamodb_table_prefix or f"queima-{self.environment}"

    @property
    def is_test_traffic(self) -> bool:
        """Whether signature verification is bypassed for this deployment."""
        return self.sandbox_mode

    @classmethod
    def from_environment(
        cls, environ: Mapping[str, str] | None = None
    ) -> "WebhookSettings":
        """Build settings from environment variables.

        When SSM_PARAMETER_PREFIX is set, the PerfectPay API key and webhook
        secret are read from "<prefix>/perfectpay/api_key" and
        "<prefix>/perfectpay/webhook_secret", falling back to the
        corresponding environment variables when a parameter is absent.

        Args:
            environ: Mapping to read instead of os.environ (for tests)

        Returns:
            Frozen WebhookSettings

        Raises:
            pydantic.ValidationError: If a value is invalid, including
                SANDBOX_MODE in a production environment
        """
        env = os.environ if environ is None else environ

        api_key = env.get("PERFECTPAY_API_KEY", "")
        webhook_secret = env.get("PERFECTPAY_WEBHOOK_SECRET", "")

        ssm_prefix = env.get("SSM_PARAMETER_PREFIX", "").rstrip("/")
        if ssm_prefix:
            from provisioning.services.ssm_service import get_ssm_service

            ssm = get_ssm_service()
            api_key = ssm.get_optional_parameter(f"{ssm_prefix}/perfectpay/api_key") or api_key
            webhook_secret = (
                ssm.get_optional_parameter(f"{ssm_prefix}/perfectpay/webhook_secret")
                or webhook_secret
            )

        values: dict[str, object] = {
            "environment": env.get("ENVIRONMENT", "dev"),
            "sandbox_mode": _env_flag(env.get("SANDBOX_MODE")),
            "perfectpay_api_key": api_key,
            "perfectpay_webhook_secret": webhook_secret,
            "dynamodb_table_prefix": env.get("DYNAMODB_TABLE_PREFIX", ""),
            "cognito_user_pool_id": env.get("COGNITO_USER_POOL_ID", ""),
        }
        optional = {
            "perfectpay_base_url": "PERFECTPAY_BASE_URL",
            "ses_from_email": "SES_FROM_EMAIL",
            "ses_region": "SES_REGION",
            "default_country_code": "DEFAULT_COUNTRY_CODE",
            "login_url": "LOGIN_URL",
            "port": "PORT",
        }
        for field_name, var in optional.items():
            if env.get(var):
                values[field_name] = env[var]

        settings = cls.model_validate(values)

        if not settings.perfectpay_webhook_secret and not settings.sandbox_mode:
            logger.warning("PERFECTPAY_WEBHOOK_SECRET is not set; signed webhooks will be rejected")

        return settings
