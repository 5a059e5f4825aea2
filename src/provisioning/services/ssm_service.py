"""PerfectPay secrets from SSM Parameter Store.

Used by WebhookSettings when SSM_PARAMETER_PREFIX is set. Values are
decrypted once and kept for the lifetime of the process (one fetch per
Lambda cold start).
"""

from functools import lru_cache

import boto3
from botocore.exceptions import ClientError

from provisioning.utils.logging import get_logger

logger = get_logger(__name__)

PARAMETER_NOT_FOUND = "ParameterNotFound"


class SSMServiceError(Exception):
    """A parameter could not be read."""

    def __init__(self, name: str, code: str, detail: str = ""):
        self.name = name
        self.code = code
        super().__init__(f"SSM parameter {name}: {code}{f' ({detail})' if detail else ''}")

    @property
    def not_found(self) -> bool:
        return self.code == PARAMETER_NOT_FOUND


class SSMService:
    """Cached reader for SecureString parameters."""

    def __init__(self, client: object | None = None) -> None:
        self._client = client or boto3.client("ssm")
        self._values: dict[str, str] = {}

    def get_parameter(self, name: str, *, use_cache: bool = True) -> str:
        """Read and decrypt a parameter.

        Args:
            name: Full parameter path (e.g. "/queima/prod/perfectpay/webhook_secret")
            use_cache: Return a previously read value without calling SSM

        Raises:
            SSMServiceError: Parameter missing, access denied or SSM failure
        """
        if use_cache and name in self._values:
            return self._values[name]

        logger.info("Reading SSM parameter %s", name)
        try:
            response = self._client.get_parameter(Name=name, WithDecryption=True)  # type: ignore[attr-defined]
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "Unknown")
            raise SSMServiceError(name, code, str(e)) from e

        value: str = response["Parameter"]["Value"]
        self._values[name] = value
        return value

    def get_optional_parameter(self, name: str) -> str | None:
        """Like get_parameter, but None when the parameter does not exist."""
        try:
            return self.get_parameter(name)
        except SSMServiceError as e:
            if not e.not_found:
                raise
        logger.info("SSM parameter %s not set", name)
        return None

    def clear_cache(self) -> None:
        self._values.clear()


@lru_cache(maxsize=1)
def get_ssm_service() -> SSMService:
    """Process-wide SSMService."""
    return SSMService()


def reset_ssm_service() -> None:
    """Drop the process-wide instance and its cached values (tests)."""
    get_ssm_service.cache_clear()
