"""Standard error codes for the webhook provisioning service.

Every failure that reaches the HTTP layer carries one of these codes so
responses and logs stay consistent. Business "not found" outcomes
(unknown plan, unknown event) are reported as ProcessingResult values
and use the codes only for logging.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class ErrorCode(str, Enum):
    """Error codes for webhook and provisioning failures."""

    # Request errors
    INVALID_PAYLOAD = "ERR_WEBHOOK_001"
    MISSING_SIGNATURE = "ERR_WEBHOOK_002"
    INVALID_SIGNATURE = "ERR_WEBHOOK_003"
    INVALID_WEBHOOK_SECRET = "ERR_WEBHOOK_004"

    # Business outcomes
    PLAN_NOT_FOUND = "ERR_PLAN_001"
    UNRECOGNIZED_EVENT = "ERR_EVENT_001"
    SUBSCRIPTION_DATA_MISSING = "ERR_EVENT_002"

    # Provisioning errors
    PROVISIONING_FAILED = "ERR_PROVISION_001"
    CREDENTIALS_FAILED = "ERR_PROVISION_003"
    NOTIFICATION_FAILED = "ERR_PROVISION_002"
    PROVIDER_NOT_CONFIGURED = "ERR_PROVIDER_001"


# User-facing messages (Portuguese, as returned to the payment provider and app)
ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.INVALID_PAYLOAD: "Dados inválidos",
    ErrorCode.MISSING_SIGNATURE: "Assinatura do webhook não fornecida",
    ErrorCode.INVALID_SIGNATURE: "Assinatura do webhook inválida",
    ErrorCode.INVALID_WEBHOOK_SECRET: "Não autorizado",
    ErrorCode.PLAN_NOT_FOUND: "Não foi possível identificar o plano",
    ErrorCode.UNRECOGNIZED_EVENT: "Evento não reconhecido",
    ErrorCode.SUBSCRIPTION_DATA_MISSING: "Dados da assinatura não encontrados",
    ErrorCode.PROVISIONING_FAILED: "Erro ao processar pagamento",
    ErrorCode.CREDENTIALS_FAILED: "Erro ao gerar credenciais",
    ErrorCode.NOTIFICATION_FAILED: "Erro ao enviar email de credenciais",
    ErrorCode.PROVIDER_NOT_CONFIGURED: "PERFECTPAY_API_KEY não configurada",
}

# Operator hints
ERROR_RECOVERY: dict[ErrorCode, str] = {
    ErrorCode.INVALID_PAYLOAD: "Check the payload against the webhook schema",
    ErrorCode.MISSING_SIGNATURE: "Send the x-perfectpay-signature header",
    ErrorCode.INVALID_SIGNATURE: "Verify webhook secret configuration",
    ErrorCode.INVALID_WEBHOOK_SECRET: "Verify the x-perfectpay-webhook-secret header value",
    ErrorCode.PLAN_NOT_FOUND: "Check checkout link and product name against the plan catalog",
    ErrorCode.UNRECOGNIZED_EVENT: "No action needed; event kind is not handled",
    ErrorCode.SUBSCRIPTION_DATA_MISSING: "Resend the event with its subscription object",
    ErrorCode.PROVISIONING_FAILED: "Reconcile manually using the transaction id and e-mail",
    ErrorCode.CREDENTIALS_FAILED: "Retry the request; check identity provider and store access",
    ErrorCode.NOTIFICATION_FAILED: "Resend credentials through /credentials/generate",
    ErrorCode.PROVIDER_NOT_CONFIGURED: "Set PERFECTPAY_API_KEY",
}


class ErrorResponse(BaseModel):
    """Standard error body returned by the API."""

    model_config = ConfigDict(strict=True)

    success: bool = False
    error_code: ErrorCode
    message: str
    recovery: str
    error: Optional[str] = None
    details: Optional[dict[str, str]] = None

    @classmethod
    def from_code(
        cls,
        code: ErrorCode,
        details: Optional[dict[str, str]] = None,
        error: Optional[str] = None,
    ) -> "ErrorResponse":
        """Create an ErrorResponse from an error code.

        Args:
            code: The error code
            details: Optional additional context about the error
            error: Optional underlying error text

        Returns:
            An ErrorResponse with the message and recovery hint for the code.
        """
        return cls(
            error_code=code,
            message=ERROR_MESSAGES[code],
            recovery=ERROR_RECOVERY[code],
            error=error,
            details=details,
        )


class WebhookError(Exception):
    """Exception raised by webhook processing and provisioning.

    Converted to an ErrorResponse by the API exception handlers.
    """

    def __init__(
        self,
        code: ErrorCode,
        details: Optional[dict[str, str]] = None,
        error: Optional[str] = None,
    ):
        self.code = code
        self.message = ERROR_MESSAGES[code]
        self.recovery = ERROR_RECOVERY[code]
        self.details = details
        self.error = error
        super().__init__(self.message if not error else f"{self.message}: {error}")

    def to_error_response(self) -> ErrorResponse:
        return ErrorResponse.from_code(self.code, self.details, self.error)


class NotificationError(Exception):
    """Raised when the credential e-mail cannot be delivered."""

    pass


class IdentityUserExistsError(Exception):
    """Raised when the identity provider already holds the e-mail."""

    pass
