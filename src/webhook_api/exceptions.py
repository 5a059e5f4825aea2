"""Error responses for the webhook API.

A WebhookError raised anywhere below a route becomes its ErrorResponse body
with the status from ERROR_CODE_TO_HTTP_STATUS. Anything else is logged with
its traceback and answered with an opaque 500 so PerfectPay retries.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette import status

from provisioning.models.errors import ErrorCode, WebhookError
from provisioning.utils.logging import get_logger

logger = get_logger(__name__)

INTERNAL_ERROR_BODY = {
    "success": False,
    "error_code": "ERR_INTERNAL",
    "message": "Erro interno do servidor",
    "recovery": "Retry the request; webhook deliveries are safe to resend",
}

ERROR_CODE_TO_HTTP_STATUS: dict[ErrorCode, int] = {
    ErrorCode.INVALID_PAYLOAD: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_SIGNATURE: status.HTTP_400_BAD_REQUEST,
    ErrorCode.PLAN_NOT_FOUND: status.HTTP_400_BAD_REQUEST,
    ErrorCode.UNRECOGNIZED_EVENT: status.HTTP_400_BAD_REQUEST,
    ErrorCode.SUBSCRIPTION_DATA_MISSING: status.HTTP_400_BAD_REQUEST,
    ErrorCode.MISSING_SIGNATURE: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.INVALID_WEBHOOK_SECRET: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.PROVISIONING_FAILED: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.CREDENTIALS_FAILED: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.NOTIFICATION_FAILED: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.PROVIDER_NOT_CONFIGURED: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def get_http_status_for_error(code: ErrorCode) -> int:
    """Status for ``code``; 400 when unmapped."""
    return ERROR_CODE_TO_HTTP_STATUS.get(code, status.HTTP_400_BAD_REQUEST)


async def webhook_error_handler(request: Request, exc: WebhookError) -> JSONResponse:
    http_status = get_http_status_for_error(exc.code)
    if http_status >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    else:
        logger.warning("%s %s rejected: %s", request.method, request.url.path, exc)

    body = exc.to_error_response().model_dump(mode="json", exclude_none=True)
    return JSONResponse(status_code=http_status, content=body)


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort handler; the exception text stays in the logs."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=dict(INTERNAL_ERROR_BODY),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(WebhookError, webhook_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, generic_exception_handler)
