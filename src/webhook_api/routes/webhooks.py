"""Webhook endpoints for PerfectPay.

Two entry points run the same pipeline:
- /webhook/perfectpay authenticates with an HMAC-SHA256 body signature
- /api/webhook authenticates with a static shared-secret header

Neither requires user authentication.
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from starlette.status import HTTP_200_OK, HTTP_400_BAD_REQUEST

from provisioning.config import WebhookSettings
from provisioning.models import ErrorCode, ErrorResponse, ProcessingResult, WebhookError
from provisioning.services.signature import (
    SIGNATURE_HEADER,
    is_test_traffic,
    verify_shared_secret,
)
from provisioning.services.webhook_handler import WebhookProcessor
from provisioning.utils.logging import get_logger
from webhook_api.dependencies import get_settings, get_webhook_processor
from webhook_api.models.webhooks import WebhookResponse

logger = get_logger(__name__)

router = APIRouter(tags=["webhooks"])

SHARED_SECRET_HEADER = "x-perfectpay-webhook-secret"

_ERROR_RESPONSES = {
    400: {"description": "Invalid payload, signature, or unidentified plan", "model": ErrorResponse},
    401: {"description": "Missing signature or wrong shared secret", "model": ErrorResponse},
    500: {"description": "Provisioning failed", "model": ErrorResponse},
}


def to_http_response(result: ProcessingResult) -> JSONResponse:
    """200 for successful results, 400 otherwise."""
    body = WebhookResponse(
        success=result.success,
        message=result.message,
        data=result.data,
        error=result.error,
    )
    return JSONResponse(
        status_code=HTTP_200_OK if result.success else HTTP_400_BAD_REQUEST,
        content=body.model_dump(mode="json", exclude_none=True),
    )


@router.post(
    "/webhook/perfectpay",
    summary="Receive PerfectPay webhook events",
    description="""
Signed PerfectPay webhook. The x-perfectpay-signature header must carry the
hex HMAC-SHA256 of the raw body keyed with the webhook secret.

**Idempotent**: a redelivered payment.approved returns 200 without
provisioning again.
""",
    response_model=WebhookResponse,
    responses=_ERROR_RESPONSES,
)
async def handle_perfectpay_webhook(
    request: Request,
    settings: WebhookSettings = Depends(get_settings),
    processor: WebhookProcessor = Depends(get_webhook_processor),
) -> JSONResponse:
    signature = request.headers.get(SIGNATURE_HEADER)
    if not signature and not is_test_traffic(settings):
        logger.warning("Webhook request missing %s header", SIGNATURE_HEADER)
        raise WebhookError(ErrorCode.MISSING_SIGNATURE)

    payload = await request.body()
    result = processor.process_raw(payload, signature)
    return to_http_response(result)


@router.post(
    "/api/webhook",
    summary="Receive PerfectPay webhook events (shared secret)",
    description="""
PerfectPay webhook authenticated by the x-perfectpay-webhook-secret header,
compared in constant time against the configured webhook secret.
""",
    response_model=WebhookResponse,
    responses=_ERROR_RESPONSES,
)
async def handle_shared_secret_webhook(
    request: Request,
    settings: WebhookSettings = Depends(get_settings),
    processor: WebhookProcessor = Depends(get_webhook_processor),
) -> JSONResponse:
    if not verify_shared_secret(
        request.headers.get(SHARED_SECRET_HEADER), settings.perfectpay_webhook_secret
    ):
        logger.warning("Webhook request with invalid shared secret")
        raise WebhookError(ErrorCode.INVALID_WEBHOOK_SECRET)

    payload = await request.body()
    result = processor.process_raw(payload, None, shared_secret_verified=True)
    return to_http_response(result)
