"""Sandbox-only webhook simulation.

Builds a payment.approved delivery, signs it with the configured secret and
runs it through the normal pipeline. Returns 404 unless SANDBOX_MODE is on.
"""

import datetime as dt
import json
import time
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from starlette.status import HTTP_404_NOT_FOUND

from provisioning.config import WebhookSettings
from provisioning.models import EventKind, PlanKind
from provisioning.services.plan_catalog import get_plan
from provisioning.services.signature import compute_signature
from provisioning.services.webhook_handler import WebhookProcessor
from provisioning.utils.logging import get_logger
from webhook_api.dependencies import get_settings, get_webhook_processor
from webhook_api.models.simulation import SimulationRequest

logger = get_logger(__name__)

router = APIRouter(prefix="/test", tags=["sandbox"])

DEFAULT_CUSTOMER_NAME = "Usuário Teste"
DEFAULT_CUSTOMER_PHONE = "+5511999999999"


def build_test_payload(request: SimulationRequest) -> dict[str, Any]:
    """Build a payment.approved payload with a TEST-<ms> transaction id."""
    millis = int(time.time() * 1000)
    default_plan = get_plan(PlanKind.THIRTY_DAY)
    price = request.product.price or default_plan.price

    payload: dict[str, Any] = {
        "event": EventKind.PAYMENT_APPROVED.value,
        "transaction_id": f"TEST-{millis}",
        "status": "approved",
        "amount": float(price),
        "payment_method": "credit_card",
        "created_at": dt.datetime.now(dt.UTC).isoformat(),
        "customer": {
            "name": request.customer.name or DEFAULT_CUSTOMER_NAME,
            "email": request.customer.email or f"teste{millis}@example.com",
            "phone": request.customer.phone or DEFAULT_CUSTOMER_PHONE,
        },
        "product": {
            "name": request.product.name or default_plan.name,
            "price": float(price),
        },
    }
    if request.checkout_url:
        payload["checkout_url"] = request.checkout_url
    return payload


@router.post(
    "/webhook",
    summary="Simulate a signed payment.approved webhook (sandbox only)",
)
async def simulate_webhook(
    request: SimulationRequest | None = None,
    settings: WebhookSettings = Depends(get_settings),
    processor: WebhookProcessor = Depends(get_webhook_processor),
) -> dict[str, Any]:
    if not settings.sandbox_mode:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Not Found")

    payload = build_test_payload(request or SimulationRequest())
    raw_body = json.dumps(payload, ensure_ascii=False).encode("utf-8")
    signature = (
        compute_signature(raw_body, settings.perfectpay_webhook_secret)
        if settings.perfectpay_webhook_secret
        else None
    )

    logger.info("Simulating webhook %s", payload["transaction_id"])
    result = processor.process_raw(raw_body, signature)

    return {
        "success": True,
        "message": "Teste de webhook concluído",
        "data": payload,
        "result": result.model_dump(mode="json", exclude_none=True),
    }
