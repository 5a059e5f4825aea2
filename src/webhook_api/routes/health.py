"""Service status endpoints."""

import datetime as dt

from fastapi import APIRouter, Depends

from provisioning.config import WebhookSettings
from webhook_api.dependencies import get_settings
from webhook_api.models.common import StatusResponse

router = APIRouter(tags=["health"])


def _status(settings: WebhookSettings) -> StatusResponse:
    return StatusResponse(
        status="online",
        message="API Server está funcionando",
        timestamp=dt.datetime.now(dt.UTC).isoformat(),
        environment=settings.environment,
        sandbox_mode=settings.sandbox_mode,
    )


@router.get("/", response_model=StatusResponse, summary="Service status")
async def root(settings: WebhookSettings = Depends(get_settings)) -> StatusResponse:
    return _status(settings)


@router.get("/health", response_model=StatusResponse, summary="Health check")
async def health(settings: WebhookSettings = Depends(get_settings)) -> StatusResponse:
    return _status(settings)
