"""Webhook endpoint response models."""

from typing import Any

from pydantic import BaseModel, Field


class WebhookResponse(BaseModel):
    """Body returned for every processed webhook delivery."""

    success: bool
    message: str = Field(..., examples=["Pagamento processado com sucesso"])
    data: dict[str, Any] | None = None
    error: str | None = None
