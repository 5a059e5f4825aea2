"""Plan catalog entry model."""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from .enums import PlanKind


class PlanDetails(BaseModel):
    """A sellable plan: fixed duration, checkout link id, price and features.

    Loaded once at import time and never mutated.
    """

    model_config = ConfigDict(strict=True, frozen=True)

    kind: PlanKind = Field(..., description="Internal plan tier")
    name: str = Field(
        ...,
        description="Display name as sent by PerfectPay in product.name",
        examples=["30 DIAS - APP QUEIMA DEFINITIVA"],
    )
    duration_days: int = Field(..., gt=0, description="Access duration in days")
    checkout_id: str = Field(
        ...,
        description="Final path segment of the PerfectPay checkout link",
        examples=["PPU38CPIB8O"],
    )
    price: Decimal = Field(..., gt=0, description="Price in BRL")
    features: tuple[str, ...] = Field(
        default=(), description="Marketing feature list, in display order"
    )
