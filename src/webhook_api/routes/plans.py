"""Public plan catalog endpoint."""

from decimal import Decimal

from fastapi import APIRouter
from pydantic import BaseModel

from provisioning.models.enums import PlanKind
from provisioning.services.plan_catalog import get_checkout_url, list_plans

router = APIRouter(tags=["plans"])


class PlanResponse(BaseModel):
    """A catalog plan with its checkout link."""

    kind: PlanKind
    name: str
    duration_days: int
    price: Decimal
    features: list[str]
    checkout_url: str


@router.get(
    "/plans",
    response_model=list[PlanResponse],
    summary="List sellable plans",
    description="Plans ordered by duration, each with its PerfectPay checkout link.",
)
async def get_plans() -> list[PlanResponse]:
    return [
        PlanResponse(
            kind=plan.kind,
            name=plan.name,
            duration_days=plan.duration_days,
            price=plan.price,
            features=list(plan.features),
            checkout_url=get_checkout_url(plan.kind),
        )
        for plan in list_plans()
    ]
