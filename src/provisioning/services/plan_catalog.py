"""Static catalog of the plans sold through PerfectPay.

The catalog is the only place that knows display names (emoji included),
checkout link ids and prices. Everything else refers to plans by PlanKind.
"""

from decimal import Decimal
from types import MappingProxyType
from typing import Mapping

from provisioning.models.enums import PlanKind
from provisioning.models.plan import PlanDetails

CHECKOUT_BASE_URL = "https://go.perfectpay.com.br"

# Feature list written to every user plan record; all tiers get full access
PLAN_FEATURES: tuple[str, ...] = (
    "Dieta Cetogênica Personalizada",
    "Treinos em Casa",
    "Monitoramento de Peso",
    "Lista de Compras Semanal",
    "Protocolo Anti-Estrias",
    "Coquetel Anti-Varizes",
    "Suporte Prioritário",
    "Zero Flacidez",
    "Mentoria Individual",
    "Grupo VIP",
)

PLAN_CATALOG: Mapping[PlanKind, PlanDetails] = MappingProxyType(
    {
        PlanKind.THIRTY_DAY: PlanDetails(
            kind=PlanKind.THIRTY_DAY,
            name="30 DIAS - APP QUEIMA DEFINITIVA",
            duration_days=30,
            checkout_id="PPU38CPIB8O",
            price=Decimal("27.00"),
            features=("Acesso básico por 30 dias", "Suporte básico"),
        ),
        PlanKind.NINETY_DAY: PlanDetails(
            kind=PlanKind.NINETY_DAY,
            name="💪 Plano Evolução (3 Meses)",
            duration_days=90,
            checkout_id="PPU38CPIR95",
            price=Decimal("39.90"),
            features=("Acesso completo por 3 meses", "Suporte prioritário"),
        ),
        PlanKind.HUNDRED_EIGHTY_DAY: PlanDetails(
            kind=PlanKind.HUNDRED_EIGHTY_DAY,
            name="🔥 Plano Transformação (6 Meses)",
            duration_days=180,
            checkout_id="PPU38CPIEN1",
            price=Decimal("47.00"),
            features=("Acesso completo por 6 meses", "Suporte VIP"),
        ),
    }
)


def get_plan(kind: PlanKind) -> PlanDetails:
    """Get the catalog entry for a plan kind.

    Every PlanKind has an entry, so this never fails for a valid kind.
    """
    return PLAN_CATALOG[kind]


def get_plan_by_name(name: str) -> PlanDetails | None:
    """Find a plan by its exact display name."""
    for plan in PLAN_CATALOG.values():
        if plan.name == name:
            return plan
    return None


def get_plan_by_checkout_id(checkout_id: str) -> PlanDetails | None:
    """Find a plan by its checkout link id (e.g. "PPU38CPIEN1")."""
    for plan in PLAN_CATALOG.values():
        if plan.checkout_id == checkout_id:
            return plan
    return None


def get_plan_duration(kind: PlanKind) -> int:
    """Access duration in days for a plan kind."""
    return PLAN_CATALOG[kind].duration_days


def get_checkout_url(kind: PlanKind) -> str:
    """Public PerfectPay checkout link for a plan kind."""
    return f"{CHECKOUT_BASE_URL}/{PLAN_CATALOG[kind].checkout_id}"


def list_plans() -> list[PlanDetails]:
    """All catalog plans ordered by duration."""
    return sorted(PLAN_CATALOG.values(), key=lambda p: p.duration_days)
