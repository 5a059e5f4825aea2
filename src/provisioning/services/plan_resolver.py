"""Plan identification from PerfectPay webhook payloads.

PerfectPay does not send a plan id, so the plan is inferred in order of
reliability:

1. checkout_url: last path segment is the checkout link id
2. subscription.plan_type: exact catalog display name
3. product.name: emoji-stripped fuzzy match on duration markers
"""

import re
from urllib.parse import urlsplit

from provisioning.models.enums import PlanKind
from provisioning.models.plan import PlanDetails
from provisioning.models.webhook import WebhookEvent
from provisioning.services.plan_catalog import (
    get_plan,
    get_plan_by_checkout_id,
    get_plan_by_name,
    list_plans,
)
from provisioning.utils.logging import get_logger

logger = get_logger(__name__)

# Misc symbols & pictographs through supplemental symbols, plus variation selectors
_PICTOGRAPH_RE = re.compile("[\U0001F300-\U0001F9FF\uFE0E\uFE0F]")

# Checked in order; first marker found in the normalized name wins
_NAME_MARKERS: tuple[tuple[str, PlanKind], ...] = (
    ("30 DIAS", PlanKind.THIRTY_DAY),
    ("3 Meses", PlanKind.NINETY_DAY),
    ("6 Meses", PlanKind.HUNDRED_EIGHTY_DAY),
)


def normalize_product_name(name: str) -> str:
    """Strip pictographs and surrounding whitespace from a product name.

    >>> normalize_product_name("🔥 Plano Transformação (6 Meses)")
    'Plano Transformação (6 Meses)'
    """
    return _PICTOGRAPH_RE.sub("", name).strip()


def identify_plan_kind(product_name: str) -> PlanKind | None:
    """Identify a plan kind from a free-form product name.

    Args:
        product_name: product.name as sent by PerfectPay

    Returns:
        The matching PlanKind, or None if no marker or display name matches
    """
    normalized = normalize_product_name(product_name)

    for marker, kind in _NAME_MARKERS:
        if marker in normalized:
            return kind

    for plan in list_plans():
        if normalize_product_name(plan.name) == normalized:
            return plan.kind

    return None


def extract_checkout_id(checkout_url: str) -> str | None:
    """Return the last path segment of a checkout URL, ignoring query and fragment.

    >>> extract_checkout_id("https://go.perfectpay.com.br/PPU38CPIEN1?src=ig")
    'PPU38CPIEN1'
    """
    path = urlsplit(checkout_url.strip()).path
    segment = path.rstrip("/").rsplit("/", 1)[-1]
    return segment or None


def resolve_plan(event: WebhookEvent) -> PlanDetails | None:
    """Resolve the catalog plan a webhook event refers to.

    Args:
        event: Validated webhook event

    Returns:
        The PlanDetails, or None when no source identifies a plan
    """
    if event.checkout_url:
        checkout_id = extract_checkout_id(event.checkout_url)
        if checkout_id:
            plan = get_plan_by_checkout_id(checkout_id)
            if plan is not None:
                logger.info("Plan %s resolved from checkout id %s", plan.kind.value, checkout_id)
                return plan

    if event.subscription is not None:
        plan = get_plan_by_name(event.subscription.plan_type)
        if plan is not None:
            logger.info("Plan %s resolved from subscription plan type", plan.kind.value)
            return plan

    kind = identify_plan_kind(event.product.name)
    if kind is not None:
        logger.info("Plan %s resolved from product name", kind.value)
        return get_plan(kind)

    logger.warning(
        "Could not resolve plan for transaction %s (product=%r)",
        event.transaction_id,
        event.product.name,
    )
    return None
