"""HMAC-SHA256 verification of PerfectPay webhook signatures.

The signature header carries the hex HMAC-SHA256 digest of the raw request
body keyed with the webhook secret. Verification never raises; any problem
is reported as an invalid signature.
"""

import hashlib
import hmac
import json
import re
from typing import TYPE_CHECKING, Any

from provisioning.utils.logging import get_logger

if TYPE_CHECKING:
    from provisioning.config import WebhookSettings

logger = get_logger(__name__)

SIGNATURE_HEADER = "x-perfectpay-signature"

_WHITESPACE_RE = re.compile(r"\s+")

Payload = bytes | str | dict[str, Any]


def canonicalize_payload(payload: Payload) -> bytes:
    """Bytes the signature is computed over.

    Raw bytes and strings are used as received. A parsed object is
    re-serialized with sorted keys and compact separators; this only matches
    the provider's digest if it signed the same canonical form, so callers
    should always pass the raw body when they have it.
    """
    if isinstance(payload, bytes):
        return payload
    if isinstance(payload, str):
        return payload.encode("utf-8")
    return json.dumps(
        payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False
    ).encode("utf-8")


def compute_signature(payload: Payload, secret: str) -> str:
    """Compute the hex HMAC-SHA256 signature of a payload.

    Args:
        payload: Raw body (bytes/str) or parsed JSON object
        secret: Webhook secret shared with PerfectPay

    Returns:
        Lowercase hex digest
    """
    return hmac.new(
        secret.encode("utf-8"), canonicalize_payload(payload), hashlib.sha256
    ).hexdigest()


def clean_signature_header(signature_header: str) -> str:
    """Trim a signature header and remove any inner whitespace."""
    return _WHITESPACE_RE.sub("", signature_header.strip())


def verify_signature(
    raw_payload: Payload,
    signature_header: str | None,
    secret: str,
    is_test_traffic: bool = False,
) -> bool:
    """Verify a webhook signature.

    Args:
        raw_payload: Request body exactly as received (preferred) or parsed object
        signature_header: Value of the x-perfectpay-signature header
        secret: Webhook secret; empty means verification cannot succeed
        is_test_traffic: Sandbox deployment flag; bypasses verification

    Returns:
        True if the signature matches (or test traffic), False otherwise
    """
    if is_test_traffic:
        logger.info("Sandbox mode: webhook signature verification bypassed")
        return True

    if not secret:
        logger.error("Webhook secret is not configured; rejecting signature")
        return False

    if not signature_header or not signature_header.strip():
        logger.warning("Webhook signature header missing")
        return False

    try:
        expected = compute_signature(raw_payload, secret)
        received = clean_signature_header(signature_header).lower()
        valid = hmac.compare_digest(expected, received)
    except (TypeError, ValueError) as e:
        logger.warning("Webhook signature could not be computed: %s", e)
        return False

    if not valid:
        logger.warning("Webhook signature mismatch")
    return valid


def verify_shared_secret(received: str | None, expected: str) -> bool:
    """Constant-time comparison of a static shared-secret header.

    Returns False when either side is empty.
    """
    if not received or not expected:
        return False
    return hmac.compare_digest(received.encode("utf-8"), expected.encode("utf-8"))


def is_test_traffic(settings: "WebhookSettings") -> bool:
    """Whether deliveries to this deployment skip signature verification.

    Decided by the sandbox deployment flag only, never by request content.
    """
    return settings.is_test_traffic
