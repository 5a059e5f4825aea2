"""Unit tests for webhook signature verification.

Test categories:
- HMAC-SHA256 verification against the raw body
- Header cleanup and missing-input handling
- Sandbox bypass and shared-secret comparison
"""

import hashlib
import hmac
import json

import pytest

from provisioning.config import WebhookSettings
from provisioning.services.signature import (
    canonicalize_payload,
    clean_signature_header,
    compute_signature,
    is_test_traffic,
    verify_shared_secret,
    verify_signature,
)


# === Test Configuration ===

SECRET = "test_webhook_secret"
BODY = b'{"event":"payment.approved","transaction_id":"T1","amount":27.0}'


def _hmac(body: bytes, secret: str = SECRET) -> str:
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


# === HMAC Verification ===


class TestVerifySignature:
    def test_valid_signature(self):
        assert verify_signature(BODY, _hmac(BODY), SECRET) is True

    def test_signature_computed_over_raw_bytes(self):
        """Whitespace in the body is significant."""
        spaced = b'{"event": "payment.approved", "transaction_id": "T1", "amount": 27.0}'
        assert verify_signature(spaced, _hmac(BODY), SECRET) is False

    def test_tampered_body_rejected(self):
        tampered = BODY.replace(b"27.0", b"1.0")
        assert verify_signature(tampered, _hmac(BODY), SECRET) is False

    def test_wrong_secret_rejected(self):
        assert verify_signature(BODY, _hmac(BODY, "other"), SECRET) is False

    def test_uppercase_hex_accepted(self):
        assert verify_signature(BODY, _hmac(BODY).upper(), SECRET) is True

    def test_header_whitespace_is_ignored(self):
        digest = _hmac(BODY)
        header = f"  {digest[:32]} {digest[32:]}\n"
        assert verify_signature(BODY, header, SECRET) is True

    @pytest.mark.parametrize("header", [None, "", "   "])
    def test_missing_header_rejected(self, header):
        assert verify_signature(BODY, header, SECRET) is False

    def test_empty_secret_rejected(self):
        """An unconfigured secret never validates, even against its own digest."""
        assert verify_signature(BODY, _hmac(BODY, ""), "") is False

    def test_string_body_matches_bytes(self):
        assert verify_signature(BODY.decode(), _hmac(BODY), SECRET) is True

    def test_test_traffic_bypasses_verification(self):
        assert verify_signature(BODY, "garbage", SECRET, is_test_traffic=True) is True
        assert verify_signature(BODY, None, "", is_test_traffic=True) is True


# === Canonical Form ===


class TestCanonicalizePayload:
    def test_bytes_unchanged(self):
        assert canonicalize_payload(BODY) == BODY

    def test_dict_uses_sorted_compact_json(self):
        payload = {"b": 1, "a": "ç"}
        assert canonicalize_payload(payload) == '{"a":"ç","b":1}'.encode("utf-8")

    def test_compute_signature_for_dict(self):
        payload = {"transaction_id": "T1", "event": "payment.approved"}
        canonical = json.dumps(payload, sort_keys=True, separators=(",", ":")).encode()
        assert compute_signature(payload, SECRET) == _hmac(canonical)


class TestCleanSignatureHeader:
    def test_strips_inner_and_outer_whitespace(self):
        assert clean_signature_header(" ab cd\tef\n") == "abcdef"


# === Shared Secret and Sandbox ===


class TestSharedSecret:
    def test_matching_secret(self):
        assert verify_shared_secret(SECRET, SECRET) is True

    def test_mismatched_secret(self):
        assert verify_shared_secret("nope", SECRET) is False

    @pytest.mark.parametrize("received,expected", [(None, SECRET), ("", SECRET), (SECRET, "")])
    def test_empty_values_rejected(self, received, expected):
        assert verify_shared_secret(received, expected) is False


class TestIsTestTraffic:
    def test_follows_sandbox_flag(self):
        assert is_test_traffic(WebhookSettings(sandbox_mode=True)) is True
        assert is_test_traffic(WebhookSettings(sandbox_mode=False)) is False
