"""Unit tests for UserProvisioner.

Test categories:
- Phone normalization and password generation
- provision(): new users, existing users, races, failure policy
- generate_and_send_credentials(): create and reset paths
"""

import datetime as dt
import logging
import string
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from provisioning.models import ErrorCode, NotificationOutcome, PlanKind, WebhookError
from provisioning.models.errors import NotificationError
from provisioning.services.dynamodb import CREDENTIALS_TABLE, USERS_TABLE
from provisioning.services.user_provisioner import (
    PASSWORD_LENGTH,
    PASSWORD_SYMBOLS,
    UserProvisioner,
    generate_password,
    normalize_phone,
)


# === Test Configuration ===

EMAIL = "maria@example.com"
PHONE = "+5511999999999"


def _provision(provisioner: UserProvisioner, kind: PlanKind = PlanKind.THIRTY_DAY):
    return provisioner.provision(
        email=EMAIL, name="Maria Silva", phone=PHONE, plan_kind=kind, transaction_id="T1"
    )


# === Helpers ===


class TestNormalizePhone:
    @pytest.mark.parametrize(
        "raw",
        ["+5511999999999", "5511999999999", "(11) 99999-9999", "+55 (11) 99999-9999"],
    )
    def test_normalizes_to_country_prefixed_digits(self, raw):
        assert normalize_phone(raw) == "+5511999999999"

    def test_custom_country_code(self):
        assert normalize_phone("912 345 678", country_code="351") == "+351912345678"


class TestGeneratePassword:
    def test_length_and_character_classes(self):
        for _ in range(50):
            password = generate_password()
            assert len(password) == PASSWORD_LENGTH
            assert any(c in string.ascii_uppercase for c in password)
            assert any(c in string.ascii_lowercase for c in password)
            assert any(c in string.digits for c in password)
            assert any(c in PASSWORD_SYMBOLS for c in password)

    def test_passwords_differ(self):
        assert len({generate_password() for _ in range(20)}) == 20

    def test_too_short_rejected(self):
        with pytest.raises(ValueError):
            generate_password(3)


# === provision() ===


class TestProvision:
    def test_new_user_gets_account_plan_and_email(
        self, provisioner, cognito, db, sent_email_count
    ):
        result = _provision(provisioner, PlanKind.NINETY_DAY)

        assert result.success is True
        assert result.created is True
        assert result.plan_kind == PlanKind.NINETY_DAY
        assert result.notification == NotificationOutcome.SENT
        assert sent_email_count() == 1

        create_kwargs = cognito.admin_create_user.call_args.kwargs
        assert create_kwargs["Username"] == EMAIL
        assert create_kwargs["MessageAction"] == "SUPPRESS"

        attrs = cognito.users[EMAIL]
        assert attrs["custom:plan"] == "90d"
        assert attrs["custom:access_level"] == "full"
        assert attrs["phone_number"] == PHONE

        record = db.get_item(USERS_TABLE, {"uid": result.uid})
        assert record["plan"] == "90d"
        assert record["plan_duration"] == 90
        assert len(record["features"]) == 10

        expiration = dt.datetime.fromisoformat(record["plan_expiration"])
        expected = dt.datetime.now(dt.UTC) + dt.timedelta(days=90)
        assert abs((expiration - expected).total_seconds()) < 60

        credentials = db.get_item(CREDENTIALS_TABLE, {"email": EMAIL})
        assert credentials["app_username"] == EMAIL
        assert "password" not in credentials

    def test_existing_user_is_reused_without_email(
        self, provisioner, cognito, db, sent_email_count
    ):
        uid = cognito.add_user(EMAIL)

        result = _provision(provisioner)

        assert result.uid == uid
        assert result.created is False
        assert result.notification == NotificationOutcome.SKIPPED
        cognito.admin_create_user.assert_not_called()
        assert sent_email_count() == 0
        assert db.get_item(USERS_TABLE, {"uid": uid})["plan"] == "30d"
        assert db.get_item(CREDENTIALS_TABLE, {"email": EMAIL}) is None

    def test_reprovision_keeps_created_at(self, provisioner, db):
        first = _provision(provisioner, PlanKind.THIRTY_DAY)
        created_at = db.get_item(USERS_TABLE, {"uid": first.uid})["created_at"]

        second = _provision(provisioner, PlanKind.HUNDRED_EIGHTY_DAY)

        record = db.get_item(USERS_TABLE, {"uid": second.uid})
        assert second.uid == first.uid
        assert record["plan"] == "180d"
        assert record["created_at"] == created_at

    def test_concurrent_creation_reuses_user(self, provisioner, cognito):
        """admin_create_user loses a race: the user appears between lookup and create."""
        original_get = cognito.admin_get_user.side_effect
        calls = {"n": 0}

        def get_user(**kwargs):
            calls["n"] += 1
            if calls["n"] == 1:
                cognito.add_user(EMAIL, sub="sub-from-race")
                return original_get(UserPoolId="x", Username="missing@example.com")
            return original_get(**kwargs)

        cognito.admin_get_user.side_effect = get_user

        result = _provision(provisioner)

        assert result.uid == "sub-from-race"
        assert result.created is False

    def test_email_failure_does_not_fail_provisioning(self, db, identity_registry):
        notifier = MagicMock()
        notifier.send_credentials.side_effect = NotificationError("SES down")
        provisioner = UserProvisioner(db=db, identity=identity_registry, notifier=notifier)

        result = _provision(provisioner)

        assert result.success is True
        assert result.notification == NotificationOutcome.FAILED
        assert db.get_item(USERS_TABLE, {"uid": result.uid}) is not None

    def test_identity_failure_raises_provisioning_failed(self, provisioner, cognito, db):
        cognito.admin_get_user.side_effect = ClientError(
            {"Error": {"Code": "InternalErrorException", "Message": "boom"}}, "AdminGetUser"
        )

        with pytest.raises(WebhookError) as exc_info:
            _provision(provisioner)

        assert exc_info.value.code == ErrorCode.PROVISIONING_FAILED
        assert exc_info.value.details["step"] == "identity"

    def test_claims_failure_raises_after_email_sent(
        self, provisioner, cognito, sent_email_count
    ):
        cognito.admin_update_user_attributes.side_effect = ClientError(
            {"Error": {"Code": "InvalidParameterException", "Message": "bad"}},
            "AdminUpdateUserAttributes",
        )

        with pytest.raises(WebhookError) as exc_info:
            _provision(provisioner)

        assert exc_info.value.code == ErrorCode.PROVISIONING_FAILED
        assert exc_info.value.details["step"] == "plan"
        # The password already reached the customer
        assert sent_email_count() == 1


# === generate_and_send_credentials() ===


class TestGenerateAndSendCredentials:
    def test_creates_user_and_sends_email(self, provisioner, cognito, db, sent_email_count):
        result = provisioner.generate_and_send_credentials(EMAIL, 90)

        assert result.success is True
        assert result.created is True
        assert result.username == EMAIL
        assert result.notification == NotificationOutcome.SENT
        assert sent_email_count() == 1

        attrs = cognito.users[EMAIL]
        assert attrs["custom:plan_duration"] == "90"
        assert attrs["custom:role"] == "user"
        assert "custom:expires_at" in attrs

        credentials = db.get_item(CREDENTIALS_TABLE, {"email": EMAIL})
        assert credentials["plan_duration"] == 90

    def test_existing_user_gets_new_temporary_password(self, provisioner, cognito):
        cognito.add_user(EMAIL)

        result = provisioner.generate_and_send_credentials(EMAIL, 30)

        assert result.created is False
        cognito.admin_create_user.assert_not_called()
        kwargs = cognito.admin_set_user_password.call_args.kwargs
        assert kwargs["Username"] == EMAIL
        assert kwargs["Permanent"] is False
        assert len(kwargs["Password"]) == PASSWORD_LENGTH

    def test_identity_failure_raises_credentials_failed(self, provisioner, cognito):
        cognito.admin_create_user.side_effect = ClientError(
            {"Error": {"Code": "InvalidPasswordException", "Message": "weak"}},
            "AdminCreateUser",
        )

        with pytest.raises(WebhookError) as exc_info:
            provisioner.generate_and_send_credentials(EMAIL, 30)

        assert exc_info.value.code == ErrorCode.CREDENTIALS_FAILED

    def test_logs_outcome_at_info(self, provisioner, caplog):
        with caplog.at_level(logging.INFO):
            result = provisioner.generate_and_send_credentials(EMAIL, 30)

        assert result.success is True
        record = next(
            r for r in caplog.records if "Provisioning operation: generate_credentials" in r.message
        )
        assert record.account_created is True
        assert EMAIL not in record.getMessage()
