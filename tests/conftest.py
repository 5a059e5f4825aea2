"""Pytest configuration and fixtures for the PerfectPay provisioning tests.

This module provides reusable fixtures for testing:
- AWS mocking with moto (DynamoDB tables, verified SES sender)
- An in-memory Cognito client built on MagicMock
- Wired services (provisioner, webhook processor)
- Webhook payload and signature builders
"""

import hashlib
import hmac
import json
import os
import uuid
from typing import Any, Callable, Generator
from unittest.mock import MagicMock

import boto3
import pytest
from botocore.exceptions import ClientError
from moto import mock_aws

# === Environment Setup ===

# Set before any service import so settings and clients pick them up
os.environ["AWS_DEFAULT_REGION"] = "us-east-1"
os.environ["AWS_ACCESS_KEY_ID"] = "testing"
os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
os.environ["AWS_SECURITY_TOKEN"] = "testing"
os.environ["AWS_SESSION_TOKEN"] = "testing"
os.environ["ENVIRONMENT"] = "test"
os.environ["DYNAMODB_TABLE_PREFIX"] = "test-queima"
os.environ["PERFECTPAY_WEBHOOK_SECRET"] = "test_webhook_secret"
os.environ["PERFECTPAY_API_KEY"] = "test_api_key"
os.environ["COGNITO_USER_POOL_ID"] = "us-east-1_TESTPOOL"
os.environ["SES_FROM_EMAIL"] = "suporte@queimadefinitiva.shop"
os.environ.pop("SANDBOX_MODE", None)
os.environ.pop("SSM_PARAMETER_PREFIX", None)

TEST_REGION = "us-east-1"
TEST_TABLE_PREFIX = "test-queima"
TEST_WEBHOOK_SECRET = "test_webhook_secret"
TEST_USER_POOL_ID = "us-east-1_TESTPOOL"
TEST_FROM_EMAIL = "suporte@queimadefinitiva.shop"

THIRTY_DAY_NAME = "30 DIAS - APP QUEIMA DEFINITIVA"
NINETY_DAY_NAME = "💪 Plano Evolução (3 Meses)"
HUNDRED_EIGHTY_DAY_NAME = "🔥 Plano Transformação (6 Meses)"

TABLE_KEYS = {
    "payments": "transaction_id",
    "subscriptions": "subscription_id",
    "users": "uid",
    "app-credentials": "email",
}


# === Singleton Reset ===


@pytest.fixture(autouse=True)
def reset_state() -> Generator[None, None, None]:
    """Reset cached services and singletons before and after each test.

    Tests using mock_aws get fresh boto3 clients inside the mock context
    rather than reusing ones from a previous test.
    """
    from provisioning.services.ssm_service import reset_ssm_service
    from webhook_api.dependencies import reset_services

    reset_services()
    reset_ssm_service()
    yield
    reset_services()
    reset_ssm_service()


# === AWS Fixtures ===


@pytest.fixture
def aws() -> Generator[None, None, None]:
    """Mock AWS with every provisioning table and a verified SES sender."""
    with mock_aws():
        client = boto3.client("dynamodb", region_name=TEST_REGION)
        for name, key in TABLE_KEYS.items():
            client.create_table(
                TableName=f"{TEST_TABLE_PREFIX}-{name}",
                KeySchema=[{"AttributeName": key, "KeyType": "HASH"}],
                AttributeDefinitions=[{"AttributeName": key, "AttributeType": "S"}],
                BillingMode="PAY_PER_REQUEST",
            )

        ses = boto3.client("ses", region_name=TEST_REGION)
        ses.verify_email_identity(EmailAddress=TEST_FROM_EMAIL)
        yield


@pytest.fixture
def table(aws: None) -> Callable[[str], Any]:
    """Return a DynamoDB Table resource by short name (e.g. "payments")."""
    resource = boto3.resource("dynamodb", region_name=TEST_REGION)
    return lambda name: resource.Table(f"{TEST_TABLE_PREFIX}-{name}")


@pytest.fixture
def sent_email_count(aws: None) -> Callable[[], int]:
    """Number of e-mails moto's SES has accepted so far."""
    ses = boto3.client("ses", region_name=TEST_REGION)
    return lambda: int(ses.get_send_quota()["SentLast24Hours"])


# === Cognito Fake ===


def _client_error(code: str, operation: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class FakeCognito:
    """In-memory stand-in for the cognito-idp client.

    Each API method is a MagicMock with a side effect, so tests can both
    rely on realistic behavior and assert on calls.
    """

    def __init__(self) -> None:
        self.users: dict[str, dict[str, str]] = {}
        self.passwords: dict[str, str] = {}
        self.admin_get_user = MagicMock(side_effect=self._get_user)
        self.admin_create_user = MagicMock(side_effect=self._create_user)
        self.admin_update_user_attributes = MagicMock(side_effect=self._update_attributes)
        self.admin_set_user_password = MagicMock(side_effect=self._set_password)

    @staticmethod
    def _as_list(attrs: dict[str, str]) -> list[dict[str, str]]:
        return [{"Name": k, "Value": v} for k, v in attrs.items()]

    def add_user(self, email: str, sub: str | None = None) -> str:
        sub = sub or str(uuid.uuid4())
        self.users[email] = {"sub": sub, "email": email}
        return sub

    def _get_user(self, UserPoolId: str, Username: str) -> dict[str, Any]:
        if Username not in self.users:
            raise _client_error("UserNotFoundException", "AdminGetUser")
        return {"Username": Username, "UserAttributes": self._as_list(self.users[Username])}

    def _create_user(self, UserPoolId: str, Username: str, **kwargs: Any) -> dict[str, Any]:
        if Username in self.users:
            raise _client_error("UsernameExistsException", "AdminCreateUser")
        attrs = {a["Name"]: a["Value"] for a in kwargs.get("UserAttributes", [])}
        attrs["sub"] = str(uuid.uuid4())
        self.users[Username] = attrs
        self.passwords[Username] = kwargs["TemporaryPassword"]
        return {"User": {"Username": Username, "Attributes": self._as_list(attrs)}}

    def _update_attributes(
        self, UserPoolId: str, Username: str, UserAttributes: list[dict[str, str]]
    ) -> dict[str, Any]:
        if Username not in self.users:
            raise _client_error("UserNotFoundException", "AdminUpdateUserAttributes")
        for attr in UserAttributes:
            self.users[Username][attr["Name"]] = attr["Value"]
        return {}

    def _set_password(
        self, UserPoolId: str, Username: str, Password: str, Permanent: bool
    ) -> dict[str, Any]:
        if Username not in self.users:
            raise _client_error("UserNotFoundException", "AdminSetUserPassword")
        self.passwords[Username] = Password
        return {}


@pytest.fixture
def cognito() -> FakeCognito:
    return FakeCognito()


@pytest.fixture
def identity_registry(cognito: FakeCognito) -> Any:
    """IdentityRegistry backed by the fake, installed as the shared instance."""
    from provisioning.services import identity_registry as registry_module
    from provisioning.services.identity_registry import IdentityRegistry

    registry = IdentityRegistry(TEST_USER_POOL_ID, client=cognito)
    registry_module._identity_registry = registry
    return registry


# === Service Fixtures ===


@pytest.fixture
def settings() -> Any:
    from provisioning.config import WebhookSettings

    return WebhookSettings(
        environment="test",
        perfectpay_webhook_secret=TEST_WEBHOOK_SECRET,
        perfectpay_api_key="test_api_key",
        dynamodb_table_prefix=TEST_TABLE_PREFIX,
        cognito_user_pool_id=TEST_USER_POOL_ID,
        ses_from_email=TEST_FROM_EMAIL,
    )


@pytest.fixture
def db(aws: None) -> Any:
    from provisioning.services.dynamodb import DynamoDBService

    return DynamoDBService(TEST_TABLE_PREFIX, region=TEST_REGION)


@pytest.fixture
def notifier(aws: None, settings: Any) -> Any:
    from provisioning.services.notifier import CredentialNotifier

    return CredentialNotifier(
        from_email=settings.ses_from_email,
        login_url=settings.login_url,
        region=TEST_REGION,
    )


@pytest.fixture
def provisioner(db: Any, identity_registry: Any, notifier: Any) -> Any:
    from provisioning.services.user_provisioner import UserProvisioner

    return UserProvisioner(db=db, identity=identity_registry, notifier=notifier)


@pytest.fixture
def processor(db: Any, provisioner: Any, settings: Any) -> Any:
    from provisioning.services.webhook_handler import WebhookProcessor

    return WebhookProcessor(db=db, provisioner=provisioner, settings=settings)


# === Payload Builders ===


@pytest.fixture
def webhook_payload() -> Callable[..., dict[str, Any]]:
    """Factory for PerfectPay webhook payloads.

    Keyword arguments override top-level fields; pass ``subscription`` to
    attach a subscription object.
    """

    def build(
        event: str = "payment.approved",
        transaction_id: str = "T1",
        product_name: str = THIRTY_DAY_NAME,
        amount: float = 27.0,
        email: str = "maria@example.com",
        **overrides: Any,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "event": event,
            "transaction_id": transaction_id,
            "status": "approved",
            "amount": amount,
            "payment_method": "credit_card",
            "created_at": "2026-01-15T10:00:00Z",
            "customer": {
                "name": "Maria Silva",
                "email": email,
                "phone": "+5511999999999",
            },
            "product": {"name": product_name, "price": amount},
        }
        payload.update(overrides)
        return payload

    return build


@pytest.fixture
def subscription_payload() -> Callable[..., dict[str, Any]]:
    """Factory for subscription objects attached to subscription events."""

    def build(
        subscription_id: str = "SUB-1",
        plan_type: str = NINETY_DAY_NAME,
        **overrides: Any,
    ) -> dict[str, Any]:
        subscription: dict[str, Any] = {
            "id": subscription_id,
            "status": "active",
            "start_date": "2026-01-15T10:00:00Z",
            "next_payment_date": "2026-04-15T10:00:00Z",
            "plan_type": plan_type,
            "price": 39.9,
            "billing_cycle": "quarterly",
            "payment_method": "credit_card",
        }
        subscription.update(overrides)
        return subscription

    return build


def sign(body: bytes, secret: str = TEST_WEBHOOK_SECRET) -> str:
    """Hex HMAC-SHA256 of a raw body."""
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


@pytest.fixture
def signed_body() -> Callable[[dict[str, Any]], tuple[bytes, str]]:
    """Serialize a payload and sign it with the test secret."""

    def build(payload: dict[str, Any]) -> tuple[bytes, str]:
        body = json.dumps(payload, ensure_ascii=False).encode("utf-8")
        return body, sign(body)

    return build
