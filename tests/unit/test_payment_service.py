"""Unit tests for PaymentService pending payment creation."""

from decimal import Decimal

import pytest

from provisioning.models import Customer, ErrorCode, PaymentStatus, WebhookError
from provisioning.services.dynamodb import PAYMENTS_TABLE
from provisioning.services.payment_service import PaymentService

CUSTOMER = Customer(name="Maria Silva", email="maria@example.com", phone="+5511999999999")


class TestCreatePendingPayment:
    def test_creates_pending_record(self, db):
        service = PaymentService(db, api_key="test_api_key")

        record = service.create_pending_payment(Decimal("27.00"), CUSTOMER, payment_method="pix")

        assert record.status == PaymentStatus.PENDING
        assert len(record.transaction_id) == 32
        stored = db.get_item(PAYMENTS_TABLE, {"transaction_id": record.transaction_id})
        assert stored["status"] == "pending"
        assert stored["payment_method"] == "pix"
        assert stored["amount"] == Decimal("27.00")
        assert stored["customer"]["email"] == "maria@example.com"

    def test_transaction_ids_are_unique(self, db):
        service = PaymentService(db, api_key="test_api_key")

        first = service.create_pending_payment(Decimal("27.00"), CUSTOMER)
        second = service.create_pending_payment(Decimal("27.00"), CUSTOMER)

        assert first.transaction_id != second.transaction_id

    def test_missing_api_key(self, db):
        with pytest.raises(WebhookError) as exc_info:
            PaymentService(db, api_key="").create_pending_payment(Decimal("27.00"), CUSTOMER)

        assert exc_info.value.code == ErrorCode.PROVIDER_NOT_CONFIGURED
        assert exc_info.value.message == "PERFECTPAY_API_KEY não configurada"

    def test_pending_payment_is_completed_by_approval(
        self, db, processor, webhook_payload, signed_body
    ):
        record = PaymentService(db, api_key="test_api_key").create_pending_payment(
            Decimal("27.00"), CUSTOMER
        )
        payload = webhook_payload(transaction_id=record.transaction_id)

        result = processor.process_raw(*signed_body(payload))

        assert result.message == "Pagamento processado com sucesso"
        stored = db.get_item(PAYMENTS_TABLE, {"transaction_id": record.transaction_id})
        assert stored["status"] == "approved"
