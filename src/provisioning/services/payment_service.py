"""Pending payment records for outbound PerfectPay charges.

Charge creation against the PerfectPay API is not implemented; this service
only records the pending payment locally so the approval webhook can
complete it later. Nothing in the webhook API calls it; it is kept as the
entry point for checkout flows that start charges from the backend.
"""

import datetime as dt
import secrets
from decimal import Decimal

from provisioning.models import (
    Customer,
    CustomerSnapshot,
    ErrorCode,
    PaymentRecord,
    PaymentStatus,
    WebhookError,
)
from provisioning.services.dynamodb import PAYMENTS_TABLE, DynamoDBService, to_item
from provisioning.utils.logging import get_logger, mask_email

logger = get_logger(__name__)


class PaymentService:
    """Service for creating pending payment records."""

    def __init__(self, db: DynamoDBService, api_key: str) -> None:
        """Initialize payment service.

        Args:
            db: DynamoDB service instance
            api_key: PerfectPay API key; required to create payments
        """
        self.db = db
        self._api_key = api_key

    def _generate_transaction_id(self) -> str:
        """Random 32-character hex transaction id."""
        return secrets.token_hex(16)

    def create_pending_payment(
        self,
        amount: Decimal,
        customer: Customer,
        payment_method: str = "credit_card",
    ) -> PaymentRecord:
        """Create a pending payment record.

        Args:
            amount: Charge amount in BRL
            customer: Buyer data
            payment_method: PerfectPay payment method id

        Returns:
            The stored PaymentRecord with PENDING status

        Raises:
            WebhookError: PROVIDER_NOT_CONFIGURED if no API key is set
        """
        if not self._api_key:
            raise WebhookError(ErrorCode.PROVIDER_NOT_CONFIGURED)

        record = PaymentRecord(
            transaction_id=self._generate_transaction_id(),
            status=PaymentStatus.PENDING,
            amount=amount,
            payment_method=payment_method,
            customer=CustomerSnapshot(
                name=customer.name,
                email=str(customer.email),
                phone=customer.phone,
            ),
            created_at=dt.datetime.now(dt.UTC),
        )

        self.db.put_item(
            PAYMENTS_TABLE,
            to_item(record),
            condition="attribute_not_exists(transaction_id)",
        )
        logger.info(
            "Created pending payment %s for %s",
            record.transaction_id,
            mask_email(record.customer.email),
        )
        return record
