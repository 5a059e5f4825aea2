"""Webhook processing for PerfectPay events.

Provides business logic for handling webhook events separate from
HTTP routing concerns. Every handler is idempotent: a redelivered event
either finds its work already done or applies the same write again.

Pipeline: parse JSON, validate, verify signature, resolve plan, dispatch.
Nothing is written before the signature and plan checks pass.
"""

import datetime as dt
from typing import Any, Callable

from provisioning.config import WebhookSettings
from provisioning.models import (
    CustomerSnapshot,
    ErrorCode,
    EventKind,
    PaymentRecord,
    PaymentStatus,
    PlanDetails,
    ProcessingResult,
    ProductSnapshot,
    SubscriptionRecord,
    SubscriptionStatus,
    WebhookError,
    WebhookEvent,
    parse_raw_payload,
)
from provisioning.models.errors import ERROR_MESSAGES
from provisioning.services.dynamodb import (
    PAYMENTS_TABLE,
    SUBSCRIPTIONS_TABLE,
    DynamoDBService,
    to_item,
)
from provisioning.services.plan_resolver import resolve_plan
from provisioning.services.signature import is_test_traffic, verify_signature
from provisioning.services.user_provisioner import UserProvisioner, normalize_phone
from provisioning.utils.logging import get_logger, log_webhook_event

logger = get_logger(__name__)

# A claim older than this is assumed abandoned and may be taken over
CLAIM_TIMEOUT = dt.timedelta(minutes=5)

MSG_PAYMENT_APPROVED = "Pagamento processado com sucesso"
MSG_PAYMENT_DUPLICATE = "Pagamento já processado"
MSG_PAYMENT_REJECTED = "Pagamento rejeitado processado com sucesso"
MSG_PAYMENT_CANCELLED = "Pagamento cancelado processado com sucesso"
MSG_PAYMENT_REFUNDED = "Pagamento reembolsado processado com sucesso"
MSG_SUBSCRIPTION_CREATED = "Assinatura criada com sucesso"
MSG_SUBSCRIPTION_UPDATED = "Assinatura atualizada com sucesso"
MSG_SUBSCRIPTION_CANCELLED = "Assinatura cancelada com sucesso"
MSG_SUBSCRIPTION_EXPIRED = "Assinatura expirada processada com sucesso"

Handler = Callable[[WebhookEvent, PlanDetails], ProcessingResult]


class WebhookProcessor:
    """Processes PerfectPay webhook deliveries.

    Writes payments and subscriptions to DynamoDB and delegates account
    provisioning to the UserProvisioner.
    """

    def __init__(
        self,
        db: DynamoDBService,
        provisioner: UserProvisioner,
        settings: WebhookSettings,
    ) -> None:
        self._db = db
        self._provisioner = provisioner
        self._settings = settings
        self._handlers: dict[EventKind, Handler] = {
            EventKind.PAYMENT_APPROVED: self.handle_payment_approved,
            EventKind.PAYMENT_REJECTED: self.handle_payment_rejected,
            EventKind.PAYMENT_CANCELLED: self.handle_payment_cancelled,
            EventKind.PAYMENT_REFUNDED: self.handle_payment_refunded,
            EventKind.SUBSCRIPTION_CREATED: self.handle_subscription_created,
            EventKind.SUBSCRIPTION_UPDATED: self.handle_subscription_updated,
            EventKind.SUBSCRIPTION_CANCELLED: self.handle_subscription_cancelled,
            EventKind.SUBSCRIPTION_EXPIRED: self.handle_subscription_expired,
        }

    # === Pipeline ===

    def process_raw(
        self,
        raw_body: bytes | str,
        signature_header: str | None,
        *,
        shared_secret_verified: bool = False,
    ) -> ProcessingResult:
        """Run the full pipeline on a raw request body.

        Args:
            raw_body: Request body exactly as received
            signature_header: x-perfectpay-signature header value
            shared_secret_verified: The caller already authenticated the
                request with the static shared secret, so HMAC is skipped

        Returns:
            ProcessingResult for the delivery

        Raises:
            WebhookError: INVALID_PAYLOAD for malformed bodies,
                PROVISIONING_FAILED if an approval cannot be provisioned
        """
        _, event = parse_raw_payload(raw_body)

        if not shared_secret_verified and not verify_signature(
            raw_body,
            signature_header,
            self._settings.perfectpay_webhook_secret,
            is_test_traffic(self._settings),
        ):
            log_webhook_event(
                logger, event.event, event.transaction_id,
                result="error", error="invalid signature",
            )
            return ProcessingResult.failed(ERROR_MESSAGES[ErrorCode.INVALID_SIGNATURE])

        return self.process(event)

    def process(self, event: WebhookEvent) -> ProcessingResult:
        """Resolve the plan and dispatch an authenticated event.

        Args:
            event: Validated, authenticated webhook event

        Returns:
            ProcessingResult from the event handler
        """
        log_webhook_event(
            logger, event.event, event.transaction_id,
            subscription_id=event.subscription.id if event.subscription else None,
            result="received",
        )

        plan = resolve_plan(event)
        if plan is None:
            log_webhook_event(
                logger, event.event, event.transaction_id,
                result="error", error="plan not identified",
            )
            return ProcessingResult.failed(ERROR_MESSAGES[ErrorCode.PLAN_NOT_FOUND])

        kind = event.event_kind
        handler = self._handlers.get(kind) if kind is not None else None
        if handler is None:
            log_webhook_event(logger, event.event, event.transaction_id, result="skipped")
            return ProcessingResult.failed(ERROR_MESSAGES[ErrorCode.UNRECOGNIZED_EVENT])

        return handler(event, plan)

    # === Payment events ===

    def _customer_snapshot(self, event: WebhookEvent) -> CustomerSnapshot:
        return CustomerSnapshot(
            name=event.customer.name,
            email=str(event.customer.email),
            phone=normalize_phone(event.customer.phone, self._settings.default_country_code),
        )

    def _claim_payment(self, event: WebhookEvent, plan: PlanDetails) -> bool:
        """Atomically mark a transaction as being processed.

        Succeeds when the transaction is unknown, or known but neither
        approved nor claimed by a live in-flight approval.
        """
        now = dt.datetime.now(dt.UTC)
        record = PaymentRecord(
            transaction_id=event.transaction_id,
            status=PaymentStatus.PROCESSING,
            amount=event.amount,
            payment_method=event.payment_method,
            customer=self._customer_snapshot(event),
            product=ProductSnapshot(name=event.product.name, price=event.product.price),
            plan=plan.kind,
            created_at=event.created_at,
            claimed_at=now,
        )
        return self._db.put_item(
            PAYMENTS_TABLE,
            to_item(record),
            condition=(
                "attribute_not_exists(transaction_id) OR "
                "(#status <> :approved AND "
                "(#status <> :processing OR #claimed_at < :stale_before))"
            ),
            names={"#status": "status", "#claimed_at": "claimed_at"},
            values={
                ":approved": PaymentStatus.APPROVED.value,
                ":processing": PaymentStatus.PROCESSING.value,
                ":stale_before": (now - CLAIM_TIMEOUT).isoformat(),
            },
        )

    def _already_processed(self, event: WebhookEvent, existing: dict[str, Any] | None) -> ProcessingResult:
        log_webhook_event(logger, event.event, event.transaction_id, result="duplicate")
        data: dict[str, Any] = {"transaction_id": event.transaction_id}
        if existing:
            data["user_uid"] = existing.get("user_uid")
            data["plan_type"] = existing.get("plan")
        return ProcessingResult.ok(MSG_PAYMENT_DUPLICATE, data=data)

    def handle_payment_approved(self, event: WebhookEvent, plan: PlanDetails) -> ProcessingResult:
        """Provision the buyer and record the approved payment.

        Raises:
            WebhookError: PROVISIONING_FAILED; the payment is left in
                provisioning_failed so a redelivery retries it
        """
        key = {"transaction_id": event.transaction_id}

        existing = self._db.get_item(PAYMENTS_TABLE, key)
        if existing and existing.get("status") == PaymentStatus.APPROVED.value:
            return self._already_processed(event, existing)

        if not self._claim_payment(event, plan):
            # Lost the race to a concurrent delivery of the same transaction
            return self._already_processed(event, self._db.get_item(PAYMENTS_TABLE, key))

        try:
            result = self._provisioner.provision(
                email=str(event.customer.email),
                name=event.customer.name,
                phone=event.customer.phone,
                plan_kind=plan.kind,
                transaction_id=event.transaction_id,
            )
        except WebhookError as e:
            self._db.update_fields(
                PAYMENTS_TABLE,
                key,
                {
                    "status": PaymentStatus.PROVISIONING_FAILED,
                    "error_message": e.error or e.message,
                    "processed_at": dt.datetime.now(dt.UTC),
                },
            )
            log_webhook_event(
                logger, event.event, event.transaction_id,
                result="error", error=e.error or e.message,
            )
            raise

        self._db.update_fields(
            PAYMENTS_TABLE,
            key,
            {
                "status": PaymentStatus.APPROVED,
                "user_uid": result.uid,
                "plan": plan.kind,
                "processed_at": dt.datetime.now(dt.UTC),
            },
        )
        log_webhook_event(
            logger, event.event, event.transaction_id,
            result="success", plan=plan.kind.value, notification=result.notification.value,
        )
        return ProcessingResult.ok(
            MSG_PAYMENT_APPROVED,
            data={
                "user_uid": result.uid,
                "plan_type": plan.kind.value,
                "plan_expiration": result.plan_expiration.isoformat(),
                "notification": result.notification.value,
            },
        )

    def _set_payment_status(
        self, event: WebhookEvent, status: PaymentStatus, message: str
    ) -> ProcessingResult:
        updated = self._db.update_fields(
            PAYMENTS_TABLE,
            {"transaction_id": event.transaction_id},
            {"status": status, "processed_at": dt.datetime.now(dt.UTC)},
            must_exist=True,
        )
        if updated is None:
            log_webhook_event(
                logger, event.event, event.transaction_id,
                result="skipped", reason="unknown transaction",
            )
        else:
            log_webhook_event(logger, event.event, event.transaction_id, result="success")
        return ProcessingResult.ok(message)

    def handle_payment_rejected(self, event: WebhookEvent, plan: PlanDetails) -> ProcessingResult:
        return self._set_payment_status(event, PaymentStatus.REJECTED, MSG_PAYMENT_REJECTED)

    def handle_payment_cancelled(self, event: WebhookEvent, plan: PlanDetails) -> ProcessingResult:
        return self._set_payment_status(event, PaymentStatus.CANCELLED, MSG_PAYMENT_CANCELLED)

    def handle_payment_refunded(self, event: WebhookEvent, plan: PlanDetails) -> ProcessingResult:
        return self._set_payment_status(event, PaymentStatus.REFUNDED, MSG_PAYMENT_REFUNDED)

    # === Subscription events ===

    def _missing_subscription(self, event: WebhookEvent) -> ProcessingResult:
        log_webhook_event(
            logger, event.event, event.transaction_id,
            result="error", error="subscription object missing",
        )
        return ProcessingResult.failed(ERROR_MESSAGES[ErrorCode.SUBSCRIPTION_DATA_MISSING])

    def handle_subscription_created(self, event: WebhookEvent, plan: PlanDetails) -> ProcessingResult:
        """Insert the subscription, or refresh it if it already exists.

        A replay never touches the stored status, so a subscription that was
        cancelled or expired in the meantime stays that way.
        """
        subscription = event.subscription
        if subscription is None:
            return self._missing_subscription(event)

        now = dt.datetime.now(dt.UTC)
        record = SubscriptionRecord(
            subscription_id=subscription.id,
            status=SubscriptionStatus.ACTIVE,
            start_date=subscription.start_date,
            end_date=subscription.end_date,
            last_payment_date=subscription.last_payment_date,
            next_payment_date=subscription.next_payment_date,
            plan_type=subscription.plan_type,
            price=subscription.price,
            billing_cycle=subscription.billing_cycle,
            payment_method=subscription.payment_method,
            customer=self._customer_snapshot(event),
            created_at=now,
        )

        inserted = self._db.put_item(
            SUBSCRIPTIONS_TABLE,
            to_item(record),
            condition="attribute_not_exists(subscription_id)",
        )
        if not inserted:
            fields = record.model_dump(
                exclude={"subscription_id", "created_at", "status", "cancelled_at", "expired_at"},
                exclude_none=True,
            )
            fields["updated_at"] = now
            self._db.update_fields(
                SUBSCRIPTIONS_TABLE, {"subscription_id": subscription.id}, fields
            )

        log_webhook_event(
            logger, event.event, event.transaction_id,
            subscription_id=subscription.id,
            result="success", inserted=inserted,
        )
        return ProcessingResult.ok(MSG_SUBSCRIPTION_CREATED)

    def _update_subscription(
        self, event: WebhookEvent, fields: dict[str, Any], message: str
    ) -> ProcessingResult:
        subscription = event.subscription
        if subscription is None:
            return self._missing_subscription(event)

        updated = self._db.update_fields(
            SUBSCRIPTIONS_TABLE,
            {"subscription_id": subscription.id},
            fields,
            must_exist=True,
        )
        log_webhook_event(
            logger, event.event, event.transaction_id,
            subscription_id=subscription.id,
            result="success" if updated is not None else "skipped",
        )
        return ProcessingResult.ok(message)

    def handle_subscription_updated(self, event: WebhookEvent, plan: PlanDetails) -> ProcessingResult:
        if event.subscription is None:
            return self._missing_subscription(event)
        fields = event.subscription.model_dump(exclude={"id"}, exclude_none=True)
        fields["updated_at"] = dt.datetime.now(dt.UTC)
        return self._update_subscription(event, fields, MSG_SUBSCRIPTION_UPDATED)

    def handle_subscription_cancelled(self, event: WebhookEvent, plan: PlanDetails) -> ProcessingResult:
        return self._update_subscription(
            event,
            {"status": SubscriptionStatus.CANCELLED, "cancelled_at": dt.datetime.now(dt.UTC)},
            MSG_SUBSCRIPTION_CANCELLED,
        )

    def handle_subscription_expired(self, event: WebhookEvent, plan: PlanDetails) -> ProcessingResult:
        return self._update_subscription(
            event,
            {"status": SubscriptionStatus.EXPIRED, "expired_at": dt.datetime.now(dt.UTC)},
            MSG_SUBSCRIPTION_EXPIRED,
        )
