"""Logging with per-request correlation ids.

The HTTP middleware stores a correlation id in a ContextVar; every record
emitted while the request runs carries it as ``record.correlation_id`` and
the formatter prints it first, so one delivery can be followed through the
pipeline with a single grep.

Customer e-mails are masked before they reach a log line.

Usage:
    from provisioning.utils.logging import get_logger, log_webhook_event

    logger = get_logger(__name__)
    log_webhook_event(logger, "payment.approved", "T1", result="success")
"""

import logging
import uuid
from contextvars import ContextVar
from typing import Any

NO_CORRELATION_ID = "no-correlation-id"

# LogRecord attributes that ``extra`` may not overwrite
RESERVED_RECORD_ATTRS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", None, None).__dict__
) | {"message", "asctime"}

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def generate_correlation_id() -> str:
    return str(uuid.uuid4())


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Bind a correlation id to the current context.

    Args:
        correlation_id: Incoming id to reuse; a new one is generated if empty

    Returns:
        The id now bound
    """
    bound = correlation_id or generate_correlation_id()
    _correlation_id.set(bound)
    return bound


def get_correlation_id() -> str | None:
    return _correlation_id.get()


def clear_correlation_id() -> None:
    _correlation_id.set(None)


class CorrelationIdFilter(logging.Filter):
    """Stamps ``correlation_id`` onto every record it sees."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or NO_CORRELATION_ID
        return True


class StructuredFormatter(logging.Formatter):
    """Prefixes each line with ``[<correlation id>]``."""

    def format(self, record: logging.LogRecord) -> str:
        correlation_id = getattr(record, "correlation_id", None)
        if correlation_id is None:
            correlation_id = get_correlation_id() or NO_CORRELATION_ID
            record.correlation_id = correlation_id
        return f"[{correlation_id}] {super().format(record)}"


def configure_logging(level: int | str = logging.INFO) -> None:
    """Install the structured formatter on the root logger.

    Calling it again only changes the level.
    """
    root = logging.getLogger()
    root.setLevel(level)

    if any(isinstance(h.formatter, StructuredFormatter) for h in root.handlers):
        return

    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter(LOG_FORMAT))
    handler.addFilter(CorrelationIdFilter())
    root.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    """``logging.getLogger`` with a CorrelationIdFilter attached once."""
    logger = logging.getLogger(name)
    if not any(isinstance(f, CorrelationIdFilter) for f in logger.filters):
        logger.addFilter(CorrelationIdFilter())
    return logger


def mask_email(email: str | None) -> str:
    """Keep the first character of the local part and the domain.

    >>> mask_email("maria@example.com")
    'm***@example.com'
    """
    if not email or "@" not in email:
        return "***"
    local, _, domain = email.partition("@")
    return f"{local[:1]}***@{domain}"


def _emit(
    logger: logging.Logger,
    level: int,
    headline: str,
    context: dict[str, Any],
    shown: tuple[str, ...] | None = None,
) -> None:
    """Log ``headline | k=v | ...`` with ``context`` as record attributes.

    Keys that clash with LogRecord attributes (``created``, ``name``, ...)
    are stored as ``ctx_<key>``.

    Args:
        shown: Context keys to render in the message; all when None
    """
    keys = context.keys() if shown is None else [k for k in shown if k in context]
    message = " | ".join([headline, *(f"{k}={context[k]}" for k in keys)])
    extra = {
        (f"ctx_{k}" if k in RESERVED_RECORD_ATTRS else k): v for k, v in context.items()
    }
    logger.log(level, message, extra=extra)


def log_provisioning_operation(
    logger: logging.Logger,
    operation: str,
    *,
    email: str | None = None,
    uid: str | None = None,
    plan: str | None = None,
    transaction_id: str | None = None,
    error: str | None = None,
    **extra: Any,
) -> None:
    """Log one step of account provisioning.

    Logged at ERROR when ``error`` is given, INFO otherwise.

    Args:
        logger: Logger instance
        operation: Step name (e.g. "create_user", "write_plan")
        email: Customer e-mail, masked before logging
        uid: Identity provider user id
        plan: Plan kind value
        transaction_id: Originating payment transaction id
        error: Failure description
        **extra: Additional context fields
    """
    fields = {
        "email": mask_email(email) if email else None,
        "uid": uid,
        "plan": plan,
        "transaction_id": transaction_id,
        "error": error,
    }
    context = {k: v for k, v in fields.items() if v}
    context.update(extra)

    _emit(
        logger,
        logging.ERROR if error else logging.INFO,
        f"Provisioning operation: {operation}",
        {"operation": operation, **context},
        shown=tuple(context),
    )


# Level per processing result; anything else is INFO
_WEBHOOK_RESULT_LEVELS = {
    "error": logging.ERROR,
    "duplicate": logging.WARNING,
    "skipped": logging.WARNING,
}


def log_webhook_event(
    logger: logging.Logger,
    event_type: str,
    transaction_id: str,
    *,
    subscription_id: str | None = None,
    result: str | None = None,
    error: str | None = None,
    **extra: Any,
) -> None:
    """Log a webhook delivery milestone.

    Args:
        logger: Logger instance
        event_type: PerfectPay event kind (e.g. "payment.approved")
        transaction_id: Transaction id from the payload
        subscription_id: Subscription id when the payload has one
        result: received, success, duplicate, skipped or error
        error: Failure description
        **extra: Additional context fields
    """
    context: dict[str, Any] = {"event_type": event_type, "transaction_id": transaction_id}
    for key, value in (("subscription_id", subscription_id), ("result", result), ("error", error)):
        if value:
            context[key] = value
    context.update(extra)

    _emit(
        logger,
        _WEBHOOK_RESULT_LEVELS.get(result or "", logging.INFO),
        f"Webhook event: {event_type} ({transaction_id})",
        context,
        shown=("result", "subscription_id", "error"),
    )
