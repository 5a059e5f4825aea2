"""User provisioning for approved payments.

Creates (or reuses) the app account for a paying customer, records the plan
and its expiration, and e-mails login credentials to new accounts.

Failure policy:
- identity provider or store failures abort with PROVISIONING_FAILED
- e-mail failures are logged and reported as NotificationOutcome.FAILED;
  the account and plan stay in place
"""

import datetime as dt
import re
import secrets
import string

from botocore.exceptions import BotoCoreError, ClientError

from provisioning.models.enums import AccessLevel, NotificationOutcome, PlanKind
from provisioning.models.errors import (
    ErrorCode,
    IdentityUserExistsError,
    NotificationError,
    WebhookError,
)
from provisioning.models.records import UserCredentials, UserPlanRecord
from provisioning.models.results import CredentialsResult, ProvisionResult
from provisioning.services.dynamodb import (
    CREDENTIALS_TABLE,
    USERS_TABLE,
    DynamoDBService,
    to_item,
)
from provisioning.services.identity_registry import IdentityRegistry, IdentityUser
from provisioning.services.notifier import CredentialNotifier
from provisioning.services.plan_catalog import PLAN_FEATURES, get_plan
from provisioning.utils.logging import get_logger, log_provisioning_operation, mask_email

logger = get_logger(__name__)

PASSWORD_LENGTH = 12
PASSWORD_SYMBOLS = "!@#$%&*?-_"

_NON_DIGIT_RE = re.compile(r"\D")


def normalize_phone(phone: str, country_code: str = "55") -> str:
    """Normalize a phone number to +<country code><digits>.

    >>> normalize_phone("(11) 99999-9999")
    '+5511999999999'
    >>> normalize_phone("+55 11 99999 9999")
    '+5511999999999'
    """
    digits = _NON_DIGIT_RE.sub("", phone)
    if not digits.startswith(country_code):
        digits = f"{country_code}{digits}"
    return f"+{digits}"


def generate_password(length: int = PASSWORD_LENGTH) -> str:
    """Generate a one-time password from a CSPRNG.

    The result always has at least one uppercase letter, lowercase letter,
    digit and symbol.
    """
    if length < 4:
        raise ValueError("Password length must be at least 4")

    classes = (
        string.ascii_uppercase,
        string.ascii_lowercase,
        string.digits,
        PASSWORD_SYMBOLS,
    )
    alphabet = "".join(classes)
    chars = [secrets.choice(c) for c in classes]
    chars += [secrets.choice(alphabet) for _ in range(length - len(classes))]
    secrets.SystemRandom().shuffle(chars)
    return "".join(chars)


class UserProvisioner:
    """Provisions app accounts and plans for paying customers."""

    def __init__(
        self,
        db: DynamoDBService,
        identity: IdentityRegistry,
        notifier: CredentialNotifier,
        default_country_code: str = "55",
    ) -> None:
        self._db = db
        self._identity = identity
        self._notifier = notifier
        self._default_country_code = default_country_code

    def _notify(self, email: str, password: str) -> NotificationOutcome:
        try:
            self._notifier.send_credentials(email, email, password)
        except NotificationError as e:
            log_provisioning_operation(
                logger, "send_credentials", email=email, error=str(e)
            )
            return NotificationOutcome.FAILED
        return NotificationOutcome.SENT

    def _get_or_create_user(
        self, email: str, name: str | None, phone: str | None
    ) -> tuple[IdentityUser, str | None]:
        """Return (user, one-time password or None when the user already existed)."""
        user = self._identity.get_user_by_email(email)
        if user is not None:
            return user, None

        password = generate_password()
        try:
            user = self._identity.create_user(
                email, password, name=name, phone=phone
            )
        except IdentityUserExistsError:
            # Created concurrently by another delivery
            logger.info("User %s created concurrently, reusing it", mask_email(email))
            user = self._identity.get_user_by_email(email)
            if user is None:
                raise
            return user, None

        return user, password

    def provision(
        self,
        email: str,
        name: str,
        phone: str,
        plan_kind: PlanKind,
        transaction_id: str | None = None,
    ) -> ProvisionResult:
        """Provision an account and plan for a customer.

        Args:
            email: Customer e-mail (account username)
            name: Customer name
            phone: Phone number in any format
            plan_kind: Plan purchased
            transaction_id: Originating transaction, for logging

        Returns:
            ProvisionResult with the account uid and plan expiration

        Raises:
            WebhookError: PROVISIONING_FAILED if the identity provider or the
                store fails
        """
        plan = get_plan(plan_kind)
        normalized_phone = normalize_phone(phone, self._default_country_code)

        try:
            user, password = self._get_or_create_user(email, name, normalized_phone)
        except (ClientError, BotoCoreError, IdentityUserExistsError) as e:
            log_provisioning_operation(
                logger, "get_or_create_user", email=email,
                transaction_id=transaction_id, error=str(e),
            )
            raise WebhookError(
                ErrorCode.PROVISIONING_FAILED,
                details={"email": mask_email(email), "step": "identity"},
                error=str(e),
            ) from e

        created = password is not None
        log_provisioning_operation(
            logger, "create_user" if created else "reuse_user",
            email=email, uid=user.uid, transaction_id=transaction_id,
        )

        # Sent right after creation so a later failure cannot lose the password
        if password is not None:
            notification = self._notify(email, password)
        else:
            notification = NotificationOutcome.SKIPPED

        now = dt.datetime.now(dt.UTC)
        expiration = now + dt.timedelta(days=plan.duration_days)

        try:
            self._identity.set_custom_claims(
                user.username,
                {
                    "plan": plan.kind.value,
                    "access_level": AccessLevel.FULL.value,
                    "plan_expiration": expiration.isoformat(),
                },
            )

            existing = self._db.get_item(USERS_TABLE, {"uid": user.uid})
            created_at = (
                dt.datetime.fromisoformat(existing["created_at"]) if existing else now
            )
            record = UserPlanRecord(
                uid=user.uid,
                email=email,
                name=name,
                phone=normalized_phone,
                plan=plan.kind,
                access_level=AccessLevel.FULL,
                plan_expiration=expiration,
                plan_duration=plan.duration_days,
                features=list(PLAN_FEATURES),
                created_at=created_at,
                updated_at=now,
            )
            self._db.put_item(USERS_TABLE, to_item(record))

            if created:
                self._db.put_item(
                    CREDENTIALS_TABLE,
                    to_item(
                        UserCredentials(
                            email=email,
                            app_username=user.username,
                            plan_duration=plan.duration_days,
                            created_at=now,
                            expires_at=expiration,
                        )
                    ),
                )
        except (ClientError, BotoCoreError) as e:
            log_provisioning_operation(
                logger, "write_plan", email=email, uid=user.uid,
                plan=plan.kind.value, transaction_id=transaction_id, error=str(e),
            )
            raise WebhookError(
                ErrorCode.PROVISIONING_FAILED,
                details={"email": mask_email(email), "uid": user.uid, "step": "plan"},
                error=str(e),
            ) from e

        log_provisioning_operation(
            logger, "write_plan", email=email, uid=user.uid, plan=plan.kind.value,
            transaction_id=transaction_id, notification=notification.value,
        )

        return ProvisionResult(
            success=True,
            uid=user.uid,
            plan_kind=plan.kind,
            created=created,
            plan_expiration=expiration,
            notification=notification,
        )

    def generate_and_send_credentials(
        self, email: str, plan_duration_days: int
    ) -> CredentialsResult:
        """Issue fresh login credentials and e-mail them.

        Creates the account if needed; an existing account gets a new
        one-time password so the e-mailed credentials always work.

        Args:
            email: Customer e-mail (account username)
            plan_duration_days: Access duration to record in the claims

        Returns:
            CredentialsResult describing the account and e-mail outcome

        Raises:
            WebhookError: CREDENTIALS_FAILED if the identity provider or the
                store fails
        """
        now = dt.datetime.now(dt.UTC)
        expires_at = now + dt.timedelta(days=plan_duration_days)

        try:
            user, password = self._get_or_create_user(email, None, None)
            created = password is not None
            if password is None:
                password = generate_password()
                self._identity.reset_temporary_password(user.username, password)

            self._identity.set_custom_claims(
                user.username,
                {
                    "plan_duration": str(plan_duration_days),
                    "expires_at": expires_at.isoformat(),
                    "role": "user",
                },
            )
            self._db.put_item(
                CREDENTIALS_TABLE,
                to_item(
                    UserCredentials(
                        email=email,
                        app_username=user.username,
                        plan_duration=plan_duration_days,
                        created_at=now,
                        expires_at=expires_at,
                    )
                ),
            )
        except (ClientError, BotoCoreError, IdentityUserExistsError) as e:
            log_provisioning_operation(
                logger, "generate_credentials", email=email, error=str(e)
            )
            raise WebhookError(
                ErrorCode.CREDENTIALS_FAILED,
                details={"email": mask_email(email)},
                error=str(e),
            ) from e

        notification = self._notify(email, password)
        log_provisioning_operation(
            logger, "generate_credentials", email=email, uid=user.uid,
            account_created=created, notification=notification.value,
        )

        return CredentialsResult(
            success=True,
            message="Credenciais geradas e enviadas com sucesso",
            email=email,
            username=user.username,
            created=created,
            notification=notification,
        )
