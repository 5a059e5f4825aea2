"""Plan status and access checks for app users.

Access is binary: a user has access while their plan has not expired.

No route calls this yet; it is the check the app backend runs before
serving plan content, which lives outside this service.
"""

import datetime as dt
import math

from provisioning.models.enums import AccessLevel, PlanKind
from provisioning.models.results import PlanStatus
from provisioning.services.dynamodb import USERS_TABLE, DynamoDBService
from provisioning.utils.logging import get_logger

logger = get_logger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60


class PlanAccessService:
    """Reads user plan records to answer access questions."""

    def __init__(self, db: DynamoDBService) -> None:
        self._db = db

    def get_plan_status(
        self, uid: str, now: dt.datetime | None = None
    ) -> PlanStatus | None:
        """Get the current plan status for a user.

        Args:
            uid: Identity provider user id
            now: Reference time, defaults to the current UTC time

        Returns:
            PlanStatus, or None if the user has no plan record
        """
        item = self._db.get_item(USERS_TABLE, {"uid": uid})
        if item is None:
            logger.info("No plan record for user %s", uid)
            return None

        now = now or dt.datetime.now(dt.UTC)
        expiration = dt.datetime.fromisoformat(item["plan_expiration"])
        remaining = (expiration - now).total_seconds()

        return PlanStatus(
            plan=PlanKind(item["plan"]),
            access_level=AccessLevel(item.get("access_level", AccessLevel.FULL.value)),
            is_active=now < expiration,
            days_remaining=math.ceil(remaining / SECONDS_PER_DAY),
            features=list(item.get("features", [])),
            expiration_date=expiration,
        )

    def has_active_plan(self, uid: str, now: dt.datetime | None = None) -> bool:
        """Whether the user has an unexpired plan."""
        status = self.get_plan_status(uid, now=now)
        return status is not None and status.is_active
