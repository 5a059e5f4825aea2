"""Cognito user pool wrapper for app account management.

The app logs in against a Cognito user pool whose username is the customer
e-mail. Plan data is mirrored into custom attributes so the app can gate
access from the ID token alone.
"""

from typing import Any

import boto3
from botocore.exceptions import ClientError
from pydantic import BaseModel

from provisioning.models.errors import IdentityUserExistsError
from provisioning.utils.logging import get_logger, mask_email

logger = get_logger(__name__)

CUSTOM_ATTRIBUTE_PREFIX = "custom:"


class IdentityUser(BaseModel):
    """Minimal view of a user pool user."""

    uid: str
    username: str
    email: str
    attributes: dict[str, str] = {}


def _attributes_to_dict(attributes: list[dict[str, str]]) -> dict[str, str]:
    return {attr["Name"]: attr["Value"] for attr in attributes}


class IdentityRegistry:
    """Lookup, creation and custom claims for user pool accounts."""

    def __init__(
        self,
        user_pool_id: str,
        region: str | None = None,
        client: Any | None = None,
    ) -> None:
        """Initialize the registry.

        Args:
            user_pool_id: Cognito User Pool ID (e.g., 'sa-east-1_ABC123')
            region: AWS region override
            client: Pre-built cognito-idp client (tests inject a mock)
        """
        self.user_pool_id = user_pool_id
        self._cognito_client = client or boto3.client("cognito-idp", region_name=region)

    def _to_user(self, username: str, attributes: list[dict[str, str]]) -> IdentityUser:
        attrs = _attributes_to_dict(attributes)
        return IdentityUser(
            uid=attrs.get("sub", username),
            username=username,
            email=attrs.get("email", username),
            attributes=attrs,
        )

    def get_user_by_email(self, email: str) -> IdentityUser | None:
        """Look up a user by e-mail.

        Args:
            email: Customer e-mail (the pool username)

        Returns:
            The user, or None if the pool has no such user

        Raises:
            ClientError: For any Cognito failure other than user-not-found
        """
        try:
            response = self._cognito_client.admin_get_user(
                UserPoolId=self.user_pool_id,
                Username=email,
            )
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == "UserNotFoundException":
                return None
            raise

        return self._to_user(response["Username"], response.get("UserAttributes", []))

    def create_user(
        self,
        email: str,
        temporary_password: str,
        name: str | None = None,
        phone: str | None = None,
    ) -> IdentityUser:
        """Create a new user with a one-time password.

        Cognito's own invitation message is suppressed; credentials are sent
        by the CredentialNotifier instead.

        Args:
            email: Customer e-mail, used as the username
            temporary_password: One-time password the user must change
            name: Display name
            phone: Normalized phone number (+<digits>)

        Returns:
            The created user

        Raises:
            IdentityUserExistsError: If the e-mail is already registered
            ClientError: For any other Cognito failure
        """
        attributes = [
            {"Name": "email", "Value": email},
            {"Name": "email_verified", "Value": "true"},
        ]
        if name:
            attributes.append({"Name": "name", "Value": name})
        if phone:
            attributes.append({"Name": "phone_number", "Value": phone})

        try:
            response = self._cognito_client.admin_create_user(
                UserPoolId=self.user_pool_id,
                Username=email,
                TemporaryPassword=temporary_password,
                UserAttributes=attributes,
                MessageAction="SUPPRESS",
            )
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == "UsernameExistsException":
                raise IdentityUserExistsError(email) from e
            raise

        user = response["User"]
        logger.info("Created user pool user for %s", mask_email(email))
        return self._to_user(user["Username"], user.get("Attributes", []))

    def reset_temporary_password(self, username: str, temporary_password: str) -> None:
        """Replace a user's password with a new one-time password.

        The user must change it again on next login.
        """
        self._cognito_client.admin_set_user_password(
            UserPoolId=self.user_pool_id,
            Username=username,
            Password=temporary_password,
            Permanent=False,
        )

    def set_custom_claims(self, username: str, claims: dict[str, str]) -> None:
        """Write custom attributes onto a user.

        Args:
            username: Pool username (the e-mail)
            claims: Claim name (without "custom:" prefix) to string value

        Raises:
            ClientError: If Cognito rejects the update
        """
        self._cognito_client.admin_update_user_attributes(
            UserPoolId=self.user_pool_id,
            Username=username,
            UserAttributes=[
                {"Name": f"{CUSTOM_ATTRIBUTE_PREFIX}{name}", "Value": value}
                for name, value in claims.items()
            ],
        )


# Module-level singleton for connection reuse
_identity_registry: IdentityRegistry | None = None


def get_identity_registry(
    user_pool_id: str = "", region: str | None = None
) -> IdentityRegistry:
    """Get shared IdentityRegistry instance.

    Args:
        user_pool_id: Cognito User Pool ID. Only used on first call.
        region: AWS region. Only used on first call.

    Returns:
        Shared IdentityRegistry instance
    """
    global _identity_registry
    if _identity_registry is None:
        _identity_registry = IdentityRegistry(user_pool_id, region=region)
    return _identity_registry


def reset_identity_registry() -> None:
    """Reset singleton (for testing)."""
    global _identity_registry
    _identity_registry = None
