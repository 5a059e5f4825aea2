"""Credential e-mail delivery through Amazon SES."""

from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from provisioning.models.errors import NotificationError
from provisioning.utils.logging import get_logger, mask_email

logger = get_logger(__name__)

CREDENTIALS_SUBJECT = "Suas credenciais de acesso - App Queima"
SENDER_NAME = "App Queima"

TEXT_TEMPLATE = """Bem-vindo ao App Queima!

Aqui estão suas credenciais de acesso:

Username/Email: {username}
Senha: {password}

Recomendamos que você altere sua senha no primeiro acesso.

IMPORTANTE: Acesse a plataforma através do link:
{login_url}

Atenciosamente,
Equipe App Queima"""

HTML_TEMPLATE = """
<html>
<body style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
    <h2 style="color: #333;">Bem-vindo ao App Queima!</h2>
    <p>Aqui estão suas credenciais de acesso:</p>
    <p><strong>Username/Email:</strong> {username}<br>
       <strong>Senha:</strong> <code style="font-size: 18px;">{password}</code></p>
    <p>Recomendamos que você altere sua senha no primeiro acesso.</p>
    <p><strong>IMPORTANTE:</strong> Acesse a plataforma através do link:<br>
       <a href="{login_url}">{login_url}</a></p>
    <hr style="border: none; border-top: 1px solid #eee; margin: 20px 0;">
    <p style="color: #999; font-size: 12px;">Atenciosamente,<br>Equipe App Queima</p>
</body>
</html>
"""


class CredentialNotifier:
    """Sends login credentials to newly provisioned users."""

    def __init__(
        self,
        from_email: str,
        login_url: str,
        region: str | None = None,
        client: Any | None = None,
    ) -> None:
        """Initialize the notifier.

        Args:
            from_email: Verified SES sender address
            login_url: App login page included in the message
            region: SES region override
            client: Pre-built SES client (tests inject one)
        """
        self.from_email = from_email
        self.login_url = login_url
        self._ses = client or boto3.client("ses", region_name=region)

    def render(self, username: str, password: str) -> tuple[str, str]:
        """Render the (text, html) bodies of the credential e-mail."""
        context = {"username": username, "password": password, "login_url": self.login_url}
        return TEXT_TEMPLATE.format(**context), HTML_TEMPLATE.format(**context)

    def send_credentials(self, email: str, username: str, password: str) -> str:
        """Send the credential e-mail.

        Args:
            email: Recipient address
            username: Login username shown in the message
            password: One-time password shown in the message

        Returns:
            SES message id

        Raises:
            NotificationError: If SES rejects or cannot deliver the message
        """
        text_body, html_body = self.render(username, password)

        try:
            response = self._ses.send_email(
                Source=f"{SENDER_NAME} <{self.from_email}>",
                Destination={"ToAddresses": [email]},
                Message={
                    "Subject": {"Data": CREDENTIALS_SUBJECT, "Charset": "UTF-8"},
                    "Body": {
                        "Text": {"Data": text_body, "Charset": "UTF-8"},
                        "Html": {"Data": html_body, "Charset": "UTF-8"},
                    },
                },
            )
        except (ClientError, BotoCoreError) as e:
            logger.error("Failed to send credentials to %s: %s", mask_email(email), e)
            raise NotificationError(str(e)) from e

        message_id: str = response["MessageId"]
        logger.info("Sent credentials to %s (message %s)", mask_email(email), message_id)
        return message_id
