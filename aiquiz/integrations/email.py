# =============================================================================
# Email Delivery Integration
# =============================================================================
#
# Backends (chosen once at startup from EMAIL_BACKEND):
#   console  - log the rendered message; the default for development
#   ses      - AWS SES via boto3
#
# SES setup:
#   1. Verify your sending email in the AWS SES console
#   2. Set env vars:
#      - EMAIL_BACKEND=ses
#      - AWS_SES_FROM_EMAIL=noreply@yourdomain.com
#      - AWS_ACCESS_KEY_ID=...
#      - AWS_SECRET_ACCESS_KEY=...
#      - AWS_REGION=eu-west-1
#
# Note: In SES sandbox mode, you can only send to verified emails.
#
# =============================================================================

from __future__ import annotations

import asyncio
import html
import logging
from abc import ABC, abstractmethod
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import BaseModel

from aiquiz.config import Settings

logger = logging.getLogger(__name__)


# =============================================================================
# Email Templates
# =============================================================================

TEMPLATES = {
    "professor_invitation": {
        "subject": "Invitación para colaborar en {subject_title} - AIQuiz Manager",
        "html": """
        <div style="max-width: 600px; margin: 0 auto; font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
            <div style="background: #4F46E5; color: white; padding: 20px; text-align: center;">
                <h1 style="margin: 0;">Invitación a AIQuiz Manager</h1>
            </div>
            <div style="padding: 30px; background: #f9f9f9;">
                <h2 style="color: #4F46E5;">¡Hola {professor_name}!</h2>
                <p><strong>{inviter_name}</strong> te ha invitado a colaborar como profesor en la asignatura:</p>
                <div style="background: white; padding: 20px; border-left: 4px solid #4F46E5; margin: 20px 0;">
                    <h3 style="margin: 0; color: #4F46E5;">{subject_title}</h3>
                </div>
                <p style="text-align: center; margin: 30px 0;">
                    <a href="{accept_url}" style="background: #4F46E5; color: white; padding: 15px 30px; text-decoration: none; border-radius: 5px; display: inline-block; font-weight: bold;">
                        Aceptar Invitación
                    </a>
                </p>
                <p style="color: #666; font-size: 14px;">Si no puedes hacer clic en el botón, copia este enlace: {accept_url}</p>
                <p style="color: #666; font-size: 12px;">Este enlace expirará en {ttl_days} días por seguridad.</p>
            </div>
        </div>
        """,
        "text": """
Invitación a AIQuiz Manager

¡Hola {professor_name}!

{inviter_name} te ha invitado a colaborar como profesor en la asignatura: {subject_title}

Para aceptar la invitación y configurar tu contraseña, visita:
{accept_url}

Este enlace expirará en {ttl_days} días por seguridad.
        """,
    },

    "password_recovery": {
        "subject": "Recuperación de contraseña - AIQuiz Manager",
        "html": """
        <div style="max-width: 600px; margin: 0 auto; font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
            <div style="background: #DC2626; color: white; padding: 20px; text-align: center;">
                <h1 style="margin: 0;">Recuperación de Contraseña</h1>
            </div>
            <div style="padding: 30px; background: #f9f9f9;">
                <h2 style="color: #DC2626;">¡Hola {user_name}!</h2>
                <p>Hemos recibido una solicitud para restablecer la contraseña de tu cuenta en AIQuiz Manager.</p>
                <p style="text-align: center; margin: 30px 0;">
                    <a href="{reset_url}" style="background: #DC2626; color: white; padding: 15px 30px; text-decoration: none; border-radius: 5px; display: inline-block; font-weight: bold;">
                        Restablecer Contraseña
                    </a>
                </p>
                <p style="color: #666; font-size: 14px;">Si no puedes hacer clic en el botón, copia este enlace: {reset_url}</p>
                <p style="color: #666; font-size: 14px;">Este enlace expirará en {ttl_minutes} minutos. Si no solicitaste este cambio, puedes ignorar este email.</p>
            </div>
        </div>
        """,
        "text": """
Recuperación de Contraseña - AIQuiz Manager

¡Hola {user_name}!

Hemos recibido una solicitud para restablecer la contraseña de tu cuenta en AIQuiz Manager.

Para restablecer tu contraseña, visita:
{reset_url}

Este enlace expirará en {ttl_minutes} minutos.
Si no solicitaste este cambio, puedes ignorar este email.
        """,
    },
}


class EmailMessage(BaseModel):
    """A rendered message, ready for a backend."""
    to: str
    subject: str
    html: str
    text: str
    template: str | None = None


# =============================================================================
# Backends
# =============================================================================

class EmailBackend(ABC):
    """Delivers rendered messages. Returns True if the message was accepted."""

    @abstractmethod
    async def deliver(self, message: EmailMessage) -> bool:
        pass


class ConsoleEmailBackend(EmailBackend):
    """Log messages instead of sending them."""

    async def deliver(self, message: EmailMessage) -> bool:
        logger.info(
            f"Email (console backend) to={message.to} subject={message.subject!r}\n{message.text}"
        )
        return True


class SESEmailBackend(EmailBackend):
    """Send messages via AWS SES."""

    def __init__(self, settings: Settings):
        if not settings.aws_ses_from_email:
            raise ValueError("AWS_SES_FROM_EMAIL must be set to use the SES email backend")
        self.settings = settings
        self._client = None

    @property
    def client(self):
        """Lazy-load SES client."""
        if self._client is None:
            self._client = boto3.client(
                "ses",
                region_name=self.settings.aws_region,
                aws_access_key_id=self.settings.aws_access_key_id or None,
                aws_secret_access_key=self.settings.aws_secret_access_key or None,
            )
        return self._client

    def _send(self, message: EmailMessage) -> dict[str, Any]:
        return self.client.send_email(
            Source=self.settings.aws_ses_from_email,
            Destination={"ToAddresses": [message.to]},
            Message={
                "Subject": {"Data": message.subject, "Charset": "UTF-8"},
                "Body": {
                    "Html": {"Data": message.html, "Charset": "UTF-8"},
                    "Text": {"Data": message.text, "Charset": "UTF-8"},
                },
            },
        )

    async def deliver(self, message: EmailMessage) -> bool:
        try:
            response = await asyncio.to_thread(self._send, message)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to send email to {message.to}: {e}")
            return False

        logger.info(f"Email sent to {message.to}: {message.template} (MessageId: {response['MessageId']})")
        return True


def create_email_backend(settings: Settings) -> EmailBackend:
    """Pick the backend named by EMAIL_BACKEND."""
    if settings.email_backend == "ses":
        return SESEmailBackend(settings)
    if settings.email_backend == "console":
        if settings.is_production:
            logger.warning("Console email backend in production - emails will only be logged")
        return ConsoleEmailBackend()
    raise ValueError(f"Unknown email backend: {settings.email_backend}")


# =============================================================================
# Email Service
# =============================================================================

class EmailService:
    """Render templates and hand them to the configured backend."""

    def __init__(self, settings: Settings, backend: EmailBackend | None = None):
        self.settings = settings
        self.backend = backend or create_email_backend(settings)

    def render(self, to: str, template: str, data: dict[str, Any]) -> EmailMessage:
        """
        Render a template.

        Raises:
            KeyError: Unknown template or missing template variable
        """
        tpl = TEMPLATES[template]
        # Names are user-editable; only the HTML part needs escaping
        escaped = {key: html.escape(str(value)) for key, value in data.items()}
        return EmailMessage(
            to=to,
            subject=tpl["subject"].format(**data),
            html=tpl["html"].format(**escaped),
            text=tpl["text"].format(**data),
            template=template,
        )

    async def send(self, to: str, template: str, data: dict[str, Any] | None = None) -> bool:
        """
        Send an email using a template.

        Args:
            to: Recipient email address
            template: Template name (e.g., "password_recovery")
            data: Template variables to substitute

        Returns:
            True if sent successfully, False otherwise
        """
        try:
            message = self.render(to, template, data or {})
        except KeyError as e:
            logger.error(f"Cannot render email template '{template}': missing {e}")
            return False

        return await self.backend.deliver(message)

    def _link(self, path: str, token: str) -> str:
        return f"{self.settings.app_base_url.rstrip('/')}{path}?token={token}"

    async def send_professor_invitation(
        self,
        email: str,
        professor_name: str,
        subject_title: str,
        invitation_token: str,
        inviter_name: str,
    ) -> bool:
        """Send the invitation link that lets a professor set their password."""
        return await self.send(
            to=email,
            template="professor_invitation",
            data={
                "professor_name": professor_name,
                "subject_title": subject_title,
                "inviter_name": inviter_name,
                "accept_url": self._link("/manager/accept-invitation", invitation_token),
                "ttl_days": self.settings.invitation_token_ttl_days,
            },
        )

    async def send_password_recovery(self, email: str, user_name: str, reset_token: str) -> bool:
        """Send password reset link."""
        return await self.send(
            to=email,
            template="password_recovery",
            data={
                "user_name": user_name,
                "reset_url": self._link("/manager/reset-password", reset_token),
                "ttl_minutes": self.settings.reset_token_ttl_minutes,
            },
        )
