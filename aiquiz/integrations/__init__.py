"""
Integrations with external services (email delivery, error tracking).
"""

from aiquiz.integrations.email import (
    EmailBackend,
    EmailMessage,
    EmailService,
    ConsoleEmailBackend,
    SESEmailBackend,
    create_email_backend,
)

__all__ = [
    "EmailBackend",
    "EmailMessage",
    "EmailService",
    "ConsoleEmailBackend",
    "SESEmailBackend",
    "create_email_backend",
]
