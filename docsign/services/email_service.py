"""Email Service - Brevo integration for share link notifications.

Delivery failures are reported in the returned result dict, never raised;
a share link stays valid whether or not its email went out.
"""

from docsign.config import settings
from functools import lru_cache
from html import escape
import logging
import uuid
from typing import Optional, Dict, Any
import httpx

logger = logging.getLogger(__name__)

# Brevo API endpoint
BREVO_API_URL = "https://api.brevo.com/v3/smtp/email"
BREVO_TIMEOUT_SECONDS = 30.0


def build_share_link_email(
    sender_name: str, document_name: str, share_link: str
) -> Dict[str, str]:
    """Subject, plain text and HTML bodies for a share link invitation."""
    sender = escape(sender_name)
    document = escape(document_name)
    link = escape(share_link, quote=True)

    subject = f'Document "{document_name}" shared with you for signing on DocSign'
    body = (
        f"Hello,\n\n"
        f'{sender_name} has shared a document titled "{document_name}" with you for your signature.\n\n'
        f"To view and sign the document, open this link:\n{share_link}\n\n"
        f"This link is unique to you. Please do not share it.\n\n"
        f"Thank you,\nThe DocSign Team\n\n"
        f"If you did not expect this email, please ignore it."
    )
    html_body = f"""
<div style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
    <h2 style="color: #0056b3;">Document Shared for Signing on DocSign</h2>
    <p>Hello,</p>
    <p><strong>{sender}</strong> has shared a document titled "<strong>{document}</strong>" with you for your signature.</p>
    <p>To view and sign the document, please click on the link below:</p>
    <p style="margin-top: 20px; text-align: center;">
        <a href="{link}" style="display: inline-block; padding: 12px 25px; background-color: #007bff; color: #ffffff; text-decoration: none; border-radius: 5px; font-weight: bold;">
            View and Sign Document
        </a>
    </p>
    <p style="margin-top: 20px;">This link is unique to you. Please do not share it.</p>
    <p>Thank you,<br/>The DocSign Team</p>
    <hr style="border: none; border-top: 1px solid #eee; margin-top: 20px;">
    <p style="font-size: 0.8em; color: #777;">If you did not expect this email, please ignore it.</p>
</div>
"""
    return {"subject": subject, "body": body, "html_body": html_body}


def _failure(error: str, status_code: Optional[int] = None) -> Dict[str, Any]:
    return {
        "success": False,
        "error": error,
        "status_code": status_code,
        "message_id": None,
    }


class EmailService:
    """Service for sending emails via Brevo API."""

    provider = "brevo"

    def __init__(self):
        self.api_key = settings.BREVO_API_KEY
        self.from_address = settings.EMAIL_FROM_ADDRESS
        self.from_name = settings.EMAIL_FROM_NAME

    @property
    def is_configured(self) -> bool:
        """Check if email service is properly configured."""
        return bool(self.api_key) and bool(self.from_address)

    def get_status(self) -> Dict[str, Any]:
        """Get email service configuration status."""
        return {
            "configured": self.is_configured,
            "provider": self.provider,
            "from_address": self.from_address,
            "from_name": self.from_name,
        }

    async def send_email(
        self,
        to: str,
        subject: str,
        body: str,
        html_body: Optional[str] = None,
        sender_name: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Send an email via Brevo API.

        Args:
            to: Recipient email address
            subject: Email subject line
            body: Plain text body
            html_body: Optional HTML body
            sender_name: Display name shown before the service name

        Returns:
            Dict with success, status_code, message_id and error on failure
        """
        if not self.api_key:
            error_msg = "Brevo API key not configured"
            logger.error(error_msg)
            return _failure(error_msg)

        from_name = f"{sender_name} ({self.from_name})" if sender_name else self.from_name
        payload = {
            "sender": {"name": from_name, "email": self.from_address},
            "to": [{"email": to}],
            "subject": subject,
            "textContent": body,
        }
        if html_body:
            payload["htmlContent"] = html_body

        headers = {
            "accept": "application/json",
            "api-key": self.api_key,
            "content-type": "application/json",
        }

        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    BREVO_API_URL,
                    json=payload,
                    headers=headers,
                    timeout=BREVO_TIMEOUT_SECONDS,
                )
        except httpx.TimeoutException:
            error_msg = "Brevo API request timed out"
            logger.error(error_msg, extra={"to": to})
            return _failure(error_msg)
        except httpx.HTTPError as e:
            logger.error("Failed to send email via Brevo", extra={"to": to, "error": str(e)})
            return _failure(str(e))

        if response.status_code not in (200, 201):
            logger.error(
                "Brevo API error",
                extra={"status_code": response.status_code, "error": response.text},
            )
            return _failure(f"Brevo API error: {response.text}", response.status_code)

        message_id = response.json().get("messageId")
        logger.info(
            "Email sent successfully via Brevo",
            extra={"to": to, "subject": subject[:50], "message_id": message_id},
        )
        return {
            "success": True,
            "status_code": response.status_code,
            "message_id": message_id,
        }

    async def send_share_link_email(
        self,
        recipient_email: str,
        sender_name: str,
        document_name: str,
        share_link: str,
    ) -> Dict[str, Any]:
        """Invite a recipient to view and sign a document."""
        message = build_share_link_email(sender_name, document_name, share_link)
        return await self.send_email(
            to=recipient_email,
            subject=message["subject"],
            body=message["body"],
            html_body=message["html_body"],
            sender_name=sender_name,
        )


class MockEmailService(EmailService):
    """Mock email service for testing and development."""

    provider = "mock"

    def __init__(self, fail_with: Optional[str] = None):
        self.api_key = "mock-key"
        self.from_address = "test@example.com"
        self.from_name = "DocSign"
        self.fail_with = fail_with
        self._sent_emails = []

    @property
    def sent_emails(self) -> list:
        return list(self._sent_emails)

    async def send_email(
        self,
        to: str,
        subject: str,
        body: str,
        html_body: Optional[str] = None,
        sender_name: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Mock sending an email."""
        if self.fail_with:
            logger.warning(f"Mock email to {to} failed: {self.fail_with}")
            return _failure(self.fail_with)

        mock_message_id = f"mock-{uuid.uuid4().hex[:16]}"
        self._sent_emails.append(
            {
                "to": to,
                "subject": subject,
                "body": body,
                "html_body": html_body,
                "sender_name": sender_name,
                "message_id": mock_message_id,
            }
        )
        logger.info(f"Mock email sent to {to}: {subject}")

        return {
            "success": True,
            "status_code": 201,
            "message_id": mock_message_id,
        }


@lru_cache()
def get_email_service() -> EmailService:
    """Process-wide notifier chosen by EMAIL_PROVIDER."""
    if settings.EMAIL_PROVIDER == "mock":
        return MockEmailService()
    return EmailService()
