import logging
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from html import escape
from typing import Any, Iterable, Mapping, Optional

import aiosmtplib

from app.core.config import settings

logger = logging.getLogger(__name__)


class EmailService:
    """Outbound email over SMTP.

    When ``SMTP_HOST`` is empty the service runs in *draft mode*: the
    message is logged and ``False`` is returned, so callers behave as
    if delivery failed without raising.
    """

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: Optional[bool] = None,
        sender: Optional[str] = None,
    ) -> None:
        self._host = settings.SMTP_HOST if host is None else host
        self._port = port or settings.SMTP_PORT
        self._username = username if username is not None else settings.SMTP_USER
        self._password = password if password is not None else settings.SMTP_PASSWORD
        self._use_tls = settings.SMTP_USE_TLS if use_tls is None else use_tls
        self._sender = sender or settings.EMAIL_FROM or self._username

    async def send_template_email(self, to: str, subject: str, html: str) -> bool:
        """Send one HTML message; returns ``True`` only on SMTP success."""
        if not self._host:
            logger.info("SMTP not configured; draft email to %s (%s)", to, subject)
            return False

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self._sender
        msg["To"] = to
        msg.attach(MIMEText(html, "html"))

        try:
            await aiosmtplib.send(
                msg,
                hostname=self._host,
                port=self._port,
                username=self._username or None,
                password=self._password or None,
                use_tls=self._use_tls,
                start_tls=not self._use_tls and self._port == 587,
            )
            logger.info("Email sent to %s (%s)", to, subject)
            return True
        except Exception:
            logger.error("Email to %s failed", to, exc_info=True)
            return False

    # ------------------------------------------------------------------
    # Fixed-layout wrappers
    # ------------------------------------------------------------------

    async def send_lead_email(self, to: str, lead: Any) -> bool:
        """Notify an internal inbox that a new lead arrived."""
        rows = [
            ("Name", lead.name),
            ("Email", lead.email),
            ("Phone", lead.phone),
            ("Source", lead.source),
            ("Message", lead.message),
        ]
        table = "".join(
            f"<tr><td><strong>{label}</strong></td><td>{escape(str(value))}</td></tr>"
            for label, value in rows
            if value
        )
        html = _layout(
            "New Lead Received",
            f"<p>A new lead was captured.</p><table>{table}</table>",
        )
        return await self.send_template_email(
            to, f"New Lead: {lead.name or lead.email or lead.phone}", html
        )

    async def send_booking_email(
        self, to: str, name: Optional[str], booking: Mapping[str, Any]
    ) -> bool:
        details = "".join(
            f"<li><strong>{escape(str(k))}:</strong> {escape(str(v))}</li>"
            for k, v in booking.items()
        )
        html = _layout(
            "Booking Confirmed",
            f"<p>Hello {escape(name or 'there')},</p>"
            f"<p>Your booking is confirmed.</p><ul>{details}</ul>",
        )
        return await self.send_template_email(to, "Your Booking is Confirmed", html)

    async def send_property_recommendation_email(
        self, to: str, name: Optional[str], properties: Iterable[Mapping[str, Any]]
    ) -> bool:
        cards = "".join(
            '<div style="margin-bottom:20px;padding:15px;background-color:#f9fafb;'
            'border-radius:8px;border:1px solid #e5e7eb;">'
            f'<h3 style="margin-top:0;color:#111827;">{escape(str(p.get("title", "")))}</h3>'
            f'<p style="margin:5px 0;font-size:14px;color:#4b5563;">'
            f'{escape(str(p.get("city") or ""))} | {escape(str(p.get("property_type") or ""))}</p>'
            f'<p style="margin:5px 0;font-size:14px;">Match score: {p.get("match_score", 0)}%</p>'
            "</div>"
            for p in properties
        )
        html = _layout(
            "Top Matches Found!",
            f"<p>Hi {escape(name or 'there')},</p>"
            "<p>Based on your recent activity, we think you will love these properties:</p>"
            f"{cards}",
        )
        return await self.send_template_email(
            to, "Exciting Property Matches Just for You!", html
        )


def _layout(title: str, body: str) -> str:
    return (
        '<div style="font-family:Arial,sans-serif;max-width:600px;margin:0 auto;padding:20px;">'
        f'<h2 style="color:#6366f1;text-align:center;">{title}</h2>'
        f"{body}"
        '<hr style="border:0;border-top:1px solid #eee;margin:20px 0;">'
        f'<p style="font-size:12px;color:#999;text-align:center;">{escape(settings.APP_NAME)}</p>'
        "</div>"
    )
