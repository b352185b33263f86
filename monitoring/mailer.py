"""
E-mail transport for commit alerts and journal reminders.

Sending is best effort: the dispatcher calls `send`, which raises
EmailDeliveryFailure on any problem, and the dispatcher only logs it.
"""

import asyncio
import smtplib
from abc import ABC, abstractmethod
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formatdate
from html import escape
from typing import Optional, Tuple
from schemas.events import EmailDispatchRequest, EmailTemplate
from core.config import settings
from core.exceptions import EmailDeliveryFailure
import logging

logger = logging.getLogger(__name__)


def render_commit_alert(fields) -> Tuple[str, str, str]:
    repo_name = fields.get("repo_name", "your repository")
    username = fields.get("username", "Developer")
    commit_message = fields.get("commit_message", "")
    commit_author = fields.get("commit_author") or "someone"
    commit_url = fields.get("commit_url") or ""
    journey_url = fields.get("journey_url") or ""

    subject = f"New commit in {repo_name}"
    text = (
        f"Hi {username},\n\n"
        f"{commit_author} pushed a new commit to {repo_name}:\n\n"
        f"{commit_message}\n\n"
        f"View the commit: {commit_url}\n"
        f"Log it in your journey: {journey_url}\n\n"
        f"The DevSpace Team"
    )
    html = (
        "<html><body>"
        f"<p>Hi {escape(username)},</p>"
        f"<p><strong>{escape(commit_author)}</strong> pushed a new commit to "
        f"<strong>{escape(repo_name)}</strong>:</p>"
        f"<pre>{escape(commit_message)}</pre>"
        f'<p><a href="{escape(commit_url)}">View the commit</a></p>'
        f'<p><a href="{escape(journey_url)}">Log it in your journey</a></p>'
        "<p>The DevSpace Team</p>"
        "</body></html>"
    )
    return subject, text, html


def render_journey_reminder(fields) -> Tuple[str, str, str]:
    username = fields.get("username", "Developer")
    notification_type = fields.get("notification_type", "Journey Reminder")
    message = fields.get("message", "")
    action_link = fields.get("action_link")

    subject = f"DevSpace: {notification_type}"
    text = f"Hi {username},\n\n{message}\n\n"
    if action_link:
        text += f"{action_link}\n\n"
    text += "The DevSpace Team"

    html = (
        "<html><body>"
        f"<p>Hi {escape(username)},</p>"
        f"<p>{escape(message)}</p>"
    )
    if action_link:
        html += f'<p><a href="{escape(action_link)}">Open your journey</a></p>'
    html += "<p>The DevSpace Team</p></body></html>"
    return subject, text, html


RENDERERS = {
    EmailTemplate.COMMIT_ALERT: render_commit_alert,
    EmailTemplate.JOURNEY_REMINDER: render_journey_reminder,
}


def render(request: EmailDispatchRequest) -> Tuple[str, str, str]:
    """Return (subject, plaintext, html) for a dispatch request"""
    return RENDERERS[request.template](request.fields)


class EmailTransport(ABC):
    """Accepts a templated e-mail; raises EmailDeliveryFailure when it cannot."""

    @abstractmethod
    async def send(self, request: EmailDispatchRequest) -> None:
        pass


class SMTPEmailTransport(EmailTransport):
    """
    Sends through an SMTP relay with STARTTLS.

    smtplib blocks, so each send runs in a worker thread. Without full SMTP
    credentials the transport is disabled and every send fails fast.
    """

    def __init__(
        self,
        smtp_host: Optional[str] = None,
        smtp_port: Optional[int] = None,
        smtp_user: Optional[str] = None,
        smtp_password: Optional[str] = None,
        from_email: Optional[str] = None,
        from_name: Optional[str] = None,
        timeout: float = 30.0
    ):
        self.smtp_host = smtp_host or settings.SMTP_HOST
        self.smtp_port = smtp_port or settings.SMTP_PORT
        self.smtp_user = smtp_user or settings.SMTP_USER
        self.smtp_password = smtp_password or settings.SMTP_PASSWORD
        self.from_email = from_email or settings.SMTP_FROM_EMAIL or self.smtp_user
        self.from_name = from_name or settings.SMTP_FROM_NAME
        self.timeout = timeout

        self.enabled = all([self.smtp_host, self.smtp_user, self.smtp_password, self.from_email])
        if not self.enabled:
            logger.warning("SMTP not fully configured. Set SMTP_* environment variables.")

    def build_message(self, request: EmailDispatchRequest) -> MIMEMultipart:
        subject, text, html = render(request)

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self.from_name} <{self.from_email}>"
        msg["To"] = request.to
        msg["Date"] = formatdate(localtime=True)
        msg.attach(MIMEText(text, "plain"))
        msg.attach(MIMEText(html, "html"))
        return msg

    def _send_sync(self, msg: MIMEMultipart) -> None:
        with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=self.timeout) as server:
            server.starttls()
            server.login(self.smtp_user, self.smtp_password)
            server.send_message(msg)

    async def send(self, request: EmailDispatchRequest) -> None:
        if not self.enabled:
            raise EmailDeliveryFailure(
                "SMTP delivery not enabled",
                context={"to": request.to, "template": request.template.value}
            )

        msg = self.build_message(request)
        try:
            await asyncio.to_thread(self._send_sync, msg)
        except (smtplib.SMTPException, OSError) as e:
            raise EmailDeliveryFailure(
                "Failed to send e-mail",
                context={"to": request.to, "template": request.template.value},
                original_exception=e
            )

        logger.info(f"E-mail '{msg['Subject']}' sent to {request.to}")
