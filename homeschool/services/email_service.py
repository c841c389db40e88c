# homeschool/services/email_service.py
"""Outgoing mail over SMTP."""
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import List, Optional, Union
import logging
import smtplib

from ..core.config import settings

logger = logging.getLogger(__name__)


class EmailService:
    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: Optional[bool] = None,
        sender: Optional[str] = None,
    ):
        self.host = host or settings.smtp_host
        self.port = port or settings.smtp_port
        self.username = username or settings.smtp_username
        self.password = password or settings.smtp_password
        self.use_tls = settings.smtp_use_tls if use_tls is None else use_tls
        self.sender = sender or settings.mail_from

    @property
    def configured(self) -> bool:
        return bool(self.host)

    def build_message(self, to_emails: List[str], subject: str, body: str, html: Optional[str] = None) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["From"] = self.sender
        msg["To"] = ", ".join(to_emails)
        msg["Subject"] = subject
        msg.attach(MIMEText(body, "plain"))
        if html:
            msg.attach(MIMEText(html, "html"))
        return msg

    def send_email(self, to_emails: Union[str, List[str]], subject: str, body: str, html: Optional[str] = None) -> bool:
        """Send a message; without an SMTP host the message is only logged"""
        if isinstance(to_emails, str):
            to_emails = [to_emails]
        if not self.configured:
            logger.info(f"SMTP not configured, not sending '{subject}' to {', '.join(to_emails)}")
            logger.debug(body)
            return False

        msg = self.build_message(to_emails, subject, body, html)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=30) as server:
                if self.use_tls:
                    server.starttls()
                if self.username and self.password:
                    server.login(self.username, self.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send '{subject}' to {', '.join(to_emails)}: {e}")
            return False

        logger.info(f"Sent '{subject}' to {', '.join(to_emails)}")
        return True


def verification_email(name: str, token: str):
    link = f"{settings.frontend_url}/verify-email?token={token}"
    body = (
        f"Hi {name},\n\n"
        f"Please confirm your email address by opening the link below:\n\n{link}\n\n"
        f"The link expires in {settings.email_verification_expire_seconds // 3600} hours."
    )
    return "Verify your email address", body


def password_reset_email(name: str, token: str):
    link = f"{settings.frontend_url}/reset-password?token={token}"
    body = (
        f"Hi {name},\n\n"
        f"A password reset was requested for your account. Use the link below to choose a new password:\n\n{link}\n\n"
        f"The link expires in {settings.password_reset_expire_seconds // 60} minutes. "
        "If you did not request this, you can ignore this email."
    )
    return "Reset your password", body


def lesson_plan_shared_email(sender_name: str, title: str, message: Optional[str] = None):
    body = f"{sender_name} shared the lesson plan \"{title}\" with you.\n\n"
    if message:
        body += f"{message}\n\n"
    body += f"Sign in to view it: {settings.frontend_url}/lesson-plans/shared"
    return f"{sender_name} shared a lesson plan with you", body
