"""Service for sending emails."""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from ..domain.ports.providers import NotificationSender

logger = logging.getLogger(__name__)

_HTML_LAYOUT = """
<html>
    <body style="font-family: -apple-system, 'Segoe UI', Roboto, Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px; color: #333;">
        <div style="background-color: #4f46e5; padding: 30px; border-radius: 10px; text-align: center;">
            <h1 style="color: #ffffff; margin: 0;">Post Maker AI</h1>
        </div>
        <div style="padding: 30px 0;">
            <h2 style="color: #1e293b; margin-bottom: 20px;">{heading}</h2>
            {paragraphs}
            <div style="text-align: center; margin: 30px 0;">
                <a href="{action_url}"
                   style="background-color: #4f46e5; color: white; padding: 15px 30px;
                          text-decoration: none; border-radius: 5px; display: inline-block;
                          font-weight: bold;">
                    {action_label}
                </a>
            </div>
        </div>
        <div style="border-top: 1px solid #e2e8f0; padding-top: 20px; text-align: center;">
            <p style="color: #94a3b8; font-size: 12px;">Post Maker AI</p>
        </div>
    </body>
</html>
"""


class EmailService(NotificationSender):
    """Service for sending lifecycle emails via SMTP."""

    def __init__(
        self,
        smtp_host: str,
        smtp_port: int,
        smtp_username: str,
        smtp_password: str,
        from_email: str,
        app_url: str,
        from_name: str = "Post Maker AI",
    ):
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_username = smtp_username
        self.smtp_password = smtp_password
        self.from_email = from_email
        self.from_name = from_name
        self.app_url = app_url.rstrip("/")
        self.enabled = bool(self.smtp_host and self.smtp_username and self.from_email)

    def send_verification_email(self, to_email: str, first_name: str, verification_token: str) -> bool:
        verification_url = f"{self.app_url}/verify-email?token={verification_token}"
        if not self.enabled:
            logger.info("SMTP disabled; verification URL for %s: %s", to_email, verification_url)
            return True

        subject = "Post Maker AI - Verify your email"
        html_body = self._render_html(
            heading=f"Welcome, {first_name}!",
            paragraphs=[
                "Thanks for signing up. Please confirm your email address to start creating content.",
                "This link expires in 24 hours. If you did not create an account, you can ignore this email.",
            ],
            action_url=verification_url,
            action_label="Verify Email",
        )
        text_body = (
            f"Welcome to Post Maker AI, {first_name}!\n\n"
            f"Verify your email address by opening this link:\n{verification_url}\n\n"
            "This link expires in 24 hours."
        )
        return self._send_email(to_email, subject, html_body, text_body)

    def send_trial_expiring_email(self, to_email: str, first_name: str, days_remaining: int) -> bool:
        pricing_url = f"{self.app_url}/pricing"
        if not self.enabled:
            logger.info("SMTP disabled; trial expiring in %s days for %s", days_remaining, to_email)
            return True

        subject = f"Post Maker AI - Your trial expires in {days_remaining} days"
        html_body = self._render_html(
            heading=f"Hi {first_name}, your trial ends soon",
            paragraphs=[
                f"Your free trial ends in {days_remaining} days.",
                "Upgrade now to keep generating blog posts, threads and LinkedIn posts without interruption.",
            ],
            action_url=pricing_url,
            action_label="Upgrade Now",
        )
        text_body = (
            f"Hi {first_name},\n\n"
            f"Your Post Maker AI trial ends in {days_remaining} days.\n"
            f"Upgrade here: {pricing_url}"
        )
        return self._send_email(to_email, subject, html_body, text_body)

    def send_trial_expired_email(self, to_email: str, first_name: str) -> bool:
        pricing_url = f"{self.app_url}/pricing"
        if not self.enabled:
            logger.info("SMTP disabled; trial expired notice for %s", to_email)
            return True

        subject = "Your Post Maker AI trial has ended - Upgrade to continue creating"
        html_body = self._render_html(
            heading=f"Hi {first_name}, your trial has ended",
            paragraphs=[
                "Your free trial is over. Your saved content is still available.",
                "Subscribe to continue generating new content.",
            ],
            action_url=pricing_url,
            action_label="Subscribe",
        )
        text_body = (
            f"Hi {first_name},\n\n"
            "Your Post Maker AI trial has ended. Subscribe to continue creating:\n"
            f"{pricing_url}"
        )
        return self._send_email(to_email, subject, html_body, text_body)

    @staticmethod
    def _render_html(heading: str, paragraphs: list, action_url: str, action_label: str) -> str:
        rendered = "\n".join(
            f'<p style="color: #475569; line-height: 1.6; margin-bottom: 20px;">{text}</p>'
            for text in paragraphs
        )
        return _HTML_LAYOUT.format(
            heading=heading,
            paragraphs=rendered,
            action_url=action_url,
            action_label=action_label,
        )

    def _send_email(self, to_email: str, subject: str, html_body: str, text_body: str) -> bool:
        """
        Send an email via SMTP.

        Returns:
            True if sent successfully, False otherwise
        """
        try:
            msg = MIMEMultipart("alternative")
            msg["Subject"] = subject
            msg["From"] = f"{self.from_name} <{self.from_email}>"
            msg["To"] = to_email

            msg.attach(MIMEText(text_body, "plain", "utf-8"))
            msg.attach(MIMEText(html_body, "html", "utf-8"))

            with smtplib.SMTP(self.smtp_host, self.smtp_port) as server:
                server.starttls()
                server.login(self.smtp_username, self.smtp_password)
                server.send_message(msg)

            return True

        except (smtplib.SMTPException, OSError) as e:
            logger.error("Failed to send email to %s: %s", to_email, e)
            return False
