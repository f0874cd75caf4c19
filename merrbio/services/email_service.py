"""Service for sending emails."""

import html
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

logger = logging.getLogger(__name__)


class EmailService:
    """Service for sending emails via SMTP."""

    def __init__(
        self,
        smtp_host: str = "",
        smtp_port: int = 587,
        smtp_username: str = "",
        smtp_password: str = "",
        from_email: str = "",
        from_name: str = "MerrBio",
        frontend_base_url: str = "http://localhost:5173",
    ):
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_username = smtp_username
        self.smtp_password = smtp_password
        self.from_email = from_email
        self.from_name = from_name
        self.frontend_base_url = frontend_base_url.rstrip("/")
        self.enabled = bool(self.smtp_host and self.smtp_username and self.from_email)

    def send_chat_reminder(
        self,
        to_email: str,
        sender_name: str,
        message_preview: str,
        conversation_title: str,
    ) -> bool:
        """
        Remind a user about an unread chat message.

        Args:
            to_email: Recipient email
            sender_name: Display name of the message author
            message_preview: Shortened message content
            conversation_title: Title of the conversation the message belongs to

        Returns:
            True if sent successfully, False otherwise
        """
        chat_url = f"{self.frontend_base_url}/chat"
        subject = f"Unread message from {sender_name} on MerrBio"

        if not self.enabled:
            logger.info("SMTP disabled; chat reminder for %s about %r not sent by email.", to_email, conversation_title)
            return True

        html_body = f"""
        <html>
            <body style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
                <div style="background-color: #166534; padding: 30px; border-radius: 10px; text-align: center;">
                    <h1 style="color: #dcfce7; margin: 0;">MerrBio</h1>
                    <p style="color: #bbf7d0; margin-top: 10px;">Organic produce, straight from the farm</p>
                </div>

                <div style="padding: 30px 0;">
                    <h2 style="color: #1e293b; margin-bottom: 20px;">You have an unread message</h2>

                    <p style="color: #475569; line-height: 1.6;">
                        <strong>{html.escape(sender_name)}</strong> wrote to you in
                        <em>{html.escape(conversation_title)}</em>:
                    </p>

                    <blockquote style="border-left: 4px solid #22c55e; margin: 20px 0; padding: 10px 20px;
                                       color: #334155; background-color: #f8fafc;">
                        {html.escape(message_preview)}
                    </blockquote>

                    <div style="text-align: center; margin: 30px 0;">
                        <a href="{chat_url}"
                           style="background-color: #16a34a; color: white; padding: 15px 30px;
                                  text-decoration: none; border-radius: 5px; display: inline-block;
                                  font-weight: bold;">
                            Open conversation
                        </a>
                    </div>
                </div>

                <div style="border-top: 1px solid #e2e8f0; padding-top: 20px; text-align: center;">
                    <p style="color: #94a3b8; font-size: 12px;">
                        You received this email because you have unread messages on MerrBio.
                    </p>
                </div>
            </body>
        </html>
        """

        text_body = f"""
        MerrBio - Unread message

        {sender_name} wrote to you in "{conversation_title}":

        {message_preview}

        Reply here: {chat_url}
        """

        return self._send_email(to_email, subject, html_body, text_body)

    def _send_email(self, to_email: str, subject: str, html_body: str, text_body: str) -> bool:
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

        except (smtplib.SMTPException, OSError) as exc:
            logger.error("Failed to send email to %s: %s", to_email, exc)
            return False
