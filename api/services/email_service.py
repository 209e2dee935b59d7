import smtplib
import ssl
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Optional
import logging

logger = logging.getLogger(__name__)

REQUIRED_KEYS = ["SMTP_HOST", "SMTP_PORT", "SMTP_USER", "SMTP_PASSWORD", "SENDER_EMAIL"]
SMTP_TIMEOUT_SECONDS = 10


class EmailService:
    """
    Sends alert emails over SMTP (any provider: Gmail, SES, Mailgun, ...).

    Port 465 uses implicit SSL; any other port uses a plain connection
    upgraded with STARTTLS unless SMTP_USE_TLS is "false".
    """

    def __init__(self, config: dict):
        """
        Args:
            config (dict): SMTP_HOST, SMTP_PORT, SMTP_USER, SMTP_PASSWORD and
                           SENDER_EMAIL are required; SENDER_NAME and
                           SMTP_USE_TLS are optional.
        """
        missing = [k for k in REQUIRED_KEYS if not config.get(k)]
        if missing:
            raise ValueError(f"Config must contain: {', '.join(missing)}")

        self.smtp_host = config["SMTP_HOST"]
        self.smtp_port = int(config["SMTP_PORT"])
        self.smtp_user = config["SMTP_USER"]
        self.smtp_password = config["SMTP_PASSWORD"]
        self.sender_email = config["SENDER_EMAIL"]
        self.sender_name = config.get("SENDER_NAME") or "PingHook"
        self.use_tls = str(config.get("SMTP_USE_TLS") or "true").lower() == "true"

    def build_message(
        self, to_email: str, subject: str, html_content: str, text_content: Optional[str] = None
    ) -> MIMEMultipart:
        message = MIMEMultipart("alternative")
        message["Subject"] = subject
        message["From"] = f"{self.sender_name} <{self.sender_email}>"
        message["To"] = to_email
        # Clients render the last alternative they understand
        if text_content:
            message.attach(MIMEText(text_content, "plain"))
        message.attach(MIMEText(html_content, "html"))
        return message

    def send_alert(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None,
    ) -> tuple[bool, str]:
        """
        Returns:
            tuple[bool, str]: success flag and "sent" or the error message.
        """
        message = self.build_message(to_email, subject, html_content, text_content)
        context = ssl.create_default_context()
        try:
            if self.smtp_port == 465:
                with smtplib.SMTP_SSL(
                    self.smtp_host, self.smtp_port, context=context, timeout=SMTP_TIMEOUT_SECONDS
                ) as server:
                    server.login(self.smtp_user, self.smtp_password)
                    server.send_message(message)
            else:
                with smtplib.SMTP(
                    self.smtp_host, self.smtp_port, timeout=SMTP_TIMEOUT_SECONDS
                ) as server:
                    if self.use_tls:
                        server.starttls(context=context)
                    server.login(self.smtp_user, self.smtp_password)
                    server.send_message(message)
        except smtplib.SMTPAuthenticationError as e:
            error_message = f"SMTP authentication failed: {e}"
            logger.error(error_message)
            return False, error_message
        except (smtplib.SMTPException, OSError) as e:
            error_message = f"SMTP error: {e}"
            logger.error(error_message)
            return False, error_message

        logger.info(f"Email sent successfully to {to_email}")
        return True, "sent"
