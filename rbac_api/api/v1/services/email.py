import asyncio
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage as MIMEMessage
from typing import Optional

from loguru import logger
from starlette.concurrency import run_in_threadpool

from rbac_api.core import config

SEND_ATTEMPTS = 3


@dataclass
class EmailMessage:
    to: str
    subject: str
    html: str
    text: str


class EmailDeliveryError(Exception):
    pass


class EmailService:
    """Base email backend."""

    async def send(self, message: EmailMessage) -> None:
        raise NotImplementedError


class ConsoleEmailService(EmailService):
    """Writes emails to the log instead of sending them. Used in development."""

    async def send(self, message: EmailMessage) -> None:
        logger.info(
            f"Email to {message.to}\nSubject: {message.subject}\n\n{message.text}"
        )


class SMTPEmailService(EmailService):
    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        from_email: str,
        from_name: str = "",
        use_tls: bool = True,
        retry_delay: float = 1.0,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.from_email = from_email
        self.from_name = from_name
        self.use_tls = use_tls
        self.retry_delay = retry_delay

    def _build(self, message: EmailMessage) -> MIMEMessage:
        mime = MIMEMessage()
        mime["Subject"] = message.subject
        mime["From"] = f"{self.from_name} <{self.from_email}>" if self.from_name else self.from_email
        mime["To"] = message.to
        mime.set_content(message.text)
        mime.add_alternative(message.html, subtype="html")
        return mime

    def _send_sync(self, mime: MIMEMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=30) as server:
            if self.use_tls:
                server.starttls()
            if self.username:
                server.login(self.username, self.password)
            server.send_message(mime)

    async def send(self, message: EmailMessage) -> None:
        mime = self._build(message)
        last_error: Optional[Exception] = None
        for attempt in range(1, SEND_ATTEMPTS + 1):
            try:
                await run_in_threadpool(self._send_sync, mime)
                logger.info(f"Sent email '{message.subject}' to {message.to}")
                return
            except (smtplib.SMTPException, OSError) as e:
                last_error = e
                logger.warning(f"SMTP attempt {attempt}/{SEND_ATTEMPTS} to {message.to} failed: {e}")
                if attempt < SEND_ATTEMPTS:
                    await asyncio.sleep(self.retry_delay * attempt)
        raise EmailDeliveryError(f"failed to send email after {SEND_ATTEMPTS} attempts: {last_error}")


def get_email_service() -> EmailService:
    """
    Picks the email backend from EMAIL_PROVIDER.
    Incomplete SMTP settings fall back to the console backend.
    """
    if config.EMAIL_PROVIDER.lower() == "smtp":
        if config.SMTP_HOST and config.SMTP_FROM_EMAIL:
            return SMTPEmailService(
                host=config.SMTP_HOST,
                port=config.SMTP_PORT,
                username=config.SMTP_USERNAME,
                password=str(config.SMTP_PASSWORD),
                from_email=config.SMTP_FROM_EMAIL,
                from_name=config.SMTP_FROM_NAME,
                use_tls=config.SMTP_USE_TLS,
            )
        logger.warning("EMAIL_PROVIDER is smtp but SMTP_HOST or SMTP_FROM_EMAIL is missing, using console")
    return ConsoleEmailService()
