import asyncio
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import parseaddr
from html import escape
from typing import Dict

from clinic_api.core.config import Settings
from clinic_api.core.errors import NotificationError
from clinic_api.core.logger import logger
from clinic_api.models.booking import Booking


def format_booking_date(booking: Booking) -> str:
    return booking.booking_date.strftime("%A %d %B %Y, %H:%M %Z").strip()


class NotificationDispatcher:
    """
    Best-effort booking emails over SMTP: a confirmation to the customer and an
    alert to the clinic. Each message gets one attempt, bounded by
    SMTP_TIMEOUT_S. Failures are logged and never raised to the caller.
    """

    def __init__(self, settings: Settings):
        self.settings = settings

    @property
    def is_configured(self) -> bool:
        s = self.settings
        return bool(s.SMTP_SERVER and s.SMTP_USERNAME and s.SMTP_PASSWORD)

    def build_confirmation(self, booking: Booking) -> MIMEMultipart:
        clinic = self.settings.CLINIC_NAME
        admin = self.settings.ADMIN_NOTIFY_EMAIL
        when = format_booking_date(booking)
        where = booking.location or "our clinic"

        msg = MIMEMultipart("alternative")
        msg['From'] = self.settings.FROM_EMAIL
        msg['To'] = booking.email
        msg['Subject'] = f"Your booking is confirmed - {clinic} ✅"
        msg['Reply-To'] = admin
        msg['X-Priority'] = "3"
        msg['List-Unsubscribe'] = f"<mailto:{admin}?subject=unsubscribe>"

        text = f"Hi {booking.first_name},\n\nYour booking for {when} at {where} is confirmed.\n\nThanks,\n{clinic}"
        html = (
            f"<p>Hi <strong>{escape(booking.first_name)}</strong>,</p>"
            f"<p>Your booking for <strong>{escape(when)}</strong> at <strong>{escape(where)}</strong> is confirmed.</p>"
            f"<p>Thanks,<br/>{escape(clinic)}</p>"
        )
        msg.attach(MIMEText(text, 'plain', 'utf-8'))
        msg.attach(MIMEText(html, 'html', 'utf-8'))
        return msg

    def build_admin_alert(self, booking: Booking) -> MIMEMultipart:
        msg = MIMEMultipart()
        msg['From'] = self.settings.FROM_EMAIL
        msg['To'] = self.settings.ADMIN_NOTIFY_EMAIL
        msg['Subject'] = "New booking received"
        msg['X-Priority'] = "3"

        body = (
            f"A new booking has been made by {booking.first_name} {booking.last_name} ({booking.email}). "
            f"Please contact them at {booking.phone}.\n\n"
            f"Requested date: {format_booking_date(booking)}\n"
            f"Location: {booking.location or '-'}"
        )
        msg.attach(MIMEText(body, 'plain', 'utf-8'))
        return msg

    def _deliver(self, msg: MIMEMultipart) -> None:
        s = self.settings
        if s.SMTP_USE_SSL:
            server = smtplib.SMTP_SSL(s.SMTP_SERVER, s.SMTP_PORT, timeout=s.SMTP_TIMEOUT_S)
        else:
            server = smtplib.SMTP(s.SMTP_SERVER, s.SMTP_PORT, timeout=s.SMTP_TIMEOUT_S)

        with server:
            if not s.SMTP_USE_SSL:
                server.starttls()
            server.login(s.SMTP_USERNAME, s.SMTP_PASSWORD)
            sender = parseaddr(s.FROM_EMAIL)[1] or s.SMTP_USERNAME
            server.sendmail(sender, [msg['To']], msg.as_string())

    async def send(self, kind: str, msg: MIMEMultipart) -> None:
        """One delivery attempt. Raises NotificationError on failure or timeout."""
        try:
            await asyncio.wait_for(asyncio.to_thread(self._deliver, msg), timeout=self.settings.SMTP_TIMEOUT_S)
        except asyncio.TimeoutError as e:
            raise NotificationError(f"{kind} email to {msg['To']} timed out after {self.settings.SMTP_TIMEOUT_S}s") from e
        except Exception as e:
            raise NotificationError(f"{kind} email to {msg['To']} failed: {e}") from e

        logger.info(f"✅ {kind} email sent to {msg['To']}")

    async def notify(self, booking: Booking) -> Dict[str, bool]:
        """
        Sends both booking emails concurrently and reports the outcome per message.
        Returns an empty dict when SMTP is not configured.
        """
        if not self.is_configured:
            logger.warning(f"⚠️ SMTP not configured, skipped emails for booking {booking.id}")
            return {}

        try:
            messages = {
                "confirmation": self.build_confirmation(booking),
                "admin": self.build_admin_alert(booking),
            }
        except Exception as e:
            logger.opt(exception=e).error(f"❌ Could not build emails for booking {booking.id}: {e}")
            return {"confirmation": False, "admin": False}

        results = await asyncio.gather(
            *(self.send(kind, msg) for kind, msg in messages.items()),
            return_exceptions=True,
        )

        outcome = {}
        for kind, result in zip(messages.keys(), results):
            if isinstance(result, NotificationError):
                logger.opt(exception=result.__cause__).error(f"❌ {result.message}")
            elif isinstance(result, BaseException):
                raise result
            outcome[kind] = result is None

        if not all(outcome.values()):
            logger.warning(f"⚠️ Booking {booking.id} stored but not every email went out: {outcome}")
        return outcome
