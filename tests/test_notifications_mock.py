import pytest
import smtplib
import time
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

from clinic_api.core.errors import NotificationError
from clinic_api.models.booking import Booking
from clinic_api.services.notification_service import NotificationDispatcher

from conftest import make_settings


SMTP_ON = {"SMTP_SERVER": "smtp.test", "SMTP_USERNAME": "user", "SMTP_PASSWORD": "pass"}

def make_booking(**overrides) -> Booking:
    values = {
        "id": "b-1",
        "first_name": "Ann",
        "last_name": "Lee",
        "email": "ann@x.com",
        "phone": "555-0100",
        "location": "Downtown",
        "booking_date": datetime(2025, 6, 1, 10, 0, tzinfo=timezone.utc),
        "created_at": datetime.now(timezone.utc),
    }
    values.update(overrides)
    return Booking(**values)

@pytest.mark.asyncio
async def test_notify_is_noop_without_smtp_config():
    dispatcher = NotificationDispatcher(make_settings())

    with patch("clinic_api.services.notification_service.smtplib.SMTP") as mock_smtp_cls:
        result = await dispatcher.notify(make_booking())

    assert result == {}
    mock_smtp_cls.assert_not_called()

@pytest.mark.asyncio
async def test_notify_sends_confirmation_and_admin_alert():
    dispatcher = NotificationDispatcher(make_settings(**SMTP_ON, ADMIN_NOTIFY_EMAIL="desk@clinic.test"))
    mock_server = MagicMock()

    with patch("clinic_api.services.notification_service.smtplib.SMTP", return_value=mock_server) as mock_smtp_cls:
        result = await dispatcher.notify(make_booking())

    assert result == {"confirmation": True, "admin": True}
    assert mock_smtp_cls.call_count == 2
    assert mock_server.starttls.call_count == 2
    mock_server.login.assert_called_with("user", "pass")

    recipients = sorted(call.args[1][0] for call in mock_server.sendmail.call_args_list)
    assert recipients == ["ann@x.com", "desk@clinic.test"]

@pytest.mark.asyncio
async def test_uses_ssl_when_configured():
    dispatcher = NotificationDispatcher(make_settings(**SMTP_ON, SMTP_USE_SSL=True, SMTP_PORT=465))
    mock_server = MagicMock()

    with patch("clinic_api.services.notification_service.smtplib.SMTP_SSL", return_value=mock_server) as mock_ssl:
        result = await dispatcher.notify(make_booking())

    assert result == {"confirmation": True, "admin": True}
    assert mock_ssl.call_count == 2
    mock_server.starttls.assert_not_called()

@pytest.mark.asyncio
async def test_one_failed_send_does_not_block_the_other():
    dispatcher = NotificationDispatcher(make_settings(**SMTP_ON))
    mock_server = MagicMock()

    def sendmail(sender, to, body):
        if to == ["ann@x.com"]:
            raise smtplib.SMTPRecipientsRefused({"ann@x.com": (550, b"mailbox unavailable")})

    mock_server.sendmail.side_effect = sendmail

    with patch("clinic_api.services.notification_service.smtplib.SMTP", return_value=mock_server):
        result = await dispatcher.notify(make_booking())

    assert result == {"confirmation": False, "admin": True}
    assert mock_server.sendmail.call_count == 2

@pytest.mark.asyncio
async def test_unreachable_relay_is_logged_not_raised():
    dispatcher = NotificationDispatcher(make_settings(**SMTP_ON))

    with patch("clinic_api.services.notification_service.smtplib.SMTP", side_effect=ConnectionRefusedError("refused")):
        result = await dispatcher.notify(make_booking())

    assert result == {"confirmation": False, "admin": False}

def test_confirmation_content():
    dispatcher = NotificationDispatcher(make_settings(**SMTP_ON, CLINIC_NAME="Smile Clinic", ADMIN_NOTIFY_EMAIL="desk@clinic.test"))
    msg = dispatcher.build_confirmation(make_booking(location=""))

    assert msg["To"] == "ann@x.com"
    assert msg["Reply-To"] == "desk@clinic.test"
    assert "Smile Clinic" in msg["Subject"]
    text = msg.get_payload()[0].get_payload(decode=True).decode("utf-8")
    assert "Sunday 01 June 2025, 10:00 UTC" in text
    assert "our clinic" in text

def test_admin_alert_content():
    dispatcher = NotificationDispatcher(make_settings(**SMTP_ON, ADMIN_NOTIFY_EMAIL="desk@clinic.test"))
    msg = dispatcher.build_admin_alert(make_booking())

    assert msg["To"] == "desk@clinic.test"
    body = msg.get_payload()[0].get_payload(decode=True).decode("utf-8")
    assert "Ann Lee" in body
    assert "ann@x.com" in body
    assert "555-0100" in body

@pytest.mark.asyncio
async def test_hanging_relay_is_cut_off_by_timeout():
    dispatcher = NotificationDispatcher(make_settings(**SMTP_ON, SMTP_TIMEOUT_S=0.05))

    def hanging_deliver(self, msg):
        time.sleep(0.5)

    with patch.object(NotificationDispatcher, "_deliver", hanging_deliver):
        started = time.monotonic()
        result = await dispatcher.notify(make_booking())
        elapsed = time.monotonic() - started

    assert result == {"confirmation": False, "admin": False}
    assert elapsed < 0.45

@pytest.mark.asyncio
async def test_send_raises_notification_error():
    dispatcher = NotificationDispatcher(make_settings(**SMTP_ON))
    msg = dispatcher.build_admin_alert(make_booking())

    with patch("clinic_api.services.notification_service.smtplib.SMTP", side_effect=ConnectionRefusedError("refused")):
        with pytest.raises(NotificationError) as exc_info:
            await dispatcher.send("admin", msg)

    assert "refused" in exc_info.value.message
    assert isinstance(exc_info.value.__cause__, ConnectionRefusedError)
