from datetime import datetime, timezone
from typing import List, Optional

from clinic_api.core.errors import ValidationError
from clinic_api.core.logger import logger
from clinic_api.models.booking import Booking, BookingCreate, BookingRequest
from clinic_api.services.booking_store import BookingStore
from clinic_api.services.db_service import ConnectionManager
from clinic_api.services.notification_service import NotificationDispatcher


def parse_booking_date(value: Optional[str]) -> Optional[datetime]:
    """
    Parses an ISO 8601 date or date-time. Naive values are taken as UTC.
    Returns None when the value is not a valid calendar date/time.
    """
    if not value:
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def validate_booking(req: BookingRequest) -> BookingCreate:
    required = {
        "firstName": req.firstName,
        "lastName": req.lastName,
        "email": req.email,
        "phone": req.phone,
        "date": req.date,
    }
    missing = [name for name, value in required.items() if not value or not value.strip()]
    if missing:
        logger.info(f"📥 Booking rejected, missing: {', '.join(missing)}")
        raise ValidationError("Missing required fields")

    booking_date = parse_booking_date(req.date)
    if booking_date is None:
        logger.info(f"📥 Booking rejected, invalid date: {req.date!r}")
        raise ValidationError("Invalid booking date")

    return BookingCreate(
        first_name=req.firstName.strip(),
        last_name=req.lastName.strip(),
        email=req.email.strip(),
        phone=req.phone.strip(),
        location=(req.location or "").strip(),
        booking_date=booking_date,
    )


class BookingService:
    def __init__(self, connection: ConnectionManager, store: BookingStore, notifier: NotificationDispatcher):
        self.connection = connection
        self.store = store
        self.notifier = notifier

    async def create_booking(self, req: BookingRequest) -> Booking:
        """
        Connect, validate, persist, then notify.
        Notification problems are logged by the dispatcher and never fail the booking.
        """
        await self.connection.ensure_connected()

        fields = validate_booking(req)
        logger.info(f"📥 Booking Request - {fields.email} for {fields.booking_date.isoformat()}")

        booking = await self.store.create(fields)

        try:
            await self.notifier.notify(booking)
        except Exception as e:
            logger.opt(exception=e).error(f"❌ Notification step crashed for booking {booking.id}: {e}")

        return booking

    async def list_bookings(self) -> List[Booking]:
        await self.connection.ensure_connected()
        return await self.store.list()
