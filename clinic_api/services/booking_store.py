import uuid
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from clinic_api.core.errors import PersistenceError
from clinic_api.core.logger import logger
from clinic_api.models.booking import Booking, BookingCreate
from clinic_api.services.db_service import ConnectionManager


class BookingStore:
    def __init__(self, connection: ConnectionManager):
        self.connection = connection
        self.table = connection.settings.BOOKINGS_TABLE
        self._last_created_at: Optional[datetime] = None

    def _next_created_at(self) -> datetime:
        """Wall clock, bumped by 1µs when needed so ordering follows insertion."""
        now = datetime.now(timezone.utc)
        if self._last_created_at is not None and now <= self._last_created_at:
            now = self._last_created_at + timedelta(microseconds=1)
        self._last_created_at = now
        return now

    async def create(self, fields: BookingCreate) -> Booking:
        """
        Inserts a booking with a fresh id and created_at.
        Raises PersistenceError if the insert fails or returns nothing.
        """
        client = await self.connection.ensure_connected()

        row = {
            "id": str(uuid.uuid4()),
            "first_name": fields.first_name,
            "last_name": fields.last_name,
            "email": fields.email,
            "phone": fields.phone,
            "location": fields.location,
            "booking_date": fields.booking_date.isoformat(timespec="microseconds"),
            "created_at": self._next_created_at().isoformat(timespec="microseconds"),
        }

        try:
            response = await client.table(self.table).insert(row).execute()
            if not response.data:
                raise ValueError(f"insert returned no row for {row['id']}")
            booking = Booking.model_validate(response.data[0])
        except Exception as e:
            logger.error(f"❌ DB Error (create booking): {e}")
            raise PersistenceError() from e

        logger.info(f"✅ Booking {booking.id} stored for {booking.email}")
        return booking

    async def list(self) -> List[Booking]:
        """All bookings, newest first."""
        client = await self.connection.ensure_connected()

        try:
            response = await client.table(self.table)\
                .select("*")\
                .order("created_at", desc=True)\
                .execute()
            return [Booking.model_validate(row) for row in response.data or []]
        except Exception as e:
            logger.error(f"❌ DB Error (list bookings): {e}")
            raise PersistenceError("Could not load bookings") from e
