from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from app.models.booking import Booking
from app.repositories.base import BaseRepository


class BookingRepository(BaseRepository):
    """Read access to ``bookings`` for the commission calculator."""

    async def get_with_user(self, booking_id: UUID) -> Optional[Booking]:
        """Return a booking with its user eagerly loaded, or ``None``."""
        result = await self._db.execute(
            select(Booking)
            .where(Booking.booking_id == booking_id)
            .options(selectinload(Booking.user))
        )
        return result.scalar_one_or_none()

    async def exists(self, booking_id: UUID) -> bool:
        result = await self._db.execute(
            select(Booking.booking_id).where(Booking.booking_id == booking_id)
        )
        return result.scalar_one_or_none() is not None
