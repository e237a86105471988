"""Availability Checker - protects the finite unit count of each room"""
import logging
from abc import ABC, abstractmethod
from datetime import date
from typing import Iterable, Optional
from uuid import UUID

from domain.entities import Booking, Room
from domain.enums import BookingStatus, HOLDING_STATUSES
from domain.exceptions import RoomUnavailableError, ValidationError
from domain.repositories import BookingRepository

logger = logging.getLogger(__name__)


class AvailabilityChecker(ABC):
    """Counts overlapping bookings and places new ones"""

    def __init__(self, bookings: BookingRepository):
        self.bookings = bookings

    async def count_overlapping(
        self,
        room_id: UUID,
        check_in: date,
        check_out: date,
        active_statuses: Optional[Iterable[BookingStatus]] = None
    ) -> int:
        """Bookings whose stay intersects [check_in, check_out)"""
        if check_out <= check_in:
            raise ValidationError("Check-out must be after check-in")
        statuses = HOLDING_STATUSES if active_statuses is None else active_statuses
        return await self.bookings.count_overlapping(room_id, check_in, check_out, statuses)

    async def available_units(self, room: Room, check_in: date, check_out: date) -> int:
        taken = await self.count_overlapping(room.room_id, check_in, check_out)
        return max(room.quantity - taken, 0)

    async def ensure_available(self, room: Room, check_in: date, check_out: date) -> None:
        """Pre-check before pricing a new booking"""
        if await self.available_units(room, check_in, check_out) <= 0:
            raise RoomUnavailableError(f"Room {room.name} is fully booked for the selected dates")

    @abstractmethod
    async def place(self, uow, booking: Booking, room: Room) -> Booking:
        """Persist a new booking if a unit is still free"""
        pass


class BestEffortAvailabilityChecker(AvailabilityChecker):
    """Count, then insert.

    Two requests that both count before either inserts can oversell the
    last unit when the storage does not serialize them.
    """

    async def place(self, uow, booking: Booking, room: Room) -> Booking:
        taken = await uow.bookings.count_overlapping(
            room.room_id, booking.date_range.check_in, booking.date_range.check_out, HOLDING_STATUSES
        )
        if taken >= room.quantity:
            raise RoomUnavailableError(f"Room {room.name} is fully booked for the selected dates")
        return await uow.bookings.save(booking)


class SerializableAvailabilityChecker(AvailabilityChecker):
    """Count and insert as one storage operation (exclusion constraint)"""

    async def place(self, uow, booking: Booking, room: Room) -> Booking:
        return await uow.bookings.insert_within_capacity(booking, room.quantity, HOLDING_STATUSES)


AVAILABILITY_POLICIES = {
    "best_effort": BestEffortAvailabilityChecker,
    "serializable": SerializableAvailabilityChecker,
}


def build_availability_checker(policy: str, bookings: BookingRepository) -> AvailabilityChecker:
    try:
        checker_class = AVAILABILITY_POLICIES[policy]
    except KeyError:
        raise ValueError(f"Unknown availability policy: {policy}")
    logger.info("Using %s availability policy", policy)
    return checker_class(bookings)
