"""Pricing Service - nightly rates and stay breakdowns"""
from datetime import date
from uuid import UUID

from domain.exceptions import NotFoundError, ValidationError
from domain.pricing import resolve_nightly_price
from domain.repositories import PricingRuleRepository, RoomRepository
from domain.value_objects import DateRange, NightlyPrice, PriceBreakdown


class PricingService:
    """Service for room price resolution"""

    def __init__(self, rules: PricingRuleRepository, rooms: RoomRepository):
        self.rules = rules
        self.rooms = rooms

    async def resolve_price(self, room_id: UUID, day: date, base_price: int) -> NightlyPrice:
        """Effective price of room_id for the night of day"""
        rules = await self.rules.find_by_room(room_id)
        return resolve_nightly_price(room_id, day, base_price, rules)

    async def price_breakdown(
        self,
        room_id: UUID,
        check_in: date,
        check_out: date,
        base_price: int
    ) -> PriceBreakdown:
        """Resolve every night of [check_in, check_out)"""
        if check_out <= check_in:
            raise ValidationError("Check-out must be after check-in")
        stay = DateRange(check_in=check_in, check_out=check_out)

        # Load rules once for the whole stay
        rules = await self.rules.find_by_room(room_id)
        nights = [resolve_nightly_price(room_id, day, base_price, rules) for day in stay.each_night()]
        return PriceBreakdown(
            nights=nights,
            total=sum(n.price for n in nights),
            base_price=base_price
        )

    async def price_preview(self, room_id: UUID, check_in: date, check_out: date) -> PriceBreakdown:
        """Breakdown using the room's current base price"""
        room = await self.rooms.find_by_id(room_id)
        if not room:
            raise NotFoundError(f"Room {room_id} not found")
        return await self.price_breakdown(room_id, check_in, check_out, room.price)
