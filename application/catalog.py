"""Catalog Service - rooms, services, pricing rules and promotions"""
import logging
from typing import Any, Callable, Dict, List
from uuid import UUID

from domain.auth import User
from domain.entities import Room, Service, PricingRule, Promotion
from domain.exceptions import NotFoundError, UnauthorizedError, ValidationError

logger = logging.getLogger(__name__)


class CatalogService:
    """Admin maintenance of the reference data bookings are priced from"""

    def __init__(self, uow_factory: Callable):
        self.uow_factory = uow_factory

    async def add_room(self, admin: User, room: Room) -> Room:
        self._ensure_admin(admin)
        async with self.uow_factory() as uow:
            await uow.rooms.save(room)
        logger.info("Room %s (%s) added with %d units", room.room_id, room.name, room.quantity)
        return room

    async def add_service(self, admin: User, service: Service) -> Service:
        self._ensure_admin(admin)
        async with self.uow_factory() as uow:
            await uow.services.save(service)
        return service

    async def add_pricing_rule(self, admin: User, rule: PricingRule) -> PricingRule:
        """Register a rule; every room it names must exist"""
        self._ensure_admin(admin)
        async with self.uow_factory() as uow:
            for room_id in rule.room_ids:
                if not await uow.rooms.find_by_id(room_id):
                    raise NotFoundError(f"Room {room_id} not found")
            await uow.pricing_rules.save(rule)
        logger.info("Pricing rule %s (%s) added for %d rooms", rule.rule_id, rule.kind.value, len(rule.room_ids))
        return rule

    async def update_pricing_rule(self, admin: User, rule_id: UUID, changes: Dict[str, Any]) -> PricingRule:
        """Apply a partial update; the merged rule is validated as a whole"""
        self._ensure_admin(admin)
        async with self.uow_factory() as uow:
            rule = await self._load_rule(uow, rule_id)
            try:
                updated = PricingRule(**{**rule.model_dump(), **changes})
            except ValueError as e:
                raise ValidationError(str(e))
            for room_id in updated.room_ids:
                if not await uow.rooms.find_by_id(room_id):
                    raise NotFoundError(f"Room {room_id} not found")
            await uow.pricing_rules.save(updated)
        logger.info("Pricing rule %s updated: %s", rule_id, ", ".join(sorted(changes)))
        return updated

    async def deactivate_pricing_rule(self, admin: User, rule_id: UUID) -> PricingRule:
        """Soft-delete: the rule stays listed but no longer prices any night"""
        self._ensure_admin(admin)
        async with self.uow_factory() as uow:
            rule = await self._load_rule(uow, rule_id)
            rule.is_active = False
            await uow.pricing_rules.save(rule)
        logger.info("Pricing rule %s deactivated", rule_id)
        return rule

    async def add_promotion(self, admin: User, promotion: Promotion) -> Promotion:
        self._ensure_admin(admin)
        if promotion.start_date and promotion.end_date and promotion.end_date < promotion.start_date:
            raise ValidationError("Promotion end_date must not be before start_date")
        async with self.uow_factory() as uow:
            await uow.promotions.save(promotion)
        return promotion

    async def get_room(self, room_id: UUID) -> Room:
        async with self.uow_factory() as uow:
            room = await uow.rooms.find_by_id(room_id)
        if not room:
            raise NotFoundError(f"Room {room_id} not found")
        return room

    async def list_rooms(self) -> List[Room]:
        async with self.uow_factory() as uow:
            return await uow.rooms.find_all()

    async def list_services(self) -> List[Service]:
        async with self.uow_factory() as uow:
            return [s for s in await uow.services.find_all() if s.is_active]

    async def list_pricing_rules(self) -> List[PricingRule]:
        async with self.uow_factory() as uow:
            return await uow.pricing_rules.find_all()

    async def list_promotions(self) -> List[Promotion]:
        async with self.uow_factory() as uow:
            return await uow.promotions.find_active()

    @staticmethod
    async def _load_rule(uow, rule_id: UUID) -> PricingRule:
        rule = await uow.pricing_rules.find_by_id(rule_id)
        if not rule:
            raise NotFoundError(f"Pricing rule {rule_id} not found")
        return rule

    @staticmethod
    def _ensure_admin(user: User) -> None:
        if not user.is_admin:
            raise UnauthorizedError("Admin privileges required")
