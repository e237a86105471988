"""Wiring of repositories, unit of work and services"""
from datetime import datetime, timedelta
from typing import Callable, Iterable, Optional
from uuid import UUID

from application.availability import build_availability_checker
from application.catalog import CatalogService
from application.ledger import Ledger
from application.notifications import LoggingNotifier, NotificationDispatcher, Notifier
from application.pricing import PricingService
from application.services import BookingService
from application.wallet import WalletService
from infrastructure.config import Settings, settings as default_settings
from infrastructure.expiring_store import ExpiringStore
from infrastructure.repositories.in_memory_repositories import (
    InMemoryStore, InMemoryBookingRepository, InMemoryPricingRuleRepository, InMemoryRoomRepository
)
from infrastructure.unit_of_work import InMemoryUnitOfWork


class Container:
    """One in-memory deployment: shared store plus the services over it"""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = datetime.utcnow,
        notifier: Optional[Notifier] = None,
        user_ids: Iterable[UUID] = ()
    ):
        self.settings = settings or default_settings
        self.clock = clock
        self.store = InMemoryStore()
        self.dispatcher = NotificationDispatcher(notifier or LoggingNotifier())
        self.confirmations = ExpiringStore(clock)
        self.ledger = Ledger(clock)

        self.catalog = CatalogService(self.uow)
        self.pricing = PricingService(
            InMemoryPricingRuleRepository(self.store),
            InMemoryRoomRepository(self.store)
        )
        self.availability = build_availability_checker(
            self.settings.availability_policy,
            InMemoryBookingRepository(self.store)
        )
        self.bookings = BookingService(
            self.uow,
            self.pricing,
            self.availability,
            self.ledger,
            deposit_kind=self.settings.booking_deposit_kind,
            deposit_value=self.settings.booking_deposit_value,
            max_stay_nights=self.settings.max_stay_nights,
            clock=clock
        )
        self.wallets = WalletService(
            self.uow,
            self.ledger,
            self.confirmations,
            min_deposit_amount=self.settings.min_deposit_amount,
            min_withdrawal_amount=self.settings.min_withdrawal_amount,
            min_admin_transaction_amount=self.settings.min_admin_transaction_amount,
            confirmation_ttl=timedelta(minutes=self.settings.withdrawal_confirmation_ttl_minutes),
            clock=clock
        )
        self._user_ids = list(user_ids)
        self._register_wallets()

    def uow(self) -> InMemoryUnitOfWork:
        return InMemoryUnitOfWork(self.store, self.dispatcher, self.settings.transaction_retry_attempts)

    def reset(self) -> None:
        """Drop all data; known users get empty wallets again"""
        self.store.clear()
        self.confirmations.clear()
        self._register_wallets()

    def _register_wallets(self) -> None:
        for user_id in self._user_ids:
            self.store.register_wallet(user_id)
