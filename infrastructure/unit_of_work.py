"""
Unit of Work Pattern

Groups every repository write of one business operation into a single
atomic step and releases notifications only after that step commits.
"""

import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, List, Optional, TypeVar

from application.notifications import Notification, NotificationDispatcher
from domain.exceptions import BookingPlatformError, InternalError, TransactionConflictError
from infrastructure.config import settings
from infrastructure.repositories.in_memory_repositories import (
    InMemoryStore, InMemoryRoomRepository, InMemoryServiceRepository,
    InMemoryPricingRuleRepository, InMemoryPromotionRepository, InMemoryBookingRepository,
    InMemoryWalletBalanceRepository, InMemoryWalletTransactionRepository,
    InMemoryDepositRequestRepository, InMemoryWithdrawalRequestRepository
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AbstractUnitOfWork(ABC):
    """Abstract Unit of Work pattern"""

    rooms = None
    services = None
    pricing_rules = None
    promotions = None
    bookings = None
    balances = None
    transactions = None
    deposits = None
    withdrawals = None

    def __init__(self, retries: Optional[int] = None):
        self.retries = retries or settings.transaction_retry_attempts
        self._events: List[Notification] = []
        self._active = False

    @property
    def is_active(self) -> bool:
        return self._active

    async def __aenter__(self):
        await self.begin()
        self._events = []
        self._active = True
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self._active = False
        if exc_type is None:
            await self.commit()
        else:
            self._log_rollback(exc_val)
            await self.rollback()

    def _log_rollback(self, exc: BaseException) -> None:
        expected = isinstance(exc, BookingPlatformError) and not isinstance(exc, InternalError)
        logger.log(
            logging.INFO if expected else logging.WARNING,
            "Rolling back transaction after %s, discarding %d notifications",
            type(exc).__name__, len(self._events)
        )

    def collect(self, notification: Notification) -> None:
        """Queue a notification until commit"""
        self._events.append(notification)

    async def run(self, operation: Callable[["AbstractUnitOfWork"], Awaitable[T]]) -> T:
        """Run operation in a transaction, retrying it from scratch on write conflicts"""
        attempt = 1
        while True:
            try:
                async with self:
                    return await operation(self)
            except TransactionConflictError:
                if attempt >= self.retries:
                    raise
                logger.info("Write conflict, retrying (attempt %d of %d)", attempt + 1, self.retries)
                attempt += 1

    @abstractmethod
    async def begin(self):
        """Start the transaction"""
        pass

    @abstractmethod
    async def commit(self):
        """Commit the transaction"""
        pass

    @abstractmethod
    async def rollback(self):
        """Rollback the transaction"""
        pass


class InMemoryUnitOfWork(AbstractUnitOfWork):
    """
    In-memory implementation of Unit of Work

    Holds the store lock for the whole operation and keeps a snapshot of
    every table; any exception restores the snapshot.

    Usage:
        async with InMemoryUnitOfWork(store, dispatcher) as uow:
            booking = await uow.bookings.find_by_id(booking_id)
            booking.approve()
            await uow.bookings.save(booking)
        # Notifications are dispatched after commit
    """

    def __init__(
        self,
        store: InMemoryStore,
        dispatcher: Optional[NotificationDispatcher] = None,
        retries: Optional[int] = None
    ):
        super().__init__(retries)
        self.store = store
        self.dispatcher = dispatcher
        self._snapshot = None
        self._lock = None
        self.rooms = InMemoryRoomRepository(store)
        self.services = InMemoryServiceRepository(store)
        self.pricing_rules = InMemoryPricingRuleRepository(store)
        self.promotions = InMemoryPromotionRepository(store)
        self.bookings = InMemoryBookingRepository(store)
        self.balances = InMemoryWalletBalanceRepository(store)
        self.transactions = InMemoryWalletTransactionRepository(store)
        self.deposits = InMemoryDepositRequestRepository(store)
        self.withdrawals = InMemoryWithdrawalRequestRepository(store)

    async def begin(self):
        self._lock = self.store.lock
        await self._lock.acquire()
        self._snapshot = self.store.snapshot()

    async def commit(self):
        events = self._events.copy()
        self._events.clear()
        self._snapshot = None
        self._lock.release()

        if events and self.dispatcher:
            logger.debug("Dispatching %d notifications after commit", len(events))
            self.dispatcher.dispatch(events)

    async def rollback(self):
        self._events.clear()
        try:
            if self._snapshot is not None:
                self.store.restore(self._snapshot)
        finally:
            self._snapshot = None
            self._lock.release()
