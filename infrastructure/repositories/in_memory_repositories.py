"""In-Memory Repository Implementations"""
import asyncio
from typing import Optional, List, Dict, Iterable
from uuid import UUID
from datetime import date

from domain.repositories import (
    RoomRepository, ServiceRepository, PricingRuleRepository, PromotionRepository,
    BookingRepository, WalletBalanceRepository, WalletTransactionRepository,
    DepositRequestRepository, WithdrawalRequestRepository
)
from domain.entities import (
    Room, Service, PricingRule, Promotion, Booking, WalletBalance,
    WalletTransaction, DepositRequest, WithdrawalRequest
)
from domain.enums import BookingStatus, TransactionType, TransactionStatus, DepositStatus, WithdrawalStatus
from domain.exceptions import (
    NotFoundError, RoomUnavailableError, DuplicateInvoiceError, TransactionConflictError
)

TABLES = (
    "rooms", "services", "pricing_rules", "promotions", "bookings",
    "balances", "transactions", "deposits", "withdrawals"
)


def _copy(model):
    return model.model_copy(deep=True)


class InMemoryStore:
    """Shared tables behind every in-memory repository.

    Stored models are never mutated in place, so a shallow copy of each
    table is a complete snapshot.
    """

    def __init__(self):
        self.lock = asyncio.Lock()
        self.tables: Dict[str, dict] = {name: {} for name in TABLES}

    @property
    def in_transaction(self) -> bool:
        return self.lock.locked()

    def snapshot(self) -> Dict[str, dict]:
        return {name: dict(table) for name, table in self.tables.items()}

    def restore(self, snapshot: Dict[str, dict]) -> None:
        self.tables = {name: dict(table) for name, table in snapshot.items()}

    def clear(self) -> None:
        """Drop all data and start over with a fresh lock"""
        self.lock = asyncio.Lock()
        self.tables = {name: {} for name in TABLES}

    def register_wallet(self, user_id: UUID) -> None:
        """Open an empty wallet outside any event loop (bootstrap only)"""
        self.tables["balances"].setdefault(user_id, WalletBalance(user_id=user_id))


class InMemoryRoomRepository(RoomRepository):
    """In-memory implementation of RoomRepository"""

    def __init__(self, store: InMemoryStore):
        self._store = store

    @property
    def _storage(self) -> Dict[UUID, Room]:
        return self._store.tables["rooms"]

    async def save(self, room: Room) -> Room:
        """Save room to memory"""
        self._storage[room.room_id] = _copy(room)
        return room

    async def find_by_id(self, room_id: UUID) -> Optional[Room]:
        room = self._storage.get(room_id)
        return _copy(room) if room else None

    async def find_all(self) -> List[Room]:
        return [_copy(r) for r in self._storage.values()]


class InMemoryServiceRepository(ServiceRepository):
    """In-memory implementation of ServiceRepository"""

    def __init__(self, store: InMemoryStore):
        self._store = store

    @property
    def _storage(self) -> Dict[UUID, Service]:
        return self._store.tables["services"]

    async def save(self, service: Service) -> Service:
        """Save service to memory"""
        self._storage[service.service_id] = _copy(service)
        return service

    async def find_by_id(self, service_id: UUID) -> Optional[Service]:
        service = self._storage.get(service_id)
        return _copy(service) if service else None

    async def find_all(self) -> List[Service]:
        return [_copy(s) for s in self._storage.values()]


class InMemoryPricingRuleRepository(PricingRuleRepository):
    """In-memory implementation of PricingRuleRepository"""

    def __init__(self, store: InMemoryStore):
        self._store = store

    @property
    def _storage(self) -> Dict[UUID, PricingRule]:
        return self._store.tables["pricing_rules"]

    async def save(self, rule: PricingRule) -> PricingRule:
        """Save pricing rule to memory"""
        self._storage[rule.rule_id] = _copy(rule)
        return rule

    async def find_by_id(self, rule_id: UUID) -> Optional[PricingRule]:
        rule = self._storage.get(rule_id)
        return _copy(rule) if rule else None

    async def find_by_room(self, room_id: UUID) -> List[PricingRule]:
        return [
            _copy(r) for r in self._storage.values()
            if r.is_active and r.applies_to(room_id)
        ]

    async def find_all(self) -> List[PricingRule]:
        return [_copy(r) for r in self._storage.values()]


class InMemoryPromotionRepository(PromotionRepository):
    """In-memory implementation of PromotionRepository"""

    def __init__(self, store: InMemoryStore):
        self._store = store

    @property
    def _storage(self) -> Dict[UUID, Promotion]:
        return self._store.tables["promotions"]

    async def save(self, promotion: Promotion) -> Promotion:
        """Save promotion to memory"""
        self._storage[promotion.promotion_id] = _copy(promotion)
        return promotion

    async def find_active(self) -> List[Promotion]:
        return [_copy(p) for p in self._storage.values() if p.is_active]


class InMemoryBookingRepository(BookingRepository):
    """In-memory implementation of BookingRepository"""

    def __init__(self, store: InMemoryStore):
        self._store = store

    @property
    def _storage(self) -> Dict[UUID, Booking]:
        return self._store.tables["bookings"]

    async def save(self, booking: Booking) -> Booking:
        """Save booking to memory; invoice numbers stay unique"""
        if booking.invoice_number:
            for other in self._storage.values():
                if other.invoice_number == booking.invoice_number and other.booking_id != booking.booking_id:
                    raise DuplicateInvoiceError(f"Invoice number {booking.invoice_number} already exists")
        self._storage[booking.booking_id] = _copy(booking)
        return booking

    async def find_by_id(self, booking_id: UUID) -> Optional[Booking]:
        booking = self._storage.get(booking_id)
        return _copy(booking) if booking else None

    async def find_by_user_id(self, user_id: UUID) -> List[Booking]:
        return [_copy(b) for b in self._storage.values() if b.user_id == user_id]

    async def find_by_invoice_number(self, invoice_number: str) -> Optional[Booking]:
        for booking in self._storage.values():
            if booking.invoice_number == invoice_number:
                return _copy(booking)
        return None

    async def find_all(self) -> List[Booking]:
        return [_copy(b) for b in self._storage.values()]

    async def count_overlapping(
        self,
        room_id: UUID,
        check_in: date,
        check_out: date,
        statuses: Iterable[BookingStatus]
    ) -> int:
        return self._count(room_id, check_in, check_out, frozenset(statuses))

    async def insert_within_capacity(
        self,
        booking: Booking,
        quantity: int,
        statuses: Iterable[BookingStatus]
    ) -> Booking:
        # No await between the count and the write: nothing can interleave
        taken = self._count(
            booking.room_id,
            booking.date_range.check_in,
            booking.date_range.check_out,
            frozenset(statuses)
        )
        if taken >= quantity:
            raise RoomUnavailableError(f"Room {booking.room_id} is fully booked for the selected dates")
        self._storage[booking.booking_id] = _copy(booking)
        return booking

    def _count(self, room_id: UUID, check_in: date, check_out: date, statuses: frozenset) -> int:
        return sum(
            1 for b in self._storage.values()
            if b.room_id == room_id
            and b.status in statuses
            and b.date_range.overlaps(check_in, check_out)
        )


class InMemoryWalletBalanceRepository(WalletBalanceRepository):
    """In-memory implementation of WalletBalanceRepository"""

    def __init__(self, store: InMemoryStore):
        self._store = store

    @property
    def _storage(self) -> Dict[UUID, WalletBalance]:
        return self._store.tables["balances"]

    async def find_by_user_id(self, user_id: UUID) -> Optional[WalletBalance]:
        return self._storage.get(user_id)

    async def save(self, balance: WalletBalance, expected_version: int) -> WalletBalance:
        """Compare-and-set on the balance version"""
        current = self._storage.get(balance.user_id)
        current_version = current.version if current else 0
        if current_version != expected_version:
            raise TransactionConflictError(
                f"Balance of user {balance.user_id} changed concurrently "
                f"(expected version {expected_version}, found {current_version})"
            )
        self._storage[balance.user_id] = balance
        return balance

    async def find_all(self) -> List[WalletBalance]:
        return list(self._storage.values())


class InMemoryWalletTransactionRepository(WalletTransactionRepository):
    """In-memory implementation of WalletTransactionRepository"""

    def __init__(self, store: InMemoryStore):
        self._store = store

    @property
    def _storage(self) -> Dict[UUID, WalletTransaction]:
        return self._store.tables["transactions"]

    async def append(self, transaction: WalletTransaction) -> WalletTransaction:
        if transaction.transaction_id in self._storage:
            raise TransactionConflictError(f"Transaction {transaction.transaction_id} already recorded")
        self._storage[transaction.transaction_id] = _copy(transaction)
        return transaction

    async def find_by_id(self, transaction_id: UUID) -> Optional[WalletTransaction]:
        transaction = self._storage.get(transaction_id)
        return _copy(transaction) if transaction else None

    async def update_status(self, transaction_id: UUID, status: TransactionStatus) -> WalletTransaction:
        transaction = self._storage.get(transaction_id)
        if transaction is None:
            raise NotFoundError(f"Transaction {transaction_id} not found")
        updated = transaction.model_copy(update={"status": status})
        self._storage[transaction_id] = updated
        return _copy(updated)

    async def find_by_user_id(
        self,
        user_id: UUID,
        type: Optional[TransactionType] = None
    ) -> List[WalletTransaction]:
        return [
            _copy(t) for t in self._storage.values()
            if t.user_id == user_id and (type is None or t.type == type)
        ]

    async def find_all(self) -> List[WalletTransaction]:
        return [_copy(t) for t in self._storage.values()]


class InMemoryDepositRequestRepository(DepositRequestRepository):
    """In-memory implementation of DepositRequestRepository"""

    def __init__(self, store: InMemoryStore):
        self._store = store

    @property
    def _storage(self) -> Dict[UUID, DepositRequest]:
        return self._store.tables["deposits"]

    async def save(self, request: DepositRequest) -> DepositRequest:
        self._storage[request.request_id] = _copy(request)
        return request

    async def find_by_id(self, request_id: UUID) -> Optional[DepositRequest]:
        request = self._storage.get(request_id)
        return _copy(request) if request else None

    async def find_all(
        self,
        user_id: Optional[UUID] = None,
        status: Optional[DepositStatus] = None
    ) -> List[DepositRequest]:
        results = [
            _copy(r) for r in self._storage.values()
            if (user_id is None or r.user_id == user_id) and (status is None or r.status == status)
        ]
        return sorted(results, key=lambda r: r.created_at, reverse=True)


class InMemoryWithdrawalRequestRepository(WithdrawalRequestRepository):
    """In-memory implementation of WithdrawalRequestRepository"""

    def __init__(self, store: InMemoryStore):
        self._store = store

    @property
    def _storage(self) -> Dict[UUID, WithdrawalRequest]:
        return self._store.tables["withdrawals"]

    async def save(self, request: WithdrawalRequest) -> WithdrawalRequest:
        self._storage[request.request_id] = _copy(request)
        return request

    async def find_by_id(self, request_id: UUID) -> Optional[WithdrawalRequest]:
        request = self._storage.get(request_id)
        return _copy(request) if request else None

    async def find_all(
        self,
        user_id: Optional[UUID] = None,
        status: Optional[WithdrawalStatus] = None
    ) -> List[WithdrawalRequest]:
        results = [
            _copy(r) for r in self._storage.values()
            if (user_id is None or r.user_id == user_id) and (status is None or r.status == status)
        ]
        return sorted(results, key=lambda r: r.created_at, reverse=True)
