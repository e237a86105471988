"""Domain Repository Interfaces"""
from abc import ABC, abstractmethod
from typing import Optional, List, Iterable
from uuid import UUID
from datetime import date

from domain.entities import (
    Room, Service, PricingRule, Promotion, Booking, WalletBalance,
    WalletTransaction, DepositRequest, WithdrawalRequest
)
from domain.enums import BookingStatus, TransactionType, TransactionStatus, DepositStatus, WithdrawalStatus


class RoomRepository(ABC):
    """Repository interface for the room catalog"""

    @abstractmethod
    async def save(self, room: Room) -> Room:
        """Save room"""
        pass

    @abstractmethod
    async def find_by_id(self, room_id: UUID) -> Optional[Room]:
        """Find room by ID"""
        pass

    @abstractmethod
    async def find_all(self) -> List[Room]:
        """Find all rooms"""
        pass


class ServiceRepository(ABC):
    """Repository interface for the service catalog"""

    @abstractmethod
    async def save(self, service: Service) -> Service:
        """Save service"""
        pass

    @abstractmethod
    async def find_by_id(self, service_id: UUID) -> Optional[Service]:
        """Find service by ID"""
        pass

    @abstractmethod
    async def find_all(self) -> List[Service]:
        """Find all services"""
        pass


class PricingRuleRepository(ABC):
    """Repository interface for special pricing rules"""

    @abstractmethod
    async def save(self, rule: PricingRule) -> PricingRule:
        """Save pricing rule"""
        pass

    @abstractmethod
    async def find_by_id(self, rule_id: UUID) -> Optional[PricingRule]:
        """Find pricing rule by ID"""
        pass

    @abstractmethod
    async def find_by_room(self, room_id: UUID) -> List[PricingRule]:
        """Find active rules covering a room"""
        pass

    @abstractmethod
    async def find_all(self) -> List[PricingRule]:
        """Find all pricing rules"""
        pass


class PromotionRepository(ABC):
    """Repository interface for deposit promotions"""

    @abstractmethod
    async def save(self, promotion: Promotion) -> Promotion:
        """Save promotion"""
        pass

    @abstractmethod
    async def find_active(self) -> List[Promotion]:
        """Find promotions flagged active"""
        pass


class BookingRepository(ABC):
    """Repository interface for Booking Aggregate"""

    @abstractmethod
    async def save(self, booking: Booking) -> Booking:
        """Save booking"""
        pass

    @abstractmethod
    async def find_by_id(self, booking_id: UUID) -> Optional[Booking]:
        """Find booking by ID"""
        pass

    @abstractmethod
    async def find_by_user_id(self, user_id: UUID) -> List[Booking]:
        """Find bookings of a user"""
        pass

    @abstractmethod
    async def find_by_invoice_number(self, invoice_number: str) -> Optional[Booking]:
        """Find booking by invoice number"""
        pass

    @abstractmethod
    async def find_all(self) -> List[Booking]:
        """Find all bookings"""
        pass

    @abstractmethod
    async def count_overlapping(
        self,
        room_id: UUID,
        check_in: date,
        check_out: date,
        statuses: Iterable[BookingStatus]
    ) -> int:
        """Count bookings of a room in statuses whose stay intersects [check_in, check_out)"""
        pass

    @abstractmethod
    async def insert_within_capacity(
        self,
        booking: Booking,
        quantity: int,
        statuses: Iterable[BookingStatus]
    ) -> Booking:
        """Count overlaps and insert as one atomic step; RoomUnavailableError when full"""
        pass


class WalletBalanceRepository(ABC):
    """Repository interface for the per-user balance projection"""

    @abstractmethod
    async def find_by_user_id(self, user_id: UUID) -> Optional[WalletBalance]:
        """Find balance of a user"""
        pass

    @abstractmethod
    async def save(self, balance: WalletBalance, expected_version: int) -> WalletBalance:
        """Replace the balance if the stored version still equals expected_version"""
        pass

    @abstractmethod
    async def find_all(self) -> List[WalletBalance]:
        """Find all balances"""
        pass


class WalletTransactionRepository(ABC):
    """Repository interface for the append-only ledger"""

    @abstractmethod
    async def append(self, transaction: WalletTransaction) -> WalletTransaction:
        """Append a ledger entry"""
        pass

    @abstractmethod
    async def find_by_id(self, transaction_id: UUID) -> Optional[WalletTransaction]:
        """Find ledger entry by ID"""
        pass

    @abstractmethod
    async def update_status(self, transaction_id: UUID, status: TransactionStatus) -> WalletTransaction:
        """Change the status of an entry; the only mutation the ledger allows"""
        pass

    @abstractmethod
    async def find_by_user_id(
        self,
        user_id: UUID,
        type: Optional[TransactionType] = None
    ) -> List[WalletTransaction]:
        """Entries of a user in append order"""
        pass

    @abstractmethod
    async def find_all(self) -> List[WalletTransaction]:
        """All entries in append order"""
        pass


class DepositRequestRepository(ABC):
    """Repository interface for deposit requests"""

    @abstractmethod
    async def save(self, request: DepositRequest) -> DepositRequest:
        """Save deposit request"""
        pass

    @abstractmethod
    async def find_by_id(self, request_id: UUID) -> Optional[DepositRequest]:
        """Find deposit request by ID"""
        pass

    @abstractmethod
    async def find_all(
        self,
        user_id: Optional[UUID] = None,
        status: Optional[DepositStatus] = None
    ) -> List[DepositRequest]:
        """Find deposit requests, newest first"""
        pass


class WithdrawalRequestRepository(ABC):
    """Repository interface for withdrawal requests"""

    @abstractmethod
    async def save(self, request: WithdrawalRequest) -> WithdrawalRequest:
        """Save withdrawal request"""
        pass

    @abstractmethod
    async def find_by_id(self, request_id: UUID) -> Optional[WithdrawalRequest]:
        """Find withdrawal request by ID"""
        pass

    @abstractmethod
    async def find_all(
        self,
        user_id: Optional[UUID] = None,
        status: Optional[WithdrawalStatus] = None
    ) -> List[WithdrawalRequest]:
        """Find withdrawal requests, newest first"""
        pass
