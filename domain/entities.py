"""Domain Entities - Aggregates"""
from pydantic import BaseModel, Field, validator
from uuid import UUID, uuid4
from datetime import datetime, date
from typing import Optional, List, Tuple

from domain.enums import (
    BookingAction, BookingStatus, PaymentStatus, PaymentMethod, PaymentStrategy,
    TransactionType, TransactionStatus, PricingRuleKind, ModifierKind,
    DepositStatus, WithdrawalStatus
)
from domain.exceptions import ValidationError, InvalidStateTransition, NotFoundError
from domain.value_objects import (
    DateRange, GuestCount, ContactInfo, BankInfo, TransactionReference,
    NightlyPrice, PriceBreakdown
)


def _utcnow() -> datetime:
    return datetime.utcnow()


# ============================================================================
# CATALOG
# ============================================================================

class Room(BaseModel):
    """Room type with a finite number of identical units"""
    room_id: UUID = Field(default_factory=uuid4)
    hotel_id: UUID
    name: str
    price: int = Field(ge=0)
    quantity: int = Field(ge=0, default=1)
    capacity_adults: int = Field(ge=1, default=2)
    capacity_children: int = Field(ge=0, default=0)
    is_active: bool = True

    class Config:
        from_attributes = True


class Service(BaseModel):
    """Billable extra that can be attached to a booking"""
    service_id: UUID = Field(default_factory=uuid4)
    name: str
    price: int = Field(ge=0)
    is_active: bool = True
    requires_confirmation: bool = True

    class Config:
        from_attributes = True


class PricingRule(BaseModel):
    """Date-range or weekend override of the base nightly rate"""
    rule_id: UUID = Field(default_factory=uuid4)
    name: str = ""
    room_ids: List[UUID]
    kind: PricingRuleKind
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    modifier_kind: ModifierKind
    modifier_value: float = Field(allow_inf_nan=False)
    is_active: bool = True
    created_at: datetime = Field(default_factory=_utcnow)

    @validator('end_date', always=True)
    def date_range_requires_window(cls, v, values):
        if values.get('kind') == PricingRuleKind.DATE_RANGE:
            start = values.get('start_date')
            if start is None or v is None:
                raise ValueError('Date range rules require start_date and end_date')
            if v < start:
                raise ValueError('end_date must not be before start_date')
        return v

    def applies_to(self, room_id: UUID) -> bool:
        return room_id in self.room_ids

    def covers(self, day: date) -> bool:
        """Inclusive window check for date_range rules"""
        if self.kind != PricingRuleKind.DATE_RANGE:
            return False
        return self.start_date <= day <= self.end_date

    class Config:
        from_attributes = True


class Promotion(BaseModel):
    """Deposit promotion granting bonus funds above a deposit threshold"""
    promotion_id: UUID = Field(default_factory=uuid4)
    name: str
    deposit_amount: int = Field(ge=0)
    bonus_amount: int = Field(ge=0, default=0)
    bonus_percent: Optional[float] = Field(None, ge=0, le=100)
    max_bonus: Optional[int] = Field(None, ge=0)
    is_active: bool = True
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    def is_applicable(self, amount: int, now: datetime) -> bool:
        """Active, threshold reached and inside the optional window"""
        if not self.is_active or amount < self.deposit_amount:
            return False
        if self.start_date and now < self.start_date:
            return False
        if self.end_date and now > self.end_date:
            return False
        return True

    def bonus_for(self, amount: int) -> int:
        """Bonus granted for a deposit of amount"""
        if self.bonus_percent:
            bonus = int(amount * self.bonus_percent // 100)
            if self.max_bonus and bonus > self.max_bonus:
                bonus = self.max_bonus
            return bonus
        return self.bonus_amount

    class Config:
        from_attributes = True


# ============================================================================
# BOOKING
# ============================================================================

class BookingService(BaseModel):
    """Child Entity: service line with a price snapshot"""
    service_id: UUID
    name: str
    quantity: int = Field(ge=1)
    unit_price: int = Field(ge=0)
    added_at: datetime = Field(default_factory=_utcnow)
    delivered_at: Optional[datetime] = None

    @property
    def line_total(self) -> int:
        return self.unit_price * self.quantity

    class Config:
        from_attributes = True


# action -> (statuses the action is legal from, status after the action)
BOOKING_TRANSITIONS = {
    BookingAction.SUBMIT_PROOF: (frozenset({BookingStatus.PENDING_DEPOSIT}), BookingStatus.AWAITING_APPROVAL),
    BookingAction.PAY_DEPOSIT: (frozenset({BookingStatus.PENDING_DEPOSIT}), BookingStatus.AWAITING_APPROVAL),
    BookingAction.PAY_IN_FULL: (
        frozenset({BookingStatus.PENDING_DEPOSIT, BookingStatus.AWAITING_APPROVAL}),
        BookingStatus.CONFIRMED
    ),
    BookingAction.APPROVE: (frozenset({BookingStatus.AWAITING_APPROVAL}), BookingStatus.CONFIRMED),
    BookingAction.REJECT: (frozenset({BookingStatus.AWAITING_APPROVAL}), BookingStatus.PENDING_DEPOSIT),
    BookingAction.CHECK_IN: (frozenset({BookingStatus.CONFIRMED}), BookingStatus.CONFIRMED),
    BookingAction.ADD_SERVICE: (frozenset({BookingStatus.CONFIRMED}), BookingStatus.CONFIRMED),
    BookingAction.CHECKOUT: (frozenset({BookingStatus.CONFIRMED}), BookingStatus.COMPLETED),
    BookingAction.CANCEL: (
        frozenset({BookingStatus.PENDING_DEPOSIT, BookingStatus.AWAITING_APPROVAL, BookingStatus.CONFIRMED}),
        BookingStatus.CANCELLED
    ),
}


class Booking(BaseModel):
    """Booking Aggregate Root Entity"""

    # Identity
    booking_id: UUID = Field(default_factory=uuid4)

    # References to other contexts
    user_id: UUID
    room_id: UUID
    hotel_id: UUID

    # Value Objects
    date_range: DateRange
    guest_count: GuestCount
    contact_info: Optional[ContactInfo] = None
    special_requests: str = ""

    # Pricing (whole currency units)
    room_price: int = Field(ge=0)
    room_price_breakdown: List[NightlyPrice] = []
    service_price: int = Field(ge=0, default=0)
    total_price: int = Field(ge=0)
    estimated_price: int = Field(ge=0)
    final_price: Optional[int] = None
    deposit_amount: int = Field(ge=0, default=0)

    # Money received
    paid_deposit_amount: int = Field(ge=0, default=0)
    paid_from_wallet: int = Field(ge=0, default=0)
    paid_from_bonus: int = Field(ge=0, default=0)
    refunded_to_wallet: int = Field(ge=0, default=0)
    refunded_to_bonus: int = Field(ge=0, default=0)

    # Collections (child entities)
    services: List[BookingService] = []

    # Enums/Status
    status: BookingStatus = BookingStatus.PENDING_DEPOSIT
    payment_status: PaymentStatus = PaymentStatus.PENDING
    payment_method: PaymentMethod = PaymentMethod.BANK_TRANSFER
    payment_strategy: Optional[PaymentStrategy] = None

    # Lifecycle details
    proof_image: Optional[str] = None
    invoice_number: Optional[str] = None
    checkout_note: Optional[str] = None
    cancellation_reason: Optional[str] = None
    actual_check_in: Optional[datetime] = None
    actual_check_out: Optional[datetime] = None

    # Metadata
    created_at: datetime = Field(default_factory=_utcnow)
    modified_at: datetime = Field(default_factory=_utcnow)
    version: int = 1

    class Config:
        from_attributes = True

    # ==================== FACTORY METHOD ====================
    @staticmethod
    def create(
        user_id: UUID,
        room: Room,
        date_range: DateRange,
        guest_count: GuestCount,
        breakdown: PriceBreakdown,
        services: List[BookingService],
        deposit_amount: int,
        today: date,
        max_nights: int,
        contact_info: Optional[ContactInfo] = None,
        special_requests: str = "",
        now: Optional[datetime] = None
    ) -> "Booking":
        """Create new booking in pending_deposit with validation"""
        # Validate business rules
        Booking._validate_date_range(date_range, today, max_nights)
        Booking._validate_guest_count(guest_count, room)
        if not room.is_active:
            raise NotFoundError(f"Room {room.room_id} not found")
        if len(breakdown.nights) != date_range.nights():
            raise ValidationError("Price breakdown does not cover every night of the stay")

        room_price = breakdown.total
        service_price = sum(line.line_total for line in services)
        total_price = room_price + service_price
        now = now or _utcnow()

        return Booking(
            user_id=user_id,
            room_id=room.room_id,
            hotel_id=room.hotel_id,
            date_range=date_range,
            guest_count=guest_count,
            contact_info=contact_info,
            special_requests=special_requests,
            room_price=room_price,
            room_price_breakdown=breakdown.nights,
            service_price=service_price,
            total_price=total_price,
            estimated_price=total_price,
            deposit_amount=min(deposit_amount, total_price),
            services=services,
            status=BookingStatus.PENDING_DEPOSIT,
            payment_status=PaymentStatus.PENDING,
            payment_method=PaymentMethod.BANK_TRANSFER,
            created_at=now,
            modified_at=now
        )

    # ==================== STATE TRANSITION METHODS ====================
    def submit_proof(self, proof_image: str, now: Optional[datetime] = None) -> None:
        """Guest uploaded a bank-transfer receipt for the deposit"""
        if not proof_image:
            raise ValidationError("Payment proof is required")
        self._transition(BookingAction.SUBMIT_PROOF)
        self.proof_image = proof_image
        self.payment_method = PaymentMethod.BANK_TRANSFER
        self._touch(now)

    def record_deposit_payment(
        self,
        from_wallet: int,
        from_bonus: int,
        strategy: PaymentStrategy,
        now: Optional[datetime] = None
    ) -> None:
        """Deposit drawn from the wallet; awaits admin approval"""
        self._ensure_allowed(BookingAction.PAY_DEPOSIT)
        self._add_paid(from_wallet, from_bonus)
        self._transition(BookingAction.PAY_DEPOSIT)
        self.paid_deposit_amount += from_wallet + from_bonus
        self.payment_method = PaymentMethod.WALLET
        self.payment_strategy = strategy
        self._touch(now)

    def record_full_payment(
        self,
        from_wallet: int,
        from_bonus: int,
        strategy: PaymentStrategy,
        now: Optional[datetime] = None
    ) -> None:
        """Outstanding balance paid from the wallet; booking is confirmed"""
        self._ensure_allowed(BookingAction.PAY_IN_FULL)
        self._add_paid(from_wallet, from_bonus)
        self._transition(BookingAction.PAY_IN_FULL)
        self.payment_status = PaymentStatus.PAID
        self.payment_method = PaymentMethod.WALLET
        self.payment_strategy = strategy
        self._touch(now)

    def approve(self, now: Optional[datetime] = None) -> None:
        """Admin accepted the deposit"""
        self._transition(BookingAction.APPROVE)
        self.payment_status = PaymentStatus.PAID
        self._touch(now)

    def reject(self, now: Optional[datetime] = None) -> Tuple[int, int]:
        """Admin refused the deposit; guest retries from pending_deposit.

        Returns the (wallet, bonus) amounts that must be credited back.
        """
        self._transition(BookingAction.REJECT)
        refund = self._release_paid()
        self.paid_deposit_amount = 0
        self.proof_image = None
        self._touch(now)
        return refund

    def check_in(self, now: Optional[datetime] = None) -> None:
        """Mark guest as arrived; status stays confirmed"""
        self._transition(BookingAction.CHECK_IN)
        if not self.is_checked_in:
            self.actual_check_in = now or _utcnow()
        self._touch(now)

    def add_service(self, service: Service, quantity: int, now: Optional[datetime] = None) -> BookingService:
        """Attach a service line (or increment it) to a checked-in stay"""
        self._ensure_allowed(BookingAction.ADD_SERVICE)
        if not self.is_checked_in:
            raise InvalidStateTransition("booking", "not checked in", "add service to")
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1")
        if not service.is_active:
            raise NotFoundError(f"Service {service.service_id} not found")

        now = now or _utcnow()
        line = next((s for s in self.services if s.service_id == service.service_id), None)
        if line:
            line.quantity += quantity
        else:
            line = BookingService(
                service_id=service.service_id,
                name=service.name,
                quantity=quantity,
                unit_price=service.price,
                added_at=now
            )
            self.services.append(line)

        self._recalculate_estimate()
        self._touch(now)
        return line

    def mark_service_delivered(self, service_id: UUID, now: Optional[datetime] = None) -> BookingService:
        """Staff confirmed the service was handed over"""
        line = next((s for s in self.services if s.service_id == service_id), None)
        if line is None:
            raise NotFoundError(f"Service {service_id} is not attached to booking {self.booking_id}")
        if line.delivered_at is None:
            line.delivered_at = now or _utcnow()
            self._touch(now)
        return line

    def complete_checkout(
        self,
        from_wallet: int,
        from_bonus: int,
        shortfall: int,
        strategy: PaymentStrategy,
        invoice_number: str,
        note: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> None:
        """Freeze the bill and close the stay"""
        self._ensure_allowed(BookingAction.CHECKOUT)
        self._add_paid(from_wallet, from_bonus)
        self._transition(BookingAction.CHECKOUT)

        now = now or _utcnow()
        self.final_price = self.estimated_price
        self.invoice_number = invoice_number
        self.checkout_note = note
        self.payment_strategy = strategy
        if from_wallet or from_bonus:
            self.payment_method = PaymentMethod.WALLET
        self.payment_status = PaymentStatus.PAID if shortfall == 0 else PaymentStatus.PENDING
        self.actual_check_out = now
        self._touch(now)

    def cancel(self, reason: str, now: Optional[datetime] = None) -> Tuple[int, int]:
        """Soft-cancel the booking.

        Returns the (wallet, bonus) amounts that must be credited back.
        """
        self._transition(BookingAction.CANCEL)
        refund = self._release_paid()
        if self.payment_status == PaymentStatus.PAID or any(refund):
            self.payment_status = PaymentStatus.REFUNDED
        self.cancellation_reason = reason
        self._touch(now)
        return refund

    # ==================== QUERY METHODS ====================
    @property
    def amount_paid(self) -> int:
        return self.paid_from_wallet + self.paid_from_bonus

    @property
    def amount_due(self) -> int:
        """What checkout still has to collect"""
        return max(self.estimated_price - self.amount_paid, 0)

    @property
    def is_checked_in(self) -> bool:
        return self.actual_check_in is not None

    def get_nights(self) -> int:
        """Get number of nights"""
        return self.date_range.nights()

    def can(self, action: BookingAction) -> bool:
        allowed, _ = BOOKING_TRANSITIONS[action]
        return self.status in allowed

    # ==================== PRIVATE METHODS ====================
    def _ensure_allowed(self, action: BookingAction) -> None:
        if not self.can(action):
            raise InvalidStateTransition("booking", self.status.value, action.value.replace("_", " "))

    def _transition(self, action: BookingAction) -> None:
        self._ensure_allowed(action)
        _, target = BOOKING_TRANSITIONS[action]
        self.status = target

    def _add_paid(self, from_wallet: int, from_bonus: int) -> None:
        if from_wallet < 0 or from_bonus < 0:
            raise ValidationError("Paid amounts must not be negative")
        if self.amount_paid + from_wallet + from_bonus > self.estimated_price:
            raise ValidationError("Payment exceeds the estimated price of the booking")
        self.paid_from_wallet += from_wallet
        self.paid_from_bonus += from_bonus

    def _release_paid(self) -> Tuple[int, int]:
        refund = (self.paid_from_wallet, self.paid_from_bonus)
        self.refunded_to_wallet += self.paid_from_wallet
        self.refunded_to_bonus += self.paid_from_bonus
        self.paid_from_wallet = 0
        self.paid_from_bonus = 0
        return refund

    def _recalculate_estimate(self) -> None:
        self.service_price = sum(line.line_total for line in self.services)
        self.estimated_price = self.room_price + self.service_price

    def _touch(self, now: Optional[datetime]) -> None:
        self.modified_at = now or _utcnow()
        self.version += 1

    @staticmethod
    def _validate_date_range(date_range: DateRange, today: date, max_nights: int) -> None:
        """Validate date range business rules"""
        # Check-in date >= today
        if date_range.check_in < today:
            raise ValidationError("Check-in date must be today or later")

        nights = date_range.nights()
        if nights < 1:
            raise ValidationError("Minimum stay is 1 night")
        if nights > max_nights:
            raise ValidationError(f"Maximum stay is {max_nights} nights")

    @staticmethod
    def _validate_guest_count(guest_count: GuestCount, room: Room) -> None:
        """Guests must fit the room capacity"""
        if guest_count.adults < 1:
            raise ValidationError("At least 1 adult is required")
        if guest_count.adults > room.capacity_adults:
            raise ValidationError(f"This room allows at most {room.capacity_adults} adults")
        if guest_count.children > room.capacity_children:
            raise ValidationError(f"This room allows at most {room.capacity_children} children")


# ============================================================================
# WALLET
# ============================================================================

class WalletBalance(BaseModel):
    """Cached balances of one user; rebuilt only by folding ledger entries"""
    user_id: UUID
    wallet_balance: int = Field(ge=0, default=0)
    bonus_balance: int = Field(ge=0, default=0)
    version: int = 0
    updated_at: datetime = Field(default_factory=_utcnow)

    @property
    def total_balance(self) -> int:
        return self.wallet_balance + self.bonus_balance

    class Config:
        frozen = True
        from_attributes = True


class WalletTransaction(BaseModel):
    """Append-only ledger entry"""
    transaction_id: UUID = Field(default_factory=uuid4)
    user_id: UUID
    type: TransactionType
    amount: int = Field(ge=0)
    bonus_amount: int = Field(ge=0, default=0)
    balance_before: int
    balance_after: int
    bonus_balance_before: int
    bonus_balance_after: int
    description: str
    reference: Optional[TransactionReference] = None
    status: TransactionStatus = TransactionStatus.COMPLETED
    created_at: datetime = Field(default_factory=_utcnow)

    @staticmethod
    def deltas_for(type: TransactionType, amount: int, bonus_amount: int = 0) -> Tuple[int, int]:
        """Signed (main, bonus) effect of a transaction type"""
        if type == TransactionType.DEPOSIT:
            return amount, 0
        if type == TransactionType.WITHDRAWAL:
            return -amount, 0
        if type == TransactionType.PAYMENT:
            return -amount, -bonus_amount
        if type == TransactionType.REFUND:
            return amount, bonus_amount
        if type == TransactionType.BONUS:
            return 0, amount
        raise ValidationError(f"Unknown transaction type: {type}")

    @property
    def deltas(self) -> Tuple[int, int]:
        return WalletTransaction.deltas_for(self.type, self.amount, self.bonus_amount)

    @property
    def total_amount(self) -> int:
        """Money moved by the entry across both balances"""
        main, bonus = self.deltas
        return abs(main) + abs(bonus)

    def is_consistent(self) -> bool:
        """Recorded before/after balances match the signed amounts"""
        main, bonus = self.deltas
        return (
            self.balance_after - self.balance_before == main
            and self.bonus_balance_after - self.bonus_balance_before == bonus
        )

    class Config:
        from_attributes = True


class DepositRequest(BaseModel):
    """Top-up request awaiting admin review"""
    request_id: UUID = Field(default_factory=uuid4)
    user_id: UUID
    amount: int = Field(gt=0)
    bonus_amount: int = Field(ge=0, default=0)
    proof_image: str = ""
    bank_info: BankInfo
    status: DepositStatus = DepositStatus.PENDING
    admin_note: Optional[str] = None
    approved_by: Optional[UUID] = None
    approved_at: Optional[datetime] = None
    admin_signature: Optional[str] = None
    is_admin_created: bool = False
    created_at: datetime = Field(default_factory=_utcnow)

    class Config:
        from_attributes = True

    def approve(self, admin_id: UUID, note: Optional[str] = None, now: Optional[datetime] = None) -> None:
        """pending -> approved"""
        self._ensure_pending("approve")
        self.status = DepositStatus.APPROVED
        self._record_decision(admin_id, note, now)

    def reject(self, admin_id: UUID, note: Optional[str] = None, now: Optional[datetime] = None) -> None:
        """pending -> rejected"""
        self._ensure_pending("reject")
        self.status = DepositStatus.REJECTED
        self._record_decision(admin_id, note, now)

    def _ensure_pending(self, action: str) -> None:
        if self.status != DepositStatus.PENDING:
            raise InvalidStateTransition("deposit request", self.status.value, action)

    def _record_decision(self, admin_id: UUID, note: Optional[str], now: Optional[datetime]) -> None:
        self.admin_note = note
        self.approved_by = admin_id
        self.approved_at = now or _utcnow()


class WithdrawalRequest(BaseModel):
    """Cash-out request; admin-created ones need the holder's confirmation"""
    request_id: UUID = Field(default_factory=uuid4)
    user_id: UUID
    amount: int = Field(gt=0)
    bank_info: BankInfo
    status: WithdrawalStatus = WithdrawalStatus.PENDING
    admin_note: Optional[str] = None
    processed_by: Optional[UUID] = None
    processed_at: Optional[datetime] = None
    is_admin_created: bool = False
    confirmation_token: Optional[str] = None
    user_signature: Optional[str] = None
    confirmed_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=_utcnow)

    class Config:
        from_attributes = True

    def approve(self, admin_id: UUID, note: Optional[str] = None, now: Optional[datetime] = None) -> None:
        """pending -> approved (money leaves the wallet now)"""
        self._ensure_status("approve", WithdrawalStatus.PENDING)
        self.status = WithdrawalStatus.APPROVED
        self._record_processing(admin_id, note, now)

    def complete(self, admin_id: UUID, note: Optional[str] = None, now: Optional[datetime] = None) -> None:
        """approved -> completed (payout done, no money moves)"""
        self._ensure_status("complete", WithdrawalStatus.APPROVED)
        self.status = WithdrawalStatus.COMPLETED
        self._record_processing(admin_id, note, now)

    def reject(self, admin_id: UUID, note: Optional[str] = None, now: Optional[datetime] = None) -> bool:
        """pending|approved -> rejected; True when the debit must be reversed"""
        self._ensure_status("reject", WithdrawalStatus.PENDING, WithdrawalStatus.APPROVED)
        was_approved = self.status == WithdrawalStatus.APPROVED
        self.status = WithdrawalStatus.REJECTED
        self._record_processing(admin_id, note, now)
        return was_approved

    def confirm(self, signature: str, now: Optional[datetime] = None) -> None:
        """pending_confirmation -> completed, signed by the account holder"""
        if not signature:
            raise ValidationError("User signature is required")
        self._ensure_status("confirm", WithdrawalStatus.PENDING_CONFIRMATION)
        self.status = WithdrawalStatus.COMPLETED
        self.user_signature = signature
        self.confirmed_at = now or _utcnow()

    def _ensure_status(self, action: str, *allowed: WithdrawalStatus) -> None:
        if self.status not in allowed:
            raise InvalidStateTransition("withdrawal request", self.status.value, action)

    def _record_processing(self, admin_id: UUID, note: Optional[str], now: Optional[datetime]) -> None:
        if note is not None:
            self.admin_note = note
        self.processed_by = admin_id
        self.processed_at = now or _utcnow()
