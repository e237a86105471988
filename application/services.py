"""Application Services - Booking use cases"""
import logging
from datetime import date, datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, List, Optional, Tuple
from uuid import UUID

from pydantic import BaseModel

from application.availability import AvailabilityChecker
from application.ledger import Ledger
from application.notifications import booking_event
from application.pricing import PricingService
from domain.allocation import allocate
from domain.auth import User
from domain.entities import Booking, BookingService as BookingServiceLine
from domain.enums import (
    BookingAction, BookingStatus, PaymentStrategy, TransactionType, ReferenceKind, ModifierKind
)
from domain.exceptions import (
    NotFoundError, UnauthorizedError, InsufficientFundsError, ValidationError, InvalidStateTransition
)
from domain.value_objects import (
    DateRange, GuestCount, ContactInfo, NightlyPrice, TransactionReference
)

logger = logging.getLogger(__name__)


class BookingBill(BaseModel):
    """Running bill of a stay"""
    booking_id: UUID
    status: BookingStatus
    nights: int
    room_price: int
    room_price_breakdown: List[NightlyPrice]
    services: List[BookingServiceLine]
    service_price: int
    estimated_price: int
    deposit_amount: int
    paid_from_wallet: int
    paid_from_bonus: int
    amount_paid: int
    amount_due: int


class Invoice(BaseModel):
    """Final document of a completed stay"""
    invoice_number: str
    booking_id: UUID
    user_id: UUID
    room_id: UUID
    check_in: date
    check_out: date
    room_price: int
    service_price: int
    final_price: int
    paid_from_wallet: int
    paid_from_bonus: int
    outstanding: int
    payment_status: str
    issued_at: datetime


def compute_deposit(total_price: int, kind: str, value: int) -> int:
    """Required deposit for a booking, never above its total"""
    if kind == ModifierKind.PERCENTAGE.value:
        raw = Decimal(total_price) * Decimal(value) / 100
        deposit = int(raw.quantize(Decimal(1), rounding=ROUND_HALF_UP))
    elif kind == ModifierKind.FIXED.value:
        deposit = value
    else:
        raise ValueError(f"Unknown deposit kind: {kind}")
    return max(min(deposit, total_price), 0)


def generate_invoice_number(booking_id: UUID, now: datetime) -> str:
    """INV-<epoch ms>-<last 6 hex chars of the booking id>"""
    epoch_ms = int(now.replace(tzinfo=timezone.utc).timestamp() * 1000)
    return f"INV-{epoch_ms}-{booking_id.hex[-6:].upper()}"


class BookingService:
    """Service for Booking business use cases"""

    def __init__(
        self,
        uow_factory: Callable,
        pricing: PricingService,
        availability: AvailabilityChecker,
        ledger: Ledger,
        deposit_kind: str = "percentage",
        deposit_value: int = 30,
        max_stay_nights: int = 30,
        clock: Callable[[], datetime] = datetime.utcnow
    ):
        self.uow_factory = uow_factory
        self.pricing = pricing
        self.availability = availability
        self.ledger = ledger
        self.deposit_kind = deposit_kind
        self.deposit_value = deposit_value
        self.max_stay_nights = max_stay_nights
        self.clock = clock

    # ==================== CREATION ====================
    async def create_booking(
        self,
        user: User,
        room_id: UUID,
        check_in: date,
        check_out: date,
        adults: int,
        children: int = 0,
        services: Optional[List[Tuple[UUID, int]]] = None,
        contact_info: Optional[ContactInfo] = None,
        special_requests: str = ""
    ) -> Booking:
        """Create new booking in pending_deposit with full validation"""
        if check_out <= check_in:
            raise ValidationError("Check-out must be after check-in")
        if adults < 1:
            raise ValidationError("At least 1 adult is required")
        if children < 0:
            raise ValidationError("Children count must not be negative")

        # Create value objects
        date_range = DateRange(check_in=check_in, check_out=check_out)
        guest_count = GuestCount(adults=adults, children=children)

        async def operation(uow):
            room = await uow.rooms.find_by_id(room_id)
            if not room or not room.is_active:
                raise NotFoundError(f"Room {room_id} not found")

            await self.availability.ensure_available(room, check_in, check_out)
            breakdown = await self.pricing.price_breakdown(room_id, check_in, check_out, room.price)
            lines = await self._snapshot_services(uow, services or [])

            now = self.clock()
            total = breakdown.total + sum(line.line_total for line in lines)
            booking = Booking.create(
                user_id=user.user_id,
                room=room,
                date_range=date_range,
                guest_count=guest_count,
                breakdown=breakdown,
                services=lines,
                deposit_amount=compute_deposit(total, self.deposit_kind, self.deposit_value),
                today=now.date(),
                max_nights=self.max_stay_nights,
                contact_info=contact_info,
                special_requests=special_requests,
                now=now
            )
            await self.availability.place(uow, booking, room)
            uow.collect(booking_event(
                booking.user_id, booking.booking_id, "booking_created", "Booking created",
                f"Your booking for {room.name} from {check_in} to {check_out} awaits a deposit."
            ))
            return booking

        booking = await self.uow_factory().run(operation)
        logger.info("Booking %s created for user %s (total %d)", booking.booking_id, user.user_id, booking.total_price)
        return booking

    # ==================== PAYMENT ====================
    async def submit_proof(self, user: User, booking_id: UUID, proof_image: str) -> Booking:
        """Attach a bank-transfer receipt; booking waits for admin approval"""

        async def operation(uow):
            booking = await self._load(uow, booking_id, user)
            booking.submit_proof(proof_image, now=self.clock())
            await uow.bookings.save(booking)
            return booking

        booking = await self.uow_factory().run(operation)
        self._log_transition(booking, "proof submitted")
        return booking

    async def pay_deposit_from_wallet(
        self,
        user: User,
        booking_id: UUID,
        strategy: PaymentStrategy = PaymentStrategy.USE_BONUS
    ) -> Booking:
        """Draw the required deposit from the wallet"""

        async def operation(uow):
            booking = await self._load(uow, booking_id, user)
            if not booking.can(BookingAction.PAY_DEPOSIT):
                raise InvalidStateTransition("booking", booking.status.value, "pay deposit")

            amount = min(booking.deposit_amount, booking.amount_due)
            from_wallet, from_bonus = await self._charge(uow, booking, amount, strategy, "Deposit")
            booking.record_deposit_payment(from_wallet, from_bonus, strategy, now=self.clock())
            await uow.bookings.save(booking)
            uow.collect(booking_event(
                booking.user_id, booking.booking_id, "deposit_paid", "Deposit paid",
                f"Deposit of {amount} paid from your wallet; awaiting approval."
            ))
            return booking

        booking = await self.uow_factory().run(operation)
        self._log_transition(booking, "deposit paid from wallet")
        return booking

    async def pay_with_wallet(
        self,
        user: User,
        booking_id: UUID,
        strategy: PaymentStrategy = PaymentStrategy.USE_BONUS
    ) -> Booking:
        """Pay the whole outstanding amount from the wallet and confirm"""

        async def operation(uow):
            booking = await self._load(uow, booking_id, user)
            if not booking.can(BookingAction.PAY_IN_FULL):
                raise InvalidStateTransition("booking", booking.status.value, "pay in full")

            amount = booking.amount_due
            from_wallet, from_bonus = await self._charge(uow, booking, amount, strategy, "Full payment")
            booking.record_full_payment(from_wallet, from_bonus, strategy, now=self.clock())
            await uow.bookings.save(booking)
            uow.collect(booking_event(
                booking.user_id, booking.booking_id, "booking_confirmed", "Booking confirmed",
                f"Payment of {amount} received; your booking is confirmed."
            ))
            return booking

        booking = await self.uow_factory().run(operation)
        self._log_transition(booking, "paid in full from wallet")
        return booking

    # ==================== ADMIN REVIEW ====================
    async def approve(self, admin: User, booking_id: UUID) -> Booking:
        """Accept the deposit and confirm the booking"""
        self._ensure_admin(admin)

        async def operation(uow):
            booking = await self._load(uow, booking_id)
            booking.approve(now=self.clock())
            await uow.bookings.save(booking)
            uow.collect(booking_event(
                booking.user_id, booking.booking_id, "booking_confirmed", "Booking confirmed",
                "Your deposit was approved and the booking is confirmed."
            ))
            return booking

        booking = await self.uow_factory().run(operation)
        self._log_transition(booking, f"approved by {admin.username}")
        return booking

    async def reject(self, admin: User, booking_id: UUID, reason: Optional[str] = None) -> Booking:
        """Refuse the deposit; wallet-funded amounts go back to the wallet"""
        self._ensure_admin(admin)

        async def operation(uow):
            booking = await self._load(uow, booking_id)
            wallet_refund, bonus_refund = booking.reject(now=self.clock())
            await self._refund(uow, booking, wallet_refund, bonus_refund, "Refund for rejected deposit")
            await uow.bookings.save(booking)
            uow.collect(booking_event(
                booking.user_id, booking.booking_id, "deposit_rejected", "Deposit rejected",
                reason or "Your deposit was rejected. Please submit a new payment."
            ))
            return booking

        booking = await self.uow_factory().run(operation)
        self._log_transition(booking, f"rejected by {admin.username}")
        return booking

    # ==================== STAY ====================
    async def check_in(self, admin: User, booking_id: UUID) -> Booking:
        """Record the guest's arrival"""
        self._ensure_admin(admin)

        async def operation(uow):
            booking = await self._load(uow, booking_id)
            booking.check_in(now=self.clock())
            await uow.bookings.save(booking)
            return booking

        booking = await self.uow_factory().run(operation)
        self._log_transition(booking, "checked in")
        return booking

    async def add_service(self, user: User, booking_id: UUID, service_id: UUID, quantity: int = 1) -> Booking:
        """Order an extra service during the stay"""

        async def operation(uow):
            booking = await self._load(uow, booking_id, user)
            service = await uow.services.find_by_id(service_id)
            if not service:
                raise NotFoundError(f"Service {service_id} not found")
            booking.add_service(service, quantity, now=self.clock())
            await uow.bookings.save(booking)
            return booking

        booking = await self.uow_factory().run(operation)
        logger.info(
            "Service %s x%d added to booking %s (estimated %d)",
            service_id, quantity, booking.booking_id, booking.estimated_price
        )
        return booking

    async def mark_service_delivered(self, admin: User, booking_id: UUID, service_id: UUID) -> Booking:
        """Staff confirms a service line was delivered"""
        self._ensure_admin(admin)

        async def operation(uow):
            booking = await self._load(uow, booking_id)
            booking.mark_service_delivered(service_id, now=self.clock())
            await uow.bookings.save(booking)
            return booking

        return await self.uow_factory().run(operation)

    async def checkout(
        self,
        user: User,
        booking_id: UUID,
        strategy: PaymentStrategy = PaymentStrategy.USE_BONUS,
        note: Optional[str] = None
    ) -> Booking:
        """Settle what the wallet can cover, issue the invoice and complete the stay"""

        async def operation(uow):
            booking = await self._load(uow, booking_id, user)
            if not booking.can(BookingAction.CHECKOUT):
                raise InvalidStateTransition("booking", booking.status.value, "checkout")

            amount_due = booking.amount_due
            balance = await self.ledger.get_balance(uow, booking.user_id)
            allocation = allocate(amount_due, balance.wallet_balance, balance.bonus_balance, strategy)

            if allocation.total_drawn > 0:
                await self.ledger.apply_transaction(
                    uow,
                    booking.user_id,
                    TransactionType.PAYMENT,
                    amount=allocation.from_wallet,
                    bonus_amount=allocation.from_bonus,
                    reference=TransactionReference(kind=ReferenceKind.BOOKING, reference_id=booking.booking_id),
                    description=f"Checkout payment for booking {booking.booking_id}"
                )

            now = self.clock()
            booking.complete_checkout(
                from_wallet=allocation.from_wallet,
                from_bonus=allocation.from_bonus,
                shortfall=allocation.shortfall,
                strategy=strategy,
                invoice_number=generate_invoice_number(booking.booking_id, now),
                note=note,
                now=now
            )
            await uow.bookings.save(booking)
            uow.collect(booking_event(
                booking.user_id, booking.booking_id, "booking_completed", "Checked out",
                f"Invoice {booking.invoice_number} issued for {booking.final_price}."
            ))
            return booking

        booking = await self.uow_factory().run(operation)
        self._log_transition(booking, f"checked out with invoice {booking.invoice_number}")
        return booking

    async def cancel(self, user: User, booking_id: UUID, reason: str = "") -> Booking:
        """Cancel a booking that has not completed; wallet funds are refunded"""

        async def operation(uow):
            booking = await self._load(uow, booking_id, user)
            wallet_refund, bonus_refund = booking.cancel(reason, now=self.clock())
            await self._refund(uow, booking, wallet_refund, bonus_refund, "Refund for cancelled booking")
            await uow.bookings.save(booking)
            uow.collect(booking_event(
                booking.user_id, booking.booking_id, "booking_cancelled", "Booking cancelled",
                reason or "Your booking was cancelled."
            ))
            return booking

        booking = await self.uow_factory().run(operation)
        self._log_transition(booking, "cancelled")
        return booking

    # ==================== QUERIES ====================
    async def get_booking(self, user: User, booking_id: UUID) -> Booking:
        """Get booking by ID"""
        async with self.uow_factory() as uow:
            return await self._load(uow, booking_id, user)

    async def list_bookings(
        self,
        user: User,
        status: Optional[BookingStatus] = None,
        user_id: Optional[UUID] = None
    ) -> List[Booking]:
        """Own bookings for guests, every booking (optionally per user) for admins"""
        async with self.uow_factory() as uow:
            if user.is_admin:
                bookings = await (uow.bookings.find_by_user_id(user_id) if user_id else uow.bookings.find_all())
            else:
                bookings = await uow.bookings.find_by_user_id(user.user_id)
        if status:
            bookings = [b for b in bookings if b.status == status]
        return sorted(bookings, key=lambda b: b.created_at, reverse=True)

    async def get_bill(self, user: User, booking_id: UUID) -> BookingBill:
        """Current bill including services ordered so far"""
        booking = await self.get_booking(user, booking_id)
        return BookingBill(
            booking_id=booking.booking_id,
            status=booking.status,
            nights=booking.get_nights(),
            room_price=booking.room_price,
            room_price_breakdown=booking.room_price_breakdown,
            services=booking.services,
            service_price=booking.service_price,
            estimated_price=booking.estimated_price,
            deposit_amount=booking.deposit_amount,
            paid_from_wallet=booking.paid_from_wallet,
            paid_from_bonus=booking.paid_from_bonus,
            amount_paid=booking.amount_paid,
            amount_due=booking.amount_due
        )

    async def get_invoice(self, user: User, booking_id: UUID) -> Invoice:
        """Invoice of a completed booking"""
        booking = await self.get_booking(user, booking_id)
        if booking.status != BookingStatus.COMPLETED or not booking.invoice_number:
            raise InvalidStateTransition("booking", booking.status.value, "issue invoice for")
        return Invoice(
            invoice_number=booking.invoice_number,
            booking_id=booking.booking_id,
            user_id=booking.user_id,
            room_id=booking.room_id,
            check_in=booking.date_range.check_in,
            check_out=booking.date_range.check_out,
            room_price=booking.room_price,
            service_price=booking.service_price,
            final_price=booking.final_price,
            paid_from_wallet=booking.paid_from_wallet,
            paid_from_bonus=booking.paid_from_bonus,
            outstanding=booking.final_price - booking.amount_paid,
            payment_status=booking.payment_status.value,
            issued_at=booking.actual_check_out
        )

    # ==================== PRIVATE METHODS ====================
    async def _load(self, uow, booking_id: UUID, user: Optional[User] = None) -> Booking:
        booking = await uow.bookings.find_by_id(booking_id)
        if not booking:
            raise NotFoundError(f"Booking {booking_id} not found")
        if user is not None and not user.is_admin and booking.user_id != user.user_id:
            raise UnauthorizedError("You do not have access to this booking")
        return booking

    async def _snapshot_services(self, uow, requested: List[Tuple[UUID, int]]) -> List[BookingServiceLine]:
        lines: List[BookingServiceLine] = []
        now = self.clock()
        for service_id, quantity in requested:
            if quantity < 1:
                raise ValidationError("Service quantity must be at least 1")
            service = await uow.services.find_by_id(service_id)
            if not service or not service.is_active:
                raise NotFoundError(f"Service {service_id} not found")
            existing = next((line for line in lines if line.service_id == service_id), None)
            if existing:
                existing.quantity += quantity
                continue
            lines.append(BookingServiceLine(
                service_id=service.service_id,
                name=service.name,
                quantity=quantity,
                unit_price=service.price,
                added_at=now
            ))
        return lines

    async def _charge(self, uow, booking: Booking, amount: int, strategy: PaymentStrategy, label: str) -> Tuple[int, int]:
        """Debit amount from the wallet; any shortfall aborts the operation"""
        if amount <= 0:
            raise ValidationError("Nothing left to pay for this booking")
        balance = await self.ledger.get_balance(uow, booking.user_id)
        allocation = allocate(amount, balance.wallet_balance, balance.bonus_balance, strategy)
        if not allocation.is_fully_covered:
            raise InsufficientFundsError(
                f"Insufficient balance: required {amount}, available {allocation.total_drawn}"
            )
        await self.ledger.apply_transaction(
            uow,
            booking.user_id,
            TransactionType.PAYMENT,
            amount=allocation.from_wallet,
            bonus_amount=allocation.from_bonus,
            reference=TransactionReference(kind=ReferenceKind.BOOKING, reference_id=booking.booking_id),
            description=f"{label} for booking {booking.booking_id}"
        )
        return allocation.from_wallet, allocation.from_bonus

    async def _refund(self, uow, booking: Booking, wallet_amount: int, bonus_amount: int, description: str) -> None:
        if wallet_amount == 0 and bonus_amount == 0:
            return
        await self.ledger.apply_transaction(
            uow,
            booking.user_id,
            TransactionType.REFUND,
            amount=wallet_amount,
            bonus_amount=bonus_amount,
            reference=TransactionReference(kind=ReferenceKind.BOOKING, reference_id=booking.booking_id),
            description=f"{description} {booking.booking_id}"
        )

    @staticmethod
    def _ensure_admin(user: User) -> None:
        if not user.is_admin:
            raise UnauthorizedError("Admin privileges required")

    @staticmethod
    def _log_transition(booking: Booking, what: str) -> None:
        logger.info("Booking %s %s -> status=%s payment=%s", booking.booking_id, what, booking.status.value, booking.payment_status.value)
