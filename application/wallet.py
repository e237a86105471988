"""Wallet Service - deposit and withdrawal workflows on top of the ledger"""
import logging
import secrets
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Tuple
from uuid import UUID

from pydantic import BaseModel

from application.ledger import Ledger
from application.notifications import wallet_event
from domain.auth import User
from domain.entities import (
    DepositRequest, WithdrawalRequest, WalletBalance, WalletTransaction, Promotion
)
from domain.enums import (
    BookingStatus, PaymentStatus, TransactionType, TransactionStatus,
    ReferenceKind, DepositStatus, WithdrawalStatus
)
from domain.exceptions import (
    ValidationError, NotFoundError, UnauthorizedError, InsufficientFundsError
)
from domain.value_objects import BankInfo, TransactionReference
from infrastructure.expiring_store import ExpiringStore

logger = logging.getLogger(__name__)

# Bookings whose unpaid amount is still reserved against the wallet
OUTSTANDING_STATUSES = frozenset({
    BookingStatus.PENDING_DEPOSIT, BookingStatus.AWAITING_APPROVAL, BookingStatus.CONFIRMED
})


class WalletSummary(BaseModel):
    """Balances as shown to the wallet owner"""
    user_id: UUID
    wallet_balance: int
    bonus_balance: int
    total_balance: int
    available_balance: int


def select_promotion(promotions: List[Promotion], amount: int, now: datetime) -> Optional[Promotion]:
    """Highest threshold not above amount among applicable promotions"""
    applicable = [p for p in promotions if p.is_applicable(amount, now)]
    if not applicable:
        return None
    return max(applicable, key=lambda p: p.deposit_amount)


class WalletService:
    """Service for wallet use cases"""

    def __init__(
        self,
        uow_factory: Callable,
        ledger: Ledger,
        confirmations: ExpiringStore,
        min_deposit_amount: int = 10000,
        min_withdrawal_amount: int = 10000,
        min_admin_transaction_amount: int = 1000,
        confirmation_ttl: timedelta = timedelta(hours=24),
        clock: Callable[[], datetime] = datetime.utcnow
    ):
        self.uow_factory = uow_factory
        self.ledger = ledger
        self.confirmations = confirmations
        self.min_deposit_amount = min_deposit_amount
        self.min_withdrawal_amount = min_withdrawal_amount
        self.min_admin_transaction_amount = min_admin_transaction_amount
        self.confirmation_ttl = confirmation_ttl
        self.clock = clock

    # ==================== BALANCES ====================
    async def open_wallet(self, user_id: UUID) -> WalletBalance:
        return await self.uow_factory().run(lambda uow: self.ledger.open_wallet(uow, user_id))

    async def get_summary(self, user_id: UUID) -> WalletSummary:
        """Wallet, bonus and spendable balance of a user"""
        async with self.uow_factory() as uow:
            balance = await self.ledger.get_balance(uow, user_id)
            available = await self._available_balance(uow, balance)
        return WalletSummary(
            user_id=user_id,
            wallet_balance=balance.wallet_balance,
            bonus_balance=balance.bonus_balance,
            total_balance=balance.total_balance,
            available_balance=available
        )

    async def list_transactions(
        self,
        user_id: UUID,
        type: Optional[TransactionType] = None,
        page: int = 1,
        limit: int = 20
    ) -> Tuple[List[WalletTransaction], int]:
        async with self.uow_factory() as uow:
            await self.ledger.get_balance(uow, user_id)
            return await self.ledger.list_transactions(uow, user_id, type, page, limit)

    async def list_all_transactions(
        self,
        admin: User,
        type: Optional[TransactionType] = None,
        user_id: Optional[UUID] = None
    ) -> List[WalletTransaction]:
        """Every ledger entry, newest first"""
        self._ensure_admin(admin)
        async with self.uow_factory() as uow:
            transactions = await uow.transactions.find_all()
        transactions = [
            t for t in transactions
            if (type is None or t.type == type) and (user_id is None or t.user_id == user_id)
        ]
        transactions.reverse()
        return transactions

    async def list_wallets(self, admin: User) -> List[WalletBalance]:
        self._ensure_admin(admin)
        async with self.uow_factory() as uow:
            return await uow.balances.find_all()

    async def reconcile(self, admin: User, user_id: UUID) -> WalletBalance:
        """Verify the cached balance against the full ledger history"""
        self._ensure_admin(admin)
        async with self.uow_factory() as uow:
            return await self.ledger.reconcile(uow, user_id)

    # ==================== DEPOSITS ====================
    async def create_deposit_request(
        self,
        user: User,
        amount: int,
        proof_image: str,
        bank_info: BankInfo
    ) -> DepositRequest:
        """Guest announces a bank transfer; bonus is fixed at request time"""
        if amount < self.min_deposit_amount:
            raise ValidationError(f"Minimum deposit amount is {self.min_deposit_amount}")
        if not proof_image:
            raise ValidationError("Payment proof is required")

        async def operation(uow):
            await self.ledger.get_balance(uow, user.user_id)
            bonus = await self._bonus_for(uow, amount)
            request = DepositRequest(
                user_id=user.user_id,
                amount=amount,
                bonus_amount=bonus,
                proof_image=proof_image,
                bank_info=bank_info,
                created_at=self.clock()
            )
            await uow.deposits.save(request)
            return request

        request = await self.uow_factory().run(operation)
        logger.info("Deposit request %s created by user %s: amount=%d bonus=%d",
                    request.request_id, user.user_id, amount, request.bonus_amount)
        return request

    async def list_deposit_requests(
        self,
        user: User,
        status: Optional[DepositStatus] = None,
        all_users: bool = False
    ) -> List[DepositRequest]:
        if all_users:
            self._ensure_admin(user)
        async with self.uow_factory() as uow:
            return await uow.deposits.find_all(None if all_users else user.user_id, status)

    async def approve_deposit(self, admin: User, request_id: UUID, note: Optional[str] = None) -> DepositRequest:
        """Credit the deposit and its promotion bonus"""
        self._ensure_admin(admin)

        async def operation(uow):
            request = await self._load_deposit(uow, request_id)
            request.approve(admin.user_id, note, now=self.clock())
            await self._credit_deposit(uow, request)
            await uow.deposits.save(request)
            uow.collect(wallet_event(
                request.user_id, request.request_id, "deposit_request", "deposit_approved",
                "Deposit approved", f"{request.amount} was added to your wallet."
            ))
            return request

        request = await self.uow_factory().run(operation)
        logger.info("Deposit request %s approved by %s", request_id, admin.username)
        return request

    async def reject_deposit(self, admin: User, request_id: UUID, note: Optional[str] = None) -> DepositRequest:
        self._ensure_admin(admin)

        async def operation(uow):
            request = await self._load_deposit(uow, request_id)
            request.reject(admin.user_id, note, now=self.clock())
            await uow.deposits.save(request)
            uow.collect(wallet_event(
                request.user_id, request.request_id, "deposit_request", "deposit_rejected",
                "Deposit rejected", note or "Your deposit request was rejected."
            ))
            return request

        request = await self.uow_factory().run(operation)
        logger.info("Deposit request %s rejected by %s", request_id, admin.username)
        return request

    async def admin_create_deposit(
        self,
        admin: User,
        user_id: UUID,
        amount: int,
        admin_signature: str,
        note: Optional[str] = None
    ) -> DepositRequest:
        """Signed deposit (e.g. cash at the desk), approved on creation"""
        self._ensure_admin(admin)
        if amount < self.min_admin_transaction_amount:
            raise ValidationError(f"Minimum amount is {self.min_admin_transaction_amount}")
        if not admin_signature:
            raise ValidationError("Admin signature is required")

        async def operation(uow):
            await self.ledger.get_balance(uow, user_id)
            now = self.clock()
            request = DepositRequest(
                user_id=user_id,
                amount=amount,
                bonus_amount=await self._bonus_for(uow, amount),
                bank_info=BankInfo(bank_name="Cash", account_number="N/A", account_name=admin.full_name or admin.username),
                admin_signature=admin_signature,
                is_admin_created=True,
                created_at=now
            )
            request.approve(admin.user_id, note, now=now)
            await self._credit_deposit(uow, request)
            await uow.deposits.save(request)
            uow.collect(wallet_event(
                user_id, request.request_id, "deposit_request", "deposit_approved",
                "Deposit received", f"{amount} was added to your wallet."
            ))
            return request

        request = await self.uow_factory().run(operation)
        logger.info("Admin %s deposited %d for user %s", admin.username, amount, user_id)
        return request

    # ==================== WITHDRAWALS ====================
    async def create_withdrawal_request(self, user: User, amount: int, bank_info: BankInfo) -> WithdrawalRequest:
        """Ask for a payout; money stays in the wallet until approval"""
        if amount < self.min_withdrawal_amount:
            raise ValidationError(f"Minimum withdrawal amount is {self.min_withdrawal_amount}")

        async def operation(uow):
            balance = await self.ledger.get_balance(uow, user.user_id)
            available = await self._available_balance(uow, balance)
            if amount > available:
                raise InsufficientFundsError(
                    f"Insufficient balance. Available: {available} (excluding pending payments and withdrawals)"
                )
            request = WithdrawalRequest(
                user_id=user.user_id,
                amount=amount,
                bank_info=bank_info,
                created_at=self.clock()
            )
            await uow.withdrawals.save(request)
            return request

        request = await self.uow_factory().run(operation)
        logger.info("Withdrawal request %s created by user %s: amount=%d", request.request_id, user.user_id, amount)
        return request

    async def list_withdrawal_requests(
        self,
        user: User,
        status: Optional[WithdrawalStatus] = None,
        all_users: bool = False
    ) -> List[WithdrawalRequest]:
        if all_users:
            self._ensure_admin(user)
        async with self.uow_factory() as uow:
            return await uow.withdrawals.find_all(None if all_users else user.user_id, status)

    async def approve_withdrawal(self, admin: User, request_id: UUID, note: Optional[str] = None) -> WithdrawalRequest:
        """Debit the wallet; the ledger entry stays pending until the payout completes"""
        self._ensure_admin(admin)

        async def operation(uow):
            request = await self._load_withdrawal(uow, request_id)
            request.approve(admin.user_id, note, now=self.clock())
            await self.ledger.apply_transaction(
                uow,
                request.user_id,
                TransactionType.WITHDRAWAL,
                amount=request.amount,
                reference=self._reference(request),
                description=f"Withdrawal to {request.bank_info.bank_name} {request.bank_info.account_number}",
                status=TransactionStatus.PENDING
            )
            await uow.withdrawals.save(request)
            uow.collect(wallet_event(
                request.user_id, request.request_id, "withdrawal_request", "withdrawal_approved",
                "Withdrawal approved", f"{request.amount} will be transferred to your bank account."
            ))
            return request

        request = await self.uow_factory().run(operation)
        logger.info("Withdrawal request %s approved by %s", request_id, admin.username)
        return request

    async def complete_withdrawal(self, admin: User, request_id: UUID, note: Optional[str] = None) -> WithdrawalRequest:
        """Payout done; only the pending ledger entry changes status"""
        self._ensure_admin(admin)

        async def operation(uow):
            request = await self._load_withdrawal(uow, request_id)
            request.complete(admin.user_id, note, now=self.clock())
            pending = await self._pending_withdrawal_entry(uow, request)
            if pending:
                await self.ledger.mark_completed(uow, pending.transaction_id)
            await uow.withdrawals.save(request)
            uow.collect(wallet_event(
                request.user_id, request.request_id, "withdrawal_request", "withdrawal_completed",
                "Withdrawal completed", f"{request.amount} was transferred to your bank account."
            ))
            return request

        request = await self.uow_factory().run(operation)
        logger.info("Withdrawal request %s completed by %s", request_id, admin.username)
        return request

    async def reject_withdrawal(self, admin: User, request_id: UUID, note: Optional[str] = None) -> WithdrawalRequest:
        """Refuse a payout; an approved one is credited back"""
        self._ensure_admin(admin)

        async def operation(uow):
            request = await self._load_withdrawal(uow, request_id)
            was_debited = request.reject(admin.user_id, note, now=self.clock())
            if was_debited:
                await self.ledger.apply_transaction(
                    uow,
                    request.user_id,
                    TransactionType.REFUND,
                    amount=request.amount,
                    reference=self._reference(request),
                    description="Refund for rejected withdrawal"
                )
            await uow.withdrawals.save(request)
            uow.collect(wallet_event(
                request.user_id, request.request_id, "withdrawal_request", "withdrawal_rejected",
                "Withdrawal rejected", note or "Your withdrawal request was rejected."
            ))
            return request

        request = await self.uow_factory().run(operation)
        logger.info("Withdrawal request %s rejected by %s", request_id, admin.username)
        return request

    async def admin_create_withdrawal(
        self,
        admin: User,
        user_id: UUID,
        amount: int,
        note: Optional[str] = None,
        bank_info: Optional[BankInfo] = None
    ) -> WithdrawalRequest:
        """Withdrawal on behalf of a user; nothing moves until the user confirms"""
        self._ensure_admin(admin)
        if amount < self.min_admin_transaction_amount:
            raise ValidationError(f"Minimum amount is {self.min_admin_transaction_amount}")

        async def operation(uow):
            balance = await self.ledger.get_balance(uow, user_id)
            if balance.wallet_balance < amount:
                raise InsufficientFundsError(f"Insufficient balance. User wallet: {balance.wallet_balance}")
            now = self.clock()
            request = WithdrawalRequest(
                user_id=user_id,
                amount=amount,
                bank_info=bank_info or BankInfo(bank_name="Cash", account_number="N/A", account_name="User"),
                status=WithdrawalStatus.PENDING_CONFIRMATION,
                admin_note=note,
                processed_by=admin.user_id,
                processed_at=now,
                is_admin_created=True,
                confirmation_token=secrets.token_hex(32),
                created_at=now
            )
            await uow.withdrawals.save(request)
            uow.collect(wallet_event(
                user_id, request.request_id, "withdrawal_request", "withdrawal_confirmation_required",
                "Confirm withdrawal", f"Please confirm the withdrawal of {amount}."
            ))
            return request

        request = await self.uow_factory().run(operation)
        self.confirmations.put(request.confirmation_token, request.request_id, self.confirmation_ttl)
        logger.info("Admin %s created withdrawal %s for user %s", admin.username, request.request_id, user_id)
        return request

    async def get_withdrawal_by_token(self, user: User, token: str) -> WithdrawalRequest:
        """Request behind a confirmation token, visible to its owner only"""
        request_id = self.confirmations.get(token)
        if request_id is None:
            raise NotFoundError("Withdrawal request not found or confirmation expired")
        async with self.uow_factory() as uow:
            request = await self._load_withdrawal(uow, request_id)
        if request.user_id != user.user_id:
            raise UnauthorizedError("You are not authorized to view this withdrawal request")
        return request

    async def confirm_withdrawal(self, user: User, token: str, signature: str) -> WithdrawalRequest:
        """Owner signs an admin-created withdrawal; debit and completion in one step"""
        if not signature:
            raise ValidationError("User signature is required")
        request_id = self.confirmations.get(token)
        if request_id is None:
            raise NotFoundError("Withdrawal request not found or confirmation expired")

        async def operation(uow):
            request = await self._load_withdrawal(uow, request_id)
            if request.user_id != user.user_id:
                raise UnauthorizedError("You are not authorized to confirm this withdrawal")
            request.confirm(signature, now=self.clock())
            await self.ledger.apply_transaction(
                uow,
                request.user_id,
                TransactionType.WITHDRAWAL,
                amount=request.amount,
                reference=self._reference(request),
                description=f"Withdrawal confirmed by user - {request.admin_note or 'admin request'}"
            )
            await uow.withdrawals.save(request)
            return request

        request = await self.uow_factory().run(operation)
        self.confirmations.pop(token)
        logger.info("Withdrawal %s confirmed by user %s", request.request_id, user.user_id)
        return request

    # ==================== PRIVATE METHODS ====================
    async def _available_balance(self, uow, balance: WalletBalance) -> int:
        """Main balance minus unpaid booking amounts and pending withdrawals"""
        bookings = await uow.bookings.find_by_user_id(balance.user_id)
        pending_payments = sum(
            b.amount_due for b in bookings
            if b.status in OUTSTANDING_STATUSES and b.payment_status != PaymentStatus.PAID
        )
        withdrawals = await uow.withdrawals.find_all(balance.user_id, WithdrawalStatus.PENDING)
        pending_withdrawals = sum(w.amount for w in withdrawals)
        return balance.wallet_balance - pending_payments - pending_withdrawals

    async def _bonus_for(self, uow, amount: int) -> int:
        promotion = select_promotion(await uow.promotions.find_active(), amount, self.clock())
        return promotion.bonus_for(amount) if promotion else 0

    async def _credit_deposit(self, uow, request: DepositRequest) -> None:
        reference = self._reference(request)
        await self.ledger.apply_transaction(
            uow,
            request.user_id,
            TransactionType.DEPOSIT,
            amount=request.amount,
            reference=reference,
            description=request.admin_note or "Wallet deposit"
        )
        if request.bonus_amount > 0:
            await self.ledger.apply_transaction(
                uow,
                request.user_id,
                TransactionType.BONUS,
                amount=request.bonus_amount,
                reference=reference,
                description=f"Deposit promotion bonus - {request.bonus_amount}"
            )

    async def _pending_withdrawal_entry(self, uow, request: WithdrawalRequest) -> Optional[WalletTransaction]:
        entries = await uow.transactions.find_by_user_id(request.user_id, TransactionType.WITHDRAWAL)
        return next(
            (t for t in entries
             if t.status == TransactionStatus.PENDING
             and t.reference is not None
             and t.reference.reference_id == request.request_id),
            None
        )

    async def _load_deposit(self, uow, request_id: UUID) -> DepositRequest:
        request = await uow.deposits.find_by_id(request_id)
        if not request:
            raise NotFoundError(f"Deposit request {request_id} not found")
        return request

    async def _load_withdrawal(self, uow, request_id: UUID) -> WithdrawalRequest:
        request = await uow.withdrawals.find_by_id(request_id)
        if not request:
            raise NotFoundError(f"Withdrawal request {request_id} not found")
        return request

    @staticmethod
    def _reference(request) -> TransactionReference:
        kind = ReferenceKind.DEPOSIT_REQUEST if isinstance(request, DepositRequest) else ReferenceKind.WITHDRAWAL_REQUEST
        return TransactionReference(kind=kind, reference_id=request.request_id)

    @staticmethod
    def _ensure_admin(user: User) -> None:
        if not user.is_admin:
            raise UnauthorizedError("Admin privileges required")
