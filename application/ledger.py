"""Ledger - append-only wallet transactions and the balance projection they drive"""
import logging
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Tuple
from uuid import UUID

from domain.entities import WalletBalance, WalletTransaction
from domain.enums import TransactionType, TransactionStatus
from domain.exceptions import (
    ValidationError, NotFoundError, InsufficientFundsError, InternalError
)
from domain.value_objects import TransactionReference

logger = logging.getLogger(__name__)

DEFAULT_DESCRIPTIONS = {
    TransactionType.DEPOSIT: "Wallet deposit",
    TransactionType.WITHDRAWAL: "Wallet withdrawal",
    TransactionType.PAYMENT: "Booking payment",
    TransactionType.REFUND: "Refund",
    TransactionType.BONUS: "Promotion bonus",
}

MAX_PAGE_SIZE = 100


class BalanceProjector:
    """Builds WalletBalance values; nothing else creates a non-empty balance"""

    @staticmethod
    def apply(balance: WalletBalance, main_delta: int, bonus_delta: int, now: datetime) -> WalletBalance:
        wallet = balance.wallet_balance + main_delta
        bonus = balance.bonus_balance + bonus_delta
        if wallet < 0:
            raise InsufficientFundsError(
                f"Insufficient wallet balance: available {balance.wallet_balance}, required {-main_delta}"
            )
        if bonus < 0:
            raise InsufficientFundsError(
                f"Insufficient bonus balance: available {balance.bonus_balance}, required {-bonus_delta}"
            )
        return WalletBalance(
            user_id=balance.user_id,
            wallet_balance=wallet,
            bonus_balance=bonus,
            version=balance.version + 1,
            updated_at=now
        )

    @staticmethod
    def fold(transactions: Iterable[WalletTransaction]) -> Tuple[int, int]:
        """Sum of signed deltas starting from zero"""
        wallet = bonus = 0
        for transaction in transactions:
            main_delta, bonus_delta = transaction.deltas
            wallet += main_delta
            bonus += bonus_delta
        return wallet, bonus


class Ledger:
    """Single writer of wallet balances.

    Every write happens inside the caller's unit of work, so the balance
    update and the appended transaction commit or roll back together.
    """

    def __init__(self, clock: Callable[[], datetime] = datetime.utcnow):
        self.clock = clock

    async def open_wallet(self, uow, user_id: UUID) -> WalletBalance:
        """Create an empty balance for user_id; returns the existing one if present"""
        self._require_transaction(uow)
        existing = await uow.balances.find_by_user_id(user_id)
        if existing:
            return existing
        balance = WalletBalance(user_id=user_id, updated_at=self.clock())
        return await uow.balances.save(balance, expected_version=0)

    async def apply_transaction(
        self,
        uow,
        user_id: UUID,
        type: TransactionType,
        amount: int,
        bonus_amount: int = 0,
        reference: Optional[TransactionReference] = None,
        description: Optional[str] = None,
        status: TransactionStatus = TransactionStatus.COMPLETED
    ) -> WalletTransaction:
        """Move money in or out of a wallet and record it"""
        self._require_transaction(uow)

        # Validate amounts
        if amount < 0 or bonus_amount < 0:
            raise ValidationError("Transaction amounts must not be negative")
        if type in (TransactionType.DEPOSIT, TransactionType.WITHDRAWAL, TransactionType.BONUS) and bonus_amount:
            raise ValidationError(f"A {type.value} transaction cannot carry a bonus amount")
        main_delta, bonus_delta = WalletTransaction.deltas_for(type, amount, bonus_amount)
        if main_delta == 0 and bonus_delta == 0:
            raise ValidationError("Transaction amount must be greater than zero")

        # Read inside the transaction
        current = await self.get_balance(uow, user_id)
        now = self.clock()
        updated = BalanceProjector.apply(current, main_delta, bonus_delta, now)

        transaction = WalletTransaction(
            user_id=user_id,
            type=type,
            amount=amount,
            bonus_amount=bonus_amount,
            balance_before=current.wallet_balance,
            balance_after=updated.wallet_balance,
            bonus_balance_before=current.bonus_balance,
            bonus_balance_after=updated.bonus_balance,
            description=description or DEFAULT_DESCRIPTIONS[type],
            reference=reference,
            status=status,
            created_at=now
        )

        await uow.balances.save(updated, expected_version=current.version)
        await uow.transactions.append(transaction)

        logger.info(
            "Ledger %s for user %s: amount=%d bonus=%d wallet %d->%d bonus %d->%d",
            type.value, user_id, amount, bonus_amount,
            transaction.balance_before, transaction.balance_after,
            transaction.bonus_balance_before, transaction.bonus_balance_after
        )
        return transaction

    async def mark_completed(self, uow, transaction_id: UUID) -> WalletTransaction:
        """pending -> completed; balances are untouched"""
        self._require_transaction(uow)
        transaction = await uow.transactions.find_by_id(transaction_id)
        if transaction is None:
            raise NotFoundError(f"Transaction {transaction_id} not found")
        if transaction.status == TransactionStatus.COMPLETED:
            return transaction
        return await uow.transactions.update_status(transaction_id, TransactionStatus.COMPLETED)

    async def get_balance(self, uow, user_id: UUID) -> WalletBalance:
        balance = await uow.balances.find_by_user_id(user_id)
        if balance is None:
            raise NotFoundError(f"Wallet of user {user_id} not found")
        return balance

    async def list_transactions(
        self,
        uow,
        user_id: UUID,
        type: Optional[TransactionType] = None,
        page: int = 1,
        limit: int = 20
    ) -> Tuple[List[WalletTransaction], int]:
        """Newest first; returns the requested page and the total count"""
        if page < 1 or limit < 1 or limit > MAX_PAGE_SIZE:
            raise ValidationError(f"page must be >= 1 and limit between 1 and {MAX_PAGE_SIZE}")
        transactions = await uow.transactions.find_by_user_id(user_id, type)
        transactions.reverse()
        start = (page - 1) * limit
        return transactions[start:start + limit], len(transactions)

    async def reconcile(self, uow, user_id: UUID) -> WalletBalance:
        """Rebuild the balance from the log and compare with the cached one"""
        balance = await self.get_balance(uow, user_id)
        transactions = await uow.transactions.find_by_user_id(user_id)

        for transaction in transactions:
            if not transaction.is_consistent():
                raise InternalError(f"Transaction {transaction.transaction_id} has inconsistent balances")

        wallet, bonus = BalanceProjector.fold(transactions)
        if (wallet, bonus) != (balance.wallet_balance, balance.bonus_balance):
            logger.error(
                "Balance drift for user %s: cached (%d, %d) vs ledger (%d, %d)",
                user_id, balance.wallet_balance, balance.bonus_balance, wallet, bonus
            )
            raise InternalError(f"Wallet of user {user_id} does not match its transaction history")
        return balance

    @staticmethod
    def _require_transaction(uow) -> None:
        if uow is None or not uow.is_active:
            raise InternalError("Ledger writes require an active unit of work")
