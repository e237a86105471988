"""Payment Allocator - splits an amount due between bonus and main balances"""
from pydantic import BaseModel

from domain.enums import PaymentStrategy
from domain.exceptions import ValidationError


class Allocation(BaseModel):
    """Result of allocating an amount due against a wallet"""
    from_wallet: int
    from_bonus: int
    shortfall: int

    @property
    def total_drawn(self) -> int:
        return self.from_wallet + self.from_bonus

    @property
    def is_fully_covered(self) -> bool:
        return self.shortfall == 0

    class Config:
        frozen = True


def allocate(
    amount_due: int,
    wallet_balance: int,
    bonus_balance: int,
    strategy: PaymentStrategy
) -> Allocation:
    """Decide how much of amount_due is drawn from bonus and main balance.

    ``use_bonus`` drains the bonus balance first and takes the remainder from
    the main balance; ``use_main_only`` never touches the bonus balance.
    Whatever neither balance covers is reported as ``shortfall``; callers
    decide whether a shortfall is acceptable.
    """
    if amount_due < 0 or wallet_balance < 0 or bonus_balance < 0:
        raise ValidationError("Amounts and balances must not be negative")

    remaining = amount_due
    from_bonus = 0
    if strategy == PaymentStrategy.USE_BONUS:
        from_bonus = min(bonus_balance, remaining)
        remaining -= from_bonus
    elif strategy != PaymentStrategy.USE_MAIN_ONLY:
        raise ValidationError(f"Unknown payment strategy: {strategy}")

    from_wallet = min(wallet_balance, remaining)
    remaining -= from_wallet

    return Allocation(from_wallet=from_wallet, from_bonus=from_bonus, shortfall=remaining)
