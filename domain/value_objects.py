"""Domain Value Objects"""
from pydantic import BaseModel, Field, validator
from datetime import date, timedelta
from typing import Iterator, List, Optional
from uuid import UUID

from domain.enums import ModifierKind, ReferenceKind


class DateRange(BaseModel):
    """Value Object for date ranges (check-out night excluded)"""
    check_in: date
    check_out: date

    @validator('check_out')
    def check_out_after_check_in(cls, v, values):
        if 'check_in' in values and v <= values['check_in']:
            raise ValueError('Check-out must be after check-in')
        return v

    def nights(self) -> int:
        """Calculate number of nights"""
        return (self.check_out - self.check_in).days

    def each_night(self) -> Iterator[date]:
        """Yield every night of the stay, check-out day excluded"""
        day = self.check_in
        while day < self.check_out:
            yield day
            day += timedelta(days=1)

    def overlaps(self, check_in: date, check_out: date) -> bool:
        """Half-open interval intersection"""
        return self.check_in < check_out and self.check_out > check_in

    class Config:
        frozen = True


class GuestCount(BaseModel):
    """Value Object for guest count"""
    adults: int = Field(ge=1)
    children: int = Field(ge=0, default=0)

    class Config:
        frozen = True


class ContactInfo(BaseModel):
    """Value Object for the guest contact on a booking"""
    full_name: str
    email: str
    phone: str

    class Config:
        frozen = True


class BankInfo(BaseModel):
    """Value Object for bank account details on wallet requests"""
    bank_name: str = Field(min_length=1)
    account_number: str = Field(min_length=1)
    account_name: str = Field(min_length=1)
    transfer_content: Optional[str] = None

    class Config:
        frozen = True


class TransactionReference(BaseModel):
    """Pointer from a ledger entry to the entity that caused it"""
    kind: ReferenceKind
    reference_id: UUID

    class Config:
        frozen = True


class NightlyPrice(BaseModel):
    """Resolved price for one night of a stay"""
    night: date
    price: int
    label: str
    base_price: int
    rule_applied: bool = False
    rule_id: Optional[UUID] = None
    modifier_kind: Optional[ModifierKind] = None
    modifier_value: Optional[float] = None

    class Config:
        frozen = True


class PriceBreakdown(BaseModel):
    """Per-night prices of a stay and their sum"""
    nights: List[NightlyPrice]
    total: int
    base_price: int

    class Config:
        frozen = True
