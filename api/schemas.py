"""API Schemas - Request and Response DTOs"""
from pydantic import BaseModel, Field
from datetime import date, datetime
from uuid import UUID
from typing import List, Optional

from domain.enums import (
    PricingRuleKind, ModifierKind, PaymentStrategy, UserRole
)


# ============================================================================
# CATALOG SCHEMAS
# ============================================================================

class CreateRoomRequest(BaseModel):
    """Create room request DTO"""
    hotel_id: UUID
    name: str = Field(min_length=1)
    price: int = Field(ge=0)
    quantity: int = Field(ge=1, default=1)
    capacity_adults: int = Field(ge=1, default=2)
    capacity_children: int = Field(ge=0, default=0)


class CreateServiceRequest(BaseModel):
    """Create service request DTO"""
    name: str = Field(min_length=1)
    price: int = Field(ge=0)
    requires_confirmation: bool = True


class CreatePricingRuleRequest(BaseModel):
    """Create pricing rule request DTO"""
    name: str = ""
    room_ids: List[UUID] = Field(min_length=1)
    kind: PricingRuleKind
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    modifier_kind: ModifierKind
    modifier_value: float = Field(allow_inf_nan=False)
    is_active: bool = True


class UpdatePricingRuleRequest(BaseModel):
    """Partial pricing rule update DTO; omitted fields keep their value"""
    name: Optional[str] = None
    room_ids: Optional[List[UUID]] = Field(None, min_length=1)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    modifier_kind: Optional[ModifierKind] = None
    modifier_value: Optional[float] = Field(None, allow_inf_nan=False)
    is_active: Optional[bool] = None


class CreatePromotionRequest(BaseModel):
    """Create deposit promotion request DTO"""
    name: str = Field(min_length=1)
    deposit_amount: int = Field(ge=0)
    bonus_amount: int = Field(ge=0, default=0)
    bonus_percent: Optional[float] = Field(None, ge=0, le=100)
    max_bonus: Optional[int] = Field(None, ge=0)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


# ============================================================================
# PRICING & AVAILABILITY SCHEMAS
# ============================================================================

class AvailabilityResponse(BaseModel):
    """Availability response DTO"""
    room_id: UUID
    check_in: date
    check_out: date
    total_units: int
    booked_units: int
    available_units: int
    is_available: bool


# ============================================================================
# BOOKING SCHEMAS
# ============================================================================

class ServiceOrderRequest(BaseModel):
    """Service line request DTO"""
    service_id: UUID
    quantity: int = Field(ge=1, default=1)


class ContactInfoRequest(BaseModel):
    """Contact info DTO"""
    full_name: str
    email: str
    phone: str


class CreateBookingRequest(BaseModel):
    """Create booking request DTO"""
    room_id: UUID
    check_in: date
    check_out: date
    adults: int = Field(ge=1, le=20)
    children: int = Field(ge=0, le=20, default=0)
    services: List[ServiceOrderRequest] = []
    contact_info: Optional[ContactInfoRequest] = None
    special_requests: str = ""


class SubmitProofRequest(BaseModel):
    """Deposit proof request DTO"""
    proof_image: str = Field(min_length=1)


class WalletPaymentRequest(BaseModel):
    """Wallet payment request DTO"""
    strategy: PaymentStrategy = PaymentStrategy.USE_BONUS


class RejectBookingRequest(BaseModel):
    """Reject deposit request DTO"""
    reason: Optional[str] = None


class AddServiceRequest(BaseModel):
    """Add service request DTO"""
    service_id: UUID
    quantity: int = Field(ge=1, default=1)


class CheckoutRequest(BaseModel):
    """Checkout request DTO"""
    strategy: PaymentStrategy = PaymentStrategy.USE_BONUS
    note: Optional[str] = None


class CancelBookingRequest(BaseModel):
    """Cancel booking request DTO"""
    reason: str = "Guest changed plans"


class BookingServiceResponse(BaseModel):
    """Booking service line response DTO"""
    service_id: UUID
    name: str
    quantity: int
    unit_price: int
    line_total: int
    added_at: datetime
    delivered_at: Optional[datetime] = None


class BookingResponse(BaseModel):
    """Booking response DTO"""
    booking_id: UUID
    user_id: UUID
    room_id: UUID
    hotel_id: UUID
    check_in: date
    check_out: date
    nights: int
    adults: int
    children: int
    room_price: int
    service_price: int
    total_price: int
    estimated_price: int
    final_price: Optional[int] = None
    deposit_amount: int
    paid_deposit_amount: int
    paid_from_wallet: int
    paid_from_bonus: int
    services: List[BookingServiceResponse]
    status: str
    payment_status: str
    payment_method: str
    payment_strategy: Optional[str] = None
    proof_image: Optional[str] = None
    invoice_number: Optional[str] = None
    actual_check_in: Optional[datetime] = None
    actual_check_out: Optional[datetime] = None
    created_at: datetime
    modified_at: datetime
    version: int


# ============================================================================
# WALLET SCHEMAS
# ============================================================================

class BankInfoRequest(BaseModel):
    """Bank info DTO"""
    bank_name: str = Field(min_length=1)
    account_number: str = Field(min_length=1)
    account_name: str = Field(min_length=1)
    transfer_content: Optional[str] = None


class CreateDepositRequest(BaseModel):
    """Create deposit request DTO"""
    amount: int = Field(gt=0)
    proof_image: str = Field(min_length=1)
    bank_info: BankInfoRequest


class CreateWithdrawalRequest(BaseModel):
    """Create withdrawal request DTO"""
    amount: int = Field(gt=0)
    bank_info: BankInfoRequest


class ProcessRequest(BaseModel):
    """Admin decision on a deposit or withdrawal request DTO"""
    action: str = Field(pattern="^(approve|reject|complete)$")
    admin_note: Optional[str] = None


class AdminDepositRequest(BaseModel):
    """Admin-created deposit DTO"""
    user_id: UUID
    amount: int = Field(gt=0)
    admin_signature: str = Field(min_length=1)
    note: Optional[str] = None


class AdminWithdrawalRequest(BaseModel):
    """Admin-created withdrawal DTO"""
    user_id: UUID
    amount: int = Field(gt=0)
    note: Optional[str] = None
    bank_info: Optional[BankInfoRequest] = None


class ConfirmWithdrawalRequest(BaseModel):
    """Withdrawal confirmation DTO"""
    user_signature: str = Field(min_length=1)


class WalletBalanceResponse(BaseModel):
    """Wallet balance response DTO"""
    user_id: UUID
    wallet_balance: int
    bonus_balance: int
    total_balance: int
    available_balance: Optional[int] = None
    currency: str


class TransactionResponse(BaseModel):
    """Wallet transaction response DTO"""
    transaction_id: UUID
    user_id: UUID
    type: str
    amount: int
    bonus_amount: int
    balance_before: int
    balance_after: int
    bonus_balance_before: int
    bonus_balance_after: int
    description: str
    reference_kind: Optional[str] = None
    reference_id: Optional[UUID] = None
    status: str
    created_at: datetime


class TransactionPageResponse(BaseModel):
    """Paginated transactions DTO"""
    items: List[TransactionResponse]
    page: int
    limit: int
    total: int
    total_pages: int


class DepositRequestResponse(BaseModel):
    """Deposit request response DTO"""
    request_id: UUID
    user_id: UUID
    amount: int
    bonus_amount: int
    proof_image: str
    bank_name: str
    account_number: str
    account_name: str
    status: str
    admin_note: Optional[str] = None
    approved_by: Optional[UUID] = None
    approved_at: Optional[datetime] = None
    is_admin_created: bool
    created_at: datetime


class WithdrawalRequestResponse(BaseModel):
    """Withdrawal request response DTO"""
    request_id: UUID
    user_id: UUID
    amount: int
    bank_name: str
    account_number: str
    account_name: str
    status: str
    admin_note: Optional[str] = None
    processed_by: Optional[UUID] = None
    processed_at: Optional[datetime] = None
    is_admin_created: bool
    confirmation_url: Optional[str] = None
    confirmed_at: Optional[datetime] = None
    created_at: datetime


# ============================================================================
# AUTH SCHEMAS
# ============================================================================

class Token(BaseModel):
    access_token: str
    token_type: str


class TokenData(BaseModel):
    username: Optional[str] = None


class UserResponse(BaseModel):
    user_id: UUID
    username: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    role: UserRole
    disabled: Optional[bool] = None
