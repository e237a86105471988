import logging
from datetime import date
from math import ceil
from typing import List, Optional
from uuid import UUID

from fastapi import FastAPI, HTTPException, Depends, Request
from fastapi.responses import JSONResponse
from fastapi.security import OAuth2PasswordRequestForm

from api.schemas import (
    # Catalog
    CreateRoomRequest, CreateServiceRequest, CreatePricingRuleRequest, UpdatePricingRuleRequest,
    CreatePromotionRequest,
    # Pricing & availability
    AvailabilityResponse,
    # Bookings
    CreateBookingRequest, SubmitProofRequest, WalletPaymentRequest, RejectBookingRequest,
    AddServiceRequest, CheckoutRequest, CancelBookingRequest,
    BookingResponse, BookingServiceResponse,
    # Wallet
    CreateDepositRequest, CreateWithdrawalRequest, ProcessRequest, AdminDepositRequest,
    AdminWithdrawalRequest, ConfirmWithdrawalRequest, WalletBalanceResponse,
    TransactionResponse, TransactionPageResponse, DepositRequestResponse, WithdrawalRequestResponse,
    # Auth
    Token, UserResponse
)
from api.dependencies import get_current_active_user, get_current_admin_user, users
from application.services import BookingBill, Invoice
from domain.auth import User
from domain.entities import Room, Service, PricingRule, Promotion
from domain.enums import BookingStatus, PaymentStrategy, TransactionType, DepositStatus, WithdrawalStatus
from domain.exceptions import (
    BookingPlatformError, ValidationError, NotFoundError, UnauthorizedError, ConflictError,
    InsufficientFundsError
)
from domain.value_objects import BankInfo, ContactInfo, PriceBreakdown
from infrastructure.config import settings
from infrastructure.container import Container
from infrastructure.security import create_access_token

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

# Quiet noisy libraries
logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.app_name,
    description="Booking lifecycle and wallet ledger API with Domain-Driven Design",
    version="1.0.0"
)

# Initialize container; every known user starts with an empty wallet
container = Container(user_ids=users.user_ids())


# ============================================================================
# ERROR HANDLING
# ============================================================================

ERROR_STATUS = (
    (ValidationError, 400),
    (InsufficientFundsError, 400),
    (UnauthorizedError, 403),
    (NotFoundError, 404),
    (ConflictError, 409),
)


@app.exception_handler(BookingPlatformError)
async def booking_platform_error_handler(request: Request, exc: BookingPlatformError):
    for error_class, status_code in ERROR_STATUS:
        if isinstance(exc, error_class):
            if status_code in (400, 409):
                logger.info("%s %s rejected: %s", request.method, request.url.path, exc)
            return JSONResponse(status_code=status_code, content={"detail": str(exc)})

    # InternalError and anything unexpected from the core
    logger.error("%s %s failed: %s", request.method, request.url.path, exc, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


# Dependency injection
def get_container() -> Container:
    return container


# ============================================================================
# HEALTH & ENUM REFERENCE ENDPOINTS
# ============================================================================

@app.get("/api/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "message": "API is running"}


@app.get("/api/enums/booking-status", tags=["Enum Reference"])
async def get_booking_statuses():
    """Get all BookingStatus enum values"""
    return {
        "values": [item.value for item in BookingStatus],
        "description": "Booking status values: pending_deposit, awaiting_approval, confirmed, completed, cancelled"
    }


@app.get("/api/enums/payment-strategy", tags=["Enum Reference"])
async def get_payment_strategies():
    """Get all PaymentStrategy enum values"""
    return {
        "values": [item.value for item in PaymentStrategy],
        "description": "use_bonus draws bonus funds first, use_main_only never touches them"
    }


@app.get("/api/enums/transaction-type", tags=["Enum Reference"])
async def get_transaction_types():
    """Get all TransactionType enum values"""
    return {
        "values": [item.value for item in TransactionType],
        "description": "Transaction type values: deposit, withdrawal, payment, refund, bonus"
    }


# ============================================================================
# AUTH ENDPOINTS
# ============================================================================

@app.post("/token", response_model=Token, tags=["Auth"])
async def login_for_access_token(form_data: OAuth2PasswordRequestForm = Depends()):
    user = users.authenticate(form_data.username, form_data.password)
    if user is None:
        raise HTTPException(
            status_code=401,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    access_token = create_access_token(user.username)
    return {"access_token": access_token, "token_type": "bearer"}


@app.get("/users/me", response_model=UserResponse, tags=["Auth"])
async def read_users_me(current_user: User = Depends(get_current_active_user)):
    return current_user


# ============================================================================
# CATALOG ENDPOINTS
# ============================================================================

@app.post("/api/rooms", response_model=Room, status_code=201, tags=["Catalog"])
async def create_room(
    request: CreateRoomRequest,
    c: Container = Depends(get_container),
    admin: User = Depends(get_current_admin_user)
):
    """Create room type"""
    return await c.catalog.add_room(admin, Room(**request.model_dump()))


@app.get("/api/rooms", response_model=List[Room], tags=["Catalog"])
async def list_rooms(c: Container = Depends(get_container)):
    """List rooms"""
    return await c.catalog.list_rooms()


@app.get("/api/rooms/{room_id}", response_model=Room, tags=["Catalog"])
async def get_room(room_id: UUID, c: Container = Depends(get_container)):
    """Get room by ID"""
    return await c.catalog.get_room(room_id)


@app.post("/api/services", response_model=Service, status_code=201, tags=["Catalog"])
async def create_service(
    request: CreateServiceRequest,
    c: Container = Depends(get_container),
    admin: User = Depends(get_current_admin_user)
):
    """Create billable service"""
    return await c.catalog.add_service(admin, Service(**request.model_dump()))


@app.get("/api/services", response_model=List[Service], tags=["Catalog"])
async def list_services(c: Container = Depends(get_container)):
    """List active services"""
    return await c.catalog.list_services()


@app.post("/api/pricing-rules", response_model=PricingRule, status_code=201, tags=["Catalog"])
async def create_pricing_rule(
    request: CreatePricingRuleRequest,
    c: Container = Depends(get_container),
    admin: User = Depends(get_current_admin_user)
):
    """Create special pricing rule"""
    try:
        rule = PricingRule(**request.model_dump(), created_at=c.clock())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return await c.catalog.add_pricing_rule(admin, rule)


@app.get("/api/pricing-rules", response_model=List[PricingRule], tags=["Catalog"])
async def list_pricing_rules(
    c: Container = Depends(get_container),
    admin: User = Depends(get_current_admin_user)
):
    """List pricing rules"""
    return await c.catalog.list_pricing_rules()


@app.patch("/api/pricing-rules/{rule_id}", response_model=PricingRule, tags=["Catalog"])
async def update_pricing_rule(
    rule_id: UUID,
    request: UpdatePricingRuleRequest,
    c: Container = Depends(get_container),
    admin: User = Depends(get_current_admin_user)
):
    """Update special pricing rule"""
    return await c.catalog.update_pricing_rule(admin, rule_id, request.model_dump(exclude_unset=True))


@app.delete("/api/pricing-rules/{rule_id}", response_model=PricingRule, tags=["Catalog"])
async def deactivate_pricing_rule(
    rule_id: UUID,
    c: Container = Depends(get_container),
    admin: User = Depends(get_current_admin_user)
):
    """Deactivate special pricing rule"""
    return await c.catalog.deactivate_pricing_rule(admin, rule_id)


@app.post("/api/promotions", response_model=Promotion, status_code=201, tags=["Catalog"])
async def create_promotion(
    request: CreatePromotionRequest,
    c: Container = Depends(get_container),
    admin: User = Depends(get_current_admin_user)
):
    """Create deposit promotion"""
    return await c.catalog.add_promotion(admin, Promotion(**request.model_dump()))


@app.get("/api/promotions", response_model=List[Promotion], tags=["Catalog"])
async def list_promotions(c: Container = Depends(get_container)):
    """List active promotions"""
    return await c.catalog.list_promotions()


# ============================================================================
# PRICING & AVAILABILITY ENDPOINTS
# ============================================================================

@app.get("/api/rooms/{room_id}/price-preview", response_model=PriceBreakdown, tags=["Pricing"])
async def preview_price(
    room_id: UUID,
    check_in: date,
    check_out: date,
    c: Container = Depends(get_container)
):
    """Per-night prices of a stay"""
    return await c.pricing.price_preview(room_id, check_in, check_out)


@app.get("/api/rooms/{room_id}/availability", response_model=AvailabilityResponse, tags=["Availability"])
async def check_availability(
    room_id: UUID,
    check_in: date,
    check_out: date,
    c: Container = Depends(get_container)
):
    """Free units of a room for a stay"""
    room = await c.catalog.get_room(room_id)
    booked = await c.availability.count_overlapping(room_id, check_in, check_out)
    available = max(room.quantity - booked, 0)
    return AvailabilityResponse(
        room_id=room_id,
        check_in=check_in,
        check_out=check_out,
        total_units=room.quantity,
        booked_units=booked,
        available_units=available,
        is_available=available > 0
    )


# ============================================================================
# BOOKING ENDPOINTS
# ============================================================================

@app.post("/api/bookings", response_model=BookingResponse, status_code=201, tags=["Bookings"])
async def create_booking(
    request: CreateBookingRequest,
    c: Container = Depends(get_container),
    current_user: User = Depends(get_current_active_user)
):
    """Create new booking"""
    booking = await c.bookings.create_booking(
        user=current_user,
        room_id=request.room_id,
        check_in=request.check_in,
        check_out=request.check_out,
        adults=request.adults,
        children=request.children,
        services=[(s.service_id, s.quantity) for s in request.services],
        contact_info=ContactInfo(**request.contact_info.model_dump()) if request.contact_info else None,
        special_requests=request.special_requests
    )
    return _booking_to_response(booking)


@app.get("/api/bookings", response_model=List[BookingResponse], tags=["Bookings"])
async def list_bookings(
    status: Optional[BookingStatus] = None,
    user_id: Optional[UUID] = None,
    c: Container = Depends(get_container),
    current_user: User = Depends(get_current_active_user)
):
    """Own bookings, or every booking for admins"""
    bookings = await c.bookings.list_bookings(current_user, status=status, user_id=user_id)
    return [_booking_to_response(b) for b in bookings]


@app.get("/api/bookings/{booking_id}", response_model=BookingResponse, tags=["Bookings"])
async def get_booking(
    booking_id: UUID,
    c: Container = Depends(get_container),
    current_user: User = Depends(get_current_active_user)
):
    """Get booking by ID"""
    return _booking_to_response(await c.bookings.get_booking(current_user, booking_id))


@app.post("/api/bookings/{booking_id}/proof", response_model=BookingResponse, tags=["Bookings"])
async def submit_payment_proof(
    booking_id: UUID,
    request: SubmitProofRequest,
    c: Container = Depends(get_container),
    current_user: User = Depends(get_current_active_user)
):
    """Upload bank-transfer proof for the deposit"""
    booking = await c.bookings.submit_proof(current_user, booking_id, request.proof_image)
    return _booking_to_response(booking)


@app.post("/api/bookings/{booking_id}/pay-deposit", response_model=BookingResponse, tags=["Bookings"])
async def pay_deposit_from_wallet(
    booking_id: UUID,
    request: WalletPaymentRequest,
    c: Container = Depends(get_container),
    current_user: User = Depends(get_current_active_user)
):
    """Pay the deposit from the wallet"""
    booking = await c.bookings.pay_deposit_from_wallet(current_user, booking_id, request.strategy)
    return _booking_to_response(booking)


@app.post("/api/bookings/{booking_id}/pay", response_model=BookingResponse, tags=["Bookings"])
async def pay_with_wallet(
    booking_id: UUID,
    request: WalletPaymentRequest,
    c: Container = Depends(get_container),
    current_user: User = Depends(get_current_active_user)
):
    """Pay the full outstanding amount from the wallet"""
    booking = await c.bookings.pay_with_wallet(current_user, booking_id, request.strategy)
    return _booking_to_response(booking)


@app.post("/api/bookings/{booking_id}/approve", response_model=BookingResponse, tags=["Bookings"])
async def approve_booking(
    booking_id: UUID,
    c: Container = Depends(get_container),
    admin: User = Depends(get_current_admin_user)
):
    """Approve the deposit"""
    return _booking_to_response(await c.bookings.approve(admin, booking_id))


@app.post("/api/bookings/{booking_id}/reject", response_model=BookingResponse, tags=["Bookings"])
async def reject_booking(
    booking_id: UUID,
    request: RejectBookingRequest,
    c: Container = Depends(get_container),
    admin: User = Depends(get_current_admin_user)
):
    """Reject the deposit"""
    return _booking_to_response(await c.bookings.reject(admin, booking_id, request.reason))


@app.post("/api/bookings/{booking_id}/check-in", response_model=BookingResponse, tags=["Bookings"])
async def check_in_booking(
    booking_id: UUID,
    c: Container = Depends(get_container),
    admin: User = Depends(get_current_admin_user)
):
    """Check in guest"""
    return _booking_to_response(await c.bookings.check_in(admin, booking_id))


@app.post("/api/bookings/{booking_id}/services", response_model=BookingResponse, tags=["Bookings"])
async def add_booking_service(
    booking_id: UUID,
    request: AddServiceRequest,
    c: Container = Depends(get_container),
    current_user: User = Depends(get_current_active_user)
):
    """Order a service during the stay"""
    booking = await c.bookings.add_service(current_user, booking_id, request.service_id, request.quantity)
    return _booking_to_response(booking)


@app.post("/api/bookings/{booking_id}/services/{service_id}/deliver", response_model=BookingResponse, tags=["Bookings"])
async def deliver_booking_service(
    booking_id: UUID,
    service_id: UUID,
    c: Container = Depends(get_container),
    admin: User = Depends(get_current_admin_user)
):
    """Confirm a service was delivered"""
    return _booking_to_response(await c.bookings.mark_service_delivered(admin, booking_id, service_id))


@app.post("/api/bookings/{booking_id}/checkout", response_model=BookingResponse, tags=["Bookings"])
async def checkout_booking(
    booking_id: UUID,
    request: CheckoutRequest,
    c: Container = Depends(get_container),
    current_user: User = Depends(get_current_active_user)
):
    """Check out and settle the bill"""
    booking = await c.bookings.checkout(current_user, booking_id, request.strategy, request.note)
    return _booking_to_response(booking)


@app.post("/api/bookings/{booking_id}/cancel", response_model=BookingResponse, tags=["Bookings"])
async def cancel_booking(
    booking_id: UUID,
    request: CancelBookingRequest,
    c: Container = Depends(get_container),
    current_user: User = Depends(get_current_active_user)
):
    """Cancel booking"""
    return _booking_to_response(await c.bookings.cancel(current_user, booking_id, request.reason))


@app.get("/api/bookings/{booking_id}/bill", response_model=BookingBill, tags=["Bookings"])
async def get_booking_bill(
    booking_id: UUID,
    c: Container = Depends(get_container),
    current_user: User = Depends(get_current_active_user)
):
    """Running bill of a stay"""
    return await c.bookings.get_bill(current_user, booking_id)


@app.get("/api/bookings/{booking_id}/invoice", response_model=Invoice, tags=["Bookings"])
async def get_booking_invoice(
    booking_id: UUID,
    c: Container = Depends(get_container),
    current_user: User = Depends(get_current_active_user)
):
    """Invoice of a completed stay"""
    return await c.bookings.get_invoice(current_user, booking_id)


# ============================================================================
# WALLET ENDPOINTS
# ============================================================================

@app.get("/api/wallet/balance", response_model=WalletBalanceResponse, tags=["Wallet"])
async def get_wallet_balance(
    c: Container = Depends(get_container),
    current_user: User = Depends(get_current_active_user)
):
    """Wallet and bonus balance of the current user"""
    summary = await c.wallets.get_summary(current_user.user_id)
    return WalletBalanceResponse(**summary.model_dump(), currency=settings.currency)


@app.get("/api/wallet/transactions", response_model=TransactionPageResponse, tags=["Wallet"])
async def get_transaction_history(
    type: Optional[TransactionType] = None,
    page: int = 1,
    limit: int = 20,
    c: Container = Depends(get_container),
    current_user: User = Depends(get_current_active_user)
):
    """Paginated ledger of the current user"""
    items, total = await c.wallets.list_transactions(current_user.user_id, type, page, limit)
    return TransactionPageResponse(
        items=[_transaction_to_response(t) for t in items],
        page=page,
        limit=limit,
        total=total,
        total_pages=ceil(total / limit)
    )


@app.post("/api/wallet/deposits", response_model=DepositRequestResponse, status_code=201, tags=["Wallet"])
async def create_deposit_request(
    request: CreateDepositRequest,
    c: Container = Depends(get_container),
    current_user: User = Depends(get_current_active_user)
):
    """Request a wallet top-up"""
    deposit = await c.wallets.create_deposit_request(
        current_user, request.amount, request.proof_image, BankInfo(**request.bank_info.model_dump())
    )
    return _deposit_to_response(deposit)


@app.get("/api/wallet/deposits", response_model=List[DepositRequestResponse], tags=["Wallet"])
async def get_my_deposit_requests(
    status: Optional[DepositStatus] = None,
    c: Container = Depends(get_container),
    current_user: User = Depends(get_current_active_user)
):
    """Deposit requests of the current user"""
    return [_deposit_to_response(d) for d in await c.wallets.list_deposit_requests(current_user, status)]


@app.post("/api/wallet/withdrawals", response_model=WithdrawalRequestResponse, status_code=201, tags=["Wallet"])
async def create_withdrawal_request(
    request: CreateWithdrawalRequest,
    c: Container = Depends(get_container),
    current_user: User = Depends(get_current_active_user)
):
    """Request a payout"""
    withdrawal = await c.wallets.create_withdrawal_request(
        current_user, request.amount, BankInfo(**request.bank_info.model_dump())
    )
    return _withdrawal_to_response(withdrawal)


@app.get("/api/wallet/withdrawals", response_model=List[WithdrawalRequestResponse], tags=["Wallet"])
async def get_my_withdrawal_requests(
    status: Optional[WithdrawalStatus] = None,
    c: Container = Depends(get_container),
    current_user: User = Depends(get_current_active_user)
):
    """Withdrawal requests of the current user"""
    return [_withdrawal_to_response(w) for w in await c.wallets.list_withdrawal_requests(current_user, status)]


@app.get("/api/wallet/withdrawals/confirm/{token}", response_model=WithdrawalRequestResponse, tags=["Wallet"])
async def get_withdrawal_by_token(
    token: str,
    c: Container = Depends(get_container),
    current_user: User = Depends(get_current_active_user)
):
    """Admin-created withdrawal awaiting the owner's signature"""
    return _withdrawal_to_response(await c.wallets.get_withdrawal_by_token(current_user, token))


@app.post("/api/wallet/withdrawals/confirm/{token}", response_model=WithdrawalRequestResponse, tags=["Wallet"])
async def confirm_withdrawal(
    token: str,
    request: ConfirmWithdrawalRequest,
    c: Container = Depends(get_container),
    current_user: User = Depends(get_current_active_user)
):
    """Sign an admin-created withdrawal"""
    withdrawal = await c.wallets.confirm_withdrawal(current_user, token, request.user_signature)
    return _withdrawal_to_response(withdrawal)


# ============================================================================
# ADMIN WALLET ENDPOINTS
# ============================================================================

@app.get("/api/admin/wallet/deposits", response_model=List[DepositRequestResponse], tags=["Admin Wallet"])
async def get_all_deposit_requests(
    status: Optional[DepositStatus] = None,
    c: Container = Depends(get_container),
    admin: User = Depends(get_current_admin_user)
):
    """Deposit requests of every user"""
    deposits = await c.wallets.list_deposit_requests(admin, status, all_users=True)
    return [_deposit_to_response(d) for d in deposits]


@app.post("/api/admin/wallet/deposits", response_model=DepositRequestResponse, status_code=201, tags=["Admin Wallet"])
async def admin_create_deposit(
    request: AdminDepositRequest,
    c: Container = Depends(get_container),
    admin: User = Depends(get_current_admin_user)
):
    """Signed deposit credited immediately"""
    deposit = await c.wallets.admin_create_deposit(
        admin, request.user_id, request.amount, request.admin_signature, request.note
    )
    return _deposit_to_response(deposit)


@app.post("/api/admin/wallet/deposits/{request_id}/process", response_model=DepositRequestResponse, tags=["Admin Wallet"])
async def process_deposit_request(
    request_id: UUID,
    request: ProcessRequest,
    c: Container = Depends(get_container),
    admin: User = Depends(get_current_admin_user)
):
    """Approve or reject a deposit request"""
    if request.action == "approve":
        deposit = await c.wallets.approve_deposit(admin, request_id, request.admin_note)
    elif request.action == "reject":
        deposit = await c.wallets.reject_deposit(admin, request_id, request.admin_note)
    else:
        raise HTTPException(status_code=400, detail="Invalid action. Must be approve or reject")
    return _deposit_to_response(deposit)


@app.get("/api/admin/wallet/withdrawals", response_model=List[WithdrawalRequestResponse], tags=["Admin Wallet"])
async def get_all_withdrawal_requests(
    status: Optional[WithdrawalStatus] = None,
    c: Container = Depends(get_container),
    admin: User = Depends(get_current_admin_user)
):
    """Withdrawal requests of every user"""
    withdrawals = await c.wallets.list_withdrawal_requests(admin, status, all_users=True)
    return [_withdrawal_to_response(w) for w in withdrawals]


@app.post("/api/admin/wallet/withdrawals", response_model=WithdrawalRequestResponse, status_code=201, tags=["Admin Wallet"])
async def admin_create_withdrawal(
    request: AdminWithdrawalRequest,
    c: Container = Depends(get_container),
    admin: User = Depends(get_current_admin_user)
):
    """Withdrawal on behalf of a user, pending their confirmation"""
    bank_info = BankInfo(**request.bank_info.model_dump()) if request.bank_info else None
    withdrawal = await c.wallets.admin_create_withdrawal(admin, request.user_id, request.amount, request.note, bank_info)
    return _withdrawal_to_response(withdrawal, include_confirmation=True)


@app.post("/api/admin/wallet/withdrawals/{request_id}/process", response_model=WithdrawalRequestResponse, tags=["Admin Wallet"])
async def process_withdrawal_request(
    request_id: UUID,
    request: ProcessRequest,
    c: Container = Depends(get_container),
    admin: User = Depends(get_current_admin_user)
):
    """Approve, complete or reject a withdrawal request"""
    if request.action == "approve":
        withdrawal = await c.wallets.approve_withdrawal(admin, request_id, request.admin_note)
    elif request.action == "complete":
        withdrawal = await c.wallets.complete_withdrawal(admin, request_id, request.admin_note)
    else:
        withdrawal = await c.wallets.reject_withdrawal(admin, request_id, request.admin_note)
    return _withdrawal_to_response(withdrawal)


@app.get("/api/admin/wallet/users", response_model=List[WalletBalanceResponse], tags=["Admin Wallet"])
async def get_all_users_wallet(
    c: Container = Depends(get_container),
    admin: User = Depends(get_current_admin_user)
):
    """Balances of every wallet"""
    return [
        WalletBalanceResponse(
            user_id=b.user_id,
            wallet_balance=b.wallet_balance,
            bonus_balance=b.bonus_balance,
            total_balance=b.total_balance,
            currency=settings.currency
        )
        for b in await c.wallets.list_wallets(admin)
    ]


@app.get("/api/admin/wallet/users/{user_id}", response_model=WalletBalanceResponse, tags=["Admin Wallet"])
async def get_user_wallet_details(
    user_id: UUID,
    c: Container = Depends(get_container),
    admin: User = Depends(get_current_admin_user)
):
    """Balances of one wallet"""
    summary = await c.wallets.get_summary(user_id)
    return WalletBalanceResponse(**summary.model_dump(), currency=settings.currency)


@app.get("/api/admin/wallet/users/{user_id}/reconcile", response_model=WalletBalanceResponse, tags=["Admin Wallet"])
async def reconcile_user_wallet(
    user_id: UUID,
    c: Container = Depends(get_container),
    admin: User = Depends(get_current_admin_user)
):
    """Check a wallet against its transaction history"""
    balance = await c.wallets.reconcile(admin, user_id)
    return WalletBalanceResponse(
        user_id=balance.user_id,
        wallet_balance=balance.wallet_balance,
        bonus_balance=balance.bonus_balance,
        total_balance=balance.total_balance,
        currency=settings.currency
    )


@app.get("/api/admin/wallet/transactions", response_model=List[TransactionResponse], tags=["Admin Wallet"])
async def get_all_transactions(
    type: Optional[TransactionType] = None,
    user_id: Optional[UUID] = None,
    c: Container = Depends(get_container),
    admin: User = Depends(get_current_admin_user)
):
    """Ledger entries of every wallet"""
    transactions = await c.wallets.list_all_transactions(admin, type, user_id)
    return [_transaction_to_response(t) for t in transactions]


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def _booking_to_response(booking) -> BookingResponse:
    """Convert Booking entity to BookingResponse"""
    return BookingResponse(
        booking_id=booking.booking_id,
        user_id=booking.user_id,
        room_id=booking.room_id,
        hotel_id=booking.hotel_id,
        check_in=booking.date_range.check_in,
        check_out=booking.date_range.check_out,
        nights=booking.get_nights(),
        adults=booking.guest_count.adults,
        children=booking.guest_count.children,
        room_price=booking.room_price,
        service_price=booking.service_price,
        total_price=booking.total_price,
        estimated_price=booking.estimated_price,
        final_price=booking.final_price,
        deposit_amount=booking.deposit_amount,
        paid_deposit_amount=booking.paid_deposit_amount,
        paid_from_wallet=booking.paid_from_wallet,
        paid_from_bonus=booking.paid_from_bonus,
        services=[
            BookingServiceResponse(
                service_id=line.service_id,
                name=line.name,
                quantity=line.quantity,
                unit_price=line.unit_price,
                line_total=line.line_total,
                added_at=line.added_at,
                delivered_at=line.delivered_at
            )
            for line in booking.services
        ],
        status=booking.status.value,
        payment_status=booking.payment_status.value,
        payment_method=booking.payment_method.value,
        payment_strategy=booking.payment_strategy.value if booking.payment_strategy else None,
        proof_image=booking.proof_image,
        invoice_number=booking.invoice_number,
        actual_check_in=booking.actual_check_in,
        actual_check_out=booking.actual_check_out,
        created_at=booking.created_at,
        modified_at=booking.modified_at,
        version=booking.version
    )


def _transaction_to_response(transaction) -> TransactionResponse:
    """Convert WalletTransaction entity to TransactionResponse"""
    return TransactionResponse(
        transaction_id=transaction.transaction_id,
        user_id=transaction.user_id,
        type=transaction.type.value,
        amount=transaction.amount,
        bonus_amount=transaction.bonus_amount,
        balance_before=transaction.balance_before,
        balance_after=transaction.balance_after,
        bonus_balance_before=transaction.bonus_balance_before,
        bonus_balance_after=transaction.bonus_balance_after,
        description=transaction.description,
        reference_kind=transaction.reference.kind.value if transaction.reference else None,
        reference_id=transaction.reference.reference_id if transaction.reference else None,
        status=transaction.status.value,
        created_at=transaction.created_at
    )


def _deposit_to_response(deposit) -> DepositRequestResponse:
    """Convert DepositRequest entity to DepositRequestResponse"""
    return DepositRequestResponse(
        request_id=deposit.request_id,
        user_id=deposit.user_id,
        amount=deposit.amount,
        bonus_amount=deposit.bonus_amount,
        proof_image=deposit.proof_image,
        bank_name=deposit.bank_info.bank_name,
        account_number=deposit.bank_info.account_number,
        account_name=deposit.bank_info.account_name,
        status=deposit.status.value,
        admin_note=deposit.admin_note,
        approved_by=deposit.approved_by,
        approved_at=deposit.approved_at,
        is_admin_created=deposit.is_admin_created,
        created_at=deposit.created_at
    )


def _withdrawal_to_response(withdrawal, include_confirmation: bool = False) -> WithdrawalRequestResponse:
    """Convert WithdrawalRequest entity to WithdrawalRequestResponse"""
    confirmation_url = None
    if include_confirmation and withdrawal.confirmation_token:
        confirmation_url = f"/api/wallet/withdrawals/confirm/{withdrawal.confirmation_token}"
    return WithdrawalRequestResponse(
        request_id=withdrawal.request_id,
        user_id=withdrawal.user_id,
        amount=withdrawal.amount,
        bank_name=withdrawal.bank_info.bank_name,
        account_number=withdrawal.bank_info.account_number,
        account_name=withdrawal.bank_info.account_name,
        status=withdrawal.status.value,
        admin_note=withdrawal.admin_note,
        processed_by=withdrawal.processed_by,
        processed_at=withdrawal.processed_at,
        is_admin_created=withdrawal.is_admin_created,
        confirmation_url=confirmation_url,
        confirmed_at=withdrawal.confirmed_at,
        created_at=withdrawal.created_at
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
