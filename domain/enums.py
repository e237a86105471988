"""Domain Enums"""
from enum import Enum


class BookingStatus(str, Enum):
    PENDING_DEPOSIT = "pending_deposit"
    AWAITING_APPROVAL = "awaiting_approval"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"


class PaymentMethod(str, Enum):
    BANK_TRANSFER = "bank_transfer"
    WALLET = "wallet"


class PaymentStrategy(str, Enum):
    USE_BONUS = "use_bonus"
    USE_MAIN_ONLY = "use_main_only"


class TransactionType(str, Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    PAYMENT = "payment"
    REFUND = "refund"
    BONUS = "bonus"


class TransactionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class ReferenceKind(str, Enum):
    BOOKING = "booking"
    DEPOSIT_REQUEST = "deposit_request"
    WITHDRAWAL_REQUEST = "withdrawal_request"


class PricingRuleKind(str, Enum):
    DATE_RANGE = "date_range"
    WEEKEND = "weekend"


class ModifierKind(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class DepositStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class WithdrawalStatus(str, Enum):
    PENDING = "pending"
    PENDING_CONFIRMATION = "pending_confirmation"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"


class UserRole(str, Enum):
    ADMIN = "admin"
    GUEST = "guest"


class BookingAction(str, Enum):
    SUBMIT_PROOF = "submit_proof"
    PAY_DEPOSIT = "pay_deposit"
    PAY_IN_FULL = "pay_in_full"
    APPROVE = "approve"
    REJECT = "reject"
    CHECK_IN = "check_in"
    ADD_SERVICE = "add_service"
    CHECKOUT = "checkout"
    CANCEL = "cancel"


# Every status between creation and cancellation keeps a unit of inventory
HOLDING_STATUSES = frozenset(s for s in BookingStatus if s != BookingStatus.CANCELLED)
