"""
Enumerations for the housing ledger.

Defines user roles (as carried in tokens) and the fixed vocabularies of
the pool fund tables.
"""

import enum


class UserRole(str, enum.Enum):
    """
    User role enumeration.

    Roles:
        ADMIN: Platform operator, may request system-wide aggregates
        COMPANY_ADMIN: Manages one tenant organization, may set balances
        STAFF: Case worker inside one tenant organization (default role)
    """
    ADMIN = "ADMIN"
    COMPANY_ADMIN = "COMPANY_ADMIN"
    STAFF = "STAFF"


class LedgerEntryKind(str, enum.Enum):
    """Pool fund entry kinds. Only deposits add to the balance."""
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    ALLOCATION = "allocation"


class ApplicationStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class TransactionType(str, enum.Enum):
    """Transaction type enumeration."""
    RENT = "rent"
    DEPOSIT = "deposit"
    APPLICATION_FEE = "application_fee"
    UTILITY_ELECTRIC = "utility_electric"
    UTILITY_GAS = "utility_gas"
    UTILITY_WATER = "utility_water"
    UTILITY_INTERNET = "utility_internet"
    UTILITY_PHONE = "utility_phone"
    ADMIN_FEE = "admin_fee"
    LATE_FEE = "late_fee"
    COUNTY_REIMBURSEMENT = "county_reimbursement"
    POOL_FUND_DEPOSIT = "pool_fund_deposit"
    POOL_FUND_WITHDRAWAL = "pool_fund_withdrawal"
    MISC = "misc"


class PaymentMethod(str, enum.Enum):
    CHECK = "check"
    ACH = "ach"
    MELIO = "melio"
    CASH = "cash"
    MONEY_ORDER = "money_order"
    WIRE_TRANSFER = "wire_transfer"
    CREDIT_CARD = "credit_card"
