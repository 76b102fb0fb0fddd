"""
Python enums matching PostgreSQL enum types.
Names and values MUST match the DB DDL exactly.
"""

from enum import Enum


class CompanyStatus(str, Enum):
    DRAFT = "draft"
    PENDING = "pending"
    ACTIVE = "active"
    SUSPENDED = "suspended"


class CompanySource(str, Enum):
    SERPAPI = "serpapi"
    MANUAL = "manual"
    CLAIMED = "claimed"


class AuctionMode(str, Enum):
    MANUAL = "manual"
    AUTO = "auto"
    SMART = "smart"


class TransactionType(str, Enum):
    CREDIT = "credit"
    DEBIT = "debit"
    SEARCH_DEBIT = "search_debit"
    RECHARGE = "recharge"
    WALLET_DEBIT = "wallet_debit"
    SUBSCRIPTION_RENEWAL = "subscription_renewal"
    SUBSCRIPTION_FAILED = "subscription_failed"


class TransactionStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class RechargeMethod(str, Enum):
    PIX = "pix"
    CARD = "card"


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    PAST_DUE = "past_due"
    CANCELLED = "cancelled"


class PaymentMethodType(str, Enum):
    CARD = "card"
    WALLET = "wallet"


class ClaimMethod(str, Enum):
    WHATSAPP_OTP = "whatsapp_otp"
    CNPJ_WHATSAPP = "cnpj_whatsapp"


class ClaimStatus(str, Enum):
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class SearchSource(str, Enum):
    WHATSAPP = "whatsapp"
    WEB = "web"
    DEMO = "demo"


class SearchEventType(str, Enum):
    IMPRESSION = "impression"
    CLICK_WHATSAPP = "click_whatsapp"
    CLICK_CALL = "click_call"


class ImportRunStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"
    INVALIDATED = "invalidated"


class ImportRecordStatus(str, Enum):
    INSERTED = "inserted"
    UPDATED = "updated"
    CONFLICT = "conflict"
    IGNORED = "ignored"
    ERROR = "error"


class NotificationCategory(str, Enum):
    FINANCIAL = "financial"
    VISIBILITY = "visibility"
    SUBSCRIPTION = "subscription"
    CONTACTS = "contacts"
    SYSTEM = "system"


class NotificationSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class NotificationKind(str, Enum):
    EVENT = "event"
    SUMMARY = "summary"
    ALERT = "alert"


class NotificationFrequency(str, Enum):
    REAL_TIME = "real_time"
    DAILY = "daily"
    WEEKLY = "weekly"
    NEVER = "never"


class ActorRole(str, Enum):
    ADMIN = "admin"
    COMPANY_OWNER = "company_owner"
