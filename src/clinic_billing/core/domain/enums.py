from enum import Enum


class InvoiceStatus(str, Enum):
    DRAFT = "DRAFT"
    PENDING = "PENDING"
    SENT = "SENT"
    PARTIALLY_PAID = "PARTIALLY_PAID"
    PAID = "PAID"
    OVERDUE = "OVERDUE"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"


# Faturas que ainda representam valor a receber
RECEIVABLE_STATUSES = (
    InvoiceStatus.PENDING,
    InvoiceStatus.SENT,
    InvoiceStatus.PARTIALLY_PAID,
    InvoiceStatus.OVERDUE,
)
CLOSED_INVOICE_STATUSES = (InvoiceStatus.CANCELLED, InvoiceStatus.REFUNDED)


class InvoiceType(str, Enum):
    CONSULTATION = "CONSULTATION"
    PROCEDURE = "PROCEDURE"
    LABORATORY = "LABORATORY"
    IMAGING = "IMAGING"
    PHARMACY = "PHARMACY"
    HOSPITALIZATION = "HOSPITALIZATION"
    EMERGENCY = "EMERGENCY"
    TELEMEDICINE = "TELEMEDICINE"
    SUBSCRIPTION = "SUBSCRIPTION"
    OTHER = "OTHER"


class DiscountType(str, Enum):
    PERCENTAGE = "PERCENTAGE"
    FIXED = "FIXED"


class TaxType(str, Enum):
    ISS = "ISS"
    IRRF = "IRRF"
    INSS = "INSS"
    PIS = "PIS"
    COFINS = "COFINS"
    CSLL = "CSLL"


class PaymentMethod(str, Enum):
    CASH = "CASH"
    CREDIT_CARD = "CREDIT_CARD"
    DEBIT_CARD = "DEBIT_CARD"
    PIX = "PIX"
    BANK_TRANSFER = "BANK_TRANSFER"
    BOLETO = "BOLETO"
    CHECK = "CHECK"


CARD_METHODS = (PaymentMethod.CREDIT_CARD, PaymentMethod.DEBIT_CARD)


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"
    PARTIALLY_REFUNDED = "PARTIALLY_REFUNDED"


# Pagamentos que em algum momento entraram no caixa
SETTLED_PAYMENT_STATUSES = (
    PaymentStatus.COMPLETED,
    PaymentStatus.PARTIALLY_REFUNDED,
    PaymentStatus.REFUNDED,
)


class RefundReason(str, Enum):
    DUPLICATE_PAYMENT = "DUPLICATE_PAYMENT"
    SERVICE_NOT_RENDERED = "SERVICE_NOT_RENDERED"
    OVERCHARGE = "OVERCHARGE"
    CUSTOMER_REQUEST = "CUSTOMER_REQUEST"
    SERVICE_QUALITY = "SERVICE_QUALITY"
    INSURANCE_ADJUSTMENT = "INSURANCE_ADJUSTMENT"
    OTHER = "OTHER"


class PaymentPlanStatus(str, Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class InstallmentStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"


class ClaimStatus(str, Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    IN_REVIEW = "IN_REVIEW"
    APPROVED = "APPROVED"
    PARTIALLY_APPROVED = "PARTIALLY_APPROVED"
    DENIED = "DENIED"
    APPEALED = "APPEALED"
    RESUBMITTED = "RESUBMITTED"
    PAID = "PAID"
    CLOSED = "CLOSED"


PENDING_CLAIM_STATUSES = (
    ClaimStatus.SUBMITTED,
    ClaimStatus.IN_REVIEW,
    ClaimStatus.APPEALED,
    ClaimStatus.RESUBMITTED,
)


class DenialReason(str, Enum):
    MISSING_AUTHORIZATION = "MISSING_AUTHORIZATION"
    EXPIRED_AUTHORIZATION = "EXPIRED_AUTHORIZATION"
    NOT_COVERED = "NOT_COVERED"
    DUPLICATE_CLAIM = "DUPLICATE_CLAIM"
    INVALID_CODE = "INVALID_CODE"
    MISSING_DOCUMENTATION = "MISSING_DOCUMENTATION"
    ELIGIBILITY_ISSUE = "ELIGIBILITY_ISSUE"
    TIMELY_FILING = "TIMELY_FILING"
    MEDICAL_NECESSITY = "MEDICAL_NECESSITY"
    OTHER = "OTHER"


class BatchStatus(str, Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"


class PriceTableType(str, Enum):
    PRIVATE = "PRIVATE"
    TUSS = "TUSS"
    CBHPM = "CBHPM"
    AMB = "AMB"
    CUSTOM = "CUSTOM"


class SettlementSource(str, Enum):
    PAYMENT = "PAYMENT"
    REFUND = "REFUND"
    INSURANCE = "INSURANCE"


class NotificationChannel(str, Enum):
    EMAIL = "email"
    SMS = "sms"
    WHATSAPP = "whatsapp"


class ReportGroupBy(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


class DashboardPeriod(str, Enum):
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"
