from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any


# ───────────────────────────────────────────────
# Event Base e Domain Events
# ───────────────────────────────────────────────
@dataclass(frozen=True, kw_only=True)
class DomainEvent:
    event_id: uuid.UUID = field(default_factory=uuid.uuid4)
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


# ╭──────────────────────────────────────────────╮
# │ 1. Faturas                                   │
# ╰──────────────────────────────────────────────╯
@dataclass(frozen=True)
class InvoiceCreatedEvent(DomainEvent):
    invoice_id: uuid.UUID
    invoice_number: str
    clinic_id: uuid.UUID
    patient_id: uuid.UUID
    total: Decimal


@dataclass(frozen=True)
class InvoiceUpdatedEvent(DomainEvent):
    invoice_id: uuid.UUID
    total: Decimal
    amount_due: Decimal


@dataclass(frozen=True)
class InvoiceSentEvent(DomainEvent):
    invoice_id: uuid.UUID
    channels: tuple[str, ...]


@dataclass(frozen=True)
class InvoiceCancelledEvent(DomainEvent):
    invoice_id: uuid.UUID
    reason: str
    refunds_processed: int


@dataclass(frozen=True)
class NotificationRequestedEvent(DomainEvent):
    """Pedido de envio ao paciente; a entrega é de responsabilidade do notifier."""
    notification_type: str
    channel: str
    recipient: str | None
    patient_id: uuid.UUID
    reference_id: uuid.UUID
    payload: dict[str, Any] = field(default_factory=dict)


# ╭──────────────────────────────────────────────╮
# │ 2. Pagamentos                                │
# ╰──────────────────────────────────────────────╯
@dataclass(frozen=True)
class PaymentCreatedEvent(DomainEvent):
    payment_id: uuid.UUID
    invoice_id: uuid.UUID
    method: str
    amount: Decimal


@dataclass(frozen=True)
class PaymentConfirmedEvent(DomainEvent):
    payment_id: uuid.UUID
    invoice_id: uuid.UUID
    method: str
    amount: Decimal
    invoice_status: str
    manual: bool = False


@dataclass(frozen=True)
class PaymentRefundedEvent(DomainEvent):
    payment_id: uuid.UUID
    invoice_id: uuid.UUID
    amount: Decimal
    reason: str


@dataclass(frozen=True)
class PaymentFailedEvent(DomainEvent):
    payment_id: uuid.UUID
    invoice_id: uuid.UUID
    reason: str | None


# ╭──────────────────────────────────────────────╮
# │ 3. Parcelamentos                             │
# ╰──────────────────────────────────────────────╯
@dataclass(frozen=True)
class PaymentPlanCreatedEvent(DomainEvent):
    plan_id: uuid.UUID
    invoice_id: uuid.UUID
    installments: int
    installment_amount: Decimal


@dataclass(frozen=True)
class InstallmentPaidEvent(DomainEvent):
    plan_id: uuid.UUID
    installment_number: int
    amount: Decimal
    late_fee: Decimal
    interest: Decimal
    plan_completed: bool


@dataclass(frozen=True)
class PaymentPlanCancelledEvent(DomainEvent):
    plan_id: uuid.UUID
    invoice_id: uuid.UUID


# ╭──────────────────────────────────────────────╮
# │ 4. Convênios                                 │
# ╰──────────────────────────────────────────────╯
@dataclass(frozen=True)
class InsuranceClaimCreatedEvent(DomainEvent):
    claim_id: uuid.UUID
    claim_number: str
    insurer_id: uuid.UUID


@dataclass(frozen=True)
class InsuranceClaimStatusChangedEvent(DomainEvent):
    claim_id: uuid.UUID
    old_status: str
    new_status: str


@dataclass(frozen=True)
class InsuranceBatchCreatedEvent(DomainEvent):
    batch_id: uuid.UUID
    batch_number: str
    claims_count: int
    total_amount: Decimal


# ╭──────────────────────────────────────────────╮
# │ 5. Tabelas de preço                          │
# ╰──────────────────────────────────────────────╯
@dataclass(frozen=True)
class PriceTableChangedEvent(DomainEvent):
    price_table_id: uuid.UUID
    action: str
