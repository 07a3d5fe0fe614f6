"""Filtros tipados aceitos pelos repositórios (substituem dicts livres)."""
from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from clinic_billing.core.domain.enums import (
    ClaimStatus,
    InvoiceStatus,
    InvoiceType,
    PaymentMethod,
    PaymentPlanStatus,
    PaymentStatus,
    PriceTableType,
)


@dataclass(frozen=True, slots=True)
class InvoiceFilter:
    clinic_id: uuid.UUID | None = None
    patient_id: uuid.UUID | None = None
    insurer_id: uuid.UUID | None = None
    statuses: tuple[InvoiceStatus, ...] = ()
    exclude_statuses: tuple[InvoiceStatus, ...] = ()
    type: InvoiceType | None = None
    issued_from: datetime | None = None
    issued_until: datetime | None = None
    due_from: datetime | None = None
    due_until: datetime | None = None
    min_amount: Decimal | None = None
    max_amount: Decimal | None = None
    overdue_at: datetime | None = None  # somente faturas vencidas e com saldo nesse instante
    search: str | None = None
    ids: tuple[uuid.UUID, ...] = ()


@dataclass(frozen=True, slots=True)
class PaymentFilter:
    clinic_id: uuid.UUID | None = None
    invoice_id: uuid.UUID | None = None
    invoice_ids: tuple[uuid.UUID, ...] = ()
    patient_id: uuid.UUID | None = None
    method: PaymentMethod | None = None
    statuses: tuple[PaymentStatus, ...] = ()
    paid_from: datetime | None = None
    paid_until: datetime | None = None
    refunded_from: datetime | None = None
    refunded_until: datetime | None = None
    created_from: datetime | None = None
    created_until: datetime | None = None
    min_amount: Decimal | None = None
    max_amount: Decimal | None = None


@dataclass(frozen=True, slots=True)
class PaymentPlanFilter:
    clinic_id: uuid.UUID | None = None
    patient_id: uuid.UUID | None = None
    invoice_id: uuid.UUID | None = None
    statuses: tuple[PaymentPlanStatus, ...] = ()


@dataclass(frozen=True, slots=True)
class ClaimFilter:
    clinic_id: uuid.UUID | None = None
    insurer_id: uuid.UUID | None = None
    patient_id: uuid.UUID | None = None
    invoice_id: uuid.UUID | None = None
    batch_id: uuid.UUID | None = None
    statuses: tuple[ClaimStatus, ...] = ()
    submitted_from: datetime | None = None
    submitted_until: datetime | None = None
    created_from: datetime | None = None
    created_until: datetime | None = None
    denied_only: bool = False
    pending_payment: bool = False


@dataclass(frozen=True, slots=True)
class PriceTableFilter:
    type: PriceTableType | None = None
    insurer_id: uuid.UUID | None = None
    active_only: bool = False
    valid_on: datetime | None = None
    search: str | None = None
