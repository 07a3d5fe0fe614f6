from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal

from clinic_billing.core.application.cqrs import PagedResult
from clinic_billing.core.domain.entities.invoice_entity import InvoiceEntity
from clinic_billing.core.domain.entities.payment_entity import PaymentEntity
from clinic_billing.core.utils.money import ZERO


@dataclass(frozen=True)
class PeriodDTO:
    start: datetime
    end: datetime


# ───────────────────────────────────────────────
# Receita
# ───────────────────────────────────────────────
@dataclass(frozen=True)
class RevenueBucketDTO:
    period: str
    gross: Decimal
    paid: Decimal
    discounts: Decimal
    invoices: int


@dataclass(frozen=True)
class RevenueAveragesDTO:
    daily_gross: Decimal
    daily_net: Decimal
    per_invoice: Decimal
    per_patient: Decimal


@dataclass(frozen=True)
class RevenueReportDTO:
    period: PeriodDTO
    total_gross: Decimal
    total_paid: Decimal
    total_net: Decimal
    total_discounts: Decimal
    total_refunds: Decimal
    invoice_count: int
    patient_count: int
    data: list[RevenueBucketDTO]
    averages: RevenueAveragesDTO


# ───────────────────────────────────────────────
# Fluxo de caixa
# ───────────────────────────────────────────────
@dataclass(frozen=True)
class CashFlowBucketDTO:
    period: str
    inflow: Decimal
    outflow: Decimal
    net: Decimal
    cumulative: Decimal


@dataclass(frozen=True)
class CashFlowProjectionDTO:
    date: date
    expected_inflow: Decimal
    invoices: int


@dataclass(frozen=True)
class CashFlowReportDTO:
    period: PeriodDTO
    total_inflow: Decimal
    total_outflow: Decimal
    net_flow: Decimal
    opening_balance: Decimal
    closing_balance: Decimal
    data: list[CashFlowBucketDTO]
    projections: list[CashFlowProjectionDTO] = field(default_factory=list)


# ───────────────────────────────────────────────
# Aging (envelhecimento de recebíveis)
# ───────────────────────────────────────────────
@dataclass(frozen=True)
class AgingBucketDTO:
    label: str
    range: str
    count: int
    amount: Decimal
    percentage: Decimal


@dataclass(frozen=True)
class AgingGroupDTO:
    id: uuid.UUID
    name: str
    count: int
    total: Decimal


@dataclass(frozen=True)
class AgingReportDTO:
    reference_date: datetime
    total_receivables: Decimal
    total_invoices: int
    buckets: list[AgingBucketDTO]
    by_patient: list[AgingGroupDTO] = field(default_factory=list)
    by_insurer: list[AgingGroupDTO] = field(default_factory=list)


# ───────────────────────────────────────────────
# Estatísticas
# ───────────────────────────────────────────────
@dataclass(frozen=True)
class InvoiceStatsDTO:
    total: int
    issued: int
    paid: int
    overdue: int
    cancelled: int
    average_value: Decimal


@dataclass(frozen=True)
class RevenueStatsDTO:
    gross: Decimal
    net: Decimal
    discounts: Decimal
    refunds: Decimal
    taxes: Decimal


@dataclass(frozen=True)
class PaymentStatsDTO:
    total: int
    completed: int
    pending: int
    failed: int


@dataclass(frozen=True)
class InsuranceStatsDTO:
    claims: int
    approved: int
    denied: int
    pending: int
    approval_rate: Decimal


@dataclass(frozen=True)
class BreakdownDTO:
    key: str
    count: int
    amount: Decimal
    percentage: Decimal


@dataclass(frozen=True)
class BillingStatisticsDTO:
    period: PeriodDTO
    invoices: InvoiceStatsDTO
    revenue: RevenueStatsDTO
    payments: PaymentStatsDTO
    insurance: InsuranceStatsDTO
    by_type: list[BreakdownDTO] = field(default_factory=list)
    by_payment_method: list[BreakdownDTO] = field(default_factory=list)


# ───────────────────────────────────────────────
# Dashboard
# ───────────────────────────────────────────────
@dataclass(frozen=True)
class DashboardSummaryDTO:
    total_revenue: Decimal = ZERO
    total_pending: Decimal = ZERO
    total_overdue: Decimal = ZERO


@dataclass(frozen=True)
class TodayStatsDTO:
    invoices_count: int = 0
    invoices_amount: Decimal = ZERO
    payments_count: int = 0
    payments_amount: Decimal = ZERO


@dataclass(frozen=True)
class AlertDTO:
    type: str
    severity: str
    message: str
    count: int


@dataclass(frozen=True)
class DashboardDTO:
    period: PeriodDTO
    summary: DashboardSummaryDTO
    today: TodayStatsDTO
    recent_invoices: list[InvoiceEntity]
    recent_payments: list[PaymentEntity]
    overdue_invoices: list[InvoiceEntity]
    alerts: list[AlertDTO]


# ───────────────────────────────────────────────
# Listagem de faturas
# ───────────────────────────────────────────────
@dataclass(frozen=True)
class InvoiceListSummaryDTO:
    total_amount: Decimal
    total_paid: Decimal
    total_pending: Decimal
    overdue_amount: Decimal
    overdue_count: int


@dataclass(frozen=True)
class InvoiceListResultDTO:
    page: PagedResult[InvoiceEntity]
    summary: InvoiceListSummaryDTO
