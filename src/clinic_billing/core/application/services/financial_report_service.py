from __future__ import annotations

import math
import uuid
from collections import defaultdict
from collections.abc import Callable, Iterable, Sequence
from datetime import datetime, timedelta
from decimal import Decimal

import structlog
from dateutil.relativedelta import relativedelta

from clinic_billing.core.application.dtos.report_dto import (
    AgingBucketDTO,
    AgingGroupDTO,
    AgingReportDTO,
    AlertDTO,
    BillingStatisticsDTO,
    BreakdownDTO,
    CashFlowBucketDTO,
    CashFlowProjectionDTO,
    CashFlowReportDTO,
    DashboardDTO,
    DashboardSummaryDTO,
    InsuranceStatsDTO,
    InvoiceStatsDTO,
    PaymentStatsDTO,
    PeriodDTO,
    RevenueAveragesDTO,
    RevenueBucketDTO,
    RevenueReportDTO,
    RevenueStatsDTO,
    TodayStatsDTO,
)
from clinic_billing.core.domain.entities.billing_config_entity import BillingConfigEntity
from clinic_billing.core.domain.entities.invoice_entity import InvoiceEntity
from clinic_billing.core.domain.enums import (
    RECEIVABLE_STATUSES,
    SETTLED_PAYMENT_STATUSES,
    ClaimStatus,
    DashboardPeriod,
    InvoiceStatus,
    PaymentStatus,
    ReportGroupBy,
)
from clinic_billing.core.domain.repositories.filters import ClaimFilter, InvoiceFilter, PaymentFilter
from clinic_billing.core.domain.repositories.insurance_claim_repository import InsuranceClaimRepository
from clinic_billing.core.domain.repositories.invoice_repository import InvoiceRepository
from clinic_billing.core.domain.repositories.payment_repository import PaymentRepository
from clinic_billing.core.domain.repositories.reference_data_repository import ReferenceDataRepository
from clinic_billing.core.domain.services.clock import Clock
from clinic_billing.core.utils.money import ZERO, money2, ratio, safe_div

logger = structlog.get_logger(__name__)

DAY = timedelta(days=1)
DASHBOARD_LIST_SIZE = 5
APPROVED_CLAIM_STATUSES = (ClaimStatus.APPROVED, ClaimStatus.PARTIALLY_APPROVED, ClaimStatus.PAID)
REFUNDED_PAYMENT_STATUSES = (PaymentStatus.REFUNDED, PaymentStatus.PARTIALLY_REFUNDED)

_STEPS: dict[ReportGroupBy, relativedelta] = {
    ReportGroupBy.DAY: relativedelta(days=1),
    ReportGroupBy.WEEK: relativedelta(days=7),
    ReportGroupBy.MONTH: relativedelta(months=1),
    ReportGroupBy.YEAR: relativedelta(years=1),
}


def _uuid(value) -> uuid.UUID | None:
    if value is None or isinstance(value, uuid.UUID):
        return value
    return uuid.UUID(str(value))


def _total(values: Iterable) -> Decimal:
    return money2(sum(values, ZERO))


def period_windows(start: datetime, end: datetime, group_by: ReportGroupBy) -> list[tuple[datetime, datetime]]:
    """Janelas [início, fim) a partir de `start` até cobrir `end`."""
    step = _STEPS[group_by]
    windows = []
    current = start
    while current <= end:
        nxt = current + step
        windows.append((current, nxt))
        current = nxt
    return windows


def days_between(start: datetime, end: datetime) -> int:
    """Dias corridos, arredondados para cima."""
    return math.ceil((end - start) / DAY)


def _bucketize(records: Sequence, windows, when: Callable) -> list[list]:
    out: list[list] = [[] for _ in windows]
    for rec in records:
        at = when(rec)
        if at is None:
            continue
        for idx, (lo, hi) in enumerate(windows):
            if lo <= at < hi:
                out[idx].append(rec)
                break
    return out


class FinancialReportService:
    """
    Relatórios financeiros somente leitura.

    Todas as janelas são fechadas `[start, end]`; sem datas, o período é
    `default_validity_days` dias até agora.
    """

    def __init__(  # noqa: PLR0913
        self,
        invoice_repo: InvoiceRepository,
        payment_repo: PaymentRepository,
        claim_repo: InsuranceClaimRepository,
        reference_repo: ReferenceDataRepository,
        clock: Clock,
        config: BillingConfigEntity,
    ) -> None:
        self.invoice_repo = invoice_repo
        self.payment_repo = payment_repo
        self.claim_repo = claim_repo
        self.reference_repo = reference_repo
        self.clock = clock
        self.config = config

    def _period(self, start: datetime | None, end: datetime | None) -> PeriodDTO:
        end = end or self.clock.now()
        start = start or end - timedelta(days=self.config.default_validity_days)
        return PeriodDTO(start=start, end=end)

    def _refunds_of(self, invoices: Sequence[InvoiceEntity]) -> Decimal:
        if not invoices:
            return ZERO
        payments = self.payment_repo.list_all(
            PaymentFilter(invoice_ids=tuple(i.id for i in invoices), statuses=REFUNDED_PAYMENT_STATUSES)
        )
        return _total(p.refunded_amount for p in payments)

    # ───────────────────────────────────────────────
    # Receita
    # ───────────────────────────────────────────────
    def revenue(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
        clinic_id=None,
        group_by: ReportGroupBy = ReportGroupBy.DAY,
    ) -> RevenueReportDTO:
        period = self._period(start, end)
        invoices = self.invoice_repo.list_all(
            InvoiceFilter(
                clinic_id=_uuid(clinic_id),
                issued_from=period.start,
                issued_until=period.end,
                exclude_statuses=(InvoiceStatus.CANCELLED,),
            )
        )
        gross = _total(i.total for i in invoices)
        paid = _total(i.amount_paid for i in invoices)
        discounts = _total(i.discount_total for i in invoices)
        refunds = self._refunds_of(invoices)
        net = money2(paid - refunds)

        windows = period_windows(period.start, period.end, group_by)
        data = [
            RevenueBucketDTO(
                period=lo.date().isoformat(),
                gross=_total(i.total for i in bucket),
                paid=_total(i.amount_paid for i in bucket),
                discounts=_total(i.discount_total for i in bucket),
                invoices=len(bucket),
            )
            for (lo, _), bucket in zip(windows, _bucketize(invoices, windows, lambda i: i.issue_date), strict=True)
        ]

        days = max(days_between(period.start, period.end), 1)
        patients = {i.patient_id for i in invoices}
        report = RevenueReportDTO(
            period=period,
            total_gross=gross,
            total_paid=paid,
            total_net=net,
            total_discounts=discounts,
            total_refunds=refunds,
            invoice_count=len(invoices),
            patient_count=len(patients),
            data=data,
            averages=RevenueAveragesDTO(
                daily_gross=safe_div(gross, days),
                daily_net=safe_div(net, days),
                per_invoice=safe_div(gross, max(len(invoices), 1)),
                per_patient=safe_div(gross, max(len(patients), 1)),
            ),
        )
        logger.debug("report.revenue", invoices=len(invoices), gross=str(gross), net=str(net))
        return report

    # ───────────────────────────────────────────────
    # Fluxo de caixa
    # ───────────────────────────────────────────────
    def cash_flow(  # noqa: PLR0913
        self,
        start: datetime | None = None,
        end: datetime | None = None,
        clinic_id=None,
        group_by: ReportGroupBy = ReportGroupBy.DAY,
        include_projections: bool = False,
    ) -> CashFlowReportDTO:
        period = self._period(start, end)
        clinic = _uuid(clinic_id)
        received = self.payment_repo.list_all(
            PaymentFilter(
                clinic_id=clinic,
                statuses=SETTLED_PAYMENT_STATUSES,
                paid_from=period.start,
                paid_until=period.end,
            )
        )
        refunded = self.payment_repo.list_all(
            PaymentFilter(
                clinic_id=clinic,
                statuses=REFUNDED_PAYMENT_STATUSES,
                refunded_from=period.start,
                refunded_until=period.end,
            )
        )
        inflow = _total(p.amount for p in received)
        outflow = _total(p.refunded_amount for p in refunded)

        windows = period_windows(period.start, period.end, group_by)
        in_buckets = _bucketize(received, windows, lambda p: p.paid_at)
        out_buckets = _bucketize(refunded, windows, lambda p: p.refunded_at)
        data = []
        cumulative = ZERO
        for (lo, _), ins, outs in zip(windows, in_buckets, out_buckets, strict=True):
            b_in = _total(p.amount for p in ins)
            b_out = _total(p.refunded_amount for p in outs)
            cumulative = money2(cumulative + b_in - b_out)
            data.append(
                CashFlowBucketDTO(
                    period=lo.date().isoformat(),
                    inflow=b_in,
                    outflow=b_out,
                    net=money2(b_in - b_out),
                    cumulative=cumulative,
                )
            )

        net_flow = money2(inflow - outflow)
        return CashFlowReportDTO(
            period=period,
            total_inflow=inflow,
            total_outflow=outflow,
            net_flow=net_flow,
            opening_balance=ZERO,
            closing_balance=net_flow,
            data=data,
            projections=self.projections(clinic) if include_projections else [],
        )

    def projections(self, clinic_id=None) -> list[CashFlowProjectionDTO]:
        """Entrada esperada por dia nos próximos `projection_days` dias (recebimento integral)."""
        now = self.clock.now()
        horizon = now + timedelta(days=self.config.projection_days)
        pending = self.invoice_repo.list_all(
            InvoiceFilter(
                clinic_id=_uuid(clinic_id),
                statuses=(InvoiceStatus.PENDING, InvoiceStatus.SENT, InvoiceStatus.PARTIALLY_PAID),
                due_from=now,
                due_until=horizon,
            )
        )
        by_day: dict = defaultdict(list)
        for inv in pending:
            by_day[inv.due_date.date()].append(inv)

        out = []
        for offset in range(self.config.projection_days):
            day = (now + timedelta(days=offset)).date()
            invoices = by_day.get(day, [])
            out.append(
                CashFlowProjectionDTO(
                    date=day,
                    expected_inflow=_total(i.amount_due for i in invoices),
                    invoices=len(invoices),
                )
            )
        return out

    # ───────────────────────────────────────────────
    # Aging
    # ───────────────────────────────────────────────
    def aging(  # noqa: PLR0913
        self,
        clinic_id=None,
        reference_date: datetime | None = None,
        aging_buckets: Sequence[int] = (30, 60, 90, 120),
        by_patient: bool = False,
        by_insurer: bool = False,
    ) -> AgingReportDTO:
        ref = reference_date or self.clock.now()
        overdue = self.invoice_repo.list_all(
            InvoiceFilter(clinic_id=_uuid(clinic_id), statuses=RECEIVABLE_STATUSES, due_until=ref)
        )
        overdue = [i for i in overdue if i.due_date < ref]
        total = _total(i.amount_due for i in overdue)

        bounds = sorted(set(aging_buckets))
        ranges: list[tuple[int, int | None]] = []
        lower = 1
        for upper in bounds:
            ranges.append((lower, upper))
            lower = upper + 1
        ranges.append((lower, None))

        aged = [(days_between(i.due_date, ref), i) for i in overdue]
        buckets = []
        for lo, hi in ranges:
            inside = [i for d, i in aged if d >= lo and (hi is None or d <= hi)]
            amount = _total(i.amount_due for i in inside)
            buckets.append(
                AgingBucketDTO(
                    label=f"{lo}-{hi} dias" if hi is not None else f"Mais de {lo - 1} dias",
                    range=f"{lo}-{hi}" if hi is not None else f"{lo - 1}+",
                    count=len(inside),
                    amount=amount,
                    percentage=ratio(amount, total),
                )
            )

        return AgingReportDTO(
            reference_date=ref,
            total_receivables=total,
            total_invoices=len(overdue),
            buckets=buckets,
            by_patient=self._group(overdue, lambda i: i.patient_id, self.reference_repo.patient_names)
            if by_patient
            else [],
            by_insurer=self._group(
                [i for i in overdue if i.insurer_id], lambda i: i.insurer_id, self.reference_repo.insurer_names
            )
            if by_insurer
            else [],
        )

    @staticmethod
    def _group(invoices, key, names_of) -> list[AgingGroupDTO]:
        groups: dict[uuid.UUID, list[InvoiceEntity]] = defaultdict(list)
        for inv in invoices:
            groups[key(inv)].append(inv)
        names = names_of([str(k) for k in groups]) if groups else {}
        out = [
            AgingGroupDTO(
                id=k,
                name=names.get(str(k), str(k)),
                count=len(items),
                total=_total(i.amount_due for i in items),
            )
            for k, items in groups.items()
        ]
        return sorted(out, key=lambda g: g.total, reverse=True)

    # ───────────────────────────────────────────────
    # Estatísticas
    # ───────────────────────────────────────────────
    def statistics(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
        clinic_id=None,
        include_breakdown: bool = True,
    ) -> BillingStatisticsDTO:
        period = self._period(start, end)
        now = self.clock.now()
        clinic = _uuid(clinic_id)
        invoices = self.invoice_repo.list_all(
            InvoiceFilter(clinic_id=clinic, issued_from=period.start, issued_until=period.end)
        )
        payments = self.payment_repo.list_all(
            PaymentFilter(clinic_id=clinic, created_from=period.start, created_until=period.end)
        )
        claims = self.claim_repo.list_all(
            ClaimFilter(clinic_id=clinic, created_from=period.start, created_until=period.end)
        )

        cancelled = sum(1 for i in invoices if i.status is InvoiceStatus.CANCELLED)
        gross = _total(i.total for i in invoices)
        refunds = _total(p.refunded_amount for p in payments)
        completed = [p for p in payments if p.status is PaymentStatus.COMPLETED]
        failed = sum(1 for p in payments if p.status is PaymentStatus.FAILED)
        approved = sum(1 for c in claims if c.status in APPROVED_CLAIM_STATUSES)
        denied = sum(1 for c in claims if c.status is ClaimStatus.DENIED)

        stats = BillingStatisticsDTO(
            period=period,
            invoices=InvoiceStatsDTO(
                total=len(invoices),
                issued=len(invoices) - cancelled,
                paid=sum(1 for i in invoices if i.status is InvoiceStatus.PAID),
                overdue=sum(1 for i in invoices if i.status in RECEIVABLE_STATUSES and i.due_date < now),
                cancelled=cancelled,
                average_value=safe_div(gross, len(invoices)),
            ),
            revenue=RevenueStatsDTO(
                gross=gross,
                net=money2(_total(i.amount_paid for i in invoices) - refunds),
                discounts=_total(i.discount_total for i in invoices),
                refunds=refunds,
                taxes=_total(i.tax_total for i in invoices),
            ),
            payments=PaymentStatsDTO(
                total=len(payments),
                completed=len(completed),
                pending=len(payments) - len(completed) - failed,
                failed=failed,
            ),
            insurance=InsuranceStatsDTO(
                claims=len(claims),
                approved=approved,
                denied=denied,
                pending=len(claims) - approved - denied,
                approval_rate=ratio(approved, len(claims)),
            ),
            by_type=self._breakdown(invoices, lambda i: i.type.value, lambda i: i.total, gross)
            if include_breakdown
            else [],
            by_payment_method=self._breakdown(
                completed,
                lambda p: p.method.value,
                lambda p: p.amount,
                _total(p.amount for p in completed),
            )
            if include_breakdown
            else [],
        )
        return stats

    @staticmethod
    def _breakdown(records, key, amount_of, grand_total) -> list[BreakdownDTO]:
        groups: dict[str, list] = defaultdict(list)
        for rec in records:
            groups[key(rec)].append(rec)
        out = []
        for k, items in sorted(groups.items()):
            amount = _total(amount_of(r) for r in items)
            out.append(BreakdownDTO(key=k, count=len(items), amount=amount, percentage=ratio(amount, grand_total)))
        return out

    # ───────────────────────────────────────────────
    # Dashboard
    # ───────────────────────────────────────────────
    def dashboard(
        self,
        clinic_id=None,
        period: DashboardPeriod = DashboardPeriod.MONTH,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> DashboardDTO:
        now = self.clock.now()
        today = now.replace(hour=0, minute=0, second=0, microsecond=0)
        if not (start and end):
            end = now
            start = {
                DashboardPeriod.TODAY: today,
                DashboardPeriod.WEEK: now - timedelta(days=7),
                DashboardPeriod.MONTH: now - relativedelta(months=1),
                DashboardPeriod.YEAR: now - relativedelta(years=1),
            }[period]
        clinic = _uuid(clinic_id)

        in_window = self.invoice_repo.list_all(
            InvoiceFilter(
                clinic_id=clinic,
                issued_from=start,
                issued_until=end,
                exclude_statuses=(InvoiceStatus.CANCELLED,),
            )
        )
        overdue = sorted(
            self.invoice_repo.list_all(InvoiceFilter(clinic_id=clinic, statuses=RECEIVABLE_STATUSES, due_until=now)),
            key=lambda i: i.due_date,
        )
        overdue = [i for i in overdue if i.due_date < now]
        todays_invoices = self.invoice_repo.list_all(InvoiceFilter(clinic_id=clinic, issued_from=today))
        settled = self.payment_repo.list_all(PaymentFilter(clinic_id=clinic, statuses=SETTLED_PAYMENT_STATUSES))
        todays_payments = [p for p in settled if p.paid_at and p.paid_at >= today]
        recent_invoices = sorted(
            self.invoice_repo.list_all(InvoiceFilter(clinic_id=clinic, issued_from=start, issued_until=end)),
            key=lambda i: i.issue_date,
            reverse=True,
        )
        recent_payments = sorted(
            (p for p in settled if p.paid_at),
            key=lambda p: p.paid_at,
            reverse=True,
        )

        alerts = []
        if overdue:
            alerts.append(
                AlertDTO(
                    type="OVERDUE_INVOICES",
                    severity="warning",
                    message=f"{len(overdue)} fatura(s) em atraso",
                    count=len(overdue),
                )
            )

        return DashboardDTO(
            period=PeriodDTO(start=start, end=end),
            summary=DashboardSummaryDTO(
                total_revenue=_total(i.total for i in in_window),
                total_pending=_total(i.amount_due for i in in_window),
                total_overdue=_total(i.amount_due for i in overdue),
            ),
            today=TodayStatsDTO(
                invoices_count=len(todays_invoices),
                invoices_amount=_total(i.total for i in todays_invoices),
                payments_count=len(todays_payments),
                payments_amount=_total(p.amount for p in todays_payments),
            ),
            recent_invoices=recent_invoices[:DASHBOARD_LIST_SIZE],
            recent_payments=recent_payments[:DASHBOARD_LIST_SIZE],
            overdue_invoices=overdue[:DASHBOARD_LIST_SIZE],
            alerts=alerts,
        )
