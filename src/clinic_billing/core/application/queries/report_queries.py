from dataclasses import dataclass
from datetime import datetime

from clinic_billing.core.application.cqrs import QueryDTO
from clinic_billing.core.domain.enums import DashboardPeriod, ReportGroupBy


@dataclass(frozen=True)
class RevenueReportQuery(QueryDTO):
    start: datetime | None = None
    end: datetime | None = None
    clinic_id: str | None = None
    group_by: ReportGroupBy = ReportGroupBy.DAY

@dataclass(frozen=True)
class CashFlowReportQuery(QueryDTO):
    start: datetime | None = None
    end: datetime | None = None
    clinic_id: str | None = None
    group_by: ReportGroupBy = ReportGroupBy.DAY
    include_projections: bool = False

@dataclass(frozen=True)
class AgingReportQuery(QueryDTO):
    clinic_id: str | None = None
    reference_date: datetime | None = None
    aging_buckets: tuple[int, ...] = (30, 60, 90, 120)
    by_patient: bool = False
    by_insurer: bool = False

@dataclass(frozen=True)
class BillingStatisticsQuery(QueryDTO):
    start: datetime | None = None
    end: datetime | None = None
    clinic_id: str | None = None
    include_breakdown: bool = True

@dataclass(frozen=True)
class DashboardQuery(QueryDTO):
    clinic_id: str | None = None
    period: DashboardPeriod = DashboardPeriod.MONTH
    start: datetime | None = None
    end: datetime | None = None
