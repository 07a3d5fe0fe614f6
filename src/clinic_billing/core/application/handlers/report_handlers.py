from clinic_billing.core.application.cqrs import QueryHandler
from clinic_billing.core.application.dtos.report_dto import (
    AgingReportDTO,
    BillingStatisticsDTO,
    CashFlowReportDTO,
    DashboardDTO,
    RevenueReportDTO,
)
from clinic_billing.core.application.queries.report_queries import (
    AgingReportQuery,
    BillingStatisticsQuery,
    CashFlowReportQuery,
    DashboardQuery,
    RevenueReportQuery,
)
from clinic_billing.core.application.services.financial_report_service import FinancialReportService


class RevenueReportHandler(QueryHandler[RevenueReportQuery, RevenueReportDTO]):
    def __init__(self, service: FinancialReportService):
        self.service = service

    def handle(self, q: RevenueReportQuery) -> RevenueReportDTO:
        return self.service.revenue(start=q.start, end=q.end, clinic_id=q.clinic_id, group_by=q.group_by)


class CashFlowReportHandler(QueryHandler[CashFlowReportQuery, CashFlowReportDTO]):
    def __init__(self, service: FinancialReportService):
        self.service = service

    def handle(self, q: CashFlowReportQuery) -> CashFlowReportDTO:
        return self.service.cash_flow(
            start=q.start,
            end=q.end,
            clinic_id=q.clinic_id,
            group_by=q.group_by,
            include_projections=q.include_projections,
        )


class AgingReportHandler(QueryHandler[AgingReportQuery, AgingReportDTO]):
    def __init__(self, service: FinancialReportService):
        self.service = service

    def handle(self, q: AgingReportQuery) -> AgingReportDTO:
        return self.service.aging(
            clinic_id=q.clinic_id,
            reference_date=q.reference_date,
            aging_buckets=q.aging_buckets,
            by_patient=q.by_patient,
            by_insurer=q.by_insurer,
        )


class BillingStatisticsHandler(QueryHandler[BillingStatisticsQuery, BillingStatisticsDTO]):
    def __init__(self, service: FinancialReportService):
        self.service = service

    def handle(self, q: BillingStatisticsQuery) -> BillingStatisticsDTO:
        return self.service.statistics(
            start=q.start, end=q.end, clinic_id=q.clinic_id, include_breakdown=q.include_breakdown
        )


class DashboardHandler(QueryHandler[DashboardQuery, DashboardDTO]):
    def __init__(self, service: FinancialReportService):
        self.service = service

    def handle(self, q: DashboardQuery) -> DashboardDTO:
        return self.service.dashboard(clinic_id=q.clinic_id, period=q.period, start=q.start, end=q.end)
