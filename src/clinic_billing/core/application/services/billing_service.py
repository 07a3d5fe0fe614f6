from datetime import datetime

import structlog

from clinic_billing.core.application.cqrs import BaseService, CommandBus, QueryBus
from clinic_billing.core.application.dtos.report_dto import (
    AgingReportDTO,
    CashFlowReportDTO,
    RevenueReportDTO,
)
from clinic_billing.core.application.queries.report_queries import (
    AgingReportQuery,
    CashFlowReportQuery,
    RevenueReportQuery,
)
from clinic_billing.core.domain.enums import ReportGroupBy

logger = structlog.get_logger(__name__)


class BillingFacadeService(BaseService):
    """
    Fachada usada por comandos de gerenciamento e integrações.

    - `execute` devolve apenas o valor do `OperationResult` (eventos já publicados)
    - Atalhos para os relatórios financeiros mais usados
    """

    def __init__(self, command_bus: CommandBus, query_bus: QueryBus) -> None:
        super().__init__(command_bus, query_bus)

    # ------------------------------------------------ relatórios
    def revenue_report(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
        clinic_id: str | None = None,
        group_by: ReportGroupBy = ReportGroupBy.DAY,
    ) -> RevenueReportDTO:
        return self.query(RevenueReportQuery(start=start, end=end, clinic_id=clinic_id, group_by=group_by))

    def cash_flow_report(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
        clinic_id: str | None = None,
        include_projections: bool = False,
    ) -> CashFlowReportDTO:
        return self.query(
            CashFlowReportQuery(
                start=start,
                end=end,
                clinic_id=clinic_id,
                include_projections=include_projections,
            )
        )

    def aging_report(self, clinic_id: str | None = None, reference_date: datetime | None = None) -> AgingReportDTO:
        logger.debug("billing.aging_requested", clinic_id=clinic_id)
        return self.query(AgingReportQuery(clinic_id=clinic_id, reference_date=reference_date, by_patient=True))
