from dataclasses import dataclass

from clinic_billing.core.application.cqrs import QueryDTO
from clinic_billing.core.domain.repositories.filters import PaymentPlanFilter


@dataclass(frozen=True)
class GetPaymentPlanQuery(QueryDTO):
    id: str

@dataclass(frozen=True)
class ListPaymentPlansQuery(QueryDTO):
    filtros: PaymentPlanFilter
    has_overdue_installments: bool | None = None
