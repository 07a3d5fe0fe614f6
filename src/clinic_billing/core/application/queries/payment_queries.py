from dataclasses import dataclass

from clinic_billing.core.application.cqrs import QueryDTO
from clinic_billing.core.domain.repositories.filters import PaymentFilter


@dataclass(frozen=True)
class GetPaymentQuery(QueryDTO):
    id: str

@dataclass(frozen=True)
class ListPaymentsQuery(QueryDTO):
    filtros: PaymentFilter
    page: int = 1
    page_size: int = 50
