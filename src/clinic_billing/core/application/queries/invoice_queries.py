from dataclasses import dataclass

from clinic_billing.core.application.cqrs import QueryDTO
from clinic_billing.core.domain.repositories.filters import InvoiceFilter


@dataclass(frozen=True)
class GetInvoiceQuery(QueryDTO):
    id: str

@dataclass(frozen=True)
class ListInvoicesQuery(QueryDTO):
    """Lista faturas com paginação e resumo (total, pago, pendente, vencido)."""
    filtros: InvoiceFilter
    page: int = 1
    page_size: int = 50
    overdue_only: bool = False
