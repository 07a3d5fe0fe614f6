from dataclasses import dataclass

from clinic_billing.core.application.cqrs import QueryDTO
from clinic_billing.core.domain.repositories.filters import PriceTableFilter


@dataclass(frozen=True)
class LookupPriceQuery(QueryDTO):
    """Resolve o preço de um código (próprio, TUSS ou CBHPM)."""
    code: str
    insurer_id: str | None = None
    price_table_id: str | None = None

@dataclass(frozen=True)
class ListPriceTablesQuery(QueryDTO):
    filtros: PriceTableFilter
    page: int = 1
    page_size: int = 50
