from abc import ABC, abstractmethod
from datetime import datetime

from clinic_billing.core.application.cqrs import PagedResult
from clinic_billing.core.domain.entities.price_table_entity import PriceTableEntity
from clinic_billing.core.domain.enums import PriceTableType
from clinic_billing.core.domain.repositories.filters import PriceTableFilter


class PriceTableRepository(ABC):
    @abstractmethod
    def save(self, table: PriceTableEntity) -> PriceTableEntity:
        ...

    @abstractmethod
    def find_by_id(self, table_id: str) -> PriceTableEntity | None:
        ...

    @abstractmethod
    def find_active_for_insurer(self, insurer_id: str, at: datetime) -> PriceTableEntity | None:
        """Tabela ativa do convênio vigente em `at` (a mais recente, se houver várias)."""
        ...

    @abstractmethod
    def find_default(self, table_type: PriceTableType) -> PriceTableEntity | None:
        ...

    @abstractmethod
    def unset_defaults(self, table_type: PriceTableType, except_id: str | None = None) -> int:
        """Desmarca `is_default` das demais tabelas do mesmo tipo."""
        ...

    @abstractmethod
    def list(self, filtros: PriceTableFilter, page: int, page_size: int) -> PagedResult[PriceTableEntity]:
        ...
