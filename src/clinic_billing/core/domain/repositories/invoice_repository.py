from abc import ABC, abstractmethod
from collections.abc import Sequence

from clinic_billing.core.application.cqrs import PagedResult
from clinic_billing.core.domain.entities.invoice_entity import InvoiceEntity
from clinic_billing.core.domain.repositories.filters import InvoiceFilter


class InvoiceRepository(ABC):
    @abstractmethod
    def save(self, invoice: InvoiceEntity) -> InvoiceEntity:
        """Insere ou atualiza a fatura (itens e impostos inclusos)."""
        ...

    @abstractmethod
    def find_by_id(self, invoice_id: str, include_deleted: bool = False) -> InvoiceEntity | None:
        ...

    @abstractmethod
    def get_for_update(self, invoice_id: str) -> InvoiceEntity | None:
        """Carrega a fatura com lock de linha; exige transação aberta."""
        ...

    @abstractmethod
    def list(self, filtros: InvoiceFilter, page: int, page_size: int) -> PagedResult[InvoiceEntity]:
        ...

    @abstractmethod
    def list_all(self, filtros: InvoiceFilter) -> Sequence[InvoiceEntity]:
        """Sem paginação; usado por relatórios e lotes."""
        ...
