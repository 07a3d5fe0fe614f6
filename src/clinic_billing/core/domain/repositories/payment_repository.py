from abc import ABC, abstractmethod
from collections.abc import Sequence

from clinic_billing.core.application.cqrs import PagedResult
from clinic_billing.core.domain.entities.payment_entity import PaymentEntity
from clinic_billing.core.domain.repositories.filters import PaymentFilter


class PaymentRepository(ABC):
    @abstractmethod
    def save(self, payment: PaymentEntity) -> PaymentEntity:
        ...

    @abstractmethod
    def find_by_id(self, payment_id: str) -> PaymentEntity | None:
        ...

    @abstractmethod
    def get_for_update(self, payment_id: str) -> PaymentEntity | None:
        ...

    @abstractmethod
    def list(self, filtros: PaymentFilter, page: int, page_size: int) -> PagedResult[PaymentEntity]:
        ...

    @abstractmethod
    def list_all(self, filtros: PaymentFilter) -> Sequence[PaymentEntity]:
        ...
