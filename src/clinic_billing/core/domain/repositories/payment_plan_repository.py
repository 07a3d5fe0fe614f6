from abc import ABC, abstractmethod
from collections.abc import Sequence

from clinic_billing.core.domain.entities.payment_plan_entity import PaymentPlanEntity
from clinic_billing.core.domain.repositories.filters import PaymentPlanFilter


class PaymentPlanRepository(ABC):
    @abstractmethod
    def save(self, plan: PaymentPlanEntity) -> PaymentPlanEntity:
        ...

    @abstractmethod
    def find_by_id(self, plan_id: str) -> PaymentPlanEntity | None:
        ...

    @abstractmethod
    def get_for_update(self, plan_id: str) -> PaymentPlanEntity | None:
        ...

    @abstractmethod
    def find_active_by_invoice(self, invoice_id: str) -> PaymentPlanEntity | None:
        ...

    @abstractmethod
    def list_all(self, filtros: PaymentPlanFilter) -> Sequence[PaymentPlanEntity]:
        ...
