from abc import ABC, abstractmethod
from collections.abc import Sequence

from clinic_billing.core.application.cqrs import PagedResult
from clinic_billing.core.domain.entities.insurance_claim_entity import (
    InsuranceBatchEntity,
    InsuranceClaimEntity,
)
from clinic_billing.core.domain.repositories.filters import ClaimFilter


class InsuranceClaimRepository(ABC):
    @abstractmethod
    def save(self, claim: InsuranceClaimEntity) -> InsuranceClaimEntity:
        ...

    @abstractmethod
    def find_by_id(self, claim_id: str) -> InsuranceClaimEntity | None:
        ...

    @abstractmethod
    def get_for_update(self, claim_id: str) -> InsuranceClaimEntity | None:
        ...

    @abstractmethod
    def list(self, filtros: ClaimFilter, page: int, page_size: int) -> PagedResult[InsuranceClaimEntity]:
        ...

    @abstractmethod
    def list_all(self, filtros: ClaimFilter) -> Sequence[InsuranceClaimEntity]:
        ...

    @abstractmethod
    def save_batch(self, batch: InsuranceBatchEntity) -> InsuranceBatchEntity:
        ...

    @abstractmethod
    def find_batch(self, batch_id: str) -> InsuranceBatchEntity | None:
        ...
