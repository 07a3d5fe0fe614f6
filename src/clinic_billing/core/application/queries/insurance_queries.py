from dataclasses import dataclass

from clinic_billing.core.application.cqrs import QueryDTO
from clinic_billing.core.domain.repositories.filters import ClaimFilter


@dataclass(frozen=True)
class GetInsuranceClaimQuery(QueryDTO):
    id: str

@dataclass(frozen=True)
class ListInsuranceClaimsQuery(QueryDTO):
    filtros: ClaimFilter
    page: int = 1
    page_size: int = 50
