from dataclasses import dataclass

from clinic_billing.core.application.cqrs import CommandDTO
from clinic_billing.core.application.dtos.insurance_dto import (
    AppealInsuranceClaimDTO,
    CreateInsuranceClaimDTO,
    InsuranceBatchDTO,
    UpdateInsuranceClaimDTO,
)


@dataclass(frozen=True)
class CreateInsuranceClaimCommand(CommandDTO):
    payload: CreateInsuranceClaimDTO
    created_by: str | None = None

@dataclass(frozen=True)
class SubmitInsuranceClaimCommand(CommandDTO):
    claim_id: str
    submitted_by: str | None = None

@dataclass(frozen=True)
class UpdateInsuranceClaimCommand(CommandDTO):
    claim_id: str
    payload: UpdateInsuranceClaimDTO
    updated_by: str | None = None

@dataclass(frozen=True)
class AppealInsuranceClaimCommand(CommandDTO):
    claim_id: str
    payload: AppealInsuranceClaimDTO
    appealed_by: str | None = None

@dataclass(frozen=True)
class CreateInsuranceBatchCommand(CommandDTO):
    payload: InsuranceBatchDTO
    created_by: str | None = None
