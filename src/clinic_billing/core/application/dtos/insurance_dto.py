from __future__ import annotations

import uuid
from decimal import Decimal

from pydantic import AwareDatetime, BaseModel, Field, model_validator

from clinic_billing.core.domain.enums import ClaimStatus, DenialReason


class CreateInsuranceClaimDTO(BaseModel):
    invoice_id: uuid.UUID
    insurer_id: uuid.UUID
    patient_id: uuid.UUID
    total_amount: Decimal = Field(gt=0)
    membership_number: str | None = None
    prior_authorization_number: str | None = None
    guide_number: str | None = None
    procedures: list[str] = Field(default_factory=list)
    diagnosis_codes: list[str] = Field(default_factory=list)
    attachments: list[str] = Field(default_factory=list)
    service_date: AwareDatetime | None = None
    clinical_notes: str | None = None


class UpdateInsuranceClaimDTO(BaseModel):
    status: ClaimStatus | None = None
    approved_amount: Decimal | None = Field(default=None, ge=0)
    paid_amount: Decimal | None = Field(default=None, gt=0)
    paid_at: AwareDatetime | None = None
    denial_reason: DenialReason | None = None
    denial_explanation: str | None = None
    denied_items: list[str] | None = None
    response_protocol: str | None = None
    internal_notes: str | None = None

    @model_validator(mode="after")
    def _negativa_exige_motivo(self) -> UpdateInsuranceClaimDTO:
        if self.status is ClaimStatus.DENIED and self.denial_reason is None:
            raise ValueError("negativa exige denial_reason")
        return self


class AppealInsuranceClaimDTO(BaseModel):
    justification: str = Field(min_length=10)
    additional_documents: list[str] = Field(default_factory=list)
    medical_literature: str | None = None


class InsuranceBatchDTO(BaseModel):
    insurer_id: uuid.UUID
    invoice_ids: list[uuid.UUID] = Field(min_length=1)
    competence_date: AwareDatetime | None = None
    batch_type: str | None = None
