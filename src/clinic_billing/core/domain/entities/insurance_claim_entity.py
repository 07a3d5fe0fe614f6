from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from clinic_billing.core.domain.entities._base import EntityMixin
from clinic_billing.core.domain.enums import BatchStatus, ClaimStatus
from clinic_billing.core.utils.money import ZERO


@dataclass(slots=True)
class InsuranceClaimEntity(EntityMixin):
    id: uuid.UUID
    claim_number: str
    invoice_id: uuid.UUID
    insurer_id: uuid.UUID
    patient_id: uuid.UUID
    clinic_id: uuid.UUID
    total_amount: Decimal
    status: ClaimStatus = ClaimStatus.DRAFT
    batch_id: uuid.UUID | None = None
    batch_number: str | None = None
    membership_number: str | None = None
    prior_authorization_number: str | None = None
    guide_number: str | None = None
    approved_amount: Decimal | None = None
    paid_amount: Decimal = ZERO
    procedures: list[str] = field(default_factory=list)
    diagnosis_codes: list[str] = field(default_factory=list)
    attachments: list[str] = field(default_factory=list)
    service_date: datetime | None = None
    submitted_at: datetime | None = None
    reviewed_at: datetime | None = None
    paid_at: datetime | None = None
    denial_reason: str | None = None
    denial_explanation: str | None = None
    denied_items: list[str] = field(default_factory=list)
    response_protocol: str | None = None
    appeal_justification: str | None = None
    appeal_documents: list[str] = field(default_factory=list)
    appeal_medical_literature: str | None = None
    appealed_at: datetime | None = None
    appealed_by: str | None = None
    clinical_notes: str | None = None
    internal_notes: str | None = None
    created_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_model(cls, model: Any) -> InsuranceClaimEntity:
        entity = super(InsuranceClaimEntity, cls).from_model(model)
        entity.status = ClaimStatus(entity.status)
        for name in ("procedures", "diagnosis_codes", "attachments", "denied_items", "appeal_documents"):
            setattr(entity, name, list(getattr(entity, name) or []))
        return entity


@dataclass(slots=True)
class InsuranceBatchEntity(EntityMixin):
    id: uuid.UUID
    batch_number: str
    insurer_id: uuid.UUID
    clinic_id: uuid.UUID
    competence_date: datetime
    claims_count: int
    total_amount: Decimal
    status: BatchStatus = BatchStatus.DRAFT
    batch_type: str | None = None
    created_by: str | None = None
    created_at: datetime | None = None

    @classmethod
    def from_model(cls, model: Any) -> InsuranceBatchEntity:
        entity = super(InsuranceBatchEntity, cls).from_model(model)
        entity.status = BatchStatus(entity.status)
        return entity
