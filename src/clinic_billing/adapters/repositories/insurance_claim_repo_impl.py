from collections.abc import Sequence

from django.db.models import QuerySet

from clinic_billing.adapters.repositories._mapping import model_defaults, paginate, values_of
from clinic_billing.core.application.cqrs import PagedResult
from clinic_billing.core.domain.entities.insurance_claim_entity import (
    InsuranceBatchEntity,
    InsuranceClaimEntity,
)
from clinic_billing.core.domain.enums import ClaimStatus
from clinic_billing.core.domain.repositories.filters import ClaimFilter
from clinic_billing.core.domain.repositories.insurance_claim_repository import InsuranceClaimRepository
from plugins.django_interface.models import InsuranceBatch as InsuranceBatchModel
from plugins.django_interface.models import InsuranceClaim as InsuranceClaimModel

JSON_FIELDS = ("procedures", "diagnosis_codes", "attachments", "denied_items", "appeal_documents")
AWAITING_PAYMENT = (ClaimStatus.APPROVED, ClaimStatus.PARTIALLY_APPROVED)


class InsuranceClaimRepoImpl(InsuranceClaimRepository):
    def save(self, claim: InsuranceClaimEntity) -> InsuranceClaimEntity:
        m, _ = InsuranceClaimModel.objects.update_or_create(
            id=claim.id,
            defaults=model_defaults(claim, json_fields=JSON_FIELDS),
        )
        return InsuranceClaimEntity.from_model(m)

    def find_by_id(self, claim_id: str) -> InsuranceClaimEntity | None:
        m = InsuranceClaimModel.objects.filter(id=claim_id).first()
        return InsuranceClaimEntity.from_model(m) if m else None

    def get_for_update(self, claim_id: str) -> InsuranceClaimEntity | None:
        m = InsuranceClaimModel.objects.select_for_update().filter(id=claim_id).first()
        return InsuranceClaimEntity.from_model(m) if m else None

    def list(self, filtros: ClaimFilter, page: int, page_size: int) -> PagedResult[InsuranceClaimEntity]:
        return paginate(self._filtered(filtros), page, page_size, InsuranceClaimEntity.from_model)

    def list_all(self, filtros: ClaimFilter) -> Sequence[InsuranceClaimEntity]:
        return [InsuranceClaimEntity.from_model(m) for m in self._filtered(filtros)]

    def save_batch(self, batch: InsuranceBatchEntity) -> InsuranceBatchEntity:
        m, _ = InsuranceBatchModel.objects.update_or_create(id=batch.id, defaults=model_defaults(batch))
        return InsuranceBatchEntity.from_model(m)

    def find_batch(self, batch_id: str) -> InsuranceBatchEntity | None:
        m = InsuranceBatchModel.objects.filter(id=batch_id).first()
        return InsuranceBatchEntity.from_model(m) if m else None

    @staticmethod
    def _filtered(f: ClaimFilter) -> QuerySet:  # noqa: PLR0912
        qs = InsuranceClaimModel.objects.all()
        if f.clinic_id:
            qs = qs.filter(clinic_id=f.clinic_id)
        if f.insurer_id:
            qs = qs.filter(insurer_id=f.insurer_id)
        if f.patient_id:
            qs = qs.filter(patient_id=f.patient_id)
        if f.invoice_id:
            qs = qs.filter(invoice_id=f.invoice_id)
        if f.batch_id:
            qs = qs.filter(batch_id=f.batch_id)
        if f.statuses:
            qs = qs.filter(status__in=values_of(f.statuses))
        if f.submitted_from:
            qs = qs.filter(submitted_at__gte=f.submitted_from)
        if f.submitted_until:
            qs = qs.filter(submitted_at__lte=f.submitted_until)
        if f.created_from:
            qs = qs.filter(created_at__gte=f.created_from)
        if f.created_until:
            qs = qs.filter(created_at__lte=f.created_until)
        if f.denied_only:
            qs = qs.filter(status=ClaimStatus.DENIED.value)
        if f.pending_payment:
            qs = qs.filter(status__in=values_of(AWAITING_PAYMENT), paid_at__isnull=True)
        return qs.order_by("-created_at", "claim_number")
