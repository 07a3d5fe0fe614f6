from collections.abc import Sequence

from clinic_billing.adapters.repositories._mapping import model_defaults, values_of
from clinic_billing.core.domain.entities.payment_plan_entity import PaymentPlanEntity
from clinic_billing.core.domain.enums import PaymentPlanStatus
from clinic_billing.core.domain.repositories.filters import PaymentPlanFilter
from clinic_billing.core.domain.repositories.payment_plan_repository import PaymentPlanRepository
from plugins.django_interface.models import PaymentPlan as PaymentPlanModel


class PaymentPlanRepoImpl(PaymentPlanRepository):
    def save(self, plan: PaymentPlanEntity) -> PaymentPlanEntity:
        m, _ = PaymentPlanModel.objects.update_or_create(
            id=plan.id,
            defaults=model_defaults(plan, json_fields=("installments",)),
        )
        return PaymentPlanEntity.from_model(m)

    def find_by_id(self, plan_id: str) -> PaymentPlanEntity | None:
        m = PaymentPlanModel.objects.filter(id=plan_id).first()
        return PaymentPlanEntity.from_model(m) if m else None

    def get_for_update(self, plan_id: str) -> PaymentPlanEntity | None:
        m = PaymentPlanModel.objects.select_for_update().filter(id=plan_id).first()
        return PaymentPlanEntity.from_model(m) if m else None

    def find_active_by_invoice(self, invoice_id: str) -> PaymentPlanEntity | None:
        m = PaymentPlanModel.objects.filter(invoice_id=invoice_id, status=PaymentPlanStatus.ACTIVE.value).first()
        return PaymentPlanEntity.from_model(m) if m else None

    def list_all(self, filtros: PaymentPlanFilter) -> Sequence[PaymentPlanEntity]:
        qs = PaymentPlanModel.objects.all()
        if filtros.clinic_id:
            qs = qs.filter(clinic_id=filtros.clinic_id)
        if filtros.patient_id:
            qs = qs.filter(patient_id=filtros.patient_id)
        if filtros.invoice_id:
            qs = qs.filter(invoice_id=filtros.invoice_id)
        if filtros.statuses:
            qs = qs.filter(status__in=values_of(filtros.statuses))
        return [PaymentPlanEntity.from_model(m) for m in qs.order_by("-created_at")]
