from collections.abc import Sequence

from django.db.models import QuerySet

from clinic_billing.adapters.repositories._mapping import model_defaults, paginate, values_of
from clinic_billing.core.application.cqrs import PagedResult
from clinic_billing.core.domain.entities.payment_entity import PaymentEntity
from clinic_billing.core.domain.repositories.filters import PaymentFilter
from clinic_billing.core.domain.repositories.payment_repository import PaymentRepository
from plugins.django_interface.models import Payment as PaymentModel


class PaymentRepoImpl(PaymentRepository):
    def save(self, payment: PaymentEntity) -> PaymentEntity:
        m, _ = PaymentModel.objects.update_or_create(id=payment.id, defaults=model_defaults(payment))
        return PaymentEntity.from_model(m)

    def find_by_id(self, payment_id: str) -> PaymentEntity | None:
        m = PaymentModel.objects.filter(id=payment_id).first()
        return PaymentEntity.from_model(m) if m else None

    def get_for_update(self, payment_id: str) -> PaymentEntity | None:
        m = PaymentModel.objects.select_for_update().filter(id=payment_id).first()
        return PaymentEntity.from_model(m) if m else None

    def list(self, filtros: PaymentFilter, page: int, page_size: int) -> PagedResult[PaymentEntity]:
        return paginate(self._filtered(filtros), page, page_size, PaymentEntity.from_model)

    def list_all(self, filtros: PaymentFilter) -> Sequence[PaymentEntity]:
        return [PaymentEntity.from_model(m) for m in self._filtered(filtros)]

    @staticmethod
    def _filtered(f: PaymentFilter) -> QuerySet:  # noqa: PLR0912
        qs = PaymentModel.objects.all()
        if f.clinic_id:
            qs = qs.filter(clinic_id=f.clinic_id)
        if f.invoice_id:
            qs = qs.filter(invoice_id=f.invoice_id)
        if f.invoice_ids:
            qs = qs.filter(invoice_id__in=list(f.invoice_ids))
        if f.patient_id:
            qs = qs.filter(patient_id=f.patient_id)
        if f.method:
            qs = qs.filter(method=f.method.value)
        if f.statuses:
            qs = qs.filter(status__in=values_of(f.statuses))
        if f.paid_from:
            qs = qs.filter(paid_at__gte=f.paid_from)
        if f.paid_until:
            qs = qs.filter(paid_at__lte=f.paid_until)
        if f.refunded_from:
            qs = qs.filter(refunded_at__gte=f.refunded_from)
        if f.refunded_until:
            qs = qs.filter(refunded_at__lte=f.refunded_until)
        if f.created_from:
            qs = qs.filter(created_at__gte=f.created_from)
        if f.created_until:
            qs = qs.filter(created_at__lte=f.created_until)
        if f.min_amount is not None:
            qs = qs.filter(amount__gte=f.min_amount)
        if f.max_amount is not None:
            qs = qs.filter(amount__lte=f.max_amount)
        return qs.order_by("-created_at")
