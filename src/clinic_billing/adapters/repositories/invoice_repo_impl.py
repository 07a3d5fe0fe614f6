from collections.abc import Sequence

from django.db.models import Q, QuerySet

from clinic_billing.adapters.repositories._mapping import model_defaults, paginate, values_of
from clinic_billing.core.application.cqrs import PagedResult
from clinic_billing.core.domain.entities.invoice_entity import InvoiceEntity
from clinic_billing.core.domain.enums import RECEIVABLE_STATUSES
from clinic_billing.core.domain.repositories.filters import InvoiceFilter
from clinic_billing.core.domain.repositories.invoice_repository import InvoiceRepository
from plugins.django_interface.models import Invoice as InvoiceModel

JSON_FIELDS = ("items", "taxes", "accepted_payment_methods")


class InvoiceRepoImpl(InvoiceRepository):
    def save(self, invoice: InvoiceEntity) -> InvoiceEntity:
        m, _ = InvoiceModel.objects.update_or_create(
            id=invoice.id,
            defaults=model_defaults(invoice, json_fields=JSON_FIELDS),
        )
        return InvoiceEntity.from_model(m)

    def find_by_id(self, invoice_id: str, include_deleted: bool = False) -> InvoiceEntity | None:
        qs = InvoiceModel.objects.filter(id=invoice_id)
        if not include_deleted:
            qs = qs.filter(deleted_at__isnull=True)
        m = qs.first()
        return InvoiceEntity.from_model(m) if m else None

    def get_for_update(self, invoice_id: str) -> InvoiceEntity | None:
        m = InvoiceModel.objects.select_for_update().filter(id=invoice_id, deleted_at__isnull=True).first()
        return InvoiceEntity.from_model(m) if m else None

    def list(self, filtros: InvoiceFilter, page: int, page_size: int) -> PagedResult[InvoiceEntity]:
        return paginate(self._filtered(filtros), page, page_size, InvoiceEntity.from_model)

    def list_all(self, filtros: InvoiceFilter) -> Sequence[InvoiceEntity]:
        return [InvoiceEntity.from_model(m) for m in self._filtered(filtros)]

    # ------------------------------------------------------------------  filtros
    @staticmethod
    def _filtered(f: InvoiceFilter) -> QuerySet:  # noqa: PLR0912
        qs = InvoiceModel.objects.filter(deleted_at__isnull=True)
        if f.clinic_id:
            qs = qs.filter(clinic_id=f.clinic_id)
        if f.patient_id:
            qs = qs.filter(patient_id=f.patient_id)
        if f.insurer_id:
            qs = qs.filter(insurer_id=f.insurer_id)
        if f.statuses:
            qs = qs.filter(status__in=values_of(f.statuses))
        if f.exclude_statuses:
            qs = qs.exclude(status__in=values_of(f.exclude_statuses))
        if f.type:
            qs = qs.filter(type=f.type.value)
        if f.issued_from:
            qs = qs.filter(issue_date__gte=f.issued_from)
        if f.issued_until:
            qs = qs.filter(issue_date__lte=f.issued_until)
        if f.due_from:
            qs = qs.filter(due_date__gte=f.due_from)
        if f.due_until:
            qs = qs.filter(due_date__lte=f.due_until)
        if f.min_amount is not None:
            qs = qs.filter(total__gte=f.min_amount)
        if f.max_amount is not None:
            qs = qs.filter(total__lte=f.max_amount)
        if f.overdue_at:
            qs = qs.filter(
                status__in=values_of(RECEIVABLE_STATUSES),
                due_date__lt=f.overdue_at,
                amount_due__gt=0,
            )
        if f.search:
            qs = qs.filter(
                Q(invoice_number__icontains=f.search)
                | Q(patient__name__icontains=f.search)
                | Q(external_reference__icontains=f.search)
                | Q(notes__icontains=f.search)
            )
        if f.ids:
            qs = qs.filter(id__in=list(f.ids))
        return qs.order_by("-issue_date", "invoice_number")
