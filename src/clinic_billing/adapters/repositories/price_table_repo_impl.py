from datetime import datetime

from django.db.models import Q

from clinic_billing.adapters.repositories._mapping import model_defaults, paginate
from clinic_billing.core.application.cqrs import PagedResult
from clinic_billing.core.domain.entities.price_table_entity import PriceTableEntity
from clinic_billing.core.domain.enums import PriceTableType
from clinic_billing.core.domain.repositories.filters import PriceTableFilter
from clinic_billing.core.domain.repositories.price_table_repository import PriceTableRepository
from plugins.django_interface.models import PriceTable as PriceTableModel


def _valid_at(at: datetime) -> Q:
    return Q(valid_from__lte=at) & (Q(valid_until__isnull=True) | Q(valid_until__gte=at))


class PriceTableRepoImpl(PriceTableRepository):
    def save(self, table: PriceTableEntity) -> PriceTableEntity:
        m, _ = PriceTableModel.objects.update_or_create(
            id=table.id,
            defaults=model_defaults(table, json_fields=("items",)),
        )
        return PriceTableEntity.from_model(m)

    def find_by_id(self, table_id: str) -> PriceTableEntity | None:
        m = PriceTableModel.objects.filter(id=table_id).first()
        return PriceTableEntity.from_model(m) if m else None

    def find_active_for_insurer(self, insurer_id: str, at: datetime) -> PriceTableEntity | None:
        m = (
            PriceTableModel.objects.filter(_valid_at(at), insurer_id=insurer_id, is_active=True)
            .order_by("-valid_from")
            .first()
        )
        return PriceTableEntity.from_model(m) if m else None

    def find_default(self, table_type: PriceTableType) -> PriceTableEntity | None:
        m = PriceTableModel.objects.filter(type=table_type.value, is_default=True, is_active=True).first()
        return PriceTableEntity.from_model(m) if m else None

    def unset_defaults(self, table_type: PriceTableType, except_id: str | None = None) -> int:
        qs = PriceTableModel.objects.filter(type=table_type.value, is_default=True)
        if except_id:
            qs = qs.exclude(id=except_id)
        return qs.update(is_default=False)

    def list(self, filtros: PriceTableFilter, page: int, page_size: int) -> PagedResult[PriceTableEntity]:
        qs = PriceTableModel.objects.all()
        if filtros.type:
            qs = qs.filter(type=filtros.type.value)
        if filtros.insurer_id:
            qs = qs.filter(insurer_id=filtros.insurer_id)
        if filtros.active_only:
            qs = qs.filter(is_active=True)
        if filtros.valid_on:
            qs = qs.filter(_valid_at(filtros.valid_on))
        if filtros.search:
            qs = qs.filter(Q(name__icontains=filtros.search) | Q(description__icontains=filtros.search))
        return paginate(qs.order_by("name"), page, page_size, PriceTableEntity.from_model)
