from collections.abc import Callable, Iterable
from dataclasses import fields
from enum import Enum
from typing import Any, TypeVar

from django.db.models import QuerySet

from clinic_billing.core.application.cqrs import PagedResult
from clinic_billing.core.domain.entities._base import to_primitive

T = TypeVar("T")


def model_defaults(entity: Any, *, json_fields: Iterable[str] = ()) -> dict[str, Any]:
    """
    Entidade → kwargs do model (sem `id`).

    Enums viram `.value`; os campos em `json_fields` são serializados para
    tipos aceitos por JSONField. Demais valores seguem como estão.
    """
    json_fields = set(json_fields)
    out: dict[str, Any] = {}
    for f in fields(entity):
        if f.name == "id":
            continue
        value = getattr(entity, f.name)
        if f.name in json_fields:
            value = to_primitive(value)
        elif isinstance(value, Enum):
            value = value.value
        out[f.name] = value
    return out


def values_of(enums: Iterable[Enum]) -> list[str]:
    return [e.value for e in enums]


def paginate(qs: QuerySet, page: int, page_size: int, mapper: Callable[[Any], T]) -> PagedResult[T]:
    total = qs.count()
    offset = (page - 1) * page_size
    items = [mapper(obj) for obj in qs[offset : offset + page_size]]
    return PagedResult(items=items, total=total, page=page, page_size=page_size)
