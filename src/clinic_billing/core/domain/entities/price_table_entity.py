from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from clinic_billing.core.domain.entities._base import EntityMixin
from clinic_billing.core.domain.enums import PriceTableType
from clinic_billing.core.utils.money import D


@dataclass(frozen=True, slots=True)
class PriceTableItemEntity(EntityMixin):
    code: str
    description: str
    price: Decimal
    tuss_code: str | None = None
    cbhpm_code: str | None = None
    category: str | None = None
    is_active: bool = True

    def matches(self, code: str) -> bool:
        return code in (self.code, self.tuss_code, self.cbhpm_code)

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> PriceTableItemEntity:
        return cls(
            code=data["code"],
            description=data["description"],
            price=D(data["price"]),
            tuss_code=data.get("tuss_code"),
            cbhpm_code=data.get("cbhpm_code"),
            category=data.get("category"),
            is_active=bool(data.get("is_active", True)),
        )


@dataclass(slots=True)
class PriceTableEntity(EntityMixin):
    id: uuid.UUID
    name: str
    type: PriceTableType
    valid_from: datetime
    valid_until: datetime | None = None
    description: str | None = None
    insurer_id: uuid.UUID | None = None
    multiplier: Decimal | None = None
    is_default: bool = False
    is_active: bool = True
    items: list[PriceTableItemEntity] = field(default_factory=list)
    created_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def is_valid_at(self, at: datetime) -> bool:
        if not self.is_active or self.valid_from > at:
            return False
        return self.valid_until is None or self.valid_until >= at

    def find_item(self, code: str) -> PriceTableItemEntity | None:
        return next((i for i in self.items if i.is_active and i.matches(code)), None)

    @classmethod
    def from_model(cls, model: Any) -> PriceTableEntity:
        return cls(
            id=model.id,
            name=model.name,
            type=PriceTableType(model.type),
            valid_from=model.valid_from,
            valid_until=model.valid_until,
            description=model.description,
            insurer_id=model.insurer_id,
            multiplier=model.multiplier,
            is_default=model.is_default,
            is_active=model.is_active,
            items=[PriceTableItemEntity.from_json(i) for i in (model.items or [])],
            created_by=model.created_by,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )
