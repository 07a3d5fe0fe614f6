from __future__ import annotations

import uuid
from dataclasses import dataclass
from decimal import Decimal

from pydantic import AwareDatetime, BaseModel, Field

from clinic_billing.core.domain.enums import PriceTableType


class PriceTableItemDTO(BaseModel):
    code: str = Field(min_length=1)
    description: str
    price: Decimal = Field(ge=0)
    tuss_code: str | None = None
    cbhpm_code: str | None = None
    category: str | None = None
    is_active: bool = True


class CreatePriceTableDTO(BaseModel):
    name: str = Field(min_length=1)
    type: PriceTableType
    valid_from: AwareDatetime
    valid_until: AwareDatetime | None = None
    description: str | None = None
    insurer_id: uuid.UUID | None = None
    items: list[PriceTableItemDTO] = Field(default_factory=list)
    multiplier: Decimal | None = Field(default=None, gt=0)
    is_default: bool = False


class UpdatePriceTableDTO(BaseModel):
    name: str | None = None
    description: str | None = None
    valid_until: AwareDatetime | None = None
    multiplier: Decimal | None = Field(default=None, gt=0)
    is_default: bool | None = None
    is_active: bool | None = None


@dataclass(frozen=True)
class ResolvedPriceDTO:
    code: str
    description: str
    original_price: Decimal
    multiplier: Decimal
    final_price: Decimal
    price_table_id: uuid.UUID
    price_table_name: str
    price_table_type: PriceTableType
