from dataclasses import dataclass

from clinic_billing.core.application.cqrs import CommandDTO
from clinic_billing.core.application.dtos.price_table_dto import (
    CreatePriceTableDTO,
    PriceTableItemDTO,
    UpdatePriceTableDTO,
)


@dataclass(frozen=True)
class CreatePriceTableCommand(CommandDTO):
    payload: CreatePriceTableDTO
    created_by: str | None = None

@dataclass(frozen=True)
class UpdatePriceTableCommand(CommandDTO):
    id: str
    payload: UpdatePriceTableDTO
    updated_by: str | None = None

@dataclass(frozen=True)
class AddPriceTableItemsCommand(CommandDTO):
    id: str
    items: tuple[PriceTableItemDTO, ...]
    updated_by: str | None = None
