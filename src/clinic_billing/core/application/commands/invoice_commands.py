from dataclasses import dataclass

from clinic_billing.core.application.cqrs import CommandDTO
from clinic_billing.core.application.dtos.invoice_dto import (
    CancelInvoiceDTO,
    CreateInvoiceDTO,
    SendInvoiceDTO,
    UpdateInvoiceDTO,
)


@dataclass(frozen=True)
class CreateInvoiceCommand(CommandDTO):
    payload: CreateInvoiceDTO
    created_by: str | None = None

@dataclass(frozen=True)
class UpdateInvoiceCommand(CommandDTO):
    id: str
    payload: UpdateInvoiceDTO
    updated_by: str | None = None

@dataclass(frozen=True)
class SendInvoiceCommand(CommandDTO):
    id: str
    payload: SendInvoiceDTO
    sent_by: str | None = None

@dataclass(frozen=True)
class CancelInvoiceCommand(CommandDTO):
    id: str
    payload: CancelInvoiceDTO
    cancelled_by: str | None = None

@dataclass(frozen=True)
class DeleteInvoiceCommand(CommandDTO):
    """Exclusão lógica (deleted_at); só DRAFT ou CANCELLED."""
    id: str
    deleted_by: str | None = None
