from __future__ import annotations

import uuid
from dataclasses import dataclass
from decimal import Decimal

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field, model_validator

from clinic_billing.core.domain.entities.invoice_entity import InvoiceEntity
from clinic_billing.core.domain.enums import (
    DiscountType,
    InvoiceStatus,
    InvoiceType,
    PaymentMethod,
    RefundReason,
    TaxType,
)


class InvoiceItemDTO(BaseModel):
    """Item de fatura informado pelo chamador (antes do cálculo)."""
    model_config = ConfigDict(frozen=True)

    code: str = Field(min_length=1)
    description: str = Field(min_length=1)
    quantity: Decimal = Field(gt=0)
    unit_price: Decimal = Field(ge=0)
    discount: Decimal = Field(default=Decimal("0"), ge=0)
    discount_type: DiscountType = DiscountType.FIXED
    covered_by_insurance: bool = False
    price_table_code: str | None = None
    service_date: str | None = None
    notes: str | None = None

    @model_validator(mode="after")
    def _percentual_ate_100(self) -> InvoiceItemDTO:
        if self.discount_type is DiscountType.PERCENTAGE and self.discount > 100:
            raise ValueError("desconto percentual deve ser no máximo 100")
        return self


class InvoiceTaxDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: TaxType
    percentage: Decimal = Field(ge=0, le=100)
    withheld: bool = False


class CreateInvoiceDTO(BaseModel):
    patient_id: uuid.UUID
    clinic_id: uuid.UUID
    type: InvoiceType
    items: list[InvoiceItemDTO] = Field(min_length=1)
    due_date: AwareDatetime | None = None
    insurer_id: uuid.UUID | None = None
    insurance_authorization_number: str | None = None
    global_discount: Decimal = Field(default=Decimal("0"), ge=0)
    global_discount_type: DiscountType = DiscountType.FIXED
    discount_reason: str | None = None
    taxes: list[InvoiceTaxDTO] = Field(default_factory=list)
    notes: str | None = None
    internal_notes: str | None = None
    external_reference: str | None = None
    consultation_id: uuid.UUID | None = None
    appointment_id: uuid.UUID | None = None
    send_to_patient: bool = False
    accepted_payment_methods: list[PaymentMethod] = Field(default_factory=list)


class UpdateInvoiceDTO(BaseModel):
    """Campos ausentes (None) mantêm o valor atual da fatura."""
    status: InvoiceStatus | None = None
    items: list[InvoiceItemDTO] | None = Field(default=None, min_length=1)
    due_date: AwareDatetime | None = None
    global_discount: Decimal | None = Field(default=None, ge=0)
    global_discount_type: DiscountType | None = None
    discount_reason: str | None = None
    taxes: list[InvoiceTaxDTO] | None = None
    notes: str | None = None
    internal_notes: str | None = None

    @model_validator(mode="after")
    def _status_editavel(self) -> UpdateInvoiceDTO:
        if self.status not in (None, InvoiceStatus.DRAFT, InvoiceStatus.PENDING):
            raise ValueError("status só pode ser alterado manualmente para DRAFT ou PENDING")
        return self


class SendInvoiceDTO(BaseModel):
    send_email: bool = True
    send_sms: bool = False
    send_whatsapp: bool = False
    alternative_email: str | None = Field(default=None, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    alternative_phone: str | None = None
    custom_message: str | None = None


class CancelInvoiceDTO(BaseModel):
    reason: str = Field(min_length=3)
    refund_payments: bool = False
    refund_reason: RefundReason = RefundReason.CUSTOMER_REQUEST


@dataclass(frozen=True)
class InvoiceSentDTO:
    invoice: InvoiceEntity
    channels: tuple[str, ...]
