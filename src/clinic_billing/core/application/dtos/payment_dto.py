from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import AwareDatetime, BaseModel, Field, model_validator

from clinic_billing.core.domain.entities.payment_entity import PaymentEntity
from clinic_billing.core.domain.enums import CARD_METHODS, PaymentMethod, RefundReason


class CardDetailsDTO(BaseModel):
    card_token: str = Field(min_length=4)
    cardholder_name: str
    installments: int = Field(default=1, ge=1, le=12)
    saved_card_id: str | None = None


class PixDetailsDTO(BaseModel):
    pix_key: str | None = None
    expiration_minutes: int | None = Field(default=None, ge=1, le=1440)


class BoletoDetailsDTO(BaseModel):
    days_to_expire: int | None = Field(default=None, ge=1, le=60)
    instructions: str | None = None
    late_fee_percentage: Decimal | None = Field(default=None, ge=0)
    daily_interest_percentage: Decimal | None = Field(default=None, ge=0)


class CreatePaymentDTO(BaseModel):
    invoice_id: uuid.UUID
    amount: Decimal = Field(gt=0)
    method: PaymentMethod
    card_details: CardDetailsDTO | None = None
    pix_details: PixDetailsDTO | None = None
    boleto_details: BoletoDetailsDTO | None = None
    external_reference: str | None = None
    notes: str | None = None

    @model_validator(mode="after")
    def _cartao_exige_detalhes(self) -> CreatePaymentDTO:
        if self.method in CARD_METHODS and self.card_details is None:
            raise ValueError("pagamento com cartão exige card_details")
        return self


class ConfirmPaymentDTO(BaseModel):
    paid_at: AwareDatetime | None = None
    gateway_transaction_id: str | None = None
    receipt_url: str | None = None


class RefundPaymentDTO(BaseModel):
    amount: Decimal | None = Field(default=None, gt=0)
    reason: RefundReason
    description: str | None = None


class RecordManualPaymentDTO(BaseModel):
    invoice_id: uuid.UUID
    amount: Decimal = Field(gt=0)
    method: PaymentMethod
    paid_at: AwareDatetime
    reference_number: str | None = None
    bank_name: str | None = None
    receipt_url: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class PaymentCreatedDTO:
    """Pagamento persistido + dados do trilho para o pagador (QR, boleto, transação)."""
    payment: PaymentEntity
    rail_response: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RailResult:
    """Dados produzidos pelo gateway ao preparar um pagamento."""
    status: str
    payment_fields: dict[str, Any] = field(default_factory=dict)
    response: dict[str, Any] = field(default_factory=dict)
    expires_at: datetime | None = None
