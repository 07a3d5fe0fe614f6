from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from clinic_billing.core.domain.entities._base import EntityMixin
from clinic_billing.core.domain.enums import PaymentMethod, PaymentStatus
from clinic_billing.core.utils.money import ZERO, money2


@dataclass(slots=True)
class PaymentEntity(EntityMixin):
    id: uuid.UUID
    invoice_id: uuid.UUID
    patient_id: uuid.UUID
    clinic_id: uuid.UUID
    amount: Decimal
    method: PaymentMethod
    status: PaymentStatus = PaymentStatus.PENDING
    refunded_amount: Decimal = ZERO

    # --- cartão --- #
    gateway_transaction_id: str | None = None
    card_last_four: str | None = None
    card_installments: int | None = None
    # --- PIX --- #
    pix_code: str | None = None
    pix_qr_code_url: str | None = None
    pix_expires_at: datetime | None = None
    # --- boleto --- #
    boleto_barcode: str | None = None
    boleto_url: str | None = None
    boleto_expires_at: datetime | None = None
    # --- manual --- #
    is_manual: bool = False
    reference_number: str | None = None
    bank_name: str | None = None
    receipt_url: str | None = None

    # --- ciclo de vida --- #
    paid_at: datetime | None = None
    refunded_at: datetime | None = None
    refund_reason: str | None = None
    refund_description: str | None = None
    failure_reason: str | None = None
    external_reference: str | None = None
    notes: str | None = None
    created_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def refundable_amount(self) -> Decimal:
        return money2(self.amount - self.refunded_amount)

    @property
    def is_confirmable(self) -> bool:
        return self.status in (PaymentStatus.PENDING, PaymentStatus.PROCESSING)

    @property
    def is_refundable(self) -> bool:
        return self.status in (PaymentStatus.COMPLETED, PaymentStatus.PARTIALLY_REFUNDED)

    @classmethod
    def from_model(cls, model: Any) -> PaymentEntity:
        entity = super(PaymentEntity, cls).from_model(model)
        entity.method = PaymentMethod(entity.method)
        entity.status = PaymentStatus(entity.status)
        return entity
