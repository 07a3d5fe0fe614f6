from __future__ import annotations

import uuid
from dataclasses import dataclass
from decimal import Decimal

from pydantic import AwareDatetime, BaseModel, Field

from clinic_billing.core.application.dtos.payment_dto import CardDetailsDTO
from clinic_billing.core.domain.entities.payment_plan_entity import InstallmentEntity, PaymentPlanEntity
from clinic_billing.core.domain.enums import PaymentMethod


class CreatePaymentPlanDTO(BaseModel):
    invoice_id: uuid.UUID
    installments: int = Field(ge=1, le=120)
    down_payment: Decimal = Field(default=Decimal("0"), ge=0)
    payment_method: PaymentMethod | None = None
    monthly_interest_rate: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    due_day: int | None = Field(default=None, ge=1, le=31)
    first_due_date: AwareDatetime | None = None
    notes: str | None = None


class PayInstallmentDTO(BaseModel):
    payment_plan_id: uuid.UUID
    installment_number: int = Field(ge=1)
    method: PaymentMethod
    card_details: CardDetailsDTO | None = None
    amount: Decimal | None = Field(default=None, gt=0)


@dataclass(frozen=True)
class PaymentPlanSummaryDTO:
    """Plano + situação de atraso calculada no momento da consulta."""
    plan: PaymentPlanEntity
    overdue_installments: int
    next_installment: InstallmentEntity | None
