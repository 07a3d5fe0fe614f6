from dataclasses import dataclass

from clinic_billing.core.application.cqrs import CommandDTO
from clinic_billing.core.application.dtos.payment_plan_dto import CreatePaymentPlanDTO, PayInstallmentDTO


@dataclass(frozen=True)
class CreatePaymentPlanCommand(CommandDTO):
    payload: CreatePaymentPlanDTO
    created_by: str | None = None

@dataclass(frozen=True)
class PayInstallmentCommand(CommandDTO):
    payload: PayInstallmentDTO
    paid_by: str | None = None

@dataclass(frozen=True)
class CancelPaymentPlanCommand(CommandDTO):
    plan_id: str
    reason: str
    cancelled_by: str | None = None
