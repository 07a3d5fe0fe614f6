from dataclasses import dataclass

from clinic_billing.core.application.cqrs import CommandDTO
from clinic_billing.core.application.dtos.payment_dto import (
    ConfirmPaymentDTO,
    CreatePaymentDTO,
    RecordManualPaymentDTO,
    RefundPaymentDTO,
)


@dataclass(frozen=True)
class CreatePaymentCommand(CommandDTO):
    payload: CreatePaymentDTO
    created_by: str | None = None
    # parcela de plano: limite vem do cronograma, não do amount_due da fatura
    plan_installment: bool = False

@dataclass(frozen=True)
class ConfirmPaymentCommand(CommandDTO):
    payment_id: str
    payload: ConfirmPaymentDTO
    confirmed_by: str | None = None

@dataclass(frozen=True)
class RefundPaymentCommand(CommandDTO):
    payment_id: str
    payload: RefundPaymentDTO
    refunded_by: str | None = None

@dataclass(frozen=True)
class RecordManualPaymentCommand(CommandDTO):
    payload: RecordManualPaymentDTO
    recorded_by: str | None = None

@dataclass(frozen=True)
class FailPaymentCommand(CommandDTO):
    """Recusa do gateway ou expiração de PIX/boleto."""
    payment_id: str
    reason: str | None = None
    user_id: str | None = None
