from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from typing import Any

from clinic_billing.core.domain.entities._base import EntityMixin
from clinic_billing.core.domain.enums import InstallmentStatus, PaymentMethod, PaymentPlanStatus
from clinic_billing.core.domain.events.exceptions import InvalidStateError, NotFoundError
from clinic_billing.core.utils.money import ZERO, D, money2


@dataclass(frozen=True, slots=True)
class InstallmentEntity(EntityMixin):
    number: int
    amount: Decimal
    due_date: datetime
    status: InstallmentStatus = InstallmentStatus.PENDING
    paid_at: datetime | None = None
    paid_amount: Decimal | None = None
    late_fee: Decimal = ZERO
    interest: Decimal = ZERO
    payment_id: uuid.UUID | None = None

    def is_overdue(self, now: datetime) -> bool:
        return self.status is InstallmentStatus.PENDING and self.due_date < now

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> InstallmentEntity:
        return cls(
            number=int(data["number"]),
            amount=D(data["amount"]),
            due_date=datetime.fromisoformat(data["due_date"]),
            status=InstallmentStatus(data.get("status") or InstallmentStatus.PENDING),
            paid_at=datetime.fromisoformat(data["paid_at"]) if data.get("paid_at") else None,
            paid_amount=D(data["paid_amount"]) if data.get("paid_amount") is not None else None,
            late_fee=D(data.get("late_fee")),
            interest=D(data.get("interest")),
            payment_id=uuid.UUID(data["payment_id"]) if data.get("payment_id") else None,
        )


@dataclass(slots=True)
class PaymentPlanEntity(EntityMixin):
    id: uuid.UUID
    invoice_id: uuid.UUID
    patient_id: uuid.UUID
    clinic_id: uuid.UUID
    original_amount: Decimal
    down_payment: Decimal
    financed_amount: Decimal
    installments_count: int
    installment_amount: Decimal
    monthly_interest_rate: Decimal
    total_amount: Decimal
    payment_method: PaymentMethod | None = None
    status: PaymentPlanStatus = PaymentPlanStatus.ACTIVE
    installments: list[InstallmentEntity] = field(default_factory=list)
    paid_installments: int = 0
    pending_installments: int = 0
    total_paid: Decimal = ZERO
    total_pending: Decimal = ZERO
    notes: str | None = None
    created_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    cancelled_at: datetime | None = None

    def get_installment(self, number: int) -> InstallmentEntity:
        for inst in self.installments:
            if inst.number == number:
                return inst
        raise NotFoundError("Parcela não encontrada", plan_id=str(self.id), installment_number=number)

    def ensure_active(self) -> None:
        if self.status is not PaymentPlanStatus.ACTIVE:
            raise InvalidStateError(
                "Plano de pagamento não está ativo",
                plan_id=str(self.id),
                status=self.status.value,
            )

    def mark_installment_paid(  # noqa: PLR0913
        self,
        number: int,
        *,
        paid_amount: Decimal,
        late_fee: Decimal,
        interest: Decimal,
        payment_id: uuid.UUID,
        at: datetime,
    ) -> InstallmentEntity:
        target = self.get_installment(number)
        paid = replace(
            target,
            status=InstallmentStatus.PAID,
            paid_at=at,
            paid_amount=money2(paid_amount),
            late_fee=money2(late_fee),
            interest=money2(interest),
            payment_id=payment_id,
        )
        self.installments = [paid if i.number == number else i for i in self.installments]
        self.recount()
        if self.pending_installments == 0:
            self.status = PaymentPlanStatus.COMPLETED
        self.updated_at = at
        return paid

    def recount(self) -> None:
        paid = [i for i in self.installments if i.status is InstallmentStatus.PAID]
        pending = [i for i in self.installments if i.status is InstallmentStatus.PENDING]
        self.paid_installments = len(paid)
        self.pending_installments = len(pending)
        self.total_paid = money2(sum((i.paid_amount or ZERO for i in paid), ZERO))
        self.total_pending = money2(sum((i.amount for i in pending), ZERO))

    def overdue_installments(self, now: datetime) -> list[InstallmentEntity]:
        return [i for i in self.installments if i.is_overdue(now)]

    def next_pending(self) -> InstallmentEntity | None:
        pending = [i for i in self.installments if i.status is InstallmentStatus.PENDING]
        return min(pending, key=lambda i: i.number) if pending else None

    @classmethod
    def from_model(cls, model: Any) -> PaymentPlanEntity:
        return cls(
            id=model.id,
            invoice_id=model.invoice_id,
            patient_id=model.patient_id,
            clinic_id=model.clinic_id,
            original_amount=model.original_amount,
            down_payment=model.down_payment,
            financed_amount=model.financed_amount,
            installments_count=model.installments_count,
            installment_amount=model.installment_amount,
            monthly_interest_rate=model.monthly_interest_rate,
            total_amount=model.total_amount,
            payment_method=PaymentMethod(model.payment_method) if model.payment_method else None,
            status=PaymentPlanStatus(model.status),
            installments=[InstallmentEntity.from_json(i) for i in (model.installments or [])],
            paid_installments=model.paid_installments,
            pending_installments=model.pending_installments,
            total_paid=model.total_paid,
            total_pending=model.total_pending,
            notes=model.notes,
            created_by=model.created_by,
            created_at=model.created_at,
            updated_at=model.updated_at,
            cancelled_at=model.cancelled_at,
        )
