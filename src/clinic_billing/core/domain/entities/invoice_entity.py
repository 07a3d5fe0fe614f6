from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from clinic_billing.core.domain.entities._base import EntityMixin
from clinic_billing.core.domain.enums import (
    CLOSED_INVOICE_STATUSES,
    RECEIVABLE_STATUSES,
    DiscountType,
    InvoiceStatus,
    InvoiceType,
    SettlementSource,
    TaxType,
)
from clinic_billing.core.domain.events.exceptions import (
    InvalidStateError,
    InvariantViolationError,
)
from clinic_billing.core.utils.money import ZERO, D, money2


@dataclass(frozen=True, slots=True)
class InvoiceItemEntity(EntityMixin):
    code: str
    description: str
    quantity: Decimal
    unit_price: Decimal
    discount: Decimal = ZERO
    discount_type: DiscountType = DiscountType.FIXED
    # --- calculados --- #
    subtotal: Decimal = ZERO
    discount_value: Decimal = ZERO
    total: Decimal = ZERO
    # --- rastreabilidade --- #
    covered_by_insurance: bool = False
    price_table_code: str | None = None
    service_date: str | None = None
    notes: str | None = None

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> InvoiceItemEntity:
        return cls(
            code=data["code"],
            description=data["description"],
            quantity=D(data["quantity"]),
            unit_price=D(data["unit_price"]),
            discount=D(data.get("discount")),
            discount_type=DiscountType(data.get("discount_type") or DiscountType.FIXED),
            subtotal=D(data.get("subtotal")),
            discount_value=D(data.get("discount_value")),
            total=D(data.get("total")),
            covered_by_insurance=bool(data.get("covered_by_insurance", False)),
            price_table_code=data.get("price_table_code"),
            service_date=data.get("service_date"),
            notes=data.get("notes"),
        )


@dataclass(frozen=True, slots=True)
class InvoiceTaxEntity(EntityMixin):
    type: TaxType
    percentage: Decimal
    value: Decimal = ZERO
    withheld: bool = False

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> InvoiceTaxEntity:
        return cls(
            type=TaxType(data["type"]),
            percentage=D(data["percentage"]),
            value=D(data.get("value")),
            withheld=bool(data.get("withheld", False)),
        )


@dataclass(slots=True)
class InvoiceEntity(EntityMixin):
    id: uuid.UUID
    invoice_number: str
    clinic_id: uuid.UUID
    patient_id: uuid.UUID
    type: InvoiceType
    status: InvoiceStatus
    issue_date: datetime
    due_date: datetime

    # --- composição --- #
    items: list[InvoiceItemEntity] = field(default_factory=list)
    taxes: list[InvoiceTaxEntity] = field(default_factory=list)
    subtotal: Decimal = ZERO
    global_discount: Decimal = ZERO
    global_discount_type: DiscountType = DiscountType.FIXED
    discount_reason: str | None = None
    discount_total: Decimal = ZERO
    tax_total: Decimal = ZERO
    total: Decimal = ZERO

    # --- saldo --- #
    amount_paid: Decimal = ZERO
    amount_due: Decimal = ZERO
    insurance_coverage: Decimal = ZERO

    # --- relacionamentos opcionais --- #
    insurer_id: uuid.UUID | None = None
    insurance_authorization_number: str | None = None
    consultation_id: uuid.UUID | None = None
    appointment_id: uuid.UUID | None = None
    payment_plan_id: uuid.UUID | None = None
    has_payment_plan: bool = False

    # --- ciclo de vida --- #
    paid_date: datetime | None = None
    sent_at: datetime | None = None
    cancelled_at: datetime | None = None
    cancellation_reason: str | None = None
    cancelled_by: str | None = None
    notes: str | None = None
    internal_notes: str | None = None
    external_reference: str | None = None
    accepted_payment_methods: list[str] = field(default_factory=list)
    created_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    deleted_at: datetime | None = None

    # ────────────────────────────────── #
    # Regras de status
    # ────────────────────────────────── #
    @property
    def accepts_payment(self) -> bool:
        return self.status not in (*CLOSED_INVOICE_STATUSES, InvoiceStatus.PAID)

    @property
    def is_editable(self) -> bool:
        return self.status in (InvoiceStatus.DRAFT, InvoiceStatus.PENDING)

    def is_overdue(self, now: datetime) -> bool:
        """Classificação em tempo de leitura; o status persistido não muda."""
        return (
            self.status in RECEIVABLE_STATUSES
            and self.amount_due > 0
            and self.due_date < now
        )

    def ensure_accepts_payment(self) -> None:
        if not self.accepts_payment:
            raise InvalidStateError(
                "Fatura não aceita pagamentos neste status",
                invoice_id=str(self.id),
                status=self.status.value,
            )

    # ────────────────────────────────── #
    # Liquidação: único ponto que altera amount_paid / amount_due
    # ────────────────────────────────── #
    def apply_settlement(
        self,
        amount_delta: Decimal,
        source: SettlementSource,
        at: datetime,
        *,
        allow_overpayment: bool = False,
    ) -> InvoiceStatus:
        delta = money2(amount_delta)
        if delta == 0:
            return self.status

        if delta > 0:
            if self.status in CLOSED_INVOICE_STATUSES:
                raise InvalidStateError(
                    "Fatura não aceita pagamentos neste status",
                    invoice_id=str(self.id),
                    status=self.status.value,
                )
            if not allow_overpayment and delta > self.amount_due:
                raise InvariantViolationError(
                    "Valor do pagamento excede o valor devido",
                    invoice_id=str(self.id),
                    amount=str(delta),
                    amount_due=str(self.amount_due),
                )
        elif self.amount_paid + delta < 0:
            raise InvariantViolationError(
                "Valor de estorno excede o valor pago na fatura",
                invoice_id=str(self.id),
                amount=str(-delta),
                amount_paid=str(self.amount_paid),
            )

        self.amount_paid = money2(self.amount_paid + delta)
        self.amount_due = max(ZERO, money2(self.total - self.amount_paid))
        if source is SettlementSource.INSURANCE:
            self.insurance_coverage = money2(self.insurance_coverage + delta)

        self.status = self._derive_status(credit=delta > 0)
        if self.status is InvoiceStatus.PAID:
            self.paid_date = self.paid_date or at
        else:
            self.paid_date = None
        self.updated_at = at
        return self.status

    def _derive_status(self, *, credit: bool) -> InvoiceStatus:
        if credit:
            if self.amount_due <= 0:
                return InvoiceStatus.PAID
            return InvoiceStatus.PARTIALLY_PAID
        if self.status in CLOSED_INVOICE_STATUSES:
            return self.status
        if self.status is InvoiceStatus.PAID and self.amount_paid <= 0:
            return InvoiceStatus.REFUNDED
        if self.amount_paid > 0 and self.amount_due > 0:
            return InvoiceStatus.PARTIALLY_PAID
        return self.status

    # serialização ----------------------------------------------------------
    @classmethod
    def from_model(cls, model: Any) -> InvoiceEntity:
        return cls(
            id=model.id,
            invoice_number=model.invoice_number,
            clinic_id=model.clinic_id,
            patient_id=model.patient_id,
            type=InvoiceType(model.type),
            status=InvoiceStatus(model.status),
            issue_date=model.issue_date,
            due_date=model.due_date,
            items=[InvoiceItemEntity.from_json(i) for i in (model.items or [])],
            taxes=[InvoiceTaxEntity.from_json(t) for t in (model.taxes or [])],
            subtotal=model.subtotal,
            global_discount=model.global_discount,
            global_discount_type=DiscountType(model.global_discount_type),
            discount_reason=model.discount_reason,
            discount_total=model.discount_total,
            tax_total=model.tax_total,
            total=model.total,
            amount_paid=model.amount_paid,
            amount_due=model.amount_due,
            insurance_coverage=model.insurance_coverage,
            insurer_id=model.insurer_id,
            insurance_authorization_number=model.insurance_authorization_number,
            consultation_id=model.consultation_id,
            appointment_id=model.appointment_id,
            payment_plan_id=model.payment_plan_id,
            has_payment_plan=model.has_payment_plan,
            paid_date=model.paid_date,
            sent_at=model.sent_at,
            cancelled_at=model.cancelled_at,
            cancellation_reason=model.cancellation_reason,
            cancelled_by=model.cancelled_by,
            notes=model.notes,
            internal_notes=model.internal_notes,
            external_reference=model.external_reference,
            accepted_payment_methods=list(model.accepted_payment_methods or []),
            created_by=model.created_by,
            created_at=model.created_at,
            updated_at=model.updated_at,
            deleted_at=model.deleted_at,
        )
