from __future__ import annotations

import uuid

import structlog

from clinic_billing.core.application.commands.payment_commands import (
    ConfirmPaymentCommand,
    CreatePaymentCommand,
    FailPaymentCommand,
    RecordManualPaymentCommand,
    RefundPaymentCommand,
)
from clinic_billing.core.application.cqrs import CommandHandler, OperationResult, PagedResult, QueryHandler
from clinic_billing.core.application.dtos.payment_dto import PaymentCreatedDTO
from clinic_billing.core.application.handlers.invoice_handlers import load_invoice
from clinic_billing.core.application.queries.payment_queries import GetPaymentQuery, ListPaymentsQuery
from clinic_billing.core.application.services.payment_rails import PaymentRailService
from clinic_billing.core.domain.entities.invoice_entity import InvoiceEntity
from clinic_billing.core.domain.entities.payment_entity import PaymentEntity
from clinic_billing.core.domain.enums import CLOSED_INVOICE_STATUSES, PaymentStatus, SettlementSource
from clinic_billing.core.domain.events.events import (
    PaymentConfirmedEvent,
    PaymentCreatedEvent,
    PaymentFailedEvent,
    PaymentRefundedEvent,
)
from clinic_billing.core.domain.events.exceptions import (
    InvalidStateError,
    InvariantViolationError,
    NotFoundError,
)
from clinic_billing.core.domain.repositories.audit_repository import AuditRepository
from clinic_billing.core.domain.repositories.invoice_repository import InvoiceRepository
from clinic_billing.core.domain.repositories.payment_repository import PaymentRepository
from clinic_billing.core.domain.repositories.unit_of_work import UnitOfWork
from clinic_billing.core.domain.services.clock import Clock
from clinic_billing.core.utils.money import money2

logger = structlog.get_logger(__name__)


def load_payment(repo: PaymentRepository, payment_id: str, *, for_update: bool = False) -> PaymentEntity:
    payment = repo.get_for_update(payment_id) if for_update else repo.find_by_id(payment_id)
    if payment is None:
        raise NotFoundError("Pagamento não encontrado", payment_id=str(payment_id))
    return payment


def ensure_within_due(invoice: InvoiceEntity, amount) -> None:
    if money2(amount) > invoice.amount_due:
        raise InvariantViolationError(
            "Valor do pagamento excede o valor devido",
            invoice_id=str(invoice.id),
            amount=str(amount),
            amount_due=str(invoice.amount_due),
        )


class _PaymentHandlerBase:
    def __init__(  # noqa: PLR0913
        self,
        repo: PaymentRepository,
        invoice_repo: InvoiceRepository,
        audit_repo: AuditRepository,
        uow: UnitOfWork,
        clock: Clock,
    ):
        self.repo = repo
        self.invoice_repo = invoice_repo
        self.audit_repo = audit_repo
        self.uow = uow
        self.clock = clock

    def _lock_pair(self, payment_id: str) -> tuple[InvoiceEntity, PaymentEntity]:
        """Trava fatura e depois pagamento (ordem fixa em todo o módulo)."""
        invoice_id = load_payment(self.repo, payment_id).invoice_id
        invoice = load_invoice(self.invoice_repo, str(invoice_id), for_update=True)
        payment = load_payment(self.repo, payment_id, for_update=True)
        return invoice, payment


# ╭──────────────────────────────────────────────╮
# │ Criação                                      │
# ╰──────────────────────────────────────────────╯
class CreatePaymentHandler(_PaymentHandlerBase, CommandHandler[CreatePaymentCommand]):
    def __init__(  # noqa: PLR0913
        self,
        repo: PaymentRepository,
        invoice_repo: InvoiceRepository,
        audit_repo: AuditRepository,
        uow: UnitOfWork,
        clock: Clock,
        rails: PaymentRailService,
    ):
        super().__init__(repo, invoice_repo, audit_repo, uow, clock)
        self.rails = rails

    def handle(self, cmd: CreatePaymentCommand) -> OperationResult[PaymentCreatedDTO]:
        p = cmd.payload
        with self.uow.atomic():
            invoice = load_invoice(self.invoice_repo, str(p.invoice_id), for_update=True)
            if cmd.plan_installment:
                # juros do parcelamento podem levar a fatura a PAID antes da última parcela
                if invoice.status in CLOSED_INVOICE_STATUSES:
                    invoice.ensure_accepts_payment()
            else:
                invoice.ensure_accepts_payment()
                ensure_within_due(invoice, p.amount)

            rail = self.rails.prepare(p, invoice)
            now = self.clock.now()
            payment = PaymentEntity(
                id=uuid.uuid4(),
                invoice_id=invoice.id,
                patient_id=invoice.patient_id,
                clinic_id=invoice.clinic_id,
                amount=money2(p.amount),
                method=p.method,
                status=PaymentStatus(rail.status),
                external_reference=p.external_reference,
                notes=p.notes,
                created_by=cmd.created_by,
                created_at=now,
                updated_at=now,
                **rail.payment_fields,
            )
            payment = self.repo.save(payment)
            self.audit_repo.log(
                action="PAYMENT_CREATED",
                entity_type="Payment",
                entity_id=str(payment.id),
                user_id=cmd.created_by,
                details={"invoice_id": str(invoice.id), "amount": str(payment.amount), "method": p.method.value},
            )

        logger.info(
            "payment.created",
            payment_id=str(payment.id),
            invoice_id=str(invoice.id),
            method=payment.method.value,
            status=payment.status.value,
        )
        return OperationResult(
            value=PaymentCreatedDTO(payment=payment, rail_response=rail.response),
            events=(
                PaymentCreatedEvent(
                    payment_id=payment.id,
                    invoice_id=invoice.id,
                    method=payment.method.value,
                    amount=payment.amount,
                ),
            ),
        )


# ╭──────────────────────────────────────────────╮
# │ Confirmação / Falha                          │
# ╰──────────────────────────────────────────────╯
class ConfirmPaymentHandler(_PaymentHandlerBase, CommandHandler[ConfirmPaymentCommand]):
    def handle(self, cmd: ConfirmPaymentCommand) -> OperationResult[PaymentEntity]:
        p = cmd.payload
        with self.uow.atomic():
            invoice, payment = self._lock_pair(cmd.payment_id)
            if payment.status is PaymentStatus.COMPLETED:
                raise InvalidStateError("Pagamento já confirmado", payment_id=cmd.payment_id)
            if not payment.is_confirmable:
                raise InvalidStateError(
                    "Pagamento não pode ser confirmado neste status",
                    payment_id=cmd.payment_id,
                    status=payment.status.value,
                )

            paid_at = p.paid_at or self.clock.now()
            # confirmação aceita excedente; amount_due fica em zero
            invoice.apply_settlement(
                payment.amount, SettlementSource.PAYMENT, paid_at, allow_overpayment=True
            )
            payment.status = PaymentStatus.COMPLETED
            payment.paid_at = paid_at
            payment.gateway_transaction_id = p.gateway_transaction_id or payment.gateway_transaction_id
            payment.receipt_url = p.receipt_url or payment.receipt_url
            payment.updated_at = self.clock.now()

            payment = self.repo.save(payment)
            invoice = self.invoice_repo.save(invoice)
            self.audit_repo.log(
                action="PAYMENT_CONFIRMED",
                entity_type="Payment",
                entity_id=str(payment.id),
                user_id=cmd.confirmed_by,
                details={"invoice_status": invoice.status.value, "amount_due": str(invoice.amount_due)},
            )

        logger.info(
            "payment.confirmed",
            payment_id=str(payment.id),
            invoice_id=str(invoice.id),
            invoice_status=invoice.status.value,
        )
        return OperationResult(
            value=payment,
            events=(
                PaymentConfirmedEvent(
                    payment_id=payment.id,
                    invoice_id=invoice.id,
                    method=payment.method.value,
                    amount=payment.amount,
                    invoice_status=invoice.status.value,
                ),
            ),
        )


class FailPaymentHandler(_PaymentHandlerBase, CommandHandler[FailPaymentCommand]):
    def handle(self, cmd: FailPaymentCommand) -> OperationResult[PaymentEntity]:
        with self.uow.atomic():
            payment = load_payment(self.repo, cmd.payment_id, for_update=True)
            if not payment.is_confirmable:
                raise InvalidStateError(
                    "Apenas pagamentos pendentes podem falhar",
                    payment_id=cmd.payment_id,
                    status=payment.status.value,
                )
            payment.status = PaymentStatus.FAILED
            payment.failure_reason = cmd.reason
            payment.updated_at = self.clock.now()
            payment = self.repo.save(payment)
            self.audit_repo.log(
                action="PAYMENT_FAILED",
                entity_type="Payment",
                entity_id=str(payment.id),
                user_id=cmd.user_id,
                details={"reason": cmd.reason},
            )

        logger.warning("payment.failed", payment_id=str(payment.id), reason=cmd.reason)
        return OperationResult(
            value=payment,
            events=(PaymentFailedEvent(payment_id=payment.id, invoice_id=payment.invoice_id, reason=cmd.reason),),
        )


# ╭──────────────────────────────────────────────╮
# │ Estorno                                      │
# ╰──────────────────────────────────────────────╯
class RefundPaymentHandler(_PaymentHandlerBase, CommandHandler[RefundPaymentCommand]):
    def handle(self, cmd: RefundPaymentCommand) -> OperationResult[PaymentEntity]:
        p = cmd.payload
        with self.uow.atomic():
            invoice, payment = self._lock_pair(cmd.payment_id)
            if not payment.is_refundable:
                raise InvalidStateError(
                    "Apenas pagamentos concluídos podem ser estornados",
                    payment_id=cmd.payment_id,
                    status=payment.status.value,
                )
            available = payment.refundable_amount
            refund = money2(p.amount) if p.amount is not None else available
            if refund > available:
                raise InvariantViolationError(
                    "Valor de estorno excede o valor disponível",
                    payment_id=cmd.payment_id,
                    refund=str(refund),
                    available=str(available),
                )

            now = self.clock.now()
            payment.refunded_amount = money2(payment.refunded_amount + refund)
            payment.status = (
                PaymentStatus.REFUNDED
                if payment.refunded_amount >= payment.amount
                else PaymentStatus.PARTIALLY_REFUNDED
            )
            payment.refunded_at = now
            payment.refund_reason = p.reason.value
            payment.refund_description = p.description
            payment.updated_at = now
            invoice.apply_settlement(-refund, SettlementSource.REFUND, now)

            payment = self.repo.save(payment)
            invoice = self.invoice_repo.save(invoice)
            self.audit_repo.log(
                action="PAYMENT_REFUNDED",
                entity_type="Payment",
                entity_id=str(payment.id),
                user_id=cmd.refunded_by,
                details={
                    "amount": str(refund),
                    "reason": p.reason.value,
                    "description": p.description,
                    "invoice_status": invoice.status.value,
                },
            )

        logger.info(
            "payment.refunded",
            payment_id=str(payment.id),
            amount=str(refund),
            reason=p.reason.value,
            invoice_status=invoice.status.value,
        )
        return OperationResult(
            value=payment,
            events=(
                PaymentRefundedEvent(
                    payment_id=payment.id,
                    invoice_id=invoice.id,
                    amount=refund,
                    reason=p.reason.value,
                ),
            ),
        )


# ╭──────────────────────────────────────────────╮
# │ Pagamento manual (criação + confirmação)     │
# ╰──────────────────────────────────────────────╯
class RecordManualPaymentHandler(_PaymentHandlerBase, CommandHandler[RecordManualPaymentCommand]):
    def handle(self, cmd: RecordManualPaymentCommand) -> OperationResult[PaymentEntity]:
        p = cmd.payload
        with self.uow.atomic():
            invoice = load_invoice(self.invoice_repo, str(p.invoice_id), for_update=True)
            invoice.ensure_accepts_payment()
            ensure_within_due(invoice, p.amount)

            now = self.clock.now()
            payment = PaymentEntity(
                id=uuid.uuid4(),
                invoice_id=invoice.id,
                patient_id=invoice.patient_id,
                clinic_id=invoice.clinic_id,
                amount=money2(p.amount),
                method=p.method,
                status=PaymentStatus.COMPLETED,
                is_manual=True,
                paid_at=p.paid_at,
                reference_number=p.reference_number,
                bank_name=p.bank_name,
                receipt_url=p.receipt_url,
                notes=p.notes,
                created_by=cmd.recorded_by,
                created_at=now,
                updated_at=now,
            )
            invoice.apply_settlement(payment.amount, SettlementSource.PAYMENT, p.paid_at)

            payment = self.repo.save(payment)
            invoice = self.invoice_repo.save(invoice)
            self.audit_repo.log(
                action="MANUAL_PAYMENT_RECORDED",
                entity_type="Payment",
                entity_id=str(payment.id),
                user_id=cmd.recorded_by,
                details={
                    "invoice_id": str(invoice.id),
                    "amount": str(payment.amount),
                    "method": p.method.value,
                    "reference_number": p.reference_number,
                },
            )

        logger.info(
            "payment.manual_recorded",
            payment_id=str(payment.id),
            invoice_id=str(invoice.id),
            invoice_status=invoice.status.value,
        )
        return OperationResult(
            value=payment,
            events=(
                PaymentConfirmedEvent(
                    payment_id=payment.id,
                    invoice_id=invoice.id,
                    method=payment.method.value,
                    amount=payment.amount,
                    invoice_status=invoice.status.value,
                    manual=True,
                ),
            ),
        )


# ╭──────────────────────────────────────────────╮
# │ Consultas                                    │
# ╰──────────────────────────────────────────────╯
class GetPaymentHandler(QueryHandler[GetPaymentQuery, PaymentEntity]):
    def __init__(self, repo: PaymentRepository):
        self.repo = repo

    def handle(self, q: GetPaymentQuery) -> PaymentEntity:
        return load_payment(self.repo, q.id)


class ListPaymentsHandler(QueryHandler[ListPaymentsQuery, PagedResult[PaymentEntity]]):
    def __init__(self, repo: PaymentRepository):
        self.repo = repo

    def handle(self, q: ListPaymentsQuery) -> PagedResult[PaymentEntity]:
        return self.repo.list(q.filtros, q.page, q.page_size)
