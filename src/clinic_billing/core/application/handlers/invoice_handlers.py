from __future__ import annotations

import uuid
from dataclasses import replace
from datetime import timedelta

import structlog

from clinic_billing.core.application.commands.invoice_commands import (
    CancelInvoiceCommand,
    CreateInvoiceCommand,
    DeleteInvoiceCommand,
    SendInvoiceCommand,
    UpdateInvoiceCommand,
)
from clinic_billing.core.application.commands.payment_commands import RefundPaymentCommand
from clinic_billing.core.application.cqrs import CommandHandler, OperationResult, QueryHandler
from clinic_billing.core.application.dtos.invoice_dto import (
    InvoiceItemDTO,
    InvoiceSentDTO,
    InvoiceTaxDTO,
    SendInvoiceDTO,
)
from clinic_billing.core.application.dtos.payment_dto import RefundPaymentDTO
from clinic_billing.core.application.dtos.report_dto import InvoiceListResultDTO, InvoiceListSummaryDTO
from clinic_billing.core.application.queries.invoice_queries import GetInvoiceQuery, ListInvoicesQuery
from clinic_billing.core.domain.entities._base import to_primitive
from clinic_billing.core.domain.entities.billing_config_entity import BillingConfigEntity
from clinic_billing.core.domain.entities.invoice_entity import (
    InvoiceEntity,
    InvoiceItemEntity,
    InvoiceTaxEntity,
)
from clinic_billing.core.domain.enums import (
    CLOSED_INVOICE_STATUSES,
    InvoiceStatus,
    NotificationChannel,
    PaymentStatus,
)
from clinic_billing.core.domain.events.events import (
    DomainEvent,
    InvoiceCancelledEvent,
    InvoiceCreatedEvent,
    InvoiceSentEvent,
    InvoiceUpdatedEvent,
    NotificationRequestedEvent,
)
from clinic_billing.core.domain.events.exceptions import (
    BillingError,
    InvalidStateError,
    InvariantViolationError,
    NotFoundError,
)
from clinic_billing.core.domain.repositories.audit_repository import AuditRepository
from clinic_billing.core.domain.repositories.filters import PaymentFilter
from clinic_billing.core.domain.repositories.invoice_repository import InvoiceRepository
from clinic_billing.core.domain.repositories.payment_repository import PaymentRepository
from clinic_billing.core.domain.repositories.reference_data_repository import ReferenceDataRepository
from clinic_billing.core.domain.repositories.sequence_repository import SequenceRepository
from clinic_billing.core.domain.repositories.unit_of_work import UnitOfWork
from clinic_billing.core.domain.services.clock import Clock
from clinic_billing.core.domain.services.invoice_calculator import InvoiceTotals, calculate_invoice
from clinic_billing.core.utils.money import ZERO, money2

logger = structlog.get_logger(__name__)

SEND_BLOCKED_STATUSES = (InvoiceStatus.PAID, *CLOSED_INVOICE_STATUSES)


def _items_from_dto(items: list[InvoiceItemDTO]) -> list[InvoiceItemEntity]:
    return [InvoiceItemEntity(**i.model_dump()) for i in items]


def _taxes_from_dto(taxes: list[InvoiceTaxDTO]) -> list[InvoiceTaxEntity]:
    return [InvoiceTaxEntity(type=t.type, percentage=t.percentage, withheld=t.withheld) for t in taxes]


def _apply_totals(invoice: InvoiceEntity, totals: InvoiceTotals) -> None:
    invoice.items = totals.items
    invoice.taxes = totals.taxes
    invoice.subtotal = totals.subtotal
    invoice.discount_total = totals.discount_total
    invoice.tax_total = totals.tax_total
    invoice.total = totals.total


def load_invoice(repo: InvoiceRepository, invoice_id: str, *, for_update: bool = False) -> InvoiceEntity:
    invoice = repo.get_for_update(invoice_id) if for_update else repo.find_by_id(invoice_id)
    if invoice is None:
        raise NotFoundError("Fatura não encontrada", invoice_id=str(invoice_id))
    return invoice


# ╭──────────────────────────────────────────────╮
# │ Envio                                        │
# ╰──────────────────────────────────────────────╯
class SendInvoiceHandler(CommandHandler[SendInvoiceCommand]):
    def __init__(  # noqa: PLR0913
        self,
        repo: InvoiceRepository,
        reference_repo: ReferenceDataRepository,
        audit_repo: AuditRepository,
        uow: UnitOfWork,
        clock: Clock,
    ):
        self.repo = repo
        self.reference_repo = reference_repo
        self.audit_repo = audit_repo
        self.uow = uow
        self.clock = clock

    def handle(self, cmd: SendInvoiceCommand) -> OperationResult[InvoiceSentDTO]:
        now = self.clock.now()
        with self.uow.atomic():
            invoice = load_invoice(self.repo, cmd.id, for_update=True)
            if invoice.status in SEND_BLOCKED_STATUSES:
                raise InvalidStateError(
                    "Fatura não pode ser enviada neste status",
                    invoice_id=cmd.id,
                    status=invoice.status.value,
                )
            # DRAFT → PENDING → SENT; reenvio não altera status
            if invoice.status in (InvoiceStatus.DRAFT, InvoiceStatus.PENDING):
                invoice.status = InvoiceStatus.SENT
            invoice.sent_at = now
            invoice.updated_at = now
            invoice = self.repo.save(invoice)

            events = self._notifications(invoice, cmd.payload)
            channels = tuple(e.channel for e in events)
            self.audit_repo.log(
                action="INVOICE_SENT",
                entity_type="Invoice",
                entity_id=str(invoice.id),
                user_id=cmd.sent_by,
                details={"channels": list(channels)},
            )

        logger.info("invoice.sent", invoice_id=str(invoice.id), channels=channels)
        return OperationResult(
            value=InvoiceSentDTO(invoice=invoice, channels=channels),
            events=(*events, InvoiceSentEvent(invoice_id=invoice.id, channels=channels)),
        )

    def _notifications(self, invoice: InvoiceEntity, opts: SendInvoiceDTO) -> list[NotificationRequestedEvent]:
        contact = self.reference_repo.get_patient_contact(str(invoice.patient_id))
        email = opts.alternative_email or (contact.email if contact else None)
        phone = opts.alternative_phone or (contact.phone if contact else None)
        wanted = (
            (opts.send_email, NotificationChannel.EMAIL, email),
            (opts.send_sms, NotificationChannel.SMS, phone),
            (opts.send_whatsapp, NotificationChannel.WHATSAPP, phone),
        )
        payload = {
            "invoice_number": invoice.invoice_number,
            "total": str(invoice.total),
            "amount_due": str(invoice.amount_due),
            "due_date": invoice.due_date.isoformat(),
            "custom_message": opts.custom_message,
        }
        events = []
        for enabled, channel, recipient in wanted:
            if not enabled:
                continue
            if not recipient:
                logger.warning(
                    "invoice.send.channel_skipped",
                    invoice_id=str(invoice.id),
                    channel=channel.value,
                    reason="sem contato",
                )
                continue
            events.append(
                NotificationRequestedEvent(
                    notification_type="INVOICE",
                    channel=channel.value,
                    recipient=recipient,
                    patient_id=invoice.patient_id,
                    reference_id=invoice.id,
                    payload=payload,
                )
            )
        return events


# ╭──────────────────────────────────────────────╮
# │ Criação / Atualização                        │
# ╰──────────────────────────────────────────────╯
class CreateInvoiceHandler(CommandHandler[CreateInvoiceCommand]):
    def __init__(  # noqa: PLR0913
        self,
        repo: InvoiceRepository,
        reference_repo: ReferenceDataRepository,
        sequence_repo: SequenceRepository,
        audit_repo: AuditRepository,
        uow: UnitOfWork,
        clock: Clock,
        config: BillingConfigEntity,
        send_handler: SendInvoiceHandler,
    ):
        self.repo = repo
        self.reference_repo = reference_repo
        self.sequence_repo = sequence_repo
        self.audit_repo = audit_repo
        self.uow = uow
        self.clock = clock
        self.config = config
        self.send_handler = send_handler

    def _ensure_references(self, cmd: CreateInvoiceCommand) -> None:
        p = cmd.payload
        if not self.reference_repo.patient_exists(str(p.patient_id)):
            raise NotFoundError("Paciente não encontrado", patient_id=str(p.patient_id))
        if not self.reference_repo.clinic_exists(str(p.clinic_id)):
            raise NotFoundError("Clínica não encontrada", clinic_id=str(p.clinic_id))
        if p.insurer_id and not self.reference_repo.insurer_exists(str(p.insurer_id)):
            raise NotFoundError("Convênio não encontrado", insurer_id=str(p.insurer_id))

    def _next_number(self, clinic_id: uuid.UUID, year: int) -> str:
        seq = self.sequence_repo.next_value(f"invoice:{clinic_id}:{year}")
        return f"INV-{year}-{seq:06d}"

    def handle(self, cmd: CreateInvoiceCommand) -> OperationResult[InvoiceEntity]:
        p = cmd.payload
        self._ensure_references(cmd)
        totals = calculate_invoice(
            _items_from_dto(p.items),
            global_discount=p.global_discount,
            global_discount_type=p.global_discount_type,
            taxes=_taxes_from_dto(p.taxes),
        )
        now = self.clock.now()

        with self.uow.atomic():
            invoice = InvoiceEntity(
                id=uuid.uuid4(),
                invoice_number=self._next_number(p.clinic_id, now.year),
                clinic_id=p.clinic_id,
                patient_id=p.patient_id,
                type=p.type,
                status=InvoiceStatus.DRAFT,
                issue_date=now,
                due_date=p.due_date or now + timedelta(days=self.config.default_due_in_days),
                global_discount=p.global_discount,
                global_discount_type=p.global_discount_type,
                discount_reason=p.discount_reason,
                insurer_id=p.insurer_id,
                insurance_authorization_number=p.insurance_authorization_number,
                consultation_id=p.consultation_id,
                appointment_id=p.appointment_id,
                notes=p.notes,
                internal_notes=p.internal_notes,
                external_reference=p.external_reference,
                accepted_payment_methods=[m.value for m in p.accepted_payment_methods],
                created_by=cmd.created_by,
                created_at=now,
                updated_at=now,
            )
            _apply_totals(invoice, totals)
            invoice.amount_due = invoice.total
            invoice = self.repo.save(invoice)

            self.audit_repo.log(
                action="INVOICE_CREATED",
                entity_type="Invoice",
                entity_id=str(invoice.id),
                user_id=cmd.created_by,
                details={"invoice_number": invoice.invoice_number, "total": str(invoice.total)},
            )
            events: list[DomainEvent] = [
                InvoiceCreatedEvent(
                    invoice_id=invoice.id,
                    invoice_number=invoice.invoice_number,
                    clinic_id=invoice.clinic_id,
                    patient_id=invoice.patient_id,
                    total=invoice.total,
                )
            ]

            if p.send_to_patient:
                sent = self.send_handler.handle(
                    SendInvoiceCommand(id=str(invoice.id), payload=SendInvoiceDTO(), sent_by=cmd.created_by)
                )
                invoice = sent.value.invoice
                events.extend(sent.events)

        logger.info(
            "invoice.created",
            invoice_id=str(invoice.id),
            invoice_number=invoice.invoice_number,
            total=str(invoice.total),
        )
        return OperationResult(value=invoice, events=tuple(events))


class UpdateInvoiceHandler(CommandHandler[UpdateInvoiceCommand]):
    def __init__(self, repo: InvoiceRepository, audit_repo: AuditRepository, uow: UnitOfWork, clock: Clock):
        self.repo = repo
        self.audit_repo = audit_repo
        self.uow = uow
        self.clock = clock

    def handle(self, cmd: UpdateInvoiceCommand) -> OperationResult[InvoiceEntity]:
        p = cmd.payload
        with self.uow.atomic():
            invoice = load_invoice(self.repo, cmd.id, for_update=True)
            if not invoice.is_editable:
                raise InvalidStateError(
                    "Apenas faturas em rascunho ou pendentes podem ser editadas",
                    invoice_id=cmd.id,
                    status=invoice.status.value,
                )

            items = _items_from_dto(p.items) if p.items is not None else invoice.items
            taxes = _taxes_from_dto(p.taxes) if p.taxes is not None else invoice.taxes
            if p.global_discount is not None:
                invoice.global_discount = p.global_discount
            if p.global_discount_type is not None:
                invoice.global_discount_type = p.global_discount_type
            totals = calculate_invoice(
                items,
                global_discount=invoice.global_discount,
                global_discount_type=invoice.global_discount_type,
                taxes=taxes,
            )
            amount_due = money2(totals.total - invoice.amount_paid)
            if amount_due < ZERO:
                raise InvariantViolationError(
                    "Novo total é menor que o valor já pago",
                    invoice_id=cmd.id,
                    total=str(totals.total),
                    amount_paid=str(invoice.amount_paid),
                )
            _apply_totals(invoice, totals)
            invoice.amount_due = amount_due

            for name in ("due_date", "discount_reason", "notes", "internal_notes", "status"):
                value = getattr(p, name)
                if value is not None:
                    setattr(invoice, name, value)
            invoice.updated_at = self.clock.now()
            invoice = self.repo.save(invoice)

            self.audit_repo.log(
                action="INVOICE_UPDATED",
                entity_type="Invoice",
                entity_id=str(invoice.id),
                user_id=cmd.updated_by,
                details=to_primitive(p.model_dump(exclude_none=True)),
            )

        logger.info("invoice.updated", invoice_id=str(invoice.id), total=str(invoice.total))
        return OperationResult(
            value=invoice,
            events=(InvoiceUpdatedEvent(invoice_id=invoice.id, total=invoice.total, amount_due=invoice.amount_due),),
        )


# ╭──────────────────────────────────────────────╮
# │ Cancelamento / Exclusão                      │
# ╰──────────────────────────────────────────────╯
class CancelInvoiceHandler(CommandHandler[CancelInvoiceCommand]):
    def __init__(  # noqa: PLR0913
        self,
        repo: InvoiceRepository,
        payment_repo: PaymentRepository,
        audit_repo: AuditRepository,
        uow: UnitOfWork,
        clock: Clock,
        refund_handler: CommandHandler[RefundPaymentCommand],
    ):
        self.repo = repo
        self.payment_repo = payment_repo
        self.audit_repo = audit_repo
        self.uow = uow
        self.clock = clock
        self.refund_handler = refund_handler

    def handle(self, cmd: CancelInvoiceCommand) -> OperationResult[InvoiceEntity]:
        p = cmd.payload
        events: list[DomainEvent] = []
        refunds = 0

        with self.uow.atomic():
            invoice = load_invoice(self.repo, cmd.id, for_update=True)
            if invoice.status in CLOSED_INVOICE_STATUSES:
                raise InvalidStateError(
                    "Fatura já está cancelada",
                    invoice_id=cmd.id,
                    status=invoice.status.value,
                )

            if p.refund_payments and invoice.amount_paid > 0:
                payments = self.payment_repo.list_all(
                    PaymentFilter(
                        invoice_id=invoice.id,
                        statuses=(PaymentStatus.COMPLETED, PaymentStatus.PARTIALLY_REFUNDED),
                    )
                )
                for payment in payments:
                    try:
                        result = self.refund_handler.handle(
                            RefundPaymentCommand(
                                payment_id=str(payment.id),
                                payload=RefundPaymentDTO(
                                    reason=p.refund_reason,
                                    description=f"Estorno por cancelamento da fatura: {p.reason}",
                                ),
                                refunded_by=cmd.cancelled_by,
                            )
                        )
                    except BillingError as exc:
                        logger.error(
                            "invoice.cancel_refund_failed",
                            invoice_id=cmd.id,
                            payment_id=str(payment.id),
                            error=str(exc),
                        )
                        raise
                    events.extend(result.events)
                    refunds += 1
                # estornos alteram saldo e status; recarrega antes de cancelar
                invoice = load_invoice(self.repo, cmd.id, for_update=True)

            now = self.clock.now()
            invoice.status = InvoiceStatus.CANCELLED
            invoice.cancelled_at = now
            invoice.cancellation_reason = p.reason
            invoice.cancelled_by = cmd.cancelled_by
            invoice.updated_at = now
            invoice = self.repo.save(invoice)

            self.audit_repo.log(
                action="INVOICE_CANCELLED",
                entity_type="Invoice",
                entity_id=str(invoice.id),
                user_id=cmd.cancelled_by,
                details={"reason": p.reason, "refunds_processed": refunds, "refund_reason": p.refund_reason.value},
            )

        logger.info("invoice.cancelled", invoice_id=str(invoice.id), refunds=refunds)
        events.append(InvoiceCancelledEvent(invoice_id=invoice.id, reason=p.reason, refunds_processed=refunds))
        return OperationResult(value=invoice, events=tuple(events))


class DeleteInvoiceHandler(CommandHandler[DeleteInvoiceCommand]):
    def __init__(self, repo: InvoiceRepository, audit_repo: AuditRepository, uow: UnitOfWork, clock: Clock):
        self.repo = repo
        self.audit_repo = audit_repo
        self.uow = uow
        self.clock = clock

    def handle(self, cmd: DeleteInvoiceCommand) -> OperationResult[None]:
        with self.uow.atomic():
            invoice = load_invoice(self.repo, cmd.id, for_update=True)
            if invoice.status not in (InvoiceStatus.DRAFT, InvoiceStatus.CANCELLED):
                raise InvalidStateError(
                    "Apenas faturas em rascunho ou canceladas podem ser excluídas",
                    invoice_id=cmd.id,
                    status=invoice.status.value,
                )
            invoice.deleted_at = self.clock.now()
            self.repo.save(invoice)
            self.audit_repo.log(
                action="INVOICE_DELETED",
                entity_type="Invoice",
                entity_id=cmd.id,
                user_id=cmd.deleted_by,
            )
        logger.info("invoice.deleted", invoice_id=cmd.id)
        return OperationResult(value=None)


# ╭──────────────────────────────────────────────╮
# │ Consultas                                    │
# ╰──────────────────────────────────────────────╯
class GetInvoiceHandler(QueryHandler[GetInvoiceQuery, InvoiceEntity]):
    def __init__(self, repo: InvoiceRepository):
        self.repo = repo

    def handle(self, q: GetInvoiceQuery) -> InvoiceEntity:
        return load_invoice(self.repo, q.id)


class ListInvoicesHandler(QueryHandler[ListInvoicesQuery, InvoiceListResultDTO]):
    def __init__(self, repo: InvoiceRepository, clock: Clock):
        self.repo = repo
        self.clock = clock

    def handle(self, q: ListInvoicesQuery) -> InvoiceListResultDTO:
        now = self.clock.now()
        filtros = replace(q.filtros, overdue_at=now) if q.overdue_only else q.filtros
        page = self.repo.list(filtros, q.page, q.page_size)

        everything = self.repo.list_all(filtros)
        overdue = [i for i in everything if i.is_overdue(now)]
        summary = InvoiceListSummaryDTO(
            total_amount=money2(sum((i.total for i in everything), ZERO)),
            total_paid=money2(sum((i.amount_paid for i in everything), ZERO)),
            total_pending=money2(
                sum((i.amount_due for i in everything if i.status not in CLOSED_INVOICE_STATUSES), ZERO)
            ),
            overdue_amount=money2(sum((i.amount_due for i in overdue), ZERO)),
            overdue_count=len(overdue),
        )
        return InvoiceListResultDTO(page=page, summary=summary)
