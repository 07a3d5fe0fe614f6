from __future__ import annotations

import uuid
from datetime import timedelta

import structlog

from clinic_billing.core.application.commands.payment_commands import (
    CreatePaymentCommand,
    RecordManualPaymentCommand,
)
from clinic_billing.core.application.commands.payment_plan_commands import (
    CancelPaymentPlanCommand,
    CreatePaymentPlanCommand,
    PayInstallmentCommand,
)
from clinic_billing.core.application.cqrs import CommandHandler, OperationResult, QueryHandler
from clinic_billing.core.application.dtos.payment_dto import (
    CreatePaymentDTO,
    PaymentCreatedDTO,
    RecordManualPaymentDTO,
)
from clinic_billing.core.application.dtos.payment_plan_dto import PaymentPlanSummaryDTO
from clinic_billing.core.application.handlers.invoice_handlers import load_invoice
from clinic_billing.core.application.queries.payment_plan_queries import (
    GetPaymentPlanQuery,
    ListPaymentPlansQuery,
)
from clinic_billing.core.domain.entities.billing_config_entity import BillingConfigEntity
from clinic_billing.core.domain.entities.payment_entity import PaymentEntity
from clinic_billing.core.domain.entities.payment_plan_entity import PaymentPlanEntity
from clinic_billing.core.domain.enums import (
    CLOSED_INVOICE_STATUSES,
    InstallmentStatus,
    InvoiceStatus,
    PaymentMethod,
    PaymentPlanStatus,
)
from clinic_billing.core.domain.events.events import (
    DomainEvent,
    InstallmentPaidEvent,
    PaymentPlanCancelledEvent,
    PaymentPlanCreatedEvent,
)
from clinic_billing.core.domain.events.exceptions import (
    InvalidStateError,
    InvariantViolationError,
    NotFoundError,
)
from clinic_billing.core.domain.repositories.audit_repository import AuditRepository
from clinic_billing.core.domain.repositories.invoice_repository import InvoiceRepository
from clinic_billing.core.domain.repositories.payment_plan_repository import PaymentPlanRepository
from clinic_billing.core.domain.repositories.unit_of_work import UnitOfWork
from clinic_billing.core.domain.services.amortization import build_schedule, late_charges
from clinic_billing.core.domain.services.clock import Clock
from clinic_billing.core.utils.money import ZERO, money2

logger = structlog.get_logger(__name__)

DOWN_PAYMENT_NOTE = "Entrada do parcelamento"


def load_plan(repo: PaymentPlanRepository, plan_id: str, *, for_update: bool = False) -> PaymentPlanEntity:
    plan = repo.get_for_update(plan_id) if for_update else repo.find_by_id(plan_id)
    if plan is None:
        raise NotFoundError("Plano de pagamento não encontrado", plan_id=str(plan_id))
    return plan


def lock_plan_with_invoice(
    repo: PaymentPlanRepository, invoice_repo: InvoiceRepository, plan_id: str
) -> PaymentPlanEntity:
    """Trava a fatura do plano e depois o plano (mesma ordem dos pagamentos)."""
    invoice_id = load_plan(repo, plan_id).invoice_id
    load_invoice(invoice_repo, str(invoice_id), for_update=True)
    return load_plan(repo, plan_id, for_update=True)


class CreatePaymentPlanHandler(CommandHandler[CreatePaymentPlanCommand]):
    def __init__(  # noqa: PLR0913
        self,
        repo: PaymentPlanRepository,
        invoice_repo: InvoiceRepository,
        audit_repo: AuditRepository,
        uow: UnitOfWork,
        clock: Clock,
        config: BillingConfigEntity,
        manual_payment_handler: CommandHandler[RecordManualPaymentCommand],
    ):
        self.repo = repo
        self.invoice_repo = invoice_repo
        self.audit_repo = audit_repo
        self.uow = uow
        self.clock = clock
        self.config = config
        self.manual_payment_handler = manual_payment_handler

    def handle(self, cmd: CreatePaymentPlanCommand) -> OperationResult[PaymentPlanEntity]:
        p = cmd.payload
        now = self.clock.now()
        events: list[DomainEvent] = []

        with self.uow.atomic():
            invoice = load_invoice(self.invoice_repo, str(p.invoice_id), for_update=True)
            if invoice.status is InvoiceStatus.PAID:
                raise InvalidStateError("Fatura já está paga", invoice_id=str(invoice.id))
            if invoice.status in CLOSED_INVOICE_STATUSES:
                raise InvalidStateError(
                    "Fatura não aceita pagamentos neste status",
                    invoice_id=str(invoice.id),
                    status=invoice.status.value,
                )
            if self.repo.find_active_by_invoice(str(invoice.id)) is not None:
                raise InvalidStateError("Fatura já possui plano de pagamento ativo", invoice_id=str(invoice.id))

            down_payment = money2(p.down_payment)
            if down_payment >= invoice.amount_due:
                raise InvariantViolationError(
                    "Entrada deve ser menor que o valor devido",
                    invoice_id=str(invoice.id),
                    down_payment=str(down_payment),
                    amount_due=str(invoice.amount_due),
                )

            original_amount = invoice.amount_due
            financed = money2(original_amount - down_payment)
            first_due = p.first_due_date or now + timedelta(days=self.config.default_due_in_days)
            schedule = build_schedule(financed, p.installments, p.monthly_interest_rate, first_due, p.due_day)
            installments_total = money2(sum((i.amount for i in schedule), ZERO))

            plan = PaymentPlanEntity(
                id=uuid.uuid4(),
                invoice_id=invoice.id,
                patient_id=invoice.patient_id,
                clinic_id=invoice.clinic_id,
                original_amount=original_amount,
                down_payment=down_payment,
                financed_amount=financed,
                installments_count=p.installments,
                installment_amount=schedule[0].amount,
                monthly_interest_rate=p.monthly_interest_rate,
                total_amount=money2(installments_total + down_payment),
                payment_method=p.payment_method,
                installments=schedule,
                notes=p.notes,
                created_by=cmd.created_by,
                created_at=now,
                updated_at=now,
            )
            plan.recount()
            plan = self.repo.save(plan)

            if down_payment > 0:
                down = self.manual_payment_handler.handle(
                    RecordManualPaymentCommand(
                        payload=RecordManualPaymentDTO(
                            invoice_id=invoice.id,
                            amount=down_payment,
                            method=p.payment_method or PaymentMethod.CASH,
                            paid_at=now,
                            notes=DOWN_PAYMENT_NOTE,
                        ),
                        recorded_by=cmd.created_by,
                    )
                )
                events.extend(down.events)
                invoice = load_invoice(self.invoice_repo, str(invoice.id), for_update=True)

            invoice.has_payment_plan = True
            invoice.payment_plan_id = plan.id
            invoice.updated_at = now
            self.invoice_repo.save(invoice)

            self.audit_repo.log(
                action="PAYMENT_PLAN_CREATED",
                entity_type="PaymentPlan",
                entity_id=str(plan.id),
                user_id=cmd.created_by,
                details={
                    "invoice_id": str(invoice.id),
                    "installments": plan.installments_count,
                    "installment_amount": str(plan.installment_amount),
                    "down_payment": str(down_payment),
                },
            )

        logger.info(
            "payment_plan.created",
            plan_id=str(plan.id),
            invoice_id=str(plan.invoice_id),
            installments=plan.installments_count,
            installment_amount=str(plan.installment_amount),
        )
        events.append(
            PaymentPlanCreatedEvent(
                plan_id=plan.id,
                invoice_id=plan.invoice_id,
                installments=plan.installments_count,
                installment_amount=plan.installment_amount,
            )
        )
        return OperationResult(value=plan, events=tuple(events))


class PayInstallmentHandler(CommandHandler[PayInstallmentCommand]):
    def __init__(  # noqa: PLR0913
        self,
        repo: PaymentPlanRepository,
        invoice_repo: InvoiceRepository,
        audit_repo: AuditRepository,
        uow: UnitOfWork,
        clock: Clock,
        config: BillingConfigEntity,
        create_payment_handler: CommandHandler[CreatePaymentCommand],
    ):
        self.repo = repo
        self.invoice_repo = invoice_repo
        self.audit_repo = audit_repo
        self.uow = uow
        self.clock = clock
        self.config = config
        self.create_payment_handler = create_payment_handler

    def handle(self, cmd: PayInstallmentCommand) -> OperationResult[PaymentEntity]:
        p = cmd.payload
        now = self.clock.now()

        with self.uow.atomic():
            plan = lock_plan_with_invoice(self.repo, self.invoice_repo, str(p.payment_plan_id))
            plan.ensure_active()
            installment = plan.get_installment(p.installment_number)
            if installment.status is InstallmentStatus.PAID:
                raise InvalidStateError(
                    "Parcela já está paga",
                    plan_id=str(plan.id),
                    installment_number=p.installment_number,
                )

            charges = late_charges(
                installment.amount,
                installment.due_date,
                now,
                self.config.late_fee_rate,
                self.config.daily_interest_rate,
            )
            amount = money2(p.amount) if p.amount is not None else charges.total_due
            outstanding = money2(plan.total_pending + charges.late_fee + charges.interest)
            if amount > outstanding:
                raise InvariantViolationError(
                    "Valor da parcela excede o saldo do plano",
                    plan_id=str(plan.id),
                    amount=str(amount),
                    outstanding=str(outstanding),
                )

            created = self.create_payment_handler.handle(
                CreatePaymentCommand(
                    payload=CreatePaymentDTO(
                        invoice_id=plan.invoice_id,
                        amount=amount,
                        method=p.method,
                        card_details=p.card_details,
                        notes=f"Parcela {installment.number}/{plan.installments_count}",
                    ),
                    created_by=cmd.paid_by,
                    plan_installment=True,
                )
            )
            payment_info: PaymentCreatedDTO = created.value
            plan.mark_installment_paid(
                installment.number,
                paid_amount=amount,
                late_fee=charges.late_fee,
                interest=charges.interest,
                payment_id=payment_info.payment.id,
                at=now,
            )
            plan = self.repo.save(plan)

            self.audit_repo.log(
                action="INSTALLMENT_PAID",
                entity_type="PaymentPlan",
                entity_id=str(plan.id),
                user_id=cmd.paid_by,
                details={
                    "installment_number": installment.number,
                    "amount": str(amount),
                    "days_late": charges.days_late,
                    "late_fee": str(charges.late_fee),
                    "interest": str(charges.interest),
                    "payment_id": str(payment_info.payment.id),
                },
            )

        logger.info(
            "payment_plan.installment_paid",
            plan_id=str(plan.id),
            installment_number=installment.number,
            amount=str(amount),
            days_late=charges.days_late,
            plan_status=plan.status.value,
        )
        return OperationResult(
            value=payment_info.payment,
            events=(
                *created.events,
                InstallmentPaidEvent(
                    plan_id=plan.id,
                    installment_number=installment.number,
                    amount=amount,
                    late_fee=charges.late_fee,
                    interest=charges.interest,
                    plan_completed=plan.status is PaymentPlanStatus.COMPLETED,
                ),
            ),
        )


class CancelPaymentPlanHandler(CommandHandler[CancelPaymentPlanCommand]):
    def __init__(  # noqa: PLR0913
        self,
        repo: PaymentPlanRepository,
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

    def handle(self, cmd: CancelPaymentPlanCommand) -> OperationResult[PaymentPlanEntity]:
        now = self.clock.now()
        with self.uow.atomic():
            plan = lock_plan_with_invoice(self.repo, self.invoice_repo, cmd.plan_id)
            plan.ensure_active()
            plan.status = PaymentPlanStatus.CANCELLED
            plan.cancelled_at = now
            plan.updated_at = now
            plan = self.repo.save(plan)

            invoice = load_invoice(self.invoice_repo, str(plan.invoice_id))
            if invoice.payment_plan_id == plan.id:
                invoice.has_payment_plan = False
                invoice.payment_plan_id = None
                invoice.updated_at = now
                self.invoice_repo.save(invoice)

            self.audit_repo.log(
                action="PAYMENT_PLAN_CANCELLED",
                entity_type="PaymentPlan",
                entity_id=str(plan.id),
                user_id=cmd.cancelled_by,
                details={"reason": cmd.reason, "paid_installments": plan.paid_installments},
            )

        logger.info("payment_plan.cancelled", plan_id=str(plan.id), reason=cmd.reason)
        return OperationResult(
            value=plan,
            events=(PaymentPlanCancelledEvent(plan_id=plan.id, invoice_id=plan.invoice_id),),
        )


# ╭──────────────────────────────────────────────╮
# │ Consultas                                    │
# ╰──────────────────────────────────────────────╯
class GetPaymentPlanHandler(QueryHandler[GetPaymentPlanQuery, PaymentPlanEntity]):
    def __init__(self, repo: PaymentPlanRepository):
        self.repo = repo

    def handle(self, q: GetPaymentPlanQuery) -> PaymentPlanEntity:
        return load_plan(self.repo, q.id)


class ListPaymentPlansHandler(QueryHandler[ListPaymentPlansQuery, list[PaymentPlanSummaryDTO]]):
    def __init__(self, repo: PaymentPlanRepository, clock: Clock):
        self.repo = repo
        self.clock = clock

    def handle(self, q: ListPaymentPlansQuery) -> list[PaymentPlanSummaryDTO]:
        now = self.clock.now()
        result = []
        for plan in self.repo.list_all(q.filtros):
            overdue = len(plan.overdue_installments(now))
            if q.has_overdue_installments is not None and (overdue > 0) != q.has_overdue_installments:
                continue
            result.append(
                PaymentPlanSummaryDTO(
                    plan=plan,
                    overdue_installments=overdue,
                    next_installment=plan.next_pending(),
                )
            )
        return result
