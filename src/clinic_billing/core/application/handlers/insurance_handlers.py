from __future__ import annotations

import uuid
from datetime import datetime

import structlog

from clinic_billing.core.application.commands.insurance_commands import (
    AppealInsuranceClaimCommand,
    CreateInsuranceBatchCommand,
    CreateInsuranceClaimCommand,
    SubmitInsuranceClaimCommand,
    UpdateInsuranceClaimCommand,
)
from clinic_billing.core.application.cqrs import CommandHandler, OperationResult, PagedResult, QueryHandler
from clinic_billing.core.application.handlers.invoice_handlers import load_invoice
from clinic_billing.core.application.queries.insurance_queries import (
    GetInsuranceClaimQuery,
    ListInsuranceClaimsQuery,
)
from clinic_billing.core.domain.entities.insurance_claim_entity import (
    InsuranceBatchEntity,
    InsuranceClaimEntity,
)
from clinic_billing.core.domain.entities.invoice_entity import InvoiceEntity
from clinic_billing.core.domain.enums import (
    BatchStatus,
    ClaimStatus,
    NotificationChannel,
    SettlementSource,
)
from clinic_billing.core.domain.events.events import (
    DomainEvent,
    InsuranceBatchCreatedEvent,
    InsuranceClaimCreatedEvent,
    InsuranceClaimStatusChangedEvent,
    NotificationRequestedEvent,
)
from clinic_billing.core.domain.events.exceptions import (
    InvalidStateError,
    InvariantViolationError,
    NotFoundError,
)
from clinic_billing.core.domain.repositories.audit_repository import AuditRepository
from clinic_billing.core.domain.repositories.insurance_claim_repository import InsuranceClaimRepository
from clinic_billing.core.domain.repositories.invoice_repository import InvoiceRepository
from clinic_billing.core.domain.repositories.reference_data_repository import ReferenceDataRepository
from clinic_billing.core.domain.repositories.sequence_repository import SequenceRepository
from clinic_billing.core.domain.repositories.unit_of_work import UnitOfWork
from clinic_billing.core.domain.services.clock import Clock
from clinic_billing.core.utils.money import ZERO, money2

logger = structlog.get_logger(__name__)


def load_claim(repo: InsuranceClaimRepository, claim_id: str, *, for_update: bool = False) -> InsuranceClaimEntity:
    claim = repo.get_for_update(claim_id) if for_update else repo.find_by_id(claim_id)
    if claim is None:
        raise NotFoundError("Claim não encontrado", claim_id=str(claim_id))
    return claim


def _competence(at: datetime) -> str:
    return at.strftime("%Y%m")


class _ClaimHandlerBase:
    def __init__(  # noqa: PLR0913
        self,
        repo: InsuranceClaimRepository,
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

    def _audit(self, action: str, claim: InsuranceClaimEntity, user_id: str | None, **details) -> None:
        self.audit_repo.log(
            action=action,
            entity_type="InsuranceClaim",
            entity_id=str(claim.id),
            user_id=user_id,
            details={"claim_number": claim.claim_number, **details},
        )


# ╭──────────────────────────────────────────────╮
# │ Criação / Submissão                          │
# ╰──────────────────────────────────────────────╯
class CreateInsuranceClaimHandler(_ClaimHandlerBase, CommandHandler[CreateInsuranceClaimCommand]):
    def __init__(  # noqa: PLR0913
        self,
        repo: InsuranceClaimRepository,
        invoice_repo: InvoiceRepository,
        reference_repo: ReferenceDataRepository,
        sequence_repo: SequenceRepository,
        audit_repo: AuditRepository,
        uow: UnitOfWork,
        clock: Clock,
    ):
        super().__init__(repo, invoice_repo, audit_repo, uow, clock)
        self.reference_repo = reference_repo
        self.sequence_repo = sequence_repo

    def handle(self, cmd: CreateInsuranceClaimCommand) -> OperationResult[InsuranceClaimEntity]:
        p = cmd.payload
        now = self.clock.now()
        invoice = load_invoice(self.invoice_repo, str(p.invoice_id))
        if not self.reference_repo.insurer_exists(str(p.insurer_id)):
            raise NotFoundError("Convênio não encontrado", insurer_id=str(p.insurer_id))

        with self.uow.atomic():
            competence = _competence(now)
            seq = self.sequence_repo.next_value(f"claim:{p.insurer_id}:{competence}")
            claim = InsuranceClaimEntity(
                id=uuid.uuid4(),
                claim_number=f"CLM-{competence}-{seq:05d}",
                invoice_id=invoice.id,
                insurer_id=p.insurer_id,
                patient_id=p.patient_id,
                clinic_id=invoice.clinic_id,
                total_amount=money2(p.total_amount),
                membership_number=p.membership_number,
                prior_authorization_number=p.prior_authorization_number,
                guide_number=p.guide_number,
                procedures=list(p.procedures),
                diagnosis_codes=list(p.diagnosis_codes),
                attachments=list(p.attachments),
                service_date=p.service_date,
                clinical_notes=p.clinical_notes,
                created_by=cmd.created_by,
                created_at=now,
                updated_at=now,
            )
            claim = self.repo.save(claim)
            self._audit("INSURANCE_CLAIM_CREATED", claim, cmd.created_by, total_amount=str(claim.total_amount))

        logger.info("insurance_claim.created", claim_id=str(claim.id), claim_number=claim.claim_number)
        return OperationResult(
            value=claim,
            events=(
                InsuranceClaimCreatedEvent(
                    claim_id=claim.id,
                    claim_number=claim.claim_number,
                    insurer_id=claim.insurer_id,
                ),
            ),
        )


class SubmitInsuranceClaimHandler(_ClaimHandlerBase, CommandHandler[SubmitInsuranceClaimCommand]):
    def handle(self, cmd: SubmitInsuranceClaimCommand) -> OperationResult[InsuranceClaimEntity]:
        now = self.clock.now()
        with self.uow.atomic():
            claim = load_claim(self.repo, cmd.claim_id, for_update=True)
            if claim.status is not ClaimStatus.DRAFT:
                raise InvalidStateError(
                    "Claim já foi submetido",
                    claim_id=cmd.claim_id,
                    status=claim.status.value,
                )
            claim.status = ClaimStatus.SUBMITTED
            claim.submitted_at = now
            claim.updated_at = now
            claim = self.repo.save(claim)
            self._audit("INSURANCE_CLAIM_SUBMITTED", claim, cmd.submitted_by)

        logger.info("insurance_claim.submitted", claim_id=str(claim.id))
        return OperationResult(
            value=claim,
            events=(
                InsuranceClaimStatusChangedEvent(
                    claim_id=claim.id,
                    old_status=ClaimStatus.DRAFT.value,
                    new_status=ClaimStatus.SUBMITTED.value,
                ),
            ),
        )


# ╭──────────────────────────────────────────────╮
# │ Retorno da operadora / Recurso               │
# ╰──────────────────────────────────────────────╯
class UpdateInsuranceClaimHandler(_ClaimHandlerBase, CommandHandler[UpdateInsuranceClaimCommand]):
    """
    Registra o retorno da operadora.

    Pagamento (status PAID + paid_amount) credita a fatura vinculada como
    cobertura do convênio, pela mesma operação de liquidação usada pelos
    pagamentos do paciente.
    """

    def __init__(  # noqa: PLR0913
        self,
        repo: InsuranceClaimRepository,
        invoice_repo: InvoiceRepository,
        reference_repo: ReferenceDataRepository,
        audit_repo: AuditRepository,
        uow: UnitOfWork,
        clock: Clock,
    ):
        super().__init__(repo, invoice_repo, audit_repo, uow, clock)
        self.reference_repo = reference_repo

    def handle(self, cmd: UpdateInsuranceClaimCommand) -> OperationResult[InsuranceClaimEntity]:
        p = cmd.payload
        now = self.clock.now()
        events: list[DomainEvent] = []

        with self.uow.atomic():
            # fatura antes do claim: mesma ordem de lock dos pagamentos
            unlocked = load_claim(self.repo, cmd.claim_id)
            invoice = load_invoice(self.invoice_repo, str(unlocked.invoice_id), for_update=True)
            claim = load_claim(self.repo, cmd.claim_id, for_update=True)
            old_status = claim.status

            if p.status is not None:
                claim.status = p.status
                if p.status is not ClaimStatus.SUBMITTED:
                    claim.reviewed_at = now
            if p.approved_amount is not None:
                claim.approved_amount = money2(p.approved_amount)
            if p.denial_reason is not None:
                claim.denial_reason = p.denial_reason.value
            if p.denial_explanation is not None:
                claim.denial_explanation = p.denial_explanation
            if p.denied_items is not None:
                claim.denied_items = list(p.denied_items)
            if p.response_protocol is not None:
                claim.response_protocol = p.response_protocol
            if p.internal_notes is not None:
                claim.internal_notes = p.internal_notes

            if p.status is ClaimStatus.PAID and p.paid_amount is not None:
                if old_status is ClaimStatus.PAID:
                    # retorno repetido da operadora: a fatura já foi creditada
                    logger.warning(
                        "insurance_claim.already_paid",
                        claim_id=str(claim.id),
                        paid_amount=str(claim.paid_amount),
                    )
                else:
                    self._credit_invoice(invoice, claim, money2(p.paid_amount), p.paid_at or now)

            claim.updated_at = now
            claim = self.repo.save(claim)
            self._audit(
                "INSURANCE_CLAIM_UPDATED",
                claim,
                cmd.updated_by,
                old_status=old_status.value,
                new_status=claim.status.value,
            )

            if claim.status is not old_status:
                events.append(
                    InsuranceClaimStatusChangedEvent(
                        claim_id=claim.id,
                        old_status=old_status.value,
                        new_status=claim.status.value,
                    )
                )
            if claim.status is ClaimStatus.DENIED and old_status is not ClaimStatus.DENIED:
                contact = self.reference_repo.get_patient_contact(str(claim.patient_id))
                events.append(
                    NotificationRequestedEvent(
                        notification_type="CLAIM_DENIED",
                        channel=NotificationChannel.EMAIL.value,
                        recipient=contact.email if contact else None,
                        patient_id=claim.patient_id,
                        reference_id=claim.id,
                        payload={
                            "claim_number": claim.claim_number,
                            "denial_reason": claim.denial_reason,
                            "denial_explanation": claim.denial_explanation,
                        },
                    )
                )

        logger.info(
            "insurance_claim.updated",
            claim_id=str(claim.id),
            old_status=old_status.value,
            new_status=claim.status.value,
        )
        return OperationResult(value=claim, events=tuple(events))

    def _credit_invoice(
        self, invoice: InvoiceEntity, claim: InsuranceClaimEntity, amount, at: datetime
    ) -> None:
        ceiling = claim.approved_amount if claim.approved_amount is not None else claim.total_amount
        if amount > ceiling:
            raise InvariantViolationError(
                "Valor pago excede o valor aprovado da guia",
                claim_id=str(claim.id),
                paid_amount=str(amount),
                ceiling=str(ceiling),
            )
        # rejeita valor acima do saldo devedor
        invoice.apply_settlement(amount, SettlementSource.INSURANCE, at)
        invoice.updated_at = at
        self.invoice_repo.save(invoice)
        claim.paid_amount = money2((claim.paid_amount or ZERO) + amount)
        claim.paid_at = at
        logger.info(
            "insurance_claim.invoice_credited",
            claim_id=str(claim.id),
            invoice_id=str(invoice.id),
            amount=str(amount),
            invoice_status=invoice.status.value,
        )


class AppealInsuranceClaimHandler(_ClaimHandlerBase, CommandHandler[AppealInsuranceClaimCommand]):
    def handle(self, cmd: AppealInsuranceClaimCommand) -> OperationResult[InsuranceClaimEntity]:
        p = cmd.payload
        now = self.clock.now()
        with self.uow.atomic():
            claim = load_claim(self.repo, cmd.claim_id, for_update=True)
            if claim.status is not ClaimStatus.DENIED:
                raise InvalidStateError(
                    "Apenas claims negados podem ser recorridos",
                    claim_id=cmd.claim_id,
                    status=claim.status.value,
                )
            claim.status = ClaimStatus.APPEALED
            claim.appeal_justification = p.justification
            claim.appeal_documents = list(p.additional_documents)
            claim.appeal_medical_literature = p.medical_literature
            claim.appealed_at = now
            claim.appealed_by = cmd.appealed_by
            claim.updated_at = now
            claim = self.repo.save(claim)
            self._audit("INSURANCE_CLAIM_APPEALED", claim, cmd.appealed_by)

        logger.info("insurance_claim.appealed", claim_id=str(claim.id))
        return OperationResult(
            value=claim,
            events=(
                InsuranceClaimStatusChangedEvent(
                    claim_id=claim.id,
                    old_status=ClaimStatus.DENIED.value,
                    new_status=ClaimStatus.APPEALED.value,
                ),
            ),
        )


# ╭──────────────────────────────────────────────╮
# │ Lote                                         │
# ╰──────────────────────────────────────────────╯
class CreateInsuranceBatchHandler(CommandHandler[CreateInsuranceBatchCommand]):
    def __init__(  # noqa: PLR0913
        self,
        repo: InsuranceClaimRepository,
        invoice_repo: InvoiceRepository,
        sequence_repo: SequenceRepository,
        audit_repo: AuditRepository,
        uow: UnitOfWork,
        clock: Clock,
    ):
        self.repo = repo
        self.invoice_repo = invoice_repo
        self.sequence_repo = sequence_repo
        self.audit_repo = audit_repo
        self.uow = uow
        self.clock = clock

    def handle(self, cmd: CreateInsuranceBatchCommand) -> OperationResult[InsuranceBatchEntity]:
        p = cmd.payload
        now = self.clock.now()
        competence_date = p.competence_date or now

        invoices = [self.invoice_repo.find_by_id(str(i)) for i in p.invoice_ids]
        if any(inv is None or inv.insurer_id != p.insurer_id for inv in invoices):
            raise InvariantViolationError(
                "Algumas faturas não foram encontradas ou não pertencem ao convênio",
                insurer_id=str(p.insurer_id),
                invoice_ids=[str(i) for i in p.invoice_ids],
            )

        with self.uow.atomic():
            competence = _competence(competence_date)
            seq = self.sequence_repo.next_value(f"batch:{p.insurer_id}:{competence}")
            batch = InsuranceBatchEntity(
                id=uuid.uuid4(),
                batch_number=f"BAT-{competence}-{seq:04d}",
                insurer_id=p.insurer_id,
                clinic_id=invoices[0].clinic_id,
                competence_date=competence_date,
                claims_count=len(invoices),
                total_amount=money2(sum((inv.total for inv in invoices), ZERO)),
                status=BatchStatus.DRAFT,
                batch_type=p.batch_type,
                created_by=cmd.created_by,
                created_at=now,
            )
            batch = self.repo.save_batch(batch)

            for inv in invoices:
                self.repo.save(
                    InsuranceClaimEntity(
                        id=uuid.uuid4(),
                        claim_number=f"{batch.batch_number}-{inv.invoice_number}",
                        invoice_id=inv.id,
                        insurer_id=p.insurer_id,
                        patient_id=inv.patient_id,
                        clinic_id=inv.clinic_id,
                        total_amount=inv.total,
                        batch_id=batch.id,
                        batch_number=batch.batch_number,
                        prior_authorization_number=inv.insurance_authorization_number,
                        created_by=cmd.created_by,
                        created_at=now,
                        updated_at=now,
                    )
                )

            self.audit_repo.log(
                action="INSURANCE_BATCH_CREATED",
                entity_type="InsuranceBatch",
                entity_id=str(batch.id),
                user_id=cmd.created_by,
                details={
                    "batch_number": batch.batch_number,
                    "claims_count": batch.claims_count,
                    "total_amount": str(batch.total_amount),
                },
            )

        logger.info(
            "insurance_batch.created",
            batch_id=str(batch.id),
            batch_number=batch.batch_number,
            claims_count=batch.claims_count,
        )
        return OperationResult(
            value=batch,
            events=(
                InsuranceBatchCreatedEvent(
                    batch_id=batch.id,
                    batch_number=batch.batch_number,
                    claims_count=batch.claims_count,
                    total_amount=batch.total_amount,
                ),
            ),
        )


# ╭──────────────────────────────────────────────╮
# │ Consultas                                    │
# ╰──────────────────────────────────────────────╯
class GetInsuranceClaimHandler(QueryHandler[GetInsuranceClaimQuery, InsuranceClaimEntity]):
    def __init__(self, repo: InsuranceClaimRepository):
        self.repo = repo

    def handle(self, q: GetInsuranceClaimQuery) -> InsuranceClaimEntity:
        return load_claim(self.repo, q.id)


class ListInsuranceClaimsHandler(QueryHandler[ListInsuranceClaimsQuery, PagedResult[InsuranceClaimEntity]]):
    def __init__(self, repo: InsuranceClaimRepository):
        self.repo = repo

    def handle(self, q: ListInsuranceClaimsQuery) -> PagedResult[InsuranceClaimEntity]:
        return self.repo.list(q.filtros, page=q.page, page_size=q.page_size)
