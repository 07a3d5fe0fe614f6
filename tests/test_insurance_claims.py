from __future__ import annotations

from decimal import Decimal

from pydantic import ValidationError

from clinic_billing.core.application.commands.insurance_commands import (
    AppealInsuranceClaimCommand,
    CreateInsuranceBatchCommand,
    CreateInsuranceClaimCommand,
    SubmitInsuranceClaimCommand,
    UpdateInsuranceClaimCommand,
)
from clinic_billing.core.application.dtos.insurance_dto import (
    AppealInsuranceClaimDTO,
    CreateInsuranceClaimDTO,
    InsuranceBatchDTO,
    UpdateInsuranceClaimDTO,
)
from clinic_billing.core.application.queries.insurance_queries import ListInsuranceClaimsQuery
from clinic_billing.core.application.queries.invoice_queries import GetInvoiceQuery
from clinic_billing.core.domain.enums import ClaimStatus, DenialReason, InvoiceStatus
from clinic_billing.core.domain.events.exceptions import InvalidStateError, InvariantViolationError
from clinic_billing.core.domain.repositories.filters import ClaimFilter
from tests.helpers.billing_fixtures import T0, BillingTestCase


class InsuranceClaimTests(BillingTestCase):
    def setUp(self):
        super().setUp()
        self.inv = self.create_invoice(insurer_id=self.insurer.id, send_to_patient=True)

    def create_claim(self):
        return self.bus.dispatch(
            CreateInsuranceClaimCommand(
                payload=CreateInsuranceClaimDTO(
                    invoice_id=self.inv.id,
                    insurer_id=self.insurer.id,
                    patient_id=self.patient.id,
                    total_amount=Decimal("245"),
                    procedures=["81000065"],
                )
            )
        ).value

    def update(self, claim, **fields):
        return self.bus.dispatch(
            UpdateInsuranceClaimCommand(claim_id=str(claim.id), payload=UpdateInsuranceClaimDTO(**fields))
        )

    def test_create_numbers_by_competence(self):
        first = self.create_claim()
        second = self.create_claim()
        self.assertEqual(first.claim_number, "CLM-202503-00001")
        self.assertEqual(second.claim_number, "CLM-202503-00002")
        self.assertEqual(first.status, ClaimStatus.DRAFT)
        self.assertEqual(first.procedures, ["81000065"])

    def test_submit_only_from_draft(self):
        claim = self.create_claim()
        submitted = self.bus.dispatch(SubmitInsuranceClaimCommand(claim_id=str(claim.id))).value
        self.assertEqual(submitted.status, ClaimStatus.SUBMITTED)
        self.assertEqual(submitted.submitted_at, T0)
        with self.assertRaises(InvalidStateError):
            self.bus.dispatch(SubmitInsuranceClaimCommand(claim_id=str(claim.id)))

    def test_payment_credits_invoice_as_insurance_coverage(self):
        claim = self.create_claim()
        self.bus.dispatch(SubmitInsuranceClaimCommand(claim_id=str(claim.id)))
        self.update(claim, status=ClaimStatus.APPROVED, approved_amount=Decimal("200"))
        paid = self.update(claim, status=ClaimStatus.PAID, paid_amount=Decimal("200")).value

        self.assertEqual(paid.paid_amount, Decimal("200.00"))
        self.assertEqual(paid.paid_at, T0)
        invoice = self.queries.dispatch(GetInvoiceQuery(id=str(self.inv.id)))
        self.assertEqual(invoice.insurance_coverage, Decimal("200.00"))
        self.assertEqual(invoice.amount_due, Decimal("45.00"))
        self.assertEqual(invoice.status, InvoiceStatus.PARTIALLY_PAID)

    def test_repeated_paid_update_credits_invoice_once(self):
        claim = self.create_claim()
        self.bus.dispatch(SubmitInsuranceClaimCommand(claim_id=str(claim.id)))
        self.update(claim, status=ClaimStatus.PAID, paid_amount=Decimal("100"))
        again = self.update(claim, status=ClaimStatus.PAID, paid_amount=Decimal("100")).value

        self.assertEqual(again.paid_amount, Decimal("100.00"))
        invoice = self.queries.dispatch(GetInvoiceQuery(id=str(self.inv.id)))
        self.assertEqual(invoice.insurance_coverage, Decimal("100.00"))
        self.assertEqual(invoice.amount_due, Decimal("145.00"))

    def test_paid_amount_above_approved_is_rejected(self):
        claim = self.create_claim()
        self.update(claim, status=ClaimStatus.APPROVED, approved_amount=Decimal("150"))
        with self.assertRaises(InvariantViolationError):
            self.update(claim, status=ClaimStatus.PAID, paid_amount=Decimal("150.01"))
        invoice = self.queries.dispatch(GetInvoiceQuery(id=str(self.inv.id)))
        self.assertEqual(invoice.insurance_coverage, Decimal("0.00"))

    def test_payment_above_balance_is_rejected(self):
        claim = self.create_claim()
        with self.assertRaises(InvariantViolationError):
            self.update(claim, status=ClaimStatus.PAID, paid_amount=Decimal("300"))

    def test_denial_requires_reason(self):
        with self.assertRaises(ValidationError):
            UpdateInsuranceClaimDTO(status=ClaimStatus.DENIED)

    def test_denial_notifies_patient_and_allows_appeal(self):
        claim = self.create_claim()
        with self.assertRaises(InvalidStateError):
            self.bus.dispatch(
                AppealInsuranceClaimCommand(
                    claim_id=str(claim.id), payload=AppealInsuranceClaimDTO(justification="procedimento coberto")
                )
            )

        denied = self.update(
            claim,
            status=ClaimStatus.DENIED,
            denial_reason=DenialReason.MISSING_AUTHORIZATION,
            denial_explanation="Guia sem autorização",
        ).value
        self.assertEqual(denied.denial_reason, DenialReason.MISSING_AUTHORIZATION.value)
        notices = [n for n in self.container.notifier().sent if n.notification_type == "CLAIM_DENIED"]
        self.assertEqual(len(notices), 1)
        self.assertEqual(notices[0].recipient, "maria@example.com")
        denied_page = self.queries.dispatch(ListInsuranceClaimsQuery(filtros=ClaimFilter(denied_only=True)))
        self.assertEqual([c.id for c in denied_page.items], [claim.id])

        appealed = self.bus.dispatch(
            AppealInsuranceClaimCommand(
                claim_id=str(claim.id),
                payload=AppealInsuranceClaimDTO(justification="Autorização anexada ao recurso", additional_documents=["guia.pdf"]),
                appealed_by="u-2",
            )
        ).value
        self.assertEqual(appealed.status, ClaimStatus.APPEALED)
        self.assertEqual(appealed.appeal_documents, ["guia.pdf"])
        self.assertEqual(appealed.appealed_by, "u-2")

    def test_appeal_justification_min_length(self):
        with self.assertRaises(ValidationError):
            AppealInsuranceClaimDTO(justification="curta")

    def test_batch_creates_one_claim_per_invoice(self):
        other = self.create_invoice(insurer_id=self.insurer.id)
        batch = self.bus.dispatch(
            CreateInsuranceBatchCommand(
                payload=InsuranceBatchDTO(insurer_id=self.insurer.id, invoice_ids=[self.inv.id, other.id])
            )
        ).value

        self.assertEqual(batch.batch_number, "BAT-202503-0001")
        self.assertEqual(batch.claims_count, 2)
        self.assertEqual(batch.total_amount, Decimal("490.00"))
        page = self.queries.dispatch(ListInsuranceClaimsQuery(filtros=ClaimFilter(batch_id=batch.id)))
        self.assertEqual(page.total, 2)
        numbers = sorted(c.claim_number for c in page.items)
        self.assertEqual(numbers[0], f"BAT-202503-0001-{self.inv.invoice_number}")

    def test_batch_rejects_invoice_from_other_insurer(self):
        private = self.create_invoice()
        with self.assertRaises(InvariantViolationError):
            self.bus.dispatch(
                CreateInsuranceBatchCommand(
                    payload=InsuranceBatchDTO(insurer_id=self.insurer.id, invoice_ids=[self.inv.id, private.id])
                )
            )
