from __future__ import annotations

import uuid
from datetime import timedelta
from decimal import Decimal

from clinic_billing.core.application.commands.invoice_commands import (
    CancelInvoiceCommand,
    DeleteInvoiceCommand,
    SendInvoiceCommand,
    UpdateInvoiceCommand,
)
from clinic_billing.core.application.dtos.invoice_dto import (
    CancelInvoiceDTO,
    InvoiceItemDTO,
    SendInvoiceDTO,
    UpdateInvoiceDTO,
)
from clinic_billing.core.application.queries.invoice_queries import GetInvoiceQuery, ListInvoicesQuery
from clinic_billing.core.domain.enums import InvoiceStatus, PaymentStatus
from clinic_billing.core.domain.events.exceptions import (
    InvalidStateError,
    InvariantViolationError,
    NotFoundError,
)
from clinic_billing.core.domain.repositories.filters import InvoiceFilter
from plugins.django_interface.models import AuditLog, Payment
from tests.helpers.billing_fixtures import T0, BillingTestCase


class InvoiceLifecycleTests(BillingTestCase):
    def test_create_computes_totals_and_numbers_per_clinic_year(self):
        first = self.create_invoice()
        second = self.create_invoice()

        self.assertEqual(first.status, InvoiceStatus.DRAFT)
        self.assertEqual(first.total, Decimal("245.00"))
        self.assertEqual(first.amount_due, Decimal("245.00"))
        self.assertEqual(first.amount_paid, Decimal("0.00"))
        self.assertEqual(first.due_date, T0 + timedelta(days=30))
        self.assertEqual(first.invoice_number, "INV-2025-000001")
        self.assertEqual(second.invoice_number, "INV-2025-000002")
        self.assertTrue(AuditLog.objects.filter(action="INVOICE_CREATED", entity_id=str(first.id)).exists())

    def test_unknown_patient_is_rejected(self):
        with self.assertRaises(NotFoundError):
            self.create_invoice(patient_id=uuid.uuid4())

    def test_send_moves_to_sent_and_requests_notification(self):
        invoice = self.create_invoice()
        sent = self.bus.dispatch(SendInvoiceCommand(id=str(invoice.id), payload=SendInvoiceDTO())).value

        self.assertEqual(sent.invoice.status, InvoiceStatus.SENT)
        self.assertEqual(sent.invoice.sent_at, T0)
        self.assertEqual(sent.channels, ("email",))
        delivered = self.container.notifier().sent
        self.assertEqual([n.recipient for n in delivered], ["maria@example.com"])

    def test_create_with_send_to_patient(self):
        invoice = self.create_invoice(send_to_patient=True)
        self.assertEqual(invoice.status, InvoiceStatus.SENT)

    def test_update_recalculates_and_rejects_total_below_paid(self):
        invoice = self.create_invoice()
        updated = self.bus.dispatch(
            UpdateInvoiceCommand(
                id=str(invoice.id),
                payload=UpdateInvoiceDTO(
                    items=[InvoiceItemDTO(code="C", description="C", quantity=Decimal("1"), unit_price=Decimal("300"))],
                    status=InvoiceStatus.PENDING,
                ),
            )
        ).value
        self.assertEqual(updated.total, Decimal("300.00"))
        self.assertEqual(updated.amount_due, Decimal("300.00"))
        self.assertEqual(updated.status, InvoiceStatus.PENDING)

        self.pay(invoice.id, "100")
        # PARTIALLY_PAID deixa de ser editável
        with self.assertRaises(InvalidStateError):
            self.bus.dispatch(UpdateInvoiceCommand(id=str(invoice.id), payload=UpdateInvoiceDTO(notes="x")))

    def test_cancel_with_refunds_returns_money(self):
        invoice = self.create_invoice()
        payment = self.pay(invoice.id, "100")

        cancelled = self.bus.dispatch(
            CancelInvoiceCommand(
                id=str(invoice.id),
                payload=CancelInvoiceDTO(reason="Paciente desistiu", refund_payments=True),
                cancelled_by="u-2",
            )
        ).value

        self.assertEqual(cancelled.status, InvoiceStatus.CANCELLED)
        self.assertEqual(cancelled.amount_paid, Decimal("0.00"))
        self.assertEqual(cancelled.cancellation_reason, "Paciente desistiu")
        refunded = Payment.objects.get(id=payment.id)
        self.assertEqual(refunded.status, PaymentStatus.REFUNDED.value)
        self.assertEqual(refunded.refunded_amount, Decimal("100.00"))

        with self.assertRaises(InvalidStateError):
            self.bus.dispatch(
                CancelInvoiceCommand(id=str(invoice.id), payload=CancelInvoiceDTO(reason="de novo"))
            )

    def test_delete_only_draft_or_cancelled(self):
        draft = self.create_invoice()
        sent = self.create_invoice(send_to_patient=True)

        self.bus.dispatch(DeleteInvoiceCommand(id=str(draft.id)))
        with self.assertRaises(NotFoundError):
            self.queries.dispatch(GetInvoiceQuery(id=str(draft.id)))
        with self.assertRaises(InvalidStateError):
            self.bus.dispatch(DeleteInvoiceCommand(id=str(sent.id)))


class InvoiceListingTests(BillingTestCase):
    def test_overdue_only_and_summary(self):
        late = self.create_invoice(due_date=T0 - timedelta(days=5), send_to_patient=True)
        self.create_invoice(send_to_patient=True)

        result = self.queries.dispatch(
            ListInvoicesQuery(filtros=InvoiceFilter(clinic_id=self.clinic.id), overdue_only=True)
        )

        self.assertEqual([i.id for i in result.page.items], [late.id])
        self.assertEqual(result.summary.overdue_count, 1)
        self.assertEqual(result.summary.overdue_amount, Decimal("245.00"))

    def test_search_by_patient_name(self):
        self.create_invoice()
        result = self.queries.dispatch(ListInvoicesQuery(filtros=InvoiceFilter(search="souza")))
        self.assertEqual(result.page.total, 1)

    def test_search_by_external_reference(self):
        tagged = self.create_invoice(external_reference="ERP-7781")
        self.create_invoice()
        result = self.queries.dispatch(ListInvoicesQuery(filtros=InvoiceFilter(search="erp-77")))
        self.assertEqual([i.id for i in result.page.items], [tagged.id])


class InvoiceAmountGuardTests(BillingTestCase):
    def test_payment_above_amount_due_rejected(self):
        invoice = self.create_invoice()
        with self.assertRaises(InvariantViolationError):
            self.pay(invoice.id, "245.01")
