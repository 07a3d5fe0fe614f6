from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

from clinic_billing.core.application.commands.payment_plan_commands import (
    CancelPaymentPlanCommand,
    CreatePaymentPlanCommand,
    PayInstallmentCommand,
)
from clinic_billing.core.application.commands.payment_commands import ConfirmPaymentCommand
from clinic_billing.core.application.dtos.invoice_dto import InvoiceItemDTO
from clinic_billing.core.application.dtos.payment_dto import ConfirmPaymentDTO
from clinic_billing.core.application.dtos.payment_plan_dto import CreatePaymentPlanDTO, PayInstallmentDTO
from clinic_billing.core.application.queries.invoice_queries import GetInvoiceQuery
from clinic_billing.core.application.queries.payment_plan_queries import (
    GetPaymentPlanQuery,
    ListPaymentPlansQuery,
)
from clinic_billing.core.domain.enums import (
    InstallmentStatus,
    InvoiceStatus,
    PaymentMethod,
    PaymentPlanStatus,
)
from clinic_billing.core.domain.events.events import InstallmentPaidEvent
from clinic_billing.core.domain.events.exceptions import InvalidStateError, InvariantViolationError
from clinic_billing.core.domain.repositories.filters import PaymentPlanFilter
from tests.helpers.billing_fixtures import T0, BillingTestCase


class PaymentPlanTests(BillingTestCase):
    def setUp(self):
        super().setUp()
        self.inv = self.create_invoice(
            items=[InvoiceItemDTO(code="ORTO", description="Aparelho", quantity=Decimal("1"), unit_price=Decimal("1200"))],
            send_to_patient=True,
        )

    def create_plan(self, **overrides):
        payload = {"invoice_id": self.inv.id, "installments": 12, **overrides}
        return self.bus.dispatch(CreatePaymentPlanCommand(payload=CreatePaymentPlanDTO(**payload))).value

    def test_even_schedule_without_interest(self):
        plan = self.create_plan(first_due_date=T0 + timedelta(days=10))

        self.assertEqual(plan.installment_amount, Decimal("100.00"))
        self.assertEqual(plan.total_amount, Decimal("1200.00"))
        self.assertEqual(plan.pending_installments, 12)
        self.assertEqual(plan.installments[1].due_date, (T0 + timedelta(days=10)).replace(month=4))
        invoice = self.queries.dispatch(GetInvoiceQuery(id=str(self.inv.id)))
        self.assertTrue(invoice.has_payment_plan)
        self.assertEqual(invoice.payment_plan_id, plan.id)

    def test_down_payment_is_recorded_as_manual_payment(self):
        plan = self.create_plan(down_payment=Decimal("200"), installments=10)

        self.assertEqual(plan.financed_amount, Decimal("1000.00"))
        self.assertEqual(plan.installment_amount, Decimal("100.00"))
        invoice = self.queries.dispatch(GetInvoiceQuery(id=str(self.inv.id)))
        self.assertEqual(invoice.amount_paid, Decimal("200.00"))
        self.assertEqual(invoice.status, InvoiceStatus.PARTIALLY_PAID)

    def test_down_payment_must_be_below_amount_due(self):
        with self.assertRaises(InvariantViolationError):
            self.create_plan(down_payment=Decimal("1200"))

    def test_one_active_plan_per_invoice(self):
        self.create_plan()
        with self.assertRaises(InvalidStateError):
            self.create_plan()

    def test_late_installment_carries_fee_and_interest(self):
        plan = self.create_plan(first_due_date=T0 - timedelta(days=3))

        result = self.bus.dispatch(
            PayInstallmentCommand(
                payload=PayInstallmentDTO(
                    payment_plan_id=plan.id, installment_number=1, method=PaymentMethod.CASH
                )
            )
        )

        self.assertEqual(result.value.amount, Decimal("102.10"))
        paid_event = next(e for e in result.events if isinstance(e, InstallmentPaidEvent))
        self.assertEqual(paid_event.late_fee, Decimal("2.00"))
        self.assertEqual(paid_event.interest, Decimal("0.10"))
        self.assertFalse(paid_event.plan_completed)

        stored = self.queries.dispatch(GetPaymentPlanQuery(id=str(plan.id)))
        first = stored.get_installment(1)
        self.assertEqual(first.status, InstallmentStatus.PAID)
        self.assertEqual(first.paid_amount, Decimal("102.10"))
        self.assertEqual(first.payment_id, result.value.id)
        self.assertEqual(stored.paid_installments, 1)
        self.assertEqual(stored.total_paid, Decimal("102.10"))

        with self.assertRaises(InvalidStateError):
            self.bus.dispatch(
                PayInstallmentCommand(
                    payload=PayInstallmentDTO(payment_plan_id=plan.id, installment_number=1, method=PaymentMethod.PIX)
                )
            )

    def test_paying_every_installment_completes_plan(self):
        plan = self.create_plan(installments=2, first_due_date=T0 + timedelta(days=1))
        for n in (1, 2):
            result = self.bus.dispatch(
                PayInstallmentCommand(
                    payload=PayInstallmentDTO(payment_plan_id=plan.id, installment_number=n, method=PaymentMethod.PIX)
                )
            )
        self.assertTrue(result.events[-1].plan_completed)
        stored = self.queries.dispatch(GetPaymentPlanQuery(id=str(plan.id)))
        self.assertEqual(stored.status, PaymentPlanStatus.COMPLETED)

    def test_plan_with_interest_is_paid_off_and_settles_invoice(self):
        plan = self.create_plan(
            installments=2, monthly_interest_rate=Decimal("2"), first_due_date=T0 + timedelta(days=1)
        )
        self.assertEqual(plan.installment_amount, Decimal("618.06"))
        self.assertEqual(plan.total_amount, Decimal("1236.12"))

        for n in (1, 2):
            paid = self.bus.dispatch(
                PayInstallmentCommand(
                    payload=PayInstallmentDTO(payment_plan_id=plan.id, installment_number=n, method=PaymentMethod.PIX)
                )
            ).value
            self.assertEqual(paid.amount, Decimal("618.06"))
            self.bus.dispatch(ConfirmPaymentCommand(payment_id=str(paid.id), payload=ConfirmPaymentDTO()))

        stored = self.queries.dispatch(GetPaymentPlanQuery(id=str(plan.id)))
        self.assertEqual(stored.status, PaymentPlanStatus.COMPLETED)
        self.assertEqual(stored.total_paid, Decimal("1236.12"))
        invoice = self.queries.dispatch(GetInvoiceQuery(id=str(self.inv.id)))
        self.assertEqual(invoice.status, InvoiceStatus.PAID)
        self.assertEqual(invoice.amount_paid, Decimal("1236.12"))
        self.assertEqual(invoice.amount_due, Decimal("0.00"))

    def test_installment_amount_bounded_by_plan_balance(self):
        plan = self.create_plan(installments=2, first_due_date=T0 + timedelta(days=1))
        with self.assertRaises(InvariantViolationError):
            self.bus.dispatch(
                PayInstallmentCommand(
                    payload=PayInstallmentDTO(
                        payment_plan_id=plan.id,
                        installment_number=1,
                        method=PaymentMethod.CASH,
                        amount=Decimal("1200.01"),
                    )
                )
            )

    def test_cancel_unlinks_invoice(self):
        plan = self.create_plan()
        cancelled = self.bus.dispatch(CancelPaymentPlanCommand(plan_id=str(plan.id), reason="renegociado")).value

        self.assertEqual(cancelled.status, PaymentPlanStatus.CANCELLED)
        self.assertEqual(cancelled.cancelled_at, T0)
        invoice = self.queries.dispatch(GetInvoiceQuery(id=str(self.inv.id)))
        self.assertFalse(invoice.has_payment_plan)
        self.assertIsNone(invoice.payment_plan_id)
        with self.assertRaises(InvalidStateError):
            self.bus.dispatch(CancelPaymentPlanCommand(plan_id=str(plan.id), reason="de novo"))

    def test_list_filters_overdue_plans(self):
        self.create_plan(first_due_date=T0 - timedelta(days=1))
        summaries = self.queries.dispatch(
            ListPaymentPlansQuery(filtros=PaymentPlanFilter(clinic_id=self.clinic.id), has_overdue_installments=True)
        )
        self.assertEqual(len(summaries), 1)
        self.assertEqual(summaries[0].overdue_installments, 1)
        self.assertEqual(summaries[0].next_installment.number, 1)
