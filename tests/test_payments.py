from __future__ import annotations

from decimal import Decimal

from clinic_billing.adapters.observability.metrics import render_metrics
from clinic_billing.core.application.commands.payment_commands import (
    ConfirmPaymentCommand,
    CreatePaymentCommand,
    FailPaymentCommand,
    RecordManualPaymentCommand,
    RefundPaymentCommand,
)
from clinic_billing.core.application.dtos.payment_dto import (
    CardDetailsDTO,
    ConfirmPaymentDTO,
    CreatePaymentDTO,
    RecordManualPaymentDTO,
    RefundPaymentDTO,
)
from clinic_billing.core.application.queries.invoice_queries import GetInvoiceQuery
from clinic_billing.core.domain.enums import (
    InvoiceStatus,
    PaymentMethod,
    PaymentStatus,
    RefundReason,
    SettlementSource,
)
from clinic_billing.core.domain.events.exceptions import InvalidStateError, InvariantViolationError
from tests.helpers.billing_fixtures import T0, BillingTestCase


class PaymentSettlementTests(BillingTestCase):
    def invoice(self):
        return self.queries.dispatch(GetInvoiceQuery(id=str(self.inv.id)))

    def setUp(self):
        super().setUp()
        self.inv = self.create_invoice(send_to_patient=True)

    def test_partial_then_full_payment(self):
        self.pay(self.inv.id, "100")
        partial = self.invoice()
        self.assertEqual(partial.amount_paid, Decimal("100.00"))
        self.assertEqual(partial.amount_due, Decimal("145.00"))
        self.assertEqual(partial.status, InvoiceStatus.PARTIALLY_PAID)
        self.assertIsNone(partial.paid_date)

        self.pay(self.inv.id, "145")
        paid = self.invoice()
        self.assertEqual(paid.amount_due, Decimal("0.00"))
        self.assertEqual(paid.status, InvoiceStatus.PAID)
        self.assertEqual(paid.paid_date, T0)

    def test_paid_invoice_rejects_new_payments(self):
        self.pay(self.inv.id, "245")
        with self.assertRaises(InvalidStateError):
            self.pay(self.inv.id, "1")

    def test_confirm_twice_rejected(self):
        payment = self.pay(self.inv.id, "10")
        with self.assertRaises(InvalidStateError):
            self.bus.dispatch(ConfirmPaymentCommand(payment_id=str(payment.id), payload=ConfirmPaymentDTO()))

    def test_refund_cannot_exceed_payment(self):
        payment = self.pay(self.inv.id, "245")
        partial = self.bus.dispatch(
            RefundPaymentCommand(
                payment_id=str(payment.id),
                payload=RefundPaymentDTO(amount=Decimal("45"), reason=RefundReason.OVERCHARGE),
            )
        ).value
        self.assertEqual(partial.status, PaymentStatus.PARTIALLY_REFUNDED)
        self.assertEqual(self.invoice().status, InvoiceStatus.PARTIALLY_PAID)
        self.assertEqual(self.invoice().amount_due, Decimal("45.00"))

        with self.assertRaises(InvariantViolationError):
            self.bus.dispatch(
                RefundPaymentCommand(
                    payment_id=str(payment.id),
                    payload=RefundPaymentDTO(amount=Decimal("200.01"), reason=RefundReason.OTHER),
                )
            )

        rest = self.bus.dispatch(
            RefundPaymentCommand(payment_id=str(payment.id), payload=RefundPaymentDTO(reason=RefundReason.OTHER))
        ).value
        self.assertEqual(rest.status, PaymentStatus.REFUNDED)
        self.assertEqual(rest.refunded_amount, Decimal("245.00"))

    def test_full_refund_of_paid_invoice_marks_refunded(self):
        payment = self.pay(self.inv.id, "245")
        self.bus.dispatch(
            RefundPaymentCommand(payment_id=str(payment.id), payload=RefundPaymentDTO(reason=RefundReason.OTHER))
        )
        self.assertEqual(self.invoice().status, InvoiceStatus.REFUNDED)
        self.assertEqual(self.invoice().amount_paid, Decimal("0.00"))

    def assert_status_matches_balance(self):
        stored = self.invoice()
        if stored.amount_paid >= stored.total:
            expected = InvoiceStatus.PAID
        elif stored.amount_paid > 0:
            expected = InvoiceStatus.PARTIALLY_PAID
        else:
            expected = stored.status
        self.assertEqual(stored.status, expected)
        self.assertEqual(stored.amount_due, max(Decimal("0.00"), stored.total - stored.amount_paid))
        # liquidação nula não altera o status derivado
        self.assertIs(stored.apply_settlement(Decimal("0"), SettlementSource.PAYMENT, T0), expected)

    def test_status_is_rederived_from_balance_after_each_mutation(self):
        first = self.pay(self.inv.id, "100")
        self.assert_status_matches_balance()
        second = self.pay(self.inv.id, "145")
        self.assert_status_matches_balance()

        for payment, amount in ((second, "45"), (first, "100"), (second, "50")):
            self.bus.dispatch(
                RefundPaymentCommand(
                    payment_id=str(payment.id),
                    payload=RefundPaymentDTO(amount=Decimal(amount), reason=RefundReason.OTHER),
                )
            )
            self.assert_status_matches_balance()

        self.pay(self.inv.id, "195")
        self.assert_status_matches_balance()
        self.assertEqual(self.invoice().status, InvoiceStatus.PAID)

    def test_failed_payment_does_not_touch_invoice(self):
        created = self.bus.dispatch(
            CreatePaymentCommand(
                payload=CreatePaymentDTO(invoice_id=self.inv.id, amount=Decimal("50"), method=PaymentMethod.BOLETO)
            )
        ).value
        failed = self.bus.dispatch(FailPaymentCommand(payment_id=str(created.payment.id), reason="expirado")).value
        self.assertEqual(failed.status, PaymentStatus.FAILED)
        self.assertEqual(self.invoice().amount_paid, Decimal("0.00"))
        with self.assertRaises(InvalidStateError):
            self.bus.dispatch(ConfirmPaymentCommand(payment_id=str(failed.id), payload=ConfirmPaymentDTO()))

    def test_manual_payment_settles_immediately(self):
        payment = self.bus.dispatch(
            RecordManualPaymentCommand(
                payload=RecordManualPaymentDTO(
                    invoice_id=self.inv.id,
                    amount=Decimal("245"),
                    method=PaymentMethod.BANK_TRANSFER,
                    paid_at=T0,
                    reference_number="TED-991",
                )
            )
        ).value
        self.assertTrue(payment.is_manual)
        self.assertEqual(payment.status, PaymentStatus.COMPLETED)
        self.assertEqual(self.invoice().status, InvoiceStatus.PAID)
        self.assertIn(b"billing_payments_confirmed_total", render_metrics()[0])


class PaymentRailTests(BillingTestCase):
    def setUp(self):
        super().setUp()
        self.inv = self.create_invoice()

    def create(self, method, **extra):
        return self.bus.dispatch(
            CreatePaymentCommand(
                payload=CreatePaymentDTO(invoice_id=self.inv.id, amount=Decimal("100"), method=method, **extra)
            )
        ).value

    def test_pix_generates_code_and_expiry(self):
        created = self.create(PaymentMethod.PIX)
        self.assertEqual(created.payment.status, PaymentStatus.PENDING)
        self.assertTrue(created.payment.pix_code.startswith("PIX_"))
        self.assertEqual(created.payment.pix_expires_at, created.rail_response["expires_at"])

    def test_card_goes_to_processing(self):
        created = self.create(
            PaymentMethod.CREDIT_CARD,
            card_details=CardDetailsDTO(card_token="tok_4242", cardholder_name="MARIA S", installments=3),
        )
        self.assertEqual(created.payment.status, PaymentStatus.PROCESSING)
        self.assertEqual(created.payment.card_last_four, "4242")
        self.assertEqual(created.payment.card_installments, 3)

    def test_boleto_has_barcode(self):
        created = self.create(PaymentMethod.BOLETO)
        self.assertTrue(created.payment.boleto_url.endswith(created.payment.boleto_barcode))
