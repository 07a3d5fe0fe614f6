from __future__ import annotations

import json
from datetime import timedelta
from decimal import Decimal
from io import StringIO

from django.core.management import call_command

from clinic_billing.core.application.commands.payment_commands import CreatePaymentCommand, RefundPaymentCommand
from clinic_billing.core.application.dtos.payment_dto import CreatePaymentDTO, RefundPaymentDTO
from clinic_billing.core.application.queries.report_queries import (
    AgingReportQuery,
    BillingStatisticsQuery,
    CashFlowReportQuery,
    DashboardQuery,
    RevenueReportQuery,
)
from clinic_billing.core.domain.enums import DashboardPeriod, PaymentMethod, PaymentStatus, RefundReason
from tests.helpers.billing_fixtures import T0, BillingTestCase


class FinancialReportTests(BillingTestCase):
    def setUp(self):
        super().setUp()
        self.inv_a = self.create_invoice(send_to_patient=True)
        self.inv_b = self.create_invoice(send_to_patient=True)
        self.payment = self.pay(self.inv_a.id, "100")
        self.window = {"start": T0 - timedelta(days=1), "end": T0 + timedelta(days=1), "clinic_id": str(self.clinic.id)}

    def refund(self, amount):
        self.bus.dispatch(
            RefundPaymentCommand(
                payment_id=str(self.payment.id),
                payload=RefundPaymentDTO(amount=Decimal(amount), reason=RefundReason.CUSTOMER_REQUEST),
            )
        )

    def test_revenue_totals_and_daily_buckets(self):
        self.refund("40")
        report = self.queries.dispatch(RevenueReportQuery(**self.window))

        self.assertEqual(report.total_gross, Decimal("490.00"))
        self.assertEqual(report.total_paid, Decimal("60.00"))
        self.assertEqual(report.total_refunds, Decimal("40.00"))
        self.assertEqual(report.total_net, Decimal("20.00"))
        self.assertEqual(report.invoice_count, 2)
        self.assertEqual(report.patient_count, 1)
        self.assertEqual([b.invoices for b in report.data], [0, 2, 0])
        self.assertEqual(report.averages.per_invoice, Decimal("245.00"))

    def test_empty_window_yields_zeros(self):
        report = self.queries.dispatch(
            RevenueReportQuery(start=T0 + timedelta(days=10), end=T0 + timedelta(days=20))
        )
        self.assertEqual(report.invoice_count, 0)
        self.assertEqual(report.total_gross, Decimal("0.00"))
        self.assertEqual(report.averages.per_patient, Decimal("0.00"))

        flow = self.queries.dispatch(CashFlowReportQuery(start=T0 + timedelta(days=10), end=T0 + timedelta(days=20)))
        self.assertEqual(flow.net_flow, Decimal("0.00"))
        self.assertTrue(all(b.cumulative == 0 for b in flow.data))

    def test_cash_flow_counts_refunds_as_outflow(self):
        self.refund("40")
        flow = self.queries.dispatch(CashFlowReportQuery(**self.window))

        self.assertEqual(flow.total_inflow, Decimal("100.00"))
        self.assertEqual(flow.total_outflow, Decimal("40.00"))
        self.assertEqual(flow.net_flow, Decimal("60.00"))
        self.assertEqual(flow.closing_balance, Decimal("60.00"))
        self.assertEqual(flow.data[-1].cumulative, Decimal("60.00"))

    def test_cash_flow_projects_due_invoices(self):
        self.clock.advance(days=5)
        flow = self.queries.dispatch(CashFlowReportQuery(**self.window, include_projections=True))
        expected = [p for p in flow.projections if p.invoices]
        self.assertEqual(len(expected), 1)
        self.assertEqual(expected[0].date, (T0 + timedelta(days=30)).date())
        self.assertEqual(expected[0].expected_inflow, Decimal("390.00"))

    def test_aging_places_45_days_late_in_second_bucket(self):
        report = self.queries.dispatch(
            AgingReportQuery(reference_date=T0 + timedelta(days=75), by_patient=True)
        )

        self.assertEqual(report.total_receivables, Decimal("390.00"))
        self.assertEqual(report.total_invoices, 2)
        labels = [b.label for b in report.buckets]
        self.assertEqual(labels, ["1-30 dias", "31-60 dias", "61-90 dias", "91-120 dias", "Mais de 120 dias"])
        second = report.buckets[1]
        self.assertEqual(second.count, 2)
        self.assertEqual(second.amount, Decimal("390.00"))
        self.assertEqual(second.percentage, Decimal("100.00"))
        self.assertEqual(report.by_patient[0].name, "Maria Souza")

    def test_aging_with_custom_buckets(self):
        report = self.queries.dispatch(
            AgingReportQuery(reference_date=T0 + timedelta(days=75), aging_buckets=(15,))
        )
        self.assertEqual([b.label for b in report.buckets], ["1-15 dias", "Mais de 15 dias"])
        self.assertEqual(report.buckets[1].count, 2)

    def test_aging_without_receivables(self):
        report = self.queries.dispatch(AgingReportQuery(reference_date=T0))
        self.assertEqual(report.total_receivables, Decimal("0.00"))
        self.assertTrue(all(b.percentage == 0 for b in report.buckets))

    def test_statistics(self):
        # PIX pendente não entra na divisão por método
        self.bus.dispatch(
            CreatePaymentCommand(
                payload=CreatePaymentDTO(invoice_id=self.inv_b.id, amount=Decimal("80"), method=PaymentMethod.PIX)
            )
        )
        stats = self.queries.dispatch(BillingStatisticsQuery(**self.window))

        self.assertEqual(stats.invoices.total, 2)
        self.assertEqual(stats.invoices.paid, 0)
        self.assertEqual(stats.invoices.average_value, Decimal("245.00"))
        self.assertEqual(stats.payments.total, 2)
        self.assertEqual(stats.payments.completed, 1)
        self.assertEqual(stats.payments.pending, 1)
        self.assertEqual(stats.insurance.claims, 0)
        self.assertEqual(stats.insurance.approval_rate, Decimal("0.00"))
        self.assertEqual([b.key for b in stats.by_payment_method], ["CASH"])
        self.assertEqual(stats.by_payment_method[0].percentage, Decimal("100.00"))

    def test_dashboard_alerts_on_overdue(self):
        self.clock.advance(days=31)
        board = self.queries.dispatch(DashboardQuery(clinic_id=str(self.clinic.id), period=DashboardPeriod.YEAR))

        self.assertEqual(board.summary.total_revenue, Decimal("490.00"))
        self.assertEqual(board.summary.total_overdue, Decimal("390.00"))
        self.assertEqual(len(board.overdue_invoices), 2)
        self.assertEqual(board.alerts[0].type, "OVERDUE_INVOICES")
        self.assertEqual(board.alerts[0].count, 2)
        self.assertEqual(board.today.invoices_count, 0)

    def test_billing_report_command_prints_json(self):
        out = StringIO()
        call_command(
            "billing_report",
            "revenue",
            "--clinic-id",
            str(self.clinic.id),
            "--inicio",
            "2025-03-09",
            "--fim",
            "2025-03-11",
            stdout=out,
        )
        data = json.loads(out.getvalue())
        self.assertEqual(data["total_gross"], "490.00")
        self.assertEqual(data["invoice_count"], 2)

    def test_facade_unwraps_command_results(self):
        service = self.container.billing_service()
        created = service.execute(
            CreatePaymentCommand(
                payload=CreatePaymentDTO(invoice_id=self.inv_b.id, amount=Decimal("50"), method=PaymentMethod.PIX)
            )
        )
        self.assertEqual(created.payment.status, PaymentStatus.PENDING)
        self.assertIn("pix_code", created.rail_response)

        aging = service.aging_report(reference_date=T0 + timedelta(days=75))
        self.assertEqual(aging.by_patient[0].total, Decimal("390.00"))
