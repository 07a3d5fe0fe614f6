"""Regras puras de cálculo: fatura, Tabela Price e encargos de atraso."""
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from django.test import SimpleTestCase

from clinic_billing.core.domain.entities.invoice_entity import InvoiceItemEntity, InvoiceTaxEntity
from clinic_billing.core.domain.enums import DiscountType, TaxType
from clinic_billing.core.domain.events.exceptions import InvariantViolationError
from clinic_billing.core.domain.services.amortization import (
    build_schedule,
    installment_amount,
    late_charges,
    monthly_due_dates,
)
from clinic_billing.core.domain.services.invoice_calculator import calculate_invoice
from clinic_billing.core.utils.money import ratio, safe_div

UTC = timezone.utc


def _item(code, qty, price, discount="0", discount_type=DiscountType.FIXED):
    return InvoiceItemEntity(
        code=code,
        description=code,
        quantity=Decimal(qty),
        unit_price=Decimal(price),
        discount=Decimal(discount),
        discount_type=discount_type,
    )


class InvoiceCalculatorTests(SimpleTestCase):
    def test_item_discount_and_total(self):
        totals = calculate_invoice(
            [_item("A", "2", "100"), _item("B", "1", "50", "10", DiscountType.PERCENTAGE)]
        )
        self.assertEqual(totals.subtotal, Decimal("245.00"))
        self.assertEqual(totals.discount_total, Decimal("0.00"))
        self.assertEqual(totals.total, Decimal("245.00"))
        self.assertEqual(totals.items[1].discount_value, Decimal("5.00"))

    def test_global_discount_then_tax_on_discounted_base(self):
        totals = calculate_invoice(
            [_item("A", "1", "1000")],
            global_discount=Decimal("10"),
            global_discount_type=DiscountType.PERCENTAGE,
            taxes=[InvoiceTaxEntity(type=TaxType.ISS, percentage=Decimal("5"))],
        )
        self.assertEqual(totals.discount_total, Decimal("100.00"))
        self.assertEqual(totals.taxes[0].value, Decimal("45.00"))
        self.assertEqual(totals.tax_total, Decimal("45.00"))
        self.assertEqual(totals.total, Decimal("945.00"))

    def test_fixed_discount_larger_than_item_rejected(self):
        with self.assertRaises(InvariantViolationError):
            calculate_invoice([_item("A", "1", "30", "31")])

    def test_invoice_without_items_rejected(self):
        with self.assertRaises(InvariantViolationError):
            calculate_invoice([])


class AmortizationTests(SimpleTestCase):
    first_due = datetime(2025, 1, 31, tzinfo=UTC)

    def test_no_interest_splits_evenly(self):
        schedule = build_schedule(Decimal("1200"), 12, Decimal("0"), self.first_due)
        self.assertEqual({i.amount for i in schedule}, {Decimal("100.00")})
        self.assertEqual(sum(i.amount for i in schedule), Decimal("1200.00"))

    def test_rounding_residue_goes_to_last_installment(self):
        schedule = build_schedule(Decimal("100"), 3, Decimal("0"), self.first_due)
        self.assertEqual([i.amount for i in schedule], [Decimal("33.33"), Decimal("33.33"), Decimal("33.34")])

    def test_price_table_with_interest(self):
        # 1000 a 2% a.m. em 12x
        self.assertEqual(installment_amount(Decimal("1000"), 12, Decimal("2")), Decimal("94.56"))

    def test_month_stepping_clamps_to_month_end(self):
        dates = monthly_due_dates(self.first_due, 3)
        self.assertEqual([d.day for d in dates], [31, 28, 31])

    def test_fixed_due_day(self):
        dates = monthly_due_dates(datetime(2025, 1, 5, tzinfo=UTC), 2, due_day=31)
        self.assertEqual([d.date().isoformat() for d in dates], ["2025-01-31", "2025-02-28"])

    def test_late_charges_three_days(self):
        due = datetime(2025, 3, 1, 12, tzinfo=UTC)
        charges = late_charges(Decimal("100"), due, due + timedelta(days=3), Decimal("0.02"), Decimal("0.00033"))
        self.assertEqual(charges.days_late, 3)
        self.assertEqual(charges.late_fee, Decimal("2.00"))
        self.assertEqual(charges.interest, Decimal("0.10"))
        self.assertEqual(charges.total_due, Decimal("102.10"))

    def test_no_charges_on_time(self):
        due = datetime(2025, 3, 1, tzinfo=UTC)
        charges = late_charges(Decimal("100"), due, due, Decimal("0.02"), Decimal("0.00033"))
        self.assertEqual((charges.days_late, charges.total_due), (0, Decimal("100.00")))


class MoneyHelpersTests(SimpleTestCase):
    def test_zero_denominators_yield_zero(self):
        self.assertEqual(ratio(Decimal("10"), 0), Decimal("0"))
        self.assertEqual(safe_div(Decimal("10"), 0), Decimal("0"))
