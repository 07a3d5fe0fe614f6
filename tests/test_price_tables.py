from __future__ import annotations

import uuid
from datetime import timedelta
from decimal import Decimal

from clinic_billing.core.application.commands.price_table_commands import (
    AddPriceTableItemsCommand,
    CreatePriceTableCommand,
    UpdatePriceTableCommand,
)
from clinic_billing.core.application.dtos.price_table_dto import (
    CreatePriceTableDTO,
    PriceTableItemDTO,
    UpdatePriceTableDTO,
)
from clinic_billing.core.application.queries.price_table_queries import ListPriceTablesQuery, LookupPriceQuery
from clinic_billing.core.domain.enums import PriceTableType
from clinic_billing.core.domain.events.exceptions import NotFoundError
from clinic_billing.core.domain.repositories.filters import PriceTableFilter
from tests.helpers.billing_fixtures import T0, BillingTestCase


def item(code, price, **extra):
    return PriceTableItemDTO(code=code, description=f"Procedimento {code}", price=Decimal(price), **extra)


class PriceTableTests(BillingTestCase):
    def create_table(self, name, items, **overrides):
        payload = {
            "name": name,
            "type": PriceTableType.PRIVATE,
            "valid_from": T0 - timedelta(days=30),
            "items": items,
            **overrides,
        }
        return self.bus.dispatch(CreatePriceTableCommand(payload=CreatePriceTableDTO(**payload))).value

    def lookup(self, code, **kw):
        return self.queries.dispatch(LookupPriceQuery(code=code, **kw))

    def test_only_one_default_per_type(self):
        first = self.create_table("Particular 2024", [item("CONS", "150")], is_default=True)
        second = self.create_table("Particular 2025", [item("CONS", "180")], is_default=True)

        page = self.queries.dispatch(ListPriceTablesQuery(filtros=PriceTableFilter(type=PriceTableType.PRIVATE)))
        defaults = {t.id: t.is_default for t in page.items}
        self.assertFalse(defaults[first.id])
        self.assertTrue(defaults[second.id])
        self.assertEqual(self.lookup("CONS").final_price, Decimal("180.00"))

    def test_insurer_table_wins_over_private_default(self):
        self.create_table("Particular", [item("CONS", "150")], is_default=True)
        insurer_table = self.create_table(
            "Saúde Total 2025",
            [item("CONS", "100", tuss_code="10101012")],
            type=PriceTableType.TUSS,
            insurer_id=self.insurer.id,
            multiplier=Decimal("1.5"),
        )

        resolved = self.lookup("10101012", insurer_id=str(self.insurer.id))
        self.assertEqual(resolved.price_table_id, insurer_table.id)
        self.assertEqual(resolved.original_price, Decimal("100.00"))
        self.assertEqual(resolved.multiplier, Decimal("1.5"))
        self.assertEqual(resolved.final_price, Decimal("150.00"))

    def test_expired_insurer_table_falls_back_to_default(self):
        default = self.create_table("Particular", [item("CONS", "150")], is_default=True)
        self.create_table(
            "Saúde Total 2024",
            [item("CONS", "90")],
            type=PriceTableType.TUSS,
            insurer_id=self.insurer.id,
            valid_until=T0 - timedelta(days=1),
        )
        self.assertEqual(self.lookup("CONS", insurer_id=str(self.insurer.id)).price_table_id, default.id)

    def test_explicit_table_resolves_its_own_items_only(self):
        self.create_table("Particular", [item("CONS", "150")], is_default=True)
        custom = self.create_table("Campanha", [item("LIMP", "80")], type=PriceTableType.CUSTOM)

        self.assertEqual(self.lookup("LIMP", price_table_id=str(custom.id)).final_price, Decimal("80.00"))
        with self.assertRaises(NotFoundError):
            self.lookup("CONS", price_table_id=str(custom.id))

    def test_unknown_explicit_table_falls_back_to_default(self):
        default = self.create_table("Particular", [item("CONS", "150")], is_default=True)

        resolved = self.lookup("CONS", price_table_id=str(uuid.uuid4()))
        self.assertEqual(resolved.price_table_id, default.id)
        self.assertEqual(resolved.final_price, Decimal("150.00"))

    def test_missing_table_or_code(self):
        with self.assertRaises(NotFoundError):
            self.lookup("CONS")
        self.create_table("Particular", [item("CONS", "150")], is_default=True)
        with self.assertRaises(NotFoundError):
            self.lookup("XYZ")

    def test_add_items_replaces_same_code(self):
        table = self.create_table("Particular", [item("CONS", "150"), item("RX", "60")], is_default=True)
        updated = self.bus.dispatch(
            AddPriceTableItemsCommand(id=str(table.id), items=(item("CONS", "170"), item("CLAR", "400")))
        ).value

        self.assertEqual(sorted(i.code for i in updated.items), ["CLAR", "CONS", "RX"])
        self.assertEqual(self.lookup("CONS").final_price, Decimal("170.00"))

    def test_deactivated_table_is_not_resolved(self):
        table = self.create_table("Particular", [item("CONS", "150")], is_default=True)
        self.bus.dispatch(UpdatePriceTableCommand(id=str(table.id), payload=UpdatePriceTableDTO(is_active=False)))

        with self.assertRaises(NotFoundError):
            self.lookup("CONS")
        page = self.queries.dispatch(ListPriceTablesQuery(filtros=PriceTableFilter(active_only=True)))
        self.assertEqual(page.total, 0)
