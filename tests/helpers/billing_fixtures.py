"""Dados de referência e container com relógio fixo para os testes de faturamento."""
from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from django.conf import settings
from django.test import TestCase

from clinic_billing.adapters.config.composition_root import build_container
from clinic_billing.core.application.commands.invoice_commands import CreateInvoiceCommand
from clinic_billing.core.application.commands.payment_commands import (
    ConfirmPaymentCommand,
    CreatePaymentCommand,
)
from clinic_billing.core.application.dtos.invoice_dto import CreateInvoiceDTO, InvoiceItemDTO
from clinic_billing.core.application.dtos.payment_dto import ConfirmPaymentDTO, CreatePaymentDTO
from clinic_billing.core.domain.enums import DiscountType, InvoiceType, PaymentMethod
from clinic_billing.core.domain.services.clock import FixedClock
from plugins.django_interface.models import Clinic, Insurer, Patient

T0 = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


def consult_items() -> list[InvoiceItemDTO]:
    """2 × 100 + 1 × 50 com 10% de desconto → 245."""
    return [
        InvoiceItemDTO(code="CONS", description="Consulta", quantity=Decimal("2"), unit_price=Decimal("100")),
        InvoiceItemDTO(
            code="RX",
            description="Raio-X",
            quantity=Decimal("1"),
            unit_price=Decimal("50"),
            discount=Decimal("10"),
            discount_type=DiscountType.PERCENTAGE,
        ),
    ]


class BillingTestCase(TestCase):
    """Base: clínica, paciente e convênio semeados; bus com FixedClock em T0."""

    def setUp(self):
        super().setUp()
        self.clinic = Clinic.objects.create(name="Clínica Centro", cnpj="12.345.678/0001-90")
        self.patient = Patient.objects.create(
            clinic=self.clinic, name="Maria Souza", email="maria@example.com", phone="+5511999990000"
        )
        self.insurer = Insurer.objects.create(name="Saúde Total", ans_code="123456")
        self.clock = FixedClock(T0)
        self.container = build_container(settings, clock=self.clock)
        self.bus = self.container.command_bus()
        self.queries = self.container.query_bus()

    # ------------------------------------------------------------ atalhos
    def create_invoice(self, items=None, **overrides):
        payload = {
            "patient_id": self.patient.id,
            "clinic_id": self.clinic.id,
            "type": InvoiceType.CONSULTATION,
            "items": items or consult_items(),
            **overrides,
        }
        return self.bus.dispatch(CreateInvoiceCommand(payload=CreateInvoiceDTO(**payload), created_by="u-1")).value

    def pay(self, invoice_id, amount, method=PaymentMethod.CASH):
        created = self.bus.dispatch(
            CreatePaymentCommand(
                payload=CreatePaymentDTO(invoice_id=invoice_id, amount=Decimal(amount), method=method),
                created_by="u-1",
            )
        ).value
        return self.bus.dispatch(
            ConfirmPaymentCommand(payment_id=str(created.payment.id), payload=ConfirmPaymentDTO(), confirmed_by="u-1")
        ).value
