from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

from clinic_billing.core.domain.events.events import (
    InstallmentPaidEvent,
    InsuranceClaimStatusChangedEvent,
    InvoiceCreatedEvent,
    PaymentConfirmedEvent,
    PaymentRefundedEvent,
)
from clinic_billing.core.domain.services.event_dispatcher import EventDispatcher

registry = CollectorRegistry()

COMMAND_DURATION = Histogram(
    "billing_command_duration_seconds",
    "Tempo de execucao dos comandos de faturamento",
    ["command"],
    registry=registry,
)

INVOICES_CREATED = Counter(
    "billing_invoices_created_total",
    "Faturas emitidas",
    registry=registry,
)

PAYMENTS_CONFIRMED = Counter(
    "billing_payments_confirmed_total",
    "Pagamentos liquidados",
    ["method", "manual"],
    registry=registry,
)

REFUNDED_AMOUNT = Counter(
    "billing_refunded_amount_total",
    "Valor estornado (BRL)",
    registry=registry,
)

INSTALLMENTS_PAID = Counter(
    "billing_installments_paid_total",
    "Parcelas quitadas",
    registry=registry,
)

CLAIM_STATUS_CHANGES = Counter(
    "billing_claim_status_changes_total",
    "Transicoes de status de guias",
    ["new_status"],
    registry=registry,
)


class BillingMetrics:
    """Fachada usada pelo CommandBus e pelos assinantes de eventos."""

    def observe_command(self, command_name: str, elapsed: float) -> None:
        COMMAND_DURATION.labels(command_name).observe(elapsed)

    def on_invoice_created(self, event: InvoiceCreatedEvent) -> None:
        INVOICES_CREATED.inc()

    def on_payment_confirmed(self, event: PaymentConfirmedEvent) -> None:
        PAYMENTS_CONFIRMED.labels(event.method, str(event.manual).lower()).inc()

    def on_payment_refunded(self, event: PaymentRefundedEvent) -> None:
        REFUNDED_AMOUNT.inc(float(event.amount))

    def on_installment_paid(self, event: InstallmentPaidEvent) -> None:
        INSTALLMENTS_PAID.inc()

    def on_claim_status_changed(self, event: InsuranceClaimStatusChangedEvent) -> None:
        CLAIM_STATUS_CHANGES.labels(event.new_status).inc()

    def register_subscribers(self, dispatcher: EventDispatcher) -> None:
        dispatcher.subscribe(InvoiceCreatedEvent, self.on_invoice_created)
        dispatcher.subscribe(PaymentConfirmedEvent, self.on_payment_confirmed)
        dispatcher.subscribe(PaymentRefundedEvent, self.on_payment_refunded)
        dispatcher.subscribe(InstallmentPaidEvent, self.on_installment_paid)
        dispatcher.subscribe(InsuranceClaimStatusChangedEvent, self.on_claim_status_changed)


def render_metrics() -> tuple[bytes, str]:
    """Payload + content-type para exposição em qualquer endpoint HTTP."""
    return generate_latest(registry), CONTENT_TYPE_LATEST
