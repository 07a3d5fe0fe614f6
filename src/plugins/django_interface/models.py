"""
Domínio de faturamento → ORM.

⚑ Nomes de colunas iguais aos campos das entidades (mapeamento direto)
⚑ Sub-registros tipados (itens, impostos, parcelas, itens de tabela) em JSON
⚑ Campos de auditoria gravados pelo relógio da aplicação, sem auto_now
⚑ Apenas tipos genéricos, portável entre SQLite e PostgreSQL
"""

from __future__ import annotations

import uuid

from django.db import models
from django.db.models import Index, Q, UniqueConstraint

MONEY = {"max_digits": 14, "decimal_places": 2}


# ╭──────────────────────────────────────────────╮
# │ 0. Cadastros de referência                  │
# ╰──────────────────────────────────────────────╯
class Clinic(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    cnpj = models.CharField(max_length=18, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "clinics"

    def __str__(self) -> str:
        return self.name


class Patient(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    clinic = models.ForeignKey(Clinic, on_delete=models.CASCADE, related_name="patients", null=True, blank=True)
    name = models.CharField(max_length=255)
    email = models.EmailField(max_length=255, blank=True, null=True)
    phone = models.CharField(max_length=32, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "patients"

    def __str__(self) -> str:
        return self.name


class Insurer(models.Model):
    """Operadora de plano de saúde (convênio)."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    ans_code = models.CharField(max_length=20, blank=True, null=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "insurers"

    def __str__(self) -> str:
        return self.name


# ╭──────────────────────────────────────────────╮
# │ 1. Faturas                                  │
# ╰──────────────────────────────────────────────╯
class Invoice(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    invoice_number = models.CharField(max_length=32)
    clinic = models.ForeignKey(Clinic, on_delete=models.PROTECT, related_name="invoices")
    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name="invoices")
    type = models.CharField(max_length=20)
    status = models.CharField(max_length=20, db_index=True)
    issue_date = models.DateTimeField(db_index=True)
    due_date = models.DateTimeField(db_index=True)

    items = models.JSONField(default=list)
    taxes = models.JSONField(default=list)
    subtotal = models.DecimalField(**MONEY, default=0)
    global_discount = models.DecimalField(**MONEY, default=0)
    global_discount_type = models.CharField(max_length=12, default="FIXED")
    discount_reason = models.TextField(blank=True, null=True)
    discount_total = models.DecimalField(**MONEY, default=0)
    tax_total = models.DecimalField(**MONEY, default=0)
    total = models.DecimalField(**MONEY, default=0)
    amount_paid = models.DecimalField(**MONEY, default=0)
    amount_due = models.DecimalField(**MONEY, default=0)
    insurance_coverage = models.DecimalField(**MONEY, default=0)

    insurer = models.ForeignKey(
        Insurer, on_delete=models.PROTECT, related_name="invoices", null=True, blank=True
    )
    insurance_authorization_number = models.CharField(max_length=64, blank=True, null=True)
    consultation_id = models.UUIDField(blank=True, null=True)
    appointment_id = models.UUIDField(blank=True, null=True)
    payment_plan_id = models.UUIDField(blank=True, null=True)
    has_payment_plan = models.BooleanField(default=False)

    paid_date = models.DateTimeField(blank=True, null=True)
    sent_at = models.DateTimeField(blank=True, null=True)
    cancelled_at = models.DateTimeField(blank=True, null=True)
    cancellation_reason = models.TextField(blank=True, null=True)
    cancelled_by = models.CharField(max_length=64, blank=True, null=True)
    notes = models.TextField(blank=True, null=True)
    internal_notes = models.TextField(blank=True, null=True)
    external_reference = models.CharField(max_length=128, blank=True, null=True)
    accepted_payment_methods = models.JSONField(default=list)

    created_by = models.CharField(max_length=64, blank=True, null=True)
    created_at = models.DateTimeField(blank=True, null=True)
    updated_at = models.DateTimeField(blank=True, null=True)
    deleted_at = models.DateTimeField(blank=True, null=True)

    class Meta:
        db_table = "invoices"
        constraints = [
            UniqueConstraint(fields=["clinic", "invoice_number"], name="uq_invoice_number_per_clinic"),
        ]
        indexes = [
            Index(fields=["clinic", "status"]),
            Index(fields=["patient", "status"]),
        ]

    def __str__(self) -> str:
        return self.invoice_number


# ╭──────────────────────────────────────────────╮
# │ 2. Pagamentos                               │
# ╰──────────────────────────────────────────────╯
class Payment(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    invoice = models.ForeignKey(Invoice, on_delete=models.PROTECT, related_name="payments")
    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name="payments")
    clinic = models.ForeignKey(Clinic, on_delete=models.PROTECT, related_name="payments")
    amount = models.DecimalField(**MONEY)
    method = models.CharField(max_length=20)
    status = models.CharField(max_length=20, db_index=True)
    refunded_amount = models.DecimalField(**MONEY, default=0)

    gateway_transaction_id = models.CharField(max_length=128, blank=True, null=True)
    card_last_four = models.CharField(max_length=4, blank=True, null=True)
    card_installments = models.PositiveSmallIntegerField(blank=True, null=True)
    pix_code = models.CharField(max_length=255, blank=True, null=True)
    pix_qr_code_url = models.URLField(max_length=512, blank=True, null=True)
    pix_expires_at = models.DateTimeField(blank=True, null=True)
    boleto_barcode = models.CharField(max_length=128, blank=True, null=True)
    boleto_url = models.URLField(max_length=512, blank=True, null=True)
    boleto_expires_at = models.DateTimeField(blank=True, null=True)
    is_manual = models.BooleanField(default=False)
    reference_number = models.CharField(max_length=128, blank=True, null=True)
    bank_name = models.CharField(max_length=128, blank=True, null=True)
    receipt_url = models.URLField(max_length=512, blank=True, null=True)

    paid_at = models.DateTimeField(blank=True, null=True, db_index=True)
    refunded_at = models.DateTimeField(blank=True, null=True, db_index=True)
    refund_reason = models.CharField(max_length=40, blank=True, null=True)
    refund_description = models.TextField(blank=True, null=True)
    failure_reason = models.TextField(blank=True, null=True)
    external_reference = models.CharField(max_length=128, blank=True, null=True)
    notes = models.TextField(blank=True, null=True)
    created_by = models.CharField(max_length=64, blank=True, null=True)
    created_at = models.DateTimeField(blank=True, null=True)
    updated_at = models.DateTimeField(blank=True, null=True)

    class Meta:
        db_table = "payments"
        constraints = [
            models.CheckConstraint(
                condition=Q(refunded_amount__lte=models.F("amount")),
                name="ck_payment_refund_le_amount",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.method} {self.amount}"


class PaymentPlan(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    invoice = models.ForeignKey(Invoice, on_delete=models.PROTECT, related_name="payment_plans")
    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name="payment_plans")
    clinic = models.ForeignKey(Clinic, on_delete=models.PROTECT, related_name="payment_plans")
    original_amount = models.DecimalField(**MONEY)
    down_payment = models.DecimalField(**MONEY, default=0)
    financed_amount = models.DecimalField(**MONEY)
    installments_count = models.PositiveSmallIntegerField()
    installment_amount = models.DecimalField(**MONEY)
    monthly_interest_rate = models.DecimalField(max_digits=7, decimal_places=4, default=0)
    total_amount = models.DecimalField(**MONEY)
    payment_method = models.CharField(max_length=20, blank=True, null=True)
    status = models.CharField(max_length=20, db_index=True)
    installments = models.JSONField(default=list)
    paid_installments = models.PositiveSmallIntegerField(default=0)
    pending_installments = models.PositiveSmallIntegerField(default=0)
    total_paid = models.DecimalField(**MONEY, default=0)
    total_pending = models.DecimalField(**MONEY, default=0)
    notes = models.TextField(blank=True, null=True)
    created_by = models.CharField(max_length=64, blank=True, null=True)
    created_at = models.DateTimeField(blank=True, null=True)
    updated_at = models.DateTimeField(blank=True, null=True)
    cancelled_at = models.DateTimeField(blank=True, null=True)

    class Meta:
        db_table = "payment_plans"


# ╭──────────────────────────────────────────────╮
# │ 3. Convênios                                │
# ╰──────────────────────────────────────────────╯
class InsuranceBatch(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    batch_number = models.CharField(max_length=32)
    insurer = models.ForeignKey(Insurer, on_delete=models.PROTECT, related_name="batches")
    clinic = models.ForeignKey(Clinic, on_delete=models.PROTECT, related_name="insurance_batches")
    competence_date = models.DateTimeField()
    claims_count = models.PositiveIntegerField(default=0)
    total_amount = models.DecimalField(**MONEY, default=0)
    status = models.CharField(max_length=20)
    batch_type = models.CharField(max_length=40, blank=True, null=True)
    created_by = models.CharField(max_length=64, blank=True, null=True)
    created_at = models.DateTimeField(blank=True, null=True)

    class Meta:
        db_table = "insurance_batches"
        constraints = [
            UniqueConstraint(fields=["insurer", "batch_number"], name="uq_batch_number_per_insurer"),
        ]


class InsuranceClaim(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    claim_number = models.CharField(max_length=64)
    invoice = models.ForeignKey(Invoice, on_delete=models.PROTECT, related_name="claims")
    insurer = models.ForeignKey(Insurer, on_delete=models.PROTECT, related_name="claims")
    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name="claims")
    clinic = models.ForeignKey(Clinic, on_delete=models.PROTECT, related_name="claims")
    total_amount = models.DecimalField(**MONEY)
    status = models.CharField(max_length=24, db_index=True)
    batch = models.ForeignKey(
        InsuranceBatch, on_delete=models.SET_NULL, related_name="claims", null=True, blank=True
    )
    batch_number = models.CharField(max_length=32, blank=True, null=True)
    membership_number = models.CharField(max_length=64, blank=True, null=True)
    prior_authorization_number = models.CharField(max_length=64, blank=True, null=True)
    guide_number = models.CharField(max_length=64, blank=True, null=True)
    approved_amount = models.DecimalField(**MONEY, blank=True, null=True)
    paid_amount = models.DecimalField(**MONEY, default=0)
    procedures = models.JSONField(default=list)
    diagnosis_codes = models.JSONField(default=list)
    attachments = models.JSONField(default=list)
    service_date = models.DateTimeField(blank=True, null=True)
    submitted_at = models.DateTimeField(blank=True, null=True)
    reviewed_at = models.DateTimeField(blank=True, null=True)
    paid_at = models.DateTimeField(blank=True, null=True)
    denial_reason = models.CharField(max_length=40, blank=True, null=True)
    denial_explanation = models.TextField(blank=True, null=True)
    denied_items = models.JSONField(default=list)
    response_protocol = models.CharField(max_length=64, blank=True, null=True)
    appeal_justification = models.TextField(blank=True, null=True)
    appeal_documents = models.JSONField(default=list)
    appeal_medical_literature = models.TextField(blank=True, null=True)
    appealed_at = models.DateTimeField(blank=True, null=True)
    appealed_by = models.CharField(max_length=64, blank=True, null=True)
    clinical_notes = models.TextField(blank=True, null=True)
    internal_notes = models.TextField(blank=True, null=True)
    created_by = models.CharField(max_length=64, blank=True, null=True)
    created_at = models.DateTimeField(blank=True, null=True)
    updated_at = models.DateTimeField(blank=True, null=True)

    class Meta:
        db_table = "insurance_claims"
        constraints = [
            UniqueConstraint(fields=["insurer", "claim_number"], name="uq_claim_number_per_insurer"),
        ]


# ╭──────────────────────────────────────────────╮
# │ 4. Tabelas de preço                         │
# ╰──────────────────────────────────────────────╯
class PriceTable(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    type = models.CharField(max_length=12, db_index=True)
    description = models.TextField(blank=True, null=True)
    valid_from = models.DateTimeField()
    valid_until = models.DateTimeField(blank=True, null=True)
    insurer = models.ForeignKey(
        Insurer, on_delete=models.PROTECT, related_name="price_tables", null=True, blank=True
    )
    multiplier = models.DecimalField(max_digits=8, decimal_places=4, blank=True, null=True)
    is_default = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)
    items = models.JSONField(default=list)
    created_by = models.CharField(max_length=64, blank=True, null=True)
    created_at = models.DateTimeField(blank=True, null=True)
    updated_at = models.DateTimeField(blank=True, null=True)

    class Meta:
        db_table = "price_tables"
        constraints = [
            UniqueConstraint(fields=["type"], condition=Q(is_default=True), name="uq_default_price_table_per_type"),
        ]

    def __str__(self) -> str:
        return self.name


# ╭──────────────────────────────────────────────╮
# │ 5. Auditoria / Sequências                   │
# ╰──────────────────────────────────────────────╯
class AuditLog(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    action = models.CharField(max_length=64, db_index=True)
    entity_type = models.CharField(max_length=40)
    entity_id = models.CharField(max_length=64, db_index=True)
    user_id = models.CharField(max_length=64, blank=True, null=True)
    details = models.JSONField(default=dict)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "audit_logs"
        ordering = ["created_at"]


class BillingSequence(models.Model):
    """Contador por escopo (ex.: `invoice:<clinic>:<ano>`), travado por linha."""
    scope = models.CharField(primary_key=True, max_length=128)
    value = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = "billing_sequences"
