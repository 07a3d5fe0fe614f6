from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Protocol

import structlog

from clinic_billing.core.application.dtos.payment_dto import CreatePaymentDTO, RailResult
from clinic_billing.core.domain.entities.billing_config_entity import BillingConfigEntity
from clinic_billing.core.domain.entities.invoice_entity import InvoiceEntity
from clinic_billing.core.domain.enums import CARD_METHODS, PaymentMethod, PaymentStatus
from clinic_billing.core.domain.services.clock import Clock

logger = structlog.get_logger(__name__)


# ───────────────────────────────────────────────
# Portas dos gateways
# ───────────────────────────────────────────────
class CardGateway(Protocol):
    def authorize(self, *, card_token: str, amount: Decimal, installments: int) -> str:
        """Inicia a cobrança e devolve o id da transação no gateway."""
        ...


class PixGateway(Protocol):
    def create_charge(self, *, amount: Decimal, pix_key: str | None) -> str:
        """Devolve o código copia-e-cola do PIX."""
        ...


class BoletoGateway(Protocol):
    def register(self, *, amount: Decimal, due: datetime, instructions: str | None) -> str:
        """Registra o boleto e devolve a linha digitável."""
        ...


# ───────────────────────────────────────────────
# Roteador por forma de pagamento
# ───────────────────────────────────────────────
class PaymentRailService:
    """Prepara o pagamento no trilho correspondente à forma escolhida."""

    def __init__(
        self,
        card_gateway: CardGateway,
        pix_gateway: PixGateway,
        boleto_gateway: BoletoGateway,
        clock: Clock,
        config: BillingConfigEntity,
    ) -> None:
        self.card_gateway = card_gateway
        self.pix_gateway = pix_gateway
        self.boleto_gateway = boleto_gateway
        self.clock = clock
        self.config = config

    def prepare(self, dto: CreatePaymentDTO, invoice: InvoiceEntity) -> RailResult:
        if dto.method in CARD_METHODS:
            return self._card(dto)
        if dto.method is PaymentMethod.PIX:
            return self._pix(dto)
        if dto.method is PaymentMethod.BOLETO:
            return self._boleto(dto)
        # dinheiro, cheque e transferência aguardam conferência manual
        return RailResult(status=PaymentStatus.PENDING.value)

    def _card(self, dto: CreatePaymentDTO) -> RailResult:
        card = dto.card_details
        installments = card.installments or 1
        transaction_id = self.card_gateway.authorize(
            card_token=card.card_token, amount=dto.amount, installments=installments
        )
        logger.info("payment.card.processing", transaction_id=transaction_id, installments=installments)
        return RailResult(
            status=PaymentStatus.PROCESSING.value,
            payment_fields={
                "gateway_transaction_id": transaction_id,
                "card_last_four": card.card_token[-4:],
                "card_installments": installments,
            },
            response={
                "transaction_id": transaction_id,
                "status": "processing",
                "message": "Pagamento em processamento",
            },
        )

    def _pix(self, dto: CreatePaymentDTO) -> RailResult:
        details = dto.pix_details
        minutes = (details.expiration_minutes if details else None) or self.config.pix_expiration_minutes
        expires_at = self.clock.now() + timedelta(minutes=minutes)
        pix_code = self.pix_gateway.create_charge(
            amount=dto.amount, pix_key=details.pix_key if details else None
        )
        qr_url = f"{self.config.pix_qr_base_url}{pix_code}"
        logger.info("payment.pix.generated", pix_code=pix_code, expires_at=expires_at.isoformat())
        return RailResult(
            status=PaymentStatus.PENDING.value,
            payment_fields={
                "pix_code": pix_code,
                "pix_qr_code_url": qr_url,
                "pix_expires_at": expires_at,
            },
            response={"pix_code": pix_code, "pix_qr_code_url": qr_url, "expires_at": expires_at},
            expires_at=expires_at,
        )

    def _boleto(self, dto: CreatePaymentDTO) -> RailResult:
        details = dto.boleto_details
        days = (details.days_to_expire if details else None) or self.config.boleto_days_to_expire
        expires_at = self.clock.now() + timedelta(days=days)
        barcode = self.boleto_gateway.register(
            amount=dto.amount,
            due=expires_at,
            instructions=details.instructions if details else None,
        )
        url = f"{self.config.boleto_base_url}/{barcode}"
        logger.info("payment.boleto.generated", barcode=barcode, expires_at=expires_at.isoformat())
        return RailResult(
            status=PaymentStatus.PENDING.value,
            payment_fields={
                "boleto_barcode": barcode,
                "boleto_url": url,
                "boleto_expires_at": expires_at,
            },
            response={
                "boleto_barcode": barcode,
                "boleto_url": url,
                "boleto_pdf_url": f"{url}/pdf",
                "due_date": expires_at,
            },
            expires_at=expires_at,
        )
