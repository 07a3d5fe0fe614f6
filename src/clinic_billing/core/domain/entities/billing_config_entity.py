from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from clinic_billing.core.utils.money import D


@dataclass(frozen=True, slots=True)
class BillingConfigEntity:
    """Política de faturamento lida uma única vez do settings."""

    late_fee_rate: Decimal = Decimal("0.02")
    daily_interest_rate: Decimal = Decimal("0.00033")
    default_validity_days: int = 30  # janela padrão dos relatórios
    default_due_in_days: int = 30
    pix_expiration_minutes: int = 30
    boleto_days_to_expire: int = 3
    projection_days: int = 30
    pix_qr_base_url: str = "https://api.qrserver.com/v1/create-qr-code/?data="
    boleto_base_url: str = "https://boleto.example.com"

    @classmethod
    def from_settings(cls, settings: Any) -> BillingConfigEntity:
        defaults = cls()
        return cls(
            late_fee_rate=D(getattr(settings, "BILLING_LATE_FEE_RATE", defaults.late_fee_rate)),
            daily_interest_rate=D(getattr(settings, "BILLING_DAILY_INTEREST_RATE", defaults.daily_interest_rate)),
            default_validity_days=int(getattr(settings, "BILLING_DEFAULT_VALIDITY_DAYS", defaults.default_validity_days)),
            default_due_in_days=int(getattr(settings, "BILLING_DEFAULT_DUE_IN_DAYS", defaults.default_due_in_days)),
            pix_expiration_minutes=int(getattr(settings, "BILLING_PIX_EXPIRATION_MINUTES", defaults.pix_expiration_minutes)),
            boleto_days_to_expire=int(getattr(settings, "BILLING_BOLETO_DAYS_TO_EXPIRE", defaults.boleto_days_to_expire)),
            projection_days=int(getattr(settings, "BILLING_PROJECTION_DAYS", defaults.projection_days)),
            pix_qr_base_url=getattr(settings, "BILLING_PIX_QR_BASE_URL", defaults.pix_qr_base_url),
            boleto_base_url=getattr(settings, "BILLING_BOLETO_BASE_URL", defaults.boleto_base_url),
        )
