"""
Gateways locais: geram identificadores opacos sem chamar provedores.

Substituíveis por integrações reais que implementem as mesmas portas
(`CardGateway`, `PixGateway`, `BoletoGateway`).
"""
from __future__ import annotations

import secrets
from datetime import datetime
from decimal import Decimal

import structlog

from clinic_billing.core.domain.services.clock import Clock

logger = structlog.get_logger(__name__)


def _stamp(clock: Clock) -> int:
    return int(clock.now().timestamp() * 1000)


class LocalCardGateway:
    def __init__(self, clock: Clock) -> None:
        self.clock = clock

    def authorize(self, *, card_token: str, amount: Decimal, installments: int) -> str:
        transaction_id = f"TXN_{_stamp(self.clock)}_{secrets.token_hex(5)}"
        logger.debug("gateway.card.authorize", transaction_id=transaction_id, amount=str(amount))
        return transaction_id


class LocalPixGateway:
    def __init__(self, clock: Clock) -> None:
        self.clock = clock

    def create_charge(self, *, amount: Decimal, pix_key: str | None) -> str:
        return f"PIX_{_stamp(self.clock)}_{secrets.token_hex(5)}"


class LocalBoletoGateway:
    BANK_PREFIX = "23793.38128"

    def __init__(self, clock: Clock) -> None:
        self.clock = clock

    def register(self, *, amount: Decimal, due: datetime, instructions: str | None) -> str:
        cents = int(amount * 100)
        return f"{self.BANK_PREFIX}{_stamp(self.clock) % 10**10:010d}{cents:010d}"
