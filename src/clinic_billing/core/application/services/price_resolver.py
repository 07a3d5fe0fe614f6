from __future__ import annotations

import structlog

from clinic_billing.core.application.dtos.price_table_dto import ResolvedPriceDTO
from clinic_billing.core.domain.entities.price_table_entity import PriceTableEntity
from clinic_billing.core.domain.enums import PriceTableType
from clinic_billing.core.domain.events.exceptions import NotFoundError
from clinic_billing.core.domain.repositories.price_table_repository import PriceTableRepository
from clinic_billing.core.domain.services.clock import Clock
from clinic_billing.core.utils.money import D, money2

logger = structlog.get_logger(__name__)


class PriceResolverService:
    """
    Resolve o preço de um procedimento.

    Ordem: tabela explícita → tabela ativa do convênio vigente agora →
    tabela PRIVATE padrão ativa. Tabela explícita inexistente também cai na
    padrão; código ausente na tabela resolvida não. Apenas leitura.
    """

    def __init__(self, repo: PriceTableRepository, clock: Clock) -> None:
        self.repo = repo
        self.clock = clock

    def resolve_table(self, insurer_id: str | None = None, price_table_id: str | None = None) -> PriceTableEntity:
        table: PriceTableEntity | None = None
        if price_table_id:
            table = self.repo.find_by_id(price_table_id)
        elif insurer_id:
            table = self.repo.find_active_for_insurer(insurer_id, self.clock.now())
        if table is None:
            table = self.repo.find_default(PriceTableType.PRIVATE)
        if table is None:
            raise NotFoundError(
                "Tabela de preços não encontrada",
                insurer_id=insurer_id,
                price_table_id=price_table_id,
            )
        return table

    def resolve_price(
        self,
        code: str,
        insurer_id: str | None = None,
        price_table_id: str | None = None,
    ) -> ResolvedPriceDTO:
        table = self.resolve_table(insurer_id=insurer_id, price_table_id=price_table_id)
        item = table.find_item(code)
        if item is None:
            raise NotFoundError(
                "Item não encontrado na tabela de preços",
                code=code,
                price_table_id=str(table.id),
            )
        multiplier = D(table.multiplier) if table.multiplier else D(1)
        resolved = ResolvedPriceDTO(
            code=item.code,
            description=item.description,
            original_price=item.price,
            multiplier=multiplier,
            final_price=money2(item.price * multiplier),
            price_table_id=table.id,
            price_table_name=table.name,
            price_table_type=table.type,
        )
        logger.debug(
            "price.resolved",
            code=code,
            price_table_id=str(table.id),
            final_price=str(resolved.final_price),
        )
        return resolved
