from __future__ import annotations

import uuid
from collections.abc import Iterable

import structlog

from clinic_billing.core.application.commands.price_table_commands import (
    AddPriceTableItemsCommand,
    CreatePriceTableCommand,
    UpdatePriceTableCommand,
)
from clinic_billing.core.application.cqrs import CommandHandler, OperationResult, PagedResult, QueryHandler
from clinic_billing.core.application.dtos.price_table_dto import PriceTableItemDTO, ResolvedPriceDTO
from clinic_billing.core.application.queries.price_table_queries import (
    ListPriceTablesQuery,
    LookupPriceQuery,
)
from clinic_billing.core.application.services.price_resolver import PriceResolverService
from clinic_billing.core.domain.entities.price_table_entity import PriceTableEntity, PriceTableItemEntity
from clinic_billing.core.domain.events.events import PriceTableChangedEvent
from clinic_billing.core.domain.events.exceptions import NotFoundError
from clinic_billing.core.domain.repositories.audit_repository import AuditRepository
from clinic_billing.core.domain.repositories.price_table_repository import PriceTableRepository
from clinic_billing.core.domain.repositories.reference_data_repository import ReferenceDataRepository
from clinic_billing.core.domain.repositories.unit_of_work import UnitOfWork
from clinic_billing.core.domain.services.clock import Clock
from clinic_billing.core.utils.money import money2

logger = structlog.get_logger(__name__)


def _items_from_dto(items: Iterable[PriceTableItemDTO]) -> list[PriceTableItemEntity]:
    return [
        PriceTableItemEntity(**{**i.model_dump(), "price": money2(i.price)})
        for i in items
    ]


def load_price_table(repo: PriceTableRepository, table_id: str) -> PriceTableEntity:
    table = repo.find_by_id(table_id)
    if table is None:
        raise NotFoundError("Tabela de preços não encontrada", price_table_id=str(table_id))
    return table


class _PriceTableHandlerBase:
    def __init__(self, repo: PriceTableRepository, audit_repo: AuditRepository, uow: UnitOfWork, clock: Clock):
        self.repo = repo
        self.audit_repo = audit_repo
        self.uow = uow
        self.clock = clock

    def _persist(self, table: PriceTableEntity, action: str, user_id: str | None, **details) -> PriceTableEntity:
        """Grava a tabela; se ela é a padrão, desmarca as irmãs do mesmo tipo na mesma transação."""
        if table.is_default:
            unset = self.repo.unset_defaults(table.type, except_id=str(table.id))
            if unset:
                logger.info("price_table.defaults_unset", type=table.type.value, count=unset)
        table = self.repo.save(table)
        self.audit_repo.log(
            action=action,
            entity_type="PriceTable",
            entity_id=str(table.id),
            user_id=user_id,
            details={"name": table.name, **details},
        )
        return table


# ╭──────────────────────────────────────────────╮
# │ Manutenção de tabelas                        │
# ╰──────────────────────────────────────────────╯
class CreatePriceTableHandler(_PriceTableHandlerBase, CommandHandler[CreatePriceTableCommand]):
    def __init__(  # noqa: PLR0913
        self,
        repo: PriceTableRepository,
        reference_repo: ReferenceDataRepository,
        audit_repo: AuditRepository,
        uow: UnitOfWork,
        clock: Clock,
    ):
        super().__init__(repo, audit_repo, uow, clock)
        self.reference_repo = reference_repo

    def handle(self, cmd: CreatePriceTableCommand) -> OperationResult[PriceTableEntity]:
        p = cmd.payload
        if p.insurer_id and not self.reference_repo.insurer_exists(str(p.insurer_id)):
            raise NotFoundError("Convênio não encontrado", insurer_id=str(p.insurer_id))
        now = self.clock.now()

        with self.uow.atomic():
            table = PriceTableEntity(
                id=uuid.uuid4(),
                name=p.name,
                type=p.type,
                valid_from=p.valid_from,
                valid_until=p.valid_until,
                description=p.description,
                insurer_id=p.insurer_id,
                multiplier=p.multiplier,
                is_default=p.is_default,
                items=_items_from_dto(p.items),
                created_by=cmd.created_by,
                created_at=now,
                updated_at=now,
            )
            table = self._persist(table, "PRICE_TABLE_CREATED", cmd.created_by, items=len(table.items))

        logger.info("price_table.created", price_table_id=str(table.id), type=table.type.value)
        return OperationResult(value=table, events=(PriceTableChangedEvent(price_table_id=table.id, action="created"),))


class UpdatePriceTableHandler(_PriceTableHandlerBase, CommandHandler[UpdatePriceTableCommand]):
    def handle(self, cmd: UpdatePriceTableCommand) -> OperationResult[PriceTableEntity]:
        changes = cmd.payload.model_dump(exclude_unset=True)
        with self.uow.atomic():
            table = load_price_table(self.repo, cmd.id)
            for name, value in changes.items():
                setattr(table, name, value)
            table.updated_at = self.clock.now()
            table = self._persist(table, "PRICE_TABLE_UPDATED", cmd.updated_by, fields=sorted(changes))

        logger.info("price_table.updated", price_table_id=str(table.id), fields=sorted(changes))
        return OperationResult(value=table, events=(PriceTableChangedEvent(price_table_id=table.id, action="updated"),))


class AddPriceTableItemsHandler(_PriceTableHandlerBase, CommandHandler[AddPriceTableItemsCommand]):
    """Inclui itens; um código já existente é substituído pelo novo."""

    def handle(self, cmd: AddPriceTableItemsCommand) -> OperationResult[PriceTableEntity]:
        new_items = _items_from_dto(cmd.items)
        codes = {i.code for i in new_items}
        with self.uow.atomic():
            table = load_price_table(self.repo, cmd.id)
            table.items = [i for i in table.items if i.code not in codes] + new_items
            table.updated_at = self.clock.now()
            table = self._persist(table, "PRICE_TABLE_ITEMS_ADDED", cmd.updated_by, codes=sorted(codes))

        logger.info("price_table.items_added", price_table_id=str(table.id), count=len(new_items))
        return OperationResult(
            value=table,
            events=(PriceTableChangedEvent(price_table_id=table.id, action="items_added"),),
        )


# ╭──────────────────────────────────────────────╮
# │ Consultas                                    │
# ╰──────────────────────────────────────────────╯
class LookupPriceHandler(QueryHandler[LookupPriceQuery, ResolvedPriceDTO]):
    def __init__(self, resolver: PriceResolverService):
        self.resolver = resolver

    def handle(self, q: LookupPriceQuery) -> ResolvedPriceDTO:
        return self.resolver.resolve_price(q.code, insurer_id=q.insurer_id, price_table_id=q.price_table_id)


class ListPriceTablesHandler(QueryHandler[ListPriceTablesQuery, PagedResult[PriceTableEntity]]):
    def __init__(self, repo: PriceTableRepository):
        self.repo = repo

    def handle(self, q: ListPriceTablesQuery) -> PagedResult[PriceTableEntity]:
        return self.repo.list(q.filtros, page=q.page, page_size=q.page_size)

