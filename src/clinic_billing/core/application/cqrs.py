from __future__ import annotations

import math
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Generic, Protocol, TypeVar

import structlog

from clinic_billing.core.domain.events.events import DomainEvent
from clinic_billing.core.domain.services.event_dispatcher import EventDispatcher

# ───────────────────────────────────────────────
# CQRS Genérico com Paginação, Log de Performance e Eventos de Saída
# ───────────────────────────────────────────────

C = TypeVar('C')  # Command type
Q = TypeVar('Q')  # Query filtros type
R = TypeVar('R')  # Query result type
T = TypeVar('T')  # PagedResult item type

logger = structlog.get_logger(__name__)

# ───────────────────────────────────────────────
# DTOs
# ───────────────────────────────────────────────
@dataclass(frozen=True)
class CommandDTO:
    """Base para todos comandos de escrita (Create/Update/Delete)."""
    pass

@dataclass(frozen=True)
class QueryDTO(Generic[Q]):
    """Base para consultas de leitura."""
    pass

@dataclass(frozen=True)
class PagedResult(Generic[T]):
    """Resultado paginado padrão."""
    items: Sequence[T]
    total: int
    page: int
    page_size: int
    total_pages: int = field(init=False)

    def __post_init__(self):
        object.__setattr__(self, 'total_pages', math.ceil(self.total / self.page_size) if self.page_size else 0)

@dataclass(frozen=True)
class OperationResult(Generic[T]):
    """Retorno de comando: valor + eventos de domínio a publicar."""
    value: T
    events: tuple[DomainEvent, ...] = ()

# ───────────────────────────────────────────────
# Handlers Protocols
# ───────────────────────────────────────────────
class CommandHandler(Protocol, Generic[C]):
    def handle(self, command: C) -> OperationResult[Any]:
        """Processa um comando e aplica mudanças de estado."""
        ...

class QueryHandler(Protocol, Generic[Q, R]):
    def handle(self, query: Q) -> R:
        """Processa uma consulta e retorna um resultado."""
        ...

# ───────────────────────────────────────────────
# Buses com Logging e Métricas
# ───────────────────────────────────────────────
class CommandBus:
    """Dispatcher de comandos com medição de performance."""
    def __init__(self) -> None:
        self._handlers: dict[type, CommandHandler] = {}

    def register(self, command_type: type[C], handler: CommandHandler[C]) -> None:
        self._handlers[command_type] = handler
        logger.debug("command.registered", command=command_type.__name__)

    def dispatch(self, command: C) -> Any:
        handler = self._handlers.get(type(command))
        if not handler:
            raise ValueError(f"Nenhum handler para comando: {type(command).__name__}")
        start = time.perf_counter()
        logger.info("command.executing", command=type(command).__name__)
        try:
            result = handler.handle(command)
        except Exception as exc:
            logger.warning(
                "command.failed",
                command=type(command).__name__,
                error=str(exc),
                context=getattr(exc, "context", None),
            )
            raise
        elapsed = time.perf_counter() - start
        self._observe(type(command).__name__, elapsed)
        logger.info("command.executed", command=type(command).__name__, duration=f"{elapsed:.3f}s")
        return result

    def _observe(self, command_name: str, elapsed: float) -> None:
        """Gancho para métricas de latência."""
        pass

class QueryBus:
    """Dispatcher de queries com medição e suporte à paginação."""
    def __init__(self) -> None:
        self._handlers: dict[type, QueryHandler] = {}

    def register(self, query_type: type, handler: QueryHandler[Any, Any]) -> None:
        self._handlers[query_type] = handler
        logger.debug("query.registered", query=query_type.__name__)

    def dispatch(self, query: Any) -> Any:
        handler = self._handlers.get(type(query))
        if not handler:
            raise ValueError(f"Nenhum handler para query: {type(query).__name__}")
        start = time.perf_counter()
        logger.info("query.executing", query=type(query).__name__)
        result = handler.handle(query)
        elapsed = time.perf_counter() - start
        logger.info("query.executed", query=type(query).__name__, duration=f"{elapsed:.3f}s")
        return result

# ───────────────────────────────────────────────
# Service de Alto Nível
# ───────────────────────────────────────────────
class BaseService:
    """Orquestra execução de comandos e queries via buses."""
    def __init__(self, command_bus: CommandBus, query_bus: QueryBus) -> None:
        self.commands = command_bus
        self.queries = query_bus

    def execute(self, command: CommandDTO) -> Any:
        result = self.commands.dispatch(command)
        return result.value if isinstance(result, OperationResult) else result

    def query(self, query: Any) -> Any:
        return self.queries.dispatch(query)

class CommandBusImpl(CommandBus):
    """CommandBus que publica, após o commit, os eventos retornados pelo handler."""
    def __init__(self, dispatcher: EventDispatcher, metrics: Any | None = None):
        super().__init__()
        self.dispatcher = dispatcher
        self.metrics = metrics

    def dispatch(self, command: Any) -> Any:
        result = super().dispatch(command)
        if isinstance(result, OperationResult):
            self.dispatcher.dispatch_all(result.events)
        elif isinstance(result, DomainEvent):
            self.dispatcher.dispatch(result)
        return result

    def _observe(self, command_name: str, elapsed: float) -> None:
        if self.metrics is not None:
            self.metrics.observe_command(command_name, elapsed)

class QueryBusImpl(QueryBus):
    """
    Implementação padrão de QueryBus (herda toda a lógica de QueryBus).
    """
    pass
