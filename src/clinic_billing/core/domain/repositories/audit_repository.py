from abc import ABC, abstractmethod
from typing import Any


class AuditRepository(ABC):
    @abstractmethod
    def log(  # noqa: PLR0913
        self,
        *,
        action: str,
        entity_type: str,
        entity_id: str,
        user_id: str | None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Registra a trilha de auditoria; falhas propagam para abortar a transação."""
        ...
