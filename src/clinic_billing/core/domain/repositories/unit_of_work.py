from contextlib import AbstractContextManager
from typing import Protocol


class UnitOfWork(Protocol):
    def atomic(self) -> AbstractContextManager[None]:
        """Abre (ou aninha) uma transação; locks de linha valem até o fim dela."""
        ...
