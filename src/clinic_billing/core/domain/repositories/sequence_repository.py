from abc import ABC, abstractmethod


class SequenceRepository(ABC):
    @abstractmethod
    def next_value(self, scope: str) -> int:
        """
        Próximo valor (1-based) do contador `scope`.

        Deve ser chamado dentro da transação que persiste o documento
        numerado, para que dois chamadores nunca recebam o mesmo número.
        """
        ...
