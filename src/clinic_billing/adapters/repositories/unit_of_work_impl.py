from contextlib import AbstractContextManager

from django.db import transaction


class DjangoUnitOfWork:
    """Transação do ORM; aninhar cria savepoints."""

    def __init__(self, using: str | None = None) -> None:
        self.using = using

    def atomic(self) -> AbstractContextManager[None]:
        return transaction.atomic(using=self.using)
