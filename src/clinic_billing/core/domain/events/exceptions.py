from typing import Any


class BillingError(Exception):
    """Classe base para todas as exceções do faturamento.

    `context` carrega ids e valores envolvidos para o log estruturado.
    """

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        return self.message


class NotFoundError(BillingError):
    """
    Entidade referenciada não existe (fatura, pagamento, plano, claim,
    tabela de preços ou item de tabela).
    """
    pass


class InvalidStateError(BillingError):
    """
    Operação não permitida no status atual.
    Exemplos:
    - Pagamento em fatura cancelada.
    - Confirmar pagamento já confirmado.
    - Recorrer de claim que não foi negado.
    """
    pass


class InvariantViolationError(BillingError):
    """
    Operação quebraria um invariante monetário.
    Exemplos:
    - Pagamento acima do valor devido.
    - Estorno acima do valor disponível.
    - Entrada maior ou igual ao saldo da fatura.
    """
    pass
