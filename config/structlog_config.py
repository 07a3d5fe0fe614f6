import logging
import sys

import structlog
from decouple import config
from structlog.processors import CallsiteParameter, CallsiteParameterAdder

SERVICE_NAME = "clinic-billing"

# campos de pagamento que nunca vão em claro para o log
SENSITIVE_KEYS = frozenset({"card_token", "card_number", "cvv", "pix_key", "cpf", "cnpj"})


def mask_sensitive(_logger, _method, event_dict: dict) -> dict:
    """Mantém só os 4 últimos caracteres de dados de cartão/PIX/documento."""
    for key in SENSITIVE_KEYS.intersection(event_dict):
        value = event_dict[key]
        if value is None:
            continue
        text = str(value)
        event_dict[key] = "*" * max(len(text) - 4, 0) + text[-4:]
    return event_dict


def add_service(_logger, _method, event_dict: dict) -> dict:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def configure_logging(
    level: str | None = None,
    json_logs: bool | None = None,
) -> None:
    """
    Configura structlog + logging do faturamento:
     - Em `json_logs` ativa JSONRenderer (coleta centralizada).
     - Caso contrário, usa ConsoleRenderer colorido para dev.
     - Dados de cartão/PIX passam por `mask_sensitive` em ambos.
    Deve ser chamado ANTES de qualquer import que crie loggers.
    """
    level = level or config("LOG_LEVEL", default="INFO")
    if json_logs is None:
        json_logs = config("JSON_LOGS", default=False, cast=bool)

    # comum a stdlib e structlog
    pre_chain = [
        structlog.contextvars.merge_contextvars,     # invoice_id, clinic_id vinculados por request
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_service,
        mask_sensitive,
    ]

    final_processor = (
        structlog.processors.JSONRenderer(default=str)
        if json_logs
        else structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    )

    structlog.configure(
        processors=[
            *pre_chain,
            CallsiteParameterAdder(
                parameters=[
                    CallsiteParameter.MODULE,
                    CallsiteParameter.FUNC_NAME,
                    CallsiteParameter.LINENO,
                ]
            ),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level)
        ),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(processor=final_processor, foreign_pre_chain=pre_chain)
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    # SQL do Django só em DEBUG explícito
    logging.getLogger("django.db.backends").setLevel(logging.WARNING)
    logging.captureWarnings(True)
