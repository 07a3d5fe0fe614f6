from __future__ import annotations

import json
from datetime import datetime, time, timezone

from django.conf import settings
from django.core.management.base import BaseCommand, CommandParser

from clinic_billing.adapters.config.composition_root import setup_di_container_from_settings
from clinic_billing.core.domain.entities._base import to_primitive
from clinic_billing.core.domain.enums import ReportGroupBy

REPORTS = ("revenue", "cash-flow", "aging")


def _day_start(value: str) -> datetime:
    return datetime.combine(datetime.fromisoformat(value).date(), time.min, tzinfo=timezone.utc)


def _day_end(value: str) -> datetime:
    return datetime.combine(datetime.fromisoformat(value).date(), time.max, tzinfo=timezone.utc)


class Command(BaseCommand):
    """
    Imprime um relatório financeiro em JSON.

    Exemplo:
        python manage.py billing_report revenue --inicio 2025-01-01 --fim 2025-01-31 --agrupar month
    """

    help = "Gera relatório de receita, fluxo de caixa ou aging em JSON."

    def add_arguments(self, parser: CommandParser):
        parser.add_argument("report", choices=REPORTS)
        parser.add_argument("--clinic-id", type=str, help="UUID da clínica (default: todas).")
        parser.add_argument("--inicio", type=_day_start, help="Data inicial (YYYY-MM-DD).")
        parser.add_argument("--fim", type=_day_end, help="Data final (YYYY-MM-DD).")
        parser.add_argument(
            "--agrupar",
            choices=[g.value for g in ReportGroupBy],
            default=ReportGroupBy.DAY.value,
        )
        parser.add_argument("--projecoes", action="store_true", help="Inclui projeção de entradas.")

    def handle(self, *args, **options):
        service = setup_di_container_from_settings(settings).billing_service()
        report = options["report"]
        clinic_id = options["clinic_id"]

        if report == "revenue":
            result = service.revenue_report(
                start=options["inicio"],
                end=options["fim"],
                clinic_id=clinic_id,
                group_by=ReportGroupBy(options["agrupar"]),
            )
        elif report == "cash-flow":
            result = service.cash_flow_report(
                start=options["inicio"],
                end=options["fim"],
                clinic_id=clinic_id,
                include_projections=options["projecoes"],
            )
        else:
            result = service.aging_report(clinic_id=clinic_id, reference_date=options["fim"])

        self.stdout.write(json.dumps(to_primitive(result), indent=2, ensure_ascii=False))
