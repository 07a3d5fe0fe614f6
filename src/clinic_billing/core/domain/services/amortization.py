from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from dateutil.relativedelta import relativedelta

from clinic_billing.core.domain.entities.payment_plan_entity import InstallmentEntity
from clinic_billing.core.domain.events.exceptions import InvariantViolationError
from clinic_billing.core.utils.money import HUNDRED, ZERO, D, money2

SECONDS_PER_DAY = 86_400


@dataclass(frozen=True, slots=True)
class LateCharges:
    days_late: int
    late_fee: Decimal
    interest: Decimal
    total_due: Decimal


def installment_amount(financed: Decimal, installments: int, monthly_rate: Decimal) -> Decimal:
    """Parcela pela Tabela Price; taxa em percentual ao mês (2 → 2%)."""
    if installments < 1:
        raise InvariantViolationError("Número de parcelas deve ser ao menos 1", installments=installments)
    financed = D(financed)
    r = D(monthly_rate) / HUNDRED
    if r <= 0:
        return money2(financed / installments)
    factor = (1 + r) ** installments
    return money2(financed * r * factor / (factor - 1))


def monthly_due_dates(first_due: datetime, count: int, due_day: int | None = None) -> list[datetime]:
    """Vencimentos mensais a partir do primeiro; dia fixo limitado ao último dia do mês."""
    if due_day is not None and not 1 <= due_day <= 31:
        raise InvariantViolationError("Dia de vencimento deve estar entre 1 e 31", due_day=due_day)
    dates = []
    for i in range(count):
        step = relativedelta(months=i, day=due_day) if due_day else relativedelta(months=i)
        dates.append(first_due + step)
    return dates


def build_schedule(
    financed: Decimal,
    installments: int,
    monthly_rate: Decimal,
    first_due: datetime,
    due_day: int | None = None,
) -> list[InstallmentEntity]:
    amount = installment_amount(financed, installments, monthly_rate)
    amounts = [amount] * installments
    if D(monthly_rate) <= 0:
        # sem juros a última parcela absorve o resíduo de arredondamento
        amounts[-1] = money2(D(financed) - amount * (installments - 1))
    return [
        InstallmentEntity(number=n, amount=amt, due_date=due)
        for n, (amt, due) in enumerate(
            zip(amounts, monthly_due_dates(first_due, installments, due_day), strict=True),
            start=1,
        )
    ]


def late_charges(
    amount: Decimal,
    due_date: datetime,
    now: datetime,
    late_fee_rate: Decimal,
    daily_interest_rate: Decimal,
) -> LateCharges:
    amount = money2(amount)
    if now <= due_date:
        return LateCharges(days_late=0, late_fee=ZERO, interest=ZERO, total_due=amount)
    days_late = math.ceil((now - due_date).total_seconds() / SECONDS_PER_DAY)
    late_fee = money2(amount * D(late_fee_rate))
    interest = money2(amount * days_late * D(daily_interest_rate))
    return LateCharges(
        days_late=days_late,
        late_fee=late_fee,
        interest=interest,
        total_due=money2(amount + late_fee + interest),
    )
