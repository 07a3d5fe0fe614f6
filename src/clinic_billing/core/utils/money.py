from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

ZERO = Decimal("0.00")
CENT = Decimal("0.01")
HUNDRED = Decimal("100")


def D(x) -> Decimal:
    """Converte int/float/str/None em Decimal sem perder precisão de string."""
    if isinstance(x, Decimal):
        return x
    try:
        return Decimal(str(x if x is not None else 0))
    except InvalidOperation as exc:
        raise ValueError(f"Valor monetário inválido: {x!r}") from exc


def money2(x) -> Decimal:
    """Arredonda para centavos (ROUND_HALF_UP)."""
    return D(x).quantize(CENT, rounding=ROUND_HALF_UP)


def percent_of(base, percentage) -> Decimal:
    return money2(D(base) * D(percentage) / HUNDRED)


def ratio(numerator, denominator) -> Decimal:
    """Razão em percentual com duas casas; denominador zero resulta em 0."""
    den = D(denominator)
    if den == 0:
        return ZERO
    return money2(D(numerator) / den * HUNDRED)


def safe_div(numerator, denominator) -> Decimal:
    den = D(denominator)
    if den == 0:
        return ZERO
    return money2(D(numerator) / den)
