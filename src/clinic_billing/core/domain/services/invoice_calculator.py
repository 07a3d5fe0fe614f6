"""
Cálculo de faturas.

Por item:      subtotal = quantidade × preço unitário
               desconto = PERCENTAGE ? subtotal × d / 100 : d
               total    = subtotal − desconto
Fatura:        subtotal = Σ total dos itens
               desconto global sobre o subtotal (mesma regra)
               impostos sobre (subtotal − desconto global)
               total    = subtotal − desconto global + Σ impostos

Cada valor é arredondado em centavos antes de entrar em uma soma, de modo
que `total == subtotal − discount_total + tax_total` vale exatamente.
"""
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace
from decimal import Decimal

from clinic_billing.core.domain.entities.invoice_entity import InvoiceItemEntity, InvoiceTaxEntity
from clinic_billing.core.domain.enums import DiscountType
from clinic_billing.core.domain.events.exceptions import InvariantViolationError
from clinic_billing.core.utils.money import ZERO, D, money2, percent_of


@dataclass(frozen=True, slots=True)
class InvoiceTotals:
    items: list[InvoiceItemEntity]
    taxes: list[InvoiceTaxEntity]
    subtotal: Decimal
    discount_total: Decimal
    tax_total: Decimal
    total: Decimal


def discount_value(base: Decimal, discount: Decimal, discount_type: DiscountType) -> Decimal:
    discount = D(discount)
    if discount < 0:
        raise InvariantViolationError("Desconto não pode ser negativo", discount=str(discount))
    if discount_type is DiscountType.PERCENTAGE:
        if discount > 100:
            raise InvariantViolationError("Desconto percentual acima de 100%", discount=str(discount))
        value = percent_of(base, discount)
    else:
        value = money2(discount)
    if value > base:
        raise InvariantViolationError(
            "Desconto maior que o valor a que se aplica",
            base=str(base),
            discount=str(value),
        )
    return value


def calculate_item(item: InvoiceItemEntity) -> InvoiceItemEntity:
    if item.quantity <= 0:
        raise InvariantViolationError("Quantidade deve ser positiva", code=item.code)
    if item.unit_price < 0:
        raise InvariantViolationError("Preço unitário não pode ser negativo", code=item.code)
    subtotal = money2(item.quantity * item.unit_price)
    disc = discount_value(subtotal, item.discount, item.discount_type)
    return replace(item, subtotal=subtotal, discount_value=disc, total=money2(subtotal - disc))


def calculate_invoice(
    items: Iterable[InvoiceItemEntity],
    *,
    global_discount: Decimal = ZERO,
    global_discount_type: DiscountType = DiscountType.FIXED,
    taxes: Iterable[InvoiceTaxEntity] = (),
) -> InvoiceTotals:
    computed = [calculate_item(i) for i in items]
    if not computed:
        raise InvariantViolationError("Fatura precisa de ao menos um item")

    subtotal = money2(sum((i.total for i in computed), ZERO))
    global_value = discount_value(subtotal, global_discount, global_discount_type)
    taxable = money2(subtotal - global_value)

    computed_taxes = []
    for tax in taxes:
        if tax.percentage < 0:
            raise InvariantViolationError("Alíquota não pode ser negativa", tax=tax.type.value)
        computed_taxes.append(replace(tax, value=percent_of(taxable, tax.percentage)))
    tax_total = money2(sum((t.value for t in computed_taxes), ZERO))

    return InvoiceTotals(
        items=computed,
        taxes=computed_taxes,
        subtotal=subtotal,
        discount_total=global_value,
        tax_total=tax_total,
        total=money2(subtotal - global_value + tax_total),
    )
