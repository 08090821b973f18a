# core/profit.py
"""
Profit intelligence: revenue, fee, cost of goods, profit and margin.

Pure functions, no I/O. All amounts are in one currency and are never rounded
here; presentation code decides how to display them.

Inputs may be int, float or Decimal. When a calculation mixes Decimal with
float, the float is converted through its string form so the two combine.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from decimal import Decimal
from typing import Iterable, Literal, Optional, Sequence, Union

Number = Union[int, float, Decimal]
FeeType = Literal["percent", "fixed"]


@dataclass(frozen=True)
class SaleInput:
    quantity: Number
    unit_price: Number
    fee_amount: Optional[Number] = None


@dataclass(frozen=True)
class ProductInput:
    unit_cost: Optional[Number] = None


@dataclass(frozen=True)
class FeeRuleInput:
    fee_type: FeeType
    value: Number


@dataclass(frozen=True)
class ExtraCostInput:
    amount: Number


@dataclass(frozen=True)
class SaleAnalysis:
    revenue: Number
    fee_amount: Number
    cost_of_goods: Number
    extra_costs: Number
    profit: Number
    margin_percent: Number

    def to_dict(self) -> dict:
        return asdict(self)


def _align(*values: Number) -> tuple:
    if any(isinstance(v, Decimal) for v in values):
        return tuple(Decimal(str(v)) if isinstance(v, float) else v for v in values)
    return values


def compute_revenue(sale: SaleInput) -> Number:
    quantity, unit_price = _align(sale.quantity, sale.unit_price)
    return quantity * unit_price


def compute_fee_from_rule(revenue: Number, rule: FeeRuleInput) -> Number:
    """percent: (value / 100) x revenue; fixed: value, once per sale."""
    if rule.fee_type == "percent":
        value, revenue = _align(rule.value, revenue)
        return (value / 100) * revenue
    if rule.fee_type == "fixed":
        return rule.value
    raise ValueError(f"Unknown fee type: {rule.fee_type!r}")


def compute_cost_of_goods(sale: SaleInput, product: ProductInput) -> Number:
    unit_cost = product.unit_cost if product.unit_cost is not None else 0
    quantity, unit_cost = _align(sale.quantity, unit_cost)
    return quantity * unit_cost


def total_extra_costs(costs: Iterable[ExtraCostInput]) -> Number:
    return sum(_align(*(c.amount for c in costs)), 0)


def compute_profit(revenue: Number, fee_amount: Number, cost_of_goods: Number, extra_costs: Number) -> Number:
    revenue, fee_amount, cost_of_goods, extra_costs = _align(revenue, fee_amount, cost_of_goods, extra_costs)
    return revenue - fee_amount - cost_of_goods - extra_costs


def compute_margin_percent(profit: Number, revenue: Number) -> Number:
    # Signed and unbounded; zero revenue has no meaningful margin.
    if revenue == 0:
        return 0
    profit, revenue = _align(profit, revenue)
    return (profit / revenue) * 100


def resolve_fee_amount(sale: SaleInput, revenue: Number, rule: Optional[FeeRuleInput] = None) -> Number:
    """A fee stored on the sale wins; otherwise apply the channel rule; otherwise no fee."""
    if sale.fee_amount is not None:
        return sale.fee_amount
    if rule is not None:
        return compute_fee_from_rule(revenue, rule)
    return 0


def analyze_sale(
    sale: SaleInput,
    product: ProductInput,
    fee_amount: Number,
    extra_costs: Sequence[ExtraCostInput],
) -> SaleAnalysis:
    revenue = compute_revenue(sale)
    cost_of_goods = compute_cost_of_goods(sale, product)
    extras = total_extra_costs(extra_costs)
    profit = compute_profit(revenue, fee_amount, cost_of_goods, extras)
    return SaleAnalysis(
        revenue=revenue,
        fee_amount=fee_amount,
        cost_of_goods=cost_of_goods,
        extra_costs=extras,
        profit=profit,
        margin_percent=compute_margin_percent(profit, revenue),
    )


# -------------------------------------------------------------------
# Row mapping (storage rows -> plain inputs)
# -------------------------------------------------------------------
def sale_input_from_row(row) -> SaleInput:
    return SaleInput(quantity=row.quantity, unit_price=row.unit_price, fee_amount=row.fee_amount)


def product_input_from_row(row) -> ProductInput:
    return ProductInput(unit_cost=row.unit_cost)


def fee_rule_input_from_row(row) -> FeeRuleInput:
    return FeeRuleInput(fee_type=row.fee_type, value=row.value)


def extra_cost_inputs_from_rows(rows: Iterable) -> list[ExtraCostInput]:
    return [ExtraCostInput(amount=r.amount) for r in rows]
