from decimal import Decimal

import pytest

from core.profit import (
    ExtraCostInput,
    FeeRuleInput,
    ProductInput,
    SaleInput,
    analyze_sale,
    compute_cost_of_goods,
    compute_fee_from_rule,
    compute_margin_percent,
    compute_profit,
    compute_revenue,
    resolve_fee_amount,
    total_extra_costs,
)


def test_compute_revenue():
    assert compute_revenue(SaleInput(quantity=2, unit_price=100)) == 200
    assert compute_revenue(SaleInput(quantity=1, unit_price=49.99)) == 49.99


def test_fee_from_percent_rule():
    assert compute_fee_from_rule(200, FeeRuleInput("percent", 15)) == 30
    assert compute_fee_from_rule(100, FeeRuleInput("percent", 10)) == 10


def test_fee_from_fixed_rule():
    assert compute_fee_from_rule(200, FeeRuleInput("fixed", 5)) == 5


def test_fee_from_unknown_rule_type():
    with pytest.raises(ValueError):
        compute_fee_from_rule(200, FeeRuleInput("tiered", 5))


def test_cost_of_goods():
    assert compute_cost_of_goods(SaleInput(3, 50), ProductInput(unit_cost=20)) == 60
    assert compute_cost_of_goods(SaleInput(3, 50), ProductInput(unit_cost=None)) == 0


def test_total_extra_costs():
    assert total_extra_costs([ExtraCostInput(10), ExtraCostInput(5), ExtraCostInput(2.5)]) == 17.5
    assert total_extra_costs([]) == 0


def test_profit_and_margin():
    assert compute_profit(200, 30, 60, 10) == 100
    assert compute_profit(100, 0, 50, 0) == 50
    assert compute_margin_percent(50, 100) == 50
    assert compute_margin_percent(25, 100) == 25


def test_margin_is_zero_for_zero_revenue():
    assert compute_margin_percent(0, 0) == 0
    assert compute_margin_percent(-12, 0) == 0


def test_analyze_sale_example():
    result = analyze_sale(
        SaleInput(quantity=2, unit_price=100, fee_amount=30),
        ProductInput(unit_cost=25),
        30,
        [ExtraCostInput(5)],
    )
    assert result.revenue == 200
    assert result.fee_amount == 30
    assert result.cost_of_goods == 50
    assert result.extra_costs == 5
    assert result.profit == 115
    assert result.margin_percent == pytest.approx(57.5)


def test_analyze_sale_negative_margin():
    result = analyze_sale(SaleInput(1, 10), ProductInput(20), 2, [])
    assert result.profit == -12
    assert result.margin_percent == -120


@pytest.mark.parametrize("sale", [SaleInput(quantity=0, unit_price=10), SaleInput(quantity=3, unit_price=0)])
def test_analyze_sale_zero_revenue(sale):
    result = analyze_sale(sale, ProductInput(4), 1, [ExtraCostInput(2)])
    assert result.revenue == 0
    assert result.margin_percent == 0


def test_analyze_sale_with_decimals_is_exact():
    result = analyze_sale(
        SaleInput(quantity=3, unit_price=Decimal("19.99")),
        ProductInput(unit_cost=Decimal("7.50")),
        Decimal("2.10"),
        [ExtraCostInput(Decimal("1.05"))],
    )
    assert result.revenue == Decimal("59.97")
    assert result.profit == Decimal("59.97") - Decimal("2.10") - Decimal("22.50") - Decimal("1.05")


def test_analyze_sale_mixing_float_and_decimal():
    result = analyze_sale(
        SaleInput(quantity=2, unit_price=Decimal("100")),
        ProductInput(unit_cost=25.5),
        0.5,
        [ExtraCostInput(Decimal("1")), ExtraCostInput(2.25)],
    )
    assert result.cost_of_goods == Decimal("51.0")
    assert result.extra_costs == Decimal("3.25")
    assert result.profit == Decimal("145.25")
    assert compute_fee_from_rule(Decimal("200"), FeeRuleInput("percent", 12.5)) == Decimal("25")


def test_resolve_fee_amount_prefers_stored_fee():
    sale = SaleInput(quantity=2, unit_price=100, fee_amount=7)
    assert resolve_fee_amount(sale, 200, FeeRuleInput("percent", 15)) == 7


def test_resolve_fee_amount_falls_back_to_rule_then_zero():
    sale = SaleInput(quantity=2, unit_price=100)
    assert resolve_fee_amount(sale, 200, FeeRuleInput("percent", 15)) == 30
    assert resolve_fee_amount(sale, 200, None) == 0


def test_analysis_to_dict():
    result = analyze_sale(SaleInput(1, 10), ProductInput(None), 0, [])
    assert result.to_dict() == {
        "revenue": 10,
        "fee_amount": 0,
        "cost_of_goods": 0,
        "extra_costs": 0,
        "profit": 10,
        "margin_percent": 100,
    }
