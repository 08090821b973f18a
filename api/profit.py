# api/profit.py
from __future__ import annotations

from decimal import Decimal
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth_utils import get_current_user_id
from core.database import get_async_session
from core.errors import AppError
from core.ledger_store import LedgerStore
from core.profit import (
    ExtraCostInput,
    FeeRuleInput,
    ProductInput,
    SaleAnalysis,
    SaleInput,
    analyze_sale,
    compute_revenue,
    extra_cost_inputs_from_rows,
    fee_rule_input_from_row,
    product_input_from_row,
    resolve_fee_amount,
    sale_input_from_row,
)

router = APIRouter(prefix="/v1/profit", tags=["profit"])


# ----------------------------
# Requests
# ----------------------------
class SaleIn(BaseModel):
    quantity: int = Field(ge=0)
    unitPrice: Decimal
    feeAmount: Optional[Decimal] = None

class ProductIn(BaseModel):
    unitCost: Optional[Decimal] = None

class FeeRuleIn(BaseModel):
    feeType: Literal["percent", "fixed"]
    value: Decimal

class ExtraCostIn(BaseModel):
    amount: Decimal

class AnalyzeRequest(BaseModel):
    sale: SaleIn
    product: ProductIn = Field(default_factory=ProductIn)
    feeRule: Optional[FeeRuleIn] = None
    extraCosts: List[ExtraCostIn] = Field(default_factory=list)


# ----------------------------
# Response
# ----------------------------
class SaleAnalysisOut(BaseModel):
    revenue: float
    feeAmount: float
    costOfGoods: float
    extraCosts: float
    profit: float
    marginPercent: float


def _analysis_out(a: SaleAnalysis) -> SaleAnalysisOut:
    return SaleAnalysisOut(
        revenue=a.revenue,
        feeAmount=a.fee_amount,
        costOfGoods=a.cost_of_goods,
        extraCosts=a.extra_costs,
        profit=a.profit,
        marginPercent=a.margin_percent,
    )


def _analyze(
    sale: SaleInput,
    product: ProductInput,
    rule: Optional[FeeRuleInput],
    extras: List[ExtraCostInput],
) -> SaleAnalysis:
    fee = resolve_fee_amount(sale, compute_revenue(sale), rule)
    return analyze_sale(sale, product, fee, extras)


# ----------------------------
# Routes
# ----------------------------
@router.post("/analyze", response_model=SaleAnalysisOut)
async def analyze(req: AnalyzeRequest, user_id: int = Depends(get_current_user_id)) -> SaleAnalysisOut:
    sale = SaleInput(quantity=req.sale.quantity, unit_price=req.sale.unitPrice, fee_amount=req.sale.feeAmount)
    product = ProductInput(unit_cost=req.product.unitCost)
    rule = FeeRuleInput(fee_type=req.feeRule.feeType, value=req.feeRule.value) if req.feeRule else None
    extras = [ExtraCostInput(amount=c.amount) for c in req.extraCosts]
    return _analysis_out(_analyze(sale, product, rule, extras))


@router.get("/sales/{sale_id}", response_model=SaleAnalysisOut)
async def analyze_stored_sale(
    sale_id: str,
    user_id: int = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_async_session),
) -> SaleAnalysisOut:
    records = await LedgerStore(session).load_sale(user_id, sale_id)
    if records is None:
        raise AppError("Sale not found", status_code=404)

    return _analysis_out(
        _analyze(
            sale_input_from_row(records.sale),
            product_input_from_row(records.product),
            fee_rule_input_from_row(records.fee_rule) if records.fee_rule else None,
            extra_cost_inputs_from_rows(records.costs),
        )
    )
