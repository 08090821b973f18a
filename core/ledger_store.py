# core/ledger_store.py
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from models.ledger import Cost, FeeRule, Product, Sale


@dataclass
class SaleRecords:
    sale: Sale
    product: Product
    fee_rule: Optional[FeeRule]
    costs: List[Cost]


class LedgerStore:
    """Read side of the profit ledger, always scoped to one user."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def load_sale(self, user_id: int, sale_id: str) -> Optional[SaleRecords]:
        result = await self.session.execute(select(Sale).where(Sale.id == sale_id, Sale.user_id == user_id))
        sale = result.scalars().first()
        if sale is None:
            return None

        result = await self.session.execute(select(Product).where(Product.id == sale.product_id))
        product = result.scalars().first()

        fee_rule = None
        if sale.channel_id is not None:
            result = await self.session.execute(
                select(FeeRule).where(FeeRule.channel_id == sale.channel_id).order_by(FeeRule.created_at.desc())
            )
            fee_rule = result.scalars().first()

        result = await self.session.execute(
            select(Cost).where(Cost.sale_id == sale.id, Cost.user_id == user_id).order_by(Cost.created_at)
        )
        costs = list(result.scalars().all())
        return SaleRecords(sale=sale, product=product, fee_rule=fee_rule, costs=costs)
