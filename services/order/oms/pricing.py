"""
Order Management Service — 価格解決

明細の単価を決める。クライアントが単価を指定していればそれをそのまま使い、
指定が無ければカタログの現在価格を使う。
どちらの場合も商品がカタログに存在することは確認する。
"""

from decimal import Decimal

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from .db import Money, to_money
from .errors import ProductNotFound

_SELECT_PRICE = text("SELECT price FROM products WHERE id = :id").columns(price=Money)


async def resolve_unit_price(
    session: AsyncSession,
    product_id: int,
    client_price: Decimal | None,
) -> Decimal:
    result = await session.execute(_SELECT_PRICE, {"id": product_id})
    row = result.fetchone()
    if not row:
        raise ProductNotFound(product_id)

    # クライアント指定の単価はカタログ価格と突き合わせない
    if client_price is not None:
        return to_money(client_price)
    return to_money(row.price)
