"""
Order Management Service — クエリハンドラ (Read 側)

注文ヘッダに顧客の表示項目を、明細に商品の表示項目を結合して返す。
金額は小数 2 桁の文字列で返す（float に変換しない）。
"""

from sqlalchemy import DateTime, text
from sqlalchemy.ext.asyncio import AsyncSession

from .db import Money, to_money

_SELECT_ORDER = text("""
    SELECT o.id, o.customer_id, o.total_amount, o.status, o.created_at,
           c.name AS customer_name, c.email AS customer_email, c.phone AS customer_phone
    FROM orders o
    JOIN customers c ON c.id = o.customer_id
    WHERE o.id = :id
""").columns(total_amount=Money, created_at=DateTime(timezone=True))

_SELECT_ORDER_ITEMS = text("""
    SELECT i.id, i.product_id, i.qty, i.price, p.product_code, p.name AS product_name
    FROM order_items i
    JOIN products p ON p.id = i.product_id
    WHERE i.order_id = :order_id
    ORDER BY i.id ASC
""").columns(price=Money)

_SELECT_ORDERS = text("""
    SELECT o.id, o.customer_id, o.total_amount, o.status, o.created_at,
           c.name AS customer_name
    FROM orders o
    JOIN customers c ON c.id = o.customer_id
    ORDER BY o.created_at DESC, o.id DESC
""").columns(total_amount=Money, created_at=DateTime(timezone=True))


def _header(row) -> dict:
    return {
        "id": row.id,
        "customer_id": row.customer_id,
        "total_amount": str(to_money(row.total_amount)),
        "status": row.status,
        "created_at": row.created_at.isoformat() if row.created_at else None,
    }


async def get_order_items(session: AsyncSession, order_id: int) -> list[dict]:
    result = await session.execute(_SELECT_ORDER_ITEMS, {"order_id": order_id})
    return [
        {
            "id": row.id,
            "product_id": row.product_id,
            "qty": row.qty,
            "price": str(to_money(row.price)),
            "product_code": row.product_code,
            "product_name": row.product_name,
        }
        for row in result.fetchall()
    ]


async def get_order(session: AsyncSession, order_id: int) -> dict | None:
    """注文ヘッダ + 顧客 + 明細を取得する。存在しなければ None。"""
    result = await session.execute(_SELECT_ORDER, {"id": order_id})
    row = result.fetchone()
    if not row:
        return None
    return {
        **_header(row),
        "customer": {
            "id": row.customer_id,
            "name": row.customer_name,
            "email": row.customer_email,
            "phone": row.customer_phone,
        },
        "items": await get_order_items(session, order_id),
    }


async def get_created_order(session: AsyncSession, order_id: int) -> dict | None:
    """注文作成のレスポンス形式 {order, items} で取得する。"""
    result = await session.execute(_SELECT_ORDER, {"id": order_id})
    row = result.fetchone()
    if not row:
        return None
    return {
        "order": _header(row),
        "items": await get_order_items(session, order_id),
    }


async def list_orders(session: AsyncSession) -> list[dict]:
    """注文ヘッダ一覧（新しい順）"""
    result = await session.execute(_SELECT_ORDERS)
    return [
        {**_header(row), "customer_name": row.customer_name}
        for row in result.fetchall()
    ]
