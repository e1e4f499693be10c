"""
Order Management Service — 在庫台帳 (Inventory Ledger)

商品ごとの在庫数を管理する。

在庫の減算は「残数 >= 要求数」の条件付き UPDATE 1 文で行う。
確認と書き込みを別の文に分けると、その間に別トランザクションが割り込み、
双方が在庫ありと判断して売り越す可能性がある。
条件付き UPDATE なら行ロックの取得後に条件が再評価されるため、
同じ行を触る並行トランザクションとは必ず直列になる。
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, bindparam, text
from sqlalchemy.ext.asyncio import AsyncSession

from .errors import InsufficientStock

_SELECT_QUANTITY = text("SELECT quantity FROM inventory WHERE product_id = :product_id")

_DECREMENT = text("""
    UPDATE inventory
    SET quantity = quantity - :qty, updated_at = :now
    WHERE product_id = :product_id AND quantity >= :qty
""").bindparams(bindparam("now", type_=DateTime(timezone=True)))

_INCREMENT = text("""
    UPDATE inventory
    SET quantity = quantity + :qty, updated_at = :now
    WHERE product_id = :product_id
""").bindparams(bindparam("now", type_=DateTime(timezone=True)))

_INSERT = text("""
    INSERT INTO inventory (product_id, quantity, updated_at)
    VALUES (:product_id, :qty, :now)
""").bindparams(bindparam("now", type_=DateTime(timezone=True)))


async def available(session: AsyncSession, product_id: int) -> int:
    """現在の在庫数。在庫レコードが無い商品は 0 とみなす。"""
    result = await session.execute(_SELECT_QUANTITY, {"product_id": product_id})
    row = result.fetchone()
    return row.quantity if row else 0


async def decrement(session: AsyncSession, product_id: int, quantity: int) -> None:
    """
    在庫を quantity だけ減らす。

    減算後に 0 未満となる場合は何も変更せず InsufficientStock を送出する。
    呼び出し側のトランザクション内で実行すること。
    """
    result = await session.execute(
        _DECREMENT,
        {"qty": quantity, "product_id": product_id, "now": datetime.now(timezone.utc)},
    )
    if result.rowcount == 0:
        raise InsufficientStock(product_id, quantity, await available(session, product_id))


async def restock(session: AsyncSession, product_id: int, quantity: int) -> None:
    """在庫を quantity だけ増やす。レコードが無ければ作成する。"""
    params = {"qty": quantity, "product_id": product_id, "now": datetime.now(timezone.utc)}
    result = await session.execute(_INCREMENT, params)
    if result.rowcount == 0:
        await session.execute(_INSERT, params)
