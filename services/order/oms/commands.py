"""
Order Management Service — コマンドハンドラ (Write 側)

注文作成 (Order Placement Workflow)。

価格解決・在庫減算・注文の組み立て・保存を 1 つのトランザクションで行う。
すべて成功するか、何も反映されないかのどちらか。

  1. 入力を検証（不正なら DB に触れる前に InvalidRequest）
  2. トランザクション開始
  3. 明細ごとに入力順で: 単価を解決 → 在庫を条件付きで減算
     どれか 1 つでも失敗したら残りは処理せずロールバック
  4. 注文を組み立てる（合計金額の計算）
  5. orders → order_items の順に保存
  6. 保存した注文を読み直してレスポンスを作る
  7. コミット
  8. OrderPlaced イベントを発行

自動リトライはしない。失敗時は呼び出し側が再送する。
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import DateTime, bindparam, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from . import inventory, pricing, queries
from .assembler import OrderDraft, ResolvedLine, assemble_order
from .db import Money
from .errors import CustomerNotFound, OrderError, PersistenceFailure
from .events import OrderEventPublisher, OrderPlaced, OrderPlacedItem
from .schemas import CreateOrderRequest, parse_order_request

logger = logging.getLogger(__name__)

_SELECT_CUSTOMER = text("SELECT id FROM customers WHERE id = :id")

_INSERT_ORDER = text("""
    INSERT INTO orders (customer_id, total_amount, status, created_at)
    VALUES (:customer_id, :total_amount, :status, :created_at)
    RETURNING id
""").bindparams(
    bindparam("total_amount", type_=Money),
    bindparam("created_at", type_=DateTime(timezone=True)),
)

_INSERT_ORDER_ITEM = text("""
    INSERT INTO order_items (order_id, product_id, qty, price)
    VALUES (:order_id, :product_id, :qty, :price)
""").bindparams(bindparam("price", type_=Money))


async def _reserve_and_assemble(session: AsyncSession, req: CreateOrderRequest) -> OrderDraft:
    result = await session.execute(_SELECT_CUSTOMER, {"id": req.customer_id})
    if not result.fetchone():
        raise CustomerNotFound(req.customer_id)

    lines: list[ResolvedLine] = []
    for item in req.items:
        unit_price = await pricing.resolve_unit_price(session, item.product_id, item.unit_price)
        await inventory.decrement(session, item.product_id, item.quantity)
        lines.append(ResolvedLine(item.product_id, item.quantity, unit_price))

    return assemble_order(req.customer_id, lines, datetime.now(timezone.utc))


async def _persist(session: AsyncSession, draft: OrderDraft) -> int:
    result = await session.execute(
        _INSERT_ORDER,
        {
            "customer_id": draft.customer_id,
            "total_amount": draft.total_amount,
            "status": draft.status,
            "created_at": draft.created_at,
        },
    )
    order_id = result.scalar_one()

    for item in draft.items:
        await session.execute(
            _INSERT_ORDER_ITEM,
            {
                "order_id": order_id,
                "product_id": item.product_id,
                "qty": item.quantity,
                "price": item.unit_price,
            },
        )
    return order_id


async def _unit_of_work(session: AsyncSession, req: CreateOrderRequest) -> tuple[OrderDraft, int, dict]:
    async with session.begin():
        draft = await _reserve_and_assemble(session, req)
        order_id = await _persist(session, draft)
        created = await queries.get_created_order(session, order_id)
    return draft, order_id, created


async def place_order(
    session: AsyncSession,
    request: CreateOrderRequest | dict[str, Any],
    publisher: OrderEventPublisher | None = None,
    timeout: float | None = None,
) -> dict:
    """
    注文作成コマンド

    session はまだトランザクションを開始していないものを渡すこと。
    timeout はトランザクション部分（コミットまで）にだけかかる。
    時間切れならロールバックして PersistenceFailure を送出する。
    イベント発行はコミット後なので timeout の対象外。
    成功時は {"order": {...}, "items": [...]} を返す。
    """
    req = parse_order_request(request)

    try:
        draft, order_id, created = await asyncio.wait_for(
            _unit_of_work(session, req), timeout=timeout,
        )
    except OrderError as exc:
        logger.info("Order rejected (customer=%s): %s", req.customer_id, exc.message)
        raise
    except SQLAlchemyError as exc:
        logger.exception("Order placement failed (customer=%s)", req.customer_id)
        raise PersistenceFailure() from exc
    except asyncio.TimeoutError as exc:
        logger.warning("Order placement timed out after %ss (customer=%s)", timeout, req.customer_id)
        raise PersistenceFailure() from exc

    logger.info(
        "Order %s placed (customer=%s, items=%d, total=%s)",
        order_id, draft.customer_id, len(draft.items), draft.total_amount,
    )

    if publisher is not None:
        await publisher.publish(OrderPlaced(
            order_id=order_id,
            customer_id=draft.customer_id,
            total_amount=draft.total_amount,
            items=[
                OrderPlacedItem(
                    product_id=item.product_id,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                )
                for item in draft.items
            ],
            timestamp=draft.created_at,
        ))

    return created
