"""
Order Management Service — 注文の組み立て (Order Assembler)

単価・数量が確定した明細から、永続化前の注文を組み立てる。
I/O は行わない純粋な計算のみ。

金額はすべて Decimal で計算する（float の丸め誤差を持ち込まない）。
    明細金額 = 単価 × 数量
    注文合計 = Σ 明細金額
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from .errors import InvalidRequest

NEW = "NEW"


@dataclass(frozen=True)
class ResolvedLine:
    """価格解決と在庫減算が済んだ明細"""
    product_id: int
    quantity: int
    unit_price: Decimal


@dataclass(frozen=True)
class LineDraft:
    product_id: int
    quantity: int
    unit_price: Decimal
    line_total: Decimal


@dataclass(frozen=True)
class OrderDraft:
    customer_id: int
    total_amount: Decimal
    status: str
    created_at: datetime
    items: tuple[LineDraft, ...]


def assemble_order(
    customer_id: int,
    lines: list[ResolvedLine],
    created_at: datetime,
) -> OrderDraft:
    if not lines:
        raise InvalidRequest("Order must contain at least one item")

    items = tuple(
        LineDraft(
            product_id=line.product_id,
            quantity=line.quantity,
            unit_price=line.unit_price,
            line_total=line.unit_price * line.quantity,
        )
        for line in lines
    )
    total = sum((item.line_total for item in items), Decimal("0.00"))
    return OrderDraft(
        customer_id=customer_id,
        total_amount=total,
        status=NEW,
        created_at=created_at,
        items=items,
    )
