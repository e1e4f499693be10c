"""
Order Management Service — 商品カタログ

商品一覧（在庫数付き）の取得と、商品の登録。
注文作成からは価格解決 (pricing.py) 経由で参照されるだけで、ここは単純な CRUD。
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import DateTime, bindparam, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from . import inventory
from .db import Money, to_money
from .errors import DuplicateProductCode, PersistenceFailure
from .schemas import CreateProductRequest

logger = logging.getLogger(__name__)

_PRODUCT_COLUMNS = """
    p.id, p.product_code, p.name, p.description, p.price, p.status, p.created_at,
    COALESCE(i.quantity, 0) AS quantity
"""

_SELECT_ACTIVE_PRODUCTS = text(f"""
    SELECT {_PRODUCT_COLUMNS}
    FROM products p
    LEFT JOIN inventory i ON i.product_id = p.id
    WHERE p.status = 'ACTIVE'
    ORDER BY p.id ASC
""").columns(price=Money, created_at=DateTime(timezone=True))

_SELECT_PRODUCT = text(f"""
    SELECT {_PRODUCT_COLUMNS}
    FROM products p
    LEFT JOIN inventory i ON i.product_id = p.id
    WHERE p.id = :id
""").columns(price=Money, created_at=DateTime(timezone=True))

_SELECT_PRODUCT_CODE = text("SELECT id FROM products WHERE product_code = :code")

_INSERT_PRODUCT = text("""
    INSERT INTO products (product_code, name, description, price, status, created_at)
    VALUES (:product_code, :name, :description, :price, :status, :created_at)
    RETURNING id
""").bindparams(
    bindparam("price", type_=Money),
    bindparam("created_at", type_=DateTime(timezone=True)),
)


def _product(row) -> dict:
    return {
        "id": row.id,
        "product_code": row.product_code,
        "name": row.name,
        "description": row.description,
        "price": str(to_money(row.price)),
        "status": row.status,
        "quantity": row.quantity,
        "created_at": row.created_at.isoformat() if row.created_at else None,
    }


async def list_products(session: AsyncSession) -> list[dict]:
    """ACTIVE な商品を在庫数付きで返す"""
    result = await session.execute(_SELECT_ACTIVE_PRODUCTS)
    return [_product(row) for row in result.fetchall()]


async def get_product(session: AsyncSession, product_id: int) -> dict | None:
    result = await session.execute(_SELECT_PRODUCT, {"id": product_id})
    row = result.fetchone()
    return _product(row) if row else None


async def _code_taken(session: AsyncSession, product_code: str) -> bool:
    result = await session.execute(_SELECT_PRODUCT_CODE, {"code": product_code})
    return result.fetchone() is not None


async def create_product(session: AsyncSession, req: CreateProductRequest) -> dict:
    """
    商品を登録し、初期在庫のレコードも作成する。

    product_code が重複していれば DuplicateProductCode。
    """
    try:
        async with session.begin():
            if await _code_taken(session, req.product_code):
                raise DuplicateProductCode(req.product_code)

            result = await session.execute(
                _INSERT_PRODUCT,
                {
                    "product_code": req.product_code,
                    "name": req.name,
                    "description": req.description,
                    "price": req.price,
                    "status": req.status,
                    "created_at": datetime.now(timezone.utc),
                },
            )
            product_id = result.scalar_one()
            await inventory.restock(session, product_id, req.quantity)
            product = await get_product(session, product_id)
    except IntegrityError as exc:
        # 事前チェックと INSERT の間に同じコードが登録された場合だけ 409
        if await _code_taken(session, req.product_code):
            raise DuplicateProductCode(req.product_code) from exc
        logger.exception("Constraint violation while adding product %s", req.product_code)
        raise PersistenceFailure("Failed to add product") from exc
    except SQLAlchemyError as exc:
        logger.exception("Failed to add product %s", req.product_code)
        raise PersistenceFailure("Failed to add product") from exc

    logger.info("Product %s registered (id=%s)", req.product_code, product_id)
    return product
