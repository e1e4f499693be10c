"""
Order Management Service — データベース

テーブル定義 (スキーマ) と、エンジン / セッションファクトリの生成を担う。
クエリ自体は各モジュールで text() による SQL を直接書く。
ここで定義する MetaData はスキーマ作成 (create_all) にだけ使う。
"""

from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
    event,
    func,
)
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool

from .config import Settings

# 金額は 12 桁・小数 2 桁で統一する
Money = Numeric(12, 2)
CENTS = Decimal("0.01")


def to_money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)

metadata = MetaData()

products = Table(
    "products",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("product_code", String(64), nullable=False, unique=True),
    Column("name", String(255), nullable=False),
    Column("description", Text, nullable=False, server_default=""),
    Column("price", Money, nullable=False),
    Column("status", String(16), nullable=False, server_default="ACTIVE"),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)

inventory = Table(
    "inventory",
    metadata,
    Column("product_id", Integer, ForeignKey("products.id"), primary_key=True),
    Column("quantity", Integer, nullable=False, server_default="0"),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    CheckConstraint("quantity >= 0", name="ck_inventory_quantity_non_negative"),
)

customers = Table(
    "customers",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("email", String(255), nullable=False, unique=True),
    Column("phone", String(32), nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)

orders = Table(
    "orders",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("customer_id", Integer, ForeignKey("customers.id"), nullable=False),
    Column("total_amount", Money, nullable=False),
    Column("status", String(16), nullable=False, server_default="NEW"),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)

order_items = Table(
    "order_items",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("order_id", Integer, ForeignKey("orders.id"), nullable=False, index=True),
    Column("product_id", Integer, ForeignKey("products.id"), nullable=False),
    Column("qty", Integer, nullable=False),
    Column("price", Money, nullable=False),
    CheckConstraint("qty > 0", name="ck_order_items_qty_positive"),
)


def _enable_sqlite_foreign_keys(dbapi_connection, _record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_engine(settings: Settings) -> AsyncEngine:
    """
    設定からエンジンを生成する。

    SQLite はファイルロックで書き込みを直列化するため、
    プールを使わず、ロック待ちのタイムアウトを長めに取る。
    """
    url = make_url(settings.database_url)
    if url.get_backend_name() == "sqlite":
        engine = create_async_engine(
            url,
            echo=settings.db_echo,
            poolclass=NullPool,
            connect_args={"timeout": 30},
        )
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    return create_async_engine(
        url,
        echo=settings.db_echo,
        pool_size=settings.db_pool_size,
        pool_pre_ping=True,
    )


def create_session_factory(engine: AsyncEngine) -> sessionmaker:
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_schema(engine: AsyncEngine) -> None:
    """テーブルが無ければ作成する（既存テーブルはそのまま）。"""
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
