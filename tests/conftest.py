"""
共通フィクスチャ

テストごとに tmp_path 上の SQLite ファイルを使い、lifespan 経由でアプリを起動する。
"""

from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import text

from oms import catalog, inventory
from oms.config import Settings
from oms.main import create_app
from oms.schemas import CreateProductRequest


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'oms.db'}",
        init_schema=True,
        log_level="WARNING",
    )


@pytest.fixture
async def app(settings):
    app = create_app(settings)
    async with app.router.lifespan_context(app):
        yield app


@pytest.fixture
def session_factory(app):
    return app.state.async_session


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


class Store:
    """テストデータの投入と、DB 状態の確認用ヘルパー"""

    def __init__(self, session_factory):
        self.session_factory = session_factory
        self._codes = 0

    async def customer(self, name: str = "Asha Rao", email: str | None = None) -> int:
        email = email or f"{name.lower().replace(' ', '.')}@example.com"
        async with self.session_factory() as session, session.begin():
            result = await session.execute(
                text("INSERT INTO customers (name, email, phone) VALUES (:name, :email, :phone) RETURNING id"),
                {"name": name, "email": email, "phone": "555-0100"},
            )
            return result.scalar_one()

    async def product(
        self,
        price: str = "10.00",
        quantity: int = 0,
        name: str | None = None,
        status: str = "ACTIVE",
    ) -> int:
        self._codes += 1
        code = f"P-{self._codes:03d}"
        async with self.session_factory() as session:
            created = await catalog.create_product(session, CreateProductRequest(
                product_code=code,
                name=name or f"Product {self._codes}",
                price=Decimal(price),
                status=status,
                quantity=quantity,
            ))
        return created["id"]

    async def product_without_inventory(self, price: str = "10.00") -> int:
        self._codes += 1
        async with self.session_factory() as session, session.begin():
            result = await session.execute(
                text("""
                    INSERT INTO products (product_code, name, price)
                    VALUES (:code, :name, :price) RETURNING id
                """),
                {"code": f"P-{self._codes:03d}", "name": "No stock row", "price": float(price)},
            )
            return result.scalar_one()

    async def stock(self, product_id: int) -> int:
        async with self.session_factory() as session:
            return await inventory.available(session, product_id)

    async def count(self, table: str) -> int:
        async with self.session_factory() as session:
            result = await session.execute(text(f"SELECT COUNT(*) FROM {table}"))
            return result.scalar_one()


@pytest.fixture
def store(session_factory):
    return Store(session_factory)
