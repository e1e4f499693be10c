"""
Order Management Service — FastAPI エントリーポイント

商品・在庫・顧客・注文を扱う REST API。
DB エンジンと Redis 接続は lifespan で生成し app.state に保持する。
各リクエストはそこからセッションを 1 つ取り出して使う。

起動:
    uvicorn oms.main:create_app --factory
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import redis.asyncio as aioredis
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from . import catalog, commands, db, queries
from .config import Settings, configure_logging
from .errors import (
    CustomerNotFound,
    DuplicateProductCode,
    InsufficientStock,
    InvalidRequest,
    OrderError,
    OrderNotFound,
    PersistenceFailure,
    ProductNotFound,
)
from .events import OrderEventPublisher
from .schemas import CreateOrderRequest, CreateProductRequest, summarize_errors

logger = logging.getLogger(__name__)

SERVICE_NAME = "Order Management System Backend"

_STATUS_CODES: dict[type[OrderError], int] = {
    InvalidRequest: 400,
    CustomerNotFound: 404,
    ProductNotFound: 404,
    OrderNotFound: 404,
    InsufficientStock: 409,
    DuplicateProductCode: 409,
    PersistenceFailure: 500,
}


async def handle_order_error(_request: Request, exc: OrderError) -> JSONResponse:
    status_code = _STATUS_CODES.get(type(exc), 400)
    return JSONResponse(status_code=status_code, content=exc.to_payload())


async def handle_validation_error(_request: Request, exc: RequestValidationError) -> JSONResponse:
    error = InvalidRequest("Invalid request", details=summarize_errors(exc))
    return JSONResponse(status_code=400, content=error.to_payload())


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.log_level)
        engine = db.create_engine(settings)
        if settings.init_schema:
            await db.init_schema(engine)
        app.state.settings = settings
        app.state.async_session = db.create_session_factory(engine)

        redis_pool: aioredis.Redis | None = None
        app.state.publisher = None
        if settings.redis_url:
            redis_pool = aioredis.from_url(
                settings.redis_url,
                decode_responses=True,
                socket_timeout=settings.redis_timeout_s,
                socket_connect_timeout=settings.redis_timeout_s,
            )
            app.state.publisher = OrderEventPublisher(
                redis_pool, settings.order_events_channel, timeout=settings.redis_timeout_s,
            )

        logger.info("Connected to %s", engine.url.render_as_string(hide_password=True))
        try:
            yield
        finally:
            if redis_pool is not None:
                await redis_pool.aclose()
            await engine.dispose()

    app = FastAPI(title="Order Management Service", lifespan=lifespan)

    # CORS 設定（React フロントエンドからのアクセスを許可）
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(OrderError, handle_order_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)

    _register_routes(app)
    return app


def _register_routes(app: FastAPI) -> None:

    @app.get("/", response_class=PlainTextResponse)
    async def root():
        return f"{SERVICE_NAME} Running!"

    @app.get("/api/health")
    async def health():
        return {
            "status": "ok",
            "service": SERVICE_NAME,
            "time": datetime.now(timezone.utc).isoformat(),
        }

    # ── 商品カタログ ────────────────────────────────

    @app.get("/api/products")
    async def get_products(request: Request):
        """ACTIVE な商品一覧（在庫数付き）"""
        async with request.app.state.async_session() as session:
            return await catalog.list_products(session)

    @app.post("/api/products", status_code=201)
    async def add_product(req: CreateProductRequest, request: Request):
        async with request.app.state.async_session() as session:
            return await catalog.create_product(session, req)

    # ── 注文 ──────────────────────────────────────

    @app.post("/api/orders", status_code=201)
    async def create_order(req: CreateOrderRequest, request: Request):
        """
        注文作成

        コミット前にタイムアウトした場合はロールバックし、
        PersistenceFailure として返す。
        """
        state = request.app.state
        async with state.async_session() as session:
            return await commands.place_order(
                session, req, state.publisher, timeout=state.settings.placement_timeout_s,
            )

    @app.get("/api/orders")
    async def get_orders(request: Request):
        """注文一覧（新しい順）"""
        async with request.app.state.async_session() as session:
            return await queries.list_orders(session)

    @app.get("/api/orders/{order_id}")
    async def get_order(order_id: int, request: Request):
        async with request.app.state.async_session() as session:
            order = await queries.get_order(session, order_id)
            if not order:
                raise OrderNotFound(order_id)
            return order
