"""
Order Management Service — イベント定義と発行

注文のコミット後に OrderPlaced を Redis Pub/Sub へ発行する。
イベントは過去形で命名し、不変 (immutable) として扱う。

注意: Redis Pub/Sub は fire-and-forget 方式。
購読者がいない間のイベントは失われる。
"""

import asyncio
import json
import logging
from datetime import datetime
from decimal import Decimal

import redis.asyncio as aioredis
from pydantic import BaseModel
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)


class OrderPlacedItem(BaseModel):
    product_id: int
    quantity: int
    unit_price: Decimal


class OrderPlaced(BaseModel):
    """注文が確定した（在庫減算と注文の保存が同一トランザクションでコミット済み）"""
    order_id: int
    customer_id: int
    total_amount: Decimal
    items: list[OrderPlacedItem]
    timestamp: datetime


class OrderEventPublisher:
    def __init__(
        self,
        redis: aioredis.Redis,
        channel: str = "order_events",
        timeout: float = 2.0,
    ) -> None:
        self.redis = redis
        self.channel = channel
        self.timeout = timeout

    async def publish(self, event: BaseModel) -> bool:
        """
        イベントを発行する。

        注文は既にコミット済みなので、発行に失敗しても注文結果は変えない。
        失敗・タイムアウトはログに残して False を返す。
        """
        message = json.dumps({
            "event_type": type(event).__name__,
            "data": event.model_dump(mode="json"),
        })
        try:
            await asyncio.wait_for(self.redis.publish(self.channel, message), timeout=self.timeout)
        except RedisError:
            logger.exception("Failed to publish %s to %s", type(event).__name__, self.channel)
            return False
        except asyncio.TimeoutError:
            logger.warning(
                "Publishing %s to %s timed out after %ss",
                type(event).__name__, self.channel, self.timeout,
            )
            return False
        return True
