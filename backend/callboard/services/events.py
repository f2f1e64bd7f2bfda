import json
import logging
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)


class EventPublisher:
    def __init__(self, redis_url: Optional[str], channel: str = "events"):
        self.channel = channel
        self.client: Optional[redis.Redis] = (
            redis.from_url(redis_url, decode_responses=True) if redis_url else None
        )

    @property
    def enabled(self) -> bool:
        return self.client is not None

    async def publish(self, payload: dict) -> None:
        if not self.client:
            return
        try:
            await self.client.publish(self.channel, json.dumps(payload, default=str))
        except RedisError:
            logger.warning("Failed to publish %s event", payload.get("type"), exc_info=True)

    async def ping(self) -> bool:
        if not self.client:
            return False
        return await self.client.ping()

    async def close(self) -> None:
        if self.client:
            await self.client.close()
            self.client = None
