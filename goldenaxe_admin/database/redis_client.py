"""
Redis client for the health view cache
Singleton; a failed connect turns caching off until restart
"""
import json
import logging
from typing import Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError
from redis import asyncio as aioredis
from redis.asyncio import Redis

from goldenaxe_admin.config import CACHE_KEY_PREFIX, HEALTH_CACHE_TTL_SECONDS, REDIS_URL

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def display_url(url: str) -> str:
    """Drop credentials before logging"""
    return url.split("@")[-1] if "@" in url else url


class RedisClient:
    """Async Redis singleton with pydantic-aware cache helpers"""

    _instance: Optional[Redis] = None
    _disabled: bool = False

    @classmethod
    async def get_client(cls) -> Optional[Redis]:
        """Connected client, or None when Redis is unavailable"""
        if cls._instance is None and not cls._disabled:
            try:
                cls._instance = aioredis.from_url(
                    REDIS_URL,
                    encoding="utf-8",
                    decode_responses=True,
                    socket_connect_timeout=5,
                    socket_keepalive=True,
                    health_check_interval=30
                )
                await cls._instance.ping()
                logger.info(f"✅ Redis connected: {display_url(REDIS_URL)}")
            except Exception as e:
                logger.warning(f"⚠️ Redis unavailable at {display_url(REDIS_URL)}: {e}. Cache disabled.")
                cls._instance = None
                cls._disabled = True

        return cls._instance

    @staticmethod
    def key(name: str) -> str:
        return f"{CACHE_KEY_PREFIX}{name}"

    @classmethod
    async def get_model(cls, name: str, model: Type[ModelT]) -> Optional[ModelT]:
        """Cached model, or None on miss, Redis error or a stale payload shape"""
        client = await cls.get_client()
        if not client:
            return None

        try:
            cached = await client.get(cls.key(name))
        except Exception as e:
            logger.warning(f"⚠️ Cache get failed for {name}: {e}")
            return None

        if not cached:
            return None

        try:
            return model.model_validate(json.loads(cached))
        except (ValueError, ValidationError) as e:
            logger.warning(f"⚠️ Dropping unreadable cache entry {name}: {e}")
            return None

    @classmethod
    async def set_model(cls, name: str, value: BaseModel, ttl_seconds: int = HEALTH_CACHE_TTL_SECONDS):
        """Store the model's API (camelCase) JSON with a TTL"""
        client = await cls.get_client()
        if not client:
            return

        try:
            await client.setex(cls.key(name), ttl_seconds, value.model_dump_json(by_alias=True))
        except Exception as e:
            logger.warning(f"⚠️ Cache set failed for {name}: {e}")

    @classmethod
    async def close(cls):
        if cls._instance:
            await cls._instance.aclose()
            cls._instance = None
            logger.info("Redis connection closed")
