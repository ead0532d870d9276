"""Idempotency Manager - Guards against double submission of a booking form.

The micro-site sends an ``Idempotency-Key`` per form submission. A repeated
key returns the stored result instead of inserting a second appointment.
This only deduplicates retries of the *same* submission; it is not a
capacity lock between different customers.
"""

import json
from typing import Any

import redis.asyncio as redis

from hangar.utils.logger import get_logger

logger = get_logger(__name__)

IN_FLIGHT = "processing"


class IdempotencyManager:
    """Manages booking idempotency keys in Redis.

    Every Redis failure fails open: the booking proceeds as if the key were
    new, and the capacity check still runs.
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379",
        ttl_seconds: int = 3600,
        prefix: str = "booking-idempotency:",
    ) -> None:
        """Initialize the IdempotencyManager.

        Args:
            redis_url: Redis connection URL
            ttl_seconds: Time-to-live for idempotency keys
            prefix: Prefix for Redis keys
        """
        self.redis_url = redis_url
        self.ttl_seconds = ttl_seconds
        self.prefix = prefix
        self._client: redis.Redis | None = None

    async def _get_client(self) -> redis.Redis:
        """Get or create Redis client."""
        if self._client is None:
            client = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
            await client.ping()
            logger.info("redis_connected", url=self.redis_url)
            self._client = client
        return self._client

    def _make_key(self, tenant_id: str, idempotency_key: str) -> str:
        return f"{self.prefix}{tenant_id}:{idempotency_key}"

    async def check_and_mark(
        self,
        tenant_id: str,
        idempotency_key: str,
    ) -> tuple[bool, dict[str, Any] | None]:
        """Atomically check if the submission was seen and mark it in flight.

        Uses Redis SET NX.

        Returns:
            Tuple of (is_duplicate, cached_result)
            - is_duplicate: True if the key was already used
            - cached_result: Stored booking response, None while in flight
        """
        key = self._make_key(tenant_id, idempotency_key)
        try:
            client = await self._get_client()
            was_set = await client.set(key, IN_FLIGHT, ex=self.ttl_seconds, nx=True)

            if was_set:
                logger.debug("idempotency_key_acquired", key=key)
                return False, None

            stored = await client.get(key)
            cached_result = None
            if stored and stored != IN_FLIGHT:
                try:
                    cached_result = json.loads(stored)
                except json.JSONDecodeError:
                    logger.warning("idempotency_cached_result_invalid", key=key)

            logger.info(
                "duplicate_booking_submission",
                key=key,
                has_cached_result=cached_result is not None,
            )
            return True, cached_result

        except Exception as e:
            logger.warning(
                "idempotency_check_failed",
                key=key,
                error=str(e),
            )
            return False, None

    async def store_result(
        self,
        tenant_id: str,
        idempotency_key: str,
        result: dict[str, Any],
    ) -> bool:
        """Store the booking response for later duplicates.

        Returns:
            True if stored, False otherwise.
        """
        key = self._make_key(tenant_id, idempotency_key)
        try:
            client = await self._get_client()
            await client.setex(key, self.ttl_seconds, json.dumps(result, default=str))
            logger.info("booking_result_cached", key=key, ttl_seconds=self.ttl_seconds)
            return True
        except Exception as e:
            logger.warning("booking_result_cache_failed", key=key, error=str(e))
            return False

    async def release(self, tenant_id: str, idempotency_key: str) -> None:
        """Drop the key after a rejected booking so the form can be resent."""
        key = self._make_key(tenant_id, idempotency_key)
        try:
            client = await self._get_client()
            await client.delete(key)
        except Exception as e:
            logger.warning("idempotency_release_failed", key=key, error=str(e))

    async def close(self) -> None:
        """Close Redis connection."""
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("redis_connection_closed")


_idempotency_manager: IdempotencyManager | None = None


def get_idempotency_manager() -> IdempotencyManager:
    """Get or create the idempotency manager from settings."""
    global _idempotency_manager
    if _idempotency_manager is None:
        from hangar.config.settings import get_settings

        settings = get_settings()
        _idempotency_manager = IdempotencyManager(
            redis_url=settings.redis_url,
            ttl_seconds=settings.idempotency_ttl_seconds,
        )
    return _idempotency_manager
