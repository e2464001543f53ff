"""
Redis Streams message bus carrying ledger notifications.

A relay attached to the ledger node publishes every saved AA definition to
``aa:definition_saved`` and every response of a watched AA to
``aa:response:<address>``.  Consumer groups let several indexer replicas
share a stream without double-processing.
"""

from __future__ import annotations

import json
import logging
from typing import Any, AsyncIterator

import redis.asyncio as aioredis
from pydantic import BaseModel

from config.settings import settings
from core.models import AADefinitionSaved, AAResponse

logger = logging.getLogger(__name__)

# Stream names.
STREAM_AA_DEFINITION_SAVED = "aa:definition_saved"
STREAM_REFERRALS_WATCH = "referrals:watch"
_AA_RESPONSE_PREFIX = "aa:response:"

# How long to block on XREADGROUP when no new messages arrive (ms).
_DEFAULT_BLOCK_MS = 5_000
_DEFAULT_BATCH = 10


def aa_response_stream(address: str) -> str:
    """Stream carrying responses produced by the AA at *address*."""
    return f"{_AA_RESPONSE_PREFIX}{address}"


def _serialize(model: BaseModel) -> dict[str, str]:
    """Flatten a Pydantic model into a Redis-friendly string dict."""
    return {"payload": model.model_dump_json()}


def _deserialize(raw: dict[bytes, bytes]) -> dict[str, Any]:
    """Parse a single Redis stream entry back into a Python dict."""
    payload = raw.get(b"payload", b"{}")
    return json.loads(payload)


class MessageBus:
    """Thin async wrapper around Redis Streams."""

    def __init__(self, redis_url: str | None = None) -> None:
        self._url = redis_url or settings.redis_url
        self._redis: aioredis.Redis | None = None

    # -- lifecycle -----------------------------------------------------------

    async def connect(self) -> None:
        """Open the Redis connection pool."""
        self._redis = aioredis.from_url(
            self._url,
            decode_responses=False,  # We handle decoding ourselves.
        )
        await self._redis.ping()
        logger.info("MessageBus connected to Redis at %s", self._url)

    async def close(self) -> None:
        """Drain and close the connection pool."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None
            logger.info("MessageBus connection closed.")

    @property
    def redis(self) -> aioredis.Redis:
        if self._redis is None:
            raise RuntimeError("MessageBus is not connected. Call connect() first.")
        return self._redis

    # -- publishing ----------------------------------------------------------

    async def _publish(self, stream: str, model: BaseModel) -> str:
        """Publish a Pydantic model to *stream*. Returns the message id."""
        msg_id: bytes = await self.redis.xadd(stream, _serialize(model))
        decoded = msg_id.decode() if isinstance(msg_id, bytes) else msg_id
        logger.debug("Published to %s: %s", stream, decoded)
        return decoded

    async def publish_aa_definition(self, event: AADefinitionSaved) -> str:
        return await self._publish(STREAM_AA_DEFINITION_SAVED, event)

    async def publish_aa_response(self, event: AAResponse) -> str:
        return await self._publish(aa_response_stream(event.aa_address), event)

    # -- consumer groups -----------------------------------------------------

    async def ensure_group(self, stream: str, group: str) -> None:
        """Idempotently create a consumer group starting from the stream head."""
        try:
            await self.redis.xgroup_create(
                stream, group, id="0", mkstream=True,
            )
            logger.info("Created consumer group %s on %s", group, stream)
        except aioredis.ResponseError as exc:
            if "BUSYGROUP" in str(exc):
                pass  # Group already exists, fine.
            else:
                raise

    # -- subscribing ---------------------------------------------------------

    async def _subscribe(
        self,
        stream: str,
        group: str,
        consumer: str,
        batch: int = _DEFAULT_BATCH,
        block_ms: int = _DEFAULT_BLOCK_MS,
    ) -> AsyncIterator[tuple[str, dict[str, Any]]]:
        """Yield ``(message_id, payload_dict)`` from a consumer group.

        This is an infinite async generator: call ``async for`` on it.
        Messages are automatically ACK'd after yielding.
        """
        await self.ensure_group(stream, group)
        while True:
            entries = await self.redis.xreadgroup(
                groupname=group,
                consumername=consumer,
                streams={stream: ">"},
                count=batch,
                block=block_ms,
            )
            if not entries:
                continue
            for _stream_key, messages in entries:
                for msg_id, raw in messages:
                    decoded_id = msg_id.decode() if isinstance(msg_id, bytes) else msg_id
                    try:
                        payload = _deserialize(raw)
                        yield decoded_id, payload
                        await self.redis.xack(stream, group, msg_id)
                    except Exception:
                        logger.exception(
                            "Failed to process message %s from %s",
                            decoded_id,
                            stream,
                        )

    def subscribe_aa_definitions(
        self, group: str, consumer: str, **kw: Any,
    ) -> AsyncIterator[tuple[str, dict[str, Any]]]:
        return self._subscribe(STREAM_AA_DEFINITION_SAVED, group, consumer, **kw)

    def subscribe_aa_responses(
        self, address: str, group: str, consumer: str, **kw: Any,
    ) -> AsyncIterator[tuple[str, dict[str, Any]]]:
        return self._subscribe(aa_response_stream(address), group, consumer, **kw)

    # -- outbound ------------------------------------------------------------

    async def publish_to(self, stream: str, model: BaseModel) -> str:
        """Publish a Pydantic model to an arbitrary stream."""
        return await self._publish(stream, model)
