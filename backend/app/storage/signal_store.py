"""Signal record storage.

Any key-value backend can implement ``SignalStore``. Result writes go
through ``compare_and_set_result`` so that, when verifiers overlap, only
the first one settles a record.

Redis layout:
- {prefix}:{id} -> JSON serialized SignalRecord
- {prefix}:pending -> sorted set of pending ids, scored by emission time
"""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol, runtime_checkable

import orjson
import redis.asyncio as redis
from redis.exceptions import WatchError

from core.models import SignalRecord

logger = logging.getLogger(__name__)


@runtime_checkable
class SignalStore(Protocol):
    """Protocol that signal storage backends must implement."""

    async def save(self, record: SignalRecord) -> None:
        """Persist a new record (overwrites a record with the same id)."""
        ...

    async def get(self, record_id: str) -> SignalRecord | None:
        """Get a single record by its ID."""
        ...

    async def list_pending(self, symbol: str | None = None, limit: int | None = None) -> list[SignalRecord]:
        """Get unresolved records, oldest emission first."""
        ...

    async def compare_and_set_result(self, record: SignalRecord) -> bool:
        """Write a resolved record only if the stored one is still pending.

        Returns:
            True if this call settled the record, False if it was missing
            or already resolved.
        """
        ...


def serialize_record(record: SignalRecord) -> bytes:
    """Serialize a SignalRecord to JSON bytes."""
    return orjson.dumps(record.model_dump(mode="json"))


def deserialize_record(data: bytes | str) -> SignalRecord:
    """Deserialize JSON bytes to a SignalRecord."""
    return SignalRecord.model_validate(orjson.loads(data))


def _check_resolved(record: SignalRecord) -> None:
    if record.is_pending:
        raise ValueError(f"Signal {record.id} has no result to store")


class InMemorySignalStore:
    """Process-local store for tests and single-instance deployments."""

    def __init__(self):
        self._records: dict[str, SignalRecord] = {}
        self._lock = asyncio.Lock()

    async def save(self, record: SignalRecord) -> None:
        async with self._lock:
            self._records[record.id] = record

    async def get(self, record_id: str) -> SignalRecord | None:
        return self._records.get(record_id)

    async def list_pending(self, symbol: str | None = None, limit: int | None = None) -> list[SignalRecord]:
        pending = [
            r for r in self._records.values()
            if r.is_pending and (symbol is None or r.symbol == symbol)
        ]
        pending.sort(key=lambda r: r.emitted_at)
        return pending[:limit] if limit else pending

    async def compare_and_set_result(self, record: SignalRecord) -> bool:
        _check_resolved(record)
        async with self._lock:
            current = self._records.get(record.id)
            if current is None or not current.is_pending:
                return False
            self._records[record.id] = record
            return True


class RedisSignalStore:
    """Redis-backed store using optimistic WATCH/MULTI transactions."""

    def __init__(self, client: redis.Redis, prefix: str = "signal"):
        self._client = client
        self.prefix = prefix

    @classmethod
    def from_url(cls, url: str, prefix: str = "signal") -> RedisSignalStore:
        client = redis.Redis.from_url(url, decode_responses=False)
        return cls(client, prefix=prefix)

    async def close(self) -> None:
        await self._client.aclose()

    def _key(self, record_id: str) -> str:
        return f"{self.prefix}:{record_id}"

    @property
    def _pending_key(self) -> str:
        return f"{self.prefix}:pending"

    async def save(self, record: SignalRecord) -> None:
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.set(self._key(record.id), serialize_record(record))
            if record.is_pending:
                pipe.zadd(self._pending_key, {record.id: record.emitted_at.timestamp()})
            else:
                pipe.zrem(self._pending_key, record.id)
            await pipe.execute()
        logger.debug("Saved signal %s", record.id)

    async def get(self, record_id: str) -> SignalRecord | None:
        data = await self._client.get(self._key(record_id))
        if data is None:
            return None
        return deserialize_record(data)

    async def list_pending(self, symbol: str | None = None, limit: int | None = None) -> list[SignalRecord]:
        ids = await self._client.zrange(self._pending_key, 0, -1)
        records: list[SignalRecord] = []
        for raw_id in ids:
            record_id = raw_id.decode() if isinstance(raw_id, bytes) else raw_id
            record = await self.get(record_id)
            if record is None:
                logger.warning("Pending index references missing signal %s", record_id)
                continue
            if not record.is_pending:
                continue
            if symbol is not None and record.symbol != symbol:
                continue
            records.append(record)
            if limit and len(records) >= limit:
                break
        return records

    async def compare_and_set_result(self, record: SignalRecord) -> bool:
        _check_resolved(record)
        key = self._key(record.id)
        async with self._client.pipeline(transaction=True) as pipe:
            try:
                await pipe.watch(key)
                data = await pipe.get(key)
                if data is None:
                    logger.warning("Signal %s not found, result not stored", record.id)
                    return False
                if not deserialize_record(data).is_pending:
                    logger.info("Signal %s already resolved, skipping write", record.id)
                    return False
                pipe.multi()
                pipe.set(key, serialize_record(record))
                pipe.zrem(self._pending_key, record.id)
                await pipe.execute()
            except WatchError:
                logger.info("Signal %s changed during verification, skipping write", record.id)
                return False
        return True
