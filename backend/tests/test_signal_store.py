"""Tests for signal record stores."""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import WatchError

from app.storage import (
    InMemorySignalStore,
    RedisSignalStore,
    SignalStore,
    deserialize_record,
    serialize_record,
)
from core.models import SignalKind, SignalRecord, SignalResult


T0 = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_record(symbol="AAPL", minute=0, kind=SignalKind.BUY) -> SignalRecord:
    return SignalRecord(
        symbol=symbol,
        interval_minutes=5,
        strategy_id="momentum",
        signal_kind=kind,
        entry_price=100.0,
        emitted_at=T0 + timedelta(minutes=minute),
    )


def _resolve(record: SignalRecord, result=SignalResult.WIN) -> SignalRecord:
    return record.model_copy(
        update={
            "result": result,
            "exit_price": 105.0,
            "exit_time": record.emitted_at + timedelta(minutes=5),
            "pnl": 5.0,
            "verified_at": T0 + timedelta(hours=1),
        }
    )


def _make_redis_store():
    client = MagicMock()
    pipe = MagicMock()
    pipe.watch = AsyncMock()
    pipe.get = AsyncMock()
    pipe.execute = AsyncMock(return_value=[True, 1])
    client.pipeline.return_value.__aenter__.return_value = pipe
    client.pipeline.return_value.__aexit__.return_value = False
    return RedisSignalStore(client, prefix="sig"), client, pipe


class TestSerialization:
    """Tests for record (de)serialization."""

    def test_round_trip(self):
        record = _resolve(_make_record())

        assert deserialize_record(serialize_record(record)) == record

    def test_accepts_str(self):
        record = _make_record()

        assert deserialize_record(serialize_record(record).decode()) == record


class TestInMemorySignalStore:
    """Tests for InMemorySignalStore."""

    def test_satisfies_protocol(self):
        assert isinstance(InMemorySignalStore(), SignalStore)

    async def test_save_and_get(self):
        store = InMemorySignalStore()
        record = _make_record()

        await store.save(record)

        assert await store.get(record.id) == record
        assert await store.get("missing") is None

    async def test_list_pending_oldest_first(self):
        store = InMemorySignalStore()
        late = _make_record(minute=10)
        early = _make_record(minute=0)
        other = _make_record(symbol="MSFT", minute=5)
        done = _resolve(_make_record(minute=15))
        for record in (late, early, other, done):
            await store.save(record)

        assert [r.id for r in await store.list_pending()] == [early.id, other.id, late.id]
        assert [r.id for r in await store.list_pending(symbol="AAPL")] == [early.id, late.id]
        assert [r.id for r in await store.list_pending(limit=1)] == [early.id]

    async def test_compare_and_set_once(self):
        store = InMemorySignalStore()
        record = _make_record()
        await store.save(record)

        assert await store.compare_and_set_result(_resolve(record, SignalResult.WIN))
        assert not await store.compare_and_set_result(_resolve(record, SignalResult.LOSS))
        assert (await store.get(record.id)).result == SignalResult.WIN

    async def test_compare_and_set_missing(self):
        store = InMemorySignalStore()

        assert not await store.compare_and_set_result(_resolve(_make_record()))

    async def test_compare_and_set_requires_result(self):
        store = InMemorySignalStore()
        record = _make_record()
        await store.save(record)

        with pytest.raises(ValueError):
            await store.compare_and_set_result(record)

    async def test_concurrent_writers_settle_once(self):
        store = InMemorySignalStore()
        record = _make_record()
        await store.save(record)

        outcomes = await asyncio.gather(
            store.compare_and_set_result(_resolve(record, SignalResult.WIN)),
            store.compare_and_set_result(_resolve(record, SignalResult.LOSS)),
        )

        assert sorted(outcomes) == [False, True]
        assert await store.list_pending() == []


class TestRedisSignalStore:
    """Tests for RedisSignalStore with a mocked client."""

    async def test_get(self):
        store, client, _ = _make_redis_store()
        record = _make_record()
        client.get = AsyncMock(return_value=serialize_record(record))

        assert await store.get(record.id) == record
        client.get.assert_awaited_once_with(f"sig:{record.id}")

    async def test_get_missing(self):
        store, client, _ = _make_redis_store()
        client.get = AsyncMock(return_value=None)

        assert await store.get("nope") is None

    async def test_save_pending_indexes_record(self):
        store, _, pipe = _make_redis_store()
        record = _make_record()

        await store.save(record)

        pipe.set.assert_called_once_with(f"sig:{record.id}", serialize_record(record))
        pipe.zadd.assert_called_once_with("sig:pending", {record.id: T0.timestamp()})
        pipe.execute.assert_awaited_once()

    async def test_save_resolved_unindexes_record(self):
        store, _, pipe = _make_redis_store()
        record = _resolve(_make_record())

        await store.save(record)

        pipe.zrem.assert_called_once_with("sig:pending", record.id)
        pipe.zadd.assert_not_called()

    async def test_list_pending_filters(self):
        store, client, _ = _make_redis_store()
        aapl = _make_record(minute=0)
        msft = _make_record(symbol="MSFT", minute=5)
        data = {f"sig:{aapl.id}": serialize_record(aapl), f"sig:{msft.id}": serialize_record(msft)}
        client.zrange = AsyncMock(return_value=[aapl.id.encode(), msft.id.encode(), b"gone"])
        client.get = AsyncMock(side_effect=lambda key: data.get(key))

        assert await store.list_pending() == [aapl, msft]
        assert await store.list_pending(symbol="MSFT") == [msft]
        assert await store.list_pending(limit=1) == [aapl]

    async def test_compare_and_set_writes_pending_record(self):
        store, _, pipe = _make_redis_store()
        record = _make_record()
        resolved = _resolve(record)
        pipe.get.return_value = serialize_record(record)

        assert await store.compare_and_set_result(resolved)

        pipe.watch.assert_awaited_once_with(f"sig:{record.id}")
        pipe.multi.assert_called_once()
        pipe.set.assert_called_once_with(f"sig:{record.id}", serialize_record(resolved))
        pipe.zrem.assert_called_once_with("sig:pending", record.id)
        pipe.execute.assert_awaited_once()

    async def test_compare_and_set_skips_resolved_record(self):
        store, _, pipe = _make_redis_store()
        record = _make_record()
        pipe.get.return_value = serialize_record(_resolve(record, SignalResult.LOSS))

        assert not await store.compare_and_set_result(_resolve(record))

        pipe.multi.assert_not_called()
        pipe.execute.assert_not_awaited()

    async def test_compare_and_set_missing_record(self):
        store, _, pipe = _make_redis_store()
        pipe.get.return_value = None

        assert not await store.compare_and_set_result(_resolve(_make_record()))

    async def test_compare_and_set_lost_race(self):
        store, _, pipe = _make_redis_store()
        record = _make_record()
        pipe.get.return_value = serialize_record(record)
        pipe.execute.side_effect = WatchError("changed")

        assert not await store.compare_and_set_result(_resolve(record))
