"""Signal record storage."""

from app.storage.signal_store import (
    InMemorySignalStore,
    RedisSignalStore,
    SignalStore,
    deserialize_record,
    serialize_record,
)

__all__ = [
    "InMemorySignalStore",
    "RedisSignalStore",
    "SignalStore",
    "deserialize_record",
    "serialize_record",
]
