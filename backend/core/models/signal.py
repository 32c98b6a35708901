"""Signal and signal record models."""

import hashlib
import math
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from core.errors import MalformedInputError


class SignalKind(str, Enum):
    """Discrete trading decision."""

    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"


class SignalResult(str, Enum):
    """Terminal verification result of a signal record."""

    WIN = "WIN"
    LOSS = "LOSS"
    INVALID = "INVALID"  # signal_kind was not BUY/SELL


class Signal(BaseModel):
    """Output of one strategy evaluation."""

    model_config = ConfigDict(frozen=True)

    kind: SignalKind
    reason: str

    @classmethod
    def hold(cls, reason: str) -> "Signal":
        return cls(kind=SignalKind.HOLD, reason=reason)

    @property
    def is_actionable(self) -> bool:
        return self.kind != SignalKind.HOLD


def _generate_signal_id(
    strategy_id: str,
    symbol: str,
    interval_minutes: int,
    emitted_at: datetime,
    kind: str,
) -> str:
    """Generate deterministic signal ID based on signal attributes.

    Re-emitting the same signal for the same bar yields the same ID, so a
    retried handler does not create a duplicate record.
    """
    ts_str = emitted_at.strftime("%Y%m%d%H%M%S%f")
    key = f"{strategy_id}:{symbol}:{interval_minutes}:{ts_str}:{kind}"
    return hashlib.sha256(key.encode()).hexdigest()[:32]


def _kind_value(kind: "SignalKind | str") -> str:
    return kind.value if isinstance(kind, SignalKind) else str(kind)


class SignalRecord(BaseModel):
    """Persisted lifecycle record of one emitted signal.

    ``result`` is None while the record is pending and is set exactly once
    by the verifier. ``signal_kind`` tolerates foreign values read back from
    storage; such records verify as INVALID.
    """

    model_config = ConfigDict(frozen=True)

    id: str = ""  # Will be set in model_post_init
    symbol: str
    interval_minutes: int
    strategy_id: str
    signal_kind: SignalKind | str = Field(union_mode="left_to_right")
    entry_price: float
    emitted_at: datetime
    result: SignalResult | None = None
    exit_price: float | None = None
    exit_time: datetime | None = None
    pnl: float | None = None
    verified_at: datetime | None = None

    @field_validator("emitted_at", "exit_time", "verified_at")
    @classmethod
    def _ensure_utc(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def model_post_init(self, __context) -> None:
        """Generate deterministic ID after model initialization."""
        if not self.id:
            object.__setattr__(
                self,
                "id",
                _generate_signal_id(
                    self.strategy_id,
                    self.symbol,
                    self.interval_minutes,
                    self.emitted_at,
                    _kind_value(self.signal_kind),
                ),
            )

    @property
    def is_pending(self) -> bool:
        return self.result is None

    @property
    def is_directional(self) -> bool:
        """True for BUY/SELL records, the only kinds that can be scored."""
        return self.signal_kind in (SignalKind.BUY, SignalKind.SELL)


def create_signal_record(
    signal: Signal,
    symbol: str,
    interval_minutes: int,
    strategy_id: str,
    entry_price: float,
    emitted_at: datetime,
) -> SignalRecord:
    """Build a pending record for an emitted BUY/SELL signal.

    Raises:
        MalformedInputError: For HOLD signals or a non-finite entry price.
    """
    if not signal.is_actionable:
        raise MalformedInputError("HOLD signals are not recorded")
    if not math.isfinite(entry_price) or entry_price <= 0:
        raise MalformedInputError(f"Invalid entry price: {entry_price}")
    return SignalRecord(
        symbol=symbol,
        interval_minutes=interval_minutes,
        strategy_id=strategy_id,
        signal_kind=signal.kind,
        entry_price=entry_price,
        emitted_at=emitted_at,
    )
