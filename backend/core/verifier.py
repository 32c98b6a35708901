"""Signal verification against subsequent price action.

State machine per record: PENDING (result=None) -> WIN | LOSS | INVALID.

Rules:
- Records whose kind is not BUY/SELL become INVALID without reading prices
- The exit is the close of the first bar strictly after ``emitted_at``,
  once that bar has closed (its interval has elapsed by ``now``)
- BUY pnl = exit - entry, SELL pnl = entry - exit
- pnl > 0 -> WIN; pnl <= 0 -> LOSS (a flat trade is a LOSS)
- No closed bar after emission yet -> DEFERRED, record unchanged
- Already-resolved records are returned untouched (ALREADY_RESOLVED)

Persisting the result is the caller's job and must use a check-and-set
write so concurrent verifiers cannot both settle one record.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from core.errors import AlreadyResolvedConflict, MalformedInputError
from core.models.bar import PriceSeries
from core.models.signal import SignalKind, SignalRecord, SignalResult

logger = logging.getLogger(__name__)


class VerificationStatus(str, Enum):
    """What a verify() call did."""

    RESOLVED = "resolved"
    DEFERRED = "deferred"  # no closed bar after emission yet; retry later
    ALREADY_RESOLVED = "already_resolved"


@dataclass(frozen=True)
class Verification:
    """Result of verifying one signal record."""

    status: VerificationStatus
    record: SignalRecord

    @property
    def changed(self) -> bool:
        """True when the record needs to be persisted."""
        return self.status == VerificationStatus.RESOLVED


def score(kind: SignalKind, entry_price: float, exit_price: float) -> tuple[SignalResult, float]:
    """Return (result, pnl) for a directional trade."""
    if kind == SignalKind.BUY:
        pnl = exit_price - entry_price
    elif kind == SignalKind.SELL:
        pnl = entry_price - exit_price
    else:
        raise MalformedInputError(f"Cannot score signal kind {kind!r}")
    # Ties resolve to LOSS
    return (SignalResult.WIN if pnl > 0 else SignalResult.LOSS), pnl


def verify(
    record: SignalRecord,
    series: PriceSeries | None,
    now: datetime | None = None,
    strict: bool = False,
) -> Verification:
    """Score a pending signal record against the bars that followed it.

    Args:
        record: Record to verify.
        series: Price series for the record's symbol covering the period
            after ``record.emitted_at``; None when no data was fetched
            (treated like a series without a following bar).
        now: Verification timestamp (defaults to current UTC time).
        strict: Raise AlreadyResolvedConflict for terminal records instead
            of reporting ALREADY_RESOLVED.

    Returns:
        Verification with the (possibly updated) record copy.

    Raises:
        MalformedInputError: If the series belongs to another symbol.
        AlreadyResolvedConflict: Terminal record with ``strict=True``.
    """
    if not record.is_pending:
        if strict:
            raise AlreadyResolvedConflict(record.id, record.result.value)
        logger.debug("Signal %s already resolved as %s", record.id, record.result.value)
        return Verification(VerificationStatus.ALREADY_RESOLVED, record)

    verified_at = now or datetime.now(timezone.utc)

    if not record.is_directional:
        logger.warning("Signal %s has non-directional kind %r, marking INVALID", record.id, record.signal_kind)
        invalid = record.model_copy(
            update={"result": SignalResult.INVALID, "verified_at": verified_at}
        )
        return Verification(VerificationStatus.RESOLVED, invalid)

    if series is None:
        return Verification(VerificationStatus.DEFERRED, record)

    if series.symbol != record.symbol:
        raise MalformedInputError(
            f"Series symbol {series.symbol} does not match signal symbol {record.symbol}"
        )

    following = series.after(record.emitted_at)
    if not following:
        logger.info(
            "Signal %s: no bar after %s yet, deferring",
            record.id,
            record.emitted_at.isoformat(),
        )
        return Verification(VerificationStatus.DEFERRED, record)

    next_bar = following[0]
    if not series.is_closed(next_bar, verified_at):
        logger.info(
            "Signal %s: next bar %s still forming, deferring",
            record.id,
            next_bar.timestamp.isoformat(),
        )
        return Verification(VerificationStatus.DEFERRED, record)

    result, pnl = score(SignalKind(record.signal_kind), record.entry_price, next_bar.close)
    resolved = record.model_copy(
        update={
            "result": result,
            "exit_price": next_bar.close,
            "exit_time": next_bar.timestamp,
            "pnl": pnl,
            "verified_at": verified_at,
        }
    )
    logger.info(
        "Signal %s %s %s: entry=%s exit=%s pnl=%.6f -> %s",
        record.id,
        record.symbol,
        SignalKind(record.signal_kind).value,
        record.entry_price,
        next_bar.close,
        pnl,
        result.value,
    )
    return Verification(VerificationStatus.RESOLVED, resolved)
