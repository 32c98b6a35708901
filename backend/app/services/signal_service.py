"""Signal lifecycle orchestration.

Wires the pure core to its collaborators:
- emit: fetch bars -> evaluate -> record (non-HOLD) -> save -> announce
- verify: oldest resolvable pending record -> fetch later bars -> verify ->
  check-and-set result -> announce

Only closed bars are used: the provider's newest row is the candle still
forming, so emission drops it and verification waits for the next bar to
close.

All collaborators are passed in; nothing here is global.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from app.clients.market_data import MarketDataClient, MarketDataError
from app.clients.telegram import NotificationError, TelegramNotifier
from app.services.messages import format_result_message, format_signal_message, price_change_pct
from app.storage.signal_store import SignalStore
from app.strategy_presets import StrategyPresets
from core.models import PriceSeries, Signal, SignalRecord, create_signal_record
from core.strategy import evaluate
from core.verifier import VerificationStatus, verify

logger = logging.getLogger(__name__)

# Status reported when no record is waiting for verification
IDLE = "idle"


@dataclass
class EmissionResult:
    """Outcome of one evaluate-and-announce run."""

    symbol: str
    interval_minutes: int
    strategy: str
    signal: Signal
    price: float
    change_pct: float | None
    record: SignalRecord | None = None
    duplicate: bool = False  # record for this bar already existed
    notified: bool = False


@dataclass
class VerificationRun:
    """Outcome of one verification run."""

    status: str
    record: SignalRecord | None = None
    notified: bool = False


class SignalService:
    """Runs signal emission and verification against injected collaborators."""

    def __init__(
        self,
        market_data: MarketDataClient,
        store: SignalStore,
        presets: StrategyPresets,
        notifier: TelegramNotifier | None = None,
        outputsize: int = 250,
        verify_outputsize: int = 50,
        verify_scan_limit: int = 5,
        notify_hold: bool = True,
    ):
        self.market_data = market_data
        self.store = store
        self.presets = presets
        self.notifier = notifier
        self.outputsize = outputsize
        self.verify_outputsize = verify_outputsize
        self.verify_scan_limit = verify_scan_limit
        self.notify_hold = notify_hold

    async def _notify(self, text: str) -> bool:
        """Deliver a message; failures are logged, never raised."""
        if self.notifier is None:
            logger.debug("No notifier configured, message dropped")
            return False
        try:
            await self.notifier.send_message(text, parse_mode=None)
        except NotificationError as e:
            logger.error("Notification failed: %s", e)
            return False
        return True

    async def emit(
        self,
        symbol: str,
        interval_minutes: int,
        strategy: str,
        now: datetime | None = None,
    ) -> EmissionResult:
        """Evaluate a strategy on fresh closed bars and record/announce the signal.

        Raises:
            KeyError: Unknown strategy preset.
            ValueError: Unsupported interval.
            MarketDataError: Provider failure or no closed bar yet.
            MalformedInputError: Provider returned unusable bars.
        """
        config = self.presets.get(strategy)
        fetched: PriceSeries = await self.market_data.get_price_series(
            symbol, interval_minutes, outputsize=self.outputsize
        )
        series = fetched.closed_as_of(now or datetime.now(timezone.utc))
        if series is None:
            raise MarketDataError(f"No closed {interval_minutes}min bar for {symbol} yet")
        if len(series) < len(fetched):
            logger.debug("Dropped forming bar %s for %s", fetched.last.timestamp.isoformat(), symbol)
        signal = evaluate(series, config)

        result = EmissionResult(
            symbol=symbol,
            interval_minutes=interval_minutes,
            strategy=strategy,
            signal=signal,
            price=series.last.close,
            change_pct=price_change_pct(series),
        )

        if signal.is_actionable:
            record = create_signal_record(
                signal,
                symbol=symbol,
                interval_minutes=interval_minutes,
                strategy_id=strategy,
                entry_price=series.last.close,
                emitted_at=series.last.timestamp,
            )
            existing = await self.store.get(record.id)
            if existing is not None:
                logger.info("Signal %s already recorded for this bar, not re-announcing", record.id)
                result.record = existing
                result.duplicate = True
                return result
            await self.store.save(record)
            result.record = record
            logger.info(
                "Recorded %s %s %dmin %s @ %s (id=%s)",
                strategy, symbol, interval_minutes, signal.kind.value, record.entry_price, record.id,
            )
        elif not self.notify_hold:
            return result

        result.notified = await self._notify(format_signal_message(signal, series, strategy))
        return result

    async def verify_next(
        self,
        symbol: str | None = None,
        now: datetime | None = None,
    ) -> VerificationRun:
        """Verify the oldest resolvable pending record (optionally for one symbol).

        Scans up to ``verify_scan_limit`` pending records oldest first. A
        record that is deferred, or whose market data fails, does not block
        the records behind it.

        Returns:
            The first run that settled a record; otherwise the oldest
            deferred run, or ``idle`` when nothing is pending.

        Raises:
            MarketDataError: Every scanned record failed at the provider.
            MalformedInputError: Every scanned record got unusable bars.
        """
        now = now or datetime.now(timezone.utc)
        pending = await self.store.list_pending(symbol=symbol, limit=self.verify_scan_limit)
        if not pending:
            return VerificationRun(status=IDLE)

        deferred: VerificationRun | None = None
        error: Exception | None = None
        for record in pending:
            try:
                run = await self._verify_record(record, now)
            except (MarketDataError, ValueError) as e:
                logger.error("Verification of %s (%s) failed: %s", record.id, record.symbol, e)
                error = error or e
                continue
            if run.status != VerificationStatus.DEFERRED.value:
                return run
            deferred = deferred or run

        if deferred is not None:
            return deferred
        raise error

    async def _verify_record(self, record: SignalRecord, now: datetime) -> VerificationRun:
        series = None
        if record.is_directional:
            interval = timedelta(minutes=record.interval_minutes)
            # The next bar opens one interval after emission and closes one later
            if record.emitted_at + 2 * interval > now:
                logger.debug("Signal %s: next bar cannot have closed yet", record.id)
                return VerificationRun(status=VerificationStatus.DEFERRED.value, record=record)
            series = await self.market_data.get_price_series(
                record.symbol,
                record.interval_minutes,
                outputsize=self.verify_outputsize,
                start_time=record.emitted_at,
            )
            _check_window(record, series)

        verification = verify(record, series, now=now)
        if not verification.changed:
            return VerificationRun(status=verification.status.value, record=verification.record)

        stored = await self.store.compare_and_set_result(verification.record)
        if not stored:
            current = await self.store.get(record.id)
            logger.info("Signal %s was settled by another verifier", record.id)
            return VerificationRun(
                status=VerificationStatus.ALREADY_RESOLVED.value,
                record=current or record,
            )

        notified = await self._notify(format_result_message(verification.record))
        return VerificationRun(
            status=verification.status.value,
            record=verification.record,
            notified=notified,
        )


def _check_window(record: SignalRecord, series: PriceSeries) -> None:
    """Reject a series that may have skipped the bar right after emission.

    Raises:
        MarketDataError: The series starts after emission with a gap wider
            than one interval before its first bar.
    """
    first = series.bars[0].timestamp
    if first <= record.emitted_at:
        return
    if first > record.emitted_at + timedelta(minutes=record.interval_minutes):
        raise MarketDataError(
            f"{record.symbol}: bars start at {first.isoformat()}, "
            f"after the bar following {record.emitted_at.isoformat()}"
        )
