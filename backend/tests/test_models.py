"""Tests for bar, series, signal and config models."""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from core.errors import MalformedInputError
from core.models import (
    Bar,
    EmaStochasticConfig,
    MaCrossoverConfig,
    MomentumConfig,
    PriceSeries,
    RsiBollingerConfig,
    Signal,
    SignalKind,
    SignalRecord,
    SignalResult,
    create_signal_record,
    parse_bar,
    parse_strategy_config,
)


T0 = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_row(minute: int, close: float, /, **overrides) -> dict:
    ts = T0 + timedelta(minutes=minute)
    row = {
        "datetime": ts.strftime("%Y-%m-%d %H:%M:%S"),
        "open": str(close),
        "high": str(close + 1),
        "low": str(close - 1),
        "close": str(close),
        "volume": "1000",
    }
    row.update(overrides)
    return row


def _make_bar(minute: int, close: float) -> Bar:
    return Bar(
        timestamp=T0 + timedelta(minutes=minute),
        open=close,
        high=close + 1,
        low=close - 1,
        close=close,
    )


class TestBar:
    """Tests for Bar validation."""

    def test_valid_bar(self):
        bar = Bar(timestamp=T0, open=100, high=105, low=95, close=102)

        assert bar.is_bullish
        assert not bar.is_bearish
        assert bar.range_size == 10

    def test_naive_timestamp_is_utc(self):
        bar = Bar(timestamp=datetime(2024, 1, 1, 12, 0), open=1, high=1, low=1, close=1)

        assert bar.timestamp.tzinfo == timezone.utc

    def test_high_below_close_rejected(self):
        with pytest.raises(ValidationError):
            Bar(timestamp=T0, open=100, high=101, low=95, close=102)

    def test_low_above_open_rejected(self):
        with pytest.raises(ValidationError):
            Bar(timestamp=T0, open=100, high=105, low=101, close=102)

    def test_non_finite_rejected(self):
        with pytest.raises(ValidationError):
            Bar(timestamp=T0, open=float("nan"), high=105, low=95, close=102)


class TestParseBar:
    """Tests for provider row parsing."""

    def test_string_fields(self):
        bar = parse_bar(_make_row(0, 100.5))

        assert bar.close == 100.5
        assert bar.high == 101.5
        assert bar.volume == 1000.0
        assert bar.timestamp == T0

    def test_missing_volume(self):
        row = _make_row(0, 100)
        del row["volume"]

        assert parse_bar(row).volume is None

    def test_non_numeric_price(self):
        with pytest.raises(MalformedInputError, match="not numeric"):
            parse_bar(_make_row(0, 100, close="n/a"))

    def test_missing_field(self):
        row = _make_row(0, 100)
        del row["open"]

        with pytest.raises(MalformedInputError, match="missing 'open'"):
            parse_bar(row)

    def test_bad_timestamp(self):
        with pytest.raises(MalformedInputError, match="bad timestamp"):
            parse_bar(_make_row(0, 100, datetime="yesterday"))

    def test_inconsistent_prices_wrapped(self):
        with pytest.raises(MalformedInputError):
            parse_bar(_make_row(0, 100, high="50"))

    def test_epoch_timestamp(self):
        row = _make_row(0, 100)
        row["datetime"] = T0.timestamp()

        assert parse_bar(row).timestamp == T0


class TestPriceSeries:
    """Tests for PriceSeries construction."""

    def test_from_provider_reverses_newest_first(self):
        rows = [_make_row(10, 103), _make_row(5, 102), _make_row(0, 101)]
        series = PriceSeries.from_provider("AAPL", 5, rows)

        assert series.closes == [101.0, 102.0, 103.0]
        assert series.timestamps[0] == T0
        assert series.last.close == 103.0
        assert len(series) == 3

    def test_from_provider_oldest_first(self):
        rows = [_make_row(0, 101), _make_row(5, 102)]
        series = PriceSeries.from_provider("AAPL", 5, rows, newest_first=False)

        assert series.closes == [101.0, 102.0]

    def test_empty_rows_rejected(self):
        with pytest.raises(MalformedInputError):
            PriceSeries.from_provider("AAPL", 5, [])

    def test_duplicate_timestamps_rejected(self):
        with pytest.raises(MalformedInputError, match="strictly increasing"):
            PriceSeries("AAPL", 5, (_make_bar(0, 100), _make_bar(0, 101)))

    def test_unordered_rejected(self):
        with pytest.raises(MalformedInputError):
            PriceSeries("AAPL", 5, (_make_bar(5, 100), _make_bar(0, 101)))

    def test_interval_must_be_positive(self):
        with pytest.raises(MalformedInputError):
            PriceSeries("AAPL", 0, (_make_bar(0, 100),))

    def test_list_is_converted_to_tuple(self):
        series = PriceSeries("AAPL", 5, [_make_bar(0, 100), _make_bar(5, 101)])

        assert isinstance(series.bars, tuple)

    def test_after_is_strict(self):
        series = PriceSeries("AAPL", 5, (_make_bar(0, 100), _make_bar(5, 101), _make_bar(10, 102)))

        following = series.after(T0 + timedelta(minutes=5))
        assert [b.close for b in following] == [102.0]

    def test_closed_as_of_drops_forming_bar(self):
        series = PriceSeries("AAPL", 5, (_make_bar(0, 100), _make_bar(5, 101), _make_bar(10, 102)))

        closed = series.closed_as_of(T0 + timedelta(minutes=12))

        assert closed.closes == [100.0, 101.0]
        assert closed.interval_minutes == 5

    def test_closed_as_of_keeps_complete_series(self):
        series = PriceSeries("AAPL", 5, (_make_bar(0, 100), _make_bar(5, 101)))

        assert series.closed_as_of(T0 + timedelta(minutes=10)) is series

    def test_closed_as_of_without_closed_bar(self):
        series = PriceSeries("AAPL", 5, (_make_bar(0, 100),))

        assert series.closed_as_of(T0 + timedelta(minutes=4)) is None


class TestSignalRecord:
    """Tests for SignalRecord identity and creation."""

    def test_id_is_deterministic(self):
        kwargs = dict(
            symbol="AAPL",
            interval_minutes=5,
            strategy_id="momentum",
            signal_kind=SignalKind.BUY,
            entry_price=100.0,
            emitted_at=T0,
        )
        a = SignalRecord(**kwargs)
        b = SignalRecord(**kwargs)

        assert a.id == b.id
        assert len(a.id) == 32

    def test_id_differs_by_kind(self):
        buy = SignalRecord(
            symbol="AAPL", interval_minutes=5, strategy_id="s",
            signal_kind=SignalKind.BUY, entry_price=1.0, emitted_at=T0,
        )
        sell = SignalRecord(
            symbol="AAPL", interval_minutes=5, strategy_id="s",
            signal_kind=SignalKind.SELL, entry_price=1.0, emitted_at=T0,
        )

        assert buy.id != sell.id

    def test_create_record_is_pending(self):
        signal = Signal(kind=SignalKind.SELL, reason="test")
        record = create_signal_record(signal, "EUR/USD", 15, "rsi_bollinger", 1.1, T0)

        assert record.is_pending
        assert record.is_directional
        assert record.signal_kind == SignalKind.SELL
        assert record.result is None

    def test_hold_not_recorded(self):
        with pytest.raises(MalformedInputError):
            create_signal_record(Signal.hold("nothing"), "AAPL", 5, "momentum", 100.0, T0)

    @pytest.mark.parametrize("price", [0.0, -1.0, float("inf"), float("nan")])
    def test_invalid_entry_price(self, price):
        signal = Signal(kind=SignalKind.BUY, reason="test")
        with pytest.raises(MalformedInputError):
            create_signal_record(signal, "AAPL", 5, "momentum", price, T0)

    def test_foreign_kind_is_kept(self):
        record = SignalRecord(
            symbol="AAPL", interval_minutes=5, strategy_id="s",
            signal_kind="CLOSE", entry_price=1.0, emitted_at=T0,
        )

        assert record.signal_kind == "CLOSE"
        assert not record.is_directional

    def test_json_round_trip_keeps_enums(self):
        record = SignalRecord(
            symbol="AAPL", interval_minutes=5, strategy_id="s",
            signal_kind=SignalKind.BUY, entry_price=1.0, emitted_at=T0,
            result=SignalResult.WIN, exit_price=2.0, exit_time=T0, pnl=1.0,
        )
        restored = SignalRecord.model_validate_json(record.model_dump_json())

        assert restored == record
        assert restored.signal_kind is SignalKind.BUY


class TestStrategyConfig:
    """Tests for strategy config models."""

    def test_defaults(self):
        assert EmaStochasticConfig().channel_period == 10
        assert RsiBollingerConfig().bb_period == 20
        assert MomentumConfig().threshold_pct == 1.5
        assert MaCrossoverConfig().long_period == 21

    def test_required_bars(self):
        assert EmaStochasticConfig().required_bars == 22  # trend 21 + 1
        assert RsiBollingerConfig().required_bars == 21  # bb 20 + 1
        assert MomentumConfig().required_bars == 2
        assert MaCrossoverConfig().required_bars == 22

    def test_parse_by_family(self):
        config = parse_strategy_config({"family": "ma_crossover", "short_period": 5, "long_period": 10})

        assert isinstance(config, MaCrossoverConfig)
        assert config.short_period == 5

    def test_unknown_family(self):
        with pytest.raises(ValidationError):
            parse_strategy_config({"family": "martingale"})

    def test_unknown_field_forbidden(self):
        with pytest.raises(ValidationError):
            parse_strategy_config({"family": "momentum", "treshold_pct": 2})

    def test_short_must_be_below_long(self):
        with pytest.raises(ValidationError):
            MaCrossoverConfig(short_period=21, long_period=9)

    def test_thresholds_ordered(self):
        with pytest.raises(ValidationError):
            RsiBollingerConfig(oversold=70, overbought=30)

    def test_config_is_frozen(self):
        config = MomentumConfig()
        with pytest.raises(ValidationError):
            config.threshold_pct = 3.0
