"""Human-readable Telegram messages for signals and results."""

from datetime import datetime, timezone

from core.models import PriceSeries, Signal, SignalKind, SignalRecord, SignalResult

_KIND_ICONS = {
    SignalKind.BUY: "🟢",
    SignalKind.SELL: "🔴",
    SignalKind.HOLD: "⚪",
}

_RESULT_ICONS = {
    SignalResult.WIN: "✅",
    SignalResult.LOSS: "❌",
    SignalResult.INVALID: "⚠️",
}


def price_change_pct(series: PriceSeries) -> float | None:
    """Percent change of the last close against the previous close."""
    if len(series) < 2 or series.bars[-2].close == 0:
        return None
    prev = series.bars[-2].close
    return (series.last.close - prev) / prev * 100


def format_signal_message(
    signal: Signal,
    series: PriceSeries,
    strategy: str,
    generated_at: datetime | None = None,
) -> str:
    change = price_change_pct(series)
    change_line = f"📊 Change: {change:.2f}%\n" if change is not None else ""
    generated_at = generated_at or datetime.now(timezone.utc)
    return (
        f"📈 {series.symbol} Trade Signal ({strategy})\n"
        f"⏰ Interval: {series.interval_minutes}min\n"
        f"💵 Current: {series.last.close:.2f}\n"
        f"{change_line}"
        f"🚦 Signal: {_KIND_ICONS[signal.kind]} {signal.kind.value}\n"
        f"💡 Reason: {signal.reason}\n\n"
        f"Generated at: {generated_at:%Y-%m-%d %H:%M:%S} UTC"
    )


def format_result_message(record: SignalRecord) -> str:
    icon = _RESULT_ICONS.get(record.result, "")
    kind = record.signal_kind.value if isinstance(record.signal_kind, SignalKind) else record.signal_kind
    lines = [
        f"{icon} {record.symbol} {kind} signal verified: {record.result.value}",
        f"⏰ Interval: {record.interval_minutes}min ({record.strategy_id})",
        f"🎯 Entry: {record.entry_price:.2f} at {record.emitted_at:%Y-%m-%d %H:%M} UTC",
    ]
    if record.exit_price is not None:
        lines.append(f"🏁 Exit: {record.exit_price:.2f} at {record.exit_time:%Y-%m-%d %H:%M} UTC")
    if record.pnl is not None:
        lines.append(f"💰 P/L: {record.pnl:+.2f}")
    return "\n".join(lines)
