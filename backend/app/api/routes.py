"""REST API routes."""

import logging
from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel

from app.clients.market_data import MarketDataError
from app.services.signal_service import SignalService
from core.errors import MalformedInputError
from core.models import SignalKind, SignalRecord

logger = logging.getLogger(__name__)

router = APIRouter()


# Response models
class SignalRecordResponse(BaseModel):
    """Signal record response model."""

    id: str
    symbol: str
    interval_minutes: int
    strategy_id: str
    signal_kind: str
    entry_price: float
    emitted_at: datetime
    result: Optional[str] = None
    exit_price: Optional[float] = None
    exit_time: Optional[datetime] = None
    pnl: Optional[float] = None
    verified_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: SignalRecord) -> "SignalRecordResponse":
        kind = record.signal_kind
        return cls(
            id=record.id,
            symbol=record.symbol,
            interval_minutes=record.interval_minutes,
            strategy_id=record.strategy_id,
            signal_kind=kind.value if isinstance(kind, SignalKind) else str(kind),
            entry_price=record.entry_price,
            emitted_at=record.emitted_at,
            result=record.result.value if record.result else None,
            exit_price=record.exit_price,
            exit_time=record.exit_time,
            pnl=record.pnl,
            verified_at=record.verified_at,
        )


class SendMessageResponse(BaseModel):
    """Evaluation response model."""

    success: bool
    symbol: str
    interval: int
    strategy: str
    current_price: float
    price_change: Optional[float] = None
    signal: str
    reason: str
    record_id: Optional[str] = None
    duplicate: bool = False
    notified: bool = False


class VerifySignalResponse(BaseModel):
    """Verification response model."""

    success: bool
    status: str
    record: Optional[SignalRecordResponse] = None
    notified: bool = False


# Dependency for the signal service
def get_signal_service(request: Request) -> SignalService:
    return request.app.state.signal_service


async def _request_params(request: Request) -> dict[str, Any]:
    """Parameters from the query string (GET) or JSON body (POST)."""
    params: dict[str, Any] = dict(request.query_params)
    if request.method == "POST":
        try:
            body = await request.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            params.update(body)
    return params


def _raise_for(e: Exception) -> None:
    """Map collaborator/core errors to HTTP errors."""
    if isinstance(e, MalformedInputError):
        raise HTTPException(status_code=422, detail=f"Malformed market data: {e}") from e
    if isinstance(e, MarketDataError):
        raise HTTPException(status_code=502, detail=f"Market data unavailable: {e}") from e
    if isinstance(e, KeyError):
        raise HTTPException(status_code=400, detail=str(e.args[0]) if e.args else str(e)) from e
    if isinstance(e, ValueError):
        raise HTTPException(status_code=400, detail=str(e)) from e
    raise e


@router.api_route("/send-message", methods=["GET", "POST"], response_model=SendMessageResponse)
async def send_message(request: Request, service: SignalService = Depends(get_signal_service)):
    """Evaluate a strategy for a symbol and announce the signal."""
    params = await _request_params(request)
    for name in ("symbol", "interval", "strategy"):
        if not params.get(name):
            raise HTTPException(status_code=400, detail=f"Missing {name} parameter")
    try:
        interval = int(params["interval"])
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail="interval must be an integer number of minutes")

    symbol = str(params["symbol"])
    strategy = str(params["strategy"])
    try:
        result = await service.emit(symbol, interval, strategy)
    except (MalformedInputError, MarketDataError, KeyError, ValueError) as e:
        logger.warning("send-message %s %s %s failed: %s", symbol, interval, strategy, e)
        _raise_for(e)

    return SendMessageResponse(
        success=True,
        symbol=result.symbol,
        interval=result.interval_minutes,
        strategy=result.strategy,
        current_price=result.price,
        price_change=result.change_pct,
        signal=result.signal.kind.value,
        reason=result.signal.reason,
        record_id=result.record.id if result.record else None,
        duplicate=result.duplicate,
        notified=result.notified,
    )


@router.api_route("/verify-signal", methods=["GET", "POST"], response_model=VerifySignalResponse)
async def verify_signal(request: Request, service: SignalService = Depends(get_signal_service)):
    """Verify the oldest pending signal and announce its result."""
    params = await _request_params(request)
    symbol = params.get("symbol") or None
    try:
        run = await service.verify_next(symbol=symbol)
    except (MalformedInputError, MarketDataError, ValueError) as e:
        logger.warning("verify-signal failed: %s", e)
        _raise_for(e)

    return VerifySignalResponse(
        success=True,
        status=run.status,
        record=SignalRecordResponse.from_record(run.record) if run.record else None,
        notified=run.notified,
    )


@router.get("/signals/pending", response_model=list[SignalRecordResponse])
async def get_pending_signals(
    symbol: Optional[str] = Query(None, description="Filter by symbol"),
    limit: int = Query(100, ge=1, le=1000, description="Maximum signals to return"),
    service: SignalService = Depends(get_signal_service),
):
    """Get unresolved signals, oldest first."""
    records = await service.store.list_pending(symbol=symbol, limit=limit)
    return [SignalRecordResponse.from_record(r) for r in records]


@router.get("/signals/{signal_id}", response_model=SignalRecordResponse)
async def get_signal(signal_id: str, service: SignalService = Depends(get_signal_service)):
    """Get a specific signal by ID."""
    record = await service.store.get(signal_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Signal not found")
    return SignalRecordResponse.from_record(record)
