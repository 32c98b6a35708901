"""Error taxonomy for the signal engine.

Recoverable conditions (insufficient data, degenerate indicators) are turned
into HOLD signals by the evaluator. Malformed input is a caller fault and is
raised. Verifying an already-resolved record is a benign no-op.
"""


class SignalEngineError(Exception):
    """Base class for all signal engine errors."""


class InsufficientDataError(SignalEngineError):
    """The price series is shorter than the strategy's required lookback."""

    def __init__(self, required: int, available: int):
        self.required = required
        self.available = available
        super().__init__(
            f"Insufficient data: need {required} bars, have {available}"
        )


class DegenerateIndicatorError(SignalEngineError):
    """An indicator value needed for a decision is undefined."""


class MalformedInputError(SignalEngineError, ValueError):
    """Bar data is non-numeric, inconsistent or out of order."""


class AlreadyResolvedConflict(SignalEngineError):
    """A signal record already carries a terminal result."""

    def __init__(self, record_id: str, result: str):
        self.record_id = record_id
        self.result = result
        super().__init__(f"Signal {record_id} already resolved as {result}")
