"""Business services."""

from app.services.signal_service import (
    EmissionResult,
    SignalService,
    VerificationRun,
)

__all__ = [
    "EmissionResult",
    "SignalService",
    "VerificationRun",
]
