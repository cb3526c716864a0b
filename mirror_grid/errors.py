"""
Error kinds raised by the calibration core and its collaborators.

Every error carries a short `kind` label used when building the status
message shown to the user ("<kind>: <message>").
"""
from __future__ import annotations


class CalibrationError(Exception):
    """Base class for all calibration errors."""

    kind = "Calibration error"

    def status_message(self) -> str:
        return f"{self.kind}: {self}"


class AutomationFailure(CalibrationError):
    """Window geometry, click or capture call failed (or timed out)."""

    kind = "Automation failure"


class NoCalibrationLoaded(CalibrationError):
    """Manual calibration requested without offsets and a displayed image."""

    kind = "No calibration loaded"

    def __init__(self, message: str = "No offsets loaded. Run the grid calibration or load offsets first."):
        super().__init__(message)


class InvalidWindowSize(CalibrationError):
    """Window size missing or zero, so display scaling is undefined."""

    kind = "Invalid window size"


class PersistenceFailure(CalibrationError):
    """Writing one of the calibration text files failed."""

    kind = "Persistence failure"
