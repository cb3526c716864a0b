"""
Automation runner - runs blocking collaborator calls with a timeout.

Every automation step (window lookup, grid clicks, capture, file writes)
goes through `run_automation`, which waits for the call on a worker thread
and turns the outcome into an AutomationResult. Calibration errors and
timeouts become failure results; nothing escapes to terminate the process.

A timed-out call cannot be killed. Its worker thread is abandoned and its
eventual result ignored.
"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, TimeoutError as FutureTimeout
from dataclasses import dataclass, field
from typing import Any, Callable

from mirror_grid.errors import AutomationFailure, CalibrationError

logger = logging.getLogger(__name__)


@dataclass
class AutomationResult:
    """Structured outcome of one automation step."""

    success: bool
    message: str = ""
    data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, message: str = "", **data: Any) -> "AutomationResult":
        return cls(success=True, message=message, data=data)

    @classmethod
    def fail(cls, error: CalibrationError) -> "AutomationResult":
        return cls(success=False, message=error.status_message(), data={"error": error})

    @property
    def error(self) -> CalibrationError | None:
        return self.data.get("error")


def _call_in_thread(func: Callable[..., Any], args: tuple, kwargs: dict, name: str) -> Future:
    future: Future = Future()

    def worker() -> None:
        if not future.set_running_or_notify_cancel():
            return
        try:
            future.set_result(func(*args, **kwargs))
        except Exception as e:  # delivered to the waiting caller
            future.set_exception(e)

    threading.Thread(target=worker, name=f"automation-{name}", daemon=True).start()
    return future


def call_with_timeout(
    func: Callable[..., Any],
    *args: Any,
    timeout: float | None = None,
    description: str = "automation call",
    **kwargs: Any,
) -> Any:
    """
    Run `func` on a daemon worker thread and wait up to `timeout` seconds.

    Raises:
        AutomationFailure: The call did not finish in time
        Exception: Whatever `func` raised
    """
    future = _call_in_thread(func, args, kwargs, description.replace(" ", "_"))
    try:
        return future.result(timeout=timeout)
    except FutureTimeout:
        raise AutomationFailure(f"{description} did not finish within {timeout:g}s")


def run_automation(
    func: Callable[..., Any],
    *args: Any,
    timeout: float | None = None,
    description: str = "automation call",
    **kwargs: Any,
) -> AutomationResult:
    """
    Run a collaborator call and report the outcome as an AutomationResult.

    Successful calls return `AutomationResult.ok(value=<return value>)`.
    CalibrationError subclasses become failures with their status message;
    other exceptions are wrapped as AutomationFailure.
    """
    try:
        value = call_with_timeout(func, *args, timeout=timeout, description=description, **kwargs)
    except CalibrationError as e:
        logger.error(f"[AUTOMATION] {description}: {e.status_message()}")
        return AutomationResult.fail(e)
    except Exception as e:
        failure = AutomationFailure(f"{description} failed: {e}")
        logger.exception(f"[AUTOMATION] {description} raised")
        return AutomationResult.fail(failure)

    return AutomationResult.ok(value=value)
