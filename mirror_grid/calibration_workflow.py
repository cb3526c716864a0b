"""
Calibration workflow - the steps behind the calibrate_grid.py commands.

    take_screenshot()            capture the window into the screenshot folder
    run_grid_calibration()       click the 3x3 grid, write grid_offsets.txt,
                                 capture grid_screenshot.png
    load_offsets() / load_image()
    start_manual_calibration()   open the viewer and nudge/commit/cancel

Every step returns an AutomationResult and updates `status`; calibration
errors are reported, never raised to the caller.
"""
from __future__ import annotations

import logging
import threading
import time
from pathlib import Path
from typing import Any, Callable

from mirror_grid.automation_runner import AutomationResult, run_automation
from mirror_grid.calibration_session import ManualCalibrationSession
from mirror_grid.calibration_store import CalibrationStore
from mirror_grid.calibration_viewer import CalibrationViewer
from mirror_grid.errors import CalibrationError, InvalidWindowSize, NoCalibrationLoaded
from mirror_grid.grid_offsets import GridSpec, check_stopped, click_grid
from mirror_grid.offset_record import OffsetRecord
from mirror_grid.screenshot_store import ScreenshotStore
from mirror_grid.window_automation import WindowAutomation

logger = logging.getLogger(__name__)


class CalibrationWorkflow:
    """Owns the loaded offsets, the displayed image and the calibration session."""

    def __init__(
        self,
        automation: WindowAutomation,
        screenshots: ScreenshotStore,
        store: CalibrationStore,
        spec: GridSpec = GridSpec(),
        click_repeat: int = 4,
        click_delay: float = 0.3,
        call_timeout: float = 15.0,
        grid_timeout: float = 60.0,
        viewer_factory: Callable[..., Any] = CalibrationViewer,
        viewer_options: dict[str, Any] | None = None,
        on_status: Callable[[str], None] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.automation = automation
        self.screenshots = screenshots
        self.store = store
        self.spec = spec
        self.click_repeat = click_repeat
        self.click_delay = click_delay
        self.call_timeout = call_timeout
        self.grid_timeout = grid_timeout
        self.viewer_factory = viewer_factory
        self.viewer_options = viewer_options or {}
        self._on_status = on_status
        self._sleep = sleep

        self.session = ManualCalibrationSession(writer=store.write_calibrated_offsets)
        self.record: OffsetRecord | None = None
        self.image = None
        self.image_path: Path | None = None
        self.status = ""

    # =========================================================================
    # Status
    # =========================================================================

    def set_status(self, message: str) -> None:
        self.status = message
        if self._on_status:
            self._on_status(message)

    def _report(self, result: AutomationResult, success_message: str) -> AutomationResult:
        if result.success:
            result.message = success_message
            logger.info(f"[WORKFLOW] {success_message}")
        self.set_status(result.message)
        return result

    # =========================================================================
    # Screenshot
    # =========================================================================

    def take_screenshot(self) -> AutomationResult:
        """Capture the window into a new timestamped file in the screenshot folder."""
        path = self.screenshots.new_screenshot_path()
        result = run_automation(
            self.automation.capture_window, path,
            timeout=self.call_timeout, description="Screenshot",
        )
        if result.success:
            rect, saved = result.data.pop("value")
            result.data.update(screenshot_path=saved, window_rect=rect)
            return self._report(result, f"Screenshot saved: {saved}")
        return self._report(result, "")

    # =========================================================================
    # Automated grid pass
    # =========================================================================

    def _grid_pass(self, stop_event: threading.Event) -> tuple[OffsetRecord, Path, Path]:
        rect = self.automation.get_window_rect()
        cells = click_grid(
            self.automation, rect, self.spec,
            click_repeat=self.click_repeat, click_delay=self.click_delay, sleep=self._sleep,
            stop_event=stop_event,
        )
        record = OffsetRecord(window_size=rect.size, cells=cells, window_position=rect.position)
        check_stopped(stop_event, "writing offsets")
        log_file = self.store.write_offset_record(record)
        check_stopped(stop_event, "capturing the window")
        screenshot_file = Path(self.automation.capture_region(rect, self.store.grid_screenshot_path))
        return record, log_file, screenshot_file

    def run_grid_calibration(self) -> AutomationResult:
        """
        Click every grid cell, then save grid_offsets.txt and grid_screenshot.png.

        Runs as one blocking step: no partial record is produced on failure.
        A pass that times out is stopped before its next click, so nothing
        is clicked or written after the failure is reported.
        """
        self.store.ensure_directory()
        stop_event = threading.Event()
        result = run_automation(
            self._grid_pass, stop_event, timeout=self.grid_timeout, description="Grid calibration",
        )
        if not result.success:
            stop_event.set()
            return self._report(result, "")

        record, log_file, screenshot_file = result.data.pop("value")
        result.data.update(record=record, log_file=log_file, screenshot_file=screenshot_file)
        return self._report(result, f"Grid calibration done. Log={log_file} PNG={screenshot_file}")

    # =========================================================================
    # Loading
    # =========================================================================

    def load_offsets(self, path: Path | str | None = None) -> AutomationResult:
        """Load grid_offsets.txt (default path) into the session."""
        try:
            record = self.store.read_offset_record(path)
            if not record.has_valid_size():
                raise InvalidWindowSize(
                    f"No usable 'Window Size' line in {path or self.store.grid_offsets_path}"
                )
            self.session.load(record)
        except CalibrationError as e:
            return self._report(AutomationResult.fail(e), "")

        if len(record.cells) != self.spec.cell_count:
            logger.warning(f"[WORKFLOW] Expected {self.spec.cell_count} cells, loaded {len(record.cells)}")
        self.record = record
        return self._report(
            AutomationResult.ok(record=record),
            f"Loaded {len(record.cells)} cells for window {record.width}x{record.height}",
        )

    def load_image(self, path: Path | str | None = None) -> AutomationResult:
        """Load the displayed image (default: grid_screenshot.png)."""
        source = Path(path) if path is not None else self.store.grid_screenshot_path
        try:
            image, (width, height) = self.screenshots.read(source)
        except FileNotFoundError as e:
            return self._report(AutomationResult.fail(NoCalibrationLoaded(str(e))), "")
        self.image = image
        self.image_path = source
        return self._report(AutomationResult.ok(image_size=(width, height)), f"Focused: {source}, size: {width}x{height}")

    # =========================================================================
    # Manual calibration
    # =========================================================================

    def start_manual_calibration(self) -> AutomationResult:
        """
        Run the interactive viewer until the user commits or cancels.

        Refused with NoCalibrationLoaded when no offsets or image are loaded.
        """
        if self.record is None or not self.record.cells or self.image is None:
            return self._report(AutomationResult.fail(NoCalibrationLoaded()), "")

        viewer = self.viewer_factory(self.session, self.image, on_status=self.set_status, **self.viewer_options)
        try:
            final = viewer.run()
        except CalibrationError as e:
            return self._report(AutomationResult.fail(e), "")

        if final is None:
            return self._report(AutomationResult.ok(committed=None), "Canceled calibration.")
        return self._report(
            AutomationResult.ok(committed=final, path=self.store.calibrated_offsets_path),
            f"Saved {self.store.calibrated_offsets_path}. Done!",
        )

    def run_full_calibration(self) -> AutomationResult:
        """Grid pass, load its outputs, then manual calibration."""
        for step in (self.run_grid_calibration, self.load_offsets, self.load_image):
            result = step()
            if not result.success:
                return result
        return self.start_manual_calibration()
