"""
Unit tests for mirror_grid/calibration_workflow.py

Tests the end-to-end steps with a mock automation backend and a scripted
viewer standing in for the OpenCV window.
"""
from __future__ import annotations

import threading
from pathlib import Path
from typing import Any, Callable
from unittest.mock import MagicMock

import pytest

from mirror_grid.calibration_session import Command, ManualCalibrationSession
from mirror_grid.calibration_store import CalibrationStore
from mirror_grid.calibration_workflow import CalibrationWorkflow
from mirror_grid.errors import AutomationFailure, InvalidWindowSize, NoCalibrationLoaded
from mirror_grid.screenshot_store import ScreenshotStore


class ScriptedViewer:
    """Begins the session, replays commands, and returns like CalibrationViewer.run()."""

    created: list["ScriptedViewer"] = []

    def __init__(self, session: ManualCalibrationSession, image: Any, commands: list[Command],
                 on_status: Callable[[str], None] | None = None, **options: Any):
        self.session = session
        self.image = image
        self.commands = commands
        self.on_status = on_status
        self.options = options
        ScriptedViewer.created.append(self)

    def run(self):
        height, width = self.image.shape[:2]
        self.session.begin((width, height))
        for command in self.commands:
            final = self.session.handle(command)
            if command is Command.COMMIT:
                return final
            if command is Command.CANCEL:
                return None
        return None


def scripted(*commands: Command) -> Callable[..., ScriptedViewer]:
    def factory(session, image, **kwargs):
        return ScriptedViewer(session, image, list(commands), **kwargs)
    return factory


@pytest.fixture
def make_workflow(
    mock_automation: MagicMock, calibration_store: CalibrationStore, tmp_path: Path
) -> Callable[..., CalibrationWorkflow]:
    ScriptedViewer.created = []

    def _make(viewer_factory: Callable[..., Any] = scripted(Command.COMMIT), **kwargs: Any) -> CalibrationWorkflow:
        return CalibrationWorkflow(
            automation=mock_automation,
            screenshots=ScreenshotStore(tmp_path / "screenshots"),
            store=calibration_store,
            viewer_factory=viewer_factory,
            sleep=MagicMock(),
            **kwargs,
        )
    return _make


# =============================================================================
# Test 1: Screenshot
# =============================================================================

class TestTakeScreenshot:

    def test_saves_timestamped_capture(
        self, make_workflow: Callable[..., CalibrationWorkflow], tmp_path: Path, freeze_time_2025: None
    ) -> None:
        workflow = make_workflow()

        result = workflow.take_screenshot()

        expected = tmp_path / "screenshots" / "screenshot_20251209_060553.png"
        assert result.success
        assert Path(result.data["screenshot_path"]) == expected
        assert expected.exists()
        assert workflow.status == f"Screenshot saved: {expected}"

    def test_capture_failure(self, make_workflow: Callable[..., CalibrationWorkflow], mock_automation: MagicMock) -> None:
        mock_automation.capture_window.side_effect = AutomationFailure("window not found")
        workflow = make_workflow()

        result = workflow.take_screenshot()

        assert not result.success
        assert workflow.status == "Automation failure: window not found"


# =============================================================================
# Test 2: Automated Grid Pass
# =============================================================================

class TestRunGridCalibration:

    def test_writes_offsets_and_screenshot(
        self, make_workflow: Callable[..., CalibrationWorkflow], mock_automation: MagicMock,
        calibration_store: CalibrationStore
    ) -> None:
        workflow = make_workflow()

        result = workflow.run_grid_calibration()

        assert result.success
        assert mock_automation.click.call_count == 36
        assert calibration_store.grid_offsets_path.exists()
        assert calibration_store.grid_screenshot_path.exists()
        text = calibration_store.grid_offsets_path.read_text()
        assert "Window Position: (100, 50)" in text
        assert "Cell 1,1: Relative (50, 160) / Absolute (150, 210)" in text
        assert result.message.startswith("Grid calibration done. Log=")

    def test_window_lookup_failure_writes_nothing(
        self, make_workflow: Callable[..., CalibrationWorkflow], mock_automation: MagicMock,
        calibration_store: CalibrationStore
    ) -> None:
        mock_automation.get_window_rect.side_effect = AutomationFailure("process not running")
        workflow = make_workflow()

        result = workflow.run_grid_calibration()

        assert not result.success
        assert isinstance(result.error, AutomationFailure)
        assert not calibration_store.grid_offsets_path.exists()
        mock_automation.click.assert_not_called()

    def test_timed_out_pass_stops_clicking_and_writes_nothing(
        self, make_workflow: Callable[..., CalibrationWorkflow], mock_automation: MagicMock,
        calibration_store: CalibrationStore
    ) -> None:
        """The abandoned worker sends no more clicks and never writes the record."""
        release = threading.Event()

        def slow_click(x: int, y: int) -> None:
            # Hang on the first click of the second cell until released
            if mock_automation.click.call_count == 5:
                release.wait(5)

        mock_automation.click.side_effect = slow_click
        workflow = make_workflow(grid_timeout=0.05)

        result = workflow.run_grid_calibration()
        clicks_at_failure = mock_automation.click.call_count

        release.set()
        for thread in threading.enumerate():
            if thread.name.startswith("automation-Grid"):
                thread.join(timeout=5)

        assert not result.success
        assert workflow.status == "Automation failure: Grid calibration did not finish within 0.05s"
        assert clicks_at_failure == 5
        assert mock_automation.click.call_count == 5
        assert not calibration_store.grid_offsets_path.exists()
        assert not calibration_store.grid_screenshot_path.exists()
        mock_automation.capture_region.assert_not_called()


# =============================================================================
# Test 3: Loading
# =============================================================================

class TestLoading:

    def test_load_missing_offsets(self, make_workflow: Callable[..., CalibrationWorkflow]) -> None:
        workflow = make_workflow()

        result = workflow.load_offsets()

        assert not result.success
        assert isinstance(result.error, NoCalibrationLoaded)
        assert workflow.record is None

    def test_load_offsets_without_window_size(
        self, make_workflow: Callable[..., CalibrationWorkflow], tmp_path: Path
    ) -> None:
        path = tmp_path / "bad_offsets.txt"
        path.write_text("Cell 1,1: Relative (5, 7)\n")
        workflow = make_workflow()

        result = workflow.load_offsets(path)

        assert not result.success
        assert isinstance(result.error, InvalidWindowSize)
        assert workflow.status.startswith("Invalid window size:")

    def test_load_image_missing(self, make_workflow: Callable[..., CalibrationWorkflow]) -> None:
        result = make_workflow().load_image()

        assert not result.success
        assert isinstance(result.error, NoCalibrationLoaded)


# =============================================================================
# Test 4: Manual Calibration
# =============================================================================

class TestManualCalibration:

    def test_refused_without_offsets(self, make_workflow: Callable[..., CalibrationWorkflow]) -> None:
        factory = MagicMock()
        workflow = make_workflow(viewer_factory=factory)

        result = workflow.start_manual_calibration()

        assert not result.success
        assert workflow.status == (
            "No calibration loaded: No offsets loaded. Run the grid calibration or load offsets first."
        )
        factory.assert_not_called()

    def test_grid_then_commit(
        self, make_workflow: Callable[..., CalibrationWorkflow], calibration_store: CalibrationStore
    ) -> None:
        workflow = make_workflow(
            viewer_factory=scripted(Command.MOVE_RIGHT, Command.MOVE_DOWN, Command.MOVE_DOWN, Command.COMMIT),
            viewer_options={"window_name": "Grid Calibration"},
        )

        assert workflow.run_grid_calibration().success
        assert workflow.load_offsets().success
        assert workflow.load_image().success
        result = workflow.start_manual_calibration()

        assert result.success
        assert result.data["path"] == calibration_store.calibrated_offsets_path
        text = calibration_store.calibrated_offsets_path.read_text()
        assert text.startswith("Window Size: (300 x 600)\nCell 1,1: (51, 162)\n")
        assert ScriptedViewer.created[-1].options == {"window_name": "Grid Calibration"}

    def test_cancel_writes_nothing(
        self, make_workflow: Callable[..., CalibrationWorkflow], calibration_store: CalibrationStore
    ) -> None:
        workflow = make_workflow(viewer_factory=scripted(Command.MOVE_LEFT, Command.CANCEL))

        result = workflow.run_full_calibration()

        assert result.success
        assert result.data["committed"] is None
        assert workflow.status == "Canceled calibration."
        assert not calibration_store.calibrated_offsets_path.exists()

    def test_full_calibration_stops_at_first_failure(
        self, make_workflow: Callable[..., CalibrationWorkflow], mock_automation: MagicMock
    ) -> None:
        mock_automation.get_window_rect.side_effect = AutomationFailure("process not running")
        factory = MagicMock()
        workflow = make_workflow(viewer_factory=factory)

        result = workflow.run_full_calibration()

        assert not result.success
        factory.assert_not_called()

    def test_status_callback(self, make_workflow: Callable[..., CalibrationWorkflow]) -> None:
        statuses = []
        workflow = make_workflow(on_status=statuses.append)

        workflow.start_manual_calibration()

        assert statuses == [workflow.status]
