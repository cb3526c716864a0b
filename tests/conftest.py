"""
Pytest configuration and shared fixtures for mirror grid calibration tests.
"""
from __future__ import annotations

import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any, Generator
from unittest.mock import MagicMock

import numpy as np
import pytest

# Add project root to path so imports work
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from mirror_grid.calibration_store import CalibrationStore  # noqa: E402
from mirror_grid.grid_offsets import GridCell, WindowRect  # noqa: E402
from mirror_grid.offset_record import OffsetRecord  # noqa: E402

if TYPE_CHECKING:
    import numpy.typing as npt


# =============================================================================
# Frame Fixtures
# =============================================================================

@pytest.fixture
def sample_frame() -> npt.NDArray[np.uint8]:
    """Black phone-sized frame (300x600 BGR)."""
    return np.zeros((600, 300, 3), dtype=np.uint8)


@pytest.fixture
def gray_frame() -> npt.NDArray[np.uint8]:
    """Mid-gray phone-sized frame, so dimming is measurable."""
    return np.full((600, 300, 3), 200, dtype=np.uint8)


# =============================================================================
# Automation Mock Fixtures
# =============================================================================

@pytest.fixture
def window_rect() -> WindowRect:
    return WindowRect(x=100, y=50, width=300, height=600)


@pytest.fixture
def mock_automation(window_rect: WindowRect) -> MagicMock:
    """Mock WindowAutomation that tracks every click and capture."""
    automation = MagicMock()
    automation.window_title = "iPhone Mirroring"
    automation.get_window_rect = MagicMock(return_value=window_rect)
    automation.click = MagicMock(return_value=None)

    def _capture(rect: WindowRect, output_path: Any) -> str:
        # Write a real PNG so later steps can load it
        import cv2
        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        cv2.imwrite(str(path), np.full((rect.height, rect.width, 3), 128, dtype=np.uint8))
        return str(path)

    automation.capture_region = MagicMock(side_effect=_capture)
    automation.capture_window = MagicMock(
        side_effect=lambda output_path: (window_rect, _capture(window_rect, output_path))
    )
    return automation


# =============================================================================
# Calibration Data Fixtures
# =============================================================================

@pytest.fixture
def calibration_store(tmp_path: Path) -> CalibrationStore:
    """CalibrationStore in a temporary directory."""
    return CalibrationStore(tmp_path / "calibration")


@pytest.fixture
def sample_record() -> OffsetRecord:
    """Offsets from a 300x600 window with the default grid."""
    cells = [
        GridCell(col=col, row=row, rel_x=rel_x, rel_y=rel_y)
        for row, rel_y in ((1, 160), (2, 300), (3, 440))
        for col, rel_x in ((1, 50), (2, 150), (3, 250))
    ]
    return OffsetRecord(window_size=(300, 600), cells=cells, window_position=(100, 50))


@pytest.fixture
def writer_mock() -> MagicMock:
    """Stands in for CalibrationStore.write_calibrated_offsets."""
    return MagicMock(return_value=Path("calibrated_offsets.txt"))


# =============================================================================
# Time Mock Fixtures
# =============================================================================

@pytest.fixture
def freeze_time_2025() -> Generator[None, None, None]:
    """Freeze time to 2025-12-09 06:05:53."""
    from freezegun import freeze_time
    with freeze_time("2025-12-09 06:05:53"):
        yield
