"""
Grid Offset Model - fixed 3x3 sampling grid over the mirrored phone window.

The grid spans the full window width evenly across columns, but only a
vertical band of the window height (15%..85% by default) so the phone's
status bar and home indicator are never clicked.

Usage:
    from mirror_grid.grid_offsets import GridSpec, WindowRect, compute_grid_cells

    rect = WindowRect(x=100, y=50, width=300, height=600)
    cells = compute_grid_cells(rect.width, rect.height)
    # cells[0] == GridCell(col=1, row=1, rel_x=50, rel_y=160)
"""
from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from mirror_grid.errors import AutomationFailure

if TYPE_CHECKING:
    from mirror_grid.window_automation import WindowAutomation

logger = logging.getLogger(__name__)


def check_stopped(stop_event: threading.Event | None, step: str) -> None:
    """Raise AutomationFailure if the pass was abandoned by its caller."""
    if stop_event is not None and stop_event.is_set():
        logger.warning(f"[GRID] Pass stopped before {step}")
        raise AutomationFailure(f"Grid pass stopped before {step}")


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from negative infinity."""
    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class WindowRect:
    """On-screen position and size of the target window at capture time."""

    x: int
    y: int
    width: int
    height: int

    @property
    def position(self) -> tuple[int, int]:
        return (self.x, self.y)

    @property
    def size(self) -> tuple[int, int]:
        return (self.width, self.height)


@dataclass(frozen=True)
class GridSpec:
    """Sampling grid definition in fractional window coordinates."""

    rows: int = 3
    cols: int = 3
    start_fraction: float = 0.15
    end_fraction: float = 0.85

    def __post_init__(self) -> None:
        if self.rows < 1 or self.cols < 1:
            raise ValueError(f"Grid needs at least one row and column, got {self.rows}x{self.cols}")
        if not (0.0 <= self.start_fraction < self.end_fraction <= 1.0):
            raise ValueError(
                f"Invalid grid band: start={self.start_fraction} end={self.end_fraction} "
                "(need 0 <= start < end <= 1)"
            )

    @property
    def cell_count(self) -> int:
        return self.rows * self.cols


@dataclass(frozen=True)
class GridCell:
    """One sampled cell: 1-indexed col/row and offset from the window's top-left."""

    col: int
    row: int
    rel_x: int
    rel_y: int

    @property
    def key(self) -> tuple[int, int]:
        return (self.col, self.row)

    def absolute(self, rect: WindowRect) -> tuple[int, int]:
        """Screen coordinate of this cell for a window at `rect`."""
        return (rect.x + self.rel_x, rect.y + self.rel_y)


def relative_point(col_index: int, row_index: int, width: float, height: float,
                   spec: GridSpec = GridSpec()) -> tuple[float, float]:
    """
    Unrounded offset of a grid cell from the window's top-left corner.

    Args:
        col_index: 0-based column
        row_index: 0-based row
        width: Window width in pixels
        height: Window height in pixels
        spec: Grid definition

    Returns:
        Tuple of (rel_x, rel_y) as floats
    """
    rel_x = (col_index + 0.5) / spec.cols * width
    effective_height = height * (spec.end_fraction - spec.start_fraction)
    rel_y = spec.start_fraction * height + (row_index + 0.5) / spec.rows * effective_height
    return rel_x, rel_y


def compute_grid_cells(width: float, height: float, spec: GridSpec = GridSpec()) -> list[GridCell]:
    """
    Compute every grid cell for a window of the given size, row-major.

    Returns:
        List of rows*cols GridCell values with integer relative coordinates
    """
    cells = []
    for row_index in range(spec.rows):
        for col_index in range(spec.cols):
            rel_x, rel_y = relative_point(col_index, row_index, width, height, spec)
            cells.append(GridCell(
                col=col_index + 1,
                row=row_index + 1,
                rel_x=round_half_up(rel_x),
                rel_y=round_half_up(rel_y),
            ))
    return cells


def click_grid(
    automation: WindowAutomation,
    rect: WindowRect,
    spec: GridSpec = GridSpec(),
    click_repeat: int = 4,
    click_delay: float = 0.3,
    sleep: Callable[[float], None] = time.sleep,
    stop_event: threading.Event | None = None,
) -> list[GridCell]:
    """
    Click the centre of every grid cell on the live window.

    Each cell is clicked `click_repeat` times in a row (the mirroring window
    sometimes drops the first click after focus changes), then the pass
    waits `click_delay` seconds before moving on.

    Args:
        automation: Collaborator that performs the clicks
        rect: Window rectangle captured before the pass
        spec: Grid definition
        click_repeat: Clicks per cell
        click_delay: Settle delay after each cell (seconds)
        sleep: Injected for tests
        stop_event: Once set, no further click is sent

    Returns:
        The cells that were clicked, row-major

    Raises:
        AutomationFailure: Propagated from the click collaborator, or the
            pass was stopped through `stop_event`
    """
    cells = []
    for row_index in range(spec.rows):
        for col_index in range(spec.cols):
            check_stopped(stop_event, f"cell {col_index + 1},{row_index + 1}")
            rel_x, rel_y = relative_point(col_index, row_index, rect.width, rect.height, spec)
            abs_x = round_half_up(rect.x + rel_x)
            abs_y = round_half_up(rect.y + rel_y)
            for _ in range(max(1, click_repeat)):
                check_stopped(stop_event, f"click at ({abs_x}, {abs_y})")
                automation.click(abs_x, abs_y)
            logger.debug(f"[GRID] Cell {col_index + 1},{row_index + 1} clicked at ({abs_x}, {abs_y})")
            sleep(click_delay)
            cells.append(GridCell(
                col=col_index + 1,
                row=row_index + 1,
                rel_x=round_half_up(rel_x),
                rel_y=round_half_up(rel_y),
            ))

    logger.info(f"[GRID] Clicked {len(cells)} cells on window {rect.width}x{rect.height} at ({rect.x}, {rect.y})")
    return cells
