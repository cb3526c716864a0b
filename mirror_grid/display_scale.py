"""
Display scale mapping - relative window coordinates -> displayed image pixels.

The screenshot shown to the user is rarely rendered at the window's native
size, so X and Y get independent scale factors. Scales are recomputed from
the current rendered size every time; nothing is cached across resizes.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from mirror_grid.errors import InvalidWindowSize
from mirror_grid.grid_offsets import GridCell


@dataclass(frozen=True)
class DisplayedCell:
    """A cell's position on the displayed image, before any manual offset."""

    col: int
    row: int
    x: float
    y: float


class DisplayScaleMapper:
    """Maps cells of an OffsetRecord onto an image of a different size."""

    def __init__(self, window_size: tuple[int, int]):
        """
        Args:
            window_size: (width, height) of the window when the grid was sampled
        """
        self.window_size = (int(window_size[0]), int(window_size[1]))

    def scale_for(self, display_size: tuple[int, int]) -> tuple[float, float]:
        """
        Compute (scale_x, scale_y) for an image rendered at `display_size`.

        Raises:
            InvalidWindowSize: Window width or height is zero/negative
        """
        win_w, win_h = self.window_size
        if win_w <= 0 or win_h <= 0:
            raise InvalidWindowSize(
                f"Cannot scale to display: window size is ({win_w} x {win_h})"
            )
        disp_w, disp_h = display_size
        return disp_w / win_w, disp_h / win_h

    @staticmethod
    def map_cell(cell: GridCell, scale: tuple[float, float]) -> DisplayedCell:
        scale_x, scale_y = scale
        return DisplayedCell(col=cell.col, row=cell.row, x=cell.rel_x * scale_x, y=cell.rel_y * scale_y)

    def map_cells(self, cells: Iterable[GridCell], display_size: tuple[int, int]) -> list[DisplayedCell]:
        scale = self.scale_for(display_size)
        return [self.map_cell(cell, scale) for cell in cells]
