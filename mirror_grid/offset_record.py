"""
Offset record text format - output of the automated grid pass.

Example file (grid_offsets.txt):

    Grid Click Offsets:
    Window Position: (812, 44)
    Window Size: (344 x 764)

    Cell 1,1: Relative (57, 204) / Absolute (869, 248)
    Cell 2,1: Relative (172, 204) / Absolute (984, 248)
    ...

Parsing is tolerant: only the window size line and the `Relative (...)`
part of each cell line are required. Unrelated lines are skipped and
order does not matter, so log headers or hand edits do not break loading.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable

from mirror_grid.errors import InvalidWindowSize
from mirror_grid.grid_offsets import GridCell

TITLE_LINE = "Grid Click Offsets:"

WINDOW_SIZE_RE = re.compile(r"Window Size:\s*\((\d+)\s*x\s*(\d+)\)")
WINDOW_POSITION_RE = re.compile(r"Window Position:\s*\((-?\d+),\s*(-?\d+)\)")
CELL_RE = re.compile(r"Cell\s+(\d+),(\d+):.*Relative\s*\((\d+),\s*(\d+)\)")


@dataclass(frozen=True)
class OffsetRecord:
    """Window size at capture time plus the relative coordinate of each cell."""

    window_size: tuple[int, int]
    cells: tuple[GridCell, ...] = field(default_factory=tuple)
    window_position: tuple[int, int] | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "window_size", tuple(self.window_size))
        object.__setattr__(self, "cells", tuple(self.cells))
        if self.window_position is not None:
            object.__setattr__(self, "window_position", tuple(self.window_position))

    @property
    def width(self) -> int:
        return self.window_size[0]

    @property
    def height(self) -> int:
        return self.window_size[1]

    def has_valid_size(self) -> bool:
        return self.width > 0 and self.height > 0

    def cell(self, col: int, row: int) -> GridCell | None:
        for cell in self.cells:
            if cell.key == (col, row):
                return cell
        return None

    def validate(self, expected_cells: int | None = None) -> None:
        """
        Check the record is usable for calibration.

        Args:
            expected_cells: Required number of cells (None = at least one)

        Raises:
            InvalidWindowSize: Window size missing or zero
            ValueError: Cell count does not match
        """
        if not self.has_valid_size():
            raise InvalidWindowSize(
                f"Window size is ({self.width} x {self.height}); offsets file has no usable 'Window Size' line"
            )
        if expected_cells is None:
            if not self.cells:
                raise ValueError("Offsets record contains no cells")
        elif len(self.cells) != expected_cells:
            raise ValueError(f"Expected {expected_cells} cells, found {len(self.cells)}")


def format_offset_record(record: OffsetRecord) -> str:
    """
    Serialize an OffsetRecord to the grid_offsets.txt layout.

    The `Window Position` header and `Absolute (...)` annotations are only
    written when the record knows where the window was.
    """
    lines = [TITLE_LINE]
    if record.window_position is not None:
        pos_x, pos_y = record.window_position
        lines.append(f"Window Position: ({pos_x}, {pos_y})")
    lines.append(f"Window Size: ({record.width} x {record.height})")
    lines.append("")

    for cell in record.cells:
        line = f"Cell {cell.col},{cell.row}: Relative ({cell.rel_x}, {cell.rel_y})"
        if record.window_position is not None:
            pos_x, pos_y = record.window_position
            line += f" / Absolute ({pos_x + cell.rel_x}, {pos_y + cell.rel_y})"
        lines.append(line)

    return "\n".join(lines) + "\n"


def _find_window_size(lines: Iterable[str]) -> tuple[int, int]:
    size = (0, 0)
    for line in lines:
        match = WINDOW_SIZE_RE.search(line)
        if match:
            size = (int(match.group(1)), int(match.group(2)))
    return size


def _find_window_position(lines: Iterable[str]) -> tuple[int, int] | None:
    position = None
    for line in lines:
        match = WINDOW_POSITION_RE.search(line)
        if match:
            position = (int(match.group(1)), int(match.group(2)))
    return position


def _find_cells(lines: Iterable[str]) -> list[GridCell]:
    cells: dict[tuple[int, int], GridCell] = {}
    for line in lines:
        match = CELL_RE.search(line)
        if not match:
            continue
        col, row, rel_x, rel_y = (int(g) for g in match.groups())
        # Later lines replace earlier ones for the same cell
        cells[(col, row)] = GridCell(col=col, row=row, rel_x=rel_x, rel_y=rel_y)
    return list(cells.values())


def parse_offset_record(text: str) -> OffsetRecord:
    """
    Parse grid_offsets.txt content.

    Two independent passes: the window size (and optional position) first,
    then every cell line. Missing window size yields (0, 0); callers should
    run `OffsetRecord.validate()` before scaling.
    """
    lines = re.split(r"\r?\n", text)
    return OffsetRecord(
        window_size=_find_window_size(lines),
        cells=tuple(_find_cells(lines)),
        window_position=_find_window_position(lines),
    )
