"""
Calibrated offsets text format - the final per-cell click table.

Example file (calibrated_offsets.txt):

    Window Size: (344 x 764)
    Cell 1,1: (115, 409)
    Cell 2,1: (345, 409)
    ...
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field

WINDOW_SIZE_RE = re.compile(r"Window Size:\s*\((\d+)\s*x\s*(\d+)\)")
FINAL_CELL_RE = re.compile(r"Cell\s+(\d+),(\d+):\s*\((-?\d+),\s*(-?\d+)\)")


@dataclass(frozen=True)
class FinalCell:
    col: int
    row: int
    x: int
    y: int


@dataclass(frozen=True)
class FinalOffsetRecord:
    """Committed coordinates for each grid cell."""

    window_size: tuple[int, int]
    cells: tuple[FinalCell, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "window_size", tuple(self.window_size))
        object.__setattr__(self, "cells", tuple(self.cells))

    def cell(self, col: int, row: int) -> FinalCell | None:
        for cell in self.cells:
            if (cell.col, cell.row) == (col, row):
                return cell
        return None


def format_calibrated_offsets(record: FinalOffsetRecord) -> str:
    width, height = record.window_size
    lines = [f"Window Size: ({width} x {height})"]
    for cell in record.cells:
        lines.append(f"Cell {cell.col},{cell.row}: ({cell.x}, {cell.y})")
    return "\n".join(lines) + "\n"


def parse_calibrated_offsets(text: str) -> FinalOffsetRecord:
    """Read calibrated_offsets.txt back; unrelated lines are skipped."""
    window_size = (0, 0)
    cells: dict[tuple[int, int], FinalCell] = {}
    for line in re.split(r"\r?\n", text):
        size_match = WINDOW_SIZE_RE.search(line)
        if size_match:
            window_size = (int(size_match.group(1)), int(size_match.group(2)))
            continue
        cell_match = FINAL_CELL_RE.search(line)
        if cell_match:
            col, row, x, y = (int(g) for g in cell_match.groups())
            cells[(col, row)] = FinalCell(col=col, row=row, x=x, y=y)
    return FinalOffsetRecord(window_size=window_size, cells=tuple(cells.values()))
