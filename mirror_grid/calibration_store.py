"""
Calibration file store - the well-known files under the calibration directory.

    grid_offsets.txt        written by the automated grid pass
    grid_screenshot.png     window capture taken right after the grid pass
    calibrated_offsets.txt  written when manual calibration is committed

Writes are atomic (temp file + rename) and always overwrite the previous
file, so a failed commit never leaves a half-written table behind.
"""
from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from mirror_grid.calibrated_offsets import (
    FinalOffsetRecord,
    format_calibrated_offsets,
    parse_calibrated_offsets,
)
from mirror_grid.errors import NoCalibrationLoaded, PersistenceFailure
from mirror_grid.offset_record import OffsetRecord, format_offset_record, parse_offset_record

logger = logging.getLogger(__name__)

GRID_OFFSETS_NAME = "grid_offsets.txt"
GRID_SCREENSHOT_NAME = "grid_screenshot.png"
CALIBRATED_OFFSETS_NAME = "calibrated_offsets.txt"


class CalibrationStore:
    """Reads and writes the calibration text files in one directory."""

    def __init__(self, directory: Path | str):
        self.directory = Path(directory)

    @property
    def grid_offsets_path(self) -> Path:
        return self.directory / GRID_OFFSETS_NAME

    @property
    def grid_screenshot_path(self) -> Path:
        return self.directory / GRID_SCREENSHOT_NAME

    @property
    def calibrated_offsets_path(self) -> Path:
        return self.directory / CALIBRATED_OFFSETS_NAME

    def ensure_directory(self) -> Path:
        self.directory.mkdir(parents=True, exist_ok=True)
        return self.directory

    # =========================================================================
    # Writing
    # =========================================================================

    def _write_atomic(self, path: Path, text: str) -> Path:
        """
        Replace `path` with `text` in one step.

        Raises:
            PersistenceFailure: Directory or file could not be written
        """
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(dir=path.parent, prefix=f"{path.stem}_", suffix=".tmp")
        except OSError as e:
            raise PersistenceFailure(f"Could not write {path}: {e}") from e

        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
                f.write(text)
            os.replace(temp_path, path)
        except OSError as e:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            raise PersistenceFailure(f"Could not write {path}: {e}") from e

        logger.info(f"[STORE] Wrote {path}")
        return path

    def write_offset_record(self, record: OffsetRecord) -> Path:
        return self._write_atomic(self.grid_offsets_path, format_offset_record(record))

    def write_calibrated_offsets(self, record: FinalOffsetRecord) -> Path:
        return self._write_atomic(self.calibrated_offsets_path, format_calibrated_offsets(record))

    # =========================================================================
    # Reading
    # =========================================================================

    @staticmethod
    def _read_text(path: Path) -> str:
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise NoCalibrationLoaded(f"File not found: {path}") from e
        except OSError as e:
            raise PersistenceFailure(f"Could not read {path}: {e}") from e

    def read_offset_record(self, path: Path | str | None = None) -> OffsetRecord:
        """Load grid_offsets.txt (or another file in the same format)."""
        source = Path(path) if path is not None else self.grid_offsets_path
        record = parse_offset_record(self._read_text(source))
        logger.info(
            f"[STORE] Loaded {len(record.cells)} cells, window {record.width}x{record.height} from {source}"
        )
        return record

    def read_calibrated_offsets(self, path: Path | str | None = None) -> FinalOffsetRecord:
        source = Path(path) if path is not None else self.calibrated_offsets_path
        return parse_calibrated_offsets(self._read_text(source))
