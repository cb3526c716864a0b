"""
Unit tests for mirror_grid/calibration_store.py

Tests the atomic writers and the read error mapping.
"""
from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from mirror_grid.calibrated_offsets import FinalCell, FinalOffsetRecord
from mirror_grid.calibration_store import CalibrationStore
from mirror_grid.errors import NoCalibrationLoaded, PersistenceFailure
from mirror_grid.offset_record import OffsetRecord


@pytest.fixture
def final_record() -> FinalOffsetRecord:
    return FinalOffsetRecord(window_size=(300, 600), cells=[FinalCell(1, 1, 101, 320)])


# =============================================================================
# Test 1: Writing
# =============================================================================

class TestWrite:

    def test_write_offset_record_creates_directory(
        self, calibration_store: CalibrationStore, sample_record: OffsetRecord
    ) -> None:
        path = calibration_store.write_offset_record(sample_record)

        assert path == calibration_store.grid_offsets_path
        assert path.read_text(encoding="utf-8").startswith("Grid Click Offsets:\n")

    def test_write_overwrites(self, calibration_store: CalibrationStore, final_record: FinalOffsetRecord) -> None:
        calibration_store.ensure_directory()
        calibration_store.calibrated_offsets_path.write_text("old content that is much longer\n" * 20)

        calibration_store.write_calibrated_offsets(final_record)

        assert calibration_store.calibrated_offsets_path.read_text(encoding="utf-8") == (
            "Window Size: (300 x 600)\nCell 1,1: (101, 320)\n"
        )

    def test_no_temp_files_left(self, calibration_store: CalibrationStore, final_record: FinalOffsetRecord) -> None:
        calibration_store.write_calibrated_offsets(final_record)

        names = [p.name for p in calibration_store.directory.iterdir()]
        assert names == ["calibrated_offsets.txt"]

    def test_failed_replace_keeps_old_file(
        self, calibration_store: CalibrationStore, final_record: FinalOffsetRecord
    ) -> None:
        calibration_store.ensure_directory()
        calibration_store.calibrated_offsets_path.write_text("previous\n")

        with patch("mirror_grid.calibration_store.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(PersistenceFailure, match="disk full"):
                calibration_store.write_calibrated_offsets(final_record)

        assert calibration_store.calibrated_offsets_path.read_text() == "previous\n"
        assert len(list(calibration_store.directory.iterdir())) == 1

    def test_unwritable_directory(self, tmp_path: Path, final_record: FinalOffsetRecord) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("a file, not a directory")
        store = CalibrationStore(blocker / "calibration")

        with pytest.raises(PersistenceFailure):
            store.write_calibrated_offsets(final_record)


# =============================================================================
# Test 2: Reading
# =============================================================================

class TestRead:

    def test_read_back(
        self, calibration_store: CalibrationStore, sample_record: OffsetRecord, final_record: FinalOffsetRecord
    ) -> None:
        calibration_store.write_offset_record(sample_record)
        calibration_store.write_calibrated_offsets(final_record)

        assert calibration_store.read_offset_record() == sample_record
        assert calibration_store.read_calibrated_offsets() == final_record

    def test_read_explicit_path(self, tmp_path: Path) -> None:
        path = tmp_path / "other.txt"
        path.write_text("Window Size: (10 x 20)\nCell 1,1: Relative (5, 7)\n")

        record = CalibrationStore(tmp_path / "unused").read_offset_record(path)

        assert record.window_size == (10, 20)

    def test_missing_file(self, calibration_store: CalibrationStore) -> None:
        with pytest.raises(NoCalibrationLoaded, match="File not found"):
            calibration_store.read_offset_record()

    def test_directory_instead_of_file(self, tmp_path: Path) -> None:
        (tmp_path / "grid_offsets.txt").mkdir()

        with pytest.raises(PersistenceFailure):
            CalibrationStore(tmp_path).read_offset_record()
