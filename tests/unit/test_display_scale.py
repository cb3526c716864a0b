"""
Unit tests for mirror_grid/display_scale.py
"""
from __future__ import annotations

import pytest

from mirror_grid.display_scale import DisplayedCell, DisplayScaleMapper
from mirror_grid.errors import InvalidWindowSize
from mirror_grid.grid_offsets import GridCell


class TestDisplayScaleMapper:
    """Window coordinates -> displayed image coordinates."""

    def test_independent_axis_scales(self) -> None:
        mapper = DisplayScaleMapper((300, 600))
        assert mapper.scale_for((600, 900)) == (2.0, 1.5)

    def test_map_cells(self) -> None:
        mapper = DisplayScaleMapper((300, 600))
        cells = [GridCell(1, 1, 50, 160), GridCell(3, 3, 250, 440)]

        shown = mapper.map_cells(cells, (150, 300))

        assert shown == [DisplayedCell(1, 1, 25.0, 80.0), DisplayedCell(3, 3, 125.0, 220.0)]

    def test_same_size_is_identity(self) -> None:
        mapper = DisplayScaleMapper((344, 764))
        shown = mapper.map_cells([GridCell(2, 2, 172, 382)], (344, 764))
        assert shown == [DisplayedCell(2, 2, 172.0, 382.0)]

    @pytest.mark.parametrize("window_size", [(0, 600), (300, 0), (0, 0)])
    def test_zero_window_size_raises(self, window_size: tuple[int, int]) -> None:
        mapper = DisplayScaleMapper(window_size)

        with pytest.raises(InvalidWindowSize):
            mapper.scale_for((300, 600))
