"""
Manual calibration session - keyboard nudging on top of the scaled grid.

Phases:
    IDLE -> ACTIVE -> COMMITTED | CANCELLED

While ACTIVE, each nudge shifts every displayed cell by one pixel along one
axis. Commit turns the displayed positions into the final click table and
hands it to the writer; cancel throws the offset away. The session state is
an immutable CalibrationSessionState value, replaced on every transition and
passed to listeners (the overlay redraws from it).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable

from mirror_grid.calibrated_offsets import FinalCell, FinalOffsetRecord
from mirror_grid.display_scale import DisplayedCell, DisplayScaleMapper
from mirror_grid.errors import NoCalibrationLoaded, PersistenceFailure
from mirror_grid.grid_offsets import GridCell, round_half_up
from mirror_grid.offset_record import OffsetRecord

logger = logging.getLogger(__name__)


class SessionPhase(Enum):
    IDLE = "idle"
    ACTIVE = "active"
    COMMITTED = "committed"
    CANCELLED = "cancelled"


class Command(Enum):
    """The six user commands accepted during manual calibration."""

    MOVE_UP = "move_up"
    MOVE_DOWN = "move_down"
    MOVE_LEFT = "move_left"
    MOVE_RIGHT = "move_right"
    COMMIT = "commit"
    CANCEL = "cancel"


NUDGE_DELTAS = {
    Command.MOVE_UP: (0, -1),
    Command.MOVE_DOWN: (0, 1),
    Command.MOVE_LEFT: (-1, 0),
    Command.MOVE_RIGHT: (1, 0),
}


@dataclass(frozen=True)
class CalibrationSessionState:
    """Everything the overlay needs to draw the current calibration."""

    active: bool = False
    manual_offset: tuple[int, int] = (0, 0)
    scale: tuple[float, float] = (1.0, 1.0)
    cells: tuple[GridCell, ...] = field(default_factory=tuple)

    @property
    def displayed_cells(self) -> list[DisplayedCell]:
        """Cell positions on the displayed image, manual offset included."""
        dx, dy = self.manual_offset
        result = []
        for cell in self.cells:
            shown = DisplayScaleMapper.map_cell(cell, self.scale)
            result.append(DisplayedCell(col=shown.col, row=shown.row, x=shown.x + dx, y=shown.y + dy))
        return result


IDLE_STATE = CalibrationSessionState()


def apply_nudge(state: CalibrationSessionState, command: Command) -> CalibrationSessionState:
    """Return `state` shifted by one pixel in the direction of `command`."""
    step_x, step_y = NUDGE_DELTAS[command]
    dx, dy = state.manual_offset
    return replace(state, manual_offset=(dx + step_x, dy + step_y))


def final_cells(state: CalibrationSessionState) -> list[FinalCell]:
    """Round the displayed positions into integer click coordinates."""
    scale_x, scale_y = state.scale
    dx, dy = state.manual_offset
    return [
        FinalCell(
            col=cell.col,
            row=cell.row,
            x=round_half_up(cell.rel_x * scale_x + dx),
            y=round_half_up(cell.rel_y * scale_y + dy),
        )
        for cell in state.cells
    ]


StateListener = Callable[[CalibrationSessionState], None]
RecordWriter = Callable[[FinalOffsetRecord], object]


class ManualCalibrationSession:
    """
    One interactive calibration over a loaded OffsetRecord.

    Events are handled one at a time by the caller's loop; the session itself
    holds no locks.
    """

    def __init__(self, writer: RecordWriter, record: OffsetRecord | None = None):
        """
        Args:
            writer: Persists the committed table (e.g. CalibrationStore.write_calibrated_offsets)
            record: Offsets loaded from the grid pass, if already available
        """
        self._writer = writer
        self._listeners: list[StateListener] = []
        self.record = record
        self.phase = SessionPhase.IDLE
        self.state = IDLE_STATE
        self.last_committed: FinalOffsetRecord | None = None

    # =========================================================================
    # Listeners
    # =========================================================================

    def add_listener(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: StateListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _set_state(self, state: CalibrationSessionState) -> None:
        self.state = state
        for listener in self._listeners:
            listener(state)

    # =========================================================================
    # Transitions
    # =========================================================================

    @property
    def is_active(self) -> bool:
        return self.phase is SessionPhase.ACTIVE

    def load(self, record: OffsetRecord) -> None:
        """Replace the offsets used by the next session."""
        if self.is_active:
            raise RuntimeError("Cannot load new offsets while calibration is active")
        self.record = record

    def reset(self) -> None:
        """Return a finished session to IDLE."""
        if self.is_active:
            raise RuntimeError("Cannot reset while calibration is active; commit or cancel first")
        self.phase = SessionPhase.IDLE
        self._set_state(IDLE_STATE)

    def begin(self, display_size: tuple[int, int] | None) -> CalibrationSessionState:
        """
        Enter ACTIVE with zero offset.

        Args:
            display_size: Rendered (width, height) of the displayed image, None if no image

        Raises:
            NoCalibrationLoaded: No offsets with at least one cell, or no image
            InvalidWindowSize: Offsets have no usable window size
            RuntimeError: A session is already active
        """
        if self.is_active:
            raise RuntimeError("Calibration is already active")
        if self.record is None or not self.record.cells or display_size is None:
            raise NoCalibrationLoaded()

        scale = DisplayScaleMapper(self.record.window_size).scale_for(display_size)

        self.phase = SessionPhase.ACTIVE
        self._set_state(CalibrationSessionState(
            active=True,
            manual_offset=(0, 0),
            scale=scale,
            cells=self.record.cells,
        ))
        logger.info(
            f"[SESSION] Started: {len(self.record.cells)} cells, "
            f"scale ({scale[0]:.4f}, {scale[1]:.4f})"
        )
        return self.state

    def resize(self, display_size: tuple[int, int]) -> CalibrationSessionState:
        """Recompute the scale after the displayed image changed size."""
        if not self.is_active or self.record is None:
            return self.state
        scale = DisplayScaleMapper(self.record.window_size).scale_for(display_size)
        if scale != self.state.scale:
            self._set_state(replace(self.state, scale=scale))
            logger.debug(f"[SESSION] Rescaled to ({scale[0]:.4f}, {scale[1]:.4f})")
        return self.state

    def nudge(self, command: Command) -> bool:
        """
        Apply one move command. Ignored unless ACTIVE.

        Returns:
            True if the offset changed
        """
        if not self.is_active:
            return False
        self._set_state(apply_nudge(self.state, command))
        return True

    def commit(self) -> FinalOffsetRecord:
        """
        Finalize the current offsets and persist them.

        On PersistenceFailure the session stays ACTIVE with its offset intact
        so the user can retry.
        """
        if not self.is_active or self.record is None:
            raise NoCalibrationLoaded("Nothing to commit: calibration is not active")

        final = FinalOffsetRecord(window_size=self.record.window_size, cells=tuple(final_cells(self.state)))
        try:
            self._writer(final)
        except PersistenceFailure:
            logger.warning(f"[SESSION] Commit failed, keeping offset {self.state.manual_offset}")
            raise
        except OSError as e:
            logger.warning(f"[SESSION] Commit failed, keeping offset {self.state.manual_offset}")
            raise PersistenceFailure(str(e)) from e

        logger.info(f"[SESSION] Committed {len(final.cells)} cells with offset {self.state.manual_offset}")
        self.last_committed = final
        self.phase = SessionPhase.COMMITTED
        self._set_state(IDLE_STATE)
        return final

    def cancel(self) -> None:
        """Discard the offset; nothing is written."""
        if not self.is_active:
            return
        logger.info(f"[SESSION] Cancelled with offset {self.state.manual_offset}")
        self.phase = SessionPhase.CANCELLED
        self._set_state(IDLE_STATE)

    def handle(self, command: Command) -> FinalOffsetRecord | None:
        """
        Dispatch one user command.

        Returns:
            The committed record for COMMIT, otherwise None
        """
        if command is Command.COMMIT:
            return self.commit()
        if command is Command.CANCEL:
            self.cancel()
            return None
        self.nudge(command)
        return None
