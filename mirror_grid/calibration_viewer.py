"""
Calibration viewer - OpenCV window hosting the manual calibration overlay.

Shows the grid screenshot, draws the session markers on top and feeds key
presses into the ManualCalibrationSession one at a time. The window can be
resized freely; the rendered size is re-read every frame and the session
rescales when it changes.

Default keys:
    w / s / a / d   move all markers up / down / left / right by 1px
    c               commit and save calibrated_offsets.txt
    q / Esc         cancel (closing the window also cancels)
"""
from __future__ import annotations

import logging

import cv2
import numpy as np

from mirror_grid.calibrated_offsets import FinalOffsetRecord
from mirror_grid.calibration_session import CalibrationSessionState, Command, ManualCalibrationSession
from mirror_grid.errors import PersistenceFailure
from mirror_grid.overlay_renderer import MARKER_COLOR, render_overlay

logger = logging.getLogger(__name__)

DEFAULT_KEY_BINDINGS = {
    "w": Command.MOVE_UP,
    "s": Command.MOVE_DOWN,
    "a": Command.MOVE_LEFT,
    "d": Command.MOVE_RIGHT,
    "c": Command.COMMIT,
    "q": Command.CANCEL,
}
ESC_KEY = 27
HELP_TEXT = "WASD -> move, C -> commit, Q -> cancel"


def command_for_key(key: int, bindings: dict[str, Command] = DEFAULT_KEY_BINDINGS) -> Command | None:
    """Translate a cv2.waitKey code into a session command."""
    if key < 0:
        return None
    key &= 0xFF
    if key == ESC_KEY:
        return Command.CANCEL
    char = chr(key).lower()
    return bindings.get(char)


def fit_display_size(image_size: tuple[int, int], max_height: int) -> tuple[int, int]:
    """Initial window size: the image scaled down to at most `max_height`."""
    width, height = image_size
    if height <= max_height or height <= 0:
        return width, height
    factor = max_height / height
    return max(1, int(round(width * factor))), max_height


class CalibrationViewer:
    """Interactive loop around one calibration session."""

    def __init__(
        self,
        session: ManualCalibrationSession,
        image: np.ndarray,
        window_name: str = "Grid Calibration",
        key_bindings: dict[str, Command] | None = None,
        max_display_height: int = 900,
        marker_radius: int = 8,
        marker_color: tuple[int, int, int] = MARKER_COLOR,
        on_status=None,
    ):
        self.session = session
        self.image = image
        self.window_name = window_name
        self.key_bindings = key_bindings or DEFAULT_KEY_BINDINGS
        self.max_display_height = max_display_height
        self.marker_radius = marker_radius
        self.marker_color = marker_color
        self._on_status = on_status
        self.status = HELP_TEXT
        self._needs_redraw = True
        height, width = image.shape[:2]
        self.display_size = fit_display_size((width, height), max_display_height)

    def set_status(self, message: str) -> None:
        self.status = message
        self._needs_redraw = True
        logger.info(f"[VIEWER] {message}")
        if self._on_status:
            self._on_status(message)

    def _on_state_change(self, state: CalibrationSessionState) -> None:
        self._needs_redraw = True

    def _rendered_size(self) -> tuple[int, int]:
        try:
            _, _, width, height = cv2.getWindowImageRect(self.window_name)
        except cv2.error:
            return self.display_size
        if width > 0 and height > 0:
            return width, height
        return self.display_size

    def _window_closed(self) -> bool:
        try:
            return cv2.getWindowProperty(self.window_name, cv2.WND_PROP_VISIBLE) < 1
        except cv2.error:
            return True

    def _draw(self) -> None:
        frame = render_overlay(
            self.image,
            self.session.state,
            self.display_size,
            marker_radius=self.marker_radius,
            marker_color=self.marker_color,
            status=self.status,
        )
        cv2.imshow(self.window_name, frame)

    def run(self) -> FinalOffsetRecord | None:
        """
        Open the window and process keys until commit or cancel.

        Returns:
            The committed record, or None if cancelled

        Raises:
            CalibrationError: Session could not start (window is closed again)
        """
        cv2.namedWindow(self.window_name, cv2.WINDOW_NORMAL)
        cv2.resizeWindow(self.window_name, *self.display_size)
        self.session.add_listener(self._on_state_change)
        try:
            self.session.begin(self.display_size)
            self.set_status(HELP_TEXT)
            return self._loop()
        finally:
            self.session.remove_listener(self._on_state_change)
            cv2.destroyWindow(self.window_name)

    def _loop(self) -> FinalOffsetRecord | None:
        while True:
            size = self._rendered_size()
            if size != self.display_size:
                self.display_size = size
                self._needs_redraw = True
                self.session.resize(size)
            # Redraw only when the session state or the status changed
            if self._needs_redraw:
                self._needs_redraw = False
                self._draw()

            key = cv2.waitKey(30)
            if key == -1 and self._window_closed():
                self.session.cancel()
                self.set_status("Canceled calibration.")
                return None

            command = command_for_key(key, self.key_bindings)
            if command is None:
                continue

            if command is Command.COMMIT:
                try:
                    final = self.session.commit()
                except PersistenceFailure as e:
                    self.set_status(e.status_message())
                    continue
                self.set_status("Saved calibrated offsets. Done!")
                return final

            self.session.handle(command)
            if command is Command.CANCEL:
                self.set_status("Canceled calibration.")
                return None
