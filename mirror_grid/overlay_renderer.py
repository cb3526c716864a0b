"""
Overlay rendering for manual calibration.

Pure function of the session state: the input image is never modified.
"""
from __future__ import annotations

import cv2
import numpy as np

from mirror_grid.calibration_session import CalibrationSessionState
from mirror_grid.grid_offsets import round_half_up

MARKER_COLOR = (0, 255, 0)  # BGR lime
LABEL_COLOR = (0, 255, 0)
STATUS_COLOR = (255, 255, 255)
DIM_ALPHA = 0.2


def render_overlay(
    image: np.ndarray,
    state: CalibrationSessionState,
    display_size: tuple[int, int],
    marker_radius: int = 8,
    marker_color: tuple[int, int, int] = MARKER_COLOR,
    status: str | None = None,
) -> np.ndarray:
    """
    Draw the calibration markers over the displayed image.

    Args:
        image: BGR screenshot at its native size
        state: Current session state (markers drawn only while active)
        display_size: (width, height) the frame is rendered at
        marker_radius: Marker circle radius in displayed pixels
        marker_color: BGR marker colour
        status: Optional one-line status drawn at the bottom

    Returns:
        New BGR frame of size display_size
    """
    disp_w, disp_h = display_size
    frame = cv2.resize(image, (max(1, disp_w), max(1, disp_h)), interpolation=cv2.INTER_AREA)

    if state.active:
        # Translucent dark layer so the markers stand out
        frame = cv2.addWeighted(frame, 1.0 - DIM_ALPHA, np.zeros_like(frame), DIM_ALPHA, 0)
        for cell in state.displayed_cells:
            center = (round_half_up(cell.x), round_half_up(cell.y))
            cv2.circle(frame, center, marker_radius, marker_color, thickness=-1, lineType=cv2.LINE_AA)
            cv2.putText(
                frame,
                f"{cell.col},{cell.row}",
                (center[0] + marker_radius + 2, center[1]),
                cv2.FONT_HERSHEY_SIMPLEX,
                0.5,
                LABEL_COLOR,
                1,
                cv2.LINE_AA,
            )

    if status:
        cv2.putText(frame, status, (8, frame.shape[0] - 10), cv2.FONT_HERSHEY_SIMPLEX,
                    0.45, STATUS_COLOR, 1, cv2.LINE_AA)

    return frame
