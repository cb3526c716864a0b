"""
Windows window automation - mirroring window geometry, clicks and capture.

Finds the mirroring window by title with win32gui, clicks with
SetCursorPos + mouse_event, and grabs the window's screen region with
PIL.ImageGrab (works across monitors).
"""

import time
from pathlib import Path

import win32api
import win32con
import win32gui
from PIL import ImageGrab

from mirror_grid.errors import AutomationFailure
from mirror_grid.grid_offsets import WindowRect
from mirror_grid.window_automation import WindowAutomation


class WindowsWindowAutomation(WindowAutomation):
    """Window automation for Windows using pywin32."""

    def __init__(self, window_title="iPhone Mirroring", max_retries=3):
        """Initialize the helper.

        Args:
            window_title: Title of the mirroring window
            max_retries: Attempts for geometry and capture before giving up
        """
        self.window_title = window_title
        self.max_retries = max_retries
        self.hwnd = None

    def _find_window(self):
        """Find the mirroring window handle."""
        self.hwnd = win32gui.FindWindow(None, self.window_title)
        if not self.hwnd:
            raise AutomationFailure(f"Could not find window: {self.window_title}")

    def get_window_rect(self):
        """Bring the window to the front and return its screen rectangle.

        Returns:
            WindowRect: Position and size including the window frame
        """
        for attempt in range(self.max_retries):
            try:
                # Re-find window handle in case it changed
                self._find_window()
                try:
                    win32gui.SetForegroundWindow(self.hwnd)
                except win32gui.error:
                    pass  # focus can be refused; geometry is still valid
                left, top, right, bottom = win32gui.GetWindowRect(self.hwnd)
                return WindowRect(x=left, y=top, width=right - left, height=bottom - top)
            except (AutomationFailure, win32gui.error) as e:
                if attempt < self.max_retries - 1:
                    time.sleep(0.2)
                    continue
                raise AutomationFailure(f"Window lookup failed after {self.max_retries} attempts: {e}")

    def click(self, x, y):
        """Left click at absolute screen coordinates."""
        try:
            win32api.SetCursorPos((int(x), int(y)))
            win32api.mouse_event(win32con.MOUSEEVENTF_LEFTDOWN, 0, 0, 0, 0)
            win32api.mouse_event(win32con.MOUSEEVENTF_LEFTUP, 0, 0, 0, 0)
        except win32api.error as e:
            raise AutomationFailure(f"Click at ({x}, {y}) failed: {e}")

    def capture_region(self, rect, output_path):
        """Capture a screen region and save it as PNG.

        Args:
            rect: WindowRect to capture
            output_path: Path to save the screenshot

        Returns:
            str: Path of the saved file
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        bbox = (rect.x, rect.y, rect.x + rect.width, rect.y + rect.height)

        for attempt in range(self.max_retries):
            try:
                img = ImageGrab.grab(bbox=bbox, all_screens=True)
                img.save(output_path)
                return str(output_path)
            except OSError as e:
                if attempt < self.max_retries - 1:
                    time.sleep(0.2)  # Brief delay before retry
                    continue
                raise AutomationFailure(f"Screen capture failed after {self.max_retries} attempts: {e}")
