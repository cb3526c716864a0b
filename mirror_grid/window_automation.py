"""
Window automation backends - window geometry, clicks and region capture.

The calibration core only needs three primitives:

    get_window_rect()            -> WindowRect of the mirroring window
    click(x, y)                  -> left click at absolute screen coordinates
    capture_region(rect, path)   -> PNG of the screen region written to path

macOS (the iPhone Mirroring app) is driven through osascript, cliclick and
screencapture. Windows uses pywin32 (see windows_window_helper.py). Every
failure is raised as AutomationFailure with the underlying message.

Usage:
    python -m mirror_grid.window_automation rect
    python -m mirror_grid.window_automation capture out.png
"""
from __future__ import annotations

import argparse
import logging
import subprocess
import sys
from pathlib import Path

from mirror_grid.errors import AutomationFailure
from mirror_grid.grid_offsets import WindowRect

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_TITLE = "iPhone Mirroring"
DEFAULT_CLICK_TOOL = "/opt/homebrew/bin/cliclick"
DEFAULT_CALL_TIMEOUT = 15.0


class WindowAutomation:
    """Interface shared by the platform backends."""

    window_title: str

    def get_window_rect(self) -> WindowRect:
        raise NotImplementedError

    def click(self, x: int, y: int) -> None:
        raise NotImplementedError

    def capture_region(self, rect: WindowRect, output_path: Path | str) -> str:
        raise NotImplementedError

    def capture_window(self, output_path: Path | str) -> tuple[WindowRect, str]:
        """Query the window rectangle and capture exactly that region."""
        rect = self.get_window_rect()
        return rect, self.capture_region(rect, output_path)


class MacWindowAutomation(WindowAutomation):
    """
    macOS backend.

    Geometry comes from System Events (UI element 1 of the target process),
    clicks from cliclick, captures from screencapture -R.
    """

    def __init__(
        self,
        window_title: str = DEFAULT_WINDOW_TITLE,
        click_tool: str = DEFAULT_CLICK_TOOL,
        timeout: float = DEFAULT_CALL_TIMEOUT,
    ):
        """
        Args:
            window_title: Process name of the mirroring app
            click_tool: Path to the cliclick binary
            timeout: Seconds before a single command is abandoned
        """
        self.window_title = window_title
        self.click_tool = click_tool
        self.timeout = timeout

    def _run(self, cmd: list[str]) -> tuple[bool, str, str]:
        """
        Execute a command.

        Returns:
            Tuple of (success, stdout, stderr)
        """
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            return False, "", f"{cmd[0]} timed out after {self.timeout:.0f}s"
        except OSError as e:
            return False, "", str(e)
        return result.returncode == 0, result.stdout or "", result.stderr or ""

    def _check(self, cmd: list[str], action: str) -> str:
        success, stdout, stderr = self._run(cmd)
        if not success:
            raise AutomationFailure(f"{action} failed: {stderr.strip() or 'unknown error'}")
        return stdout

    def _window_script(self) -> list[str]:
        return [
            'tell application "System Events"',
            f'    tell process "{self.window_title}"',
            '        set frontmost to true',
            '        set theWindow to UI element 1',
            '        set {winX, winY} to position of theWindow',
            '        set {winW, winH} to size of theWindow',
            '    end tell',
            'end tell',
            'return (winX as text) & "," & (winY as text) & "," & (winW as text) & "," & (winH as text)',
        ]

    def get_window_rect(self) -> WindowRect:
        cmd = ["osascript"]
        for line in self._window_script():
            cmd.extend(["-e", line])
        stdout = self._check(cmd, "Window lookup")

        try:
            x, y, width, height = (int(float(part)) for part in stdout.strip().split(","))
        except ValueError:
            raise AutomationFailure(f"Unexpected window geometry output: {stdout.strip()!r}")

        rect = WindowRect(x=x, y=y, width=width, height=height)
        logger.debug(f"[AUTOMATION] {self.window_title} at ({x}, {y}) size {width}x{height}")
        return rect

    def click(self, x: int, y: int) -> None:
        self._check([self.click_tool, f"c:{int(x)},{int(y)}"], f"Click at ({x}, {y})")

    def capture_region(self, rect: WindowRect, output_path: Path | str) -> str:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        region = f"-R{rect.x},{rect.y},{rect.width},{rect.height}"
        self._check(["screencapture", region, str(output_path)], "Screen capture")
        if not output_path.exists():
            raise AutomationFailure(f"Screen capture produced no file at {output_path}")
        return str(output_path)


def create_automation(
    window_title: str = DEFAULT_WINDOW_TITLE,
    click_tool: str = DEFAULT_CLICK_TOOL,
    timeout: float = DEFAULT_CALL_TIMEOUT,
    platform: str | None = None,
) -> WindowAutomation:
    """
    Pick the backend for the current OS.

    Raises:
        AutomationFailure: Unsupported platform or backend unavailable
    """
    platform = platform or sys.platform
    if platform == "darwin":
        return MacWindowAutomation(window_title=window_title, click_tool=click_tool, timeout=timeout)
    if platform.startswith("win"):
        from mirror_grid.windows_window_helper import WindowsWindowAutomation
        return WindowsWindowAutomation(window_title=window_title)
    raise AutomationFailure(f"No window automation backend for platform '{platform}'")


def main():
    """Command-line interface."""
    parser = argparse.ArgumentParser(description="Window automation check utility")
    parser.add_argument("--title", default=DEFAULT_WINDOW_TITLE, help="Target window title / process name")
    subparsers = parser.add_subparsers(dest="command", help="Command to execute")
    subparsers.add_parser("rect", help="Print window position and size")
    capture_parser = subparsers.add_parser("capture", help="Capture the window to a PNG")
    capture_parser.add_argument("output", help="Output path for screenshot")

    args = parser.parse_args()
    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        automation = create_automation(window_title=args.title)
        if args.command == "rect":
            rect = automation.get_window_rect()
            print(f"Window Position: ({rect.x}, {rect.y})")
            print(f"Window Size: ({rect.width} x {rect.height})")
        elif args.command == "capture":
            rect, path = automation.capture_window(args.output)
            print(f"Saved {rect.width}x{rect.height} capture to: {path}")
        sys.exit(0)
    except AutomationFailure as e:
        print(f"ERROR: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
