"""
Screenshot store - the folder of captured window screenshots.

Usage:
    from mirror_grid.screenshot_store import ScreenshotStore

    store = ScreenshotStore("screenshots")
    path = store.new_screenshot_path()
    # screenshots/screenshot_20251209_060553.png

    for path, mtime in store.list_screenshots():   # newest first
        ...
"""
from __future__ import annotations

from datetime import datetime
from pathlib import Path

import cv2
import numpy as np


class ScreenshotStore:
    """Lists, reads and names PNG screenshots in one directory."""

    def __init__(self, directory: Path | str, prefix: str = "screenshot"):
        self.directory = Path(directory)
        self.prefix = prefix

    def new_screenshot_path(self) -> Path:
        """Timestamped path for the next capture (directory is created)."""
        self.directory.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return self.directory / f"{self.prefix}_{timestamp}.png"

    def list_screenshots(self) -> list[tuple[Path, float]]:
        """
        All PNG files in the directory, newest first.

        Returns:
            List of (path, modified_time) tuples; empty if the directory is missing
        """
        if not self.directory.is_dir():
            return []
        files = [
            (path, path.stat().st_mtime)
            for path in self.directory.iterdir()
            if path.is_file() and path.suffix.lower() == ".png"
        ]
        files.sort(key=lambda item: item[1], reverse=True)
        return files

    def latest(self) -> Path | None:
        files = self.list_screenshots()
        return files[0][0] if files else None

    @staticmethod
    def read(path: Path | str) -> tuple[np.ndarray, tuple[int, int]]:
        """
        Load an image.

        Returns:
            Tuple of (BGR image, (width, height))

        Raises:
            FileNotFoundError: File missing or not a readable image
        """
        img = cv2.imread(str(path))
        if img is None:
            raise FileNotFoundError(f"Could not read image: {path}")
        height, width = img.shape[:2]
        return img, (width, height)
