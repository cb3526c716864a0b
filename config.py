"""
Configuration loader - loads parameters from config_local.py when present.

Usage:
    from config import WINDOW_TITLE, GRID_START_FRACTION

Setup:
    1. Create config_local.py next to this file
    2. Override any of the defaults below (e.g. WINDOW_TITLE = "scrcpy")
    3. config_local.py is gitignored so local tweaks stay local
"""
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent

# =============================================================================
# TARGET WINDOW
# =============================================================================

# Process name (macOS) or window title (Windows) of the mirrored phone screen
WINDOW_TITLE = "iPhone Mirroring"

# macOS click helper (brew install cliclick)
CLICK_TOOL = "/opt/homebrew/bin/cliclick"

# =============================================================================
# GRID CALIBRATION
# =============================================================================
# The grid spans the full window width, but only the vertical band between
# GRID_START_FRACTION and GRID_END_FRACTION of the window height.

GRID_ROWS = 3
GRID_COLS = 3
GRID_START_FRACTION = 0.15
GRID_END_FRACTION = 0.85

CLICK_REPEAT = 4      # Clicks per cell (first click after focus change is often dropped)
CLICK_DELAY = 0.3     # Seconds to wait after each cell

# =============================================================================
# TIMEOUTS (seconds)
# =============================================================================

AUTOMATION_TIMEOUT = 15.0   # Single window lookup / click / capture
GRID_PASS_TIMEOUT = 60.0    # Whole grid pass (9 cells x 4 clicks + delays)

# =============================================================================
# FILES
# =============================================================================

SCREENSHOT_DIR = PROJECT_ROOT / "screenshots"
CALIBRATION_DIR = PROJECT_ROOT / "data" / "calibration"
LOG_DIR = PROJECT_ROOT / "logs"

# =============================================================================
# MANUAL CALIBRATION VIEWER
# =============================================================================

KEY_MOVE_UP = 'w'
KEY_MOVE_DOWN = 's'
KEY_MOVE_LEFT = 'a'
KEY_MOVE_RIGHT = 'd'
KEY_COMMIT = 'c'
KEY_CANCEL = 'q'

VIEWER_WINDOW_NAME = "Grid Calibration"
VIEWER_MAX_HEIGHT = 900       # Initial displayed image height (window is resizable)
MARKER_RADIUS = 8
MARKER_COLOR = (0, 255, 0)    # BGR

# =============================================================================
# LOAD LOCAL OVERRIDES
# =============================================================================

try:
    from config_local import *  # noqa: F401,F403
    print("Loaded config from config_local.py")
except ImportError:
    pass
