#!/usr/bin/env python3
"""
Mirror Grid Calibration Tool

Aligns a 3x3 click grid onto the mirrored phone window.

Usage:
    python calibrate_grid.py screenshot          # capture the window into screenshots/
    python calibrate_grid.py list                # list screenshots, newest first
    python calibrate_grid.py grid                # click the grid, save grid_offsets.txt + PNG
    python calibrate_grid.py tune                # nudge markers with WASD, C=commit, Q=cancel
    python calibrate_grid.py run                 # grid + tune in one go
    python calibrate_grid.py show                # print calibrated_offsets.txt

Options for tune:
    --offsets PATH   offsets file to load (default: data/calibration/grid_offsets.txt)
    --image PATH     screenshot to calibrate against (default: grid_screenshot.png,
                     or the newest screenshot with --latest)
"""

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path

import config
from mirror_grid.automation_runner import AutomationResult
from mirror_grid.calibration_session import Command
from mirror_grid.calibration_store import CalibrationStore
from mirror_grid.calibration_workflow import CalibrationWorkflow
from mirror_grid.errors import CalibrationError, NoCalibrationLoaded
from mirror_grid.grid_offsets import GridSpec
from mirror_grid.screenshot_store import ScreenshotStore
from mirror_grid.window_automation import create_automation

logger = logging.getLogger("calibrate_grid")


def setup_logging(log_dir, debug=False):
    """Log to a timestamped file under log_dir and to the console."""
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"calibrate_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"

    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format='%(asctime)s [%(levelname)s] %(message)s',
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler()
        ]
    )
    return log_file


def key_bindings_from_config():
    """Map the configured keys onto session commands."""
    return {
        config.KEY_MOVE_UP: Command.MOVE_UP,
        config.KEY_MOVE_DOWN: Command.MOVE_DOWN,
        config.KEY_MOVE_LEFT: Command.MOVE_LEFT,
        config.KEY_MOVE_RIGHT: Command.MOVE_RIGHT,
        config.KEY_COMMIT: Command.COMMIT,
        config.KEY_CANCEL: Command.CANCEL,
    }


def build_workflow(args, automation=None):
    """Create the workflow from config plus command-line overrides."""
    if automation is None:
        automation = create_automation(
            window_title=args.title,
            click_tool=config.CLICK_TOOL,
            timeout=config.AUTOMATION_TIMEOUT,
        )
    spec = GridSpec(
        rows=config.GRID_ROWS,
        cols=config.GRID_COLS,
        start_fraction=config.GRID_START_FRACTION,
        end_fraction=config.GRID_END_FRACTION,
    )
    return CalibrationWorkflow(
        automation=automation,
        screenshots=ScreenshotStore(args.screenshot_dir),
        store=CalibrationStore(args.calibration_dir),
        spec=spec,
        click_repeat=args.click_repeat,
        click_delay=config.CLICK_DELAY,
        call_timeout=config.AUTOMATION_TIMEOUT,
        grid_timeout=config.GRID_PASS_TIMEOUT,
        viewer_options={
            "window_name": config.VIEWER_WINDOW_NAME,
            "key_bindings": key_bindings_from_config(),
            "max_display_height": config.VIEWER_MAX_HEIGHT,
            "marker_radius": config.MARKER_RADIUS,
            "marker_color": config.MARKER_COLOR,
        },
        on_status=lambda message: logger.info(f"[STATUS] {message}"),
    )


def cmd_list(args):
    store = ScreenshotStore(args.screenshot_dir)
    files = store.list_screenshots()
    if not files:
        print(f"No screenshots in {store.directory}")
        return 0
    for path, mtime in files:
        stamp = datetime.fromtimestamp(mtime).strftime('%Y-%m-%d %H:%M:%S')
        print(f"{stamp}  {path}")
    return 0


def cmd_show(args):
    store = CalibrationStore(args.calibration_dir)
    try:
        record = store.read_calibrated_offsets()
    except CalibrationError as e:
        print(f"ERROR: {e.status_message()}")
        return 1
    width, height = record.window_size
    print(f"Window Size: ({width} x {height})")
    for cell in record.cells:
        print(f"Cell {cell.col},{cell.row}: ({cell.x}, {cell.y})")
    return 0


def cmd_tune(args, workflow):
    result = workflow.load_offsets(args.offsets)
    if not result.success:
        return result

    image_path = args.image
    if args.latest:
        image_path = workflow.screenshots.latest()
        if image_path is None:
            error = NoCalibrationLoaded(f"No screenshots in {workflow.screenshots.directory}")
            workflow.set_status(error.status_message())
            return AutomationResult.fail(error)
    result = workflow.load_image(image_path)
    if not result.success:
        return result

    return workflow.start_manual_calibration()


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Mirror Grid Calibration Tool")
    parser.add_argument("--title", default=config.WINDOW_TITLE, help="Mirroring window title / process name")
    parser.add_argument("--screenshot-dir", type=Path, default=config.SCREENSHOT_DIR)
    parser.add_argument("--calibration-dir", type=Path, default=config.CALIBRATION_DIR)
    parser.add_argument("--click-repeat", type=int, default=config.CLICK_REPEAT,
                        help="Clicks per grid cell")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")
    subparsers.add_parser("screenshot", help="Capture the mirroring window")
    subparsers.add_parser("list", help="List screenshots, newest first")
    subparsers.add_parser("grid", help="Run the automated 3x3 grid click pass")
    tune_parser = subparsers.add_parser("tune", help="Manual WASD calibration")
    tune_parser.add_argument("--offsets", type=Path, default=None, help="Offsets file to load")
    tune_image = tune_parser.add_mutually_exclusive_group()
    tune_image.add_argument("--image", type=Path, default=None, help="Screenshot to calibrate against")
    tune_image.add_argument("--latest", action="store_true", help="Use the newest screenshot")
    subparsers.add_parser("run", help="Grid pass followed by manual calibration")
    subparsers.add_parser("show", help="Print the calibrated offsets")

    return parser, parser.parse_args(argv)


def main(argv=None):
    """Command-line interface."""
    parser, args = parse_args(argv)
    if not args.command:
        parser.print_help()
        return 1

    if args.command == "list":
        return cmd_list(args)
    if args.command == "show":
        return cmd_show(args)

    log_file = setup_logging(config.LOG_DIR, debug=args.debug)
    logger.debug(f"Logging to {log_file}")

    try:
        workflow = build_workflow(args)
    except CalibrationError as e:
        print(f"ERROR: {e.status_message()}")
        return 1

    if args.command == "screenshot":
        result = workflow.take_screenshot()
    elif args.command == "grid":
        result = workflow.run_grid_calibration()
    elif args.command == "tune":
        result = cmd_tune(args, workflow)
    else:
        result = workflow.run_full_calibration()

    if not result.success:
        print(f"ERROR: {result.message}")
        return 1
    print(result.message)
    return 0


if __name__ == "__main__":
    sys.exit(main())
