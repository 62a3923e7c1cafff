"""
Main entry point for the PyStreetSim application.

Parses the command line, loads configuration, sets up logging and then runs
either the interactive pygame window or a fixed-length headless drive.
"""

import sys
import math
import argparse
from pathlib import Path
from typing import List, Optional

from . import __version__
from .config import Config, get_config, get_settings, set_config, reset_settings
from .core.exceptions import PyStreetSimError, setup_exception_handling, handle_error
from .core.logging import configure_logging, get_logger, shutdown_logging
from .simulation import StreetScene
from .simulation.runner import StreetSimulation, parse_intents, run_headless


def setup_argument_parser() -> argparse.ArgumentParser:
    """
    Set up command line argument parser.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog="pystreetsim",
        description="PyStreetSim - street scene with a drivable car and an overhead proximity panel",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  pystreetsim                                   # Open the overhead panel and drive with W/A/S/D
  pystreetsim --debug                           # Verbose logging
  pystreetsim --config myscene.json             # Use a custom scene/configuration
  pystreetsim --headless --duration 1 --hold accelerate
                                                # Hold the throttle for one second, print distances
        """
    )

    parser.add_argument("--version", action="version", version=f"PyStreetSim {__version__}")
    parser.add_argument("--debug", action="store_true",
                        help="Enable debug mode with verbose logging")
    parser.add_argument("--config", type=str, metavar="FILE",
                        help="Path to configuration file")
    parser.add_argument("--log-level",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
                        default=None,
                        help="Set logging level (overrides config)")
    parser.add_argument("--log-dir", type=str, metavar="DIR",
                        help="Write log files to this directory")

    parser.add_argument("--window-size", type=str, metavar="WIDTHxHEIGHT",
                        help="Set window size (e.g., 800x400)")
    parser.add_argument("--fps", type=int, metavar="N",
                        help="Target frame rate (overrides config)")
    parser.add_argument("--curb-policy", choices=["right", "nearest"],
                        help="Measure curb distance to the right curb or the nearest one")
    parser.add_argument("--decay-mode", choices=["per_tick", "continuous"],
                        help="Apply damping once per frame or scaled by frame time")

    parser.add_argument("--headless", action="store_true",
                        help="Run without a window and print the proximity table")
    parser.add_argument("--duration", type=float, default=1.0, metavar="SECONDS",
                        help="Simulated time for --headless (default: 1.0)")
    parser.add_argument("--hold", type=str, default="", metavar="INTENTS",
                        help="Comma-separated intents held during --headless "
                             "(accelerate, brake, steer_left, steer_right, handbrake)")
    return parser


def parse_window_size(size_str: str) -> tuple:
    """
    Parse window size string into width/height tuple.

    Raises:
        ValueError: If format is invalid
    """
    try:
        width_str, height_str = size_str.lower().split('x')
        width = int(width_str)
        height = int(height_str)

        if width <= 0 or height <= 0:
            raise ValueError("Width and height must be positive")

        return width, height
    except ValueError as e:
        raise ValueError(f"Invalid window size format '{size_str}'. Use WIDTHxHEIGHT (e.g., 800x400)") from e


def apply_command_line_overrides(args: argparse.Namespace) -> None:
    """Apply command line argument overrides to configuration."""
    config = get_config()

    if args.debug:
        config.set("app.debug", True)
        config.set("app.log_level", "DEBUG")

    if args.log_level:
        config.set("app.log_level", args.log_level)

    if args.window_size:
        width, height = parse_window_size(args.window_size)
        config.set("app.window.width", width)
        config.set("app.window.height", height)

    if args.fps:
        config.set("app.fps_target", args.fps)

    if args.curb_policy:
        config.set("road.curb_policy", args.curb_policy)

    if args.decay_mode:
        config.set("vehicle.decay_mode", args.decay_mode)


def initialize_application(args: argparse.Namespace) -> bool:
    """
    Load configuration and set up logging and exception handling.

    Returns:
        True if initialization successful, False otherwise
    """
    try:
        if args.config:
            config_path = Path(args.config)
            if not config_path.exists():
                print(f"Error: Configuration file '{args.config}' not found", file=sys.stderr)
                return False
            set_config(Config(config_path))
            reset_settings()

        apply_command_line_overrides(args)

        settings = get_settings()
        log_kwargs = {}
        if args.log_dir:
            log_kwargs['log_dir'] = Path(args.log_dir)
            log_kwargs['file_output'] = True

        configure_logging(log_level=settings.log_level, **log_kwargs)
        setup_exception_handling()

        get_logger("main").info("PyStreetSim starting", extra={
            "version": __version__,
            "debug_mode": settings.debug_mode,
            "target_fps": settings.target_fps,
            "headless": args.headless,
        })
        return True

    except (PyStreetSimError, ValueError) as e:
        print(f"Failed to initialize application: {e}", file=sys.stderr)
        handle_error(e)
        return False


def format_report_table(result) -> str:
    """Plain-text proximity table, one block per vehicle."""
    lines = []
    for position, report in zip(result.positions, result.reports):
        lines.append(f"{report.color} car ({report.vehicle_id}) at "
                     f"x={position.x:.2f} z={position.z:.2f}")
        lines.extend(f"  {label}" for label in report.labels())
    return "\n".join(lines)


def run_application(args: argparse.Namespace) -> int:
    """
    Run the headless drive or the interactive window.

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    logger = get_logger("main")
    scene = StreetScene(get_settings())

    if args.headless:
        if not math.isfinite(args.duration) or args.duration <= 0:
            print(f"Error: --duration must be a positive number of seconds, got {args.duration}",
                  file=sys.stderr)
            return 2
        try:
            held = parse_intents(args.hold.split(","))
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 2
        result = run_headless(scene, args.duration, get_settings().target_fps, held)
        print(format_report_table(result))
        return 0

    simulation = StreetSimulation(scene)
    if not simulation.initialize():
        logger.error("Could not open a window; try --headless")
        return 1
    simulation.run()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    parser = setup_argument_parser()
    args = parser.parse_args(argv)

    if not initialize_application(args):
        return 1

    try:
        return run_application(args)
    except KeyboardInterrupt:
        return 130
    except PyStreetSimError as e:
        handle_error(e)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        shutdown_logging()


if __name__ == "__main__":
    sys.exit(main())
