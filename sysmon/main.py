"""Main entry point for the sysmon system monitor."""
import argparse
import sys

import uvicorn
from rich.console import Console

from . import __version__
from .config.config_manager import ConfigManager
from .core.errors import MonitorError
from .core.monitor import SystemMonitor
from .core.state import StateStore
from .logging_setup import configure_logging
from .server import create_app


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sysmon",
        description="Monitor system resources and generate alerts",
    )
    parser.add_argument("--cli", action="store_true",
                        help="check system status once and exit")
    parser.add_argument("--config", default="config.yaml",
                        help="path to YAML configuration file")
    parser.add_argument("--debug", action="store_true",
                        help="enable debug logging")
    parser.add_argument("--host", default="0.0.0.0",
                        help="address for the HTTP server")
    parser.add_argument("--port", type=int, default=None,
                        help="port for the HTTP server (default: 12349)")
    parser.add_argument("--state-file", default=None,
                        help="violation state file (overrides config)")
    parser.add_argument("--version", action="version", version=__version__)
    return parser


def create_monitor(args, console: Console) -> SystemMonitor:
    config = ConfigManager.load_config(args.config, console=console)
    if args.state_file:
        config.state_file = args.state_file
    if args.port is not None:
        config.port = args.port

    store = StateStore(config.state_file)
    store.load_all()
    return SystemMonitor(config, store)


def run_cli(monitor: SystemMonitor, console: Console, debug: bool):
    result = monitor.run_cycle()
    if debug:
        console.print_json(result.status.to_json())


def run_server(monitor: SystemMonitor, host: str, debug: bool):
    uvicorn.run(create_app(monitor), host=host, port=monitor.config.port,
                log_level="debug" if debug else "warning")


def main(argv=None) -> int:
    """Main entry point for the application."""
    args = build_parser().parse_args(argv)
    configure_logging(args.debug)
    console = Console()
    err_console = Console(stderr=True)

    try:
        monitor = create_monitor(args, console)
        if args.cli:
            run_cli(monitor, console, args.debug)
        else:
            run_server(monitor, args.host, args.debug)
    except MonitorError as e:
        err_console.print(f"Error: {e}", markup=False, highlight=False)
        return 1
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())
