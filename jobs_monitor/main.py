#!/usr/bin/env python3
"""
Amazon Jobs Monitor Launcher

Entry point for both sides of the monitor:
- server: FastAPI backend with the WebSocket event channel
- tui: Terminal control panel (Textual) that connects to a backend

Usage:
    jobs-monitor server --port 8002
    jobs-monitor tui --api-url http://localhost:8002
    python -m jobs_monitor.main --help
"""
import argparse
import os
import sys
from dataclasses import replace
from typing import List, Optional

from dotenv import load_dotenv

from jobs_monitor import __version__
from jobs_monitor.config import ClientSettings, MonitorSettings
from jobs_monitor.infrastructure.logging import configure_logging


def run_server(args: argparse.Namespace) -> None:
    """Run the backend server."""
    import uvicorn
    from jobs_monitor.web.api import create_app

    settings = MonitorSettings.from_env()
    settings = replace(
        settings,
        host=args.host or settings.host,
        port=args.port or settings.port,
        log_level=args.log_level or settings.log_level,
    )
    configure_logging(
        level=settings.log_level,
        json_output=args.json_logs or settings.log_json,
        log_file=settings.log_file,
    )

    print(f"Starting Amazon Jobs Monitor backend on http://{settings.host}:{settings.port}")
    print(f"WebSocket channel at ws://{settings.host}:{settings.port}/ws")
    print("Press Ctrl+C to stop.\n")

    app = create_app(settings=settings)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level="warning")


def run_tui(args: argparse.Namespace) -> None:
    """Run the terminal control panel."""
    from jobs_monitor.tui.app import run_tui as run_monitor_tui

    if args.api_url:
        os.environ["MONITOR_API_URL"] = args.api_url
    settings = ClientSettings.from_env()

    # Console output would corrupt the Textual screen
    configure_logging(
        level=args.log_level or "WARNING",
        log_file=os.getenv("MONITOR_LOG_FILE") or None,
        console=False,
    )

    run_monitor_tui(settings)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jobs-monitor",
        description="Amazon Jobs Monitor",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s server                        # Backend on 0.0.0.0:8002
  %(prog)s server --port 9000 --json-logs
  %(prog)s tui                           # Control panel for localhost:8002
  %(prog)s tui --api-url http://vm:8002
""",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--log-level", help="Log level (default: INFO, WARNING for tui)")

    subparsers = parser.add_subparsers(dest="mode", required=True)

    server = subparsers.add_parser("server", help="Run the backend")
    server.add_argument("-H", "--host", help="Host to bind (default: 0.0.0.0)")
    server.add_argument("-p", "--port", type=int, help="Port to bind (default: 8002)")
    server.add_argument("--json-logs", action="store_true", help="Emit JSON log lines")
    server.set_defaults(handler=run_server)

    tui = subparsers.add_parser("tui", help="Run the terminal control panel")
    tui.add_argument("--api-url", help="Backend URL (default: http://localhost:8002)")
    tui.set_defaults(handler=run_tui)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the launcher."""
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        args.handler(args)
    except KeyboardInterrupt:
        print("\nShutting down...")
    return 0


if __name__ == "__main__":
    sys.exit(main())
