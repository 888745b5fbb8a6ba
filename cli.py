#!/usr/bin/env python3
"""
Command-line interface for the sewing-machine store backend.

Usage:
    uv run python cli.py [command] [options]

Commands:
    serve       Start the API server (with the price schedule trigger)
    sweep       Dry-run one price schedule sweep on an in-memory copy of the data
    demo        Walk a scheduled price through its window
    test        Run the test suite

Examples:
    uv run python cli.py serve --reload
    uv run python cli.py sweep
    uv run python cli.py demo
"""

import argparse
import subprocess
import sys


def run_sweep() -> None:
    """
    Run one sweep with the configured clock as a dry run.

    The sweep works on a fresh in-memory copy of the fixture data; the
    report is printed and nothing is written back.
    """
    from notifications.fanout import BrokerPriceNotifier
    from pricing.engine import PriceScheduleEngine
    from shared.config import configure_logging, get_settings

    settings = get_settings()
    configure_logging(settings.log_level)

    engine = PriceScheduleEngine(notifier=BrokerPriceNotifier())
    report = engine.sweep_all()
    print(
        f"Evaluated {report.evaluated}, changed {report.changed}, "
        f"notified {report.notified}, failed {len(report.failed)}"
    )
    if report.failed:
        print(f"Failed products: {', '.join(str(pid) for pid in report.failed)}")
        sys.exit(1)


def run_demo() -> None:
    from pricing.demo import run_price_schedule_demo
    run_price_schedule_demo()


def run_tests(args: list[str]) -> None:
    """Run the test suite."""
    cmd = ["uv", "run", "pytest"] + args
    subprocess.run(cmd)


def run_server(host: str, port: int, reload: bool) -> None:
    """Start the API server."""
    cmd = ["uv", "run", "uvicorn", "api.main:app", f"--host={host}", f"--port={port}"]
    if reload:
        cmd.append("--reload")

    print(f"Starting server at http://{host}:{port}")
    print(f"API docs available at http://{host}:{port}/docs")
    subprocess.run(cmd)


def main() -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Sewing Machine Store CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s serve --reload
  %(prog)s sweep
  %(prog)s demo
  %(prog)s test -v
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    subparsers.add_parser(
        "sweep", help="Dry run: sweep an in-memory copy of the data and print the report"
    )
    subparsers.add_parser("demo", help="Walk a scheduled price through its window")

    test_parser = subparsers.add_parser("test", help="Run the test suite")
    test_parser.add_argument(
        "pytest_args",
        nargs="*",
        default=[],
        help="Arguments to pass to pytest",
    )

    serve_parser = subparsers.add_parser("serve", help="Start the API server")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to bind to")
    serve_parser.add_argument("--reload", action="store_true", help="Enable auto-reload")

    args = parser.parse_args()

    if args.command == "sweep":
        run_sweep()
    elif args.command == "demo":
        run_demo()
    elif args.command == "test":
        run_tests(args.pytest_args)
    elif args.command == "serve":
        run_server(args.host, args.port, args.reload)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
