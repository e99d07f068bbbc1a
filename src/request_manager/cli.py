"""
Command-line interface for the Request Manager.

Runs a work list of URLs and prints one JSON line per result.
"""

import argparse
import asyncio
import json
import logging
import signal
import sys
from pathlib import Path
from typing import Dict, List, Optional

import structlog

from request_manager import __version__
from request_manager.config import ManagerConfig, RequestOptions, get_config, set_config
from request_manager.core.manager import RequestManager
from request_manager.core.request import ItemResult
from request_manager.core.state import RunStatus


def setup_logging(level: str = "INFO", json_format: bool = False) -> None:
    """Configure structured logging."""
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer() if json_format
            else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Logs go to stderr; stdout carries the results
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level.upper()),
        stream=sys.stderr,
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="request-manager",
        description="Dispatch HTTP requests in concurrent batches",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    run_parser = subparsers.add_parser("run", help="Request every link once")
    run_parser.add_argument(
        "links",
        nargs="*",
        help="Links to request, in order",
    )
    run_parser.add_argument(
        "--links-file",
        type=Path,
        help="File with one link per line (blank lines and # comments ignored)",
    )
    run_parser.add_argument(
        "--concurrency",
        type=int,
        default=5,
        help="Requests per window (default: 5)",
    )
    run_parser.add_argument(
        "--wait",
        type=int,
        default=0,
        help="Pause between windows in milliseconds (default: 0)",
    )
    run_parser.add_argument(
        "--method",
        default="GET",
        help="HTTP method (default: GET)",
    )
    run_parser.add_argument(
        "--header",
        action="append",
        default=[],
        metavar="NAME: VALUE",
        help="Header sent with every request (repeatable)",
    )
    run_parser.add_argument(
        "--deliver-after-stop",
        action="store_true",
        help="Keep printing results of in-flight requests after interruption",
    )
    run_parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level (default: INFO)",
    )
    run_parser.add_argument(
        "--log-json",
        action="store_true",
        help="Output logs in JSON format",
    )

    return parser


def load_links(links: List[str], links_file: Optional[Path] = None) -> List[str]:
    """Collect links from the command line and an optional file."""
    collected = list(links)

    if links_file is not None:
        for line in links_file.read_text(encoding="utf-8").splitlines():
            line = line.strip()
            if line and not line.startswith("#"):
                collected.append(line)

    return collected


def parse_headers(values: List[str]) -> Dict[str, str]:
    """Parse 'Name: value' header arguments."""
    headers = {}
    for value in values:
        name, sep, content = value.partition(":")
        if not sep or not name.strip():
            raise ValueError(f"Invalid header {value!r}, expected 'Name: value'")
        headers[name.strip()] = content.strip()
    return headers


def build_config(args: argparse.Namespace) -> ManagerConfig:
    """Build the manager configuration from parsed arguments."""
    return ManagerConfig(
        link_array=load_links(args.links, args.links_file),
        number_concurrent=args.concurrency,
        wait_time=args.wait,
        request_options=RequestOptions(
            method=args.method,
            headers=parse_headers(args.header),
        ),
        deliver_after_stop=args.deliver_after_stop,
        log_level=args.log_level,
        log_json=args.log_json,
    )


def print_result(error: Optional[Exception], result: ItemResult) -> None:
    print(json.dumps(result.to_dict()), flush=True)


def print_error(error: Exception) -> None:
    print(f"Error: {error}", file=sys.stderr)


async def run_manager(config: Optional[ManagerConfig] = None) -> RunStatus:
    """Run the manager until its work list is done or it is interrupted."""
    manager = RequestManager(config=config or get_config())
    manager.on_result(print_result)
    manager.on_error(print_error)

    # Set up signal handlers
    loop = asyncio.get_running_loop()
    try:
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, manager.stop)
    except NotImplementedError:
        pass  # Signals not available on Windows

    async with manager:
        status = await manager.run()
        if status == RunStatus.IDLE:
            # Let the scheduled error event reach its listener
            await asyncio.sleep(0)
        return status


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    try:
        config = build_config(args)
    except (OSError, ValueError) as e:
        print_error(e)
        return 1

    setup_logging(config.log_level, config.log_json)
    set_config(config)

    status = asyncio.run(run_manager())
    return 0 if status == RunStatus.COMPLETED else 1


if __name__ == "__main__":
    sys.exit(main())
