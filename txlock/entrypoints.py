"""
txlock/entrypoints.py - Command line entry point

Usage:
    txlock stress --producers 5 --times 20 --delay 50 --random
    txlock -v stress --producers 3 --times 5 --delay 10 --capacity 2 --json
"""

from __future__ import annotations
from typing import Optional
import argparse
import asyncio
import json
import logging
import sys

from .constants import VERSION

logger = logging.getLogger("txlock.entrypoints")


def setup_logging(level: str = "INFO", log_file: str = None, json_format: bool = False) -> None:
    """
    Configure application logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional log file path
        json_format: Use JSON format for logs
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if json_format:

        class JSONFormatter(logging.Formatter):
            def format(self, record):
                return json.dumps({
                    "timestamp": self.formatTime(record),
                    "level": record.levelname,
                    "logger": record.name,
                    "message": record.getMessage(),
                })

        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

    # Console handler
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        file_handler.setLevel(log_level)
        root_logger.addHandler(file_handler)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Method level transaction locking for asyncio",
        prog="txlock",
    )

    parser.add_argument(
        "-c", "--config",
        help="Path to configuration file",
        default=None,
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging and transaction traces",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Log level",
    )
    parser.add_argument(
        "--log-file",
        help="Log file path",
        default=None,
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {VERSION}",
    )

    commands = parser.add_subparsers(dest="command")

    stress = commands.add_parser(
        "stress",
        help="Run concurrent producers through a transactional repository",
    )
    stress.add_argument("-p", "--producers", type=int, default=5, help="Number of concurrent producers")
    stress.add_argument("-t", "--times", type=int, default=10, help="Ticks per producer")
    stress.add_argument("-d", "--delay", type=int, default=10, help="Delay between ticks and per transaction, in ms")
    stress.add_argument("--random", action="store_true", help="Randomize delays, --delay being the maximum")
    stress.add_argument("--capacity", type=int, default=None, help="Simultaneous transactions allowed")
    stress.add_argument("--timeout", type=int, default=None, help="Global transaction timeout in ms")
    stress.add_argument("--json", action="store_true", help="Output in JSON format")

    return parser


async def run_stress(
    producers: int,
    times: int,
    delay_ms: int,
    random: bool = False,
    capacity: Optional[int] = None,
) -> dict:
    """
    Drive the producer/consumer harness through a DelayedRepository.

    Returns a summary with submission and completion counts, elapsed time
    and whether completion order matched submission order.
    """
    from .config import get_config
    from .harness import ConsumerRunner, DelayedRepository
    from .locks import SynchronousLock
    from .transactions import Transaction

    slots = capacity or get_config().transaction.capacity
    Transaction.set_lock(SynchronousLock(slots))

    repository = DelayedRepository(delay_ms, random)
    runner = ConsumerRunner("record_tick", repository.record_tick)
    result = await runner.run(producers, delay_ms, times, random)

    summary = result.to_dict()
    summary.update({
        "producers": producers,
        "times": times,
        "capacity": slots,
        "stored": len(repository.ram),
    })
    return summary


def cli_main(args: list = None) -> int:
    """
    CLI entry point.

    Args:
        args: Command line arguments (defaults to sys.argv)

    Returns:
        Exit code
    """
    parser = build_parser()
    parsed = parser.parse_args(args)

    from .config import configure, load_config

    config = load_config(parsed.config)

    # Setup logging
    log_level = "DEBUG" if parsed.verbose else (parsed.log_level or config.logging.level)
    setup_logging(
        level=log_level,
        log_file=parsed.log_file or config.logging.log_file,
        json_format=config.logging.json_logs,
    )

    if parsed.command is None:
        parser.print_help()
        return 1

    try:
        configure(
            debug=True if parsed.verbose else None,
            timeout_ms=parsed.timeout,
        )
        summary = asyncio.run(
            run_stress(
                parsed.producers,
                parsed.times,
                parsed.delay,
                random=parsed.random,
                capacity=parsed.capacity,
            )
        )

        if parsed.json:
            print(json.dumps(summary, indent=2))
        else:
            print(f"Produced:  {summary['produced']}")
            print(f"Consumed:  {summary['consumed']}")
            print(f"Stored:    {summary['stored']}")
            print(f"Capacity:  {summary['capacity']}")
            print(f"Elapsed:   {summary['elapsed_s']}s")
            print(f"In order:  {'yes' if summary['matched'] else 'no'}")
            if summary["error"]:
                print(summary["error"])

        return 0 if summary["matched"] else 1

    except KeyboardInterrupt:
        print("\nInterrupted")
        return 130
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        return 1


def main():
    """Main entry point for the package."""
    sys.exit(cli_main(sys.argv[1:]))


if __name__ == "__main__":
    main()
