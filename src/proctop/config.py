"""
Runtime configuration for proctop.

Settings come from the command line; there is no configuration file and
nothing is persisted between runs.
"""

from __future__ import annotations

import argparse
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from proctop.models import MemoryBasis, SortKey

DEFAULT_POLL_INTERVAL = 0.2
MIN_POLL_INTERVAL = 0.05

LOG_FORMAT = "%(asctime)s [%(levelname)-5.5s] %(name)s:%(filename)s:%(lineno)d\t %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass(slots=True)
class MonitorConfig:
    """Settings for one monitor run."""

    poll_interval: float = DEFAULT_POLL_INTERVAL
    memory_basis: MemoryBasis = MemoryBasis.VIRTUAL
    initial_sort: SortKey = SortKey.NONE
    skip_unreadable_records: bool = True
    log_file: Path | None = None
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        self.poll_interval = max(MIN_POLL_INTERVAL, self.poll_interval)

    @classmethod
    def from_args(cls, argv: Sequence[str] | None = None) -> MonitorConfig:
        """Build a config from command-line arguments (``sys.argv`` by default)."""
        args = build_parser().parse_args(argv)
        return cls(
            poll_interval=args.interval,
            memory_basis=MemoryBasis(args.memory),
            initial_sort=SortKey(args.sort),
            skip_unreadable_records=not args.strict,
            log_file=args.log_file,
            log_level=args.log_level,
        )


def _positive_float(value: str) -> float:
    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {value!r}") from None
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be positive: {value!r}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="proctop",
        description="Live process monitor with sorting, state filters and PID lookup.",
    )
    parser.add_argument(
        "-i",
        "--interval",
        type=_positive_float,
        default=DEFAULT_POLL_INTERVAL,
        help=f"Refresh and input-poll interval in seconds (default {DEFAULT_POLL_INTERVAL}).",
    )
    parser.add_argument(
        "-m",
        "--memory",
        choices=[basis.value for basis in MemoryBasis],
        default=MemoryBasis.VIRTUAL.value,
        help="Memory footprint used for MEM%% (default virtual).",
    )
    parser.add_argument(
        "-s",
        "--sort",
        choices=[key.value for key in SortKey],
        default=SortKey.NONE.value,
        help="Initial sort key (default none: enumeration order).",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Fail instead of skipping processes that cannot be read.",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Write log messages to this file.",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Log level for --log-file (default INFO).",
    )
    return parser


def configure_logging(config: MonitorConfig) -> None:
    """
    Route proctop's log output.

    The terminal belongs to the UI, so records only go to ``log_file``; without
    one they are discarded.
    """
    if config.log_file is None:
        logging.getLogger("proctop").addHandler(logging.NullHandler())
        return
    logging.basicConfig(
        level=getattr(logging, config.log_level),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        filename=config.log_file,
    )
