"""Command line configuration for pyvarmon."""

import argparse
import logging
from dataclasses import dataclass, field
from logging.handlers import RotatingFileHandler
from pathlib import Path

from pyvarmon.service import EXPVARS_URL
from pyvarmon.stack import DEFAULT_CAPACITY

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass
class MonitorConfig:
    ports: list[str] = field(default_factory=list)
    interval: float = 5.0  # Seconds between polls
    endpoint: str = EXPVARS_URL
    timeout: float = 2.0  # Per-request timeout, seconds
    capacity: int = DEFAULT_CAPACITY  # Samples kept per metric

    dummy: bool = False  # Print status lines instead of running the TUI
    log_file: str = "pyvarmon.log"
    log_level: str = "WARNING"


def parse_ports(spec: str) -> list[str]:
    """
    Expand a port list such as ``"1234,2000-2002"``.

    Ranges are inclusive. Order is preserved and duplicates are kept.

    Raises:
        ValueError: On empty entries, non-numeric ports, reversed ranges or
            ports outside 1-65535.
    """
    ports: list[str] = []
    for item in spec.split(","):
        item = item.strip()
        if not item:
            raise ValueError(f"empty port in {spec!r}")
        if "-" in item:
            first, _, last = item.partition("-")
            lo, hi = _port(first), _port(last)
            if lo > hi:
                raise ValueError(f"invalid port range {item!r}")
            ports.extend(str(port) for port in range(lo, hi + 1))
        else:
            ports.append(str(_port(item)))
    return ports


def _port(value: str) -> int:
    value = value.strip()
    if not value.isdigit():
        raise ValueError(f"invalid port {value!r}")
    port = int(value)
    if not 0 < port < 65536:
        raise ValueError(f"port out of range: {port}")
    return port


def build_parser() -> argparse.ArgumentParser:
    defaults = MonitorConfig()
    parser = argparse.ArgumentParser(
        prog="pyvarmon",
        description="Monitor memory usage of local processes exposing expvar-style vars.",
    )
    parser.add_argument(
        "-p", "--ports", required=True,
        help="ports to monitor, e.g. '1234,1235' or '2000-2005'",
    )
    parser.add_argument(
        "-i", "--interval", type=float, default=defaults.interval,
        help="poll interval in seconds (default: %(default)s)",
    )
    parser.add_argument(
        "-e", "--endpoint", default=defaults.endpoint,
        help="introspection path (default: %(default)s)",
    )
    parser.add_argument(
        "-t", "--timeout", type=float, default=defaults.timeout,
        help="per-request timeout in seconds (default: %(default)s)",
    )
    parser.add_argument(
        "-n", "--capacity", type=int, default=defaults.capacity,
        help="samples kept per service (default: %(default)s)",
    )
    parser.add_argument("--dummy", action="store_true", help="print to stdout instead of the TUI")
    parser.add_argument("--log-file", default=defaults.log_file)
    parser.add_argument("--log-level", default=defaults.log_level)
    return parser


def parse_args(argv: list[str] | None = None) -> MonitorConfig:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        ports = parse_ports(args.ports)
    except ValueError as exc:
        parser.error(str(exc))
    if args.interval <= 0:
        parser.error("interval must be positive")
    if args.timeout <= 0:
        parser.error("timeout must be positive")
    if args.capacity <= 0:
        parser.error("capacity must be positive")
    if not args.endpoint.startswith("/"):
        args.endpoint = "/" + args.endpoint
    return MonitorConfig(
        ports=ports,
        interval=args.interval,
        endpoint=args.endpoint,
        timeout=args.timeout,
        capacity=args.capacity,
        dummy=args.dummy,
        log_file=args.log_file,
        log_level=args.log_level,
    )


def setup_logging(config: MonitorConfig) -> None:
    """Configure the root logger. The TUI owns the terminal, so log to a file."""
    logger = logging.getLogger()
    logger.setLevel(getattr(logging, config.log_level.upper(), logging.WARNING))
    logger.handlers.clear()

    if config.dummy:
        handler: logging.Handler = logging.StreamHandler()
    else:
        log_path = Path(config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(log_path, maxBytes=1_000_000, backupCount=3, encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
