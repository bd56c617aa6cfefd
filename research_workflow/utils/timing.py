"""Timing and logging helpers."""

import logging
import time
from contextlib import contextmanager
from typing import Dict, Iterable, Iterator, Optional

logger = logging.getLogger(__name__)

NOISY_LOGGERS = ("httpx", "httpcore", "urllib3", "openai")


@contextmanager
def timer(description: str, log_level: int = logging.DEBUG) -> Iterator[Dict[str, float]]:
    """
    Time a block. The yielded dict gets ``elapsed_ms`` when the block exits.

    Usage:
        with timer("analyze") as t:
            update = await stage(state)
        print(t["elapsed_ms"])
    """
    stats: Dict[str, float] = {}
    start = time.perf_counter()
    logger.log(log_level, f"⏱️  Starting: {description}")
    try:
        yield stats
    finally:
        stats["elapsed_ms"] = (time.perf_counter() - start) * 1000
        logger.log(log_level, f"⏱️  Finished: {description} ({stats['elapsed_ms'] / 1000:.2f}s)")


def setup_logging(
    level: int = logging.INFO,
    format_str: Optional[str] = None,
    quiet: Iterable[str] = NOISY_LOGGERS,
):
    """
    Configure logging for command-line use.

    Args:
        level: Root logging level
        format_str: Custom format string (default: timestamp, level, logger name)
        quiet: Loggers lowered to WARNING
    """
    if format_str is None:
        format_str = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

    logging.basicConfig(level=level, format=format_str, datefmt="%Y-%m-%d %H:%M:%S")
    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING)
