"""
Logging setup shared by the API process and the command-line scripts.
"""

import logging
import sys

# Client libraries that log every request or discovery-cache miss.
NOISY_LOGGERS = ("googleapiclient.discovery_cache", "httpx", "httpcore")


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging and keep client libraries at WARNING or above."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stdout,
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(
            max(logging.WARNING, logging.getLogger().getEffectiveLevel())
        )


__all__ = ["NOISY_LOGGERS", "configure_logging"]
