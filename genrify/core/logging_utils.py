import logging
import sys

LOGGER_NAME = "genrify"

# Project logger; modules log through the helpers below.
logger = logging.getLogger(LOGGER_NAME)


def configure_logging(level: int = logging.INFO) -> None:
    """
    Configure root logging for the CLI and the HTTP API.

    - one stdout handler with time, level and logger name
    - applied only once: if something else (uvicorn, pytest) already
      installed handlers, only the level is adjusted
    """
    root = logging.getLogger()
    if root.handlers:
        root.setLevel(level)
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s - %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    root.addHandler(handler)
    root.setLevel(level)


def log_section(title: str) -> None:
    logger.info("")
    logger.info("=== %s ===", title)


def log_info(message: str) -> None:
    logger.info("%s", message)


def log_step(message: str) -> None:
    """Action in progress."""
    logger.info("→ %s", message)


def log_success(message: str) -> None:
    logger.info("✅ %s", message)


def log_warning(message: str) -> None:
    """Non-fatal problem (retry, ignored rollback failure...)."""
    logger.warning("⚠️ %s", message)


def log_error(message: str) -> None:
    logger.error("❌ %s", message)


def log_progress(current: int, total: int, prefix: str = "") -> None:
    """
    Log a progress line such as "Adding tracks 200/350 (57.1%)".

    A non-positive total is treated as 1 so the line is always printable.
    """
    if total <= 0:
        total = 1
    percent = max(0.0, min(1.0, current / total)) * 100
    if prefix:
        logger.info("%s %d/%d (%.1f%%)", prefix, current, total, percent)
    else:
        logger.info("%d/%d (%.1f%%)", current, total, percent)
