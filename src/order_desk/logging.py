import logging
import os
from typing import List, Optional


FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_MARK = "_order_desk_configured"


def resolve_level(value: Optional[str] = None) -> int:
    """Map a level name (or numeric string) to a logging level; INFO when unknown."""
    raw = (value if value is not None else os.environ.get("ORDER_DESK_LOG_LEVEL") or os.environ.get("LOG_LEVEL") or "")
    raw = raw.strip().upper()
    if raw.isdigit():
        return int(raw)
    if raw == "WARN":
        raw = "WARNING"
    level = logging.getLevelName(raw) if raw else logging.INFO
    return level if isinstance(level, int) else logging.INFO


def _handlers(level: int, formatter: logging.Formatter) -> List[logging.Handler]:
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    log_file = os.environ.get("LOG_FILE")
    if log_file:
        try:
            handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
        except OSError:
            pass
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
    return handlers


def get_logger(name: str) -> logging.Logger:
    """Return a named logger writing to stderr (and LOG_FILE when set).

    ORDER_DESK_LOG_LEVEL wins over LOG_LEVEL; both default to INFO. Each
    logger is configured once and does not propagate to the root logger.
    """
    logger = logging.getLogger(f"order_desk.{name}")
    if getattr(logger, _MARK, False):
        return logger

    level = resolve_level()
    logger.setLevel(level)
    for handler in _handlers(level, logging.Formatter(fmt=FORMAT, datefmt=DATE_FORMAT)):
        logger.addHandler(handler)
    if os.environ.get("LOG_FILE") and len(logger.handlers) == 1:
        logger.warning("LOG_FILE could not be opened; logging to stderr only")

    logger.propagate = False
    setattr(logger, _MARK, True)
    return logger
