from datetime import datetime
from pathlib import Path

from loguru import logger

LOG_FILE = "his_import.log"


def setup_logging(root: str, level: str = "INFO", retention: str = "14 days", console: bool = True):
    """File sink under <root>/YYYY/MM/DD, rotated at midnight; optional console sink."""
    level = (level or "INFO").upper()
    logdir = Path(root) / datetime.now().strftime("%Y/%m/%d")
    logdir.mkdir(parents=True, exist_ok=True)
    logger.remove()
    logger.add(
        str(logdir / LOG_FILE),
        rotation="00:00",
        retention=retention,
        level=level,
        enqueue=True,
        backtrace=True,
        # locals may hold national ids
        diagnose=False,
    )
    if console:
        logger.add(lambda m: print(m, end=""), level=level)
    return logger


def mask_id(national_id: str) -> str:
    """A123456789 -> A12****789. Short values keep only the first character."""
    value = (national_id or "").strip()
    if len(value) < 7:
        return value[:1] + "*" * max(len(value) - 1, 0)
    return value[:3] + "*" * (len(value) - 6) + value[-3:]
