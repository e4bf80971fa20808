import logging
import sys
from pathlib import Path
from logging.handlers import RotatingFileHandler
from gymdesk.core.config import settings

LOG_DIR = Path(settings.LOG_DIR)

logger = logging.getLogger("gymdesk")
logger.setLevel(logging.DEBUG if settings.DEBUG else logging.INFO)
logger.handlers.clear()

_formatter = logging.Formatter(
    '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)

# Console
console_handler = logging.StreamHandler(sys.stdout)
console_handler.setLevel(logging.DEBUG if settings.DEBUG else logging.INFO)
console_handler.setFormatter(_formatter)
logger.addHandler(console_handler)

# File; a read-only install still gets console logging
try:
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    file_handler = RotatingFileHandler(
        LOG_DIR / "gymdesk.log",
        maxBytes=2 * 1024 * 1024,
        backupCount=3,
        encoding="utf-8",
    )
    file_handler.setLevel(logging.DEBUG if settings.DEBUG else logging.INFO)
    file_handler.setFormatter(_formatter)
    logger.addHandler(file_handler)
except OSError as e:
    logger.warning("File logging disabled: %s", e)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"gymdesk.{name}")
