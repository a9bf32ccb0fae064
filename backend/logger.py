import logging
import sys
from logging.handlers import RotatingFileHandler
import os
from dotenv import load_dotenv

load_dotenv()

LOG_DIR = os.getenv("LOG_DIR", "logs")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FILE = os.path.join(LOG_DIR, "metal_ledger.log")
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_handlers = []


def _shared_handlers():
    # One rotating file for the whole app, several handlers on one file break rotation
    if not _handlers:
        os.makedirs(LOG_DIR, exist_ok=True)
        formatter = logging.Formatter(LOG_FORMAT)

        file_handler = RotatingFileHandler(
            LOG_FILE, maxBytes=10*1024*1024, backupCount=5, encoding="utf-8"
        )
        console_handler = logging.StreamHandler(sys.stdout)
        for handler in (file_handler, console_handler):
            handler.setFormatter(formatter)
            _handlers.append(handler)
    return _handlers


def get_logger(name):
    logger = logging.getLogger(name)
    logger.setLevel(LOG_LEVEL)

    # Check if handlers are already added to avoid duplicates
    if not logger.handlers:
        for handler in _shared_handlers():
            logger.addHandler(handler)
        logger.propagate = False

    return logger
