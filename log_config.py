# backend/log_config.py

import logging
import os
from logging import FileHandler, StreamHandler

from dotenv import load_dotenv

load_dotenv()
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FILENAME = os.getenv("LOG_FILENAME", "")

formatter = logging.Formatter(
    fmt="%(asctime)s %(name)s:%(levelname)s:%(message)s",
    datefmt="%F %A %T",
)


def setup_logging():
    root_logger = logging.getLogger()
    root_logger.setLevel(LOG_LEVEL)

    # Already configured (e.g. app imported twice under a reloader)
    if any(getattr(h, "_tax_chat", False) for h in root_logger.handlers):
        return

    console_out = StreamHandler()
    console_out.setFormatter(formatter)
    console_out._tax_chat = True
    root_logger.addHandler(console_out)

    if LOG_FILENAME:
        file_handler = FileHandler(filename=LOG_FILENAME, encoding="utf-8", mode="a+")
        file_handler.setFormatter(formatter)
        file_handler._tax_chat = True
        root_logger.addHandler(file_handler)

    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
