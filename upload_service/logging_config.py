import logging
import os
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

def _parse_level(level: str) -> int:
    return getattr(logging, str(level).upper(), logging.INFO)

logging.basicConfig(
    level=_parse_level(os.getenv("LOG_LEVEL", "INFO")),
    format=LOG_FORMAT,
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)

def set_log_level(level: str) -> None:
    logging.getLogger().setLevel(_parse_level(level))

def get_logger(name: str):
    return logging.getLogger(name)
