import logging
import sys
from colorlog import ColoredFormatter

from ..config import config


def setup_logging(name: str) -> logging.Logger:
    """
    Set up colored logging for the given logger name.
    """
    logger = logging.getLogger(name)
    logger.propagate = False  # Prevent double logging

    if logger.handlers:
        logger.handlers.clear()

    level = getattr(logging, config.log_level.upper(), logging.INFO)

    console_handler = logging.StreamHandler(sys.stdout)
    color_formatter = ColoredFormatter(
        "%(log_color)s%(asctime)s - %(name)s - %(levelname)s - %(message)s%(reset)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        log_colors={
            'DEBUG': 'cyan',
            'INFO': 'green',
            'WARNING': 'yellow',
            'ERROR': 'red',
            'CRITICAL': 'red,bg_white',
        }
    )
    console_handler.setFormatter(color_formatter)
    console_handler.setLevel(level)
    logger.addHandler(console_handler)

    if config.log_to_file:
        file_handler = logging.FileHandler(config.log_file)
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        ))
        file_handler.setLevel(level)
        logger.addHandler(file_handler)

    logger.setLevel(level)

    # Suppress chatty client libraries
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("openai._base_client").setLevel(logging.WARNING)
    logging.getLogger("urllib3.connectionpool").setLevel(logging.WARNING)
    return logger
