"""
Logging configuration for the template generator.
"""

import logging
import sys
from typing import Optional

LOGGER_NAME = 'template_generator'
LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logging(log_file: Optional[str] = None, verbose: bool = False) -> logging.Logger:
    """
    Configure the package logger with a console handler and an optional file handler.

    Args:
        log_file: Optional path of a log file written in addition to the console
        verbose: Enable DEBUG level output

    Returns:
        The configured package logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    logger.propagate = False

    # Reconfiguring replaces earlier handlers instead of duplicating output
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    logger.addHandler(console)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def get_logger() -> logging.Logger:
    """Get the package root logger."""
    return logging.getLogger(LOGGER_NAME)


def get_module_logger(name: str) -> logging.Logger:
    """Get a logger for a module, nested under the package logger."""
    if name.startswith(LOGGER_NAME):
        return logging.getLogger(name)
    return logging.getLogger(f"{LOGGER_NAME}.{name}")


def get_generator_logger() -> logging.Logger:
    return logging.getLogger(f"{LOGGER_NAME}.generator")


def get_strategy_logger() -> logging.Logger:
    return logging.getLogger(f"{LOGGER_NAME}.strategy")


def get_docx_logger() -> logging.Logger:
    return logging.getLogger(f"{LOGGER_NAME}.docx")


def get_delivery_logger() -> logging.Logger:
    return logging.getLogger(f"{LOGGER_NAME}.delivery")
