# utils/logger.py

import logging
import os
import sys

from config import DEFAULT_LOGGER_NAME, LOG_FILE_PATH, LOG_LEVEL_CONSOLE, LOG_LEVEL_FILE, VERBOSE_LOGGING


def setup_logger(name=None, log_file=None, console_level_str=None, file_level_str=None):
    logger_name = name if name else DEFAULT_LOGGER_NAME
    logger = logging.getLogger(logger_name)

    if logger.handlers:
        return logger
    logger.setLevel(logging.DEBUG)

    actual_log_file = log_file if log_file is not None else LOG_FILE_PATH
    actual_console_level_str = console_level_str if console_level_str else LOG_LEVEL_CONSOLE
    if VERBOSE_LOGGING and not console_level_str:
        actual_console_level_str = "DEBUG"
    actual_file_level_str = file_level_str if file_level_str else LOG_LEVEL_FILE

    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s (%(filename)s:%(lineno)d)")

    # stderr keeps stdout free for JSON output from the driver
    ch = logging.StreamHandler(sys.stderr)
    ch_level = getattr(logging, actual_console_level_str.upper(), None)
    if not isinstance(ch_level, int):
        print(f"Warning: Invalid console log level '{actual_console_level_str}' in config. Using INFO.",
              file=sys.stderr)
        ch_level = logging.INFO
    ch.setLevel(ch_level)
    ch.setFormatter(formatter)
    logger.addHandler(ch)

    if actual_log_file:
        try:
            log_dir = os.path.dirname(actual_log_file)
            if log_dir:
                os.makedirs(log_dir, exist_ok=True)
            fh = logging.FileHandler(actual_log_file, encoding='utf-8')
            fh_level = getattr(logging, actual_file_level_str.upper(), None)
            if not isinstance(fh_level, int):
                print(f"Warning: Invalid file log level '{actual_file_level_str}' in config. Using DEBUG.",
                      file=sys.stderr)
                fh_level = logging.DEBUG
            fh.setLevel(fh_level)
            fh.setFormatter(formatter)
            logger.addHandler(fh)
        except OSError as e:
            logger.error(f"Failed to configure file logger for {actual_log_file}: {e}", exc_info=False)

    logger.propagate = False  # To prevent duplicate logs if root logger is also configured

    return logger


def attach_library_logger(app_logger: logging.Logger, package_name: str = "rulescraper") -> None:
    """Route the engine's module loggers through the handlers of ``app_logger``."""
    lib_logger = logging.getLogger(package_name)
    lib_logger.setLevel(logging.DEBUG)
    for handler in app_logger.handlers:
        if handler not in lib_logger.handlers:
            lib_logger.addHandler(handler)
    lib_logger.propagate = False
