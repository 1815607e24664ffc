# utils/logger.py
import os
import logging
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logger(
    logger_name: str,
    log_file: Optional[str] = None,
    level: int = logging.INFO,
    log_dir: str = "logs",
    announce: bool = True
) -> logging.Logger:
    """
    Set up and return a logger with file and console handlers.

    Args:
        logger_name: Name of the logger
        log_file: Optional specific log filename (default: {logger_name}.log)
        level: Logging level (default: INFO)
        log_dir: Directory for log files (default: logs)
        announce: Log where the log file lives once the handlers are attached

    Returns:
        Configured logger instance
    """
    os.makedirs(log_dir, exist_ok=True)

    if log_file is None:
        log_file = f"{logger_name.lower().replace(' ', '_')}.log"

    log_path = os.path.join(log_dir, log_file)

    logger = logging.getLogger(logger_name)
    logger.setLevel(level)
    # Handlers are owned here; don't duplicate lines through the root logger
    logger.propagate = False

    # Clear existing handlers to avoid duplicates if logger already exists
    if logger.handlers:
        for handler in list(logger.handlers):
            handler.close()
        logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT)

    file_handler = logging.FileHandler(log_path)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if announce:
        logger.info(f"Log file is being saved to: {os.path.abspath(log_path)}")

    return logger
