import datetime as dt
import logging
import sys
from pathlib import Path


def console_log(logger: logging.Logger, message: str, section: bool = False):
    """Log a message with optional section header formatting."""
    if section:
        logger.info(f"{'─' * 60}")
        logger.info(f"  {message}")
        logger.info(f"{'─' * 60}")
    else:
        logger.info(message)


class MaxLevelFilter(logging.Filter):
    def __init__(self, max_level):
        super().__init__()
        self.max_level = max_level

    def filter(self, record):
        return record.levelno <= self.max_level


def setup_logger(
    name: str,
    log_dir: str | Path = "logs",
    level: int = logging.WARNING,
    log_format: str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    daily_rotation: bool = True,
    console_output: bool = False
) -> logging.Logger:
    """
    Setup a logger writing to a file, with optional console output.

    :param name: Logger name (e.g., 'clab', 'contriblab.evaluation')
    :param log_dir: Directory to store log files (default: 'logs')
    :param level: Logging level (default: logging.WARNING)
    :param log_format: Log message format string
    :param daily_rotation: If True, one log file per day; otherwise one per logger name
    :param console_output: If True, also echo INFO messages to stdout

    :return: Configured logger where:
    1. FILE receives logs at `level` and above.
    2. CONSOLE (if enabled) receives ONLY INFO and below, so scoring
       summaries stay readable while warnings go to the file.

    Example:
        >>> logger = setup_logger('clab', 'logs', logging.INFO, console_output=True)
        >>> logger.info('Scoring 5 models over 120 eras')
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Avoid adding duplicate handlers
    if logger.handlers:
        return logger

    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(log_format)

    if daily_rotation:
        log_date = dt.datetime.now().strftime('%Y-%m-%d')
        log_file = log_path / f"logs_{log_date}.log"
    else:
        log_file = log_path / f"{name.replace('.', '_')}.log"

    file_handler = logging.FileHandler(log_file)
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.INFO)
        # Warnings and errors go to the file only
        console_handler.addFilter(MaxLevelFilter(logging.INFO))
        console_handler.setFormatter(logging.Formatter('%(message)s'))
        logger.addHandler(console_handler)

    return logger
