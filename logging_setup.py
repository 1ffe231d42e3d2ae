import logging
import os
from logging.handlers import RotatingFileHandler

LOGGER_NAME = 'shop_dashboard'
LOG_FORMAT = '%(asctime)s %(levelname)s %(name)s %(message)s'


def configure_logging(log_dir: str = 'logs') -> str:
    """Attach file + console handlers to the dashboard logger once.

    Returns the path of the log file (`<log_dir>/dashboard.log`).
    """
    os.makedirs(log_dir, exist_ok=True)
    log_file = os.path.join(log_dir, 'dashboard.log')
    logger = logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        logger.setLevel(logging.INFO)
        formatter = logging.Formatter(LOG_FORMAT)
        fh = RotatingFileHandler(log_file, maxBytes=5 * 1024 * 1024, backupCount=3)
        fh.setLevel(logging.INFO)
        fh.setFormatter(formatter)
        logger.addHandler(fh)
        ch = logging.StreamHandler()
        ch.setLevel(logging.INFO)
        ch.setFormatter(formatter)
        logger.addHandler(ch)
    return log_file


def tail_log(path: str, n: int = 200) -> str:
    """Last `n` lines of a log file (reads at most the final 32 KB)."""
    if not os.path.exists(path):
        return ''
    with open(path, 'rb') as f:
        f.seek(0, os.SEEK_END)
        size = f.tell()
        f.seek(max(0, size - 32 * 1024))
        data = f.read().decode(errors='replace')
    return '\n'.join(data.splitlines()[-n:])
