import logging
from logging.handlers import RotatingFileHandler

import pytest

from logging_setup import LOGGER_NAME, configure_logging, tail_log


@pytest.fixture
def clean_logger():
    logger = logging.getLogger(LOGGER_NAME)
    saved = list(logger.handlers)
    logger.handlers = []
    yield logger
    for handler in logger.handlers:
        handler.close()
    logger.handlers = saved


def test_configure_logging_once(tmp_path, clean_logger):
    log_file = configure_logging(str(tmp_path / 'logs'))
    configure_logging(str(tmp_path / 'logs'))

    assert log_file == str(tmp_path / 'logs' / 'dashboard.log')
    assert len(clean_logger.handlers) == 2
    assert any(isinstance(h, RotatingFileHandler) for h in clean_logger.handlers)

    clean_logger.info('refresh done')
    for handler in clean_logger.handlers:
        handler.flush()
    assert 'INFO shop_dashboard refresh done' in tail_log(log_file)


def test_tail_log(tmp_path):
    path = tmp_path / 'dashboard.log'
    path.write_text('\n'.join(f'line {i}' for i in range(10)))

    assert tail_log(str(path), n=3) == 'line 7\nline 8\nline 9'
    assert tail_log(str(tmp_path / 'missing.log')) == ''
