"""
Unit tests for JSON logging setup.
"""

import json
import logging
import sys
import tempfile
import threading
from pathlib import Path

import pytest

from stats_agent.log import JSONFormatter, get_logger, setup_logging


def make_record(msg='Test message', level=logging.INFO, exc_info=None):
    return logging.LogRecord(
        name='stats_agent.test',
        level=level,
        pathname='test.py',
        lineno=42,
        msg=msg,
        args=(),
        exc_info=exc_info
    )


@pytest.fixture
def restore_loggers():
    names = ('stats_agent', 'uvicorn', 'uvicorn.error', 'uvicorn.access')
    saved = {
        name: (list(logging.getLogger(name).handlers), logging.getLogger(name).level,
               logging.getLogger(name).propagate)
        for name in names
    }
    yield
    for name, (handlers, level, propagate) in saved.items():
        logger = logging.getLogger(name)
        for handler in logger.handlers:
            if handler not in handlers:
                handler.close()
        logger.handlers = handlers
        logger.setLevel(level)
        logger.propagate = propagate


class TestJSONFormatter:
    """Test JSONFormatter"""

    def test_required_fields(self):
        data = json.loads(JSONFormatter().format(make_record()))

        assert data['level'] == 'INFO'
        assert data['logger'] == 'stats_agent.test'
        assert data['message'] == 'Test message'
        assert data['timestamp'].endswith('Z')
        assert 'context' not in data

    def test_context(self):
        record = make_record('Command timed out')
        record.context = {'command': 'free -m', 'timeout': 5.0}

        data = json.loads(JSONFormatter().format(record))
        assert data['context'] == {'command': 'free -m', 'timeout': 5.0}

    def test_thread_name_from_pool(self):
        """Should tag records logged from collection pool threads"""
        records = []
        worker = threading.Thread(target=lambda: records.append(make_record()), name='collect_0')
        worker.start()
        worker.join()

        data = json.loads(JSONFormatter().format(records[0]))
        assert data['thread'] == 'collect_0'

    def test_no_thread_name_on_main_thread(self):
        assert 'thread' not in json.loads(JSONFormatter().format(make_record()))

    def test_exception(self):
        try:
            raise RuntimeError('collector exploded')
        except RuntimeError:
            exc_info = sys.exc_info()

        data = json.loads(JSONFormatter().format(make_record('Task failed', logging.ERROR, exc_info)))

        assert data['exception']['type'] == 'RuntimeError'
        assert data['exception']['message'] == 'collector exploded'
        assert 'Traceback' in data['exception']['traceback']


class TestSetupLogging:
    """Test setup_logging and get_logger"""

    def test_get_logger_is_namespaced(self):
        assert get_logger('collectors').name == 'stats_agent.collectors'
        assert get_logger('stats_agent.runner').name == 'stats_agent.runner'
        assert get_logger('stats_agent').name == 'stats_agent'

    def test_configures_agent_and_uvicorn(self, restore_loggers):
        setup_logging('WARNING')

        for name in ('stats_agent', 'uvicorn.access'):
            logger = logging.getLogger(name)
            assert logger.level == logging.WARNING
            assert len(logger.handlers) == 1
            assert isinstance(logger.handlers[0].formatter, JSONFormatter)

    def test_repeated_setup_does_not_duplicate(self, restore_loggers):
        setup_logging('INFO')
        setup_logging('INFO')
        assert len(logging.getLogger('stats_agent').handlers) == 1

    def test_repeated_setup_closes_replaced_handlers(self, restore_loggers):
        with tempfile.TemporaryDirectory() as tmpdir:
            setup_logging('INFO', str(Path(tmpdir) / 'first.log'))
            first = [h for h in logging.getLogger('stats_agent').handlers
                     if isinstance(h, logging.FileHandler)][0]

            setup_logging('INFO', str(Path(tmpdir) / 'second.log'))

            assert first not in logging.getLogger('uvicorn.access').handlers
            assert first.stream is None
            for handler in logging.getLogger('stats_agent').handlers:
                handler.close()

    def test_log_file(self, restore_loggers):
        with tempfile.TemporaryDirectory() as tmpdir:
            log_file = Path(tmpdir) / 'agent.log'
            setup_logging('INFO', str(log_file))

            get_logger('test').info('Hello', extra={'context': {'port': 8273}})
            for handler in logging.getLogger('stats_agent').handlers:
                handler.flush()

            line = log_file.read_text().strip().splitlines()[-1]
            data = json.loads(line)
            assert data['message'] == 'Hello'
            assert data['context'] == {'port': 8273}

            for handler in logging.getLogger('stats_agent').handlers:
                handler.close()
