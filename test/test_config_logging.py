"""
Configuration and logging tests

Run: python -m pytest test/test_config_logging.py -v
"""

import logging
import os
import sys
import tempfile

import orjson
import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from pcshop.main import loadConfig, DEFAULT_CONFIG
from pcshop.logging import getLogger, setRequestContext, clearRequestContext, getRequestContext
from pcshop.logging.logger import StructuredFormatter
from pcshop.logging.context import RequestContextFilter


@pytest.fixture
def configFile():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = os.path.join(tmpdir, 'config.json')
        with open(path, 'wb') as f:
            f.write(orjson.dumps({
                'port': 9000,
                'publicDir': '/srv/public',
                'auth': {'tokenExpirySeconds': 600}
            }))
        yield path


class TestLoadConfig:

    def test_missing_file_gives_defaults(self):
        config = loadConfig('/definitely/not/here.json', environ={})
        assert config == DEFAULT_CONFIG
        assert config is not DEFAULT_CONFIG

    def test_file_overrides_defaults(self, configFile):
        config = loadConfig(configFile, environ={})
        assert config['port'] == 9000
        assert config['publicDir'] == '/srv/public'
        assert config['host'] == '0.0.0.0'

    def test_auth_block_merged(self, configFile):
        config = loadConfig(configFile, environ={})
        assert config['auth']['tokenExpirySeconds'] == 600
        assert config['auth']['cookieName'] == 'session'

    def test_environment_overrides(self, configFile):
        config = loadConfig(configFile, environ={'PORT': '10000', 'SESSION_SECRET': 's3cret-from-env'})
        assert config['port'] == 10000
        assert config['auth']['secret'] == 's3cret-from-env'

    def test_defaults_not_mutated(self, configFile):
        loadConfig(configFile, environ={'SESSION_SECRET': 'x' * 20})
        assert DEFAULT_CONFIG['auth']['secret'] is None
        assert DEFAULT_CONFIG['port'] == 8080

    def test_packaged_config_loads(self):
        config = loadConfig(environ={})
        assert config['auth']['sameSite'] == 'Lax'


class TestLogging:

    def test_auto_detected_name(self):
        log = getLogger()
        assert log.name.endswith('test_config_logging.TestLogging')

    def test_structured_fields_rendered(self):
        formatter = StructuredFormatter('%(levelname)s - %(message)s')
        record = logging.LogRecord('x', logging.INFO, __file__, 1, 'Registered user', None, None)
        record.email = 'u@test.com'
        assert formatter.format(record) == 'INFO - Registered user [email=u@test.com]'
        # Message restored for other handlers
        assert record.msg == 'Registered user'

    def test_kwargs_become_fields(self):
        log = getLogger('pcshop-test-kwargs')
        records = []

        class Capture(logging.Handler):
            def emit(self, record):
                records.append(record)

        handler = Capture()
        log.addHandler(handler)
        try:
            log.warning("Login failed", email='ghost@x.com')
        finally:
            log.removeHandler(handler)

        assert records[0].email == 'ghost@x.com'
        assert records[0].getMessage() == 'Login failed'

    def test_request_context_filter(self):
        setRequestContext('abc123', 'POST', '/api/login')
        try:
            assert getRequestContext() == {'requestId': 'abc123', 'method': 'POST', 'path': '/api/login'}
            record = logging.LogRecord('x', logging.INFO, __file__, 1, 'msg', None, None)
            assert RequestContextFilter().filter(record) is True
            assert record.requestId == 'abc123'
        finally:
            clearRequestContext()
        assert getRequestContext()['requestId'] is None

    def test_fields_named_like_record_attributes(self):
        log = getLogger('pcshop-test-record-attrs')
        records = []

        class Capture(logging.Handler):
            def emit(self, record):
                records.append(record)

        handler = Capture()
        log.addHandler(handler)
        try:
            log.info("Store ready", created=True, module='core', path='/data/pcshop.db')
        finally:
            log.removeHandler(handler)

        record = records[0]
        assert record.created_ is True
        assert record.module_ == 'core'
        assert record.path == '/data/pcshop.db'
        # Record's own timestamp untouched
        assert isinstance(record.created, float)

    def test_request_method_and_path_on_records(self):
        setRequestContext('req42', 'GET', '/api/products')
        try:
            record = logging.LogRecord('x', logging.INFO, __file__, 1, 'msg', None, None)
            RequestContextFilter().filter(record)
            assert record.requestMethod == 'GET'
            assert record.requestPath == '/api/products'
        finally:
            clearRequestContext()

        record = logging.LogRecord('x', logging.INFO, __file__, 1, 'msg', None, None)
        RequestContextFilter().filter(record)
        assert not hasattr(record, 'requestId')
        assert not hasattr(record, 'requestMethod')
