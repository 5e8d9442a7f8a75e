"""
Storage locator tests

Store location is a pure function of the environment:
- DB_PATH override wins
- Persistent volume directory when present
- Working-directory fallback otherwise

Run: python -m pytest test/test_storage.py -v
"""

import os
import sys
import tempfile

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from pcshop.core.storage import StorePath, resolveStorePath, DEFAULT_BUSY_TIMEOUT_MS


class TestResolveStorePath:

    def test_volume_present_puts_store_under_it(self):
        with tempfile.TemporaryDirectory() as volume:
            storePath = resolveStorePath(environ={}, volumeDir=volume)
            assert storePath.path == os.path.join(volume, 'pcshop.db')

    def test_volume_absent_falls_back_to_working_directory(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            missing = os.path.join(tmpdir, 'no-volume')
            storePath = resolveStorePath(environ={}, volumeDir=missing)
            assert storePath.path == 'pcshop.db'

    def test_volume_marker_must_be_a_directory(self):
        with tempfile.NamedTemporaryFile() as marker:
            storePath = resolveStorePath(environ={}, volumeDir=marker.name)
            assert storePath.path == 'pcshop.db'

    def test_db_path_override_wins(self):
        with tempfile.TemporaryDirectory() as volume:
            storePath = resolveStorePath(environ={'DB_PATH': '/srv/shop/store.db'}, volumeDir=volume)
            assert storePath.path == os.path.normpath('/srv/shop/store.db')

    def test_deterministic(self):
        with tempfile.TemporaryDirectory() as volume:
            first = resolveStorePath(environ={}, volumeDir=volume)
            second = resolveStorePath(environ={}, volumeDir=volume)
            assert first == second

    def test_default_connection_parameters(self):
        storePath = resolveStorePath(environ={}, volumeDir='/definitely/not/here')
        assert storePath.busyTimeoutMs == DEFAULT_BUSY_TIMEOUT_MS
        assert storePath.sharedCache is True


class TestStorePath:

    def test_uri_with_shared_cache(self):
        assert StorePath('/data/pcshop.db').uri() == 'file:/data/pcshop.db?cache=shared'

    def test_uri_without_shared_cache(self):
        assert StorePath('pcshop.db', sharedCache=False).uri() == 'file:pcshop.db'

    def test_from_dsn_strips_prefix_and_params(self):
        storePath = StorePath.fromDsn('file:/data/pcshop.db?cache=shared&_pragma=busy_timeout=10000')
        assert storePath.path == os.path.normpath('/data/pcshop.db')

    def test_from_dsn_relative_path_is_cleaned(self):
        storePath = StorePath.fromDsn('file:./data/../pcshop.db')
        assert storePath.path == 'pcshop.db'

    def test_busy_timeout_seconds(self):
        assert StorePath('x.db', busyTimeoutMs=2500).busyTimeoutSeconds == pytest.approx(2.5)

    def test_immutable(self):
        storePath = StorePath('x.db')
        with pytest.raises(Exception):
            storePath.path = 'y.db'
