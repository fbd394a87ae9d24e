"""
Shared pytest fixtures for feed core tests.
"""
import pytest
import sys
from unittest.mock import MagicMock
from PySide6.QtCore import QCoreApplication


@pytest.fixture(scope='session')
def qt_app():
    """Create QCoreApplication instance for tests."""
    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication(sys.argv)
    yield app
    # Don't quit - causes issues with pytest


@pytest.fixture
def settings_manager(tmp_path):
    """SettingsManager backed by a throwaway INI file."""
    from core.settings import SettingsManager
    manager = SettingsManager(settings_file=str(tmp_path / "settings.ini"))
    yield manager
    manager.clear()


@pytest.fixture
def thread_manager():
    """Create ThreadManager instance for testing."""
    from core.threading.manager import ThreadManager
    manager = ThreadManager()
    yield manager
    manager.shutdown(wait=True)


@pytest.fixture
def cache_dir(tmp_path):
    path = tmp_path / "ImageCache"
    path.mkdir()
    return path


@pytest.fixture
def online_monitor():
    """Connectivity probe that always reports a route."""
    monitor = MagicMock()
    monitor.check_internet_connectivity.side_effect = lambda completion: completion(True)
    return monitor


@pytest.fixture
def offline_monitor():
    """Connectivity probe that always reports no route."""
    monitor = MagicMock()
    monitor.check_internet_connectivity.side_effect = lambda completion: completion(False)
    return monitor


@pytest.fixture
def stalling_server():
    """Factory for local servers that stall their first response.

    Request this after ``thread_manager`` so the server is released before
    the pool is joined.
    """
    from tests._qt_test_utils import StallingServer
    servers = []

    def _make(body_for, **kwargs):
        server = StallingServer(body_for, **kwargs)
        servers.append(server)
        return server

    yield _make
    for server in servers:
        server.close()
