"""
Shared pytest fixtures for the DX Cluster app.
"""

import pytest

from app_factory import create_app
from config import TestingConfig
from utils.logging_config import reset_error_log


@pytest.fixture(autouse=True)
def _fresh_error_log():
    # Rate-limited feed errors would otherwise leak between tests
    reset_error_log()
    yield
    reset_error_log()


@pytest.fixture
def app():
    """Application built from TestingConfig (in-memory database, no polling)."""
    app = create_app(TestingConfig)
    yield app
    app.config['DX_CLUSTER'].shutdown()
    app.extensions['cache_manager'].shutdown()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def service(app):
    return app.config['DX_CLUSTER']
