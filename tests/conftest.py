# tests/conftest.py
import pytest
from unittest.mock import MagicMock
from pathlib import Path
from fastapi.testclient import TestClient

from drivegate.app import create_app
from drivegate.config import Settings, get_settings
from drivegate.providers import ProviderRegistry
from drivegate.storage.base import StorageClient


@pytest.fixture
def mock_settings():
    """
    Provides a mock of the application settings for testing.
    This avoids the need for environment variables during tests.
    """
    settings = MagicMock(spec=Settings)
    settings.LOG_LEVEL = "INFO"
    settings.HOST = "127.0.0.1"
    settings.PORT = 8080
    settings.CORS_ORIGINS = []
    settings.DEFAULT_PROVIDER = "google"
    settings.GDRIVE_CREDENTIALS_JSON = None
    settings.GDRIVE_CLIENT_ID = "test_client_id"
    settings.GDRIVE_CLIENT_SECRET = "test_client_secret"
    settings.GDRIVE_REDIRECT_URI = "http://localhost:8080/oauth2/callback"
    settings.SESSION_SECRET_KEY = "test-secret"
    settings.SESSION_HTTPS_ONLY = False
    settings.OAUTH_STATE_TTL_SECONDS = 600
    settings.STREAM_CHUNK_SIZE = 4
    settings.BASE_DIR = Path("/tmp")
    settings.LOG_FILE = Path("/tmp/app.log")
    settings.gdrive_client_config = {
        "web": {
            "client_id": "test_client_id",
            "client_secret": "test_client_secret",
            "auth_uri": "https://accounts.google.com/o/oauth2/auth",
            "token_uri": "https://oauth2.googleapis.com/token",
        }
    }
    return settings


@pytest.fixture
def mock_storage_client():
    """Fixture for a mock storage client."""
    return MagicMock(spec=StorageClient)


@pytest.fixture
def registry(mock_storage_client):
    registry = ProviderRegistry()
    registry.register("google", mock_storage_client)
    return registry


@pytest.fixture
def app(mock_settings, registry):
    return create_app(mock_settings, registry=registry)


@pytest.fixture
def client(app):
    """An HTTP client without a session cookie."""
    return TestClient(app)


@pytest.fixture
def authed_client(app):
    """An HTTP client carrying the "token" session cookie."""
    return TestClient(app, cookies={"token": "test_token"})


@pytest.fixture(autouse=True)
def patch_settings_class(monkeypatch, mock_settings):
    """
    Replaces the `Settings` class constructor so that any call to
    `get_settings()` during a test returns `mock_settings`.
    """
    # The cache might hold a real instance created during test collection.
    get_settings.cache_clear()
    monkeypatch.setattr("drivegate.config.Settings", lambda *args, **kwargs: mock_settings)
    yield
    get_settings.cache_clear()
