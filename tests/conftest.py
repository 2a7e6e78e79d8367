import pytest
from unittest.mock import MagicMock

from fastapi.testclient import TestClient

from drivefile.auth import get_credential_store
from drivefile.config import get_settings


# --- Canned API responses ---

DRIVE_API_FILE = {
    "id": "file123",
    "name": "report.txt",
    "mimeType": "text/plain",
    "size": "1024",
    "createdTime": "2025-01-01T00:00:00Z",
    "modifiedTime": "2025-01-02T00:00:00Z",
    "parents": ["folder789"],
    "webViewLink": "https://drive.google.com/file/d/file123/view",
    "description": "Quarterly report",
    "starred": True,
}

DRIVE_API_LIST = {
    "files": [DRIVE_API_FILE],
}

DRIVE_API_LIST_WITH_MORE = {
    "files": [DRIVE_API_FILE],
    "nextPageToken": "opaque-cursor-abc",
}


def make_http_error(status: int, message: str = "error"):
    from googleapiclient.errors import HttpError

    resp = MagicMock()
    resp.status = status
    resp.reason = message
    content = ('{"error": {"code": %d, "message": "%s"}}' % (status, message)).encode()
    return HttpError(resp=resp, content=content)


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    """Point settings at a temp token file and reset the cached settings/store around each test."""
    monkeypatch.setenv("GOOGLE_CLIENT_ID", "566896755544-abc.apps.googleusercontent.com")
    monkeypatch.setenv("GOOGLE_CLIENT_SECRET", "test-secret")
    monkeypatch.setenv("TOKEN_FILE", str(tmp_path / "tokens.json"))
    monkeypatch.setenv("TRANSPORT", "stdio")
    monkeypatch.setenv("PORT", "3000")
    get_settings.cache_clear()
    get_credential_store.cache_clear()
    yield
    get_settings.cache_clear()
    get_credential_store.cache_clear()


@pytest.fixture
def http_mode(monkeypatch):
    monkeypatch.setenv("TRANSPORT", "http")
    get_settings.cache_clear()
    get_credential_store.cache_clear()


@pytest.fixture
def authenticated_store():
    """Credential store holding a non-expiring access token."""
    store = get_credential_store()
    store.set_direct({"access_token": "ya29.token", "refresh_token": "1//refresh"})
    return store


@pytest.fixture
def mock_drive_credentials(mocker):
    return mocker.patch("drivefile.services.drive.get_drive_credentials", return_value=MagicMock())


@pytest.fixture
def mock_drive_build(mocker):
    mock_svc = MagicMock()
    mocker.patch("drivefile.services.drive.build", return_value=mock_svc)
    return mock_svc


@pytest.fixture
def mock_drive_service(mock_drive_credentials, mock_drive_build):
    """Fully mocked Drive API service."""
    return mock_drive_build


@pytest.fixture
def api_client():
    """FastAPI TestClient for router tests."""
    from drivefile.main import api
    return TestClient(api)
