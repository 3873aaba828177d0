"""
Pytest configuration and fixtures for the desa backend tests.
"""

import io
import os
import zipfile

import httpx
import pytest
from fastapi.testclient import TestClient
from PIL import Image

# Keep the tests away from real credentials and background watchers
os.environ["STATUS_LISTENER_ENABLED"] = "0"
os.environ.setdefault("CLOUDINARY_CLOUD_NAME", "demo")

from core.config import ExportSettings
from main import app
from utils.export import MonthlyExporter


def _jpeg(width=120, height=90, color=(200, 120, 40)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format="JPEG", quality=90)
    return buf.getvalue()


@pytest.fixture
def make_jpeg():
    """Factory for small solid-colour JPEGs."""
    return _jpeg


@pytest.fixture
def logo_png():
    buf = io.BytesIO()
    Image.new("RGBA", (64, 32), (0, 128, 255, 200)).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def export_settings():
    return ExportSettings(
        collection="laporan_driver",
        timezone="Asia/Jakarta",
        cloud_name="demo",
        logo_url="",
        fetch_timeout=5.0,
        concurrency=3,
        remote_transform=False,
        jpeg_quality=90,
    )


@pytest.fixture
def mock_client_factory():
    """Build a client factory whose requests are answered by `handler`."""

    def _factory(handler):
        return lambda: httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return _factory


@pytest.fixture
def make_exporter(export_settings, mock_client_factory):
    def _make(handler, settings=None, **kwargs):
        return MonthlyExporter(settings or export_settings, client_factory=mock_client_factory(handler), **kwargs)

    return _make


@pytest.fixture
def open_zip():
    def _open(data: bytes) -> zipfile.ZipFile:
        return zipfile.ZipFile(io.BytesIO(data))

    return _open


@pytest.fixture
def client():
    """Create a test client for the FastAPI app."""
    app.dependency_overrides.clear()
    yield TestClient(app)
    app.dependency_overrides.clear()
