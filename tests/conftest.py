"""
Test fixtures for catalog-import-api.

Provides builders for spreadsheets and images plus a mocked catalog backend
(httpx.MockTransport) to enable fast, deterministic, offline testing.
"""

import io
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient
from openpyxl import Workbook
from PIL import Image

# Repo root: .../catalog-import-api
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

# Make src/ importable so tests can do `import catalog_import_api...`
for p in {ROOT, SRC}:
    p_str = str(p)
    if p_str not in sys.path:
        sys.path.insert(0, p_str)

from catalog_import_api.main import app
from catalog_import_api.auth import get_current_user
from catalog_import_api.api import bulk_import_routes
from catalog_import_api.services.bulk_import import BulkImportService
from catalog_import_api.services.catalog_client import CatalogApiClient


# ---------------------------------------------------------------------------
# Auth Mock
# ---------------------------------------------------------------------------


TEST_USER_ID = "operator-123"


async def mock_get_current_user() -> str:
    """Mock auth dependency that returns a test operator."""
    return TEST_USER_ID


# ---------------------------------------------------------------------------
# Mock Catalog Backend
# ---------------------------------------------------------------------------


class FakeCatalogBackend:
    """Records requests and answers like the catalog backend."""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.import_status = 200
        self.import_body: Dict[str, Any] = {"successCount": 3, "failureCount": 0, "errors": []}
        self.import_raw: Optional[str] = None
        self.template_status = 200
        self.template_body = b"PK-template-bytes"
        self.login_status = 200
        self.login_token = "backend-token"
        self.failures_before_success = 0

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if self.failures_before_success > 0:
            self.failures_before_success -= 1
            return httpx.Response(503, text="Service Unavailable")

        path = request.url.path
        if path == "/api/v1/auth/login":
            if self.login_status != 200:
                return httpx.Response(self.login_status, text="Bad credentials")
            return httpx.Response(200, json={"id": 1, "username": "qa", "token": self.login_token})
        if path == "/api/exercises/import/template":
            if self.template_status != 200:
                return httpx.Response(self.template_status, text="")
            return httpx.Response(200, content=self.template_body)
        if path == "/api/exercises/import":
            if self.import_status != 200:
                return httpx.Response(self.import_status, text="Import exploded")
            if self.import_raw is not None:
                return httpx.Response(200, text=self.import_raw)
            return httpx.Response(200, json=self.import_body)
        return httpx.Response(404, text="not found")

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def import_requests(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path == "/api/exercises/import"]

    @staticmethod
    def multipart_filenames(request: httpx.Request, field: str) -> List[str]:
        """File names sent under a multipart field, in order."""
        marker = f'name="{field}"; filename="'.encode()
        names = []
        for chunk in request.content.split(marker)[1:]:
            names.append(chunk[:chunk.index(b'"')].decode())
        return names


@pytest.fixture
def backend() -> FakeCatalogBackend:
    return FakeCatalogBackend()


@pytest.fixture
def catalog_client(backend) -> CatalogApiClient:
    """Client wired to the fake backend with instant retries."""
    return CatalogApiClient(
        base_url="http://catalog.test",
        token="static-token",
        transport=backend.transport(),
        min_wait_seconds=0,
        max_wait_seconds=0,
    )


@pytest.fixture
def service(catalog_client) -> BulkImportService:
    return BulkImportService(client=catalog_client)


# ---------------------------------------------------------------------------
# Core Test Client
# ---------------------------------------------------------------------------


@pytest.fixture
def client(service, monkeypatch) -> TestClient:
    """Per-test FastAPI TestClient with a fresh import service."""
    monkeypatch.setattr(bulk_import_routes, "bulk_import_service", service)
    app.dependency_overrides[get_current_user] = mock_get_current_user
    yield TestClient(app)
    app.dependency_overrides.pop(get_current_user, None)


# ---------------------------------------------------------------------------
# File Builders
# ---------------------------------------------------------------------------


def build_xlsx(headers: List[str], rows: List[List[Any]]) -> bytes:
    """Build an .xlsx file with headers in row 1."""
    wb = Workbook()
    ws = wb.active
    ws.title = "Exercises"
    ws.append(headers)
    for row in rows:
        ws.append(row)
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def build_png(color: str = "red", size: tuple = (8, 8)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def xlsx_builder() -> Callable[..., bytes]:
    return build_xlsx


@pytest.fixture
def png_builder() -> Callable[..., bytes]:
    return build_png


@pytest.fixture
def exercise_sheet() -> bytes:
    """Three exercises: rows 2 and 4 name an image, row 3 does not."""
    return build_xlsx(
        ["name", "category", "imageFileName"],
        [
            ["Cat Stretch", "mobility", "cat.png"],
            ["Plank", "core", ""],
            ["Downward Dog", "mobility", "dog.jpg"],
        ],
    )


@pytest.fixture
def exercise_images() -> List[tuple]:
    """Upload payload for TestClient: cat.png and DOG.JPG."""
    return [
        ("images", ("cat.png", build_png("red"), "image/png")),
        ("images", ("DOG.JPG", build_png("blue"), "image/jpeg")),
    ]

