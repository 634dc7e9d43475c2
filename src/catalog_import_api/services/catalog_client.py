"""
Catalog API Client

Talks to the remote fitness catalog backend:
- Login (Bearer token)
- Exercise import template download
- Exercise bulk import (spreadsheet + images, multipart)
"""

import logging
from typing import Dict, List, Optional, Tuple

import httpx
from pydantic import BaseModel, Field, ValidationError

from catalog_import_api.config import settings
from catalog_import_api.exceptions import CatalogApiError
from catalog_import_api.services.reconciliation import ImageAsset
from catalog_import_api.services.retry import (
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_MIN_WAIT_SECONDS,
    DEFAULT_MAX_WAIT_SECONDS,
    retry_async_call,
)

logger = logging.getLogger(__name__)

LOGIN_PATH = "/api/v1/auth/login"
TEMPLATE_PATH = "/api/exercises/import/template"
IMPORT_PATH = "/api/exercises/import"

XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


class ExerciseBulkImportResult(BaseModel):
    """Backend response to an exercise import"""
    success_count: int = Field(default=0, alias="successCount")
    failure_count: int = Field(default=0, alias="failureCount")
    errors: List[str] = Field(default_factory=list)

    model_config = {"populate_by_name": True}


def _error_message(response: httpx.Response, fallback: str) -> str:
    text = response.text.strip()
    return text or f"{fallback} ({response.status_code})"


class CatalogApiClient:
    """Async client for the catalog backend."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        min_wait_seconds: float = DEFAULT_MIN_WAIT_SECONDS,
        max_wait_seconds: float = DEFAULT_MAX_WAIT_SECONDS,
    ):
        self.base_url = (base_url or settings.CATALOG_API_BASE).rstrip("/")
        self.token = token if token is not None else settings.CATALOG_API_TOKEN
        self.timeout = timeout if timeout is not None else settings.CATALOG_API_TIMEOUT
        self._transport = transport
        self._retry_options = {
            "max_attempts": max_attempts,
            "min_wait_seconds": min_wait_seconds,
            "max_wait_seconds": max_wait_seconds,
        }

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
        )

    def _headers(self) -> Dict[str, str]:
        if self.token:
            return {"Authorization": f"Bearer {self.token}"}
        return {}

    # ========================================================================
    # Auth
    # ========================================================================

    async def _login_once(self, username: str, password: str) -> str:
        try:
            async with self._client() as client:
                response = await client.post(
                    LOGIN_PATH,
                    json={"username": username, "password": password},
                )
        except httpx.HTTPError as e:
            raise CatalogApiError(f"Login failed: {e}") from e

        if response.status_code >= 400:
            raise CatalogApiError(_error_message(response, "Login failed"), response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise CatalogApiError("Login failed: unexpected backend response", response.status_code) from e

        token = data.get("token") if isinstance(data, dict) else None
        if not token:
            raise CatalogApiError("Login response did not include a token", response.status_code)
        return token

    async def login(self, username: str, password: str) -> str:
        """Log in and keep the returned Bearer token for later calls."""
        self.token = await retry_async_call(self._login_once, username, password, **self._retry_options)
        logger.info(f"Logged in to catalog backend as {username}")
        return self.token

    async def ensure_token(self) -> None:
        """Log in with configured credentials if no token is set."""
        if self.token:
            return
        if settings.CATALOG_API_USERNAME and settings.CATALOG_API_PASSWORD:
            await self.login(settings.CATALOG_API_USERNAME, settings.CATALOG_API_PASSWORD)

    # ========================================================================
    # Template
    # ========================================================================

    async def _download_template_once(self) -> bytes:
        try:
            async with self._client() as client:
                response = await client.get(TEMPLATE_PATH, headers=self._headers())
        except httpx.HTTPError as e:
            raise CatalogApiError(f"Could not download template: {e}") from e

        if response.status_code >= 400:
            raise CatalogApiError(
                _error_message(response, "Could not download template"),
                response.status_code,
            )
        return response.content

    async def download_template(self) -> bytes:
        """Fetch the exercise import template (.xlsx bytes)."""
        await self.ensure_token()
        return await retry_async_call(self._download_template_once, **self._retry_options)

    # ========================================================================
    # Import
    # ========================================================================

    async def import_exercises(
        self,
        spreadsheet_name: str,
        spreadsheet: bytes,
        images: Dict[str, ImageAsset],
        spreadsheet_content_type: Optional[str] = None,
    ) -> ExerciseBulkImportResult:
        """
        Submit the spreadsheet and the assembled images.

        The spreadsheet keeps the content type it was uploaded with.
        Each image is sent under its key in `images` (the target name). The
        call is not retried since the backend may have applied a partial
        import before failing.
        """
        await self.ensure_token()

        files: List[Tuple[str, Tuple[str, bytes, str]]] = [
            ("file", (spreadsheet_name, spreadsheet, spreadsheet_content_type or XLSX_CONTENT_TYPE)),
        ]
        for target_name, asset in images.items():
            files.append(
                ("images", (target_name, asset.content, asset.content_type or "application/octet-stream"))
            )

        logger.info(f"Submitting {spreadsheet_name} with {len(images)} images to catalog backend")

        try:
            async with self._client() as client:
                response = await client.post(IMPORT_PATH, files=files, headers=self._headers())
        except httpx.HTTPError as e:
            logger.error(f"Catalog import request failed: {e}")
            raise CatalogApiError(f"Import failed: {e}") from e

        if response.status_code >= 400:
            logger.error(f"Catalog import rejected with status {response.status_code}")
            raise CatalogApiError(_error_message(response, "Import failed"), response.status_code)

        try:
            return ExerciseBulkImportResult.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            logger.error(f"Catalog import returned an unreadable body: {e}")
            raise CatalogApiError("Import failed: unexpected backend response", response.status_code) from e
