"""
Bulk Import Service

Handles the exercise bulk import workflow:
1. Spreadsheet - Decode the uploaded Excel file and extract image rows
2. Images - Replace the uploaded image selection
3. Match - Review auto matches and override them per row
4. Validate - Every row naming an image must have one selected
5. Submit - Assemble the named images and send everything to the backend

This module provides:
- ImportJob, the per-job state holding one MappingStore
- BulkImportService class for orchestrating the workflow
"""

import uuid
import logging
import threading
from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional, Tuple
from datetime import datetime, timezone

from catalog_import_api.config import settings
from catalog_import_api.exceptions import (
    CatalogApiError,
    InvalidImageIndexError,
    JobNotFoundError,
    MissingSpreadsheetError,
    RowNotFoundError,
    SpreadsheetDecodeError,
    UnresolvedImagesError,
)
from catalog_import_api.models import (
    ImportJobResponse,
    MappingEntryOut,
    NameCollisionOut,
    SubmitResponse,
    UploadedImage,
    ValidationResponse,
)
from catalog_import_api.parsers import ExcelSheetDecoder, FileInfo
from catalog_import_api.services.catalog_client import CatalogApiClient
from catalog_import_api.services.image_preview import build_thumbnail_data_url
from catalog_import_api.services.reconciliation import ImageAsset, MappingStore, ValidationResult

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class ImportJob:
    """State of one import in progress"""
    id: str
    owner: str
    store: MappingStore
    status: str = "draft"
    spreadsheet_name: Optional[str] = None
    spreadsheet: Optional[bytes] = None
    spreadsheet_content_type: Optional[str] = None
    sheet_name: Optional[str] = None
    columns: List[str] = field(default_factory=list)
    records: List[Dict[str, Any]] = field(default_factory=list)
    decode_error: Optional[str] = None
    sheet_warnings: List[str] = field(default_factory=list)
    image_warnings: List[str] = field(default_factory=list)
    created_at: str = field(default_factory=_now)
    updated_at: str = field(default_factory=_now)
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def touch(self) -> None:
        self.updated_at = _now()


class BulkImportService:
    """
    Service for orchestrating the exercise bulk import workflow.

    This service manages:
    - Job creation and ownership
    - Spreadsheet decoding and image row extraction
    - Image selection and row -> image reconciliation
    - Validation and payload assembly
    - Submission to the catalog backend
    """

    def __init__(
        self,
        client: Optional[CatalogApiClient] = None,
        decoder: Optional[ExcelSheetDecoder] = None,
    ):
        self.client = client or CatalogApiClient()
        self.decoder = decoder or ExcelSheetDecoder()
        self._jobs: Dict[str, ImportJob] = {}

    # ========================================================================
    # Job Management
    # ========================================================================

    def create_job(self, owner: str) -> ImportJob:
        """Create a new, empty import job"""
        job = ImportJob(
            id=str(uuid.uuid4()),
            owner=owner,
            store=MappingStore(column_keys=settings.IMAGE_COLUMN_KEYS),
        )
        self._jobs[job.id] = job
        logger.info(f"Created import job {job.id} for {owner}")
        return job

    def get_job(self, job_id: str, owner: str) -> ImportJob:
        job = self._jobs.get(job_id)
        if job is None or job.owner != owner:
            raise JobNotFoundError(job_id)
        return job

    def delete_job(self, job_id: str, owner: str) -> None:
        self.get_job(job_id, owner)
        del self._jobs[job_id]
        logger.info(f"Deleted import job {job_id}")

    # ========================================================================
    # Step 1: Spreadsheet
    # ========================================================================

    def upload_spreadsheet(
        self,
        job_id: str,
        owner: str,
        filename: str,
        content: bytes,
        content_type: Optional[str] = None,
    ) -> ImportJob:
        """
        Decode a spreadsheet and replace the job's rows.

        A file that cannot be decoded is kept for submission but leaves the
        job with no rows and a user-facing decode_error.
        """
        job = self.get_job(job_id, owner)
        file_info = FileInfo.from_upload(filename, len(content), content_type)

        try:
            if not self.decoder.can_parse(file_info):
                raise SpreadsheetDecodeError(f"unsupported file type '{file_info.extension}'")
            sheet = self.decoder.decode(content, file_info)
        except SpreadsheetDecodeError as e:
            logger.warning(f"Job {job_id}: could not decode {filename}: {e.details.get('reason', '')}")
            sheet = None
            decode_error = e.message
        else:
            decode_error = None

        with job.lock:
            job.spreadsheet_name = filename
            job.spreadsheet = content
            job.spreadsheet_content_type = content_type
            job.status = "draft"
            job.decode_error = decode_error
            if sheet is None:
                job.sheet_name = None
                job.columns = []
                job.records = []
                job.sheet_warnings = []
            else:
                job.sheet_name = sheet.sheet_name
                job.columns = sheet.columns
                job.records = sheet.records
                job.sheet_warnings = sheet.warnings
            job.store.load_records(job.records)
            job.touch()

        logger.info(
            f"Job {job_id}: {len(job.records)} rows, {len(job.store.rows)} reference an image"
        )
        return job

    # ========================================================================
    # Step 2: Images
    # ========================================================================

    def upload_images(
        self,
        job_id: str,
        owner: str,
        files: List[Tuple[str, bytes, Optional[str]]],
    ) -> ImportJob:
        """Replace the job's image selection with (name, content, content_type) files"""
        job = self.get_job(job_id, owner)

        limit = settings.MAX_IMAGES_PER_UPLOAD
        warnings = []
        if len(files) > limit:
            warnings.append(f"Only the first {limit} of {len(files)} images were kept")
            logger.warning(f"Job {job_id}: {warnings[-1]}")

        assets = [
            ImageAsset(index=i, name=name, content=content, content_type=content_type)
            for i, (name, content, content_type) in enumerate(files[:limit])
        ]

        with job.lock:
            job.store.load_assets(assets)
            job.status = "draft"
            job.image_warnings = warnings
            job.touch()

        return job

    # ========================================================================
    # Step 3: Match
    # ========================================================================

    def set_match(
        self,
        job_id: str,
        owner: str,
        row_index: int,
        image_file_index: Optional[int],
    ) -> ImportJob:
        """Manually pick (or clear) the image for one row"""
        job = self.get_job(job_id, owner)

        with job.lock:
            if not job.store.has_row(row_index):
                raise RowNotFoundError(row_index)
            image_count = len(job.store.assets)
            if image_file_index is not None and not 0 <= image_file_index < image_count:
                raise InvalidImageIndexError(image_file_index, image_count)
            job.store.set_match(row_index, image_file_index)
            job.touch()

        return job

    # ========================================================================
    # Step 4: Validate
    # ========================================================================

    def validate(self, job_id: str, owner: str) -> ValidationResponse:
        job = self.get_job(job_id, owner)
        with job.lock:
            result = job.store.validate()
        return self._validation_response(result)

    @staticmethod
    def _validation_response(result: ValidationResult) -> ValidationResponse:
        if result.ok:
            return ValidationResponse(ok=True)
        return ValidationResponse(
            ok=False,
            unresolved_row_indexes=result.unresolved_row_indexes,
            message=UnresolvedImagesError(result.unresolved_row_indexes).message,
        )

    # ========================================================================
    # Step 5: Submit
    # ========================================================================

    async def submit(self, job_id: str, owner: str) -> SubmitResponse:
        """
        Validate, assemble and send the import.

        Raises:
            MissingSpreadsheetError: No spreadsheet uploaded yet
            UnresolvedImagesError: Some rows name an image but none is selected
            CatalogApiError: The backend rejected or failed the import
        """
        job = self.get_job(job_id, owner)

        with job.lock:
            if job.spreadsheet is None or job.spreadsheet_name is None:
                raise MissingSpreadsheetError()

            result = job.store.validate()
            if not result.ok:
                raise UnresolvedImagesError(result.unresolved_row_indexes)

            images = job.store.assemble()
            collisions = job.store.collisions()
            spreadsheet_name = job.spreadsheet_name
            spreadsheet = job.spreadsheet
            spreadsheet_content_type = job.spreadsheet_content_type

        warnings = [
            f"Rows {c.kept_row_index} and {c.dropped_row_index} both use '{c.target_name}'; "
            f"only the image of row {c.kept_row_index} is sent"
            for c in collisions
        ]

        try:
            backend_result = await self.client.import_exercises(
                spreadsheet_name, spreadsheet, images, spreadsheet_content_type
            )
        except CatalogApiError:
            job.status = "failed"
            job.touch()
            raise

        job.status = "submitted"
        job.touch()
        logger.info(
            f"Job {job_id}: imported {backend_result.success_count} exercises, "
            f"{backend_result.failure_count} failed"
        )

        return SubmitResponse(
            success=True,
            job_id=job_id,
            success_count=backend_result.success_count,
            failure_count=backend_result.failure_count,
            errors=backend_result.errors,
            submitted_images=list(images.keys()),
            collisions=[
                NameCollisionOut(
                    target_name=c.target_name,
                    kept_row_index=c.kept_row_index,
                    dropped_row_index=c.dropped_row_index,
                )
                for c in collisions
            ],
            warnings=warnings,
        )

    async def download_template(self) -> bytes:
        return await self.client.download_template()

    # ========================================================================
    # Views
    # ========================================================================

    def describe(self, job: ImportJob, with_previews: bool = False) -> ImportJobResponse:
        """Build the API view of a job"""
        with job.lock:
            store = job.store
            mappings = []
            for entry in store.entries:
                asset = store.asset_for(entry)
                preview = None
                if with_previews and asset is not None:
                    preview = build_thumbnail_data_url(asset.content, settings.PREVIEW_MAX_SIZE)
                mappings.append(
                    MappingEntryOut(
                        row_index=entry.row_index,
                        image_file_name=entry.image_file_name,
                        image_file_index=entry.image_file_index,
                        manual=entry.manual,
                        required=entry.required,
                        matched_file_name=asset.name if asset else None,
                        preview=preview,
                    )
                )

            return ImportJobResponse(
                job_id=job.id,
                status=job.status,
                spreadsheet_name=job.spreadsheet_name,
                sheet_name=job.sheet_name,
                columns=list(job.columns),
                rows=list(job.records),
                images=[
                    UploadedImage(
                        index=a.index,
                        name=a.name,
                        size_bytes=len(a.content),
                        content_type=a.content_type,
                    )
                    for a in store.assets
                ],
                mappings=mappings,
                decode_error=job.decode_error,
                warnings=job.sheet_warnings + job.image_warnings,
                created_at=job.created_at,
                updated_at=job.updated_at,
            )
