"""
Bulk Import API Routes

Handles the exercise bulk import workflow:
1. Spreadsheet - Upload the Excel file, extract rows naming an image
2. Images - Upload the exercise images (replaces the previous selection)
3. Match - Review auto matches, override per row
4. Validate - Check every row naming an image has one selected
5. Submit - Send the spreadsheet and the named images to the catalog backend
"""

import asyncio
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, UploadFile, File as FastAPIFile, Query, Response

from catalog_import_api.auth import get_current_user
from catalog_import_api.exceptions import CatalogImportError
from catalog_import_api.models import (
    ImportJobResponse,
    SetMatchRequest,
    SubmitResponse,
    ValidationResponse,
)
from catalog_import_api.services.bulk_import import BulkImportService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/import", tags=["Bulk Import"])

# Initialize service
bulk_import_service = BulkImportService()

TEMPLATE_FILENAME = "exercise_import_template.xlsx"


def _http_error(e: CatalogImportError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=e.to_detail())


# ============================================================================
# Jobs
# ============================================================================

@router.post("/jobs", response_model=ImportJobResponse, status_code=201)
async def create_import_job(user_id: str = Depends(get_current_user)):
    """Start a new exercise import."""
    job = bulk_import_service.create_job(user_id)
    return bulk_import_service.describe(job)


@router.get("/jobs/{job_id}", response_model=ImportJobResponse)
async def get_import_job(
    job_id: str,
    previews: bool = Query(default=True, description="Include image thumbnails"),
    user_id: str = Depends(get_current_user),
):
    """
    Get the current state of an import job.

    Returns decoded rows, uploaded images and the row -> image mappings,
    with thumbnail previews of the selected images.
    """
    try:
        job = bulk_import_service.get_job(job_id, user_id)
    except CatalogImportError as e:
        raise _http_error(e)
    # Thumbnailing is CPU bound
    return await asyncio.to_thread(bulk_import_service.describe, job, previews)


@router.delete("/jobs/{job_id}", status_code=204)
async def delete_import_job(job_id: str, user_id: str = Depends(get_current_user)):
    """Discard an import job."""
    try:
        bulk_import_service.delete_job(job_id, user_id)
    except CatalogImportError as e:
        raise _http_error(e)
    return Response(status_code=204)


# ============================================================================
# Step 1: Spreadsheet
# ============================================================================

@router.post("/jobs/{job_id}/spreadsheet", response_model=ImportJobResponse)
async def upload_spreadsheet(
    job_id: str,
    file: UploadFile = FastAPIFile(..., description="Excel file (.xlsx)"),
    user_id: str = Depends(get_current_user),
):
    """
    Upload the import spreadsheet.

    Replaces any previous spreadsheet of the job. Rows are re-extracted and
    mappings reconciled; manual choices survive for rows whose imageFileName
    did not change. A file that cannot be read is reported in decode_error.
    """
    content = await file.read()
    filename = file.filename or "import.xlsx"

    try:
        job = bulk_import_service.upload_spreadsheet(
            job_id, user_id, filename, content, file.content_type
        )
    except CatalogImportError as e:
        raise _http_error(e)
    return bulk_import_service.describe(job)


# ============================================================================
# Step 2: Images
# ============================================================================

@router.post("/jobs/{job_id}/images", response_model=ImportJobResponse)
async def upload_images(
    job_id: str,
    images: List[UploadFile] = FastAPIFile(..., description="Exercise images"),
    user_id: str = Depends(get_current_user),
):
    """
    Upload the exercise images.

    Replaces the previous image selection and reconciles the mappings.
    File names should match the imageFileName column of the spreadsheet.
    """
    files = []
    for f in images:
        content = await f.read()
        files.append((f.filename or f"image-{len(files)}", content, f.content_type))

    try:
        job = bulk_import_service.upload_images(job_id, user_id, files)
    except CatalogImportError as e:
        raise _http_error(e)
    return bulk_import_service.describe(job)


# ============================================================================
# Step 3: Match
# ============================================================================

@router.put("/jobs/{job_id}/mappings/{row_index}", response_model=ImportJobResponse)
async def set_row_image(
    job_id: str,
    row_index: int,
    request: SetMatchRequest,
    user_id: str = Depends(get_current_user),
):
    """
    Pick the image for one spreadsheet row.

    image_file_index refers to the job's uploaded images; null clears the
    choice. The choice is kept until the row's imageFileName changes.
    """
    try:
        job = bulk_import_service.set_match(job_id, user_id, row_index, request.image_file_index)
    except CatalogImportError as e:
        raise _http_error(e)
    return bulk_import_service.describe(job)


# ============================================================================
# Step 4: Validate
# ============================================================================

@router.post("/jobs/{job_id}/validate", response_model=ValidationResponse)
async def validate_import_job(job_id: str, user_id: str = Depends(get_current_user)):
    """Check that every row naming an image has one selected."""
    try:
        return bulk_import_service.validate(job_id, user_id)
    except CatalogImportError as e:
        raise _http_error(e)


# ============================================================================
# Step 5: Submit
# ============================================================================

@router.post("/jobs/{job_id}/submit", response_model=SubmitResponse)
async def submit_import_job(job_id: str, user_id: str = Depends(get_current_user)):
    """
    Send the import to the catalog backend.

    Blocked with 422 while rows naming an image have none selected.
    Returns the backend's success/failure counts and error messages.
    """
    try:
        return await bulk_import_service.submit(job_id, user_id)
    except CatalogImportError as e:
        raise _http_error(e)


# ============================================================================
# Template
# ============================================================================

@router.get("/template")
async def download_import_template(user_id: str = Depends(get_current_user)):
    """Download the exercise import template from the catalog backend."""
    try:
        content = await bulk_import_service.download_template()
    except CatalogImportError as e:
        logger.warning(f"Template download failed: {e}")
        raise _http_error(e)

    return Response(
        content=content,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f'attachment; filename="{TEMPLATE_FILENAME}"'},
    )
