"""Data models for the exercise bulk import API."""
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional, Literal

JobStatus = Literal["draft", "submitted", "failed"]


class UploadedImage(BaseModel):
    """An image in the job's current upload selection."""
    index: int
    name: str
    size_bytes: int = 0
    content_type: Optional[str] = None


class MappingEntryOut(BaseModel):
    """Row -> image association as shown in the picker."""
    row_index: int = Field(..., description="Spreadsheet row number (header is row 1)")
    image_file_name: str = Field(..., description="imageFileName value of the row")
    image_file_index: Optional[int] = Field(default=None, description="Selected image, null if unresolved")
    manual: bool = False
    required: bool = True
    matched_file_name: Optional[str] = None  # Uploaded name of the selected image
    preview: Optional[str] = None  # PNG thumbnail data URL


class ImportJobResponse(BaseModel):
    """Current state of an import job."""
    job_id: str
    status: JobStatus = "draft"
    spreadsheet_name: Optional[str] = None
    sheet_name: Optional[str] = None
    columns: List[str] = Field(default_factory=list)
    rows: List[Dict[str, Any]] = Field(default_factory=list)
    images: List[UploadedImage] = Field(default_factory=list)
    mappings: List[MappingEntryOut] = Field(default_factory=list)
    decode_error: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class SetMatchRequest(BaseModel):
    """Manual image choice for one row; null clears it."""
    image_file_index: Optional[int] = Field(default=None, ge=0)


class ValidationResponse(BaseModel):
    """Completeness check before submit."""
    ok: bool
    unresolved_row_indexes: List[int] = Field(default_factory=list)
    message: Optional[str] = None


class NameCollisionOut(BaseModel):
    """Two rows claiming the same target file name."""
    target_name: str
    kept_row_index: int
    dropped_row_index: int


class SubmitResponse(BaseModel):
    """Result of sending the import to the catalog backend."""
    success: bool
    job_id: str
    success_count: int = 0
    failure_count: int = 0
    errors: List[str] = Field(default_factory=list)
    submitted_images: List[str] = Field(default_factory=list)
    collisions: List[NameCollisionOut] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
