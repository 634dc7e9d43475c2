"""
Exception classes for the catalog import API.

Routes translate these into HTTPException responses using status_code.
"""

from typing import Any, Dict, List, Optional


class CatalogImportError(Exception):
    """Base exception for import workflow errors."""

    status_code: int = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_detail(self) -> Dict[str, Any]:
        """Convert to the HTTPException detail payload."""
        return {"message": self.message, **self.details}


class JobNotFoundError(CatalogImportError):
    """Import job does not exist or belongs to someone else (404)."""

    status_code = 404

    def __init__(self, job_id: str):
        super().__init__("Import job not found", {"job_id": job_id})


class RowNotFoundError(CatalogImportError):
    """No mapping row with this spreadsheet row number (404)."""

    status_code = 404

    def __init__(self, row_index: int):
        super().__init__(f"Row {row_index} has no image reference", {"row_index": row_index})


class InvalidImageIndexError(CatalogImportError):
    """Manual match points outside the uploaded images (422)."""

    status_code = 422

    def __init__(self, image_file_index: int, image_count: int):
        super().__init__(
            f"Image index {image_file_index} is out of range ({image_count} images uploaded)",
            {"image_file_index": image_file_index, "image_count": image_count},
        )


class MissingSpreadsheetError(CatalogImportError):
    """Submit attempted before a spreadsheet was uploaded (400)."""

    status_code = 400

    def __init__(self):
        super().__init__("Please choose an Excel file.")


class UnresolvedImagesError(CatalogImportError):
    """Rows name an image but none is selected (422)."""

    status_code = 422

    def __init__(self, unresolved_row_indexes: List[int]):
        super().__init__(
            "Please choose an image for every row with an imageFileName "
            "(or clear imageFileName in the spreadsheet).",
            {"unresolved_row_indexes": unresolved_row_indexes},
        )


class SpreadsheetDecodeError(CatalogImportError):
    """The uploaded spreadsheet could not be read (400)."""

    status_code = 400

    def __init__(self, reason: str = ""):
        super().__init__(
            "Could not read the Excel file. Check the format or the column layout.",
            {"reason": reason} if reason else None,
        )


class CatalogApiError(CatalogImportError):
    """The remote catalog backend rejected or failed a call (502)."""

    status_code = 502

    def __init__(self, message: str, upstream_status: Optional[int] = None):
        super().__init__(message, {"upstream_status": upstream_status})
        self.upstream_status = upstream_status
