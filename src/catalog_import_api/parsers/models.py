"""
Parser Models

Pydantic models describing a decoded spreadsheet.
"""

from typing import List, Optional, Dict, Any
from pydantic import BaseModel, Field


class FileInfo(BaseModel):
    """Information about the file being decoded"""
    filename: str
    extension: str
    size_bytes: int = 0
    content_type: Optional[str] = None

    @classmethod
    def from_upload(cls, filename: str, size_bytes: int, content_type: Optional[str] = None) -> "FileInfo":
        dot = filename.rfind(".")
        extension = filename[dot:].lower() if dot >= 0 else ""
        return cls(
            filename=filename,
            extension=extension,
            size_bytes=size_bytes,
            content_type=content_type,
        )


class DecodedSheet(BaseModel):
    """Records of the first worksheet, header row excluded"""
    sheet_name: Optional[str] = None
    columns: List[str] = Field(default_factory=list)
    records: List[Dict[str, Any]] = Field(default_factory=list)
    sheet_names: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    @property
    def total_rows(self) -> int:
        return len(self.records)
