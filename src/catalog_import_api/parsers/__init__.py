"""
Spreadsheet decoders for bulk import uploads.
"""

from .models import FileInfo, DecodedSheet
from .base import BaseDecoder
from .excel_parser import ExcelSheetDecoder

__all__ = [
    "FileInfo",
    "DecodedSheet",
    "BaseDecoder",
    "ExcelSheetDecoder",
]
