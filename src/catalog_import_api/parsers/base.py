"""
Base Decoder

Abstract base class for tabular file decoders.
"""

import logging
from abc import ABC, abstractmethod
from typing import List
from .models import DecodedSheet, FileInfo

logger = logging.getLogger(__name__)


class BaseDecoder(ABC):
    """Abstract base class for spreadsheet decoders"""

    def __init__(self):
        self.warnings: List[str] = []

    @abstractmethod
    def decode(self, content: bytes, file_info: FileInfo) -> DecodedSheet:
        """
        Decode file content into string-keyed records.

        Args:
            content: Raw file bytes
            file_info: Information about the file

        Returns:
            DecodedSheet with one record per data row

        Raises:
            SpreadsheetDecodeError: If the file cannot be read
        """
        pass

    @abstractmethod
    def can_parse(self, file_info: FileInfo) -> bool:
        """
        Check if this decoder can handle the given file.

        Args:
            file_info: Information about the file

        Returns:
            True if this decoder can handle the file
        """
        pass

    @staticmethod
    def normalize_header(value, col_idx: int) -> str:
        """Header cell text, or a placeholder name for blank headers"""
        text = str(value).strip() if value is not None else ""
        return text or f"Column {col_idx}"

    def add_warning(self, warning: str):
        """Add a warning message"""
        self.warnings.append(warning)
        logger.warning(f"Decoder warning: {warning}")
