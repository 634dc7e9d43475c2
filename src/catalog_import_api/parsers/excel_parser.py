"""
Excel Parser

Decodes .xlsx import spreadsheets into string-keyed records:
- First worksheet only
- Row 1 is the header row
- Blank cells become "" so every record carries every column
- Blank rows inside the data are kept so record positions line up with
  spreadsheet row numbers; trailing blank rows are dropped
"""

import io
import logging
from typing import List, Dict, Any, Optional
from openpyxl import load_workbook
from openpyxl.worksheet.worksheet import Worksheet

from catalog_import_api.exceptions import SpreadsheetDecodeError
from .base import BaseDecoder
from .models import DecodedSheet, FileInfo

logger = logging.getLogger(__name__)


class ExcelSheetDecoder(BaseDecoder):
    """Decoder for Excel (.xlsx) files"""

    SUPPORTED_EXTENSIONS = ['.xlsx', '.xlsm']

    def can_parse(self, file_info: FileInfo) -> bool:
        """Check if this decoder can handle the file"""
        return file_info.extension.lower() in self.SUPPORTED_EXTENSIONS

    def decode(self, content: bytes, file_info: Optional[FileInfo] = None) -> DecodedSheet:
        """Decode the first worksheet of an Excel file"""
        self.warnings = []

        if not content:
            raise SpreadsheetDecodeError("empty file")

        try:
            wb = load_workbook(io.BytesIO(content), data_only=True)
        except Exception as e:
            filename = file_info.filename if file_info else "<upload>"
            logger.warning(f"Failed to open Excel file {filename}: {e}")
            raise SpreadsheetDecodeError(str(e)) from e

        try:
            if not wb.sheetnames:
                raise SpreadsheetDecodeError("workbook has no sheets")

            sheet_name = wb.sheetnames[0]
            ws = wb[sheet_name]
            columns = self._read_headers(ws)
            if not columns:
                self.add_warning(f"Sheet '{sheet_name}' has no header row")

            records = self._read_records(ws, columns)

            return DecodedSheet(
                sheet_name=sheet_name,
                columns=columns,
                records=records,
                sheet_names=list(wb.sheetnames),
                warnings=list(self.warnings),
            )
        finally:
            wb.close()

    def _read_headers(self, ws: Worksheet) -> List[str]:
        """Header names from row 1, de-duplicated with a numeric suffix"""
        if ws.max_row < 1:
            return []

        raw = [ws.cell(row=1, column=col).value for col in range(1, ws.max_column + 1)]
        while raw and (raw[-1] is None or str(raw[-1]).strip() == ""):
            raw.pop()

        headers: List[str] = []
        seen: Dict[str, int] = {}
        for col_idx, value in enumerate(raw, 1):
            name = self.normalize_header(value, col_idx)
            if name in seen:
                seen[name] += 1
                name = f"{name}_{seen[name]}"
            else:
                seen[name] = 0
            headers.append(name)
        return headers

    def _read_records(self, ws: Worksheet, columns: List[str]) -> List[Dict[str, Any]]:
        """One record per row below the header, up to the last non-blank row"""
        if not columns:
            return []

        records: List[Dict[str, Any]] = []
        last_filled = -1

        for row in ws.iter_rows(min_row=2, max_col=len(columns), values_only=True):
            record = {}
            filled = False
            for name, value in zip(columns, row):
                if isinstance(value, str):
                    value = value if value.strip() else ""
                if value is None:
                    value = ""
                if value != "":
                    filled = True
                record[name] = value
            for name in columns[len(row):]:
                record[name] = ""

            records.append(record)
            if filled:
                last_filled = len(records) - 1

        return records[:last_filled + 1]
