"""Excel and CSV row source adapter.

This adapter implements IRowSource to read ledger spreadsheets. It only
locates the header row and hands back raw cell values; all cleaning and
validation happens in the domain.
"""

import csv
import io
import logging
from typing import Any

from openpyxl import load_workbook

from ..domain.entities import SheetData
from ..domain.ports import IRowSource

logger = logging.getLogger(__name__)


def _trim_trailing_empty(values: list[Any]) -> list[Any]:
    end = len(values)
    while end > 0 and (values[end - 1] is None or str(values[end - 1]).strip() == ""):
        end -= 1
    return values[:end]


class OpenpyxlRowSource(IRowSource):
    """Row source for .xlsx workbooks (openpyxl) and CSV text.

    Expected layout:
    | (optional title rows)                 |
    | 端末CD(必須) | 型番(必須) | ... |   <- header_row
    | T-001        | iPad 9     | ... |
    | T-002        | iPad 10    | ... |

    - Only the active worksheet is read
    - Rows above the header row are ignored
    - Cell values are returned as stored (numbers, dates, strings)
    """

    def read(self, content: bytes, header_row: int = 1) -> SheetData:
        """Read headers and data rows.

        Args:
            content: Raw bytes of the Excel or CSV file
            header_row: 1-based row number holding the headers

        Returns:
            SheetData

        Raises:
            ValueError: If the file is empty or cannot be parsed
        """
        if header_row < 1:
            raise ValueError("header_row must be 1 or greater")

        if self._is_csv(content):
            rows = self._read_csv(content)
        else:
            rows = self._read_excel(content)

        if len(rows) < header_row:
            raise ValueError("File is empty")

        headers = _trim_trailing_empty(list(rows[header_row - 1]))
        if not headers:
            raise ValueError(f"Header row {header_row} is empty")

        data_rows = [_trim_trailing_empty(list(r)) for r in rows[header_row:]]
        logger.info(f"Read {len(data_rows)} rows below header row {header_row}")
        return SheetData.from_lists(headers, data_rows)

    def _is_csv(self, content: bytes) -> bool:
        """Detect if file content is CSV format.

        Args:
            content: Raw bytes of the file

        Returns:
            True if CSV, False otherwise
        """
        try:
            text = content.decode("utf-8-sig")
        except UnicodeDecodeError:
            return False
        first_line = text.split("\n")[0].split("\r")[0]
        return "," in first_line or ";" in first_line or "\t" in first_line

    def _read_csv(self, content: bytes) -> list[list[Any]]:
        try:
            text = content.decode("utf-8-sig")

            sniffer = csv.Sniffer()
            try:
                dialect = sniffer.sniff(text[:1024])
            except csv.Error:
                dialect = csv.excel

            return [row for row in csv.reader(io.StringIO(text), dialect)]

        except Exception as e:
            logger.error(f"Failed to parse CSV file: {e}")
            raise ValueError(f"Failed to parse CSV file: {e}")

    def _read_excel(self, content: bytes) -> list[list[Any]]:
        try:
            wb = load_workbook(filename=io.BytesIO(content), read_only=True, data_only=True)
            ws = wb.active

            if ws is None:
                raise ValueError("Excel file has no active worksheet")

            rows = [list(row) for row in ws.iter_rows(values_only=True)]
            wb.close()
            return rows

        except Exception as e:
            if isinstance(e, ValueError):
                raise
            logger.error(f"Failed to parse Excel file: {e}")
            raise ValueError(f"Failed to parse Excel file: {e}")
