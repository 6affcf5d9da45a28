# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""CSV and XLSX upload parsing.

Both formats produce the same shape: a list of ``{header: cell}`` dicts, one
per non-empty data row, where every cell is a stripped string. The first row
is always the header. Blank rows are dropped, so each row carries the
spreadsheet line it came from.
"""

import csv
import io
import logging
from datetime import date, datetime
from zipfile import BadZipFile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = (".csv", ".xlsx")


class FileParseError(Exception):
    """Base exception for upload parsing."""

    pass


class UnsupportedFileError(FileParseError):
    """Raised for file types other than CSV and XLSX."""

    pass


class EmptyFileError(FileParseError):
    """Raised when an upload has no header or no data rows."""

    pass


class ParsedRow(dict):
    """Header-keyed cells of one data row and its 1-based line in the file."""

    def __init__(self, cells: dict[str, str], line_number: int) -> None:
        super().__init__(cells)
        self.line_number = line_number


def line_number_of(raw: dict[str, str], index: int) -> int:
    """Spreadsheet line of a parsed row; plain dicts count from line 2."""
    return getattr(raw, "line_number", index + 2)


def cell_to_str(value: object) -> str:
    """Stringify a cell. Integral floats lose their ``.0``; dates become ISO."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, datetime):
        return value.date().isoformat() if value.time() == datetime.min.time() else value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value).strip()


def parse_upload(filename: str, content: bytes) -> list[ParsedRow]:
    """Parse an uploaded spreadsheet into header-keyed rows.

    Args:
        filename: Original file name; its extension selects the parser.
        content: Raw file bytes.

    Returns:
        One dict per non-empty data row.

    Raises:
        UnsupportedFileError: If the extension is not .csv or .xlsx.
        EmptyFileError: If the file has no data rows.
        FileParseError: If the file cannot be read.
    """
    name = (filename or "").lower()
    if not name.endswith(SUPPORTED_EXTENSIONS):
        raise UnsupportedFileError("Unsupported file type. Please upload a .csv or .xlsx file")

    if not content:
        raise EmptyFileError("File is empty")

    if name.endswith(".csv"):
        rows = _parse_csv(content)
    else:
        rows = _parse_xlsx(content)

    if not rows:
        raise EmptyFileError("File is empty")

    logger.debug("Parsed %s: %d rows", filename, len(rows))
    return rows


def _parse_csv(content: bytes) -> list[ParsedRow]:
    try:
        # utf-8-sig drops the BOM spreadsheet exports prepend
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise FileParseError(f"CSV file is not valid UTF-8: {e}") from e

    reader = csv.reader(io.StringIO(text))
    header = next(reader, None)
    if not header:
        return []
    return _rows_from(header, ((reader.line_num, raw) for raw in reader))


def _parse_xlsx(content: bytes) -> list[ParsedRow]:
    try:
        wb = load_workbook(filename=io.BytesIO(content), read_only=True, data_only=True)
    except (BadZipFile, InvalidFileException, KeyError, OSError) as e:
        raise FileParseError(f"Invalid Excel file: {e}") from e

    try:
        if not wb.worksheets:
            return []
        rows_iter = wb.worksheets[0].iter_rows(values_only=True)
        header = next(rows_iter, None)
        if not header:
            return []
        return _rows_from(header, enumerate(rows_iter, start=2))
    finally:
        wb.close()


def _rows_from(header, numbered_rows) -> list[ParsedRow]:
    headers = [cell_to_str(h) for h in header]
    rows: list[ParsedRow] = []
    for line_number, raw in numbered_rows:
        cells = [cell_to_str(c) for c in raw]
        if not any(cells):
            continue
        row = {}
        for index, key in enumerate(headers):
            if not key:
                continue
            row[key] = cells[index] if index < len(cells) else ""
        rows.append(ParsedRow(row, line_number))
    return rows
