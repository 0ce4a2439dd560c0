"""Spreadsheet export of loaded rows and saving of server downloads."""
from __future__ import annotations

import csv
import io
import logging
import re
from datetime import date, datetime
from enum import Enum
from io import BytesIO
from pathlib import Path
from typing import Any, Iterable, Optional, Sequence
from urllib.parse import unquote

import httpx
import xlwt

logger = logging.getLogger(__name__)

Column = tuple[str, str]

_FILENAME_STAR = re.compile(r"filename\*\s*=\s*(?:UTF-8|utf-8)''([^;]+)")
_FILENAME = re.compile(r'filename\s*=\s*"?([^";]+)"?')


def _cell(row: Any, attribute: str) -> Any:
    value = row.get(attribute) if isinstance(row, dict) else getattr(row, attribute, None)
    if value is None:
        return ""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


def rows_to_csv(columns: Sequence[Column], rows: Iterable[Any]) -> bytes:
    """Render ``rows`` as UTF-8 CSV with a BOM so spreadsheet apps pick the encoding."""

    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow([header for header, _ in columns])
    for row in rows:
        writer.writerow([_cell(row, attribute) for _, attribute in columns])
    return ("\ufeff" + buffer.getvalue()).encode("utf-8")


def rows_to_xls(
    columns: Sequence[Column],
    rows: Iterable[Any],
    *,
    metadata: Optional[Sequence[tuple[str, Any]]] = None,
    sheet_name: str = "Sheet1",
) -> bytes:
    workbook = xlwt.Workbook()
    sheet = workbook.add_sheet(sheet_name)
    row_index = 0
    if metadata:
        for key, value in metadata:
            sheet.write(row_index, 0, key)
            sheet.write(row_index, 1, "" if value is None else _cell({"value": value}, "value"))
            row_index += 1
        row_index += 1
    for col_index, (header, _) in enumerate(columns):
        sheet.write(row_index, col_index, header)
    row_index += 1
    for row in rows:
        for col_index, (_, attribute) in enumerate(columns):
            sheet.write(row_index, col_index, _cell(row, attribute))
        row_index += 1
    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def timestamped_filename(prefix: str, extension: str = "") -> str:
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    return f"{prefix}_{timestamp}{extension}"


def filename_from_disposition(header: str | None) -> str | None:
    if not header:
        return None
    match = _FILENAME_STAR.search(header)
    if match:
        return unquote(match.group(1).strip())
    match = _FILENAME.search(header)
    if match:
        return match.group(1).strip()
    return None


def save_download(
    response: httpx.Response,
    directory: str | Path,
    *,
    prefix: str = "export",
    extension: str = "",
) -> Path:
    """Write a download response into ``directory`` and return the file path.

    The name comes from ``Content-Disposition``; without one a timestamped
    ``prefix`` name is used.
    """

    name = filename_from_disposition(response.headers.get("content-disposition"))
    if name:
        name = Path(name).name
    else:
        name = timestamped_filename(prefix, extension)
    target = Path(directory) / name
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(response.content)
    logger.info("Saved %s bytes to %s", len(response.content), target)
    return target


__all__ = [
    "rows_to_csv",
    "rows_to_xls",
    "timestamped_filename",
    "filename_from_disposition",
    "save_download",
]
