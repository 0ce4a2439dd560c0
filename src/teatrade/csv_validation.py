"""Pre-upload checks for the CSV sheets each list screen accepts."""
from __future__ import annotations

import csv
import logging
import math
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Mapping

from .enums import Broker, TeaCategory, TeaGrade, values
from .errors import CsvValidationError

logger = logging.getLogger(__name__)

EMPTY_FILE = "CSV file is empty or missing data rows"
NO_VALID_ROWS = "No valid data rows found in CSV"
NOT_UTF8 = "CSV file must be UTF-8 encoded"

_YEAR_FIRST = re.compile(r"^(\d{4})/(\d{1,2})/(\d{1,2})$")
_DAY_FIRST = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")


def _normalize_csv_key(value: Any) -> str:
    if value is None:
        return ""
    text = str(value).strip().lower()
    if "\ufeff" in text:
        text = text.replace("\ufeff", "")
    return text


@dataclass(frozen=True)
class CsvSpec:
    """Headers and first-row rules for one upload sheet.

    ``reprint`` is ``"non_negative"`` when the RP column takes ``No`` or any
    number from zero up, ``"positive"`` when it takes ``No`` or a whole
    number above zero, and ``None`` when the sheet has no RP column.
    """

    entity: str
    headers: tuple[str, ...]
    required: tuple[str, ...]
    numeric: tuple[str, ...] = ()
    choices: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    reprint: str | None = None
    date_header: str | None = None


_TRADE_CHOICES = {
    "Broker": tuple(values(Broker)),
    "Grade": tuple(values(TeaGrade)),
    "Category": tuple(values(TeaCategory)),
}

CATALOG_CSV = CsvSpec(
    entity="catalog",
    headers=(
        "Broker",
        "Lot No",
        "Selling Mark",
        "Grade",
        "Invoice No",
        "Sale Code",
        "Category",
        "RP",
        "Bags",
        "Net Weight",
        "Total Weight",
        "Asking Price",
        "Producer Country",
        "Manufactured Date",
    ),
    required=("Broker", "Lot No", "Selling Mark", "Grade", "Invoice No", "Sale Code", "Category"),
    numeric=("Bags", "Net Weight", "Total Weight", "Asking Price"),
    choices=_TRADE_CHOICES,
    reprint="non_negative",
    date_header="Manufactured Date",
)

SELLING_PRICES_CSV = CsvSpec(
    entity="sellingPrices",
    headers=(
        "Broker",
        "Lot No",
        "Selling Mark",
        "Grade",
        "Invoice No",
        "Sale Code",
        "Category",
        "RP",
        "Bags",
        "Net Weight",
        "Total Weight",
        "Asking Price",
        "Purchase Price",
        "Producer Country",
        "Manufactured Date",
    ),
    required=(
        "Broker",
        "Lot No",
        "Selling Mark",
        "Grade",
        "Invoice No",
        "Sale Code",
        "Category",
        "Manufactured Date",
    ),
    numeric=("Bags", "Net Weight", "Total Weight", "Asking Price", "Purchase Price"),
    choices=_TRADE_CHOICES,
    reprint="positive",
    date_header="Manufactured Date",
)

OUT_LOTS_CSV = CsvSpec(
    entity="outLots",
    headers=(
        "Auction",
        "Lot No",
        "Broker",
        "Selling Mark",
        "Grade",
        "Invoice No",
        "Bags",
        "Net Weight",
        "Total Weight",
        "Baseline Price",
        "Manufacture Date",
    ),
    required=("Auction", "Lot No", "Broker", "Selling Mark", "Grade", "Invoice No"),
    numeric=("Bags", "Net Weight", "Total Weight", "Baseline Price"),
    choices={"Broker": _TRADE_CHOICES["Broker"], "Grade": _TRADE_CHOICES["Grade"]},
)

STOCK_CSV = CsvSpec(
    entity="stock",
    headers=(
        "Lot No",
        "Mark",
        "Grade",
        "Invoice No",
        "Sale Code",
        "Broker",
        "Bags",
        "Weight",
        "Purchase Value",
        "Total Purchase Value",
        "Aging Days",
        "Penalty",
        "BGT Commission",
        "Maersk Fee",
        "Commission",
        "Net Price",
        "Total",
    ),
    required=("Lot No", "Mark", "Grade", "Invoice No", "Sale Code", "Broker"),
    numeric=(
        "Bags",
        "Weight",
        "Purchase Value",
        "Total Purchase Value",
        "Aging Days",
        "Penalty",
        "BGT Commission",
        "Maersk Fee",
        "Commission",
        "Net Price",
        "Total",
    ),
    choices={"Broker": _TRADE_CHOICES["Broker"], "Grade": _TRADE_CHOICES["Grade"]},
)

CSV_SPECS = {
    spec.entity: spec for spec in (CATALOG_CSV, OUT_LOTS_CSV, STOCK_CSV, SELLING_PRICES_CSV)
}


def _decode(content: bytes | str) -> str:
    if isinstance(content, bytes):
        try:
            content = content.decode("utf-8")
        except UnicodeDecodeError:
            raise CsvValidationError([NOT_UTF8]) from None
    return content.replace("\ufeff", "", 1) if content.startswith("\ufeff") else content


def _positive_number(text: str) -> bool:
    try:
        number = float(text)
    except ValueError:
        return False
    return not math.isnan(number) and number > 0


def _check_reprint(rule: str, text: str) -> str | None:
    if not text or text.lower() == "no":
        return None
    try:
        number = float(text)
    except ValueError:
        number = math.nan
    if rule == "positive":
        if math.isnan(number) or not number.is_integer() or number <= 0:
            return f"Invalid or negative RP in first row, must be 'No' or a positive integer (got '{text}')"
        return None
    if math.isnan(number) or number < 0:
        return "Invalid Reprint value in first row (must be a non-negative number or the word 'No')"
    return None


def _check_date(header: str, text: str) -> str | None:
    match = _YEAR_FIRST.match(text)
    if match:
        year, month, day = (int(part) for part in match.groups())
    else:
        match = _DAY_FIRST.match(text)
        if not match:
            return f"Invalid {header} format in first row (expected YYYY/MM/DD or DD/MM/YYYY)"
        day, month, year = (int(part) for part in match.groups())
    try:
        date(year, month, day)
    except ValueError:
        return "Invalid date value in first row"
    return None


def _format_size(size: int) -> str:
    if size >= 1024 * 1024:
        return f"{size / (1024 * 1024):g} MB"
    return f"{size} bytes"


def _first_data_row(lines: list[str], width: int) -> list[str] | None:
    for row in csv.reader(lines[1:]):
        cells = [cell.strip() for cell in row]
        if len(cells) >= width and any(cells):
            return cells
    return None


def validate_csv(content: bytes | str, spec: CsvSpec, *, max_bytes: int | None = None) -> list[str]:
    """Return the problems found in ``content``; an empty list means it may be sent.

    Only the first usable data row is checked. The server validates every
    row again and reports per-row errors after upload.
    """

    size = len(content.encode("utf-8")) if isinstance(content, str) else len(content)
    if max_bytes is not None and size > max_bytes:
        return [f"File exceeds the {_format_size(max_bytes)} upload limit"]

    try:
        text = _decode(content)
    except CsvValidationError as exc:
        return exc.errors

    lines = [line for line in text.splitlines() if line.strip()]
    if len(lines) < 2:
        return [EMPTY_FILE]

    header_row = next(csv.reader(lines[:1]))
    present = {_normalize_csv_key(header): index for index, header in enumerate(header_row)}
    missing = [header for header in spec.headers if _normalize_csv_key(header) not in present]
    if missing:
        return [f"Missing required CSV headers: {', '.join(missing)}"]

    first_row = _first_data_row(lines, len(header_row))
    if first_row is None:
        return [NO_VALID_ROWS]

    row = {header: first_row[present[_normalize_csv_key(header)]] for header in spec.headers}
    errors: list[str] = []

    for header in spec.required:
        value = row[header]
        allowed = spec.choices.get(header)
        if not value:
            errors.append(f"{header} is required in first row")
        elif allowed and value not in allowed:
            errors.append(f"Invalid {header} in first row: must be one of {', '.join(allowed)}")

    for header in spec.numeric:
        if not _positive_number(row[header]):
            errors.append(f"Invalid or negative {header} in first row")

    if spec.reprint is not None:
        problem = _check_reprint(spec.reprint, row["RP"])
        if problem:
            errors.append(problem)

    if spec.date_header is not None and row[spec.date_header]:
        problem = _check_date(spec.date_header, row[spec.date_header])
        if problem:
            errors.append(problem)
    elif spec.date_header is not None and spec.date_header not in spec.required:
        errors.append(f"Invalid {spec.date_header} format in first row (expected YYYY/MM/DD or DD/MM/YYYY)")

    if errors:
        logger.info("CSV validation failed for %s: %s", spec.entity, errors)
    return errors


def ensure_valid_csv(content: bytes | str, spec: CsvSpec, *, max_bytes: int | None = None) -> None:
    errors = validate_csv(content, spec, max_bytes=max_bytes)
    if errors:
        raise CsvValidationError(errors)


__all__ = [
    "CsvSpec",
    "CATALOG_CSV",
    "OUT_LOTS_CSV",
    "STOCK_CSV",
    "SELLING_PRICES_CSV",
    "CSV_SPECS",
    "EMPTY_FILE",
    "NO_VALID_ROWS",
    "validate_csv",
    "ensure_valid_csv",
]
