"""
Parse uploaded CSV/XLSX exports into header list + string-keyed row dicts.
Rows are JSON-safe so they can be stored on the import job for later execution.
"""
from __future__ import annotations

import io
import math
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

import pandas as pd

from propflow.core.exceptions import ImportFileError

CSV_EXTENSIONS = {"csv", "txt"}
EXCEL_EXTENSIONS = {"xlsx", "xlsm", "xls"}
CSV_CONTENT_TYPES = {"text/csv", "application/csv", "text/plain"}


@dataclass
class ParsedFile:
    headers: list[str]
    rows: list[dict[str, Any]] = field(default_factory=list)

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def preview(self, limit: int = 10) -> list[dict[str, Any]]:
        return self.rows[:limit]


def _file_kind(filename: str, content_type: str | None) -> str:
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    if ext in CSV_EXTENSIONS:
        return "csv"
    if ext in EXCEL_EXTENSIONS:
        return "excel"
    if (content_type or "").split(";")[0].strip() in CSV_CONTENT_TYPES:
        return "csv"
    raise ImportFileError(f"Unsupported file type: {filename}")


def _cell_to_json(value: Any) -> Any:
    """NaN -> None, timestamps -> ISO strings, whole floats stay floats (normalizers handle them)."""
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    if value is pd.NaT:
        return None
    if isinstance(value, (pd.Timestamp, datetime)):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, str):
        return value
    if hasattr(value, "item"):
        # numpy scalar
        return value.item()
    return value


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _frame_to_rows(df: pd.DataFrame) -> ParsedFile:
    headers = [str(c).strip() for c in df.columns]
    if not headers or all(h.startswith("Unnamed:") or not h for h in headers):
        raise ImportFileError("File has no header row")
    df.columns = headers
    rows: list[dict[str, Any]] = []
    for record in df.to_dict(orient="records"):
        row = {k: _cell_to_json(v) for k, v in record.items()}
        if all(_is_blank(v) for v in row.values()):
            continue
        rows.append(row)
    return ParsedFile(headers=headers, rows=rows)


def parse_csv(content: bytes) -> ParsedFile:
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError:
        text = content.decode("latin-1")
    if not text.strip():
        raise ImportFileError("File is empty")
    try:
        df = pd.read_csv(
            io.StringIO(text),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
        )
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise ImportFileError(f"Could not parse CSV: {e}") from e
    return _frame_to_rows(df)


def parse_excel(content: bytes) -> ParsedFile:
    """First worksheet only; header is the first row."""
    try:
        xl = pd.ExcelFile(io.BytesIO(content), engine="openpyxl")
        if not xl.sheet_names:
            raise ImportFileError("Workbook has no sheets")
        df = pd.read_excel(xl, sheet_name=xl.sheet_names[0], dtype=object)
    except ImportFileError:
        raise
    except Exception as e:
        raise ImportFileError(f"Could not read spreadsheet: {e}") from e
    return _frame_to_rows(df)


def parse_upload(filename: str, content: bytes, content_type: str | None = None) -> ParsedFile:
    """Parse by extension (falling back to content type). Raises ImportFileError."""
    if not content:
        raise ImportFileError("File is empty")
    kind = _file_kind(filename or "", content_type)
    parsed = parse_csv(content) if kind == "csv" else parse_excel(content)
    if parsed.row_count == 0:
        raise ImportFileError("File has no data rows")
    return parsed
