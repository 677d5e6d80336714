from __future__ import annotations
import csv
import logging
from io import BytesIO
from typing import List, Dict, Any
import pandas as pd
from openpyxl import load_workbook
from .utils import ORIGIN_ROW, RULES, is_blank

logger = logging.getLogger(__name__)

UPLOAD_TYPES = list(RULES.get("upload_types", ["xlsx", "xls", "csv"]))


class ScheduleDecodeError(ValueError):
    """The uploaded schedule could not be read into rows."""


# =========================
# Excel: first sheet as a matrix, merged cells expanded
# =========================
def _sheet_to_matrix_with_merged(wb_bytes: bytes) -> List[List[Any]]:
    wb = load_workbook(BytesIO(wb_bytes), read_only=False, data_only=True)
    ws = wb.worksheets[0]
    merged_map = {}
    for r in ws.merged_cells.ranges:
        min_col, min_row, max_col, max_row = r.bounds
        top_val = ws.cell(min_row, min_col).value
        for rr in range(min_row, max_row + 1):
            for cc in range(min_col, max_col + 1):
                merged_map[(rr, cc)] = top_val

    rows = []
    for r in range(1, ws.max_row + 1):
        row_vals = []
        for c in range(1, ws.max_column + 1):
            v = ws.cell(r, c).value
            if (r, c) in merged_map and is_blank(v):
                v = merged_map[(r, c)]
            row_vals.append(v)
        rows.append(row_vals)

    return rows


def _read_xls_matrix(data: bytes) -> List[List[Any]]:
    # legacy .xls (BIFF): first sheet through xlrd, no merged-cell expansion
    df = pd.read_excel(BytesIO(data), sheet_name=0, header=None, engine="xlrd")
    return df.values.tolist()


# =========================
# CSV: tolerant read from bytes
# =========================
def _decode_sample(data: bytes, enc: str, limit: int = 65536) -> str:
    return data[:limit].decode(enc, errors="replace")


def _guess_delimiter(sample_text: str) -> str:
    # exports use ',' or ';' (locale dependent), sometimes tabs
    try:
        dialect = csv.Sniffer().sniff(sample_text, delimiters=";,\t|")
        if dialect.delimiter:
            return dialect.delimiter
    except csv.Error:
        pass

    # fallback: average count per line over the first lines
    candidates = [",", ";", "\t", "|"]
    lines = [ln for ln in sample_text.splitlines() if ln.strip()][:20]
    if not lines:
        return ","

    scores = {}
    for d in candidates:
        cnts = [ln.count(d) for ln in lines]
        scores[d] = sum(cnts) / max(1, len(cnts))

    best = max(scores.items(), key=lambda x: x[1])[0]
    return best if scores.get(best, 0) > 0 else ","


def _read_csv_matrix(data: bytes) -> List[List[Any]]:
    # header=None: the header row stays in the matrix like in Excel
    # skip_blank_lines=False: matrix index = line number - 1
    # cp1258: legacy Vietnamese Windows exports
    encodings = ["utf-8-sig", "utf-8", "cp1258"]
    last_err: Exception | None = None

    for enc in encodings:
        try:
            data.decode(enc)
        except UnicodeDecodeError as e:
            last_err = e
            continue

        delim = _guess_delimiter(_decode_sample(data, enc))
        try:
            df = pd.read_csv(
                BytesIO(data),
                header=None,
                sep=delim,
                engine="python",
                encoding=enc,
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=False,
            )
        except (UnicodeDecodeError, pd.errors.ParserError) as e:
            last_err = e
            continue
        except pd.errors.EmptyDataError:
            return []
        return df.values.tolist()

    raise last_err or ValueError("unreadable CSV")


# =========================
# Header row -> list of row mappings
# =========================
def _clean_header_cell(v: Any) -> str:
    if v is None:
        return ""
    s = str(v).replace("\ufeff", "").strip()
    if len(s) >= 2 and s[0] == s[-1] and s[0] in ('"', "'"):
        s = s[1:-1].strip()
    return s


def _make_unique(cols):
    seen = {}
    out = []
    for i, c in enumerate(cols):
        base = c or f"col_{i+1}"
        n = seen.get(base, 0) + 1
        seen[base] = n
        out.append(base if n == 1 else f"{base}__{n}")
    return out


def rows_from_matrix(matrix: List[List[Any]]) -> List[Dict[str, Any]]:
    """
    First non-blank row = headers. Blank cells are left out of each mapping and
    fully blank data rows are dropped. Each mapping carries ORIGIN_ROW, the
    1-based row number in the source sheet (matrix row 0 = sheet row 1).
    """
    start = None
    for i, row in enumerate(matrix):
        if any(not is_blank(v) for v in row):
            start = i
            break
    if start is None:
        return []

    headers = _make_unique([_clean_header_cell(v) for v in matrix[start]])

    out: List[Dict[str, Any]] = []
    for i in range(start + 1, len(matrix)):
        rec = {h: v for h, v in zip(headers, matrix[i]) if not is_blank(v)}
        if rec:
            rec[ORIGIN_ROW] = i + 1
            out.append(rec)
    return out


# =========================
# Main: upload -> rows
# =========================
def load_schedule_rows(name: str, data: bytes) -> List[Dict[str, Any]]:
    """
    Decodes a CSV/XLSX/XLS schedule into an ordered list of {header: value} rows.

    Raises ScheduleDecodeError when the file cannot be read. A readable file
    with no data rows gives [].
    """
    ext = name.rsplit(".", 1)[-1].lower() if "." in name else ""
    if ext not in UPLOAD_TYPES:
        raise ScheduleDecodeError(
            f"Unsupported file type: {name}. Upload an Excel (.xlsx, .xls) or CSV (.csv) file."
        )

    try:
        if ext == "csv":
            matrix = _read_csv_matrix(data)
        elif ext == "xls":
            matrix = _read_xls_matrix(data)
        else:
            matrix = _sheet_to_matrix_with_merged(data)
    except Exception as e:
        logger.exception("Failed to decode schedule %s", name)
        raise ScheduleDecodeError(
            f"Failed to parse {name}. Ensure it's a valid Excel/CSV file with the required columns."
        ) from e

    rows = rows_from_matrix(matrix)
    logger.info("Decoded %d row(s) from %s", len(rows), name)
    return rows


def load_rows_from_upload(upload) -> List[Dict[str, Any]]:
    # Streamlit UploadedFile or anything with .name / .getvalue()
    return load_schedule_rows(upload.name, upload.getvalue())
