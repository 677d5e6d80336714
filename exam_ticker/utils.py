import re
import json
import math
import unicodedata
from pathlib import Path
from typing import Any, Optional
import pandas as pd

BASE_DIR = Path(__file__).resolve().parent.parent
DEFAULT_DATA_DIR = BASE_DIR / "data"


def load_json(path: Path, default: Any):
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError):
        return default


def rules_path() -> Path:
    return DEFAULT_DATA_DIR / "rules.json"


RULES = load_json(rules_path(), {})

NA_VALUE = str(RULES.get("na_value", "N/A"))

# source sheet row number (1-based), set by ingest
ORIGIN_ROW = "_origin_row"

_NBSP_RE = re.compile(r"[\u00A0\u2007\u202F]")  # NBSP variants


def norm_text(s: Any) -> str:
    """
    Text normalization used for header comparison:
    - BOM / non-breaking spaces
    - Unicode NFC (Vietnamese headers are often saved decomposed)
    - lower
    - whitespace collapse
    """
    if s is None:
        return ""

    s = str(s)

    # invisible characters from CSV/Excel exports
    s = s.replace("\ufeff", "")
    s = _NBSP_RE.sub(" ", s)
    s = unicodedata.normalize("NFC", s)
    s = s.lower()
    s = re.sub(r"\s+", " ", s).strip()
    return s


def is_blank(v: Any) -> bool:
    # None, NaN/NaT from pandas, or whitespace-only text
    if v is None:
        return True
    if isinstance(v, str):
        return v.strip() == ""
    if isinstance(v, float) and math.isnan(v):
        return True
    return bool(pd.api.types.is_scalar(v) and pd.isna(v))


def cell_to_str(v: Any) -> Optional[str]:
    """
    Spreadsheet cell -> trimmed string, or None when the cell is blank.
    Integral floats (157324.0) lose their fractional part.
    """
    if is_blank(v):
        return None
    if isinstance(v, bool):
        return str(v)
    if isinstance(v, float) and v.is_integer():
        return str(int(v))
    s = str(v).strip()
    return s or None
