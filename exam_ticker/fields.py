from __future__ import annotations
from typing import Any, Dict, List, Mapping, Optional
from .utils import RULES, is_blank, norm_text

CLASS_CODE = "class_code"
COURSE_NAME = "course_name"
EXAM_DATE = "exam_date"
GROUP = "group"
EXAM_TEAM = "exam_team"
EXAM_ROOM = "exam_room"

# Order matters: the first header with a non-empty value wins.
# "Nhóm" / "Kíp thi" come from the alternative schedule layout and are tried last.
DEFAULT_HEADERS: Dict[str, List[str]] = {
    CLASS_CODE: ["Mã lớp", "mã lớp", "Class code", "class code"],
    COURSE_NAME: ["Tên học phần", "tên học phần", "Course name", "course name"],
    EXAM_DATE: ["Ngày thi", "ngày thi", "Exam date", "exam date"],
    GROUP: ["Ca thi", "ca thi", "Exam Group", "exam group", "Group", "group", "Nhóm"],
    EXAM_TEAM: ["Tổ thi", "tổ thi", "Exam Team", "exam team", "Kíp thi"],
    EXAM_ROOM: ["Phòng thi", "phòng thi", "Exam Room", "exam room"],
}


def _load_headers() -> Dict[str, List[str]]:
    headers = {k: list(v) for k, v in DEFAULT_HEADERS.items()}
    custom = RULES.get("headers", {})
    if isinstance(custom, dict):
        for field, names in custom.items():
            if field in headers and isinstance(names, list) and names:
                headers[field] = [str(n) for n in names]
    return headers


HEADERS = _load_headers()


def resolve_field(row: Mapping[str, Any], field: str, headers: Optional[Dict[str, List[str]]] = None) -> Any:
    """
    Returns the first non-empty value among the synonym headers of `field`, or None.

    Exact header lookup first; if nothing matches, headers are compared after
    norm_text (BOM, NBSP, NFC, case), so a decomposed "Mã lớp" or a
    "\\ufeffMã lớp" from a CSV export still resolves.
    """
    synonyms = (headers or HEADERS).get(field)
    if not synonyms:
        raise KeyError(f"unknown field: {field}")

    for name in synonyms:
        v = row.get(name)
        if not is_blank(v):
            return v

    normalized: Dict[str, Any] = {}
    for k, v in row.items():
        nk = norm_text(k)
        if nk and nk not in normalized and not is_blank(v):
            normalized[nk] = v

    for name in synonyms:
        v = normalized.get(norm_text(name))
        if v is not None:
            return v

    return None


def resolve_fields(row: Mapping[str, Any], headers: Optional[Dict[str, List[str]]] = None) -> Dict[str, Any]:
    return {f: resolve_field(row, f, headers) for f in (headers or HEADERS)}
