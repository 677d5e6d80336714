from __future__ import annotations
import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List, Mapping, Sequence, Set
from .dates import exam_date_sort_key, normalize_exam_date
from .fields import (CLASS_CODE, COURSE_NAME, EXAM_DATE, EXAM_ROOM, EXAM_TEAM, GROUP, resolve_field)
from .utils import NA_VALUE, ORIGIN_ROW, cell_to_str

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExamRecord:
    id: str
    class_code: str
    course_name: str
    exam_date: str  # DD.MM.YYYY
    group: str = NA_VALUE
    exam_team: str = NA_VALUE
    exam_room: str = NA_VALUE

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


def make_exam_id(class_code: str, course_name: str, exam_date: str, group: str, exam_team: str, exam_room: str, row_index: int) -> str:
    return f"{class_code}-{course_name}-{exam_date}-{group}-{exam_team}-{exam_room}-{row_index}"


def parse_class_codes(text: str) -> Set[str]:
    """ "157324, 158785" -> {"157324", "158785"} (lowercased, blanks dropped) """
    if not text:
        return set()
    return {t.strip().lower() for t in str(text).split(",") if t.strip()}


def _row_label(row: Mapping[str, Any], row_index: int) -> str:
    # sheet row number when ingest recorded it, else position among data rows
    origin = row.get(ORIGIN_ROW)
    if origin is not None:
        return f"Row {origin}"
    return f"Data row {row_index + 1}"


def extract_exams(rows: Sequence[Mapping[str, Any]], class_codes: str) -> List[ExamRecord]:
    """
    Match-and-build pass over decoded schedule rows.

    A row becomes an ExamRecord when it has a class code that is in
    `class_codes`, a course name and a normalizable exam date. Only the first
    row (source order) per class code is kept. Group/team/room default to
    NA_VALUE. Result keeps source order; use sort_exams() for display order.
    """
    targets = parse_class_codes(class_codes)
    if not targets:
        return []

    out: List[ExamRecord] = []
    found: Set[str] = set()

    for row_index, row in enumerate(rows):
        code = cell_to_str(resolve_field(row, CLASS_CODE))
        course = cell_to_str(resolve_field(row, COURSE_NAME))
        raw_date = resolve_field(row, EXAM_DATE)

        if not code or not course:
            continue

        code = code.lower()
        if code not in targets or code in found:
            continue

        exam_date = normalize_exam_date(raw_date)
        if not exam_date:
            logger.warning(
                "%s: skipping exam for class %s, course %s: missing or unparsable date %r",
                _row_label(row, row_index), code, course, raw_date,
            )
            continue

        group = cell_to_str(resolve_field(row, GROUP)) or NA_VALUE
        team = cell_to_str(resolve_field(row, EXAM_TEAM)) or NA_VALUE
        room = cell_to_str(resolve_field(row, EXAM_ROOM)) or NA_VALUE

        out.append(ExamRecord(
            id=make_exam_id(code, course, exam_date, group, team, room, row_index),
            class_code=code,
            course_name=course,
            exam_date=exam_date,
            group=group,
            exam_team=team,
            exam_room=room,
        ))
        found.add(code)

    return out


def sort_exams(records: Iterable[ExamRecord]) -> List[ExamRecord]:
    # by exam date ascending; stable for equal dates
    return sorted(records, key=lambda r: exam_date_sort_key(r.exam_date))
