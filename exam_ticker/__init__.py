"""
This package contains:
- loading an exam schedule (CSV/XLSX) into rows
- resolving columns by synonym headers
- normalizing exam dates to DD.MM.YYYY
- matching rows against the student's class codes
- merging results into the displayed exam list
- exporting the list to Excel
"""
from .ingest import ScheduleDecodeError, load_schedule_rows, load_rows_from_upload
from .fields import resolve_field
from .dates import normalize_exam_date, days_remaining, countdown_badge
from .extract import ExamRecord, extract_exams, parse_class_codes, sort_exams
from .dedupe import MergeResult, merge_exam_records, merge_message, remove_exam
from .export import export_exams_to_excel_bytes

__all__ = [
    "ScheduleDecodeError",
    "load_schedule_rows",
    "load_rows_from_upload",
    "resolve_field",
    "normalize_exam_date",
    "days_remaining",
    "countdown_badge",
    "ExamRecord",
    "extract_exams",
    "parse_class_codes",
    "sort_exams",
    "MergeResult",
    "merge_exam_records",
    "merge_message",
    "remove_exam",
    "export_exams_to_excel_bytes",
]
