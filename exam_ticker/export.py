from __future__ import annotations
import pandas as pd
from datetime import date
from io import BytesIO
from typing import Optional, Sequence
from .dates import SOON_DAYS, days_remaining
from .extract import ExamRecord, sort_exams

SHEET_NAME = "Exams"

COLUMNS = [
    ("class_code", "Class code"),
    ("course_name", "Course name"),
    ("exam_date", "Exam date"),
    ("group", "Group"),
    ("exam_team", "Exam team"),
    ("exam_room", "Exam room"),
]
DAYS_COL = "Days remaining"


def exams_to_dataframe(records: Sequence[ExamRecord], today: Optional[date] = None) -> pd.DataFrame:
    rows = []
    for r in sort_exams(records):
        d = r.to_dict()
        row = {title: d[key] for key, title in COLUMNS}
        row[DAYS_COL] = days_remaining(r.exam_date, today)
        rows.append(row)
    return pd.DataFrame(rows, columns=[title for _, title in COLUMNS] + [DAYS_COL])


def export_exams_to_excel_bytes(records: Sequence[ExamRecord], today: Optional[date] = None) -> bytes:
    df = exams_to_dataframe(records, today)
    bio = BytesIO()

    with pd.ExcelWriter(bio, engine="xlsxwriter") as writer:
        df.to_excel(writer, index=False, sheet_name=SHEET_NAME)

        wb = writer.book
        fmt_header = wb.add_format({"bold": True, "bg_color": "#F2F2F2", "border": 1, "valign": "vcenter"})
        fmt_soon = wb.add_format({"bg_color": "#FEF7E0"})
        fmt_today = wb.add_format({"bg_color": "#FCE8E6"})

        ws = writer.sheets[SHEET_NAME]
        ws.freeze_panes(1, 0)
        ws.autofilter(0, 0, max(1, len(df)), len(df.columns) - 1)
        for col, name in enumerate(df.columns):
            ws.write(0, col, name, fmt_header)
            w = max(12, min(48, int(len(str(name)) * 1.2) + 6))
            if name == "Course name":
                w = 40
            ws.set_column(col, col, w)

        if len(df):
            jd = len(df.columns) - 1
            ws.conditional_format(1, jd, len(df), jd, {
                "type": "cell", "criteria": "==", "value": 0, "format": fmt_today,
            })
            ws.conditional_format(1, jd, len(df), jd, {
                "type": "cell", "criteria": "between", "minimum": 1, "maximum": SOON_DAYS, "format": fmt_soon,
            })

    return bio.getvalue()
