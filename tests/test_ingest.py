"""
Tests for decoding uploaded schedules into rows.
"""

import logging
from datetime import datetime
from io import BytesIO

import pandas as pd
import pytest
from openpyxl import Workbook

from exam_ticker import ingest
from exam_ticker.extract import extract_exams
from exam_ticker.ingest import (
    UPLOAD_TYPES,
    ScheduleDecodeError,
    load_rows_from_upload,
    load_schedule_rows,
    rows_from_matrix,
)
from exam_ticker.utils import ORIGIN_ROW


def _xlsx_bytes(rows, merge=None) -> bytes:
    wb = Workbook()
    ws = wb.active
    for r in rows:
        ws.append(r)
    if merge:
        ws.merge_cells(merge)
    second = wb.create_sheet("Ignored")
    second.append(["Mã lớp"])
    bio = BytesIO()
    wb.save(bio)
    return bio.getvalue()


def _without_origin(rows):
    return [{k: v for k, v in r.items() if k != ORIGIN_ROW} for r in rows]


class FakeUpload:
    def __init__(self, name: str, data: bytes):
        self.name = name
        self._data = data

    def getvalue(self) -> bytes:
        return self._data


class TestRowsFromMatrix:

    def test_rows_when_leading_blank_rows_then_first_filled_row_is_header(self):
        matrix = [[None, None], ["", " "], ["Mã lớp", "Ngày thi"], ["1", "20/6/2025"]]
        assert rows_from_matrix(matrix) == [{"Mã lớp": "1", "Ngày thi": "20/6/2025", ORIGIN_ROW: 4}]

    def test_rows_when_blank_cells_and_rows_then_omitted(self):
        matrix = [["A", "B"], ["1", ""], [None, None], ["", "2"]]
        assert rows_from_matrix(matrix) == [{"A": "1", ORIGIN_ROW: 2}, {"B": "2", ORIGIN_ROW: 4}]

    def test_rows_when_duplicate_or_missing_headers_then_made_unique(self):
        matrix = [["A", "A", None], ["1", "2", "3"]]
        assert _without_origin(rows_from_matrix(matrix)) == [{"A": "1", "A__2": "2", "col_3": "3"}]

    def test_rows_when_empty_matrix_then_empty(self):
        assert rows_from_matrix([]) == []


class TestLoadCsv:
    """Tests for CSV decoding."""

    def test_load_when_comma_csv_then_rows_as_text(self):
        data = "Mã lớp,Tên học phần,Ngày thi\n0157324,Intro,20/6/2025\n".encode("utf-8")
        rows = load_schedule_rows("schedule.csv", data)
        assert rows == [{"Mã lớp": "0157324", "Tên học phần": "Intro", "Ngày thi": "20/6/2025", ORIGIN_ROW: 2}]

    def test_load_when_semicolon_csv_with_bom_then_header_clean(self):
        data = "Mã lớp;Tên học phần;Ngày thi\n157324;Intro;20.6.2025\n158785;DSA;25.6.2025\n".encode("utf-8-sig")
        rows = load_schedule_rows("schedule.CSV", data)
        assert [r["Mã lớp"] for r in rows] == ["157324", "158785"]

    def test_load_when_large_utf8_csv_split_at_sample_boundary_then_decoded_as_utf8(self):
        head = ("Mã lớp,Tên học phần,Ngày thi\n" + "157324,Lập trình,20/6/2025\n" * 1500).encode("utf-8")
        prefix = head + b"999999,"
        # a 3-byte character starts one byte before the 64 KB mark
        data = prefix + b"x" * (65535 - len(prefix)) + "ớ,1/7/2025\n".encode("utf-8")
        assert len(data) > 65536
        with pytest.raises(UnicodeDecodeError):
            data[:65536].decode("utf-8")

        rows = load_schedule_rows("big.csv", data)
        assert "Mã lớp" in rows[0]
        assert len(rows) == 1501
        exams = extract_exams(rows, "157324")
        assert [e.course_name for e in exams] == ["Lập trình"]

    def test_load_when_cp1258_csv_then_decoded(self):
        # cp1258 stores Vietnamese tone marks as combining characters
        course = "To\u00e1n cao c\u00e2\u0301p"
        data = f"Class code,Course name,Exam date\n157324,{course},20/6/2025\n".encode("cp1258")
        with pytest.raises(UnicodeDecodeError):
            data.decode("utf-8")

        rows = load_schedule_rows("schedule.csv", data)
        assert rows[0]["Course name"] == course

    def test_load_when_bytes_fit_no_encoding_then_decode_error(self):
        with pytest.raises(ScheduleDecodeError):
            load_schedule_rows("schedule.csv", b"Class code\n\x81\x81\n")

    def test_load_when_blank_lines_then_origin_is_file_line(self):
        data = "Mã lớp,Ngày thi\n\n157324,20/6/2025\n\n158785,25/6/2025\n".encode("utf-8")
        rows = load_schedule_rows("schedule.csv", data)
        assert [r[ORIGIN_ROW] for r in rows] == [3, 5]

    def test_load_when_empty_csv_then_empty_rows(self):
        assert load_schedule_rows("empty.csv", b"") == []


class TestLoadXlsx:
    """Tests for Excel decoding."""

    def test_load_when_xlsx_then_first_sheet_with_typed_values(self):
        data = _xlsx_bytes([
            ["Mã lớp", "Tên học phần", "Ngày thi", "Phòng thi"],
            [157324, "Intro", datetime(2025, 6, 20), "D9-101"],
        ])
        rows = load_schedule_rows("schedule.xlsx", data)
        assert len(rows) == 1
        assert rows[0]["Mã lớp"] == 157324
        assert rows[0]["Ngày thi"] == datetime(2025, 6, 20)

    def test_load_when_merged_cells_then_value_copied_to_each_row(self):
        data = _xlsx_bytes([
            ["Mã lớp", "Tên học phần", "Ngày thi", "Phòng thi"],
            [157324, "Intro", "20/6/2025", "D9-101"],
            [158785, "DSA", None, "D9-102"],
        ], merge="C2:C3")
        exams = extract_exams(load_schedule_rows("schedule.xlsx", data), "157324, 158785")
        assert [e.exam_date for e in exams] == ["20.06.2025", "20.06.2025"]

    def test_load_when_upload_object_then_reads_name_and_bytes(self):
        data = _xlsx_bytes([["Class code", "Course name", "Exam date"], ["IT1", "Nets", "1/7/25"]])
        rows = load_rows_from_upload(FakeUpload("s.xlsx", data))
        assert extract_exams(rows, "it1")[0].exam_date == "01.07.2025"

    def test_load_when_title_block_and_blank_rows_then_skip_logged_with_sheet_row(self, caplog):
        data = _xlsx_bytes([
            [None, None, None],
            [None, None, None],
            ["Mã lớp", "Tên học phần", "Ngày thi"],
            [158785, "DSA", "25/6/2025"],
            [None, None, None],
            [157324, "Intro", "sometime in June"],
        ])
        rows = load_schedule_rows("schedule.xlsx", data)
        assert [r[ORIGIN_ROW] for r in rows] == [4, 6]

        with caplog.at_level(logging.WARNING, logger="exam_ticker.extract"):
            exams = extract_exams(rows, "157324, 158785")
        assert [e.class_code for e in exams] == ["158785"]
        assert "Row 6:" in caplog.text


class TestLoadXls:
    """Tests for legacy .xls decoding."""

    def test_xls_is_accepted_by_default(self):
        assert "xls" in UPLOAD_TYPES

    def test_load_when_xls_then_read_with_xlrd(self, monkeypatch):
        calls = {}

        def fake_read_excel(io, **kwargs):
            calls.update(kwargs)
            return pd.DataFrame([
                ["Mã lớp", "Tên học phần", "Ngày thi"],
                [157324, "Intro", pd.Timestamp("2025-06-20")],
            ])

        monkeypatch.setattr(ingest.pd, "read_excel", fake_read_excel)
        rows = load_schedule_rows("schedule.xls", b"\xd0\xcf\x11\xe0")
        assert calls["engine"] == "xlrd"
        assert calls["header"] is None
        assert extract_exams(rows, "157324")[0].exam_date == "20.06.2025"

    def test_load_when_corrupt_xls_then_decode_error(self):
        with pytest.raises(ScheduleDecodeError):
            load_schedule_rows("broken.xls", b"definitely not a workbook")


class TestDecodeErrors:

    def test_load_when_corrupt_xlsx_then_decode_error(self):
        with pytest.raises(ScheduleDecodeError) as exc:
            load_schedule_rows("broken.xlsx", b"definitely not a zip file")
        assert exc.value.__cause__ is not None

    @pytest.mark.parametrize("name", ["schedule.pdf", "schedule"])
    def test_load_when_unsupported_extension_then_decode_error(self, name):
        with pytest.raises(ScheduleDecodeError, match="Unsupported file type"):
            load_schedule_rows(name, b"data")

    def test_decode_error_is_a_value_error(self):
        assert issubclass(ScheduleDecodeError, ValueError)
