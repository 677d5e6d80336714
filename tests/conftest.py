import sys
from pathlib import Path

import pytest

# Add the repo root to sys.path so we can import exam_ticker
ROOT_PATH = Path(__file__).resolve().parent.parent
if ROOT_PATH.as_posix() not in sys.path:
    sys.path.insert(0, ROOT_PATH.as_posix())


# Common test fixtures
@pytest.fixture
def schedule_rows():
    """Decoded rows of a small Vietnamese-header schedule."""
    return [
        {"Mã lớp": "157324", "Tên học phần": "Intro to Programming", "Ngày thi": "20/6/2025",
         "Ca thi": "1", "Tổ thi": "T1", "Phòng thi": "D9-101"},
        {"Mã lớp": "158785", "Tên học phần": "Data Structures and Algorithms", "Ngày thi": "5.6.25"},
        {"Mã lớp": "160001", "Tên học phần": "Linear Algebra", "Ngày thi": "01-07-2025"},
    ]
