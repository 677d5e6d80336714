from __future__ import annotations
import hashlib
import logging
import streamlit as st
from exam_ticker.ingest import UPLOAD_TYPES, ScheduleDecodeError, load_rows_from_upload
from exam_ticker.extract import ExamRecord, extract_exams, sort_exams
from exam_ticker.dedupe import merge_exam_records, merge_message, remove_exam
from exam_ticker.dates import countdown_badge, days_remaining
from exam_ticker.export import export_exams_to_excel_bytes
from exam_ticker.utils import NA_VALUE

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

REQUIRED_COLS_HINT = "'Mã lớp', 'Tên học phần', 'Ngày thi', 'Ca thi', 'Tổ thi', and 'Phòng thi'"

st.set_page_config(page_title="Final Exam Hustle", layout="centered")
st.title("Final Exam Hustle")
st.caption("Upload your schedule and find your exams!")

st.session_state.setdefault("exams", [])


# =========================
# Helpers
# =========================
def _safe_key_prefix(exam_id: str) -> str:
    # ids contain course names with arbitrary characters; widget keys get a hash
    return hashlib.md5(exam_id.encode("utf-8")).hexdigest()


def _delete_exam(exam_id: str) -> None:
    st.session_state["exams"] = remove_exam(st.session_state["exams"], exam_id)


def _render_exam_card(exam: ExamRecord) -> None:
    days = days_remaining(exam.exam_date)
    badge = countdown_badge(days)
    kp = _safe_key_prefix(exam.id)

    with st.container(border=True):
        head, btn = st.columns([10, 1])
        with head:
            st.subheader(exam.course_name)
            st.caption(f"Exam Date: {exam.exam_date}")
        with btn:
            st.button("✕", key=f"{kp}__del", help="Delete exam", on_click=_delete_exam, args=(exam.id,))

        st.metric("days remaining", days)
        if badge == "today":
            st.error("Exam is Today!")
        elif badge == "soon":
            st.warning("Approaching Soon!")

        details = [f"**Class Code:** {exam.class_code}"]
        if exam.group != NA_VALUE:
            details.append(f"**Group:** {exam.group}")
        if exam.exam_team != NA_VALUE:
            details.append(f"**Exam Team:** {exam.exam_team}")
        if exam.exam_room != NA_VALUE:
            details.append(f"**Exam Room:** {exam.exam_room}")
        st.markdown("  \n".join(details))


# =========================
# Upload & search
# =========================
with st.form("search_form"):
    st.markdown("**Upload Schedule & Enter Classes**")
    upload = st.file_uploader("Exam Schedule (Excel/CSV)", type=UPLOAD_TYPES)
    class_codes = st.text_input("Class Codes (comma-separated)", placeholder="e.g., 157324, 158785")
    submitted = st.form_submit_button("Get Exam Dates", type="primary", use_container_width=True)

if submitted:
    if upload is None:
        st.error("Please upload an Excel/CSV schedule.")
    elif not class_codes.strip():
        st.error("Please enter class codes.")
    else:
        with st.spinner("Processing your file..."):
            try:
                rows = load_rows_from_upload(upload)
            except ScheduleDecodeError as e:
                rows = None
                st.error(f"{e} The file should contain {REQUIRED_COLS_HINT} columns.")

        if rows is not None:
            existing = st.session_state["exams"]
            found = extract_exams(rows, class_codes)
            result = merge_exam_records(found, existing)
            st.session_state["exams"] = result.merged(existing)

            level, msg = merge_message(result, had_existing=bool(existing))
            st.toast(msg, icon="✅" if level == "success" else "ℹ️")


# =========================
# Exam list
# =========================
exams = st.session_state["exams"]

if not exams:
    st.info(
        "No exams matching your class codes were found yet. Please check your class codes or ensure your file has "
        f"{REQUIRED_COLS_HINT} columns with correctly formatted dates (dd.MM.yyyy)."
    )
    st.stop()

st.header("Your Upcoming Exams")
for exam in sort_exams(exams):
    _render_exam_card(exam)

st.download_button(
    "Download exam list (Excel)",
    data=export_exams_to_excel_bytes(exams),
    file_name="exams.xlsx",
    mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
)
