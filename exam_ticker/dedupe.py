from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Sequence, Tuple
from .extract import ExamRecord


@dataclass
class MergeResult:
    added: List[ExamRecord] = field(default_factory=list)
    duplicates: List[ExamRecord] = field(default_factory=list)

    @property
    def found(self) -> int:
        return len(self.added) + len(self.duplicates)

    def merged(self, existing: Sequence[ExamRecord]) -> List[ExamRecord]:
        return list(existing) + self.added


def merge_exam_records(found: Sequence[ExamRecord], existing: Sequence[ExamRecord]) -> MergeResult:
    """
    Splits freshly extracted records into those not yet shown (by id) and
    those already in `existing`. Neither input is modified.
    """
    seen = {r.id for r in existing}
    result = MergeResult()
    for r in found:
        if r.id in seen:
            result.duplicates.append(r)
        else:
            seen.add(r.id)
            result.added.append(r)
    return result


def remove_exam(existing: Sequence[ExamRecord], exam_id: str) -> List[ExamRecord]:
    return [r for r in existing if r.id != exam_id]


def merge_message(result: MergeResult, had_existing: bool) -> Tuple[str, str]:
    """
    (level, text) for the UI after a search; level is "success" or "info".
    """
    if result.added:
        return "success", f"{len(result.added)} new exam(s) added to your list."

    if result.duplicates:
        return "info", f"The {result.found} exam(s) found from this search are already in your list."

    if had_existing:
        return "info", "No additional matching exams found for the current search. Your existing list remains."

    return (
        "info",
        "No matching exams found for your current search. "
        "Check class codes and ensure your file has the required columns with correctly formatted data.",
    )
