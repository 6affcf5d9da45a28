# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Low-point and flag aggregation.

Turns a slice of assessment records into a flag classification and a
performance status. Two independent axes are computed:

- Flags are a step function of the low-point count alone.
- Status is derived from the unrounded average percentage.

They may disagree: a student can be On Track by average yet carry flags.

Nothing here filters. Callers select the scope (one student, one class, a
teacher's roster) and MUST restrict records to one term beforehand.

Usage:
    from src.domains.performance.aggregator import AssessmentRecord, aggregate

    summary = aggregate(records)
    if summary.flag_count:
        ...
"""

from collections import defaultdict
from dataclasses import dataclass
from typing import Iterable, Literal

PerformanceStatus = Literal["On Track", "At Risk", "Struggling"]

ON_TRACK: PerformanceStatus = "On Track"
AT_RISK: PerformanceStatus = "At Risk"
STRUGGLING: PerformanceStatus = "Struggling"

# A grade below this percentage is a low point
LOW_POINT_THRESHOLD = 80.0
STRUGGLING_BELOW = 70.0
AT_RISK_BELOW = 80.0

MAX_FLAGS = 3


@dataclass(frozen=True)
class AssessmentRecord:
    """One grade, normalized at the store boundary.

    Attributes:
        student_id: Student identifier.
        class_id: Class identifier.
        term_id: Term identifier.
        percentage: Score in [0, 100].
        is_low_point: Whether the grade counts as a low point.
    """

    student_id: str
    class_id: str
    term_id: str
    percentage: float
    is_low_point: bool


@dataclass(frozen=True)
class FlagClassification:
    """Derived classification. Recomputed on every read, never stored.

    Attributes:
        total_grades: Number of records aggregated.
        low_points: Number of low-point records.
        flag_count: Flags raised by the low-point count (0..3).
        average_percentage: Unrounded mean percentage, 0 when empty.
        status: Performance status from the average.
    """

    total_grades: int
    low_points: int
    flag_count: int
    average_percentage: float
    status: PerformanceStatus

    @property
    def is_flagged(self) -> bool:
        return self.flag_count >= 1


EMPTY = FlagClassification(
    total_grades=0,
    low_points=0,
    flag_count=0,
    average_percentage=0.0,
    status=ON_TRACK,
)


def flag_count_for(low_points: int) -> int:
    """Map a low-point count to flags: 0-2 -> 0, 3 -> 1, 4 -> 2, 5+ -> 3."""
    if low_points < 3:
        return 0
    return min(low_points - 2, MAX_FLAGS)


def status_for(average_percentage: float, total_grades: int) -> PerformanceStatus:
    """Classify an unrounded average.

    A student without grades is On Track, not Struggling.
    """
    if total_grades == 0:
        return ON_TRACK
    if average_percentage < STRUGGLING_BELOW:
        return STRUGGLING
    if average_percentage < AT_RISK_BELOW:
        return AT_RISK
    return ON_TRACK


def is_low_point(percentage: float) -> bool:
    return percentage < LOW_POINT_THRESHOLD


def aggregate(records: Iterable[AssessmentRecord]) -> FlagClassification:
    """Aggregate an already scoped, single-term slice of records."""
    total = 0
    low_points = 0
    percentage_sum = 0.0
    for record in records:
        total += 1
        percentage_sum += record.percentage
        if record.is_low_point:
            low_points += 1

    if total == 0:
        return EMPTY

    average = percentage_sum / total
    return FlagClassification(
        total_grades=total,
        low_points=low_points,
        flag_count=flag_count_for(low_points),
        average_percentage=average,
        status=status_for(average, total),
    )


def aggregate_by_student(
    records: Iterable[AssessmentRecord],
) -> dict[str, FlagClassification]:
    """Group by student first, then aggregate each group."""
    grouped: dict[str, list[AssessmentRecord]] = defaultdict(list)
    for record in records:
        grouped[record.student_id].append(record)
    return {student_id: aggregate(rows) for student_id, rows in grouped.items()}


def flagged_students(
    records: Iterable[AssessmentRecord],
) -> list[tuple[str, FlagClassification]]:
    """Students with at least one flag, most flagged first.

    Flags are attributed per student before any rollup. Counting low points
    across the whole slice would attribute flags to the wrong students.
    """
    flagged = [
        (student_id, summary)
        for student_id, summary in aggregate_by_student(records).items()
        if summary.is_flagged
    ]
    flagged.sort(key=lambda item: (-item[1].flag_count, -item[1].low_points, item[0]))
    return flagged


def flag_breakdown(classifications: Iterable[FlagClassification]) -> dict[str, int]:
    """Count classifications by flag level."""
    breakdown = {"one": 0, "two": 0, "three": 0}
    for summary in classifications:
        if summary.flag_count == 1:
            breakdown["one"] += 1
        elif summary.flag_count == 2:
            breakdown["two"] += 1
        elif summary.flag_count >= 3:
            breakdown["three"] += 1
    return breakdown


def required_contact_for(flag_count: int) -> str | None:
    """Parent contact expected at a flag level: message, call, then meeting."""
    if flag_count >= 3:
        return "meeting"
    if flag_count == 2:
        return "call"
    if flag_count == 1:
        return "message"
    return None


def display_percentage(value: float) -> int:
    """Round an average for display. Never feed the result back into status_for."""
    # Half-up, matching how percentages are shown to staff
    return int(value + 0.5) if value >= 0 else -int(-value + 0.5)


def matches_performance(performance: str, summary: FlagClassification) -> bool:
    """Directory performance filter.

    Bands follow status_for, so students without grades fall under "on_track".
    """
    if performance == "all":
        return True
    band = {
        "on_track": ON_TRACK,
        "at_risk": AT_RISK,
        "struggling": STRUGGLING,
    }.get(performance)
    return band is None or summary.status == band


def matches_flag_status(flag_status: str, summary: FlagClassification) -> bool:
    """Directory flag filter: "none", "1", "2" or "3" (3 means three or more)."""
    if flag_status == "all":
        return True
    if flag_status == "none":
        return summary.flag_count == 0
    if flag_status == "3":
        return summary.flag_count >= 3
    return str(summary.flag_count) == flag_status
