"""
Semester Management Utilities

Planning Sequence Logic:
- Plans alternate Fall and Spring; summer terms are not planned
- Before September: the first planned term is Fall of the current year
- September onward: the first planned term is Spring of the next year
- A plan covers years_remaining x 2 terms

Term Code Format: YYYYSS
- 10 = Spring
- 20 = Summer
- 30 = Fall
"""

import re
from datetime import datetime
from typing import Dict, List, Optional, Tuple, Union


SEMESTER_CODES = {"Spring": "10", "Summer": "20", "Fall": "30"}
TERM_LABEL_RE = re.compile(r"^\s*(Spring|Summer|Fall)\s+(\d{4})\s*$", re.IGNORECASE)


class SemesterManager:
    """Builds the ordered term sequence a plan is laid out over"""

    # First month (1-based) in which planning starts with next year's Spring
    SPRING_START_MONTH = 9

    @staticmethod
    def get_planning_start(now: Optional[datetime] = None) -> Tuple[str, int]:
        """
        Determine the first term to plan.

        Returns:
            (semester, year), e.g. ("Fall", 2025)
        """
        now = now or datetime.now()
        if now.month >= SemesterManager.SPRING_START_MONTH:
            return "Spring", now.year + 1
        return "Fall", now.year

    @staticmethod
    def get_planning_start_info(now: Optional[datetime] = None) -> Dict[str, Union[str, int]]:
        """First planned term as a dict with year, semester, term_code, display_name"""
        semester, year = SemesterManager.get_planning_start(now)
        return {
            "year": year,
            "semester": semester,
            "semester_code": SEMESTER_CODES[semester],
            "term_code": f"{year}{SEMESTER_CODES[semester]}",
            "display_name": f"{semester} {year}"
        }

    @staticmethod
    def terms_for_years_remaining(years_remaining: int) -> int:
        """Number of Fall/Spring terms left in the given number of years"""
        return max(0, int(years_remaining)) * 2

    @staticmethod
    def build_term_labels(
        count: int,
        start_semester: Optional[str] = None,
        start_year: Optional[int] = None,
        now: Optional[datetime] = None
    ) -> List[str]:
        """
        Build `count` alternating Fall/Spring labels.

        Args:
            count: Number of terms
            start_semester: "Fall" or "Spring"; defaults to the planning start
            start_year: Year of the first term; defaults to the planning start

        Returns:
            Labels such as ["Fall 2025", "Spring 2026", ...]
        """
        if start_semester is None or start_year is None:
            default_semester, default_year = SemesterManager.get_planning_start(now)
            start_semester = start_semester or default_semester
            start_year = start_year or default_year

        semester = start_semester.capitalize()
        if semester not in ("Fall", "Spring"):
            raise ValueError(f"Plans start in Fall or Spring, not {start_semester}")

        labels = []
        year = start_year
        for _ in range(max(0, count)):
            labels.append(f"{semester} {year}")
            if semester == "Fall":
                semester = "Spring"
                year += 1
            else:
                semester = "Fall"
        return labels

    @staticmethod
    def parse_term_label(label: str) -> Dict[str, Union[str, int]]:
        """Parse 'Fall 2025' into its components"""
        match = TERM_LABEL_RE.match(label or "")
        if not match:
            raise ValueError(f"Invalid term label: {label}")

        semester = match.group(1).capitalize()
        year = int(match.group(2))
        return {
            "year": year,
            "semester": semester,
            "semester_code": SEMESTER_CODES[semester],
            "term_code": f"{year}{SEMESTER_CODES[semester]}",
            "display_name": f"{semester} {year}"
        }


def build_plan_terms(
    years_remaining: int,
    now: Optional[datetime] = None,
    start: Optional[str] = None
) -> List[str]:
    """
    Convenience function: term labels for the remaining years.

    `start` is an explicit first term such as "Spring 2026"; otherwise the
    planning start for `now` is used.
    """
    count = SemesterManager.terms_for_years_remaining(years_remaining)
    if start:
        parsed = SemesterManager.parse_term_label(start)
        return SemesterManager.build_term_labels(count, parsed["semester"], parsed["year"])
    return SemesterManager.build_term_labels(count, now=now)
