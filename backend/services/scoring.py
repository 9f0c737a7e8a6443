"""
Course Scorer Service

Computes a desirability score for a single candidate course from the
student's preferences and the course's requirement priority.

The score is the rounded sum of independent components:
- requirement:   30 + priority * 10 when needed, else 10
- instructor:    5..30 from average quality, 15 with no instructor listed;
                 an avoided instructor vetoes the whole score to -50
- time block:    12..25 peaking at 11:00, -40 inside an avoided block
- difficulty:    5..15 along the workload tier's curve, 8 without data
- week pattern:  3..10 by weekday cluster
- rating:        -15..20 from average quality, 0 without data
"""

from dataclasses import dataclass, asdict
from datetime import time
from typing import Dict, Any, Optional, Iterable

from core.models import Course, Preferences, WorkloadTier, WeekPattern, MWF_DAYS, TR_DAYS
from core.parsers import normalize_instructor_name


@dataclass
class ScoreBreakdown:
    """Per-component score for one course"""
    requirement: float
    instructor: float
    time_block: float
    difficulty: float
    week_pattern: float
    rating: float
    vetoed: bool = False

    @property
    def total(self) -> int:
        if self.vetoed:
            return CourseScorer.INSTRUCTOR_VETO
        return int(round(
            self.requirement + self.instructor + self.time_block +
            self.difficulty + self.week_pattern + self.rating
        ))

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["total"] = self.total
        return data


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class CourseScorer:
    """Scores candidate courses against student preferences"""

    # Requirement component
    NEEDED_BASE = 30
    PRIORITY_WEIGHT = 10
    NOT_NEEDED_SCORE = 10

    # Instructor component
    INSTRUCTOR_VETO = -50
    NO_INSTRUCTOR_SCORE = 15
    INSTRUCTOR_MIN = 5
    INSTRUCTOR_MAX = 30

    # Time block component
    AVOIDED_BLOCK_PENALTY = -40
    NO_SCHEDULE_TIME_SCORE = 15
    PEAK_START_HOUR = 11.0
    TIME_MIN = 12
    TIME_MAX = 25

    # Difficulty component
    BALANCED_DIFFICULTY = 3.0
    DIFFICULTY_MIN = 5
    DIFFICULTY_MAX = 15
    NO_DIFFICULTY_SCORE = 8

    # Week pattern component
    PATTERN_FULL_MATCH = 10
    PATTERN_BALANCED = 8
    PATTERN_PARTIAL_MATCH = 6
    PATTERN_NO_MATCH = 3

    # Rating component
    RATING_MIN = -15
    RATING_MAX = 20

    # --- Components ---

    def requirement_component(self, priority: int, needed: bool = True) -> float:
        if not needed:
            return self.NOT_NEEDED_SCORE
        return self.NEEDED_BASE + priority * self.PRIORITY_WEIGHT

    @staticmethod
    def is_avoided_instructor(course: Course, avoided: Iterable[str]) -> bool:
        """Case-insensitive substring match of avoided names on instructor names"""
        avoided = [normalize_instructor_name(a) for a in avoided or () if a and a.strip()]
        if not avoided:
            return False
        for instructor in course.instructors:
            name = normalize_instructor_name(instructor)
            if any(a in name for a in avoided):
                return True
        return False

    def instructor_component(self, course: Course, preferences: Preferences) -> float:
        """
        Bonus from average instructor quality.

        Callers must check is_avoided_instructor first; a match vetoes the
        whole score rather than this component.
        """
        if not course.instructors:
            return self.NO_INSTRUCTOR_SCORE
        if course.rating is None or course.rating.quality is None:
            return self.NO_INSTRUCTOR_SCORE

        # 2.0 -> 5, 5.0 -> 30
        bonus = self.INSTRUCTOR_MIN + (course.rating.quality - 2.0) * (25 / 3)
        return _clamp(bonus, self.INSTRUCTOR_MIN, self.INSTRUCTOR_MAX)

    def time_block_component(self, course: Course, preferences: Preferences) -> float:
        if course.meeting is None:
            return self.NO_SCHEDULE_TIME_SCORE

        start: time = course.meeting.start
        if any(block.contains(start) for block in preferences.avoid_time_blocks):
            return self.AVOIDED_BLOCK_PENALTY

        hours = start.hour + start.minute / 60
        bonus = self.TIME_MAX - 2 * abs(hours - self.PEAK_START_HOUR)
        return _clamp(bonus, self.TIME_MIN, self.TIME_MAX)

    def difficulty_component(self, course: Course, preferences: Preferences) -> float:
        if course.rating is None or course.rating.difficulty is None:
            return self.NO_DIFFICULTY_SCORE

        difficulty = course.rating.difficulty
        if preferences.workload == WorkloadTier.CHALLENGING:
            value = 5 + (difficulty - 1) * 2.5
        elif preferences.workload == WorkloadTier.EASIER:
            value = 15 - (difficulty - 1) * 2.5
        else:
            value = 15 - abs(difficulty - self.BALANCED_DIFFICULTY) * 5
        return _clamp(value, self.DIFFICULTY_MIN, self.DIFFICULTY_MAX)

    def week_pattern_component(self, course: Course, preferences: Preferences) -> float:
        if course.meeting is None or not course.meeting.days:
            return self.PATTERN_NO_MATCH

        if preferences.week_pattern == WeekPattern.BALANCED_DAYS:
            return self.PATTERN_BALANCED

        preferred = MWF_DAYS if preferences.week_pattern == WeekPattern.HEAVIER_MWF else TR_DAYS
        days = course.meeting.days
        if days <= preferred:
            return self.PATTERN_FULL_MATCH
        if days & preferred:
            return self.PATTERN_PARTIAL_MATCH
        return self.PATTERN_NO_MATCH

    def rating_component(self, course: Course) -> float:
        if course.rating is None or course.rating.quality is None:
            return 0
        return _clamp((course.rating.quality - 3.0) * 10, self.RATING_MIN, self.RATING_MAX)

    # --- Totals ---

    def breakdown(
        self,
        course: Course,
        preferences: Preferences,
        priority: int = 0,
        needed: bool = True
    ) -> ScoreBreakdown:
        """Score every component for a course"""
        return ScoreBreakdown(
            requirement=self.requirement_component(priority, needed),
            instructor=self.instructor_component(course, preferences),
            time_block=self.time_block_component(course, preferences),
            difficulty=self.difficulty_component(course, preferences),
            week_pattern=self.week_pattern_component(course, preferences),
            rating=self.rating_component(course),
            vetoed=self.is_avoided_instructor(course, preferences.avoid_instructors)
        )

    def score(
        self,
        course: Course,
        preferences: Preferences,
        priority: int = 0,
        needed: bool = True
    ) -> int:
        """
        Score a course.

        Args:
            course: Candidate course
            preferences: Student preferences
            priority: Requirement priority (0-3)
            needed: Whether the course counts toward an unmet requirement

        Returns:
            Integer score; -50 for any course taught by an avoided instructor
        """
        if self.is_avoided_instructor(course, preferences.avoid_instructors):
            return self.INSTRUCTOR_VETO
        return self.breakdown(course, preferences, priority, needed).total


_course_scorer: Optional[CourseScorer] = None


def get_course_scorer() -> CourseScorer:
    """Get singleton instance of CourseScorer"""
    global _course_scorer
    if _course_scorer is None:
        _course_scorer = CourseScorer()
    return _course_scorer
