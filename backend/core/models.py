"""
Planning Data Model

Dataclasses shared by the requirement tracker, scorer, allocator and the
REST layer. Every model converts to and from plain dictionaries so plans can
be cached in Redis and returned as JSON without loss.
"""

import re
from dataclasses import dataclass, field, replace
from datetime import time
from enum import Enum
from typing import List, Dict, Any, Optional, Set, FrozenSet, Tuple, Iterable


COURSE_ID_PATTERN = re.compile(r"^([A-Z]+)\s*(\d+)")
DEFAULT_CREDITS = 3

# Weekday codes in calendar order
WEEKDAY_ORDER = "MTWRFSU"
MWF_DAYS = frozenset({"M", "W", "F"})
TR_DAYS = frozenset({"T", "R"})


class PrerequisiteType(str, Enum):
    """Shape of a prerequisite expression"""
    NONE = "none"
    SINGLE = "single"
    ALL = "and"
    ANY = "or"


class WorkloadTier(str, Enum):
    """How demanding the student wants their terms to be"""
    CHALLENGING = "challenging"
    BALANCED = "balanced"
    EASIER = "easier"

    @property
    def default_credits(self) -> int:
        """Credit target per term when the caller does not give one"""
        return {"challenging": 17, "balanced": 15, "easier": 13}[self.value]


class WeekPattern(str, Enum):
    """Which weekday cluster should carry more of the load"""
    HEAVIER_MWF = "heavier_mwf"
    BALANCED_DAYS = "balanced_days"
    HEAVIER_TR = "heavier_tr"


class TimeBlock(str, Enum):
    """Named blocks of the teaching day, matched on start hour"""
    EARLY_MORNING = "early_morning"
    LATE_MORNING = "late_morning"
    LUNCH = "lunch"
    EARLY_AFTERNOON = "early_afternoon"
    LATE_AFTERNOON = "late_afternoon"
    EVENING = "evening"

    @property
    def hours(self) -> Tuple[int, int]:
        """Half-open [start, end) hour range"""
        return {
            "early_morning": (8, 10),
            "late_morning": (10, 12),
            "lunch": (12, 14),
            "early_afternoon": (14, 16),
            "late_afternoon": (16, 18),
            "evening": (18, 20),
        }[self.value]

    def contains(self, start: time) -> bool:
        low, high = self.hours
        return low <= start.hour < high


@dataclass(frozen=True)
class MeetingPattern:
    """Weekly meeting days and time of day"""
    days: FrozenSet[str]
    start: time
    end: time

    @property
    def days_code(self) -> str:
        """Days in calendar order, e.g. 'MWF'"""
        return "".join(d for d in WEEKDAY_ORDER if d in self.days)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "days": self.days_code,
            "start": self.start.strftime("%H:%M"),
            "end": self.end.strftime("%H:%M"),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MeetingPattern":
        start_h, start_m = (int(p) for p in data["start"].split(":"))
        end_h, end_m = (int(p) for p in data["end"].split(":"))
        return cls(
            days=frozenset(data.get("days", "")),
            start=time(start_h, start_m),
            end=time(end_h, end_m),
        )


@dataclass(frozen=True)
class Rating:
    """Aggregate quality/difficulty rating, each on a 1-5 scale"""
    quality: float
    difficulty: Optional[float] = None

    @classmethod
    def average(cls, records: Iterable[Dict[str, Any]]) -> Optional["Rating"]:
        """
        Average per-instructor rating records.

        Records without a quality value are ignored. Returns None when no
        record carries a quality value.
        """
        records = list(records or [])
        qualities = [r["quality"] for r in records if r.get("quality") is not None]
        difficulties = [r["difficulty"] for r in records if r.get("difficulty") is not None]

        if not qualities:
            return None

        return cls(
            quality=sum(qualities) / len(qualities),
            difficulty=sum(difficulties) / len(difficulties) if difficulties else None
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"quality": self.quality, "difficulty": self.difficulty}


@dataclass(frozen=True)
class Course:
    """A course offering that can be placed in a term"""
    course_id: str
    name: str = ""
    credits: int = DEFAULT_CREDITS
    instructors: Tuple[str, ...] = ()
    meeting: Optional[MeetingPattern] = None
    rating: Optional[Rating] = None

    @property
    def subject(self) -> str:
        match = COURSE_ID_PATTERN.match(self.course_id)
        return match.group(1) if match else ""

    @property
    def number(self) -> Optional[int]:
        match = COURSE_ID_PATTERN.match(self.course_id)
        return int(match.group(2)) if match else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "course_id": self.course_id,
            "name": self.name,
            "credits": self.credits,
            "instructors": list(self.instructors),
            "meeting": self.meeting.to_dict() if self.meeting else None,
            "rating": self.rating.to_dict() if self.rating else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Course":
        meeting = data.get("meeting")
        rating = data.get("rating")
        return cls(
            course_id=data["course_id"],
            name=data.get("name", ""),
            credits=data.get("credits", DEFAULT_CREDITS),
            instructors=tuple(data.get("instructors") or ()),
            meeting=MeetingPattern.from_dict(meeting) if meeting else None,
            rating=Rating(rating["quality"], rating.get("difficulty")) if rating else None,
        )


@dataclass(frozen=True)
class PrerequisiteExpression:
    """Boolean requirement over course ids: none, single, all-of or any-of"""
    type: PrerequisiteType = PrerequisiteType.NONE
    course_ids: Tuple[str, ...] = ()

    @classmethod
    def none(cls) -> "PrerequisiteExpression":
        return cls()

    @classmethod
    def single(cls, course_id: str) -> "PrerequisiteExpression":
        return cls(PrerequisiteType.SINGLE, (course_id,))

    @classmethod
    def all_of(cls, course_ids: Iterable[str]) -> "PrerequisiteExpression":
        return cls(PrerequisiteType.ALL, tuple(course_ids))

    @classmethod
    def any_of(cls, course_ids: Iterable[str]) -> "PrerequisiteExpression":
        return cls(PrerequisiteType.ANY, tuple(course_ids))

    def references(self, course_id: str) -> bool:
        return course_id in self.course_ids

    def to_dict(self) -> Dict[str, Any]:
        return {
            "prerequisiteType": self.type.value,
            "prerequisiteCourses": list(self.course_ids),
        }

    @classmethod
    def from_record(cls, record: Optional[Dict[str, Any]]) -> "PrerequisiteExpression":
        """
        Build an expression from a stored prerequisite record.

        Accepts {"prerequisiteType": "none|single|and|or",
        "prerequisiteCourses": [...]}; a record flagged
        hasPrerequisites=False, or a missing record, is NONE.
        """
        if not record or record.get("hasPrerequisites") is False:
            return cls.none()

        courses = tuple(record.get("prerequisiteCourses") or ())
        raw_type = (record.get("prerequisiteType") or "and").lower()

        if raw_type == "none" or not courses:
            return cls.none()
        if raw_type == "or":
            return cls.any_of(courses)
        if raw_type == "single" and len(courses) == 1:
            return cls.single(courses[0])
        return cls.all_of(courses)


@dataclass(frozen=True)
class RequirementCourse:
    """A course listed by a requirement category"""
    course_id: str
    credits: int = DEFAULT_CREDITS
    required: bool = False


@dataclass(frozen=True)
class RequirementCategory:
    """
    A degree requirement bucket.

    Qualifying courses are the explicit `courses` list, plus any course
    matching the optional subject / minimum-number predicate, plus every
    course when `any_course` marks the category as a catch-all.
    """
    name: str
    required_credits: int
    courses: Tuple[RequirementCourse, ...] = ()
    min_courses: Optional[int] = None
    subject: Optional[str] = None
    min_number: Optional[int] = None
    any_course: bool = False

    @property
    def has_predicate(self) -> bool:
        return self.subject is not None or self.min_number is not None

    def listed(self, course_id: str) -> Optional[RequirementCourse]:
        for entry in self.courses:
            if entry.course_id == course_id:
                return entry
        return None

    def qualifies(self, course_id: str) -> bool:
        if self.any_course or self.listed(course_id):
            return True
        if not self.has_predicate:
            return False

        match = COURSE_ID_PATTERN.match(course_id)
        if not match:
            return False
        if self.subject is not None and match.group(1) != self.subject:
            return False
        if self.min_number is not None and int(match.group(2)) < self.min_number:
            return False
        return True

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RequirementCategory":
        courses = tuple(
            RequirementCourse(
                course_id=c.get("code") or c.get("course_id"),
                credits=c.get("hours") or c.get("credits") or DEFAULT_CREDITS,
                required=bool(c.get("required", False))
            )
            for c in data.get("availableClasses") or data.get("courses") or []
            if c.get("code") or c.get("course_id")
        )
        # Stored records may carry explicit nulls; treat them as absent
        return cls(
            name=data.get("name") or "Unnamed",
            required_credits=data.get("requiredHours") or data.get("required_credits") or 0,
            courses=courses,
            min_courses=data.get("minCourses", data.get("min_courses")),
            subject=data.get("subject"),
            min_number=data.get("minNumber", data.get("min_number")),
            any_course=bool(data.get("anyCourse", data.get("any_course", False))),
        )


@dataclass(frozen=True)
class StudentState:
    """Completed courses (id -> credit hours) and already-planned course ids"""
    completed: Dict[str, int] = field(default_factory=dict)
    planned: FrozenSet[str] = frozenset()

    @property
    def satisfied_ids(self) -> Set[str]:
        return set(self.completed) | set(self.planned)

    @classmethod
    def empty(cls) -> "StudentState":
        return cls()


@dataclass(frozen=True)
class Preferences:
    """Student preferences that steer scoring"""
    avoid_instructors: FrozenSet[str] = frozenset()
    avoid_time_blocks: FrozenSet[TimeBlock] = frozenset()
    workload: WorkloadTier = WorkloadTier.BALANCED
    week_pattern: WeekPattern = WeekPattern.BALANCED_DAYS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "avoid_instructors": sorted(self.avoid_instructors),
            "avoid_time_blocks": sorted(b.value for b in self.avoid_time_blocks),
            "workload": self.workload.value,
            "week_pattern": self.week_pattern.value,
        }


@dataclass(frozen=True)
class Term:
    """One scheduled semester"""
    index: int
    label: str
    courses: Tuple[Course, ...] = ()
    credits: int = 0

    @property
    def course_ids(self) -> List[str]:
        return [c.course_id for c in self.courses]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "label": self.label,
            "courses": [c.to_dict() for c in self.courses],
            "credits": self.credits,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Term":
        return cls(
            index=data["index"],
            label=data["label"],
            courses=tuple(Course.from_dict(c) for c in data.get("courses", [])),
            credits=data.get("credits", 0),
        )


@dataclass(frozen=True)
class PlanAnnotations:
    """Advisory text attached to a plan; never affects assignments"""
    overall: str = ""
    term_notes: Dict[int, str] = field(default_factory=dict)
    course_notes: Dict[str, str] = field(default_factory=dict)
    source: str = ""

    @property
    def is_empty(self) -> bool:
        return not (self.overall or self.term_notes or self.course_notes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overall": self.overall,
            # JSON object keys are strings
            "term_notes": {str(k): v for k, v in self.term_notes.items()},
            "course_notes": dict(self.course_notes),
            "source": self.source,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PlanAnnotations":
        return cls(
            overall=data.get("overall", ""),
            term_notes={int(k): v for k, v in (data.get("term_notes") or {}).items()},
            course_notes=dict(data.get("course_notes") or {}),
            source=data.get("source", ""),
        )


@dataclass(frozen=True)
class Plan:
    """Term-by-term result of one planning run"""
    terms: Tuple[Term, ...] = ()
    total_credits: int = 0
    total_courses: int = 0
    unmet_requirements: Tuple[str, ...] = ()
    annotations: Optional[PlanAnnotations] = None

    @property
    def requirements_met(self) -> bool:
        return not self.unmet_requirements

    @property
    def assigned_ids(self) -> List[str]:
        return [cid for term in self.terms for cid in term.course_ids]

    def with_annotations(self, annotations: PlanAnnotations) -> "Plan":
        return replace(self, annotations=annotations)

    def summary(self) -> Dict[str, Any]:
        return {
            "total_courses": self.total_courses,
            "total_credits": self.total_credits,
            "requirements_met": self.requirements_met,
            "unmet_requirements": list(self.unmet_requirements),
            "by_term": [
                {"label": t.label, "courses": len(t.courses), "credits": t.credits}
                for t in self.terms
            ],
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "terms": [t.to_dict() for t in self.terms],
            "total_credits": self.total_credits,
            "total_courses": self.total_courses,
            "unmet_requirements": list(self.unmet_requirements),
            "annotations": self.annotations.to_dict() if self.annotations else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Plan":
        annotations = data.get("annotations")
        return cls(
            terms=tuple(Term.from_dict(t) for t in data.get("terms", [])),
            total_credits=data.get("total_credits", 0),
            total_courses=data.get("total_courses", 0),
            unmet_requirements=tuple(data.get("unmet_requirements", [])),
            annotations=PlanAnnotations.from_dict(annotations) if annotations else None,
        )
