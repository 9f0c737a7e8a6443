"""
Plan Validation Service

Input checks for course records at the planning boundary, and an audit of
generated plans with risk assessment.

Audit checks:
- Prerequisite soundness against courses satisfied before each term
- No course assigned twice, or assigned after being completed
- Term credits within the soft cap (target + 1)
- Credit load flags (below 12 underload, above 15 heavy, above 18 overload)
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import List, Dict, Any, Optional, Tuple, Iterable

from core.models import Course, Plan, StudentState
from services.prerequisites import PrerequisiteChecker, PrerequisiteMap


class InvalidCourseError(Exception):
    """Raised when a course record cannot be planned."""
    def __init__(self, course_id: str, reason: str):
        super().__init__(f"{course_id}: {reason}")
        self.course_id = course_id
        self.reason = reason


class SelfReferentialPrerequisiteError(InvalidCourseError):
    """Raised when a course lists itself as a prerequisite."""
    def __init__(self, course_id: str):
        super().__init__(course_id, "prerequisite expression references the course itself")


class RiskLevel(Enum):
    """Risk severity levels"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class RiskFlag:
    """A risk flag raised by a plan audit"""
    type: str  # underload, heavy_workload, credit_overload, empty_term
    severity: RiskLevel
    message: str
    term_label: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["severity"] = self.severity.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RiskFlag":
        return cls(
            type=data["type"],
            severity=RiskLevel(data["severity"]),
            message=data.get("message", ""),
            term_label=data.get("term_label"),
            details=dict(data.get("details") or {})
        )


@dataclass
class PlanAudit:
    """Result of auditing a generated plan"""
    valid: bool
    errors: List[str] = field(default_factory=list)
    risk_flags: List[RiskFlag] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "errors": list(self.errors),
            "risk_flags": [flag.to_dict() for flag in self.risk_flags],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PlanAudit":
        return cls(
            valid=bool(data.get("valid", True)),
            errors=list(data.get("errors", [])),
            risk_flags=[RiskFlag.from_dict(f) for f in data.get("risk_flags", [])]
        )


# Credit load thresholds per term
MIN_CREDITS = 12
CREDITS_WARNING_THRESHOLD = 15
MAX_CREDITS = 18


def validate_course(course: Course, prerequisite_map: Optional[PrerequisiteMap] = None) -> Course:
    """
    Check one course record.

    Raises:
        InvalidCourseError: Missing id or non-positive credit hours
        SelfReferentialPrerequisiteError: Prerequisite references the course
    """
    if not course.course_id:
        raise InvalidCourseError("<unknown>", "missing course id")
    if course.credits <= 0:
        raise InvalidCourseError(course.course_id, f"non-positive credit hours ({course.credits})")

    expr = PrerequisiteChecker.lookup(prerequisite_map, course.course_id)
    if expr.references(course.course_id):
        raise SelfReferentialPrerequisiteError(course.course_id)

    return course


def validate_catalog(
    courses: Iterable[Course],
    prerequisite_map: Optional[PrerequisiteMap] = None
) -> Tuple[List[Course], List[Dict[str, str]]]:
    """
    Split a catalog into plannable courses and rejected records.

    Duplicate ids keep their first occurrence.

    Returns:
        (valid courses in input order, [{"course_id": ..., "reason": ...}])
    """
    valid: List[Course] = []
    rejected: List[Dict[str, str]] = []
    seen = set()

    for course in courses:
        try:
            validate_course(course, prerequisite_map)
        except InvalidCourseError as e:
            rejected.append({"course_id": e.course_id, "reason": e.reason})
            continue

        if course.course_id in seen:
            rejected.append({"course_id": course.course_id, "reason": "duplicate course id"})
            continue

        seen.add(course.course_id)
        valid.append(course)

    return valid, rejected


def _check_credit_load(credits: int, term_label: str) -> Optional[RiskFlag]:
    if credits > MAX_CREDITS:
        return RiskFlag(
            type="credit_overload",
            severity=RiskLevel.CRITICAL,
            message=f"{term_label}: credit load ({credits}) exceeds maximum ({MAX_CREDITS})",
            term_label=term_label,
            details={"total_credits": credits, "max_allowed": MAX_CREDITS}
        )
    if credits > CREDITS_WARNING_THRESHOLD:
        return RiskFlag(
            type="heavy_workload",
            severity=RiskLevel.MEDIUM,
            message=f"{term_label}: heavy course load ({credits} credits)",
            term_label=term_label,
            details={"total_credits": credits}
        )
    if 0 < credits < MIN_CREDITS:
        return RiskFlag(
            type="underload",
            severity=RiskLevel.MEDIUM,
            message=f"{term_label}: below full-time status ({credits} credits)",
            term_label=term_label,
            details={"total_credits": credits, "minimum": MIN_CREDITS}
        )
    return None


def audit_plan(
    plan: Plan,
    prerequisite_map: Optional[PrerequisiteMap],
    student_state: Optional[StudentState] = None,
    credits_per_term: Optional[int] = None
) -> PlanAudit:
    """
    Audit a generated plan.

    Args:
        plan: Plan to audit
        prerequisite_map: Prerequisite expressions used for the plan
        student_state: Completed and planned courses before the plan
        credits_per_term: Target used for the plan; enables the soft cap check

    Returns:
        PlanAudit; `valid` is False when any error was found
    """
    state = student_state or StudentState.empty()
    satisfied = state.satisfied_ids
    completed = set(state.completed)
    assigned: Dict[str, str] = {}

    errors: List[str] = []
    risk_flags: List[RiskFlag] = []

    for term in plan.terms:
        for course in term.courses:
            cid = course.course_id

            if cid in completed:
                errors.append(f"{term.label}: {cid} is already completed")
            if cid in assigned:
                errors.append(f"{term.label}: {cid} is already assigned to {assigned[cid]}")

            expr = PrerequisiteChecker.lookup(prerequisite_map, cid)
            missing = PrerequisiteChecker.missing(expr, satisfied)
            if missing:
                errors.append(f"{term.label}: {cid} is missing prerequisites: {', '.join(missing)}")

            assigned.setdefault(cid, term.label)

        term_credits = sum(c.credits for c in term.courses)
        if term_credits != term.credits:
            errors.append(f"{term.label}: credit total {term.credits} does not match courses ({term_credits})")

        if credits_per_term is not None and term_credits > credits_per_term + 1:
            errors.append(
                f"{term.label}: {term_credits} credits exceeds soft cap of {credits_per_term + 1}"
            )

        if not term.courses:
            risk_flags.append(RiskFlag(
                type="empty_term",
                severity=RiskLevel.LOW,
                message=f"{term.label}: no eligible courses scheduled",
                term_label=term.label
            ))
        else:
            credit_flag = _check_credit_load(term_credits, term.label)
            if credit_flag:
                risk_flags.append(credit_flag)

        # Courses in this term satisfy prerequisites from the next term on
        satisfied |= set(term.course_ids)

    return PlanAudit(valid=not errors, errors=errors, risk_flags=risk_flags)
