"""
Tests for services/validation.py - Input validation and plan audit
"""

import json
import pytest

from core.models import Course, Plan, Term, PrerequisiteExpression, StudentState
from services.validation import (
    InvalidCourseError,
    PlanAudit,
    SelfReferentialPrerequisiteError,
    RiskLevel,
    validate_course,
    validate_catalog,
    audit_plan,
)


def _plan(*terms):
    built = tuple(
        Term(index=i, label=f"Term {i + 1}", courses=tuple(courses), credits=sum(c.credits for c in courses))
        for i, courses in enumerate(terms)
    )
    return Plan(
        terms=built,
        total_credits=sum(t.credits for t in built),
        total_courses=sum(len(t.courses) for t in built),
    )


class TestValidateCourse:
    """Tests for single course validation"""

    def test_valid_course(self):
        """Should return the course unchanged"""
        course = Course("CS 1101")
        assert validate_course(course) is course

    def test_zero_credits(self):
        """Should reject non-positive credit hours"""
        with pytest.raises(InvalidCourseError) as exc_info:
            validate_course(Course("CS 1101", credits=0))

        assert exc_info.value.course_id == "CS 1101"
        assert "credit" in exc_info.value.reason

    def test_missing_id(self):
        """Should reject records without a course id"""
        with pytest.raises(InvalidCourseError):
            validate_course(Course(""))

    def test_self_reference(self):
        """Should reject a prerequisite that names the course itself"""
        prereq_map = {"CS 1101": PrerequisiteExpression.any_of(["CS 1100", "CS 1101"])}

        with pytest.raises(SelfReferentialPrerequisiteError) as exc_info:
            validate_course(Course("CS 1101"), prereq_map)

        assert exc_info.value.course_id == "CS 1101"


class TestValidateCatalog:
    """Tests for catalog validation"""

    def test_splits_valid_and_rejected(self):
        """Should keep valid courses in order and report the rest"""
        courses = [
            Course("CS 1101"),
            Course("CS 0000", credits=-3),
            Course("CS 2201"),
            Course("CS 1101", name="duplicate"),
            Course("CS 3251"),
        ]
        prereq_map = {"CS 3251": PrerequisiteExpression.single("CS 3251")}

        valid, rejected = validate_catalog(courses, prereq_map)

        assert [c.course_id for c in valid] == ["CS 1101", "CS 2201"]
        assert [r["course_id"] for r in rejected] == ["CS 0000", "CS 1101", "CS 3251"]
        assert rejected[1]["reason"] == "duplicate course id"

    def test_empty_catalog(self):
        """Should accept an empty catalog"""
        assert validate_catalog([]) == ([], [])


class TestAuditPlan:
    """Tests for plan audits"""

    def test_sound_plan(self):
        """A plan respecting prerequisites should be valid"""
        a, b = Course("CS 1101"), Course("CS 2201")
        plan = _plan([a], [b])
        prereq_map = {"CS 2201": PrerequisiteExpression.single("CS 1101")}

        audit = audit_plan(plan, prereq_map, credits_per_term=3)

        assert audit.valid
        assert audit.errors == []

    def test_same_term_prerequisite_is_error(self):
        """A prerequisite in the same term should not count"""
        plan = _plan([Course("CS 1101"), Course("CS 2201")])
        prereq_map = {"CS 2201": PrerequisiteExpression.single("CS 1101")}

        audit = audit_plan(plan, prereq_map)

        assert not audit.valid
        assert "missing prerequisites: CS 1101" in audit.errors[0]

    def test_duplicate_assignment(self):
        """A course in two terms should be an error"""
        plan = _plan([Course("CS 1101")], [Course("CS 1101")])

        audit = audit_plan(plan, {})

        assert not audit.valid
        assert "already assigned" in audit.errors[0]

    def test_completed_course_in_plan(self):
        """A completed course in the plan should be an error"""
        plan = _plan([Course("CS 1101")])
        state = StudentState(completed={"CS 1101": 3})

        audit = audit_plan(plan, {}, state)

        assert not audit.valid
        assert "already completed" in audit.errors[0]

    def test_soft_cap_exceeded(self):
        """More than target + 1 credits should be an error"""
        plan = _plan([Course("CS 1101"), Course("CS 1102")])

        audit = audit_plan(plan, {}, credits_per_term=4)

        assert not audit.valid
        assert "soft cap" in audit.errors[0]

    def test_credit_flags(self):
        """Should flag overload, heavy, underload and empty terms"""
        overload = [Course(f"CS {n}") for n in range(1, 8)]   # 21 credits
        heavy = [Course(f"MATH {n}") for n in range(1, 7)]    # 18 credits
        light = [Course("HIST 1010")]                        # 3 credits
        full = [Course(f"ART {n}") for n in range(1, 5)]      # 12 credits
        plan = _plan(overload, heavy, light, full, [])

        audit = audit_plan(plan, {})
        flags = {(f.term_label, f.type): f.severity for f in audit.risk_flags}

        assert flags[("Term 1", "credit_overload")] == RiskLevel.CRITICAL
        assert flags[("Term 2", "heavy_workload")] == RiskLevel.MEDIUM
        assert flags[("Term 3", "underload")] == RiskLevel.MEDIUM
        assert flags[("Term 5", "empty_term")] == RiskLevel.LOW
        assert not any(label == "Term 4" for label, _ in flags)
        assert audit.valid

    def test_to_dict(self):
        """Should serialize severities as strings"""
        audit = audit_plan(_plan([]), {})
        data = audit.to_dict()

        assert data["valid"] is True
        assert data["risk_flags"][0]["severity"] == "low"

    def test_from_dict_restores_audit(self):
        """Should rebuild an equal audit from its JSON form"""
        prereqs = {"CS 2201": PrerequisiteExpression.single("CS 1101")}
        audit = audit_plan(_plan([Course("CS 2201")], []), prereqs)

        restored = PlanAudit.from_dict(json.loads(json.dumps(audit.to_dict())))

        assert restored == audit
        assert restored.valid is False
        assert restored.risk_flags[0].severity == RiskLevel.MEDIUM
