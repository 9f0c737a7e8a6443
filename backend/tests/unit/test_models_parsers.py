"""
Tests for core/models.py and core/parsers.py
"""

import json
import pytest
from datetime import time

from core.models import (
    Course,
    MeetingPattern,
    Rating,
    PrerequisiteExpression,
    PrerequisiteType,
    RequirementCategory,
    TimeBlock,
    WorkloadTier,
    Term,
    Plan,
    PlanAnnotations,
)
from core.parsers import (
    normalize_course_code,
    normalize_instructor_name,
    parse_meeting_days,
    parse_time_of_day,
    parse_meeting_pattern,
    parse_schedule,
    parse_instructors,
    course_from_record,
)


class TestNormalization:
    """Tests for code and name normalization"""

    @pytest.mark.parametrize("raw,expected", [
        ("cs1101", "CS 1101"),
        ("CS  1101", "CS 1101"),
        ("CS_1101", "CS 1101"),
        ("buad 203", "BUAD 203"),
        ("MATH 1300W", "MATH 1300W"),
    ])
    def test_normalize_course_code(self, raw, expected):
        """Should produce 'SUBJ NUMBER'"""
        assert normalize_course_code(raw) == expected

    def test_normalize_course_code_empty(self):
        """Should return empty string for empty input"""
        assert normalize_course_code("") == ""

    def test_normalize_instructor_last_first(self):
        """Should reorder 'Last, First' and lowercase"""
        assert normalize_instructor_name("Smith, John") == "john smith"

    def test_normalize_instructor_collapses_whitespace(self):
        """Should collapse whitespace"""
        assert normalize_instructor_name("  John   SMITH ") == "john smith"


class TestMeetingParsing:
    """Tests for meeting day and time parsing"""

    @pytest.mark.parametrize("raw,expected", [
        ("MWF", {"M", "W", "F"}),
        ("TR", {"T", "R"}),
        ("TuTh", {"T", "R"}),
        ("Thursday", {"R"}),
        (["Monday", "Wednesday"], {"M", "W"}),
        ("Mon, Wed", {"M", "W"}),
    ])
    def test_parse_meeting_days(self, raw, expected):
        """Should map day spellings to weekday codes"""
        assert parse_meeting_days(raw) == frozenset(expected)

    def test_parse_meeting_days_empty(self):
        """Should return empty set for None"""
        assert parse_meeting_days(None) == frozenset()

    def test_parse_time_of_day_pm(self):
        """Should convert pm times to 24-hour"""
        assert parse_time_of_day("2:30pm") == time(14, 30)

    def test_parse_time_of_day_noon(self):
        """Should keep 12pm as noon"""
        assert parse_time_of_day("12:00pm") == time(12, 0)

    def test_parse_time_of_day_nan(self):
        """Should reject 'nan' values from spreadsheets"""
        assert parse_time_of_day("nan") is None

    def test_parse_meeting_pattern_morning(self):
        """Should parse a morning meeting string"""
        meeting = parse_meeting_pattern("MWF 10:00-10:50am")

        assert meeting.days == frozenset({"M", "W", "F"})
        assert meeting.start == time(10, 0)
        assert meeting.end == time(10, 50)

    def test_parse_meeting_pattern_crosses_noon(self):
        """Should keep a start before noon when only the end is pm"""
        meeting = parse_meeting_pattern("TR 11:00-12:20pm")

        assert meeting.start == time(11, 0)
        assert meeting.end == time(12, 20)

    def test_parse_meeting_pattern_afternoon(self):
        """Should apply pm to both ends"""
        meeting = parse_meeting_pattern("TR 2:00-3:15pm")

        assert meeting.start == time(14, 0)
        assert meeting.end == time(15, 15)

    def test_parse_meeting_pattern_tba(self):
        """Should return None for TBA"""
        assert parse_meeting_pattern("TBA") is None

    def test_parse_schedule_dict(self):
        """Should parse the dict schedule shape"""
        meeting = parse_schedule({"days": ["Tuesday", "Thursday"], "startTime": "13:10", "endTime": "14:25"})

        assert meeting.days_code == "TR"
        assert meeting.start == time(13, 10)

    def test_parse_instructors_drops_tba(self):
        """Should split on semicolons and drop TBA"""
        assert parse_instructors("Smith, John; TBA; Doe, Jane") == ["Smith, John", "Doe, Jane"]


class TestCourseFromRecord:
    """Tests for raw record conversion"""

    def test_catalog_shape(self, sample_catalog_record):
        """Should read code, credits and the first section"""
        course = course_from_record(sample_catalog_record)

        assert course.course_id == "CSCI 141"
        assert course.name == "Computational Problem Solving"
        assert course.credits == 4
        assert course.instructors == ("Smith, John",)
        assert course.meeting.days_code == "MWF"
        assert course.rating is None

    def test_planner_shape(self, sample_planner_record):
        """Should read hours, professors, schedule and averaged ratings"""
        course = course_from_record(sample_planner_record)

        assert course.course_id == "CS 2201"
        assert course.credits == 3
        assert course.instructors == ("Doe, Jane", "Roe, Richard")
        assert course.meeting.start == time(9, 35)
        assert course.rating.quality == pytest.approx(3.5)
        assert course.rating.difficulty == pytest.approx(3.5)

    def test_invalid_credits_default(self):
        """Should fall back to 3 credits when credits cannot be read"""
        course = course_from_record({"code": "CS 1101", "hours": "variable"})
        assert course.credits == 3

    def test_non_positive_credits_kept(self):
        """Should keep zero credits so validation can reject the record"""
        course = course_from_record({"code": "CS 1101", "hours": 0})
        assert course.credits == 0


class TestModels:
    """Tests for model behavior"""

    def test_course_subject_and_number(self):
        """Should split the course id"""
        course = Course("CS 3251")
        assert course.subject == "CS"
        assert course.number == 3251

    def test_rating_average_ignores_missing_quality(self):
        """Should ignore records without quality"""
        rating = Rating.average([{"quality": 4.0}, {"difficulty": 5.0}, {"quality": 2.0, "difficulty": 3.0}])

        assert rating.quality == 3.0
        assert rating.difficulty == 4.0

    def test_rating_average_empty(self):
        """Should return None without records"""
        assert Rating.average([]) is None

    @pytest.mark.parametrize("record,expected_type", [
        (None, PrerequisiteType.NONE),
        ({"hasPrerequisites": False, "prerequisiteCourses": ["CS 1101"]}, PrerequisiteType.NONE),
        ({"prerequisiteType": "or", "prerequisiteCourses": ["A", "B"]}, PrerequisiteType.ANY),
        ({"prerequisiteType": "single", "prerequisiteCourses": ["A"]}, PrerequisiteType.SINGLE),
        ({"prerequisiteCourses": ["A", "B"]}, PrerequisiteType.ALL),
        ({"prerequisiteType": "and", "prerequisiteCourses": []}, PrerequisiteType.NONE),
    ])
    def test_prerequisite_from_record(self, record, expected_type):
        """Should map stored records to expression types"""
        assert PrerequisiteExpression.from_record(record).type == expected_type

    def test_time_block_half_open(self):
        """Should include the start hour and exclude the end hour"""
        assert TimeBlock.EARLY_MORNING.contains(time(8, 0))
        assert TimeBlock.EARLY_MORNING.contains(time(9, 59))
        assert not TimeBlock.EARLY_MORNING.contains(time(10, 0))

    def test_workload_default_credits(self):
        """Should map workload tiers to credit targets"""
        assert WorkloadTier.CHALLENGING.default_credits == 17
        assert WorkloadTier.BALANCED.default_credits == 15
        assert WorkloadTier.EASIER.default_credits == 13

    def test_category_predicate(self):
        """Should match subject and minimum number"""
        category = RequirementCategory(name="Upper CS", required_credits=6, subject="CS", min_number=3000)

        assert category.qualifies("CS 3251")
        assert not category.qualifies("CS 2201")
        assert not category.qualifies("MATH 3000")

    def test_category_from_dict(self):
        """Should read the stored category shape"""
        category = RequirementCategory.from_dict({
            "name": "Core",
            "requiredHours": 6,
            "availableClasses": [{"code": "CS 1101", "hours": 3, "required": True}, {"name": "no code"}],
        })

        assert category.required_credits == 6
        assert len(category.courses) == 1
        assert category.courses[0].required is True

    def test_category_from_dict_null_hours(self):
        """Explicit nulls should fall back to the defaults"""
        category = RequirementCategory.from_dict({
            "name": "Core",
            "requiredHours": None,
            "availableClasses": [{"code": "CS 1101", "hours": None}],
        })

        assert category.required_credits == 0
        assert category.courses[0].credits == 3

    def test_category_from_dict_null_class_list(self):
        """A null class list should read as no listed courses"""
        category = RequirementCategory.from_dict({"name": None, "requiredHours": 6, "availableClasses": None})

        assert category.name == "Unnamed"
        assert category.courses == ()


class TestPlanSerialization:
    """Tests for Plan to_dict / from_dict"""

    def test_plan_survives_json(self):
        """Should rebuild an equal plan from its JSON form"""
        course = Course(
            "CS 1101",
            name="Programming",
            credits=3,
            instructors=("Smith, John",),
            meeting=MeetingPattern(frozenset("MWF"), time(10, 0), time(10, 50)),
            rating=Rating(4.0, 2.5),
        )
        plan = Plan(
            terms=(Term(0, "Fall 2025", (course,), 3), Term(1, "Spring 2026", (), 0)),
            total_credits=3,
            total_courses=1,
            unmet_requirements=("Core",),
            annotations=PlanAnnotations(overall="Solid", term_notes={1: "Light"}, source="test"),
        )

        restored = Plan.from_dict(json.loads(json.dumps(plan.to_dict())))

        assert restored == plan
        assert restored.terms[1].credits == 0
        assert restored.annotations.term_notes == {1: "Light"}

    def test_requirements_met(self):
        """Should report requirements met only with no unmet categories"""
        assert Plan().requirements_met
        assert not Plan(unmet_requirements=("Core",)).requirements_met
