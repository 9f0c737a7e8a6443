"""
Unit test fixtures
"""

import pytest
import sys
from datetime import time
from pathlib import Path

# Add backend to path for imports
backend_dir = Path(__file__).parent.parent.parent
sys.path.insert(0, str(backend_dir))

from core.models import (  # noqa: E402
    Course,
    MeetingPattern,
    Rating,
    PrerequisiteExpression,
    RequirementCourse,
    RequirementCategory,
    StudentState,
    Preferences,
)


def make_course(
    course_id: str,
    credits: int = 3,
    instructors=("Smith, John",),
    days: str = "MWF",
    start: time = time(11, 0),
    end: time = time(11, 50),
    quality=None,
    difficulty=None,
    name: str = ""
) -> Course:
    """Build a Course with a meeting pattern and optional rating"""
    return Course(
        course_id=course_id,
        name=name or course_id,
        credits=credits,
        instructors=tuple(instructors),
        meeting=MeetingPattern(frozenset(days), start, end) if days else None,
        rating=Rating(quality, difficulty) if quality is not None else None,
    )


@pytest.fixture
def course_factory():
    """Factory for Course objects"""
    return make_course


@pytest.fixture
def default_preferences():
    """Balanced preferences with nothing avoided"""
    return Preferences()


@pytest.fixture
def empty_state():
    """Student with no history"""
    return StudentState.empty()


@pytest.fixture
def sample_catalog_record():
    """Catalog document in the stored shape"""
    return {
        "course_code": "CSCI 141",
        "subject_code": "CSCI",
        "course_number": "141",
        "title": "Computational Problem Solving",
        "credits": 4,
        "sections": [
            {
                "crn": "12345",
                "section_number": "01",
                "instructor": "Smith, John",
                "meeting_days": "MWF",
                "meeting_time": "10:00-10:50am",
            },
            {
                "crn": "12346",
                "section_number": "02",
                "instructor": "Jones, Jane",
                "meeting_days": "TR",
                "meeting_time": "11:00-12:20pm",
            },
        ],
    }


@pytest.fixture
def sample_planner_record():
    """Course record in the planner shape with ratings per instructor"""
    return {
        "code": "cs2201",
        "name": "Data Structures",
        "hours": 3,
        "professors": ["Doe, Jane", "Roe, Richard"],
        "schedule": "TR 9:35-10:50am",
        "rmpData": {
            "Doe, Jane": {"quality": 4.0, "difficulty": 3.0},
            "Roe, Richard": {"quality": 3.0, "difficulty": 4.0},
        },
    }


@pytest.fixture
def cs_catalog():
    """Small catalog with a prerequisite chain"""
    return [
        make_course("CS 1101", quality=4.0, difficulty=2.5),
        make_course("CS 2201", quality=3.5, difficulty=3.0),
        make_course("CS 3251", quality=3.0, difficulty=3.5),
        make_course("MATH 1300", credits=4, days="TR", start=time(9, 35), end=time(10, 50)),
        make_course("HIST 1010", days="TR", start=time(13, 10), end=time(14, 25)),
    ]


@pytest.fixture
def cs_prerequisites():
    """Prerequisite map for cs_catalog"""
    return {
        "CS 2201": PrerequisiteExpression.single("CS 1101"),
        "CS 3251": PrerequisiteExpression.all_of(["CS 2201", "MATH 1300"]),
    }


@pytest.fixture
def cs_categories():
    """Requirement categories for cs_catalog"""
    return [
        RequirementCategory(
            name="Computer Science Core",
            required_credits=9,
            courses=(
                RequirementCourse("CS 1101", 3, required=True),
                RequirementCourse("CS 2201", 3, required=True),
                RequirementCourse("CS 3251", 3, required=True),
            ),
        ),
        RequirementCategory(
            name="Mathematics",
            required_credits=4,
            courses=(RequirementCourse("MATH 1300", 4),),
            min_courses=1,
        ),
    ]
