from .config import get_firestore_client, initialize_firebase, FIREBASE_CONFIG
from .semester import SemesterManager, build_plan_terms
from .parsers import (
    normalize_course_code,
    normalize_instructor_name,
    parse_meeting_pattern,
    course_from_record
)
from .models import (
    Course,
    MeetingPattern,
    Rating,
    PrerequisiteType,
    PrerequisiteExpression,
    RequirementCourse,
    RequirementCategory,
    StudentState,
    Preferences,
    WorkloadTier,
    WeekPattern,
    TimeBlock,
    Term,
    Plan,
    PlanAnnotations
)
