from .prerequisites import PrerequisiteChecker, get_prerequisite_checker
from .requirements import RequirementTracker, NeededCourses, CategoryProgress
from .scoring import CourseScorer, ScoreBreakdown, get_course_scorer
from .validation import InvalidCourseError, SelfReferentialPrerequisiteError, validate_catalog, audit_plan
from .allocator import TermAllocator, get_term_allocator
from .annotator import PlanAnnotator, NullAnnotator, OpenAIPlanAnnotator, annotate_plan
from .cache import PlanCache
from .catalog import PlanningDataSource, CatalogUnavailableError, PrerequisiteDataError
from .planner import PlanningService, PlanRequest, PlanResult, get_planning_service
