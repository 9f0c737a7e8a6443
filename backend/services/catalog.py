"""
Planning Data Source

Reads everything a planning run needs from Firestore:
- courses: catalog documents, one per course
- degree_requirements: one document per program with a `categories` list
- enrollments: per-student course history (completed / enrolled / planned)
- prerequisites: one document per course with its prerequisite expression

Catalog and prerequisite failures are fatal for a run and raise; a failed
history lookup degrades to an empty history.
"""

from dataclasses import replace
from typing import List, Dict, Optional

from core.config import get_firestore_client
from core.models import Course, RequirementCategory, StudentState, DEFAULT_CREDITS, PrerequisiteExpression
from core.parsers import course_from_record, normalize_course_code
from services.prerequisites import PrerequisiteChecker


class CatalogUnavailableError(Exception):
    """Raised when the course catalog cannot be read."""
    def __init__(self, message: str, subject: Optional[str] = None):
        super().__init__(message)
        self.subject = subject


class PrerequisiteDataError(Exception):
    """Raised when prerequisite data cannot be read."""
    pass


class PlanningDataSource:
    """Firestore reads for the planner."""

    COURSES_COLLECTION = "courses"
    REQUIREMENTS_COLLECTION = "degree_requirements"
    ENROLLMENTS_COLLECTION = "enrollments"
    PREREQUISITES_COLLECTION = "prerequisites"

    # Enrollment statuses counted as planned rather than completed
    PLANNED_STATUSES = ("enrolled", "planned")

    def __init__(self, db=None):
        self.db = db if db is not None else get_firestore_client()

    def fetch_courses(self, subject: Optional[str] = None) -> List[Course]:
        """
        Fetch catalog courses, optionally for one subject.

        Records without a course code are skipped.

        Raises:
            CatalogUnavailableError: Firestore could not be read
        """
        try:
            query = self.db.collection(self.COURSES_COLLECTION)
            if subject:
                query = query.where("subject_code", "==", subject.upper())
            records = [doc.to_dict() for doc in query.stream()]
        except Exception as e:
            raise CatalogUnavailableError(f"Could not read course catalog: {e}", subject) from e

        courses = []
        for record in records:
            if not record:
                continue
            course = course_from_record(record)
            if not course.course_id:
                print(f"[CATALOG] Skipping record without course code: {record.get('title') or record}")
                continue
            courses.append(course)

        print(f"[CATALOG] Loaded {len(courses)} courses" + (f" for {subject}" if subject else ""))
        return courses

    def fetch_requirements(self, program: Optional[str]) -> Optional[List[RequirementCategory]]:
        """
        Fetch the requirement categories for a program.

        Returns:
            Categories, or None when the program has no requirement document
            (or it cannot be read); callers then plan without requirements
        """
        if not program:
            return None

        try:
            doc = self.db.collection(self.REQUIREMENTS_COLLECTION).document(
                self._sanitize_doc_id(program)
            ).get()
        except Exception as e:
            print(f"[CATALOG] Could not read requirements for {program}: {e}")
            return None

        if not doc.exists:
            print(f"[CATALOG] No requirement data for {program}")
            return None

        data = doc.to_dict() or {}
        categories = []
        for raw in data.get("categories", []):
            category = RequirementCategory.from_dict(raw)
            # Listed codes are normalized the same way as catalog codes
            courses = tuple(
                replace(entry, course_id=normalize_course_code(entry.course_id))
                for entry in category.courses
            )
            categories.append(replace(
                category,
                courses=courses,
                subject=category.subject.upper() if category.subject else None
            ))

        return categories or None

    def fetch_student_state(self, student_id: Optional[str]) -> StudentState:
        """
        Fetch a student's completed and planned courses.

        Returns an empty StudentState when there is no student id or the
        enrollments cannot be read.
        """
        if not student_id:
            return StudentState.empty()

        completed: Dict[str, int] = {}
        planned = set()

        try:
            query = self.db.collection(self.ENROLLMENTS_COLLECTION).where(
                "studentId", "==", student_id
            )

            for doc in query.stream():
                data = doc.to_dict()
                course_code = normalize_course_code(data.get("courseCode", ""))
                if not course_code:
                    continue

                status = data.get("status", "planned")
                if status == "completed":
                    completed[course_code] = int(data.get("credits") or DEFAULT_CREDITS)
                elif status in self.PLANNED_STATUSES:
                    planned.add(course_code)

        except Exception as e:
            print(f"[CATALOG] Warning: could not read history for {student_id}, planning from scratch: {e}")
            return StudentState.empty()

        return StudentState(completed=completed, planned=frozenset(planned - set(completed)))

    def fetch_prerequisites(self) -> Dict[str, PrerequisiteExpression]:
        """
        Fetch the prerequisite map. Courses without a document have none.

        Raises:
            PrerequisiteDataError: Firestore could not be read
        """
        try:
            records = {}
            for doc in self.db.collection(self.PREREQUISITES_COLLECTION).stream():
                data = doc.to_dict() or {}
                records[data.get("courseCode") or doc.id] = data
        except Exception as e:
            raise PrerequisiteDataError(f"Could not read prerequisite data: {e}") from e

        prereq_map = PrerequisiteChecker.parse_prerequisite_map(records)
        print(f"[CATALOG] Loaded prerequisites for {len(prereq_map)} courses")
        return prereq_map

    def _sanitize_doc_id(self, doc_id: str) -> str:
        """Sanitize a string for use as Firestore document ID"""
        return doc_id.strip().replace("/", "-").replace(" ", "_")
