"""
Planning Service

Orchestrates one planning run:
1. Read the student's history and label the terms
2. Check the caller's plan cache
3. Fetch catalog, prerequisites and requirements
4. Validate catalog records and drop malformed ones
5. Compute requirement priorities
6. Allocate courses to terms
7. Audit the plan and cache it

Advisory annotation runs afterwards and separately, since it is async and
optional.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import List, Dict, Any, Optional, Sequence, Union

from core.config import DEFAULT_YEARS_REMAINING, ANNOTATION_TIMEOUT_SECONDS
from core.models import Course, Plan, Preferences, RequirementCategory, StudentState
from core.parsers import normalize_course_code
from core.semester import SemesterManager
from services.allocator import TermAllocator
from services.annotator import PlanAnnotator, annotate_plan
from services.cache import PlanCache
from services.catalog import PlanningDataSource
from services.prerequisites import PrerequisiteMap
from services.requirements import RequirementTracker
from services.validation import PlanAudit, validate_catalog, audit_plan


@dataclass
class PlanRequest:
    """Inputs for a planning run against stored data"""
    student_id: str
    program: Optional[str] = None
    years_remaining: int = DEFAULT_YEARS_REMAINING
    credits_per_term: Optional[int] = None
    preferences: Preferences = field(default_factory=Preferences)
    planned_course_ids: List[str] = field(default_factory=list)
    subject: Optional[str] = None

    @property
    def target_credits(self) -> int:
        """Requested credits per term, or the workload tier's default"""
        if self.credits_per_term:
            return self.credits_per_term
        return self.preferences.workload.default_credits


@dataclass
class PlanResult:
    """A plan with the facts the caller reports alongside it"""
    plan: Plan
    credits_per_term: int
    audit: Optional[PlanAudit] = None
    rejected: List[Dict[str, str]] = field(default_factory=list)
    constrained: Optional[bool] = None
    cached: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "plan": self.plan.to_dict(),
            "summary": self.plan.summary(),
            "audit": self.audit.to_dict() if self.audit else None,
            "credits_per_term": self.credits_per_term,
            "rejected": list(self.rejected),
            "requirements_constrained": self.constrained,
            "cached": self.cached,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], cached: bool = False) -> "PlanResult":
        audit = data.get("audit")
        return cls(
            plan=Plan.from_dict(data["plan"]),
            credits_per_term=data["credits_per_term"],
            audit=PlanAudit.from_dict(audit) if audit else None,
            rejected=list(data.get("rejected", [])),
            constrained=data.get("requirements_constrained"),
            cached=cached
        )


class PlanningService:
    """Runs planning requests end to end."""

    def __init__(
        self,
        data_source: Optional[PlanningDataSource] = None,
        allocator: Optional[TermAllocator] = None,
        tracker: Optional[RequirementTracker] = None
    ):
        self._data_source = data_source
        self.tracker = tracker or RequirementTracker()
        self.allocator = allocator or TermAllocator(tracker=self.tracker)

    @property
    def data_source(self) -> PlanningDataSource:
        # Created on first use so the pure path never touches Firestore
        if self._data_source is None:
            self._data_source = PlanningDataSource()
        return self._data_source

    def plan_from_inputs(
        self,
        courses: Sequence[Course],
        terms: Union[int, Sequence[str]],
        credits_per_term: int,
        prerequisite_map: Optional[PrerequisiteMap] = None,
        categories: Optional[Sequence[RequirementCategory]] = None,
        student_state: Optional[StudentState] = None,
        preferences: Optional[Preferences] = None
    ) -> PlanResult:
        """
        Plan from in-memory inputs. No I/O.

        Without requirement categories every valid course is needed at
        priority 1.
        """
        state = student_state or StudentState.empty()
        preferences = preferences or Preferences()

        valid, rejected = validate_catalog(courses, prerequisite_map)
        for item in rejected:
            print(f"[PLANNER] Rejected {item['course_id']}: {item['reason']}")

        if categories:
            needed = self.tracker.compute_needed(
                categories,
                state.completed,
                state.planned,
                catalog=valid,
                credits=state.completed
            )
        else:
            needed = self.tracker.unconstrained(c.course_id for c in valid)

        plan = self.allocator.allocate(
            valid,
            terms,
            credits_per_term,
            prerequisite_map=prerequisite_map,
            student_state=state,
            preferences=preferences,
            needed=needed,
            categories=categories
        )

        audit = audit_plan(plan, prerequisite_map, state, credits_per_term)
        if not audit.valid:
            print(f"[PLANNER] Plan audit found {len(audit.errors)} errors: {audit.errors}")

        return PlanResult(
            plan=plan,
            audit=audit,
            credits_per_term=credits_per_term,
            rejected=rejected,
            constrained=bool(categories)
        )

    def build_plan(
        self,
        request: PlanRequest,
        cache: Optional[PlanCache] = None,
        now: Optional[datetime] = None
    ) -> PlanResult:
        """
        Build a plan for a stored student.

        Args:
            request: Planning inputs
            cache: Caller-owned plan cache; None disables caching
            now: Clock for the first planned term

        Returns:
            PlanResult

        Raises:
            CatalogUnavailableError: Catalog could not be read
            PrerequisiteDataError: Prerequisite data could not be read
            ValueError: Invalid years_remaining or credits_per_term
        """
        if request.years_remaining < 1:
            raise ValueError(f"years_remaining must be at least 1, got {request.years_remaining}")
        if request.credits_per_term is not None and request.credits_per_term < 1:
            raise ValueError(f"credits_per_term must be positive, got {request.credits_per_term}")

        credits_per_term = request.target_credits
        planned_ids = {normalize_course_code(cid) for cid in request.planned_course_ids if cid}

        # History and term labels are part of the cache key
        state = self.data_source.fetch_student_state(request.student_id)
        if planned_ids:
            state = replace(state, planned=frozenset(state.planned | (planned_ids - set(state.completed))))

        labels = SemesterManager.build_term_labels(
            SemesterManager.terms_for_years_remaining(request.years_remaining),
            now=now
        )

        cache_key = None
        if cache is not None:
            cache_key = cache.plan_key(
                request.student_id,
                request.program,
                request.preferences,
                credits_per_term,
                labels,
                completed=state.completed,
                planned_course_ids=state.planned,
                subject=request.subject
            )
            cached = cache.get_result(cache_key)
            if cached is not None:
                print(f"[PLANNER] Cache hit for {request.student_id}")
                return PlanResult.from_dict(cached, cached=True)

        # Catalog and prerequisites are required; these raise
        courses = self.data_source.fetch_courses(request.subject)
        prerequisite_map = self.data_source.fetch_prerequisites()

        categories = self.data_source.fetch_requirements(request.program)
        if categories is None:
            print(f"[PLANNER] No requirements for {request.program}, planning unconstrained")

        print(f"[PLANNER] Planning {len(labels)} terms at {credits_per_term} credits for "
              f"{request.student_id} ({len(courses)} courses, {len(state.completed)} completed)")

        result = self.plan_from_inputs(
            courses,
            labels,
            credits_per_term,
            prerequisite_map=prerequisite_map,
            categories=categories,
            student_state=state,
            preferences=request.preferences
        )

        if cache is not None and cache_key:
            cache.set_result(cache_key, result.to_dict())

        return result

    async def annotate(
        self,
        plan: Plan,
        annotator: Optional[PlanAnnotator],
        context: Optional[Dict[str, Any]] = None,
        timeout: float = ANNOTATION_TIMEOUT_SECONDS
    ) -> Plan:
        """Attach advisory annotations; returns the plan unchanged on any failure"""
        return await annotate_plan(plan, annotator, context, timeout)


_planning_service: Optional[PlanningService] = None


def get_planning_service() -> PlanningService:
    """Get singleton instance of PlanningService"""
    global _planning_service
    if _planning_service is None:
        _planning_service = PlanningService()
    return _planning_service
