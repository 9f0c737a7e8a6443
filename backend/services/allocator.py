"""
Term Allocator Service

Greedy multi-term scheduler. For each term in order:

1. Satisfied set = completed courses plus courses placed in earlier terms
   (courses in the same term do not satisfy one another's prerequisites)
2. Eligible = not yet assigned, not completed, prerequisites met
3. Score eligible candidates and stable-sort by score, highest first
4. Add courses while the term stays within target + 1 credits, stopping
   once the term reaches the target
5. Record the term and mark its courses assigned

There is no backtracking. Terms with no eligible candidates are emitted
empty so the plan always has the requested number of terms.
"""

from typing import List, Dict, Optional, Sequence, Union, Iterable

from core.models import Course, Preferences, StudentState, Term, Plan, RequirementCategory
from services.prerequisites import PrerequisiteChecker, PrerequisiteMap
from services.requirements import RequirementTracker, NeededCourses
from services.scoring import CourseScorer, get_course_scorer
from services.validation import InvalidCourseError, validate_course


class TermAllocator:
    """Assigns candidate courses to an ordered sequence of terms"""

    def __init__(
        self,
        scorer: Optional[CourseScorer] = None,
        tracker: Optional[RequirementTracker] = None
    ):
        self.scorer = scorer or get_course_scorer()
        self.tracker = tracker or RequirementTracker()

    @staticmethod
    def _term_labels(terms: Union[int, Sequence[str]]) -> List[str]:
        if isinstance(terms, int):
            if terms < 0:
                raise ValueError(f"term count must be non-negative, got {terms}")
            return [f"Term {i + 1}" for i in range(terms)]
        return list(terms)

    def _score_candidates(
        self,
        candidates: Iterable[Course],
        preferences: Preferences,
        needed: NeededCourses,
        prerequisite_map: Optional[PrerequisiteMap]
    ) -> Dict[str, int]:
        """Score every well-formed candidate once; malformed ones are logged and left out"""
        scores: Dict[str, int] = {}
        for course in candidates:
            try:
                validate_course(course, prerequisite_map)
            except InvalidCourseError as e:
                print(f"[ALLOCATOR] Skipping {e.course_id}: {e.reason}")
                continue

            scores[course.course_id] = self.scorer.score(
                course,
                preferences,
                priority=needed.priority(course.course_id),
                needed=needed.is_needed(course.course_id)
            )
        return scores

    def allocate(
        self,
        candidates: Sequence[Course],
        terms: Union[int, Sequence[str]],
        credits_per_term: int,
        prerequisite_map: Optional[PrerequisiteMap] = None,
        student_state: Optional[StudentState] = None,
        preferences: Optional[Preferences] = None,
        needed: Optional[NeededCourses] = None,
        categories: Optional[Sequence[RequirementCategory]] = None
    ) -> Plan:
        """
        Build a term-by-term plan.

        Args:
            candidates: Candidate courses in catalog order (ties keep this order)
            terms: Term labels, or a number of terms to label generically
            credits_per_term: Credit target per term
            prerequisite_map: course id -> PrerequisiteExpression
            student_state: Completed and already-planned courses
            preferences: Scoring preferences
            needed: Requirement priorities; computed from `categories` when omitted
            categories: Requirement categories, used for priorities and the
                unmet requirement list

        Returns:
            Plan with exactly one Term per requested term
        """
        labels = self._term_labels(terms)
        state = student_state or StudentState.empty()
        preferences = preferences or Preferences()
        candidates = list(candidates)

        if needed is None:
            if categories:
                needed = self.tracker.compute_needed(
                    categories,
                    state.completed,
                    state.planned,
                    catalog=candidates,
                    credits=state.completed
                )
            else:
                needed = self.tracker.unconstrained(c.course_id for c in candidates)

        scores = self._score_candidates(candidates, preferences, needed, prerequisite_map)
        satisfied = set(state.satisfied_ids)
        completed = set(state.completed)
        # Courses already on the student's schedule count as assigned
        assigned = set(state.planned)
        planned_terms: List[Term] = []

        for index, label in enumerate(labels):
            eligible = [
                course for course in candidates
                if course.course_id in scores
                and course.course_id not in assigned
                and course.course_id not in completed
                and PrerequisiteChecker.is_satisfied(
                    PrerequisiteChecker.lookup(prerequisite_map, course.course_id),
                    satisfied
                )
            ]

            # sorted() is stable, so equal scores keep catalog order
            ranked = sorted(eligible, key=lambda c: scores[c.course_id], reverse=True)

            chosen: List[Course] = []
            term_credits = 0
            for course in ranked:
                if term_credits >= credits_per_term:
                    break
                if course.course_id in assigned:
                    continue
                if term_credits + course.credits > credits_per_term + 1:
                    continue
                chosen.append(course)
                assigned.add(course.course_id)
                term_credits += course.credits

            planned_terms.append(Term(
                index=index,
                label=label,
                courses=tuple(chosen),
                credits=term_credits
            ))
            print(f"[ALLOCATOR] {label}: {len(chosen)} courses, {term_credits} credits "
                  f"({len(eligible)} eligible)")

            satisfied |= {c.course_id for c in chosen}

        unmet = []
        if categories:
            unmet = self.tracker.unmet_after(
                categories,
                satisfied,
                catalog=candidates,
                credits=state.completed
            )

        return Plan(
            terms=tuple(planned_terms),
            total_credits=sum(t.credits for t in planned_terms),
            total_courses=sum(len(t.courses) for t in planned_terms),
            unmet_requirements=tuple(unmet)
        )


_term_allocator: Optional[TermAllocator] = None


def get_term_allocator() -> TermAllocator:
    """Get singleton instance of TermAllocator"""
    global _term_allocator
    if _term_allocator is None:
        _term_allocator = TermAllocator()
    return _term_allocator
