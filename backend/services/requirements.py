"""
Requirement Tracker Service

Works out which courses still count toward unmet degree requirement
categories and how urgently each is needed.

Priority weights:
- 3: the category marks the course as required
- 2: the category enforces a minimum course count
- 1: any other qualifying course
"""

from dataclasses import dataclass, field
from typing import List, Dict, Optional, Set, Iterable, Mapping, Sequence

from core.models import Course, RequirementCategory, DEFAULT_CREDITS


PRIORITY_REQUIRED = 3
PRIORITY_MIN_COUNT = 2
PRIORITY_DEFAULT = 1


@dataclass
class CategoryProgress:
    """Credit progress for one requirement category"""
    required_credits: int
    earned_credits: int
    min_courses: Optional[int] = None
    courses_counted: int = 0

    @property
    def satisfied(self) -> bool:
        return self.earned_credits >= self.required_credits


@dataclass
class NeededCourses:
    """Courses still needed for unmet categories, with their priorities"""
    needed_ids: Set[str] = field(default_factory=set)
    priorities: Dict[str, int] = field(default_factory=dict)
    progress: Dict[str, CategoryProgress] = field(default_factory=dict)

    def priority(self, course_id: str) -> int:
        return self.priorities.get(course_id, 0)

    def is_needed(self, course_id: str) -> bool:
        return course_id in self.needed_ids

    @property
    def unmet_categories(self) -> List[str]:
        return [name for name, p in self.progress.items() if not p.satisfied]


class RequirementTracker:
    """Computes outstanding requirement priorities from a category list"""

    @staticmethod
    def qualifying_ids(
        category: RequirementCategory,
        catalog_ids: Sequence[str] = ()
    ) -> List[str]:
        """
        Course ids that count toward a category.

        Listed courses come first in listing order; predicate and catch-all
        categories add matching catalog courses in catalog order.
        """
        ids = [entry.course_id for entry in category.courses]
        seen = set(ids)

        if category.any_course or category.has_predicate:
            for cid in catalog_ids:
                if cid not in seen and category.qualifies(cid):
                    ids.append(cid)
                    seen.add(cid)

        return ids

    @staticmethod
    def _credit_hours(
        category: RequirementCategory,
        course_id: str,
        credits: Mapping[str, int],
        catalog_credits: Mapping[str, int]
    ) -> int:
        entry = category.listed(course_id)
        if entry is not None:
            return entry.credits
        if course_id in credits:
            return credits[course_id]
        return catalog_credits.get(course_id, DEFAULT_CREDITS)

    def compute_needed(
        self,
        categories: Optional[Iterable[RequirementCategory]],
        completed_ids: Iterable[str],
        planned_ids: Iterable[str] = (),
        catalog: Optional[Iterable[Course]] = None,
        credits: Optional[Mapping[str, int]] = None
    ) -> NeededCourses:
        """
        Determine the courses still needed for unmet categories.

        Args:
            categories: Requirement categories for the program (None or empty
                means no requirement data)
            completed_ids: Completed course ids
            planned_ids: Already planned course ids; counted as satisfied
            catalog: Courses used to enumerate predicate and catch-all categories
            credits: Credit hours of completed courses, keyed by id

        Returns:
            NeededCourses with needed ids, max priority per id and progress
            per category
        """
        result = NeededCourses()
        if not categories:
            return result

        satisfied = set(completed_ids) | set(planned_ids)
        credits = credits or {}
        catalog = list(catalog or [])
        catalog_ids = [c.course_id for c in catalog]
        catalog_credits = {c.course_id: c.credits for c in catalog}

        for category in categories:
            qualifying = self.qualifying_ids(category, catalog_ids)
            qualifying_set = set(qualifying)

            # Predicate categories also count satisfied courses outside the catalog
            counted = [cid for cid in qualifying if cid in satisfied]
            if category.any_course or category.has_predicate:
                counted += sorted(
                    cid for cid in satisfied
                    if cid not in qualifying_set and category.qualifies(cid)
                )

            earned = sum(self._credit_hours(category, cid, credits, catalog_credits) for cid in counted)

            progress = CategoryProgress(
                required_credits=category.required_credits,
                earned_credits=earned,
                min_courses=category.min_courses,
                courses_counted=len(counted)
            )
            result.progress[category.name] = progress

            if progress.satisfied:
                continue

            for cid in qualifying:
                if cid in satisfied:
                    continue

                entry = category.listed(cid)
                if entry is not None and entry.required:
                    priority = PRIORITY_REQUIRED
                elif category.min_courses:
                    priority = PRIORITY_MIN_COUNT
                else:
                    priority = PRIORITY_DEFAULT

                result.needed_ids.add(cid)
                result.priorities[cid] = max(priority, result.priorities.get(cid, 0))

        return result

    def unmet_after(
        self,
        categories: Optional[Iterable[RequirementCategory]],
        satisfied_ids: Iterable[str],
        catalog: Optional[Iterable[Course]] = None,
        credits: Optional[Mapping[str, int]] = None
    ) -> List[str]:
        """Names of categories still short once `satisfied_ids` are done"""
        needed = self.compute_needed(categories, satisfied_ids, (), catalog, credits)
        return needed.unmet_categories

    @staticmethod
    def unconstrained(candidate_ids: Iterable[str]) -> NeededCourses:
        """Every candidate needed at priority 1, for programs with no requirement data"""
        ids = list(candidate_ids)
        return NeededCourses(
            needed_ids=set(ids),
            priorities={cid: PRIORITY_DEFAULT for cid in ids}
        )
