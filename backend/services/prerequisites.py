"""
Prerequisite Checker Service

Evaluates structured prerequisite expressions against the set of courses a
student has completed or already has scheduled. The checks are pure: they
read no data and can be re-run every time the satisfied set grows.
"""

from typing import List, Dict, Any, Optional, Set, Iterable, Mapping

from core.models import PrerequisiteExpression, PrerequisiteType
from core.parsers import normalize_course_code


PrerequisiteMap = Mapping[str, PrerequisiteExpression]


class PrerequisiteChecker:
    """
    Checker for prerequisite expressions.

    Features:
    - NONE / SINGLE / ALL / ANY evaluation
    - Missing-prerequisite reporting
    - Prerequisite map construction from stored records
    - Prerequisite chain view with circular reference detection
    """

    @staticmethod
    def is_satisfied(expr: Optional[PrerequisiteExpression], satisfied_ids: Iterable[str]) -> bool:
        """
        Check whether an expression holds for the satisfied course ids.

        An expression that references no course ids is vacuously true.
        """
        if expr is None or expr.type == PrerequisiteType.NONE or not expr.course_ids:
            return True

        satisfied = satisfied_ids if isinstance(satisfied_ids, (set, frozenset)) else set(satisfied_ids)

        if expr.type == PrerequisiteType.ANY:
            return any(cid in satisfied for cid in expr.course_ids)

        return all(cid in satisfied for cid in expr.course_ids)

    @staticmethod
    def missing(expr: Optional[PrerequisiteExpression], satisfied_ids: Iterable[str]) -> List[str]:
        """
        List the prerequisite ids that are not yet satisfied.

        For ANY expressions the list is empty once one alternative is met;
        otherwise it names every alternative.
        """
        if PrerequisiteChecker.is_satisfied(expr, satisfied_ids):
            return []

        satisfied = set(satisfied_ids)
        return [cid for cid in expr.course_ids if cid not in satisfied]

    @staticmethod
    def lookup(prerequisite_map: Optional[PrerequisiteMap], course_id: str) -> PrerequisiteExpression:
        """Expression for a course; courses without an entry have none"""
        if not prerequisite_map:
            return PrerequisiteExpression.none()
        return prerequisite_map.get(course_id) or PrerequisiteExpression.none()

    @staticmethod
    def parse_prerequisite_map(records: Mapping[str, Optional[Dict[str, Any]]]) -> Dict[str, PrerequisiteExpression]:
        """
        Build a prerequisite map from stored records.

        Args:
            records: course code -> {"prerequisiteType": ..., "prerequisiteCourses": [...]}

        Returns:
            Normalized course id -> PrerequisiteExpression
        """
        prereq_map: Dict[str, PrerequisiteExpression] = {}

        for code, record in (records or {}).items():
            expr = PrerequisiteExpression.from_record(record)
            if expr.course_ids:
                expr = PrerequisiteExpression(
                    expr.type,
                    tuple(normalize_course_code(c) for c in expr.course_ids)
                )
            prereq_map[normalize_course_code(code)] = expr

        return prereq_map

    @staticmethod
    def prerequisite_chain(course_id: str, prerequisite_map: Optional[PrerequisiteMap]) -> Dict[str, Any]:
        """Get the full prerequisite chain for a course"""

        def build_chain(code: str, visited: Set[str]) -> Dict[str, Any]:
            if code in visited:
                return {"code": code, "circular": True}

            visited.add(code)
            expr = PrerequisiteChecker.lookup(prerequisite_map, code)

            return {
                "code": code,
                "type": expr.type.value,
                "prerequisites": [
                    build_chain(prereq, visited.copy()) for prereq in expr.course_ids
                ]
            }

        return build_chain(course_id, set())


_prerequisite_checker: Optional[PrerequisiteChecker] = None


def get_prerequisite_checker() -> PrerequisiteChecker:
    """Get singleton instance of PrerequisiteChecker"""
    global _prerequisite_checker
    if _prerequisite_checker is None:
        _prerequisite_checker = PrerequisiteChecker()
    return _prerequisite_checker
