"""
Plan Annotator Service

Attaches advisory text to a finished plan. Annotation is optional and
best-effort: a slow, failing or unconfigured annotator leaves the plan
exactly as the allocator produced it.
"""

import asyncio
import json
import re
from abc import ABC, abstractmethod
from typing import Dict, Any, Optional

from openai import AsyncOpenAI

from core.config import OPENAI_API_KEY, ANNOTATION_MODEL, ANNOTATION_TIMEOUT_SECONDS
from core.models import Plan, PlanAnnotations


SYSTEM_PROMPT = """You are an academic advisor reviewing a multi-semester course plan.

You will receive the plan as JSON: a list of terms, each with its courses,
credit hours and instructors, plus any degree requirement categories the plan
leaves unmet and the student's stated preferences.

Review the plan for:
1. Workload balance across terms
2. Sequencing of prerequisite chains
3. Requirement categories that remain unmet
4. Terms that are unusually light or heavy

Do not suggest moving courses; comment only.

IMPORTANT: Format your response as JSON with the following structure:
{
    "overallAssessment": "Two or three sentences on the plan as a whole",
    "insights": [{"term": 0, "note": "comment on the term at this index"}],
    "notes": [{"course": "COURSE ID", "note": "comment on this course"}]
}
"""


class PlanAnnotator(ABC):
    """Strategy interface for producing plan annotations"""

    name = "annotator"

    @abstractmethod
    async def annotate(self, plan: Plan, context: Optional[Dict[str, Any]] = None) -> PlanAnnotations:
        """Produce annotations for a plan without changing it."""


class NullAnnotator(PlanAnnotator):
    """Annotator that adds nothing"""

    name = "none"

    async def annotate(self, plan: Plan, context: Optional[Dict[str, Any]] = None) -> PlanAnnotations:
        return PlanAnnotations(source=self.name)


class OpenAIPlanAnnotator(PlanAnnotator):
    """
    Chat completion annotator.

    The client is created on first use so the annotator can be constructed
    without an API key; annotate() raises RuntimeError when none is set.
    """

    name = "openai"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        client: Optional[AsyncOpenAI] = None
    ):
        self.api_key = api_key or OPENAI_API_KEY
        self.model = model or ANNOTATION_MODEL
        self._client = client

    def _ensure_client(self) -> AsyncOpenAI:
        if self._client is None:
            if not self.api_key:
                raise RuntimeError("OPENAI_API_KEY environment variable not set")
            self._client = AsyncOpenAI(api_key=self.api_key)
        return self._client

    @staticmethod
    def _build_user_message(plan: Plan, context: Optional[Dict[str, Any]]) -> str:
        payload = {
            "terms": [
                {
                    "index": term.index,
                    "label": term.label,
                    "credits": term.credits,
                    "courses": [
                        {
                            "id": c.course_id,
                            "name": c.name,
                            "credits": c.credits,
                            "instructors": list(c.instructors),
                        }
                        for c in term.courses
                    ],
                }
                for term in plan.terms
            ],
            "unmetRequirements": list(plan.unmet_requirements),
        }
        if context:
            payload["context"] = context
        return json.dumps(payload)

    def _parse_response(self, response_text: str, plan: Plan) -> PlanAnnotations:
        """Parse the LLM response into annotations."""
        json_match = re.search(r'\{[\s\S]*\}', response_text or "")
        if not json_match:
            return PlanAnnotations(overall=(response_text or "").strip(), source=self.name)

        try:
            data = json.loads(json_match.group())
        except json.JSONDecodeError:
            return PlanAnnotations(overall=response_text.strip(), source=self.name)

        term_count = len(plan.terms)
        term_notes = {}
        for item in data.get("insights") or []:
            try:
                index = int(item.get("term"))
            except (TypeError, ValueError):
                continue
            if 0 <= index < term_count and item.get("note"):
                term_notes[index] = item["note"]

        # Notes about courses outside the plan are dropped
        assigned = set(plan.assigned_ids)
        course_notes = {
            item["course"]: item["note"]
            for item in data.get("notes") or []
            if item.get("course") in assigned and item.get("note")
        }

        return PlanAnnotations(
            overall=data.get("overallAssessment", ""),
            term_notes=term_notes,
            course_notes=course_notes,
            source=self.name
        )

    async def annotate(self, plan: Plan, context: Optional[Dict[str, Any]] = None) -> PlanAnnotations:
        client = self._ensure_client()

        response = await client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": self._build_user_message(plan, context)},
            ],
            temperature=0.3,
            max_tokens=800
        )

        return self._parse_response(response.choices[0].message.content, plan)


async def annotate_plan(
    plan: Plan,
    annotator: Optional[PlanAnnotator],
    context: Optional[Dict[str, Any]] = None,
    timeout: Optional[float] = None
) -> Plan:
    """
    Annotate a plan, falling back to the plan unchanged.

    Args:
        plan: Plan produced by the allocator
        annotator: Strategy to use; None skips annotation
        context: Extra information for the annotator (preferences, program)
        timeout: Seconds to wait; defaults to ANNOTATION_TIMEOUT_SECONDS

    Returns:
        A copy of the plan with annotations, or the original plan
    """
    if annotator is None:
        return plan

    timeout = ANNOTATION_TIMEOUT_SECONDS if timeout is None else timeout

    try:
        annotations = await asyncio.wait_for(annotator.annotate(plan, context), timeout=timeout)
    except asyncio.TimeoutError:
        print(f"[ANNOTATOR] {annotator.name} timed out after {timeout}s, returning plan without annotations")
        return plan
    except Exception as e:
        print(f"[ANNOTATOR] {annotator.name} failed: {e}")
        return plan

    if annotations is None or annotations.is_empty:
        return plan

    return plan.with_annotations(annotations)


def get_default_annotator() -> PlanAnnotator:
    """OpenAI annotator when an API key is configured, otherwise the null annotator"""
    if OPENAI_API_KEY:
        return OpenAIPlanAnnotator()
    return NullAnnotator()
