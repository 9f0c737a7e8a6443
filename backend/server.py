"""
FastAPI Server for the Course Planner API

Provides REST endpoints for generating multi-semester course plans.

Usage:
    python server.py                    # Run server on port 8000
    python server.py --port 3001        # Custom port
    python server.py --no-cache         # Disable the Redis plan cache
"""

import argparse
from contextlib import asynccontextmanager
from typing import List, Dict, Any, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from core.config import initialize_firebase, get_firestore_client, DEFAULT_YEARS_REMAINING
from core.models import Preferences, RequirementCategory, StudentState, TimeBlock, WorkloadTier, WeekPattern
from core.parsers import course_from_record, normalize_course_code
from core.semester import SemesterManager, build_plan_terms
from services.annotator import get_default_annotator
from services.cache import PlanCache
from services.catalog import PlanningDataSource, CatalogUnavailableError, PrerequisiteDataError
from services.planner import PlanningService, PlanRequest
from services.prerequisites import PrerequisiteChecker


# Pydantic Models (API Schemas)

class PreferencesBody(BaseModel):
    avoid_instructors: List[str] = []
    avoid_time_blocks: List[TimeBlock] = []
    workload: WorkloadTier = WorkloadTier.BALANCED
    week_pattern: WeekPattern = WeekPattern.BALANCED_DAYS

    def to_preferences(self) -> Preferences:
        return Preferences(
            avoid_instructors=frozenset(self.avoid_instructors),
            avoid_time_blocks=frozenset(self.avoid_time_blocks),
            workload=self.workload,
            week_pattern=self.week_pattern
        )


class PlanRequestBody(BaseModel):
    student_id: str
    program: Optional[str] = None
    years_remaining: int = Field(DEFAULT_YEARS_REMAINING, ge=1, le=8)
    credits_per_term: Optional[int] = Field(None, ge=1, le=24)
    preferences: PreferencesBody = PreferencesBody()
    planned_course_ids: List[str] = []
    subject: Optional[str] = None
    annotate: bool = False


class PreviewRequestBody(BaseModel):
    courses: List[Dict[str, Any]] = []
    categories: Optional[List[Dict[str, Any]]] = None
    prerequisites: Dict[str, Dict[str, Any]] = {}
    completed: Dict[str, int] = {}
    planned_course_ids: List[str] = []
    terms: Optional[List[str]] = None
    years_remaining: int = Field(DEFAULT_YEARS_REMAINING, ge=1, le=8)
    credits_per_term: Optional[int] = Field(None, ge=1, le=24)
    preferences: PreferencesBody = PreferencesBody()
    annotate: bool = False


class PlanResponse(BaseModel):
    plan: Dict[str, Any]
    summary: Dict[str, Any]
    audit: Optional[Dict[str, Any]] = None
    credits_per_term: int
    rejected: List[Dict[str, str]] = []
    requirements_constrained: Optional[bool] = None
    cached: bool = False


class TermsResponse(BaseModel):
    years_remaining: int
    terms: List[str]
    start: Dict[str, Any]


class HealthResponse(BaseModel):
    status: str
    planning_start: str
    term_code: str
    firebase: str
    redis: str
    annotator: str


# App Lifespan (startup/shutdown)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle startup and shutdown"""
    # Startup
    print("[Server] Initializing Firebase...")
    initialize_firebase()

    app.state.planning_service = PlanningService(PlanningDataSource(get_firestore_client()))
    app.state.annotator = get_default_annotator()
    print(f"[Server] Annotator: {app.state.annotator.name}")

    app.state.plan_cache = None
    if app.state.enable_cache:
        cache = PlanCache()
        if cache.connect():
            app.state.plan_cache = cache
        else:
            print("[Server] Plan cache disabled")

    print("[Server] Ready!")

    yield

    print("[Server] Shutdown complete")


# FastAPI App

app = FastAPI(
    title="Course Planner API",
    description="Multi-semester course plans built from catalog, requirements and preferences",
    version="1.0.0",
    lifespan=lifespan
)

# CORS - Allow frontend origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Default: enable plan cache
app.state.enable_cache = True


# API Endpoints

@app.get("/", response_model=HealthResponse)
async def health_check(request: Request):
    """Health check endpoint"""
    # Check Firebase connectivity
    firebase_status = "connected"
    try:
        db = get_firestore_client()
        db.collection("metadata").document("health_check").get()
    except Exception as e:
        firebase_status = f"error: {str(e)[:50]}"

    cache = getattr(request.app.state, "plan_cache", None)
    redis_status = "connected" if cache is not None and cache.is_connected else "unavailable"

    annotator = getattr(request.app.state, "annotator", None)
    start = SemesterManager.get_planning_start_info()

    return HealthResponse(
        status="ok" if firebase_status == "connected" else "degraded",
        planning_start=start["display_name"],
        term_code=start["term_code"],
        firebase=firebase_status,
        redis=redis_status,
        annotator=annotator.name if annotator else "none"
    )


@app.get("/api/health", response_model=HealthResponse)
async def api_health(request: Request):
    """API health check"""
    return await health_check(request)


@app.get("/api/terms", response_model=TermsResponse)
async def get_terms(
    years_remaining: int = Query(DEFAULT_YEARS_REMAINING, ge=1, le=8, description="Years left in the degree"),
    start: Optional[str] = Query(None, description="First term, e.g. 'Spring 2026'")
):
    """
    Term labels a plan would cover.
    """
    try:
        terms = build_plan_terms(years_remaining, start=start)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return TermsResponse(
        years_remaining=years_remaining,
        terms=terms,
        start=SemesterManager.parse_term_label(terms[0]) if start else SemesterManager.get_planning_start_info()
    )


@app.post("/api/plans", response_model=PlanResponse)
async def create_plan(body: PlanRequestBody, request: Request):
    """
    Build a plan from the stored catalog, requirements and student history.
    """
    service: PlanningService = request.app.state.planning_service
    plan_request = PlanRequest(
        student_id=body.student_id,
        program=body.program,
        years_remaining=body.years_remaining,
        credits_per_term=body.credits_per_term,
        preferences=body.preferences.to_preferences(),
        planned_course_ids=body.planned_course_ids,
        subject=body.subject
    )

    try:
        result = service.build_plan(plan_request, cache=request.app.state.plan_cache)
    except (CatalogUnavailableError, PrerequisiteDataError) as e:
        print(f"[Server] Planning data unavailable: {e}")
        raise HTTPException(status_code=503, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    if body.annotate:
        result.plan = await service.annotate(
            result.plan,
            request.app.state.annotator,
            context={"program": body.program, "preferences": plan_request.preferences.to_dict()}
        )

    return PlanResponse(**result.to_dict())


@app.post("/api/plans/preview", response_model=PlanResponse)
async def preview_plan(body: PreviewRequestBody, request: Request):
    """
    Build a plan from inputs given in the request body. Reads no stored data.
    """
    service: PlanningService = request.app.state.planning_service
    preferences = body.preferences.to_preferences()

    courses = [course_from_record(record) for record in body.courses]
    categories = [RequirementCategory.from_dict(c) for c in body.categories] if body.categories else None
    prerequisite_map = PrerequisiteChecker.parse_prerequisite_map(body.prerequisites)

    completed = {normalize_course_code(cid): hours for cid, hours in body.completed.items()}
    planned = {normalize_course_code(cid) for cid in body.planned_course_ids} - set(completed)
    state = StudentState(completed=completed, planned=frozenset(planned))

    terms = body.terms if body.terms is not None else build_plan_terms(body.years_remaining)
    credits_per_term = body.credits_per_term or preferences.workload.default_credits

    result = service.plan_from_inputs(
        courses,
        terms,
        credits_per_term,
        prerequisite_map=prerequisite_map,
        categories=categories,
        student_state=state,
        preferences=preferences
    )

    if body.annotate:
        result.plan = await service.annotate(
            result.plan,
            request.app.state.annotator,
            context={"preferences": preferences.to_dict()}
        )

    return PlanResponse(**result.to_dict())


@app.get("/api/prerequisites/{course_code}/chain")
async def get_prerequisite_chain(course_code: str, request: Request):
    """
    Get the full prerequisite tree for a course.
    """
    service: PlanningService = request.app.state.planning_service
    try:
        prerequisite_map = service.data_source.fetch_prerequisites()
    except PrerequisiteDataError as e:
        print(f"[Server] Planning data unavailable: {e}")
        raise HTTPException(status_code=503, detail=str(e))

    return PrerequisiteChecker.prerequisite_chain(normalize_course_code(course_code), prerequisite_map)


@app.get("/api/cache/stats")
async def get_cache_stats(request: Request):
    """
    Get plan cache statistics.
    """
    cache: Optional[PlanCache] = request.app.state.plan_cache
    if cache is None:
        return {"connected": False}
    return cache.get_stats()


@app.post("/api/cache/clear")
async def clear_cache(request: Request):
    """
    Clear all cached plans.
    """
    cache: Optional[PlanCache] = request.app.state.plan_cache
    if cache is None or not cache.is_connected:
        return {"success": False, "message": "Cache not available"}

    deleted = cache.clear()
    return {"success": True, "message": f"Cleared {deleted} cached plans"}


@app.post("/api/cache/invalidate/{student_id}")
async def invalidate_student_plans(student_id: str, request: Request):
    """
    Drop a student's cached plans, e.g. after their history is updated.
    """
    cache: Optional[PlanCache] = request.app.state.plan_cache
    if cache is None or not cache.is_connected:
        return {"success": False, "message": "Cache not available"}

    deleted = cache.invalidate_student(student_id)
    return {"success": True, "message": f"Invalidated {deleted} cached plans for {student_id}"}


# Main

def main():
    import uvicorn

    parser = argparse.ArgumentParser(description="Course Planner API Server")
    parser.add_argument("--port", type=int, default=8000, help="Port to run on")
    parser.add_argument("--host", type=str, default="0.0.0.0", help="Host to bind to")
    parser.add_argument("--no-cache", action="store_true", help="Disable the Redis plan cache")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload for development")

    args = parser.parse_args()

    app.state.enable_cache = not args.no_cache

    print(f"[Server] Starting on http://{args.host}:{args.port}")
    print(f"[Server] Plan cache: {'enabled' if app.state.enable_cache else 'disabled'}")

    uvicorn.run(
        "server:app" if args.reload else app,
        host=args.host,
        port=args.port,
        reload=args.reload
    )


if __name__ == "__main__":
    main()
