"""
FastAPI entry point for the Form Coach backend.

Endpoints:
    POST /api/session/start    Start (or restart) a recording session
    POST /api/session/frame    Push one frame of pose-source joints
    GET  /api/session/live     Current live feedback and session state
    POST /api/session/stop     Stop recording and return the full analysis
    GET  /api/exercises        Exercises with dedicated form criteria

Run:
    cd <project_root>
    uvicorn formcoach.pipelines.main:app --host 0.0.0.0 --port 8000 --reload
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from ..agents.exercise_criteria import get_all_exercises
from ..agents.state import AnalysisResult
from .config import PipelineSettings
from .frames import JointSample
from .orchestrator import AnalysisOrchestrator, SessionSnapshot
from .utils import live_score_band, score_category

logger = logging.getLogger("formcoach")
logging.basicConfig(level=logging.INFO, format="%(levelname)s | %(name)s | %(message)s")


# ============================================================================
# Pydantic request / response models
# ============================================================================

class StartSessionRequest(BaseModel):
    exercise: Optional[str] = Field(default=None, description="Exercise label, e.g. 'Squats'")


class FrameRequest(BaseModel):
    timestamp: float = Field(..., description="Capture time, monotonic seconds")
    joints: dict[str, JointSample] = Field(
        default_factory=dict,
        description="Joint name → {x, y, confidence}; empty when no person was detected",
    )


class FrameResponse(BaseModel):
    joint_count: int
    detection_lost: bool
    arm_visible: bool
    shoulders_level: bool


class StopSessionRequest(BaseModel):
    exercise: Optional[str] = None


class AnalysisResponse(BaseModel):
    repCount: int
    formScore: float
    feedback: str
    issues: list[str]
    category: str


class LiveResponse(BaseModel):
    state: str
    exercise: str
    frame_count: int
    joint_count: int
    detection_lost: bool
    is_analyzing: bool
    live: AnalysisResponse
    live_band: str
    last_result: Optional[AnalysisResponse] = None


def _analysis_response(result: AnalysisResult) -> AnalysisResponse:
    return AnalysisResponse(**result.to_api(), category=score_category(result.form_score))


def _live_response(snapshot: SessionSnapshot) -> LiveResponse:
    return LiveResponse(
        state=snapshot.state.value,
        exercise=snapshot.exercise,
        frame_count=snapshot.frame_count,
        joint_count=snapshot.joint_count,
        detection_lost=snapshot.detection_lost,
        is_analyzing=snapshot.is_analyzing or snapshot.is_live_analyzing,
        live=_analysis_response(snapshot.live_result),
        live_band=live_score_band(snapshot.live_result.form_score),
        last_result=(
            _analysis_response(snapshot.last_result)
            if snapshot.last_result is not None else None
        ),
    )


# ============================================================================
# App factory
# ============================================================================

def create_app(orchestrator: Optional[AnalysisOrchestrator] = None) -> FastAPI:
    """Build the API around ``orchestrator`` (created at startup if omitted)."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting Form Coach backend …")
        owned = orchestrator is None
        app.state.orchestrator = orchestrator or AnalysisOrchestrator(
            settings=PipelineSettings.load(),
        )
        logger.info("Orchestrator ready. Server is ready.")
        yield
        logger.info("Shutting down.")
        if owned:
            app.state.orchestrator.shutdown(wait=False)

    app = FastAPI(
        title="Form Coach API",
        version="1.0.0",
        lifespan=lifespan,
    )

    # CORS: needed for browser-based clients
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def _orchestrator(request: Request) -> AnalysisOrchestrator:
        return request.app.state.orchestrator

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.get("/api/exercises")
    async def exercises():
        return [{"id": id_, "name": name} for id_, name in get_all_exercises()]

    @app.post("/api/session/start", response_model=LiveResponse)
    def start_session(body: StartSessionRequest, request: Request):
        orch = _orchestrator(request)
        orch.start_new_session(exercise=body.exercise)
        return _live_response(orch.snapshot())

    @app.post("/api/session/frame", response_model=FrameResponse)
    def push_frame(body: FrameRequest, request: Request):
        """Overlapping posts are processed one at a time by the orchestrator."""
        orch = _orchestrator(request)
        stabilized = orch.on_frame(body.joints, body.timestamp)
        posture = orch.posture_report()
        return FrameResponse(
            joint_count=len(stabilized),
            detection_lost=orch.tracker.detection_lost,
            arm_visible=posture.arm_visible,
            shoulders_level=posture.shoulders_level,
        )

    @app.get("/api/session/live", response_model=LiveResponse)
    def live(request: Request):
        return _live_response(_orchestrator(request).snapshot())

    @app.post("/api/session/stop", response_model=AnalysisResponse)
    def stop_session(body: StopSessionRequest, request: Request):
        """Stop recording and wait for the full analysis.

        NOTE: This is a **sync** endpoint on purpose. FastAPI runs it in a
        threadpool, so waiting on the analysis future does not block the
        event loop. The orchestrator bounds the wait with its own timeout.
        """
        future = _orchestrator(request).stop_session_and_analyze(body.exercise)
        return _analysis_response(future.result())

    return app


app = create_app()
