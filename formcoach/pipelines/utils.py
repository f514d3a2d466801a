"""
Shared utilities for the analysis pipeline.

- Sentinel results (no usable movement data)
- Failure results (reasoning service unavailable or misbehaving)
- Coercion of the reasoning service's loose JSON into ``AnalysisResult``
- Score categories used by prompts and presentation
"""

import logging
import math
from typing import Any, Mapping

from ..agents.config import SCORE_THRESHOLDS
from ..agents.errors import AnalysisError
from ..agents.state import AnalysisResult
from .config import MAX_FORM_SCORE, NEUTRAL_FORM_SCORE

logger = logging.getLogger(__name__)

LIVE_WAITING_FEEDBACK = "Waiting for movement..."
FULL_NO_DATA_FEEDBACK = (
    "No movement data recorded. Make sure your whole body is visible and try again."
)
NO_DATA_ISSUE = "No Movement Data"


# ---------------------------------------------------------------------------
# Sentinel / fallback results
# ---------------------------------------------------------------------------

def waiting_result() -> AnalysisResult:
    """Live result while the recent window has no usable joints."""
    return AnalysisResult(
        rep_count=0,
        form_score=NEUTRAL_FORM_SCORE,
        feedback=LIVE_WAITING_FEEDBACK,
    )


def no_data_result() -> AnalysisResult:
    """Full-analysis result for a session without usable joints."""
    return AnalysisResult(
        rep_count=0,
        form_score=NEUTRAL_FORM_SCORE,
        feedback=FULL_NO_DATA_FEEDBACK,
        issues=(NO_DATA_ISSUE,),
    )


def failure_result(error: Exception) -> AnalysisResult:
    """Neutral result describing why the reasoning service gave no verdict.

    ``AnalysisError`` subclasses carry their own category; anything else is
    reported as a connection failure.
    """
    if isinstance(error, AnalysisError):
        category, message = error.category, error.user_message
    else:
        category = "Connection Error"
        message = "Analysis unavailable. Check connection and API key."
    return AnalysisResult(
        rep_count=0,
        form_score=NEUTRAL_FORM_SCORE,
        feedback=message,
        issues=(category,),
    )


# ---------------------------------------------------------------------------
# Response coercion
# ---------------------------------------------------------------------------

def _as_int(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(number):
        return 0
    return max(0, int(number))


def _as_score(value: Any) -> float:
    if isinstance(value, bool):
        return NEUTRAL_FORM_SCORE
    try:
        score = float(value)
    except (TypeError, ValueError):
        return NEUTRAL_FORM_SCORE
    if not math.isfinite(score):
        return NEUTRAL_FORM_SCORE
    return min(max(score, 0.0), MAX_FORM_SCORE)


def _as_issues(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        return (value,) if value.strip() else ()
    if not isinstance(value, (list, tuple)):
        return ()
    return tuple(str(item) for item in value if item is not None and str(item).strip())


def coerce_result(response: Any) -> AnalysisResult:
    """Map a reasoning-service response onto an ``AnalysisResult``.

    Missing or malformed fields fall back to safe defaults: 0 reps, the
    neutral 5.0 score, empty feedback, no issues. Scores are clamped to
    [0, 10]. Accepts an ``AnalysisResult`` unchanged.
    """
    if isinstance(response, AnalysisResult):
        return response
    if not isinstance(response, Mapping):
        logger.warning("Unexpected reasoning response type %s", type(response).__name__)
        return AnalysisResult()

    feedback = response.get("feedback")
    return AnalysisResult(
        rep_count=_as_int(response.get("repCount", response.get("rep_count"))),
        form_score=_as_score(response.get("formScore", response.get("form_score"))),
        feedback=feedback.strip() if isinstance(feedback, str) else "",
        issues=_as_issues(response.get("issues")),
    )


# ---------------------------------------------------------------------------
# Score categories
# ---------------------------------------------------------------------------

def score_category(score: float) -> str:
    """'good' (7+), 'needs_work' (5-7) or 'poor' (<5)."""
    if score >= SCORE_THRESHOLDS["good"]:
        return "good"
    if score >= SCORE_THRESHOLDS["needs_work"]:
        return "needs_work"
    return "poor"


def live_score_band(score: float) -> str:
    """Colour band for a live score display: green/yellow/orange/red."""
    if score >= 8.0:
        return "green"
    if score >= 6.0:
        return "yellow"
    if score >= 4.0:
        return "orange"
    return "red"
