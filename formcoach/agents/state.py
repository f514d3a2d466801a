"""
State definitions for the form analysis agent using LangGraph.

This module defines the Pydantic models for the analysis request, the state
that flows through the agent graph, and the final analysis result.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class AnalysisMode(str, Enum):
    LIVE = "live"
    FULL = "full"


# ============================================================================
# Input Models
# ============================================================================

class AnalysisContext(BaseModel):
    """What the reasoning service needs to know besides the encoded frames."""
    model_config = ConfigDict(frozen=True)

    exercise: str = Field(description="Exercise label chosen by the user")
    mode: AnalysisMode = Field(default=AnalysisMode.FULL)
    frame_count: int = Field(default=0, ge=0, description="Frames in the encoded text")
    duration_s: float = Field(default=0.0, ge=0.0, description="Span of the encoded frames")


# ============================================================================
# Output Model
# ============================================================================

class AnalysisResult(BaseModel):
    """Rep count, form score and coaching feedback for a session or window."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    rep_count: int = Field(default=0, ge=0, alias="repCount")
    form_score: float = Field(default=5.0, ge=0.0, le=10.0, alias="formScore")
    feedback: str = ""
    issues: tuple[str, ...] = Field(default_factory=tuple)

    def to_api(self) -> dict:
        """JSON-ready dict using the service's camelCase field names."""
        return {
            "repCount": self.rep_count,
            "formScore": self.form_score,
            "feedback": self.feedback,
            "issues": list(self.issues),
        }


# ============================================================================
# State Model (flows through LangGraph)
# ============================================================================

class AnalysisState(BaseModel):
    """
    State that flows through the LangGraph form analysis agent.

    Each node returns a partial update; ``error``/``error_category`` stop the
    graph early and are turned into exceptions by the agent.
    """
    # arbitrary_types_allowed for LangGraph compatibility
    model_config = ConfigDict(arbitrary_types_allowed=True)

    context: AnalysisContext
    encoded_text: str

    # Exercise-specific criteria (loaded based on exercise label)
    exercise_name: str = ""
    exercise_criteria: list[str] = Field(default_factory=list)

    # Raw model output and its parsed form
    raw_response: str = ""
    parsed_response: Optional[dict] = None

    # Error tracking
    error: Optional[str] = None
    error_category: Optional[str] = None
