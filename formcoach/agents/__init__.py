"""
Agents module for Form Coach.

This module contains the reasoning-service agent that turns encoded pose
sequences into rep counts, form scores and coaching feedback.
"""

from .errors import (
    AnalysisError,
    MissingCredentialsError,
    ReasoningServiceError,
    ResponseFormatError,
)
from .form_agent import FormAnalysisAgent, parse_llm_json
from .state import AnalysisContext, AnalysisMode, AnalysisResult
from .exercise_criteria import get_exercise_criteria, get_all_exercises

__all__ = [
    "AnalysisError",
    "MissingCredentialsError",
    "ReasoningServiceError",
    "ResponseFormatError",
    "FormAnalysisAgent",
    "parse_llm_json",
    "AnalysisContext",
    "AnalysisMode",
    "AnalysisResult",
    "get_exercise_criteria",
    "get_all_exercises",
]
