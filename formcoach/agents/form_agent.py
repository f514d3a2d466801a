"""
Form Analysis Agent - LangGraph Implementation.

This agent is the reasoning service behind live and full analysis. Its graph:
1. Checks that the model is configured (before any network call)
2. Loads exercise-specific criteria
3. Asks the Gemini LLM to read the encoded pose sequence
4. Parses the JSON verdict

Failures are raised as ``AnalysisError`` subclasses so the caller can map
them onto a neutral result.
"""

import json
import logging
from typing import Any, Optional

from langgraph.graph import StateGraph, START, END
from langchain_google_genai import ChatGoogleGenerativeAI

from ..pipelines.config import ENCODING_THRESHOLD
from .config import (
    GEMINI_API_KEY,
    GEMINI_MODEL_NAME,
    LLM_MAX_OUTPUT_TOKENS,
    LLM_MAX_RETRIES,
    LLM_TEMPERATURE,
    LLM_TIMEOUT_S,
    MAX_LIVE_FEEDBACK_WORDS,
)
from .errors import (
    AnalysisError,
    MissingCredentialsError,
    ReasoningServiceError,
    ResponseFormatError,
)
from .exercise_criteria import (
    GENERIC_CRITERIA,
    format_criteria_for_prompt,
    get_exercise_criteria,
)
from .prompts import FULL_ANALYSIS_PROMPT, LIVE_ANALYSIS_PROMPT
from .state import AnalysisContext, AnalysisMode, AnalysisState

logger = logging.getLogger(__name__)

_ERRORS_BY_CATEGORY: dict[str, type[AnalysisError]] = {
    MissingCredentialsError.category: MissingCredentialsError,
    ReasoningServiceError.category: ReasoningServiceError,
    ResponseFormatError.category: ResponseFormatError,
}


def parse_llm_json(raw: str) -> Optional[dict]:
    """Extract a JSON object from raw LLM output.

    Tolerates markdown code fences and prose around the object. Returns None
    when nothing parses to a dict.
    """
    text = raw.strip()
    if text.startswith("```"):
        text = text.strip("`").strip()
        if text.lower().startswith("json"):
            text = text[4:].strip()
    try:
        parsed = json.loads(text)
        if isinstance(parsed, dict):
            return parsed
    except json.JSONDecodeError:
        pass
    try:
        s = text.index("{")
        e = text.rindex("}") + 1
        parsed = json.loads(text[s:e])
    except (ValueError, json.JSONDecodeError):
        return None
    return parsed if isinstance(parsed, dict) else None


class FormAnalysisAgent:
    """
    LangGraph-based reasoning service for encoded pose sequences.

    Callable as ``agent(context, encoded_text)`` so it can be handed straight
    to ``AnalysisOrchestrator`` as its ``analyzer``.

    Example usage:
        agent = FormAnalysisAgent()
        verdict = agent.analyze(
            AnalysisContext(exercise="Squats", frame_count=3, duration_s=0.4),
            "t:0.0|lh:0.41,0.52|rh:0.58,0.52\\n...",
        )
        # {"repCount": 1, "formScore": 7.5, "feedback": "...", "issues": [...]}
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_name: Optional[str] = None,
        llm: Any = None,
        timeout: float = LLM_TIMEOUT_S,
    ):
        """
        Args:
            api_key: Gemini API key (defaults to ``GEMINI_API_KEY``).
            model_name: Gemini model (defaults to ``GEMINI_MODEL_NAME``).
            llm: Pre-built chat model; skips the credential check.
            timeout: Per-request timeout in seconds.
        """
        self.api_key = GEMINI_API_KEY if api_key is None else api_key
        self.model_name = model_name or GEMINI_MODEL_NAME
        self.timeout = timeout
        self._llm = llm
        self.graph = self._build_graph()

    # ------------------------------------------------------------------
    # Graph nodes
    # ------------------------------------------------------------------

    def _check_config_node(self, state: AnalysisState) -> dict:
        """Node 1: Fail fast when no model can be built."""
        if self._llm is None and not self.api_key:
            return {
                "error": "GEMINI_API_KEY is not configured.",
                "error_category": MissingCredentialsError.category,
            }
        return {"error": None}

    def _load_criteria_node(self, state: AnalysisState) -> dict:
        """Node 2: Load exercise-specific criteria, falling back to generic ones."""
        exercise = state.context.exercise
        try:
            name, criteria = get_exercise_criteria(exercise_name=exercise)
        except ValueError:
            logger.info("No criteria for exercise '%s'; using generic criteria.", exercise)
            name, criteria = exercise, GENERIC_CRITERIA
        return {"exercise_name": name, "exercise_criteria": list(criteria)}

    def _invoke_llm_node(self, state: AnalysisState) -> dict:
        """Node 3: Ask the LLM for a verdict on the encoded sequence."""
        context = state.context
        prompt = LIVE_ANALYSIS_PROMPT if context.mode == AnalysisMode.LIVE else FULL_ANALYSIS_PROMPT
        try:
            chain = prompt | self._get_llm()
            response = chain.invoke({
                "exercise": state.exercise_name,
                "exercise_upper": state.exercise_name.upper(),
                "frame_count": context.frame_count,
                "duration_s": context.duration_s,
                "confidence_threshold": ENCODING_THRESHOLD,
                "exercise_criteria": format_criteria_for_prompt(state.exercise_criteria),
                "coordinate_data": state.encoded_text,
                "max_words": MAX_LIVE_FEEDBACK_WORDS,
            })
        except Exception as e:
            logger.warning("%s analysis call failed: %s", context.mode.value, e)
            return {
                "error": f"Error calling reasoning service: {e}",
                "error_category": ReasoningServiceError.category,
            }

        raw = response.content if hasattr(response, "content") else str(response)
        if isinstance(raw, list):
            # Gemini may return content blocks instead of a plain string
            raw = "".join(
                block.get("text", "") if isinstance(block, dict) else str(block)
                for block in raw
            )
        return {"raw_response": raw}

    def _parse_response_node(self, state: AnalysisState) -> dict:
        """Node 4: Parse the JSON verdict."""
        parsed = parse_llm_json(state.raw_response)
        if parsed is None:
            logger.warning("Could not parse JSON. Raw: %r", state.raw_response[:200])
            return {
                "error": "Reasoning service returned unparseable content.",
                "error_category": ResponseFormatError.category,
            }
        return {"parsed_response": parsed}

    # ------------------------------------------------------------------
    # Graph
    # ------------------------------------------------------------------

    @staticmethod
    def _route_on_error(state: AnalysisState) -> str:
        return "stop" if state.error else "continue"

    def _build_graph(self):
        """Build and return the compiled analysis graph."""
        graph = StateGraph(AnalysisState)

        graph.add_node("check_config", self._check_config_node)
        graph.add_node("load_criteria", self._load_criteria_node)
        graph.add_node("invoke_llm", self._invoke_llm_node)
        graph.add_node("parse_response", self._parse_response_node)

        # START → check_config → load_criteria → invoke_llm → parse_response → END
        graph.add_edge(START, "check_config")
        graph.add_conditional_edges(
            "check_config", self._route_on_error,
            {"stop": END, "continue": "load_criteria"},
        )
        graph.add_edge("load_criteria", "invoke_llm")
        graph.add_conditional_edges(
            "invoke_llm", self._route_on_error,
            {"stop": END, "continue": "parse_response"},
        )
        graph.add_edge("parse_response", END)

        return graph.compile()

    def _get_llm(self):
        if self._llm is None:
            self._llm = ChatGoogleGenerativeAI(
                model=self.model_name,
                google_api_key=self.api_key,
                temperature=LLM_TEMPERATURE,
                max_output_tokens=LLM_MAX_OUTPUT_TOKENS,
                timeout=self.timeout,
                max_retries=LLM_MAX_RETRIES,
            )
        return self._llm

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def analyze(self, context: AnalysisContext, encoded_text: str) -> dict:
        """
        Run the analysis graph on one encoded pose sequence.

        Args:
            context: Exercise label, mode, and sequence size.
            encoded_text: Output of ``encode_frames``.

        Returns:
            The parsed JSON verdict (``repCount``, ``formScore``,
            ``feedback``, ``issues``), fields not yet validated.

        Raises:
            MissingCredentialsError: No API key and no injected model.
            ReasoningServiceError: The model call failed.
            ResponseFormatError: The response was not a JSON object.
        """
        initial_state = AnalysisState(context=context, encoded_text=encoded_text)
        result = self.graph.invoke(initial_state)

        if result.get("error"):
            error_cls = _ERRORS_BY_CATEGORY.get(result.get("error_category"), AnalysisError)
            raise error_cls(result["error"])
        return result["parsed_response"]

    __call__ = analyze
