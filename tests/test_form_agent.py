"""Tests for the form analysis agent, its JSON parsing and exercise criteria.

The Gemini model is replaced with langchain-core fakes so no network access
or API key is needed.
"""

import sys
from pathlib import Path

import pytest
from langchain_core.language_models.fake_chat_models import FakeListChatModel
from langchain_core.messages import AIMessage
from langchain_core.runnables import RunnableLambda

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from formcoach.agents.errors import (
    MissingCredentialsError,
    ReasoningServiceError,
    ResponseFormatError,
)
from formcoach.agents.exercise_criteria import (
    GENERIC_CRITERIA,
    format_criteria_for_prompt,
    get_all_exercises,
    get_exercise_criteria,
)
from formcoach.agents.form_agent import FormAnalysisAgent, parse_llm_json
from formcoach.agents.state import AnalysisContext, AnalysisMode, AnalysisResult, AnalysisState
from formcoach.pipelines.utils import coerce_result, live_score_band, score_category


# ============================================================================
# Fixtures
# ============================================================================

ENCODED = "t:0.0|lh:0.410,0.520|rh:0.580,0.520\nt:0.4|lh:0.410,0.610|rh:0.580,0.610"
VERDICT = '{"repCount": 1, "formScore": 7.5, "feedback": "Good depth.", "issues": []}'


def _context(exercise: str = "Squats", mode: AnalysisMode = AnalysisMode.FULL) -> AnalysisContext:
    return AnalysisContext(exercise=exercise, mode=mode, frame_count=2, duration_s=0.4)


class _PromptCapture:
    """Chat-model stand-in that records the rendered prompt."""

    def __init__(self, content=VERDICT):
        self.content = content
        self.prompts: list[str] = []
        self.runnable = RunnableLambda(self._respond)

    def _respond(self, prompt_value):
        self.prompts.append(prompt_value.to_string())
        return AIMessage(content=self.content)


def _raise_connection_error(_prompt_value):
    raise ConnectionError("network unreachable")


# ============================================================================
# Test: parse_llm_json
# ============================================================================

class TestParseLlmJson:

    def test_plain_json(self):
        assert parse_llm_json(VERDICT)["formScore"] == 7.5

    def test_code_fence(self):
        raw = f"```json\n{VERDICT}\n```"
        assert parse_llm_json(raw)["repCount"] == 1

    def test_prose_around_object(self):
        raw = f"Here is the analysis:\n{VERDICT}\nHope this helps!"
        assert parse_llm_json(raw)["feedback"] == "Good depth."

    @pytest.mark.parametrize("raw", ["", "no json here", "[1, 2, 3]", "{broken"])
    def test_unparseable(self, raw):
        assert parse_llm_json(raw) is None


# ============================================================================
# Test: FormAnalysisAgent
# ============================================================================

class TestFormAnalysisAgent:

    def test_missing_api_key(self):
        agent = FormAnalysisAgent(api_key="")
        with pytest.raises(MissingCredentialsError):
            agent.analyze(_context(), ENCODED)

    def test_successful_analysis(self):
        agent = FormAnalysisAgent(llm=FakeListChatModel(responses=[VERDICT]))
        verdict = agent(_context(), ENCODED)
        assert verdict == {"repCount": 1, "formScore": 7.5, "feedback": "Good depth.", "issues": []}

    def test_unparseable_response(self):
        agent = FormAnalysisAgent(llm=FakeListChatModel(responses=["I cannot analyze this."]))
        with pytest.raises(ResponseFormatError):
            agent.analyze(_context(), ENCODED)

    def test_call_failure(self):
        agent = FormAnalysisAgent(llm=RunnableLambda(_raise_connection_error))
        with pytest.raises(ReasoningServiceError):
            agent.analyze(_context(), ENCODED)

    def test_full_prompt_contains_data_and_criteria(self):
        capture = _PromptCapture()
        agent = FormAnalysisAgent(llm=capture.runnable)
        agent.analyze(_context("squat"), ENCODED)

        prompt = capture.prompts[0]
        assert "EXERCISE ANALYSIS - SQUATS" in prompt
        assert ENCODED in prompt
        assert "0.3" in prompt
        _, criteria = get_exercise_criteria(exercise_name="Squats")
        assert criteria[0] in prompt

    def test_live_prompt(self):
        capture = _PromptCapture()
        agent = FormAnalysisAgent(llm=capture.runnable)
        agent.analyze(_context("Push-ups", AnalysisMode.LIVE), ENCODED)

        prompt = capture.prompts[0]
        assert "LIVE CHECK - PUSH-UPS" in prompt
        assert "EXERCISE ANALYSIS" not in prompt

    def test_unknown_exercise_uses_generic_criteria(self):
        capture = _PromptCapture()
        agent = FormAnalysisAgent(llm=capture.runnable)
        agent.analyze(_context("Exercise"), ENCODED)
        assert GENERIC_CRITERIA[0] in capture.prompts[0]

    def test_content_blocks_joined(self):
        capture = _PromptCapture(content=[{"type": "text", "text": VERDICT}])
        agent = FormAnalysisAgent(llm=capture.runnable)
        assert agent.analyze(_context(), ENCODED)["formScore"] == 7.5


# ============================================================================
# Test: Exercise criteria
# ============================================================================

class TestExerciseCriteria:

    def test_lookup_by_id(self):
        name, criteria = get_exercise_criteria(exercise_id=1)
        assert name == "Push-ups"
        assert len(criteria) > 0

    @pytest.mark.parametrize("label, expected", [
        ("Squats", "Squats"),
        ("squat", "Squats"),
        ("push up", "Push-ups"),
        ("PLANK", "Plank"),
        ("sitting posture", "Sitting Posture"),
    ])
    def test_lookup_by_name(self, label, expected):
        assert get_exercise_criteria(exercise_name=label)[0] == expected

    def test_unknown(self):
        with pytest.raises(ValueError):
            get_exercise_criteria(exercise_name="Juggling")
        with pytest.raises(ValueError):
            get_exercise_criteria(exercise_id=99)
        with pytest.raises(ValueError):
            get_exercise_criteria()

    def test_all_exercises(self):
        names = [name for _, name in get_all_exercises()]
        assert names == ["Push-ups", "Squats", "Sitting Posture", "Plank"]

    def test_format_for_prompt(self):
        assert format_criteria_for_prompt(["a", "b"]) == "• a\n• b"


# ============================================================================
# Test: Result coercion and categories
# ============================================================================

class TestCoerceResult:

    def test_snake_case_keys(self):
        result = coerce_result({"rep_count": 2, "form_score": 6.0, "feedback": " ok "})
        assert result.rep_count == 2
        assert result.form_score == 6.0
        assert result.feedback == "ok"

    def test_negative_reps_and_scores(self):
        result = coerce_result({"repCount": -3, "formScore": -1})
        assert result.rep_count == 0
        assert result.form_score == 0.0

    @pytest.mark.parametrize("score", [None, "nan", float("inf"), True, [7]])
    def test_non_numeric_score_is_neutral(self, score):
        assert coerce_result({"formScore": score}).form_score == 5.0

    def test_single_issue_string(self):
        assert coerce_result({"issues": "Knees caving"}).issues == ("Knees caving",)

    def test_non_mapping(self):
        assert coerce_result("oops") == AnalysisResult()

    def test_api_shape(self):
        result = coerce_result({"repCount": 1, "formScore": 8, "feedback": "x", "issues": ["y"]})
        assert result.to_api() == {"repCount": 1, "formScore": 8.0, "feedback": "x", "issues": ["y"]}


class TestScoreCategories:

    @pytest.mark.parametrize("score, category", [
        (9.0, "good"), (7.0, "good"), (6.9, "needs_work"), (5.0, "needs_work"), (4.9, "poor"),
    ])
    def test_score_category(self, score, category):
        assert score_category(score) == category

    @pytest.mark.parametrize("score, band", [
        (8.0, "green"), (7.9, "yellow"), (6.0, "yellow"), (4.0, "orange"), (3.9, "red"),
    ])
    def test_live_score_band(self, score, band):
        assert live_score_band(score) == band


class TestAnalysisState:

    def test_uses_v2_model_config(self):
        assert "Config" not in vars(AnalysisState)
        assert AnalysisState.model_config["arbitrary_types_allowed"] is True

    def test_defaults(self):
        state = AnalysisState(context=_context(), encoded_text=ENCODED)
        assert state.error is None
        assert state.exercise_criteria == []
