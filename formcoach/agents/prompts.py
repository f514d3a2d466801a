"""
Prompt templates for the form analysis agent.

Both templates explain the compact coordinate encoding and require a single
JSON object back, so live and full analysis share one response parser.
"""

from langchain_core.prompts import ChatPromptTemplate


# System prompt that defines the analyst's persona
ANALYST_SYSTEM_PROMPT = """You are an expert exercise form analyst. You analyze body pose \
coordinate data from computer vision and provide precise, actionable feedback.
Always respond with valid JSON only, no additional text, no markdown."""


COORDINATE_FORMAT = """COORDINATE FORMAT:
- Each line: t:seconds|joint:x,y|joint:x,y|...
- Coordinates normalized 0-1 (origin top-left)
- Only joints with confidence > {confidence_threshold} included
- Joints: lw/rw wrists, le/re elbows, ls/rs shoulders, n neck, lh/rh hips,
  lk/rk knees, la/ra ankles, rt root, ns nose
- Camera facing user (mirror view)"""


RESPONSE_FORMAT = """RESPOND WITH VALID JSON ONLY:
{{
  "repCount": 0,
  "formScore": 0.0,
  "feedback": "Concise overall assessment and main suggestion",
  "issues": ["specific issue 1", "specific issue 2"]
}}"""


# End-of-session analysis over the sampled recording
FULL_ANALYSIS_PROMPT = ChatPromptTemplate.from_messages([
    ("system", ANALYST_SYSTEM_PROMPT),
    ("human", """EXERCISE ANALYSIS - {exercise_upper}

You are analyzing {exercise} form using body pose coordinates \
({frame_count} frames over {duration_s:.1f}s).

""" + COORDINATE_FORMAT + """

FORM CRITERIA:
{exercise_criteria}

EXERCISE SEQUENCE:
{coordinate_data}

ANALYSIS REQUIREMENTS:
- Count ONLY complete repetitions with acceptable form
- Rate form 1-10 (7+ = good, 5-6 = needs work, <5 = poor)
- Focus on key {exercise} movement patterns
- Provide specific, actionable feedback

""" + RESPONSE_FORMAT),
])


# Periodic mid-set feedback over the last few seconds
LIVE_ANALYSIS_PROMPT = ChatPromptTemplate.from_messages([
    ("system", ANALYST_SYSTEM_PROMPT),
    ("human", """LIVE CHECK - {exercise_upper}

These are the last {duration_s:.1f}s ({frame_count} frames) of an ongoing {exercise} set.

""" + COORDINATE_FORMAT + """

FORM CRITERIA:
{exercise_criteria}

RECENT MOVEMENT:
{coordinate_data}

REQUIREMENTS:
- repCount: complete repetitions visible in this window only
- Rate current form 1-10 (7+ = good, 5-6 = needs work, <5 = poor)
- feedback: ONE coaching cue the user can act on right now, \
at most {max_words} words, spoken directly to the user

""" + RESPONSE_FORMAT),
])
