"""
Configuration file for the form analysis agent.

Loads configuration from environment variables with sensible defaults.
API keys should be set in .env file (not committed to version control).
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file
# Look for .env in project root
_project_root = Path(__file__).parent.parent.parent
_env_path = _project_root / ".env"
load_dotenv(_env_path)

# Gemini API Configuration
GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY", "")
if not GEMINI_API_KEY:
    import warnings
    warnings.warn(
        "GEMINI_API_KEY not set. Please set it in your .env file or environment. "
        "See .env.example for reference."
    )

# Model configuration
GEMINI_MODEL_NAME = os.environ.get("GEMINI_MODEL_NAME", "gemini-2.5-flash")

# Low temperature for consistent scoring across calls
LLM_TEMPERATURE = 0.1
LLM_MAX_OUTPUT_TOKENS = 300
LLM_TIMEOUT_S = 30.0
LLM_MAX_RETRIES = 1

# Live feedback is spoken/glanced at mid-set, keep it short
MAX_LIVE_FEEDBACK_WORDS = 12

# Score thresholds for feedback categorization (0-10 form score)
SCORE_THRESHOLDS = {
    "good": 7.0,
    "needs_work": 5.0,
    "poor": 0.0,
}
