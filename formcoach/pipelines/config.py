"""
Configuration constants for the Form Coach pose-stream pipeline.

Centralizes frame-window sizes, sampling and confidence thresholds,
detection-loss timing, and environment variable loading.
"""

import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Project paths
# ---------------------------------------------------------------------------
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_PATH = PROJECT_ROOT / ".env"
load_dotenv(_ENV_PATH)

DEFAULT_CONFIG_PATH = PROJECT_ROOT / "config" / "pipeline.yaml"

# ---------------------------------------------------------------------------
# Frame windows
# ---------------------------------------------------------------------------
RECENT_WINDOW_SIZE: int = 15       # K: frames kept for live feedback
FULL_SAMPLE_THRESHOLD: int = 30    # Sessions this short are sent unsampled

# ---------------------------------------------------------------------------
# Motion-adaptive sampling
# ---------------------------------------------------------------------------
MOTION_THRESHOLD: float = 0.05     # Normalized units between sampled frames
HIGH_MOTION_STRIDE: int = 2        # Keep every 2nd candidate while moving
LOW_MOTION_STRIDE: int = 5         # Keep every 5th candidate during holds
KEY_MOVEMENT_JOINTS: tuple[str, ...] = (
    "leftWrist",
    "rightWrist",
    "leftShoulder",
    "rightShoulder",
)

# ---------------------------------------------------------------------------
# Confidence thresholds
# ---------------------------------------------------------------------------
# Two independent gates: encoding/movement is stricter than the
# visibility checks used for holding a pose and posture assessment.
ENCODING_THRESHOLD: float = 0.3
VISIBILITY_THRESHOLD: float = 0.2

# ---------------------------------------------------------------------------
# Detection loss / live analysis timing (seconds)
# ---------------------------------------------------------------------------
LOSS_TIMEOUT_S: float = 2.0
LIVE_INTERVAL_S: float = 2.5
MIN_LIVE_FRAMES: int = 5
ANALYSIS_TIMEOUT_S: float = 30.0

# ---------------------------------------------------------------------------
# Neutral results
# ---------------------------------------------------------------------------
NEUTRAL_FORM_SCORE: float = 5.0
MAX_FORM_SCORE: float = 10.0

# ---------------------------------------------------------------------------
# Worker pool
# ---------------------------------------------------------------------------
MAX_WORKERS: int = 2               # One live + one full analysis


class PipelineSettings(BaseModel):
    """Runtime-tunable pipeline settings.

    Defaults mirror the module constants above. A YAML file (see
    ``config/pipeline.yaml``) can override any subset of fields.
    """
    recent_window_size: int = Field(default=RECENT_WINDOW_SIZE, ge=1)
    full_sample_threshold: int = Field(default=FULL_SAMPLE_THRESHOLD, ge=1)
    motion_threshold: float = Field(default=MOTION_THRESHOLD, ge=0.0)
    high_motion_stride: int = Field(default=HIGH_MOTION_STRIDE, ge=1)
    low_motion_stride: int = Field(default=LOW_MOTION_STRIDE, ge=1)
    encoding_threshold: float = Field(default=ENCODING_THRESHOLD, ge=0.0, le=1.0)
    visibility_threshold: float = Field(default=VISIBILITY_THRESHOLD, ge=0.0, le=1.0)
    loss_timeout_s: float = Field(default=LOSS_TIMEOUT_S, gt=0.0)
    live_interval_s: float = Field(default=LIVE_INTERVAL_S, ge=0.0)
    min_live_frames: int = Field(default=MIN_LIVE_FRAMES, ge=1)
    analysis_timeout_s: float = Field(default=ANALYSIS_TIMEOUT_S, gt=0.0)
    max_workers: int = Field(default=MAX_WORKERS, ge=2)

    @classmethod
    def load(cls, config_path: Optional[str] = None) -> "PipelineSettings":
        """Build settings, overlaying a YAML file when one is available.

        Resolution order: explicit ``config_path``, then the
        ``FORMCOACH_CONFIG`` environment variable, then the defaults.
        """
        from ..utils.io_utils import load_config

        path = config_path or os.environ.get("FORMCOACH_CONFIG")
        if not path:
            return cls()

        overrides = load_config(path) or {}
        settings = cls(**overrides.get("pipeline", overrides))
        logger.info("Loaded pipeline settings from %s", path)
        return settings
