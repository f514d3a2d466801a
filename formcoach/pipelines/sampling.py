"""
Frame sampling ahead of encoding.

Live analysis sends the (already small) recent window as-is. Full analysis
of a long session uses motion-adaptive decimation: frames are kept densely
while key joints are moving and sparsely during static holds, so the dynamic
phases of each repetition survive while the payload stays bounded.
"""

import logging
from enum import Enum
from typing import Optional, Sequence

import numpy as np

from .config import (
    ENCODING_THRESHOLD,
    FULL_SAMPLE_THRESHOLD,
    HIGH_MOTION_STRIDE,
    KEY_MOVEMENT_JOINTS,
    LOW_MOTION_STRIDE,
    MOTION_THRESHOLD,
)
from .frames import JointFrame

logger = logging.getLogger(__name__)


class SamplingMode(str, Enum):
    LIVE = "live"
    FULL = "full"


def compute_movement(
    previous: JointFrame,
    current: JointFrame,
    key_joints: Sequence[str] = KEY_MOVEMENT_JOINTS,
    threshold: float = ENCODING_THRESHOLD,
) -> float:
    """Average Euclidean displacement of ``key_joints`` between two frames.

    Only joints present in both frames with confidence above ``threshold``
    in both are counted. Returns 0.0 when no joint qualifies.
    """
    before, after = [], []
    for name in key_joints:
        p1 = previous.joints.get(name)
        p2 = current.joints.get(name)
        if p1 is None or p2 is None:
            continue
        if p1.confidence > threshold and p2.confidence > threshold:
            before.append((p1.x, p1.y))
            after.append((p2.x, p2.y))

    if not before:
        return 0.0

    deltas = np.linalg.norm(np.asarray(after) - np.asarray(before), axis=1)
    return float(np.mean(deltas))


def _adaptive_sample(
    frames: Sequence[JointFrame],
    motion_threshold: float,
    high_motion_stride: int,
    low_motion_stride: int,
    key_joints: Sequence[str],
    threshold: float,
) -> list[JointFrame]:
    sampled: list[JointFrame] = [frames[0]]
    last_sampled = frames[0]
    since_last = 0

    for frame in frames[1:]:
        since_last += 1
        movement = compute_movement(last_sampled, frame, key_joints, threshold)
        stride = high_motion_stride if movement > motion_threshold else low_motion_stride
        if since_last >= stride:
            sampled.append(frame)
            last_sampled = frame
            since_last = 0

    final = frames[-1]
    if final.timestamp != last_sampled.timestamp:
        sampled.append(final)

    return sampled


def sample_frames(
    frames: Sequence[JointFrame],
    mode: SamplingMode,
    *,
    full_sample_threshold: int = FULL_SAMPLE_THRESHOLD,
    motion_threshold: float = MOTION_THRESHOLD,
    high_motion_stride: int = HIGH_MOTION_STRIDE,
    low_motion_stride: int = LOW_MOTION_STRIDE,
    key_joints: Optional[Sequence[str]] = None,
    threshold: float = ENCODING_THRESHOLD,
) -> list[JointFrame]:
    """Reduce ``frames`` to a representative subset.

    Args:
        frames: Frames in timestamp order.
        mode: ``LIVE`` returns every frame; ``FULL`` decimates sequences
            longer than ``full_sample_threshold``.

    Returns:
        A new list; the input is never modified. Deterministic for a given
        input and mode.
    """
    mode = SamplingMode(mode)
    if mode is SamplingMode.LIVE or len(frames) <= full_sample_threshold:
        return list(frames)

    sampled = _adaptive_sample(
        frames,
        motion_threshold=motion_threshold,
        high_motion_stride=high_motion_stride,
        low_motion_stride=low_motion_stride,
        key_joints=key_joints or KEY_MOVEMENT_JOINTS,
        threshold=threshold,
    )
    logger.debug("Sampled %d of %d frames (full mode)", len(sampled), len(frames))
    return sampled
