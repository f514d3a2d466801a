"""Tests for frame buffering and motion-adaptive sampling.

Covers:
  - Recent window bound and FIFO eviction
  - Snapshot semantics and ordering
  - LIVE identity and FULL short-sequence identity
  - First/last frame inclusion and determinism
  - Denser sampling during movement than during static holds
"""

import sys
from pathlib import Path

import numpy as np
import pytest

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from formcoach.pipelines.buffer import FrameBuffer
from formcoach.pipelines.frames import JointFrame, JointSample
from formcoach.pipelines.sampling import SamplingMode, compute_movement, sample_frames


# ============================================================================
# Fixtures
# ============================================================================

def _frame(t: float, x: float = 0.5, y: float = 0.5, confidence: float = 0.9) -> JointFrame:
    """Frame with the four key joints around (x, y)."""
    joints = {
        "leftWrist": JointSample(x=x - 0.1, y=y + 0.1, confidence=confidence),
        "rightWrist": JointSample(x=x + 0.1, y=y + 0.1, confidence=confidence),
        "leftShoulder": JointSample(x=x - 0.1, y=y - 0.2, confidence=confidence),
        "rightShoulder": JointSample(x=x + 0.1, y=y - 0.2, confidence=confidence),
        "neck": JointSample(x=x, y=y - 0.25, confidence=confidence),
    }
    return JointFrame(timestamp=t, joints=joints)


def _random_frames(n_frames: int, seed: int = 42) -> list[JointFrame]:
    rng = np.random.RandomState(seed)
    return [
        _frame(0.1 * i, x=float(rng.uniform(0.3, 0.7)), y=float(rng.uniform(0.3, 0.7)))
        for i in range(n_frames)
    ]


def _static_then_moving(n_static: int = 30, n_moving: int = 30) -> list[JointFrame]:
    """Static hold followed by circular movement (> 0.05 between frames)."""
    frames = [_frame(0.1 * i, x=0.8, y=0.5) for i in range(n_static)]
    for k in range(1, n_moving + 1):
        theta = 0.25 * k
        x = 0.5 + 0.3 * np.cos(theta)
        y = 0.5 + 0.3 * np.sin(theta)
        frames.append(_frame(0.1 * (n_static + k - 1), x=float(x), y=float(y)))
    return frames


# ============================================================================
# Test: FrameBuffer
# ============================================================================

class TestFrameBuffer:

    def test_recent_window_never_exceeds_capacity(self):
        buffer = FrameBuffer(recent_capacity=15)
        for i in range(100):
            buffer.append(_frame(0.1 * i))
            assert buffer.recent_count <= 15
        assert len(buffer) == 100

    def test_oldest_frames_evicted_first(self):
        buffer = FrameBuffer(recent_capacity=3)
        frames = [_frame(float(i)) for i in range(5)]
        for frame in frames:
            buffer.append(frame)
        assert buffer.recent() == tuple(frames[2:])
        assert buffer.session() == tuple(frames)

    def test_out_of_order_frame_rejected(self):
        buffer = FrameBuffer()
        assert buffer.append(_frame(1.0))
        assert not buffer.append(_frame(0.5))
        assert buffer.append(_frame(1.0))
        assert [f.timestamp for f in buffer.session()] == [1.0, 1.0]

    def test_snapshots_are_independent(self):
        buffer = FrameBuffer()
        buffer.append(_frame(0.0))
        snapshot = buffer.session()
        buffer.append(_frame(0.1))
        assert len(snapshot) == 1
        assert len(buffer.session()) == 2

    def test_reset_clears_both_windows(self):
        buffer = FrameBuffer()
        for i in range(5):
            buffer.append(_frame(0.1 * i))
        buffer.reset()
        assert buffer.recent() == ()
        assert buffer.session() == ()
        # Timestamps may restart after a reset
        assert buffer.append(_frame(0.0))

    def test_invalid_capacity(self):
        with pytest.raises(ValueError, match="recent_capacity"):
            FrameBuffer(recent_capacity=0)


# ============================================================================
# Test: Movement
# ============================================================================

class TestComputeMovement:

    def test_identical_frames(self):
        assert compute_movement(_frame(0.0), _frame(0.1)) == 0.0

    def test_uniform_shift(self):
        moved = compute_movement(_frame(0.0, x=0.5), _frame(0.1, x=0.56))
        assert moved == pytest.approx(0.06)

    def test_low_confidence_joints_ignored(self):
        a = _frame(0.0, x=0.5)
        b = _frame(0.1, x=0.9, confidence=0.3)  # not strictly above 0.3
        assert compute_movement(a, b) == 0.0

    def test_missing_joints_ignored(self):
        a = _frame(0.0, x=0.5)
        b = JointFrame(timestamp=0.1, joints={
            "leftWrist": JointSample(x=0.5, y=0.6, confidence=0.9),
        })
        assert compute_movement(a, b) == pytest.approx(0.1)


# ============================================================================
# Test: Sampler
# ============================================================================

class TestSampler:

    def test_live_mode_is_identity(self):
        frames = _random_frames(80)
        assert sample_frames(frames, SamplingMode.LIVE) == frames

    @pytest.mark.parametrize("n_frames", [0, 1, 2, 17, 30])
    def test_full_mode_short_sequence_unchanged(self, n_frames):
        frames = _random_frames(n_frames)
        sampled = sample_frames(frames, SamplingMode.FULL)
        assert len(sampled) == len(frames)
        assert all(a is b for a, b in zip(sampled, frames))

    @pytest.mark.parametrize("seed", [0, 1, 7])
    def test_full_mode_keeps_first_and_last(self, seed):
        frames = _random_frames(75, seed=seed)
        sampled = sample_frames(frames, SamplingMode.FULL)
        assert sampled[0] is frames[0]
        assert sampled[-1].timestamp == frames[-1].timestamp
        assert len(sampled) < len(frames)

    def test_full_mode_preserves_order(self):
        frames = _random_frames(90)
        sampled = sample_frames(frames, SamplingMode.FULL)
        timestamps = [f.timestamp for f in sampled]
        assert timestamps == sorted(timestamps)
        assert len(set(timestamps)) == len(timestamps)

    def test_full_mode_is_deterministic(self):
        frames = _random_frames(120)
        first = sample_frames(frames, SamplingMode.FULL)
        second = sample_frames(frames, SamplingMode.FULL)
        assert [f.timestamp for f in first] == [f.timestamp for f in second]

    def test_static_sequence_sampled_every_fifth(self):
        frames = [_frame(0.1 * i) for i in range(40)]
        sampled = sample_frames(frames, SamplingMode.FULL)
        kept = [frames.index(f) for f in sampled[:-1]]
        assert kept == [0, 5, 10, 15, 20, 25, 30, 35]
        assert sampled[-1] is frames[-1]

    def test_movement_sampled_denser_than_static_hold(self):
        frames = _static_then_moving(30, 30)
        sampled = sample_frames(frames, SamplingMode.FULL)
        sampled_ts = {f.timestamp for f in sampled}

        static_kept = sum(1 for f in frames[:30] if f.timestamp in sampled_ts)
        moving_kept = sum(1 for f in frames[30:] if f.timestamp in sampled_ts)

        assert static_kept / 30 < moving_kept / 30
        assert static_kept == 6
        assert moving_kept >= 15

    def test_input_not_modified(self):
        frames = _random_frames(60)
        original = list(frames)
        sample_frames(frames, SamplingMode.FULL)
        assert frames == original

    def test_mode_accepts_string_value(self):
        frames = _random_frames(10)
        assert sample_frames(frames, "live") == frames
