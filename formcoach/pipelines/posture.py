"""
Frame-level posture checks on the stabilized joint stream.

Tracks moving averages of shoulder misalignment, checks whether at least one
full arm is visible, and exposes a three-point joint angle helper. These
checks use the lenient ``VISIBILITY_THRESHOLD`` rather than the encoding
threshold.
"""

import logging
from collections import deque
from dataclasses import dataclass
from typing import Mapping, Optional

import numpy as np

from .config import VISIBILITY_THRESHOLD
from .frames import JointName, JointSample

logger = logging.getLogger(__name__)

SMOOTHING_WINDOW: int = 10
CALIBRATION_MARGIN: float = 1.1

_ARMS = (
    (JointName.LEFT_SHOULDER, JointName.LEFT_ELBOW, JointName.LEFT_WRIST),
    (JointName.RIGHT_SHOULDER, JointName.RIGHT_ELBOW, JointName.RIGHT_WRIST),
)
_CORE_CHAINS = (
    (JointName.LEFT_SHOULDER, JointName.LEFT_HIP, JointName.LEFT_ANKLE),
    (JointName.RIGHT_SHOULDER, JointName.RIGHT_HIP, JointName.RIGHT_ANKLE),
)


def joint_angle(a: JointSample, b: JointSample, c: JointSample) -> float:
    """
    Returns the angle (in degrees) at joint b formed by joints a-b-c.

    Degenerate input (a or c coinciding with b) yields 0.0.
    """
    v1 = np.array([a.x - b.x, a.y - b.y])
    v2 = np.array([c.x - b.x, c.y - b.y])

    n1 = np.linalg.norm(v1)
    n2 = np.linalg.norm(v2)
    if n1 < 1e-6 or n2 < 1e-6:
        return 0.0

    cosang = np.clip(np.dot(v1, v2) / (n1 * n2), -1.0, 1.0)
    return float(np.degrees(np.arccos(cosang)))


@dataclass(frozen=True)
class PostureReport:
    """Snapshot of the posture checks for the latest frame."""
    arm_visible: bool
    shoulders_level: bool
    shoulders_centered: bool
    core_assessable: bool
    shoulder_dx: float
    shoulder_dy: float

    @property
    def is_good(self) -> bool:
        return self.arm_visible and self.shoulders_level


class PostureMonitor:
    """Smoothed shoulder-alignment tracking with calibratable thresholds."""

    def __init__(
        self,
        visibility_threshold: float = VISIBILITY_THRESHOLD,
        window: int = SMOOTHING_WINDOW,
        shoulders_x_threshold: float = 0.05,
        shoulders_y_threshold: float = 0.02,
    ):
        self.visibility_threshold = visibility_threshold
        self.shoulders_x_threshold = shoulders_x_threshold
        self.shoulders_y_threshold = shoulders_y_threshold
        self._x_diffs: deque[float] = deque(maxlen=window)
        self._y_diffs: deque[float] = deque(maxlen=window)
        self._last_joints: dict[str, JointSample] = {}

    def reset(self) -> None:
        """Drop the smoothing history (e.g. after detection loss)."""
        self._x_diffs.clear()
        self._y_diffs.clear()
        self._last_joints = {}

    def _visible(self, joints: Mapping[str, JointSample], name: JointName) -> Optional[JointSample]:
        sample = joints.get(name.value)
        if sample is None or not sample.is_usable(self.visibility_threshold):
            return None
        return sample

    def update(self, joints: Mapping[str, JointSample]) -> PostureReport:
        """Feed one stabilized frame and return the current posture report."""
        self._last_joints = dict(joints)

        left = self._visible(joints, JointName.LEFT_SHOULDER)
        right = self._visible(joints, JointName.RIGHT_SHOULDER)
        # A missing shoulder contributes 0.0, so the diff degrades rather than
        # disappearing from the average.
        lx, ly = (left.x, left.y) if left else (0.0, 0.0)
        rx, ry = (right.x, right.y) if right else (0.0, 0.0)
        self._x_diffs.append(abs(lx - rx))
        self._y_diffs.append(abs(ly - ry))

        return self.report()

    @property
    def average_shoulder_dx(self) -> float:
        return float(np.mean(self._x_diffs)) if self._x_diffs else 0.0

    @property
    def average_shoulder_dy(self) -> float:
        return float(np.mean(self._y_diffs)) if self._y_diffs else 0.0

    def has_complete_arm(self, joints: Optional[Mapping[str, JointSample]] = None) -> bool:
        """At least one shoulder-elbow-wrist chain is present."""
        joints = self._last_joints if joints is None else joints
        return any(all(name.value in joints for name in arm) for arm in _ARMS)

    def can_assess_core(self, joints: Optional[Mapping[str, JointSample]] = None) -> bool:
        """At least one shoulder-hip-ankle chain is present."""
        joints = self._last_joints if joints is None else joints
        return any(all(name.value in joints for name in chain) for chain in _CORE_CHAINS)

    def report(self) -> PostureReport:
        dx = self.average_shoulder_dx
        dy = self.average_shoulder_dy
        return PostureReport(
            arm_visible=self.has_complete_arm(),
            shoulders_level=dy < self.shoulders_y_threshold,
            shoulders_centered=dx < self.shoulders_x_threshold,
            core_assessable=self.can_assess_core(),
            shoulder_dx=dx,
            shoulder_dy=dy,
        )

    def calibrate(self) -> bool:
        """Set thresholds from the current averages plus a 10% margin.

        Returns:
            False (thresholds unchanged) when there is no history yet.
        """
        if not self._x_diffs or not self._y_diffs:
            logger.warning("Cannot calibrate thresholds: not enough data points.")
            return False

        self.shoulders_x_threshold = self.average_shoulder_dx * CALIBRATION_MARGIN
        self.shoulders_y_threshold = self.average_shoulder_dy * CALIBRATION_MARGIN
        logger.info(
            "Calibrated shoulder thresholds: x=%.4f y=%.4f",
            self.shoulders_x_threshold, self.shoulders_y_threshold,
        )
        return True
