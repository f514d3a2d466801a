"""
Detection-loss stabilization for the incoming joint stream.

Pose models drop the person for a frame or two whenever a limb is briefly
occluded. ``StabilityTracker`` holds the last good pose through such gaps and
only reports the person as lost once detections have been missing for
``loss_timeout_s`` seconds.
"""

import logging
from typing import Callable, Mapping, Optional

from .config import LOSS_TIMEOUT_S
from .frames import JointSample

logger = logging.getLogger(__name__)

DetectionLostCallback = Callable[[float], None]


class StabilityTracker:
    """Hold-and-timeout filter over per-frame joint maps.

    Args:
        loss_timeout_s: How long (seconds) to keep returning the last good
            pose after detections stop.
        detection_threshold: A raw map counts as empty when no joint has a
            confidence above this value. ``0.0`` treats any reported joint
            as a detection.
        on_detection_lost: Called with the current timestamp once per loss
            episode, when the timeout elapses.
    """

    def __init__(
        self,
        loss_timeout_s: float = LOSS_TIMEOUT_S,
        detection_threshold: float = 0.0,
        on_detection_lost: Optional[DetectionLostCallback] = None,
    ):
        self.loss_timeout_s = loss_timeout_s
        self.detection_threshold = detection_threshold
        self.on_detection_lost = on_detection_lost

        self.last_good_joints: dict[str, JointSample] = {}
        self.loss_started_at: Optional[float] = None
        self._loss_reported = False

    def reset(self) -> None:
        """Forget the cached pose and any ongoing loss episode."""
        self.last_good_joints = {}
        self.loss_started_at = None
        self._loss_reported = False

    @property
    def is_holding(self) -> bool:
        """True while the last good pose is being replayed through a gap."""
        return self.loss_started_at is not None and not self._loss_reported

    @property
    def detection_lost(self) -> bool:
        """True once the current loss episode has exceeded the timeout."""
        return self._loss_reported

    def _has_detection(self, raw_joints: Mapping[str, JointSample]) -> bool:
        return any(
            sample.confidence > self.detection_threshold
            for sample in raw_joints.values()
        )

    def update(
        self,
        raw_joints: Mapping[str, JointSample],
        now: float,
    ) -> dict[str, JointSample]:
        """Return the stabilized joint map for this frame.

        Never raises; the result may be empty once the person is lost.
        """
        if self._has_detection(raw_joints):
            if self._loss_reported:
                logger.info("Body detection recovered at t=%.2f", now)
            self.loss_started_at = None
            self._loss_reported = False
            self.last_good_joints = dict(raw_joints)
            return dict(raw_joints)

        if self.loss_started_at is None:
            self.loss_started_at = now

        elapsed = now - self.loss_started_at
        if elapsed < self.loss_timeout_s and self.last_good_joints:
            logger.debug("No joints detected; holding last pose (%.2fs)", elapsed)
            return dict(self.last_good_joints)

        # Without a prior good frame there is nothing to lose.
        if not self.last_good_joints:
            self.loss_started_at = None
            return {}

        if not self._loss_reported:
            self._loss_reported = True
            logger.info(
                "Body detection lost: no joints for %.2fs (timeout %.1fs)",
                elapsed, self.loss_timeout_s,
            )
            if self.on_detection_lost is not None:
                self.on_detection_lost(now)
        return {}
