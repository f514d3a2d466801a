"""
Joint frame data model.

A ``JointFrame`` is one timestamped snapshot of named joint positions as
reported by the upstream pose source. Coordinates are normalized to [0, 1]
with a top-left origin; confidences are in [0, 1].
"""

from enum import Enum
from typing import Any, Mapping, Union

from pydantic import BaseModel, ConfigDict, Field


class JointName(str, Enum):
    """Joint names emitted by the pose source."""
    LEFT_WRIST = "leftWrist"
    RIGHT_WRIST = "rightWrist"
    LEFT_ELBOW = "leftElbow"
    RIGHT_ELBOW = "rightElbow"
    LEFT_SHOULDER = "leftShoulder"
    RIGHT_SHOULDER = "rightShoulder"
    NECK = "neck"
    LEFT_HIP = "leftHip"
    RIGHT_HIP = "rightHip"
    LEFT_KNEE = "leftKnee"
    RIGHT_KNEE = "rightKnee"
    LEFT_ANKLE = "leftAnkle"
    RIGHT_ANKLE = "rightAnkle"
    ROOT = "root"
    NOSE = "nose"
    LEFT_EYE = "leftEye"
    RIGHT_EYE = "rightEye"
    LEFT_EAR = "leftEar"
    RIGHT_EAR = "rightEar"


class JointSample(BaseModel):
    """Position and detection confidence of a single joint."""
    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    confidence: float = Field(ge=0.0, le=1.0)

    def is_usable(self, threshold: float) -> bool:
        """True when the confidence is strictly above ``threshold``."""
        return self.confidence > threshold


RawJoint = Union[JointSample, Mapping[str, float], tuple, list]


def _joint_key(name: Union[str, JointName]) -> str:
    return name.value if isinstance(name, JointName) else str(name)


def coerce_joint(value: RawJoint) -> JointSample:
    """Convert a pose-source joint value into a ``JointSample``.

    Accepts an existing ``JointSample``, an ``(x, y, confidence)`` sequence,
    or a mapping with ``x``, ``y`` and ``confidence`` keys.

    Raises:
        ValueError: If the value cannot be interpreted.
    """
    if isinstance(value, JointSample):
        return value
    if isinstance(value, Mapping):
        return JointSample(**value)
    if isinstance(value, (tuple, list)) and len(value) == 3:
        x, y, confidence = value
        return JointSample(x=x, y=y, confidence=confidence)
    raise ValueError(f"Cannot interpret joint value {value!r}")


def coerce_joints(raw_joints: Mapping[Any, RawJoint]) -> dict[str, JointSample]:
    """Normalize a raw joint map to ``{joint name: JointSample}``.

    Insertion order is preserved; ``JointName`` keys become their string
    values so unknown names from the pose source pass through unchanged.
    """
    return {_joint_key(name): coerce_joint(value) for name, value in raw_joints.items()}


class JointFrame(BaseModel):
    """One timestamped snapshot of detected joints. Immutable."""
    model_config = ConfigDict(frozen=True)

    timestamp: float = Field(description="Monotonic capture time in seconds")
    joints: dict[str, JointSample] = Field(default_factory=dict)

    @classmethod
    def from_raw(cls, raw_joints: Mapping[Any, RawJoint], timestamp: float) -> "JointFrame":
        """Build a frame from a raw pose-source joint map."""
        return cls(timestamp=timestamp, joints=coerce_joints(raw_joints))

    def usable_joints(self, threshold: float) -> dict[str, JointSample]:
        """Joints whose confidence is above ``threshold``, in insertion order."""
        return {
            name: sample for name, sample in self.joints.items()
            if sample.is_usable(threshold)
        }

    @property
    def joint_count(self) -> int:
        return len(self.joints)
