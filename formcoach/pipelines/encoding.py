"""
Compact text encoding of joint frames for the reasoning service.

Each frame with at least one confident joint becomes one line::

    t:0.4|lw:0.412,0.385|rw:0.598,0.391|ls:0.431,0.270

Joint names are abbreviated and numbers use fixed precision (3 decimals for
coordinates, 1 for the time offset) because request cost grows with length.
"""

from typing import Sequence

from .config import ENCODING_THRESHOLD
from .frames import JointFrame

JOINT_ABBREVIATIONS: dict[str, str] = {
    "leftWrist": "lw",
    "rightWrist": "rw",
    "leftElbow": "le",
    "rightElbow": "re",
    "leftShoulder": "ls",
    "rightShoulder": "rs",
    "neck": "n",
    "leftHip": "lh",
    "rightHip": "rh",
    "leftKnee": "lk",
    "rightKnee": "rk",
    "leftAnkle": "la",
    "rightAnkle": "ra",
    "root": "rt",
    "nose": "ns",
}

ABBREVIATION_TO_JOINT: dict[str, str] = {v: k for k, v in JOINT_ABBREVIATIONS.items()}


def abbreviate_joint(name: str) -> str:
    """Short code for ``name``; unknown names pass through unchanged."""
    return JOINT_ABBREVIATIONS.get(name, name)


def encode_frame(frame: JointFrame, origin: float, threshold: float = ENCODING_THRESHOLD) -> str:
    """Encode one frame relative to ``origin``; empty string if no joint qualifies."""
    parts = [
        f"{abbreviate_joint(name)}:{sample.x:.3f},{sample.y:.3f}"
        for name, sample in frame.joints.items()
        if sample.confidence > threshold
    ]
    if not parts:
        return ""
    return f"t:{frame.timestamp - origin:.1f}|" + "|".join(parts)


def encode_frames(frames: Sequence[JointFrame], threshold: float = ENCODING_THRESHOLD) -> str:
    """Encode a frame sequence, one line per frame with usable joints.

    Time offsets are measured from the first frame of ``frames`` (even if
    that frame itself is dropped). An empty result means there was no usable
    signal, not an error.
    """
    if not frames:
        return ""

    origin = frames[0].timestamp
    lines = (encode_frame(frame, origin, threshold) for frame in frames)
    return "\n".join(line for line in lines if line)


def parse_encoded_line(line: str) -> tuple[float, dict[str, tuple[float, float]]]:
    """Parse one encoded line back into ``(t, {abbreviation: (x, y)})``.

    Raises:
        ValueError: If the line is not in the encoded format.
    """
    fields = line.strip().split("|")
    if len(fields) < 2 or not fields[0].startswith("t:"):
        raise ValueError(f"Malformed encoded line: {line!r}")

    t = float(fields[0][2:])
    joints: dict[str, tuple[float, float]] = {}
    for field in fields[1:]:
        name, sep, coords = field.partition(":")
        x, comma, y = coords.partition(",")
        if not sep or not comma or not name:
            raise ValueError(f"Malformed joint field {field!r} in line {line!r}")
        joints[name] = (float(x), float(y))
    return t, joints
