"""
Session frame buffers.

``FrameBuffer`` keeps two windows over the stabilized frame stream: a bounded
``recent`` window for live feedback and an unbounded ``session`` window for
the end-of-session analysis. Readers always get snapshots.
"""

import logging
import threading
from collections import deque

from .config import RECENT_WINDOW_SIZE
from .frames import JointFrame

logger = logging.getLogger(__name__)


class FrameBuffer:
    """Recent (bounded FIFO) and session (unbounded) frame windows."""

    def __init__(self, recent_capacity: int = RECENT_WINDOW_SIZE):
        if recent_capacity < 1:
            raise ValueError(f"recent_capacity must be >= 1, got {recent_capacity}.")
        self.recent_capacity = recent_capacity
        self._recent: deque[JointFrame] = deque(maxlen=recent_capacity)
        self._session: list[JointFrame] = []
        self._lock = threading.Lock()

    def append(self, frame: JointFrame) -> bool:
        """Add a frame to both windows.

        Frames older than the last buffered frame are rejected so both
        windows stay in timestamp order.

        Returns:
            True if the frame was buffered.
        """
        with self._lock:
            if self._session and frame.timestamp < self._session[-1].timestamp:
                logger.warning(
                    "Dropping out-of-order frame t=%.3f (last t=%.3f)",
                    frame.timestamp, self._session[-1].timestamp,
                )
                return False
            self._session.append(frame)
            self._recent.append(frame)
        return True

    def reset(self) -> None:
        with self._lock:
            self._recent.clear()
            self._session.clear()

    def recent(self) -> tuple[JointFrame, ...]:
        """Snapshot of the recent window, oldest first."""
        with self._lock:
            return tuple(self._recent)

    def session(self) -> tuple[JointFrame, ...]:
        """Snapshot of every frame buffered this session."""
        with self._lock:
            return tuple(self._session)

    @property
    def recent_count(self) -> int:
        with self._lock:
            return len(self._recent)

    def __len__(self) -> int:
        with self._lock:
            return len(self._session)
