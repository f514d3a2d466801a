"""
Session orchestration for live and end-of-session form analysis.

Frame flow:
    raw joints → StabilityTracker → FrameBuffer (recent + session)
        live:  every LIVE_INTERVAL_S while recording → recent window
        full:  on stop → whole session, motion-adaptive sampling
    → encode_frames → reasoning service → AnalysisResult → subscribers

Ingestion (``on_frame``) never waits on the reasoning service: analyses run
on a small thread pool, at most one live and one full analysis at a time.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from enum import Enum
from typing import Any, Callable, Mapping, Optional, Sequence

from pydantic import BaseModel, ConfigDict

from ..agents.errors import AnalysisError, ReasoningServiceError
from ..agents.state import AnalysisContext, AnalysisMode, AnalysisResult
from .buffer import FrameBuffer
from .config import PipelineSettings
from .encoding import encode_frames
from .frames import JointFrame, JointSample, coerce_joints
from .posture import PostureMonitor, PostureReport
from .sampling import SamplingMode, sample_frames
from .stability import StabilityTracker
from .utils import coerce_result, failure_result, no_data_result, waiting_result

logger = logging.getLogger(__name__)

DEFAULT_EXERCISE = "Exercise"

Analyzer = Callable[[AnalysisContext, str], Any]
Subscriber = Callable[["SessionSnapshot"], None]


class SessionState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"


class SessionSnapshot(BaseModel):
    """Consistent, immutable view of the published session state."""
    model_config = ConfigDict(frozen=True)

    state: SessionState
    exercise: str
    frame_count: int
    joint_count: int
    detection_lost: bool
    live_result: AnalysisResult
    is_live_analyzing: bool
    is_analyzing: bool
    last_result: Optional[AnalysisResult] = None


class AnalysisOrchestrator:
    """
    Owns a recording session and decides when to analyze it.

    Example usage:
        orchestrator = AnalysisOrchestrator(analyzer=FormAnalysisAgent())
        orchestrator.start_new_session(exercise="Squats")
        for timestamp, joints in pose_stream:
            orchestrator.on_frame(joints, timestamp)
        result = orchestrator.stop_session_and_analyze("Squats").result()

    Args:
        analyzer: Reasoning service, called as ``analyzer(context, text)``
            and returning a mapping with ``repCount``, ``formScore``,
            ``feedback`` and ``issues``. Defaults to ``FormAnalysisAgent``.
        settings: Pipeline settings; defaults to ``PipelineSettings()``.
    """

    def __init__(
        self,
        analyzer: Optional[Analyzer] = None,
        settings: Optional[PipelineSettings] = None,
    ):
        if analyzer is None:
            from ..agents.form_agent import FormAnalysisAgent
            analyzer = FormAnalysisAgent()

        self.analyzer = analyzer
        self.settings = settings or PipelineSettings()

        self.buffer = FrameBuffer(self.settings.recent_window_size)
        self.tracker = StabilityTracker(
            loss_timeout_s=self.settings.loss_timeout_s,
            on_detection_lost=self._handle_detection_lost,
        )
        self.posture = PostureMonitor(visibility_threshold=self.settings.visibility_threshold)

        self._executor = ThreadPoolExecutor(
            max_workers=self.settings.max_workers,
            thread_name_prefix="formcoach_analysis",
        )
        # Separate pool so a hung service call can be abandoned on timeout
        # without occupying an analysis slot.
        self._call_executor = ThreadPoolExecutor(
            max_workers=self.settings.max_workers * 2,
            thread_name_prefix="formcoach_reasoning",
        )

        self._lock = threading.Lock()
        # Serializes ingestion (tracker, posture, live timer).
        self._frame_lock = threading.RLock()
        self._state = SessionState.IDLE
        self._exercise = DEFAULT_EXERCISE
        self._generation = 0
        self._last_live_at: Optional[float] = None
        # Generation of the analysis currently running, if any. Analyses left
        # over from a restarted session do not block the new one.
        self._live_in_flight: Optional[int] = None
        self._full_in_flight: Optional[int] = None
        self._full_future: Optional[Future] = None
        self._live_result = waiting_result()
        self._last_result: Optional[AnalysisResult] = None
        self._joint_count = 0
        self._subscribers: list[Subscriber] = []

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_recording(self) -> bool:
        return self._state is SessionState.RECORDING

    def start_new_session(self, exercise: Optional[str] = None) -> None:
        """Reset buffers and results and start recording.

        Calling this while already recording starts over.
        """
        with self._frame_lock, self._lock:
            self._generation += 1
            self.buffer.reset()
            self.tracker.reset()
            self.posture.reset()
            self._state = SessionState.RECORDING
            self._exercise = exercise or DEFAULT_EXERCISE
            self._last_live_at = None
            self._live_result = waiting_result()
            self._last_result = None
            self._joint_count = 0
        logger.info("Session %d started (exercise='%s')", self._generation, self._exercise)
        self._publish()

    def stop_session_and_analyze(self, exercise_label: Optional[str] = None) -> "Future[AnalysisResult]":
        """Stop recording and analyze the whole session in the background.

        Returns:
            Future resolving to the published ``AnalysisResult``. If a full
            analysis of this session is already running, its future is
            returned instead of starting another. One left over from a
            restarted session is ignored and its result discarded.
        """
        with self._lock:
            if self._full_in_flight == self._generation and self._full_future is not None:
                logger.info("Full analysis already in progress; reusing it.")
                return self._full_future

            self._state = SessionState.IDLE
            if exercise_label:
                self._exercise = exercise_label
            context_exercise = self._exercise
            frames = self.buffer.session()
            generation = self._generation
            future = self._executor.submit(self._run_full, frames, context_exercise, generation)
            self._full_future = future
            self._full_in_flight = generation

        logger.info(
            "Session %d stopped with %d frames; full analysis submitted.",
            generation, len(frames),
        )
        self._publish()
        return future

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting analyses and release the worker threads."""
        self._executor.shutdown(wait=wait)
        self._call_executor.shutdown(wait=wait, cancel_futures=not wait)

    def __enter__(self) -> "AnalysisOrchestrator":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown(wait=True)

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def on_frame(self, raw_joints: Mapping[Any, Any], now: float) -> dict[str, JointSample]:
        """Ingest one pose-source frame.

        Args:
            raw_joints: Joint name → ``JointSample``, ``(x, y, confidence)``
                or ``{"x", "y", "confidence"}``. May be empty.
            now: Capture timestamp, monotonic seconds.

        Concurrent callers are serialized, so frames are processed one at a
        time in call order.

        Returns:
            The stabilized joint map (empty once the person is lost).
        """
        joints = coerce_joints(raw_joints)
        with self._frame_lock:
            stabilized = self.tracker.update(joints, now)
            self._joint_count = len(stabilized)

            if stabilized:
                self.posture.update(stabilized)
                self.buffer.append(JointFrame(timestamp=now, joints=stabilized))

            if self.is_recording:
                self._maybe_trigger_live(now)
        return stabilized

    def posture_report(self) -> PostureReport:
        with self._frame_lock:
            return self.posture.report()

    def _handle_detection_lost(self, now: float) -> None:
        self.posture.reset()
        self._joint_count = 0
        self._publish()

    # ------------------------------------------------------------------
    # Live analysis
    # ------------------------------------------------------------------

    def _maybe_trigger_live(self, now: float) -> None:
        if self._last_live_at is None:
            self._last_live_at = now
            return
        if now - self._last_live_at < self.settings.live_interval_s:
            return
        if self.buffer.recent_count < self.settings.min_live_frames:
            return
        if self.trigger_live_analysis() is not None:
            self._last_live_at = now

    def trigger_live_analysis(self) -> Optional["Future[AnalysisResult]"]:
        """Analyze the recent window now.

        Returns:
            The submitted future, or None when a live analysis is already
            in flight (the trigger is dropped, not queued).
        """
        with self._lock:
            if self._live_in_flight == self._generation:
                logger.debug("Live analysis still in flight; skipping trigger.")
                return None
            frames = self.buffer.recent()
            generation = self._generation
            exercise = self._exercise
            future = self._executor.submit(self._run_live, frames, exercise, generation)
            self._live_in_flight = generation
        return future

    def _run_live(self, frames: Sequence[JointFrame], exercise: str, generation: int) -> AnalysisResult:
        try:
            sampled = sample_frames(frames, SamplingMode.LIVE)
            result = self._analyze_frames(sampled, exercise, AnalysisMode.LIVE)
        except Exception as e:
            logger.exception("Live analysis failed")
            result = failure_result(e)

        with self._lock:
            if self._live_in_flight == generation:
                self._live_in_flight = None
            current = generation == self._generation
            if current:
                self._live_result = result
        if not current:
            logger.debug("Discarding live result from a previous session.")
            return result
        self._publish()
        return result

    # ------------------------------------------------------------------
    # Full analysis
    # ------------------------------------------------------------------

    def _run_full(self, frames: Sequence[JointFrame], exercise: str, generation: int) -> AnalysisResult:
        try:
            s = self.settings
            sampled = sample_frames(
                frames,
                SamplingMode.FULL,
                full_sample_threshold=s.full_sample_threshold,
                motion_threshold=s.motion_threshold,
                high_motion_stride=s.high_motion_stride,
                low_motion_stride=s.low_motion_stride,
                threshold=s.encoding_threshold,
            )
            logger.info("Full analysis: %d of %d frames sampled.", len(sampled), len(frames))
            result = self._analyze_frames(sampled, exercise, AnalysisMode.FULL)
        except Exception as e:
            logger.exception("Full analysis failed")
            result = failure_result(e)

        with self._lock:
            if self._full_in_flight == generation:
                self._full_in_flight = None
            if generation == self._generation:
                self._last_result = result
        logger.info(
            "Full analysis complete: reps=%d score=%.1f issues=%d",
            result.rep_count, result.form_score, len(result.issues),
        )
        self._publish()
        return result

    # ------------------------------------------------------------------
    # Shared
    # ------------------------------------------------------------------

    def _analyze_frames(
        self,
        frames: Sequence[JointFrame],
        exercise: str,
        mode: AnalysisMode,
    ) -> AnalysisResult:
        text = encode_frames(frames, threshold=self.settings.encoding_threshold)
        if not text:
            logger.info("No usable joints for %s analysis; skipping service call.", mode.value)
            return waiting_result() if mode is AnalysisMode.LIVE else no_data_result()

        context = AnalysisContext(
            exercise=exercise,
            mode=mode,
            frame_count=text.count("\n") + 1,
            duration_s=max(0.0, frames[-1].timestamp - frames[0].timestamp),
        )
        return self._call_analyzer(context, text)

    def _call_analyzer(self, context: AnalysisContext, text: str) -> AnalysisResult:
        """Call the reasoning service with a bounded wait; never raises."""
        future = self._call_executor.submit(self.analyzer, context, text)
        try:
            response = future.result(timeout=self.settings.analysis_timeout_s)
        except FutureTimeoutError:
            future.cancel()
            logger.warning(
                "%s analysis timed out after %.1fs.",
                context.mode.value, self.settings.analysis_timeout_s,
            )
            return failure_result(ReasoningServiceError("Reasoning service timed out."))
        except AnalysisError as e:
            logger.warning("%s analysis failed (%s): %s", context.mode.value, e.category, e)
            return failure_result(e)
        except Exception as e:
            logger.exception("Reasoning service raised unexpectedly")
            return failure_result(e)
        return coerce_result(response)

    # ------------------------------------------------------------------
    # Publication
    # ------------------------------------------------------------------

    def subscribe(self, callback: Subscriber) -> None:
        """Register a callback receiving a ``SessionSnapshot`` after each update."""
        with self._lock:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        with self._lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

    def _snapshot_locked(self) -> SessionSnapshot:
        live_busy = self._live_in_flight == self._generation
        full_busy = self._full_in_flight == self._generation
        return SessionSnapshot(
            state=self._state,
            exercise=self._exercise,
            frame_count=len(self.buffer),
            joint_count=self._joint_count,
            detection_lost=self.tracker.detection_lost,
            live_result=self._live_result,
            is_live_analyzing=live_busy,
            is_analyzing=full_busy,
            last_result=self._last_result,
        )

    def snapshot(self) -> SessionSnapshot:
        with self._lock:
            return self._snapshot_locked()

    def _publish(self) -> None:
        with self._lock:
            snapshot = self._snapshot_locked()
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(snapshot)
            except Exception:
                logger.exception("Session subscriber %r failed", callback)
