"""
Live capture pipeline.

Wires a pose stream source through the smoother into the recorder and
publishes what is happening on an observable ``CaptureState``.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional

from posecap.core.landmarks import LandmarkFrame
from posecap.core.pose_smoother import PoseSmoother
from posecap.core.recorder import Recorder, RecorderStatus
from posecap.core.stream import PoseStreamSource, StreamOptions
from posecap.data.take import Take
from posecap.errors import StreamFaultError
from posecap.utils.fps import FPSMeter

logger = logging.getLogger(__name__)


class CaptureStatus(str, Enum):
    IDLE = "idle"
    STARTING = "starting"
    CAPTURING = "capturing"
    STOPPING = "stopping"
    ERROR = "error"


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


class CaptureState:
    """
    Observable capture status.

    Subscribers are called with the state object after every change.
    """

    def __init__(self, joint_threshold: float = 0.5, bone_threshold: float = 0.6,
                 smoothing_enabled: bool = True):
        self.status = CaptureStatus.IDLE
        self.error: Optional[str] = None

        self.last_frame: Optional[LandmarkFrame] = None
        self.pose_fps = 0.0
        self.landmark_count = 0

        self.smoothing_enabled = smoothing_enabled
        self.joint_threshold = _clamp01(joint_threshold)
        self.bone_threshold = _clamp01(bone_threshold)

        self._subscribers: List[Callable[["CaptureState"], None]] = []

    def subscribe(self, callback: Callable[["CaptureState"], None]) -> Callable[[], None]:
        """Register a change callback. Returns an unsubscribe function."""
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _changed(self):
        for callback in list(self._subscribers):
            callback(self)

    def set_status(self, status: CaptureStatus):
        self.status = status
        self._changed()

    def set_error(self, message: Optional[str]):
        self.error = message
        self._changed()

    def set_frame(self, frame: LandmarkFrame, pose_fps: float):
        self.last_frame = frame
        self.pose_fps = pose_fps
        self.landmark_count = frame.num_landmarks
        self._changed()

    def set_smoothing(self, enabled: bool):
        self.smoothing_enabled = bool(enabled)
        self._changed()

    def set_thresholds(self, joint: float, bone: float):
        """Set confidence thresholds, clamped to [0, 1]."""
        self.joint_threshold = _clamp01(joint)
        self.bone_threshold = _clamp01(bone)
        self._changed()


class CapturePipeline:
    """
    Source -> smoother -> recorder.

    Frames flow through the pipeline whenever capture is running; they are
    only persisted while the recorder is recording.
    """

    def __init__(
        self,
        source: PoseStreamSource,
        recorder: Recorder,
        state: Optional[CaptureState] = None,
        min_cutoff: float = 1.0,
        beta: float = 0.007,
        d_cutoff: float = 1.0,
        on_frame: Optional[Callable[[LandmarkFrame], None]] = None,
    ):
        """
        Initialize the pipeline.

        Args:
            source: Frame producer
            recorder: Recorder receiving processed frames
            state: Shared capture state (a fresh one is created if omitted)
            min_cutoff: One Euro minimum cutoff for the smoother
            beta: One Euro speed coefficient
            d_cutoff: One Euro derivative cutoff
            on_frame: Optional callback for every processed frame
        """
        self.source = source
        self.recorder = recorder
        self.state = state if state is not None else CaptureState()
        self.on_frame = on_frame

        self._filter_params = dict(min_cutoff=min_cutoff, beta=beta, d_cutoff=d_cutoff)
        self._smoother: Optional[PoseSmoother] = None
        self._fps_meter = FPSMeter()
        self._unsubscribe: List[Callable[[], None]] = []

    async def ping(self) -> dict:
        try:
            return await self.source.ping()
        except Exception as e:
            self.state.set_error(str(e) or "Ping failed")
            raise

    # ------------------------------------------------------------------
    # Capture

    async def start_capture(
        self,
        model: str = "lite",
        target_fps: float = 30.0,
        emit_every_nth_frame: int = 1,
        debug: bool = False,
    ):
        """Subscribe to the source and start it with the current joint threshold."""
        if self.state.status in (CaptureStatus.CAPTURING, CaptureStatus.STARTING):
            return

        self.state.set_error(None)
        self.state.set_status(CaptureStatus.STARTING)

        try:
            self._detach()
            self._unsubscribe = [
                self.source.add_listener(self.handle_frame),
                self.source.add_error_listener(self._on_source_error),
            ]
            options = StreamOptions(
                model=model,
                min_confidence=self.state.joint_threshold,
                min_pose_confidence=self.state.joint_threshold,
                target_fps=target_fps,
                emit_every_nth_frame=emit_every_nth_frame,
                debug=debug,
            )
            await self.source.start(options)
        except Exception as e:
            self._detach()
            self._reset_processing()
            self.state.set_status(CaptureStatus.ERROR)
            self.state.set_error(str(e) or "Start failed")
            logger.error(f"Failed to start capture: {e}")
            raise

        self.state.set_status(CaptureStatus.CAPTURING)
        logger.info(f"Capture started (model={model}, target {target_fps} fps)")

    async def stop_capture(self) -> Optional[Take]:
        """
        Stop the source, finishing an active recording first.

        Also works after a source fault, so the take recorded so far is
        still finalized.

        Returns:
            The finalized take if a recording was running
        """
        if self.state.status not in (CaptureStatus.CAPTURING, CaptureStatus.ERROR):
            return None

        self.state.set_status(CaptureStatus.STOPPING)
        take = None
        try:
            if self.recorder.status is RecorderStatus.RECORDING:
                take = await self.recorder.stop_recording()
            await self.source.stop()
        finally:
            self._detach()
            self._reset_processing()
            self.state.set_status(CaptureStatus.IDLE)

        logger.info("Capture stopped")
        return take

    def handle_frame(self, frame: LandmarkFrame):
        """Process one incoming frame."""
        pose_fps = self._fps_meter.tick(frame.timestamp)

        if self._smoother is None:
            self._smoother = PoseSmoother(
                landmark_count=frame.num_landmarks,
                confidence_gate=self.state.joint_threshold,
                **self._filter_params,
            )
        self._smoother.confidence_gate = self.state.joint_threshold

        if self.state.smoothing_enabled:
            frame = frame.with_landmarks(self._smoother.filter(frame.landmarks, frame.timestamp))

        self.state.set_frame(frame, pose_fps)
        self.recorder.push_frame(frame)

        if self.on_frame is not None:
            self.on_frame(frame)

    def _on_source_error(self, error: StreamFaultError):
        self.state.set_status(CaptureStatus.ERROR)
        self.state.set_error(str(error))

    def _detach(self):
        for unsubscribe in self._unsubscribe:
            unsubscribe()
        self._unsubscribe = []

    def _reset_processing(self):
        self._smoother = None
        self._fps_meter.reset()

    # ------------------------------------------------------------------
    # Recording

    async def start_recording(
        self,
        name: Optional[str] = None,
        project_id: Optional[str] = None,
        chunk_frames: Optional[int] = None,
    ) -> Optional[Take]:
        """Start a take. Requires capture to be running."""
        if self.state.status is not CaptureStatus.CAPTURING:
            self.state.set_error("Start capture before recording.")
            return None
        if self.recorder.status is not RecorderStatus.IDLE:
            return None

        if name is None:
            name = f"Take {datetime.now().strftime('%H:%M:%S')}"
        return await self.recorder.start_recording(name, project_id, chunk_frames)

    async def stop_recording(self) -> Optional[Take]:
        if self.recorder.status is not RecorderStatus.RECORDING:
            return None
        return await self.recorder.stop_recording()
