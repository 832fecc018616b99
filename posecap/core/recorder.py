"""
Chunked take recorder.

Frames pushed while recording are buffered and written to the take
repository in chunks. Writes are serialized: at most one flush is in flight
and requests arriving meanwhile make it loop once more instead of starting
a second writer, so chunk numbers stay gapless and ordered.
"""

import asyncio
import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, List, Optional

from posecap.core.landmarks import LandmarkFrame
from posecap.data.repository import TakeRepository
from posecap.data.take import Take
from posecap.errors import OptionsInvalidError, PersistenceError, PosecapError

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_FRAMES = 30


class RecorderStatus(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    STOPPING = "stopping"


@dataclass(frozen=True)
class RecorderState:
    """Snapshot of the recorder, as handed to listeners."""
    status: RecorderStatus = RecorderStatus.IDLE
    take: Optional[Take] = None
    buffered: int = 0
    flushed_chunks: int = 0


RecorderListener = Callable[[RecorderState], None]


class Recorder:
    """
    Records one take at a time into a ``TakeRepository``.

    Lifecycle: idle -> recording -> stopping -> idle. Calls made in the
    wrong state are ignored rather than raising, so capture callbacks can
    push frames unconditionally.
    """

    def __init__(self, repository: TakeRepository, chunk_frames: int = DEFAULT_CHUNK_FRAMES):
        """
        Initialize the recorder.

        Args:
            repository: Persistence port receiving the chunks
            chunk_frames: Default buffer size that triggers a background flush
        """
        self.repository = repository
        self.default_chunk_frames = chunk_frames

        self._status = RecorderStatus.IDLE
        self._starting = False
        self._take: Optional[Take] = None
        self._chunk_frames = chunk_frames

        self._buffer: List[LandmarkFrame] = []
        self._in_flight: List[LandmarkFrame] = []
        self._next_chunk = 0
        self._flushed_chunks = 0
        self._first_ts: Optional[float] = None
        self._last_ts: Optional[float] = None

        self._flight: Optional[asyncio.Task] = None
        self._flush_again = False

        self._listeners: List[RecorderListener] = []

    # ------------------------------------------------------------------
    # State

    @property
    def status(self) -> RecorderStatus:
        return self._status

    @property
    def take(self) -> Optional[Take]:
        return self._take

    @property
    def buffered_count(self) -> int:
        """Frames not yet persisted, including a chunk currently being written."""
        return len(self._buffer) + len(self._in_flight)

    @property
    def flushed_chunks(self) -> int:
        return self._flushed_chunks

    @property
    def is_flushing(self) -> bool:
        return self._flight is not None and not self._flight.done()

    @property
    def state(self) -> RecorderState:
        if self._status is RecorderStatus.IDLE:
            return RecorderState()
        return RecorderState(
            status=self._status,
            take=self._take,
            buffered=self.buffered_count,
            flushed_chunks=self._flushed_chunks,
        )

    def add_listener(self, callback: RecorderListener) -> Callable[[], None]:
        """Register a state listener. Returns a function that removes it."""
        self._listeners.append(callback)

        def unsubscribe():
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _notify(self):
        state = self.state
        for callback in list(self._listeners):
            try:
                callback(state)
            except Exception:
                logger.exception("Recorder listener failed")

    def _set_status(self, status: RecorderStatus):
        self._status = status
        self._notify()

    # ------------------------------------------------------------------
    # Lifecycle

    async def start_recording(
        self,
        name: Optional[str] = None,
        project_id: Optional[str] = None,
        chunk_frames: Optional[int] = None,
    ) -> Optional[Take]:
        """
        Create a take and start buffering frames.

        Returns:
            The new take, or None if the recorder was not idle
        """
        if self._status is not RecorderStatus.IDLE or self._starting:
            logger.debug(f"start_recording ignored in state {self._status.value}")
            return None

        if chunk_frames is None:
            chunk_frames = self.default_chunk_frames
        if chunk_frames < 1:
            raise OptionsInvalidError(f"chunk_frames must be >= 1, got {chunk_frames}")

        self._starting = True
        try:
            take = await self.repository.create_take(name, project_id)
        finally:
            self._starting = False

        self._reset()
        self._take = take
        self._chunk_frames = chunk_frames
        logger.info(f"Recording take {take.id} ({take.name})")
        self._set_status(RecorderStatus.RECORDING)
        return take

    def push_frame(self, frame: LandmarkFrame):
        """
        Buffer one frame. Ignored unless recording.

        Once the buffer holds a full chunk a flush is scheduled on the
        running loop without waiting for it.
        """
        if self._status is not RecorderStatus.RECORDING:
            return

        self._buffer.append(frame)
        if self._first_ts is None:
            self._first_ts = frame.timestamp
        self._last_ts = frame.timestamp

        if len(self._buffer) >= self._chunk_frames:
            try:
                self._ensure_flight()
            except RuntimeError:
                # No running loop; the frames wait for the next explicit flush
                pass

    async def flush(self):
        """
        Persist everything buffered so far.

        Joins the flush already in flight if there is one. Repository
        failures propagate; the frames of the failed chunk go back to the
        front of the buffer.
        """
        if self._take is None:
            return
        await asyncio.shield(self._ensure_flight())

    async def stop_recording(self) -> Optional[Take]:
        """
        Drain the buffer, finalize the take and return to idle.

        If draining or finalizing fails the recorder goes back to
        ``recording`` with its buffer intact and the error propagates.

        Returns:
            The finalized take, or None if the recorder was not recording
        """
        if self._status is not RecorderStatus.RECORDING:
            return None

        self._set_status(RecorderStatus.STOPPING)
        take_id = self._take.id
        try:
            while self._buffer or self.is_flushing:
                await self.flush()
            take = await self._finalize(take_id)
        except BaseException:
            self._set_status(RecorderStatus.RECORDING)
            raise

        logger.info(
            f"Stopped take {take_id}: {take.frame_count} frames in "
            f"{self._flushed_chunks} chunks, {take.avg_fps:.1f} fps"
        )
        self._reset()
        self._set_status(RecorderStatus.IDLE)
        return take

    # ------------------------------------------------------------------
    # Flushing

    def _ensure_flight(self) -> asyncio.Task:
        if self.is_flushing:
            self._flush_again = True
            return self._flight

        loop = asyncio.get_running_loop()
        self._flush_again = False
        self._flight = loop.create_task(self._run_flight())
        self._flight.add_done_callback(self._on_flight_done)
        return self._flight

    async def _run_flight(self):
        while True:
            self._flush_again = False
            await self._drain()
            if not self._flush_again:
                break

    def _on_flight_done(self, task: asyncio.Task):
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Chunk flush failed: {exc}")

    async def _drain(self):
        if not self._buffer or self._take is None:
            return

        batch = self._buffer
        self._buffer = []
        self._in_flight = batch
        take_id = self._take.id
        chunk_number = self._next_chunk

        written = False
        try:
            await asyncio.sleep(0)
            info = await self.repository.append_frames(take_id, chunk_number, batch)
            written = True
        except PosecapError:
            raise
        except Exception as exc:
            raise PersistenceError(
                f"Failed to write chunk {chunk_number} of take {take_id}"
            ) from exc
        finally:
            self._in_flight = []
            if not written:
                self._buffer = batch + self._buffer

        self._next_chunk += 1
        self._flushed_chunks += 1
        if self._take is not None and self._take.id == take_id:
            self._take = replace(
                self._take,
                frame_count=self._take.frame_count + info.frame_count,
                chunk_count=max(self._take.chunk_count, chunk_number + 1),
            )
        logger.debug(f"Wrote chunk {chunk_number} of take {take_id} ({len(batch)} frames)")
        self._notify()

    async def _finalize(self, take_id: str) -> Take:
        first_ts = self._first_ts if self._first_ts is not None else 0.0
        last_ts = self._last_ts if self._last_ts is not None else first_ts
        try:
            return await self.repository.finalize_take(take_id, first_ts, last_ts)
        except PosecapError:
            raise
        except Exception as exc:
            raise PersistenceError(f"Failed to finalize take {take_id}") from exc

    def _reset(self):
        self._take = None
        self._buffer = []
        self._in_flight = []
        self._next_chunk = 0
        self._flushed_chunks = 0
        self._first_ts = None
        self._last_ts = None
        self._flush_again = False
