import asyncio

import numpy as np
import pytest

from posecap.core.stream import MockPoseStream, StreamOptions, synthetic_frames
from posecap.errors import OptionsInvalidError, StreamFaultError


@pytest.mark.parametrize("kwargs", [
    {"min_confidence": 1.5},
    {"min_confidence": -0.1},
    {"min_pose_confidence": 2.0},
    {"model": "heavy"},
    {"target_fps": 0},
    {"emit_every_nth_frame": 0},
])
def test_invalid_options(kwargs):
    with pytest.raises(OptionsInvalidError):
        StreamOptions(**kwargs).validate()


def test_pose_confidence_defaults_to_min_confidence():
    assert StreamOptions(min_confidence=0.3).pose_confidence == 0.3
    assert StreamOptions(min_confidence=0.3, min_pose_confidence=0.7).pose_confidence == 0.7


def test_mock_ping():
    assert asyncio.run(MockPoseStream().ping()) == {"ok": True, "version": "mock-1.0"}


def test_start_rejects_invalid_options():
    stream = MockPoseStream()
    with pytest.raises(OptionsInvalidError):
        asyncio.run(stream.start(StreamOptions(min_confidence=3.0)))
    assert not stream.running


def test_emit_requires_running_stream():
    stream = MockPoseStream()
    received = []
    stream.add_listener(received.append)
    frame = synthetic_frames(1)[0]

    assert not stream.emit(frame)
    asyncio.run(stream.start(StreamOptions()))
    assert stream.emit(frame)
    asyncio.run(stream.stop())
    assert not stream.emit(frame)
    assert received == [frame]


def test_emit_every_nth_frame():
    stream = MockPoseStream()
    received = []
    stream.add_listener(received.append)
    asyncio.run(stream.start(StreamOptions(emit_every_nth_frame=3)))

    frames = synthetic_frames(7)
    for frame in frames:
        stream.emit(frame)
    assert [f.frame_id for f in received] == [0, 3, 6]


def test_unsubscribe():
    stream = MockPoseStream()
    received = []
    unsubscribe = stream.add_listener(received.append)
    unsubscribe()
    unsubscribe()
    asyncio.run(stream.start(StreamOptions()))
    stream.emit(synthetic_frames(1)[0])
    assert received == []


def test_fail_reports_stream_fault():
    stream = MockPoseStream()
    errors = []
    stream.add_error_listener(errors.append)

    cause = RuntimeError("camera unplugged")
    stream.fail(cause)

    assert len(errors) == 1
    assert isinstance(errors[0], StreamFaultError)
    assert errors[0].__cause__ is cause
    assert "camera unplugged" in str(errors[0])


def test_play_delivers_frames_in_order():
    stream = MockPoseStream()
    received = []
    stream.add_listener(received.append)

    async def run():
        await stream.start(StreamOptions())
        return await stream.play(synthetic_frames(10))

    assert asyncio.run(run()) == 10
    assert [f.frame_id for f in received] == list(range(10))


def test_synthetic_frames():
    frames = synthetic_frames(4, fps=20.0, start_ts=100.0, seed=7)
    assert [f.timestamp for f in frames] == [100.0, 150.0, 200.0, 250.0]
    assert all(f.num_landmarks == 33 for f in frames)
    assert np.allclose(frames[0].landmarks[3::4], 0.9)

    again = synthetic_frames(4, fps=20.0, start_ts=100.0, seed=7)
    assert np.array_equal(frames[2].landmarks, again[2].landmarks)
