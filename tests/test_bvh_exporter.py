import numpy as np
import pytest

from posecap.core.landmarks import LANDMARK_STRIDE, LandmarkFrame
from posecap.data.exporters.bvh_exporter import BVHWriter, estimate_fps, format_value
from posecap.data.skeleton import MP33
from posecap.errors import EmptyExportError

# 6 root channels + 15 joints x 3 rotation channels
VALUES_PER_FRAME = 6 + 15 * 3


def motion_rows(text):
    lines = text.strip().splitlines()
    start = lines.index("MOTION") + 3
    return [[float(v) for v in line.split()] for line in lines[start:]]


def set_point(buf, index, x, y, z=0.0):
    o = index * LANDMARK_STRIDE
    buf[o:o + 3] = (x, y, z)


def test_empty_take_raises():
    with pytest.raises(EmptyExportError):
        BVHWriter().write([])


def test_single_frame_has_zero_motion(rest_landmarks):
    text = BVHWriter().write([LandmarkFrame(0.0, rest_landmarks)])
    motion = text.strip().splitlines()[-1].split()
    assert len(motion) == VALUES_PER_FRAME
    assert all(v == "0.000000" for v in motion)


def test_hierarchy_layout(rest_landmarks):
    text = BVHWriter().write([LandmarkFrame(0.0, rest_landmarks)])
    lines = text.splitlines()

    assert lines[0] == "HIERARCHY"
    assert lines[1] == "ROOT Hips"
    assert lines[3] == "  OFFSET 0.000000 0.000000 0.000000"
    assert lines[4] == "  CHANNELS 6 Xposition Yposition Zposition Zrotation Xrotation Yrotation"
    assert lines[5] == "  JOINT Spine"
    assert sum(1 for line in lines if line.strip().startswith("JOINT ")) == 15
    assert sum(1 for line in lines if line.strip() == "End Site") == 5
    assert sum(1 for line in lines if line.strip() == "CHANNELS 3 Zrotation Xrotation Yrotation") == 15
    assert text.count("{") == text.count("}")


def test_offsets_are_rest_pose_differences(rest_landmarks):
    text = BVHWriter().write([LandmarkFrame(0.0, rest_landmarks)])
    lines = [line.strip() for line in text.splitlines()]

    i = lines.index("JOINT LeftKnee")
    offset = [float(v) for v in lines[i + 2].split()[1:]]
    # Left hip (0.45, 0.60) -> left knee (0.45, 0.78): 18 units down
    assert offset == pytest.approx([0.0, -18.0, 0.0], abs=1e-3)


def test_frame_rate_from_caller_or_timestamps(rest_landmarks):
    frames = [LandmarkFrame(i * 40.0, rest_landmarks) for i in range(5)]
    assert "Frame Time: 0.040000" in BVHWriter().write(frames)
    assert "Frame Time: 0.016667" in BVHWriter().write(frames, fps=60)
    assert "Frame Time: 0.033333" in BVHWriter().write(frames[:1])
    assert "Frames: 5" in BVHWriter().write(frames)


def test_estimate_fps():
    frames = [LandmarkFrame(ts, np.zeros(4)) for ts in (0.0, 50.0, 100.0)]
    assert estimate_fps(frames) == pytest.approx(20.0)
    assert estimate_fps(frames[:1]) is None
    assert estimate_fps([LandmarkFrame(5.0, np.zeros(4))] * 3) is None


def test_root_translation(rest_landmarks):
    moved = rest_landmarks.copy()
    moved[0::LANDMARK_STRIDE] += 0.1
    text = BVHWriter().write([LandmarkFrame(0.0, rest_landmarks), LandmarkFrame(33.0, moved)])

    rows = motion_rows(text)
    assert rows[1][:3] == pytest.approx([10.0, 0.0, 0.0], abs=1e-3)
    assert rows[1][3:] == pytest.approx([0.0] * (VALUES_PER_FRAME - 3), abs=1e-3)


def test_bone_rotation_uses_first_child(rest_landmarks):
    rest = rest_landmarks.copy()
    set_point(rest, MP33.LEFT_ELBOW, 0.38, 0.45)
    set_point(rest, MP33.LEFT_WRIST, 0.38, 0.58)

    # Forearm swings from pointing down to pointing along +x
    raised = rest.copy()
    set_point(raised, MP33.LEFT_WRIST, 0.51, 0.45)

    text = BVHWriter().write([LandmarkFrame(0.0, rest), LandmarkFrame(33.0, raised)])
    row = motion_rows(text)[1]

    order = ["Hips", "Spine", "Neck", "Head", "LeftShoulder", "LeftElbow"]
    base = 3 + order.index("LeftElbow") * 3
    assert row[base:base + 3] == pytest.approx([90.0, 0.0, 0.0], abs=1e-3)

    others = row[3:base] + row[base + 3:]
    assert others == pytest.approx([0.0] * len(others), abs=1e-3)


def test_malformed_landmarks_do_not_break_export(rest_landmarks):
    broken = rest_landmarks.copy()
    broken[MP33.LEFT_KNEE * LANDMARK_STRIDE] = np.nan
    frames = [
        LandmarkFrame(0.0, rest_landmarks),
        LandmarkFrame(33.0, broken),
        LandmarkFrame(66.0, rest_landmarks[:40]),
    ]
    text = BVHWriter().write(frames)

    assert "nan" not in text.lower()
    rows = motion_rows(text)
    assert len(rows) == 3
    assert all(len(row) == VALUES_PER_FRAME for row in rows)


def test_format_value():
    assert format_value(1.5) == "1.500000"
    assert format_value(-3e-9) == "0.000000"
    assert format_value(float("inf")) == "0.000000"
    assert format_value(float("nan")) == "0.000000"


def test_export_writes_file(tmp_path, rest_landmarks):
    path = BVHWriter().export([LandmarkFrame(0.0, rest_landmarks)], tmp_path / "out" / "take.bvh")
    assert path.exists()
    assert path.read_text().startswith("HIERARCHY")
