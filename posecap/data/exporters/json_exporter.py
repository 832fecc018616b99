"""
JSON take documents.

A take document is a lossless dump of a take:

    {"schema": "mocap.take.v1",
     "take": {...take metadata...},
     "frames": [{"ts": <ms>, "lm": [x, y, z, c, ...]}, ...]}
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from posecap.core.landmarks import LANDMARK_STRIDE, LandmarkFrame
from posecap.data.take import Take
from posecap.errors import TakeDocumentError

logger = logging.getLogger(__name__)

TAKE_DOCUMENT_SCHEMA = "mocap.take.v1"


class NumpyEncoder(json.JSONEncoder):
    """JSON encoder that handles numpy types."""

    def default(self, obj):
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        if isinstance(obj, np.integer):
            return int(obj)
        if isinstance(obj, np.floating):
            return float(obj)
        return super().default(obj)


def build_take_document(
    take: Take,
    frames: Sequence[LandmarkFrame],
    include_frames: bool = True,
) -> Dict[str, Any]:
    """Assemble the tagged document for a take."""
    return {
        "schema": TAKE_DOCUMENT_SCHEMA,
        "take": take.to_dict(),
        "frames": [
            {"ts": frame.timestamp, "lm": frame.landmarks.tolist()}
            for frame in frames
        ] if include_frames else [],
    }


def dumps_take_document(
    take: Take,
    frames: Sequence[LandmarkFrame],
    include_frames: bool = True,
    pretty_print: bool = False,
) -> str:
    document = build_take_document(take, frames, include_frames)
    return json.dumps(document, indent=2 if pretty_print else None, cls=NumpyEncoder)


def export_take_json(
    take: Take,
    frames: Sequence[LandmarkFrame],
    output_path: Path,
    include_frames: bool = True,
    pretty_print: bool = False,
) -> Path:
    """
    Write a take document to a file.

    Args:
        take: Take metadata
        frames: Frames in capture order
        output_path: Output file path
        include_frames: Write frame data (metadata only when False)
        pretty_print: Indent the output

    Returns:
        The written path
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(
        dumps_take_document(take, frames, include_frames, pretty_print),
        encoding="utf-8",
    )
    return output_path


def _parse_frame(entry: Any) -> Optional[LandmarkFrame]:
    if not isinstance(entry, dict):
        return None

    ts = entry.get("ts")
    lm = entry.get("lm")
    if isinstance(ts, bool) or not isinstance(ts, (int, float)):
        return None
    if not isinstance(lm, list) or len(lm) % LANDMARK_STRIDE != 0:
        return None
    if not all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in lm):
        return None

    return LandmarkFrame(timestamp=float(ts), landmarks=np.array(lm, dtype=np.float32))


def parse_take_document(data: Any) -> Tuple[Take, List[LandmarkFrame]]:
    """
    Restore a take and its frames from a decoded document.

    Malformed frame entries are skipped.
    """
    if not isinstance(data, dict) or data.get("schema") != TAKE_DOCUMENT_SCHEMA:
        raise TakeDocumentError(f"Not a {TAKE_DOCUMENT_SCHEMA} document")

    meta = data.get("take")
    if not isinstance(meta, dict) or not isinstance(meta.get("id"), str):
        raise TakeDocumentError("Take document has no take metadata")

    try:
        take = Take.from_dict(meta)
    except TypeError as e:
        raise TakeDocumentError(f"Invalid take metadata: {e}") from e

    frames = []
    entries = data.get("frames")
    if not isinstance(entries, list):
        entries = []
    for entry in entries:
        frame = _parse_frame(entry)
        if frame is not None:
            frames.append(frame)

    skipped = len(entries) - len(frames)
    if skipped:
        logger.warning(f"Skipped {skipped} malformed frames in take {take.id}")

    return take, frames


def import_take_json(file_path: Path) -> Tuple[Take, List[LandmarkFrame]]:
    """
    Import a take document from a JSON file.

    Args:
        file_path: Path to JSON file

    Returns:
        (take, frames)
    """
    file_path = Path(file_path)
    try:
        with open(file_path, 'r', encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise TakeDocumentError(f"{file_path.name} is not valid JSON: {e}") from e

    return parse_take_document(data)
