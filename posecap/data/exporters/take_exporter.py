"""
Take export orchestration.

Reads a finished take from the repository and writes it out as a JSON take
document, a BVH animation, or both.
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from posecap.data.exporters.bvh_exporter import BVHWriter
from posecap.data.exporters.json_exporter import dumps_take_document
from posecap.data.repository import TakeRepository
from posecap.data.skeleton import DEFAULT_WORLD_SCALE
from posecap.errors import OptionsInvalidError, PersistenceError, PosecapError, TakeNotFoundError

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ("json", "bvh", "both")

DEFAULT_EXPORT_DIR = Path("exports")

_UNSAFE_CHARS = re.compile(r"[^\w\-\.]+")


def safe_name(name: str) -> str:
    """Replace runs of characters that are unsafe in file names with '_'."""
    return _UNSAFE_CHARS.sub("_", name)


@dataclass
class ExportOptions:
    """
    Export settings.

    Attributes:
        format: "json", "bvh" or "both"
        filename_prefix: Base file name (defaults to take_<id>)
        include_frames_in_json: Write frame data into the JSON document
        fps: BVH frame rate (estimated from timestamps when None)
        scale: Landmark -> world scale for BVH
        pretty_print: Indent the JSON document
    """
    format: str = "both"
    filename_prefix: Optional[str] = None
    include_frames_in_json: bool = True
    fps: Optional[float] = None
    scale: float = DEFAULT_WORLD_SCALE
    pretty_print: bool = False

    def validate(self):
        if self.format not in EXPORT_FORMATS:
            raise OptionsInvalidError(f"format must be one of {EXPORT_FORMATS}, got {self.format!r}")
        if self.scale <= 0:
            raise OptionsInvalidError(f"scale must be positive, got {self.scale}")

    @property
    def wants_json(self) -> bool:
        return self.format in ("json", "both")

    @property
    def wants_bvh(self) -> bool:
        return self.format in ("bvh", "both")


@dataclass
class ExportResult:
    export_dir: Path
    json_path: Optional[Path] = None
    bvh_path: Optional[Path] = None

    @property
    def paths(self) -> List[Path]:
        return [p for p in (self.json_path, self.bvh_path) if p is not None]


async def _write_text(path: Path, text: str):
    await asyncio.to_thread(path.write_text, text, encoding="utf-8")


async def export_take(
    repository: TakeRepository,
    take_id: str,
    options: Optional[ExportOptions] = None,
    export_dir: Optional[Path] = None,
) -> ExportResult:
    """
    Export one take.

    Args:
        repository: Repository holding the take
        take_id: Take to export
        options: Export settings
        export_dir: Output directory (created if missing)

    Returns:
        ExportResult with the paths that were written
    """
    if options is None:
        options = ExportOptions()
    options.validate()
    export_dir = Path(export_dir) if export_dir is not None else DEFAULT_EXPORT_DIR

    try:
        take, frames = await asyncio.gather(
            repository.get_take(take_id),
            repository.read_frames(take_id),
        )
    except PosecapError:
        raise
    except Exception as e:
        raise PersistenceError(f"Failed to read take {take_id}") from e

    if take is None:
        raise TakeNotFoundError(take_id)

    # Render everything first so a failing format leaves no partial output
    json_text = None
    bvh_text = None
    if options.wants_json:
        json_text = dumps_take_document(
            take, frames, options.include_frames_in_json, options.pretty_print
        )
    if options.wants_bvh:
        bvh_text = BVHWriter(scale=options.scale).write(frames, options.fps)

    await asyncio.to_thread(export_dir.mkdir, parents=True, exist_ok=True)

    base_name = safe_name(options.filename_prefix or f"take_{take_id}")
    result = ExportResult(export_dir=export_dir)

    if json_text is not None:
        result.json_path = export_dir / f"{base_name}.json"
        await _write_text(result.json_path, json_text)

    if bvh_text is not None:
        result.bvh_path = export_dir / f"{base_name}.bvh"
        await _write_text(result.bvh_path, bvh_text)

    logger.info(f"Exported take {take_id} ({len(frames)} frames) to {export_dir}")
    return result
