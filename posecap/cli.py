"""
Command-line interface for posecap.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.table import Table

from posecap import __version__
from posecap.config.settings import Settings
from posecap.core.capture import CapturePipeline, CaptureState
from posecap.core.recorder import Recorder
from posecap.core.stream import MockPoseStream, synthetic_frames
from posecap.data.exporters.bvh_exporter import BVHWriter, estimate_fps
from posecap.data.exporters.json_exporter import import_take_json
from posecap.data.exporters.take_exporter import export_take
from posecap.data.repository import InMemoryTakeRepository
from posecap.errors import PosecapError

console = Console()
logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False):
    """Configure logging for the command line."""
    formatter = logging.Formatter(
        fmt='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%H:%M:%S'
    )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.WARNING)
    root_logger.addHandler(console_handler)

    logging.getLogger('posecap').setLevel(logging.DEBUG if verbose else logging.INFO)


def load_settings(path) -> Settings:
    settings = Settings.from_yaml(path) if path else Settings()
    return settings.check()


async def run_demo(settings: Settings, num_frames: int, fps: float, name: str, seed=None):
    """
    Record a synthetic take through the live pipeline and export it.

    Returns:
        (take, export result)
    """
    repository = InMemoryTakeRepository()
    recorder = Recorder(repository, chunk_frames=settings.recording.chunk_frames)
    state = CaptureState(
        joint_threshold=settings.stream.min_confidence,
        bone_threshold=settings.stream.bone_threshold,
        smoothing_enabled=settings.filtering.enabled,
    )
    source = MockPoseStream()
    pipeline = CapturePipeline(
        source,
        recorder,
        state,
        min_cutoff=settings.filtering.min_cutoff,
        beta=settings.filtering.beta,
        d_cutoff=settings.filtering.d_cutoff,
    )

    await pipeline.start_capture(
        model=settings.stream.model,
        target_fps=settings.stream.target_fps,
        emit_every_nth_frame=settings.stream.emit_every_nth_frame,
        debug=settings.stream.debug,
    )
    await pipeline.start_recording(name, settings.recording.project_id)
    await source.play(synthetic_frames(num_frames, fps=fps, seed=seed))
    take = await pipeline.stop_capture()

    result = await export_take(
        repository,
        take.id,
        settings.export.to_options(),
        settings.export.output_dir,
    )
    return take, result


def cmd_demo(args) -> int:
    settings = load_settings(args.config)
    if args.output_dir:
        settings.export.output_dir = args.output_dir
    if args.format:
        settings.export.format = args.format
    if args.no_smoothing:
        settings.filtering.enabled = False

    console.print(f"[bold cyan]Recording {args.frames} synthetic frames at {args.fps} fps...[/bold cyan]")
    take, result = asyncio.run(run_demo(settings, args.frames, args.fps, args.name, args.seed))

    console.print(f"[green]✓[/green] Take {take.id}: {take.frame_count} frames, "
                  f"{take.chunk_count} chunks, {take.avg_fps:.1f} fps")
    for path in result.paths:
        console.print(f"[green]✓[/green] Exported: {path}")
    return 0


def cmd_convert(args) -> int:
    take, frames = import_take_json(args.input)
    output = args.output or args.input.with_suffix(".bvh")

    BVHWriter(scale=args.scale).export(frames, output, fps=args.fps)
    console.print(f"[green]✓[/green] Wrote {len(frames)} frames of take {take.id} to {output}")
    return 0


def cmd_info(args) -> int:
    take, frames = import_take_json(args.input)

    table = Table(title=f"Take {take.id}")
    table.add_column("Field", style="cyan")
    table.add_column("Value")

    table.add_row("Name", take.name)
    if take.project_id:
        table.add_row("Project", take.project_id)
    table.add_row("Frames (metadata)", str(take.frame_count))
    table.add_row("Frames (document)", str(len(frames)))
    table.add_row("Chunks", str(take.chunk_count))
    table.add_row("Duration", f"{take.duration_ms / 1000.0:.2f} s")
    table.add_row("Average FPS", f"{take.avg_fps:.2f}")
    estimated = estimate_fps(frames)
    table.add_row("Timestamp FPS", f"{estimated:.2f}" if estimated else "-")
    if frames:
        table.add_row("Landmarks/frame", str(frames[0].num_landmarks))

    console.print(table)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="posecap",
        description="Pose landmark recording and BVH/JSON export",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Record a synthetic take and export JSON + BVH
  posecap demo --frames 300 --output-dir exports

  # Convert an exported take document to BVH
  posecap convert exports/take_123.json --output take.bvh

  # Summarize a take document
  posecap info exports/take_123.json
        """,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    sub = parser.add_subparsers(dest="command", required=True)

    demo = sub.add_parser("demo", help="Record and export a synthetic take")
    demo.add_argument("--config", type=Path, help="Configuration file (YAML)")
    demo.add_argument("--frames", type=int, default=120, help="Number of frames to record")
    demo.add_argument("--fps", type=float, default=30.0, help="Synthetic frame rate")
    demo.add_argument("--name", default="Demo take", help="Take name")
    demo.add_argument("--seed", type=int, help="Random seed for the synthetic jitter")
    demo.add_argument("--output-dir", type=Path, help="Export directory")
    demo.add_argument("--format", choices=["json", "bvh", "both"], help="Export format")
    demo.add_argument("--no-smoothing", action="store_true", help="Record raw landmarks")
    demo.set_defaults(func=cmd_demo)

    convert = sub.add_parser("convert", help="Convert a JSON take document to BVH")
    convert.add_argument("input", type=Path, help="Take document (.json)")
    convert.add_argument("--output", type=Path, help="Output BVH path")
    convert.add_argument("--fps", type=float, help="Frame rate (estimated when omitted)")
    convert.add_argument("--scale", type=float, default=100.0, help="Landmark to world scale")
    convert.set_defaults(func=cmd_convert)

    info = sub.add_parser("info", help="Summarize a JSON take document")
    info.add_argument("input", type=Path, help="Take document (.json)")
    info.set_defaults(func=cmd_info)

    return parser


def main(argv=None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.verbose)

    try:
        return args.func(args)
    except PosecapError as e:
        console.print(f"[red]Error:[/red] {e}")
        return 1
    except OSError as e:
        console.print(f"[red]I/O error:[/red] {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
