from __future__ import annotations

import argparse
import subprocess
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Optional

from rich.console import Console

from .core.config import get_settings
from .core.errors import ProbeError
from .media.compatibility import STATUS_MESSAGES, classify
from .media.probe import FfprobeAdapter

console = Console()


def main(argv: Optional[list[str]] = None) -> None:
    """The main entry point for the CLI.

    Args:
        argv: The command-line arguments.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if getattr(args, "check", False):
        _run_environment_check()
        return

    if not hasattr(args, "func"):
        parser.print_help()
        sys.exit(1)

    args.func(args)


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI.

    Returns:
        The argument parser.
    """
    parser = argparse.ArgumentParser(description="vodstore media developer CLI")
    parser.add_argument("--check", action="store_true", help="Validate that ffprobe is runnable")

    subparsers = parser.add_subparsers(dest="command")

    probe_parser = subparsers.add_parser("probe", help="Probe a file and print its streaming compatibility verdict")
    probe_parser.add_argument("--file", required=True, help="Path to the source media file")
    probe_parser.add_argument(
        "--bitrate-ceiling",
        type=int,
        default=None,
        help="Account bitrate ceiling in kbps (defaults to the configured default).",
    )
    probe_parser.set_defaults(func=_cmd_probe)
    return parser


def _cmd_probe(args: argparse.Namespace) -> None:
    """Probe a media file and print metadata plus the verdict.

    Args:
        args: The command-line arguments.
    """
    settings = get_settings()
    media_path = Path(args.file).expanduser().resolve()
    if not media_path.exists():
        console.print(f"[red]File not found: {media_path}[/]")
        sys.exit(2)

    adapter = FfprobeAdapter(binary=settings.probe_binary, timeout_s=settings.probe_timeout_s)
    try:
        probe = adapter.probe(media_path)
    except ProbeError as exc:
        console.print(f"[red]ffprobe failed:[/] {exc.message}")
        sys.exit(3)

    ceiling = args.bitrate_ceiling or settings.default_bitrate_kbps
    verdict = classify(probe, media_path.suffix.lower(), ceiling)
    console.print_json(
        data={
            "file": str(media_path),
            "probe": asdict(probe),
            "verdict": {
                "is_mp4": verdict.is_mp4,
                "codec_compatible": verdict.codec_compatible,
                "format_compatible": verdict.format_compatible,
                "bitrate_exceeds_limit": verdict.bitrate_exceeds_limit,
                "needs_conversion": verdict.needs_conversion,
                "status": verdict.status.value,
                "message": STATUS_MESSAGES[verdict.status],
                "bitrate_ceiling_kbps": ceiling,
            },
        }
    )


def _run_environment_check() -> None:
    """Check for the presence of required external dependencies."""
    settings = get_settings()
    checks = {"ffprobe": [settings.probe_binary, "-version"]}
    results = {}
    for label, cmd in checks.items():
        try:
            subprocess.run(cmd, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL, check=True, timeout=10)
            results[label] = True
        except (OSError, subprocess.SubprocessError):
            results[label] = False

    console.rule("[bold]Environment Check")
    for label, ok in results.items():
        console.print(f"[bold]{label}[/]: {'✅' if ok else '❌'}")

    if not all(results.values()):
        console.print("[red]Missing dependencies detected. Install ffmpeg to provide ffprobe.[/]")
        sys.exit(1)
    console.print("[green]Environment looks good![/]")


if __name__ == "__main__":
    main()
