from __future__ import annotations

import json
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from vodstore.core.errors import ProbeError

UNKNOWN_CODEC = "unknown"


@dataclass(frozen=True, slots=True)
class MediaProbeResult:
    """Technical metadata extracted from a media file."""

    duration_s: int = 0
    format_name: str = "unknown"
    codec: str = UNKNOWN_CODEC
    bitrate_kbps: int = 0
    width: int = 0
    height: int = 0

    @classmethod
    def unknown(cls, format_name: str = "unknown") -> "MediaProbeResult":
        return cls(format_name=format_name or "unknown")


class ProbeAdapter(ABC):
    @abstractmethod
    def probe(self, path: Path) -> MediaProbeResult: ...


class FfprobeAdapter(ProbeAdapter):
    """Runs ``ffprobe`` against a local file with a bounded timeout."""

    def __init__(self, binary: str = "ffprobe", timeout_s: float = 30.0):
        self.binary = binary
        self.timeout_s = timeout_s

    def probe(self, path: Path) -> MediaProbeResult:
        raw = self._run(path)
        return parse_probe_document(raw, fallback_format=path.suffix.lstrip(".").lower())

    def _run(self, target: Path) -> Dict[str, Any]:
        command = [
            self.binary,
            "-v",
            "error",
            "-print_format",
            "json",
            "-show_format",
            "-show_streams",
            str(target),
        ]
        try:
            proc = subprocess.run(
                command,
                check=True,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                timeout=self.timeout_s,
            )
        except subprocess.TimeoutExpired as exc:
            raise ProbeError(f"probe timed out after {self.timeout_s}s", code="probe_timeout") from exc
        except subprocess.CalledProcessError as exc:
            stderr = (exc.stderr or "").strip()
            raise ProbeError(stderr or f"probe exited with status {exc.returncode}") from exc
        except OSError as exc:
            raise ProbeError(f"probe could not be started: {exc}", code="probe_unavailable") from exc

        try:
            payload = json.loads(proc.stdout)
        except json.JSONDecodeError as exc:
            raise ProbeError("probe output is not valid JSON", code="probe_unparseable") from exc
        if not isinstance(payload, dict):
            raise ProbeError("probe output is not a JSON object", code="probe_unparseable")
        return payload


def parse_probe_document(raw: Dict[str, Any], *, fallback_format: str = "unknown") -> MediaProbeResult:
    """Reduce an ffprobe JSON document to a :class:`MediaProbeResult`.

    The container bitrate wins; when it is missing or zero the primary video
    stream's bitrate is used instead.
    """
    format_info = raw.get("format") or {}

    duration_s = _parse_duration(format_info.get("duration"))
    bitrate_kbps = _parse_bitrate_kbps(format_info.get("bit_rate"))
    format_name = format_info.get("format_name") or fallback_format or "unknown"

    codec = UNKNOWN_CODEC
    width = height = 0
    video_streams = _video_streams(raw.get("streams") or [])
    if video_streams:
        stream = _select_video_stream(video_streams)
        codec = stream.get("codec_name") or UNKNOWN_CODEC
        width = _int_or_zero(stream.get("width"))
        height = _int_or_zero(stream.get("height"))
        if not bitrate_kbps:
            bitrate_kbps = _parse_bitrate_kbps(stream.get("bit_rate"))

    return MediaProbeResult(
        duration_s=duration_s,
        format_name=str(format_name),
        codec=str(codec),
        bitrate_kbps=bitrate_kbps,
        width=width,
        height=height,
    )


def _parse_duration(raw_value: Any) -> int:
    if raw_value in (None, "N/A", ""):
        return 0
    try:
        return max(int(float(raw_value)), 0)
    except (TypeError, ValueError):
        return 0


def _parse_bitrate_kbps(raw_value: Any) -> int:
    if raw_value in (None, "N/A", ""):
        return 0
    try:
        return max(int(raw_value) // 1000, 0)
    except (TypeError, ValueError):
        return 0


def _int_or_zero(value: Any) -> int:
    if value in (None, "N/A", ""):
        return 0
    try:
        return max(int(value), 0)
    except (TypeError, ValueError):
        return 0


def _video_streams(streams: Iterable[Any]) -> List[Dict[str, Any]]:
    return [
        stream
        for stream in streams
        if isinstance(stream, dict) and str(stream.get("codec_type", "")).lower() == "video"
    ]


def _disposition_default(disposition: Any) -> Optional[bool]:
    if not isinstance(disposition, dict):
        return None
    default_value = disposition.get("default")
    if default_value is None:
        return None
    return bool(default_value)


def _select_video_stream(streams: List[Dict[str, Any]]) -> Dict[str, Any]:
    default_streams = [stream for stream in streams if _disposition_default(stream.get("disposition")) is True]
    if default_streams:
        return default_streams[0]

    def score(item: Dict[str, Any]) -> int:
        return _int_or_zero(item.get("width")) * _int_or_zero(item.get("height"))

    return max(streams, key=score)


__all__ = [
    "MediaProbeResult",
    "ProbeAdapter",
    "FfprobeAdapter",
    "parse_probe_document",
    "UNKNOWN_CODEC",
]
