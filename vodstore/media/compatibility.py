"""Decide whether a file can be streamed as-is or needs transcoding first.

Two conversion rules exist side by side. The catalog rule, used when listing a
destination, also requires a compatible container format. The upload rule,
used when answering an upload, only looks at the extension and the codec.
They agree for every input the extension allowlist admits today, but they are
kept apart until the intended policy is settled.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from .probe import MediaProbeResult

COMPATIBLE_CODECS: frozenset[str] = frozenset({"h264", "h265", "hevc"})
COMPATIBLE_FORMATS: frozenset[str] = frozenset({"mp4"})


class CompatibilityStatus(str, enum.Enum):
    compatible = "compatible"
    needs_conversion = "needs_conversion"
    bitrate_high = "bitrate_high"


STATUS_MESSAGES: dict[CompatibilityStatus, str] = {
    CompatibilityStatus.compatible: "Compatible",
    CompatibilityStatus.needs_conversion: "Needs conversion",
    CompatibilityStatus.bitrate_high: "High bitrate",
}

STATUS_COLORS: dict[CompatibilityStatus, str] = {
    CompatibilityStatus.compatible: "green",
    CompatibilityStatus.needs_conversion: "red",
    CompatibilityStatus.bitrate_high: "yellow",
}


@dataclass(frozen=True, slots=True)
class CompatibilityVerdict:
    is_mp4: bool
    codec_compatible: bool
    format_compatible: bool
    bitrate_exceeds_limit: bool
    bitrate_ceiling_kbps: int

    @property
    def needs_conversion(self) -> bool:
        """Catalog rule: extension, codec and container must all be streamable."""
        return not self.is_mp4 or not self.codec_compatible or not self.format_compatible

    @property
    def upload_needs_conversion(self) -> bool:
        """Upload rule: extension and codec only."""
        return not self.is_mp4 or not self.codec_compatible

    @property
    def status(self) -> CompatibilityStatus:
        return _status(self.needs_conversion, self.bitrate_exceeds_limit)

    @property
    def upload_status(self) -> CompatibilityStatus:
        return _status(self.upload_needs_conversion, self.bitrate_exceeds_limit)


def _status(needs_conversion: bool, bitrate_exceeds_limit: bool) -> CompatibilityStatus:
    if needs_conversion:
        return CompatibilityStatus.needs_conversion
    if bitrate_exceeds_limit:
        return CompatibilityStatus.bitrate_high
    return CompatibilityStatus.compatible


def normalise_extension(extension: str) -> str:
    return extension.strip().lower().lstrip(".")


def is_compatible_codec(codec: str | None) -> bool:
    return (codec or "").strip().lower() in COMPATIBLE_CODECS


def is_compatible_format(extension: str) -> bool:
    return normalise_extension(extension) in COMPATIBLE_FORMATS


def classify(probe: MediaProbeResult, extension: str, bitrate_ceiling_kbps: int) -> CompatibilityVerdict:
    return CompatibilityVerdict(
        is_mp4=extension.strip().lower() == ".mp4",
        codec_compatible=is_compatible_codec(probe.codec),
        format_compatible=is_compatible_format(extension),
        bitrate_exceeds_limit=probe.bitrate_kbps > bitrate_ceiling_kbps,
        bitrate_ceiling_kbps=bitrate_ceiling_kbps,
    )


__all__ = [
    "COMPATIBLE_CODECS",
    "COMPATIBLE_FORMATS",
    "CompatibilityStatus",
    "CompatibilityVerdict",
    "STATUS_COLORS",
    "STATUS_MESSAGES",
    "classify",
    "is_compatible_codec",
    "is_compatible_format",
    "normalise_extension",
]
