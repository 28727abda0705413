"""Media inspection, compatibility rules and remote path layout."""

from vodstore.media.compatibility import (
    CompatibilityStatus,
    CompatibilityVerdict,
    STATUS_COLORS,
    STATUS_MESSAGES,
    classify,
)
from vodstore.media.paths import PathBuilder, generate_filename
from vodstore.media.probe import FfprobeAdapter, MediaProbeResult, ProbeAdapter, parse_probe_document

__all__ = [
    "CompatibilityStatus",
    "CompatibilityVerdict",
    "STATUS_COLORS",
    "STATUS_MESSAGES",
    "classify",
    "PathBuilder",
    "generate_filename",
    "FfprobeAdapter",
    "MediaProbeResult",
    "ProbeAdapter",
    "parse_probe_document",
]
