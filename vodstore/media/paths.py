from __future__ import annotations

import re
import time
from dataclasses import dataclass, replace
from pathlib import PurePosixPath
from typing import Optional

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9.-]")
_REPEATED_UNDERSCORES = re.compile(r"_{2,}")


def _segment(value: str) -> str:
    cleaned = value.replace("\\", "/").strip().strip("/")
    if not cleaned or cleaned in {".", ".."} or "/" in cleaned:
        raise ValueError(f"invalid path segment: {value!r}")
    return cleaned


def _root(value: str) -> str:
    cleaned = "/" + value.replace("\\", "/").strip().strip("/")
    return cleaned.rstrip("/") or "/"


@dataclass(frozen=True, slots=True)
class PathBuilder:
    """Canonical layout ``<root>/<login>/<destination>/<filename>`` on a streaming host.

    Relative paths never start with a slash and always use forward slashes.
    """

    root: str
    login: str
    destination: str
    filename: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "root", _root(self.root))
        object.__setattr__(self, "login", _segment(self.login))
        object.__setattr__(self, "destination", _segment(self.destination))
        if self.filename:
            object.__setattr__(self, "filename", _segment(self.filename))

    def with_filename(self, filename: str) -> "PathBuilder":
        return replace(self, filename=filename)

    @property
    def relative(self) -> str:
        parts = [self.login, self.destination]
        if self.filename:
            parts.append(self.filename)
        return "/".join(parts)

    @property
    def account_root(self) -> str:
        return str(PurePosixPath(self.root) / self.login)

    @property
    def destination_dir(self) -> str:
        return str(PurePosixPath(self.root) / self.login / self.destination)

    @property
    def remote(self) -> str:
        if not self.filename:
            raise ValueError("remote path requires a filename")
        return str(PurePosixPath(self.root) / self.relative)

    def rooted_at(self, root: str) -> "PathBuilder":
        return replace(self, root=root)


def account_file(root: str, login: str, filename: str) -> str:
    return str(PurePosixPath(_root(root)) / _segment(login) / _segment(filename))


def strip_root(path: str, root: str) -> str:
    """Return ``path`` relative to ``root`` with no leading slash."""
    normalised = path.replace("\\", "/")
    prefix = _root(root).rstrip("/") + "/"
    if normalised.startswith(prefix):
        normalised = normalised[len(prefix):]
    return normalised.lstrip("/")


def canonical_remote_path(stored_path: str, root: str) -> str:
    """Absolute remote path for a stored path that may or may not carry the root."""
    normalised = stored_path.replace("\\", "/")
    canonical_root = _root(root)
    if normalised.startswith(canonical_root + "/"):
        return normalised
    return str(PurePosixPath(canonical_root) / normalised.lstrip("/"))


def playback_url(stored_path: Optional[str], *, roots: tuple[str, ...]) -> str:
    """Relative playback URL for a stored path; empty when nothing was stored."""
    if not stored_path:
        return ""
    url = stored_path
    for root in roots:
        url = strip_root(url, root)
    return url.lstrip("/")


def path_belongs_to(remote_path: str, login: str) -> bool:
    return f"/{login}/" in remote_path.replace("\\", "/")


def generate_filename(original_name: str, *, now_ms: Optional[int] = None) -> str:
    """Timestamped, filesystem-safe name for an uploaded file."""
    sanitized = _UNSAFE_CHARS.sub("_", PurePosixPath(original_name.replace("\\", "/")).name)
    sanitized = _REPEATED_UNDERSCORES.sub("_", sanitized) or "upload"
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"{stamp}_{sanitized}"


__all__ = [
    "PathBuilder",
    "account_file",
    "canonical_remote_path",
    "generate_filename",
    "path_belongs_to",
    "playback_url",
    "strip_root",
]
