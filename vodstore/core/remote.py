from __future__ import annotations

import shutil
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from .config import Settings

ACCOUNT_SUBFOLDERS: tuple[str, ...] = ("recordings", "logos")


@dataclass(slots=True)
class RemoteStat:
    exists: bool
    size_bytes: int = 0


class RemotePlacement(ABC):
    """Filesystem operations on a streaming host, addressed by absolute remote paths."""

    @abstractmethod
    def ensure_account_structure(self, server_id: int, account_root: str) -> None: ...

    @abstractmethod
    def ensure_directory(self, server_id: int, remote_dir: str) -> None: ...

    @abstractmethod
    def put(self, server_id: int, local_path: Path, remote_path: str) -> None: ...

    @abstractmethod
    def delete(self, server_id: int, remote_path: str) -> None:
        """Remove one file. Raises ``FileNotFoundError`` when it is absent, ``OSError`` on host failures."""

    @abstractmethod
    def stat(self, server_id: int, remote_path: str) -> RemoteStat: ...

    @abstractmethod
    def write_text(self, server_id: int, remote_path: str, payload: str) -> None: ...


class LocalMountPlacement(RemotePlacement):
    """Streaming hosts mounted under a local directory, one ``server-<id>`` folder per host."""

    def __init__(self, base_path: Path):
        self.base_path = base_path
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _resolve(self, server_id: int, remote_path: str) -> Path:
        posix = PurePosixPath(remote_path)
        if not posix.is_absolute():
            raise ValueError(f"Remote paths must be absolute: {remote_path}")
        if ".." in posix.parts:
            raise ValueError(f"Remote path escapes its root: {remote_path}")
        return self.base_path / f"server-{server_id}" / Path(*posix.parts[1:])

    def ensure_account_structure(self, server_id: int, account_root: str) -> None:
        root = self._resolve(server_id, account_root)
        root.mkdir(parents=True, exist_ok=True)
        for name in ACCOUNT_SUBFOLDERS:
            (root / name).mkdir(exist_ok=True)

    def ensure_directory(self, server_id: int, remote_dir: str) -> None:
        self._resolve(server_id, remote_dir).mkdir(parents=True, exist_ok=True)

    def put(self, server_id: int, local_path: Path, remote_path: str) -> None:
        target = self._resolve(server_id, remote_path)
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(local_path, target)

    def delete(self, server_id: int, remote_path: str) -> None:
        target = self._resolve(server_id, remote_path)
        if not target.exists():
            raise FileNotFoundError(remote_path)
        target.unlink()

    def stat(self, server_id: int, remote_path: str) -> RemoteStat:
        target = self._resolve(server_id, remote_path)
        if not target.is_file():
            return RemoteStat(exists=False)
        return RemoteStat(exists=True, size_bytes=target.stat().st_size)

    def write_text(self, server_id: int, remote_path: str, payload: str) -> None:
        target = self._resolve(server_id, remote_path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(payload, encoding="utf-8")


def get_remote_placement(settings: Settings) -> RemotePlacement:
    if settings.remote_backend == "local":
        return LocalMountPlacement(base_path=Path(settings.remote_base_path))
    raise ValueError(f"Unsupported remote backend: {settings.remote_backend}")


__all__ = [
    "ACCOUNT_SUBFOLDERS",
    "RemotePlacement",
    "LocalMountPlacement",
    "RemoteStat",
    "get_remote_placement",
]
