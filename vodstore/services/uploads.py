from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from fastapi import UploadFile

from vodstore.core.config import Settings
from vodstore.core.errors import ValidationError
from vodstore.core.logging import get_logger
from vodstore.media.paths import generate_filename

CHUNK_SIZE = 1024 * 1024

logger = get_logger(component="uploads")


@dataclass(frozen=True, slots=True)
class UploadedAsset:
    """A spooled upload waiting for ingestion. Removed on every pipeline exit."""

    local_path: Path
    original_name: str
    size_bytes: int
    content_type: Optional[str] = None

    @property
    def extension(self) -> str:
        return Path(self.original_name).suffix.lower()

    @property
    def generated_name(self) -> str:
        return self.local_path.name


async def spool_upload(upload: UploadFile, settings: Settings) -> UploadedAsset:
    """Stream an incoming file to the spool directory, enforcing the size limit."""
    if not upload.filename:
        raise ValidationError("no file was uploaded", code="file_required")

    spool_dir = Path(settings.upload_tmp_dir)
    spool_dir.mkdir(parents=True, exist_ok=True)
    target = spool_dir / generate_filename(upload.filename)
    written = 0

    try:
        with target.open("wb") as handle:
            while True:
                chunk = await upload.read(CHUNK_SIZE)
                if not chunk:
                    break
                written += len(chunk)
                if written > settings.max_upload_size_bytes:
                    raise ValidationError(
                        f"file exceeds the {settings.max_upload_size_bytes} byte limit",
                        code="upload_too_large",
                    )
                handle.write(chunk)
    except BaseException:
        _discard(target)
        raise
    finally:
        await upload.close()

    logger.info("upload_spooled", path=str(target), size_bytes=written, content_type=upload.content_type)
    return UploadedAsset(
        local_path=target,
        original_name=upload.filename,
        size_bytes=written,
        content_type=upload.content_type,
    )


def _discard(path: Path) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as cleanup_error:
        logger.warning("upload_spool_cleanup_failed", path=str(path), error=str(cleanup_error))


__all__ = ["CHUNK_SIZE", "UploadedAsset", "spool_upload"]
