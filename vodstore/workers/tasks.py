from __future__ import annotations

import asyncio

from vodstore.core.config import get_settings
from vodstore.core.db import session_scope
from vodstore.core.logging import configure_logging, get_logger
from vodstore.core.remote import get_remote_placement
from vodstore.services.manifest import write_manifest
from vodstore.services.repository import MetadataRepository


def run_manifest_refresh(account_id: str, login: str, server_id: int) -> str:
    """Entry-point executed by the job backend (RQ or inline)."""

    settings = get_settings()
    configure_logging(settings.log_level, service="vodstore-worker")
    logger = get_logger(component="manifest_worker", account_id=account_id, server_id=server_id)
    remote = get_remote_placement(settings)

    async def _runner() -> str:
        async with session_scope(settings) as session:
            return await write_manifest(
                MetadataRepository(session),
                remote,
                settings,
                account_id=account_id,
                login=login,
                server_id=server_id,
            )

    target = asyncio.run(_runner())
    logger.info("manifest_written", remote_path=target)
    return target


__all__ = ["run_manifest_refresh"]
