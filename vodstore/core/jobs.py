from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from functools import lru_cache

from redis import Redis
from rq import Queue

from .config import get_settings


class BaseJobBackend(ABC):
    @abstractmethod
    async def enqueue_manifest_refresh(self, account_id: str, login: str, server_id: int) -> None: ...


class ImmediateJobBackend(BaseJobBackend):
    async def enqueue_manifest_refresh(self, account_id: str, login: str, server_id: int) -> None:
        from vodstore.workers.tasks import run_manifest_refresh

        await asyncio.to_thread(run_manifest_refresh, account_id, login, server_id)


class RQJobBackend(BaseJobBackend):
    def __init__(self, queue: Queue):
        self.queue = queue

    async def enqueue_manifest_refresh(self, account_id: str, login: str, server_id: int) -> None:  # pragma: no cover - exercised via worker
        from vodstore.workers.tasks import run_manifest_refresh

        self.queue.enqueue(run_manifest_refresh, account_id, login, server_id)


@lru_cache()
def get_job_backend() -> BaseJobBackend:
    settings = get_settings()
    backend = settings.normalized_job_backend
    if backend == "immediate":
        return ImmediateJobBackend()
    if backend == "rq":  # pragma: no cover - requires redis
        connection = Redis.from_url(settings.redis_url)
        return RQJobBackend(Queue("vodstore-manifests", connection=connection))
    raise ValueError(f"Unsupported job backend: {settings.job_queue_backend}")


__all__ = ["BaseJobBackend", "ImmediateJobBackend", "RQJobBackend", "get_job_backend"]
