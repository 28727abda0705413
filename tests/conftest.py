import asyncio
from pathlib import Path
from typing import Awaitable, Callable, Optional, TypeVar

import jwt
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession

from vodstore.core.auth import AccountContext
from vodstore.core.config import get_settings
from vodstore.core.db import Base, create_engine, session_scope
from vodstore.core.jobs import get_job_backend
from vodstore.core.remote import RemotePlacement, RemoteStat
from vodstore.main import create_app
from vodstore.media.probe import MediaProbeResult, ProbeAdapter
from vodstore.services.manifest import ManifestRefresher

JWT_SECRET = "test-secret"
JWT_ISSUER = "vodstore-test"
JWT_AUDIENCE = "vodstore"

T = TypeVar("T")


def pytest_configure(config):
    config.addinivalue_line(
        "markers",
        "no_default_env: disable the default vodstore environment bootstrap fixture for tests that manage their own .env",
    )


@pytest.fixture(autouse=True)
def configure_environment(request, monkeypatch, tmp_path):
    if request.node.get_closest_marker("no_default_env"):
        get_settings.cache_clear()
        get_job_backend.cache_clear()
        yield
        get_job_backend.cache_clear()
        get_settings.cache_clear()
        return
    db_path = tmp_path / "vodstore_test.db"

    monkeypatch.setenv("VODSTORE_ENV", "test")
    monkeypatch.setenv("VODSTORE_LOG_LEVEL", "debug")
    monkeypatch.setenv("VODSTORE_DB_URL", f"sqlite+aiosqlite:///{db_path}")
    monkeypatch.setenv("VODSTORE_REMOTE_BASE_PATH", str(tmp_path / "remote"))
    monkeypatch.setenv("VODSTORE_UPLOAD_TMP_DIR", str(tmp_path / "spool"))
    monkeypatch.setenv("VODSTORE_JOB_BACKEND", "inline")
    monkeypatch.setenv("VODSTORE_REDIS_URL", "redis://localhost:6379/0")
    monkeypatch.setenv("VODSTORE_JWT_SECRET", JWT_SECRET)
    monkeypatch.setenv("VODSTORE_JWT_ISSUER", JWT_ISSUER)
    monkeypatch.setenv("VODSTORE_JWT_AUDIENCE", JWT_AUDIENCE)

    get_settings.cache_clear()
    get_job_backend.cache_clear()
    settings = get_settings()
    engine = create_engine(settings)

    async def _setup() -> None:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        await engine.dispose()

    asyncio.run(_setup())

    yield

    get_job_backend.cache_clear()
    get_settings.cache_clear()


@pytest.fixture()
def client(configure_environment):
    app = create_app()
    with TestClient(app) as client:
        yield client


def build_token(
    account_id: str,
    *,
    login: Optional[str] = None,
    bitrate: Optional[int] = None,
    scopes: list[str] | None = None,
) -> str:
    payload: dict[str, object] = {"sub": account_id, "iss": JWT_ISSUER, "aud": JWT_AUDIENCE}
    if login:
        payload["login"] = login
    if bitrate is not None:
        payload["bitrate"] = bitrate
    if scopes:
        payload["scopes"] = scopes
    return jwt.encode(payload, JWT_SECRET, algorithm="HS256")


@pytest.fixture()
def account_headers() -> dict[str, str]:
    token = build_token("7", login="radio")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def admin_headers() -> dict[str, str]:
    token = build_token("1", login="ops", scopes=["admin"])
    return {"Authorization": f"Bearer {token}"}


def make_account(account_id: str = "7", login: str = "radio", bitrate: int = 2500) -> AccountContext:
    return AccountContext(account_id=account_id, login=login, bitrate_ceiling_kbps=bitrate)


def run_in_session(work: Callable[[AsyncSession], Awaitable[T]]) -> T:
    """Run ``work`` against a fresh session on the test database."""

    async def _runner() -> T:
        async with session_scope(get_settings()) as session:
            return await work(session)

    return asyncio.run(_runner())


class FakeProbe(ProbeAdapter):
    def __init__(self, result: Optional[MediaProbeResult] = None, error: Optional[Exception] = None):
        self.result = result or MediaProbeResult(
            duration_s=125,
            format_name="mov,mp4,m4a,3gp,3g2,mj2",
            codec="h264",
            bitrate_kbps=1800,
            width=1280,
            height=720,
        )
        self.error = error
        self.calls: list[Path] = []

    def probe(self, path: Path) -> MediaProbeResult:
        self.calls.append(path)
        if self.error is not None:
            raise self.error
        return self.result


class FakeRemote(RemotePlacement):
    """In-memory streaming host keyed by ``(server_id, remote_path)``."""

    def __init__(self, *, fail_put: Optional[Exception] = None, fail_delete: Optional[Exception] = None):
        self.files: dict[tuple[int, str], bytes] = {}
        self.directories: set[tuple[int, str]] = set()
        self.fail_put = fail_put
        self.fail_delete = fail_delete
        self.deleted: list[tuple[int, str]] = []
        self.stat_calls: list[tuple[int, str]] = []

    def ensure_account_structure(self, server_id: int, account_root: str) -> None:
        self.directories.add((server_id, account_root))
        for name in ("recordings", "logos"):
            self.directories.add((server_id, f"{account_root}/{name}"))

    def ensure_directory(self, server_id: int, remote_dir: str) -> None:
        self.directories.add((server_id, remote_dir))

    def put(self, server_id: int, local_path: Path, remote_path: str) -> None:
        if self.fail_put is not None:
            raise self.fail_put
        self.files[(server_id, remote_path)] = Path(local_path).read_bytes()

    def delete(self, server_id: int, remote_path: str) -> None:
        if self.fail_delete is not None:
            raise self.fail_delete
        if (server_id, remote_path) not in self.files:
            raise FileNotFoundError(remote_path)
        del self.files[(server_id, remote_path)]
        self.deleted.append((server_id, remote_path))

    def stat(self, server_id: int, remote_path: str) -> RemoteStat:
        self.stat_calls.append((server_id, remote_path))
        payload = self.files.get((server_id, remote_path))
        if payload is None:
            return RemoteStat(exists=False)
        return RemoteStat(exists=True, size_bytes=len(payload))

    def write_text(self, server_id: int, remote_path: str, payload: str) -> None:
        self.files[(server_id, remote_path)] = payload.encode("utf-8")


class FakeManifest(ManifestRefresher):
    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.calls: list[tuple[str, int]] = []

    async def refresh(self, account: AccountContext, server_id: int) -> None:
        self.calls.append((account.account_id, server_id))
        if self.error is not None:
            raise self.error
