from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from vodstore.api import deps
from vodstore.main import create_app
from tests.conftest import FakeProbe, build_token

PAYLOAD = b"\x00\x00\x00\x18ftypmp42" + b"x" * 4096


@pytest.fixture()
def probe():
    return FakeProbe()


@pytest.fixture()
def api(configure_environment, probe):
    app = create_app()
    app.dependency_overrides[deps.get_probe_adapter] = lambda: probe
    with TestClient(app) as client:
        yield client


def _create_destination(api, headers, *, name: str = "shows", capacity_mb: int = 100) -> dict:
    resp = api.post("/v1/destinations", json={"name": name, "capacity_mb": capacity_mb}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


def _upload(api, headers, destination_id, *, filename: str = "My Clip.mp4"):
    params = {} if destination_id is None else {"destination_id": destination_id}
    return api.post(
        "/v1/videos/upload",
        params=params,
        files={"video": (filename, PAYLOAD, "video/mp4")},
        headers=headers,
    )


def test_v1_health_ok(client):
    resp = client.get("/v1/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_ready_checks_database(client):
    resp = client.get("/v1/ready")
    assert resp.status_code == 200


def test_requests_without_token_are_rejected(client):
    resp = client.get("/v1/destinations")
    assert resp.status_code == 401
    assert resp.json()["detail"] == "missing_authorization"


def test_admin_env_check_requires_scope(client, account_headers, admin_headers):
    assert client.get("/v1/admin/env-check", headers=account_headers).status_code == 403
    resp = client.get("/v1/admin/env-check", headers=admin_headers)
    assert resp.status_code == 200
    assert isinstance(resp.json()["ffprobe"], bool)


def test_destinations_create_and_list(client, account_headers):
    created = _create_destination(client, account_headers, capacity_mb=200)
    assert created["used_mb"] == 0
    assert created["available_mb"] == 200
    assert created["percentage"] == 0
    assert created["server_id"] == 1

    duplicate = client.post("/v1/destinations", json={"name": "shows", "capacity_mb": 5}, headers=account_headers)
    assert duplicate.status_code == 409

    invalid = client.post("/v1/destinations", json={"name": "a/b", "capacity_mb": 5}, headers=account_headers)
    assert invalid.status_code == 422

    listed = client.get("/v1/destinations", headers=account_headers)
    assert [item["name"] for item in listed.json()] == ["shows"]

    other = client.get("/v1/destinations", headers={"Authorization": f"Bearer {build_token('99')}"})
    assert other.json() == []


def test_upload_list_and_remove_flow(api, account_headers, tmp_path):
    destination = _create_destination(api, account_headers)

    upload = _upload(api, account_headers, destination["id"])
    assert upload.status_code == 201, upload.text
    body = upload.json()
    assert body["name"] == "My Clip.mp4"
    assert body["path"].startswith("/home/streaming/radio/shows/")
    assert body["path"].endswith("_My_Clip.mp4")
    assert body["url"] == body["path"][len("/home/streaming/"):]
    assert body["compatibility_status"] == "compatible"
    assert body["compatibility_color"] == "green"
    assert body["needs_conversion"] is False
    assert body["is_mp4"] is True
    assert body["format_original"] == "mp4"
    assert body["duration"] == 125
    assert body["duration_display"] == "02:05"
    assert body["size"] == len(PAYLOAD)
    assert body["space_used_mb"] == 1

    mount = tmp_path / "remote" / "server-1"
    placed = mount / body["path"].lstrip("/")
    assert placed.read_bytes() == PAYLOAD
    manifest = mount / "home" / "streaming" / "radio" / "radio.smil"
    assert f"mp4:{body['url']}" in manifest.read_text()
    assert list((tmp_path / "spool").iterdir()) == []

    listing = api.get("/v1/videos", params={"destination_id": destination["id"]}, headers=account_headers)
    assert listing.status_code == 200
    listed = listing.json()
    assert listed["folder"] == "shows"
    assert listed["user"] == "radio"
    assert listed["user_bitrate_limit"] == 2500
    assert [video["url"] for video in listed["videos"]] == [body["url"]]
    assert listed["videos"][0]["compatibility_message"] == "Compatible"

    usage = api.get("/v1/destinations", headers=account_headers).json()[0]
    assert usage["used_mb"] == 1

    removed = api.delete(f"/v1/videos/{body['id']}", headers=account_headers)
    assert removed.status_code == 200
    assert removed.json()["remote_deleted"] is True
    assert removed.json()["released_mb"] == 1
    assert not placed.exists()
    assert f"mp4:{body['url']}" not in manifest.read_text()

    again = api.delete(f"/v1/videos/{body['id']}", headers=account_headers)
    assert again.status_code == 404
    assert again.json()["detail"]["error"] == "video_not_found"
    assert api.get("/v1/destinations", headers=account_headers).json()[0]["used_mb"] == 0


def test_upload_reports_high_bitrate_for_account_ceiling(api):
    headers = {"Authorization": f"Bearer {build_token('7', login='radio', bitrate=1000)}"}
    destination = _create_destination(api, headers)
    resp = _upload(api, headers, destination["id"])
    assert resp.status_code == 201, resp.text
    assert resp.json()["compatibility_status"] == "bitrate_high"
    assert resp.json()["compatibility_color"] == "yellow"

    listing = api.get("/v1/videos", params={"destination_id": destination["id"]}, headers=headers).json()
    assert listing["user_bitrate_limit"] == 1000
    assert listing["videos"][0]["bitrate_exceeds_limit"] is True


def test_upload_over_quota_is_rejected(api, account_headers, tmp_path):
    destination = _create_destination(api, account_headers, capacity_mb=0)
    resp = _upload(api, account_headers, destination["id"])
    assert resp.status_code == 400
    detail = resp.json()["detail"]
    assert detail["error"] == "quota_exceeded"
    assert detail["space_info"] == {"required": 1, "available": 0, "total": 0, "used": 0, "percentage": 100}
    assert not (tmp_path / "remote" / "server-1" / "home").exists()
    assert list((tmp_path / "spool").iterdir()) == []


def test_upload_requires_destination(api, account_headers):
    resp = _upload(api, account_headers, None)
    assert resp.status_code == 400
    assert resp.json()["detail"]["error"] == "destination_required"


def test_upload_to_unknown_destination(api, account_headers):
    resp = _upload(api, account_headers, 999)
    assert resp.status_code == 404
    assert resp.json()["detail"]["error"] == "destination_not_found"


def test_upload_rejects_unsupported_extension(api, account_headers, tmp_path, probe):
    destination = _create_destination(api, account_headers)
    resp = _upload(api, account_headers, destination["id"], filename="notes.txt")
    assert resp.status_code == 400
    assert resp.json()["detail"]["error"] == "unsupported_extension"
    assert probe.calls == []
    assert list((tmp_path / "spool").iterdir()) == []


def test_list_requires_owned_destination(api, account_headers):
    destination = _create_destination(api, account_headers)
    assert api.get("/v1/videos", headers=account_headers).status_code == 400

    other = {"Authorization": f"Bearer {build_token('99', login='other')}"}
    resp = api.get("/v1/videos", params={"destination_id": destination["id"]}, headers=other)
    assert resp.status_code == 404


def test_check_legacy_file(client, account_headers, tmp_path):
    missing = client.get("/v1/videos/check/shows/clip.mp4", headers=account_headers)
    assert missing.status_code == 200
    assert missing.json() == {
        "success": False,
        "exists": False,
        "path": "/usr/local/WowzaStreamingEngine/content/radio/shows/clip.mp4",
        "url": "/content/radio/shows/clip.mp4",
        "size": None,
    }

    legacy = tmp_path / "remote" / "server-1" / "usr" / "local" / "WowzaStreamingEngine" / "content" / "radio" / "shows"
    legacy.mkdir(parents=True)
    (legacy / "clip.mp4").write_bytes(b"12345")
    found = client.get("/v1/videos/check/shows/clip.mp4", headers=account_headers)
    assert found.json()["exists"] is True
    assert found.json()["size"] == 5
