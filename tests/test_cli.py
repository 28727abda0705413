from __future__ import annotations

import json
import subprocess

import pytest
from rich.console import Console

from vodstore import cli
from vodstore.media.probe import FfprobeAdapter, MediaProbeResult


def test_probe_command_prints_verdict(monkeypatch, tmp_path, capsys):
    media = tmp_path / "clip.mp4"
    media.write_bytes(b"data")
    monkeypatch.setattr(
        FfprobeAdapter,
        "probe",
        lambda self, path: MediaProbeResult(duration_s=4, format_name="mp4", codec="h264", bitrate_kbps=3000),
    )
    monkeypatch.setattr(cli, "console", Console(color_system=None, width=200))

    cli.main(["probe", "--file", str(media)])

    payload = json.loads(capsys.readouterr().out)
    assert payload["probe"]["codec"] == "h264"
    assert payload["verdict"]["status"] == "bitrate_high"
    assert payload["verdict"]["bitrate_ceiling_kbps"] == 2500


def test_probe_command_missing_file(tmp_path):
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["probe", "--file", str(tmp_path / "missing.mp4")])
    assert excinfo.value.code == 2


def test_check_fails_without_ffprobe(monkeypatch):
    def fake_run(cmd, **kwargs):
        raise FileNotFoundError(cmd[0])

    monkeypatch.setattr(subprocess, "run", fake_run)
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--check"])
    assert excinfo.value.code == 1
