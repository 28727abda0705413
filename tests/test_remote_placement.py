from __future__ import annotations

import pytest

from vodstore.core.config import get_settings
from vodstore.core.remote import LocalMountPlacement, get_remote_placement


def test_default_backend_is_local_mount(tmp_path):
    placement = get_remote_placement(get_settings())
    assert isinstance(placement, LocalMountPlacement)
    assert placement.base_path == tmp_path / "remote"


def test_put_stat_delete_roundtrip(tmp_path):
    placement = LocalMountPlacement(tmp_path / "hosts")
    source = tmp_path / "clip.mp4"
    source.write_bytes(b"abc")

    placement.ensure_account_structure(4, "/home/streaming/radio")
    placement.put(4, source, "/home/streaming/radio/shows/clip.mp4")

    mounted = tmp_path / "hosts" / "server-4" / "home" / "streaming" / "radio"
    assert (mounted / "recordings").is_dir()
    assert (mounted / "logos").is_dir()
    assert (mounted / "shows" / "clip.mp4").read_bytes() == b"abc"

    stat = placement.stat(4, "/home/streaming/radio/shows/clip.mp4")
    assert stat.exists is True
    assert stat.size_bytes == 3
    assert placement.stat(5, "/home/streaming/radio/shows/clip.mp4").exists is False

    placement.delete(4, "/home/streaming/radio/shows/clip.mp4")
    assert placement.stat(4, "/home/streaming/radio/shows/clip.mp4").exists is False
    with pytest.raises(FileNotFoundError):
        placement.delete(4, "/home/streaming/radio/shows/clip.mp4")


@pytest.mark.parametrize("remote_path", ["relative/clip.mp4", "/home/streaming/../../etc/passwd"])
def test_rejects_unsafe_paths(tmp_path, remote_path):
    placement = LocalMountPlacement(tmp_path / "hosts")
    with pytest.raises(ValueError):
        placement.stat(1, remote_path)


def test_write_text_creates_parents(tmp_path):
    placement = LocalMountPlacement(tmp_path / "hosts")
    placement.write_text(1, "/home/streaming/radio/radio.smil", "<smil/>")
    assert (tmp_path / "hosts" / "server-1" / "home" / "streaming" / "radio" / "radio.smil").read_text() == "<smil/>"
