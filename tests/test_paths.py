from __future__ import annotations

import pytest

from vodstore.media.paths import (
    PathBuilder,
    account_file,
    canonical_remote_path,
    generate_filename,
    path_belongs_to,
    playback_url,
    strip_root,
)


def test_canonical_layout():
    layout = PathBuilder(root="/home/streaming/", login="radio", destination="shows", filename="1_clip.mp4")
    assert layout.relative == "radio/shows/1_clip.mp4"
    assert layout.remote == "/home/streaming/radio/shows/1_clip.mp4"
    assert layout.account_root == "/home/streaming/radio"
    assert layout.destination_dir == "/home/streaming/radio/shows"


def test_rooted_at_keeps_segments():
    layout = PathBuilder(root="/home/streaming", login="radio", destination="shows", filename="a.mp4")
    legacy = layout.rooted_at("/usr/local/WowzaStreamingEngine/content")
    assert legacy.remote == "/usr/local/WowzaStreamingEngine/content/radio/shows/a.mp4"
    assert legacy.relative == layout.relative


@pytest.mark.parametrize("segment", ["", "..", ".", "a/b"])
def test_invalid_segments_rejected(segment):
    with pytest.raises(ValueError):
        PathBuilder(root="/home/streaming", login="radio", destination=segment)


def test_remote_requires_filename():
    with pytest.raises(ValueError):
        _ = PathBuilder(root="/home/streaming", login="radio", destination="shows").remote


def test_generate_filename_sanitises():
    assert generate_filename("My Show (final).mp4", now_ms=1700000000000) == "1700000000000_My_Show_final_.mp4"
    assert generate_filename("C:\\videos\\clip.mov", now_ms=5) == "5_clip.mov"


def test_strip_and_canonical_paths():
    assert strip_root("/home/streaming/radio/shows/a.mp4", "/home/streaming") == "radio/shows/a.mp4"
    assert canonical_remote_path("radio/shows/a.mp4", "/home/streaming") == "/home/streaming/radio/shows/a.mp4"
    assert canonical_remote_path("/home/streaming/radio/a.mp4", "/home/streaming") == "/home/streaming/radio/a.mp4"
    assert account_file("/home/streaming", "radio", "radio.smil") == "/home/streaming/radio/radio.smil"


def test_playback_url_strips_known_roots():
    roots = ("/usr/local/WowzaStreamingEngine/content", "/home/streaming")
    assert playback_url("/home/streaming/radio/shows/a.mp4", roots=roots) == "radio/shows/a.mp4"
    assert playback_url("/usr/local/WowzaStreamingEngine/content/radio/a.mp4", roots=roots) == "radio/a.mp4"
    assert playback_url("", roots=roots) == ""


def test_path_belongs_to_requires_login_segment():
    assert path_belongs_to("/home/streaming/radio/shows/a.mp4", "radio") is True
    assert path_belongs_to("/home/streaming/radiox/shows/a.mp4", "radio") is False
