import os
import sys

import pytest

from mcat_backend.features.index import scanner as scanner_mod
from mcat_backend.features.index.scanner import scan
from mcat_backend.shared import ErrorCode, MediaType, ScanError


def test_scan_finds_media_and_skips_ignored_dirs(tmp_path, media_tree):
    media_tree(
        "a.jpg",
        "notes.txt",
        "sub/clip.MP4",
        "sub/deeper/b.png",
        ".thumbnails/abc.webp",
        "cache/c.jpg",
        "media_cache.db",
    )
    result = scan(tmp_path)

    names = sorted(item.basename for item in result.items)
    assert names == ["a.jpg", "b.png", "clip.MP4"]
    kinds = {item.basename: item.media_type for item in result.items}
    assert kinds["clip.MP4"] is MediaType.VIDEO
    assert kinds["a.jpg"] is MediaType.IMAGE
    assert all(os.path.isabs(item.path) for item in result.items)
    assert result.errors == []


def test_scan_order_is_deterministic(tmp_path, media_tree):
    media_tree("z.jpg", "a.jpg", "m/b.jpg", "c/d.jpg")
    first = [item.path for item in scan(tmp_path).items]
    second = [item.path for item in scan(tmp_path).items]
    assert first == second
    assert [os.path.basename(p) for p in first][:2] == ["a.jpg", "z.jpg"]


def test_scan_custom_ignore_set(tmp_path, media_tree):
    media_tree("keep/a.jpg", "skip/b.jpg")
    result = scan(tmp_path, ignore_dirs={"skip"})
    assert [item.basename for item in result.items] == ["a.jpg"]


def test_scan_missing_root_raises(tmp_path):
    with pytest.raises(ScanError) as excinfo:
        scan(tmp_path / "missing")
    assert excinfo.value.code is ErrorCode.SCAN_ERROR


def test_unreadable_subdirectory_is_skipped(tmp_path, media_tree, monkeypatch):
    media_tree("ok/a.jpg", "locked/b.jpg")
    locked = str(tmp_path / "locked")
    real_scandir = os.scandir

    def _scandir(path):
        if os.path.normpath(str(path)) == os.path.normpath(locked):
            raise PermissionError(13, "Permission denied", str(path))
        return real_scandir(path)

    monkeypatch.setattr(scanner_mod.os, "scandir", _scandir)
    result = scan(tmp_path)

    assert [item.basename for item in result.items] == ["a.jpg"]
    assert len(result.errors) == 1
    assert result.errors[0]["code"] == ErrorCode.SCAN_ERROR.value


@pytest.mark.skipif(sys.platform == "win32", reason="symlinks need privileges on Windows")
def test_symlinked_directories_are_not_followed(tmp_path, media_tree):
    media_tree("real/a.jpg")
    os.symlink(tmp_path / "real", tmp_path / "link")
    result = scan(tmp_path)
    assert [item.basename for item in result.items] == ["a.jpg"]
