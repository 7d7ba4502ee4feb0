import os

import pytest

from mcat_backend.features.watcher.filters import filter_batch, is_relevant_path, is_self_artifact

ROOT = os.path.join(os.sep, "media", "root")


def p(*parts):
    return os.path.join(ROOT, *parts)


@pytest.mark.parametrize(
    "path",
    [
        p("media_cache.db"),
        p("media_cache.db-wal"),
        p("media_cache.db-journal"),
        p("other.db-shm"),
        p(".thumbnails", "abc.webp"),
        p("sub", "cache", "x.jpg"),
        p("thumbnail"),
        p(".mediaCache.json"),
    ],
)
def test_self_artifacts_are_detected(path):
    assert is_self_artifact(path)


@pytest.mark.parametrize("path", [p("a.jpg"), p("cached", "b.mp4"), p("dbz.png"), p("thumbnails_of_mine.jpg")])
def test_regular_paths_are_not_artifacts(path):
    assert not is_self_artifact(path)


def test_relevance_media_or_directory():
    assert is_relevant_path(p("a.JPG"))
    assert is_relevant_path(p("clip.webm"))
    assert is_relevant_path(p("new folder"))
    assert not is_relevant_path(p("notes.txt"))
    assert not is_relevant_path(p("partial.mp4.crdownload"))


def test_whole_batch_dropped_when_any_path_is_self_artifact():
    batch = [p("a.jpg"), p(".thumbnails", "a.webp")]
    assert filter_batch(batch) == []


def test_batch_filtered_to_relevant_paths():
    batch = [p("a.jpg"), p("notes.txt"), p("album"), ""]
    assert filter_batch(batch) == [p("a.jpg"), p("album")]


def test_custom_patterns_replace_defaults():
    assert filter_batch([p("media_cache.db")], patterns=()) == []
    assert filter_batch([p("private", "a.jpg")], patterns=("private",)) == []
    assert filter_batch([p("a.jpg")], patterns=("private",)) == [p("a.jpg")]


@pytest.mark.parametrize("parent", ["cache", "thumbnail", ".thumbnails"])
def test_root_under_artifact_named_directory_is_still_watched(parent):
    root = os.path.join(os.sep, "mnt", parent, "photos")
    new_file = os.path.join(root, "new.jpg")
    assert is_self_artifact(new_file)
    assert not is_self_artifact(new_file, root=root)
    assert filter_batch([new_file], root=root) == [new_file]
    assert filter_batch([os.path.join(root, "media_cache.db-wal")], root=root) == []
    assert filter_batch([os.path.join(root, "cache", "x.jpg")], root=root) == []


def test_paths_outside_root_use_full_path():
    root = os.path.join(os.sep, "media", "library")
    outside = os.path.join(os.sep, "srv", "cache", "a.jpg")
    assert is_self_artifact(outside, root=root)
