import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from mcat_backend.features.catalog.models import ExtractedMetadata  # noqa: E402
from mcat_backend.shared import ErrorCode, Result  # noqa: E402


class FakeExtractor:
    """Records calls; fails for basenames listed in `fail`."""

    def __init__(self, fail=(), duration=12.0):
        self.calls = []
        self.fail = set(fail)
        self.duration = duration

    def extract(self, path, media_type):
        self.calls.append((path, media_type))
        if Path(path).name in self.fail:
            return Result.Err(ErrorCode.EXTRACTION_ERROR, f"cannot decode {Path(path).name}")
        duration = self.duration if media_type.value == "video" else None
        return Result.Ok(ExtractedMetadata(duration_seconds=duration, thumbnail_ref=f"thumb-{Path(path).name}"))


class FakeObserver:
    def __init__(self):
        self.started = False
        self.stopped = False
        self.joined = False
        self.scheduled = []

    def schedule(self, handler, path, recursive=True):
        watch = {"handler": handler, "path": path, "recursive": recursive}
        self.scheduled.append(watch)
        return watch

    def start(self):
        self.started = True

    def stop(self):
        self.stopped = True

    def join(self, timeout=0):
        _ = timeout
        self.joined = True


@pytest.fixture
def fake_extractor():
    return FakeExtractor()


@pytest.fixture
def media_tree(tmp_path):
    """Factory writing small files under tmp_path: media_tree("a/b.jpg", "c.mp4")."""

    def _make(*rel_paths):
        made = []
        for rel in rel_paths:
            p = tmp_path / rel
            p.parent.mkdir(parents=True, exist_ok=True)
            p.write_bytes(b"x")
            made.append(p)
        return made

    return _make


@pytest.fixture
def make_extractor():
    return FakeExtractor


@pytest.fixture
def make_observer():
    return FakeObserver
