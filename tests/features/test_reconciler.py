import asyncio
import threading
import time

import pytest

from mcat_backend.features.catalog.models import Bookmark, MediaEntry, ScanItem, ScanResult
from mcat_backend.features.index.reconciler import RenamePolicy, classify, reconcile
from mcat_backend.shared import ErrorCode, MediaType


def _item(path):
    name = path.rsplit("/", 1)[-1]
    kind = MediaType.VIDEO if name.endswith(".mp4") else MediaType.IMAGE
    return ScanItem(path=path, basename=name, media_type=kind)


def _scan(*paths):
    return ScanResult(root="/m", items=[_item(p) for p in paths])


def _entry(path, **kw):
    name = path.rsplit("/", 1)[-1]
    kind = MediaType.VIDEO if name.endswith(".mp4") else MediaType.IMAGE
    return MediaEntry(path=path, title=name, media_type=kind, **kw)


def _catalog(*entries):
    return {e.path: e for e in entries}


@pytest.mark.asyncio
async def test_move_preserves_tags_without_extraction(fake_extractor):
    catalog = _catalog(_entry("/m/a.jpg", tags={"x"}))
    result = await reconcile(catalog, _scan("/m/other/a.jpg"), fake_extractor)

    assert result.renamed == [("/m/a.jpg", "/m/other/a.jpg")]
    assert result.deleted == [] and result.added == []
    assert list(result.catalog) == ["/m/other/a.jpg"]
    assert result.catalog["/m/other/a.jpg"].tags == {"x"}
    assert fake_extractor.calls == []


@pytest.mark.asyncio
async def test_rename_preserves_bookmarks_and_updates_title(fake_extractor):
    bookmarks = [Bookmark("intro", 1.0), Bookmark("outro", 30.0)]
    catalog = _catalog(_entry("/m/v.mp4", tags={"t"}, bookmarks=bookmarks, duration_seconds=31.0))
    result = await reconcile(catalog, _scan("/m/sub/v.mp4"), fake_extractor)

    moved = result.catalog["/m/sub/v.mp4"]
    assert moved.bookmarks == bookmarks
    assert moved.duration_seconds == 31.0
    assert moved.title == "v.mp4"
    # input catalog untouched
    assert "/m/v.mp4" in catalog


@pytest.mark.asyncio
async def test_new_video_extracted_once(fake_extractor):
    result = await reconcile({}, _scan("/m/v1.mp4"), fake_extractor)

    assert len(fake_extractor.calls) == 1
    entry = result.catalog["/m/v1.mp4"]
    assert entry.duration_seconds == 12.0
    assert entry.thumbnail_ref == "thumb-v1.mp4"
    assert entry.tags == set() and entry.bookmarks == []


@pytest.mark.asyncio
async def test_extraction_failure_is_reported_not_raised(make_extractor):
    extractor = make_extractor(fail={"v2.mp4"})
    result = await reconcile({}, _scan("/m/v1.mp4", "/m/v2.mp4", "/m/a.jpg"), extractor)

    assert set(result.catalog) == {"/m/v1.mp4", "/m/a.jpg"}
    assert len(result.errors) == 1
    assert result.errors[0]["path"] == "/m/v2.mp4"
    assert result.errors[0]["code"] == ErrorCode.EXTRACTION_ERROR.value


@pytest.mark.asyncio
async def test_extractor_exception_becomes_item_error():
    class _Crashing:
        def extract(self, path, media_type):
            raise RuntimeError("decoder crashed")

    result = await reconcile({}, _scan("/m/a.jpg"), _Crashing())
    assert result.catalog == {}
    assert result.errors[0]["code"] == ErrorCode.EXTRACTION_ERROR.value


@pytest.mark.asyncio
async def test_deletion_without_candidate(fake_extractor):
    catalog = _catalog(_entry("/m/a.jpg"), _entry("/m/b.jpg"))
    result = await reconcile(catalog, _scan("/m/b.jpg"), fake_extractor)

    assert result.deleted == ["/m/a.jpg"]
    assert list(result.catalog) == ["/m/b.jpg"]
    assert fake_extractor.calls == []


@pytest.mark.asyncio
async def test_second_pass_is_idempotent(fake_extractor):
    scan = _scan("/m/a.jpg", "/m/v.mp4")
    first = await reconcile({}, scan, fake_extractor)
    calls_after_first = len(fake_extractor.calls)

    second = await reconcile(first.catalog, scan, fake_extractor)
    assert second.has_mutations is False
    assert sorted(second.unchanged) == ["/m/a.jpg", "/m/v.mp4"]
    assert len(fake_extractor.calls) == calls_after_first


def test_candidate_already_cataloged_is_not_a_rename_target():
    catalog = _catalog(_entry("/m/x/a.jpg", tags={"old"}), _entry("/m/y/a.jpg"))
    plan = classify(catalog, _scan("/m/y/a.jpg"))
    assert plan.renamed == []
    assert plan.deleted == ["/m/x/a.jpg"]
    assert plan.unchanged == ["/m/y/a.jpg"]


def test_first_match_pairs_in_scan_order():
    catalog = _catalog(_entry("/m/1/a.jpg"), _entry("/m/2/a.jpg"))
    scan = _scan("/m/3/a.jpg", "/m/4/a.jpg", "/m/5/a.jpg")
    plan = classify(catalog, scan, RenamePolicy.FIRST_MATCH)

    assert plan.renamed == [("/m/1/a.jpg", "/m/3/a.jpg"), ("/m/2/a.jpg", "/m/4/a.jpg")]
    assert [item.path for item in plan.new] == ["/m/5/a.jpg"]
    assert plan.deleted == []


def test_unique_only_refuses_ambiguous_pairs():
    catalog = _catalog(_entry("/m/1/a.jpg"), _entry("/m/2/a.jpg"), _entry("/m/1/b.jpg"))
    scan = _scan("/m/3/a.jpg", "/m/4/a.jpg", "/m/3/b.jpg")
    plan = classify(catalog, scan, "unique_only")

    assert plan.renamed == [("/m/1/b.jpg", "/m/3/b.jpg")]
    assert sorted(plan.deleted) == ["/m/1/a.jpg", "/m/2/a.jpg"]
    assert sorted(item.path for item in plan.new) == ["/m/3/a.jpg", "/m/4/a.jpg"]


def test_basename_match_is_case_sensitive():
    plan = classify(_catalog(_entry("/m/A.jpg")), _scan("/m/sub/a.jpg"))
    assert plan.renamed == []
    assert plan.deleted == ["/m/A.jpg"]


def test_unknown_policy_falls_back_to_first_match():
    assert RenamePolicy.parse("bogus") is RenamePolicy.FIRST_MATCH
    assert RenamePolicy.parse(" UNIQUE_ONLY ") is RenamePolicy.UNIQUE_ONLY


@pytest.mark.asyncio
async def test_extraction_concurrency_is_bounded():
    lock = threading.Lock()
    state = {"active": 0, "peak": 0}

    class _Slow:
        def extract(self, path, media_type):
            with lock:
                state["active"] += 1
                state["peak"] = max(state["peak"], state["active"])
            time.sleep(0.02)
            with lock:
                state["active"] -= 1
            from mcat_backend.features.catalog.models import ExtractedMetadata
            from mcat_backend.shared import Result

            return Result.Ok(ExtractedMetadata(duration_seconds=None, thumbnail_ref=None))

    scan = _scan(*[f"/m/{i}.jpg" for i in range(10)])
    result = await asyncio.wait_for(reconcile({}, scan, _Slow(), concurrency=2), timeout=10)

    assert len(result.added) == 10
    assert state["peak"] <= 2
