import pytest

from mcat_backend.routes.core import request_json as rq
from mcat_backend.routes.core.response import _sanitize_json_payload


class _DummyContent:
    def __init__(self, chunks, exc=None):
        self._chunks = chunks
        self._exc = exc

    async def iter_chunked(self, _size):
        if self._exc is not None:
            raise self._exc
        for chunk in self._chunks:
            yield chunk


class _DummyRequest:
    def __init__(self, chunks=None, content_length=None, exc=None):
        self.content_length = content_length
        self.content = _DummyContent(chunks or [], exc=exc)


@pytest.mark.asyncio
async def test_read_json_object():
    res = await rq._read_json(_DummyRequest([b'{"path": ', b'"/m"}']))
    assert res.ok and res.data == {"path": "/m"}


@pytest.mark.asyncio
async def test_read_json_empty_body_is_empty_object():
    res = await rq._read_json(_DummyRequest([]))
    assert res.ok and res.data == {}


@pytest.mark.asyncio
async def test_read_json_rejects_non_objects_and_bad_bytes():
    assert (await rq._read_json(_DummyRequest([b"[1, 2]"]))).code == "INVALID_JSON"
    assert (await rq._read_json(_DummyRequest([b"\xff"]))).code == "INVALID_JSON"
    assert (await rq._read_json(_DummyRequest(exc=ConnectionResetError("gone")))).code == "INVALID_JSON"


@pytest.mark.asyncio
async def test_read_json_size_limits():
    declared = await rq._read_json(_DummyRequest([b"{}"], content_length=5000), max_bytes=100)
    assert declared.code == "INVALID_INPUT"
    streamed = await rq._read_json(_DummyRequest([b"x" * 80, b"x" * 80]), max_bytes=100)
    assert streamed.code == "INVALID_INPUT"


def test_sanitize_payload_strict_json():
    payload = _sanitize_json_payload({"a": float("nan"), "b": [float("inf"), 1.5], "c": {"z", "a"}, "d": (1, 2)})
    assert payload == {"a": None, "b": [None, 1.5], "c": ["a", "z"], "d": [1, 2]}
