import asyncio
import os

import pytest
from watchdog.events import DirModifiedEvent, FileCreatedEvent, FileMovedEvent

from mcat_backend.features.sync.state import SyncState, SyncStateMachine
from mcat_backend.features.watcher.watcher import ChannelEventHandler, RootWatcher, watch
from mcat_backend.shared import WatcherSetupError


class _RecordingChannel:
    def __init__(self):
        self.batches = []

    def publish_threadsafe(self, batch):
        self.batches.append(list(batch))


def test_handler_filters_and_batches_events(tmp_path):
    channel = _RecordingChannel()
    handler = ChannelEventHandler(channel)

    handler.dispatch(FileCreatedEvent(str(tmp_path / "a.jpg")))
    handler.dispatch(FileCreatedEvent(str(tmp_path / "media_cache.db-wal")))
    handler.dispatch(FileCreatedEvent(str(tmp_path / ".thumbnails" / "x.webp")))
    handler.dispatch(DirModifiedEvent(str(tmp_path)))
    handler.dispatch(FileMovedEvent(str(tmp_path / "a.jpg"), str(tmp_path / "sub" / "a.jpg")))

    assert channel.batches == [
        [str(tmp_path / "a.jpg")],
        [str(tmp_path / "a.jpg"), str(tmp_path / "sub" / "a.jpg")],
    ]



@pytest.mark.asyncio
async def test_root_inside_artifact_named_directory_triggers(tmp_path, make_observer):
    root = tmp_path / "thumbnail" / "library"
    root.mkdir(parents=True)
    received = []

    async def _on_change(paths):
        received.append(paths)

    obs = make_observer()
    watcher = RootWatcher(str(root), _on_change, SyncStateMachine(str(root)), debounce_ms=10, observer_factory=lambda: obs)
    await watcher.start()
    try:
        handler = obs.scheduled[0]["handler"]
        handler.dispatch(FileCreatedEvent(str(root / "a.jpg")))
        handler.dispatch(FileCreatedEvent(str(root / ".thumbnails" / "a.webp")))
        await asyncio.sleep(0.15)
        assert received == [[str(root / "a.jpg")]]
    finally:
        await watcher.stop()


@pytest.mark.asyncio
async def test_start_and_stop_manage_observer(tmp_path, make_observer):
    observers = []

    def _factory():
        observers.append(make_observer())
        return observers[-1]

    async def _on_change(paths):
        return None

    stop = await watch(str(tmp_path), _on_change, SyncStateMachine(), debounce_ms=10, observer_factory=_factory)
    obs = observers[0]
    assert obs.started
    assert obs.scheduled[0]["path"] == os.path.normpath(str(tmp_path))
    assert obs.scheduled[0]["recursive"] is True

    await stop()
    assert obs.stopped and obs.joined


@pytest.mark.asyncio
async def test_missing_root_raises_setup_error(tmp_path, make_observer):
    async def _on_change(paths):
        return None

    watcher = RootWatcher(str(tmp_path / "gone"), _on_change, SyncStateMachine(), observer_factory=make_observer)
    with pytest.raises(WatcherSetupError):
        await watcher.start()
    assert not watcher.is_running


@pytest.mark.asyncio
async def test_observer_failure_raises_setup_error(tmp_path):
    class _Broken:
        def schedule(self, *args, **kwargs):
            raise OSError(28, "inotify watch limit reached")

    async def _on_change(paths):
        return None

    watcher = RootWatcher(str(tmp_path), _on_change, SyncStateMachine(), observer_factory=_Broken)
    with pytest.raises(WatcherSetupError):
        await watcher.start()


@pytest.mark.asyncio
async def test_burst_delivers_single_trigger(tmp_path, make_observer):
    received = []

    async def _on_change(paths):
        received.append(paths)

    watcher = RootWatcher(str(tmp_path), _on_change, SyncStateMachine(), debounce_ms=30, observer_factory=make_observer)
    await watcher.start()
    try:
        for name in ("a.jpg", "b.jpg", "a.jpg", "c.mp4"):
            watcher.channel.publish([str(tmp_path / name)])
        await asyncio.sleep(0.2)
        assert received == [sorted(str(tmp_path / n) for n in ("a.jpg", "b.jpg", "c.mp4"))]
    finally:
        await watcher.stop()


@pytest.mark.asyncio
async def test_trigger_dropped_while_pass_in_flight(tmp_path, make_observer):
    received = []
    state = SyncStateMachine(str(tmp_path))

    async def _on_change(paths):
        received.append(paths)

    watcher = RootWatcher(str(tmp_path), _on_change, state, debounce_ms=10, observer_factory=make_observer)
    await watcher.start()
    try:
        token = state.begin(SyncState.INITIALIZING).data
        watcher.channel.publish([str(tmp_path / "a.jpg")])
        await asyncio.sleep(0.1)
        assert received == []
        assert watcher.dropped_triggers == 1

        state.finish(token)
        # The dropped trigger is not replayed.
        await asyncio.sleep(0.1)
        assert received == []

        watcher.channel.publish([str(tmp_path / "b.jpg")])
        await asyncio.sleep(0.1)
        assert received == [[str(tmp_path / "b.jpg")]]
    finally:
        await watcher.stop()


@pytest.mark.asyncio
async def test_stop_discards_pending_debounce(tmp_path, make_observer):
    received = []

    async def _on_change(paths):
        received.append(paths)

    watcher = RootWatcher(str(tmp_path), _on_change, SyncStateMachine(), debounce_ms=500, observer_factory=make_observer)
    await watcher.start()
    watcher.channel.publish([str(tmp_path / "a.jpg")])
    await asyncio.sleep(0.02)
    await watcher.stop()
    await asyncio.sleep(0.6)
    assert received == []
    assert watcher.channel is None
