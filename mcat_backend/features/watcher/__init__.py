"""
Watcher feature - filesystem events to debounced reconciliation triggers.
"""
from .channel import ChannelClosed, EventChannel, coalesce
from .filters import filter_batch, is_relevant_path, is_self_artifact
from .watcher import ChannelEventHandler, RootWatcher, watch

__all__ = [
    "ChannelClosed",
    "ChannelEventHandler",
    "EventChannel",
    "RootWatcher",
    "coalesce",
    "filter_batch",
    "is_relevant_path",
    "is_self_artifact",
    "watch",
]
