"""
Sync feature - per-root pass guard.

The service driving passes lives in `.service`; it is not imported here because
the watcher depends on the state machine and the service depends on the watcher.
"""
from .state import STATUS_TEXT, PassToken, SyncState, SyncStateMachine

__all__ = ["PassToken", "STATUS_TEXT", "SyncState", "SyncStateMachine"]
