"""
Per-root sync state: Idle, Initializing, Updating, Error.

At most one pass holds the lane at a time. `begin` hands out a token that the same
pass must present to `finish`; a stale token (from a pass that was superseded by a
root switch) cannot move the state.
"""
from __future__ import annotations

import itertools
import threading
from dataclasses import dataclass
from enum import Enum

from ...shared import ErrorCode, Result, get_logger

logger = get_logger(__name__)


class SyncState(str, Enum):
    IDLE = "idle"
    INITIALIZING = "initializing"
    UPDATING = "updating"
    ERROR = "error"


STATUS_TEXT: dict[SyncState, str] = {
    SyncState.IDLE: "",
    SyncState.INITIALIZING: "Initializing Database...",
    SyncState.UPDATING: "Updating Database...",
    SyncState.ERROR: "Database Error! Please restart the application.",
}


@dataclass(frozen=True)
class PassToken:
    id: int
    kind: SyncState


class SyncStateMachine:
    """
    Guard for one root's reconciliation lane.

    The watcher receives this object and consults `is_busy()` before triggering;
    there is no module-level flag.
    """

    _ids = itertools.count(1)

    def __init__(self, root: str = ""):
        self.root = root
        self._lock = threading.Lock()
        self._state = SyncState.IDLE
        self._active: PassToken | None = None
        self._last_error: str | None = None

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def status_text(self) -> str:
        return STATUS_TEXT[self._state]

    @property
    def last_error(self) -> str | None:
        return self._last_error

    def is_busy(self) -> bool:
        return self._state in (SyncState.INITIALIZING, SyncState.UPDATING)

    def begin(self, kind: SyncState, *, user_initiated: bool = False) -> Result[PassToken]:
        """
        Enter INITIALIZING or UPDATING.

        Refused with BUSY while another pass is active. From ERROR only a
        user-initiated retry may proceed.
        """
        if kind not in (SyncState.INITIALIZING, SyncState.UPDATING):
            return Result.Err(ErrorCode.INVALID_INPUT, f"Cannot begin a pass in state {kind.value}")
        with self._lock:
            if self.is_busy():
                return Result.Err(ErrorCode.BUSY, f"A pass is already {self._state.value}", state=self._state.value)
            if self._state is SyncState.ERROR and not user_initiated:
                return Result.Err(
                    ErrorCode.BUSY,
                    "Catalog is in error state; a manual refresh is required",
                    state=self._state.value,
                )
            token = PassToken(id=next(self._ids), kind=kind)
            self._active = token
            self._state = kind
        logger.debug("Sync %s: %s", self.root or "<none>", kind.value)
        return Result.Ok(token)

    def finish(self, token: PassToken, error: str | None = None) -> bool:
        """Leave the active pass for IDLE, or ERROR when `error` is given. Returns False for a stale token."""
        with self._lock:
            if self._active is None or self._active.id != token.id:
                return False
            self._active = None
            if error:
                self._state = SyncState.ERROR
                self._last_error = error
            else:
                self._state = SyncState.IDLE
                self._last_error = None
        if error:
            logger.error("Sync %s failed: %s", self.root or "<none>", error)
        return True

    def abandon(self) -> None:
        """Drop the active pass without a verdict (root switch); the machine becomes IDLE."""
        with self._lock:
            self._active = None
            self._state = SyncState.IDLE

    def to_dict(self) -> dict:
        return {
            "state": self._state.value,
            "status": self.status_text,
            "last_error": self._last_error,
        }
