from __future__ import annotations

from enum import Enum


class FetchState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


class BufferState(str, Enum):
    CLEAN = "clean"
    DIRTY = "dirty"
    SYNCING = "syncing"


FETCH_TRANSITIONS: dict[tuple[FetchState, str], FetchState] = {
    (FetchState.IDLE, "start"): FetchState.LOADING,
    (FetchState.LOADING, "succeed"): FetchState.LOADED,
    (FetchState.LOADING, "fail"): FetchState.FAILED,
    (FetchState.LOADED, "start"): FetchState.LOADING,
    (FetchState.FAILED, "start"): FetchState.LOADING,
}

BUFFER_TRANSITIONS: dict[tuple[BufferState, str], BufferState] = {
    (BufferState.CLEAN, "edit"): BufferState.DIRTY,
    (BufferState.DIRTY, "edit"): BufferState.DIRTY,
    (BufferState.DIRTY, "sync"): BufferState.SYNCING,
    (BufferState.SYNCING, "synced"): BufferState.CLEAN,
    (BufferState.SYNCING, "sync_failed"): BufferState.DIRTY,
}


class IllegalTransition(Exception):
    def __init__(self, state: Enum, event: str):
        super().__init__(f"event {event!r} not allowed in state {state.value!r}")
        self.state = state
        self.event = event


def advance(table: dict, state, event: str):
    try:
        return table[(state, event)]
    except KeyError:
        raise IllegalTransition(state, event) from None
