"""Shared fixtures: a pinned clock, an in-memory blob store, and board builders."""

import asyncio
import os
from datetime import datetime, timedelta, timezone

import pytest

# plain output for render assertions; must be set before theme is imported
os.environ["NO_COLOR"] = "1"
os.environ["STATIONS_TZ"] = "UTC"

from models import Board, Card, Section, TimerState  # noqa: E402

T0 = datetime(2026, 2, 11, 9, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, start: datetime = T0):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, seconds: float = 0, minutes: float = 0) -> datetime:
        self.current += timedelta(seconds=seconds, minutes=minutes)
        return self.current


class MemoryBlobStore:
    def __init__(self, fail_writes: bool = False):
        self.blobs: dict = {}
        self.writes = 0
        self.fail_writes = fail_writes

    def load(self, key):
        return self.blobs.get(key)

    def save(self, key, text):
        if self.fail_writes:
            raise OSError(28, "No space left on device")
        self.writes += 1
        self.blobs[key] = text


def run(coro):
    """Run an async function in a fresh event loop."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def running_timer(minutes: int, start: datetime = T0) -> TimerState:
    return TimerState(start, start + timedelta(minutes=minutes), minutes, True)


def make_board(*sections, cards=None) -> Board:
    """make_board((1, "Front"), (2, "Back"), cards={1: [Card(1, "A")]})"""
    secs = tuple(Section(sid, name) for sid, name in sections)
    mapping = {s.id: tuple((cards or {}).get(s.id, ())) for s in secs}
    return Board(secs, mapping)


@pytest.fixture(autouse=True)
def _utc(monkeypatch):
    monkeypatch.setenv("STATIONS_TZ", "UTC")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def blobs():
    return MemoryBlobStore()
