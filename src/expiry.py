"""Edge-triggered "timer just expired" detection.

Each watched card moves between two states. Only the PENDING -> NOTIFIED
step produces a notification; the first observation of a card only seeds
its state, so timers that were already overdue when the board was loaded
stay quiet.
"""
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Hashable, Iterable


class ExpiryState(Enum):
    PENDING = "pending"
    NOTIFIED = "notified"


@dataclass(frozen=True)
class ExpiredTimer:
    section_id: int
    card_id: int
    card_name: str


def transition(state: ExpiryState, expired: bool) -> ExpiryState:
    return ExpiryState.NOTIFIED if expired else ExpiryState.PENDING


class ExpiryWatch:
    def __init__(self) -> None:
        self._states: Dict[Hashable, ExpiryState] = {}

    def observe(self, key: Hashable, expired: bool) -> bool:
        """Record the latest reading; True only on a not-expired -> expired edge."""
        previous = self._states.get(key)
        current = transition(previous or ExpiryState.PENDING, expired)
        self._states[key] = current
        if previous is None:
            return False
        return previous is ExpiryState.PENDING and current is ExpiryState.NOTIFIED

    def retain(self, keys: Iterable[Hashable]) -> None:
        """Forget every key not in ``keys`` (timer cleared or card deleted)."""
        live = set(keys)
        for key in list(self._states):
            if key not in live:
                del self._states[key]

    def __len__(self) -> int:
        return len(self._states)
