"""Data models for the station timers board.

Every value here is immutable: a change to the board builds a new Board
rather than editing one in place, so readers always see a whole snapshot.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional, Tuple


@dataclass(frozen=True)
class TimerState:
    """Countdown attached to a card.

    Fields:
        start_time: Aware instant the timer started (None when inactive).
        end_time: Aware instant the timer runs out; may already be past.
        initial_duration_minutes: Configured span in whole minutes.
        is_active: False means the timer is logically absent.
    """
    start_time: Optional[datetime]
    end_time: Optional[datetime]
    initial_duration_minutes: int
    is_active: bool


@dataclass(frozen=True)
class Section:
    id: int
    name: str


@dataclass(frozen=True)
class Card:
    """A single station. ``id`` is unique within its section only.

    ``progress_value`` is a cache, always recomputable from ``timer``.
    """
    id: int
    name: str
    progress_value: float = 0
    timer: Optional[TimerState] = None

    @property
    def has_active_timer(self) -> bool:
        return self.timer is not None and self.timer.is_active


@dataclass(frozen=True)
class CardRef:
    """A card together with the section it lives in."""
    section_id: int
    section_name: str
    card: Card


@dataclass(frozen=True)
class Board:
    """Ordered sections plus the cards of each section keyed by section id.

    Every section id is a key of ``cards_by_section``; the mapping is never
    mutated once the board exists.
    """
    sections: Tuple[Section, ...] = ()
    cards_by_section: Dict[int, Tuple[Card, ...]] = field(default_factory=dict)

    @classmethod
    def empty(cls) -> Board:
        return cls((), {})

    def cards(self, section_id: int) -> Tuple[Card, ...]:
        return self.cards_by_section.get(section_id, ())

    def section(self, section_id: int) -> Optional[Section]:
        for section in self.sections:
            if section.id == section_id:
                return section
        return None

    def with_cards(self, section_id: int, cards: Tuple[Card, ...]) -> Board:
        mapping = dict(self.cards_by_section)
        mapping[section_id] = cards
        return Board(self.sections, mapping)

    def __str__(self) -> str:
        total = sum(len(cards) for cards in self.cards_by_section.values())
        return f'Sections: {len(self.sections)}, Cards: {total}'
