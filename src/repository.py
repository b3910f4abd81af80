"""Section and card collections: id assignment and CRUD as tuple transforms.

Each function works on one collection and returns a new one. Removing a
section's cards along with it is the store's job.
"""
from __future__ import annotations
from dataclasses import replace
from typing import Iterable, Optional, Tuple

from models import Card, Section

DEFAULT_SECTION_NAME = 'Section name'


def next_id(existing_ids: Iterable[int]) -> int:
    """max + 1 over the live ids, or 1 for an empty collection.

    Deleting the current maximum frees its id for the next item.
    """
    ids = list(existing_ids)
    if not ids:
        return 1
    return max(ids) + 1


# -------------------- sections --------------------
def create_section(sections: Iterable[Section]) -> Section:
    return Section(id=next_id(s.id for s in sections), name=DEFAULT_SECTION_NAME)


def update_section_name(sections: Iterable[Section], section_id: int, name: str) -> Tuple[Section, ...]:
    return tuple(replace(s, name=name) if s.id == section_id else s for s in sections)


def delete_section(sections: Iterable[Section], section_id: int) -> Tuple[Section, ...]:
    return tuple(s for s in sections if s.id != section_id)


# -------------------- cards --------------------
def create_card(cards: Iterable[Card]) -> Card:
    """New card named after its id."""
    new_id = next_id(c.id for c in cards)
    return Card(id=new_id, name=str(new_id), progress_value=0)


def update_card_name(cards: Iterable[Card], card_id: int, name: str) -> Tuple[Card, ...]:
    return tuple(replace(c, name=name) if c.id == card_id else c for c in cards)


def delete_card(cards: Iterable[Card], card_id: int) -> Tuple[Card, ...]:
    return tuple(c for c in cards if c.id != card_id)


def find_card_by_id(cards: Iterable[Card], card_id: int) -> Optional[Card]:
    for card in cards:
        if card.id == card_id:
            return card
    return None
