"""Exchange the timers of two cards in one board snapshot."""
from __future__ import annotations
from datetime import datetime
from typing import Optional

from models import Board
from repository import find_card_by_id
from timers import with_timer


def swap_card_timers(board: Board, section_a: int, card_a: int,
                     section_b: int, card_b: int, now: Optional[datetime] = None) -> Board:
    """Return a board where card A holds B's timer and B holds A's.

    Ids and names stay put and both progress values are recomputed. Works
    within one section or across two. When either card is missing from the
    section it is claimed to be in, ``board`` itself is returned.
    """
    first = find_card_by_id(board.cards(section_a), card_a)
    second = find_card_by_id(board.cards(section_b), card_b)
    if first is None or second is None:
        return board
    if section_a == section_b and card_a == card_b:
        return board

    swapped_a = with_timer(first, second.timer, now)
    swapped_b = with_timer(second, first.timer, now)

    mapping = dict(board.cards_by_section)
    mapping[section_a] = tuple(swapped_a if c.id == card_a else c for c in mapping[section_a])
    # same-section swaps read back the list just written above
    mapping[section_b] = tuple(swapped_b if c.id == card_b else c for c in mapping[section_b])
    return Board(board.sections, mapping)
