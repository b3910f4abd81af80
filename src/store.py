"""Store: the authoritative board and every operation that changes it.

Mutations are synchronous: each computes a new Board and swaps the
reference. A live store (``start``) also ticks once a second to refresh
progress and report expired timers, and saves the board after a short quiet
period following the last mutation.
"""
from __future__ import annotations
import logging
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from expiry import ExpiredTimer, ExpiryWatch
from models import Board, Card, CardRef, Section, TimerState
from progress import Reading, read_timer
import repository
from scheduler import TaskScheduler
from storage import Storage
from swap import swap_card_timers
from timers import (
    add_time_to_timer, clear_timer, create_timer, create_timer_with_dates,
    update_cards_progress, update_timer_dates, with_timer,
)
from timeutil import current_time

logger = logging.getLogger(__name__)

ExpiryCallback = Callable[[ExpiredTimer], None]
Clock = Callable[[], datetime]


class Store:
    def __init__(self, board: Optional[Board] = None, storage: Optional[Storage] = None,
                 on_expired: Optional[ExpiryCallback] = None, clock: Clock = current_time,
                 tasks: Optional[TaskScheduler] = None):
        self._board: Board = board if board is not None else Board.empty()
        self.storage = storage
        self.on_expired = on_expired
        self.clock = clock
        self.tasks = tasks if tasks is not None else TaskScheduler(self.tick, self.flush)
        self._expiry = ExpiryWatch()
        self._dirty = False

    @classmethod
    def open(cls, storage: Storage, **kwargs) -> Store:
        """Store seeded from the saved board (empty when there is none)."""
        clock: Clock = kwargs.get('clock', current_time)
        board = storage.load_board(clock())
        return cls(board=board, storage=storage, **kwargs)

    # -------------------- lifecycle --------------------
    def start(self) -> None:
        """Begin ticking; call from inside the running asyncio loop."""
        self.tasks.start()
        if self._dirty:
            self.tasks.arm_save()

    def stop(self) -> None:
        """Cancel the tick and any pending save, then write what is pending."""
        self.tasks.cancel_save()
        self.tasks.stop()
        self.flush()

    def close(self) -> None:
        self.flush()

    def flush(self) -> bool:
        """Write the board if it changed since the last write."""
        if not self._dirty or self.storage is None:
            return False
        self._dirty = False
        return self.storage.save_board(self._board)

    @property
    def dirty(self) -> bool:
        return self._dirty

    def tick(self) -> List[ExpiredTimer]:
        """Refresh progress of running timers and fire expiry notifications.

        Returns the timers that expired during this tick.
        """
        now = self.clock()
        board = self._board
        mapping = {sid: update_cards_progress(cards, now) for sid, cards in board.cards_by_section.items()}
        self._board = Board(board.sections, mapping)

        fired: List[ExpiredTimer] = []
        live = []
        for ref in self.all_cards():
            card = ref.card
            if not card.has_active_timer:
                continue
            key = (ref.section_id, card.id)
            live.append(key)
            if self._expiry.observe(key, read_timer(card.timer, now).expired):
                fired.append(ExpiredTimer(ref.section_id, card.id, card.name))
        self._expiry.retain(live)

        for event in fired:
            logger.debug("Timer expired: section %s card %s", event.section_id, event.card_id)
            if self.on_expired is None:
                continue
            try:
                self.on_expired(event)
            except Exception:
                logger.exception("Expiry callback failed for card %s", event.card_id)
        return fired

    # -------------------- queries --------------------
    @property
    def board(self) -> Board:
        return self._board

    @property
    def sections(self) -> Tuple[Section, ...]:
        return self._board.sections

    def cards_of_section(self, section_id: int) -> Tuple[Card, ...]:
        return self._board.cards(section_id)

    def all_cards(self) -> List[CardRef]:
        return [CardRef(s.id, s.name, card) for s in self._board.sections for card in self._board.cards(s.id)]

    def find_card(self, section_id: int, card_id: int) -> Optional[Card]:
        return repository.find_card_by_id(self.cards_of_section(section_id), card_id)

    def read(self, section_id: int, card_id: int) -> Optional[Reading]:
        card = self.find_card(section_id, card_id)
        if card is None:
            return None
        return read_timer(card.timer, self.clock())

    # -------------------- sections --------------------
    def add_section(self) -> Section:
        section = repository.create_section(self._board.sections)
        mapping = dict(self._board.cards_by_section)
        mapping[section.id] = ()
        self._commit(Board(self._board.sections + (section,), mapping))
        return section

    def rename_section(self, section_id: int, name: str) -> bool:
        if self._board.section(section_id) is None:
            return False
        sections = repository.update_section_name(self._board.sections, section_id, name)
        return self._commit(Board(sections, self._board.cards_by_section))

    def delete_section(self, section_id: int) -> bool:
        """Remove a section and all of its cards."""
        if self._board.section(section_id) is None:
            return False
        sections = repository.delete_section(self._board.sections, section_id)
        mapping = {sid: cards for sid, cards in self._board.cards_by_section.items() if sid != section_id}
        return self._commit(Board(sections, mapping))

    # -------------------- cards --------------------
    def add_card(self, section_id: int) -> Optional[Card]:
        if self._board.section(section_id) is None:
            return None
        cards = self.cards_of_section(section_id)
        card = repository.create_card(cards)
        self._commit(self._board.with_cards(section_id, cards + (card,)))
        return card

    def rename_card(self, section_id: int, card_id: int, name: str) -> bool:
        if self.find_card(section_id, card_id) is None:
            return False
        cards = repository.update_card_name(self.cards_of_section(section_id), card_id, name)
        return self._commit(self._board.with_cards(section_id, cards))

    def delete_card(self, section_id: int, card_id: int) -> bool:
        if self.find_card(section_id, card_id) is None:
            return False
        cards = repository.delete_card(self.cards_of_section(section_id), card_id)
        return self._commit(self._board.with_cards(section_id, cards))

    # -------------------- timers --------------------
    def start_timer(self, section_id: int, card_id: int, minutes: int) -> bool:
        now = self.clock()
        return self._update_card(section_id, card_id, lambda card: with_timer(card, create_timer(minutes, now), now))

    def start_timer_with_range(self, section_id: int, card_id: int, start: datetime, end: datetime) -> bool:
        now = self.clock()
        return self._update_card(section_id, card_id,
                                 lambda card: with_timer(card, create_timer_with_dates(start, end), now))

    def update_timer_range(self, section_id: int, card_id: int, start: datetime, end: datetime) -> bool:
        """Reschedule a running timer; cards without one are left alone."""
        now = self.clock()
        return self._update_running(section_id, card_id,
                                    lambda timer: update_timer_dates(timer, start, end), now)

    def add_time_to_timer(self, section_id: int, card_id: int, minutes: int) -> bool:
        """Extend (or, with negative minutes, shrink) a running timer."""
        now = self.clock()
        return self._update_running(section_id, card_id,
                                    lambda timer: add_time_to_timer(timer, minutes), now)

    def clear_timer(self, section_id: int, card_id: int) -> bool:
        return self._update_card(section_id, card_id, clear_timer)

    def swap_timers(self, section_a: int, card_a: int, section_b: int, card_b: int) -> bool:
        board = swap_card_timers(self._board, section_a, card_a, section_b, card_b, self.clock())
        if board is self._board:
            return False
        return self._commit(board)

    # -------------------- internals --------------------
    def _update_card(self, section_id: int, card_id: int, change: Callable[[Card], Card]) -> bool:
        if self.find_card(section_id, card_id) is None:
            return False
        cards = tuple(change(c) if c.id == card_id else c for c in self.cards_of_section(section_id))
        return self._commit(self._board.with_cards(section_id, cards))

    def _update_running(self, section_id: int, card_id: int,
                        change: Callable[[TimerState], TimerState], now: datetime) -> bool:
        card = self.find_card(section_id, card_id)
        if card is None or not card.has_active_timer:
            return False
        return self._update_card(section_id, card_id, lambda c: with_timer(c, change(c.timer), now))

    def _commit(self, board: Board) -> bool:
        self._board = board
        self._dirty = True
        self.tasks.arm_save()
        return True

    def __str__(self) -> str:
        return str(self._board)
