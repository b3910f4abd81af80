"""Board rendering: one column per section, one block per station.

Each station shows its id and name, then its countdown and a progress bar
colored by urgency tier. Columns share the terminal width the same way
regardless of how many sections exist.
"""
from __future__ import annotations
from datetime import datetime
import re
import shutil
from typing import Dict, List, Mapping

from models import Board, Card, Section
from progress import Variant, read_timer
from theme import color, HEADER_COLOR, VARIANT_COLOR, ID_COLOR, EMPTY_COLOR, BOLD

MIN_COL_WIDTH = 18
SEP = " | "
ANSI_RE = re.compile(r"\x1b\[[0-9;]*m")
BAR_FULL = '█'
BAR_EMPTY = '░'
IDLE_TEXT = '--:--'


def progress_bar(progress: float, width: int) -> str:
    """Bar for 0-100; overtime (above 100) draws a full bar."""
    width = max(1, width)
    filled = int(round(min(max(progress, 0), 100) / 100 * width))
    return BAR_FULL * filled + BAR_EMPTY * (width - filled)


class BoardView:
    def __init__(self, board: Board, now: datetime, muted: bool = False):
        self.board = board
        self.now = now
        self.muted = muted

    def display(self) -> None:
        term_width = shutil.get_terminal_size((120, 30)).columns
        for line in self.render(term_width):
            print(line)

    def render(self, term_width: int) -> List[str]:
        if not self.board.sections:
            return [color("No sections yet. Try: stations section add", EMPTY_COLOR)]
        widths = self._compute_column_widths(term_width)
        blocks = {s.id: self._section_lines(s, widths[s.id]) for s in self.board.sections}
        return self._render(widths, blocks)

    # ---- width calculation ----
    def _compute_column_widths(self, term_width: int) -> Dict[int, int]:
        sections = self.board.sections
        sep_total = len(SEP) * (len(sections) - 1)
        widths: Dict[int, int] = {}
        for s in sections:
            longest = len(self._title(s))
            for card in self.board.cards(s.id):
                longest = max(longest, len(self._card_label(card)))
            widths[s.id] = max(MIN_COL_WIDTH, longest)
        total = sum(widths.values()) + sep_total
        if total > term_width:
            target_space = max(term_width - sep_total, len(sections) * MIN_COL_WIDTH)
            while sum(widths.values()) > target_space:
                widest = max(widths, key=lambda sid: widths[sid])
                if widths[widest] <= MIN_COL_WIDTH:
                    break
                widths[widest] -= 1
        else:
            extra = term_width - total
            ids = [s.id for s in sections]
            i = 0
            while extra > 0:
                widths[ids[i % len(ids)]] += 1
                extra -= 1
                i += 1
        return widths

    # ---- per-section blocks ----
    @staticmethod
    def _title(section: Section) -> str:
        return f"{section.id}. {section.name or '<unnamed>'}".upper()

    @staticmethod
    def _card_label(card: Card) -> str:
        return f"{card.id}. {card.name if card.name else '<untitled>'}"

    def _section_lines(self, section: Section, width: int) -> List[str]:
        cards = self.board.cards(section.id)
        if not cards:
            return [color('(empty)', EMPTY_COLOR)]
        lines: List[str] = []
        for card in cards:
            lines.extend(self._card_lines(card, width))
        return lines

    def _card_lines(self, card: Card, width: int) -> List[str]:
        label = self._card_label(card)
        if len(label) > width:
            label = label[:max(1, width - 1)] + '…'
        id_part, _, name_part = label.partition(' ')
        first = color(id_part, ID_COLOR) + ' ' + name_part
        if not card.has_active_timer:
            return [first, color(IDLE_TEXT, EMPTY_COLOR)]
        reading = read_timer(card.timer, self.now)
        style = VARIANT_COLOR.get(reading.variant, '')
        if reading.variant is Variant.DESTRUCTIVE:
            style += BOLD
        text = reading.remaining_text
        bar = progress_bar(reading.progress, width - len(text) - 1)
        return [first, color(f"{text} {bar}", style)]

    # ---- rendering ----
    def _render(self, widths: Mapping[int, int], blocks: Mapping[int, List[str]]) -> List[str]:
        sections = self.board.sections
        out: List[str] = []
        header_cells: List[str] = []
        for s in sections:
            title = self._title(s)[:widths[s.id]]
            h = color(title, HEADER_COLOR, BOLD)
            header_cells.append(self._pad(h, widths[s.id]))
        out.append(SEP.join(header_cells))
        out.append(SEP.join(color('-' * widths[s.id], HEADER_COLOR) for s in sections))
        rows = max(len(blocks[s.id]) for s in sections)
        for r in range(rows):
            row_cells: List[str] = []
            for s in sections:
                col_lines = blocks[s.id]
                line = col_lines[r] if r < len(col_lines) else ''
                row_cells.append(self._pad(line, widths[s.id]))
            out.append(SEP.join(row_cells).rstrip())
        if self.muted:
            out.append(color('(alarm muted)', EMPTY_COLOR))
        return out

    @classmethod
    def _pad(cls, line: str, width: int) -> str:
        pad = width - cls._visible_len(line)
        return line + ' ' * pad if pad > 0 else line

    @staticmethod
    def _visible_len(s: str) -> int:
        return len(ANSI_RE.sub('', s))
