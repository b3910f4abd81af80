"""Expiry alarm: rings the terminal bell when a timer runs out.

The mute flag survives restarts through the same blob store as the board.
"""
from __future__ import annotations
import logging
import sys
from collections import deque
from typing import Deque, Optional, TextIO

from expiry import ExpiredTimer
from storage import Storage

logger = logging.getLogger(__name__)

BELL = '\a'
RECENT_LIMIT = 20


class Alarm:
    def __init__(self, storage: Optional[Storage] = None, stream: Optional[TextIO] = None):
        self.storage = storage
        self.stream = stream if stream is not None else sys.stdout
        self.muted: bool = storage.load_muted() if storage is not None else False
        self.recent: Deque[ExpiredTimer] = deque(maxlen=RECENT_LIMIT)

    def mute(self) -> None:
        self._set_muted(True)

    def unmute(self) -> None:
        self._set_muted(False)

    def _set_muted(self, muted: bool) -> None:
        self.muted = muted
        if self.storage is not None:
            self.storage.save_muted(muted)

    def __call__(self, event: ExpiredTimer) -> None:
        """Expiry callback for the store."""
        self.recent.append(event)
        if self.muted:
            logger.debug("Muted; not ringing for card %s", event.card_id)
            return
        self.stream.write(BELL)
        self.stream.flush()
