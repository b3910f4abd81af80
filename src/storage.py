"""Persistence helpers (load/save) for the station board.

The board is written as one versioned JSON blob. In memory, cards are kept
in a mapping keyed by section id; on disk that mapping becomes a list of
[section_id, cards] pairs. The conversion happens only in this module.
A blob from a different schema version is discarded, not migrated.
"""
from __future__ import annotations
import json
import logging
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

from models import Board, Card, Section, TimerState
from timeutil import format_instant, parse_instant
from timers import update_cards_progress

logger = logging.getLogger(__name__)

DATA_DIR = Path(os.environ.get('STATIONS_DATA_DIR') or Path.home() / '.stations')
STORAGE_KEY = 'stations-state'
MUTE_KEY = 'alarm-muted'
STORAGE_VERSION = 1

SerializedCard = Dict[str, Any]
SerializedState = Dict[str, Any]


class PersistenceError(Exception):
    """Base for failures at the storage boundary."""


class MalformedPersistedState(PersistenceError):
    pass


class SchemaVersionMismatch(PersistenceError):
    def __init__(self, found: Any, expected: int = STORAGE_VERSION):
        super().__init__(f"Storage version mismatch: expected {expected}, got {found!r}")
        self.found = found
        self.expected = expected


class StorageWriteFailure(PersistenceError):
    pass


class BlobStore(Protocol):
    def load(self, key: str) -> Optional[str]: ...

    def save(self, key: str, text: str) -> None: ...


class FileBlobStore:
    """One ``<key>.json`` file per key inside ``directory``."""

    def __init__(self, directory: Optional[Path] = None):
        self.directory = Path(directory) if directory is not None else DATA_DIR

    def path(self, key: str) -> Path:
        return self.directory / f'{key}.json'

    def load(self, key: str) -> Optional[str]:
        path = self.path(key)
        if not path.exists():
            return None
        return path.read_text(encoding='utf-8')

    def save(self, key: str, text: str) -> None:
        """Write via a temp file and rename so readers never see half a blob."""
        self.directory.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.directory, prefix=f'.{key}.', suffix='.tmp')
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.write(text)
            os.replace(tmp, self.path(key))
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise


# -------------------- (de)serialization --------------------
def _timer_to_dict(timer: TimerState) -> Dict[str, Any]:
    return {
        'startTime': format_instant(timer.start_time) if timer.start_time else None,
        'endTime': format_instant(timer.end_time) if timer.end_time else None,
        'initialDurationMinutes': timer.initial_duration_minutes,
        'isActive': timer.is_active,
    }


def _timer_from_dict(raw: Dict[str, Any]) -> TimerState:
    start, end = raw.get('startTime'), raw.get('endTime')
    return TimerState(
        start_time=parse_instant(start) if start else None,
        end_time=parse_instant(end) if end else None,
        initial_duration_minutes=int(raw['initialDurationMinutes']),
        is_active=bool(raw['isActive']),
    )


def card_to_dict(card: Card) -> SerializedCard:
    data: SerializedCard = {'id': card.id, 'name': card.name, 'progressValue': card.progress_value}
    if card.timer is not None:
        data['timer'] = _timer_to_dict(card.timer)
    return data


def card_from_dict(raw: SerializedCard) -> Card:
    timer = raw.get('timer')
    return Card(
        id=int(raw['id']),
        name=str(raw.get('name', '')),
        progress_value=float(raw.get('progressValue', 0)),
        timer=_timer_from_dict(timer) if timer else None,
    )


def serialize_board(board: Board) -> SerializedState:
    return {
        'version': STORAGE_VERSION,
        'sections': [{'id': s.id, 'name': s.name} for s in board.sections],
        'cardsBySection': [
            [section_id, [card_to_dict(c) for c in cards]]
            for section_id, cards in board.cards_by_section.items()
        ],
    }


def deserialize_board(data: Any) -> Board:
    """Rebuild a Board from a parsed blob.

    Raises SchemaVersionMismatch or MalformedPersistedState.
    """
    if not isinstance(data, dict):
        raise MalformedPersistedState(f"Expected an object, got {type(data).__name__}")
    if data.get('version') != STORAGE_VERSION:
        raise SchemaVersionMismatch(data.get('version'))
    try:
        sections = tuple(Section(id=int(s['id']), name=str(s.get('name', ''))) for s in data['sections'])
        pairs: List[Any] = data['cardsBySection']
        cards_by_section = {int(sid): tuple(card_from_dict(c) for c in cards) for sid, cards in pairs}
    except (AttributeError, KeyError, TypeError, ValueError) as ex:
        raise MalformedPersistedState(f"Unreadable board data: {ex}") from ex

    section_ids = [s.id for s in sections]
    orphans = set(cards_by_section) - set(section_ids)
    if orphans:
        logger.warning("Dropping cards of unknown sections: %s", sorted(orphans))
    mapping = {sid: cards_by_section.get(sid, ()) for sid in section_ids}
    return Board(sections, mapping)


class Storage:
    """Load and save the board through a blob store."""

    def __init__(self, blobs: Optional[BlobStore] = None, key: str = STORAGE_KEY):
        self.blobs: BlobStore = blobs if blobs is not None else FileBlobStore()
        self.key = key

    def load_board(self, now: Optional[datetime] = None) -> Optional[Board]:
        """Saved board with progress refreshed, or None to start empty.

        Missing, unreadable and wrong-version blobs all yield None.
        """
        try:
            text = self.blobs.load(self.key)
        except OSError as ex:
            logger.error("Error reading saved board: %s", ex)
            return None
        except UnicodeDecodeError as ex:
            logger.error("Error loading saved board: not UTF-8 text (%s)", ex)
            return None
        if not text:
            return None
        try:
            try:
                data = json.loads(text)
            except ValueError as ex:
                raise MalformedPersistedState(f"Invalid JSON: {ex}") from ex
            board = deserialize_board(data)
        except SchemaVersionMismatch as ex:
            logger.warning("%s; starting with an empty board", ex)
            return None
        except MalformedPersistedState as ex:
            logger.error("Error loading saved board: %s", ex)
            return None
        # time has passed since the save; progress must catch up
        mapping = {sid: update_cards_progress(cards, now) for sid, cards in board.cards_by_section.items()}
        return Board(board.sections, mapping)

    def save_board(self, board: Board) -> bool:
        """Persist the board. Failures are logged and dropped, never raised."""
        try:
            try:
                self.blobs.save(self.key, json.dumps(serialize_board(board), indent=4))
            except (OSError, TypeError, ValueError) as ex:
                raise StorageWriteFailure(str(ex)) from ex
        except StorageWriteFailure as ex:
            logger.error("Error saving board: %s", ex)
            return False
        return True

    # -------------------- alarm mute flag --------------------
    def load_muted(self, default: bool = False) -> bool:
        try:
            text = self.blobs.load(MUTE_KEY)
        except (OSError, UnicodeDecodeError) as ex:
            logger.error("Error reading mute flag: %s", ex)
            return default
        if text is None:
            return default
        return text.strip().lower() == 'true'

    def save_muted(self, muted: bool) -> None:
        try:
            self.blobs.save(MUTE_KEY, 'true' if muted else 'false')
        except OSError as ex:
            logger.error("Error saving mute flag: %s", ex)
