"""Color & style helpers for the board view.

Decisions:
- One color per urgency tier (default/warning/orange/destructive) plus a
  primary color for headers and ids.
- Truecolor preferred; falls back to the 256-color cube if unsupported.
- Disabled when stdout is not a TTY unless FORCE_COLOR=1; NO_COLOR disables.
- Palette overrides come from the environment or a project .env file.
"""
from __future__ import annotations
import logging
import os, sys
from pathlib import Path

from progress import Variant

logger = logging.getLogger(__name__)

_FORCE = os.environ.get("FORCE_COLOR", "").lower() in {"1", "true", "yes", "on"}
_NO_COLOR = os.environ.get("NO_COLOR") is not None
_ENABLE = (_FORCE or sys.stdout.isatty()) and not _NO_COLOR
_COLORTERM = os.environ.get("COLORTERM", "").lower()
_USE_TRUECOLOR = _ENABLE and any(tok in _COLORTERM for tok in ("truecolor", "24bit"))

PALETTE_DEFAULTS: dict[str, str] = {
    'STATIONS_PRIMARY': '#476EAE',
    'STATIONS_DEFAULT': '#A7E399',
    'STATIONS_WARNING': '#F6FF99',
    'STATIONS_ORANGE': '#FFA94D',
    'STATIONS_DESTRUCTIVE': '#E5484D',
}


def _code(part: str) -> str:
    return f"\033[{part}m" if _ENABLE else ''


def _is_hex(value: str) -> bool:
    h = value.lstrip('#')
    return len(h) == 6 and all(c in '0123456789abcdefABCDEF' for c in h)


def _hex_to_rgb(hex_code: str) -> tuple[int, int, int]:
    h = hex_code.lstrip('#')
    return int(h[0:2], 16), int(h[2:4], 16), int(h[4:6], 16)


def _fg(hex_code: str) -> str:
    """Foreground escape for a hex color (truecolor or nearest 256-cube entry)."""
    if not _ENABLE:
        return ''
    r, g, b = _hex_to_rgb(hex_code)
    if _USE_TRUECOLOR:
        return f"\033[38;2;{r};{g};{b}m"
    r6, g6, b6 = (int(round(x / 255 * 5)) for x in (r, g, b))
    return f"\033[38;5;{16 + 36 * r6 + 6 * g6 + b6}m"


def read_env_file(path: Path) -> dict[str, str]:
    """Palette keys with valid hex values from a KEY=VALUE file."""
    overrides: dict[str, str] = {}
    if not path.exists():
        return overrides
    try:
        lines = path.read_text().splitlines()
    except OSError as ex:
        logger.warning("Could not read %s: %s", path, ex)
        return overrides
    for line in lines:
        line = line.strip()
        if not line or line.startswith('#') or '=' not in line:
            continue
        k, v = (part.strip() for part in line.split('=', 1))
        if k in PALETTE_DEFAULTS and _is_hex(v):
            overrides[k] = '#' + v.lstrip('#')
    return overrides


def resolve_palette(env_file: Path) -> dict[str, str]:
    """Hex value per palette key: real env var > .env override > default."""
    file_overrides = read_env_file(env_file)
    palette: dict[str, str] = {}
    for key, default in PALETTE_DEFAULTS.items():
        value = os.environ.get(key) or file_overrides.get(key, default)
        palette[key] = value if _is_hex(value) else default
    return palette


RESET = _code('0')
BOLD = _code('1')
DIM = _code('2')

PALETTE = resolve_palette(Path(__file__).resolve().parent.parent / '.env')
PRIMARY = _fg(PALETTE['STATIONS_PRIMARY'])

VARIANT_COLOR = {
    Variant.DEFAULT: _fg(PALETTE['STATIONS_DEFAULT']),
    Variant.WARNING: _fg(PALETTE['STATIONS_WARNING']),
    Variant.ORANGE: _fg(PALETTE['STATIONS_ORANGE']),
    Variant.DESTRUCTIVE: _fg(PALETTE['STATIONS_DESTRUCTIVE']),
}

HEADER_COLOR = PRIMARY
ID_COLOR = PRIMARY + BOLD
EMPTY_COLOR = DIM + PRIMARY


def color(text: str, *styles: str) -> str:
    if not _ENABLE:
        return text
    return ''.join(styles) + text + RESET


__all__ = [
    'color', 'RESET', 'BOLD', 'DIM', 'VARIANT_COLOR', 'HEADER_COLOR', 'ID_COLOR', 'EMPTY_COLOR',
    'PALETTE', 'resolve_palette', 'read_env_file',
]
