"""
Key and tempo normalizers.

Musical keys are stored in Camelot notation ("8B" = C major, "8A" = A minor).
These helpers interpret key strings for sorting and coloring, and convert
the other notations DJ software and Spotify use into Camelot.
"""

import re
from typing import Any, NamedTuple, Optional

MAJOR = "B"
MINOR = "A"

# Neutral color for unknown keys
DEFAULT_KEY_COLOR = "#9E9E9E"

# Color palette per Camelot position
KEY_COLORS = {
    1: "#C40233",  # Red
    2: "#FFD700",  # Yellow
    3: "#008000",  # Green
    4: "#40E0D0",  # Turquoise
    5: "#0000FF",  # Blue
    6: "#8A2BE2",  # Purple
    7: "#FF1493",  # Pink
    8: "#FF8C00",  # Orange
    9: "#7CFC00",  # Lime
    10: "#00FFFF",  # Cyan
    11: "#FF00FF",  # Magenta
    12: "#FF69B4",  # Light pink
}

# Camelot position indexed by pitch class (C=0 ... B=11)
CAMELOT_MAJOR = (8, 3, 10, 5, 12, 7, 2, 9, 4, 11, 6, 1)
CAMELOT_MINOR = (5, 12, 7, 2, 9, 4, 11, 6, 1, 8, 3, 10)

PITCH_CLASSES = {"C": 0, "D": 2, "E": 4, "F": 5, "G": 7, "A": 9, "B": 11}

_CAMELOT_RE = re.compile(r"^\s*(\d{1,2})\s*([AB])\s*$", re.IGNORECASE)
_OPEN_KEY_RE = re.compile(r"^\s*(\d{1,2})\s*([DM])\s*$", re.IGNORECASE)
_STANDARD_KEY_RE = re.compile(
    r"^\s*([A-G])\s*(#|b|♯|♭|sharp|flat)?\s*(m|min|minor|maj|major)?\s*$",
    re.IGNORECASE,
)
_LEADING_INT_RE = re.compile(r"^\s*(\d+)")


class ParsedKey(NamedTuple):
    """Camelot scale position (0 = unknown) and mode ("A" minor, "B" major)."""

    scale: int
    mode: str


def parse_key(key: Any) -> ParsedKey:
    """Parse a Camelot key string.

    Never fails: empty or unreadable input gives scale 0, which callers
    treat as "unknown".

    Examples:
        >>> parse_key("8B")
        ParsedKey(scale=8, mode='B')
        >>> parse_key("")
        ParsedKey(scale=0, mode='A')
    """
    if key is None:
        return ParsedKey(0, MINOR)

    text = str(key).strip()
    if not text:
        return ParsedKey(0, MINOR)

    match = _LEADING_INT_RE.match(text)
    scale = int(match.group(1)) if match else 0
    if not 1 <= scale <= 12:
        scale = 0

    mode = MAJOR if text[-1].upper() == MAJOR else MINOR
    return ParsedKey(scale, mode)


def key_sort_value(key: Any) -> int:
    """Sort value grouping by scale first, minor before major within a scale."""
    parsed = parse_key(key)
    return parsed.scale * 10 + (1 if parsed.mode == MAJOR else 0)


def key_display_color(key: Any) -> str:
    """Palette color for a key; unknown keys get the neutral default."""
    return KEY_COLORS.get(parse_key(key).scale, DEFAULT_KEY_COLOR)


def camelot_from_pitch_class(pitch_class: Any, mode: Any) -> Optional[str]:
    """Convert a pitch class (0-11) and mode (1 major, 0 minor) to Camelot.

    This is the representation Spotify audio features use; pitch class -1
    means no key was detected.
    """
    try:
        pc = int(pitch_class)
    except (TypeError, ValueError):
        return None
    if not 0 <= pc <= 11:
        return None

    try:
        is_major = int(mode) == 1
    except (TypeError, ValueError):
        is_major = True

    if is_major:
        return f"{CAMELOT_MAJOR[pc]}{MAJOR}"
    return f"{CAMELOT_MINOR[pc]}{MINOR}"


def _traktor_key(value: int) -> Optional[str]:
    """Traktor stores keys as 0-11 (major, C upward) and 12-23 (minor)."""
    if 0 <= value <= 11:
        return camelot_from_pitch_class(value, 1)
    if 12 <= value <= 23:
        return camelot_from_pitch_class(value - 12, 0)
    return None


def _standard_key(match: re.Match) -> str:
    note, accidental, quality = match.groups()
    pitch_class = PITCH_CLASSES[note.upper()]

    if accidental:
        if accidental in ("#", "♯") or accidental.lower() == "sharp":
            pitch_class += 1
        else:
            pitch_class -= 1

    is_minor = bool(quality) and quality.lower() in ("m", "min", "minor")
    # "M" alone (uppercase) conventionally means major
    if quality == "M":
        is_minor = False

    return camelot_from_pitch_class(pitch_class % 12, 0 if is_minor else 1)


def normalize_key(value: Any) -> Optional[str]:
    """Normalize any supported key notation to Camelot.

    Handles Camelot ("8b"), Open Key ("1d"/"1m"), standard notation
    ("Am", "F#m", "Db") and Traktor integer keys. Unrecognized strings are
    returned stripped so no data is lost.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        return _traktor_key(int(value))

    text = str(value).strip()
    if not text:
        return None

    match = _CAMELOT_RE.match(text)
    if match and 1 <= int(match.group(1)) <= 12:
        return f"{int(match.group(1))}{match.group(2).upper()}"

    match = _OPEN_KEY_RE.match(text)
    if match and 1 <= int(match.group(1)) <= 12:
        scale = (int(match.group(1)) + 6) % 12 + 1
        mode = MAJOR if match.group(2).lower() == "d" else MINOR
        return f"{scale}{mode}"

    match = _STANDARD_KEY_RE.match(text)
    if match:
        return _standard_key(match)

    if text.isdigit():
        return _traktor_key(int(text)) or text

    return text


def normalize_tempo(value: Any) -> Optional[float]:
    """Parse a tempo value; anything not a positive number is "absent"."""
    if value is None or isinstance(value, bool):
        return None
    try:
        tempo = float(value)
    except (TypeError, ValueError):
        return None
    if tempo != tempo or tempo <= 0:  # NaN check
        return None
    return tempo
