"""
Output Normalizers.

============================================================
PURPOSE
============================================================
Primitives that strip or rewrite non-behavioral noise from
engine output before comparison.

Each normalizer:
1. Targets one recognized class of noise
2. Never removes content that changes game semantics
3. Is idempotent (applying it twice is a no-op)

============================================================
NOISE CLASSES
============================================================
1. Line endings and whitespace
2. Game identification / copyright header
3. Status bar (<location> ... Score: <n> Moves: <n>)
4. Command prompts
5. Hard line wrapping
6. Non-deterministic flavor lines (ambient, loading, system)
7. Synonymous error-message phrasings

============================================================
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Pattern, Tuple


# ============================================================
# PATTERNS
# ============================================================

STATUS_BAR_PATTERN = re.compile(
    r"^\s*\S.*\s+Score:\s*-?\d+\s+Moves:\s*\d+\s*$", re.IGNORECASE
)

# Interpreter-specific status bar renderings
STATUS_BAR_VARIANT_PATTERNS: List[Pattern] = [
    re.compile(r"^\s*\S.*\t+Score:\s*-?\d+\t+Moves:\s*\d+\s*$", re.IGNORECASE),
    re.compile(r"^\S.*Score:-?\d+\s*Moves:\d+\s*$", re.IGNORECASE),
    re.compile(r"^\s*Score:\s*-?\d+\s+Moves:\s*\d+\s*$", re.IGNORECASE),
]

STATUS_BAR_EXTRACT_PATTERN = re.compile(
    r"^\s*(.+?)\s+Score:\s*(-?\d+)\s+Moves:\s*(\d+)\s*$", re.IGNORECASE
)

HEADER_PATTERNS: List[Pattern] = [
    re.compile(r"^ZORK I:", re.IGNORECASE),
    re.compile(r"^Copyright\b", re.IGNORECASE),
    re.compile(r"^All rights reserved", re.IGNORECASE),
    re.compile(r"^Release\s+\d+\s*/\s*Serial\s+number\s+\d+", re.IGNORECASE),
    re.compile(r"^The Great Underground Empire", re.IGNORECASE),
    re.compile(r"^Infocom\b", re.IGNORECASE),
    re.compile(r"^ZORK is a registered trademark", re.IGNORECASE),
]

PROMPT_LINE_PATTERN = re.compile(r"^[ \t]*>[ \t]*$")
TRAILING_PROMPT_PATTERN = re.compile(r"[ \t]*>[ \t]*\s*$")

SONG_BIRD_PATTERN = re.compile(
    r"You\s+hear\s+in\s+the\s+distance\s+the\s+chirping\s+of\s+a\s+song\s*bird\.",
    re.IGNORECASE,
)

ATMOSPHERIC_LINE_PATTERNS: List[Pattern] = [
    re.compile(r"^You\s+(?:can\s+)?hear\b", re.IGNORECASE),
    re.compile(r"^The\s+wind\b", re.IGNORECASE),
    re.compile(r"^A\s+gentle\s+breeze\b", re.IGNORECASE),
]

LOADING_LINE_PATTERNS: List[Pattern] = [
    re.compile(r"^Using normal formatting\.$", re.IGNORECASE),
    re.compile(r"^Loading\s+\S.*\.$", re.IGNORECASE),
    re.compile(r"^Restore failed\.$", re.IGNORECASE),
    re.compile(r"^Save failed\.$", re.IGNORECASE),
]

# Canonical error tokens are exempt from the system-line filter
OBJECT_NOT_VISIBLE = "[OBJECT_NOT_VISIBLE]"
INVALID_DIRECTION = "[INVALID_DIRECTION]"
PARSE_ERROR = "[PARSE_ERROR]"
CANONICAL_ERROR_TOKENS = (OBJECT_NOT_VISIBLE, INVALID_DIRECTION, PARSE_ERROR)

SYSTEM_LINE_PATTERN = re.compile(r"^\[.*\]$")
TIMING_LINE_PATTERN = re.compile(r"^Time:\s*\d+(?:\.\d+)?\s*m?s$", re.IGNORECASE)

_DIRECTIONS = (
    r"north|south|east|west|northeast|northwest|southeast|southwest"
    r"|up|down|in|out"
)

ERROR_MESSAGE_FAMILIES: List[Tuple[Pattern, str]] = [
    (re.compile(r"You\s+can'?t\s+see\s+any\s+[^.!\n]+?\s+here\s*!", re.IGNORECASE), OBJECT_NOT_VISIBLE),
    (re.compile(r"I\s+don'?t\s+see\s+any\s+[^.!\n]+?\s+here\s*\.", re.IGNORECASE), OBJECT_NOT_VISIBLE),
    (re.compile(r"There\s+is\s+no\s+[^.!\n]+?\s+here\s*\.", re.IGNORECASE), OBJECT_NOT_VISIBLE),
    (re.compile(r"You\s+can'?t\s+go\s+that\s+way\s*\.", re.IGNORECASE), INVALID_DIRECTION),
    (re.compile(rf"You\s+can'?t\s+go\s+(?:{_DIRECTIONS})\s*\.", re.IGNORECASE), INVALID_DIRECTION),
    (re.compile(r"I\s+don'?t\s+understand\s+that\s*\.", re.IGNORECASE), PARSE_ERROR),
    (re.compile(r"I\s+don'?t\s+know\s+the\s+word\s+\"[^\"\n]*\"\s*\.", re.IGNORECASE), PARSE_ERROR),
]

SENTENCE_TERMINALS = (".", "!", "?", '"', "'", "”", "’")


# ============================================================
# LINE ENDINGS & WHITESPACE
# ============================================================

def normalize_line_endings(text: str) -> str:
    """Convert CRLF and lone CR line endings to LF."""
    return text.replace("\r\n", "\n").replace("\r", "\n")


def normalize_output(text: str) -> str:
    """
    Collapse line endings and whitespace.

    - CRLF / CR become LF
    - Runs of spaces and tabs become one space
    - Each line is trimmed
    - Blank lines are dropped
    """
    if not text:
        return ""
    text = normalize_line_endings(text)
    lines = [re.sub(r"[ \t]+", " ", line).strip() for line in text.split("\n")]
    return "\n".join(line for line in lines if line)


def collapse_whitespace(text: str) -> str:
    """Single-line form used to detect whitespace-only differences."""
    return re.sub(r"\s+", " ", text).strip()


# ============================================================
# HEADER & STATUS BAR
# ============================================================

def is_header_line(line: str) -> bool:
    stripped = line.strip()
    return any(p.search(stripped) for p in HEADER_PATTERNS)


def strip_game_header(text: str) -> str:
    """
    Remove the leading game identification / copyright block.

    Only the leading block is consumed: blank lines inside the block are
    skipped and stripping stops at the first non-header line, so the same
    words appearing later in game text are preserved.
    """
    if not text:
        return ""
    lines = normalize_line_endings(text).split("\n")
    found_header = False
    i = 0
    while i < len(lines):
        stripped = lines[i].strip()
        if not stripped:
            i += 1
            continue
        if is_header_line(stripped):
            found_header = True
            i += 1
            continue
        break
    if not found_header:
        return text
    return "\n".join(lines[i:])


def is_status_bar_line(line: str) -> bool:
    if STATUS_BAR_PATTERN.match(line):
        return True
    return any(p.match(line) for p in STATUS_BAR_VARIANT_PATTERNS)


def strip_status_bar(text: str) -> str:
    """Remove every status bar line and any blank lines left at the top."""
    if not text:
        return ""
    lines = normalize_line_endings(text).split("\n")
    kept = [line for line in lines if not is_status_bar_line(line)]
    if len(kept) == len(lines):
        return text
    return re.sub(r"^(?:[ \t]*\n)+", "", "\n".join(kept))


@dataclass(frozen=True)
class StatusBarInfo:
    """Fields parsed from a status bar line."""
    location: str
    score: int
    moves: int


def extract_status_bar(text: str) -> Optional[StatusBarInfo]:
    """Return the first status bar found in the text, if any."""
    for line in normalize_line_endings(text or "").split("\n"):
        match = STATUS_BAR_EXTRACT_PATTERN.match(line)
        if match:
            return StatusBarInfo(
                location=match.group(1).strip(),
                score=int(match.group(2)),
                moves=int(match.group(3)),
            )
    return None


# ============================================================
# PROMPTS & LINE WRAPPING
# ============================================================

def strip_prompts(text: str) -> str:
    """Remove prompt-only lines and a trailing '>' prompt."""
    if not text:
        return ""
    lines = normalize_line_endings(text).split("\n")
    result = "\n".join(line for line in lines if not PROMPT_LINE_PATTERN.match(line))
    while True:
        stripped = TRAILING_PROMPT_PATTERN.sub("", result)
        if stripped == result:
            return result
        result = stripped


def normalize_line_wrapping(text: str) -> str:
    """
    Re-join lines that were hard-wrapped mid-sentence.

    A line not ending in sentence-terminal punctuation or a closing quote
    is joined with the next one. Blank lines are paragraph breaks and are
    never joined across.
    """
    if not text:
        return ""
    result: List[str] = []
    current = ""
    for raw in normalize_line_endings(text).split("\n"):
        line = raw.strip()
        if not line:
            if current:
                result.append(current)
                current = ""
            result.append("")
            continue
        current = f"{current} {line}" if current else line
        if line.endswith(SENTENCE_TERMINALS):
            result.append(current)
            current = ""
    if current:
        result.append(current)
    return "\n".join(result)


# ============================================================
# MESSAGE FILTERS
# ============================================================

def _drop_lines(text: str, patterns: List[Pattern]) -> str:
    lines = normalize_line_endings(text).split("\n")
    kept = [line for line in lines if not any(p.search(line.strip()) for p in patterns)]
    return "\n".join(kept)


def filter_song_bird_messages(text: str) -> str:
    """Remove the random forest song bird message."""
    if not text:
        return ""
    return SONG_BIRD_PATTERN.sub("", text)


def filter_atmospheric_messages(text: str) -> str:
    """Remove ambient sound and weather lines."""
    if not text:
        return ""
    return _drop_lines(text, ATMOSPHERIC_LINE_PATTERNS)


def filter_loading_messages(text: str) -> str:
    """Remove interpreter loading and save/restore notices."""
    if not text:
        return ""
    return _drop_lines(text, LOADING_LINE_PATTERNS)


def filter_system_lines(text: str) -> str:
    """Remove bracketed system notices and timing lines."""
    if not text:
        return ""
    lines = normalize_line_endings(text).split("\n")
    kept = []
    for line in lines:
        stripped = line.strip()
        if stripped.upper() in CANONICAL_ERROR_TOKENS:
            kept.append(line)
            continue
        if SYSTEM_LINE_PATTERN.match(stripped) or TIMING_LINE_PATTERN.match(stripped):
            continue
        kept.append(line)
    return "\n".join(kept)


# ============================================================
# ERROR MESSAGES
# ============================================================

def normalize_error_messages(text: str) -> str:
    """Rewrite synonymous error phrasings to canonical tokens."""
    if not text:
        return ""
    for pattern, token in ERROR_MESSAGE_FAMILIES:
        text = pattern.sub(token, text)
    return text


def classify_error_message(text: str) -> Optional[str]:
    """Return the canonical token for an error message, if it is one."""
    for pattern, token in ERROR_MESSAGE_FAMILIES:
        if pattern.search(text or ""):
            return token
    return None
