"""
Difference Classifier.

============================================================
PURPOSE
============================================================
Separates divergences caused by random message selection or
accumulated random state from genuine logic differences.

Classes:
1. RNG_DIFFERENCE - both outputs drawn from the same random pool
2. STATE_DIVERGENCE - the two games are no longer in the same state
3. LOGIC_DIFFERENCE - anything that cannot be attributed to the above

Only logic differences count as behavioral differences.

============================================================
"""

import logging
import re
from typing import Dict, List, Optional, Pattern, Tuple

from .models import ClassifiedDifference, DifferenceClass
from .normalizers import extract_status_bar, normalize_output


logger = logging.getLogger(__name__)


# ============================================================
# RANDOM MESSAGE POOLS
# ============================================================

RNG_POOLS: Dict[str, Tuple[str, ...]] = {
    "YUKS": (
        "A valiant attempt.",
        "You can't be serious.",
        "An interesting idea...",
        "What a concept!",
    ),
    "HO_HUM": (
        " doesn't seem to work.",
        " isn't notably helpful.",
        " has no effect.",
    ),
    "HELLOS": (
        "Hello.",
        "Good day.",
        "Nice weather we've been having lately.",
        "Goodbye.",
    ),
    "WHEEEEE": (
        "Very good. Now you can go to the second grade.",
        "Are you enjoying yourself?",
        "Wheeeeeeeeee!!!!!",
        "Do you expect me to applaud?",
    ),
    "JUMPLOSS": (
        "You should have looked before you leaped.",
        "In the movies, your life would be passing before your eyes.",
        "Geronimo...",
    ),
    "ATMOSPHERIC": (
        "You hear in the distance the chirping of a song bird.",
        "A grue sound echoes in the distance.",
    ),
}

# Pools whose members substitute for each other on the same command
INTERCHANGEABLE_POOLS = ("YUKS", "HO_HUM", "HELLOS", "WHEEEEE", "JUMPLOSS")

DARKNESS_PATTERNS: List[Pattern] = [
    re.compile(r"It is pitch black", re.IGNORECASE),
    re.compile(r"It's too dark to see", re.IGNORECASE),
    re.compile(r"You can't see anything", re.IGNORECASE),
    re.compile(r"You have moved into a dark place", re.IGNORECASE),
]

BLOCKED_EXIT_PATTERNS: List[Pattern] = [
    re.compile(r"You can't go that way", re.IGNORECASE),
    re.compile(r"There is no way to go", re.IGNORECASE),
    re.compile(r"The door is (?:closed|locked)", re.IGNORECASE),
    re.compile(r"You can't fit through", re.IGNORECASE),
    re.compile(r"blocked", re.IGNORECASE),
]

INTRO_PATTERNS: List[Pattern] = [
    re.compile(r"Infocom interactive fiction", re.IGNORECASE),
    re.compile(r"fantasy story", re.IGNORECASE),
    re.compile(r"Copyright.*Infocom", re.IGNORECASE),
    re.compile(r"All rights reserved", re.IGNORECASE),
    re.compile(r"ZORK I:", re.IGNORECASE),
    re.compile(r"Release \d+", re.IGNORECASE),
    re.compile(r"Serial number", re.IGNORECASE),
]

# More than this many RNG differences implies the states have drifted apart
RNG_DIVERGENCE_THRESHOLD = 3


# ============================================================
# POOL HELPERS
# ============================================================

def get_rng_pool_name(message: str) -> Optional[str]:
    """Return the random pool a message belongs to, if any."""
    text = (message or "").strip()
    for name, members in RNG_POOLS.items():
        if any(member in text for member in members):
            return name
    return None


def is_rng_pool_message(message: str) -> bool:
    return get_rng_pool_name(message) is not None


def from_same_rng_pool(first: str, second: str) -> Optional[str]:
    """Name of an interchangeable pool both messages belong to."""
    for name in INTERCHANGEABLE_POOLS:
        members = RNG_POOLS[name]
        if any(m in first for m in members) and any(m in second for m in members):
            return name
    return None


def is_darkness_message(message: str) -> bool:
    return any(p.search(message or "") for p in DARKNESS_PATTERNS)


def strip_atmospheric_messages(output: str) -> str:
    result = output or ""
    for message in RNG_POOLS["ATMOSPHERIC"]:
        result = result.replace(message, "")
    return normalize_output(result)


def is_atmospheric_difference(first: str, second: str) -> bool:
    """True when the outputs differ only by an ambient message."""
    atmospheric = RNG_POOLS["ATMOSPHERIC"]
    has_first = any(m in (first or "") for m in atmospheric)
    has_second = any(m in (second or "") for m in atmospheric)
    if has_first == has_second:
        return False
    return are_semantically_equivalent(
        strip_atmospheric_messages(first),
        strip_atmospheric_messages(second),
    )


def are_semantically_equivalent(first: str, second: str) -> bool:
    a = normalize_output(first)
    b = normalize_output(second)
    return a == b or a.lower() == b.lower()


def detect_room(output: str) -> Optional[str]:
    """Room name from a status bar, else None."""
    status = extract_status_bar(output)
    return status.location if status else None


# ============================================================
# CLASSIFIER
# ============================================================

class DifferenceClassifier:
    """
    Classifies divergences in transcript order.

    The classifier is stateful: earlier RNG differences and room
    mismatches mark the run as diverged, which changes how later
    differences are classified. Call reset() between transcripts.
    """

    def __init__(self):
        self._previous: List[ClassifiedDifference] = []
        self._state_diverged = False

    @property
    def previous_differences(self) -> List[ClassifiedDifference]:
        return list(self._previous)

    @property
    def has_state_diverged(self) -> bool:
        return self._state_diverged

    def reset(self) -> None:
        self._previous = []
        self._state_diverged = False

    def classify(
        self,
        command_index: int,
        command: str,
        expected: str,
        actual: str,
    ) -> ClassifiedDifference:
        """Classify one divergence and record it for later context."""
        classification, reason, pool = self._classify(command_index, command, expected, actual)

        result = ClassifiedDifference(
            command_index=command_index,
            command=command,
            classification=classification,
            reason=reason,
            expected=expected,
            actual=actual,
            pool_name=pool,
        )
        self._previous.append(result)
        if classification == DifferenceClass.STATE_DIVERGENCE:
            self._state_diverged = True
        logger.debug(f"Difference at {command_index} ({command!r}) classified as {classification.value}: {reason}")
        return result

    def _classify(
        self,
        command_index: int,
        command: str,
        expected: str,
        actual: str,
    ) -> Tuple[DifferenceClass, str, Optional[str]]:
        if self._is_intro_text(command_index, command, expected, actual):
            return (
                DifferenceClass.RNG_DIFFERENCE,
                "Game intro/startup text difference",
                None,
            )

        if is_atmospheric_difference(expected, actual):
            return (
                DifferenceClass.RNG_DIFFERENCE,
                "Difference is only due to atmospheric message timing",
                "ATMOSPHERIC",
            )

        if is_darkness_message(expected) != is_darkness_message(actual):
            return (
                DifferenceClass.STATE_DIVERGENCE,
                "Lighting state divergence: one output shows darkness",
                None,
            )

        pool = from_same_rng_pool(expected, actual)
        if pool:
            return (
                DifferenceClass.RNG_DIFFERENCE,
                f"Both outputs are from the {pool} RNG pool",
                pool,
            )

        if self._is_state_diverged(expected, actual):
            if any(p.search(expected) or p.search(actual) for p in BLOCKED_EXIT_PATTERNS):
                return (
                    DifferenceClass.STATE_DIVERGENCE,
                    "Blocked exit message during state divergence",
                    None,
                )
            return (
                DifferenceClass.STATE_DIVERGENCE,
                "Game states have diverged due to accumulated RNG effects",
                None,
            )

        if is_rng_pool_message(expected) != is_rng_pool_message(actual) and self._previous:
            return (
                DifferenceClass.STATE_DIVERGENCE,
                "Mismatched RNG pool usage indicates state divergence",
                get_rng_pool_name(expected) or get_rng_pool_name(actual),
            )

        return (
            DifferenceClass.LOGIC_DIFFERENCE,
            "Difference cannot be attributed to RNG or state divergence",
            None,
        )

    def _is_intro_text(self, command_index: int, command: str, expected: str, actual: str) -> bool:
        if command_index != 0 or command.strip():
            return False
        return any(p.search(expected) or p.search(actual) for p in INTRO_PATTERNS)

    def _is_state_diverged(self, expected: str, actual: str) -> bool:
        if self._state_diverged:
            return True
        expected_room = detect_room(expected)
        actual_room = detect_room(actual)
        if expected_room and actual_room and expected_room != actual_room:
            return True
        rng_count = sum(
            1 for d in self._previous
            if d.classification == DifferenceClass.RNG_DIFFERENCE
        )
        return rng_count > RNG_DIVERGENCE_THRESHOLD


def create_difference_classifier() -> DifferenceClassifier:
    """Create a fresh difference classifier."""
    return DifferenceClassifier()
