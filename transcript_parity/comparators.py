"""
Transcript Comparator.

============================================================
PURPOSE
============================================================
Compares a reference transcript against a candidate transcript
and produces a severity-classified Diff Report.

For each command index the comparator:
1. Normalizes both outputs
2. Computes normalized edit-distance similarity
3. Counts exact and close matches
4. Classifies remaining divergences by severity and category

============================================================
SEVERITY
============================================================
- FORMATTING: outputs differ only in whitespace
- MINOR: similarity >= minor threshold, or a known variation
- MAJOR: similarity >= major threshold
- CRITICAL: below that, or an entry missing on one side

============================================================
"""

import logging
from dataclasses import replace
from typing import Dict, List, Optional

from .classifier import DifferenceClassifier
from .models import (
    ClassifiedDiffReport,
    CommandCategory,
    ComparisonOptions,
    DiffEntry,
    DiffReport,
    DiffSeverity,
    DiffSummary,
    DifferenceClass,
    Transcript,
    TranscriptEntry,
)
from . import normalizers


logger = logging.getLogger(__name__)


# ============================================================
# COMMAND TAXONOMY
# ============================================================

DIRECTION_WORDS = frozenset({
    "north", "south", "east", "west",
    "northeast", "northwest", "southeast", "southwest",
    "n", "s", "e", "w", "ne", "nw", "se", "sw",
    "up", "down", "u", "d", "in", "out",
})

VERB_CATEGORIES: Dict[str, CommandCategory] = {
    # Navigation
    "go": CommandCategory.NAVIGATION,
    "walk": CommandCategory.NAVIGATION,
    "run": CommandCategory.NAVIGATION,
    "climb": CommandCategory.NAVIGATION,
    "enter": CommandCategory.NAVIGATION,
    "exit": CommandCategory.NAVIGATION,
    "cross": CommandCategory.NAVIGATION,
    "jump": CommandCategory.NAVIGATION,
    # Room description
    "look": CommandCategory.ROOM_DESCRIPTION,
    "l": CommandCategory.ROOM_DESCRIPTION,
    # Object manipulation
    "take": CommandCategory.OBJECT_MANIPULATION,
    "get": CommandCategory.OBJECT_MANIPULATION,
    "drop": CommandCategory.OBJECT_MANIPULATION,
    "examine": CommandCategory.OBJECT_MANIPULATION,
    "x": CommandCategory.OBJECT_MANIPULATION,
    "read": CommandCategory.OBJECT_MANIPULATION,
    "put": CommandCategory.OBJECT_MANIPULATION,
    "give": CommandCategory.OBJECT_MANIPULATION,
    "throw": CommandCategory.OBJECT_MANIPULATION,
    "push": CommandCategory.OBJECT_MANIPULATION,
    "pull": CommandCategory.OBJECT_MANIPULATION,
    "move": CommandCategory.OBJECT_MANIPULATION,
    "wave": CommandCategory.OBJECT_MANIPULATION,
    "tie": CommandCategory.OBJECT_MANIPULATION,
    "eat": CommandCategory.OBJECT_MANIPULATION,
    "drink": CommandCategory.OBJECT_MANIPULATION,
    "pick": CommandCategory.OBJECT_MANIPULATION,
    # Inventory
    "inventory": CommandCategory.INVENTORY,
    "i": CommandCategory.INVENTORY,
    # Containers and doors
    "open": CommandCategory.CONTAINER,
    "close": CommandCategory.CONTAINER,
    "unlock": CommandCategory.CONTAINER,
    "lock": CommandCategory.CONTAINER,
    # Combat
    "attack": CommandCategory.COMBAT,
    "kill": CommandCategory.COMBAT,
    "fight": CommandCategory.COMBAT,
    "hit": CommandCategory.COMBAT,
    "stab": CommandCategory.COMBAT,
    "swing": CommandCategory.COMBAT,
    # Light sources
    "light": CommandCategory.LIGHT_SOURCE,
    "extinguish": CommandCategory.LIGHT_SOURCE,
    # Meta
    "save": CommandCategory.META,
    "restore": CommandCategory.META,
    "restart": CommandCategory.META,
    "quit": CommandCategory.META,
    "score": CommandCategory.META,
    "verbose": CommandCategory.META,
    "brief": CommandCategory.META,
    "superbrief": CommandCategory.META,
    "diagnose": CommandCategory.META,
    "version": CommandCategory.META,
    "wait": CommandCategory.META,
    "z": CommandCategory.META,
    "again": CommandCategory.META,
    "g": CommandCategory.META,
}


def categorize_command(command: str) -> CommandCategory:
    """Map a command to its category. Unknown verbs exercise the parser."""
    words = (command or "").strip().lower().split()
    if not words:
        return CommandCategory.INITIAL

    verb = words[0]
    if verb in DIRECTION_WORDS:
        return CommandCategory.NAVIGATION
    if verb in ("turn", "switch") and ("on" in words or "off" in words):
        return CommandCategory.LIGHT_SOURCE
    return VERB_CATEGORIES.get(verb, CommandCategory.PARSER_RESPONSE)


# ============================================================
# SIMILARITY
# ============================================================

def levenshtein_distance(a: str, b: str) -> int:
    """Edit distance with unit insert, delete and substitute costs."""
    if a == b:
        return 0
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, 1):
        current = [i]
        for j, char_b in enumerate(b, 1):
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + (char_a != char_b),
            ))
        previous = current
    return previous[-1]


def calculate_similarity(a: str, b: str) -> float:
    """1 - editDistance / max(len). 1.0 for two empty strings, 0.0 if only one is empty."""
    if not a and not b:
        return 1.0
    if not a or not b:
        return 0.0
    return 1.0 - levenshtein_distance(a, b) / max(len(a), len(b))


# ============================================================
# TRANSCRIPT COMPARATOR
# ============================================================

class TranscriptComparator:
    """Compares two transcripts of the same logical command sequence."""

    def __init__(self, options: Optional[ComparisonOptions] = None):
        self._options = options or ComparisonOptions()

    @property
    def options(self) -> ComparisonOptions:
        return self._options

    def get_options(self) -> ComparisonOptions:
        """Return a copy of the active options."""
        return replace(self._options, known_variations=list(self._options.known_variations))

    # --------------------------------------------------------
    # Normalization
    # --------------------------------------------------------

    def normalize_output(self, text: str) -> str:
        return normalizers.normalize_output(text)

    def strip_game_header(self, text: str) -> str:
        return normalizers.strip_game_header(text)

    def strip_status_bar(self, text: str) -> str:
        return normalizers.strip_status_bar(text)

    def normalize_line_wrapping(self, text: str) -> str:
        return normalizers.normalize_line_wrapping(text)

    def normalize(self, text: str, options: Optional[ComparisonOptions] = None) -> str:
        """
        Apply every enabled normalization in a fixed order.

        Line removers run before prompt stripping and the header strip, and
        whitespace collapsing runs before line-wrap joining. Passes repeat
        until the text stops changing, so the result is idempotent.
        """
        opts = options or self._options
        text = normalizers.normalize_line_endings(text or "")
        while True:
            result = self._normalize_pass(text, opts)
            if result == text:
                return result
            text = result

    @staticmethod
    def _normalize_pass(text: str, opts: ComparisonOptions) -> str:
        strict = opts.strict_content_only

        if opts.strip_status_bar:
            text = normalizers.strip_status_bar(text)
        if opts.filter_song_bird_messages or strict:
            text = normalizers.filter_song_bird_messages(text)
        if opts.filter_atmospheric_messages or strict:
            text = normalizers.filter_atmospheric_messages(text)
        if opts.filter_loading_messages or strict:
            text = normalizers.filter_loading_messages(text)
        if strict:
            text = normalizers.filter_system_lines(text)
        if opts.normalize_error_messages or strict:
            text = normalizers.normalize_error_messages(text)
        if opts.strip_prompts:
            text = normalizers.strip_prompts(text)
        if opts.strip_game_header:
            text = normalizers.strip_game_header(text)
        if opts.normalize_whitespace:
            text = normalizers.normalize_output(text)
        if opts.normalize_line_wrapping:
            text = normalizers.normalize_line_wrapping(text)
        if opts.ignore_case_in_messages:
            text = text.lower()
        return text

    # --------------------------------------------------------
    # Scoring
    # --------------------------------------------------------

    def calculate_similarity(self, a: str, b: str) -> float:
        return calculate_similarity(a, b)

    def categorize_command(self, command: str) -> str:
        return categorize_command(command).value

    def classify_severity(
        self,
        expected: str,
        actual: str,
        similarity: float,
        options: Optional[ComparisonOptions] = None,
    ) -> DiffSeverity:
        """Severity of a divergence that fell below tolerance."""
        opts = options or self._options

        if normalizers.collapse_whitespace(expected) == normalizers.collapse_whitespace(actual):
            return DiffSeverity.FORMATTING

        if self._matches_known_variation(expected, actual, opts):
            return DiffSeverity.MINOR

        if similarity >= opts.minor_similarity_threshold:
            return DiffSeverity.MINOR
        if similarity >= opts.major_similarity_threshold:
            return DiffSeverity.MAJOR
        return DiffSeverity.CRITICAL

    def _matches_known_variation(
        self,
        expected: str,
        actual: str,
        options: ComparisonOptions,
    ) -> bool:
        expected_lower = expected.lower()
        actual_lower = actual.lower()
        for marker in options.known_variations:
            needle = marker.lower()
            if needle and (needle in expected_lower or needle in actual_lower):
                return True
        return False

    # --------------------------------------------------------
    # Comparison
    # --------------------------------------------------------

    def compare(
        self,
        reference: Transcript,
        candidate: Transcript,
        options: Optional[ComparisonOptions] = None,
    ) -> DiffReport:
        """
        Compare two transcripts entry by entry.

        The reference supplies the expected output. An index present on
        only one side is always a CRITICAL divergence.
        """
        opts = options or self._options
        total = max(len(reference.entries), len(candidate.entries))
        exact_matches = 0
        close_matches = 0
        differences: List[DiffEntry] = []
        summary = DiffSummary()

        for position in range(total):
            ref_entry = self._entry_at(reference, position)
            cand_entry = self._entry_at(candidate, position)
            command = (ref_entry or cand_entry).command
            category = categorize_command(command)

            if ref_entry is None or cand_entry is None:
                diff = DiffEntry(
                    index=position,
                    command=command,
                    expected=self.normalize(ref_entry.output, opts) if ref_entry else "",
                    actual=self.normalize(cand_entry.output, opts) if cand_entry else "",
                    similarity=0.0,
                    severity=DiffSeverity.CRITICAL,
                    category=category.value,
                )
                differences.append(diff)
                summary.add(diff.severity)
                continue

            expected = self.normalize(ref_entry.output, opts)
            actual = self.normalize(cand_entry.output, opts)
            if expected == actual:
                exact_matches += 1
                continue

            similarity = calculate_similarity(expected, actual)
            if similarity >= opts.tolerance_threshold:
                close_matches += 1
                continue

            if opts.tolerate_combat_variance and category == CommandCategory.COMBAT:
                close_matches += 1
                continue

            diff = DiffEntry(
                index=position,
                command=command,
                expected=expected,
                actual=actual,
                similarity=similarity,
                severity=self.classify_severity(expected, actual, similarity, opts),
                category=category.value,
            )
            differences.append(diff)
            summary.add(diff.severity)

        parity_score = self._parity_score(exact_matches + close_matches, total)

        logger.debug(
            f"Compared {reference.id} vs {candidate.id}: {total} commands, "
            f"{exact_matches} exact, {close_matches} close, "
            f"{len(differences)} differences, parity {parity_score:.2f}%"
        )

        return DiffReport(
            transcript_a=reference.id,
            transcript_b=candidate.id,
            total_commands=total,
            exact_matches=exact_matches,
            close_matches=close_matches,
            differences=differences,
            parity_score=parity_score,
            summary=summary,
        )

    def compare_and_classify(
        self,
        reference: Transcript,
        candidate: Transcript,
        options: Optional[ComparisonOptions] = None,
    ) -> ClassifiedDiffReport:
        """Compare, then classify each divergence as RNG, state or logic."""
        report = self.compare(reference, candidate, options)
        classifier = DifferenceClassifier()
        classified = [
            classifier.classify(d.index, d.command, d.expected, d.actual)
            for d in report.differences
        ]
        behavioral = sum(
            1 for c in classified
            if c.classification == DifferenceClass.LOGIC_DIFFERENCE
        )
        return ClassifiedDiffReport(
            transcript_a=report.transcript_a,
            transcript_b=report.transcript_b,
            total_commands=report.total_commands,
            exact_matches=report.exact_matches,
            close_matches=report.close_matches,
            differences=report.differences,
            parity_score=report.parity_score,
            summary=report.summary,
            classified_differences=classified,
            behavioral_differences=behavioral,
        )

    @staticmethod
    def _entry_at(transcript: Transcript, position: int) -> Optional[TranscriptEntry]:
        if position < len(transcript.entries):
            return transcript.entries[position]
        return None

    @staticmethod
    def _parity_score(matches: int, total: int) -> float:
        if total == 0:
            return 100.0
        return matches / total * 100.0


# ============================================================
# FACTORY FUNCTION
# ============================================================

def create_comparator(
    options: Optional[ComparisonOptions] = None,
    **overrides,
) -> TranscriptComparator:
    """Create a comparator, optionally overriding individual option fields."""
    base = options or ComparisonOptions()
    if overrides:
        base = replace(base, **overrides)
    return TranscriptComparator(base)
