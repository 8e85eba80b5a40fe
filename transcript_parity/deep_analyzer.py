"""
Deep Difference Analyzer.

============================================================
PURPOSE
============================================================
Enriches every divergence of a Diff Report with:
1. A best-effort game-state snapshot
2. A difference-type classification
3. The set of affected engine subsystems
4. Contextual factors (previous command, turn, seed, ...)
5. A primary root cause with a confidence score
6. A prioritized, risk-assessed fix recommendation

============================================================
GUARANTEES
============================================================
- Deterministic: identical inputs yield identical output
- State capture never raises; it degrades to a default snapshot
- The Diff Report is never modified (one-way enrichment)

============================================================
"""

import hashlib
import logging
import re
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .classifier import is_darkness_message, is_rng_pool_message
from .comparators import DIRECTION_WORDS, categorize_command
from .models import (
    AnalysisMetadata,
    CommandCategory,
    ContextualFactor,
    ContextualFactorType,
    DeepAnalysisResult,
    DetailedDifference,
    DiffEntry,
    DiffReport,
    DiffSeverity,
    DifferenceType,
    FixEffort,
    FixPriority,
    FixRecommendation,
    GameStateSnapshot,
    GameSystem,
    IssueType,
    RiskLevel,
    RootCause,
    RootCauseMap,
    Transcript,
    TranscriptEntry,
)
from .normalizers import extract_status_bar


logger = logging.getLogger(__name__)


ANALYZER_VERSION = "1.0.0"


# ============================================================
# CONFIGURATION
# ============================================================

DEFAULT_TARGET_FILES: Dict[GameSystem, List[str]] = {
    GameSystem.PARSER: ["src/parser/parser", "src/parser/vocabulary"],
    GameSystem.ACTIONS: ["src/game/actions", "src/game/verb_handlers"],
    GameSystem.OBJECTS: ["src/game/objects", "src/game/data/objects"],
    GameSystem.ROOMS: ["src/game/rooms", "src/game/data/rooms"],
    GameSystem.PUZZLES: ["src/game/puzzles"],
    GameSystem.COMBAT: ["src/engine/combat"],
    GameSystem.DAEMONS: ["src/engine/daemons"],
}

FALLBACK_TARGET_FILES = ["src/game/actions"]


@dataclass
class AnalysisOptions:
    """Tunable inputs of the deep analyzer."""
    target_files: Dict[GameSystem, List[str]] = field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_TARGET_FILES.items()}
    )
    late_game_turn: int = 10  # Turn after which turn number is a factor


# ============================================================
# HEURISTIC VOCABULARY
# ============================================================

PARSER_PHRASES = (
    "don't understand",
    "don't know the word",
    "[parse_error]",
    "i beg your pardon",
    "what do you want to",
    "you used the word",
    "there was no verb",
)

TIMING_PHRASES = (
    "lamp appears",
    "lamp is getting dim",
    "candles grow shorter",
    "thief",
    "troll",
    "cyclops",
    "flood",
    "dam",
)

STATE_PHRASES = ("locked", "is open", "is closed", "now lit", "pitch black", "dark")

CONDITIONAL_PATTERN = re.compile(r"\b(?:if|when|unless|only)\b", re.IGNORECASE)

SCORE_PATTERN = re.compile(r"Score:\s*(-?\d+)")
SCORE_SENTENCE_PATTERN = re.compile(r"Your score is\s+(-?\d+)", re.IGNORECASE)
LOCATION_PATTERN = re.compile(r"^([A-Z][^.!?\n]*)")
INVENTORY_MARKER = "You are carrying:"

OBJECT_VERBS = frozenset({
    "take", "get", "drop", "examine", "x", "put", "give", "throw",
    "push", "pull", "move", "read", "open", "close", "pick",
})
INVENTORY_VERBS = frozenset({"take", "get", "drop", "put", "give", "inventory", "i", "pick"})
LOOK_VERBS = frozenset({"look", "l", "examine", "x"})
COMBAT_VERBS = frozenset({"attack", "kill", "fight", "hit", "stab", "swing"})
LIGHT_WORDS = frozenset({"light", "lamp", "lantern", "torch", "candles", "match", "extinguish"})
PUZZLE_VERBS = frozenset({"unlock", "lock", "tie", "turn", "push", "pray", "ring", "dig"})
DAEMON_VERBS = frozenset({"wait", "z"})

# ============================================================
# DEEP ANALYZER
# ============================================================

class DeepAnalyzer:
    """Root-cause analysis over a computed Diff Report."""

    def __init__(self, options: Optional[AnalysisOptions] = None):
        self._options = options or AnalysisOptions()

    @property
    def version(self) -> str:
        return ANALYZER_VERSION

    def analyze_report(
        self,
        diff_report: DiffReport,
        reference: Transcript,
        candidate: Transcript,
        sequence_id: str,
    ) -> DeepAnalysisResult:
        """
        Produce one DetailedDifference and RootCauseMap per divergence,
        plus globally ranked fix recommendations and an overall risk.
        """
        started = time.monotonic()

        differences = [
            self.create_detailed_difference(diff, reference, candidate)
            for diff in diff_report.differences
        ]
        root_causes = [self.analyze_root_cause(d, differences) for d in differences]
        recommendations = self.generate_fix_recommendations(differences, root_causes)
        risk = self.assess_overall_risk(differences)

        duration_ms = (time.monotonic() - started) * 1000
        logger.info(
            f"Deep analysis of {sequence_id}: {len(differences)} differences, "
            f"overall risk {risk.value}"
        )

        return DeepAnalysisResult(
            sequence_id=sequence_id,
            differences=differences,
            root_cause_analysis=root_causes,
            fix_recommendations=recommendations,
            risk_assessment=risk,
            metadata=AnalysisMetadata(
                analyzer_version=ANALYZER_VERSION,
                duration_ms=duration_ms,
                total_differences=len(differences),
                completeness=self.calculate_completeness(differences),
            ),
        )

    # --------------------------------------------------------
    # Detailed differences
    # --------------------------------------------------------

    def create_detailed_difference(
        self,
        diff: DiffEntry,
        reference: Transcript,
        candidate: Transcript,
    ) -> DetailedDifference:
        game_state = self.capture_game_state(diff.index, candidate)
        difference_type = self.classify_difference(diff)
        affected = self.identify_affected_systems(diff, game_state)
        factors = self.analyze_contextual_factors(
            diff, reference, candidate, game_state, difference_type
        )
        return DetailedDifference(
            command_index=diff.index,
            command=diff.command,
            game_state=game_state,
            expected_output=diff.expected,
            actual_output=diff.actual,
            difference_type=difference_type,
            affected_systems=affected,
            contextual_factors=factors,
            similarity=diff.similarity,
            severity=diff.severity,
            category=diff.category,
        )

    def capture_game_state(self, index: int, transcript: Transcript) -> GameStateSnapshot:
        """
        Reconstruct location, inventory and score from output text.

        Advisory only. Any parsing failure yields the default snapshot.
        """
        try:
            entry = self._entry_at(transcript, index)
            if entry is None:
                return GameStateSnapshot()
            return GameStateSnapshot(
                turn_number=max(0, int(entry.turn_number)),
                player_location=self._extract_location(entry.output),
                inventory=self._extract_inventory(entry.output),
                score=self._extract_score(entry.output),
                checksum=self._state_checksum(entry),
            )
        except Exception as e:
            logger.warning(f"State capture failed at index {index} of {transcript.id}: {e}")
            return GameStateSnapshot()

    def _entry_at(self, transcript: Transcript, index: int) -> Optional[TranscriptEntry]:
        if not transcript.entries:
            return None
        if 0 <= index < len(transcript.entries):
            return transcript.entries[index]
        return transcript.entries[-1]

    def _extract_location(self, output: str) -> str:
        status = extract_status_bar(output)
        if status:
            return status.location
        match = LOCATION_PATTERN.match((output or "").strip())
        return match.group(1).strip() if match else "unknown"

    def _extract_inventory(self, output: str) -> List[str]:
        if INVENTORY_MARKER not in output:
            return []
        remainder = output.split(INVENTORY_MARKER, 1)[1]
        lines = remainder.split("\n")
        same_line = lines[0].strip()
        if same_line:
            if "nothing" in same_line.lower():
                return []
            return [item.strip() for item in same_line.split(",") if item.strip()]

        items = []
        for line in lines[1:]:
            if not line.strip():
                break
            items.append(line.strip())
        return items

    def _extract_score(self, output: str) -> int:
        match = SCORE_PATTERN.search(output) or SCORE_SENTENCE_PATTERN.search(output)
        return int(match.group(1)) if match else 0

    def _state_checksum(self, entry: TranscriptEntry) -> str:
        data = f"{entry.turn_number}-{entry.command}-{entry.output}"
        return hashlib.sha256(data.encode()).hexdigest()[:16]

    def classify_difference(self, diff: DiffEntry) -> DifferenceType:
        """Place a divergence in the difference-type taxonomy."""
        expected = diff.expected.lower()
        actual = diff.actual.lower()
        category = categorize_command(diff.command)

        if not diff.expected or not diff.actual:
            return DifferenceType.SEQUENCE_DEPENDENCY

        if is_rng_pool_message(diff.expected) or is_rng_pool_message(diff.actual):
            return DifferenceType.RANDOM_BEHAVIOR

        if any(p in expected or p in actual for p in PARSER_PHRASES):
            return DifferenceType.PARSER_RESPONSE

        if category == CommandCategory.COMBAT:
            return DifferenceType.RANDOM_BEHAVIOR

        if any(p in expected or p in actual for p in TIMING_PHRASES) and category in (
            CommandCategory.META,
            CommandCategory.NAVIGATION,
        ):
            return DifferenceType.TIMING_DIFFERENCE

        if category in (CommandCategory.OBJECT_MANIPULATION, CommandCategory.CONTAINER):
            return DifferenceType.OBJECT_BEHAVIOR

        if CONDITIONAL_PATTERN.search(expected) or CONDITIONAL_PATTERN.search(actual):
            return DifferenceType.CONDITIONAL_LOGIC

        if category in (
            CommandCategory.ROOM_DESCRIPTION,
            CommandCategory.NAVIGATION,
            CommandCategory.LIGHT_SOURCE,
        ):
            return DifferenceType.STATE_LOGIC

        if any(p in expected or p in actual for p in STATE_PHRASES):
            return DifferenceType.STATE_LOGIC

        return DifferenceType.MESSAGE_CONTENT

    def identify_affected_systems(
        self,
        diff: DiffEntry,
        game_state: GameStateSnapshot,
    ) -> List[GameSystem]:
        """Subsystems touched by the command. Always includes MESSAGING and PARSER."""
        words = diff.command.lower().split()
        verb = words[0] if words else ""
        systems: List[GameSystem] = [GameSystem.MESSAGING]

        if verb in LOOK_VERBS:
            systems += [GameSystem.ROOMS, GameSystem.OBJECTS]
        if verb in INVENTORY_VERBS:
            systems += [GameSystem.INVENTORY, GameSystem.OBJECTS]
        if verb in DIRECTION_WORDS or verb == "go":
            systems.append(GameSystem.ROOMS)
        if verb in COMBAT_VERBS:
            systems.append(GameSystem.COMBAT)
        if LIGHT_WORDS.intersection(words) or is_darkness_message(diff.expected) != is_darkness_message(diff.actual):
            systems.append(GameSystem.LIGHTING)
        if verb in PUZZLE_VERBS:
            systems.append(GameSystem.PUZZLES)
        if verb in DAEMON_VERBS:
            systems.append(GameSystem.DAEMONS)
        if verb == "score" or self._score_differs(diff):
            systems.append(GameSystem.SCORING)

        systems.append(GameSystem.PARSER)

        unique: List[GameSystem] = []
        for system in systems:
            if system not in unique:
                unique.append(system)
        return unique

    def _score_differs(self, diff: DiffEntry) -> bool:
        return self._extract_score(diff.expected) != self._extract_score(diff.actual)

    def analyze_contextual_factors(
        self,
        diff: DiffEntry,
        reference: Transcript,
        candidate: Transcript,
        game_state: GameStateSnapshot,
        difference_type: DifferenceType,
    ) -> List[ContextualFactor]:
        factors: List[ContextualFactor] = []

        if diff.index > 0:
            previous = self._entry_at(candidate, diff.index - 1)
            if previous is not None:
                factors.append(ContextualFactor(
                    type=ContextualFactorType.PREVIOUS_COMMAND,
                    description=f"Previous command: {previous.command}",
                    impact="medium",
                    data={"previous_command": previous.command},
                ))

        if game_state.turn_number > self._options.late_game_turn:
            factors.append(ContextualFactor(
                type=ContextualFactorType.TURN_NUMBER,
                description=f"Late in game (turn {game_state.turn_number})",
                impact="low",
                data={"turn_number": game_state.turn_number},
            ))

        reference_entry = self._entry_at(reference, diff.index)
        candidate_entry = self._entry_at(candidate, diff.index)
        if reference_entry is not None and candidate_entry is not None:
            ref_status = extract_status_bar(reference_entry.output)
            cand_status = extract_status_bar(candidate_entry.output)
            if ref_status and cand_status and ref_status.location != cand_status.location:
                factors.append(ContextualFactor(
                    type=ContextualFactorType.GAME_STATE,
                    description=(
                        f"Player location differs: {ref_status.location} "
                        f"vs {cand_status.location}"
                    ),
                    impact="high",
                    data={
                        "reference_location": ref_status.location,
                        "candidate_location": cand_status.location,
                    },
                ))

        if game_state.inventory:
            factors.append(ContextualFactor(
                type=ContextualFactorType.INVENTORY_STATE,
                description=f"Carrying {len(game_state.inventory)} items",
                impact="low",
                data={"inventory": list(game_state.inventory)},
            ))

        seed = candidate.metadata.get("seed")
        if seed is not None:
            impact = "medium" if difference_type == DifferenceType.RANDOM_BEHAVIOR else "low"
            factors.append(ContextualFactor(
                type=ContextualFactorType.RANDOM_SEED,
                description=f"Recorded with seed {seed}",
                impact=impact,
                data={"seed": seed},
            ))

        if difference_type == DifferenceType.TIMING_DIFFERENCE:
            factors.append(ContextualFactor(
                type=ContextualFactorType.DAEMON_TIMING,
                description="Output mentions a timed event",
                impact="medium",
            ))

        return factors

    # --------------------------------------------------------
    # Root cause analysis
    # --------------------------------------------------------

    def analyze_root_cause(
        self,
        diff: DetailedDifference,
        all_differences: List[DetailedDifference],
    ) -> RootCauseMap:
        primary = self.identify_primary_cause(diff)
        contributing = self.identify_contributing_factors(diff, all_differences)
        confidence = self.calculate_confidence(diff, primary)
        return RootCauseMap(
            primary_cause=primary,
            contributing_factors=contributing,
            confidence=confidence,
            explanation=self._explanation(diff, primary, contributing),
        )

    def identify_primary_cause(self, diff: DetailedDifference) -> RootCause:
        command = diff.command or "<initial output>"
        difference_type = diff.difference_type

        if difference_type == DifferenceType.OBJECT_BEHAVIOR:
            return self._cause(
                GameSystem.OBJECTS, "object actions", IssueType.INCORRECT_LOGIC,
                f"Object behavior mismatch for command: {command}",
                "Update object action handlers",
            )
        if difference_type == DifferenceType.PARSER_RESPONSE:
            return self._cause(
                GameSystem.PARSER, "command parsing", IssueType.MESSAGE_MISMATCH,
                f"Parser response differs for: {command}",
                "Update parser error messages",
            )
        if difference_type == DifferenceType.STATE_LOGIC:
            system = GameSystem.LIGHTING if GameSystem.LIGHTING in diff.affected_systems else GameSystem.ROOMS
            return self._cause(
                system, "room state", IssueType.STATE_INCONSISTENCY,
                f"Room state logic differs for: {command}",
                "Update room logic",
            )
        if difference_type == DifferenceType.CONDITIONAL_LOGIC:
            return self._cause(
                GameSystem.ACTIONS, "conditional handlers", IssueType.CONDITIONAL_ERROR,
                f"Conditional branch differs for: {command}",
                "Review the conditions guarding this response",
            )
        if difference_type == DifferenceType.SEQUENCE_DEPENDENCY:
            return self._cause(
                GameSystem.ACTIONS, "command sequencing", IssueType.DEPENDENCY_MISSING,
                f"Transcript lengths diverge at: {command}",
                "Find why one engine stopped accepting commands",
            )
        if difference_type == DifferenceType.TIMING_DIFFERENCE:
            return self._cause(
                GameSystem.DAEMONS, "daemon scheduling", IssueType.TIMING_ISSUE,
                f"Timed event fired differently around: {command}",
                "Align daemon turn counters",
            )
        if difference_type == DifferenceType.RANDOM_BEHAVIOR:
            system = GameSystem.COMBAT if GameSystem.COMBAT in diff.affected_systems else GameSystem.MESSAGING
            return self._cause(
                system, "random number usage", IssueType.INCORRECT_LOGIC,
                f"Random outcome differs for: {command}",
                "Align random number consumption with the reference engine",
            )
        return self._cause(
            GameSystem.MESSAGING, "message generation", IssueType.MESSAGE_MISMATCH,
            f"Message content differs for: {command}",
            None,
        )

    def _cause(
        self,
        system: GameSystem,
        component: str,
        issue_type: IssueType,
        description: str,
        fix: Optional[str],
    ) -> RootCause:
        if fix is None:
            suggested = "Update message content in the appropriate handler"
        else:
            suggested = f"{fix} in {self.identify_target_files(system)[0]}"
        return RootCause(
            system=system,
            component=component,
            issue_type=issue_type,
            description=description,
            suggested_fix=suggested,
        )

    def identify_contributing_factors(
        self,
        diff: DetailedDifference,
        all_differences: List[DetailedDifference],
    ) -> List[RootCause]:
        factors: List[RootCause] = []

        similar = [
            d for d in all_differences
            if d is not diff and d.difference_type == diff.difference_type
        ]
        if similar:
            factors.append(RootCause(
                system=GameSystem.MESSAGING,
                component="systemic issue",
                issue_type=IssueType.MISSING_LOGIC,
                description=f"Part of systemic issue affecting {len(similar) + 1} commands",
            ))

        earlier_critical = [
            d for d in all_differences
            if d.command_index < diff.command_index and d.severity == DiffSeverity.CRITICAL
        ]
        if earlier_critical:
            first = earlier_critical[0]
            factors.append(RootCause(
                system=GameSystem.ACTIONS,
                component="earlier divergence",
                issue_type=IssueType.DEPENDENCY_MISSING,
                description=f"Follows a critical divergence at command {first.command_index}",
            ))

        for factor in diff.contextual_factors:
            if factor.type == ContextualFactorType.GAME_STATE:
                factors.append(RootCause(
                    system=GameSystem.ROOMS,
                    component="player location",
                    issue_type=IssueType.STATE_INCONSISTENCY,
                    description=factor.description,
                ))

        return factors

    def calculate_confidence(self, diff: DetailedDifference, primary: RootCause) -> float:
        confidence = 0.5
        if primary.system in diff.affected_systems:
            confidence += 0.2
        if diff.similarity > 0.8:
            confidence += 0.2
        if len(diff.affected_systems) > 3:
            confidence -= 0.1
        return max(0.0, min(1.0, round(confidence, 4)))

    def _explanation(
        self,
        diff: DetailedDifference,
        primary: RootCause,
        contributing: List[RootCause],
    ) -> str:
        explanation = (
            f'The difference in command "{diff.command}" appears to be caused by '
            f"{primary.description.lower()}."
        )
        if contributing:
            joined = ", ".join(c.description.lower() for c in contributing)
            explanation += f" Contributing factors include: {joined}."
        if primary.suggested_fix:
            explanation += f" Suggested fix: {primary.suggested_fix}."
        return explanation

    # --------------------------------------------------------
    # Fix recommendations
    # --------------------------------------------------------

    def generate_fix_recommendations(
        self,
        differences: List[DetailedDifference],
        root_causes: List[RootCauseMap],
    ) -> List[FixRecommendation]:
        """One recommendation per difference, ranked by priority then improvement."""
        recommendations = []
        for i, (diff, root_cause) in enumerate(zip(differences, root_causes)):
            recommendations.append(FixRecommendation(
                difference_index=i,
                priority=self.calculate_priority(diff, root_cause),
                effort=self.estimate_effort(diff, root_cause),
                regression_risk=self.assess_regression_risk(diff, root_cause),
                target_files=self.identify_target_files(root_cause.primary_cause.system),
                description=root_cause.primary_cause.suggested_fix or "Manual investigation required",
                estimated_improvement=self.estimate_improvement(diff),
            ))

        return sorted(
            recommendations,
            key=lambda r: (r.priority.rank, r.estimated_improvement),
            reverse=True,
        )

    def calculate_priority(self, diff: DetailedDifference, root_cause: RootCauseMap) -> FixPriority:
        if diff.severity == DiffSeverity.CRITICAL:
            return FixPriority.CRITICAL
        if diff.severity == DiffSeverity.MAJOR:
            return FixPriority.HIGH
        if root_cause.confidence > 0.8:
            return FixPriority.HIGH
        if diff.similarity > 0.9:
            return FixPriority.MEDIUM
        return FixPriority.LOW

    def estimate_effort(self, diff: DetailedDifference, root_cause: RootCauseMap) -> FixEffort:
        if diff.similarity > 0.95:
            return FixEffort.MINIMAL
        if diff.similarity > 0.8:
            return FixEffort.MODERATE
        if not root_cause.contributing_factors:
            return FixEffort.MODERATE
        if len(diff.affected_systems) > 3:
            return FixEffort.MAJOR
        return FixEffort.SIGNIFICANT

    def assess_regression_risk(self, diff: DetailedDifference, root_cause: RootCauseMap) -> RiskLevel:
        if len(diff.affected_systems) > 3:
            return RiskLevel.HIGH
        if len(root_cause.contributing_factors) > 2:
            return RiskLevel.MEDIUM
        if diff.similarity > 0.9:
            return RiskLevel.LOW
        return RiskLevel.MEDIUM

    def identify_target_files(self, system: GameSystem) -> List[str]:
        files = self._options.target_files.get(system)
        return list(files) if files else list(FALLBACK_TARGET_FILES)

    def estimate_improvement(self, diff: DetailedDifference) -> float:
        if diff.severity == DiffSeverity.CRITICAL:
            return 2.0
        if diff.severity == DiffSeverity.MAJOR:
            return 1.5
        if diff.similarity > 0.9:
            return 0.5
        return 1.0

    # --------------------------------------------------------
    # Aggregate assessment
    # --------------------------------------------------------

    def assess_overall_risk(self, differences: List[DetailedDifference]) -> RiskLevel:
        critical = sum(1 for d in differences if d.severity == DiffSeverity.CRITICAL)
        major = sum(1 for d in differences if d.severity == DiffSeverity.MAJOR)

        if critical > 5:
            return RiskLevel.CRITICAL
        if critical > 2 or major > 10:
            return RiskLevel.HIGH
        if major > 5:
            return RiskLevel.MEDIUM
        return RiskLevel.LOW

    def calculate_completeness(self, differences: List[DetailedDifference]) -> float:
        """Share of differences whose state snapshot was captured."""
        if not differences:
            return 100.0
        captured = sum(1 for d in differences if d.game_state.checksum != "empty")
        return captured / len(differences) * 100.0


# ============================================================
# FACTORY FUNCTION
# ============================================================

def create_deep_analyzer(options: Optional[AnalysisOptions] = None) -> DeepAnalyzer:
    """Create a deep analyzer with default target-file mapping."""
    return DeepAnalyzer(options)
