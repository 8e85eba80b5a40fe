"""
Transcript Parity Data Models.

============================================================
REFERENCE vs CANDIDATE ENGINE PARITY
============================================================

PURPOSE:
--------
Defines all data structures for transcript parity validation:
- Transcripts and transcript entries
- Comparison options and diff reports
- Batch execution options and results
- Deep analysis artifacts (root causes, fix recommendations)
- Certification artifacts (criteria, seed variations, regressions)

PHILOSOPHY:
-----------
"The reference engine is the ground truth.
 Player-visible text is the contract.
 Formatting noise is tolerated.
 Behavioral divergence is never tolerated silently."

============================================================
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


# ============================================================
# HELPERS
# ============================================================

def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        return datetime.fromisoformat(value)
    return datetime.utcnow()


# ============================================================
# TRANSCRIPTS
# ============================================================

@dataclass
class TranscriptEntry:
    """
    One step of a transcript.

    Entry 0 has an empty command and holds the engine's initial output.
    """
    index: int
    command: str
    output: str
    turn_number: int = 0
    timestamp: Optional[float] = None  # Epoch milliseconds, only when captured

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "index": self.index,
            "command": self.command,
            "output": self.output,
            "turn_number": self.turn_number,
        }
        if self.timestamp is not None:
            data["timestamp"] = self.timestamp
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TranscriptEntry":
        return cls(
            index=int(data["index"]),
            command=data.get("command", ""),
            output=data.get("output", ""),
            turn_number=int(data.get("turn_number", data.get("turnNumber", 0))),
            timestamp=data.get("timestamp"),
        )


@dataclass
class Transcript:
    """Ordered record of command/output pairs from one engine run."""
    id: str
    source: str  # Which engine produced it
    entries: List[TranscriptEntry] = field(default_factory=list)
    start_time: datetime = field(default_factory=datetime.utcnow)
    end_time: datetime = field(default_factory=datetime.utcnow)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def commands(self) -> List[str]:
        """Commands replayed, excluding the initial entry."""
        return [e.command for e in self.entries if e.index > 0]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "source": self.source,
            "start_time": _iso(self.start_time),
            "end_time": _iso(self.end_time),
            "entries": [e.to_dict() for e in self.entries],
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Transcript":
        return cls(
            id=data["id"],
            source=data.get("source", "unknown"),
            entries=[TranscriptEntry.from_dict(e) for e in data.get("entries", [])],
            start_time=_parse_datetime(data.get("start_time")),
            end_time=_parse_datetime(data.get("end_time")),
            metadata=dict(data.get("metadata", {})),
        )


# ============================================================
# COMPARISON
# ============================================================

class DiffSeverity(Enum):
    """Behavioral significance of a divergence."""
    CRITICAL = "critical"  # Missing entry or completely different output
    MAJOR = "major"  # Same intent, substantially different text
    MINOR = "minor"  # Near-identical or known acceptable variation
    FORMATTING = "formatting"  # Differs only in whitespace


class CommandCategory(Enum):
    """Category of a command, used to group divergences."""
    INITIAL = "initial"
    NAVIGATION = "navigation"
    OBJECT_MANIPULATION = "object_manipulation"
    ROOM_DESCRIPTION = "room_description"
    INVENTORY = "inventory"
    CONTAINER = "container"
    COMBAT = "combat"
    LIGHT_SOURCE = "light_source"
    META = "meta"
    PARSER_RESPONSE = "parser_response"


@dataclass
class ComparisonOptions:
    """
    Normalization and classification settings for transcript comparison.

    Each flag strips or rewrites one class of non-behavioral noise.
    Severity thresholds are configuration defaults, not derived constants.
    """
    strip_game_header: bool = False
    strip_status_bar: bool = False
    normalize_line_wrapping: bool = False
    normalize_whitespace: bool = True
    strip_prompts: bool = True
    filter_song_bird_messages: bool = False
    filter_atmospheric_messages: bool = False
    filter_loading_messages: bool = False
    normalize_error_messages: bool = False
    strict_content_only: bool = False
    ignore_case_in_messages: bool = False

    # Similarity at or above this counts as a match
    tolerance_threshold: float = 0.95

    # Severity bands for divergences below tolerance
    minor_similarity_threshold: float = 0.85
    major_similarity_threshold: float = 0.5

    # Markers that downgrade a divergence to MINOR
    known_variations: List[str] = field(default_factory=list)

    # Count combat-outcome divergences as close matches
    tolerate_combat_variance: bool = False

    def __post_init__(self) -> None:
        for name in (
            "tolerance_threshold",
            "minor_similarity_threshold",
            "major_similarity_threshold",
        ):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be within [0, 1], got {value}")
        if self.major_similarity_threshold > self.minor_similarity_threshold:
            raise ValueError(
                "major_similarity_threshold must not exceed minor_similarity_threshold"
            )

    @classmethod
    def structural(cls) -> "ComparisonOptions":
        """Options that strip every recognized structural difference."""
        return cls(
            strip_game_header=True,
            strip_status_bar=True,
            normalize_line_wrapping=True,
            normalize_whitespace=True,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ComparisonOptions":
        known = {f for f in cls.__dataclass_fields__}
        return cls(**{k: v for k, v in data.items() if k in known})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "strip_game_header": self.strip_game_header,
            "strip_status_bar": self.strip_status_bar,
            "normalize_line_wrapping": self.normalize_line_wrapping,
            "normalize_whitespace": self.normalize_whitespace,
            "strip_prompts": self.strip_prompts,
            "filter_song_bird_messages": self.filter_song_bird_messages,
            "filter_atmospheric_messages": self.filter_atmospheric_messages,
            "filter_loading_messages": self.filter_loading_messages,
            "normalize_error_messages": self.normalize_error_messages,
            "strict_content_only": self.strict_content_only,
            "ignore_case_in_messages": self.ignore_case_in_messages,
            "tolerance_threshold": self.tolerance_threshold,
            "minor_similarity_threshold": self.minor_similarity_threshold,
            "major_similarity_threshold": self.major_similarity_threshold,
            "known_variations": list(self.known_variations),
            "tolerate_combat_variance": self.tolerate_combat_variance,
        }


@dataclass
class DiffEntry:
    """One detected divergence between two transcripts."""
    index: int
    command: str
    expected: str  # From the reference transcript
    actual: str  # From the transcript under test
    similarity: float
    severity: DiffSeverity
    category: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "command": self.command,
            "expected": self.expected,
            "actual": self.actual,
            "similarity": self.similarity,
            "severity": self.severity.value,
            "category": self.category,
        }


@dataclass
class DiffSummary:
    """Per-severity divergence counts."""
    critical: int = 0
    major: int = 0
    minor: int = 0
    formatting: int = 0

    @property
    def total(self) -> int:
        return self.critical + self.major + self.minor + self.formatting

    def add(self, severity: DiffSeverity) -> None:
        setattr(self, severity.value, getattr(self, severity.value) + 1)

    def to_dict(self) -> Dict[str, int]:
        return {
            "critical": self.critical,
            "major": self.major,
            "minor": self.minor,
            "formatting": self.formatting,
        }


@dataclass
class DiffReport:
    """
    Result of one comparison over a transcript pair.

    Invariants:
    - exact_matches + close_matches + len(differences) == total_commands
    - summary.total == len(differences)
    """
    transcript_a: str
    transcript_b: str
    total_commands: int
    exact_matches: int
    close_matches: int
    differences: List[DiffEntry]
    parity_score: float
    summary: DiffSummary

    @property
    def is_perfect(self) -> bool:
        return not self.differences and self.parity_score >= 100.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "transcript_a": self.transcript_a,
            "transcript_b": self.transcript_b,
            "total_commands": self.total_commands,
            "exact_matches": self.exact_matches,
            "close_matches": self.close_matches,
            "differences": [d.to_dict() for d in self.differences],
            "parity_score": self.parity_score,
            "summary": self.summary.to_dict(),
        }


class DifferenceClass(Enum):
    """Classification of a divergence by origin."""
    RNG_DIFFERENCE = "rng_difference"  # Both outputs from a random message pool
    STATE_DIVERGENCE = "state_divergence"  # Accumulated RNG state, e.g. darkness
    LOGIC_DIFFERENCE = "logic_difference"  # Genuine behavioral divergence


@dataclass
class ClassifiedDifference:
    """Divergence classification with the evidence used."""
    command_index: int
    command: str
    classification: DifferenceClass
    reason: str
    expected: str
    actual: str
    pool_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "command_index": self.command_index,
            "classification": self.classification.value,
            "reason": self.reason,
            "command": self.command,
            "expected": self.expected,
            "actual": self.actual,
            "pool_name": self.pool_name,
        }


@dataclass
class ClassifiedDiffReport(DiffReport):
    """Diff report with each divergence classified by origin."""
    classified_differences: List[ClassifiedDifference] = field(default_factory=list)
    behavioral_differences: int = 0

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["classified_differences"] = [c.to_dict() for c in self.classified_differences]
        data["behavioral_differences"] = self.behavioral_differences
        return data


# ============================================================
# RECORDING & BATCH
# ============================================================

@dataclass
class RecordingOptions:
    """Options passed to recorder collaborators."""
    seed: Optional[int] = None
    capture_timestamps: bool = False
    preserve_formatting: bool = False
    suppress_random_messages: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "seed": self.seed,
            "capture_timestamps": self.capture_timestamps,
            "preserve_formatting": self.preserve_formatting,
            "suppress_random_messages": self.suppress_random_messages,
        }


@dataclass
class BatchOptions:
    """Batch execution settings."""
    parallel: bool = False
    max_concurrency: int = 4
    stop_on_failure: bool = False

    def __post_init__(self) -> None:
        if self.max_concurrency < 1:
            raise ValueError(f"max_concurrency must be at least 1, got {self.max_concurrency}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "parallel": self.parallel,
            "max_concurrency": self.max_concurrency,
            "stop_on_failure": self.stop_on_failure,
        }


@dataclass
class CommandSequence:
    """A named list of commands to replay against both engines."""
    id: str
    name: str
    commands: List[str]
    description: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)
    source_file: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "commands": list(self.commands),
            "metadata": dict(self.metadata),
            "source_file": self.source_file,
        }


@dataclass
class SequenceResult:
    """Outcome of running and comparing one command sequence."""
    id: str
    name: str
    parity_score: float
    diff_count: int
    execution_time: float  # Milliseconds
    success: bool
    report: Optional[DiffReport] = None
    error: Optional[str] = None
    note: Optional[str] = None

    @property
    def weight(self) -> int:
        """Command-count weight for aggregation."""
        if self.report is None:
            return 1
        return self.report.total_commands

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "parity_score": self.parity_score,
            "diff_count": self.diff_count,
            "execution_time": self.execution_time,
            "success": self.success,
            "error": self.error,
            "note": self.note,
            "report": self.report.to_dict() if self.report else None,
        }


@dataclass
class DetailedBatchResult:
    """Batch-level aggregation of per-sequence results."""
    sequences: List[CommandSequence]
    results: List[SequenceResult]
    total_differences: int
    aggregate_parity_score: float
    success_count: int
    failure_count: int
    worst_sequences: List[str]
    total_execution_time: float  # Milliseconds
    timestamp: datetime = field(default_factory=datetime.utcnow)

    def get_result(self, sequence_id: str) -> Optional[SequenceResult]:
        for result in self.results:
            if result.id == sequence_id:
                return result
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": _iso(self.timestamp),
            "sequences": [s.to_dict() for s in self.sequences],
            "results": [r.to_dict() for r in self.results],
            "total_differences": self.total_differences,
            "aggregate_parity_score": self.aggregate_parity_score,
            "success_count": self.success_count,
            "failure_count": self.failure_count,
            "worst_sequences": list(self.worst_sequences),
            "total_execution_time": self.total_execution_time,
        }


# ============================================================
# DEEP ANALYSIS
# ============================================================

class DifferenceType(Enum):
    """Taxonomy of divergence causes."""
    MESSAGE_CONTENT = "message_content"
    STATE_LOGIC = "state_logic"
    OBJECT_BEHAVIOR = "object_behavior"
    PARSER_RESPONSE = "parser_response"
    CONDITIONAL_LOGIC = "conditional_logic"
    SEQUENCE_DEPENDENCY = "sequence_dependency"
    TIMING_DIFFERENCE = "timing_difference"
    RANDOM_BEHAVIOR = "random_behavior"


class GameSystem(Enum):
    """Engine subsystems a divergence can be attributed to."""
    PARSER = "parser"
    ACTIONS = "actions"
    OBJECTS = "objects"
    ROOMS = "rooms"
    INVENTORY = "inventory"
    PUZZLES = "puzzles"
    COMBAT = "combat"
    DAEMONS = "daemons"
    SCORING = "scoring"
    LIGHTING = "lighting"
    MESSAGING = "messaging"


class ContextualFactorType(Enum):
    """Kind of context surrounding a divergence."""
    PREVIOUS_COMMAND = "previous_command"
    GAME_STATE = "game_state"
    OBJECT_LOCATION = "object_location"
    PUZZLE_STATE = "puzzle_state"
    DAEMON_TIMING = "daemon_timing"
    RANDOM_SEED = "random_seed"
    TURN_NUMBER = "turn_number"
    INVENTORY_STATE = "inventory_state"


class IssueType(Enum):
    """Kind of defect behind a root cause."""
    MISSING_LOGIC = "missing_logic"
    INCORRECT_LOGIC = "incorrect_logic"
    MESSAGE_MISMATCH = "message_mismatch"
    STATE_INCONSISTENCY = "state_inconsistency"
    TIMING_ISSUE = "timing_issue"
    CONDITIONAL_ERROR = "conditional_error"
    DEPENDENCY_MISSING = "dependency_missing"


class RiskLevel(Enum):
    """Risk classification."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class FixPriority(Enum):
    """Priority of a fix recommendation."""
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return {"critical": 4, "high": 3, "medium": 2, "low": 1}[self.value]


class FixEffort(Enum):
    """Estimated effort of a fix."""
    MINIMAL = "minimal"
    MODERATE = "moderate"
    SIGNIFICANT = "significant"
    MAJOR = "major"


@dataclass
class GameStateSnapshot:
    """Best-effort state reconstructed from output text. Advisory only."""
    turn_number: int = 0
    player_location: str = "unknown"
    inventory: List[str] = field(default_factory=list)
    score: int = 0
    checksum: str = "empty"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "turn_number": self.turn_number,
            "player_location": self.player_location,
            "inventory": list(self.inventory),
            "score": self.score,
            "checksum": self.checksum,
        }


@dataclass
class ContextualFactor:
    """Context that may influence a divergence."""
    type: ContextualFactorType
    description: str
    impact: str  # low | medium | high
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "description": self.description,
            "impact": self.impact,
            "data": dict(self.data),
        }


@dataclass
class DetailedDifference:
    """A diff entry enriched with state, classification and context."""
    command_index: int
    command: str
    game_state: GameStateSnapshot
    expected_output: str
    actual_output: str
    difference_type: DifferenceType
    affected_systems: List[GameSystem]
    contextual_factors: List[ContextualFactor]
    similarity: float
    severity: DiffSeverity
    category: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "command_index": self.command_index,
            "command": self.command,
            "game_state": self.game_state.to_dict(),
            "expected_output": self.expected_output,
            "actual_output": self.actual_output,
            "difference_type": self.difference_type.value,
            "affected_systems": [s.value for s in self.affected_systems],
            "contextual_factors": [f.to_dict() for f in self.contextual_factors],
            "similarity": self.similarity,
            "severity": self.severity.value,
            "category": self.category,
        }


@dataclass
class RootCause:
    """Subsystem and issue kind responsible for a divergence."""
    system: GameSystem
    component: str
    issue_type: IssueType
    description: str
    suggested_fix: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "system": self.system.value,
            "component": self.component,
            "issue_type": self.issue_type.value,
            "description": self.description,
            "suggested_fix": self.suggested_fix,
        }


@dataclass
class RootCauseMap:
    """Primary cause, contributing factors and confidence for one divergence."""
    primary_cause: RootCause
    contributing_factors: List[RootCause]
    confidence: float
    explanation: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "primary_cause": self.primary_cause.to_dict(),
            "contributing_factors": [c.to_dict() for c in self.contributing_factors],
            "confidence": self.confidence,
            "explanation": self.explanation,
        }


@dataclass
class FixRecommendation:
    """Prioritized, risk-assessed remediation pointer."""
    difference_index: int
    priority: FixPriority
    effort: FixEffort
    regression_risk: RiskLevel
    target_files: List[str]
    description: str
    estimated_improvement: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "difference_index": self.difference_index,
            "priority": self.priority.value,
            "effort": self.effort.value,
            "regression_risk": self.regression_risk.value,
            "target_files": list(self.target_files),
            "description": self.description,
            "estimated_improvement": self.estimated_improvement,
        }


@dataclass
class AnalysisMetadata:
    """Bookkeeping for one analysis run."""
    analyzer_version: str
    duration_ms: float
    total_differences: int
    completeness: float
    timestamp: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": _iso(self.timestamp),
            "analyzer_version": self.analyzer_version,
            "duration_ms": self.duration_ms,
            "total_differences": self.total_differences,
            "completeness": self.completeness,
        }


@dataclass
class DeepAnalysisResult:
    """Full deep analysis of one diff report."""
    sequence_id: str
    differences: List[DetailedDifference]
    root_cause_analysis: List[RootCauseMap]
    fix_recommendations: List[FixRecommendation]
    risk_assessment: RiskLevel
    metadata: AnalysisMetadata

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sequence_id": self.sequence_id,
            "differences": [d.to_dict() for d in self.differences],
            "root_cause_analysis": [r.to_dict() for r in self.root_cause_analysis],
            "fix_recommendations": [f.to_dict() for f in self.fix_recommendations],
            "risk_assessment": self.risk_assessment.value,
            "metadata": self.metadata.to_dict(),
        }


# ============================================================
# CERTIFICATION
# ============================================================

class CertificationLevel(Enum):
    """Certification verdict, lowest to highest."""
    NONE = "none"
    BASIC = "basic"
    STANDARD = "standard"
    ADVANCED = "advanced"
    PERFECT = "perfect"


class RegressionSeverity(Enum):
    """Magnitude of a parity drop versus baseline."""
    MINOR = "minor"
    MODERATE = "moderate"
    SEVERE = "severe"
    CRITICAL = "critical"


@dataclass
class FailurePoint:
    """Where and why a sequence failed to reach perfect parity."""
    command_index: int
    command: str
    expected: str
    actual: str
    failure_type: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "command_index": self.command_index,
            "command": self.command,
            "expected": self.expected,
            "actual": self.actual,
            "failure_type": self.failure_type,
        }


@dataclass
class SequenceValidation:
    """Perfect-parity verdict for one sequence."""
    sequence_id: str
    sequence_name: str
    parity_score: float
    is_perfect: bool
    differences: int  # -1 when validation itself failed
    failure_points: List[FailurePoint] = field(default_factory=list)
    total_commands: int = 0
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sequence_id": self.sequence_id,
            "sequence_name": self.sequence_name,
            "parity_score": self.parity_score,
            "is_perfect": self.is_perfect,
            "differences": self.differences,
            "failure_points": [f.to_dict() for f in self.failure_points],
            "total_commands": self.total_commands,
            "error": self.error,
        }


@dataclass
class SeedVariation:
    """Parity or difference-count delta for one seed versus the baseline seed."""
    sequence_id: str
    seed: int
    baseline_seed: int
    parity_score: float
    baseline_parity_score: float
    difference_count: int
    baseline_difference_count: int
    impact: str  # medium | high

    @property
    def parity_delta(self) -> float:
        return self.parity_score - self.baseline_parity_score

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sequence_id": self.sequence_id,
            "seed": self.seed,
            "baseline_seed": self.baseline_seed,
            "parity_score": self.parity_score,
            "baseline_parity_score": self.baseline_parity_score,
            "difference_count": self.difference_count,
            "baseline_difference_count": self.baseline_difference_count,
            "parity_delta": self.parity_delta,
            "impact": self.impact,
        }


@dataclass
class SeedResult:
    """Aggregate outcome of one full-suite run under a seed."""
    seed: int
    aggregate_parity_score: float
    total_differences: int
    consistent: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "seed": self.seed,
            "aggregate_parity_score": self.aggregate_parity_score,
            "total_differences": self.total_differences,
            "consistent": self.consistent,
        }


@dataclass
class RegressionResult:
    """Per-sequence parity drop versus the supplied baseline."""
    sequence_id: str
    baseline_score: float
    current_score: float
    severity: RegressionSeverity

    @property
    def change(self) -> float:
        return self.current_score - self.baseline_score

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sequence_id": self.sequence_id,
            "baseline_score": self.baseline_score,
            "current_score": self.current_score,
            "change": self.change,
            "severity": self.severity.value,
        }


@dataclass
class ValidationCriterion:
    """One named certification criterion."""
    name: str
    description: str
    passed: bool
    score: float  # 0-100
    details: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "passed": self.passed,
            "score": self.score,
            "details": self.details,
        }


@dataclass
class ParityCertification:
    """Terminal certification artifact."""
    certified: bool
    level: CertificationLevel
    overall_score: float
    criteria: List[ValidationCriterion]
    sustainability_score: float
    maintenance_recommendations: List[str]
    certification_id: str = ""
    issued_at: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "certification_id": self.certification_id,
            "issued_at": _iso(self.issued_at),
            "certified": self.certified,
            "level": self.level.value,
            "overall_score": self.overall_score,
            "criteria": [c.to_dict() for c in self.criteria],
            "sustainability_score": self.sustainability_score,
            "maintenance_recommendations": list(self.maintenance_recommendations),
        }


@dataclass
class PerfectParityValidation:
    """Complete output of a perfect-parity validation run."""
    sequence_validations: List[SequenceValidation]
    aggregate_parity_score: float
    seed_results: List[SeedResult]
    seed_variations: List[SeedVariation]
    regressions: List[RegressionResult]
    certification: ParityCertification
    completeness: float
    total_execution_time: float  # Milliseconds
    timestamp: datetime = field(default_factory=datetime.utcnow)

    @property
    def perfect_sequences(self) -> int:
        return sum(1 for v in self.sequence_validations if v.is_perfect)

    def current_scores(self) -> Dict[str, float]:
        """Per-sequence scores, suitable as the next run's baseline."""
        return {v.sequence_id: v.parity_score for v in self.sequence_validations}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": _iso(self.timestamp),
            "sequence_validations": [v.to_dict() for v in self.sequence_validations],
            "aggregate_parity_score": self.aggregate_parity_score,
            "perfect_sequences": self.perfect_sequences,
            "seed_results": [s.to_dict() for s in self.seed_results],
            "seed_variations": [s.to_dict() for s in self.seed_variations],
            "regressions": [r.to_dict() for r in self.regressions],
            "certification": self.certification.to_dict(),
            "completeness": self.completeness,
            "total_execution_time": self.total_execution_time,
        }
