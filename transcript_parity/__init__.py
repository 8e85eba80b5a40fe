"""
Transcript Parity Package.

============================================================
REFERENCE vs CANDIDATE ENGINE PARITY VALIDATION
============================================================

PURPOSE:
This package validates that a candidate interactive-fiction engine
behaves like a reference engine. Identical command sequences are
replayed against both, transcripts are captured, and divergences
are reported by severity.

KEY PRINCIPLE:
"Formatting noise is tolerated. Behavioral divergence is not."

============================================================
PIPELINE
============================================================

1. RECORDING
   - Reference and candidate recorders
   - Stored transcript replay
   - Seeded runs for randomized behavior

2. COMPARISON
   - Output normalization (headers, status bars, wrapping, prompts)
   - Similarity scoring and severity classification
   - RNG / state / logic difference classification

3. ANALYSIS
   - Game state snapshots around each divergence
   - Root causes, affected systems, fix recommendations

4. BATCH & CERTIFICATION
   - Many sequences, sequential or parallel
   - Multi-seed consistency and regression checks
   - Certification levels and documents

============================================================
USAGE
============================================================

```python
from transcript_parity import (
    BatchRunner,
    SequenceLoader,
    TranscriptFileRecorder,
    ReportGenerator,
)

runner = BatchRunner(
    candidate_recorder=TranscriptFileRecorder("transcripts/candidate", "candidate"),
    reference_recorder=TranscriptFileRecorder("transcripts/reference"),
)

sequences = SequenceLoader().load_directory("sequences")
result = await runner.run(sequences)

print(ReportGenerator().generate_batch(result, "markdown"))
```

============================================================
"""

# Models
from .models import (
    # Transcripts
    TranscriptEntry,
    Transcript,
    # Comparison
    DiffSeverity,
    CommandCategory,
    ComparisonOptions,
    DiffEntry,
    DiffSummary,
    DiffReport,
    DifferenceClass,
    ClassifiedDifference,
    ClassifiedDiffReport,
    # Recording & Batch
    RecordingOptions,
    BatchOptions,
    CommandSequence,
    SequenceResult,
    DetailedBatchResult,
    # Deep Analysis
    DifferenceType,
    GameSystem,
    ContextualFactorType,
    IssueType,
    RiskLevel,
    FixPriority,
    FixEffort,
    GameStateSnapshot,
    ContextualFactor,
    DetailedDifference,
    RootCause,
    RootCauseMap,
    FixRecommendation,
    AnalysisMetadata,
    DeepAnalysisResult,
    # Validation
    CertificationLevel,
    RegressionSeverity,
    FailurePoint,
    SequenceValidation,
    SeedVariation,
    SeedResult,
    RegressionResult,
    ValidationCriterion,
    ParityCertification,
    PerfectParityValidation,
)

# Exceptions
from .exceptions import (
    TranscriptParityError,
    ConfigurationError,
    SequenceParseError,
    RecorderError,
    RecorderUnavailableError,
    RecordingTimeoutError,
    ReportFormatError,
)

# Comparators
from .comparators import (
    TranscriptComparator,
    categorize_command,
    calculate_similarity,
    levenshtein_distance,
    create_comparator,
)

# Classifier
from .classifier import (
    DifferenceClassifier,
    create_difference_classifier,
)

# Deep Analysis
from .deep_analyzer import (
    AnalysisOptions,
    DeepAnalyzer,
    create_deep_analyzer,
)

# Recorders
from .recorders import (
    BaseRecorder,
    ProcessRecorder,
    SessionRecorder,
    TranscriptFileRecorder,
    save_transcript,
    load_transcript,
)

# Batch Runner
from .batch_runner import (
    BatchRunner,
    create_batch_runner,
)

# Sequence Loader
from .sequence_loader import (
    SequenceLoader,
    create_sequence_loader,
)

# Validator
from .validator import (
    ValidationOptions,
    PerfectParityValidator,
    perfect_comparison_options,
    create_perfect_parity_validator,
)

# Reporter
from .reporter import (
    ReportFormat,
    ReportGenerator,
    ReportExporter,
    CertificationGenerator,
)

# Configuration
from .config import (
    RecorderSettings,
    CertificationSettings,
    ParityConfig,
    get_config,
    set_config,
)


__all__ = [
    # Transcripts
    "TranscriptEntry",
    "Transcript",
    # Comparison
    "DiffSeverity",
    "CommandCategory",
    "ComparisonOptions",
    "DiffEntry",
    "DiffSummary",
    "DiffReport",
    "DifferenceClass",
    "ClassifiedDifference",
    "ClassifiedDiffReport",
    # Recording & Batch
    "RecordingOptions",
    "BatchOptions",
    "CommandSequence",
    "SequenceResult",
    "DetailedBatchResult",
    # Deep Analysis
    "DifferenceType",
    "GameSystem",
    "ContextualFactorType",
    "IssueType",
    "RiskLevel",
    "FixPriority",
    "FixEffort",
    "GameStateSnapshot",
    "ContextualFactor",
    "DetailedDifference",
    "RootCause",
    "RootCauseMap",
    "FixRecommendation",
    "AnalysisMetadata",
    "DeepAnalysisResult",
    # Validation
    "CertificationLevel",
    "RegressionSeverity",
    "FailurePoint",
    "SequenceValidation",
    "SeedVariation",
    "SeedResult",
    "RegressionResult",
    "ValidationCriterion",
    "ParityCertification",
    "PerfectParityValidation",
    # Exceptions
    "TranscriptParityError",
    "ConfigurationError",
    "SequenceParseError",
    "RecorderError",
    "RecorderUnavailableError",
    "RecordingTimeoutError",
    "ReportFormatError",
    # Comparators
    "TranscriptComparator",
    "categorize_command",
    "calculate_similarity",
    "levenshtein_distance",
    "create_comparator",
    # Classifier
    "DifferenceClassifier",
    "create_difference_classifier",
    # Deep Analysis
    "AnalysisOptions",
    "DeepAnalyzer",
    "create_deep_analyzer",
    # Recorders
    "BaseRecorder",
    "ProcessRecorder",
    "SessionRecorder",
    "TranscriptFileRecorder",
    "save_transcript",
    "load_transcript",
    # Batch Runner
    "BatchRunner",
    "create_batch_runner",
    # Sequence Loader
    "SequenceLoader",
    "create_sequence_loader",
    # Validator
    "ValidationOptions",
    "PerfectParityValidator",
    "perfect_comparison_options",
    "create_perfect_parity_validator",
    # Reporter
    "ReportFormat",
    "ReportGenerator",
    "ReportExporter",
    "CertificationGenerator",
    # Configuration
    "RecorderSettings",
    "CertificationSettings",
    "ParityConfig",
    "get_config",
    "set_config",
]


# Version
__version__ = "1.0.0"
