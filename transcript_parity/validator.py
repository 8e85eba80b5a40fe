"""
Perfect Parity Validator.

============================================================
PURPOSE
============================================================
Certifies that the candidate engine reproduces the reference
engine exactly across a corpus of command sequences.

Stages:
1. Loading - read every sequence file
2. Per-sequence validation - each must reach 100% with no differences
3. Multi-seed validation - re-run under other seeds, flag deltas
4. Regression check - compare against a caller-supplied baseline
5. Certification - four criteria, a level and a sustainability score

No stage retries. A sequence that cannot be validated is recorded
as a zero-parity failure and the run continues.

============================================================
CRITERIA
============================================================
- Perfect Aggregate Parity
- All Sequences Perfect
- Multi-Seed Consistency
- No Regressions

Level:
- PERFECT:  all criteria pass and overall score >= 100
- ADVANCED: overall >= 95
- STANDARD: overall >= 90
- BASIC:    overall >= 75
- NONE:     otherwise

============================================================
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union

from .batch_runner import BatchRunner
from .models import (
    BatchOptions,
    CertificationLevel,
    CommandSequence,
    ComparisonOptions,
    FailurePoint,
    ParityCertification,
    PerfectParityValidation,
    RecordingOptions,
    RegressionResult,
    RegressionSeverity,
    SeedResult,
    SeedVariation,
    SequenceResult,
    SequenceValidation,
    ValidationCriterion,
)
from .sequence_loader import SequenceLoader


logger = logging.getLogger(__name__)


VALIDATOR_VERSION = "1.0.0"

DEFAULT_SEEDS = [42, 123, 456, 789, 999]

# Deltas below this are floating point noise
PARITY_EPSILON = 0.01

CRITERION_AGGREGATE = "Perfect Aggregate Parity"
CRITERION_ALL_SEQUENCES = "All Sequences Perfect"
CRITERION_SEED_CONSISTENCY = "Multi-Seed Consistency"
CRITERION_NO_REGRESSIONS = "No Regressions"

CRITERION_RECOMMENDATIONS = {
    CRITERION_AGGREGATE: "Focus on fixing remaining differences to achieve 100% aggregate parity",
    CRITERION_ALL_SEQUENCES: "Address individual sequence failures to achieve perfect parity across all tests",
    CRITERION_SEED_CONSISTENCY: "Investigate and eliminate non-deterministic behaviors causing seed variations",
    CRITERION_NO_REGRESSIONS: "Implement regression prevention measures and fix detected regressions",
}

GENERAL_RECOMMENDATIONS = [
    "Run validation tests regularly to detect parity degradation early",
    "Implement automated monitoring for continuous parity verification",
    "Maintain comprehensive test coverage for all game systems",
]


def perfect_comparison_options() -> ComparisonOptions:
    """Structural noise stripped, exact match required."""
    return ComparisonOptions(
        strip_status_bar=True,
        normalize_line_wrapping=True,
        normalize_whitespace=True,
        strip_game_header=True,
        tolerance_threshold=1.0,
    )


@dataclass
class ValidationOptions:
    """Settings for one perfect-parity validation run."""
    seeds: List[int] = field(default_factory=lambda: list(DEFAULT_SEEDS))
    certification_threshold: float = 100.0
    baseline_scores: Optional[Dict[str, float]] = None
    skip_multi_seed: bool = False
    skip_regression_check: bool = False
    comparison_options: ComparisonOptions = field(default_factory=perfect_comparison_options)
    batch_options: BatchOptions = field(default_factory=BatchOptions)

    def __post_init__(self) -> None:
        if not self.seeds:
            raise ValueError("At least one seed is required")
        if not 0.0 <= self.certification_threshold <= 100.0:
            raise ValueError(
                f"certification_threshold must be within [0, 100], got {self.certification_threshold}"
            )


# ============================================================
# PERFECT PARITY VALIDATOR
# ============================================================

class PerfectParityValidator:
    """Runs the full validation state machine over a sequence corpus."""

    def __init__(
        self,
        batch_runner: BatchRunner,
        loader: Optional[SequenceLoader] = None,
    ):
        self._runner = batch_runner
        self._loader = loader or SequenceLoader()

    @property
    def version(self) -> str:
        return VALIDATOR_VERSION

    async def validate_perfect_parity(
        self,
        sequence_files: List[Union[str, Path]],
        options: Optional[ValidationOptions] = None,
    ) -> PerfectParityValidation:
        """
        Load sequence files and validate them.

        Malformed sequence files raise SequenceParseError before any
        engine is run.
        """
        sequences = self._loader.load_many(sequence_files)
        logger.info(f"Loaded {len(sequences)} sequences from {len(sequence_files)} paths")
        return await self.validate_sequences(sequences, options)

    async def validate_sequences(
        self,
        sequences: List[CommandSequence],
        options: Optional[ValidationOptions] = None,
    ) -> PerfectParityValidation:
        opts = options or ValidationOptions()
        started = time.monotonic()
        baseline_seed = opts.seeds[0]

        validations = await self._validate_with_seed(sequences, baseline_seed, opts)
        aggregate = self.calculate_aggregate_parity(validations)
        logger.info(
            f"Per-sequence validation: {sum(1 for v in validations if v.is_perfect)}"
            f"/{len(validations)} perfect, aggregate {aggregate:.2f}%"
        )

        seed_results = [SeedResult(
            seed=baseline_seed,
            aggregate_parity_score=aggregate,
            total_differences=sum(max(0, v.differences) for v in validations),
        )]
        seed_variations: List[SeedVariation] = []

        if not opts.skip_multi_seed:
            for seed in opts.seeds[1:]:
                seed_validations = await self._validate_with_seed(sequences, seed, opts)
                variations = self.compare_with_baseline(
                    validations, seed_validations, seed, baseline_seed
                )
                seed_variations.extend(variations)
                seed_results.append(SeedResult(
                    seed=seed,
                    aggregate_parity_score=self.calculate_aggregate_parity(seed_validations),
                    total_differences=sum(max(0, v.differences) for v in seed_validations),
                    consistent=not variations,
                ))
                if variations:
                    logger.warning(f"Seed {seed}: {len(variations)} variations versus seed {baseline_seed}")

        regressions: List[RegressionResult] = []
        if not opts.skip_regression_check and opts.baseline_scores is not None:
            regressions = self.check_regressions(validations, dict(opts.baseline_scores))

        certification = self.generate_certification(
            aggregate, validations, seed_results, seed_variations, regressions, opts
        )

        result = PerfectParityValidation(
            sequence_validations=validations,
            aggregate_parity_score=aggregate,
            seed_results=seed_results,
            seed_variations=seed_variations,
            regressions=regressions,
            certification=certification,
            completeness=self.calculate_completeness(validations, seed_results),
            total_execution_time=(time.monotonic() - started) * 1000,
        )

        logger.info(
            f"Certification {certification.level.value.upper()}: "
            f"overall {certification.overall_score:.2f}, "
            f"sustainability {certification.sustainability_score:.0f}, "
            f"{len(regressions)} regressions"
        )
        return result

    # --------------------------------------------------------
    # Per-sequence validation
    # --------------------------------------------------------

    async def _validate_with_seed(
        self,
        sequences: List[CommandSequence],
        seed: int,
        options: ValidationOptions,
    ) -> List[SequenceValidation]:
        recording_options = RecordingOptions(
            seed=seed,
            capture_timestamps=True,
            preserve_formatting=False,
            suppress_random_messages=True,
        )
        batch = await self._runner.run(
            sequences,
            options.batch_options,
            recording_options,
            options.comparison_options,
        )
        return [self.to_validation(r, options.certification_threshold) for r in batch.results]

    @staticmethod
    def to_validation(result: SequenceResult, threshold: float) -> SequenceValidation:
        """
        Convert a batch result into a perfect-parity verdict.

        A failed run, or one without a reference comparison, cannot be
        validated and is recorded with zero parity.
        """
        if not result.success or result.report is None:
            reason = result.error or result.note or "no comparison performed"
            return SequenceValidation(
                sequence_id=result.id,
                sequence_name=result.name,
                parity_score=0.0,
                is_perfect=False,
                differences=-1,
                failure_points=[FailurePoint(
                    command_index=-1,
                    command="validation_error",
                    expected="successful validation",
                    actual=f"error: {reason}",
                    failure_type="validation_failure",
                )],
                error=reason,
            )

        report = result.report
        failure_points = [
            FailurePoint(
                command_index=d.index,
                command=d.command,
                expected=d.expected,
                actual=d.actual,
                failure_type=d.severity.value,
            )
            for d in report.differences
        ]
        return SequenceValidation(
            sequence_id=result.id,
            sequence_name=result.name,
            parity_score=report.parity_score,
            is_perfect=report.parity_score >= threshold and not report.differences,
            differences=len(report.differences),
            failure_points=failure_points,
            total_commands=report.total_commands,
        )

    @staticmethod
    def calculate_aggregate_parity(validations: List[SequenceValidation]) -> float:
        """Command-count-weighted mean over sequences that were actually compared."""
        valid = [v for v in validations if v.error is None]
        total_weight = sum(max(1, v.total_commands) for v in valid)
        if total_weight == 0:
            return 0.0
        return sum(v.parity_score * max(1, v.total_commands) for v in valid) / total_weight

    # --------------------------------------------------------
    # Multi-seed & regressions
    # --------------------------------------------------------

    @staticmethod
    def compare_with_baseline(
        baseline: List[SequenceValidation],
        current: List[SequenceValidation],
        seed: int,
        baseline_seed: int,
    ) -> List[SeedVariation]:
        """One variation per sequence whose parity or difference count moved."""
        variations = []
        for base, curr in zip(baseline, current):
            delta = abs(curr.parity_score - base.parity_score)
            if delta > PARITY_EPSILON:
                impact = "high" if delta > 1.0 else "medium"
            elif curr.differences != base.differences:
                impact = "medium"
            else:
                continue
            variations.append(SeedVariation(
                sequence_id=base.sequence_id,
                seed=seed,
                baseline_seed=baseline_seed,
                parity_score=curr.parity_score,
                baseline_parity_score=base.parity_score,
                difference_count=curr.differences,
                baseline_difference_count=base.differences,
                impact=impact,
            ))
        return variations

    @staticmethod
    def classify_regression_severity(change: float) -> RegressionSeverity:
        magnitude = abs(change)
        if magnitude >= 10.0:
            return RegressionSeverity.CRITICAL
        if magnitude >= 5.0:
            return RegressionSeverity.SEVERE
        if magnitude >= 1.0:
            return RegressionSeverity.MODERATE
        return RegressionSeverity.MINOR

    def check_regressions(
        self,
        validations: List[SequenceValidation],
        baseline_scores: Dict[str, float],
    ) -> List[RegressionResult]:
        """Sequences whose parity dropped below their baseline score."""
        regressions = []
        for validation in validations:
            baseline = baseline_scores.get(validation.sequence_id)
            if baseline is None:
                continue
            change = validation.parity_score - baseline
            if change < -PARITY_EPSILON:
                regressions.append(RegressionResult(
                    sequence_id=validation.sequence_id,
                    baseline_score=baseline,
                    current_score=validation.parity_score,
                    severity=self.classify_regression_severity(change),
                ))
        return regressions

    # --------------------------------------------------------
    # Certification
    # --------------------------------------------------------

    def generate_certification(
        self,
        aggregate: float,
        validations: List[SequenceValidation],
        seed_results: List[SeedResult],
        seed_variations: List[SeedVariation],
        regressions: List[RegressionResult],
        options: ValidationOptions,
    ) -> ParityCertification:
        threshold = options.certification_threshold
        criteria = []

        aggregate_passed = aggregate >= threshold
        criteria.append(ValidationCriterion(
            name=CRITERION_AGGREGATE,
            description=f"Aggregate parity must be {threshold:.0f}% or higher",
            passed=aggregate_passed,
            score=100.0 if aggregate_passed else aggregate,
            details=f"Aggregate parity {aggregate:.2f}%",
        ))

        perfect = sum(1 for v in validations if v.is_perfect)
        sequence_score = perfect / len(validations) * 100 if validations else 0.0
        criteria.append(ValidationCriterion(
            name=CRITERION_ALL_SEQUENCES,
            description="All individual sequences must achieve 100% parity",
            passed=bool(validations) and perfect == len(validations),
            score=sequence_score,
            details=f"{perfect}/{len(validations)} sequences perfect",
        ))

        tested = seed_results[1:]
        consistent = sum(1 for s in tested if s.consistent)
        seed_score = consistent / len(tested) * 100 if tested else 100.0
        criteria.append(ValidationCriterion(
            name=CRITERION_SEED_CONSISTENCY,
            description="Results must be consistent across different random seeds",
            passed=seed_score >= 100.0,
            score=seed_score,
            details=f"{consistent}/{len(tested)} seeds consistent",
        ))

        criteria.append(ValidationCriterion(
            name=CRITERION_NO_REGRESSIONS,
            description="No parity regressions compared to baseline",
            passed=not regressions,
            score=max(0.0, 100.0 - 10 * len(regressions)),
            details=f"{len(regressions)} regressions",
        ))

        overall = sum(c.score for c in criteria) / len(criteria)
        all_passed = all(c.passed for c in criteria)

        return ParityCertification(
            certified=all_passed and overall >= threshold,
            level=self.determine_level(overall, all_passed),
            overall_score=overall,
            criteria=criteria,
            sustainability_score=self.calculate_sustainability(validations, seed_variations, regressions),
            maintenance_recommendations=self.generate_recommendations(criteria, regressions),
            certification_id=f"cert_{uuid.uuid4().hex[:12]}",
        )

    @staticmethod
    def determine_level(overall_score: float, all_passed: bool) -> CertificationLevel:
        if all_passed and overall_score >= 100:
            return CertificationLevel.PERFECT
        if overall_score >= 95:
            return CertificationLevel.ADVANCED
        if overall_score >= 90:
            return CertificationLevel.STANDARD
        if overall_score >= 75:
            return CertificationLevel.BASIC
        return CertificationLevel.NONE

    @staticmethod
    def calculate_sustainability(
        validations: List[SequenceValidation],
        seed_variations: List[SeedVariation],
        regressions: List[RegressionResult],
    ) -> float:
        score = 100.0
        score -= 10 * sum(1 for v in validations if not v.is_perfect)
        score -= 5 * len(seed_variations)
        score -= 15 * len(regressions)
        return max(0.0, score)

    @staticmethod
    def generate_recommendations(
        criteria: List[ValidationCriterion],
        regressions: List[RegressionResult],
    ) -> List[str]:
        recommendations = [
            CRITERION_RECOMMENDATIONS[c.name] for c in criteria if not c.passed
        ]
        recommendations.extend(GENERAL_RECOMMENDATIONS)
        if regressions:
            recommendations.append("Establish baseline parity scores and implement regression alerts")
        return recommendations

    @staticmethod
    def calculate_completeness(
        validations: List[SequenceValidation],
        seed_results: List[SeedResult],
    ) -> float:
        """70% from sequences validated perfect, 30% from consistent seeds."""
        completeness = 0.0
        if validations:
            passed = sum(1 for v in validations if v.is_perfect and not v.failure_points)
            completeness += passed / len(validations) * 70

        tested = seed_results[1:]
        if tested:
            completeness += sum(1 for s in tested if s.consistent) / len(tested) * 30
        else:
            completeness += 30
        return min(100.0, completeness)


# ============================================================
# FACTORY FUNCTION
# ============================================================

def create_perfect_parity_validator(
    batch_runner: BatchRunner,
    loader: Optional[SequenceLoader] = None,
) -> PerfectParityValidator:
    """Create a validator over an existing batch runner."""
    return PerfectParityValidator(batch_runner, loader)
