"""
Batch Runner.

============================================================
PURPOSE
============================================================
Executes many command sequences against both engines, compares
each pair of transcripts, and aggregates a batch-level result.

Per sequence:
1. Record the candidate transcript (always)
2. Record the reference transcript (if available)
3. Compare reference (expected) against candidate (actual)

============================================================
CONCURRENCY
============================================================
- Sequential mode runs sequences in input order
- Parallel mode runs min(max_concurrency, n) asyncio workers
  that pull from a shared cursor and write each result into
  its own pre-assigned slot
- stop_on_failure is checked between sequences; a sequence
  already in flight always completes

============================================================
"""

import asyncio
import logging
import time
from typing import List, Optional

from .comparators import TranscriptComparator
from .exceptions import RecorderUnavailableError
from .models import (
    BatchOptions,
    CommandSequence,
    ComparisonOptions,
    DetailedBatchResult,
    RecordingOptions,
    SequenceResult,
)
from .recorders import BaseRecorder


logger = logging.getLogger(__name__)


WORST_SEQUENCE_LIMIT = 5

REFERENCE_MISSING_NOTE = "Reference recorder not configured - candidate only"
REFERENCE_UNAVAILABLE_NOTE = "Reference engine not available - candidate only"
CANDIDATE_ONLY_NOTE = "Candidate-only recording - no comparison performed"


def _elapsed_ms(started: float) -> float:
    return (time.monotonic() - started) * 1000


# ============================================================
# BATCH RUNNER
# ============================================================

class BatchRunner:
    """Runs command sequences through both recorders and the comparator."""

    def __init__(
        self,
        candidate_recorder: BaseRecorder,
        reference_recorder: Optional[BaseRecorder] = None,
        comparator: Optional[TranscriptComparator] = None,
    ):
        self._candidate = candidate_recorder
        self._reference = reference_recorder
        self._comparator = comparator or TranscriptComparator()

    @property
    def comparator(self) -> TranscriptComparator:
        return self._comparator

    @property
    def has_reference(self) -> bool:
        return self._reference is not None

    async def run(
        self,
        sequences: List[CommandSequence],
        batch_options: Optional[BatchOptions] = None,
        recording_options: Optional[RecordingOptions] = None,
        comparison_options: Optional[ComparisonOptions] = None,
    ) -> DetailedBatchResult:
        """
        Execute every sequence and aggregate the results.

        Results keep the input order in both modes.
        """
        opts = batch_options or BatchOptions()
        started = time.monotonic()

        logger.info(
            f"Running {len(sequences)} sequences "
            f"({'parallel x' + str(opts.max_concurrency) if opts.parallel else 'sequential'})"
        )

        if opts.parallel:
            results = await self._run_parallel(sequences, opts, recording_options, comparison_options)
        else:
            results = await self._run_sequential(sequences, opts, recording_options, comparison_options)

        batch = self.aggregate_results(sequences, results, _elapsed_ms(started))
        logger.info(
            f"Batch complete: {batch.success_count} succeeded, {batch.failure_count} failed, "
            f"aggregate parity {batch.aggregate_parity_score:.2f}%"
        )
        return batch

    async def _run_sequential(
        self,
        sequences: List[CommandSequence],
        options: BatchOptions,
        recording_options: Optional[RecordingOptions],
        comparison_options: Optional[ComparisonOptions],
    ) -> List[SequenceResult]:
        results: List[SequenceResult] = []
        for sequence in sequences:
            result = await self.execute_sequence(sequence, recording_options, comparison_options)
            results.append(result)
            if options.stop_on_failure and not result.success:
                logger.warning(f"Stopping batch after failure in {sequence.id}")
                break
        return results

    async def _run_parallel(
        self,
        sequences: List[CommandSequence],
        options: BatchOptions,
        recording_options: Optional[RecordingOptions],
        comparison_options: Optional[ComparisonOptions],
    ) -> List[SequenceResult]:
        slots: List[Optional[SequenceResult]] = [None] * len(sequences)
        cursor = 0
        should_stop = False

        async def worker() -> None:
            nonlocal cursor, should_stop
            while cursor < len(sequences) and not should_stop:
                position = cursor
                cursor += 1
                result = await self.execute_sequence(
                    sequences[position], recording_options, comparison_options
                )
                slots[position] = result
                if options.stop_on_failure and not result.success:
                    should_stop = True

        worker_count = min(options.max_concurrency, len(sequences))
        await asyncio.gather(*(worker() for _ in range(worker_count)))

        return [r for r in slots if r is not None]

    async def execute_sequence(
        self,
        sequence: CommandSequence,
        recording_options: Optional[RecordingOptions] = None,
        comparison_options: Optional[ComparisonOptions] = None,
    ) -> SequenceResult:
        """Record, compare and score one sequence. Never raises."""
        started = time.monotonic()

        try:
            candidate = await self._candidate.record(sequence.commands, recording_options)

            if self._reference is None:
                return self._candidate_only_result(sequence, started, REFERENCE_MISSING_NOTE)

            if not await self._reference.is_available():
                return self._candidate_only_result(sequence, started, REFERENCE_UNAVAILABLE_NOTE)

            try:
                reference = await self._reference.record(sequence.commands, recording_options)
            except RecorderUnavailableError as e:
                logger.warning(f"Reference unavailable for {sequence.id}: {e}")
                return self._candidate_only_result(sequence, started, REFERENCE_UNAVAILABLE_NOTE)

            report = self._comparator.compare(reference, candidate, comparison_options)

            return SequenceResult(
                id=sequence.id,
                name=sequence.name,
                parity_score=report.parity_score,
                diff_count=len(report.differences),
                execution_time=_elapsed_ms(started),
                success=True,
                report=report,
            )

        except Exception as e:
            logger.exception(f"Sequence {sequence.id} failed: {e}")
            return SequenceResult(
                id=sequence.id,
                name=sequence.name,
                parity_score=0.0,
                diff_count=0,
                execution_time=_elapsed_ms(started),
                success=False,
                error=str(e),
            )

    def _candidate_only_result(
        self,
        sequence: CommandSequence,
        started: float,
        note: str,
    ) -> SequenceResult:
        return SequenceResult(
            id=sequence.id,
            name=sequence.name,
            parity_score=100.0,
            diff_count=0,
            execution_time=_elapsed_ms(started),
            success=True,
            note=note,
        )

    async def run_candidate_only(
        self,
        sequences: List[CommandSequence],
        batch_options: Optional[BatchOptions] = None,
        recording_options: Optional[RecordingOptions] = None,
    ) -> DetailedBatchResult:
        """Record only the candidate engine, e.g. to smoke-test it without a reference."""
        opts = batch_options or BatchOptions()
        started = time.monotonic()
        results: List[SequenceResult] = []

        for sequence in sequences:
            seq_started = time.monotonic()
            try:
                await self._candidate.record(sequence.commands, recording_options)
                results.append(self._candidate_only_result(sequence, seq_started, CANDIDATE_ONLY_NOTE))
            except Exception as e:
                logger.exception(f"Candidate recording failed for {sequence.id}: {e}")
                results.append(SequenceResult(
                    id=sequence.id,
                    name=sequence.name,
                    parity_score=0.0,
                    diff_count=0,
                    execution_time=_elapsed_ms(seq_started),
                    success=False,
                    error=str(e),
                ))
                if opts.stop_on_failure:
                    break

        return self.aggregate_results(sequences, results, _elapsed_ms(started))

    # --------------------------------------------------------
    # Aggregation
    # --------------------------------------------------------

    @staticmethod
    def aggregate_results(
        sequences: List[CommandSequence],
        results: List[SequenceResult],
        total_execution_time: float,
    ) -> DetailedBatchResult:
        """
        Weighted aggregate over successful results.

        Each result is weighted by its report's command count (1 when there
        is no report). Failed results contribute only to failure_count.
        """
        successful = [r for r in results if r.success]

        total_weight = sum(r.weight for r in successful)
        weighted_sum = sum(r.parity_score * r.weight for r in successful)
        aggregate = weighted_sum / total_weight if total_weight > 0 else 0.0

        # sorted() is stable, so ties keep input order
        ranked = sorted(results, key=lambda r: r.diff_count, reverse=True)
        worst = [r.id for r in ranked[:WORST_SEQUENCE_LIMIT] if r.diff_count > 0]

        return DetailedBatchResult(
            sequences=list(sequences),
            results=results,
            total_differences=sum(r.diff_count for r in results),
            aggregate_parity_score=aggregate,
            success_count=len(successful),
            failure_count=len(results) - len(successful),
            worst_sequences=worst,
            total_execution_time=total_execution_time,
        )


# ============================================================
# FACTORY FUNCTION
# ============================================================

def create_batch_runner(
    candidate_recorder: BaseRecorder,
    reference_recorder: Optional[BaseRecorder] = None,
    comparison_options: Optional[ComparisonOptions] = None,
) -> BatchRunner:
    """
    Create a batch runner.

    Args:
        candidate_recorder: Recorder for the engine under test
        reference_recorder: Recorder for the reference engine, if any
        comparison_options: Default comparator options

    Returns:
        BatchRunner
    """
    return BatchRunner(
        candidate_recorder,
        reference_recorder,
        TranscriptComparator(comparison_options),
    )
