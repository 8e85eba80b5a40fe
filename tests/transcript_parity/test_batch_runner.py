"""
Tests for the Batch Runner.

============================================================
PURPOSE
============================================================
Covers:
1. Per-sequence execution outcomes
2. Weighted aggregation and worst-sequence ranking
3. Sequential vs parallel execution order
4. stop_on_failure
5. Candidate-only runs

============================================================
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest


# ============================================================
# FIXTURES
# ============================================================

def make_transcript(source, commands, outputs):
    from transcript_parity.models import Transcript, TranscriptEntry

    entries = [TranscriptEntry(index=0, command="", output="Welcome", turn_number=0)]
    for i, (command, output) in enumerate(zip(commands, outputs), 1):
        entries.append(TranscriptEntry(index=i, command=command, output=output, turn_number=i))
    return Transcript(id=f"{source}_t", source=source, entries=entries)


def reference_record(commands, options=None):
    return make_transcript("reference", commands, [f"Done: {c}" for c in commands])


def candidate_record(commands, options=None):
    if "crash" in commands:
        raise RuntimeError("candidate engine crashed")
    outputs = [
        "Something else entirely happened here." if c.startswith("bad") else f"Done: {c}"
        for c in commands
    ]
    return make_transcript("candidate", commands, outputs)


def make_sequence(sequence_id, commands):
    from transcript_parity.models import CommandSequence
    return CommandSequence(id=sequence_id, name=sequence_id.title(), commands=commands)


@pytest.fixture
def reference_recorder():
    """Reference recorder mock that echoes commands."""
    recorder = MagicMock()
    recorder.record = AsyncMock(side_effect=reference_record)
    recorder.is_available = AsyncMock(return_value=True)
    return recorder


@pytest.fixture
def candidate_recorder():
    """Candidate recorder mock that diverges on commands starting with 'bad'."""
    recorder = MagicMock()
    recorder.record = AsyncMock(side_effect=candidate_record)
    recorder.is_available = AsyncMock(return_value=True)
    return recorder


@pytest.fixture
def runner(candidate_recorder, reference_recorder):
    from transcript_parity.batch_runner import create_batch_runner
    return create_batch_runner(candidate_recorder, reference_recorder)


@pytest.fixture
def sequences():
    return [
        make_sequence("opening", ["open mailbox", "take leaflet", "read leaflet"]),
        make_sequence("broken", ["bad command"]),
        make_sequence("mixed", ["north", "bad one", "bad two"]),
    ]


# ============================================================
# TEST: Sequence Execution
# ============================================================

class TestExecuteSequence:
    """Tests for single-sequence outcomes."""

    @pytest.mark.asyncio
    async def test_perfect_sequence(self, runner, sequences):
        result = await runner.execute_sequence(sequences[0])

        assert result.success
        assert result.parity_score == 100.0
        assert result.diff_count == 0
        assert result.report.total_commands == 4
        assert result.execution_time >= 0

    @pytest.mark.asyncio
    async def test_divergent_sequence(self, runner, sequences):
        result = await runner.execute_sequence(sequences[1])

        assert result.success
        assert result.diff_count == 1
        assert result.parity_score == pytest.approx(50.0)

    @pytest.mark.asyncio
    async def test_no_reference_is_candidate_only(self, candidate_recorder, sequences):
        from transcript_parity.batch_runner import REFERENCE_MISSING_NOTE, BatchRunner

        result = await BatchRunner(candidate_recorder).execute_sequence(sequences[1])

        assert result.success
        assert result.parity_score == 100.0
        assert result.note == REFERENCE_MISSING_NOTE
        assert result.report is None

    @pytest.mark.asyncio
    async def test_unavailable_reference(self, runner, reference_recorder, sequences):
        from transcript_parity.batch_runner import REFERENCE_UNAVAILABLE_NOTE

        reference_recorder.is_available.return_value = False
        result = await runner.execute_sequence(sequences[1])

        assert result.success
        assert result.parity_score == 100.0
        assert result.note == REFERENCE_UNAVAILABLE_NOTE
        reference_recorder.record.assert_not_called()

    @pytest.mark.asyncio
    async def test_reference_raises_unavailable(self, runner, reference_recorder, sequences):
        from transcript_parity.batch_runner import REFERENCE_UNAVAILABLE_NOTE
        from transcript_parity.exceptions import RecorderUnavailableError

        reference_recorder.record.side_effect = RecorderUnavailableError("gone", source="reference")
        result = await runner.execute_sequence(sequences[0])

        assert result.success
        assert result.parity_score == 100.0
        assert result.note == REFERENCE_UNAVAILABLE_NOTE

    @pytest.mark.asyncio
    async def test_non_executable_reference_interpreter(self, candidate_recorder, tmp_path):
        from transcript_parity.batch_runner import REFERENCE_UNAVAILABLE_NOTE, BatchRunner
        from transcript_parity.recorders import ProcessRecorder

        interpreter = tmp_path / "dfrotz"
        interpreter.write_text("not a program")
        interpreter.chmod(0o644)
        game = tmp_path / "zork1.z3"
        game.write_bytes(b"\x03")

        runner = BatchRunner(candidate_recorder, ProcessRecorder(str(interpreter), str(game)))
        batch = await runner.run([make_sequence("lamp", ["take lamp"])])

        result = batch.results[0]
        assert result.success
        assert result.parity_score == 100.0
        assert result.note == REFERENCE_UNAVAILABLE_NOTE
        assert batch.failure_count == 0

    @pytest.mark.asyncio
    async def test_recorder_exception_contained(self, runner):
        result = await runner.execute_sequence(make_sequence("crashy", ["look", "crash"]))

        assert not result.success
        assert result.parity_score == 0.0
        assert result.error == "candidate engine crashed"

    @pytest.mark.asyncio
    async def test_options_forwarded(self, runner, candidate_recorder, reference_recorder, sequences):
        from transcript_parity.models import RecordingOptions

        options = RecordingOptions(seed=99)
        await runner.execute_sequence(sequences[0], options)

        candidate_recorder.record.assert_awaited_once_with(sequences[0].commands, options)
        reference_recorder.record.assert_awaited_once_with(sequences[0].commands, options)


# ============================================================
# TEST: Batch Aggregation
# ============================================================

class TestBatchRun:
    """Tests for batch runs and aggregation."""

    @pytest.mark.asyncio
    async def test_weighted_aggregate(self, runner, sequences):
        result = await runner.run(sequences)

        # opening 4/4, broken 1/2, mixed 2/4 entries matched
        assert result.success_count == 3
        assert result.failure_count == 0
        assert result.total_differences == 3
        assert result.aggregate_parity_score == pytest.approx((100 * 4 + 50 * 2 + 50 * 4) / 10)

    @pytest.mark.asyncio
    async def test_worst_sequences(self, runner, sequences):
        result = await runner.run(sequences)

        assert result.worst_sequences == ["mixed", "broken"]

    @pytest.mark.asyncio
    async def test_results_keep_input_order(self, runner, sequences):
        result = await runner.run(sequences)

        assert [r.id for r in result.results] == ["opening", "broken", "mixed"]
        assert result.get_result("broken").diff_count == 1
        assert result.get_result("missing") is None

    @pytest.mark.asyncio
    async def test_failed_sequences_excluded_from_aggregate(self, runner, sequences):
        batch = sequences[:1] + [make_sequence("crashy", ["crash"])]

        result = await runner.run(batch)

        assert result.success_count == 1
        assert result.failure_count == 1
        assert result.aggregate_parity_score == 100.0

    @pytest.mark.asyncio
    async def test_stop_on_failure_sequential(self, runner, sequences):
        from transcript_parity.models import BatchOptions

        batch = [sequences[0], make_sequence("crashy", ["crash"]), sequences[1]]
        result = await runner.run(batch, BatchOptions(stop_on_failure=True))

        assert [r.id for r in result.results] == ["opening", "crashy"]
        assert len(result.sequences) == 3

    @pytest.mark.asyncio
    async def test_parallel_preserves_order(self, reference_recorder, sequences):
        from transcript_parity.batch_runner import BatchRunner
        from transcript_parity.models import BatchOptions

        async def slow_first(commands, options=None):
            # Earlier sequences finish last
            await asyncio.sleep(0.01 * (4 - len(commands)))
            return candidate_record(commands, options)

        candidate = MagicMock()
        candidate.record = AsyncMock(side_effect=slow_first)

        runner = BatchRunner(candidate, reference_recorder)
        result = await runner.run(sequences, BatchOptions(parallel=True, max_concurrency=3))

        assert [r.id for r in result.results] == ["opening", "broken", "mixed"]
        assert result.total_differences == 3

    @pytest.mark.asyncio
    async def test_parallel_concurrency_limit(self, reference_recorder):
        from transcript_parity.batch_runner import BatchRunner
        from transcript_parity.models import BatchOptions

        active = 0
        peak = 0

        async def tracked(commands, options=None):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return candidate_record(commands, options)

        candidate = MagicMock()
        candidate.record = AsyncMock(side_effect=tracked)

        batch = [make_sequence(f"s{i}", ["look"]) for i in range(6)]
        result = await BatchRunner(candidate, reference_recorder).run(
            batch, BatchOptions(parallel=True, max_concurrency=2)
        )

        assert len(result.results) == 6
        assert peak <= 2

    @pytest.mark.asyncio
    async def test_empty_batch(self, runner):
        result = await runner.run([])

        assert result.results == []
        assert result.aggregate_parity_score == 0.0
        assert result.worst_sequences == []


# ============================================================
# TEST: Aggregation Helper & Candidate-Only
# ============================================================

class TestAggregateResults:
    """Tests for the static aggregation helper."""

    def test_worst_limited_to_five_and_excludes_zero(self):
        from transcript_parity.batch_runner import BatchRunner
        from transcript_parity.models import SequenceResult

        results = [
            SequenceResult(id=f"s{i}", name=f"s{i}", parity_score=90.0, diff_count=count,
                           execution_time=1.0, success=True)
            for i, count in enumerate([1, 7, 0, 3, 3, 5, 2])
        ]

        batch = BatchRunner.aggregate_results([], results, 10.0)

        assert batch.worst_sequences == ["s1", "s5", "s3", "s4", "s6"]
        assert batch.total_differences == 21
        assert batch.aggregate_parity_score == pytest.approx(90.0)


class TestCandidateOnly:
    """Tests for candidate-only recording."""

    @pytest.mark.asyncio
    async def test_candidate_only(self, runner, reference_recorder, sequences):
        from transcript_parity.batch_runner import CANDIDATE_ONLY_NOTE

        result = await runner.run_candidate_only(sequences)

        assert result.success_count == 3
        assert all(r.note == CANDIDATE_ONLY_NOTE for r in result.results)
        reference_recorder.record.assert_not_called()

    @pytest.mark.asyncio
    async def test_candidate_only_failure(self, runner):
        result = await runner.run_candidate_only([make_sequence("crashy", ["crash"])])

        assert result.failure_count == 1
        assert result.results[0].error == "candidate engine crashed"
