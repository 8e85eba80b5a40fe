"""
Tests for the Transcript Parity CLI.

============================================================
PURPOSE
============================================================
Covers:
1. Argument parsing and validation
2. Configuration building (config source + flag overrides)
3. Recorder selection
4. End-to-end compare, batch and certify runs over stored
   transcripts

============================================================
"""

import json

import pytest


# ============================================================
# FIXTURES
# ============================================================

def make_transcript(source, commands, outputs):
    from transcript_parity.models import Transcript, TranscriptEntry

    entries = [TranscriptEntry(index=0, command="", output="West of House", turn_number=0)]
    for i, (command, output) in enumerate(zip(commands, outputs), 1):
        entries.append(TranscriptEntry(index=i, command=command, output=output, turn_number=i))
    return Transcript(id=f"{source}_opening", source=source, entries=entries)


COMMANDS = ["open mailbox", "take leaflet"]


@pytest.fixture
def clean_env(monkeypatch):
    """Environment without PARITY_* variables and no .env pickup."""
    import os

    for name in list(os.environ):
        if name.startswith("PARITY_"):
            monkeypatch.delenv(name)
    monkeypatch.setattr("transcript_parity.cli.load_dotenv", lambda *a, **k: False)
    return monkeypatch


@pytest.fixture
def transcript_files(tmp_path):
    """Reference, identical candidate and diverging candidate JSON files."""
    from transcript_parity.recorders import save_transcript

    reference = save_transcript(
        make_transcript("reference", COMMANDS, ["Opening the mailbox reveals a leaflet.", "Taken."]),
        tmp_path / "reference.json",
    )
    same = save_transcript(
        make_transcript("candidate", COMMANDS, ["Opening the mailbox reveals a leaflet.", "Taken."]),
        tmp_path / "same.json",
    )
    different = save_transcript(
        make_transcript("candidate", COMMANDS, ["The mailbox is locked.", "Taken."]),
        tmp_path / "different.json",
    )
    return reference, same, different


@pytest.fixture
def stored_engines(tmp_path):
    """Stored transcript directories for both engines plus a sequence file."""
    from transcript_parity.recorders import save_transcript

    outputs = ["Opening the mailbox reveals a leaflet.", "Taken."]
    save_transcript(make_transcript("reference", COMMANDS, outputs), tmp_path / "ref" / "opening.json")
    save_transcript(make_transcript("candidate", COMMANDS, outputs), tmp_path / "cand" / "opening.json")

    sequences = tmp_path / "sequences"
    sequences.mkdir()
    (sequences / "opening.txt").write_text("#!name: Opening\nopen mailbox\ntake leaflet\n")
    return tmp_path


# ============================================================
# TEST: Parsing & Validation
# ============================================================

class TestArguments:
    """Tests for argument parsing and validation."""

    def test_defaults(self):
        from transcript_parity.cli import create_parser

        args = create_parser().parse_args([])

        assert args.mode == "batch"
        assert args.format is None
        assert not args.parallel
        assert args.sequences is None

    def test_compare_requires_both_transcripts(self):
        from transcript_parity.cli import create_parser, validate_args

        errors = validate_args(create_parser().parse_args(["--mode", "compare"]))

        assert "--reference is required for compare mode" in errors
        assert "--candidate is required for compare mode" in errors

    def test_sequence_modes_require_sequences(self):
        from transcript_parity.cli import create_parser, validate_args

        errors = validate_args(create_parser().parse_args(["--mode", "certify"]))

        assert errors == ["--sequences is required for certify mode"]

    def test_analyze_rejects_html(self):
        from transcript_parity.cli import create_parser, validate_args

        args = create_parser().parse_args([
            "-m", "compare", "--reference", "a.json", "--candidate", "b.json",
            "--analyze", "--format", "html",
        ])

        assert validate_args(args) == ["--analyze does not support html output"]

    @pytest.mark.parametrize("flags,message", [
        (["--tolerance", "1.5"], "--tolerance must be between 0 and 1"),
        (["--max-concurrency", "0"], "--max-concurrency must be at least 1"),
        (["--threshold", "101"], "--threshold must be between 0 and 100"),
        (["--seeds", "1,x"], "Invalid --seeds value: 1,x"),
        (["--seeds", ","], "--seeds must list at least one seed"),
    ])
    def test_range_errors(self, flags, message):
        from transcript_parity.cli import create_parser, validate_args

        args = create_parser().parse_args(["--sequences", "seqs"] + flags)

        assert validate_args(args) == [message]

    def test_unknown_format_rejected_by_parser(self):
        from transcript_parity.cli import create_parser

        with pytest.raises(SystemExit):
            create_parser().parse_args(["--format", "pdf"])

    def test_parse_seeds(self):
        from transcript_parity.cli import parse_seeds

        assert parse_seeds("42, 123,,7") == [42, 123, 7]


# ============================================================
# TEST: Configuration
# ============================================================

class TestBuildConfig:
    """Tests for configuration building."""

    def test_flags_override_env(self, clean_env):
        from transcript_parity.cli import build_config, create_parser

        clean_env.setenv("PARITY_MAX_CONCURRENCY", "3")
        clean_env.setenv("PARITY_REPORT_FORMAT", "markdown")

        args = create_parser().parse_args([
            "--sequences", "seqs",
            "--parallel",
            "--tolerance", "0.8",
            "--seeds", "1,2",
            "--threshold", "90",
            "--baseline", "baseline.json",
            "--candidate-transcripts", "cand",
            "--output", "out",
            "--log-level", "DEBUG",
        ])
        config = build_config(args)

        assert config.batch.parallel
        assert config.batch.max_concurrency == 3
        assert config.comparison.tolerance_threshold == 0.8
        assert config.certification.seeds == [1, 2]
        assert config.certification.certification_threshold == 90.0
        assert config.certification.baseline_file == "baseline.json"
        assert config.candidate.transcripts_dir == "cand"
        assert config.report_format == "markdown"
        assert config.output_dir == "out"
        assert config.log_level == "DEBUG"

    def test_yaml_config_used_when_given(self, clean_env, tmp_path):
        from transcript_parity.cli import build_config, create_parser

        clean_env.setenv("PARITY_OUTPUT_DIR", "ignored")
        path = tmp_path / "parity.yaml"
        path.write_text("output_dir: from_yaml\nbatch:\n  max_concurrency: 6\n")

        config = build_config(create_parser().parse_args(["--config", str(path), "-s", "x"]))

        assert config.output_dir == "from_yaml"
        assert config.batch.max_concurrency == 6

    def test_unknown_configured_format(self, clean_env):
        from transcript_parity.cli import build_config, create_parser
        from transcript_parity.exceptions import ConfigurationError

        clean_env.setenv("PARITY_REPORT_FORMAT", "pdf")

        with pytest.raises(ConfigurationError, match="Unsupported report format"):
            build_config(create_parser().parse_args(["-s", "x"]))

    def test_invalid_config_file_exit_two(self, clean_env, tmp_path, capsys):
        from transcript_parity.cli import EXIT_USAGE, main

        path = tmp_path / "parity.yaml"
        path.write_text("batch:\n  max_concurrency: 0\n")

        code = main(["--config", str(path), "-s", "x"])

        assert code == EXIT_USAGE
        assert "Invalid config" in capsys.readouterr().err

    def test_build_recorder(self):
        from transcript_parity.cli import build_recorder
        from transcript_parity.config import RecorderSettings
        from transcript_parity.recorders import ProcessRecorder, TranscriptFileRecorder

        stored = build_recorder(
            RecorderSettings(transcripts_dir="t", interpreter_path="dfrotz", game_file_path="z.z3"),
            "reference",
        )
        process = build_recorder(RecorderSettings(interpreter_path="dfrotz", game_file_path="z.z3"), "candidate")

        assert isinstance(stored, TranscriptFileRecorder)
        assert stored.source_name == "reference"
        assert isinstance(process, ProcessRecorder)
        assert process.source_name == "candidate"
        assert build_recorder(RecorderSettings(), "candidate") is None

    def test_load_baseline(self, tmp_path):
        from transcript_parity.cli import load_baseline
        from transcript_parity.exceptions import ConfigurationError

        good = tmp_path / "baseline.json"
        good.write_text(json.dumps({"opening": 100, "cellar": 87.5}))
        listing = tmp_path / "list.json"
        listing.write_text("[1, 2]")

        assert load_baseline(str(good)) == {"opening": 100.0, "cellar": 87.5}
        with pytest.raises(ConfigurationError, match="JSON object"):
            load_baseline(str(listing))
        with pytest.raises(ConfigurationError, match="Cannot read baseline"):
            load_baseline(str(tmp_path / "missing.json"))


# ============================================================
# TEST: Compare Mode
# ============================================================

class TestCompareMode:
    """End-to-end runs of compare mode."""

    def test_identical_transcripts_exit_zero(self, clean_env, transcript_files, capsys):
        from transcript_parity.cli import EXIT_OK, main

        reference, same, _ = transcript_files

        code = main(["-m", "compare", "--reference", str(reference), "--candidate", str(same)])

        captured = capsys.readouterr()
        assert code == EXIT_OK
        assert "TRANSCRIPT COMPARISON REPORT" in captured.out
        assert "Parity Score:    100.00%" in captured.out
        assert "TRANSCRIPT PARITY VALIDATION" in captured.err
        assert "TRANSCRIPT PARITY VALIDATION" not in captured.out

    def test_differences_exit_one(self, clean_env, transcript_files, capsys):
        from transcript_parity.cli import EXIT_FAILED, main

        reference, _, different = transcript_files

        code = main([
            "-m", "compare", "--reference", str(reference), "--candidate", str(different),
            "--format", "json",
        ])

        data = json.loads(capsys.readouterr().out)
        assert code == EXIT_FAILED
        assert len(data["differences"]) == 1
        assert data["differences"][0]["command"] == "open mailbox"

    def test_analyze_json_combines_documents(self, clean_env, transcript_files, capsys):
        from transcript_parity.cli import main

        reference, _, different = transcript_files

        main([
            "-m", "compare", "--reference", str(reference), "--candidate", str(different),
            "--analyze", "--format", "json",
        ])

        data = json.loads(capsys.readouterr().out)
        assert set(data) == {"report", "analysis"}
        assert data["analysis"]["sequence_id"] == "different"

    def test_analyze_markdown_appends_analysis(self, clean_env, transcript_files, capsys):
        from transcript_parity.cli import main

        reference, _, different = transcript_files

        main([
            "-m", "compare", "--reference", str(reference), "--candidate", str(different),
            "--analyze", "--format", "markdown",
        ])

        out = capsys.readouterr().out
        assert "# Transcript Comparison Report" in out
        assert "# Deep Analysis: different" in out

    def test_output_directory(self, clean_env, transcript_files, tmp_path, capsys):
        from transcript_parity.cli import main

        reference, same, _ = transcript_files

        main([
            "-m", "compare", "--reference", str(reference), "--candidate", str(same),
            "--format", "markdown", "--output", str(tmp_path / "reports"),
        ])

        path = tmp_path / "reports" / "compare_same.md"
        assert path.exists()
        assert f"Report written to {path}" in capsys.readouterr().out

    def test_missing_transcript_exit_one(self, clean_env, tmp_path, transcript_files):
        from transcript_parity.cli import EXIT_FAILED, main

        reference, _, _ = transcript_files

        code = main(["-m", "compare", "--reference", str(reference), "--candidate", str(tmp_path / "nope.json")])

        assert code == EXIT_FAILED

    def test_usage_errors_exit_two(self, clean_env, capsys):
        from transcript_parity.cli import EXIT_USAGE, main

        code = main(["-m", "compare"])

        assert code == EXIT_USAGE
        assert "Error: --reference is required for compare mode" in capsys.readouterr().err


# ============================================================
# TEST: Batch & Certify Modes
# ============================================================

class TestSequenceModes:
    """End-to-end runs over stored engine transcripts."""

    def test_batch_over_stored_transcripts(self, clean_env, stored_engines, capsys):
        from transcript_parity.cli import EXIT_OK, main

        code = main([
            "-m", "batch",
            "-s", str(stored_engines / "sequences"),
            "--reference-transcripts", str(stored_engines / "ref"),
            "--candidate-transcripts", str(stored_engines / "cand"),
        ])

        out = capsys.readouterr().out
        assert code == EXIT_OK
        assert "BATCH COMPARISON REPORT" in out
        assert "✓ Opening" in out

    def test_batch_export(self, clean_env, stored_engines):
        from transcript_parity.cli import main

        main([
            "-m", "batch",
            "-s", str(stored_engines / "sequences"),
            "--reference-transcripts", str(stored_engines / "ref"),
            "--candidate-transcripts", str(stored_engines / "cand"),
            "--format", "json",
            "--output", str(stored_engines / "out"),
        ])

        data = json.loads((stored_engines / "out" / "batch_report.json").read_text(encoding="utf-8"))
        assert data["aggregate_parity_score"] == 100.0

    def test_batch_without_candidate_is_usage_error(self, clean_env, stored_engines, capsys):
        from transcript_parity.cli import EXIT_USAGE, main

        code = main(["-m", "batch", "-s", str(stored_engines / "sequences")])

        assert code == EXIT_USAGE
        assert "Candidate recorder is not configured" in capsys.readouterr().err

    def test_certify_writes_document(self, clean_env, stored_engines, capsys):
        from transcript_parity.cli import EXIT_OK, main

        baseline = stored_engines / "baseline.json"
        baseline.write_text(json.dumps({"opening": 100.0}))

        code = main([
            "-m", "certify",
            "-s", str(stored_engines / "sequences"),
            "--reference-transcripts", str(stored_engines / "ref"),
            "--candidate-transcripts", str(stored_engines / "cand"),
            "--seeds", "42,7",
            "--baseline", str(baseline),
            "--output", str(stored_engines / "certs"),
        ])

        document = (stored_engines / "certs" / "parity_certification.md").read_text(encoding="utf-8")
        assert code == EXIT_OK
        assert "PERFECT PARITY ACHIEVED" in document
        assert "**Total Seeds Tested:** 2" in document
        assert "Certification written to" in capsys.readouterr().out

    def test_certify_with_bad_baseline(self, clean_env, stored_engines):
        from transcript_parity.cli import EXIT_USAGE, main

        code = main([
            "-m", "certify",
            "-s", str(stored_engines / "sequences"),
            "--candidate-transcripts", str(stored_engines / "cand"),
            "--baseline", str(stored_engines / "missing.json"),
        ])

        assert code == EXIT_USAGE
