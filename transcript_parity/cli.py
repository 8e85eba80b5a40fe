"""
Transcript Parity - CLI.

============================================================
RESPONSIBILITY
============================================================
Command-line interface for parity validation.

- Provides argparse-based CLI
- Supports compare, batch and certify modes
- Loads configuration from YAML, environment and flags
- Entry point for the application

============================================================
USAGE
============================================================
python -m transcript_parity.cli --mode compare --reference ref.json --candidate cand.json
python -m transcript_parity.cli --mode batch --sequences sequences/ --format html
python -m transcript_parity.cli --mode certify --sequences sequences/ --seeds 42,123

============================================================
EXIT CODES
============================================================
0 - no differences / all sequences ran / certified
1 - differences, failed sequences or not certified
2 - invalid arguments or configuration

============================================================
"""

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import replace
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import load_dotenv

from . import __version__
from .batch_runner import BatchRunner
from .comparators import TranscriptComparator
from .config import ParityConfig, RecorderSettings
from .deep_analyzer import create_deep_analyzer
from .exceptions import ConfigurationError, ReportFormatError, TranscriptParityError
from .recorders import BaseRecorder, ProcessRecorder, TranscriptFileRecorder, load_transcript
from .reporter import (
    CertificationGenerator,
    ReportExporter,
    ReportFormat,
    ReportGenerator,
    parse_format,
)
from .sequence_loader import SequenceLoader
from .validator import PerfectParityValidator, ValidationOptions


logger = logging.getLogger(__name__)


EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2


class RunMode(Enum):
    """CLI run modes."""
    COMPARE = "compare"
    BATCH = "batch"
    CERTIFY = "certify"


# ============================================================
# LOGGING SETUP
# ============================================================

def setup_logging(level: str = "INFO") -> None:
    """Configure root logging for CLI runs."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


# ============================================================
# CLI ARGUMENT PARSER
# ============================================================

def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="transcript-parity",
        description="Behavioral parity validation between two interactive-fiction engines",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Run Modes:
  compare   - Compare two stored transcript JSON files
  batch     - Replay command sequences against both engines and compare
  certify   - Multi-seed perfect-parity validation with a certification document

Examples:
  %(prog)s --mode compare --reference ref.json --candidate cand.json
  %(prog)s --mode compare --reference ref.json --candidate cand.json --analyze
  %(prog)s --mode batch --sequences sequences/ --parallel --format html
  %(prog)s --mode certify --sequences sequences/ --baseline baseline.json
        """
    )

    # --------------------------------------------------------
    # Mode Selection
    # --------------------------------------------------------
    parser.add_argument(
        "--mode", "-m",
        type=str,
        choices=[m.value for m in RunMode],
        default="batch",
        help="Run mode (default: batch)",
    )

    parser.add_argument(
        "--config", "-c",
        type=str,
        metavar="PATH",
        help="YAML config file (default: PARITY_* environment variables)",
    )

    # --------------------------------------------------------
    # Compare Options
    # --------------------------------------------------------
    compare_group = parser.add_argument_group("Compare Options")

    compare_group.add_argument(
        "--reference",
        type=str,
        metavar="PATH",
        help="Reference transcript JSON (required for compare mode)",
    )

    compare_group.add_argument(
        "--candidate",
        type=str,
        metavar="PATH",
        help="Candidate transcript JSON (required for compare mode)",
    )

    compare_group.add_argument(
        "--analyze",
        action="store_true",
        help="Append a deep root-cause analysis to the report",
    )

    compare_group.add_argument(
        "--tolerance",
        type=float,
        metavar="RATIO",
        help="Similarity at or above which outputs count as close matches",
    )

    # --------------------------------------------------------
    # Sequence Options
    # --------------------------------------------------------
    sequence_group = parser.add_argument_group("Sequence Options")

    sequence_group.add_argument(
        "--sequences", "-s",
        type=str,
        nargs="+",
        metavar="PATH",
        help="Sequence files or directories (required for batch and certify modes)",
    )

    sequence_group.add_argument(
        "--reference-transcripts",
        type=str,
        metavar="DIR",
        help="Directory of stored reference transcripts",
    )

    sequence_group.add_argument(
        "--candidate-transcripts",
        type=str,
        metavar="DIR",
        help="Directory of stored candidate transcripts",
    )

    # --------------------------------------------------------
    # Execution Options
    # --------------------------------------------------------
    execution_group = parser.add_argument_group("Execution Options")

    execution_group.add_argument(
        "--parallel",
        action="store_true",
        help="Run sequences concurrently",
    )

    execution_group.add_argument(
        "--max-concurrency",
        type=int,
        metavar="N",
        help="Maximum concurrent sequences in parallel mode",
    )

    execution_group.add_argument(
        "--stop-on-failure",
        action="store_true",
        help="Stop the batch after the first failed sequence",
    )

    # --------------------------------------------------------
    # Certification Options
    # --------------------------------------------------------
    cert_group = parser.add_argument_group("Certification Options")

    cert_group.add_argument(
        "--seeds",
        type=str,
        metavar="LIST",
        help="Comma-separated seeds; the first is the baseline seed",
    )

    cert_group.add_argument(
        "--threshold",
        type=float,
        metavar="PERCENT",
        help="Per-sequence parity required to pass (default: 100)",
    )

    cert_group.add_argument(
        "--baseline",
        type=str,
        metavar="PATH",
        help="JSON map of sequence id to previous parity score",
    )

    cert_group.add_argument(
        "--skip-multi-seed",
        action="store_true",
        help="Only run the baseline seed",
    )

    # --------------------------------------------------------
    # Output Options
    # --------------------------------------------------------
    output_group = parser.add_argument_group("Output Options")

    output_group.add_argument(
        "--format", "-f",
        type=str,
        choices=[f.value for f in ReportFormat],
        help="Report format (default: text)",
    )

    output_group.add_argument(
        "--output", "-o",
        type=str,
        metavar="DIR",
        help="Write reports to this directory instead of stdout",
    )

    # --------------------------------------------------------
    # Logging Options
    # --------------------------------------------------------
    logging_group = parser.add_argument_group("Logging Options")

    logging_group.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO)",
    )

    # --------------------------------------------------------
    # Version/Info
    # --------------------------------------------------------
    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    return parser


# ============================================================
# CLI VALIDATION
# ============================================================

def parse_seeds(value: str) -> List[int]:
    """Parse a comma-separated seed list."""
    return [int(s) for s in value.split(",") if s.strip()]


def validate_args(args: argparse.Namespace) -> List[str]:
    """
    Validate CLI arguments.

    Args:
        args: Parsed arguments

    Returns:
        List of validation errors
    """
    errors = []

    mode = RunMode(args.mode)

    if mode == RunMode.COMPARE:
        if not args.reference:
            errors.append("--reference is required for compare mode")
        if not args.candidate:
            errors.append("--candidate is required for compare mode")
        if args.analyze and args.format == ReportFormat.HTML.value:
            errors.append("--analyze does not support html output")
    elif not args.sequences:
        errors.append(f"--sequences is required for {mode.value} mode")

    if args.tolerance is not None and not 0.0 <= args.tolerance <= 1.0:
        errors.append("--tolerance must be between 0 and 1")

    if args.max_concurrency is not None and args.max_concurrency < 1:
        errors.append("--max-concurrency must be at least 1")

    if args.threshold is not None and not 0.0 <= args.threshold <= 100.0:
        errors.append("--threshold must be between 0 and 100")

    if args.seeds is not None:
        try:
            if not parse_seeds(args.seeds):
                errors.append("--seeds must list at least one seed")
        except ValueError:
            errors.append(f"Invalid --seeds value: {args.seeds}")

    return errors


# ============================================================
# CLI CONFIGURATION BUILDER
# ============================================================

def build_config(args: argparse.Namespace) -> ParityConfig:
    """
    Build parity configuration.

    The YAML file is used when --config is given, otherwise PARITY_*
    environment variables. Explicit flags override either source.

    Args:
        args: Parsed arguments

    Returns:
        ParityConfig instance
    """
    config = ParityConfig.from_yaml(args.config) if args.config else ParityConfig.from_env()

    try:
        if args.tolerance is not None:
            config.comparison = replace(config.comparison, tolerance_threshold=args.tolerance)

        batch = {}
        if args.parallel:
            batch["parallel"] = True
        if args.max_concurrency is not None:
            batch["max_concurrency"] = args.max_concurrency
        if args.stop_on_failure:
            batch["stop_on_failure"] = True
        if batch:
            config.batch = replace(config.batch, **batch)

        if args.seeds is not None:
            config.certification = replace(config.certification, seeds=parse_seeds(args.seeds))
        if args.threshold is not None:
            config.certification = replace(config.certification, certification_threshold=args.threshold)
        if args.baseline:
            config.certification.baseline_file = args.baseline
    except ValueError as e:
        raise ConfigurationError(str(e))

    if args.reference_transcripts:
        config.reference.transcripts_dir = args.reference_transcripts
    if args.candidate_transcripts:
        config.candidate.transcripts_dir = args.candidate_transcripts

    if args.format:
        config.report_format = args.format
    try:
        parse_format(config.report_format)
    except ReportFormatError as e:
        raise ConfigurationError(str(e))
    if args.output:
        config.output_dir = args.output
    if args.log_level:
        config.log_level = args.log_level

    return config


def build_recorder(settings: RecorderSettings, source_name: str) -> Optional[BaseRecorder]:
    """
    Build a recorder from settings.

    Stored transcripts win over an interpreter process when both are set.
    Returns None when the settings describe neither.
    """
    if settings.transcripts_dir:
        return TranscriptFileRecorder(settings.transcripts_dir, source_name=source_name)
    if settings.interpreter_path and settings.game_file_path:
        return ProcessRecorder(
            interpreter_path=settings.interpreter_path,
            game_file_path=settings.game_file_path,
            interpreter_args=settings.interpreter_args,
            seed_flag=settings.seed_flag,
            timeout_seconds=settings.timeout_seconds,
            source_name=source_name,
        )
    return None


def load_baseline(path: str) -> Dict[str, float]:
    """Read a JSON map of sequence id to parity score."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise ConfigurationError(f"Cannot read baseline file {path}: {e}")

    if not isinstance(data, dict):
        raise ConfigurationError(f"Baseline file must contain a JSON object: {path}")
    return {str(k): float(v) for k, v in data.items()}


def emit(content: str, output_dir: Optional[str], name: str, extension: str) -> None:
    """Print a rendered report, or write it under output_dir when given."""
    if output_dir:
        path = Path(output_dir) / f"{name}.{extension}"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        print(f"Report written to {path}")
    else:
        print(content)


# ============================================================
# MODE HANDLERS
# ============================================================

def run_compare(args: argparse.Namespace, config: ParityConfig) -> int:
    """Compare two stored transcripts."""
    reference = load_transcript(args.reference)
    candidate = load_transcript(args.candidate)

    report = TranscriptComparator(config.comparison).compare(reference, candidate)
    generator = ReportGenerator()
    content = generator.generate(report, config.report_format)

    if args.analyze:
        analysis = create_deep_analyzer().analyze_report(
            report, reference, candidate, Path(args.candidate).stem
        )
        if parse_format(config.report_format) == ReportFormat.JSON:
            content = json.dumps(
                {"report": report.to_dict(), "analysis": analysis.to_dict()},
                indent=2,
                ensure_ascii=False,
            )
        else:
            content += "\n\n" + generator.generate_analysis(analysis, config.report_format)

    emit(content, args.output, f"compare_{Path(args.candidate).stem}",
         parse_format(config.report_format).extension)
    return EXIT_OK if report.is_perfect else EXIT_FAILED


async def run_batch(args: argparse.Namespace, config: ParityConfig) -> int:
    """Replay sequences against both engines and export a batch report."""
    runner = _build_runner(config)
    sequences = SequenceLoader().load_many(args.sequences)

    result = await runner.run(sequences, config.batch, comparison_options=config.comparison)

    if args.output:
        path = ReportExporter(config.output_dir).export_batch(result, "batch_report", config.report_format)
        print(f"Report written to {path}")
    else:
        print(ReportGenerator().generate_batch(result, config.report_format))

    return EXIT_OK if result.failure_count == 0 and result.total_differences == 0 else EXIT_FAILED


async def run_certify(args: argparse.Namespace, config: ParityConfig) -> int:
    """Run perfect-parity validation and render the certification document."""
    runner = _build_runner(config)
    baseline = (
        load_baseline(config.certification.baseline_file)
        if config.certification.baseline_file else None
    )

    options = ValidationOptions(
        seeds=list(config.certification.seeds),
        certification_threshold=config.certification.certification_threshold,
        baseline_scores=baseline,
        skip_multi_seed=args.skip_multi_seed,
        batch_options=config.batch,
    )

    validation = await PerfectParityValidator(runner).validate_perfect_parity(args.sequences, options)
    generator = CertificationGenerator()
    document = generator.generate(validation)

    if args.output:
        path = generator.write_to_file(
            document, Path(config.output_dir) / "parity_certification.md"
        )
        print(f"Certification written to {path}")
    else:
        print(document)

    return EXIT_OK if validation.certification.certified else EXIT_FAILED


def _build_runner(config: ParityConfig) -> BatchRunner:
    candidate = build_recorder(config.candidate, "candidate")
    if candidate is None:
        raise ConfigurationError(
            "Candidate recorder is not configured "
            "(set --candidate-transcripts or PARITY_CANDIDATE_* variables)"
        )
    reference = build_recorder(config.reference, "reference")
    if reference is None:
        logger.warning("Reference recorder is not configured; running candidate only")
    return BatchRunner(candidate, reference, TranscriptComparator(config.comparison))


# ============================================================
# MAIN ENTRY POINT
# ============================================================

async def async_main(args: argparse.Namespace, config: ParityConfig) -> int:
    """
    Async main entry point.

    Args:
        args: Parsed arguments
        config: Resolved configuration

    Returns:
        Exit code
    """
    mode = RunMode(args.mode)

    try:
        if mode == RunMode.COMPARE:
            return run_compare(args, config)
        if mode == RunMode.BATCH:
            return await run_batch(args, config)
        return await run_certify(args, config)

    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_USAGE
    except (TranscriptParityError, OSError, ValueError) as e:
        logger.error(f"{mode.value} failed: {e}", exc_info=True)
        return EXIT_FAILED


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Args:
        argv: Command line arguments (default: sys.argv[1:])

    Returns:
        Exit code
    """
    load_dotenv()

    parser = create_parser()
    args = parser.parse_args(argv)

    # Validate arguments
    errors = validate_args(args)
    if errors:
        for error in errors:
            print(f"Error: {error}", file=sys.stderr)
        return EXIT_USAGE

    try:
        config = build_config(args)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_USAGE

    setup_logging(config.log_level)
    print_banner(args, config)

    try:
        return asyncio.run(async_main(args, config))
    except KeyboardInterrupt:
        logging.info("Interrupted by user")
        return 130


def print_banner(args: argparse.Namespace, config: ParityConfig) -> None:
    """Print startup banner to stderr so stdout carries only the report."""
    out = sys.stderr
    print(file=out)
    print("=" * 60, file=out)
    print("  TRANSCRIPT PARITY VALIDATION", file=out)
    print(f"  Version {__version__}", file=out)
    print("=" * 60, file=out)
    print(f"  Mode:       {args.mode}", file=out)
    print(f"  Format:     {config.report_format}", file=out)
    print(f"  Log Level:  {config.log_level}", file=out)
    if args.mode != RunMode.COMPARE.value:
        print(f"  Parallel:   {config.batch.parallel} (x{config.batch.max_concurrency})", file=out)
    if args.mode == RunMode.CERTIFY.value:
        print(f"  Seeds:      {', '.join(str(s) for s in config.certification.seeds)}", file=out)
        print(f"  Threshold:  {config.certification.certification_threshold}%", file=out)
    print("=" * 60, file=out)
    print(file=out)


# ============================================================
# MODULE EXECUTION
# ============================================================

if __name__ == "__main__":
    sys.exit(main())
