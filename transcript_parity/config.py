"""
Transcript Parity - Configuration.

============================================================
CONFIGURABLE PARITY VALIDATION
============================================================

Configurable parameters:
- Comparison options (normalizations, severity thresholds)
- Batch execution (parallelism, stop on failure)
- Certification (seeds, threshold)
- Recorders (interpreter paths, stored transcripts, timeouts)

Configuration can be loaded from:
- Default values
- Environment variables (PARITY_*)
- YAML config file

============================================================
"""

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import logging

from .exceptions import ConfigurationError
from .models import BatchOptions, ComparisonOptions


logger = logging.getLogger(__name__)


# =============================================================
# RECORDER SETTINGS
# =============================================================


@dataclass
class RecorderSettings:
    """
    How to obtain transcripts from one engine.

    Either an interpreter process (interpreter_path + game_file_path)
    or a directory of stored transcripts (transcripts_dir).
    """
    interpreter_path: Optional[str] = None
    game_file_path: Optional[str] = None
    interpreter_args: List[str] = field(default_factory=list)
    seed_flag: Optional[str] = "-s"
    transcripts_dir: Optional[str] = None
    timeout_seconds: float = 30.0

    def __post_init__(self) -> None:
        if self.timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be positive, got {self.timeout_seconds}")

    @property
    def is_configured(self) -> bool:
        return bool(self.transcripts_dir or (self.interpreter_path and self.game_file_path))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "interpreter_path": self.interpreter_path,
            "game_file_path": self.game_file_path,
            "interpreter_args": list(self.interpreter_args),
            "seed_flag": self.seed_flag,
            "transcripts_dir": self.transcripts_dir,
            "timeout_seconds": self.timeout_seconds,
        }


# =============================================================
# CERTIFICATION SETTINGS
# =============================================================


@dataclass
class CertificationSettings:
    """Seeds and threshold for perfect-parity certification."""
    seeds: List[int] = field(default_factory=lambda: [42, 123, 456, 789, 999])
    certification_threshold: float = 100.0
    baseline_file: Optional[str] = None  # JSON map of sequence id -> parity score

    def __post_init__(self) -> None:
        if not self.seeds:
            raise ValueError("seeds must not be empty")
        if not 0 <= self.certification_threshold <= 100:
            raise ValueError("certification_threshold must be 0-100")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "seeds": list(self.seeds),
            "certification_threshold": self.certification_threshold,
            "baseline_file": self.baseline_file,
        }


# =============================================================
# MAIN CONFIGURATION
# =============================================================


def _env_bool(name: str) -> Optional[bool]:
    value = os.getenv(name)
    if value is None or value == "":
        return None
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class ParityConfig:
    """
    Main configuration for transcript parity validation.

    Combines all sub-configurations.
    """
    comparison: ComparisonOptions = field(default_factory=ComparisonOptions)
    batch: BatchOptions = field(default_factory=BatchOptions)
    certification: CertificationSettings = field(default_factory=CertificationSettings)

    reference: RecorderSettings = field(default_factory=RecorderSettings)
    candidate: RecorderSettings = field(default_factory=RecorderSettings)

    # Output
    report_format: str = "text"
    output_dir: str = "reports"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "ParityConfig":
        """
        Load configuration from environment variables.

        Environment variables:
        - PARITY_TOLERANCE_THRESHOLD
        - PARITY_MINOR_THRESHOLD
        - PARITY_MAJOR_THRESHOLD
        - PARITY_TOLERATE_COMBAT
        - PARITY_PARALLEL
        - PARITY_MAX_CONCURRENCY
        - PARITY_STOP_ON_FAILURE
        - PARITY_SEEDS (comma separated)
        - PARITY_CERTIFICATION_THRESHOLD
        - PARITY_REFERENCE_INTERPRETER
        - PARITY_REFERENCE_GAME_FILE
        - PARITY_REFERENCE_TRANSCRIPTS
        - PARITY_CANDIDATE_INTERPRETER
        - PARITY_CANDIDATE_GAME_FILE
        - PARITY_CANDIDATE_TRANSCRIPTS
        - PARITY_RECORDER_TIMEOUT
        - PARITY_REPORT_FORMAT
        - PARITY_OUTPUT_DIR
        - PARITY_LOG_LEVEL
        """
        config = cls()

        try:
            comparison: Dict[str, Any] = {}
            if os.getenv("PARITY_TOLERANCE_THRESHOLD"):
                comparison["tolerance_threshold"] = float(os.getenv("PARITY_TOLERANCE_THRESHOLD"))
            if os.getenv("PARITY_MINOR_THRESHOLD"):
                comparison["minor_similarity_threshold"] = float(os.getenv("PARITY_MINOR_THRESHOLD"))
            if os.getenv("PARITY_MAJOR_THRESHOLD"):
                comparison["major_similarity_threshold"] = float(os.getenv("PARITY_MAJOR_THRESHOLD"))
            if _env_bool("PARITY_TOLERATE_COMBAT") is not None:
                comparison["tolerate_combat_variance"] = _env_bool("PARITY_TOLERATE_COMBAT")
            if comparison:
                config.comparison = replace(config.comparison, **comparison)

            batch: Dict[str, Any] = {}
            if _env_bool("PARITY_PARALLEL") is not None:
                batch["parallel"] = _env_bool("PARITY_PARALLEL")
            if os.getenv("PARITY_MAX_CONCURRENCY"):
                batch["max_concurrency"] = int(os.getenv("PARITY_MAX_CONCURRENCY"))
            if _env_bool("PARITY_STOP_ON_FAILURE") is not None:
                batch["stop_on_failure"] = _env_bool("PARITY_STOP_ON_FAILURE")
            if batch:
                config.batch = replace(config.batch, **batch)

            if os.getenv("PARITY_SEEDS"):
                config.certification = CertificationSettings(
                    seeds=[int(s) for s in os.getenv("PARITY_SEEDS").split(",") if s.strip()],
                    certification_threshold=config.certification.certification_threshold,
                )
            if os.getenv("PARITY_CERTIFICATION_THRESHOLD"):
                config.certification = replace(
                    config.certification,
                    certification_threshold=float(os.getenv("PARITY_CERTIFICATION_THRESHOLD")),
                )

            for prefix, settings in (("REFERENCE", config.reference), ("CANDIDATE", config.candidate)):
                if os.getenv(f"PARITY_{prefix}_INTERPRETER"):
                    settings.interpreter_path = os.getenv(f"PARITY_{prefix}_INTERPRETER")
                if os.getenv(f"PARITY_{prefix}_GAME_FILE"):
                    settings.game_file_path = os.getenv(f"PARITY_{prefix}_GAME_FILE")
                if os.getenv(f"PARITY_{prefix}_TRANSCRIPTS"):
                    settings.transcripts_dir = os.getenv(f"PARITY_{prefix}_TRANSCRIPTS")
                if os.getenv("PARITY_RECORDER_TIMEOUT"):
                    settings.timeout_seconds = float(os.getenv("PARITY_RECORDER_TIMEOUT"))

        except ValueError as e:
            raise ConfigurationError(f"Invalid PARITY_* environment value: {e}")

        if os.getenv("PARITY_REPORT_FORMAT"):
            config.report_format = os.getenv("PARITY_REPORT_FORMAT")
        if os.getenv("PARITY_OUTPUT_DIR"):
            config.output_dir = os.getenv("PARITY_OUTPUT_DIR")
        if os.getenv("PARITY_LOG_LEVEL"):
            config.log_level = os.getenv("PARITY_LOG_LEVEL").upper()

        return config

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "ParityConfig":
        """
        Load configuration from YAML file.

        An unreadable file falls back to defaults with a warning.
        Readable files with invalid values raise ConfigurationError.
        """
        try:
            import yaml
            with open(path, 'r') as f:
                data = yaml.safe_load(f) or {}
        except Exception as e:
            logger.warning(f"Failed to load YAML config from {path}: {e}")
            return cls()

        if not isinstance(data, dict):
            raise ConfigurationError(f"Config root must be a mapping: {path}")

        try:
            return cls.from_dict(data)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid config in {path}: {e}", {"path": str(path)})

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ParityConfig":
        config = cls()

        if 'comparison' in data:
            config.comparison = ComparisonOptions.from_dict(data['comparison'] or {})

        if 'batch' in data:
            b = data['batch'] or {}
            config.batch = BatchOptions(
                parallel=b.get('parallel', False),
                max_concurrency=b.get('max_concurrency', 4),
                stop_on_failure=b.get('stop_on_failure', False),
            )

        if 'certification' in data:
            c = data['certification'] or {}
            config.certification = CertificationSettings(
                seeds=[int(s) for s in c.get('seeds', [42, 123, 456, 789, 999])],
                certification_threshold=c.get('certification_threshold', 100.0),
                baseline_file=c.get('baseline_file'),
            )

        for name in ('reference', 'candidate'):
            if name in data:
                r = data[name] or {}
                setattr(config, name, RecorderSettings(
                    interpreter_path=r.get('interpreter_path'),
                    game_file_path=r.get('game_file_path'),
                    interpreter_args=list(r.get('interpreter_args', [])),
                    seed_flag=r.get('seed_flag', "-s"),
                    transcripts_dir=r.get('transcripts_dir'),
                    timeout_seconds=r.get('timeout_seconds', 30.0),
                ))

        if 'report_format' in data:
            config.report_format = data['report_format']
        if 'output_dir' in data:
            config.output_dir = data['output_dir']
        if 'log_level' in data:
            config.log_level = str(data['log_level']).upper()

        return config

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "comparison": self.comparison.to_dict(),
            "batch": self.batch.to_dict(),
            "certification": self.certification.to_dict(),
            "reference": self.reference.to_dict(),
            "candidate": self.candidate.to_dict(),
            "report_format": self.report_format,
            "output_dir": self.output_dir,
            "log_level": self.log_level,
        }


# =============================================================
# GLOBAL CONFIG SINGLETON
# =============================================================


_default_config: Optional[ParityConfig] = None


def get_config() -> ParityConfig:
    """Get the global parity configuration."""
    global _default_config
    if _default_config is None:
        _default_config = ParityConfig.from_env()
    return _default_config


def set_config(config: ParityConfig) -> None:
    """Set the global parity configuration."""
    global _default_config
    _default_config = config
