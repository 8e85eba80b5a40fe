"""
Command Sequence Loader.

============================================================
FILE FORMAT
============================================================
Plain text, one command per line:

    #!name: Forest walk          <- metadata (#!key: value)
    #!description: Enter the forest and return
    # an ordinary comment        <- ignored
    @include common/opening.txt  <- splice another file's commands
    north
    take leaflet

- Blank lines are ignored
- Command lines are trimmed
- Included files contribute commands only, not metadata
- Include paths resolve relative to the including file

============================================================
ERRORS
============================================================
Missing files, unresolvable or circular includes, and include
chains deeper than max_include_depth raise SequenceParseError
carrying the file path and line number.

============================================================
"""

import logging
from pathlib import Path
from typing import Callable, Dict, FrozenSet, List, Optional, Tuple, Union

from .exceptions import SequenceParseError
from .models import CommandSequence


logger = logging.getLogger(__name__)


DEFAULT_MAX_INCLUDE_DEPTH = 10

METADATA_PREFIX = "#!"
COMMENT_PREFIX = "#"
INCLUDE_DIRECTIVE = "@include"

# Metadata keys written as dedicated fields by serialize()
RESERVED_METADATA_KEYS = ("id", "name", "description")


IncludeHandler = Callable[[str, int], List[str]]


def _parse_metadata(line: str) -> Optional[Tuple[str, str]]:
    content = line[len(METADATA_PREFIX):].strip()
    key, sep, value = content.partition(":")
    if not sep or not key.strip():
        return None
    return key.strip(), value.strip()


def _parse_lines(
    content: str,
    on_include: IncludeHandler,
) -> Tuple[List[str], Dict[str, str]]:
    """Split content into commands and metadata, delegating @include lines."""
    commands: List[str] = []
    metadata: Dict[str, str] = {}

    for line_number, line in enumerate(content.splitlines(), 1):
        trimmed = line.strip()
        if not trimmed:
            continue

        if trimmed.startswith(METADATA_PREFIX):
            parsed = _parse_metadata(trimmed)
            if parsed:
                metadata[parsed[0]] = parsed[1]
            continue

        if trimmed.startswith(COMMENT_PREFIX):
            continue

        if trimmed.startswith(INCLUDE_DIRECTIVE):
            commands.extend(on_include(trimmed[len(INCLUDE_DIRECTIVE):].strip(), line_number))
            continue

        commands.append(trimmed)

    return commands, metadata


def _build_sequence(
    sequence_id: str,
    commands: List[str],
    metadata: Dict[str, str],
    source_file: Optional[str] = None,
) -> CommandSequence:
    return CommandSequence(
        id=metadata.get("id", sequence_id),
        name=metadata.get("name", sequence_id),
        description=metadata.get("description"),
        commands=commands,
        metadata=metadata,
        source_file=source_file,
    )


# ============================================================
# SEQUENCE LOADER
# ============================================================

class SequenceLoader:
    """Loads and serializes command sequence files."""

    def __init__(self, max_include_depth: int = DEFAULT_MAX_INCLUDE_DEPTH):
        if max_include_depth < 1:
            raise ValueError(f"max_include_depth must be at least 1, got {max_include_depth}")
        self._max_include_depth = max_include_depth

    @property
    def max_include_depth(self) -> int:
        return self._max_include_depth

    def load(self, path: Union[str, Path]) -> CommandSequence:
        """
        Load one sequence file, resolving includes.

        The sequence id defaults to the file name without extension.
        """
        resolved = Path(path).resolve()
        if not resolved.is_file():
            raise SequenceParseError("File not found", str(resolved))

        commands, metadata = self._parse_file(resolved, frozenset({resolved}))
        logger.debug(f"Loaded sequence {resolved.stem}: {len(commands)} commands")
        return _build_sequence(resolved.stem, commands, metadata, str(resolved))

    def load_directory(self, path: Union[str, Path]) -> List[CommandSequence]:
        """Load every *.txt file in a directory, in file-name order."""
        resolved = Path(path).resolve()
        if not resolved.exists():
            raise SequenceParseError("Directory not found", str(resolved))
        if not resolved.is_dir():
            raise SequenceParseError("Path is not a directory", str(resolved))

        files = sorted(p for p in resolved.iterdir() if p.suffix == ".txt" and p.is_file())
        return [self.load(p) for p in files]

    def load_many(self, paths: List[Union[str, Path]]) -> List[CommandSequence]:
        """Load files and directories, preserving argument order."""
        sequences: List[CommandSequence] = []
        for path in paths:
            if Path(path).is_dir():
                sequences.extend(self.load_directory(path))
            else:
                sequences.append(self.load(path))
        return sequences

    def _parse_file(
        self,
        path: Path,
        visited: FrozenSet[Path],
    ) -> Tuple[List[str], Dict[str, str]]:
        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise SequenceParseError(f"Cannot read file: {e}", str(path)) from e

        def on_include(include_path: str, line_number: int) -> List[str]:
            if not include_path:
                raise SequenceParseError(
                    "Missing file path in @include directive", str(path), line_number
                )

            target = (path.parent / include_path).resolve()
            if target in visited:
                raise SequenceParseError(
                    f"Circular include detected: {include_path}", str(path), line_number
                )
            if len(visited) >= self._max_include_depth:
                raise SequenceParseError(
                    f"Maximum include depth ({self._max_include_depth}) exceeded",
                    str(path),
                    line_number,
                )
            if not target.is_file():
                raise SequenceParseError(
                    f"Included file not found: {include_path}", str(path), line_number
                )

            included, _ = self._parse_file(target, visited | {target})
            return included

        return _parse_lines(content, on_include)

    def parse_string(self, content: str, sequence_id: str = "inline") -> CommandSequence:
        """Parse sequence text that has no file of its own. @include is rejected."""

        def on_include(include_path: str, line_number: int) -> List[str]:
            raise SequenceParseError(
                "@include directive not supported in parse_string", "<string>", line_number
            )

        commands, metadata = _parse_lines(content, on_include)
        return _build_sequence(sequence_id, commands, metadata)

    def serialize(self, sequence: CommandSequence) -> str:
        """
        Render a sequence in the file format.

        parse_string(serialize(s), s.id) reproduces the commands, name,
        description and metadata of s.
        """
        lines: List[str] = []
        if "id" in sequence.metadata:
            lines.append(f"{METADATA_PREFIX}id: {sequence.id}")
        if sequence.name and (sequence.name != sequence.id or "name" in sequence.metadata):
            lines.append(f"{METADATA_PREFIX}name: {sequence.name}")
        if sequence.description is not None:
            lines.append(f"{METADATA_PREFIX}description: {sequence.description}")
        for key, value in sequence.metadata.items():
            if key not in RESERVED_METADATA_KEYS:
                lines.append(f"{METADATA_PREFIX}{key}: {value}")

        if lines:
            lines.append("")
        lines.extend(sequence.commands)
        return "\n".join(lines)

    def save(self, sequence: CommandSequence, path: Union[str, Path]) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.serialize(sequence) + "\n", encoding="utf-8")
        return path


# ============================================================
# FACTORY FUNCTION
# ============================================================

def create_sequence_loader(max_include_depth: int = DEFAULT_MAX_INCLUDE_DEPTH) -> SequenceLoader:
    """Create a sequence loader."""
    return SequenceLoader(max_include_depth)
