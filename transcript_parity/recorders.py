"""
Transcript Recorders.

============================================================
PURPOSE
============================================================
Recorders replay a command list against one engine and return
a Transcript. The comparison core depends only on this contract:

    record(commands, options) -> Transcript
    is_available() -> bool

Implementations:
- ProcessRecorder: drives an external interpreter process
- SessionRecorder: drives an in-process engine session
- TranscriptFileRecorder: replays transcripts stored on disk

============================================================
"""

import asyncio
import json
import logging
import os
import re
import shutil
import time
import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from .exceptions import RecorderError, RecorderUnavailableError, RecordingTimeoutError
from .models import RecordingOptions, Transcript, TranscriptEntry


logger = logging.getLogger(__name__)


# Prompt line printed by the interpreter before reading each command
PROMPT_SPLIT_PATTERN = re.compile(r"\n>[ \t]*")


# ============================================================
# BASE RECORDER
# ============================================================

class BaseRecorder(ABC):
    """Abstract base class for transcript recorders."""

    def __init__(self, source_name: str):
        self._source_name = source_name

    @property
    def source_name(self) -> str:
        return self._source_name

    @abstractmethod
    async def record(
        self,
        commands: List[str],
        options: Optional[RecordingOptions] = None,
    ) -> Transcript:
        """Replay commands and return the transcript."""
        pass

    @abstractmethod
    async def is_available(self) -> bool:
        """Whether the engine behind this recorder can be used."""
        pass

    def _generate_transcript_id(self) -> str:
        """Generate unique transcript ID."""
        return f"{self._source_name}_{uuid.uuid4().hex[:12]}"

    def _build_transcript(
        self,
        commands: List[str],
        outputs: List[str],
        options: RecordingOptions,
        start_time: datetime,
        stamps: Optional[List[float]] = None,
    ) -> Transcript:
        """Assemble entries: index 0 is the initial output, then one per command."""
        entries = []
        all_commands = [""] + list(commands)
        for index, command in enumerate(all_commands):
            output = outputs[index] if index < len(outputs) else ""
            if not options.preserve_formatting:
                output = output.strip()
            entries.append(TranscriptEntry(
                index=index,
                command=command,
                output=output,
                turn_number=index,
                timestamp=stamps[index] if stamps and index < len(stamps) else None,
            ))

        metadata: Dict[str, Any] = {"recorder": type(self).__name__}
        if options.seed is not None:
            metadata["seed"] = options.seed

        return Transcript(
            id=self._generate_transcript_id(),
            source=self._source_name,
            entries=entries,
            start_time=start_time,
            end_time=datetime.utcnow(),
            metadata=metadata,
        )


# ============================================================
# PROCESS RECORDER
# ============================================================

class ProcessRecorder(BaseRecorder):
    """
    Records by piping commands into an interpreter process.

    The interpreter is expected to print a '>' prompt on its own line
    before reading each command. Output is split on those prompts.
    """

    def __init__(
        self,
        interpreter_path: str,
        game_file_path: str,
        interpreter_args: Optional[List[str]] = None,
        seed_flag: Optional[str] = "-s",
        timeout_seconds: float = 30.0,
        source_name: str = "reference",
    ):
        super().__init__(source_name)
        self._interpreter_path = interpreter_path
        self._game_file_path = game_file_path
        self._interpreter_args = list(interpreter_args or [])
        self._seed_flag = seed_flag
        self._timeout_seconds = timeout_seconds

    def _resolve_interpreter(self) -> Optional[str]:
        if os.path.isfile(self._interpreter_path) and os.access(self._interpreter_path, os.X_OK):
            return self._interpreter_path
        return shutil.which(self._interpreter_path)

    async def is_available(self) -> bool:
        return (
            self._resolve_interpreter() is not None
            and os.path.isfile(self._game_file_path)
        )

    def build_argv(self, options: RecordingOptions) -> List[str]:
        argv = [self._resolve_interpreter() or self._interpreter_path]
        argv.extend(self._interpreter_args)
        if options.seed is not None and self._seed_flag:
            argv.extend([self._seed_flag, str(options.seed)])
        argv.append(self._game_file_path)
        return argv

    async def record(
        self,
        commands: List[str],
        options: Optional[RecordingOptions] = None,
    ) -> Transcript:
        options = options or RecordingOptions()
        if not await self.is_available():
            raise RecorderUnavailableError(
                f"Interpreter not available: {self._interpreter_path} "
                f"(game file: {self._game_file_path})",
                source=self._source_name,
            )

        start_time = datetime.utcnow()
        argv = self.build_argv(options)
        logger.debug(f"Launching {argv} for {len(commands)} commands")

        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise RecorderUnavailableError(
                f"Cannot launch interpreter {argv[0]}: {e}",
                source=self._source_name,
            ) from e

        script = "".join(f"{command}\n" for command in commands)

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(script.encode()),
                timeout=self._timeout_seconds,
            )
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            raise RecordingTimeoutError(
                f"Interpreter did not finish within {self._timeout_seconds}s",
                source=self._source_name,
                timeout_seconds=self._timeout_seconds,
            )

        if process.returncode not in (0, None) and not stdout:
            raise RecorderError(
                f"Interpreter exited with code {process.returncode}: "
                f"{stderr.decode(errors='replace').strip()}",
                source=self._source_name,
            )

        outputs = self.split_output(stdout.decode(errors="replace"), len(commands))
        return self._build_transcript(commands, outputs, options, start_time)

    @staticmethod
    def split_output(raw: str, command_count: int) -> List[str]:
        """Split interpreter output into the initial output plus one segment per command."""
        raw = raw.replace("\r\n", "\n").replace("\r", "\n")
        segments = PROMPT_SPLIT_PATTERN.split("\n" + raw)
        segments[0] = segments[0][1:] if segments[0].startswith("\n") else segments[0]
        wanted = command_count + 1
        if len(segments) < wanted:
            segments.extend([""] * (wanted - len(segments)))
        return segments[:wanted]


# ============================================================
# SESSION RECORDER
# ============================================================

class SessionRecorder(BaseRecorder):
    """
    Records from an in-process engine.

    session_factory(options) must return an object with
    start() -> str (initial output) and execute(command) -> str.
    A failing command is recorded as an error line and replay continues.
    """

    def __init__(
        self,
        session_factory: Callable[[RecordingOptions], Any],
        source_name: str = "candidate",
    ):
        super().__init__(source_name)
        self._session_factory = session_factory

    async def is_available(self) -> bool:
        return self._session_factory is not None

    async def record(
        self,
        commands: List[str],
        options: Optional[RecordingOptions] = None,
    ) -> Transcript:
        options = options or RecordingOptions()
        start_time = datetime.utcnow()
        session = self._session_factory(options)

        outputs = [await self._call(session.start)]
        stamps = [self._now_ms()] if options.capture_timestamps else None

        for command in commands:
            try:
                output = await self._call(session.execute, command)
            except Exception as e:
                logger.warning(f"[{self._source_name}] Command {command!r} failed: {e}")
                output = f"Error: {e}"
            outputs.append(output)
            if stamps is not None:
                stamps.append(self._now_ms())

        return self._build_transcript(commands, outputs, options, start_time, stamps)

    @staticmethod
    async def _call(func: Callable, *args) -> str:
        result = func(*args)
        if asyncio.iscoroutine(result):
            result = await result
        return result or ""

    @staticmethod
    def _now_ms() -> float:
        return time.time() * 1000


# ============================================================
# TRANSCRIPT PERSISTENCE
# ============================================================

def save_transcript(transcript: Transcript, path: Union[str, Path]) -> Path:
    """Write a transcript as JSON. Parent directories are created."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(transcript.to_dict(), f, indent=2)
    logger.debug(f"Saved transcript {transcript.id} to {path}")
    return path


def load_transcript(path: Union[str, Path]) -> Transcript:
    """Read a transcript written by save_transcript."""
    with open(path, "r", encoding="utf-8") as f:
        return Transcript.from_dict(json.load(f))


class TranscriptFileRecorder(BaseRecorder):
    """
    Replays transcripts previously saved to a directory.

    A stored transcript is returned when its command list equals the
    requested one.
    """

    def __init__(self, directory: Union[str, Path], source_name: str = "reference"):
        super().__init__(source_name)
        self._directory = Path(directory)

    async def is_available(self) -> bool:
        return self._directory.is_dir()

    def _load_all(self) -> List[Transcript]:
        transcripts = []
        for path in sorted(self._directory.glob("*.json")):
            try:
                transcripts.append(load_transcript(path))
            except (OSError, ValueError, KeyError) as e:
                logger.warning(f"Skipping unreadable transcript {path}: {e}")
        return transcripts

    async def record(
        self,
        commands: List[str],
        options: Optional[RecordingOptions] = None,
    ) -> Transcript:
        if not await self.is_available():
            raise RecorderUnavailableError(
                f"Transcript directory not found: {self._directory}",
                source=self._source_name,
            )

        for transcript in self._load_all():
            if transcript.commands == list(commands):
                return transcript

        raise RecorderError(
            f"No stored transcript matches {len(commands)} commands in {self._directory}",
            source=self._source_name,
        )
