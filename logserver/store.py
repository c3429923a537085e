"""Log store — append-only text files under a base directory, with tail reads."""

import asyncio
import logging
import os
import weakref
from dataclasses import dataclass, field
from pathlib import Path

import aiofiles

from logserver.errors import InvalidLogFileError
from logserver.models import LogEntry, LogLevel, strip_ansi

logger = logging.getLogger(__name__)


@dataclass
class WriteResult:
    success: bool
    error: str | None = None
    entry: LogEntry | None = None
    mirrored: bool = False


@dataclass
class ReadResult:
    entries: list[str] = field(default_factory=list)
    success: bool = True
    error: str | None = None


class LogStore:
    """Writes and reads log files under ``log_dir``.

    The mirror is any object with ``submit(entry)``; it is called after each
    successful append and its outcome is never awaited.
    """

    def __init__(self, log_dir: str, default_log_file: str, mirror) -> None:
        self.log_dir = Path(log_dir).resolve()
        self.default_log_file = default_log_file
        self._mirror = mirror
        # Entries disappear once no writer holds the lock
        self._locks = weakref.WeakValueDictionary()

    def resolve(self, file_name: str | None = None) -> Path:
        """Resolve a log file name against the log directory.

        Raises InvalidLogFileError for empty or absolute names and for names
        that land outside the log directory.
        """
        name = self.default_log_file if file_name is None else file_name
        if not name or not name.strip():
            raise InvalidLogFileError("Log file name must not be empty")
        if os.path.isabs(name):
            raise InvalidLogFileError(f"Log file must be relative to the log directory: {name}")

        try:
            path = (self.log_dir / name).resolve()
        except (ValueError, OSError) as e:
            # e.g. embedded null byte, symlink loop
            raise InvalidLogFileError(f"Invalid log file name {name!r}: {e}") from e
        if path == self.log_dir or not path.is_relative_to(self.log_dir):
            raise InvalidLogFileError(f"Log file path escapes the log directory: {name}")
        return path

    def _lock_for(self, path: Path) -> asyncio.Lock:
        lock = self._locks.get(path)
        if lock is None:
            lock = self._locks[path] = asyncio.Lock()
        return lock

    async def write(self, level: LogLevel | str = LogLevel.INFO, message: str = "",
                    timestamp: str | None = None,
                    file_name: str | None = None) -> WriteResult:
        """Append one entry. Local failures come back as ``success=False``."""
        try:
            entry = LogEntry.create(level, message, timestamp)
            path = self.resolve(file_name)
        except (ValueError, InvalidLogFileError) as e:
            logger.warning("Rejected log entry: %s", e)
            return WriteResult(success=False, error=str(e))

        line = entry.format_line() + "\n"
        try:
            async with self._lock_for(path):
                path.parent.mkdir(parents=True, exist_ok=True)
                async with aiofiles.open(path, mode="a", encoding="utf-8") as f:
                    await f.write(line)
        except OSError as e:
            logger.error("Error writing log entry to %s: %s", path, e)
            return WriteResult(success=False, error=str(e), entry=entry)

        logger.debug("Log entry written to file: %s", path)
        return WriteResult(success=True, entry=entry, mirrored=self._mirror_entry(entry))

    def _mirror_entry(self, entry: LogEntry) -> bool:
        try:
            return bool(self._mirror.submit(entry))
        except Exception:
            logger.exception("Mirror submit raised, ignoring")
            return False

    async def read(self, max_entries: int = 10, level: LogLevel | str | None = None,
                   file_name: str | None = None) -> ReadResult:
        """Return the last ``max_entries`` lines, optionally filtered by level."""
        if max_entries < 1:
            raise ValueError(f"max_entries must be positive, got {max_entries}")
        level = LogLevel(level) if level is not None else None

        try:
            path = self.resolve(file_name)
        except InvalidLogFileError as e:
            return ReadResult(success=False, error=str(e))

        if not path.is_file():
            return ReadResult(success=False, error=f"Log file not found: {path}")

        try:
            async with aiofiles.open(path, mode="r", encoding="utf-8",
                                     errors="replace") as f:
                content = await f.read()
        except OSError as e:
            logger.error("Error reading log entries from %s: %s", path, e)
            return ReadResult(success=False, error=str(e))

        lines = [line.rstrip("\r") for line in content.split("\n") if line.strip()]
        if level is not None:
            lines = [line for line in lines if _level_of(line) is level]

        entries = [strip_ansi(line) for line in lines[-max_entries:]]
        logger.debug("Read %d entries from %s", len(entries), path)
        return ReadResult(entries=entries)


def _level_of(line: str) -> LogLevel | None:
    entry = LogEntry.parse(line)
    return entry.level if entry is not None else None
