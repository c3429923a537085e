"""Log entry model — levels, line format and field-position parsing."""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum


class LogLevel(str, Enum):
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    DEBUG = "DEBUG"


# Syslog severities, as used by GELF
SYSLOG_LEVELS = {
    LogLevel.ERROR: 3,
    LogLevel.WARN: 4,
    LogLevel.INFO: 6,
    LogLevel.DEBUG: 7,
}

_LINE_RE = re.compile(r"^\[(?P<timestamp>[^\]\r\n]*)\] \[(?P<level>[A-Z]+)\] (?P<message>.*)$")
_ANSI_RE = re.compile(r"\x1b\[\d+m")


def now_iso() -> str:
    """Current UTC time as ISO-8601 with millisecond precision and a Z suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def strip_ansi(line: str) -> str:
    return _ANSI_RE.sub("", line)


@dataclass(frozen=True)
class LogEntry:
    timestamp: str
    level: LogLevel
    message: str

    def __post_init__(self):
        # Accept plain strings for level
        object.__setattr__(self, "level", LogLevel(self.level))
        if not self.message:
            raise ValueError("message must not be empty")
        if "\n" in self.message or "\r" in self.message:
            raise ValueError("message must be a single line")
        if "\n" in self.timestamp or "\r" in self.timestamp or "]" in self.timestamp:
            raise ValueError(f"invalid timestamp: {self.timestamp!r}")

    @classmethod
    def create(cls, level: LogLevel | str = LogLevel.INFO, message: str = "",
               timestamp: str | None = None) -> "LogEntry":
        """Build an entry, defaulting the timestamp to now."""
        return cls(timestamp=timestamp or now_iso(), level=level, message=message)

    def format_line(self) -> str:
        """Render as ``[<timestamp>] [<LEVEL>] <message>`` without a newline."""
        return f"[{self.timestamp}] [{self.level.value}] {self.message}"

    @classmethod
    def parse(cls, line: str) -> "LogEntry | None":
        """Parse a stored line by field position. Returns None for foreign lines."""
        match = _LINE_RE.match(strip_ansi(line).rstrip("\r\n"))
        if match is None:
            return None
        try:
            return cls(
                timestamp=match.group("timestamp"),
                level=LogLevel(match.group("level")),
                message=match.group("message"),
            )
        except ValueError:
            return None

    def epoch_seconds(self) -> float | None:
        """Timestamp as seconds since the epoch, or None if it is not ISO-8601."""
        value = self.timestamp
        if value.endswith("Z"):
            value = value[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed.timestamp()
