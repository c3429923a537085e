"""Tool operations — the write-log and read-logs variants, their schemas and rendering."""

import logging
from dataclasses import dataclass

import jsonschema

from logserver.errors import InvalidArgumentsError, UnknownToolError
from logserver.models import LogLevel
from logserver.store import LogStore

logger = logging.getLogger(__name__)

LEVEL_VALUES = [level.value for level in LogLevel]
DEFAULT_MAX_ENTRIES = 10


@dataclass
class ToolResult:
    text: str
    is_error: bool = False

    def to_content(self) -> dict:
        return {
            "content": [{"type": "text", "text": self.text}],
            "isError": self.is_error,
        }


def _describe_error(error: jsonschema.ValidationError) -> list[str]:
    """Turn one schema error into ``"<path>: <message>"`` strings."""
    path = ".".join(str(part) for part in error.absolute_path)
    if error.validator == "required" and isinstance(error.instance, dict):
        missing = [name for name in error.validator_value if name not in error.instance]
        prefix = f"{path}." if path else ""
        return [f"{prefix}{name}: Required" for name in missing]
    return [f"{path or '<arguments>'}: {error.message}"]


class Tool:
    """One protocol operation: a name, an input schema and an executor."""

    name = ""
    description = ""
    input_schema: dict = {}

    def __init__(self):
        self._validator = jsonschema.Draft202012Validator(self.input_schema)

    def describe(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }

    def validate(self, arguments) -> dict:
        """Validate arguments against the input schema and apply defaults.

        Raises InvalidArgumentsError listing every offending field.
        """
        if arguments is None:
            arguments = {}
        errors = sorted(
            self._validator.iter_errors(arguments),
            key=lambda e: [str(part) for part in e.absolute_path],
        )
        if errors:
            messages = [msg for error in errors for msg in _describe_error(error)]
            raise InvalidArgumentsError(messages)
        return self.apply_defaults(dict(arguments))

    def apply_defaults(self, arguments: dict) -> dict:
        return arguments

    async def execute(self, arguments: dict, store: LogStore) -> ToolResult:
        raise NotImplementedError


class WriteLogTool(Tool):
    name = "write-log"
    description = "Write a log entry to a file"
    input_schema = {
        "type": "object",
        "properties": {
            "level": {
                "type": "string",
                "enum": LEVEL_VALUES,
                "description": "Log level (INFO, WARN, ERROR, DEBUG)",
            },
            "message": {
                "type": "string",
                "minLength": 1,
                "description": "Log message content",
            },
            "timestamp": {
                "type": "string",
                "description": "Optional custom timestamp (ISO format). Current time used if not provided.",
            },
            "logFile": {
                "type": "string",
                "description": "Optional custom log file path. Default is application.log.",
            },
        },
        "required": ["message"],
    }

    def apply_defaults(self, arguments: dict) -> dict:
        arguments.setdefault("level", LogLevel.INFO.value)
        return arguments

    async def execute(self, arguments: dict, store: LogStore) -> ToolResult:
        level = LogLevel(arguments["level"])
        logger.debug("Processing write-log request: [%s] %s", level.value, arguments["message"])
        result = await store.write(
            level,
            arguments["message"],
            timestamp=arguments.get("timestamp"),
            file_name=arguments.get("logFile"),
        )
        if not result.success:
            return ToolResult(f"Failed to write log entry: {result.error}", is_error=True)
        return ToolResult(f"Successfully wrote log entry with level {level.value}.")


class ReadLogsTool(Tool):
    name = "read-logs"
    description = "Read recent log entries from a file"
    input_schema = {
        "type": "object",
        "properties": {
            "logFile": {
                "type": "string",
                "description": "Optional custom log file path. Default is application.log.",
            },
            "maxEntries": {
                "type": "integer",
                "exclusiveMinimum": 0,
                "description": "Maximum number of log entries to return (default: 10)",
            },
            "level": {
                "type": "string",
                "enum": LEVEL_VALUES,
                "description": "Filter logs by level",
            },
        },
    }

    def apply_defaults(self, arguments: dict) -> dict:
        # JSON numbers like 5.0 pass the integer check
        arguments["maxEntries"] = int(arguments.get("maxEntries", DEFAULT_MAX_ENTRIES))
        return arguments

    async def execute(self, arguments: dict, store: LogStore) -> ToolResult:
        logger.debug("Processing read-logs request")
        result = await store.read(
            arguments["maxEntries"],
            level=arguments.get("level"),
            file_name=arguments.get("logFile"),
        )
        if not result.success:
            return ToolResult(result.error or "Failed to read log entries", is_error=True)
        if not result.entries:
            return ToolResult("No log entries found matching criteria")
        return ToolResult("Recent log entries:\n\n" + "\n".join(result.entries))


TOOLS = {tool.name: tool for tool in (WriteLogTool(), ReadLogsTool())}


def get_tool(name) -> Tool:
    try:
        return TOOLS[name]
    except (KeyError, TypeError):
        raise UnknownToolError(name) from None


def list_tools() -> list[dict]:
    return [tool.describe() for tool in TOOLS.values()]


async def call_tool(name, arguments, store: LogStore) -> ToolResult:
    """Validate and run one tool call. Validation errors are raised, not returned."""
    tool = get_tool(name)
    validated = tool.validate(arguments)
    return await tool.execute(validated, store)
