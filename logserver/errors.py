"""Exception types raised inside the log server."""


class LogServerError(Exception):
    """Base class for log server errors."""


class ConfigError(LogServerError):
    """Configuration could not be loaded."""


class InvalidLogFileError(LogServerError):
    """A log file name does not resolve to a file inside the log directory."""


class InvalidArgumentsError(LogServerError):
    """Tool arguments failed schema validation.

    ``errors`` holds one ``"<field path>: <message>"`` string per problem.
    """

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__(f"Invalid arguments: {', '.join(errors)}")


class UnknownToolError(LogServerError):
    def __init__(self, name):
        self.name = name
        super().__init__(f"Unknown tool: {name}")


class DispatchError(LogServerError):
    """A request failed at the protocol level; ``code`` is the JSON-RPC error code."""

    def __init__(self, code: int, message: str):
        self.code = code
        self.message = message
        super().__init__(message)
