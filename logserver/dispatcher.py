"""JSON-RPC 2.0 request dispatch — one entry point for every protocol method."""

import logging

from logserver.errors import DispatchError, InvalidArgumentsError, UnknownToolError
from logserver.store import LogStore
from logserver.tools import call_tool, list_tools

logger = logging.getLogger(__name__)

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

DEFAULT_PROTOCOL_VERSION = "2024-11-05"


def error_response(request_id, code: int, message: str) -> dict:
    return {"jsonrpc": "2.0", "id": request_id, "error": {"code": code, "message": message}}


class Dispatcher:
    """Routes JSON-RPC requests to handlers and builds responses."""

    def __init__(self, store: LogStore, server_name: str, server_version: str):
        self._store = store
        self._server_name = server_name
        self._server_version = server_version
        self._methods = {
            "initialize": self._initialize,
            "ping": self._ping,
            "tools/list": self._tools_list,
            "tools/call": self._tools_call,
            "resources/list": self._resources_list,
        }

    async def handle(self, message) -> dict | None:
        """Handle one decoded message. Returns None for notifications."""
        if not isinstance(message, dict) or message.get("jsonrpc") != "2.0":
            return error_response(None, INVALID_REQUEST, "Invalid Request")

        method = message.get("method")
        request_id = message.get("id")
        is_notification = "id" not in message
        if not isinstance(method, str):
            return error_response(request_id, INVALID_REQUEST, "Invalid Request")

        if is_notification:
            logger.debug("Received notification %s", method)
            return None

        logger.info("Handling %s request", method)
        params = message.get("params") or {}
        try:
            handler = self._methods.get(method)
            if handler is None:
                raise DispatchError(METHOD_NOT_FOUND, f"Method not found: {method}")
            if not isinstance(params, dict):
                raise DispatchError(INVALID_PARAMS, "params must be an object")
            result = await handler(params)
        except DispatchError as e:
            logger.warning("Error handling %s: %s", method, e.message)
            return error_response(request_id, e.code, e.message)
        except Exception:
            logger.exception("Unexpected error handling %s", method)
            return error_response(request_id, INTERNAL_ERROR, "Internal error")

        return {"jsonrpc": "2.0", "id": request_id, "result": result}

    async def _initialize(self, params: dict) -> dict:
        return {
            "protocolVersion": params.get("protocolVersion", DEFAULT_PROTOCOL_VERSION),
            "capabilities": {"tools": {}},
            "serverInfo": {"name": self._server_name, "version": self._server_version},
        }

    async def _ping(self, params: dict) -> dict:
        return {}

    async def _tools_list(self, params: dict) -> dict:
        return {"tools": list_tools()}

    async def _resources_list(self, params: dict) -> dict:
        return {"resources": []}

    async def _tools_call(self, params: dict) -> dict:
        name = params.get("name")
        logger.info("Handling tools/call request for %s", name)
        try:
            result = await call_tool(name, params.get("arguments"), self._store)
        except (InvalidArgumentsError, UnknownToolError) as e:
            raise DispatchError(INVALID_PARAMS, str(e)) from e
        return result.to_content()
