"""Stdio transport — newline-delimited JSON-RPC messages on stdin/stdout."""

import asyncio
import json
import logging
import sys

from logserver.dispatcher import PARSE_ERROR, Dispatcher, error_response

logger = logging.getLogger(__name__)

# Max bytes in one request line
STREAM_LIMIT = 16 * 1024 * 1024


class StdioTransport:
    """Reads one request per line and writes one response per line.

    Requests are handled one at a time, each to completion.
    """

    def __init__(self, dispatcher: Dispatcher) -> None:
        self.dispatcher = dispatcher

    async def serve(self, reader, writer) -> None:
        """Serve until the reader hits EOF."""
        while True:
            try:
                line = await reader.readline()
            except ValueError:
                # Line longer than the stream limit; the buffer is discarded
                await self._send(writer, error_response(None, PARSE_ERROR, "Request too large"))
                continue
            if not line:
                logger.info("Input closed, stopping transport")
                break

            line_str = line.decode("utf-8", errors="replace").strip()
            if not line_str:
                continue

            try:
                message = json.loads(line_str)
            except json.JSONDecodeError:
                await self._send(writer, error_response(None, PARSE_ERROR, "Parse error"))
                continue

            response = await self.dispatcher.handle(message)
            if response is not None:
                await self._send(writer, response)

    async def _send(self, writer, response: dict) -> None:
        writer.write(json.dumps(response).encode("utf-8") + b"\n")
        await writer.drain()


async def open_stdio_streams(stdin=None, stdout=None):
    """Wrap stdin/stdout in asyncio stream reader/writer objects."""
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout
    loop = asyncio.get_running_loop()

    reader = asyncio.StreamReader(limit=STREAM_LIMIT)
    await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), stdin)

    write_transport, write_protocol = await loop.connect_write_pipe(
        asyncio.streams.FlowControlMixin, stdout
    )
    writer = asyncio.StreamWriter(write_transport, write_protocol, None, loop)
    return reader, writer
