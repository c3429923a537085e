"""Remote mirror — best-effort, fire-and-forget forwarding of entries to a GELF collector over UDP.

Nothing in this module raises past ``submit()``. Every failure while
forwarding is caught at the outermost frame of the background task and logged.
"""

import asyncio
import json
import logging
import math
import os
import socket
import time
import zlib

from logserver.config import Config, MirrorConfig
from logserver.models import SYSLOG_LEVELS, LogEntry

logger = logging.getLogger(__name__)

GELF_CHUNK_MAGIC = b"\x1e\x0f"
GELF_CHUNK_HEADER_SIZE = 12
GELF_MAX_CHUNKS = 128


def build_record(entry: LogEntry, config: MirrorConfig) -> dict:
    """Build a GELF 1.1 record for an entry."""
    timestamp = entry.epoch_seconds()
    record = {
        "version": "1.1",
        "host": config.hostname,
        "short_message": entry.message,
        "timestamp": timestamp if timestamp is not None else time.time(),
        "level": SYSLOG_LEVELS[entry.level],
        "_source": config.source,
        "_project": config.project,
        "_log_level": entry.level.value,
        "_log_timestamp": entry.timestamp,
        "_file_logged": "true",
        "_hostname": socket.gethostname(),
        "_pid": os.getpid(),
        "_user_message": entry.message,
    }
    for key, value in config.static_fields.items():
        record[f"_{key}"] = value
    return record


def encode_datagrams(record: dict, chunk_size: int, compress: bool = True) -> list[bytes]:
    """Serialize a record into one or more GELF datagrams.

    Payloads larger than ``chunk_size`` are split into GELF chunks.
    """
    data = json.dumps(record).encode("utf-8")
    if compress:
        data = zlib.compress(data)
    if len(data) <= chunk_size:
        return [data]

    body_size = chunk_size - GELF_CHUNK_HEADER_SIZE
    count = math.ceil(len(data) / body_size)
    if count > GELF_MAX_CHUNKS:
        raise ValueError(
            f"GELF record too large: {len(data)} bytes needs {count} chunks "
            f"(max {GELF_MAX_CHUNKS})"
        )

    message_id = os.urandom(8)
    chunks = []
    for seq in range(count):
        body = data[seq * body_size:(seq + 1) * body_size]
        chunks.append(GELF_CHUNK_MAGIC + message_id + bytes([seq, count]) + body)
    return chunks


class _CollectorProtocol(asyncio.DatagramProtocol):
    def __init__(self, mirror: "GelfMirror"):
        self._mirror = mirror

    def error_received(self, exc):
        logger.warning("Collector endpoint error: %s", exc)

    def connection_lost(self, exc):
        self._mirror._transport = None


class NullMirror:
    """Mirror that drops everything. Used when mirroring is off or unavailable."""

    enabled = False

    def submit(self, entry: LogEntry) -> bool:
        return False

    async def close(self):
        pass


class GelfMirror:
    """Forwards entries to a GELF UDP collector in background tasks."""

    enabled = True

    def __init__(self, config: MirrorConfig):
        self._config = config
        self._transport = None
        self._connect_lock = asyncio.Lock()
        self._pending: set[asyncio.Task] = set()
        self._closed = False
        self.sent = 0
        self.failed = 0

    @property
    def pending(self) -> int:
        return len(self._pending)

    def submit(self, entry: LogEntry) -> bool:
        """Schedule an entry for forwarding and return immediately.

        Returns True if a forward was scheduled. Never raises.
        """
        if self._closed:
            return False
        try:
            task = asyncio.get_running_loop().create_task(self._forward(entry))
        except Exception:
            logger.exception("Could not schedule mirror forward")
            return False
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        logger.debug("Sending to collector (non-blocking): [%s] %s",
                     entry.level.value, entry.message)
        return True

    async def _forward(self, entry: LogEntry):
        try:
            datagrams = encode_datagrams(
                build_record(entry, self._config),
                self._config.chunk_size,
                self._config.compress,
            )
            await asyncio.wait_for(self._send(datagrams), timeout=self._config.timeout)
            self.sent += 1
            logger.debug("Collector forward succeeded (%d datagram(s))", len(datagrams))
        except asyncio.CancelledError:
            self.failed += 1
            logger.warning("Collector forward cancelled")
        except Exception as e:
            self.failed += 1
            logger.warning("Collector forward failed: %s: %s", type(e).__name__, e)

    async def _send(self, datagrams: list[bytes]):
        transport = await self._connect()
        for datagram in datagrams:
            transport.sendto(datagram)

    async def _connect(self):
        async with self._connect_lock:
            if self._transport is None or self._transport.is_closing():
                loop = asyncio.get_running_loop()
                self._transport, _ = await loop.create_datagram_endpoint(
                    lambda: _CollectorProtocol(self),
                    remote_addr=(self._config.host, self._config.port),
                )
                logger.info("Collector endpoint opened to %s:%d",
                            self._config.host, self._config.port)
            return self._transport

    async def close(self):
        """Wait (bounded by the forward timeout) for in-flight forwards, then close."""
        self._closed = True
        if self._pending:
            _, still_pending = await asyncio.wait(
                set(self._pending), timeout=self._config.timeout
            )
            for task in still_pending:
                task.cancel()
            if still_pending:
                await asyncio.wait(still_pending)
        if self._transport is not None:
            self._transport.close()
            self._transport = None
        logger.info("Mirror closed. sent=%d failed=%d", self.sent, self.failed)


def build_mirror(config: Config):
    """Construct the mirror for this process, falling back to NullMirror."""
    if not config.mirror.enabled:
        logger.info("Remote mirror disabled, using local logging only")
        return NullMirror()
    try:
        mirror = GelfMirror(config.mirror)
    except Exception:
        logger.exception("Failed to initialize remote mirror, continuing with local logging only")
        return NullMirror()
    logger.info("Remote mirror configured for %s:%d", config.mirror.host, config.mirror.port)
    return mirror
