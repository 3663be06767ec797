"""mathdrill JSON-lines server entry point.

Usage: python -m mathdrill.server

Reads JSON requests from stdin (one per line), writes JSON responses to stdout.
All logging goes to stderr to keep the protocol clean.
"""

from __future__ import annotations

import asyncio
import logging
import sys

from .handler import ServerHandler
from .protocol import Notification, ProtocolError, Request, Response

logger = logging.getLogger("mathdrill.server")


async def serve(handler: ServerHandler, lines, write_line) -> None:
    """Answer each request line in order until the input is exhausted."""
    async for line in lines:
        line = line.strip()
        if not line:
            continue

        try:
            req = Request.from_json_line(line)
        except ProtocolError as e:
            write_line(Response(id=0, error=str(e)).to_json_line())
            continue

        try:
            result = await handler.dispatch({"method": req.method, "params": req.params})
            resp = Response(id=req.id, result=result)
        except Exception as e:
            logger.error("%s failed: %s", req.method, e)
            resp = Response(id=req.id, error=str(e))

        write_line(resp.to_json_line())


async def _stdin_lines():
    loop = asyncio.get_event_loop()
    reader = asyncio.StreamReader()
    protocol = asyncio.StreamReaderProtocol(reader)
    await loop.connect_read_pipe(lambda: protocol, sys.stdin)
    while True:
        line = await reader.readline()
        if not line:
            break  # stdin closed
        yield line.decode("utf-8", errors="replace")


async def main() -> None:
    logging.basicConfig(
        stream=sys.stderr,
        level=logging.INFO,
        format="mathdrill-server: %(levelname)s %(message)s",
    )

    def write_line(text: str) -> None:
        sys.stdout.write(text)
        sys.stdout.flush()

    def write_notification(notification: Notification) -> None:
        write_line(notification.to_json_line())

    handler = ServerHandler(write_notification=write_notification)
    logger.info("ready")
    await serve(handler, _stdin_lines(), write_line)


if __name__ == "__main__":
    asyncio.run(main())
