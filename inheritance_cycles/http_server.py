#!/usr/bin/env python3
"""
HTTP/SSE transport for the Inheritance Cycle Analysis MCP Server.
"""

import asyncio
import json
import logging
import time
from uuid import uuid4

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, Response, StreamingResponse
from starlette.routing import Route
import uvicorn

from mcp.server import Server
from mcp.server.streamable_http import StreamableHTTPServerTransport

from . import __version__

logger = logging.getLogger(__name__)

SESSION_HEADER = "x-mcp-session-id"


def _jsonrpc_error(code: int, message: str, status_code: int, session_id: str) -> JSONResponse:
    return JSONResponse(
        {"jsonrpc": "2.0", "error": {"code": code, "message": message}, "id": None},
        status_code=status_code,
        headers={SESSION_HEADER: session_id},
    )


class MCPHTTPServer:
    """
    HTTP/SSE server wrapper for an MCP Server.

    Each client session gets its own StreamableHTTPServerTransport, keyed by
    the x-mcp-session-id header, and is dropped after ``session_timeout``
    seconds without activity.
    """

    def __init__(
        self,
        mcp_server: Server,
        host: str = "127.0.0.1",
        port: int = 8000,
        transport_type: str = "http",
        session_timeout: float = 3600.0,
    ):
        if transport_type not in ("http", "sse"):
            raise ValueError(f"Unsupported transport: {transport_type}")

        self.mcp_server = mcp_server
        self.host = host
        self.port = port
        self.transport_type = transport_type
        self.session_timeout = session_timeout

        # session_id -> (transport, task, last_activity_time)
        self.sessions = {}

        self._cleanup_task = None
        self._server = None

    async def _cleanup_inactive_sessions(self):
        """Background task to clean up inactive sessions."""
        while True:
            try:
                await asyncio.sleep(60)
                self.expire_sessions(time.time())
            except asyncio.CancelledError:
                break

    def expire_sessions(self, now: float) -> int:
        """Cancel sessions idle for longer than the timeout; return how many."""
        expired = [
            session_id
            for session_id, (_, _, last_activity) in self.sessions.items()
            if now - last_activity > self.session_timeout
        ]
        for session_id in expired:
            _, task, _ = self.sessions.pop(session_id)
            task.cancel()
            logger.info(f"Session {session_id} timed out")
        return len(expired)

    def create_app(self) -> Starlette:
        routes = [
            Route("/", self.handle_root, methods=["GET"]),
            Route("/health", self.handle_health, methods=["GET"]),
            Route("/mcp/v1/messages", self.handle_http_message, methods=["POST"]),
        ]
        if self.transport_type == "sse":
            routes.append(Route("/mcp/v1/sse", self.handle_sse_stream, methods=["GET"]))
        return Starlette(routes=routes)

    async def handle_root(self, request: Request) -> Response:
        """Server information."""
        endpoints = {"health": "/health", "messages": "/mcp/v1/messages"}
        if self.transport_type == "sse":
            endpoints["sse"] = "/mcp/v1/sse"

        return JSONResponse(
            {
                "name": "Inheritance Cycle Analysis MCP Server",
                "version": __version__,
                "transport": self.transport_type,
                "endpoints": endpoints,
            }
        )

    async def handle_health(self, request: Request) -> Response:
        return JSONResponse(
            {
                "status": "healthy",
                "transport": self.transport_type,
                "active_sessions": len(self.sessions),
            }
        )

    async def _get_transport(self, session_id: str) -> StreamableHTTPServerTransport:
        if session_id in self.sessions:
            transport, task, _ = self.sessions[session_id]
            self.sessions[session_id] = (transport, task, time.time())
            return transport

        transport = StreamableHTTPServerTransport(
            mcp_session_id=session_id, is_json_response_enabled=True
        )

        async def run_session():
            async with transport.connect() as (read_stream, write_stream):
                try:
                    await self.mcp_server.run(
                        read_stream,
                        write_stream,
                        self.mcp_server.create_initialization_options(),
                        raise_exceptions=False,
                    )
                except Exception as e:
                    logger.exception(f"Error in session {session_id}: {e}")
                finally:
                    self.sessions.pop(session_id, None)

        task = asyncio.create_task(run_session())
        self.sessions[session_id] = (transport, task, time.time())
        logger.info(f"Started MCP server session {session_id}")

        # Let the session connect its streams
        await asyncio.sleep(0.1)
        return transport

    async def handle_http_message(self, request: Request) -> Response:
        """Handle a JSON-RPC POST through the session's streamable HTTP transport."""
        session_id = request.headers.get(SESSION_HEADER) or str(uuid4())

        body = await request.body()
        try:
            if body:
                json.loads(body.decode())
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning(f"JSON decode error: {e}")
            return _jsonrpc_error(-32700, "Parse error", 400, session_id)

        transport = await self._get_transport(session_id)

        # Replay the body already read above
        body_sent = False

        async def receive_with_body():
            nonlocal body_sent
            if not body_sent:
                body_sent = True
                return {"type": "http.request", "body": body, "more_body": False}
            return {"type": "http.disconnect"}

        response_status = 200
        response_headers = []
        response_body = b""

        async def send(message):
            nonlocal response_status, response_headers, response_body
            if message["type"] == "http.response.start":
                response_status = message.get("status", 200)
                response_headers = message.get("headers", [])
            elif message["type"] == "http.response.body":
                response_body += message.get("body", b"")

        try:
            await transport.handle_request(request.scope, receive_with_body, send)
        except Exception as e:
            logger.exception(f"Error handling request: {e}")
            return _jsonrpc_error(-32603, f"Internal error: {str(e)}", 500, session_id)

        headers = {
            k.decode() if isinstance(k, bytes) else k: v.decode() if isinstance(v, bytes) else v
            for k, v in response_headers
        }
        headers[SESSION_HEADER] = session_id
        return Response(content=response_body, status_code=response_status, headers=headers)

    async def handle_sse_stream(self, request: Request) -> Response:
        """Event stream with a connected event followed by keepalives."""
        session_id = request.headers.get(SESSION_HEADER) or str(uuid4())

        async def sse_event_stream():
            yield f"event: connected\ndata: {json.dumps({'session_id': session_id})}\n\n".encode()
            try:
                while True:
                    await asyncio.sleep(5)
                    yield b": keepalive\n\n"
            except asyncio.CancelledError:
                logger.info(f"SSE stream closed for session {session_id}")
                raise

        return StreamingResponse(
            sse_event_stream(),
            media_type="text/event-stream",
            headers={
                SESSION_HEADER: session_id,
                "Cache-Control": "no-cache",
                "X-Accel-Buffering": "no",
            },
        )

    async def start(self):
        """Start the HTTP/SSE server."""
        app = self.create_app()
        self._cleanup_task = asyncio.create_task(self._cleanup_inactive_sessions())

        config = uvicorn.Config(app, host=self.host, port=self.port, log_level="info")
        self._server = uvicorn.Server(config)

        logger.info(f"Starting MCP {self.transport_type} server on {self.host}:{self.port}")
        try:
            await self._server.serve()
        finally:
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass

    async def shutdown(self):
        """Stop accepting connections and cancel all sessions."""
        if self._server:
            self._server.should_exit = True

        for session_id, (_, task, _) in list(self.sessions.items()):
            logger.debug(f"Closing session {session_id}")
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self.sessions.clear()


async def run_http_server(
    mcp_server: Server, host: str = "127.0.0.1", port: int = 8000, transport_type: str = "http"
):
    """Run the HTTP/SSE server with the given MCP server instance."""
    logging.basicConfig(level=logging.INFO)
    server = MCPHTTPServer(mcp_server, host, port, transport_type)
    await server.start()
