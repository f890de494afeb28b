"""
ASGI bridge for serving a :class:`ResourceApplication` with any ASGI server.

Example::

    from resttree import ResourceApplication
    from resttree.adapters import ASGIAdapter

    app = ResourceApplication()
    asgi_app = ASGIAdapter(app)

    # uvicorn module:asgi_app
"""

import io
import json
import logging
import mimetypes
import urllib.parse
from http import HTTPStatus
from pathlib import Path
from typing import Any, Awaitable, BinaryIO, Callable, Dict, List, Optional, Tuple, cast

from .application import ResourceApplication
from .models import HTTPMethod, Request, Response
from .status import reason_phrase

logger = logging.getLogger(__name__)

Receive = Callable[[], Awaitable[Dict[str, Any]]]
Send = Callable[[Dict[str, Any]], Awaitable[None]]

CHUNK_SIZE = 65536


class BadRequestBody(ValueError):
    """Raised when the request body cannot be decoded."""

    pass


def _decode_utf8(raw: bytes, what: str) -> str:
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise BadRequestBody(f"Invalid {what}: {e}")


class ASGIAdapter:
    """ASGI 3.0 application wrapping a :class:`ResourceApplication`."""

    def __init__(self, app: ResourceApplication):
        self.app = app

    async def __call__(self, scope: Dict[str, Any], receive: Receive, send: Send):
        """
        ASGI 3.0 application entry point.

        Args:
            scope: ASGI connection scope dictionary
            receive: Async callable to receive ASGI messages
            send: Async callable to send ASGI messages
        """
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return

        if scope["type"] != "http":
            # Only handle HTTP and lifespan
            await self._send_plain(send, HTTPStatus.NOT_FOUND, "Only HTTP is supported")
            return

        try:
            request = await self._build_request(scope, receive)
        except BadRequestBody as e:
            await self._send_plain(send, HTTPStatus.BAD_REQUEST, str(e))
            return

        response = Response()
        try:
            await self.app.handle(request, response)
        except Exception as e:
            # The pipeline turns handler errors into responses, this is a bug
            logger.error(f"Unhandled exception processing {request.method_name} {request.path}: {e}", exc_info=True)
            response = Response()
            response.send(reason_phrase(500), HTTPStatus.INTERNAL_SERVER_ERROR)

        await self._response_to_asgi(response, send, head=request.method == HTTPMethod.HEAD)

    async def _handle_lifespan(self, receive: Receive, send: Send):
        """Acknowledge the ASGI lifespan protocol; there is nothing to set up."""
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                await send({"type": "lifespan.shutdown.complete"})
                return

    async def _build_request(self, scope: Dict[str, Any], receive: Receive) -> Request:
        """Create a Request from the ASGI scope and the full request body.

        Raises:
            BadRequestBody: If the query string or the body cannot be decoded
        """
        # Parse query string, first value wins for duplicate keys
        query_string = _decode_utf8(scope.get("query_string", b""), "query string")
        query_params: Dict[str, str] = {}
        for name, value in urllib.parse.parse_qsl(query_string, keep_blank_values=True):
            query_params.setdefault(name, value)

        # ASGI uses lowercase names and bytes
        headers = {
            name.decode("latin-1").lower(): value.decode("latin-1")
            for name, value in scope.get("headers", [])
        }

        chunks = []
        more_body = True
        while more_body:
            message = await receive()
            chunks.append(message.get("body", b""))
            more_body = message.get("more_body", False)
        raw = b"".join(chunks)

        return Request(
            method=scope["method"],
            path=scope["path"],
            headers=headers,
            query_params=query_params,
            body=self._decode_body(raw, headers.get("content-type")),
        )

    def _decode_body(self, raw: bytes, content_type: Optional[str]) -> Any:
        if not raw:
            return None

        media_type = (content_type or "").split(";")[0].strip().lower()
        if media_type == "application/json" or media_type.endswith("+json"):
            try:
                return json.loads(raw.decode("utf-8"))
            except (UnicodeDecodeError, ValueError) as e:
                raise BadRequestBody(f"Invalid JSON body: {e}")
        if media_type == "application/x-www-form-urlencoded":
            form = _decode_utf8(raw, "form body")
            return dict(urllib.parse.parse_qsl(form, keep_blank_values=True))
        return raw

    def _convert_body_to_bytes(self, body: Any) -> Tuple[bytes, Optional[str]]:
        """
        Convert a response body to bytes and its default content type.

        Args:
            body: Response body (None, bytes, str, dict, list, etc.)

        Returns:
            Tuple of (body bytes, default content type or None)
        """
        if body is None:
            return b"", None
        if isinstance(body, bytes):
            return body, "application/octet-stream"
        if isinstance(body, str):
            return body.encode("utf-8"), "text/plain; charset=utf-8"
        return json.dumps(body).encode("utf-8"), "application/json"

    def _prepare_headers(self, response: Response, default_type: Optional[str]) -> List[List[bytes]]:
        headers = []
        content_type_set = False
        for name, value in response.headers.items():
            if name.lower() == "content-type":
                content_type_set = True
            headers.append([name.lower().encode("latin-1"), str(value).encode("latin-1")])
        if not content_type_set and default_type:
            headers.append([b"content-type", default_type.encode("latin-1")])
        return headers

    async def _response_to_asgi(self, response: Response, send: Send, head: bool = False):
        """
        Convert a Response to ASGI messages.

        Files and streams are sent in chunks; HEAD requests and 204/304
        responses get headers only.
        """
        body = response.body
        no_body = head or response.status_code in (HTTPStatus.NO_CONTENT, HTTPStatus.NOT_MODIFIED)

        if isinstance(body, Path):
            if not body.is_file():
                logger.debug(f"File {body} not found")
                await self._send_plain(send, HTTPStatus.NOT_FOUND, reason_phrase(404))
                return
            # Detect Content-Type from file extension if not already set
            detected_type, _ = mimetypes.guess_type(str(body))
            headers = self._prepare_headers(response, detected_type or "application/octet-stream")
            headers.append([b"content-length", str(body.stat().st_size).encode("latin-1")])
            await send({"type": "http.response.start", "status": int(response.status_code), "headers": headers})
            if no_body:
                await send({"type": "http.response.body", "body": b""})
                return
            with body.open("rb") as f:
                await self._send_streaming_body(f, send)
            return

        if isinstance(body, io.IOBase):
            # The handle is ours once handed over, close it on every path
            try:
                headers = self._prepare_headers(response, "application/octet-stream")
                await send({"type": "http.response.start", "status": int(response.status_code), "headers": headers})
                if no_body:
                    await send({"type": "http.response.body", "body": b""})
                    return
                await self._send_streaming_body(cast(BinaryIO, body), send)
            finally:
                body.close()
            return

        body_bytes, default_type = self._convert_body_to_bytes(body)
        headers = self._prepare_headers(response, default_type)
        headers.append([b"content-length", str(len(body_bytes)).encode("latin-1")])
        await send({"type": "http.response.start", "status": int(response.status_code), "headers": headers})
        await send({"type": "http.response.body", "body": b"" if no_body else body_bytes})

    async def _send_streaming_body(self, body_stream: BinaryIO, send: Send):
        """Send a file-like body to ASGI in chunks."""
        while True:
            chunk = body_stream.read(CHUNK_SIZE)
            if not chunk:
                break
            if isinstance(chunk, str):
                chunk = chunk.encode("utf-8")
            await send({"type": "http.response.body", "body": chunk, "more_body": True})
        # Send final empty chunk to signal end
        await send({"type": "http.response.body", "body": b"", "more_body": False})

    async def _send_plain(self, send: Send, status: int, message: str):
        body = message.encode("utf-8")
        await send({
            "type": "http.response.start",
            "status": int(status),
            "headers": [
                [b"content-type", b"text/plain; charset=utf-8"],
                [b"content-length", str(len(body)).encode("latin-1")],
            ],
        })
        await send({"type": "http.response.body", "body": body})


def create_asgi_app(app: ResourceApplication) -> ASGIAdapter:
    """Create an ASGI application from a :class:`ResourceApplication`."""
    return ASGIAdapter(app)
