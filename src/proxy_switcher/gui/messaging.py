"""Request/response message channel with the {status, error} envelope.

Every reply from the coordinator or the companion is an envelope::

    {"status": "OK" | "error", "error": "...", ...payload}

``call_host`` is the only place that checks it: a returned payload always
came from an ``OK`` reply, everything else raises ``MessageChannelError``.
"""

import asyncio
import itertools
import logging
from typing import Any, Awaitable, Callable, Protocol

import aiohttp
import orjson

from .models import Action
from .tasks import spawn_task

logger = logging.getLogger(__name__)

STATUS_OK = "OK"
STATUS_ERROR = "error"

PushHandler = Callable[[dict], Awaitable[dict]]


class MessageChannelError(Exception):
    """Base exception for failed requests. ``message`` is human readable."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class TransportError(MessageChannelError):
    """Raised when the counterpart can't be reached or doesn't answer."""

    pass


class ProtocolError(MessageChannelError):
    """Raised when a reply isn't an OK envelope."""

    pass


class Transport(Protocol):
    """Carries request objects to a counterpart and returns its raw reply."""

    async def send(self, message: dict) -> Any: ...

    def set_push_handler(self, handler: PushHandler) -> None: ...

    async def close(self) -> None: ...


def _action_name(action: Action | str) -> str:
    return action.value if isinstance(action, Action) else action


def error_envelope(message: str) -> dict:
    return {"status": STATUS_ERROR, "error": message}


async def call_host(transport: Transport, action: Action | str, **fields) -> dict:
    """Send ``{action, **fields}`` and return the reply payload.

    Raises:
        TransportError: If the transport fails.
        ProtocolError: If the reply isn't an envelope with status OK.
    """
    name = _action_name(action)
    request = {"action": name, **fields}
    try:
        reply = await transport.send(request)
    except MessageChannelError:
        raise
    except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
        raise TransportError(f"{name}: {str(e) or type(e).__name__}") from e

    if not isinstance(reply, dict):
        raise ProtocolError(f"{name}: malformed reply {reply!r}")
    status = reply.get("status")
    if status != STATUS_OK:
        error = reply.get("error")
        raise ProtocolError(str(error) if error else f"{name}: status {status!r}")

    return {k: v for k, v in reply.items() if k not in ("status", "error")}


class MessageChannel:
    """Named channel to one counterpart (coordinator or companion)."""

    def __init__(self, transport: Transport, name: str):
        self.name = name
        self._transport = transport
        self._handlers: dict[str, PushHandler] = {}
        transport.set_push_handler(self.dispatch)

    async def request(self, action: Action | str, **fields) -> dict:
        logger.debug("%s <- %s %s", self.name, _action_name(action), fields)
        return await call_host(self._transport, action, **fields)

    def on(self, action: Action | str, handler: PushHandler) -> None:
        """Register a handler for messages pushed by the counterpart."""
        self._handlers[_action_name(action)] = handler

    async def dispatch(self, message: dict) -> dict:
        """Answer a pushed message with an envelope."""
        action = message.get("action")
        handler = self._handlers.get(action)
        if handler is None:
            logger.warning("%s pushed unhandled action %r", self.name, action)
            return error_envelope(f"Unhandled action: {action}")
        try:
            payload = await handler(message)
        except ValueError as e:
            logger.warning("%s push %s rejected: %s", self.name, action, e)
            return error_envelope(str(e))
        return {"status": STATUS_OK, **(payload or {})}

    async def close(self) -> None:
        await self._transport.close()


class WebSocketTransport:
    """Transport over a websocket with JSON frames.

    Requests go out as ``{"id": n, **request}`` and are answered by
    ``{"reply_to": n, **envelope}``. Frames without ``reply_to`` are pushes
    from the counterpart and get answered the same way.
    """

    def __init__(self, url: str, request_timeout: float = 10.0):
        self._url = url
        self._timeout = request_timeout
        self._session: aiohttp.ClientSession | None = None
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._reader: asyncio.Task | None = None
        self._pending: dict[int, asyncio.Future] = {}
        self._ids = itertools.count(1)
        self._push_handler: PushHandler | None = None
        self._connect_lock = asyncio.Lock()

    def set_push_handler(self, handler: PushHandler) -> None:
        self._push_handler = handler

    async def _ensure_connected(self) -> aiohttp.ClientWebSocketResponse:
        async with self._connect_lock:
            if self._ws is not None and not self._ws.closed:
                return self._ws
            if self._session is None or self._session.closed:
                self._session = aiohttp.ClientSession(
                    timeout=aiohttp.ClientTimeout(total=None, connect=self._timeout)
                )
            try:
                self._ws = await self._session.ws_connect(self._url)
            except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
                raise TransportError(
                    f"Cannot connect to {self._url}: {str(e) or type(e).__name__}"
                ) from e
            logger.info("Connected to %s", self._url)
            self._reader = spawn_task(
                self._read_loop(self._ws), context=f"read {self._url}"
            )
            return self._ws

    async def send(self, message: dict) -> Any:
        ws = await self._ensure_connected()
        request_id = next(self._ids)
        future = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future
        try:
            await ws.send_str(orjson.dumps({"id": request_id, **message}).decode())
            return await asyncio.wait_for(future, self._timeout)
        except asyncio.TimeoutError as e:
            raise TransportError(
                f"No reply to {message.get('action')} within {self._timeout:g}s"
            ) from e
        except (aiohttp.ClientError, OSError) as e:
            raise TransportError(f"Send to {self._url} failed: {e}") from e
        finally:
            self._pending.pop(request_id, None)

    async def _read_loop(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        try:
            async for msg in ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    self._handle_frame(ws, msg.data)
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    logger.warning("Websocket error on %s: %s", self._url, ws.exception())
                    break
        finally:
            logger.info("Disconnected from %s", self._url)
            for future in self._pending.values():
                if not future.done():
                    future.set_exception(
                        TransportError(f"Connection to {self._url} closed")
                    )

    def _handle_frame(self, ws: aiohttp.ClientWebSocketResponse, data: str) -> None:
        try:
            frame = orjson.loads(data)
        except orjson.JSONDecodeError as e:
            logger.warning("Dropping malformed frame from %s: %s", self._url, e)
            return
        if not isinstance(frame, dict):
            logger.warning("Dropping non-object frame from %s", self._url)
            return

        if "reply_to" in frame:
            future = self._pending.get(frame.pop("reply_to"))
            if future is not None and not future.done():
                future.set_result(frame)
            return

        spawn_task(self._answer_push(ws, frame), context=f"push {frame.get('action')}")

    async def _answer_push(self, ws: aiohttp.ClientWebSocketResponse, frame: dict) -> None:
        frame_id = frame.pop("id", None)
        if self._push_handler is None:
            reply = error_envelope("No push handler")
        else:
            reply = await self._push_handler(frame)
        if frame_id is not None and not ws.closed:
            await ws.send_str(orjson.dumps({"reply_to": frame_id, **reply}).decode())

    async def close(self) -> None:
        if self._ws is not None:
            await self._ws.close()
        if self._reader is not None:
            self._reader.cancel()
        if self._session is not None:
            await self._session.close()
        self._ws = None
        self._reader = None
        self._session = None
