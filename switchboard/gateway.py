"""Gateway event sources.

The gateway delivers interactions and carries replies back. The
dispatcher treats it as a black box: Gateway defines the surface the
bot uses, and WebSocketGateway is a JSON-over-WebSocket relay client
built on aiohttp.

Relay frames (JSON text messages):
    client -> relay:  {"op": "identify", "token": ...}
                      {"op": "interaction_response", "d": {...}}
                      {"op": "presence", "d": {"activity": ...}}
    relay -> client:  {"op": "ready", "user": {...}}
                      {"op": "invalid_session", "reason": ...}
                      {"op": "interaction", "d": {...}}
                      {"op": "reconnect"}
"""

import asyncio
import json
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

import aiohttp
import structlog

from .events import Interaction
from .exceptions import GatewayAuthError, GatewayError

logger = structlog.get_logger("switchboard.gateway")

InteractionSubscriber = Callable[[Interaction], Awaitable[Any]]
ReadyCallback = Callable[[Dict[str, Any]], Awaitable[None]]


def log_task_exception(task: asyncio.Task):
    """Log exceptions from fire-and-forget tasks instead of silently swallowing them."""
    if task.cancelled():
        return
    exc = task.exception()
    if exc:
        logger.error("background_task_failed", error=str(exc), exc_type=type(exc).__name__)


class Gateway:
    """Base class for event sources.

    Subclasses implement connect(), run(), respond(), set_presence()
    and close(). They hand each parsed interaction to _emit(), which
    runs the subscriber as its own task so a slow handler never blocks
    the next event.
    """

    def __init__(self):
        self._subscriber: Optional[InteractionSubscriber] = None
        self._ready_callbacks: List[ReadyCallback] = []
        self._inflight: Set[asyncio.Task] = set()

    def subscribe(self, subscriber: InteractionSubscriber) -> None:
        """Attach the single interaction subscriber (the router)."""
        self._subscriber = subscriber

    def on_ready(self, callback: ReadyCallback) -> None:
        self._ready_callbacks.append(callback)

    async def _fire_ready(self, user: Dict[str, Any]) -> None:
        for callback in self._ready_callbacks:
            try:
                await callback(user)
            except Exception as e:
                logger.error("ready_callback_failed", error=str(e), error_type=type(e).__name__)

    def _emit(self, interaction: Interaction) -> Optional[asyncio.Task]:
        if self._subscriber is None:
            logger.warning("interaction_dropped_no_subscriber", interaction_id=interaction.id)
            return None
        task = asyncio.create_task(self._subscriber(interaction))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        task.add_done_callback(log_task_exception)
        return task

    @property
    def inflight(self) -> int:
        """Number of handler tasks still running."""
        return len(self._inflight)

    async def drain(self, timeout: float) -> None:
        """Wait up to ``timeout`` seconds for in-flight handlers, then cancel the rest."""
        if not self._inflight:
            return
        pending = set(self._inflight)
        done, still_pending = await asyncio.wait(pending, timeout=timeout)
        for task in still_pending:
            task.cancel()
        if still_pending:
            logger.warning("inflight_handlers_cancelled", count=len(still_pending))
            await asyncio.gather(*still_pending, return_exceptions=True)

    async def connect(self) -> None:
        raise NotImplementedError

    async def run(self) -> None:
        raise NotImplementedError

    async def respond(self, interaction: Interaction, response: Dict[str, Any]) -> None:
        raise NotImplementedError

    async def set_presence(self, activity: str) -> None:
        raise NotImplementedError

    async def close(self) -> None:
        raise NotImplementedError


class WebSocketGateway(Gateway):
    """Relay client over an aiohttp WebSocket.

    Args:
        url: ws:// or wss:// URL of the relay.
        token: Bot credential sent in the identify frame.
        heartbeat: WebSocket ping interval in seconds.
        identify_timeout: Seconds to wait for ready / invalid_session.
    """

    INITIAL_RECONNECT_DELAY = 5
    MAX_RECONNECT_DELAY = 300

    def __init__(
        self,
        url: str,
        token: str,
        heartbeat: float = 30,
        identify_timeout: float = 30,
    ):
        super().__init__()
        self.url = url
        self._token = token
        self._heartbeat = heartbeat
        self._identify_timeout = identify_timeout
        self.session: Optional[aiohttp.ClientSession] = None
        self.ws: Optional[aiohttp.ClientWebSocketResponse] = None
        self.running = False
        self.user: Optional[Dict[str, Any]] = None

    async def connect(self) -> None:
        """Open the socket and identify.

        Raises:
            GatewayAuthError: The relay rejected the token.
            GatewayError: The connection or handshake failed.
        """
        if not self.url:
            raise GatewayError("No gateway URL configured")
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession()
        logger.info("gateway_connecting", url=self.url)
        try:
            self.ws = await self.session.ws_connect(self.url, heartbeat=self._heartbeat)
            await self.ws.send_json({"op": "identify", "token": self._token})
            frame = await self.ws.receive_json(timeout=self._identify_timeout)
        except (aiohttp.ClientError, asyncio.TimeoutError, TypeError, ValueError) as e:
            await self._close_socket()
            raise GatewayError(f"Gateway handshake failed: {type(e).__name__}: {e}") from e

        op = frame.get("op") if isinstance(frame, dict) else None
        if op == "invalid_session":
            await self._close_socket()
            raise GatewayAuthError(
                "Gateway rejected credentials", reason=frame.get("reason", "")
            )
        if op != "ready":
            await self._close_socket()
            raise GatewayError(f"Unexpected handshake frame: {op!r}")

        self.running = True
        self.user = frame.get("user") or {}
        logger.info("gateway_connected", user=self.user.get("username"))
        await self._fire_ready(self.user)

    async def run(self) -> None:
        """Receive frames until close(); reconnect with backoff on errors.

        Raises:
            GatewayAuthError: Credentials were rejected on a reconnect.
        """
        reconnect_delay = self.INITIAL_RECONNECT_DELAY
        while self.running:
            try:
                if self.ws is None or self.ws.closed:
                    await self.connect()
                    reconnect_delay = self.INITIAL_RECONNECT_DELAY
                await self._receive_loop()
                if self.running:
                    logger.info("gateway_disconnected", retry_delay=1)
                    await asyncio.sleep(1)
            except asyncio.CancelledError:
                break
            except GatewayAuthError:
                raise
            except Exception as e:
                logger.error("gateway_exception", error=str(e), error_type=type(e).__name__)
                await self._close_socket()
                if not self.running:
                    break
                await asyncio.sleep(reconnect_delay)
                reconnect_delay = min(reconnect_delay * 2, self.MAX_RECONNECT_DELAY)

    async def _receive_loop(self) -> None:
        async for msg in self.ws:
            if msg.type == aiohttp.WSMsgType.TEXT:
                try:
                    frame = json.loads(msg.data)
                except json.JSONDecodeError:
                    logger.warning("invalid_json", data=msg.data[:100])
                    continue
                if self._handle_frame(frame) is False:
                    break
            elif msg.type == aiohttp.WSMsgType.ERROR:
                logger.error("websocket_error", error=str(self.ws.exception()))
                break
            elif msg.type in (aiohttp.WSMsgType.CLOSE, aiohttp.WSMsgType.CLOSED):
                logger.info("websocket_closed")
                break
        await self._close_socket()

    def _handle_frame(self, frame: Any) -> Optional[bool]:
        """Process one relay frame. Returns False to force a reconnect."""
        if not isinstance(frame, dict):
            logger.warning("gateway_frame_invalid", type=type(frame).__name__)
            return None
        op = frame.get("op")
        if op == "interaction":
            data = frame.get("d")
            if not isinstance(data, dict):
                logger.warning("gateway_interaction_invalid")
                return None
            self._emit(Interaction.from_payload(data, self.respond))
        elif op == "reconnect":
            logger.info("gateway_reconnect_requested")
            return False
        else:
            logger.debug("gateway_frame_ignored", op=op)
        return None

    async def respond(self, interaction: Interaction, response: Dict[str, Any]) -> None:
        """Send a response frame for ``interaction``.

        Raises:
            GatewayError: The socket is not open.
        """
        if self.ws is None or self.ws.closed:
            raise GatewayError("Gateway not connected", interaction_id=interaction.id)
        await self.ws.send_json({
            "op": "interaction_response",
            "d": {
                "interaction_id": interaction.id,
                "token": interaction.token,
                **response,
            },
        })

    async def set_presence(self, activity: str) -> None:
        if self.ws is None or self.ws.closed:
            raise GatewayError("Gateway not connected")
        await self.ws.send_json({"op": "presence", "d": {"activity": activity}})

    async def _close_socket(self) -> None:
        if self.ws is not None and not self.ws.closed:
            await self.ws.close()
        self.ws = None

    async def close(self) -> None:
        self.running = False
        await self._close_socket()
        if self.session and not self.session.closed:
            await self.session.close()
        self.session = None
