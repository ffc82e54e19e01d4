"""
Trellis Connection Handler

One ``ConnectionHandler`` serves one live WebSocket. Its lifecycle is

    OPENED  --first message with a path-->  BOUND  --close-->  CLOSED

Every inbound message follows the same steps: parse, mutate the page
state under the session lock, re-run the page description, drop the
pending actions the render did not consume, and send the new tree back.
The handler is transport-agnostic: anything with an awaitable
``send_str(text)`` and a ``closed`` attribute will do (an aiohttp
``WebSocketResponse`` in production).
"""

from typing import Any, Dict, Optional, Protocol, Tuple
from enum import Enum
import logging
import uuid

from .builder import ElementTreeBuilder
from .protocol import (ClientMessage, MessageType, ProtocolError, empty_render, encode,
                       error_message, render_message)
from .state import Connection, EngineState, PageState

logger = logging.getLogger(__name__)


class Transport(Protocol):
    closed: bool

    async def send_str(self, data: str) -> None: ...


class ConnectionState(Enum):
    OPENED = "opened"
    BOUND = "bound"
    CLOSED = "closed"


class ConnectionHandler:
    """
    Drives one connection against the shared ``EngineState``.

    Example:
        handler = ConnectionHandler(engine, ws)
        handler.open()
        async for msg in ws:
            await handler.handle(msg.data)
        handler.close()
    """

    def __init__(self, engine: EngineState, transport: Transport,
                 connection_id: Optional[str] = None) -> None:
        self.engine = engine
        self.transport = transport
        self.connection_id = connection_id or uuid.uuid4().hex
        self.connection: Optional[Connection] = None
        self._closed = False

    @property
    def state(self) -> ConnectionState:
        if self._closed:
            return ConnectionState.CLOSED
        if self.connection is not None and self.connection.bound:
            return ConnectionState.BOUND
        return ConnectionState.OPENED

    @property
    def session_id(self) -> Optional[str]:
        return self.connection.session_id if self.connection else None

    def open(self) -> Connection:
        """Create this connection's session and register it."""
        if self.connection is None:
            self.connection = self.engine.open_connection(self.connection_id)
        return self.connection

    def close(self) -> None:
        """Unregister the connection; safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        if self.connection is not None:
            self.engine.close_connection(self.connection_id)

    async def handle(self, raw: str) -> Optional[Dict[str, Any]]:
        """
        Handle one raw text frame.

        Malformed frames are logged and dropped; the connection stays open.

        Returns:
            The message sent back, or None if nothing was sent.
        """
        try:
            msg = ClientMessage.parse(raw)
        except ProtocolError as e:
            logger.warning("Dropping malformed message on %s: %s", self.connection_id, e)
            return None

        reply = self.process(msg)
        if reply is None:
            return None
        reply, text = self.serialize(reply)
        await self.send_text(text)
        return reply

    def process(self, msg: ClientMessage) -> Optional[Dict[str, Any]]:
        """Apply ``msg`` and return the render message to send back."""
        if self.state is ConnectionState.CLOSED or self.connection is None:
            return None

        path = self.engine.bind_connection(self.connection_id, msg.path)
        if path is None:
            logger.warning("Dropping %s on %s: no path bound yet", msg.type.value, self.connection_id)
            return None

        try:
            session = self.engine.sessions.session(self.connection.session_id)
        except KeyError:
            logger.debug("Session for %s already closed", self.connection_id)
            return None

        with session.lock:
            page_state = session.page(path)
            if msg.type is MessageType.UPDATE:
                page_state.write(msg.widget_id, msg.value)
            elif msg.type is MessageType.BUTTON_PRESS:
                self.engine.pending.mark(self.connection_id, msg.widget_id)
            return self.render(path, page_state)

    def render(self, path: str, page_state: PageState) -> Dict[str, Any]:
        """Run the page for ``path`` and sweep unconsumed actions."""
        page = self.engine.pages.get(path)
        if page is None:
            logger.warning("No page registered for path: '%s'", path)
            self.engine.pending.sweep(self.connection_id)
            return empty_render()

        pending = self.engine.pending.actions(self.connection_id)
        result = ElementTreeBuilder(page_state, pending).build(page.render)
        self.engine.pending.sweep(self.connection_id)
        try:
            return render_message(result)
        except (TypeError, ValueError, RecursionError) as exc:
            logger.exception("Render of %s on %s is not serializable: %s", path, self.connection_id, exc)
            return error_message(exc)

    def serialize(self, message: Dict[str, Any]) -> Tuple[Dict[str, Any], str]:
        """
        Encode an outbound message.

        A tree JSON cannot represent (non-string keys, reference cycles) is
        replaced by an error message, so the browser shows the failure
        instead of losing the socket.

        Returns:
            The message actually encoded and its text.
        """
        try:
            return message, encode(message)
        except (TypeError, ValueError, RecursionError) as exc:
            logger.exception("Render on %s is not serializable: %s", self.connection_id, exc)
            error = error_message(exc)
            return error, encode(error)

    async def send(self, message: Dict[str, Any]) -> bool:
        """Send a message; a write to a closed transport is a no-op."""
        _, text = self.serialize(message)
        return await self.send_text(text)

    async def send_text(self, text: str) -> bool:
        if self._closed or getattr(self.transport, "closed", False):
            logger.debug("Skipping send on closed connection %s", self.connection_id)
            return False
        try:
            await self.transport.send_str(text)
        except ConnectionResetError as e:
            logger.debug("Write after close on %s ignored: %s", self.connection_id, e)
            return False
        return True
