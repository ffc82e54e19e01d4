"""
Tests for the Trellis connection handler.

A fake transport records every frame so the full message cycle (parse,
mutate, render, sweep, send) can be checked without a server.
"""

import json

import pytest


class FakeTransport:
    """Collects sent frames; can be closed or made to fail."""

    def __init__(self):
        self.closed = False
        self.sent = []
        self.reset = False

    async def send_str(self, data):
        if self.reset:
            raise ConnectionResetError("peer went away")
        self.sent.append(json.loads(data))


def counter_page(ui):
    if ui.button(id="inc", text="+1"):
        ui.state.write("count", ui.state.read("count", 0) + 1)
    ui.p(f"Count: {ui.state.read('count', 0)}")
    ui.slider(id="size", label="Size", min=0, max=10)


def make_handler(pages=None, transport=None):
    from trellis.handler import ConnectionHandler
    from trellis.state import EngineState

    engine = EngineState()
    engine.pages.register("/", counter_page)
    for path, render in (pages or {}).items():
        engine.pages.register(path, render)
    handler = ConnectionHandler(engine, transport or FakeTransport())
    handler.open()
    return handler


def texts(message):
    return [el["text"] for el in message["elements"] if el["type"] == "paragraph"]


class TestLifecycle:
    """Tests for opened/bound/closed transitions."""

    def test_open_then_bind(self):
        from trellis.handler import ConnectionState

        handler = make_handler()
        assert handler.state is ConnectionState.OPENED
        assert handler.session_id in handler.engine.sessions

        handler.engine.bind_connection(handler.connection_id, "/")
        assert handler.state is ConnectionState.BOUND

    def test_close_is_idempotent_and_clears_session(self):
        from trellis.handler import ConnectionState

        handler = make_handler()
        session_id = handler.session_id
        handler.close()
        handler.close()

        assert handler.state is ConnectionState.CLOSED
        assert session_id not in handler.engine.sessions
        assert handler.connection_id not in handler.engine.pending

    @pytest.mark.asyncio
    async def test_message_after_close_ignored(self):
        handler = make_handler()
        handler.close()

        reply = await handler.handle('{"type": "client_ready", "path": "/"}')
        assert reply is None
        assert handler.transport.sent == []


class TestMessageCycle:
    """Tests for the parse, mutate, render, send cycle."""

    @pytest.mark.asyncio
    async def test_client_ready_renders(self):
        handler = make_handler()
        reply = await handler.handle('{"type": "client_ready", "path": "/"}')

        assert reply["type"] == "render"
        assert texts(reply) == ["Count: 0"]
        assert handler.transport.sent == [reply]

    @pytest.mark.asyncio
    async def test_button_press_fires_once(self):
        handler = make_handler()
        await handler.handle('{"type": "client_ready", "path": "/"}')

        reply = await handler.handle('{"type": "button_press", "path": "/", "widget_id": "inc"}')
        assert texts(reply) == ["Count: 1"]

        reply = await handler.handle('{"type": "client_ready", "path": "/"}')
        assert texts(reply) == ["Count: 1"]

    @pytest.mark.asyncio
    async def test_update_persists(self):
        handler = make_handler()
        await handler.handle('{"type": "update", "path": "/", "widget_id": "size", "value": "7"}')
        reply = await handler.handle('{"type": "client_ready", "path": "/"}')

        slider = [el for el in reply["elements"] if el["type"] == "slider"][0]
        assert slider["value"] == "7.0"

    @pytest.mark.asyncio
    async def test_number_update_coercion(self):
        """Number input text should read back as int, then float."""
        seen = []

        def amount(ui):
            seen.append(ui.number_input(id="amount", label="Amount"))

        handler = make_handler({"/amount": amount})
        await handler.handle('{"type": "update", "path": "/amount", "widget_id": "amount", "value": "3"}')
        await handler.handle('{"type": "update", "path": "/amount", "widget_id": "amount", "value": "3.5"}')

        assert seen == [3, 3.5]
        assert isinstance(seen[0], int)
        assert isinstance(seen[1], float)

    @pytest.mark.asyncio
    async def test_path_latches(self):
        """Later paths should be ignored once the connection is bound."""
        handler = make_handler({"/other": lambda ui: ui.p("other")})
        await handler.handle('{"type": "client_ready", "path": "/"}')
        reply = await handler.handle('{"type": "navigate", "path": "/other"}')

        assert texts(reply) == ["Count: 0"]
        assert handler.connection.path == "/"

    @pytest.mark.asyncio
    async def test_message_before_bind_without_path_dropped(self):
        handler = make_handler()
        reply = await handler.handle('{"type": "update", "widget_id": "size", "value": 1}')

        assert reply is None
        assert handler.transport.sent == []

    @pytest.mark.asyncio
    async def test_unconsumed_press_is_swept(self):
        """A press for a widget the page never asks about should not linger."""
        handler = make_handler()
        await handler.handle('{"type": "button_press", "path": "/", "widget_id": "ghost"}')

        assert len(handler.engine.pending.actions(handler.connection_id)) == 0

    @pytest.mark.asyncio
    async def test_malformed_json_dropped(self):
        handler = make_handler()
        reply = await handler.handle("{not json")

        assert reply is None
        assert handler.transport.sent == []

        reply = await handler.handle('{"type": "client_ready", "path": "/"}')
        assert reply is not None

    @pytest.mark.asyncio
    async def test_unknown_page_sends_empty_render(self):
        handler = make_handler()
        reply = await handler.handle('{"type": "client_ready", "path": "/missing"}')

        assert reply == {"type": "render", "elements": [], "sidebar_elements": [], "navbar": None}


class TestErrors:
    """Tests for error containment and closed transports."""

    @pytest.mark.asyncio
    async def test_page_error_sent_as_error_message(self):
        def broken(ui):
            ui.p("partial")
            raise RuntimeError("broken page")

        handler = make_handler({"/broken": broken})
        reply = await handler.handle('{"type": "client_ready", "path": "/broken"}')

        assert set(reply) == {"error"}
        assert reply["error"]["message"] == "broken page"

    @pytest.mark.asyncio
    async def test_unserializable_tree_sent_as_error(self):
        """Data JSON cannot encode should reach the browser as an error, not drop the socket."""
        def bad_keys(ui):
            ui.chart(id="c", data={("a", "b"): 1})

        handler = make_handler({"/chart": bad_keys})
        reply = await handler.handle('{"type": "client_ready", "path": "/chart"}')

        assert set(reply) == {"error"}
        assert reply["error"]["type"] == "error_display"
        assert "TypeError" in reply["error"]["backtrace"]
        assert handler.transport.sent == [reply]

    @pytest.mark.asyncio
    async def test_reference_cycle_sent_as_error(self):
        def cyclic(ui):
            rows = []
            rows.append(rows)
            ui.table(data=[], headers=rows)

        handler = make_handler({"/cycle": cyclic})
        reply = await handler.handle('{"type": "client_ready", "path": "/cycle"}')

        assert set(reply) == {"error"}
        assert handler.transport.sent == [reply]

    @pytest.mark.asyncio
    async def test_other_sessions_unaffected_by_error(self):
        from trellis.handler import ConnectionHandler

        def broken(ui):
            raise RuntimeError("broken page")

        first = make_handler({"/broken": broken})
        second = ConnectionHandler(first.engine, FakeTransport())
        second.open()

        await first.handle('{"type": "client_ready", "path": "/broken"}')
        reply = await second.handle('{"type": "client_ready", "path": "/"}')

        assert reply["type"] == "render"
        assert texts(reply) == ["Count: 0"]

    @pytest.mark.asyncio
    async def test_sessions_isolated(self):
        from trellis.handler import ConnectionHandler

        first = make_handler()
        second = ConnectionHandler(first.engine, FakeTransport())
        second.open()

        await first.handle('{"type": "button_press", "path": "/", "widget_id": "inc"}')
        reply = await second.handle('{"type": "client_ready", "path": "/"}')

        assert texts(reply) == ["Count: 0"]

    @pytest.mark.asyncio
    async def test_send_on_closed_transport_is_noop(self):
        transport = FakeTransport()
        handler = make_handler(transport=transport)
        transport.closed = True

        assert await handler.send({"type": "render"}) is False
        assert transport.sent == []

    @pytest.mark.asyncio
    async def test_send_connection_reset_is_noop(self):
        transport = FakeTransport()
        transport.reset = True
        handler = make_handler(transport=transport)

        assert await handler.send({"type": "render"}) is False
