"""
Trellis - a server-driven reactive UI engine for Python.

A page is described once, as a plain function that receives a builder and
calls component methods on it. Every browser interaction re-runs the
function against the user's stored widget values and sends the resulting
element tree back over a WebSocket.

Example usage:

    from trellis import App

    app = App()

    @app.page("/")
    def home(ui):
        with ui.sidebar():
            ui.h3("Options")
            unit = ui.selectbox(id="unit", label="Unit", options=["m", "ft"])

        ui.h1("Converter")
        value = ui.number_input(id="value", label="Value", default=1)
        ui.p(f"{value} {unit}")

        if ui.button(id="reset", text="Reset"):
            ui.state.write("value", 0)

    app.run()
"""

from .builder import ElementTreeBuilder, NavbarBuilder, RenderResult, build_page
from .config import Settings, configure_logging
from .element import Element
from .handler import ConnectionHandler, ConnectionState
from .protocol import ClientMessage, MessageType, ProtocolError, render_message
from .registry import Page, PageRegistry
from .server import App, run_app
from .state import (
    Connection,
    ConnectionRegistry,
    EngineState,
    PageState,
    PendingActions,
    PendingActionTracker,
    SessionStore,
)

__version__ = "0.1.0"
__all__ = [
    "App",
    "run_app",
    "ElementTreeBuilder",
    "NavbarBuilder",
    "RenderResult",
    "build_page",
    "Element",
    "ConnectionHandler",
    "ConnectionState",
    "ClientMessage",
    "MessageType",
    "ProtocolError",
    "render_message",
    "Page",
    "PageRegistry",
    "Connection",
    "ConnectionRegistry",
    "EngineState",
    "PageState",
    "PendingActions",
    "PendingActionTracker",
    "SessionStore",
    "Settings",
    "configure_logging",
]
