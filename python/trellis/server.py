"""
Trellis Server

aiohttp application serving Trellis pages. Handles first paint over
plain HTTP and every later render over a WebSocket.

Routes:
    GET <page path>       first-paint HTML for a registered page
    GET /websocket        the render protocol (one handler per socket)
    GET /static/...       the client reconciler
"""

from typing import Any, Awaitable, Callable, Optional
from pathlib import Path
from html import escape
from string import Template
import logging
import time

from aiohttp import WSMsgType, web

from .builder import RenderResult, build_page
from .config import Settings
from .handler import ConnectionHandler
from .markup import render_elements, render_navbar, script_json
from .registry import Page, PageFunction, PageRegistry
from .state import EngineState

logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).parent / "static"
STATIC_PREFIX = "/static"

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]

PAGE_TEMPLATE = Template('''<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>$title</title>
    <link rel="stylesheet" href="https://unpkg.com/spectre.css/dist/spectre.min.css">
    <link rel="stylesheet" href="https://unpkg.com/spectre.css/dist/spectre-icons.min.css">
    <link rel="stylesheet" href="https://unpkg.com/gridjs/dist/theme/mermaid.min.css">
    <style>
        body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif; margin: 0; }
        #navbar-container { display: none; padding: 0.5rem 1rem; border-bottom: 1px solid #eee; }
        #navbar-container.navbar-visible { display: flex; }
        #layout-container { display: flex; height: calc(100vh - 3rem); }
        #sidebar { display: none; width: 18rem; padding: 1rem; overflow-y: auto; background: #f7f8f9; }
        #layout-container.with-sidebar #sidebar { display: block; }
        #app { flex: 1; padding: 1rem 2rem; overflow-y: auto; }
        .navbar-link-active { font-weight: bold; }
        .error-display { padding: 1rem; border: 1px solid #e83e8c; background: rgba(232, 62, 140, 0.05); }
        body.dark-mode { background: #1e1e1e; color: #ddd; }
        body.dark-mode #sidebar { background: #252526; }
    </style>
</head>
<body>
    <header id="navbar-container" class="navbar$navbar_class">$navbar</header>
    <div id="layout-container" class="$layout_class">
        <aside id="sidebar">$sidebar</aside>
        <main id="app">$main</main>
    </div>
    <script>
        window.TRELLIS_INTERACTIVE = $interactive;
        window.TRELLIS_NAVBAR = $navbar_json;
        window.TRELLIS_WEBSOCKET_PATH = $websocket_path;
    </script>
    <script src="https://cdn.jsdelivr.net/npm/chart.js"></script>
    <script src="https://unpkg.com/gridjs/dist/gridjs.umd.js"></script>
    <script src="https://cdn.jsdelivr.net/npm/litepicker/dist/litepicker.js"></script>
    <script src="https://cdn.jsdelivr.net/npm/mathjax@3/es5/tex-mml-chtml.js" async></script>
    <script src="$static_prefix/trellis.js"></script>
</body>
</html>''')


@web.middleware
async def request_logger(request: web.Request, handler: Handler) -> web.StreamResponse:
    """Log ``METHOD path - status in Nms`` for page requests."""
    start = time.monotonic()
    status = 500
    try:
        response = await handler(request)
        status = response.status
        return response
    except web.HTTPException as e:
        status = e.status
        raise
    finally:
        if not request.path.startswith(STATIC_PREFIX + "/") and not request.get("websocket"):
            elapsed_ms = (time.monotonic() - start) * 1000
            logger.info("%s %s - %d in %.2fms", request.method, request.path, status, elapsed_ms)


class App:
    """
    A Trellis application.

    The composition root: owns the ``EngineState`` every connection
    shares and wires it into the aiohttp routes.

    Example:
        from trellis import App

        app = App()

        @app.page("/")
        def home(ui):
            ui.h1("Counter")
            if ui.button(id="inc", text="+1"):
                ui.state["count"] = ui.state.get("count", 0) + 1
            ui.p(f"Count: {ui.state.get('count', 0)}")

        app.run()
    """

    def __init__(self, settings: Optional[Settings] = None, engine: Optional[EngineState] = None) -> None:
        self.settings = settings or Settings.from_env()
        self.engine = engine or EngineState(PageRegistry())

    @property
    def pages(self) -> PageRegistry:
        return self.engine.pages

    def add_page(self, path: str, render: PageFunction, interactive: bool = True) -> Page:
        return self.engine.pages.register(path, render, interactive=interactive)

    def page(self, path: str, interactive: bool = True) -> Callable[[PageFunction], PageFunction]:
        """
        Decorator registering a page description.

        Args:
            path: Route path.
            interactive: False for pages rendered once, without a socket.
        """
        def decorator(render: PageFunction) -> PageFunction:
            self.add_page(path, render, interactive=interactive)
            return render
        return decorator

    def render_document(self, page: Page, result: RenderResult) -> str:
        """Wrap a first-paint render in the HTML page shell."""
        has_sidebar = bool(result.sidebar_elements)
        return PAGE_TEMPLATE.substitute(
            title=escape(self.settings.title),
            navbar=render_navbar(result.navbar, page.path),
            navbar_class=" navbar-visible" if result.navbar else "",
            layout_class="with-sidebar" if has_sidebar else "",
            sidebar=render_elements(result.sidebar_elements),
            main=render_elements(result.elements),
            interactive="true" if page.interactive else "false",
            navbar_json=script_json(result.navbar),
            websocket_path=script_json(self.settings.websocket_path),
            static_prefix=STATIC_PREFIX,
        )

    async def handle_page(self, request: web.Request) -> web.Response:
        page = self.engine.pages.get(request.path)
        if page is None:
            raise web.HTTPNotFound()
        # First paint is stateless: empty state, no pending actions.
        result = build_page(page.render)
        return web.Response(text=self.render_document(page, result), content_type="text/html")

    async def handle_websocket(self, request: web.Request) -> web.WebSocketResponse:
        request["websocket"] = True
        ws = web.WebSocketResponse(heartbeat=self.settings.heartbeat_s,
                                   max_msg_size=self.settings.max_message_bytes)
        await ws.prepare(request)

        handler = ConnectionHandler(self.engine, ws)
        handler.open()
        try:
            async for msg in ws:
                if msg.type == WSMsgType.TEXT:
                    await handler.handle(msg.data)
                elif msg.type == WSMsgType.ERROR:
                    logger.warning("WebSocket %s closed with exception %s",
                                   handler.connection_id, ws.exception())
                else:
                    logger.warning("Dropping %s frame on %s: only text frames are handled",
                                   msg.type.name, handler.connection_id)
        finally:
            handler.close()
        return ws

    def make_app(self) -> web.Application:
        """Build the aiohttp application."""
        app = web.Application(middlewares=[request_logger])
        app.router.add_get(self.settings.websocket_path, self.handle_websocket)
        app.router.add_static(STATIC_PREFIX, STATIC_DIR)
        app.router.add_get("/{tail:.*}", self.handle_page)
        return app

    def run(self, host: Optional[str] = None, port: Optional[int] = None, **kwargs: Any) -> None:
        """Run the application server until interrupted."""
        host = host or self.settings.host
        port = port or self.settings.port
        logger.info("Starting Trellis server at http://%s:%d (%d pages)", host, port, len(self.pages))
        web.run_app(self.make_app(), host=host, port=port, print=None, **kwargs)


def run_app(app: App, host: Optional[str] = None, port: Optional[int] = None) -> None:
    """Run a Trellis app as a web application."""
    app.run(host, port)
