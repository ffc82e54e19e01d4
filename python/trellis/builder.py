"""
Trellis Element Tree Builder

This module runs a page description against one page's state and turns
the component calls it makes into an ordered element tree.

A page description is a plain function taking the builder:

    def page(ui):
        ui.h1("Settings")
        with ui.sidebar():
            ui.p("Navigation")
        name = ui.text_input(id="name", label="Name")
        if ui.button(id="greet", text="Greet"):
            ui.alert(f"Hello, {name}!", style="success")
        ui.columns(
            lambda ui: ui.p("left"),
            lambda ui: ui.p("right"),
        )

Output routing is an explicit stack of buffers. Layout containers push a
fresh buffer, run their nested block against the same builder, and pop it
back as the container's children, so nested sub-trees are isolated from
their siblings and from the parent whatever the nesting depth.
"""

from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union
from contextlib import contextmanager
from dataclasses import dataclass, field
import hashlib
import logging
import re
import traceback

from .element import Element
from .state import PageState, PendingActions
from .widgets import DisplayWidgets, InputWidgets

logger = logging.getLogger(__name__)

Block = Callable[["ElementTreeBuilder"], Any]
TabBlocks = Union[Mapping[str, Block], Iterable[Tuple[str, Block]]]

_WHITESPACE = re.compile(r"\s+")


@dataclass
class RenderResult:
    """
    The outcome of one render pass.

    Attributes:
        elements: Main content, in call order.
        sidebar_elements: Side content, in call order.
        navbar: Navbar configuration, or None if the page declared none.
        error: The ``error_display`` element when the page raised. In that
            case ``elements`` holds exactly this element.
    """
    elements: List[Element] = field(default_factory=list)
    sidebar_elements: List[Element] = field(default_factory=list)
    navbar: Optional[Dict[str, Any]] = None
    error: Optional[Element] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class NavbarBuilder:
    """Collects the navbar brand and links declared by a page."""

    def __init__(self) -> None:
        self.brand_text: Optional[str] = None
        self.links: List[Dict[str, str]] = []

    def brand(self, text: str) -> None:
        self.brand_text = text

    def link(self, text: str, href: str) -> None:
        self.links.append({"text": text, "href": href})

    def to_config(self) -> Dict[str, Any]:
        return {"brand": self.brand_text, "links": list(self.links)}


def expander_id(label: str) -> str:
    """Stable expander id: whitespace runs to ``_``, lower-cased."""
    return "expander_" + _WHITESPACE.sub("_", label).lower()


def tabs_id(labels: Sequence[str]) -> str:
    """Stable tab group id derived from the ordered labels."""
    digest = hashlib.sha1("\x1f".join(labels).encode("utf-8")).hexdigest()
    return "tabs_" + digest[:12]


class ElementTreeBuilder(DisplayWidgets, InputWidgets):
    """
    Executes a page description and records the elements it produces.

    The builder is the explicit context every component call goes
    through. It holds the page's ``PageState`` (widget values persisting
    across render passes) and the connection's ``PendingActions`` (one-shot
    presses waiting to be observed).

    A builder runs one render pass; create a new one for the next pass.
    """

    def __init__(self, state: Optional[PageState] = None, pending: Optional[PendingActions] = None) -> None:
        """
        Create a builder for one render pass.

        Args:
            state: The page state to read widget values from. A fresh,
                empty state is used when omitted (first paint).
            pending: The connection's pending actions. Empty when omitted.
        """
        self.state = state if state is not None else PageState()
        self.pending = pending if pending is not None else PendingActions()
        self.elements: List[Element] = []
        self.sidebar_elements: List[Element] = []
        self.navbar_config: Optional[Dict[str, Any]] = None
        self._captures: List[List[Element]] = []
        self._in_sidebar = False
        self._used = False

    # ------------------------------------------------------------------
    # Output routing
    # ------------------------------------------------------------------

    def _target(self) -> List[Element]:
        if self._captures:
            return self._captures[-1]
        if self._in_sidebar:
            return self.sidebar_elements
        return self.elements

    def _emit(self, type_: str, **attrs: Any) -> Element:
        element = Element(type_, attrs)
        self._target().append(element)
        return element

    def consume(self, widget_id: str) -> bool:
        """Test-and-clear the pending action for ``widget_id``."""
        return self.pending.test_and_clear(widget_id)

    @contextmanager
    def capture_scope(self):
        """Push a fresh output buffer; yields the list it collects into."""
        buffer: List[Element] = []
        self._captures.append(buffer)
        try:
            yield buffer
        finally:
            self._captures.pop()

    def capture(self, block: Block) -> List[Element]:
        """
        Run ``block`` into an isolated buffer and return what it produced.

        Args:
            block: Called with this builder.

        Returns:
            The elements the block emitted, in call order.
        """
        with self.capture_scope() as buffer:
            block(self)
        return buffer

    @contextmanager
    def sidebar(self):
        """
        Route everything emitted inside the ``with`` block to the sidebar.

        Containers opened inside the sidebar still capture their own
        children; the container element itself lands in the sidebar. A
        sidebar opened inside a captured container escapes to the page's
        sidebar.
        """
        saved_captures, saved_sidebar = self._captures, self._in_sidebar
        self._captures, self._in_sidebar = [], True
        try:
            yield self
        finally:
            self._captures, self._in_sidebar = saved_captures, saved_sidebar

    @contextmanager
    def navbar(self):
        """Declare the page navbar: ``with ui.navbar() as nav: nav.brand(...)``."""
        nav = NavbarBuilder()
        yield nav
        self.navbar_config = nav.to_config()

    # ------------------------------------------------------------------
    # Layout containers
    # ------------------------------------------------------------------

    def columns(self, *blocks: Block) -> Element:
        """Lay ``blocks`` out side by side, one captured column each."""
        captured = [self.capture(block) for block in blocks]
        return self._emit("columns_container", columns=captured)

    def form_group(self, label: str, block: Block) -> Element:
        content = self.capture(block)
        return self._emit("form_group", label=label, content=content)

    def expander(self, label: str, block: Block, expanded: bool = False) -> bool:
        """
        A collapsible section whose body only runs while expanded.

        Clicking the header sends a press for the expander id; the press
        flips the persisted state before the body is considered.

        Returns:
            Whether the expander is open in this render pass.
        """
        eid = expander_id(label)
        is_expanded = bool(self.state.read(eid, expanded))
        if self.consume(eid):
            is_expanded = not is_expanded
            self.state.write(eid, is_expanded)
        content = self.capture(block) if is_expanded else []
        self._emit("expander", id=eid, label=label, expanded=is_expanded, content=content)
        return is_expanded

    def tabs(self, blocks: TabBlocks) -> str:
        """
        A tab group; only the active tab's block runs.

        Args:
            blocks: Ordered ``{label: block}`` mapping, or ``(label, block)``
                pairs.

        Returns:
            The active tab label.
        """
        items = list(blocks.items()) if isinstance(blocks, Mapping) else list(blocks)
        if not items:
            raise ValueError("tabs() needs at least one tab")
        labels = [label for label, _ in items]
        group_id = tabs_id(labels)

        active = self.state.read(group_id)
        if active not in labels:
            active = labels[0]
        for label in labels:
            if self.consume(f"{group_id}_{label}"):
                active = label
                self.state.write(group_id, active)

        content = self.capture(dict(items)[active])
        self._emit("tabs", id=group_id, labels=labels, active_tab=active, content=content)
        return active

    # ------------------------------------------------------------------
    # Memoization
    # ------------------------------------------------------------------

    def cache(self, key: str, producer: Callable[[], Any]) -> Any:
        """Compute ``producer()`` once per session and page; reuse after."""
        return self.state.memoize(key, producer)

    # ------------------------------------------------------------------
    # Running a page
    # ------------------------------------------------------------------

    def build(self, page: Block) -> RenderResult:
        """
        Run ``page`` once and return the finished tree.

        Exceptions raised by the page never propagate: the partial tree is
        discarded and the result carries a single ``error_display``
        element instead.
        """
        if self._used:
            raise RuntimeError("an ElementTreeBuilder runs a single render pass")
        self._used = True
        try:
            page(self)
        except Exception as exc:
            logger.exception("Page raised during render: %s", exc)
            error = error_element(exc)
            return RenderResult(elements=[error], error=error)
        return RenderResult(
            elements=self.elements,
            sidebar_elements=self.sidebar_elements,
            navbar=self.navbar_config,
        )


def error_element(exc: BaseException) -> Element:
    """The ``error_display`` element describing ``exc``."""
    return Element("error_display", {
        "message": str(exc) or type(exc).__name__,
        "backtrace": "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
    })


def build_page(page: Block, state: Optional[PageState] = None,
               pending: Optional[PendingActions] = None) -> RenderResult:
    """Run one render pass of ``page``; see ``ElementTreeBuilder.build``."""
    return ElementTreeBuilder(state, pending).build(page)
