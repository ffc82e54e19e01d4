"""
Trellis Widgets

Display and input components, mixed into ``ElementTreeBuilder``.

Every component appends exactly one element to the builder's current
output buffer. Input components read their value from the page state
(falling back to their default without storing it) and return it, so a
page description can branch on what the user entered:

    threshold = ui.slider(id="threshold", label="Threshold", min=0, max=10)
    if threshold > 5:
        ui.alert("High threshold", style="warning")
"""

from typing import Any, Callable, Dict, List, Optional, Sequence, TYPE_CHECKING
from datetime import date, timedelta
import re

if TYPE_CHECKING:
    from .element import Element

_INT_PREFIX = re.compile(r"\s*[-+]?\d+")
_FLOAT_PREFIX = re.compile(r"\s*[-+]?(\d+\.?\d*|\.\d+)([eE][-+]?\d+)?")

CHART_DEFAULTS: Dict[str, Any] = {"animation": {"duration": 0}, "responsive": True}


def coerce_number(value: Any):
    """
    Convert a stored number-input value, directed by its content.

    The value's text decides the type: with a ``"."`` it becomes a float,
    otherwise an integer. Parsing is lenient: only the leading numeric
    part counts and text without one reads as zero. Floats pass through
    unchanged, whatever their printed form.

    >>> coerce_number("3"), coerce_number("3.5"), coerce_number("")
    (3, 3.5, 0)
    """
    if isinstance(value, float):
        return value
    text = str(value)
    if "." in text:
        match = _FLOAT_PREFIX.match(text)
        return float(match.group()) if match else 0.0
    match = _INT_PREFIX.match(text)
    return int(match.group()) if match else 0


def coerce_float(value: Any) -> float:
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    match = _FLOAT_PREFIX.match(str(value))
    return float(match.group()) if match else 0.0


def parse_date(text: Any) -> Optional[date]:
    try:
        return date.fromisoformat(str(text).strip())
    except ValueError:
        return None


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Merge ``override`` into a copy of ``base``, recursing into dicts."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(merged.get(key), dict) and isinstance(value, dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _heading(level: int) -> Callable[..., "Element"]:
    """Create the builder method for ``<h{level}>`` headings."""
    def heading(self, text: str, id: Optional[str] = None) -> "Element":
        return self._emit(f"heading{level}", text=text, id=id)

    heading.__name__ = f"h{level}"
    heading.__doc__ = f"A level {level} heading."
    return heading


class DisplayWidgets:
    """Stateless components: text, media, tables and charts."""

    h1 = _heading(1)
    h2 = _heading(2)
    h3 = _heading(3)
    h4 = _heading(4)
    h5 = _heading(5)
    h6 = _heading(6)

    def p(self, text: str) -> "Element":
        return self._emit("paragraph", text=text)

    def link(self, text: str, href: str) -> "Element":
        return self._emit("link", text=text, href=href)

    def alert(self, text: str, style: str = "primary") -> "Element":
        """A toast; ``style`` is one of primary, success, warning, error."""
        return self._emit("alert", text=text, style=style)

    def image(self, src: str, caption: Optional[str] = None) -> "Element":
        return self._emit("image", src=src, caption=caption)

    def code(self, text: str, language: Optional[str] = None) -> "Element":
        return self._emit("code", text=text, language=language)

    def latex(self, text: str) -> "Element":
        return self._emit("latex", text=text)

    def spinner(self, label: Optional[str] = None) -> "Element":
        return self._emit("spinner", label=label)

    def divider(self) -> "Element":
        return self._emit("divider")

    def table(self, data: Sequence[Sequence[Any]], headers: Sequence[str] = ()) -> "Element":
        return self._emit("table", data=[list(row) for row in data], headers=list(headers))

    def data_table(self, id: str, data: Sequence[Sequence[Any]], columns: Sequence[str]) -> "Element":
        """A searchable, sortable, paginated grid (rendered client side)."""
        return self._emit("data_table", id=id, data=[list(row) for row in data], columns=list(columns))

    def chart(self, id: str, data: Dict[str, Any], options: Optional[Dict[str, Any]] = None) -> "Element":
        """
        A Chart.js chart.

        Args:
            id: Canvas id.
            data: Chart.js ``data`` (labels and datasets).
            options: Chart.js options merged over the defaults; ``type``
                selects the chart kind (bar when omitted).
        """
        final_options = deep_merge(CHART_DEFAULTS, options or {})
        return self._emit("chart", id=id, data=data, options=final_options)

    def theme_toggle(self, id: str, label: str = "Dark Mode") -> str:
        """A switch choosing between the light and dark theme."""
        is_dark = self.checkbox(id=id, label=label)
        theme = "dark" if is_dark else "light"
        self._emit("theme_setter", theme=theme)
        return theme


class InputWidgets:
    """Stateful components whose value persists in the page state."""

    def _input(self, type_: str, id: str, label: str, value: Any, error: Optional[str] = None,
               **attrs: Any) -> Any:
        self._emit(type_, id=id, label=label, value=value, error=error, **attrs)
        return value

    def button(self, id: str, text: str) -> bool:
        """
        A push button.

        Returns:
            True in exactly one render pass after each press.
        """
        self._emit("button", id=id, text=text)
        return self.consume(id)

    def slider(self, id: str, label: str, min: float, max: float, step: float = 1,
               default: Optional[float] = None, error: Optional[str] = None) -> float:
        value = coerce_float(self.state.read(id, min if default is None else default))
        self._input("slider", id, label, str(value), error=error, min=min, max=max, step=step)
        return value

    def text_input(self, id: str, label: str, default: str = "", error: Optional[str] = None) -> Any:
        return self._input("text_input", id, label, self.state.read(id, default), error=error)

    def number_input(self, id: str, label: str, default: Any = 0, error: Optional[str] = None):
        value = self.state.read(id, default)
        self._input("number_input", id, label, str(value), error=error)
        return coerce_number(value)

    def password_input(self, id: str, label: str, default: str = "", error: Optional[str] = None) -> Any:
        return self._input("password_input", id, label, self.state.read(id, default), error=error)

    def date_input(self, id: str, label: str, default: Optional[date] = None,
                   error: Optional[str] = None) -> date:
        """A date field; returns the default date when the text is invalid."""
        default_date = default or date.today()
        value = self.state.read(id, default_date.isoformat())
        self._input("date_input", id, label, str(value), error=error)
        return parse_date(value) or default_date

    def date_range_picker(self, id: str, label: str, default: Optional[Sequence[date]] = None,
                          error: Optional[str] = None) -> List[date]:
        """
        A start/end date picker.

        The value travels as ``"YYYY-MM-DD - YYYY-MM-DD"``. Halves that do
        not parse are dropped from the returned list.
        """
        if default is None:
            today = date.today()
            default = (today, today + timedelta(days=7))
        default_text = f"{default[0].isoformat()} - {default[1].isoformat()}"
        value = str(self.state.read(id, default_text))
        self._input("date_range_picker", id, label, value, error=error)
        parsed = (parse_date(part) for part in value.split(" - "))
        return [d for d in parsed if d is not None]

    def checkbox(self, id: str, label: str, error: Optional[str] = None) -> Any:
        return self._input("checkbox", id, label, self.state.read(id, False), error=error)

    def selectbox(self, id: str, label: str, options: Sequence[str], error: Optional[str] = None) -> Any:
        options = list(options)
        value = self.state.read(id, options[0] if options else None)
        return self._input("selectbox", id, label, value, error=error, options=options)

    def textarea(self, id: str, label: str, default: str = "", rows: int = 3,
                 error: Optional[str] = None) -> Any:
        return self._input("textarea", id, label, self.state.read(id, default), error=error, rows=rows)

    def multi_select(self, id: str, label: str, options: Sequence[str], default: Sequence[str] = (),
                     error: Optional[str] = None) -> List[str]:
        value = self.state.read(id, list(default))
        if value is None:
            selection = []
        elif isinstance(value, (list, tuple)):
            selection = [str(v) for v in value]
        else:
            selection = [part for part in str(value).split(",") if part]
        return self._input("multi_select", id, label, selection, error=error, options=list(options))

    def radio_group(self, id: str, label: str, options: Sequence[str], default: Optional[str] = None,
                    error: Optional[str] = None) -> Any:
        options = list(options)
        if default is None and options:
            default = options[0]
        value = self.state.read(id, default)
        return self._input("radio_group", id, label, value, error=error, options=options)
