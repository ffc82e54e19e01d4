"""
Static markup for first paint.

Before the WebSocket takes over, a page is rendered once with an empty
state and sent as plain HTML so the browser has something to show. The
markup mirrors what the client reconciler builds (same Spectre classes),
but carries no event handlers: interactive pages are re-rendered by the
client as soon as the socket reports ``client_ready``.
"""

from typing import Any, Callable, Dict, Iterable, List, Optional
from html import escape
import json
import logging

from .element import Element

logger = logging.getLogger(__name__)


def _attr(value: Any) -> str:
    return escape("" if value is None else str(value), quote=True)


def _text(value: Any) -> str:
    return escape("" if value is None else str(value), quote=False)


def render_elements(elements: Iterable[Element]) -> str:
    """Render an element list to an HTML fragment."""
    return "\n".join(render_element(el) for el in elements)


def render_element(el: Element) -> str:
    """Render one element (and its nested elements) to HTML."""
    if el.type.startswith("heading"):
        level = el.type[len("heading"):] or "1"
        id_attr = f' id="{_attr(el.attrs["id"])}"' if el.attrs.get("id") else ""
        return f"<h{level}{id_attr}>{_text(el.attrs.get('text'))}</h{level}>"
    renderer = _RENDERERS.get(el.type)
    if renderer is None:
        logger.warning("Unknown component type in markup renderer: %s", el.type)
        return ""
    return renderer(el.attrs)


def _form_group(a: Dict[str, Any], widget: str, with_label: bool = True) -> str:
    classes = "form-group has-error" if a.get("error") else "form-group"
    parts = [f'<div class="{classes}">']
    if with_label and a.get("label"):
        parts.append(f'<label class="form-label" for="{_attr(a.get("id"))}">{_text(a["label"])}</label>')
    parts.append(widget)
    if a.get("error"):
        parts.append(f'<p class="form-input-hint">{_text(a["error"])}</p>')
    parts.append("</div>")
    return "".join(parts)


def _input(input_type: str) -> Callable[[Dict[str, Any]], str]:
    def render(a: Dict[str, Any]) -> str:
        widget = (f'<input class="form-input" type="{input_type}" id="{_attr(a.get("id"))}"'
                  f' value="{_attr(a.get("value"))}">')
        return _form_group(a, widget)
    return render


def _options(a: Dict[str, Any], selected: Callable[[Any], bool]) -> str:
    return "".join(
        f'<option value="{_attr(opt)}"{" selected" if selected(opt) else ""}>{_text(opt)}</option>'
        for opt in a.get("options") or []
    )


def _paragraph(a):
    return f"<p>{_text(a.get('text'))}</p>"


def _link(a):
    return f'<a href="{_attr(a.get("href"))}">{_text(a.get("text"))}</a>'


def _alert(a):
    return f'<div class="toast toast-{_attr(a.get("style"))}">{_text(a.get("text"))}</div>'


def _image(a):
    img = f'<img class="img-responsive" src="{_attr(a.get("src"))}">'
    if not a.get("caption"):
        return img
    return (f'<figure class="figure">{img}'
            f'<figcaption class="figure-caption text-center">{_text(a["caption"])}</figcaption></figure>')


def _code(a):
    return (f'<pre class="code" data-lang="{_attr(a.get("language"))}">'
            f'<code>{_text(a.get("text"))}</code></pre>')


def _latex(a):
    return f"<div>$${_text(a.get('text'))}$$</div>"


def _spinner(a):
    label = f'<p class="text-gray">{_text(a["label"])}</p>' if a.get("label") else ""
    return f'<div class="form-group text-center"><div class="loading loading-lg"></div>{label}</div>'


def _divider(a):
    return '<div class="divider"></div>'


def _table(a):
    head = "".join(f"<th>{_text(h)}</th>" for h in a.get("headers") or [])
    rows = "".join(
        "<tr>" + "".join(f"<td>{_text(cell)}</td>" for cell in row) + "</tr>"
        for row in a.get("data") or []
    )
    thead = f"<thead><tr>{head}</tr></thead>" if head else "<thead></thead>"
    return f'<table class="table table-striped table-hover">{thead}<tbody>{rows}</tbody></table>'


def _placeholder(a):
    return (f'<div class="form-group"><div id="{_attr(a.get("id"))}" class="data-table-placeholder">'
            '<div class="loading loading-lg"></div></div></div>')


def _chart(a):
    return f'<div class="form-group"><div class="chart-container"><canvas id="{_attr(a.get("id"))}"></canvas></div></div>'


def _theme_setter(a):
    return ""


def _button(a):
    return (f'<div class="form-group"><button class="btn btn-primary" id="{_attr(a.get("id"))}">'
            f'{_text(a.get("text"))}</button></div>')


def _slider(a):
    widget = (f'<input class="slider" type="range" id="{_attr(a.get("id"))}" min="{_attr(a.get("min"))}"'
              f' max="{_attr(a.get("max"))}" step="{_attr(a.get("step"))}" value="{_attr(a.get("value"))}">')
    labelled = dict(a, label=f"{a.get('label')} ({a.get('value')})")
    return _form_group(labelled, widget)


def _textarea(a):
    widget = (f'<textarea class="form-input" id="{_attr(a.get("id"))}" rows="{_attr(a.get("rows"))}">'
              f'{_text(a.get("value"))}</textarea>')
    return _form_group(a, widget)


def _checkbox(a):
    checked = " checked" if a.get("value") else ""
    klass = "form-switch" if "theme" in str(a.get("id")) else "form-checkbox"
    widget = (f'<label class="{klass}"><input type="checkbox" id="{_attr(a.get("id"))}"{checked}>'
              f'<i class="form-icon"></i> {_text(a.get("label"))}</label>')
    return _form_group(a, widget, with_label=False)


def _selectbox(a):
    options = _options(a, lambda opt: opt == a.get("value"))
    return _form_group(a, f'<select class="form-select" id="{_attr(a.get("id"))}">{options}</select>')


def _multi_select(a):
    chosen = a.get("value") or []
    options = _options(a, lambda opt: opt in chosen)
    return _form_group(a, f'<select class="form-select" id="{_attr(a.get("id"))}" multiple>{options}</select>')


def _radio_group(a):
    radios = "".join(
        f'<label class="form-radio"><input type="radio" name="{_attr(a.get("id"))}" value="{_attr(opt)}"'
        f'{" checked" if opt == a.get("value") else ""}><i class="form-icon"></i> {_text(opt)}</label>'
        for opt in a.get("options") or []
    )
    return _form_group(a, radios)


def _columns(a):
    cols = "".join(f'<div class="column">{render_elements(col)}</div>' for col in a.get("columns") or [])
    return f'<div class="columns">{cols}</div>'


def _expander(a):
    checked = " checked" if a.get("expanded") else ""
    return (f'<div class="form-group"><div class="accordion">'
            f'<input type="checkbox" id="{_attr(a.get("id"))}" hidden{checked}>'
            f'<label class="accordion-header c-hand" for="{_attr(a.get("id"))}">'
            f'<i class="icon icon-arrow-right mr-1"></i>{_text(a.get("label"))}</label>'
            f'<div class="accordion-body">{render_elements(a.get("content") or [])}</div></div></div>')


def _form_group_container(a):
    return (f'<div class="form-group"><fieldset class="form-group">'
            f'<legend class="form-label">{_text(a.get("label"))}</legend>'
            f'{render_elements(a.get("content") or [])}</fieldset></div>')


def _tabs(a):
    items = "".join(
        f'<li class="tab-item{" active" if label == a.get("active_tab") else ""}">'
        f'<a class="c-hand">{_text(label)}</a></li>'
        for label in a.get("labels") or []
    )
    return (f'<div class="form-group"><div class="tab-container"><ul class="tab tab-block">{items}</ul>'
            f'<div class="tab-content p-2">{render_elements(a.get("content") or [])}</div></div></div>')


def _error_display(a):
    return (f'<div class="error-display"><h4>Runtime Error: {_text(a.get("message"))}</h4>'
            f'<pre><code>{_text(a.get("backtrace"))}</code></pre></div>')


_RENDERERS: Dict[str, Callable[[Dict[str, Any]], str]] = {
    "paragraph": _paragraph,
    "link": _link,
    "alert": _alert,
    "image": _image,
    "code": _code,
    "latex": _latex,
    "spinner": _spinner,
    "divider": _divider,
    "table": _table,
    "data_table": _placeholder,
    "chart": _chart,
    "theme_setter": _theme_setter,
    "button": _button,
    "slider": _slider,
    "text_input": _input("text"),
    "number_input": _input("number"),
    "password_input": _input("password"),
    "date_input": _input("date"),
    "date_range_picker": _input("text"),
    "textarea": _textarea,
    "checkbox": _checkbox,
    "selectbox": _selectbox,
    "multi_select": _multi_select,
    "radio_group": _radio_group,
    "columns_container": _columns,
    "expander": _expander,
    "form_group": _form_group_container,
    "tabs": _tabs,
    "error_display": _error_display,
}


def render_navbar(config: Optional[Dict[str, Any]], current_path: str = "") -> str:
    """Render the navbar sections, or an empty string without a config."""
    if not config:
        return ""
    brand = f'<a href="#" class="navbar-brand mr-2">{_text(config.get("brand"))}</a>'
    links: List[str] = []
    for link in config.get("links") or []:
        active = " navbar-link-active" if link.get("href") == current_path else ""
        links.append(f'<a href="{_attr(link.get("href"))}" class="btn btn-link{active}">{_text(link.get("text"))}</a>')
    return (f'<section class="navbar-section">{brand}</section>'
            f'<section class="navbar-section">{"".join(links)}</section>')


def script_json(value: Any) -> str:
    """JSON safe for embedding inside a ``<script>`` element."""
    return json.dumps(value).replace("</", "<\\/")
