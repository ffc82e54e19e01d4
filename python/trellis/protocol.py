"""
Trellis WebSocket Protocol

Inbound (browser to server) messages are JSON objects:

    {"type": "client_ready" | "update" | "button_press" | "navigate",
     "path": "/page", "widget_id": "slider1", "value": 42}

``widget_id`` is required for ``update`` and ``button_press``; ``value``
for ``update``. Outbound messages carry a whole element tree:

    {"type": "render", "elements": [...], "sidebar_elements": [...], "navbar": {...}}

or, when the page description raised:

    {"error": {"type": "error_display", "message": "...", "backtrace": "..."}}
"""

from typing import Any, Dict, Optional
from dataclasses import dataclass
from enum import Enum
import json

from .builder import RenderResult, error_element
from .element import serialize_elements


class MessageType(Enum):
    """Types of messages a browser can send."""
    CLIENT_READY = "client_ready"    # First paint hydrated, send a render
    UPDATE = "update"                # A widget value changed
    BUTTON_PRESS = "button_press"    # A one-shot action fired
    NAVIGATE = "navigate"            # Back/forward navigation


class ProtocolError(ValueError):
    """An inbound message that cannot be handled."""


_NEEDS_WIDGET = {MessageType.UPDATE, MessageType.BUTTON_PRESS}
_MISSING = object()


@dataclass
class ClientMessage:
    """
    A parsed inbound message.

    Attributes:
        type: What happened in the browser.
        path: The page path the browser is showing, if sent.
        widget_id: The widget the message is about (update / button_press).
        value: The new widget value (update only).
    """
    type: MessageType
    path: Optional[str] = None
    widget_id: Optional[str] = None
    value: Any = None

    @property
    def mutates(self) -> bool:
        return self.type in _NEEDS_WIDGET

    @classmethod
    def from_dict(cls, data: Any) -> "ClientMessage":
        if not isinstance(data, dict):
            raise ProtocolError(f"message must be a JSON object, got {type(data).__name__}")
        try:
            msg_type = MessageType(data.get("type"))
        except ValueError:
            raise ProtocolError(f"unknown message type: {data.get('type')!r}") from None

        path = data.get("path")
        if path is not None and not isinstance(path, str):
            raise ProtocolError("path must be a string")

        widget_id = data.get("widget_id")
        if msg_type in _NEEDS_WIDGET and (not isinstance(widget_id, str) or not widget_id):
            raise ProtocolError(f"{msg_type.value} requires a widget_id")

        value = data.get("value", _MISSING)
        if msg_type is MessageType.UPDATE and value is _MISSING:
            raise ProtocolError("update requires a value")
        if value is _MISSING:
            value = None

        return cls(type=msg_type, path=path, widget_id=widget_id, value=value)

    @classmethod
    def parse(cls, raw: str) -> "ClientMessage":
        """Parse a raw text frame, raising ``ProtocolError`` when malformed."""
        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise ProtocolError(f"invalid JSON: {e}") from None
        return cls.from_dict(data)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"type": self.type.value}
        if self.path is not None:
            result["path"] = self.path
        if self.widget_id is not None:
            result["widget_id"] = self.widget_id
        if self.type is MessageType.UPDATE:
            result["value"] = self.value
        return result


def render_message(result: RenderResult) -> Dict[str, Any]:
    """Build the outbound message for a render pass."""
    if result.error is not None:
        return {"error": result.error.to_dict()}
    return {
        "type": "render",
        "elements": serialize_elements(result.elements),
        "sidebar_elements": serialize_elements(result.sidebar_elements),
        "navbar": result.navbar,
    }


def error_message(exc: BaseException) -> Dict[str, Any]:
    """The error message reporting ``exc`` to the browser."""
    return {"error": error_element(exc).to_dict()}


def empty_render() -> Dict[str, Any]:
    return render_message(RenderResult())


def encode(message: Dict[str, Any]) -> str:
    """Serialize an outbound message; non-JSON values fall back to ``str``."""
    return json.dumps(message, default=str)
