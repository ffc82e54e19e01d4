"""
Trellis Element Model

This module provides the element descriptor produced by a render pass
and the helpers used to serialize element trees for the browser.

An element is a typed bag of attributes. Container elements hold nested
elements inside their attributes (``content`` for expanders, tabs and form
groups, ``columns`` for column containers), so serialization walks the
attribute values recursively.

Example:
    >>> el = Element("paragraph", {"text": "Hello"})
    >>> el.to_dict()
    {'type': 'paragraph', 'text': 'Hello'}
"""

from typing import Any, Dict, Iterable, List, Optional
from dataclasses import dataclass, field


# Container kinds and the attribute carrying their nested elements.
CONTAINER_TYPES = {
    "columns_container": "columns",
    "tabs": "content",
    "expander": "content",
    "form_group": "content",
}


@dataclass
class Element:
    """
    A single UI element descriptor.

    This is the Python representation that will be serialized
    and sent to the browser for rendering.

    Attributes:
        type: The component kind, e.g. ``"paragraph"`` or ``"slider"``.
        attrs: Component-specific attributes. Nested elements may appear
            as values, inside lists, or inside lists of lists.
    """
    type: str
    attrs: Dict[str, Any] = field(default_factory=dict)

    @property
    def id(self) -> Optional[str]:
        return self.attrs.get("id")

    @property
    def children(self) -> List["Element"]:
        """Nested elements of a container, flattened across columns."""
        key = CONTAINER_TYPES.get(self.type)
        if key is None:
            return []
        value = self.attrs.get(key) or []
        if key == "columns":
            return [el for column in value for el in column]
        return list(value)

    def walk(self) -> Iterable["Element"]:
        """Yield this element and every nested element, depth first."""
        yield self
        for child in self.children:
            yield from child.walk()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a flat dictionary for JSON serialization."""
        result: Dict[str, Any] = {"type": self.type}
        for key, value in self.attrs.items():
            result[key] = _serialize(value)
        return result


def _serialize(value: Any) -> Any:
    if isinstance(value, Element):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [_serialize(v) for v in value]
    if isinstance(value, dict):
        return {k: _serialize(v) for k, v in value.items()}
    return value


def serialize_elements(elements: Iterable[Element]) -> List[Dict[str, Any]]:
    """Serialize an element list for the wire."""
    return [el.to_dict() for el in elements]


def find_elements(elements: Iterable[Element], type_: str) -> List[Element]:
    """Return every element of the given type, searching nested containers."""
    found = []
    for el in elements:
        for node in el.walk():
            if node.type == type_:
                found.append(node)
    return found
