"""Route path to page description registry."""

from typing import Callable, Dict, Iterator, Optional, TYPE_CHECKING
from dataclasses import dataclass

if TYPE_CHECKING:
    from .builder import ElementTreeBuilder

PageFunction = Callable[["ElementTreeBuilder"], None]


@dataclass(frozen=True)
class Page:
    """
    A registered page.

    Attributes:
        path: The route path, e.g. ``"/"``.
        render: The page description. Called with the builder on every
            render pass.
        interactive: Whether the browser should open a WebSocket for this
            page. Non-interactive pages are rendered once, statically.
    """
    path: str
    render: PageFunction
    interactive: bool = True


class PageRegistry:
    """Maps route paths to pages. Stateless after registration."""

    def __init__(self) -> None:
        self._pages: Dict[str, Page] = {}

    def register(self, path: str, render: PageFunction, interactive: bool = True) -> Page:
        if not path.startswith("/"):
            raise ValueError(f"page path must start with '/': {path!r}")
        page = Page(path=path, render=render, interactive=interactive)
        self._pages[path] = page
        return page

    def get(self, path: Optional[str]) -> Optional[Page]:
        if path is None:
            return None
        return self._pages.get(path)

    def __contains__(self, path: object) -> bool:
        return path in self._pages

    def __iter__(self) -> Iterator[Page]:
        return iter(list(self._pages.values()))

    def __len__(self) -> int:
        return len(self._pages)
