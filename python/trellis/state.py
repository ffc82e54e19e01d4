"""
Trellis Engine State

Process-wide state shared by every live connection:

- ``SessionStore`` holds, per session and per page path, the ``PageState``
  mapping widget ids to their last known values (plus layout state and
  memoized cache entries).
- ``PendingActionTracker`` holds, per connection, the one-shot actions
  (button presses, tab clicks, expander toggles) awaiting consumption.
- ``ConnectionRegistry`` maps each live connection to its session and the
  page path it is bound to.
- ``EngineState`` composes the three with the ``PageRegistry`` and owns the
  coarse lock used for structural changes.

Example:
    engine = EngineState()
    conn = engine.open_connection("ws-1")
    engine.sessions.write(conn.session_id, "/", "name", "Ada")
    engine.sessions.read(conn.session_id, "/", "name", "")  # "Ada"
    engine.close_connection("ws-1")
"""

from typing import Any, Callable, Dict, Iterator, List, Optional, Set
from dataclasses import dataclass
import logging
import secrets
import threading

from .registry import PageRegistry

logger = logging.getLogger(__name__)

CACHE_PREFIX = "cache_"

_MISSING = object()


class PageState(dict):
    """
    Widget values and layout state for one (session, path) pair.

    Keys are widget ids, ``"cache_" + key`` memo entries,
    ``"expander_" + slug`` booleans and ``"tabs_" + hash`` active labels.
    Reading a widget never stores its default: only explicit writes
    persist, so an untouched slider keeps following its default.
    """

    def read(self, widget_id: str, default: Any = None) -> Any:
        """Return the stored value for ``widget_id`` or ``default``."""
        return self.get(widget_id, default)

    def write(self, widget_id: str, value: Any) -> None:
        """Overwrite the stored value (last write wins)."""
        self[widget_id] = value

    def memoize(self, key: str, producer: Callable[[], Any]) -> Any:
        """
        Return the cached value for ``key``, computing it at most once.

        Args:
            key: Cache key, stored as ``"cache_" + key``.
            producer: Zero-argument callable invoked on the first miss.

        Returns:
            The value produced on the first call, on every call.
        """
        cache_key = CACHE_PREFIX + key
        value = self.get(cache_key, _MISSING)
        if value is _MISSING:
            value = producer()
            self[cache_key] = value
        return value


class Session:
    """A session's page states and the lock guarding them."""

    def __init__(self, session_id: str) -> None:
        self.id = session_id
        self.lock = threading.RLock()
        self.pages: Dict[str, PageState] = {}

    def page(self, path: str) -> PageState:
        """Get the page state for ``path``, creating it on first access."""
        with self.lock:
            state = self.pages.get(path)
            if state is None:
                state = self.pages[path] = PageState()
            return state

    def __repr__(self) -> str:
        return f"Session({self.id!r}, pages={sorted(self.pages)!r})"


class SessionStore:
    """
    Holds every session's per-path page state.

    One store instance is shared by the whole process. Session creation and
    deletion are serialized by the store's lock; reads and writes inside a
    session go through that session's own lock so unrelated sessions never
    wait on each other.
    """

    def __init__(self) -> None:
        self._sessions: Dict[str, Session] = {}
        self._lock = threading.Lock()

    def create(self, session_id: Optional[str] = None) -> str:
        """Create a session and return its identifier."""
        with self._lock:
            if session_id is None:
                session_id = secrets.token_hex(16)
            if session_id not in self._sessions:
                self._sessions[session_id] = Session(session_id)
            return session_id

    def delete(self, session_id: str) -> bool:
        """Drop a session and all of its page state."""
        with self._lock:
            return self._sessions.pop(session_id, None) is not None

    def session(self, session_id: str) -> Session:
        """Get a session, raising ``KeyError`` for unknown ids."""
        with self._lock:
            return self._sessions[session_id]

    def lock(self, session_id: str) -> threading.RLock:
        return self.session(session_id).lock

    def page(self, session_id: str, path: str) -> PageState:
        return self.session(session_id).page(path)

    def read(self, session_id: str, path: str, widget_id: str, default: Any = None) -> Any:
        session = self.session(session_id)
        with session.lock:
            return session.page(path).read(widget_id, default)

    def write(self, session_id: str, path: str, widget_id: str, value: Any) -> None:
        session = self.session(session_id)
        with session.lock:
            session.page(path).write(widget_id, value)

    def memoize(self, session_id: str, path: str, key: str, producer: Callable[[], Any]) -> Any:
        session = self.session(session_id)
        with session.lock:
            return session.page(path).memoize(key, producer)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)


class PendingActions:
    """
    The one-shot actions pending for a single connection.

    A widget id in this set means "this action just fired". The only way
    to observe it is ``test_and_clear``, which removes it in the same step,
    so every action is seen by at most one reader.
    """

    def __init__(self, widget_ids: Optional[Set[str]] = None) -> None:
        self._ids: Set[str] = set(widget_ids or ())
        self._lock = threading.Lock()

    def mark(self, widget_id: str) -> None:
        with self._lock:
            self._ids.add(widget_id)

    def test_and_clear(self, widget_id: str) -> bool:
        """Return whether ``widget_id`` was pending, clearing it."""
        with self._lock:
            if widget_id in self._ids:
                self._ids.remove(widget_id)
                return True
            return False

    def drain(self) -> Set[str]:
        """Remove and return every pending id."""
        with self._lock:
            ids, self._ids = self._ids, set()
            return ids

    def __contains__(self, widget_id: object) -> bool:
        return widget_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._ids))

    def __repr__(self) -> str:
        return f"PendingActions({sorted(self._ids)!r})"


class PendingActionTracker:
    """Maps each live connection to its ``PendingActions``."""

    def __init__(self) -> None:
        self._actions: Dict[str, PendingActions] = {}

    def install(self, connection_id: str) -> PendingActions:
        actions = self._actions.get(connection_id)
        if actions is None:
            actions = self._actions[connection_id] = PendingActions()
        return actions

    def remove(self, connection_id: str) -> None:
        self._actions.pop(connection_id, None)

    def actions(self, connection_id: str) -> PendingActions:
        """Get the pending set for a connection (empty if not installed)."""
        actions = self._actions.get(connection_id)
        return actions if actions is not None else PendingActions()

    def mark(self, connection_id: str, widget_id: str) -> None:
        actions = self._actions.get(connection_id)
        if actions is None:
            logger.debug("mark on unknown connection %s ignored", connection_id)
            return
        actions.mark(widget_id)

    def consume(self, connection_id: str, widget_id: str) -> bool:
        actions = self._actions.get(connection_id)
        if actions is None:
            return False
        return actions.test_and_clear(widget_id)

    def sweep(self, connection_id: str) -> Set[str]:
        """
        Drop every action the last render pass did not consume.

        Returns:
            The widget ids that were dropped.
        """
        actions = self._actions.get(connection_id)
        if actions is None:
            return set()
        dropped = actions.drain()
        if dropped:
            logger.debug("dropped stale actions %s for %s", sorted(dropped), connection_id)
        return dropped

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._actions


@dataclass
class Connection:
    """A live transport bound to a session and, once announced, a path."""
    id: str
    session_id: str
    path: Optional[str] = None

    @property
    def bound(self) -> bool:
        return self.path is not None

    def bind(self, path: Optional[str]) -> Optional[str]:
        """Latch the first announced path; later paths are ignored."""
        if self.path is None and path:
            self.path = path
        return self.path


class ConnectionRegistry:
    """Maps each live connection to its ``Connection`` record."""

    def __init__(self) -> None:
        self._connections: Dict[str, Connection] = {}

    def register(self, connection_id: str, session_id: str) -> Connection:
        conn = Connection(id=connection_id, session_id=session_id)
        self._connections[connection_id] = conn
        return conn

    def unregister(self, connection_id: str) -> Optional[Connection]:
        return self._connections.pop(connection_id, None)

    def get(self, connection_id: str) -> Optional[Connection]:
        return self._connections.get(connection_id)

    def for_session(self, session_id: str) -> List[Connection]:
        return [c for c in self._connections.values() if c.session_id == session_id]

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._connections

    def __len__(self) -> int:
        return len(self._connections)


class EngineState:
    """
    Everything the engine shares across connections.

    Owned by the server's composition root (``trellis.server.App``) and
    passed explicitly to the connection handlers.

    Attributes:
        pages: Route path to page description.
        sessions: Per-session page state.
        pending: Per-connection one-shot actions.
        connections: Live connections.
    """

    def __init__(self, pages: Optional[PageRegistry] = None) -> None:
        self.pages = pages if pages is not None else PageRegistry()
        self.sessions = SessionStore()
        self.pending = PendingActionTracker()
        self.connections = ConnectionRegistry()
        self._lock = threading.Lock()

    def open_connection(self, connection_id: str) -> Connection:
        """Create a fresh session and register the connection against it."""
        with self._lock:
            session_id = self.sessions.create()
            conn = self.connections.register(connection_id, session_id)
            self.pending.install(connection_id)
        logger.info("New connection opened with session ID: %s", session_id)
        return conn

    def bind_connection(self, connection_id: str, path: Optional[str]) -> Optional[str]:
        """Latch a connection's path, returning the bound path (if any)."""
        with self._lock:
            conn = self.connections.get(connection_id)
            if conn is None:
                return None
            return conn.bind(path)

    def close_connection(self, connection_id: str) -> Optional[Connection]:
        """
        Unregister a connection and release what only it referenced.

        The pending set is always dropped; the session is deleted only when
        no other live connection still references it.
        """
        with self._lock:
            conn = self.connections.unregister(connection_id)
            self.pending.remove(connection_id)
            if conn is None:
                return None
            if not self.connections.for_session(conn.session_id):
                self.sessions.delete(conn.session_id)
                logger.info("Session closed and state cleared for: %s", conn.session_id)
        return conn
