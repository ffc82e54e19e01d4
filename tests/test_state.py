"""
Tests for Trellis engine state.

These tests verify per-page state isolation, memoization, one-shot
pending actions and the connection lifecycle bookkeeping.
"""

import threading

import pytest


class TestPageState:
    """Tests for the per-(session, path) value map."""

    def test_read_does_not_store_default(self):
        """Reading a missing widget should return the default without pinning it."""
        from trellis.state import PageState

        state = PageState()
        assert state.read("slider", 5) == 5
        assert "slider" not in state
        assert state.read("slider", 7) == 7

    def test_last_write_wins(self):
        """A later write should replace the stored value."""
        from trellis.state import PageState

        state = PageState()
        state.write("name", "Ada")
        state.write("name", "Grace")
        assert state.read("name") == "Grace"

    def test_memoize_runs_producer_once(self):
        """The producer should be called on the first miss only."""
        from trellis.state import PageState

        calls = []
        state = PageState()

        def producer():
            calls.append(1)
            return [1, 2, 3]

        first = state.memoize("data", producer)
        second = state.memoize("data", producer)

        assert first == [1, 2, 3]
        assert second is first
        assert len(calls) == 1
        assert "cache_data" in state

    def test_memoize_caches_none(self):
        """A producer returning None should still be cached."""
        from trellis.state import PageState

        calls = []
        state = PageState()
        state.memoize("nothing", lambda: calls.append(1))
        state.memoize("nothing", lambda: calls.append(1))
        assert calls == [1]


class TestSessionStore:
    """Tests for the session store."""

    def test_paths_are_isolated(self):
        """The same widget id on two paths should hold independent values."""
        from trellis.state import SessionStore

        store = SessionStore()
        sid = store.create()
        store.write(sid, "/a", "x", 1)
        store.write(sid, "/b", "x", 2)

        assert store.read(sid, "/a", "x") == 1
        assert store.read(sid, "/b", "x") == 2

    def test_sessions_are_isolated(self):
        """Two sessions should never see each other's values."""
        from trellis.state import SessionStore

        store = SessionStore()
        s1, s2 = store.create(), store.create()
        store.write(s1, "/", "x", "one")

        assert s1 != s2
        assert store.read(s2, "/", "x", "default") == "default"

    def test_delete_drops_all_pages(self):
        """Deleting a session should make it unknown."""
        from trellis.state import SessionStore

        store = SessionStore()
        sid = store.create()
        store.write(sid, "/", "x", 1)

        assert store.delete(sid) is True
        assert sid not in store
        with pytest.raises(KeyError):
            store.session(sid)

    def test_memoize_per_session(self):
        """Each session should compute its own cache entry."""
        from trellis.state import SessionStore

        store = SessionStore()
        s1, s2 = store.create(), store.create()
        counter = iter(range(10))

        assert store.memoize(s1, "/", "k", lambda: next(counter)) == 0
        assert store.memoize(s1, "/", "k", lambda: next(counter)) == 0
        assert store.memoize(s2, "/", "k", lambda: next(counter)) == 1

    def test_concurrent_writes(self):
        """Concurrent writers in one session should not lose keys."""
        from trellis.state import SessionStore

        store = SessionStore()
        sid = store.create()

        def writer(n):
            for i in range(100):
                store.write(sid, "/", f"w{n}_{i}", i)

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(store.page(sid, "/")) == 400


class TestPendingActions:
    """Tests for one-shot actions."""

    def test_test_and_clear_fires_once(self):
        """A marked action should be observed exactly once."""
        from trellis.state import PendingActions

        actions = PendingActions()
        actions.mark("btn")

        assert actions.test_and_clear("btn") is True
        assert actions.test_and_clear("btn") is False

    def test_unmarked_is_false(self):
        from trellis.state import PendingActions

        assert PendingActions().test_and_clear("btn") is False

    def test_tracker_sweep_drops_unconsumed(self):
        """Sweeping should clear every action the render did not consume."""
        from trellis.state import PendingActionTracker

        tracker = PendingActionTracker()
        tracker.install("c1")
        tracker.mark("c1", "a")
        tracker.mark("c1", "b")

        assert tracker.consume("c1", "a") is True
        assert tracker.sweep("c1") == {"b"}
        assert len(tracker.actions("c1")) == 0

    def test_tracker_returns_installed_empty_set(self):
        """An installed but empty set should be returned, not a detached copy."""
        from trellis.state import PendingActionTracker

        tracker = PendingActionTracker()
        installed = tracker.install("c1")

        actions = tracker.actions("c1")
        assert actions is installed
        actions.mark("btn")
        assert tracker.consume("c1", "btn") is True

    def test_tracker_ignores_unknown_connection(self):
        """Marking an unknown connection should not create it."""
        from trellis.state import PendingActionTracker

        tracker = PendingActionTracker()
        tracker.mark("ghost", "btn")

        assert "ghost" not in tracker
        assert tracker.consume("ghost", "btn") is False

    def test_connections_are_isolated(self):
        """A press on one connection should not be visible on another."""
        from trellis.state import PendingActionTracker

        tracker = PendingActionTracker()
        tracker.install("c1")
        tracker.install("c2")
        tracker.mark("c1", "btn")

        assert tracker.consume("c2", "btn") is False
        assert tracker.consume("c1", "btn") is True


class TestConnection:
    """Tests for path binding."""

    def test_first_path_latches(self):
        """Once bound, later paths should be ignored."""
        from trellis.state import Connection

        conn = Connection(id="c1", session_id="s1")
        assert not conn.bound
        assert conn.bind(None) is None
        assert conn.bind("/a") == "/a"
        assert conn.bind("/b") == "/a"
        assert conn.bound


class TestEngineState:
    """Tests for connection open/close bookkeeping."""

    def test_open_creates_session_and_pending(self):
        from trellis.state import EngineState

        engine = EngineState()
        conn = engine.open_connection("c1")

        assert conn.session_id in engine.sessions
        assert "c1" in engine.pending
        assert "c1" in engine.connections

    def test_close_releases_everything(self):
        """Closing the only connection should delete its session."""
        from trellis.state import EngineState

        engine = EngineState()
        conn = engine.open_connection("c1")
        engine.sessions.write(conn.session_id, "/", "x", 1)

        closed = engine.close_connection("c1")

        assert closed is conn
        assert conn.session_id not in engine.sessions
        assert "c1" not in engine.pending
        assert "c1" not in engine.connections

    def test_close_keeps_shared_session(self):
        """A session still referenced by another connection should survive."""
        from trellis.state import EngineState

        engine = EngineState()
        conn = engine.open_connection("c1")
        engine.connections.register("c2", conn.session_id)

        engine.close_connection("c1")
        assert conn.session_id in engine.sessions

        engine.close_connection("c2")
        assert conn.session_id not in engine.sessions

    def test_close_unknown_is_noop(self):
        from trellis.state import EngineState

        assert EngineState().close_connection("missing") is None

    def test_bind_connection(self):
        from trellis.state import EngineState

        engine = EngineState()
        engine.open_connection("c1")

        assert engine.bind_connection("c1", "/x") == "/x"
        assert engine.bind_connection("c1", "/y") == "/x"
        assert engine.bind_connection("unknown", "/x") is None
