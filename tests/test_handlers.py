"""Tests for wildbus.handlers module."""

import threading

from wildbus.handlers import ListenerEntry, ListenerRegistry, Subscription


class TestListenerEntry:
    """Tests for ListenerEntry dataclass."""

    def test_handler_name(self):
        """Gets listener function name."""

        def my_listener(payload):
            pass

        entry = ListenerEntry(id="test-1", pattern="test", callback=my_listener)
        assert entry.name == "my_listener"

    def test_identity_equality(self):
        """Entries with the same fields are still distinct."""

        def listener(payload):
            pass

        a = ListenerEntry(id="same", pattern="test", callback=listener)
        b = ListenerEntry(id="same", pattern="test", callback=listener)
        assert a != b

    def test_invoke_payload_only(self):
        """invoke() passes only the payload by default."""
        received = []
        entry = ListenerEntry(id="x", pattern="t", callback=received.append)
        entry.invoke("t", 42)
        assert received == [42]

    def test_invoke_with_name(self):
        """invoke() passes (name, payload) when with_name is set."""
        received = []
        entry = ListenerEntry(
            id="x",
            pattern="**",
            callback=lambda name, payload: received.append((name, payload)),
            with_name=True,
        )
        entry.invoke("a:b", 1)
        assert received == [("a:b", 1)]


class TestListenerRegistry:
    """Tests for ListenerRegistry."""

    def test_subscribe_unique_ids(self):
        """Each subscription of the same callback gets its own entry."""
        registry = ListenerRegistry()

        def listener(p):
            pass

        e1 = registry.subscribe("test", listener)
        e2 = registry.subscribe("test", listener)
        assert e1.id != e2.id
        assert registry.count_exact("test") == 2

    def test_classification(self):
        """Patterns with wildcard segments go to the wildcard list."""
        registry = ListenerRegistry()

        exact = registry.subscribe("user:login", print)
        wild = registry.subscribe("user:*", print)

        assert not exact.is_wildcard
        assert wild.is_wildcard
        assert registry.exact_names() == ["user:login"]
        assert registry.count_exact("user:*") == 0
        assert registry.handler_count() == 2

    def test_priority_ordering(self):
        """Entries are collected in priority order (highest first)."""
        registry = ListenerRegistry()

        def low(p):
            pass

        def high(p):
            pass

        def medium(p):
            pass

        registry.subscribe("test", low, priority=1)
        registry.subscribe("test", high, priority=10)
        registry.subscribe("test", medium, priority=5)

        assert [e.name for e in registry.collect("test")] == ["high", "medium", "low"]

    def test_equal_priority_keeps_insertion_order(self):
        """Ties keep subscription order."""
        registry = ListenerRegistry()
        entries = [registry.subscribe("test", print) for _ in range(5)]
        assert registry.collect("test") == entries

    def test_collect_exact_before_wildcard_on_ties(self):
        """On equal priority, exact entries come before wildcard entries."""
        registry = ListenerRegistry()

        wild = registry.subscribe("user:*", print)
        exact = registry.subscribe("user:login", print)

        assert registry.collect("user:login") == [exact, wild]

    def test_collect_merges_by_priority(self):
        """Wildcard entries with higher priority come first."""
        registry = ListenerRegistry()

        exact = registry.subscribe("user:login", print, priority=1)
        wild = registry.subscribe("user:**", print, priority=5)
        other = registry.subscribe("admin:*", print, priority=100)

        assert registry.collect("user:login") == [wild, exact]
        assert other not in registry.collect("user:login")

    def test_remove(self):
        """remove() deletes an entry and drops empty names."""
        registry = ListenerRegistry()
        entry = registry.subscribe("test", print)

        assert registry.remove(entry.id) is True
        assert registry.count_exact("test") == 0
        assert registry.exact_names() == []
        assert entry.id not in registry

    def test_remove_is_idempotent(self):
        """Removing twice (or an unknown ID) returns False."""
        registry = ListenerRegistry()
        entry = registry.subscribe("a:*", print)

        assert registry.remove(entry.id) is True
        assert registry.remove(entry.id) is False
        assert registry.remove("nonexistent-id") is False

    def test_remove_keeps_order(self):
        """Removing an entry leaves the rest sorted."""
        registry = ListenerRegistry()
        a = registry.subscribe("t", print, priority=3)
        b = registry.subscribe("t", print, priority=2)
        c = registry.subscribe("t", print, priority=1)

        registry.remove(b.id)
        assert registry.collect("t") == [a, c]

    def test_prune_once(self):
        """prune_once() removes only once-entries."""
        registry = ListenerRegistry()
        keep = registry.subscribe("t", print)
        once = registry.subscribe("t", print, once=True)
        once_wild = registry.subscribe("*", print, once=True)

        registry.prune_once(registry.collect("t"))

        assert keep.id in registry
        assert once.id not in registry
        assert once_wild.id not in registry

    def test_clear_by_name_uses_pattern_identity(self):
        """clear(name) keeps wildcard entries that only match the name."""
        registry = ListenerRegistry()
        registry.subscribe("user:login", print)
        matching = registry.subscribe("user:*", print)

        registry.clear("user:login")

        assert registry.count_exact("user:login") == 0
        assert registry.collect("user:login") == [matching]

    def test_clear_wildcard_pattern(self):
        """clear(pattern) removes wildcard entries with that exact pattern."""
        registry = ListenerRegistry()
        registry.subscribe("user:*", print)
        other = registry.subscribe("user:**", print)

        registry.clear("user:*")

        assert registry.collect("user:login") == [other]
        assert registry.handler_count() == 1

    def test_clear_all(self):
        """clear() removes all entries."""
        registry = ListenerRegistry()
        registry.subscribe("test", print)
        registry.subscribe("**", print)
        registry.clear()

        assert registry.handler_count() == 0
        assert registry.collect("test") == []

    def test_reads_wait_for_lock(self):
        """Counts and names are read under the registry lock."""
        registry = ListenerRegistry()
        registry.subscribe("t", print)
        results = []

        def read():
            results.append((registry.count_exact("t"), registry.exact_names(), registry.handler_count()))

        with registry._lock:
            reader = threading.Thread(target=read)
            reader.start()
            reader.join(timeout=0.05)
            assert results == []

        reader.join(timeout=1)
        assert results == [(1, ["t"], 1)]


class TestSubscription:
    """Tests for Subscription handles."""

    def test_off(self):
        """off() removes exactly this entry."""
        registry = ListenerRegistry()
        first = registry.subscribe("t", print)
        second = registry.subscribe("t", print)

        sub = Subscription(registry, first)
        assert sub.active
        sub.off()

        assert not sub.active
        assert registry.collect("t") == [second]

    def test_off_idempotent(self):
        """Calling off() again is a no-op."""
        registry = ListenerRegistry()
        sub = Subscription(registry, registry.subscribe("t", print))
        sub.off()
        sub.off()
        assert registry.handler_count() == 0
