"""
Tests for subscription handles and the keyed stream dispatcher.
"""

import threading

from transferid import CompositeSubscription, EventStreams, Subscription


class TestSubscription:

    def test_dispose_runs_callback_once(self):
        calls = []
        subscription = Subscription(lambda: calls.append(1))
        subscription.dispose()
        subscription.dispose()
        assert calls == [1]
        assert subscription.disposed


class TestCompositeSubscription:

    def test_clear_disposes_all_members(self):
        members = [Subscription() for _ in range(3)]
        composite = CompositeSubscription()
        for member in members:
            composite.add(member)
        composite.clear()
        assert all(m.disposed for m in members)
        assert len(composite) == 0

    def test_clear_leaves_composite_usable(self):
        composite = CompositeSubscription()
        composite.clear()
        later = composite.add(Subscription())
        assert not later.disposed
        assert len(composite) == 1

    def test_add_after_dispose_disposes_immediately(self):
        composite = CompositeSubscription()
        composite.dispose()
        late = composite.add(Subscription())
        assert late.disposed

    def test_nested_composites(self):
        inner = CompositeSubscription()
        member = inner.add(Subscription())
        outer = CompositeSubscription()
        outer.add(inner)
        outer.clear()
        assert member.disposed


class TestEventStreams:

    def test_publish_reaches_key_subscribers_only(self):
        streams = EventStreams()
        a, b = [], []
        streams.subscribe("a", a.append)
        streams.subscribe("b", b.append)
        assert streams.publish("a", 1) == 1
        assert a == [1]
        assert b == []

    def test_delivery_in_publish_order(self):
        streams = EventStreams()
        seen = []
        streams.subscribe("k", seen.append)
        for i in range(10):
            streams.publish("k", i)
        assert seen == list(range(10))

    def test_unsubscribe_via_handle(self):
        streams = EventStreams()
        seen = []
        subscription = streams.subscribe("k", seen.append)
        subscription.dispose()
        streams.publish("k", 1)
        assert seen == []
        assert streams.handler_count() == 0

    def test_failing_handler_is_isolated(self):
        streams = EventStreams()
        seen = []

        def explode(_):
            raise ValueError("boom")

        streams.subscribe("k", explode)
        streams.subscribe("k", seen.append)
        assert streams.publish("k", "x") == 1
        assert seen == ["x"]

    def test_handler_may_dispose_itself(self):
        streams = EventStreams()
        seen = []
        holder = {}

        def once(record):
            seen.append(record)
            holder["sub"].dispose()

        holder["sub"] = streams.subscribe("k", once)
        streams.publish("k", 1)
        streams.publish("k", 2)
        assert seen == [1]

    def test_concurrent_publishers(self):
        streams = EventStreams()
        seen = []
        lock = threading.Lock()

        def record(value):
            with lock:
                seen.append(value)

        streams.subscribe("k", record)
        threads = [
            threading.Thread(target=lambda n=n: [streams.publish("k", (n, i)) for i in range(100)])
            for n in range(4)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(seen) == 400
        for n in range(4):
            assert [i for m, i in seen if m == n] == list(range(100))
