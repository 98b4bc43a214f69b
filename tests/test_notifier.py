"""
Tests for the event notifier.
"""

import gc
import threading

import pytest

from pausegraph.engine.events import WorkflowEvent
from pausegraph.engine.notifier import CLEANUP_THRESHOLD, EventNotifier


class Recorder:
    def __init__(self):
        self.received = []

    def on_event(self, event_name, payload):
        self.received.append((event_name, payload))


class TestEventNotifier:
    """Tests for EventNotifier."""

    def test_wildcard_listener_receives_everything(self, collector):
        """Test that the default filter matches every event."""
        notifier = EventNotifier()
        notifier.add_listener(collector)

        notifier.notify("workflow-run-start", {"x": 1})
        notifier.notify(WorkflowEvent.RUN_STOP)

        assert collector.events == [("workflow-run-start", {"x": 1}), ("workflow-run-stop", None)]

    def test_filtered_listener(self, collector):
        """Test that a filtered listener only sees its event, case-insensitively."""
        notifier = EventNotifier()
        notifier.add_listener(collector, "WORKFLOW-NODE-START")

        notifier.notify("workflow-node-start", {"node_id": "a"})
        notifier.notify("workflow-node-stop", {"node_id": "a"})

        assert collector.names == ["workflow-node-start"]

    def test_enum_filter(self, collector):
        """Test filtering by a WorkflowEvent member."""
        notifier = EventNotifier()
        notifier.add_listener(collector, WorkflowEvent.EDGE_TRAVERSED)

        notifier.notify(WorkflowEvent.EDGE_TRAVERSED, {})
        notifier.notify(WorkflowEvent.NODE_START, {})

        assert collector.names == ["workflow-edge-traversed"]

    def test_blank_filter_means_all(self, collector):
        """Test that a blank filter is treated as the wildcard."""
        notifier = EventNotifier()
        notifier.add_listener(collector, "  ")
        notifier.notify("anything")
        assert collector.names == ["anything"]

    def test_reregistering_replaces_filter(self, collector):
        """Test that adding the same listener twice keeps one registration."""
        notifier = EventNotifier()
        notifier.add_listener(collector, "first")
        notifier.add_listener(collector, "second")

        notifier.notify("first")
        notifier.notify("second")

        assert collector.names == ["second"]
        assert notifier.listener_count == 1

    def test_remove_listener(self, collector):
        """Test that a removed listener receives nothing."""
        notifier = EventNotifier()
        notifier.add_listener(collector)
        notifier.remove_listener(collector)
        notifier.notify("event")
        assert collector.events == []

    def test_blank_event_name_is_dropped(self, collector):
        """Test that empty event names are not delivered."""
        notifier = EventNotifier()
        notifier.add_listener(collector)
        notifier.notify("")
        notifier.notify("   ")
        assert collector.events == []

    def test_invalid_listener(self):
        """Test registering something that is not callable."""
        notifier = EventNotifier()
        with pytest.raises(ValueError):
            notifier.add_listener(None)
        with pytest.raises(ValueError):
            notifier.add_listener("not callable")

    def test_raising_listener_is_isolated(self, collector):
        """Test that one failing listener does not block the others."""
        def broken(event_name, payload):
            raise RuntimeError("broken listener")

        notifier = EventNotifier()
        notifier.add_listener(broken)
        notifier.add_listener(collector)

        for i in range(12):
            notifier.notify("tick", {"i": i})

        assert len(collector.events) == 12

    def test_unreferenced_lambda_is_dropped(self):
        """Test that a weakly held listener disappears once collected."""
        received = []
        notifier = EventNotifier()
        notifier.add_listener(lambda name, payload: received.append(name))
        gc.collect()

        notifier.notify("event")
        assert received == []
        assert notifier.listener_count == 0

    def test_bound_method_of_discarded_object_is_dropped(self):
        """Test that a bound method does not keep its object alive."""
        recorder = Recorder()
        notifier = EventNotifier()
        notifier.add_listener(recorder.on_event)

        notifier.notify("first")
        assert recorder.received == [("first", None)]

        del recorder
        gc.collect()
        assert notifier.listener_count == 0

    def test_bound_method_can_be_removed(self):
        """Test removing a bound method registered earlier."""
        recorder = Recorder()
        notifier = EventNotifier()
        notifier.add_listener(recorder.on_event)
        notifier.remove_listener(recorder.on_event)
        notifier.notify("event")
        assert recorder.received == []

    def test_strong_listener_survives(self):
        """Test that weak=False keeps an otherwise unreferenced listener."""
        received = []
        notifier = EventNotifier()
        notifier.add_listener(lambda name, payload: received.append(name), weak=False)
        gc.collect()

        notifier.notify("event")
        assert received == ["event"]

    def test_periodic_cleanup(self):
        """Test that dead registrations are swept after enough operations."""
        notifier = EventNotifier()
        notifier.add_listener(lambda name, payload: None)
        gc.collect()

        for _ in range(CLEANUP_THRESHOLD):
            notifier.notify("tick")
        assert notifier._registrations == ()

    def test_listener_added_during_notification(self, collector):
        """Test that changes during a notification apply to the next one."""
        notifier = EventNotifier()

        def adder(event_name, payload):
            notifier.add_listener(collector)

        notifier.add_listener(adder)
        notifier.notify("first")
        notifier.notify("second")

        assert collector.names == ["second"]

    def test_concurrent_add_remove_and_notify(self):
        """Test that concurrent registration and notification is safe."""
        notifier = EventNotifier()
        keep_alive = [Recorder() for _ in range(20)]
        errors = []

        def churn(recorder):
            try:
                for _ in range(50):
                    notifier.add_listener(recorder.on_event)
                    notifier.notify("event")
                    notifier.remove_listener(recorder.on_event)
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=churn, args=(r,)) for r in keep_alive]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert notifier.listener_count == 0
        assert all(r.received for r in keep_alive)
