import logging

import numpy as np

from triaxial3d.solver import CompletedEvent, EventChannel, FailureEvent, ProgressEvent


class TestEventChannel:

    def test_drain_in_order(self):
        channel = EventChannel()
        channel.publish(ProgressEvent(10, 1, "a"))
        channel.publish(ProgressEvent(20, 2, "b"))
        events = channel.drain()
        assert [e.status for e in events] == ["a", "b"]
        assert channel.drain() == []
        assert channel.get(timeout=0.01) is None

    def test_subscribers_called_synchronously(self):
        channel = EventChannel()
        seen = []
        callback = channel.subscribe(seen.append)
        event = FailureEvent(55.0, 1e-3, 4, 20)
        channel.publish(event)
        assert seen == [event]
        channel.unsubscribe(callback)
        channel.publish(ProgressEvent(0, 0, "x"))
        assert seen == [event]

    def test_subscriber_error_is_logged(self, caplog):
        channel = EventChannel()

        def broken(event):
            raise RuntimeError("listener broke")

        channel.subscribe(broken)
        with caplog.at_level(logging.ERROR):
            channel.publish(ProgressEvent(0, 0, "x"))
        assert "listener broke" in caplog.text
        assert channel.get(timeout=0.01).status == "x"


class TestCompletedEvent:

    def test_peak(self):
        event = CompletedEvent(strain=np.array([0.0, 1e-4, 2e-4, 3e-4]),
                               stress=np.array([10.0, 40.0, 55.0, 50.0]),
                               increments=np.array([0, 1, 2, 3]))
        assert event.peak_stress == 55.0
        assert event.peak_strain == 2e-4
        assert event.total_steps == 3
        assert event.failure_increment == -1

    def test_empty(self):
        event = CompletedEvent(error="no material")
        assert event.peak_stress == 0.0
        assert event.peak_strain == 0.0
        assert event.total_steps == 0
