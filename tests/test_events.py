"""Tests for the simulation event emitter."""

import logging

from flowsim.engine.events import EventEmitter, EventType, SimulationEvent


class TestEventEmitter:
    """Tests for EventEmitter."""

    def test_emit_delivers_to_listeners(self):
        """emit() builds a timestamped event and hands it to each listener."""
        emitter = EventEmitter(clock=lambda: 12.5)
        received: list[SimulationEvent] = []
        emitter.on(EventType.TICK, received.append)

        event = emitter.emit(EventType.TICK, {"delta_time": 0.1})

        assert received == [event]
        assert event.type == EventType.TICK
        assert event.timestamp == 12.5
        assert event.data == {"delta_time": 0.1}

    def test_listeners_only_receive_their_type(self):
        """Listeners only see events of the type they registered for."""
        emitter = EventEmitter()
        received: list[SimulationEvent] = []
        emitter.on(EventType.TOKEN_CREATED, received.append)
        emitter.emit(EventType.TICK, {})
        assert received == []

    def test_string_event_types_accepted(self):
        """Wire names such as 'tokenCreated' are accepted by on/off."""
        emitter = EventEmitter()
        received: list[SimulationEvent] = []
        emitter.on("tokenCreated", received.append)
        emitter.emit(EventType.TOKEN_CREATED, {})
        assert len(received) == 1
        emitter.off("tokenCreated", received.append)
        assert emitter.listener_count(EventType.TOKEN_CREATED) == 0

    def test_same_listener_registered_once(self):
        """Registering the same listener twice delivers each event once."""
        emitter = EventEmitter()
        calls: list[SimulationEvent] = []
        emitter.on(EventType.TICK, calls.append)
        emitter.on(EventType.TICK, calls.append)
        emitter.emit(EventType.TICK, {})
        assert len(calls) == 1

    def test_off_unknown_listener_is_ignored(self):
        """Removing a listener that was never added does nothing."""
        emitter = EventEmitter()
        emitter.off(EventType.TICK, lambda event: None)
        assert emitter.listener_count(EventType.TICK) == 0

    def test_failing_listener_does_not_stop_others(self, caplog):
        """A raising listener is logged and the remaining listeners still run."""
        emitter = EventEmitter()
        received: list[SimulationEvent] = []

        def broken(event: SimulationEvent) -> None:
            raise RuntimeError("listener failure")

        emitter.on(EventType.TICK, broken)
        emitter.on(EventType.TICK, received.append)

        with caplog.at_level(logging.ERROR, logger="flowsim.engine.events"):
            emitter.emit(EventType.TICK, {})

        assert len(received) == 1
        assert "Error in simulation event listener for tick" in caplog.text

    def test_listener_may_unsubscribe_during_emit(self):
        """A listener can remove itself while the event is being delivered."""
        emitter = EventEmitter()
        calls: list[str] = []

        def once(event: SimulationEvent) -> None:
            calls.append("once")
            emitter.off(EventType.TICK, once)

        emitter.on(EventType.TICK, once)
        emitter.emit(EventType.TICK, {})
        emitter.emit(EventType.TICK, {})
        assert calls == ["once"]

    def test_clear_removes_everything(self):
        """clear() drops the listeners of every event type."""
        emitter = EventEmitter()
        emitter.on(EventType.TICK, lambda event: None)
        emitter.on(EventType.STATUS_CHANGE, lambda event: None)
        emitter.clear()
        assert emitter.listener_count(EventType.TICK) == 0
        assert emitter.listener_count(EventType.STATUS_CHANGE) == 0
