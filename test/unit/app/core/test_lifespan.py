"""Tests for lifespan management."""

from unittest.mock import MagicMock

import pytest

from app.core.lifespan import BaseEvent, Lifespan, State, create_lifespan


# -----------------------------------------------------------------------------
# State Tests
# -----------------------------------------------------------------------------


class TestState:
    """Tests for the State class."""

    def test_state_set_and_get_attribute(self) -> None:
        state = State()
        state.uploads = {"assignments": "ingestor"}
        assert state.uploads == {"assignments": "ingestor"}

    def test_state_get_nonexistent_attribute_raises(self) -> None:
        state = State()
        with pytest.raises(AttributeError, match="State has no attribute 'missing'"):
            _ = state.missing

    def test_state_contains(self) -> None:
        state = State()
        state.uploads = {}
        assert "uploads" in state
        assert "missing" not in state

    def test_state_get_with_default(self) -> None:
        state = State()
        assert state.get("missing") is None
        assert state.get("missing", "default") == "default"

    def test_state_clear(self) -> None:
        state = State()
        state.a = 1
        state.clear()
        assert "a" not in state


# -----------------------------------------------------------------------------
# BaseEvent Tests
# -----------------------------------------------------------------------------


class TestBaseEvent:
    """Tests for BaseEvent abstract class."""

    def test_has_shutdown_returns_false_when_not_overridden(self) -> None:
        class NoShutdownEvent(BaseEvent[str]):
            name = "no_shutdown"

            async def startup(self) -> str:
                return "started"

        assert not NoShutdownEvent.has_shutdown()

    def test_has_shutdown_returns_true_when_overridden(self) -> None:
        class WithShutdownEvent(BaseEvent[str]):
            name = "with_shutdown"

            async def startup(self) -> str:
                return "started"

            async def shutdown(self, instance: str) -> None:
                pass

        assert WithShutdownEvent.has_shutdown()


# -----------------------------------------------------------------------------
# Lifespan Tests
# -----------------------------------------------------------------------------


class TestLifespan:
    """Tests for Lifespan class."""

    def test_create_lifespan_returns_lifespan(self) -> None:
        assert isinstance(create_lifespan(MagicMock()), Lifespan)

    def test_register_returns_self_for_chaining(self) -> None:
        lifespan = Lifespan(MagicMock())

        class DummyEvent(BaseEvent[str]):
            name = "dummy"

            async def startup(self) -> str:
                return "dummy"

        assert lifespan.register(DummyEvent) is lifespan

    def test_state_is_none_before_startup(self) -> None:
        lifespan = Lifespan(MagicMock())
        assert lifespan.state is None
        assert lifespan.events == []

    async def test_startup_initializes_state(self) -> None:
        mock_app = MagicMock()
        lifespan = Lifespan(mock_app)

        class TestEvent(BaseEvent[str]):
            name = "test_event"

            async def startup(self) -> str:
                return "test_value"

        lifespan.register(TestEvent)
        await lifespan.startup()

        assert lifespan.state is not None
        assert lifespan.state.test_event == "test_value"
        mock_app.inject_global.assert_called_once_with(state=lifespan.state)

    async def test_shutdown_calls_event_shutdown_in_reverse(self) -> None:
        shutdown_called = []

        class EventA(BaseEvent[str]):
            name = "event_a"

            async def startup(self) -> str:
                return "a"

            async def shutdown(self, instance: str) -> None:
                shutdown_called.append(instance)

        class EventB(BaseEvent[str]):
            name = "event_b"

            async def startup(self) -> str:
                return "b"

            async def shutdown(self, instance: str) -> None:
                shutdown_called.append(instance)

        lifespan = Lifespan(MagicMock())
        lifespan.register(EventA).register(EventB)

        await lifespan.startup()
        await lifespan.shutdown()

        assert shutdown_called == ["b", "a"]
        assert lifespan.events == []
        assert lifespan.state is not None and "event_a" not in lifespan.state

    async def test_shutdown_handles_no_state(self) -> None:
        lifespan = Lifespan(MagicMock())
        await lifespan.shutdown()
