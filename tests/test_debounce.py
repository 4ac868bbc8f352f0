"""Tests for DebounceGate."""

import asyncio
import logging

import pytest

from cadenza.config import DebounceState, GateConfig
from cadenza.gates.debounce import DebounceGate


@pytest.fixture
def gate(clock, debounce_config, emitted):
    return DebounceGate("", config=debounce_config, scheduler=clock, on_emit=emitted.append)


class TestDebounceQuiescence:
    def test_single_update_emits_once_after_delay(self, gate, clock, emitted):
        assert gate.update("v") == ""
        clock.advance_to(99)
        assert gate.value == ""
        assert gate.state is DebounceState.BURST_PENDING
        clock.advance_to(100)
        assert gate.value == "v"
        assert emitted == ["v"]
        clock.advance_to(1000)
        assert emitted == ["v"]
        assert gate.state is DebounceState.QUIET

    def test_burst_collapses_to_last_value(self, gate, clock, emitted):
        for t, value in [(0, "a"), (50, "ab"), (100, "abc"), (150, "abcd")]:
            clock.advance_to(t)
            gate.update(value)
        clock.advance_to(249)
        assert emitted == []
        clock.advance_to(250)
        assert emitted == ["abcd"]

    def test_identical_value_still_resets_timer(self, gate, clock, emitted):
        gate.update("x")
        clock.advance_to(80)
        gate.update("x")
        clock.advance_to(100)
        assert emitted == []
        clock.advance_to(180)
        assert emitted == ["x"]

    def test_separate_bursts_emit_separately(self, gate, clock, emitted):
        gate.update("first")
        clock.advance_to(200)
        gate.update("second")
        clock.advance_to(300)
        assert emitted == ["first", "second"]


class TestDebounceLeading:
    def test_first_update_of_burst_emits_immediately(self, clock, emitted):
        gate = DebounceGate("", config=GateConfig.debounce(100, leading=True), scheduler=clock, on_emit=emitted.append)
        assert gate.update("a") == "a"
        assert gate.state is DebounceState.BURST_PENDING
        clock.advance_to(100)
        assert emitted == ["a"]
        assert gate.state is DebounceState.QUIET

    def test_new_burst_leads_again(self, clock, emitted):
        gate = DebounceGate("", config=GateConfig.debounce(100, leading=True), scheduler=clock, on_emit=emitted.append)
        gate.update("a")
        clock.advance_to(200)
        gate.update("b")
        clock.advance_to(250)
        gate.update("c")
        assert emitted == ["a", "b"]
        clock.advance_to(350)
        assert emitted == ["a", "b", "c"]

    def test_leading_without_trailing(self, clock, emitted):
        config = GateConfig.debounce(100, leading=True, trailing=False)
        gate = DebounceGate("", config=config, scheduler=clock, on_emit=emitted.append)
        gate.update("a")
        clock.advance_to(50)
        gate.update("b")
        clock.advance_to(500)
        assert emitted == ["a"]
        assert gate.value == "a"

    def test_leading_failure_propagates(self, clock):
        def boom(_value):
            raise RuntimeError("listener failed")

        gate = DebounceGate("", config=GateConfig.debounce(100, leading=True), scheduler=clock, on_emit=boom)
        with pytest.raises(RuntimeError, match="listener failed"):
            gate.update("a")


class TestDebounceMaxWait:
    def test_continuous_burst_emits_at_max_wait(self, clock, emitted):
        config = GateConfig.debounce(100, max_wait=250)
        gate = DebounceGate(None, config=config, scheduler=clock, on_emit=emitted.append)
        for t in range(0, 501, 50):
            clock.advance_to(t)
            gate.update(t)
            if t == 250:
                assert gate.burst_started == 250
        assert emitted == [200, 450]
        clock.advance_to(600)
        assert emitted == [200, 450, 500]
        assert gate.state is DebounceState.QUIET
        assert clock.pending == 0

    def test_short_burst_cancels_max_wait(self, clock, emitted):
        config = GateConfig.debounce(100, max_wait=250)
        gate = DebounceGate(None, config=config, scheduler=clock, on_emit=emitted.append)
        gate.update(1)
        clock.advance_to(100)
        assert emitted == [1]
        assert clock.pending == 0
        clock.advance_to(1000)
        assert emitted == [1]

    def test_max_wait_equal_to_delay(self, clock, emitted):
        config = GateConfig.debounce(100, max_wait=100)
        gate = DebounceGate(None, config=config, scheduler=clock, on_emit=emitted.append)
        gate.update(1)
        clock.advance_to(100)
        assert emitted == [1]
        assert clock.pending == 0


class TestDebounceFlushCancel:
    def test_flush_emits_pending_now(self, gate, clock, emitted):
        gate.update("now")
        assert gate.flush() == "now"
        assert emitted == ["now"]
        assert clock.pending == 0
        assert gate.state is DebounceState.QUIET

    def test_flush_twice_emits_once(self, gate, emitted):
        gate.update("once")
        gate.flush()
        gate.flush()
        assert emitted == ["once"]

    def test_flush_nothing_pending_is_noop(self, gate, emitted):
        assert gate.flush() == ""
        assert emitted == []

    def test_cancel_discards_pending(self, gate, clock, emitted):
        gate.update("gone")
        gate.cancel()
        clock.advance_to(1000)
        assert emitted == []
        assert gate.value == ""
        assert clock.pending == 0

    def test_cancel_nothing_pending_is_noop(self, gate):
        gate.cancel()
        assert gate.state is DebounceState.QUIET


class TestDebounceLifecycle:
    def test_close_cancels_timers(self, clock, emitted):
        config = GateConfig.debounce(100, max_wait=300)
        gate = DebounceGate("", config=config, scheduler=clock, on_emit=emitted.append)
        gate.update("late")
        assert clock.pending == 2
        gate.close()
        assert clock.pending == 0
        clock.advance_to(1000)
        assert emitted == []

    def test_update_after_close_raises(self, gate):
        gate.close()
        with pytest.raises(RuntimeError, match="DebounceGate is closed"):
            gate.update("x")

    def test_config_change_applies_at_next_update(self, gate, clock, emitted):
        gate.update("a")
        gate.delay = 300
        clock.advance_to(100)
        assert emitted == ["a"]
        gate.update("b")
        clock.advance_to(399)
        assert emitted == ["a"]
        clock.advance_to(400)
        assert emitted == ["a", "b"]

    def test_deferred_failure_is_reported(self, clock, caplog):
        def boom(_value):
            raise RuntimeError("listener failed")

        gate = DebounceGate("", config=GateConfig.debounce(100), scheduler=clock, on_emit=boom)
        gate.update("x")
        with caplog.at_level(logging.ERROR, logger="cadenza.scheduler"):
            clock.advance_to(100)
        assert "DebounceGate deferred emission failed" in caplog.text
        assert gate.value == "x"
        assert gate.state is DebounceState.QUIET

    def test_default_config(self):
        gate = DebounceGate(0)
        assert gate.config == GateConfig.debounce()


class TestDebounceAsyncio:
    async def test_next_value_skips_leading_emission(self, clock):
        gate = DebounceGate("", config=GateConfig.debounce(100, leading=True), scheduler=clock)
        gate.update("a")
        gate.update("ab")
        waiter = asyncio.create_task(gate.next_value())
        await asyncio.sleep(0)
        assert not waiter.done()
        clock.advance_to(100)
        assert await asyncio.wait_for(waiter, timeout=1.0) == "ab"

    async def test_next_value_on_event_loop(self):
        gate = DebounceGate("", config=GateConfig.debounce(0.05))
        gate.update("he")
        gate.update("hello")
        value = await asyncio.wait_for(gate.next_value(), timeout=1.0)
        assert value == "hello"
        gate.close()

    async def test_async_with_closes(self):
        async with DebounceGate("", config=GateConfig.debounce(0.05)) as gate:
            gate.update("x")
        assert gate.closed is True
        assert gate.is_pending is False
