"""Notification stream tests: countdown, cancellation, dropped ticks and guards.

Intervals are kept short and every wait is bounded so a broken ticker fails
the test instead of hanging it.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone

import pytest

from isoperiod import Period, PeriodError, StopReason, Ticker, TickerState

_INTERVAL = 0.01
_WAIT = 2.0


class TestCountdown:
    def test_bounded_stream_closes_after_budget(self) -> None:
        period = Period.parse("R3/PT1S")
        ticker = period.start(interval=_INTERVAL)

        ticks = list(ticker)

        assert ticker.join(_WAIT)
        assert len(ticks) <= 3
        assert len(ticks) == ticker.emitted
        assert ticker.emitted + ticker.dropped == 3
        assert ticker.stop_reason is StopReason.EXHAUSTED
        assert ticker.state is TickerState.STOPPED
        assert not period.running

    def test_ticks_in_order(self) -> None:
        ticker = Period.parse("R5/PT1S").start(interval=_INTERVAL)
        ticks = list(ticker)
        assert ticks == sorted(ticks)

    def test_zero_budget_closes_without_ticks(self) -> None:
        period = Period.parse("P1D")
        ticker = period.start(interval=_INTERVAL)

        assert list(ticker) == []
        assert ticker.join(_WAIT)
        assert ticker.stop_reason is StopReason.EXHAUSTED
        assert ticker.emitted == 0

    def test_stop_after_exhaustion_is_noop(self) -> None:
        period = Period.parse("R1/PT1S")
        ticker = period.start(interval=_INTERVAL)
        list(ticker)
        assert ticker.join(_WAIT)

        period.stop()
        ticker.stop()

        assert ticker.stop_reason is StopReason.EXHAUSTED
        assert ticker.state is TickerState.STOPPED

    def test_period_not_consumed(self) -> None:
        period = Period.parse("R2/PT1S")
        list(period.start(interval=_INTERVAL))
        assert period.repetitions == 2


class TestCancellation:
    def test_stop_unbounded_stream(self) -> None:
        period = Period.parse("R/PT1S")
        ticker = period.start(interval=_INTERVAL)

        assert ticker.get(timeout=_WAIT) is not None
        assert ticker.get(timeout=_WAIT) is not None
        period.stop()

        assert ticker.join(_WAIT)
        emitted = ticker.emitted
        assert ticker.get(timeout=_INTERVAL * 5) is None
        assert ticker.emitted == emitted
        assert ticker.stop_reason is StopReason.CANCELLED
        assert not period.running

    def test_iteration_ends_on_stop(self) -> None:
        ticker = Period.parse("R/PT1S").start(interval=_INTERVAL)
        received = []
        for tick in ticker:
            received.append(tick)
            if len(received) == 3:
                ticker.stop()
        assert len(received) >= 3
        assert ticker.stop_reason is StopReason.CANCELLED

    def test_stop_returns_without_waiting(self) -> None:
        ticker = Period.parse("R/PT1S").start(interval=60.0)
        ticker.stop()
        assert ticker.join(_WAIT)
        assert ticker.emitted == 0
        assert ticker.stop_reason is StopReason.CANCELLED

    def test_stop_when_idle_is_noop(self) -> None:
        period = Period.parse("R/PT1S")
        period.stop()
        ticker = Ticker(period.data)
        ticker.stop()
        assert ticker.state is TickerState.IDLE
        assert ticker.join(0)

    def test_context_manager_closes(self) -> None:
        with Period.parse("R/PT1S").start(interval=_INTERVAL) as ticker:
            assert ticker.get(timeout=_WAIT) is not None
        assert ticker.state is TickerState.STOPPED
        assert ticker.stop_reason is StopReason.CANCELLED

    def test_close_reports_missed_deadline(self) -> None:
        entered = threading.Event()
        release = threading.Event()

        def slow_clock() -> datetime:
            entered.set()
            release.wait(_WAIT)
            return datetime.now(timezone.utc)

        ticker = Period.parse("R/PT1S").start(interval=_INTERVAL, clock=slow_clock)
        try:
            # The thread is now inside the clock call and cannot see the stop.
            assert entered.wait(_WAIT)
            with pytest.raises(PeriodError) as exc_info:
                ticker.close(timeout=_INTERVAL * 5)
            assert exc_info.value.kind == "state"
        finally:
            release.set()
        assert ticker.join(_WAIT)
        assert ticker.stop_reason is StopReason.CANCELLED

    def test_failing_clock_ends_stream(self, caplog: pytest.LogCaptureFixture) -> None:
        def broken_clock() -> datetime:
            raise RuntimeError("clock unavailable")

        period = Period.parse("R/PT1S")
        ticker = period.start(interval=_INTERVAL, clock=broken_clock)

        assert list(ticker) == []
        assert ticker.join(_WAIT)
        assert ticker.stop_reason is StopReason.FAILED
        assert ticker.state is TickerState.STOPPED
        assert not period.running
        failures = [r for r in caplog.records if r.getMessage() == "ticker clock failed"]
        assert len(failures) == 1
        assert failures[0].exc_info is not None


class TestDelivery:
    def test_ticks_dropped_without_receiver(self) -> None:
        ticker = Period.parse("R3/PT1S").start(interval=_INTERVAL)
        assert ticker.join(_WAIT)
        assert ticker.dropped == 3
        assert ticker.emitted == 0
        assert list(ticker) == []

    def test_clock_supplies_ticks(self) -> None:
        fixed = datetime(2023, 1, 1, tzinfo=timezone.utc)
        ticker = Period.parse("R2/PT1S").start(interval=_INTERVAL, clock=lambda: fixed)
        assert all(tick == fixed for tick in ticker)

    def test_get_times_out(self) -> None:
        with Period.parse("R/PT1S").start(interval=60.0) as ticker:
            assert ticker.get(timeout=_INTERVAL) is None
            assert ticker.running


class TestGuards:
    def test_second_start_rejected(self) -> None:
        period = Period.parse("R/PT1S")
        ticker = period.start(interval=60.0)
        try:
            assert period.running
            with pytest.raises(PeriodError, match="already running") as exc_info:
                period.start(interval=60.0)
            assert exc_info.value.kind == "state"
            assert period.ticker is ticker
        finally:
            ticker.close()

    def test_restart_after_stop(self) -> None:
        period = Period.parse("R/PT1S")
        period.start(interval=60.0).close()

        ticker = period.start(interval=_INTERVAL)
        try:
            assert ticker.get(timeout=_WAIT) is not None
        finally:
            ticker.close()

    def test_ticker_starts_once(self) -> None:
        ticker = Ticker(Period.parse("R1/PT1S").data, interval=_INTERVAL)
        ticker.start()
        with pytest.raises(PeriodError):
            ticker.start()
        assert ticker.join(_WAIT)

    @pytest.mark.parametrize("interval", [0, -1.0])
    def test_interval_must_be_positive(self, interval: float) -> None:
        with pytest.raises(ValueError):
            Period.parse("R/PT1S").start(interval=interval)


class TestLogging:
    def test_lifecycle_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.DEBUG, logger="isoperiod")
        ticker = Period.parse("R1/PT1S").start(interval=_INTERVAL)
        assert ticker.join(_WAIT)

        messages = [r.getMessage() for r in caplog.records if r.name == "isoperiod._ticker"]
        assert any(m.startswith("ticker started") for m in messages)
        assert any(m.startswith("ticker exhausted") for m in messages)

    def test_start_logged_before_exhaustion(self, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.DEBUG, logger="isoperiod")
        ticker = Period.parse("P1D").start(interval=_INTERVAL)
        assert ticker.join(_WAIT)

        messages = [r.getMessage() for r in caplog.records if r.name == "isoperiod._ticker"]
        started = next(i for i, m in enumerate(messages) if m.startswith("ticker started"))
        exhausted = next(i for i, m in enumerate(messages) if m.startswith("ticker exhausted"))
        assert started < exhausted
