"""Tests for primary/fallback dispatch and the circuit breaker."""

import asyncio

import pytest

from src.models.search import PropertySearchFilters
from src.services.fallback import CircuitBreaker, CircuitState, FallbackDispatcher
from src.services.mock_store import MockPropertyStore
from src.utils.errors import BackendUnavailableError, NotFoundError


class ScriptedBackend:
    """Primary backend whose search outcomes are scripted per call."""

    name = "scripted"

    def __init__(self, outcomes, healthy=True):
        self.outcomes = list(outcomes)
        self.healthy = healthy
        self.calls = 0

    async def health_check(self):
        return self.healthy

    async def search_properties(self, filters):
        self.calls += 1
        await asyncio.sleep(0)
        outcome = self.outcomes.pop(0) if self.outcomes else "ok"
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def aclose(self):
        return None


class ManualClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


@pytest.mark.unit
@pytest.mark.asyncio
async def test_without_recovery_one_failure_pins_the_fallback():
    """After one failure every later call uses mock data and never retries the primary."""
    primary = ScriptedBackend([BackendUnavailableError("down"), "remote"])
    fallback = MockPropertyStore.seeded()
    dispatcher = FallbackDispatcher(primary, fallback, failure_threshold=1, recovery_timeout=None)

    first = await dispatcher.call("search_properties", PropertySearchFilters())
    second = await dispatcher.call("search_properties", PropertySearchFilters())
    third = await dispatcher.call("search_properties", PropertySearchFilters())

    assert primary.calls == 1
    assert first.total == 6
    assert second.total == 6
    assert third.total == 6
    assert dispatcher.backend_available is False


@pytest.mark.unit
@pytest.mark.asyncio
async def test_open_circuit_is_retried_after_recovery_timeout(freeze_time_fixture):
    """A half-open trial call that succeeds closes the circuit again."""
    primary = ScriptedBackend([BackendUnavailableError("down"), "remote", "remote"])
    dispatcher = FallbackDispatcher(primary, MockPropertyStore.seeded(), recovery_timeout=30)

    await dispatcher.call("search_properties", PropertySearchFilters())
    freeze_time_fixture.tick(10)
    await dispatcher.call("search_properties", PropertySearchFilters())
    assert primary.calls == 1

    freeze_time_fixture.tick(25)
    assert dispatcher.breaker.state == CircuitState.HALF_OPEN
    result = await dispatcher.call("search_properties", PropertySearchFilters())

    assert result == "remote"
    assert primary.calls == 2
    assert dispatcher.breaker.state == CircuitState.CLOSED
    assert await dispatcher.call("search_properties", PropertySearchFilters()) == "remote"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_failed_half_open_trial_reopens():
    """A failing trial call re-opens the circuit and restarts the timer."""
    clock = ManualClock()
    primary = ScriptedBackend([BackendUnavailableError("down"), BackendUnavailableError("still down")])
    dispatcher = FallbackDispatcher(primary, MockPropertyStore(), recovery_timeout=30, clock=clock)

    await dispatcher.call("search_properties", PropertySearchFilters())
    clock.now = 31
    await dispatcher.call("search_properties", PropertySearchFilters())

    assert primary.calls == 2
    assert dispatcher.breaker.state == CircuitState.OPEN
    clock.now = 50
    assert dispatcher.breaker.state == CircuitState.OPEN
    clock.now = 61
    assert dispatcher.breaker.state == CircuitState.HALF_OPEN


@pytest.mark.unit
@pytest.mark.asyncio
async def test_threshold_counts_consecutive_failures():
    """The circuit opens only once the threshold is reached."""
    primary = ScriptedBackend([BackendUnavailableError("a"), BackendUnavailableError("b"), "remote"])
    dispatcher = FallbackDispatcher(primary, MockPropertyStore(), failure_threshold=2)

    await dispatcher.call("search_properties", PropertySearchFilters())
    assert dispatcher.backend_available is True

    await dispatcher.call("search_properties", PropertySearchFilters())
    assert dispatcher.backend_available is False


@pytest.mark.unit
@pytest.mark.asyncio
async def test_domain_errors_propagate_without_tripping():
    """Missing records are the caller's problem, not a backend outage."""
    primary = ScriptedBackend([NotFoundError("Property", "p1")])
    dispatcher = FallbackDispatcher(primary, MockPropertyStore())

    with pytest.raises(NotFoundError):
        await dispatcher.call("search_properties", PropertySearchFilters())

    assert dispatcher.breaker.state == CircuitState.CLOSED


@pytest.mark.unit
@pytest.mark.asyncio
async def test_failed_health_check_opens_circuit():
    """initialize() routes to the fallback when the health check fails."""
    primary = ScriptedBackend([], healthy=False)
    fallback = MockPropertyStore.seeded()
    dispatcher = FallbackDispatcher(primary, fallback)

    assert await dispatcher.initialize() is False
    assert dispatcher.active_backend is fallback

    await dispatcher.call("search_properties", PropertySearchFilters())
    assert primary.calls == 0


@pytest.mark.unit
@pytest.mark.asyncio
async def test_healthy_check_keeps_primary():
    """A healthy primary serves calls."""
    primary = ScriptedBackend(["remote"])
    dispatcher = FallbackDispatcher(primary, MockPropertyStore())

    assert await dispatcher.initialize() is True
    assert await dispatcher.call("search_properties", PropertySearchFilters()) == "remote"


@pytest.mark.unit
def test_breaker_rejects_zero_threshold():
    """A threshold below one is a configuration mistake."""
    with pytest.raises(ValueError):
        CircuitBreaker(failure_threshold=0)


@pytest.mark.unit
def test_fallback_is_logged(caplog):
    """Falling back is logged at WARNING."""
    import asyncio
    import logging

    primary = ScriptedBackend([BackendUnavailableError("connection refused")])
    dispatcher = FallbackDispatcher(primary, MockPropertyStore())

    with caplog.at_level(logging.WARNING, logger="src.services.fallback"):
        asyncio.run(dispatcher.call("search_properties", PropertySearchFilters()))

    assert any("falling back" in record.getMessage() for record in caplog.records)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_half_open_admits_a_single_trial_call():
    """Concurrent callers during half-open use the fallback while one call tries the primary."""
    clock = ManualClock()
    primary = ScriptedBackend([BackendUnavailableError("down"), "remote"])
    dispatcher = FallbackDispatcher(primary, MockPropertyStore.seeded(), recovery_timeout=30, clock=clock)

    await dispatcher.call("search_properties", PropertySearchFilters())
    clock.now = 31

    results = await asyncio.gather(
        *(dispatcher.call("search_properties", PropertySearchFilters()) for _ in range(5))
    )

    assert primary.calls == 2
    assert results.count("remote") == 1
    assert all(r.total == 6 for r in results if r != "remote")
    assert dispatcher.breaker.state == CircuitState.CLOSED


@pytest.mark.unit
@pytest.mark.asyncio
async def test_domain_error_during_half_open_frees_the_trial():
    """A not-found answer ends the trial call so the next caller may try the primary."""
    clock = ManualClock()
    primary = ScriptedBackend([BackendUnavailableError("down"), NotFoundError("Property", "p1"), "remote"])
    dispatcher = FallbackDispatcher(primary, MockPropertyStore(), recovery_timeout=30, clock=clock)

    await dispatcher.call("search_properties", PropertySearchFilters())
    clock.now = 31

    with pytest.raises(NotFoundError):
        await dispatcher.call("search_properties", PropertySearchFilters())
    assert dispatcher.breaker.state == CircuitState.HALF_OPEN

    assert await dispatcher.call("search_properties", PropertySearchFilters()) == "remote"
    assert primary.calls == 3


@pytest.mark.unit
def test_reading_availability_does_not_consume_the_trial():
    """backend_available is a plain read of the circuit."""
    clock = ManualClock()
    breaker_dispatcher = FallbackDispatcher(
        ScriptedBackend([]), MockPropertyStore(), recovery_timeout=30, clock=clock
    )
    breaker_dispatcher.breaker.trip()
    clock.now = 31

    assert breaker_dispatcher.backend_available is True
    assert breaker_dispatcher.backend_available is True
    assert breaker_dispatcher.breaker.allow_request() is True
    assert breaker_dispatcher.breaker.allow_request() is False
