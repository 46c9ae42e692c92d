from __future__ import annotations

import asyncio

import pytest
from prometheus_client import REGISTRY

from app.core.errors import UpstreamFailure
from app.services.cascade import Saga


def _get_sample(name: str, labels: dict | None = None) -> float:
    value = REGISTRY.get_sample_value(name, labels=labels or {})
    return value if value is not None else 0.0


def _recorder(log: list[str], label: str, *, fail: bool = False):
    async def step() -> None:
        if fail:
            raise RuntimeError(label)
        log.append(label)

    return step


def test_runs_steps_in_order() -> None:
    log: list[str] = []
    saga = Saga("ordered")
    for name in ("a", "b", "c"):
        saga.add(name, _recorder(log, name), compensate=_recorder(log, f"undo {name}"))

    asyncio.run(saga.run())
    assert log == ["a", "b", "c"]
    assert [s.name for s in saga.steps] == ["a", "b", "c"]


def test_failure_compensates_in_reverse() -> None:
    log: list[str] = []
    saga = Saga("reverse")
    saga.add("a", _recorder(log, "a"), compensate=_recorder(log, "undo a"))
    saga.add("b", _recorder(log, "b"))
    saga.add("c", _recorder(log, "c"), compensate=_recorder(log, "undo c"))
    saga.add("d", _recorder(log, "d", fail=True), compensate=_recorder(log, "undo d"))

    with pytest.raises(UpstreamFailure) as exc_info:
        asyncio.run(saga.run())

    # "d" never completed, so its compensation does not run
    assert log == ["a", "b", "c", "undo c", "undo a"]
    assert exc_info.value.details == {"step": "d"}
    assert isinstance(exc_info.value.__cause__, RuntimeError)


def test_failed_compensation_is_counted_and_others_still_run(
    caplog: pytest.LogCaptureFixture,
) -> None:
    log: list[str] = []
    saga = Saga("partial")
    saga.add("a", _recorder(log, "a"), compensate=_recorder(log, "undo a"))
    saga.add("b", _recorder(log, "b"), compensate=_recorder(log, "undo b", fail=True))
    saga.add("c", _recorder(log, "c", fail=True))

    before = _get_sample("course_cascade_compensations_total", {"outcome": "error"})
    with caplog.at_level("ERROR"), pytest.raises(UpstreamFailure):
        asyncio.run(saga.run())
    after = _get_sample("course_cascade_compensations_total", {"outcome": "error"})

    assert log == ["a", "b", "undo a"]
    assert after - before == 1
    assert any("compensation for 'b' failed" in r.getMessage() for r in caplog.records)
