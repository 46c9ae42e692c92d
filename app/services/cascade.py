"""Ordered, compensable multi-step writes.

The store has no multi-entity transactions, so an operation that touches
several records runs as a Saga: each step is an async action paired with
an optional async compensation.  When a step raises, the compensations of
the steps that already completed run in reverse order and UpstreamFailure
is raised.  A failing compensation is logged and counted; the remaining
compensations still run.

    saga = Saga("delete_course")
    saga.add("unlink student", unlink, compensate=relink)
    await saga.run()
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from app.core.errors import UpstreamFailure
from app.core.metrics import CASCADE_COMPENSATIONS

logger = logging.getLogger(__name__)

Action = Callable[[], Awaitable[object]]


@dataclass(frozen=True)
class Step:
    name: str
    action: Action
    compensate: Action | None = None


class Saga:
    def __init__(self, name: str) -> None:
        self.name = name
        self._steps: list[Step] = []

    def add(self, name: str, action: Action, *, compensate: Action | None = None) -> None:
        self._steps.append(Step(name, action, compensate))

    @property
    def steps(self) -> tuple[Step, ...]:
        return tuple(self._steps)

    async def run(self) -> None:
        completed: list[Step] = []
        for step in self._steps:
            try:
                await step.action()
            except Exception as e:
                logger.error(
                    "Saga %s failed at step %r: %s; compensating %d step(s)",
                    self.name,
                    step.name,
                    e,
                    len(completed),
                    exc_info=True,
                )
                await self._compensate(completed)
                raise UpstreamFailure(
                    f"{self.name} failed at step: {step.name}",
                    details={"step": step.name},
                ) from e
            completed.append(step)

    async def _compensate(self, completed: list[Step]) -> None:
        for step in reversed(completed):
            if step.compensate is None:
                continue
            try:
                await step.compensate()
            except Exception:
                CASCADE_COMPENSATIONS.labels(outcome="error").inc()
                logger.exception(
                    "Saga %s: compensation for %r failed", self.name, step.name
                )
                continue
            CASCADE_COMPENSATIONS.labels(outcome="ok").inc()
