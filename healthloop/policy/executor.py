"""Policies executor — one adaptive timer for many differently paced policies.

Each cycle sleeps until the nearest policy deadline (min of every policy's
``get_delay()``), then runs every policy that is due, in registration order,
through sense → detect → diagnose → resolve. Pipeline stages run one at a
time on a single worker thread so the event loop stays responsive and
``stop()`` can cancel a sleeping cycle immediately.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

from healthloop.config import settings
from healthloop.policy.base import HealthPolicyLike, to_timedelta

logger = logging.getLogger(__name__)

_ZERO = timedelta(0)


@dataclass
class CycleReport:
    """What happened during one scheduler cycle."""

    cycle: int
    delay: timedelta
    interrupted: bool = False
    executed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    actions: dict[str, list[Any]] = field(default_factory=dict)
    failures: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "cycle": self.cycle,
            "delay_seconds": self.delay.total_seconds(),
            "interrupted": self.interrupted,
            "executed": list(self.executed),
            "skipped": list(self.skipped),
            "actions": {k: [_describe(a) for a in v] for k, v in self.actions.items()},
            "failures": dict(self.failures),
        }


def policy_name(policy: Any) -> str:
    return getattr(policy, "id", None) or type(policy).__name__


def _describe(action: Any) -> Any:
    to_dict = getattr(action, "to_dict", None)
    return to_dict() if callable(to_dict) else repr(action)


class PoliciesExecutor:
    """Drives a fixed, ordered set of health policies on a single background task.

    Lifecycle:
        executor = PoliciesExecutor(policies)
        task = await executor.start()
        ...
        await executor.stop()
    """

    def __init__(
        self,
        policies: Sequence[HealthPolicyLike],
        fallback_delay: timedelta | float | None = None,
        isolate_failures: bool | None = None,
        on_cycle: Callable[[CycleReport], Any] | None = None,
    ) -> None:
        self.policies: tuple[HealthPolicyLike, ...] = tuple(policies)
        self.fallback_delay = to_timedelta(
            settings.fallback_delay_seconds if fallback_delay is None else fallback_delay
        )
        self.isolate_failures = (
            settings.isolate_failures if isolate_failures is None else isolate_failures
        )
        self.on_cycle = on_cycle
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="healthloop-pipeline")
        self._task: asyncio.Task[None] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._wake: asyncio.Event | None = None
        self._running = False
        self._cycles = 0
        self._last_report: CycleReport | None = None

    # -- public API ------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._running

    @property
    def cycles(self) -> int:
        return self._cycles

    @property
    def last_report(self) -> CycleReport | None:
        return self._last_report

    def next_delay(self) -> timedelta:
        """Shortest time until any policy is due; the fallback when there are none."""
        if not self.policies:
            return self.fallback_delay
        delay = min(to_timedelta(p.get_delay()) for p in self.policies)
        return max(delay, _ZERO)

    async def start(self) -> asyncio.Task[None]:
        """Start the background cycle and return its task as a cancellable handle."""
        if self._task is not None and not self._task.done():
            return self._task
        self._running = True
        self._loop = asyncio.get_running_loop()
        self._wake = asyncio.Event()
        self._task = asyncio.create_task(self._cycle_loop(), name="healthloop-policies")
        logger.info(
            "Policies executor started: %d policies (fallback=%ss, isolate_failures=%s)",
            len(self.policies),
            self.fallback_delay.total_seconds(),
            self.isolate_failures,
        )
        return self._task

    async def stop(self) -> None:
        """Cancel the cycle, sleeping or not, and release the pipeline thread."""
        self._running = False
        if self._task is not None:
            if not self._task.done():
                self._task.cancel()
                try:
                    await self._task
                except asyncio.CancelledError:
                    pass
            elif not self._task.cancelled() and self._task.exception() is not None:
                logger.warning("Policies executor had already halted: %r", self._task.exception())
        self._executor.shutdown(wait=False, cancel_futures=True)
        logger.info("Policies executor stopped after %d cycles", self._cycles)

    destroy = stop

    def interrupt(self) -> None:
        """Cut the current sleep short; the cycle goes straight to due-policy evaluation."""
        if self._wake is None:
            return
        if self._loop is not None and not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self._wake.set)
        else:
            self._wake.set()

    def status(self) -> dict[str, Any]:
        return {
            "running": self._running,
            "cycles": self._cycles,
            "policies": [policy_name(p) for p in self.policies],
            "next_delay_seconds": self.next_delay().total_seconds(),
            "last_report": self._last_report.to_dict() if self._last_report else None,
        }

    # -- core loop -------------------------------------------------------------

    async def _cycle_loop(self) -> None:
        """Main loop: sleep until the nearest deadline → run due policies → repeat."""
        while self._running:
            try:
                await self.run_cycle()
            except asyncio.CancelledError:
                break
            except Exception:
                logger.exception("Policy execution cycle failed, scheduler halted")
                self._running = False
                raise

    async def run_cycle(self) -> CycleReport:
        """Run one cycle: wait for the nearest deadline, then every due policy."""
        self._cycles += 1
        delay = self.next_delay()
        report = CycleReport(cycle=self._cycles, delay=delay)

        if delay > _ZERO:
            logger.info("Sleep %.3fs before next policy execution cycle", delay.total_seconds())
            report.interrupted = await self._sleep(delay)

        await self._run_due(report)
        self._last_report = report
        self._notify(report)
        return report

    async def run_due_policies(self) -> CycleReport:
        """Run every currently due policy once, without waiting."""
        report = CycleReport(cycle=self._cycles, delay=_ZERO)
        await self._run_due(report)
        return report

    async def _sleep(self, delay: timedelta) -> bool:
        """Wait ``delay``; returns True when woken early by ``interrupt()``.

        An interrupt raised while no sleep is in progress stays pending and ends
        the next sleep at once.
        """
        if self._wake is None:
            self._wake = asyncio.Event()
        try:
            await asyncio.wait_for(self._wake.wait(), timeout=delay.total_seconds())
        except asyncio.TimeoutError:
            return False
        self._wake.clear()
        logger.warning("Interrupted while waiting for next policy execution cycle")
        return True

    async def _run_due(self, report: CycleReport) -> None:
        for policy in self.policies:
            name = policy_name(policy)
            if to_timedelta(policy.get_delay()) > _ZERO:
                report.skipped.append(name)
                continue

            logger.info("Executing policy: %s", name)
            try:
                actions = await self._execute_pipeline(policy)
            except Exception as exc:
                if not self.isolate_failures:
                    raise
                logger.exception("Policy %s failed, continuing with remaining policies", name)
                report.failures[name] = f"{type(exc).__name__}: {exc}"
                continue

            report.executed.append(name)
            report.actions[name] = actions
            logger.info("Policy %s actions: %s", name, [_describe(a) for a in actions])

    async def _execute_pipeline(self, policy: HealthPolicyLike) -> list[Any]:
        """sense → detect → diagnose → resolve, each stage fed the previous output."""
        loop = asyncio.get_running_loop()
        measurements = await loop.run_in_executor(self._executor, policy.execute_sensors)
        symptoms = await loop.run_in_executor(self._executor, policy.execute_detectors, measurements)
        diagnoses = await loop.run_in_executor(self._executor, policy.execute_diagnosers, symptoms)
        actions = await loop.run_in_executor(self._executor, policy.execute_resolvers, diagnoses)
        return list(actions)

    # -- helpers ---------------------------------------------------------------

    def _notify(self, report: CycleReport) -> None:
        if self.on_cycle:
            try:
                self.on_cycle(report)
            except Exception:
                logger.exception("Cycle callback error")
