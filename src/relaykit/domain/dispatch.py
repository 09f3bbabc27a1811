"""Bulk dispatch of one send operation across many independent targets."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from .errors import DispatchTimeoutError, ValidationError, describe_error
from .types import DispatchMode, DispatchResult, DispatchSummary

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from .ports.messaging import SendOperation
    from .types import DispatchTarget

log = getLogger(__name__)


@dataclass(slots=True)
class BulkDispatcher:
    """Apply a send operation to every target and aggregate the outcomes.

    A failing target never aborts the run: its exception is captured in its own
    :class:`DispatchResult`. Results are reported in input order.

    In ``CONCURRENT`` mode ``timeout`` bounds the whole run. Sends still pending
    at the deadline are reported as timed out but keep running in the
    background, since an in-flight send cannot be aborted. Whatever they
    eventually return is discarded. Callers that own the transport must
    :meth:`drain` them before closing it.
    """

    mode: DispatchMode = DispatchMode.SEQUENTIAL
    timeout: float | None = None
    clock: Callable[[], float] = time.perf_counter
    _stragglers: set[asyncio.Task[DispatchResult]] = field(default_factory=set, repr=False)

    async def dispatch(
        self, targets: Sequence[DispatchTarget], send: SendOperation
    ) -> DispatchSummary:
        if not targets:
            raise ValidationError("Dispatch requires at least one target")

        started = self.clock()
        if self.mode is DispatchMode.CONCURRENT:
            results = await self._dispatch_concurrent(targets, send)
        else:
            if self.timeout is not None:
                log.debug("Timeout is ignored in sequential mode")
            results = [await self._run_one(target, send) for target in targets]

        summary = DispatchSummary.from_results(results, total_elapsed=self.clock() - started)
        log.info(
            "Dispatch finished: total=%s, succeeded=%s, failed=%s, elapsed=%.3fs",
            summary.total,
            summary.success_count,
            summary.failure_count,
            summary.total_elapsed,
        )
        return summary

    @property
    def pending(self) -> int:
        """Number of timed-out sends that have not settled yet."""

        return len(self._stragglers)

    async def drain(self, timeout: float | None = None) -> int:
        """Wait for timed-out sends to settle; return how many are still running.

        Their outcomes only reach the log. The summary returned by
        :meth:`dispatch` is never updated.
        """

        if not self._stragglers:
            return 0
        log.info("Waiting for %s timed-out send(s) to settle", len(self._stragglers))
        _done, pending = await asyncio.wait(set(self._stragglers), timeout=timeout)
        return len(pending)

    async def _dispatch_concurrent(
        self, targets: Sequence[DispatchTarget], send: SendOperation
    ) -> list[DispatchResult]:
        started = self.clock()
        tasks = [asyncio.create_task(self._run_one(target, send)) for target in targets]
        _done, pending = await asyncio.wait(tasks, timeout=self.timeout)
        deadline = self.clock()

        results: list[DispatchResult] = []
        for target, task in zip(targets, tasks, strict=True):
            if task in pending:
                self._stragglers.add(task)
                task.add_done_callback(self._stragglers.discard)
                reason = describe_error(DispatchTimeoutError("timed out"))
                log.warning("Send to %s %s", target.address, reason)
                results.append(
                    DispatchResult(
                        target=target,
                        success=False,
                        elapsed_seconds=deadline - started,
                        error=reason,
                        timed_out=True,
                    )
                )
            else:
                results.append(task.result())
        return results

    async def _run_one(self, target: DispatchTarget, send: SendOperation) -> DispatchResult:
        started = self.clock()
        try:
            token = await send(target)
        except Exception as exc:  # noqa: BLE001
            elapsed = self.clock() - started
            reason = describe_error(exc)
            log.warning("Send to %s failed: %s", target.address, reason)
            return DispatchResult(
                target=target, success=False, elapsed_seconds=elapsed, error=reason
            )
        elapsed = self.clock() - started
        log.info("Send to %s succeeded: %s (%.3fs)", target.address, token, elapsed)
        return DispatchResult(target=target, success=True, elapsed_seconds=elapsed, token=token)
