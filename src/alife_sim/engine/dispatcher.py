"""Deferred reasoning dispatch for causal agents.

SCHEDULE
  During an agent's update a reasoning job is wrapped in an asyncio task on
  the dispatcher's private event loop. Nothing runs yet; the agent's
  ``pending_reasoning`` flag blocks a second job until this one resolves.

RESOLVE
  Once per tick, after the agent pass, the loop is driven up to a wall-clock
  deadline. Finished jobs write their intent into the owner's queued-action
  slot in scheduling order, which the owner consumes on its next update.
  Failed jobs only clear the pending flag. Unfinished jobs stay in flight.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass

from alife_sim.agents.cognition import ReasoningEngine, ReasoningRequest, ReasoningResult
from alife_sim.agents.core import CausalState
from alife_sim.config.settings import ReasoningSettings

logger = logging.getLogger("alife_sim.engine")


@dataclass
class ReasoningJob:
    request: ReasoningRequest
    owner: CausalState
    task: asyncio.Task


class ReasoningDispatcher:
    """Queues reasoning jobs and resolves them between ticks."""

    def __init__(self, cfg: ReasoningSettings, engine: ReasoningEngine | None = None) -> None:
        self.cfg = cfg
        self.engine = engine or ReasoningEngine()
        # Persistent loop; jobs are created on it and driven once per tick
        self._loop: asyncio.AbstractEventLoop = asyncio.new_event_loop()
        self._jobs: list[ReasoningJob] = []
        self.resolved_count = 0
        self.failed_count = 0

    @property
    def in_flight(self) -> int:
        return len(self._jobs)

    def schedule(self, owner: CausalState, request: ReasoningRequest) -> bool:
        """Enqueue a job unless the owner already has one pending."""
        if owner.pending_reasoning:
            return False
        owner.pending_reasoning = True
        task = self._loop.create_task(
            self._run(request),
            name=f"reason_{request.agent_id}_t{request.tick}",
        )
        self._jobs.append(ReasoningJob(request=request, owner=owner, task=task))
        return True

    async def _run(self, request: ReasoningRequest) -> ReasoningResult:
        return self.engine.reason(request)

    def resolve(self, tick: int) -> int:
        """Drive pending jobs and apply finished ones. Returns jobs applied."""
        if not self._jobs:
            return 0

        t0 = time.perf_counter()
        self._loop.run_until_complete(
            asyncio.wait(
                [job.task for job in self._jobs],
                timeout=self.cfg.resolve_deadline_s,
            )
        )

        applied = 0
        remaining: list[ReasoningJob] = []
        for job in self._jobs:
            if not job.task.done():
                remaining.append(job)
                continue
            job.owner.pending_reasoning = False
            try:
                result = job.task.result()
            except Exception as exc:
                self.failed_count += 1
                logger.warning(
                    "REASON-FAIL agent=%s tick=%d error=%s; policy fallback",
                    job.request.agent_id, tick, exc.__class__.__name__,
                )
                continue
            self._apply(job.owner, result)
            applied += 1

        self._jobs = remaining
        self.resolved_count += applied
        if remaining:
            logger.info(
                "REASON deadline reached tick=%d unresolved=%d elapsed=%.3fs",
                tick, len(remaining), time.perf_counter() - t0,
            )
        return applied

    @staticmethod
    def _apply(owner: CausalState, result: ReasoningResult) -> None:
        owner.queued_action = result.intent
        owner.last_reasoning = result
        owner.reasoning_history.append(result.as_history_entry())
        owner.decision_count += 1

    def close(self) -> None:
        """Cancel in-flight jobs and close the loop."""
        if self._loop.is_closed():
            return
        pending = [job.task for job in self._jobs if not job.task.done()]
        for task in pending:
            task.cancel()
        if pending:
            self._loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
        for job in self._jobs:
            job.owner.pending_reasoning = False
        self._jobs = []
        self._loop.close()
