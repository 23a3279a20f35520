"""Deferred reasoning for causal agents.

  SCHEDULE: agents enqueue reasoning jobs as asyncio tasks during their update.
  RESOLVE:  once per tick the dispatcher drives its loop and applies results
            to each owner's queued-action slot in scheduling order.
"""
from alife_sim.engine.dispatcher import ReasoningDispatcher, ReasoningJob

__all__ = ["ReasoningDispatcher", "ReasoningJob"]
