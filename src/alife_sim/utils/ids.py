from __future__ import annotations

import itertools
from collections import defaultdict


class IdGenerator:
    """Per-prefix monotonic ids, e.g. ``resource_0``, ``resource_1``, ``msg_0``."""

    def __init__(self) -> None:
        self._counters: defaultdict[str, itertools.count] = defaultdict(itertools.count)

    def next(self, prefix: str) -> str:
        return f"{prefix}_{next(self._counters[prefix])}"
