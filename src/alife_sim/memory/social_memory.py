from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field

from alife_sim.utils.types import Location, Message

MAX_INBOX = 20
MAX_RECORDS = 10


@dataclass
class SharedInfo:
    kind: str
    tick: int
    accurate: bool | None = None
    info_type: str | None = None
    location: Location | None = None


@dataclass
class KnownAgent:
    first_seen: int
    last_seen: int
    interactions: int = 0
    shared_info: list[SharedInfo] = field(default_factory=list)

    def verifications(self) -> list[SharedInfo]:
        return [info for info in self.shared_info if info.kind == "verification"]


@dataclass
class ResourceTip:
    location: Location
    received_at: int
    source: str
    confidence: float = 0.8
    checked: bool = False
    accurate: bool | None = None


@dataclass
class DangerZone:
    location: Location
    received_at: int
    source: str
    radius: float = 5.0
    confidence: float = 0.7
    checked: bool = False
    accurate: bool | None = None


@dataclass
class HelpRequest:
    requester: str
    location: Location | None
    urgency: str
    received_at: int


class SocialMemory:
    """Who an agent has met, what they told it, and how that held up."""

    def __init__(self, max_messages: int = MAX_INBOX) -> None:
        self.logger = logging.getLogger("alife_sim.social")
        self.known_agents: dict[str, KnownAgent] = {}
        self.received_messages: deque[Message] = deque(maxlen=max_messages)

    def remember_agent(
        self, agent_id: str, tick: int, interaction: Message | None = None
    ) -> KnownAgent:
        entry = self.known_agents.get(agent_id)
        if entry is None:
            entry = KnownAgent(first_seen=tick, last_seen=tick)
            self.known_agents[agent_id] = entry
        entry.interactions += 1
        entry.last_seen = tick
        if interaction is not None:
            entry.shared_info.append(SharedInfo(kind=interaction.type.value, tick=tick))
        return entry

    def add_received_message(self, message: Message) -> None:
        self.received_messages.append(message)

    def recent_messages(self, count: int = 5) -> list[Message]:
        if count <= 0:
            return []
        return list(self.received_messages)[-count:]

    def record_verification(
        self, source: str, accurate: bool, info_type: str, tick: int
    ) -> bool:
        """Attach a ground-truth check to the sender's entry.

        Returns False when the sender is unknown (nothing recorded).
        """
        entry = self.known_agents.get(source)
        if entry is None:
            return False
        entry.shared_info.append(
            SharedInfo(kind="verification", tick=tick, accurate=accurate, info_type=info_type)
        )
        self.logger.debug(
            "verification source=%s info=%s accurate=%s tick=%d",
            source, info_type, accurate, tick,
        )
        return True

    def record_tip(self, source: str, location: Location, tick: int) -> None:
        entry = self.known_agents.get(source)
        if entry is not None:
            entry.shared_info.append(SharedInfo(kind="resource_tip", tick=tick, location=location))


def push_capped(records: list, item, cap: int = MAX_RECORDS) -> None:
    """Insert newest-first and drop the oldest beyond ``cap``."""
    records.insert(0, item)
    del records[cap:]
