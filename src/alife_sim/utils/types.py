from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class HealthStatus(str, Enum):
    SUSCEPTIBLE = "Susceptible"
    INFECTED = "Infected"
    RECOVERED = "Recovered"


class ActionType(str, Enum):
    FORAGE = "FORAGE"
    EXPLORE = "EXPLORE"
    FLEE = "FLEE"
    REPRODUCE = "REPRODUCE"


# Fixed enumeration order; greedy ties resolve to the earliest entry.
ACTION_ORDER: tuple[ActionType, ...] = (
    ActionType.FORAGE,
    ActionType.EXPLORE,
    ActionType.FLEE,
    ActionType.REPRODUCE,
)


class MessageType(str, Enum):
    RESOURCE_LOCATION = "resource"
    THREAT_WARNING = "threat"
    ALLIANCE_PROPOSAL = "alliance"
    HELP_REQUEST = "help"
    KNOWLEDGE_SHARE = "knowledge"


class Personality(str, Enum):
    CAUTIOUS = "cautious"
    AGGRESSIVE = "aggressive"
    SOCIAL = "social"
    SOLITARY = "solitary"
    CURIOUS = "curious"
    CONSERVATIVE = "conservative"


class AgentKind(str, Enum):
    BASIC = "basic"
    CAUSAL = "causal"
    PLAYER = "player"


class StepOutcome(str, Enum):
    CONTINUE = "continue"
    DIE = "die"
    REPRODUCE = "reproduce"


@dataclass(frozen=True)
class Location:
    """A point on the ground plane."""

    x: float
    z: float

    def distance_to(self, other: "Location") -> float:
        return math.hypot(self.x - other.x, self.z - other.z)

    def as_dict(self) -> dict[str, float]:
        return {"x": self.x, "z": self.z}


@dataclass
class Vec3:
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def ground(self) -> Location:
        return Location(self.x, self.z)

    def planar_distance(self, other: "Vec3 | Location") -> float:
        return math.hypot(self.x - other.x, self.z - other.z)


@dataclass
class Resource:
    id: str
    position: Location
    value: float
    quality: float


@dataclass(frozen=True)
class Observation:
    position: Location
    energy: float
    nearby_count: int
    nearby_infected: int
    age: int
    nearest_resource_distance: float
    status: HealthStatus


@dataclass(frozen=True)
class Intent:
    action: ActionType
    speed: float
    reasoning: str = ""


@dataclass
class Message:
    id: str
    sender: str
    type: MessageType
    content: dict[str, Any]
    timestamp: int
    priority: str = "normal"
    range: float = 10.0

    @property
    def text(self) -> str:
        return str(self.content.get("message", ""))

    @property
    def data(self) -> dict[str, Any]:
        data = self.content.get("data")
        return data if isinstance(data, dict) else {}


@dataclass(frozen=True)
class AgentSnapshot:
    """What a renderer needs to draw one agent."""

    id: str
    kind: AgentKind
    position: tuple[float, float, float]
    status: HealthStatus
    color_class: str
    energy: float
    age: int
    personality: str | None = None
    last_reasoning: str | None = None
    trust_indicator: str | None = None


@dataclass(frozen=True)
class AgentInspection:
    id: str
    personality: str
    reasoning: str | None
    confidence: float | None
    age: int
    energy: float
    status: HealthStatus
    history: list[dict[str, Any]] = field(default_factory=list)
    communications: list[dict[str, Any]] = field(default_factory=list)
    known_agents: int = 0
    known_resources: int = 0
    danger_zones: int = 0
    help_requests: int = 0
    avg_trust: float = 0.5
