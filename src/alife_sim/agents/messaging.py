"""Social messaging between causal agents.

A causal agent emits at most one message per tick, picked by a fixed priority
waterfall. Messages reach every other causal agent within range; recipients
store the claim and later check it against ground truth when they get close.
"""
from __future__ import annotations

import logging
import random
from typing import Any, Iterable

from alife_sim.agents.core import Agent
from alife_sim.memory.social_memory import (
    DangerZone,
    HelpRequest,
    ResourceTip,
    push_capped,
)
from alife_sim.utils.ids import IdGenerator
from alife_sim.utils.types import (
    HealthStatus,
    Location,
    Message,
    MessageType,
    Observation,
    Personality,
)

logger = logging.getLogger("alife_sim.social")

MESSAGE_RANGE = 10.0
TIP_VERIFY_RADIUS = 3.0
TIP_ACCURACY_RADIUS = 5.0
ZONE_VERIFY_FACTOR = 1.5

COOLDOWNS: dict[MessageType, int] = {
    MessageType.THREAT_WARNING: 15,
    MessageType.RESOURCE_LOCATION: 20,
    MessageType.HELP_REQUEST: 30,
    MessageType.KNOWLEDGE_SHARE: 25,
}


def _location_from(data: dict[str, Any]) -> Location | None:
    loc = data.get("location")
    if isinstance(loc, Location):
        return loc
    if not isinstance(loc, dict):
        return None
    try:
        return Location(float(loc["x"]), float(loc["z"]))
    except (KeyError, TypeError, ValueError):
        return None


def build_message(
    ids: IdGenerator,
    sender: Agent,
    msg_type: MessageType,
    text: str,
    data: dict[str, Any],
    tick: int,
    priority: str = "normal",
) -> Message:
    return Message(
        id=ids.next("msg"),
        sender=sender.id,
        type=msg_type,
        content={"message": text, "data": data},
        timestamp=tick,
        priority=priority,
        range=MESSAGE_RANGE,
    )


def decide_to_communicate(
    agent: Agent,
    obs: Observation,
    agents: Iterable[Agent],
    rng: random.Random,
    ids: IdGenerator,
    tick: int,
) -> Message | None:
    """Pick this tick's message, if any, and arm the matching cooldown."""
    causal = agent.causal
    if causal is None or causal.communication_cooldown > 0:
        return None
    listeners = [
        a for a in agents
        if a.id != agent.id and a.is_causal and agent.distance_to(a) < MESSAGE_RANGE
    ]
    if not listeners:
        return None

    here = agent.position.ground().as_dict()
    message: Message | None = None
    if obs.nearby_infected > 2 and obs.status is HealthStatus.SUSCEPTIBLE:
        message = build_message(
            ids, agent, MessageType.THREAT_WARNING,
            f"Warning: {obs.nearby_infected} infected agents here!",
            {"location": here, "urgency": "high", "infected_count": obs.nearby_infected},
            tick, priority="high",
        )
    elif obs.nearest_resource_distance < 3 and obs.energy > 50:
        message = build_message(
            ids, agent, MessageType.RESOURCE_LOCATION,
            "Found abundant resources here!",
            {"location": here, "urgency": "normal", "quality": "high"},
            tick,
        )
    elif obs.energy < 20 and causal.personality is not Personality.SOLITARY:
        message = build_message(
            ids, agent, MessageType.HELP_REQUEST,
            "Need help! Energy critical!",
            {"location": here, "urgency": "high", "energy_level": obs.energy},
            tick, priority="high",
        )
    elif rng.random() < 0.1 and causal.known_resource_locations:
        tip = causal.known_resource_locations[-1]
        message = build_message(
            ids, agent, MessageType.KNOWLEDGE_SHARE,
            "I know of resources elsewhere",
            {
                "location": tip.location.as_dict(),
                "urgency": "low",
                "age": agent.age - tip.received_at,
            },
            tick, priority="low",
        )

    if message is not None:
        causal.communication_cooldown = COOLDOWNS[message.type]
    return message


def broadcast(sender: Agent, message: Message, agents: Iterable[Agent], tick: int) -> int:
    """Deliver to every other causal agent in range; returns the recipient count."""
    causal = sender.causal
    if causal is None:
        return 0
    recipients = 0
    for agent in agents:
        if agent.id == sender.id or not agent.is_causal:
            continue
        if sender.distance_to(agent) > message.range:
            continue
        receive_message(agent, message, tick)
        causal.social_memory.remember_agent(agent.id, tick, message)
        recipients += 1
    causal.last_communication = {
        "message": message.text,
        "type": message.type.value,
        "recipients": recipients,
        "timestamp": sender.age,
    }
    logger.debug(
        "BROADCAST sender=%s type=%s recipients=%d tick=%d",
        sender.id, message.type.value, recipients, tick,
    )
    return recipients


def receive_message(agent: Agent, message: Message, tick: int) -> None:
    causal = agent.causal
    if causal is None:
        return
    causal.message_queue.append(message)
    causal.social_memory.add_received_message(message)
    causal.social_memory.remember_agent(message.sender, tick)

    data = message.data
    if message.type is MessageType.RESOURCE_LOCATION:
        loc = _location_from(data)
        if loc is None:
            logger.debug("Dropped resource tip without location from=%s", message.sender)
            return
        push_capped(
            causal.known_resource_locations,
            ResourceTip(location=loc, received_at=agent.age, source=message.sender),
        )
    elif message.type is MessageType.THREAT_WARNING:
        loc = _location_from(data)
        if loc is None:
            logger.debug("Dropped threat warning without location from=%s", message.sender)
            return
        push_capped(
            causal.danger_zones,
            DangerZone(location=loc, received_at=agent.age, source=message.sender),
        )
    elif message.type is MessageType.HELP_REQUEST:
        push_capped(
            causal.help_requests,
            HelpRequest(
                requester=message.sender,
                location=_location_from(data),
                urgency=str(data.get("urgency", "high")),
                received_at=agent.age,
            ),
        )


def process_message_queue(agent: Agent, tick: int) -> None:
    """Drain the queue and react to what arrived since the last update."""
    causal = agent.causal
    if causal is None:
        return
    while causal.message_queue:
        message = causal.message_queue.pop(0)
        data = message.data
        if message.type is MessageType.RESOURCE_LOCATION:
            loc = _location_from(data)
            if agent.energy < 50 and loc is not None:
                causal.social_memory.record_tip(message.sender, loc, tick)
        elif message.type is MessageType.THREAT_WARNING:
            if data.get("urgency") == "high":
                causal.pending_threat_avoidance = _location_from(data)
        elif message.type is MessageType.HELP_REQUEST:
            if agent.energy > 70 and causal.personality is not Personality.SOLITARY:
                causal.consider_helping = message.sender


def verify_information(agent: Agent, obs: Observation, tick: int) -> int:
    """Check remembered claims against what is actually here.

    A claim that proves accurate is settled. A false one stays open and is
    checked, and held against its source, on every call the agent is still
    in range. Returns the number of checks made this call.
    """
    causal = agent.causal
    if causal is None:
        return 0
    here = agent.position.ground()
    checks = 0

    for tip in causal.known_resource_locations:
        if tip.checked or here.distance_to(tip.location) >= TIP_VERIFY_RADIUS:
            continue
        tip.accurate = obs.nearest_resource_distance < TIP_ACCURACY_RADIUS
        tip.checked = tip.accurate
        causal.social_memory.record_verification(tip.source, tip.accurate, "resource", tick)
        checks += 1

    for zone in causal.danger_zones:
        if zone.checked or here.distance_to(zone.location) >= zone.radius * ZONE_VERIFY_FACTOR:
            continue
        zone.accurate = obs.nearby_infected > 0
        zone.checked = zone.accurate
        causal.social_memory.record_verification(zone.source, zone.accurate, "threat", tick)
        checks += 1

    return checks


def best_resource_tip(agent: Agent) -> ResourceTip | None:
    """Highest ``confidence * (1 - age / decay)`` tip; earliest wins ties."""
    causal = agent.causal
    if causal is None or not causal.known_resource_locations:
        return None
    best: ResourceTip | None = None
    best_score = float("-inf")
    for tip in causal.known_resource_locations:
        age = max(0, agent.age - tip.received_at)
        score = tip.confidence * (1 - age / causal.information_decay)
        if score > best_score:
            best_score = score
            best = tip
    return best
