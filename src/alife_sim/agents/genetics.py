from __future__ import annotations

import random
from dataclasses import dataclass, fields, replace

MUTATION_RATE = 0.15
MUTATION_SPREAD = 0.4  # factor drawn from [0.8, 1.2)

# Traits that are probabilities and must stay in [0, 1] after mutation.
UNIT_TRAITS = frozenset({"infection_resistance", "aggressiveness", "forage_efficiency"})


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


@dataclass(frozen=True)
class Genotype:
    speed: float
    size: float
    social_radius: float
    infection_resistance: float
    lifespan: int
    reproduction_threshold: float
    aggressiveness: float
    forage_efficiency: float

    @staticmethod
    def random(rng: random.Random) -> "Genotype":
        return Genotype(
            speed=rng.random() * 2 + 0.5,
            size=rng.random() * 0.3 + 0.2,
            social_radius=rng.random() * 5 + 2,
            infection_resistance=rng.random(),
            lifespan=int(rng.random() * 200 + 100),
            reproduction_threshold=rng.random() * 30 + 50,
            aggressiveness=rng.random(),
            forage_efficiency=rng.random(),
        )

    def mutated(self, rng: random.Random) -> "Genotype":
        """Copy with each trait independently perturbed at MUTATION_RATE.

        Traits are visited in declaration order so a seeded rng gives the same
        offspring every run.
        """
        changes: dict[str, float | int] = {}
        for f in fields(self):
            if rng.random() >= MUTATION_RATE:
                continue
            factor = 1.0 - MUTATION_SPREAD / 2 + rng.random() * MUTATION_SPREAD
            value = getattr(self, f.name) * factor
            if f.name in UNIT_TRAITS:
                value = _clamp01(value)
            elif f.name == "lifespan":
                value = max(1, int(value))
            changes[f.name] = value
        return replace(self, **changes)


@dataclass(frozen=True)
class Phenotype:
    max_speed: float
    radius: float
    social_distance: float
    resistance: float
    aggression: float
    efficiency: float

    @staticmethod
    def express(genotype: Genotype) -> "Phenotype":
        return Phenotype(
            max_speed=genotype.speed,
            radius=genotype.size,
            social_distance=genotype.social_radius,
            resistance=genotype.infection_resistance,
            aggression=genotype.aggressiveness,
            efficiency=genotype.forage_efficiency,
        )
