"""Combat arithmetic shared by the live engine and the fast-forward resolver."""
import math
from dataclasses import dataclass
from typing import Optional

from .catalog import CombatStats

DEFAULT_MELEE_RANGE = 18.0
RANGE_SCALE = 5.0
SPEED_SCALE = 20.0
RANGED_THRESHOLD = 10.0
RANGED_COOLDOWN_MS = 700
MELEE_COOLDOWN_MS = 450
MITIGATION_FACTOR = 0.45
MIN_DAMAGE = 1


@dataclass(frozen=True)
class DerivedCombatProfile:
    """Simulation-ready stats in world units"""
    movement_speed: float  # world units per second
    engagement_range: float
    is_ranged: bool
    attack_cooldown_ms: int


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positives; ``round()`` would round to even."""
    return int(math.floor(value + 0.5))


def speed_to_world(speed: float) -> float:
    return speed * SPEED_SCALE


def range_to_world(range_: Optional[float]) -> float:
    return range_ * RANGE_SCALE if range_ else DEFAULT_MELEE_RANGE


def derive(stats: CombatStats) -> DerivedCombatProfile:
    """Convert catalog stats into movement speed, engagement range and cooldown."""
    return DerivedCombatProfile(
        movement_speed=speed_to_world(stats.speed),
        engagement_range=range_to_world(stats.range),
        # Short reach weapons (range < 10) still fight as melee
        is_ranged=stats.range is not None and stats.range >= RANGED_THRESHOLD,
        attack_cooldown_ms=RANGED_COOLDOWN_MS if stats.range else MELEE_COOLDOWN_MS,
    )


def calculate_damage(attack: float, defense: float, range_damage: Optional[float] = None) -> int:
    """Damage of one hit after armor mitigation, never below 1."""
    power = range_damage if range_damage is not None and range_damage > 0 else attack
    mitigation = defense * MITIGATION_FACTOR
    return max(MIN_DAMAGE, round_half_up(power - mitigation))


def hits_to_kill(hp: float, damage: int) -> int:
    return max(1, math.ceil(hp / damage))
