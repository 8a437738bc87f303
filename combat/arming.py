from dataclasses import dataclass

from .catalog import CombatStats, UnitFamily, UnitKind, UNIT_FAMILY, UNIT_STATS
from .rules import round_half_up

ARMED_RANGE = 35
ATTACK_MULTIPLIER = 2.0
DEFENSE_MULTIPLIER = 2.0
HEALTH_MULTIPLIER = 2.5
SPEED_MULTIPLIER = 0.5
RANGE_DAMAGE_MULTIPLIER = 1.2


@dataclass(frozen=True)
class ArmedWarMachine:
    """A war machine loaded with a pack of melee units"""
    armed_with: UnitKind
    combat_stats: CombatStats

    @classmethod
    def from_kind(cls, kind: UnitKind) -> "ArmedWarMachine":
        return cls(armed_with=kind, combat_stats=arm_stats(UNIT_STATS[kind]))


def arm_stats(stats: CombatStats) -> CombatStats:
    """Combat profile of a war machine armed with units of the given stats.

    The machine doubles attack and defense, gets 2.5x health at half speed, and
    always becomes a fixed-range shooter whose shot damage is 120% of the new
    attack. Any range the source unit had is replaced.
    """
    attack = round_half_up(stats.attack * ATTACK_MULTIPLIER)
    return CombatStats(
        attack=attack,
        defense=round_half_up(stats.defense * DEFENSE_MULTIPLIER),
        health=round_half_up(stats.health * HEALTH_MULTIPLIER),
        speed=round_half_up(stats.speed * SPEED_MULTIPLIER),
        range=ARMED_RANGE,
        range_damage=round_half_up(attack * RANGE_DAMAGE_MULTIPLIER),
    )


def can_arm_with(kind: UnitKind, size: int, pack_size: int) -> bool:
    """Only a full pack of pure melee regular units can arm a war machine."""
    if UNIT_FAMILY.get(kind) is not UnitFamily.REGULAR:
        return False
    stats = UNIT_STATS.get(kind)
    if stats is None or (stats.range and stats.range > 0):
        return False
    return size >= pack_size
