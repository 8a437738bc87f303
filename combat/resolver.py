"""Headless 1-D battle resolver used for auto-resolve predictions.

Both packs start stacked on the x axis, attackers at 0 and defenders at
``start_distance``. There is no lateral position, no separation and no
forward-facing target bias, so survivor counts differ from the live engine,
but one-sided matchups end with the same winner.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import numpy as np

from .battlefield import PACK_SIZE
from .catalog import UNIT_STATS, UnitKind, is_single_unit
from .model import Team, Winner
from .rules import calculate_damage, derive

DEFAULT_MAX_DURATION_MS = 60_000
DEFAULT_TIME_STEP_MS = 50
DEFAULT_START_DISTANCE = 300.0


@dataclass
class SimUnit:
    id: int
    team: Team
    attack: float
    defense: float
    hp: float
    speed: float
    range: float
    is_ranged: bool
    cooldown_ms: int
    x: float
    range_damage: Optional[float] = None
    last_attack_at: float = 0


@dataclass
class SimulationConfig:
    attacker_type: UnitKind = UnitKind.WARRIOR
    defender_type: UnitKind = UnitKind.DWARF
    pack_size: int = PACK_SIZE
    attacker_count: Optional[int] = None  # defaults to pack_size
    defender_count: Optional[int] = None
    max_duration_ms: int = DEFAULT_MAX_DURATION_MS
    time_step_ms: int = DEFAULT_TIME_STEP_MS
    start_distance: float = DEFAULT_START_DISTANCE


@dataclass
class SimulationResult:
    winner: Winner
    remaining: Dict[str, int] = field(default_factory=dict)
    duration_ms: int = 0


def _build_unit(kind: UnitKind, team: Team, unit_id: int, x: float) -> SimUnit:
    stats = UNIT_STATS.get(kind)
    if stats is None:
        raise ValueError(f"Missing combat stats for unit type: {kind}")
    derived = derive(stats)
    return SimUnit(
        id=unit_id,
        team=team,
        attack=stats.attack,
        defense=stats.defense,
        hp=stats.health,
        speed=derived.movement_speed,
        range=derived.engagement_range,
        is_ranged=derived.is_ranged,
        cooldown_ms=derived.attack_cooldown_ms,
        x=x,
        range_damage=stats.range_damage,
    )


def _create_pack(kind: UnitKind, team: Team, count: int, x: float, start_id: int) -> List[SimUnit]:
    return [_build_unit(kind, team, start_id + i, x) for i in range(count)]


def _nearest_enemy(unit: SimUnit, enemies: List[SimUnit]) -> Optional[SimUnit]:
    nearest = None
    best = float('inf')
    for enemy in enemies:
        if enemy.hp <= 0:
            continue
        d = abs(enemy.x - unit.x)
        if d < best:
            nearest, best = enemy, d
    return nearest


def _step_unit(unit: SimUnit, enemies: List[SimUnit], time: int, step_ms: int) -> None:
    if unit.hp <= 0:
        return
    target = _nearest_enemy(unit, enemies)
    if target is None:
        return

    if abs(target.x - unit.x) <= unit.range:
        if time - unit.last_attack_at >= unit.cooldown_ms:
            unit.last_attack_at = time
            target.hp -= calculate_damage(unit.attack, target.defense, unit.range_damage)
        return

    direction = 1.0 if target.x > unit.x else -1.0
    unit.x += direction * unit.speed * step_ms / 1000.0


def simulate_battle(config: SimulationConfig) -> SimulationResult:
    """Fast-forward a single-type-per-side battle to its outcome."""
    attacker_count = config.pack_size if config.attacker_count is None else config.attacker_count
    defender_count = config.pack_size if config.defender_count is None else config.defender_count
    step = config.time_step_ms
    if step <= 0:
        raise ValueError("time_step_ms must be positive")

    attackers = _create_pack(config.attacker_type, "attacker", attacker_count, 0.0, 1)
    defenders = _create_pack(config.defender_type, "defender", defender_count,
                             config.start_distance, 1 + len(attackers))

    time = 0
    while time <= config.max_duration_ms and attackers and defenders:
        for unit in sorted(attackers + defenders, key=lambda u: u.id):
            enemies = defenders if unit.team == "attacker" else attackers
            _step_unit(unit, enemies, time, step)

        attackers = [u for u in attackers if u.hp > 0]
        defenders = [u for u in defenders if u.hp > 0]
        if not attackers or not defenders:
            break
        time += step

    if attackers and not defenders:
        winner: Winner = "attacker"
    elif defenders and not attackers:
        winner = "defender"
    else:
        winner = "draw"

    return SimulationResult(
        winner=winner,
        remaining={"attacker": len(attackers), "defender": len(defenders)},
        duration_ms=min(time, config.max_duration_ms),
    )


def matchup_matrix(kinds: Sequence[UnitKind], pack_size: int = PACK_SIZE, **overrides) -> np.ndarray:
    """Survivor margin for every attacker/defender pairing.

    Entry [i, j] is ``remaining attackers - remaining defenders`` when a pack of
    kinds[i] attacks a pack of kinds[j]; positive means the attacker won.
    Heroes and war machines fight as a single unit.
    """
    n = len(kinds)
    margins = np.zeros((n, n), dtype=np.int64)
    for i, attacker in enumerate(kinds):
        for j, defender in enumerate(kinds):
            result = simulate_battle(SimulationConfig(
                attacker_type=attacker,
                defender_type=defender,
                pack_size=pack_size,
                attacker_count=1 if is_single_unit(attacker) else pack_size,
                defender_count=1 if is_single_unit(defender) else pack_size,
                **overrides,
            ))
            margins[i, j] = result.remaining["attacker"] - result.remaining["defender"]
    return margins
