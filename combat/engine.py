import math
from typing import Dict, List, Optional, Tuple

from .arming import ArmedWarMachine
from .battlefield import clamp_to_map
from .catalog import UNIT_FAMILY, UNIT_RADIUS, UnitKind, get_stats
from .model import Event, Position, Team, Unit, UnitView, opponent
from .rules import calculate_damage, derive

FRONT_TOLERANCE = 4.0  # a melee target slightly behind is still kept
FORWARD_WEIGHT = 2.0
SEPARATION_RADIUS_FACTOR = 4.0
ENGAGED_STEER_FACTOR = 0.35
EPSILON = 0.001


def distance_2d(pos1: Position, pos2: Position) -> float:
    """Calculate Euclidean distance between two 2D positions."""
    dx = pos2[0] - pos1[0]
    dy = pos2[1] - pos1[1]
    return math.sqrt(dx * dx + dy * dy)


def normalize_2d(vec: Tuple[float, float]) -> Tuple[float, float]:
    """Normalize a 2D vector to unit length."""
    mag = math.sqrt(vec[0] * vec[0] + vec[1] * vec[1])
    if mag < EPSILON:
        return (0.0, 0.0)
    return (vec[0] / mag, vec[1] / mag)


def forward_offset(unit: Unit, enemy: Unit) -> float:
    """Distance of enemy along unit's advance axis (attackers push +x)."""
    if unit.team == "attacker":
        return enemy.pos[0] - unit.pos[0]
    return unit.pos[0] - enemy.pos[0]


class CombatEngine:
    """Live per-tick battle simulation. Sole owner of the unit collections."""

    def __init__(self):
        self._units: Dict[int, Unit] = {}
        self._teams: Dict[Team, Dict[int, Unit]] = {"attacker": {}, "defender": {}}
        self._next_unit_id = 1

    def clear(self) -> None:
        self._units.clear()
        for index in self._teams.values():
            index.clear()
        self._next_unit_id = 1

    def create_unit(self, x: float, y: float, team: Team, kind: UnitKind,
                    armed: Optional[ArmedWarMachine] = None) -> Optional[Unit]:
        """Spawn a unit from catalog stats, or from the arming profile if armed."""
        stats = armed.combat_stats if armed is not None else get_stats(kind)
        if stats is None:
            return None

        derived = derive(stats)
        unit = Unit(
            id=self._next_unit_id,
            team=team,
            unit_type=kind,
            attack=stats.attack,
            defense=stats.defense,
            hp=stats.health,
            max_hp=stats.health,
            movement_speed=derived.movement_speed,
            engagement_range=derived.engagement_range,
            is_ranged=derived.is_ranged,
            attack_cooldown_ms=derived.attack_cooldown_ms,
            pos=(float(x), float(y)),
            radius=UNIT_RADIUS[UNIT_FAMILY[kind]],
            range_damage=stats.range_damage,
            armed=armed,
        )
        self._next_unit_id += 1
        self._units[unit.id] = unit
        self._teams[team][unit.id] = unit
        return unit

    # -- read-only queries --

    def team_count(self, team: Team) -> int:
        return len(self._teams[team])

    def views(self) -> List[UnitView]:
        return [UnitView.of(u) for u in self._units.values()]

    def get_view(self, unit_id: int) -> Optional[UnitView]:
        u = self._units.get(unit_id)
        return UnitView.of(u) if u else None

    # -- simulation --

    def tick(self, time: float, delta_ms: float) -> List[Event]:
        """Advance every living unit by delta_ms at host timestamp time."""
        evts: List[Event] = []
        # Ids are assigned monotonically, so insertion order is ascending id
        for unit in list(self._units.values()):
            if unit.hp <= 0:
                continue
            enemies = self._teams[opponent(unit.team)]
            if not enemies:
                continue

            target = self._units.get(unit.target_id) if unit.target_id is not None else None
            if (target is None or target.hp <= 0
                    or (not unit.is_ranged and not self._is_enemy_in_front(unit, target))):
                target = self._find_preferred_enemy(unit, enemies)
                unit.target_id = target.id if target else None

            if target is None:
                continue

            dx = target.pos[0] - unit.pos[0]
            dy = target.pos[1] - unit.pos[1]
            dist = math.sqrt(dx * dx + dy * dy)

            if dist <= unit.engagement_range:
                if time - unit.last_attack_at >= unit.attack_cooldown_ms:
                    evts += self._resolve_attack(unit, target, time)
                if not unit.is_ranged:
                    steer = normalize_2d(self._separation(unit))
                    if steer != (0.0, 0.0):
                        self._move(unit, steer, unit.movement_speed * ENGAGED_STEER_FACTOR * delta_ms / 1000.0)
                continue

            sep = self._separation(unit)
            heading = (dx / dist + sep[0], dy / dist + sep[1])
            if math.hypot(*heading) > EPSILON:
                heading = normalize_2d(heading)
            else:
                heading = (dx / dist, dy / dist)
            self._move(unit, heading, unit.movement_speed * delta_ms / 1000.0)

        return evts

    def _move(self, unit: Unit, heading: Tuple[float, float], step: float) -> None:
        new_pos = (unit.pos[0] + heading[0] * step, unit.pos[1] + heading[1] * step)
        unit.pos = clamp_to_map(new_pos, unit.radius)

    def _is_enemy_in_front(self, unit: Unit, enemy: Unit) -> bool:
        return forward_offset(unit, enemy) >= -FRONT_TOLERANCE

    def _find_nearest_enemy(self, unit: Unit, enemies: Dict[int, Unit]) -> Optional[Unit]:
        best = None
        best_dist = float('inf')
        for enemy in enemies.values():
            if enemy.hp <= 0:
                continue
            d = distance_2d(unit.pos, enemy.pos)
            if d < best_dist:
                best, best_dist = enemy, d
        return best

    def _find_preferred_enemy(self, unit: Unit, enemies: Dict[int, Unit]) -> Optional[Unit]:
        """Ranged units take the nearest enemy; melee prefers enemies ahead.

        Melee scoring weights depth twice as much as lateral spread. Equal
        scores keep the first candidate found.
        """
        if unit.is_ranged:
            return self._find_nearest_enemy(unit, enemies)

        best = None
        best_score = float('inf')
        for enemy in enemies.values():
            if enemy.hp <= 0:
                continue
            forward = forward_offset(unit, enemy)
            if forward < 0:
                continue
            lateral = abs(enemy.pos[1] - unit.pos[1])
            score = forward * FORWARD_WEIGHT + lateral
            if score < best_score:
                best, best_score = enemy, score

        return best if best is not None else self._find_nearest_enemy(unit, enemies)

    def _separation(self, unit: Unit) -> Tuple[float, float]:
        """Repulsion from same-team units closer than four radii."""
        steer_x = 0.0
        steer_y = 0.0
        min_dist = unit.radius * SEPARATION_RADIUS_FACTOR
        for ally in self._teams[unit.team].values():
            if ally.id == unit.id or ally.hp <= 0:
                continue
            dx = unit.pos[0] - ally.pos[0]
            dy = unit.pos[1] - ally.pos[1]
            d = math.sqrt(dx * dx + dy * dy)
            if d <= EPSILON or d >= min_dist:
                continue
            push = (min_dist - d) / min_dist
            steer_x += dx / d * push
            steer_y += dy / d * push
        return (steer_x, steer_y)

    def _resolve_attack(self, attacker: Unit, target: Unit, time: float) -> List[Event]:
        evts: List[Event] = []
        attacker.last_attack_at = time
        dmg = calculate_damage(attacker.attack, target.defense, attacker.range_damage)
        target.hp -= dmg
        evts.append(Event("Attack", time,
                          {"attacker": attacker.id, "target": target.id, "dmg": dmg, "hp": max(0.0, target.hp)}))
        if target.hp <= 0:
            self._remove(target)
            evts.append(Event("Destroyed", time, {"unit_id": target.id, "team": target.team, "killer": attacker.id}))
        return evts

    def _remove(self, unit: Unit) -> None:
        self._units.pop(unit.id, None)
        self._teams[unit.team].pop(unit.id, None)
