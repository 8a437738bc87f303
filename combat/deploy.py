import math
from typing import Callable, Dict, List, Optional

from loguru import logger

from .arming import ArmedWarMachine, can_arm_with
from .battlefield import MAX_UNITS, PACK_SIZE, grid_offsets, point_in_zone, zone_for
from .catalog import UnitFamily, UnitKind, get_stats, is_single_unit
from .model import Pack, Position, Team
from .rules import derive, range_to_world

CreateUnit = Callable[[float, float, Team, UnitKind, Optional[ArmedWarMachine]], object]


class DeployManager:
    """Owns the packs placed during the deploy phase."""

    def __init__(self, pack_size: int = PACK_SIZE, max_units: int = MAX_UNITS):
        self.pack_size = pack_size
        self.max_units = max_units
        self._packs: Dict[int, Pack] = {}
        self._next_pack_id = 1
        self._selected_pack_id: Optional[int] = None

    def reset(self) -> None:
        self._packs.clear()
        self._next_pack_id = 1
        self._selected_pack_id = None

    def packs(self) -> List[Pack]:
        return list(self._packs.values())

    def get(self, pack_id: int) -> Optional[Pack]:
        return self._packs.get(pack_id)

    def team_unit_count(self, team: Team) -> int:
        return sum(p.size for p in self._packs.values() if p.team == team)

    def units_for(self, kind: UnitKind) -> int:
        return 1 if is_single_unit(kind) else self.pack_size

    def spawn_pack(self, pos: Position, team: Team, kind: UnitKind) -> Optional[Pack]:
        """Place a pack at pos. Returns None when the placement is rejected."""
        if not point_in_zone(pos, team):
            logger.debug(f"[Deploy] {pos} is outside the {team} zone")
            return None

        stats = get_stats(kind)
        if stats is None:
            return None

        to_spawn = self.units_for(kind)
        if self.team_unit_count(team) + to_spawn > self.max_units:
            logger.debug(f"[Deploy] {team} is at capacity ({self.max_units} units)")
            return None

        derived = derive(stats)
        pack = Pack(
            id=self._next_pack_id,
            team=team,
            unit_type=kind,
            size=to_spawn,
            pos=zone_for(team).clamp(pos),
            engagement_range=derived.engagement_range,
            is_ranged=derived.is_ranged,
        )
        self._next_pack_id += 1
        self._packs[pack.id] = pack
        return pack

    def move_pack(self, pack_id: int, pos: Position) -> Optional[Pack]:
        """Drag a pack; it stays clamped inside its own zone."""
        pack = self._packs.get(pack_id)
        if pack is None:
            return None
        pack.pos = zone_for(pack.team).clamp(pos)
        return pack

    def remove_pack(self, pack_id: int) -> bool:
        if pack_id not in self._packs:
            return False
        if self._selected_pack_id == pack_id:
            self.clear_selection()
        del self._packs[pack_id]
        return True

    def pack_at(self, pos: Position) -> Optional[Pack]:
        """First pack whose visual radius contains pos."""
        for pack in self._packs.values():
            if math.dist(pos, pack.pos) <= pack.radius:
                return pack
        return None

    def select_pack(self, pack_id: int) -> Optional[Pack]:
        pack = self._packs.get(pack_id)
        if pack is not None:
            self._selected_pack_id = pack_id
        return pack

    def clear_selection(self) -> None:
        self._selected_pack_id = None

    @property
    def selected(self) -> Optional[Pack]:
        if self._selected_pack_id is None:
            return None
        return self._packs.get(self._selected_pack_id)

    def selected_range(self) -> Optional[float]:
        """Engagement range preview of the selected pack.

        Unarmed war machines have nothing to preview.
        """
        pack = self.selected
        if pack is None:
            return None
        if pack.family is UnitFamily.WAR_MACHINE and pack.armed is None:
            return None
        return pack.engagement_range

    def arm_war_machine(self, war_machine_id: int, source_id: int) -> bool:
        """Consume a full melee pack to arm a war machine. All-or-nothing."""
        machine = self._packs.get(war_machine_id)
        source = self._packs.get(source_id)
        if machine is None or source is None or machine.id == source.id:
            return False
        if machine.family is not UnitFamily.WAR_MACHINE or machine.armed is not None:
            return False
        if source.team != machine.team:
            return False
        if not can_arm_with(source.unit_type, source.size, self.pack_size):
            logger.debug(f"[Deploy] pack {source.id} ({source.unit_type.value} x{source.size}) cannot arm a war machine")
            return False

        armed = ArmedWarMachine.from_kind(source.unit_type)
        machine.armed = armed
        machine.engagement_range = range_to_world(armed.combat_stats.range)
        machine.is_ranged = True
        self.remove_pack(source.id)
        return True

    def materialize(self, create_unit: CreateUnit) -> int:
        """Turn every pack into units via create_unit, then drop all packs."""
        created = 0
        for pack in self._packs.values():
            if pack.size == 1:
                create_unit(pack.pos[0], pack.pos[1], pack.team, pack.unit_type, pack.armed)
                created += 1
                continue

            zone = zone_for(pack.team)
            for ox, oy in grid_offsets(pack.size):
                x, y = zone.clamp((pack.pos[0] + ox, pack.pos[1] + oy))
                create_unit(x, y, pack.team, pack.unit_type, None)
                created += 1

        self._packs.clear()
        self.clear_selection()
        return created
