from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from loguru import logger


class UnitFamily(Enum):
    """Unit classification"""
    REGULAR = "regular"          # Deployed as full packs
    HERO = "hero"                # Single unit
    WAR_MACHINE = "war_machine"  # Single unit, can be armed


class UnitKind(str, Enum):
    """Every deployable unit type"""
    # Regular
    WARD_HANDS = "Ward Hands"
    WARRIOR = "Warrior"
    DWARF = "Dwarf"
    GOLEM = "Golem"
    GARGOYLE = "Gargoyle"
    DENDRITE = "Dendrite"
    UNDEAD = "Undead"
    ORC = "Orc"
    HALFLING = "Halfling"
    ELF = "Elf"
    DARK_ELF = "Dark Elf"
    # Hero
    WARSMITH = "Warsmith"
    FIGHTER = "Fighter"
    HAMMER_LORD = "Hammer Lord"
    OGR = "Ogr"
    SHADOW_BLADE = "Shadow Blade"
    RANGER = "Ranger"
    PYROMANCER = "Pyromancer"
    CLERIC = "Cleric"
    DRUID = "Druid"
    ENCHANTER = "Enchanter"
    NECROMANCER = "Necromancer"
    # War machine
    BALLISTA = "Ballista"
    CATAPULT = "Catapult"
    BATTERING_RAM = "Battering Ram"
    SIEGE_TOWER = "Siege Tower"


@dataclass(frozen=True)
class CombatStats:
    """Base combat stats of a unit type"""
    attack: float
    defense: float
    health: float
    speed: float
    range: Optional[float] = None  # Present only for units with a ranged weapon
    range_damage: Optional[float] = None


UNIT_FAMILY: Dict[UnitKind, UnitFamily] = {
    UnitKind.WARD_HANDS: UnitFamily.REGULAR,
    UnitKind.WARRIOR: UnitFamily.REGULAR,
    UnitKind.DWARF: UnitFamily.REGULAR,
    UnitKind.GOLEM: UnitFamily.REGULAR,
    UnitKind.GARGOYLE: UnitFamily.REGULAR,
    UnitKind.DENDRITE: UnitFamily.REGULAR,
    UnitKind.UNDEAD: UnitFamily.REGULAR,
    UnitKind.ORC: UnitFamily.REGULAR,
    UnitKind.HALFLING: UnitFamily.REGULAR,
    UnitKind.ELF: UnitFamily.REGULAR,
    UnitKind.DARK_ELF: UnitFamily.REGULAR,
    UnitKind.WARSMITH: UnitFamily.HERO,
    UnitKind.FIGHTER: UnitFamily.HERO,
    UnitKind.HAMMER_LORD: UnitFamily.HERO,
    UnitKind.OGR: UnitFamily.HERO,
    UnitKind.SHADOW_BLADE: UnitFamily.HERO,
    UnitKind.RANGER: UnitFamily.HERO,
    UnitKind.PYROMANCER: UnitFamily.HERO,
    UnitKind.CLERIC: UnitFamily.HERO,
    UnitKind.DRUID: UnitFamily.HERO,
    UnitKind.ENCHANTER: UnitFamily.HERO,
    UnitKind.NECROMANCER: UnitFamily.HERO,
    UnitKind.BALLISTA: UnitFamily.WAR_MACHINE,
    UnitKind.CATAPULT: UnitFamily.WAR_MACHINE,
    UnitKind.BATTERING_RAM: UnitFamily.WAR_MACHINE,
    UnitKind.SIEGE_TOWER: UnitFamily.WAR_MACHINE,
}

# Predefined unit stats
UNIT_STATS: Dict[UnitKind, CombatStats] = {
    UnitKind.WARD_HANDS: CombatStats(attack=5, defense=3, health=20, speed=2),
    UnitKind.WARRIOR: CombatStats(attack=8, defense=6, health=25, speed=2),
    UnitKind.DWARF: CombatStats(attack=12, defense=20, health=40, speed=1),
    UnitKind.GOLEM: CombatStats(attack=25, defense=50, health=10, speed=5),
    UnitKind.GARGOYLE: CombatStats(attack=25, defense=50, health=10, speed=5),
    UnitKind.DENDRITE: CombatStats(attack=25, defense=50, health=10, speed=5),
    UnitKind.UNDEAD: CombatStats(attack=25, defense=50, health=10, speed=5),
    UnitKind.ORC: CombatStats(attack=10, defense=15, health=30, speed=2),
    UnitKind.HALFLING: CombatStats(attack=6, defense=3, health=15, speed=4, range=15, range_damage=8),
    UnitKind.ELF: CombatStats(attack=15, defense=4, health=20, speed=3, range=20, range_damage=15),
    UnitKind.DARK_ELF: CombatStats(attack=15, defense=4, health=20, speed=3, range=20, range_damage=15),

    # Heroes. A range below 10 is a reach weapon, still melee.
    UnitKind.WARSMITH: CombatStats(attack=30, defense=3, health=18, speed=4, range=2, range_damage=30),
    UnitKind.FIGHTER: CombatStats(attack=30, defense=3, health=18, speed=4, range=2, range_damage=30),
    UnitKind.HAMMER_LORD: CombatStats(attack=40, defense=3, health=25, speed=4, range=2, range_damage=40),
    UnitKind.OGR: CombatStats(attack=40, defense=4, health=30, speed=3, range=2, range_damage=45),
    UnitKind.SHADOW_BLADE: CombatStats(attack=30, defense=3, health=18, speed=5, range=30, range_damage=30),
    UnitKind.RANGER: CombatStats(attack=30, defense=3, health=18, speed=5, range=30, range_damage=30),
    UnitKind.PYROMANCER: CombatStats(attack=30, defense=3, health=18, speed=2, range=30, range_damage=30),
    UnitKind.CLERIC: CombatStats(attack=25, defense=5, health=20, speed=2, range=2, range_damage=25),
    UnitKind.DRUID: CombatStats(attack=20, defense=4, health=22, speed=3, range=2, range_damage=20),
    UnitKind.ENCHANTER: CombatStats(attack=15, defense=3, health=16, speed=2, range=35, range_damage=15),
    UnitKind.NECROMANCER: CombatStats(attack=35, defense=2, health=15, speed=2, range=25, range_damage=35),

    # Unarmed war machines are slow melee hulks until armed with a pack
    UnitKind.BALLISTA: CombatStats(attack=4, defense=10, health=60, speed=1),
    UnitKind.CATAPULT: CombatStats(attack=4, defense=8, health=70, speed=1),
    UnitKind.BATTERING_RAM: CombatStats(attack=6, defense=14, health=80, speed=1),
    UnitKind.SIEGE_TOWER: CombatStats(attack=3, defense=18, health=100, speed=1),
}

# Collision radius used by separation steering, and click radius of a deployed pack
UNIT_RADIUS: Dict[UnitFamily, float] = {
    UnitFamily.REGULAR: 5.4,
    UnitFamily.HERO: 7.0,
    UnitFamily.WAR_MACHINE: 9.0,
}
PACK_RADIUS: Dict[UnitFamily, float] = {
    UnitFamily.REGULAR: 11.0,
    UnitFamily.HERO: 10.0,
    UnitFamily.WAR_MACHINE: 13.0,
}


def is_single_unit(kind: UnitKind) -> bool:
    """Heroes and war machines deploy as a single unit instead of a pack."""
    return UNIT_FAMILY[kind] is not UnitFamily.REGULAR


def get_stats(kind: UnitKind) -> Optional[CombatStats]:
    """Return catalog stats, logging loudly when the entry is missing."""
    stats = UNIT_STATS.get(kind)
    if stats is None:
        logger.error(f"[Catalog] No combat stats found for unit type: {kind}")
    return stats


def kinds_in(family: UnitFamily) -> List[UnitKind]:
    return [kind for kind, fam in UNIT_FAMILY.items() if fam is family]
