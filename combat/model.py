from dataclasses import dataclass
from typing import Dict, Literal, Optional, Tuple

from .arming import ArmedWarMachine
from .catalog import PACK_RADIUS, UNIT_FAMILY, UnitFamily, UnitKind

Team = Literal["attacker", "defender"]
Phase = Literal["deploy", "battle"]
Winner = Literal["attacker", "defender", "draw"]
Position = Tuple[float, float]  # (x, y) in world units

TEAMS: Tuple[Team, Team] = ("attacker", "defender")


def opponent(team: Team) -> Team:
    return "defender" if team == "attacker" else "attacker"


@dataclass
class Unit:
    id: int
    team: Team
    unit_type: UnitKind
    attack: float
    defense: float
    hp: float
    max_hp: float
    movement_speed: float  # world units per second
    engagement_range: float
    is_ranged: bool
    attack_cooldown_ms: int
    pos: Position
    radius: float
    range_damage: Optional[float] = None
    last_attack_at: float = 0  # timestamp of the last attack, host clock
    target_id: Optional[int] = None  # Looked up every tick, the unit may be gone
    armed: Optional[ArmedWarMachine] = None

    @property
    def alive(self) -> bool:
        return self.hp > 0


@dataclass(frozen=True)
class UnitView:
    """Read-only projection of a unit for renderers"""
    id: int
    team: Team
    unit_type: UnitKind
    pos: Position
    hp: float
    max_hp: float
    radius: float
    target_id: Optional[int]
    armed_with: Optional[UnitKind]

    @classmethod
    def of(cls, u: Unit) -> "UnitView":
        return cls(id=u.id, team=u.team, unit_type=u.unit_type, pos=u.pos, hp=max(0.0, u.hp),
                   max_hp=u.max_hp, radius=u.radius, target_id=u.target_id,
                   armed_with=u.armed.armed_with if u.armed else None)


@dataclass
class Pack:
    """Units of one type placed by a single deployment action"""
    id: int
    team: Team
    unit_type: UnitKind
    size: int
    pos: Position
    engagement_range: float
    is_ranged: bool
    armed: Optional[ArmedWarMachine] = None

    @property
    def family(self) -> UnitFamily:
        return UNIT_FAMILY[self.unit_type]

    @property
    def radius(self) -> float:
        return PACK_RADIUS[self.family]


@dataclass
class Event:
    kind: str
    ts_ms: float
    data: Dict


@dataclass(frozen=True)
class BattleStats:
    phase: Phase
    attacker_count: int
    defender_count: int
    winner: Optional[Team] = None
