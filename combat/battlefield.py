from dataclasses import dataclass
from typing import Tuple

from .model import Position, Team

MAP_WIDTH = 1200.0
MAP_HEIGHT = 700.0

PACK_SIZE = 20
PACK_ROWS = 4
PACK_COLS = 5
PACK_SPACING = 12.0
MAX_UNITS = 500

ZONE_MARGIN_X = 8.0
ZONE_MARGIN_Y = 10.0


@dataclass(frozen=True)
class Zone:
    """Vertical strip of the map spanning its full height"""
    x: float
    width: float

    @property
    def right(self) -> float:
        return self.x + self.width

    def clamp(self, pos: Position) -> Position:
        """Clamp a point into the zone interior."""
        x = clamp(pos[0], self.x + ZONE_MARGIN_X, self.right - ZONE_MARGIN_X)
        y = clamp(pos[1], ZONE_MARGIN_Y, MAP_HEIGHT - ZONE_MARGIN_Y)
        return (x, y)


ZONE_ATTACKER = Zone(x=0.0, width=MAP_WIDTH * 0.3)
ZONE_NEUTRAL = Zone(x=MAP_WIDTH * 0.3, width=MAP_WIDTH * 0.1)
ZONE_DEFENDER = Zone(x=MAP_WIDTH * 0.4, width=MAP_WIDTH * 0.6)


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def zone_for(team: Team) -> Zone:
    return ZONE_ATTACKER if team == "attacker" else ZONE_DEFENDER


def in_neutral_strip(x: float) -> bool:
    return ZONE_NEUTRAL.x <= x < ZONE_NEUTRAL.right


def point_in_zone(pos: Position, team: Team) -> bool:
    """True if a team may deploy at pos. The neutral strip belongs to nobody."""
    x, y = pos
    zone = zone_for(team)
    if in_neutral_strip(x):
        return False
    return zone.x <= x <= zone.right and 0 <= y <= MAP_HEIGHT


def clamp_to_map(pos: Position, margin: float) -> Position:
    return (clamp(pos[0], margin, MAP_WIDTH - margin), clamp(pos[1], margin, MAP_HEIGHT - margin))


def grid_offsets(count: int, columns: int = PACK_COLS, rows: int = PACK_ROWS,
                 spacing: float = PACK_SPACING) -> Tuple[Position, ...]:
    """Offsets of a pack grid centred on its anchor, row by row."""
    start_x = -((columns - 1) * spacing) / 2
    start_y = -((rows - 1) * spacing) / 2
    return tuple(
        (start_x + (i % columns) * spacing, start_y + (i // columns) * spacing)
        for i in range(count)
    )
