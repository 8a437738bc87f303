from typing import Dict, Literal, Optional, Tuple
from pydantic import BaseModel, Field

from combat.catalog import UnitKind

class NewBattleRequest(BaseModel):
    """New battle session request schema."""
    tick_ms: Optional[int] = Field(default=None, gt=0)
    autostart: Optional[bool] = None

class PackIn(BaseModel):
    """Pack placement request schema."""
    x: float
    y: float
    team: Literal["attacker", "defender"]
    unit_type: UnitKind

class PointIn(BaseModel):
    x: float
    y: float

class ArmRequest(BaseModel):
    source_pack_id: int

class StepRequest(BaseModel):
    delta_ms: float = Field(default=16, gt=0)

class AutoResolveRequest(BaseModel):
    start_distance: Optional[float] = Field(default=None, ge=0)
    time_step_ms: Optional[int] = Field(default=None, gt=0)
    max_duration_ms: Optional[int] = Field(default=None, gt=0, le=600_000)

class PackOut(BaseModel):
    id: int
    team: str
    unit_type: str
    size: int
    pos: Tuple[float, float]
    engagement_range: float
    is_ranged: bool
    armed_with: Optional[str] = None

class StatsOut(BaseModel):
    phase: str
    attacker_count: int
    defender_count: int
    winner: Optional[str] = None

class AutoResolveOut(BaseModel):
    winner: str
    remaining: Dict[str, int]
    duration_ms: int

class EventsResponse(BaseModel):
    """Events response schema."""
    next_offset: int
    events: list[dict]
