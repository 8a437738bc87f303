from typing import Callable, List, Optional

from loguru import logger

from .battlefield import MAP_HEIGHT, MAX_UNITS, PACK_COLS, PACK_SIZE, PACK_SPACING, clamp, zone_for
from .catalog import UnitFamily, UnitKind, is_single_unit
from .deploy import DeployManager
from .engine import CombatEngine
from .model import BattleStats, Event, Pack, Phase, Position, Team, UnitView
from .resolver import SimulationConfig, SimulationResult, simulate_battle

AUTO_RESOLVE_START_DISTANCE = 300.0
AUTO_RESOLVE_TIME_STEP_MS = 50
AUTO_RESOLVE_MAX_DURATION_MS = 90_000

SURVIVOR_ZONE_MARGIN = 18.0
SINGLE_UNIT_SPACING = 24.0

StatsCallback = Callable[[BattleStats], None]


class Battle:
    """Deploy/battle phase machine wrapping the deployment model and live engine.

    Every command is a no-op on invalid input and reports it through its
    return value; nothing here raises for user-triggered conditions.
    """

    def __init__(self, pack_size: int = PACK_SIZE, max_units: int = MAX_UNITS):
        self.deploy = DeployManager(pack_size=pack_size, max_units=max_units)
        self.engine = CombatEngine()
        self.phase: Phase = "deploy"
        self.winner: Optional[Team] = None
        self.ts_ms: float = 0
        self._events: List[Event] = []
        self._on_stats: Optional[StatsCallback] = None

    # -- outbound --

    def stats(self) -> BattleStats:
        if self.phase == "deploy":
            return BattleStats(
                phase=self.phase,
                attacker_count=self.deploy.team_unit_count("attacker"),
                defender_count=self.deploy.team_unit_count("defender"),
            )
        return BattleStats(
            phase=self.phase,
            attacker_count=self.engine.team_count("attacker"),
            defender_count=self.engine.team_count("defender"),
            winner=self.winner,
        )

    def set_stats_callback(self, callback: Optional[StatsCallback]) -> None:
        self._on_stats = callback
        self._emit_stats()

    def _emit_stats(self) -> None:
        if self._on_stats is not None:
            self._on_stats(self.stats())

    def _event(self, kind: str, data: dict) -> None:
        self._events.append(Event(kind, self.ts_ms, data))

    def drain_events(self) -> List[Event]:
        evts, self._events = self._events, []
        return evts

    def units(self) -> List[UnitView]:
        return self.engine.views()

    def packs(self) -> List[Pack]:
        return self.deploy.packs()

    # -- deployment commands --

    def place_pack(self, pos: Position, team: Team, kind: UnitKind) -> Optional[Pack]:
        if self.phase != "deploy":
            return None
        pack = self.deploy.spawn_pack(pos, team, kind)
        if pack is not None:
            self._event("PackPlaced", {"pack_id": pack.id, "team": team, "unit_type": kind.value,
                                       "size": pack.size, "pos": list(pack.pos)})
            self._emit_stats()
        return pack

    def remove_pack(self, pack_id: int) -> bool:
        if self.phase != "deploy" or not self.deploy.remove_pack(pack_id):
            return False
        self._event("PackRemoved", {"pack_id": pack_id})
        self._emit_stats()
        return True

    def move_pack(self, pack_id: int, pos: Position) -> Optional[Pack]:
        if self.phase != "deploy":
            return None
        pack = self.deploy.move_pack(pack_id, pos)
        if pack is not None:
            self._event("PackMoved", {"pack_id": pack_id, "pos": list(pack.pos)})
        return pack

    def select_pack(self, pack_id: int) -> Optional[Pack]:
        if self.phase != "deploy":
            return None
        return self.deploy.select_pack(pack_id)

    def arm_war_machine(self, war_machine_id: int, source_id: int) -> bool:
        if self.phase != "deploy":
            return False
        source = self.deploy.get(source_id)
        if not self.deploy.arm_war_machine(war_machine_id, source_id):
            return False
        self._event("WarMachineArmed", {"pack_id": war_machine_id, "consumed_pack_id": source_id,
                                        "armed_with": source.unit_type.value})
        self._emit_stats()
        return True

    # -- battle commands --

    def start_battle(self) -> bool:
        if self.phase == "battle":
            return False
        created = self.deploy.materialize(self.engine.create_unit)
        self.phase = "battle"
        self.winner = None
        logger.info(f"[Battle] Started with {self.engine.team_count('attacker')} attackers "
                    f"vs {self.engine.team_count('defender')} defenders")
        self._event("BattleStarted", {"units": created})
        self._check_outcome()
        self._emit_stats()
        return True

    def reset_battle(self) -> None:
        self.engine.clear()
        self.deploy.reset()
        self.phase = "deploy"
        self.winner = None
        self._event("BattleReset", {})
        self._emit_stats()

    def tick(self, time: float, delta_ms: float) -> List[Event]:
        """Advance the live simulation. No-op outside the battle phase."""
        self.ts_ms = time
        if self.phase != "battle":
            return []
        evts = self.engine.tick(time, delta_ms)
        self._events.extend(evts)
        if any(e.kind == "Destroyed" for e in evts):
            self._check_outcome()
            self._emit_stats()
        return evts

    def _check_outcome(self) -> None:
        if self.winner is not None:
            return
        attackers = self.engine.team_count("attacker")
        defenders = self.engine.team_count("defender")
        if attackers and not defenders:
            self.winner = "attacker"
        elif defenders and not attackers:
            self.winner = "defender"
        else:
            return
        logger.info(f"[Battle] {self.winner} wins with {max(attackers, defenders)} units left")
        self._event("BattleEnded", {"winner": self.winner,
                                    "remaining": {"attacker": attackers, "defender": defenders}})

    # -- prediction --

    def _single_type(self, team: Team) -> Optional[UnitKind]:
        kinds = {p.unit_type for p in self.deploy.packs() if p.team == team}
        if len(kinds) != 1:
            return None
        return next(iter(kinds))

    def plan_auto_resolve(self, start_distance: float = AUTO_RESOLVE_START_DISTANCE,
                          time_step_ms: int = AUTO_RESOLVE_TIME_STEP_MS,
                          max_duration_ms: int = AUTO_RESOLVE_MAX_DURATION_MS) -> Optional[SimulationConfig]:
        """Resolver input for the current deployment.

        None unless each side has packs of exactly one unit type and no war
        machine is armed.
        """
        if self.phase != "deploy":
            return None

        attacker_count = self.deploy.team_unit_count("attacker")
        defender_count = self.deploy.team_unit_count("defender")
        if attacker_count == 0 or defender_count == 0:
            logger.warning("[Battle] Auto-resolve needs units on both sides")
            return None

        attacker_type = self._single_type("attacker")
        defender_type = self._single_type("defender")
        if attacker_type is None or defender_type is None:
            logger.warning("[Battle] Auto-resolve requires exactly one unit type per team")
            return None

        if any(p.armed is not None for p in self.deploy.packs() if p.family is UnitFamily.WAR_MACHINE):
            logger.warning("[Battle] Auto-resolve does not support armed war machines")
            return None

        return SimulationConfig(
            attacker_type=attacker_type,
            defender_type=defender_type,
            attacker_count=attacker_count,
            defender_count=defender_count,
            start_distance=start_distance,
            time_step_ms=time_step_ms,
            max_duration_ms=max_duration_ms,
        )

    def apply_auto_resolve(self, config: SimulationConfig, result: SimulationResult) -> bool:
        """Jump to a predicted outcome computed from config.

        Refused when the deployment no longer matches config, e.g. a pack was
        placed while the prediction was running elsewhere.
        """
        current = self.plan_auto_resolve(config.start_distance, config.time_step_ms, config.max_duration_ms)
        if current != config:
            logger.warning("[Battle] Deployment changed during auto-resolve, result discarded")
            return False

        logger.info(f"[Battle] Auto-resolved {config.attacker_type.value} x{config.attacker_count} vs "
                    f"{config.defender_type.value} x{config.defender_count}: {result.winner} "
                    f"{result.remaining} in {result.duration_ms}ms")

        self.reset_battle()
        self.phase = "battle"
        if result.winner == "attacker":
            self._spawn_survivors("attacker", config.attacker_type, result.remaining["attacker"])
        elif result.winner == "defender":
            self._spawn_survivors("defender", config.defender_type, result.remaining["defender"])
        if result.winner != "draw":
            self.winner = result.winner

        self._event("AutoResolved", {"winner": result.winner, "remaining": dict(result.remaining),
                                     "duration_ms": result.duration_ms})
        self._emit_stats()
        return True

    def auto_resolve(self, start_distance: float = AUTO_RESOLVE_START_DISTANCE,
                     time_step_ms: int = AUTO_RESOLVE_TIME_STEP_MS,
                     max_duration_ms: int = AUTO_RESOLVE_MAX_DURATION_MS) -> Optional[SimulationResult]:
        """Predict the deployed battle and jump straight to its outcome.

        Returns None, leaving every pack in place, when the deployment can't
        be auto-resolved.
        """
        config = self.plan_auto_resolve(start_distance, time_step_ms, max_duration_ms)
        if config is None:
            return None
        result = simulate_battle(config)
        self.apply_auto_resolve(config, result)
        return result

    def _spawn_survivors(self, team: Team, kind: UnitKind, count: int) -> None:
        """Lay survivors out in a grid centred in their zone."""
        zone = zone_for(team)
        min_x = zone.x + SURVIVOR_ZONE_MARGIN
        max_x = zone.right - SURVIVOR_ZONE_MARGIN
        center_x = clamp(zone.x + zone.width / 2, min_x, max_x)
        center_y = MAP_HEIGHT / 2

        single = is_single_unit(kind)
        spacing = SINGLE_UNIT_SPACING if single else PACK_SPACING
        columns = 1 if single else PACK_COLS

        for i in range(count):
            row, col = divmod(i, columns)
            x = clamp(center_x + (col - (columns - 1) / 2) * spacing, min_x, max_x)
            y = clamp(center_y + (row - 2) * spacing, 10, MAP_HEIGHT - 10)
            self.engine.create_unit(x, y, team, kind)
