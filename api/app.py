from contextlib import asynccontextmanager
from functools import lru_cache
from typing import List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from starlette.concurrency import run_in_threadpool

from combat.battle import Battle
from combat.catalog import UNIT_FAMILY, UNIT_STATS, UnitFamily, kinds_in
from combat.model import Pack
from combat.resolver import matchup_matrix
from combat.rules import derive
from runtime.runner import TickRunner
from .config import settings
from .schemas import (ArmRequest, AutoResolveOut, AutoResolveRequest, EventsResponse, NewBattleRequest,
                      PackIn, PackOut, PointIn, StatsOut, StepRequest)

MAX_RESOLVE_ITERATIONS = 12_000

runner: Optional[TickRunner] = None


async def _new_session(tick_ms: int, autostart: bool) -> TickRunner:
    global runner
    if runner:
        await runner.stop()
    runner = TickRunner(Battle(), tick_ms=tick_ms, time_compression=settings.time_compression)
    if autostart:
        await runner.start()
    return runner


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start a session on startup, stop its tick loop on shutdown."""
    await _new_session(settings.tick_ms, settings.autostart)
    yield
    if runner:
        await runner.stop()


app = FastAPI(title=settings.app_name, lifespan=lifespan)

# Enable CORS for development (front-end runs on a different port)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _require_runner() -> TickRunner:
    if not runner:
        raise HTTPException(400, "Battle not started")
    return runner


def _pack_out(p: Pack) -> PackOut:
    return PackOut(
        id=p.id, team=p.team, unit_type=p.unit_type.value, size=p.size, pos=p.pos,
        engagement_range=p.engagement_range, is_ranged=p.is_ranged,
        armed_with=p.armed.armed_with.value if p.armed else None,
    )


@app.get("/")
async def root():
    """API root endpoint."""
    return {
        "message": "Pack Battle API",
        "docs": "/docs",
        "version": "1.0"
    }


@app.get("/catalog")
async def get_catalog():
    """Unit types with their base and derived stats."""
    out = []
    for kind, stats in UNIT_STATS.items():
        derived = derive(stats)
        out.append({
            "unit_type": kind.value,
            "family": UNIT_FAMILY[kind].value,
            "attack": stats.attack,
            "defense": stats.defense,
            "health": stats.health,
            "speed": stats.speed,
            "range": stats.range,
            "range_damage": stats.range_damage,
            "movement_speed": derived.movement_speed,
            "engagement_range": derived.engagement_range,
            "is_ranged": derived.is_ranged,
            "attack_cooldown_ms": derived.attack_cooldown_ms,
        })
    return out


@lru_cache(maxsize=4)
def regular_matchups(max_duration_ms: int) -> List[List[int]]:
    """Survivor margins between regular unit types, cached per duration cap."""
    return matchup_matrix(kinds_in(UnitFamily.REGULAR), max_duration_ms=max_duration_ms).tolist()


@app.get("/catalog/matchups")
async def get_matchups():
    """Auto-resolve survivor margin for every pair of regular unit types."""
    kinds = kinds_in(UnitFamily.REGULAR)
    margins = await run_in_threadpool(regular_matchups, settings.auto_resolve_max_duration_ms)
    return {"unit_types": [k.value for k in kinds], "margins": margins}


@app.post("/battle/new")
async def new_battle(req: NewBattleRequest):
    """Throw away the current session and start a fresh deploy phase."""
    tick_ms = req.tick_ms or settings.tick_ms
    autostart = settings.autostart if req.autostart is None else req.autostart
    await _new_session(tick_ms, autostart)
    logger.info(f"[API] New battle session (tick {tick_ms}ms, autostart={autostart})")
    return {"battle_id": "local"}


@app.get("/battle/local/packs")
async def list_packs():
    r = _require_runner()
    packs = await r.command(r.battle.packs)
    return [_pack_out(p) for p in packs]


@app.post("/battle/local/packs")
async def place_pack(req: PackIn):
    """Place a pack; rejected placements answer placed=false."""
    r = _require_runner()
    pack = await r.command(r.battle.place_pack, (req.x, req.y), req.team, req.unit_type)
    return {"placed": pack is not None, "pack": _pack_out(pack) if pack else None}


@app.delete("/battle/local/packs/{pack_id}")
async def remove_pack(pack_id: int):
    r = _require_runner()
    removed = await r.command(r.battle.remove_pack, pack_id)
    return {"removed": removed}


@app.post("/battle/local/packs/{pack_id}/move")
async def move_pack(pack_id: int, req: PointIn):
    r = _require_runner()
    pack = await r.command(r.battle.move_pack, pack_id, (req.x, req.y))
    return {"moved": pack is not None, "pack": _pack_out(pack) if pack else None}


@app.post("/battle/local/packs/{pack_id}/select")
async def select_pack(pack_id: int):
    """Select a pack and return its engagement range preview."""
    r = _require_runner()
    pack = await r.command(r.battle.select_pack, pack_id)
    if pack is None:
        raise HTTPException(404, f"Pack {pack_id} not found")
    return {"pack_id": pack.id, "range_preview": r.battle.deploy.selected_range()}


@app.post("/battle/local/packs/{pack_id}/arm")
async def arm_war_machine(pack_id: int, req: ArmRequest):
    r = _require_runner()
    armed = await r.command(r.battle.arm_war_machine, pack_id, req.source_pack_id)
    return {"armed": armed}


@app.post("/battle/local/start")
async def start_battle():
    r = _require_runner()
    started = await r.command(r.battle.start_battle)
    return {"started": started}


@app.post("/battle/local/reset")
async def reset_battle():
    r = _require_runner()
    await r.reset()
    return StatsOut(**vars(await r.stats()))


@app.post("/battle/local/step")
async def step_battle(req: StepRequest):
    """Manually advance the simulation by one frame."""
    r = _require_runner()
    evts = await r.advance(req.delta_ms)
    return {"time_ms": r.time_ms, "events": len(evts)}


@app.post("/battle/local/auto-resolve")
async def auto_resolve(req: Optional[AutoResolveRequest] = None):
    """Predict the outcome; null when the deployment can't be auto-resolved."""
    r = _require_runner()
    req = req or AutoResolveRequest()
    step = req.time_step_ms or settings.auto_resolve_time_step_ms
    max_ms = req.max_duration_ms or settings.auto_resolve_max_duration_ms
    if max_ms / step > MAX_RESOLVE_ITERATIONS:
        raise HTTPException(422, f"max_duration_ms / time_step_ms must not exceed {MAX_RESOLVE_ITERATIONS}")
    start = settings.auto_resolve_start_distance if req.start_distance is None else req.start_distance
    result = await r.auto_resolve(start_distance=start, time_step_ms=step, max_duration_ms=max_ms)
    if result is None:
        return None
    return AutoResolveOut(winner=result.winner, remaining=result.remaining, duration_ms=result.duration_ms)


@app.get("/battle/local/stats")
async def get_stats():
    r = _require_runner()
    return StatsOut(**vars(await r.stats()))


@app.get("/battle/local/state")
async def get_state():
    """Get current battle state snapshot."""
    r = _require_runner()
    stats = await r.stats()
    units = await r.command(r.battle.units)
    return {
        "ts_ms": r.time_ms,
        "phase": stats.phase,
        "units": {
            u.id: {
                "id": u.id,
                "team": u.team,
                "unit_type": u.unit_type.value,
                "pos": list(u.pos),
                "hp": u.hp,
                "max_hp": u.max_hp,
                "radius": u.radius,
                "target_id": u.target_id,
                "armed_with": u.armed_with.value if u.armed_with else None,
            } for u in units
        }
    }


@app.get("/battle/local/events")
async def get_events(since: int = 0, limit: int = 500):
    """Get events since offset."""
    r = _require_runner()
    evts, next_offset = r.events.since(since, limit)
    return EventsResponse(
        next_offset=next_offset,
        events=[{"kind": e.kind, "ts_ms": e.ts_ms, "data": e.data} for e in evts]
    )


@app.post("/battle/local/time-control")
async def set_time_control(time_compression: float):
    """Set simulation time compression (1.0 = real-time, higher = faster)."""
    r = _require_runner()
    r.set_time_compression(time_compression)
    return {"time_compression": r.time_compression}


@app.get("/battle/local/time-control")
async def get_time_control():
    """Get current time compression setting."""
    r = _require_runner()
    return {"time_compression": r.time_compression}
