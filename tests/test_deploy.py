"""Test pack placement, arming and materialization."""
import pytest
from combat.battlefield import point_in_zone
from combat.catalog import UnitKind
from combat.deploy import DeployManager


def make_manager() -> DeployManager:
    return DeployManager(pack_size=20, max_units=500)


class Recorder:
    """Stands in for the engine's create_unit hook."""

    def __init__(self):
        self.calls = []

    def __call__(self, x, y, team, kind, armed=None):
        self.calls.append((x, y, team, kind, armed))


def test_spawn_regular_pack():
    dm = make_manager()
    pack = dm.spawn_pack((100, 100), "attacker", UnitKind.WARRIOR)
    assert pack is not None
    assert pack.id == 1
    assert pack.size == 20
    assert pack.pos == (100, 100)
    assert pack.engagement_range == 18
    assert pack.is_ranged is False
    assert dm.team_unit_count("attacker") == 20


def test_hero_and_war_machine_spawn_single_unit():
    dm = make_manager()
    assert dm.spawn_pack((100, 100), "attacker", UnitKind.RANGER).size == 1
    assert dm.spawn_pack((700, 100), "defender", UnitKind.CATAPULT).size == 1


@pytest.mark.parametrize("x", [360, 400, 479.9])
def test_neutral_strip_is_never_valid(x):
    dm = make_manager()
    for team in ("attacker", "defender"):
        assert not point_in_zone((x, 300), team)
        assert dm.spawn_pack((x, 300), team, UnitKind.WARRIOR) is None
    assert dm.packs() == []


def test_placement_outside_own_zone_rejected():
    dm = make_manager()
    assert dm.spawn_pack((600, 300), "attacker", UnitKind.WARRIOR) is None
    assert dm.spawn_pack((100, 300), "defender", UnitKind.WARRIOR) is None
    assert dm.spawn_pack((100, 750), "attacker", UnitKind.WARRIOR) is None
    assert dm.spawn_pack((600, 300), "defender", UnitKind.WARRIOR) is not None


def test_anchor_clamped_into_zone_interior():
    dm = make_manager()
    assert dm.spawn_pack((2, 3), "attacker", UnitKind.WARRIOR).pos == (8, 10)
    assert dm.spawn_pack((359, 699), "attacker", UnitKind.WARRIOR).pos == (352, 690)
    assert dm.spawn_pack((1200, 0), "defender", UnitKind.WARRIOR).pos == (1192, 10)


def test_capacity_limit():
    """A pack pushing a team past 500 units is rejected and changes nothing."""
    dm = make_manager()
    for i in range(25):
        assert dm.spawn_pack((20 + i * 10, 300), "attacker", UnitKind.WARRIOR) is not None
    assert dm.team_unit_count("attacker") == 500

    before = [(p.id, p.pos, p.size) for p in dm.packs()]
    assert dm.spawn_pack((100, 300), "attacker", UnitKind.WARRIOR) is None
    assert dm.spawn_pack((100, 300), "attacker", UnitKind.FIGHTER) is None
    assert [(p.id, p.pos, p.size) for p in dm.packs()] == before

    # The other team has its own cap
    assert dm.spawn_pack((700, 300), "defender", UnitKind.WARRIOR) is not None


def test_pack_ids_are_monotonic():
    dm = make_manager()
    a = dm.spawn_pack((100, 100), "attacker", UnitKind.WARRIOR)
    b = dm.spawn_pack((200, 100), "attacker", UnitKind.WARRIOR)
    dm.remove_pack(a.id)
    c = dm.spawn_pack((300, 100), "attacker", UnitKind.WARRIOR)
    assert (a.id, b.id, c.id) == (1, 2, 3)


def test_arm_war_machine_consumes_pack():
    dm = make_manager()
    machine = dm.spawn_pack((100, 100), "attacker", UnitKind.BALLISTA)
    source = dm.spawn_pack((200, 200), "attacker", UnitKind.WARRIOR)
    assert machine.engagement_range == 18

    assert dm.arm_war_machine(machine.id, source.id) is True
    assert machine.armed is not None
    assert machine.armed.armed_with is UnitKind.WARRIOR
    assert machine.armed.combat_stats.range == 35
    assert machine.engagement_range == 175
    assert machine.is_ranged is True
    assert dm.get(source.id) is None
    assert dm.team_unit_count("attacker") == 1


def _snapshot(pack):
    return (pack.pos, pack.size, pack.engagement_range, pack.is_ranged, pack.armed)


@pytest.mark.parametrize("source_kind", [UnitKind.ELF, UnitKind.HALFLING, UnitKind.FIGHTER, UnitKind.CATAPULT])
def test_arming_rejects_wrong_source_kind(source_kind):
    dm = make_manager()
    machine = dm.spawn_pack((100, 100), "attacker", UnitKind.BALLISTA)
    source = dm.spawn_pack((200, 200), "attacker", source_kind)
    m_before, s_before = _snapshot(machine), _snapshot(source)

    assert dm.arm_war_machine(machine.id, source.id) is False
    assert _snapshot(machine) == m_before
    assert _snapshot(dm.get(source.id)) == s_before


def test_arming_rejects_short_pack():
    dm = make_manager()
    machine = dm.spawn_pack((100, 100), "attacker", UnitKind.BALLISTA)
    source = dm.spawn_pack((200, 200), "attacker", UnitKind.WARRIOR)
    source.size = 19
    assert dm.arm_war_machine(machine.id, source.id) is False
    assert machine.armed is None
    assert dm.get(source.id).size == 19


def test_arming_is_one_way():
    dm = make_manager()
    machine = dm.spawn_pack((100, 100), "attacker", UnitKind.BALLISTA)
    first = dm.spawn_pack((200, 200), "attacker", UnitKind.WARRIOR)
    second = dm.spawn_pack((250, 200), "attacker", UnitKind.DWARF)
    assert dm.arm_war_machine(machine.id, first.id)
    assert dm.arm_war_machine(machine.id, second.id) is False
    assert machine.armed.armed_with is UnitKind.WARRIOR
    assert dm.get(second.id) is not None


def test_arming_rejects_non_war_machine_and_other_team():
    dm = make_manager()
    hero = dm.spawn_pack((100, 100), "attacker", UnitKind.FIGHTER)
    source = dm.spawn_pack((200, 200), "attacker", UnitKind.WARRIOR)
    enemy_source = dm.spawn_pack((700, 200), "defender", UnitKind.WARRIOR)
    machine = dm.spawn_pack((150, 300), "attacker", UnitKind.SIEGE_TOWER)

    assert dm.arm_war_machine(hero.id, source.id) is False
    assert dm.arm_war_machine(machine.id, enemy_source.id) is False
    assert dm.arm_war_machine(machine.id, 999) is False
    assert machine.armed is None
    assert len(dm.packs()) == 4


def test_materialize_grid_and_single_units():
    dm = make_manager()
    dm.spawn_pack((100, 100), "attacker", UnitKind.WARRIOR)
    machine = dm.spawn_pack((300, 300), "attacker", UnitKind.BALLISTA)
    src = dm.spawn_pack((200, 500), "attacker", UnitKind.ORC)
    dm.arm_war_machine(machine.id, src.id)

    rec = Recorder()
    assert dm.materialize(rec) == 21
    grid = [c for c in rec.calls if c[3] is UnitKind.WARRIOR]
    assert len(grid) == 20
    assert grid[0][:2] == (76, 82)
    assert grid[4][:2] == (124, 82)
    assert grid[-1][:2] == (124, 118)

    single = [c for c in rec.calls if c[3] is UnitKind.BALLISTA]
    assert single == [(300, 300, "attacker", UnitKind.BALLISTA, machine.armed)]
    assert dm.packs() == []


def test_materialize_clamps_grid_into_zone():
    dm = make_manager()
    dm.spawn_pack((0, 0), "attacker", UnitKind.WARRIOR)
    rec = Recorder()
    dm.materialize(rec)
    assert all(8 <= x <= 352 and 10 <= y <= 690 for x, y, *_ in rec.calls)
    assert rec.calls[0][:2] == (8, 10)


def test_pack_at_uses_visual_radius():
    dm = make_manager()
    pack = dm.spawn_pack((100, 100), "attacker", UnitKind.WARRIOR)
    machine = dm.spawn_pack((200, 100), "attacker", UnitKind.BALLISTA)
    assert dm.pack_at((108, 104)) is pack
    assert dm.pack_at((112, 100)) is None
    assert dm.pack_at((212, 100)) is machine


def test_selection_range_preview():
    dm = make_manager()
    elf = dm.spawn_pack((100, 100), "attacker", UnitKind.ELF)
    machine = dm.spawn_pack((200, 100), "attacker", UnitKind.BALLISTA)
    src = dm.spawn_pack((300, 100), "attacker", UnitKind.WARRIOR)

    dm.select_pack(elf.id)
    assert dm.selected_range() == 100
    dm.select_pack(machine.id)
    assert dm.selected is machine
    assert dm.selected_range() is None
    dm.arm_war_machine(machine.id, src.id)
    assert dm.selected_range() == 175

    dm.remove_pack(machine.id)
    assert dm.selected is None


def test_move_pack_stays_in_own_zone():
    dm = make_manager()
    pack = dm.spawn_pack((100, 100), "attacker", UnitKind.WARRIOR)
    dm.move_pack(pack.id, (900, 50))
    assert pack.pos == (352, 50)
    assert dm.move_pack(42, (100, 100)) is None


def test_reset_restarts_ids():
    dm = make_manager()
    dm.spawn_pack((100, 100), "attacker", UnitKind.WARRIOR)
    dm.reset()
    assert dm.packs() == []
    assert dm.spawn_pack((100, 100), "attacker", UnitKind.WARRIOR).id == 1
