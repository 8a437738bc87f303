"""Test the deploy/battle phase machine and auto-resolve orchestration."""
from combat.battle import Battle
from combat.battlefield import ZONE_DEFENDER
from combat.catalog import UnitKind
from combat.resolver import simulate_battle


def make_battle() -> Battle:
    """Warrior pack against a dwarf pack, both still in deploy."""
    battle = Battle()
    battle.place_pack((200, 350), "attacker", UnitKind.WARRIOR)
    battle.place_pack((700, 350), "defender", UnitKind.DWARF)
    return battle


def pack_state(battle: Battle):
    return [(p.id, p.team, p.unit_type, p.size, p.pos, p.armed) for p in battle.packs()]


def test_deploy_stats():
    battle = make_battle()
    s = battle.stats()
    assert (s.phase, s.attacker_count, s.defender_count, s.winner) == ("deploy", 20, 20, None)


def test_start_battle_materializes_packs():
    battle = make_battle()
    assert battle.start_battle() is True
    assert battle.phase == "battle"
    assert battle.packs() == []
    assert len(battle.units()) == 40
    assert battle.stats().attacker_count == 20
    assert battle.start_battle() is False


def test_deployment_commands_ignored_during_battle():
    battle = make_battle()
    battle.start_battle()
    assert battle.place_pack((100, 100), "attacker", UnitKind.WARRIOR) is None
    assert battle.remove_pack(1) is False
    assert battle.arm_war_machine(1, 2) is False
    assert battle.auto_resolve() is None


def test_tick_is_noop_during_deploy():
    battle = make_battle()
    assert battle.tick(1000, 16) == []
    assert battle.units() == []


def test_reset_returns_to_deploy():
    battle = make_battle()
    battle.start_battle()
    battle.tick(0, 16)
    battle.reset_battle()
    s = battle.stats()
    assert (s.phase, s.attacker_count, s.defender_count) == ("deploy", 0, 0)
    assert battle.units() == []
    assert battle.place_pack((100, 100), "attacker", UnitKind.WARRIOR).id == 1


def test_stats_callback_fires_on_change():
    battle = Battle()
    seen = []
    battle.set_stats_callback(seen.append)
    battle.place_pack((200, 350), "attacker", UnitKind.WARRIOR)
    assert seen[-1].attacker_count == 20
    battle.start_battle()
    assert seen[-1].phase == "battle"


def test_armed_war_machine_enters_battle_armed():
    battle = Battle()
    machine = battle.place_pack((200, 350), "attacker", UnitKind.BALLISTA)
    source = battle.place_pack((100, 350), "attacker", UnitKind.ORC)
    battle.place_pack((700, 350), "defender", UnitKind.DWARF)
    assert battle.arm_war_machine(machine.id, source.id) is True
    assert battle.stats().attacker_count == 1
    assert any(e.kind == "WarMachineArmed" for e in battle.drain_events())

    battle.start_battle()
    armed = [u for u in battle.units() if u.armed_with is not None]
    assert len(armed) == 1
    assert armed[0].unit_type is UnitKind.BALLISTA
    assert armed[0].armed_with is UnitKind.ORC
    assert armed[0].max_hp == 75


def test_battle_ends_once():
    battle = Battle()
    battle.place_pack((340, 350), "attacker", UnitKind.NECROMANCER)
    battle.place_pack((490, 350), "defender", UnitKind.WARSMITH)
    battle.start_battle()
    battle.drain_events()

    for i in range(2000):
        battle.tick(i * 16, 16)
        if battle.winner:
            break
    for i in range(5):
        battle.tick(40_000 + i * 16, 16)

    assert battle.winner == "attacker"
    assert battle.stats().winner == "attacker"
    ended = [e for e in battle.drain_events() if e.kind == "BattleEnded"]
    assert len(ended) == 1
    assert ended[0].data["remaining"] == {"attacker": 1, "defender": 0}


def test_auto_resolve_requires_both_sides():
    battle = Battle()
    battle.place_pack((200, 350), "attacker", UnitKind.WARRIOR)
    before = pack_state(battle)
    assert battle.auto_resolve() is None
    assert pack_state(battle) == before
    assert battle.phase == "deploy"


def test_auto_resolve_rejects_mixed_types():
    battle = make_battle()
    battle.place_pack((100, 150), "attacker", UnitKind.ORC)
    before = pack_state(battle)
    stats_before = battle.stats()
    assert battle.auto_resolve() is None
    assert pack_state(battle) == before
    assert battle.stats() == stats_before


def test_auto_resolve_rejects_armed_war_machines():
    battle = Battle()
    machine = battle.place_pack((200, 350), "attacker", UnitKind.BALLISTA)
    source = battle.place_pack((100, 350), "attacker", UnitKind.WARRIOR)
    battle.place_pack((700, 350), "defender", UnitKind.DWARF)
    battle.arm_war_machine(machine.id, source.id)
    before = pack_state(battle)
    assert battle.auto_resolve() is None
    assert pack_state(battle) == before


def test_auto_resolve_spawns_survivors():
    battle = make_battle()
    battle.place_pack((800, 200), "defender", UnitKind.DWARF)
    result = battle.auto_resolve()

    assert result is not None
    assert result.winner == "defender"
    assert result.remaining["attacker"] == 0
    assert battle.phase == "battle"
    assert battle.packs() == []
    s = battle.stats()
    assert (s.attacker_count, s.defender_count, s.winner) == (0, result.remaining["defender"], "defender")
    for u in battle.units():
        assert u.team == "defender"
        assert ZONE_DEFENDER.x < u.pos[0] < ZONE_DEFENDER.right
        assert 10 <= u.pos[1] <= 690
    assert any(e.kind == "AutoResolved" for e in battle.drain_events())


def test_battle_with_empty_side_ends_at_start():
    battle = Battle()
    battle.place_pack((200, 350), "attacker", UnitKind.WARRIOR)
    battle.start_battle()
    battle.tick(0, 16)

    assert battle.winner == "attacker"
    assert battle.stats().winner == "attacker"
    ended = [e for e in battle.drain_events() if e.kind == "BattleEnded"]
    assert len(ended) == 1
    assert ended[0].data["remaining"] == {"attacker": 20, "defender": 0}


def test_empty_battlefield_has_no_winner():
    battle = Battle()
    battle.start_battle()
    assert battle.winner is None
    assert not any(e.kind == "BattleEnded" for e in battle.drain_events())


def test_plan_and_apply_auto_resolve():
    battle = make_battle()
    config = battle.plan_auto_resolve(time_step_ms=50)
    assert (config.attacker_type, config.defender_type) == (UnitKind.WARRIOR, UnitKind.DWARF)
    assert (config.attacker_count, config.defender_count) == (20, 20)
    assert battle.phase == "deploy"

    assert battle.apply_auto_resolve(config, simulate_battle(config)) is True
    assert battle.phase == "battle"
    assert battle.winner == "defender"


def test_stale_prediction_is_discarded():
    battle = make_battle()
    config = battle.plan_auto_resolve()
    result = simulate_battle(config)
    battle.place_pack((800, 200), "defender", UnitKind.DWARF)
    before = pack_state(battle)

    assert battle.apply_auto_resolve(config, result) is False
    assert pack_state(battle) == before
    assert battle.phase == "deploy"
    assert not any(e.kind == "AutoResolved" for e in battle.drain_events())
