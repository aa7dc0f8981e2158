"""Integration tests for the SimulationEngine tick loop and its surface."""

import pytest

from lakesim.config.simulation_config import SimulationConfig
from lakesim.config.species import SizeClass, get_species
from lakesim.events.domain_events import (
    AgentRemoved,
    EscapeReason,
    FightResolved,
    Hookset,
    SchoolFormed,
    Strike,
    event_to_dict,
)
from lakesim.exceptions import ConfigurationError
from lakesim.math_utils import Vector2
from lakesim.simulation.engine import SimulationEngine
from lakesim.simulation.inputs import TickInput
from lakesim.state_machine import CaptureState
from lakesim.update_phases import PHASE_ORDER, TickPhase


def _populate(engine):
    engine.spawn_school("alewife", 12, Vector2(500, 300), size_class="small")
    engine.spawn_school("rainbow_smelt", 8, Vector2(800, 250), size_class="small")
    for i, x in enumerate((350, 600, 900)):
        engine.spawn_agent("lake_trout", SizeClass.LARGE, Vector2(x, 320 + i * 10))
    for i in range(20):
        engine.spawn_agent("zooplankton", "tiny", Vector2(100 + i * 50, 200))


class TestSpawning:
    def test_spawn_agent_returns_id(self, engine):
        result = engine.spawn_agent("lake_trout", "medium", Vector2(600, 300), hunger=30)
        assert result.is_ok()
        snapshot = engine.get_agent_snapshot(result.unwrap())
        assert snapshot.species == "lake_trout"
        assert snapshot.size_class == "medium"
        assert snapshot.hunger == 30
        assert snapshot.state == "idle"

    def test_predators_get_a_personality(self, engine):
        low, high = engine.config.behavior.aggressiveness_range
        depth_low, depth_high = get_species("lake_trout").depth_range
        trout_ids = [engine.spawn_agent("lake_trout", "medium", Vector2(100 * i, 300)).unwrap() for i in range(1, 9)]
        trout = [engine.registry.get(i) for i in trout_ids]

        assert all(low <= t.aggressiveness <= high for t in trout)
        assert all(depth_low <= t.preferred_depth <= depth_high for t in trout)
        assert len({t.aggressiveness for t in trout}) > 1
        assert engine.get_agent_snapshot(trout_ids[0]).aggressiveness == trout[0].aggressiveness

        alewife = engine.registry.get(engine.spawn_agent("alewife", "small", Vector2(300, 200)).unwrap())
        assert alewife.preferred_depth is None

    def test_spawn_depth_is_clamped(self, engine):
        agent_id = engine.spawn_agent("lake_trout", "medium", Vector2(600, 5000)).unwrap()
        assert engine.get_agent_snapshot(agent_id).position[1] == engine.bounds.floor_depth

    @pytest.mark.parametrize(
        "species,size",
        [("kraken", "medium"), ("lake_trout", "enormous")],
    )
    def test_spawn_agent_rejects_unknown_names(self, engine, species, size):
        result = engine.spawn_agent(species, size, Vector2(600, 300))
        assert result.is_err()
        assert len(engine.registry) == 0

    def test_spawn_agent_respects_capacity(self):
        engine = SimulationEngine(SimulationConfig().with_overrides(capacity={"max_agents": 2}), seed=1)
        assert engine.spawn_agent("alewife", "small", Vector2(100, 100)).is_ok()
        assert engine.spawn_agent("alewife", "small", Vector2(120, 100)).is_ok()
        result = engine.spawn_agent("alewife", "small", Vector2(140, 100))
        assert result.is_err()
        assert "capacity" in result.error.lower()

    def test_spawn_refused_while_registry_locked(self, engine):
        engine.registry.lock_mutations()
        try:
            assert engine.spawn_agent("alewife", "small", Vector2(100, 100)).is_err()
            assert engine.spawn_school("alewife", 5, Vector2(100, 100)).is_err()
        finally:
            engine.registry.unlock_mutations()

    def test_spawn_school_forms_one_school(self, engine):
        result = engine.spawn_school("alewife", 10, Vector2(500, 300))
        assert result.is_ok()
        school_id = result.unwrap()
        snapshot = engine.get_school_snapshot(school_id)
        assert snapshot.member_count == 10
        assert snapshot.species == "alewife"
        assert len(engine.registry) == 10
        formed = [e for e in engine.drain_events() if isinstance(e, SchoolFormed)]
        assert [e.school_id for e in formed] == [school_id]

    @pytest.mark.parametrize(
        "species,count",
        [
            ("slimy_sculpin", 5),
            ("crayfish", 5),
            ("lake_trout", 5),
            ("alewife", 0),
            ("alewife", 101),
            ("kraken", 5),
        ],
    )
    def test_spawn_school_rejections_spawn_nothing(self, engine, species, count):
        result = engine.spawn_school(species, count, Vector2(500, 300))
        assert result.is_err()
        assert len(engine.registry) == 0
        assert engine.schools == {}

    def test_spawn_school_needs_room_for_every_member(self):
        engine = SimulationEngine(SimulationConfig().with_overrides(capacity={"max_agents": 5}), seed=1)
        assert engine.spawn_school("alewife", 6, Vector2(500, 300)).is_err()
        assert len(engine.registry) == 0


class TestTickLoop:
    def test_phases_run_in_declared_order(self, engine):
        report = engine.step()
        assert list(report.results) == list(PHASE_ORDER)
        assert [s.phase for s in engine.get_systems()] == list(PHASE_ORDER)
        assert report.tick == 1 == engine.tick

    def test_registry_unlocked_between_ticks(self, engine):
        _populate(engine)
        engine.run(5)
        assert not engine.registry.is_locked

    def test_run_returns_one_report_per_tick(self, engine):
        reports = engine.run(7)
        assert [r.tick for r in reports] == list(range(1, 8))
        assert engine.last_report is reports[-1]

    def test_same_seed_same_event_stream(self):
        streams = []
        for _ in range(2):
            engine = SimulationEngine(seed=1234)
            _populate(engine)
            lure = TickInput(player_position=Vector2(620, 330), reel_input=0.4)
            engine.run(240, lure)
            streams.append([event_to_dict(e) for e in engine.drain_events()])
        assert streams[0] == streams[1]
        assert len(streams[0]) > 0

    def test_faulting_system_does_not_stop_the_tick(self, engine, monkeypatch):
        _populate(engine)
        food_chain = engine.get_system("FoodChainResolver")

        def broken(ctx):
            raise RuntimeError("boom")

        monkeypatch.setattr(food_chain, "_do_update", broken)
        report = engine.step()

        assert report.faults == 1
        assert report.results[TickPhase.FOOD_CHAIN].details["error"] == "boom"
        assert report.results[TickPhase.CLEANUP].faults == 0
        assert not engine.registry.is_locked
        assert engine.step().tick == 2

    def test_debug_info_reports_each_phase(self, engine):
        _populate(engine)
        engine.step()
        info = engine.get_debug_info()
        assert info["tick"] == 1
        assert set(info["last_tick"]) == {phase.name for phase in PHASE_ORDER}
        assert set(info["systems"]) == {s.name for s in engine.get_systems()}


class TestExternalSignals:
    def test_removed_agent_is_gone_now_and_purged_at_cleanup(self, engine):
        agent_id = engine.spawn_agent("lake_trout", "medium", Vector2(600, 300)).unwrap()
        assert engine.remove_agent(agent_id)
        assert engine.get_agent_snapshot(agent_id) is None
        assert agent_id in engine.registry

        engine.step()

        assert agent_id not in engine.registry
        removed = [e for e in engine.drain_events() if isinstance(e, AgentRemoved)]
        assert [(e.agent_id, e.reason) for e in removed] == [(agent_id, "despawned")]

    def test_remove_unknown_agent_is_false(self, engine):
        assert engine.remove_agent(999) is False

    def test_disturbance_scares_nearby_fish(self, engine):
        near = engine.spawn_agent("lake_trout", "medium", Vector2(600, 300), hunger=10).unwrap()
        far = engine.spawn_agent("lake_trout", "medium", Vector2(1100, 300), hunger=10).unwrap()
        engine.disturb(Vector2(610, 300), radius=100)
        engine.step()
        assert engine.get_agent_snapshot(near).state == "fleeing"
        assert engine.get_agent_snapshot(far).state == "idle"

    def test_force_end_with_no_contest(self, engine):
        assert engine.force_end_fight() is False


class TestLureContest:
    @pytest.fixture
    def engine(self, bold_config):
        return SimulationEngine(bold_config, seed=42)

    def _hook_a_trout(self, engine):
        trout = engine.spawn_agent("lake_trout", "medium", Vector2(600, 300), hunger=60).unwrap()
        lure = TickInput(player_position=Vector2(620, 300))
        for _ in range(30):
            engine.step(lure)
            if any(isinstance(e, Strike) for e in engine.drain_events()):
                break
        else:
            pytest.fail("trout never struck the lure")
        assert engine.capture.state is CaptureState.HOOKSET_WINDOW
        engine.step(TickInput(player_position=Vector2(620, 300), hookset_attempt=True))
        return trout

    def test_strike_then_hookset_starts_fight(self, engine):
        trout = self._hook_a_trout(engine)
        assert any(isinstance(e, Hookset) for e in engine.drain_events())
        fight = engine.fight
        assert fight is not None
        assert fight.agent_id == trout
        assert engine.get_agent_snapshot(trout).held

    def test_held_fish_stays_put_in_its_state(self, bold_config):
        engine = SimulationEngine(bold_config, seed=42, line_config={"test_strength_lb": 80})
        trout = self._hook_a_trout(engine)
        engine.run(20, TickInput(player_position=Vector2(620, 300), reel_input=0.3))
        assert trout in engine.registry
        assert engine.get_agent_snapshot(trout).state == "striking"

    def test_force_end_releases_the_fish(self, engine):
        trout = self._hook_a_trout(engine)
        assert engine.force_end_fight()
        resolved = [e for e in engine.drain_events() if isinstance(e, FightResolved)]
        assert [e.reason for e in resolved] == [EscapeReason.FORCE_END]
        assert engine.fight is None
        snapshot = engine.get_agent_snapshot(trout)
        assert snapshot.state == "fleeing"
        assert not snapshot.held

    def test_removing_hooked_fish_ends_fight(self, engine):
        trout = self._hook_a_trout(engine)
        engine.drain_events()
        engine.remove_agent(trout)
        engine.step(TickInput(player_position=Vector2(620, 300), reel_input=0.5))
        resolved = [e for e in engine.drain_events() if isinstance(e, FightResolved)]
        assert [e.reason for e in resolved] == [EscapeReason.AGENT_REMOVED]
        assert trout not in engine.registry


class TestOutputs:
    def test_visible_agents_excludes_offscreen(self, engine):
        visible = engine.spawn_agent("lake_trout", "medium", Vector2(600, 300)).unwrap()
        engine.spawn_agent("lake_trout", "medium", Vector2(-200, 300))
        assert [s.agent_id for s in engine.list_visible_agents()] == [visible]

    def test_unknown_school_snapshot_is_none(self, engine):
        assert engine.get_school_snapshot("school_404") is None

    def test_drain_events_empties_queue(self, engine):
        engine.spawn_school("alewife", 5, Vector2(500, 300))
        assert engine.drain_events()
        assert engine.drain_events() == []

    def test_no_capture_records_without_a_catch(self, engine):
        engine.run(3)
        assert engine.drain_capture_records() == []


class TestTackle:
    def test_mapping_tackle_is_validated(self):
        engine = SimulationEngine(
            seed=1,
            line_config={"test_strength_lb": 200, "material": "monofilament"},
            reel_config={"reel_type": "spincaster", "drag_setting": 0.7},
        )
        assert engine.line_config.test_strength_lb == 80
        assert engine.line_config.sensitivity == pytest.approx(0.4)
        assert engine.reel_config.max_drag_lb == 18.0

    def test_unknown_line_material_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            SimulationEngine(seed=1, line_config={"material": "velvet"})

    def test_invalid_simulation_config_is_rejected(self):
        with pytest.raises(ConfigurationError):
            SimulationEngine(SimulationConfig().with_overrides(capacity={"max_agents": 0}))
