"""Tests for the predator behavior state machine system."""

import random

import pytest

from lakesim.config.simulation_config import SimulationConfig
from lakesim.config.species import SizeClass
from lakesim.entities.agent import ActionKind, TargetRef
from lakesim.entities.school import SoloPreyGroup
from lakesim.events.domain_events import AgentStateChanged
from lakesim.math_utils import Vector2
from lakesim.simulation.context import Disturbance
from lakesim.simulation.inputs import TickInput
from lakesim.state_machine import BehaviorState
from lakesim.systems.behavior import BehaviorStateMachine


def _step(lake, system, tick, inputs=None, **kwargs):
    lake.tick = tick
    ctx = lake.context(inputs or TickInput(), **kwargs)
    result = system.update(ctx)
    return ctx, result


@pytest.fixture
def behavior(lake):
    return BehaviorStateMachine(lake.config)


class TestAcquisition:
    def test_hungry_predator_hunts_lure_in_range(self, lake, behavior):
        trout = lake.add("lake_trout", 300, 300, hunger=60)
        _step(lake, behavior, 1, TickInput(player_position=Vector2(400, 300)))

        assert trout.state is BehaviorState.HUNTING
        assert trout.target.is_lure
        assert trout.has_scheduled(ActionKind.GIVE_UP_HUNT)
        changes = lake.events.of_type(AgentStateChanged)
        assert [(c.old_state, c.new_state) for c in changes] == [("idle", "hunting")]

    def test_sated_predator_stays_idle(self, lake, behavior):
        trout = lake.add("lake_trout", 300, 300, hunger=10)
        _step(lake, behavior, 1, TickInput(player_position=Vector2(400, 300)))
        assert trout.state is BehaviorState.IDLE

    def test_frenzy_overrides_hunger_threshold(self, lake, behavior):
        trout = lake.add("lake_trout", 300, 300, hunger=10)
        trout.frenzy = True
        _step(lake, behavior, 1, TickInput(player_position=Vector2(400, 300)))
        assert trout.state is BehaviorState.HUNTING

    def test_lure_ignored_when_contest_busy(self, lake, behavior):
        trout = lake.add("lake_trout", 300, 300, hunger=60)
        _step(lake, behavior, 1, TickInput(player_position=Vector2(400, 300)), lure_available=False)
        assert trout.state is BehaviorState.IDLE

    def test_out_of_range_lure_ignored(self, lake, behavior):
        trout = lake.add("lake_trout", 300, 300, hunger=60)
        _step(lake, behavior, 1, TickInput(player_position=Vector2(900, 300)))
        assert trout.state is BehaviorState.IDLE

    def test_equidistant_tie_goes_to_heading(self, lake, behavior):
        trout = lake.add("lake_trout", 300, 300, hunger=60)
        behind = lake.add("alewife", 200, 300)
        ahead = lake.add("alewife", 400, 300)
        trout.velocity = Vector2(1.0, 0.0)

        _step(lake, behavior, 1)

        assert trout.state is BehaviorState.HUNTING
        assert trout.target == TargetRef.group(SoloPreyGroup.id_for(ahead.agent_id))
        assert behind.agent_id < ahead.agent_id

    def test_predators_ignore_prey_two_tiers_down(self, lake, behavior):
        trout = lake.add("lake_trout", 300, 300, hunger=60)
        lake.add("zooplankton", 350, 300)
        _step(lake, behavior, 1)
        assert trout.state is BehaviorState.IDLE

    def test_frenzy_widens_detection(self, lake, behavior):
        trout = lake.add("lake_trout", 300, 300)
        base = behavior.detection_radius(trout)
        trout.frenzy = True
        assert behavior.detection_radius(trout) == pytest.approx(base * lake.config.behavior.frenzy_detection_multiplier)


class TestPursuit:
    def test_lure_strike_sequence_queues_strike_request(self, make_lake, bold_config):
        lake = make_lake(bold_config)
        behavior = BehaviorStateMachine(lake.config)
        trout = lake.add("lake_trout", 300, 300, hunger=60)
        lure = TickInput(player_position=Vector2(320, 300))

        _step(lake, behavior, 1, lure)
        assert trout.state is BehaviorState.HUNTING
        _step(lake, behavior, 2, lure)
        assert trout.state is BehaviorState.CHASING
        ctx, _ = _step(lake, behavior, 3, lure)

        assert trout.state is BehaviorState.STRIKING
        assert [r.agent_id for r in ctx.strike_requests] == [trout.agent_id]
        assert trout.decision_cooldown == lake.config.behavior.decision_cooldown_ticks

    def test_hunt_grace_expires_back_to_idle(self, lake, behavior):
        trout = lake.add("lake_trout", 300, 300, hunger=60)
        far_lure = TickInput(player_position=Vector2(500, 300))
        _step(lake, behavior, 1, far_lure)
        assert trout.state is BehaviorState.HUNTING

        # Keep the lure just ahead so the hunt never confirms
        grace = lake.config.behavior.hunt_grace_ticks
        for tick in range(2, grace + 2):
            ahead = TickInput(player_position=trout.position + Vector2(200, 0))
            _step(lake, behavior, tick, ahead)
        assert trout.state is BehaviorState.IDLE
        assert trout.target is None


    def test_timid_fish_balks_and_keeps_circling(self, lake, behavior):
        lake.rng = random.Random(42)  # First roll is 0.639
        trout = lake.add("lake_trout", 300, 300, hunger=60)
        trout.aggressiveness = 0.4
        lure = TickInput(player_position=Vector2(320, 300))

        _step(lake, behavior, 1, lure)
        _step(lake, behavior, 2, lure)
        assert trout.state is BehaviorState.CHASING
        ctx, _ = _step(lake, behavior, 3, lure)

        assert trout.state is BehaviorState.CHASING
        assert ctx.strike_requests == []
        assert trout.decision_cooldown == lake.config.behavior.strike_hesitation_ticks
        assert behavior.get_debug_info()["lure_balks"] == 1

    def test_balking_fish_strikes_after_hesitating(self, make_lake):
        config = SimulationConfig().with_overrides(behavior={"lure_strike_chance": 0.5})
        lake = make_lake(config)
        lake.rng = random.Random(42)  # 0.639 balks, 0.025 commits
        behavior = BehaviorStateMachine(config)
        trout = lake.add("lake_trout", 300, 300, hunger=60)
        lure = TickInput(player_position=Vector2(320, 300))

        for tick in range(1, 4):
            _step(lake, behavior, tick, lure)
        assert trout.state is BehaviorState.CHASING

        hesitation = config.behavior.strike_hesitation_ticks
        requests = []
        for tick in range(4, 4 + hesitation + 1):
            ctx, _ = _step(lake, behavior, tick, lure)
            requests.extend(ctx.strike_requests)
        assert trout.state is BehaviorState.STRIKING
        assert [r.tick for r in requests] == [3 + hesitation]


class TestLureInterest:
    def test_strike_chance_scales_with_aggressiveness_and_excitement(self, lake, behavior):
        cfg = lake.config.behavior
        trout = lake.add("lake_trout", 300, 300, hunger=50)
        trout.aggressiveness = 0.5
        calm = behavior.lure_strike_chance(trout)
        assert calm == pytest.approx(cfg.lure_strike_chance * 0.5)

        trout.frenzy = True
        assert behavior.lure_strike_chance(trout) == pytest.approx(calm + cfg.frenzy_strike_bonus)
        trout.hunger = lake.config.food_chain.critical_hunger + 1
        assert behavior.lure_strike_chance(trout) == pytest.approx(
            calm + cfg.frenzy_strike_bonus + cfg.desperate_strike_bonus
        )

        trout.aggressiveness = 1.0
        assert behavior.lure_strike_chance(trout) == 1.0

    def test_lure_far_from_preferred_depth_is_ignored(self, lake, behavior):
        trout = lake.add("lake_trout", 300, 300, hunger=60)
        trout.aggressiveness = 0.6
        trout.preferred_depth = 500.0
        lure = Vector2(400, 300)

        assert behavior.lure_interest(trout, lure) == pytest.approx(0.3)
        _step(lake, behavior, 1, TickInput(player_position=lure))
        assert trout.state is BehaviorState.IDLE

    def test_lure_at_preferred_depth_is_taken(self, lake, behavior):
        trout = lake.add("lake_trout", 300, 300, hunger=60)
        trout.aggressiveness = 0.6
        trout.preferred_depth = 320.0
        _step(lake, behavior, 1, TickInput(player_position=Vector2(400, 300)))
        assert trout.state is BehaviorState.HUNTING
        assert trout.target.is_lure

    def test_desperate_fish_takes_any_lure(self, lake, behavior):
        trout = lake.add("lake_trout", 300, 300, hunger=lake.config.food_chain.critical_hunger + 5)
        trout.aggressiveness = 0.1
        trout.preferred_depth = 580.0
        _step(lake, behavior, 1, TickInput(player_position=Vector2(400, 300)))
        assert trout.target is not None and trout.target.is_lure


class TestDiet:
    def test_pike_hunts_a_small_perch(self, lake, behavior):
        pike = lake.add("northern_pike", 300, 150, size_class=SizeClass.LARGE, hunger=60)
        perch = lake.add("yellow_perch", 380, 150, size_class=SizeClass.SMALL)
        assert perch.weight <= pike.weight * lake.config.food_chain.same_tier_max_weight_ratio

        _step(lake, behavior, 1)

        assert pike.state is BehaviorState.HUNTING
        assert pike.target == TargetRef.group(SoloPreyGroup.id_for(perch.agent_id))

    def test_predator_ignores_same_tier_fish_of_its_own_size(self, lake, behavior):
        pike = lake.add("northern_pike", 300, 150, size_class=SizeClass.TINY, hunger=60)
        lake.add("yellow_perch", 380, 150, weight=pike.weight)
        _step(lake, behavior, 1)
        assert pike.state is BehaviorState.IDLE

    def test_perch_leaves_crayfish_alone(self, lake, behavior):
        perch = lake.add("yellow_perch", 300, 380, hunger=60)
        lake.add("crayfish", 360, 390)
        _step(lake, behavior, 1)
        assert perch.state is BehaviorState.IDLE

    def test_trout_hunts_crayfish(self, lake, behavior):
        trout = lake.add("lake_trout", 300, 560, hunger=60)
        crayfish = lake.add("crayfish", 380, 570)
        _step(lake, behavior, 1)
        assert trout.target == TargetRef.group(SoloPreyGroup.id_for(crayfish.agent_id))

class TestStaleTargets:
    def test_hunted_prey_vanishing_returns_to_idle(self, lake, behavior):
        trout = lake.add("lake_trout", 300, 300, hunger=60)
        prey = lake.add("alewife", 400, 300)
        _step(lake, behavior, 1)
        assert trout.state is BehaviorState.HUNTING

        prey.mark_removed("consumed")
        trout.decision_cooldown = 5
        _step(lake, behavior, 2)

        assert trout.state is BehaviorState.IDLE
        assert trout.target is None
        assert trout.decision_cooldown == 0
        assert not trout.has_scheduled(ActionKind.GIVE_UP_HUNT)

    def test_striking_with_vanished_target_flees(self, lake, behavior):
        trout = lake.add("lake_trout", 300, 300, hunger=60)
        trout.machine.force_state(BehaviorState.STRIKING, frame=1)
        trout.target = TargetRef.group("school_404")
        _step(lake, behavior, 2)
        assert trout.state is BehaviorState.FLEEING
        assert trout.target is None


class TestThreats:
    def test_disturbance_sends_predator_fleeing_then_calm(self, lake, behavior):
        trout = lake.add("lake_trout", 300, 300, hunger=10)
        _step(lake, behavior, 1, disturbances=[Disturbance(Vector2(310, 300), 150)])
        assert trout.state is BehaviorState.FLEEING
        assert trout.velocity.x < 0

        flee = lake.config.behavior.flee_duration_ticks
        for tick in range(2, flee + 1):
            _step(lake, behavior, tick)
            assert trout.state is BehaviorState.FLEEING
        _step(lake, behavior, flee + 1)
        assert trout.state is BehaviorState.IDLE

    def test_rushing_larger_predator_scares_smaller_one(self, lake, behavior):
        small = lake.add("lake_trout", 300, 300, size_class=SizeClass.SMALL)
        big = lake.add("lake_trout", 340, 300, size_class=SizeClass.TROPHY)
        big.machine.force_state(BehaviorState.CHASING, frame=0)
        _step(lake, behavior, 1)
        assert small.state is BehaviorState.FLEEING

    def test_low_health_flees_once(self, lake, behavior):
        trout = lake.add("lake_trout", 300, 300, hunger=10)
        trout.health = 10
        _step(lake, behavior, 1)
        assert trout.state is BehaviorState.FLEEING
        assert trout.low_health_fled

        flee = lake.config.behavior.flee_duration_ticks
        for tick in range(2, flee + 3):
            _step(lake, behavior, tick)
        assert trout.state is BehaviorState.IDLE


class TestIsolation:
    def test_held_agent_is_not_touched(self, lake, behavior):
        trout = lake.add("lake_trout", 300, 300, hunger=60)
        trout.frozen = True
        before = trout.position.copy()
        _step(lake, behavior, 1, TickInput(player_position=Vector2(320, 300)))
        assert trout.position == before
        assert trout.state is BehaviorState.IDLE

    def test_fault_in_one_agent_is_isolated(self, lake, behavior, monkeypatch):
        broken = lake.add("lake_trout", 300, 300, hunger=60)
        healthy = lake.add("lake_trout", 300, 400, hunger=60)
        broken.machine.force_state(BehaviorState.HUNTING, frame=0)
        broken.target = TargetRef.lure()
        original = behavior._hunting

        def flaky(ctx, agent):
            if agent is broken:
                raise RuntimeError("boom")
            return original(ctx, agent)

        monkeypatch.setattr(behavior, "_hunting", flaky)
        _, result = _step(lake, behavior, 1, TickInput(player_position=Vector2(400, 400)))

        assert result.faults == 1
        assert broken.state is BehaviorState.IDLE
        assert broken.target is None
        assert healthy.state is BehaviorState.HUNTING
