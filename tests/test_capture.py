"""Tests for the hookset window and the line-tension fight."""

import random

import pytest

from lakesim.config.tackle import LineConfig, LineMaterial, ReelConfig
from lakesim.events.domain_events import (
    EscapeReason,
    FightOutcome,
    FightResolved,
    FightUpdate,
    Hookset,
    HooksetMissed,
    Strike,
    TensionSpike,
)
from lakesim.math_utils import Vector2
from lakesim.simulation.context import StrikeRequest
from lakesim.simulation.inputs import TickInput
from lakesim.state_machine import BehaviorState, CaptureState
from lakesim.systems.capture import CaptureEngine, StruggleMode

LURE = Vector2(320, 300)


class AlwaysLowRandom(random.Random):
    """Every probability roll succeeds."""

    def random(self):
        return 0.0


class Contest:
    """Drives a CaptureEngine tick by tick against a bare lake."""

    def __init__(self, lake, *, line=None, reel=None):
        self.lake = lake
        self.capture = CaptureEngine(lake.config)
        self.line = line or LineConfig()
        self.reel = reel or ReelConfig()
        self.tick = 0

    def striker(self, species="lake_trout", weight=3.0, x=300.0):
        agent = self.lake.add(species, x, 300, weight=weight, hunger=60)
        agent.machine.force_state(BehaviorState.STRIKING, frame=self.tick)
        return agent

    def step(self, *, reel=0.0, hookset=False, strikes=()):
        self.tick += 1
        self.lake.tick = self.tick
        ctx = self.lake.context(
            TickInput(player_position=LURE, reel_input=reel, hookset_attempt=hookset),
            line_config=self.line,
            reel_config=self.reel,
            held_agent_id=self.capture.held_agent_id,
            lure_available=self.capture.is_idle,
        )
        ctx.strike_requests.extend(StrikeRequest(agent_id=a.agent_id, tick=self.tick) for a in strikes)
        self.capture.update(ctx)
        return ctx

    def hook(self, agent):
        self.step(strikes=[agent])
        self.step(hookset=True)
        assert self.capture.state is CaptureState.FIGHTING

    def resolved(self):
        return self.lake.events.of_type(FightResolved)

    def fight_until_resolved(self, reel, max_ticks):
        for i in range(max_ticks):
            self.step(reel=reel(i) if callable(reel) else reel)
            if self.resolved():
                return i + 1
        return None


class TestHooksetWindow:
    def test_strike_opens_window_and_freezes_agent(self, lake):
        contest = Contest(lake)
        trout = contest.striker()
        contest.step(strikes=[trout])

        assert contest.capture.state is CaptureState.HOOKSET_WINDOW
        assert contest.capture.held_agent_id == trout.agent_id
        assert trout.frozen
        strikes = lake.events.of_type(Strike)
        assert len(strikes) == 1 and strikes[0].felt

    def test_hookset_in_window_starts_fight(self, lake):
        contest = Contest(lake)
        trout = contest.striker()
        contest.hook(trout)

        hooksets = lake.events.of_type(Hookset)
        assert len(hooksets) == 1
        assert hooksets[0].quality in ("barely", "bad", "good", "great")
        fight = contest.capture.fight_view()
        assert fight.agent_id == trout.agent_id
        assert fight.status == "in_progress"
        assert fight.drag_setting == pytest.approx(contest.reel.drag_setting)

    def test_window_expires_to_missed(self, lake):
        contest = Contest(lake)
        trout = contest.striker()
        window = lake.config.capture.hookset_window_ticks

        contest.step(strikes=[trout])
        for _ in range(window - 2):
            contest.step()
            assert contest.capture.state is CaptureState.HOOKSET_WINDOW
        contest.step()

        assert contest.capture.state is CaptureState.MISSED
        assert [e.agent_id for e in lake.events.of_type(HooksetMissed)] == [trout.agent_id]
        assert not trout.frozen
        assert trout.state is BehaviorState.FLEEING
        assert contest.capture.held_agent_id is None

        contest.step()
        assert contest.capture.state is CaptureState.IDLE

    def test_insensitive_line_can_hide_strike(self, lake):
        contest = Contest(lake, line=LineConfig(material=LineMaterial.MONOFILAMENT, sensitivity=0.0))
        contest.step(strikes=[contest.striker()])
        assert lake.events.of_type(Strike)[0].felt is False


class TestExclusivity:
    def test_second_strike_during_fight_is_ignored(self, lake):
        contest = Contest(lake)
        hooked = contest.striker()
        contest.hook(hooked)
        intruder = contest.striker(x=350)
        before = contest.capture.fight_view()

        contest.step(reel=0.3, strikes=[intruder])

        assert contest.capture.state is CaptureState.FIGHTING
        assert contest.capture.held_agent_id == hooked.agent_id
        assert not intruder.frozen
        assert intruder.state is BehaviorState.FLEEING
        assert contest.capture.fight_view().agent_id == before.agent_id

    def test_two_strikes_same_tick_first_wins(self, lake):
        contest = Contest(lake)
        first = contest.striker()
        second = contest.striker(x=340)
        contest.step(strikes=[first, second])
        assert contest.capture.held_agent_id == first.agent_id
        assert second.state is BehaviorState.FLEEING
        assert len(lake.events.of_type(Strike)) == 1

    def test_direct_strike_rejected_while_busy(self, lake):
        contest = Contest(lake)
        contest.hook(contest.striker())
        other = contest.striker(x=360)
        ctx = contest.step(reel=0.3)
        assert contest.capture.on_strike(ctx, other) is False
        assert contest.capture.state is CaptureState.FIGHTING


class TestFightOutcomes:
    def test_heavy_fish_on_light_mono_breaks_line(self, lake):
        """8 lb fish, 6 lb mono, 30% drag, full reel: snaps almost at once."""
        contest = Contest(
            lake,
            line=LineConfig(test_strength_lb=6, material=LineMaterial.MONOFILAMENT),
            reel=ReelConfig(drag_setting=0.3),
        )
        contest.hook(contest.striker(weight=8.0))

        ticks = contest.fight_until_resolved(1.0, 30)

        assert ticks is not None and ticks <= 5
        resolved = contest.resolved()[0]
        assert resolved.outcome is FightOutcome.ESCAPED
        assert resolved.reason is EscapeReason.LINE_BREAK
        assert contest.capture.state is CaptureState.ESCAPED

    def test_light_fish_on_strong_line_is_landed(self, lake):
        """2 lb fish, 15 lb line, 60% drag, steady alternating reel."""
        contest = Contest(
            lake,
            line=LineConfig(test_strength_lb=15),
            reel=ReelConfig(drag_setting=0.6),
        )
        trout = contest.striker(weight=2.0)
        contest.hook(trout)
        threshold = contest.capture.fight.break_threshold

        ticks = contest.fight_until_resolved(lambda i: 0.6 if i % 2 == 0 else 0.8, 600)

        assert ticks is not None
        resolved = contest.resolved()[0]
        assert resolved.outcome is FightOutcome.CAUGHT
        assert resolved.reason is EscapeReason.LANDED
        assert resolved.weight == pytest.approx(2.0)
        assert all(u.tension < threshold for u in lake.events.of_type(FightUpdate))
        assert trout.caught
        assert lake.removals.is_pending_removal(trout.agent_id)

        records = contest.capture.drain_capture_records()
        assert [(r.agent_id, r.species) for r in records] == [(trout.agent_id, "lake_trout")]
        assert contest.capture.drain_capture_records() == []

    def test_slack_line_loses_the_fish(self, lake):
        contest = Contest(lake, reel=ReelConfig(drag_setting=0.6))
        contest.hook(contest.striker(weight=2.0))
        ticks = contest.fight_until_resolved(0.0, 400)
        assert ticks == lake.config.capture.slack_timeout_ticks
        assert contest.resolved()[0].reason is EscapeReason.SLACK

    def test_big_fish_against_no_drag_spools_the_reel(self, lake):
        contest = Contest(lake, line=LineConfig(test_strength_lb=80), reel=ReelConfig(drag_setting=0.0))
        contest.hook(contest.striker(species="northern_pike", weight=15.0))
        ticks = contest.fight_until_resolved(0.0, 100)
        assert ticks is not None
        assert contest.resolved()[0].reason is EscapeReason.SPOOLED

    def test_thrash_can_spit_the_hook(self, lake):
        lake.rng = AlwaysLowRandom(1)
        contest = Contest(lake, reel=ReelConfig(drag_setting=0.5))
        contest.hook(contest.striker(weight=2.0))
        contest.fight_until_resolved(0.1, 800)

        resolved = contest.resolved()[0]
        assert resolved.reason is EscapeReason.HOOK_SPIT
        assert lake.events.of_type(TensionSpike)

    def test_tension_never_exceeds_ceiling(self, lake):
        contest = Contest(lake, line=LineConfig(test_strength_lb=80), reel=ReelConfig(drag_setting=0.0))
        contest.hook(contest.striker(species="northern_pike", weight=15.0))
        contest.fight_until_resolved(1.0, 200)
        ceiling = lake.config.capture.tension_ceiling
        updates = lake.events.of_type(FightUpdate)
        assert updates
        assert all(0.0 <= u.tension <= ceiling for u in updates)
        assert all(0.0 <= u.strain <= 1.0 for u in updates)

    def test_line_holds_at_exactly_its_threshold(self, make_lake):
        def first_tick(threshold=None):
            lake = make_lake()
            lake.rng = random.Random(11)
            contest = Contest(lake, line=LineConfig(test_strength_lb=20), reel=ReelConfig(drag_setting=0.3))
            contest.hook(contest.striker(weight=4.0))
            if threshold is not None:
                contest.capture.fight.break_threshold = threshold
            contest.step(reel=1.0)
            return contest, lake.events.of_type(FightUpdate)[-1].tension

        _, tension = first_tick()
        assert tension < make_lake().config.capture.tension_ceiling

        at_threshold, _ = first_tick(threshold=tension)
        assert at_threshold.resolved() == []
        assert at_threshold.capture.state is CaptureState.FIGHTING

        below, _ = first_tick(threshold=tension - 1e-6)
        assert below.resolved()[0].reason is EscapeReason.LINE_BREAK

    def test_threshold_at_ceiling_still_breaks(self, lake):
        contest = Contest(lake, line=LineConfig(test_strength_lb=80), reel=ReelConfig(drag_setting=0.0))
        contest.hook(contest.striker(species="northern_pike", weight=15.0))
        ceiling = lake.config.capture.tension_ceiling
        assert contest.capture.fight.break_threshold == pytest.approx(ceiling)

        assert contest.fight_until_resolved(1.0, 50) is not None
        assert contest.resolved()[0].reason is EscapeReason.LINE_BREAK
        assert lake.events.of_type(FightUpdate)[-1].tension == pytest.approx(ceiling)

    def test_fight_updates_every_tick(self, lake):
        contest = Contest(lake, line=LineConfig(test_strength_lb=20))
        contest.hook(contest.striker(weight=2.0))
        for _ in range(10):
            contest.step(reel=0.5)
        updates = lake.events.of_type(FightUpdate)
        assert [u.elapsed for u in updates] == list(range(1, 11))
        assert updates[0].mode == StruggleMode.INITIAL_RUN.value


class TestCancellation:
    def test_removed_fish_escapes_immediately(self, lake):
        contest = Contest(lake)
        trout = contest.striker(weight=2.0)
        contest.hook(trout)
        trout.mark_removed("despawned")

        contest.step(reel=0.5)

        resolved = contest.resolved()
        assert len(resolved) == 1
        assert resolved[0].reason is EscapeReason.AGENT_REMOVED
        assert contest.capture.held_agent_id is None
        assert contest.capture.fight is None

    def test_force_end_during_fight(self, lake):
        contest = Contest(lake)
        trout = contest.striker(weight=2.0)
        contest.hook(trout)
        ctx = contest.step(reel=0.5)

        assert contest.capture.force_end(ctx)

        assert contest.resolved()[0].reason is EscapeReason.FORCE_END
        assert contest.capture.state is CaptureState.ESCAPED
        assert not trout.frozen
        assert trout.state is BehaviorState.FLEEING

    def test_force_end_during_window_is_a_miss(self, lake):
        contest = Contest(lake)
        trout = contest.striker()
        ctx = contest.step(strikes=[trout])
        assert contest.capture.force_end(ctx)
        assert contest.capture.state is CaptureState.MISSED
        assert not trout.frozen

    def test_force_end_when_idle_is_noop(self, lake):
        contest = Contest(lake)
        ctx = contest.step()
        assert contest.capture.force_end(ctx) is False
        assert contest.capture.state is CaptureState.IDLE
