"""Tests for the end-of-tick cleanup phase."""

import pytest

from lakesim.config.species import ALEWIFE
from lakesim.events.domain_events import AgentRemoved, SchoolDisbanded
from lakesim.systems.cleanup import CleanupSystem
from lakesim.systems.schooling import SchoolCoordinator


@pytest.fixture
def coordinator(lake):
    return SchoolCoordinator(lake.config)


@pytest.fixture
def cleanup(lake, coordinator):
    return CleanupSystem(lake.config, coordinator)


def test_queued_removal_is_applied(lake, cleanup):
    trout = lake.add("lake_trout", 300, 300)
    lake.removals.request_remove(trout.agent_id, reason="despawned")

    result = cleanup.update(lake.context())

    assert trout.agent_id not in lake.registry
    assert result.agents_removed == 1
    removed = lake.events.of_type(AgentRemoved)
    assert [(e.agent_id, e.reason) for e in removed] == [(trout.agent_id, "despawned")]
    assert lake.removals.pending_removal_count() == 0


def test_consumed_and_caught_agents_leave_the_registry(lake, cleanup):
    prey = lake.add("alewife", 300, 300)
    trout = lake.add("lake_trout", 350, 300)
    survivor = lake.add("lake_trout", 400, 300)
    prey.mark_removed("consumed")
    trout.mark_removed("caught")

    cleanup.update(lake.context())

    assert len(lake.registry) == 1
    assert survivor.agent_id in lake.registry
    reasons = sorted(e.reason for e in lake.events.of_type(AgentRemoved))
    assert reasons == ["caught", "consumed"]


def test_second_run_in_same_tick_is_a_noop(lake, cleanup):
    lake.add("alewife", 300, 300).mark_removed("consumed")
    cleanup.update(lake.context())
    events_after_first = lake.events.emitted_total

    result = cleanup.update(lake.context())

    assert result.agents_removed == 0
    assert lake.events.emitted_total == events_after_first


class TestExpiry:
    def test_agent_beyond_buffer_expires(self, lake, cleanup):
        buffer = lake.config.world.buffer_zone
        gone = lake.add("lake_trout", -buffer - 10, 300)
        offscreen = lake.add("lake_trout", -buffer + 10, 300)
        far_right = lake.add("lake_trout", lake.config.world.width + buffer + 1, 300)

        cleanup.update(lake.context())

        assert gone.agent_id not in lake.registry
        assert far_right.agent_id not in lake.registry
        assert offscreen.agent_id in lake.registry
        assert {e.reason for e in lake.events.of_type(AgentRemoved)} == {"expired"}

    def test_held_agent_never_expires(self, lake, cleanup):
        hooked = lake.add("lake_trout", -lake.config.world.buffer_zone - 50, 300)
        hooked.frozen = True
        cleanup.update(lake.context())
        assert hooked.agent_id in lake.registry
        assert hooked.is_alive


class TestSchools:
    def test_school_emptied_by_removals_is_disbanded(self, lake, cleanup, coordinator):
        fish = [lake.add("alewife", 300 + i * 10.0, 300) for i in range(3)]
        school = coordinator.form_school(lake.schools, ALEWIFE, fish, lake.events, 0)
        for agent in fish:
            agent.mark_removed("consumed")

        result = cleanup.update(lake.context())

        assert result.agents_removed == 3
        assert lake.schools == {}
        disbanded = lake.events.of_type(SchoolDisbanded)
        assert [(e.school_id, e.reason) for e in disbanded] == [(school.school_id, "empty")]

    def test_survivors_keep_their_school(self, lake, cleanup, coordinator):
        fish = [lake.add("alewife", 300 + i * 10.0, 300) for i in range(4)]
        school = coordinator.form_school(lake.schools, ALEWIFE, fish, lake.events, 0)
        fish[0].mark_removed("consumed")

        cleanup.update(lake.context())

        assert school.members == [a.agent_id for a in fish[1:]]
        assert all(a.school_id == school.school_id for a in fish[1:])

    def test_cached_targets_on_removed_members_are_pruned(self, lake, cleanup, coordinator):
        fish = [lake.add("alewife", 300 + i * 10.0, 300) for i in range(3)]
        school = coordinator.form_school(lake.schools, ALEWIFE, fish, lake.events, 0)
        trout = lake.add("lake_trout", 250, 300)
        target_id, _ = school.get_closest_baitfish(lake.registry, trout.position, trout.agent_id)
        lake.registry.get(target_id).mark_removed("consumed")

        cleanup.update(lake.context())

        assert school.candidate_count == 0
        assert school.cached_target(lake.registry, trout.agent_id) is None
