"""Capture engine: hookset window and line-tension fight.

Contest flow::

    IDLE -> HOOKSET_WINDOW -> HOOKED -> FIGHTING -> CAUGHT | ESCAPED
                           \\-> MISSED

Only one contest exists at a time. A strike that arrives while the contest is
busy is ignored (logged, zero change to the contest). Terminal states are
visible for the tick they happen on and reset to IDLE at the start of the next
capture phase.

Fight model, per tick (w = fish weight, r = reel input, d = drag setting):

    reel     = r * (REEL_BASE + REEL_PER_LB * w) * (2 - line stretch factor)
    struggle = STRUGGLE_PER_LB * w * mode multiplier * stamina * fight strength
    target   = (reel + struggle) * (1 - DRAG_ABSORPTION * d)
    tension += (target - tension) * SMOOTHING, clamped to [0, ceiling]

The line breaks when tension reaches the break threshold, derived from test
strength, line shock absorption and fish weight. While the hooked agent is
held, this engine is the only writer of its position.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from lakesim.config.capture import HOOKSET_QUALITY_SPIT_MULTIPLIER, MODE_MULTIPLIERS, SPIT_CHANCE_BY_SIZE
from lakesim.entities.agent import Agent
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
from lakesim.exceptions import CaptureError
from lakesim.math_utils import clamp
from lakesim.state_machine import TERMINAL_CAPTURE_STATES, CaptureState, create_capture_state_machine
from lakesim.systems.base import BaseSystem, SystemResult
from lakesim.update_phases import TickPhase, runs_in_phase

if TYPE_CHECKING:
    from lakesim.config.simulation_config import SimulationConfig
    from lakesim.simulation.context import SimulationContext

logger = logging.getLogger(__name__)


class StruggleMode(Enum):
    INITIAL_RUN = "initial_run"
    STEADY = "steady"
    THRASHING = "thrashing"
    GIVING_UP = "giving_up"


class FightStatus(Enum):
    IN_PROGRESS = "in_progress"
    CAUGHT = "caught"
    ESCAPED = "escaped"


@dataclass
class Fight:
    """The single active capture contest."""

    agent_id: int
    drag_setting: float
    break_threshold: float
    tension: float
    hookset_quality: str
    started_tick: int
    elapsed: int = 0
    status: FightStatus = FightStatus.IN_PROGRESS
    mode: StruggleMode = StruggleMode.INITIAL_RUN
    stamina: float = 1.0
    retrieved: float = 0.0
    line_out: float = 0.0
    slack_ticks: int = 0
    next_thrash_at: int = 0
    thrash_until: int = 0
    peak_tension: float = 0.0

    @property
    def strain(self) -> float:
        return clamp(self.tension / self.break_threshold, 0.0, 1.0) if self.break_threshold > 0 else 1.0


@dataclass(frozen=True)
class FightView:
    """Read-only view of the active fight for the presentation layer."""

    agent_id: int
    tension: float
    drag_setting: float
    elapsed: int
    status: str
    mode: str
    strain: float
    line_out: float
    retrieved: float
    stamina: float


@dataclass(frozen=True)
class CaptureRecord:
    """A landed fish, for the catch-history side channel."""

    agent_id: int
    species: str
    size_class: str
    weight: float
    length: float
    hookset_quality: str
    fight_ticks: int
    tick: int
    extra: Dict[str, Any] = field(default_factory=dict)


@runs_in_phase(TickPhase.CAPTURE)
class CaptureEngine(BaseSystem):
    """Owns the hookset window, the fight, and the hooked agent."""

    def __init__(self, config: "SimulationConfig") -> None:
        super().__init__(config, "CaptureEngine")
        self._machine = create_capture_state_machine()
        self._window_agent_id: Optional[int] = None
        self._window_remaining = 0
        self._window_opened_tick = 0
        self._fight: Optional[Fight] = None
        self._records: List[CaptureRecord] = []
        self._outcomes: Dict[str, int] = {}
        self._ignored_strikes = 0

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def state(self) -> CaptureState:
        return self._machine.state

    @property
    def history(self):
        return self._machine.history

    @property
    def is_idle(self) -> bool:
        """True when a new strike would be accepted."""
        return self._machine.state is CaptureState.IDLE or self._machine.state in TERMINAL_CAPTURE_STATES

    @property
    def held_agent_id(self) -> Optional[int]:
        if self._fight is not None:
            return self._fight.agent_id
        return self._window_agent_id

    @property
    def fight(self) -> Optional[Fight]:
        return self._fight

    def fight_view(self) -> Optional[FightView]:
        fight = self._fight
        if fight is None:
            return None
        return FightView(
            agent_id=fight.agent_id,
            tension=fight.tension,
            drag_setting=fight.drag_setting,
            elapsed=fight.elapsed,
            status=fight.status.value,
            mode=fight.mode.value,
            strain=fight.strain,
            line_out=fight.line_out,
            retrieved=fight.retrieved,
            stamina=fight.stamina,
        )

    def drain_capture_records(self) -> List[CaptureRecord]:
        records, self._records = self._records, []
        return records

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def _do_update(self, ctx: "SimulationContext") -> SystemResult:
        self._reset_if_terminal(ctx.tick)

        accepted = 0
        for request in ctx.strike_requests:
            agent = ctx.registry.get(request.agent_id)
            if agent is None:
                continue
            if self.on_strike(ctx, agent):
                accepted += 1
            else:
                ctx.flee(agent, "strike rejected")
        ctx.strike_requests.clear()

        if self._machine.state is CaptureState.HOOKSET_WINDOW:
            self._update_window(ctx)
        elif self._machine.state is CaptureState.FIGHTING:
            self._update_fight(ctx)

        return SystemResult(
            agents_affected=1 if self.held_agent_id is not None else 0,
            details={"state": self._machine.state.value, "strikes_accepted": accepted},
        )

    def _reset_if_terminal(self, tick: int) -> None:
        if self._machine.state in TERMINAL_CAPTURE_STATES:
            self._machine.transition(CaptureState.IDLE, frame=tick, reason="reset")

    def on_strike(self, ctx: "SimulationContext", agent: Agent) -> bool:
        """Open the hookset window for ``agent``.

        Returns False (and changes nothing) if a contest is already running or
        the agent cannot be hooked.
        """
        self._reset_if_terminal(ctx.tick)
        if self._machine.state is not CaptureState.IDLE:
            self._ignored_strikes += 1
            logger.warning(
                f"Strike by agent {agent.agent_id} ignored: contest busy ({self._machine.state.value})"
            )
            return False
        if not agent.is_alive:
            logger.warning(f"Strike by agent {agent.agent_id} ignored: agent not alive")
            return False

        self._machine.transition(CaptureState.HOOKSET_WINDOW, frame=ctx.tick, reason=f"strike by {agent.agent_id}")
        self._window_agent_id = agent.agent_id
        self._window_remaining = self._config.capture.hookset_window_ticks
        self._window_opened_tick = ctx.tick
        agent.frozen = True
        agent.velocity.update(0.0, 0.0)
        ctx.events.emit(Strike(agent_id=agent.agent_id, felt=self._felt(ctx), tick=ctx.tick))
        logger.debug(f"Hookset window opened for agent {agent.agent_id}")
        return True

    def _felt(self, ctx: "SimulationContext") -> bool:
        """Haptic decision: roll against the line's sensitivity."""
        return ctx.rng.random() < ctx.line_config.sensitivity

    # ------------------------------------------------------------------
    # Hookset window
    # ------------------------------------------------------------------

    def _update_window(self, ctx: "SimulationContext") -> None:
        agent = ctx.registry.get(self._window_agent_id)
        if agent is None or not agent.is_alive:
            self._miss(ctx, agent, "agent removed during hookset window")
            return

        if ctx.inputs.hookset_attempt:
            self._hookset(ctx, agent)
            return

        self._window_remaining -= 1
        if self._window_remaining <= 0:
            self._miss(ctx, agent, "hookset window expired")

    def _miss(self, ctx: "SimulationContext", agent: Optional[Agent], reason: str) -> None:
        agent_id = self._window_agent_id
        self._machine.transition(CaptureState.MISSED, frame=ctx.tick, reason=reason)
        self._window_agent_id = None
        ctx.events.emit(HooksetMissed(agent_id=agent_id, tick=ctx.tick))
        logger.info(f"Hookset missed on agent {agent_id}: {reason}")
        if agent is not None and agent.is_alive:
            agent.frozen = False
            ctx.flee(agent, "hookset missed", ctx.inputs.player_position)

    def grade_hookset(self, ctx: "SimulationContext", agent: Agent) -> str:
        """Grade the hookset from reaction time, fish engagement and a seeded roll."""
        window = self._config.capture.hookset_window_ticks
        timing = self._window_remaining / window
        engagement = agent.hunger / 100.0 + (0.1 if agent.frenzy else 0.0)
        score = 0.4 * timing + 0.3 * engagement + 0.3 * ctx.rng.random()
        if score < 0.3:
            return "barely"
        if score < 0.5:
            return "bad"
        if score < 0.75:
            return "good"
        return "great"

    def _hookset(self, ctx: "SimulationContext", agent: Agent) -> None:
        cfg = self._config.capture
        quality = self.grade_hookset(ctx, agent)
        self._machine.transition(CaptureState.HOOKED, frame=ctx.tick, reason=f"hookset ({quality})")
        ctx.events.emit(Hookset(agent_id=agent.agent_id, felt=self._felt(ctx), quality=quality, tick=ctx.tick))

        self._fight = Fight(
            agent_id=agent.agent_id,
            drag_setting=ctx.reel_config.drag_setting,
            break_threshold=self.break_threshold(ctx, agent),
            tension=cfg.tension_initial,
            hookset_quality=quality,
            started_tick=ctx.tick,
            line_out=cfg.initial_line_out,
        )
        self._window_agent_id = None
        self._machine.transition(CaptureState.FIGHTING, frame=ctx.tick, reason="fight on")
        logger.info(
            f"Fish on: agent {agent.agent_id} ({agent.species.name}, {agent.weight:.1f} lb), "
            f"break threshold {self._fight.break_threshold:.1f}"
        )

    # ------------------------------------------------------------------
    # Fight
    # ------------------------------------------------------------------

    def break_threshold(self, ctx: "SimulationContext", agent: Agent) -> float:
        cfg = self._config.capture
        line = ctx.line_config
        raw = (
            cfg.break_strength_per_lb_test * line.test_strength_lb * line.shock_multiplier
            - cfg.break_weight_penalty * agent.weight
        )
        return max(cfg.break_threshold_floor, min(cfg.tension_ceiling, raw))

    def _update_fight(self, ctx: "SimulationContext") -> None:
        fight = self._fight
        agent = ctx.registry.get(fight.agent_id)
        if agent is None or not agent.is_alive:
            self._resolve(ctx, None, FightOutcome.ESCAPED, EscapeReason.AGENT_REMOVED)
            return

        cfg = self._config.capture
        reel = ctx.inputs.reel_input
        drag = fight.drag_setting
        fight.elapsed += 1

        spit_roll = self._advance_mode(ctx, fight, agent)
        if spit_roll:
            self._resolve(ctx, agent, FightOutcome.ESCAPED, EscapeReason.HOOK_SPIT)
            return

        mode_mult = MODE_MULTIPLIERS[fight.mode.value]
        spiking = fight.elapsed >= cfg.spike_interval_ticks and (
            fight.elapsed % cfg.spike_interval_ticks < cfg.spike_duration_ticks
        )
        spike_factor = 1.0 + cfg.spike_magnitude if spiking else 1.0

        reel_tension = reel * (cfg.reel_tension_base + cfg.reel_tension_per_lb * agent.weight) * (
            2.0 - ctx.line_config.stretch_factor
        )
        struggle = (
            cfg.struggle_tension_per_lb
            * agent.weight
            * mode_mult
            * fight.stamina
            * agent.species.fight_strength
            * spike_factor
        )
        target = (reel_tension + struggle) * (1.0 - cfg.drag_absorption * drag)
        # The break test sees the unclamped load; the reported tension is clamped
        load = max(0.0, fight.tension + (target - fight.tension) * cfg.tension_smoothing)
        fight.tension = clamp(load, 0.0, cfg.tension_ceiling)
        fight.peak_tension = max(fight.peak_tension, fight.tension)

        if spiking and fight.elapsed % cfg.spike_interval_ticks == 0:
            ctx.events.emit(
                TensionSpike(agent_id=agent.agent_id, tension=fight.tension, felt=self._felt(ctx), tick=ctx.tick)
            )

        fight.stamina = max(
            0.0,
            fight.stamina - (cfg.stamina_base_drain + cfg.stamina_reel_drain * reel + cfg.stamina_drag_drain * drag),
        )

        retrieve = (
            reel
            * cfg.retrieve_rate
            * (ctx.reel_config.gear_ratio / cfg.reference_gear_ratio)
            * (1.0 - cfg.retrieve_drag_penalty * drag)
        )
        pull = agent.weight * mode_mult * fight.stamina * agent.species.fight_strength
        slip = max(0.0, pull - drag * ctx.reel_config.max_drag_lb) * cfg.line_slip_rate
        fight.retrieved = max(0.0, fight.retrieved + retrieve - slip)
        fight.line_out = max(0.0, fight.line_out - retrieve + slip)
        fight.slack_ticks = fight.slack_ticks + 1 if reel < cfg.slack_input_threshold else 0

        self._hold_agent(ctx, agent)
        ctx.events.emit(
            FightUpdate(
                agent_id=agent.agent_id,
                tension=fight.tension,
                drag_setting=drag,
                elapsed=fight.elapsed,
                strain=fight.strain,
                line_out=fight.line_out,
                mode=fight.mode.value,
                tick=ctx.tick,
            )
        )

        if load > fight.break_threshold:
            self._resolve(ctx, agent, FightOutcome.ESCAPED, EscapeReason.LINE_BREAK)
        elif fight.line_out >= ctx.reel_config.line_capacity_ft:
            self._resolve(ctx, agent, FightOutcome.ESCAPED, EscapeReason.SPOOLED)
        elif fight.slack_ticks >= cfg.slack_timeout_ticks:
            self._resolve(ctx, agent, FightOutcome.ESCAPED, EscapeReason.SLACK)
        elif fight.retrieved >= cfg.catch_distance:
            self._resolve(ctx, agent, FightOutcome.CAUGHT, EscapeReason.LANDED)

    def _advance_mode(self, ctx: "SimulationContext", fight: Fight, agent: Agent) -> bool:
        """Step the struggle mode. Returns True if the fish spat the hook."""
        cfg = self._config.capture
        if fight.stamina < cfg.give_up_stamina:
            if fight.mode is not StruggleMode.GIVING_UP:
                fight.mode = StruggleMode.GIVING_UP
                logger.debug(f"Agent {agent.agent_id} is giving up")
            return False

        if fight.mode is StruggleMode.INITIAL_RUN and fight.elapsed >= cfg.initial_run_ticks:
            fight.mode = StruggleMode.STEADY
            fight.next_thrash_at = self._next_thrash(ctx, fight.elapsed)
        elif fight.mode is StruggleMode.STEADY and fight.elapsed >= fight.next_thrash_at:
            fight.mode = StruggleMode.THRASHING
            fight.thrash_until = fight.elapsed + cfg.thrash_duration_ticks
            ctx.events.emit(
                TensionSpike(agent_id=agent.agent_id, tension=fight.tension, felt=self._felt(ctx), tick=ctx.tick)
            )
            spit_chance = (
                SPIT_CHANCE_BY_SIZE[agent.size_class]
                * (0.5 + fight.stamina)
                * HOOKSET_QUALITY_SPIT_MULTIPLIER[fight.hookset_quality]
            )
            return ctx.rng.random() < spit_chance
        elif fight.mode is StruggleMode.THRASHING and fight.elapsed >= fight.thrash_until:
            fight.mode = StruggleMode.STEADY
            fight.next_thrash_at = self._next_thrash(ctx, fight.elapsed)
        return False

    def _next_thrash(self, ctx: "SimulationContext", elapsed: int) -> int:
        cfg = self._config.capture
        jitter = ctx.rng.randint(-cfg.thrash_jitter_ticks, cfg.thrash_jitter_ticks)
        return elapsed + cfg.thrash_interval_ticks + jitter

    def _hold_agent(self, ctx: "SimulationContext", agent: Agent) -> None:
        lure = ctx.inputs.player_position
        if lure is None:
            agent.velocity.update(0.0, 0.0)
            return
        agent.velocity = (lure - agent.position) * self._config.capture.held_fish_follow
        agent.position.add_inplace(agent.velocity)
        ctx.bounds.clamp_depth(agent.position)

    def _resolve(
        self,
        ctx: "SimulationContext",
        agent: Optional[Agent],
        outcome: FightOutcome,
        reason: EscapeReason,
    ) -> None:
        fight = self._fight
        if fight is None:
            raise CaptureError(f"No active fight to resolve ({reason.value})")
        target_state = CaptureState.CAUGHT if outcome is FightOutcome.CAUGHT else CaptureState.ESCAPED
        self._machine.transition(target_state, frame=ctx.tick, reason=reason.value)
        fight.status = FightStatus.CAUGHT if outcome is FightOutcome.CAUGHT else FightStatus.ESCAPED
        self._fight = None
        self._outcomes[reason.value] = self._outcomes.get(reason.value, 0) + 1

        if agent is None:
            agent = ctx.registry.get(fight.agent_id)
        species = agent.species.name if agent is not None else "unknown"
        weight = agent.weight if agent is not None else 0.0
        length = agent.length if agent is not None else 0.0

        ctx.events.emit(
            FightResolved(
                agent_id=fight.agent_id,
                outcome=outcome,
                reason=reason,
                weight=weight,
                length=length,
                species=species,
                tick=ctx.tick,
            )
        )
        logger.info(
            f"Fight resolved: agent {fight.agent_id} {outcome.value} ({reason.value}) "
            f"after {fight.elapsed} ticks, peak tension {fight.peak_tension:.1f}"
        )

        if agent is None:
            return
        agent.frozen = False
        if outcome is FightOutcome.CAUGHT:
            agent.mark_removed("caught")
            ctx.removals.request_remove(agent.agent_id, reason="caught")
            self._records.append(
                CaptureRecord(
                    agent_id=agent.agent_id,
                    species=species,
                    size_class=agent.size_class.value,
                    weight=weight,
                    length=length,
                    hookset_quality=fight.hookset_quality,
                    fight_ticks=fight.elapsed,
                    tick=ctx.tick,
                )
            )
        elif agent.is_alive:
            ctx.flee(agent, f"escaped: {reason.value}", ctx.inputs.player_position)

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------

    def force_end(self, ctx: "SimulationContext", reason: str = EscapeReason.FORCE_END.value) -> bool:
        """End any running contest at a tick boundary.

        A pending hookset window becomes MISSED, a fight becomes ESCAPED. The
        held agent is released to FLEEING. Returns False if nothing was running.
        """
        state = self._machine.state
        if state is CaptureState.HOOKSET_WINDOW:
            agent = ctx.registry.get(self._window_agent_id)
            self._miss(ctx, agent, f"force end: {reason}")
            return True
        if state in (CaptureState.HOOKED, CaptureState.FIGHTING) and self._fight is not None:
            agent = ctx.registry.get(self._fight.agent_id)
            if agent is not None and not agent.is_alive:
                agent = None
            self._resolve(ctx, agent, FightOutcome.ESCAPED, EscapeReason.FORCE_END)
            return True
        return False

    def get_debug_info(self) -> Dict[str, Any]:
        return {
            **super().get_debug_info(),
            "state": self._machine.state.value,
            "held_agent_id": self.held_agent_id,
            "window_remaining": self._window_remaining if self._window_agent_id is not None else None,
            "ignored_strikes": self._ignored_strikes,
            "outcomes": dict(self._outcomes),
            "pending_records": len(self._records),
        }
