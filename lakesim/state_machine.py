"""State machine abstractions for explicit state management.

Both stateful actors in the lake run on the same validated machine:

- every predator carries a :class:`BehaviorState` machine
  (idle -> hunting -> chasing -> striking -> fleeing -> idle)
- the single capture contest runs on a :class:`CaptureState` machine
  (idle -> hookset window -> hooked -> fighting -> caught/escaped)

Valid transitions are declared up front as tables, so an illegal jump is
reported as an ``Err`` instead of silently corrupting an agent.

Usage:
------
    machine = create_behavior_state_machine()
    result = machine.try_transition(BehaviorState.HUNTING, frame=tick, reason="lure in range")
    if result.is_err():
        logger.warning(f"Invalid transition: {result.error}")
        machine.force_state(BehaviorState.IDLE, frame=tick, reason="recover")
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Generic, List, TypeVar

from lakesim.result import Err, Ok, Result

# Type variable for state enum types
S = TypeVar("S", bound=Enum)


@dataclass
class StateTransition(Generic[S]):
    """Record of a state transition for debugging.

    Attributes:
        from_state: The state before transition
        to_state: The state after transition
        frame: The simulation tick when transition occurred
        reason: Optional description of why transition happened
    """

    from_state: S
    to_state: S
    frame: int
    reason: str = ""


class StateMachine(Generic[S]):
    """A generic state machine with explicit transition validation."""

    def __init__(
        self,
        initial_state: S,
        valid_transitions: Dict[S, List[S]],
        track_history: bool = False,
        max_history: int = 50,
    ) -> None:
        """Initialize the state machine.

        Args:
            initial_state: The starting state
            valid_transitions: Map of state -> list of valid target states
            track_history: Whether to record transition history
            max_history: Maximum number of transitions to keep in history
        """
        if initial_state not in valid_transitions:
            raise ValueError(
                f"Initial state {initial_state} not in valid_transitions. "
                f"Valid states: {list(valid_transitions.keys())}"
            )

        self._state = initial_state
        self._transitions = valid_transitions
        self._track_history = track_history
        self._max_history = max_history
        self._history: List[StateTransition[S]] = []
        self._entered_frame = 0

    @property
    def state(self) -> S:
        return self._state

    @property
    def entered_frame(self) -> int:
        """Tick at which the current state was entered."""
        return self._entered_frame

    @property
    def history(self) -> List[StateTransition[S]]:
        """Get transition history (empty if tracking disabled)."""
        return self._history.copy()

    def ticks_in_state(self, frame: int) -> int:
        return frame - self._entered_frame

    def can_transition(self, target: S) -> bool:
        return target in self._transitions.get(self._state, [])

    def try_transition(self, target: S, frame: int = 0, reason: str = "") -> Result[S, str]:
        """Attempt to transition to a new state.

        Returns:
            Ok(new_state) if the transition is declared, Err(message) otherwise.
        """
        if not self.can_transition(target):
            valid_targets = self._transitions.get(self._state, [])
            return Err(
                f"Invalid transition: {self._state.name} -> {target.name}. "
                f"Valid targets from {self._state.name}: {[t.name for t in valid_targets]}"
            )

        old_state = self._state
        self._state = target
        self._entered_frame = frame

        if self._track_history:
            self._record_transition(old_state, target, frame, reason)

        return Ok(target)

    def transition(self, target: S, frame: int = 0, reason: str = "") -> S:
        """Transition to a new state, raising ValueError on an undeclared transition."""
        result = self.try_transition(target, frame, reason)
        if result.is_err():
            raise ValueError(result.error)
        return result.unwrap()

    def force_state(self, state: S, frame: int = 0, reason: str = "forced") -> None:
        """Force a state change without validation.

        Reserved for recovery paths (a malfunctioning agent forced back to
        idle, a terminal capture state reset for the next contest).
        """
        old_state = self._state
        self._state = state
        self._entered_frame = frame

        if self._track_history:
            self._record_transition(old_state, state, frame, f"[FORCED] {reason}")

    def _record_transition(self, from_state: S, to_state: S, frame: int, reason: str) -> None:
        self._history.append(
            StateTransition(
                from_state=from_state,
                to_state=to_state,
                frame=frame,
                reason=reason,
            )
        )

        if len(self._history) > self._max_history:
            self._history = self._history[-self._max_history :]

    def get_valid_transitions(self) -> List[S]:
        return list(self._transitions.get(self._state, []))

    def __repr__(self) -> str:
        return f"StateMachine(state={self._state.name})"


# ============================================================================
# Predator Behavior State Machine
# ============================================================================


class BehaviorState(Enum):
    """Decision states of a predator.

    Values are strings so snapshots and events serialise them directly.
    """

    IDLE = "idle"  # Cruising, looking for something to eat
    HUNTING = "hunting"  # Target detected, closing in
    CHASING = "chasing"  # Target confirmed within the tighter radius
    STRIKING = "striking"  # Committed strike (lure or prey)
    FLEEING = "fleeing"  # Post-strike or disturbed, waits out a cooldown


BEHAVIOR_TRANSITIONS: Dict[BehaviorState, List[BehaviorState]] = {
    BehaviorState.IDLE: [BehaviorState.HUNTING, BehaviorState.FLEEING],
    BehaviorState.HUNTING: [BehaviorState.CHASING, BehaviorState.IDLE, BehaviorState.FLEEING],
    BehaviorState.CHASING: [BehaviorState.STRIKING, BehaviorState.FLEEING, BehaviorState.IDLE],
    # A strike always ends in flight, win or lose
    BehaviorState.STRIKING: [BehaviorState.FLEEING],
    BehaviorState.FLEEING: [BehaviorState.IDLE],
}


def create_behavior_state_machine(track_history: bool = False) -> StateMachine[BehaviorState]:
    """Create the per-agent behavior machine, starting in IDLE."""
    return StateMachine(
        initial_state=BehaviorState.IDLE,
        valid_transitions=BEHAVIOR_TRANSITIONS,
        track_history=track_history,
    )


# ============================================================================
# Capture Contest State Machine
# ============================================================================


class CaptureState(Enum):
    """States of the hookset/fight contest."""

    IDLE = "idle"
    HOOKSET_WINDOW = "hookset_window"
    HOOKED = "hooked"
    MISSED = "missed"
    FIGHTING = "fighting"
    CAUGHT = "caught"
    ESCAPED = "escaped"


CAPTURE_TRANSITIONS: Dict[CaptureState, List[CaptureState]] = {
    CaptureState.IDLE: [CaptureState.HOOKSET_WINDOW],
    CaptureState.HOOKSET_WINDOW: [CaptureState.HOOKED, CaptureState.MISSED],
    CaptureState.HOOKED: [CaptureState.FIGHTING, CaptureState.ESCAPED],
    CaptureState.FIGHTING: [CaptureState.CAUGHT, CaptureState.ESCAPED],
    # Terminal outcomes are reported for one tick, then the contest resets
    CaptureState.MISSED: [CaptureState.IDLE],
    CaptureState.CAUGHT: [CaptureState.IDLE],
    CaptureState.ESCAPED: [CaptureState.IDLE],
}

TERMINAL_CAPTURE_STATES = frozenset(
    {CaptureState.MISSED, CaptureState.CAUGHT, CaptureState.ESCAPED}
)


def create_capture_state_machine(track_history: bool = True) -> StateMachine[CaptureState]:
    """Create the capture contest machine.

    History is on by default; the contest is a singleton and its transition
    log is the first thing to read when a fight resolves unexpectedly.
    """
    return StateMachine(
        initial_state=CaptureState.IDLE,
        valid_transitions=CAPTURE_TRANSITIONS,
        track_history=track_history,
    )
