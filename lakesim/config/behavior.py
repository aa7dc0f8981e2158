"""Predator behavior constants.

Radii are world units, durations are ticks (see ``TICK_RATE``).
"""

# =============================================================================
# TARGET ACQUISITION
# =============================================================================
# Hunting -> Chasing needs the target inside detection * CHASE_RADIUS_RATIO
CHASE_RADIUS_RATIO = 0.6
# A chased target beyond detection * LOST_TARGET_RATIO is abandoned
LOST_TARGET_RATIO = 1.2
# Candidates closer than this to each other count as equidistant
EQUIDISTANT_EPSILON = 1.0

# =============================================================================
# TIMERS
# =============================================================================
DECISION_COOLDOWN_TICKS = 20  # Consumed by every strike decision
HUNT_GRACE_TICKS = 90  # Hunting without re-confirming the target reverts to Idle
CHASE_TIMEOUT_TICKS = 360  # Give up a chase that never closes
FLEE_DURATION_TICKS = 120  # Undisturbed time before Fleeing -> Idle
STRIKE_TIMEOUT_TICKS = 60  # Striking agent never accepted by anyone flees

# =============================================================================
# DISTURBANCE / HEALTH
# =============================================================================
LOW_HEALTH_THRESHOLD = 25.0
RUSHING_PREDATOR_RADIUS = 80.0  # A larger predator charging this close scares smaller ones
DEFAULT_DISTURBANCE_RADIUS = 150.0

# =============================================================================
# FRENZY / DESPERATION
# =============================================================================
FRENZY_DURATION_TICKS = 300
FRENZY_DETECTION_MULTIPLIER = 1.5
FRENZY_SPEED_MULTIPLIER = 1.3
DESPERATE_DETECTION_MULTIPLIER = 1.3
DESPERATE_SPEED_MULTIPLIER = 1.15

# =============================================================================
# MOVEMENT
# =============================================================================
STEERING_RATE = 0.12  # Fraction of the velocity error corrected per tick
IDLE_TURN_CHANCE = 0.005  # Per-tick chance to flip the idle cruising direction
IDLE_DEPTH_WANDER = 0.15  # Max vertical wander speed while cruising

# =============================================================================
# LURE INTEREST
# =============================================================================
AGGRESSIVENESS_RANGE = (0.3, 1.0)  # Drawn per predator at spawn
LURE_INTEREST_THRESHOLD = 0.35  # Below this a calm fish ignores the lure
LURE_DEPTH_TOLERANCE = 150.0  # Depth gap at which the depth penalty is full
LURE_STRIKE_CHANCE = 0.7  # Scaled by aggressiveness
FRENZY_STRIKE_BONUS = 0.25
DESPERATE_STRIKE_BONUS = 0.15
STRIKE_HESITATION_TICKS = 10  # Cooldown after balking at the lure
