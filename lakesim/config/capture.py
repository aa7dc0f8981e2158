"""Hookset and fight constants.

Tension is in abstract units on [0, TENSION_CEILING]; line test strength and
fish weight are in pounds; line lengths are in feet.
"""

from lakesim.config.species import SizeClass

# =============================================================================
# HOOKSET
# =============================================================================
HOOKSET_WINDOW_TICKS = 45  # 0.75 s at 60 ticks/s

# Hook-spit multiplier by hookset quality
HOOKSET_QUALITY_SPIT_MULTIPLIER = {
    "barely": 2.5,
    "bad": 1.5,
    "good": 1.0,
    "great": 0.3,
}

# =============================================================================
# TENSION MODEL
# =============================================================================
TENSION_INITIAL = 20.0
TENSION_CEILING = 120.0
TENSION_SMOOTHING = 0.15  # Fraction of the gap to target closed per tick

REEL_TENSION_BASE = 20.0
REEL_TENSION_PER_LB = 6.0
STRUGGLE_TENSION_PER_LB = 4.0
DRAG_ABSORPTION = 0.4  # Full drag absorbs this fraction of tension

BREAK_STRENGTH_PER_LB_TEST = 8.0
BREAK_WEIGHT_PENALTY = 1.5
BREAK_THRESHOLD_FLOOR = 10.0

# =============================================================================
# STRUGGLE MODES
# =============================================================================
INITIAL_RUN_TICKS = 180
THRASH_INTERVAL_TICKS = 300
THRASH_JITTER_TICKS = 60
THRASH_DURATION_TICKS = 45
GIVE_UP_STAMINA = 0.25

MODE_MULTIPLIERS = {
    "initial_run": 1.5,
    "steady": 1.0,
    "thrashing": 2.0,
    "giving_up": 0.3,
}

SPIKE_INTERVAL_TICKS = 90
SPIKE_DURATION_TICKS = 6
SPIKE_MAGNITUDE = 0.5  # Extra struggle fraction during a spike

STAMINA_BASE_DRAIN = 0.0004
STAMINA_REEL_DRAIN = 0.0008
STAMINA_DRAG_DRAIN = 0.0004

# Hook-spit chance per thrash by fish size
SPIT_CHANCE_BY_SIZE = {
    SizeClass.TINY: 0.02,
    SizeClass.SMALL: 0.02,
    SizeClass.MEDIUM: 0.05,
    SizeClass.LARGE: 0.10,
    SizeClass.TROPHY: 0.15,
}

# =============================================================================
# RETRIEVAL / LINE
# =============================================================================
RETRIEVE_RATE = 1.2  # Feet per tick at full reel on a 6:1 reel with no drag
REFERENCE_GEAR_RATIO = 6.0
RETRIEVE_DRAG_PENALTY = 0.5
CATCH_DISTANCE = 120.0  # Net feet retrieved to land the fish
INITIAL_LINE_OUT = 60.0
LINE_SLIP_RATE = 0.5  # Feet of line per excess pound of pull per tick

SLACK_INPUT_THRESHOLD = 0.05
SLACK_TIMEOUT_TICKS = 180

# Pull toward the lure while the fish is on (world units per tick)
HELD_FISH_FOLLOW = 0.2
