"""World and tick-loop configuration constants.

All timing in the simulation is expressed in ticks at a fixed logical rate so
that runs replay identically regardless of the host's frame rate.
"""

# =============================================================================
# TICK LOOP
# =============================================================================
TICK_RATE = 60  # Logical ticks per simulated second

# =============================================================================
# WORLD GEOMETRY
# =============================================================================
# The visible water column. x runs along the shore, depth grows downward.
WORLD_WIDTH = 1200.0
MAX_DEPTH = 600.0  # 150 ft of water at DEPTH_SCALE units per foot
DEPTH_SCALE = 4.0  # World units per foot of depth

# Agents may swim off-screen horizontally; beyond the buffer they expire.
BUFFER_ZONE = 500.0

# Keep agents off the surface film and out of the bottom mud
SURFACE_MARGIN = 8.0
BOTTOM_MARGIN = 8.0

# =============================================================================
# CAPACITY
# =============================================================================
MAX_AGENTS = 600
MAX_SCHOOLS = 40
MAX_SPAWN_SCHOOL_COUNT = 120  # Upper bound for a single spawn_school call
