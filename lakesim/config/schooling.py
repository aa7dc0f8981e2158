"""School coordination constants."""

# =============================================================================
# CLUSTERING
# =============================================================================
DETECTION_INTERVAL_TICKS = 10  # Run the clustering pass every N ticks
MIN_SCHOOL_SIZE = 3  # Smallest component that forms a new school
FRAGMENTATION_RADIUS = 150.0  # Members further than this from center are released

# =============================================================================
# FOOD TRACKING / MIGRATION
# =============================================================================
FOOD_DETECTION_RADIUS = 200.0
FOOD_DEPLETION_THRESHOLD = 3  # Fewer forage items nearby counts as "low food"
MIGRATION_TRIGGER_TICKS = 300  # Consecutive low-food ticks before migrating

# =============================================================================
# FLOCK KINEMATICS (school center)
# =============================================================================
VELOCITY_DECAY = 0.95
WANDER_IMPULSE = 0.05
FOOD_ATTRACTION = 0.1  # Per-tick pull toward the food centroid
MIGRATION_IMPULSE = 0.08

# Per-axis speed caps by mode, scaled by the species' cruise speed
WANDER_MAX_SPEED = (1.0, 0.4)  # (horizontal, vertical)
FOOD_SEEKING_MAX_SPEED = (1.0, 1.5)  # May dive hard to reach food
MIGRATING_MAX_SPEED = (2.2, 0.25)  # Fast and level

# =============================================================================
# PREDATOR SCATTER
# =============================================================================
PANIC_RADIUS = 120.0
PANIC_SPEED_MULTIPLIER = 2.0
PANIC_DURATION_TICKS = 60
FLEE_IMPULSE = 0.6  # Per-tick push away from the threat at point-blank range
SCARE_RISE = 0.15  # Scared level gained per tick while threatened
SCARE_DECAY = 0.02
SCARED_SPREAD_THRESHOLD = 0.2  # Above this the school bunches up
SCARED_SPREAD = 0.8  # Slot-offset scale once scared
SCARED_SPREAD_PER_LEVEL = 0.3
MIN_SPREAD = 0.5

# =============================================================================
# MEMBER POSITIONING
# =============================================================================
OFFSET_SPACING = 6.0  # Vogel spiral spacing for member slots
OFFSET_PULL = 0.08  # Fraction of the slot error closed per tick
SEPARATION_STRENGTH = 0.3
ALIGNMENT_STRENGTH = 0.05
MEMBER_SPEED_MULTIPLIER = 1.5  # Members may outrun the center to catch up

# =============================================================================
# UNSCHOOLED DRIFT
# =============================================================================
DRIFT_JITTER = 0.05
DRIFT_DECAY = 0.98
