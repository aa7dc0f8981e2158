"""Food chain and hunger economy constants."""

# =============================================================================
# HUNGER / HEALTH
# =============================================================================
SPAWN_HUNGER_RANGE = (30.0, 60.0)
CRITICAL_HUNGER = 80.0  # Above this: desperate foraging
TERMINAL_HUNGER = 95.0  # Above this: health decays
STARVATION_HEALTH_DECAY = 0.1  # Health points lost per tick above TERMINAL_HUNGER

# =============================================================================
# CONSUMPTION
# =============================================================================
BASE_CONSUME_CHANCE = 0.75
FRENZY_CONSUME_BONUS = 0.15
DESPERATION_CONSUME_BONUS = 0.1
NUTRITION_SCALE = 1.25  # Hunger points removed per nutrition point
# Same-tier prey (a perch for a pike) must weigh at most this fraction of the eater
SAME_TIER_MAX_WEIGHT_RATIO = 0.5

# =============================================================================
# FEEDING FRENZY
# =============================================================================
FRENZY_WINDOW_TICKS = 180
FRENZY_CONSUMPTION_THRESHOLD = 3  # Consumptions from one group inside the window
FRENZY_DEPLETION_RATIO = 0.25  # School remaining/peak at or below this triggers
FRENZY_MIN_PEAK_SIZE = 3

# =============================================================================
# BAITFISH GRAZING
# =============================================================================
GRAZE_RADIUS = 20.0
GRAZE_COOLDOWN_TICKS = 90
