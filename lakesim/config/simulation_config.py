"""Overridable simulation configuration.

Each section defaults to the constants in its topic module, so tests and hosts
override only what they care about:

    config = SimulationConfig().with_overrides(
        food_chain={"base_consume_chance": 1.0},
        capacity={"max_agents": 50},
    )
    config.validate()
"""

from dataclasses import asdict, dataclass, field, fields, replace
from typing import Any, Dict

from lakesim.config import behavior, capture, food_chain, schooling, simulation
from lakesim.exceptions import ConfigurationError


@dataclass(frozen=True)
class WorldConfig:
    """Geometry of the water column."""

    width: float = simulation.WORLD_WIDTH
    max_depth: float = simulation.MAX_DEPTH
    buffer_zone: float = simulation.BUFFER_ZONE
    surface_margin: float = simulation.SURFACE_MARGIN
    bottom_margin: float = simulation.BOTTOM_MARGIN
    tick_rate: int = simulation.TICK_RATE


@dataclass(frozen=True)
class CapacityConfig:
    max_agents: int = simulation.MAX_AGENTS
    max_schools: int = simulation.MAX_SCHOOLS
    max_spawn_school_count: int = simulation.MAX_SPAWN_SCHOOL_COUNT


@dataclass(frozen=True)
class TargetScoringWeights:
    """Weights for picking which school member a predator goes after.

    score = alignment * facing + edge * edge_distance - proximity * distance
    """

    alignment: float = 1.0
    edge: float = 0.5
    proximity: float = 0.3


@dataclass(frozen=True)
class BehaviorConfig:
    chase_radius_ratio: float = behavior.CHASE_RADIUS_RATIO
    lost_target_ratio: float = behavior.LOST_TARGET_RATIO
    equidistant_epsilon: float = behavior.EQUIDISTANT_EPSILON
    decision_cooldown_ticks: int = behavior.DECISION_COOLDOWN_TICKS
    hunt_grace_ticks: int = behavior.HUNT_GRACE_TICKS
    chase_timeout_ticks: int = behavior.CHASE_TIMEOUT_TICKS
    flee_duration_ticks: int = behavior.FLEE_DURATION_TICKS
    strike_timeout_ticks: int = behavior.STRIKE_TIMEOUT_TICKS
    low_health_threshold: float = behavior.LOW_HEALTH_THRESHOLD
    rushing_predator_radius: float = behavior.RUSHING_PREDATOR_RADIUS
    default_disturbance_radius: float = behavior.DEFAULT_DISTURBANCE_RADIUS
    frenzy_duration_ticks: int = behavior.FRENZY_DURATION_TICKS
    frenzy_detection_multiplier: float = behavior.FRENZY_DETECTION_MULTIPLIER
    frenzy_speed_multiplier: float = behavior.FRENZY_SPEED_MULTIPLIER
    desperate_detection_multiplier: float = behavior.DESPERATE_DETECTION_MULTIPLIER
    desperate_speed_multiplier: float = behavior.DESPERATE_SPEED_MULTIPLIER
    steering_rate: float = behavior.STEERING_RATE
    idle_turn_chance: float = behavior.IDLE_TURN_CHANCE
    idle_depth_wander: float = behavior.IDLE_DEPTH_WANDER
    aggressiveness_range: tuple = behavior.AGGRESSIVENESS_RANGE
    lure_interest_threshold: float = behavior.LURE_INTEREST_THRESHOLD
    lure_depth_tolerance: float = behavior.LURE_DEPTH_TOLERANCE
    lure_strike_chance: float = behavior.LURE_STRIKE_CHANCE
    frenzy_strike_bonus: float = behavior.FRENZY_STRIKE_BONUS
    desperate_strike_bonus: float = behavior.DESPERATE_STRIKE_BONUS
    strike_hesitation_ticks: int = behavior.STRIKE_HESITATION_TICKS


@dataclass(frozen=True)
class SchoolConfig:
    detection_interval_ticks: int = schooling.DETECTION_INTERVAL_TICKS
    min_school_size: int = schooling.MIN_SCHOOL_SIZE
    fragmentation_radius: float = schooling.FRAGMENTATION_RADIUS
    food_detection_radius: float = schooling.FOOD_DETECTION_RADIUS
    food_depletion_threshold: int = schooling.FOOD_DEPLETION_THRESHOLD
    migration_trigger_ticks: int = schooling.MIGRATION_TRIGGER_TICKS
    velocity_decay: float = schooling.VELOCITY_DECAY
    wander_impulse: float = schooling.WANDER_IMPULSE
    food_attraction: float = schooling.FOOD_ATTRACTION
    migration_impulse: float = schooling.MIGRATION_IMPULSE
    wander_max_speed: tuple = schooling.WANDER_MAX_SPEED
    food_seeking_max_speed: tuple = schooling.FOOD_SEEKING_MAX_SPEED
    migrating_max_speed: tuple = schooling.MIGRATING_MAX_SPEED
    panic_radius: float = schooling.PANIC_RADIUS
    panic_speed_multiplier: float = schooling.PANIC_SPEED_MULTIPLIER
    panic_duration_ticks: int = schooling.PANIC_DURATION_TICKS
    flee_impulse: float = schooling.FLEE_IMPULSE
    scare_rise: float = schooling.SCARE_RISE
    scare_decay: float = schooling.SCARE_DECAY
    scared_spread_threshold: float = schooling.SCARED_SPREAD_THRESHOLD
    scared_spread: float = schooling.SCARED_SPREAD
    scared_spread_per_level: float = schooling.SCARED_SPREAD_PER_LEVEL
    min_spread: float = schooling.MIN_SPREAD
    offset_spacing: float = schooling.OFFSET_SPACING
    offset_pull: float = schooling.OFFSET_PULL
    separation_strength: float = schooling.SEPARATION_STRENGTH
    alignment_strength: float = schooling.ALIGNMENT_STRENGTH
    member_speed_multiplier: float = schooling.MEMBER_SPEED_MULTIPLIER
    drift_jitter: float = schooling.DRIFT_JITTER
    drift_decay: float = schooling.DRIFT_DECAY


@dataclass(frozen=True)
class FoodChainConfig:
    spawn_hunger_range: tuple = food_chain.SPAWN_HUNGER_RANGE
    critical_hunger: float = food_chain.CRITICAL_HUNGER
    terminal_hunger: float = food_chain.TERMINAL_HUNGER
    starvation_health_decay: float = food_chain.STARVATION_HEALTH_DECAY
    base_consume_chance: float = food_chain.BASE_CONSUME_CHANCE
    frenzy_consume_bonus: float = food_chain.FRENZY_CONSUME_BONUS
    desperation_consume_bonus: float = food_chain.DESPERATION_CONSUME_BONUS
    nutrition_scale: float = food_chain.NUTRITION_SCALE
    same_tier_max_weight_ratio: float = food_chain.SAME_TIER_MAX_WEIGHT_RATIO
    frenzy_window_ticks: int = food_chain.FRENZY_WINDOW_TICKS
    frenzy_consumption_threshold: int = food_chain.FRENZY_CONSUMPTION_THRESHOLD
    frenzy_depletion_ratio: float = food_chain.FRENZY_DEPLETION_RATIO
    frenzy_min_peak_size: int = food_chain.FRENZY_MIN_PEAK_SIZE
    graze_radius: float = food_chain.GRAZE_RADIUS
    graze_cooldown_ticks: int = food_chain.GRAZE_COOLDOWN_TICKS


@dataclass(frozen=True)
class CaptureConfig:
    hookset_window_ticks: int = capture.HOOKSET_WINDOW_TICKS
    tension_initial: float = capture.TENSION_INITIAL
    tension_ceiling: float = capture.TENSION_CEILING
    tension_smoothing: float = capture.TENSION_SMOOTHING
    reel_tension_base: float = capture.REEL_TENSION_BASE
    reel_tension_per_lb: float = capture.REEL_TENSION_PER_LB
    struggle_tension_per_lb: float = capture.STRUGGLE_TENSION_PER_LB
    drag_absorption: float = capture.DRAG_ABSORPTION
    break_strength_per_lb_test: float = capture.BREAK_STRENGTH_PER_LB_TEST
    break_weight_penalty: float = capture.BREAK_WEIGHT_PENALTY
    break_threshold_floor: float = capture.BREAK_THRESHOLD_FLOOR
    initial_run_ticks: int = capture.INITIAL_RUN_TICKS
    thrash_interval_ticks: int = capture.THRASH_INTERVAL_TICKS
    thrash_jitter_ticks: int = capture.THRASH_JITTER_TICKS
    thrash_duration_ticks: int = capture.THRASH_DURATION_TICKS
    give_up_stamina: float = capture.GIVE_UP_STAMINA
    spike_interval_ticks: int = capture.SPIKE_INTERVAL_TICKS
    spike_duration_ticks: int = capture.SPIKE_DURATION_TICKS
    spike_magnitude: float = capture.SPIKE_MAGNITUDE
    stamina_base_drain: float = capture.STAMINA_BASE_DRAIN
    stamina_reel_drain: float = capture.STAMINA_REEL_DRAIN
    stamina_drag_drain: float = capture.STAMINA_DRAG_DRAIN
    retrieve_rate: float = capture.RETRIEVE_RATE
    reference_gear_ratio: float = capture.REFERENCE_GEAR_RATIO
    retrieve_drag_penalty: float = capture.RETRIEVE_DRAG_PENALTY
    catch_distance: float = capture.CATCH_DISTANCE
    initial_line_out: float = capture.INITIAL_LINE_OUT
    line_slip_rate: float = capture.LINE_SLIP_RATE
    slack_input_threshold: float = capture.SLACK_INPUT_THRESHOLD
    slack_timeout_ticks: int = capture.SLACK_TIMEOUT_TICKS
    held_fish_follow: float = capture.HELD_FISH_FOLLOW


@dataclass(frozen=True)
class SimulationConfig:
    """Aggregate configuration handed to the engine and every system."""

    world: WorldConfig = field(default_factory=WorldConfig)
    capacity: CapacityConfig = field(default_factory=CapacityConfig)
    behavior: BehaviorConfig = field(default_factory=BehaviorConfig)
    schooling: SchoolConfig = field(default_factory=SchoolConfig)
    food_chain: FoodChainConfig = field(default_factory=FoodChainConfig)
    capture: CaptureConfig = field(default_factory=CaptureConfig)
    scoring: TargetScoringWeights = field(default_factory=TargetScoringWeights)

    def with_overrides(self, **sections: Dict[str, Any]) -> "SimulationConfig":
        """Return a copy with the given section fields replaced.

        Raises:
            ConfigurationError: On an unknown section or field name.
        """
        section_names = {f.name for f in fields(self)}
        updates = {}
        for section_name, overrides in sections.items():
            if section_name not in section_names:
                raise ConfigurationError(f"Unknown config section: {section_name}")
            section = getattr(self, section_name)
            known = {f.name for f in fields(section)}
            unknown = set(overrides) - known
            if unknown:
                raise ConfigurationError(
                    f"Unknown {section_name} fields: {sorted(unknown)}"
                )
            updates[section_name] = replace(section, **overrides)
        return replace(self, **updates)

    def validate(self) -> None:
        """Validate cross-field constraints.

        Raises:
            ConfigurationError: If any parameter is out of range.
        """
        if self.world.width <= 0 or self.world.max_depth <= 0:
            raise ConfigurationError("World dimensions must be positive")
        if self.world.tick_rate <= 0:
            raise ConfigurationError("tick_rate must be positive")
        if self.capacity.max_agents < 1 or self.capacity.max_schools < 1:
            raise ConfigurationError("Capacities must be at least 1")
        if not 0.0 < self.schooling.velocity_decay <= 1.0:
            raise ConfigurationError("velocity_decay must be in (0, 1]")
        if self.schooling.min_school_size < 2:
            raise ConfigurationError("min_school_size must be at least 2")
        if self.schooling.migration_trigger_ticks < 1:
            raise ConfigurationError("migration_trigger_ticks must be positive")
        if not 0.0 <= self.food_chain.base_consume_chance <= 1.0:
            raise ConfigurationError("base_consume_chance must be in [0, 1]")
        if self.food_chain.critical_hunger > self.food_chain.terminal_hunger:
            raise ConfigurationError("critical_hunger must not exceed terminal_hunger")
        if self.capture.hookset_window_ticks < 1:
            raise ConfigurationError("hookset_window_ticks must be positive")
        if self.capture.tension_ceiling <= 0:
            raise ConfigurationError("tension_ceiling must be positive")
        if not 0.0 < self.capture.tension_smoothing <= 1.0:
            raise ConfigurationError("tension_smoothing must be in (0, 1]")
        if self.behavior.chase_radius_ratio > 1.0:
            raise ConfigurationError("chase_radius_ratio must not exceed 1.0")
        low, high = self.behavior.aggressiveness_range
        if not 0.0 <= low <= high <= 1.0:
            raise ConfigurationError("aggressiveness_range must be an ordered pair in [0, 1]")
        if self.behavior.lure_depth_tolerance <= 0:
            raise ConfigurationError("lure_depth_tolerance must be positive")
        if not self.schooling.min_spread <= self.schooling.scared_spread <= 1.0:
            raise ConfigurationError("scared_spread must be between min_spread and 1.0")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
