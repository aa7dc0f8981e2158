"""Species tables.

Every organism in the lake is described by a :class:`SpeciesProfile`. The
size class picked by the spawner selects a band inside the species' weight and
length ranges, so a "trophy" perch is still smaller than a "tiny" pike.

Speeds are world units per tick, radii are world units, hunger rates are
points per tick on the 0-100 hunger scale.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple


class Role(Enum):
    """Position in the food chain."""

    FORAGE = "forage"
    BAITFISH = "baitfish"
    CRAYFISH = "crayfish"
    PREDATOR = "predator"


# Consumption is legal one tier up: forage -> baitfish/crayfish -> predator.
# Per-species diet overrides (see diet_allows) add or remove specific prey.
ROLE_TIERS: Dict[Role, int] = {
    Role.FORAGE: 0,
    Role.BAITFISH: 1,
    Role.CRAYFISH: 1,
    Role.PREDATOR: 2,
}

# Mid-tier roles that graze on forage
GRAZING_ROLES: Tuple[Role, ...] = (Role.BAITFISH, Role.CRAYFISH)


class SizeClass(Enum):
    TINY = "tiny"
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"
    TROPHY = "trophy"


SIZE_CLASS_ORDER: Tuple[SizeClass, ...] = (
    SizeClass.TINY,
    SizeClass.SMALL,
    SizeClass.MEDIUM,
    SizeClass.LARGE,
    SizeClass.TROPHY,
)

# Fraction band of the species weight/length range covered by each size class
SIZE_CLASS_BANDS: Dict[SizeClass, Tuple[float, float]] = {
    SizeClass.TINY: (0.0, 0.15),
    SizeClass.SMALL: (0.15, 0.35),
    SizeClass.MEDIUM: (0.35, 0.6),
    SizeClass.LARGE: (0.6, 0.85),
    SizeClass.TROPHY: (0.85, 1.0),
}

# Nutrition multiplier for eating prey of a given size class
SIZE_NUTRITION_MULTIPLIER: Dict[SizeClass, float] = {
    SizeClass.TINY: 0.5,
    SizeClass.SMALL: 0.75,
    SizeClass.MEDIUM: 1.0,
    SizeClass.LARGE: 1.5,
    SizeClass.TROPHY: 2.0,
}


def size_rank(size_class: SizeClass) -> int:
    return SIZE_CLASS_ORDER.index(size_class)


@dataclass(frozen=True)
class SchoolingProfile:
    """How a species forms and holds schools."""

    search_radius: float
    separation_radius: float
    alignment_radius: float
    max_school_size: int
    separation_weight: float = 1.0
    alignment_weight: float = 1.0


@dataclass(frozen=True)
class BurstEscapeProfile:
    """Backward dart away from a predator that could eat this species."""

    trigger_radius: float
    speed: float
    duration_ticks: int
    cooldown_ticks: int


@dataclass(frozen=True)
class SpeciesProfile:
    """Static description of one species.

    ``extra_prey`` names species eaten outside the tier rule (a pike taking a
    perch); ``excluded_prey`` names species the tier rule would allow but this
    species never eats.
    """

    name: str
    display_name: str
    role: Role
    weight_range_lb: Tuple[float, float]
    length_range_in: Tuple[float, float]
    cruise_speed: float
    chase_speed: float
    panic_speed: float
    detection_radius: float = 0.0
    strike_radius: float = 25.0
    hunger_threshold: float = 40.0
    hunger_rate: float = 0.0
    nutrition_value: float = 1.0
    fight_strength: float = 1.0  # Struggle multiplier on the line
    depth_range: Tuple[float, float] = (0.0, 600.0)
    schooling: Optional[SchoolingProfile] = None
    burst_escape: Optional[BurstEscapeProfile] = None
    extra_prey: Tuple[str, ...] = ()
    excluded_prey: Tuple[str, ...] = ()

    @property
    def tier(self) -> int:
        return ROLE_TIERS[self.role]

    def weight_for(self, size_class: SizeClass, roll: float) -> float:
        """Weight (lb) for a size class, ``roll`` in [0, 1) picks inside the band."""
        return _interpolate_band(self.weight_range_lb, size_class, roll)

    def length_for(self, size_class: SizeClass, roll: float) -> float:
        return _interpolate_band(self.length_range_in, size_class, roll)


def _interpolate_band(value_range: Tuple[float, float], size_class: SizeClass, roll: float) -> float:
    low, high = value_range
    band_low, band_high = SIZE_CLASS_BANDS[size_class]
    fraction = band_low + (band_high - band_low) * roll
    return low + (high - low) * fraction


def diet_allows(consumer: SpeciesProfile, prey: SpeciesProfile) -> bool:
    """Whether ``consumer`` eats ``prey`` at all, before any size check."""
    if prey.name in consumer.excluded_prey:
        return False
    return consumer.tier == prey.tier + 1 or prey.name in consumer.extra_prey


# =============================================================================
# PREDATORS
# =============================================================================

LAKE_TROUT = SpeciesProfile(
    name="lake_trout",
    display_name="Lake Trout",
    role=Role.PREDATOR,
    weight_range_lb=(3.0, 20.0),
    length_range_in=(18.0, 36.0),
    cruise_speed=0.8,
    chase_speed=3.0,
    panic_speed=3.6,
    detection_radius=220.0,
    strike_radius=25.0,
    hunger_threshold=40.0,
    hunger_rate=0.016,
    fight_strength=1.0,
    depth_range=(200.0, 600.0),
    extra_prey=("yellow_perch",),
)

NORTHERN_PIKE = SpeciesProfile(
    name="northern_pike",
    display_name="Northern Pike",
    role=Role.PREDATOR,
    weight_range_lb=(3.0, 15.0),
    length_range_in=(20.0, 40.0),
    cruise_speed=0.6,
    chase_speed=5.0,
    panic_speed=4.0,
    detection_radius=180.0,
    strike_radius=60.0,  # Ambush lunge
    hunger_threshold=35.0,
    hunger_rate=0.018,
    fight_strength=1.2,
    depth_range=(40.0, 240.0),
    extra_prey=("yellow_perch", "smallmouth_bass"),
)

SMALLMOUTH_BASS = SpeciesProfile(
    name="smallmouth_bass",
    display_name="Smallmouth Bass",
    role=Role.PREDATOR,
    weight_range_lb=(1.0, 5.0),
    length_range_in=(12.0, 20.0),
    cruise_speed=1.0,
    chase_speed=3.5,
    panic_speed=3.8,
    detection_radius=200.0,
    strike_radius=25.0,
    hunger_threshold=40.0,
    hunger_rate=0.014,
    fight_strength=1.4,  # Pound for pound the hardest fighter
    depth_range=(20.0, 320.0),
    extra_prey=("yellow_perch",),
)

YELLOW_PERCH = SpeciesProfile(
    name="yellow_perch",
    display_name="Yellow Perch",
    role=Role.PREDATOR,
    weight_range_lb=(0.5, 2.0),
    length_range_in=(6.0, 12.0),
    cruise_speed=1.2,
    chase_speed=2.5,
    panic_speed=3.5,
    detection_radius=150.0,
    strike_radius=25.0,
    hunger_threshold=30.0,
    hunger_rate=0.010,
    nutrition_value=20.0,
    fight_strength=0.8,
    depth_range=(40.0, 400.0),
    excluded_prey=("crayfish",),
)

# =============================================================================
# BAITFISH
# =============================================================================

ALEWIFE = SpeciesProfile(
    name="alewife",
    display_name="Alewife",
    role=Role.BAITFISH,
    weight_range_lb=(0.1, 0.3),
    length_range_in=(4.0, 8.0),
    cruise_speed=0.9,
    chase_speed=1.5,
    panic_speed=2.6,
    hunger_threshold=20.0,
    hunger_rate=0.008,
    nutrition_value=12.0,
    schooling=SchoolingProfile(
        search_radius=80.0,
        separation_radius=15.0,
        alignment_radius=40.0,
        max_school_size=100,
        separation_weight=1.5,
    ),
)

RAINBOW_SMELT = SpeciesProfile(
    name="rainbow_smelt",
    display_name="Rainbow Smelt",
    role=Role.BAITFISH,
    weight_range_lb=(0.15, 0.4),
    length_range_in=(5.0, 10.0),
    cruise_speed=1.0,
    chase_speed=1.6,
    panic_speed=2.8,
    hunger_threshold=20.0,
    hunger_rate=0.008,
    nutrition_value=16.0,
    schooling=SchoolingProfile(
        search_radius=70.0,
        separation_radius=12.0,
        alignment_radius=35.0,
        max_school_size=60,
        separation_weight=2.0,
        alignment_weight=1.2,
    ),
)

CISCO = SpeciesProfile(
    name="cisco",
    display_name="Cisco",
    role=Role.BAITFISH,
    weight_range_lb=(0.3, 1.0),
    length_range_in=(8.0, 16.0),
    cruise_speed=1.4,
    chase_speed=2.4,
    panic_speed=3.6,
    hunger_threshold=20.0,
    hunger_rate=0.008,
    nutrition_value=18.0,
    schooling=SchoolingProfile(
        search_radius=100.0,
        separation_radius=25.0,
        alignment_radius=60.0,
        max_school_size=80,
    ),
)

EMERALD_SHINER = SpeciesProfile(
    name="emerald_shiner",
    display_name="Emerald Shiner",
    role=Role.BAITFISH,
    weight_range_lb=(0.05, 0.2),
    length_range_in=(2.0, 5.0),
    cruise_speed=1.0,
    chase_speed=1.6,
    panic_speed=2.8,
    hunger_threshold=20.0,
    hunger_rate=0.008,
    nutrition_value=10.0,
    schooling=SchoolingProfile(
        search_radius=90.0,
        separation_radius=20.0,
        alignment_radius=50.0,
        max_school_size=80,
        separation_weight=1.3,
    ),
)

SLIMY_SCULPIN = SpeciesProfile(
    name="slimy_sculpin",
    display_name="Slimy Sculpin",
    role=Role.BAITFISH,
    weight_range_lb=(0.05, 0.15),
    length_range_in=(2.0, 5.0),
    cruise_speed=0.5,
    chase_speed=1.0,
    panic_speed=2.0,
    hunger_threshold=20.0,
    hunger_rate=0.006,
    nutrition_value=8.0,
    depth_range=(480.0, 600.0),
    # Bottom dweller, never schools
)

# =============================================================================
# CRAYFISH
# =============================================================================

CRAYFISH = SpeciesProfile(
    name="crayfish",
    display_name="Crayfish",
    role=Role.CRAYFISH,
    weight_range_lb=(0.05, 0.2),
    length_range_in=(2.0, 4.0),
    cruise_speed=0.5,
    chase_speed=0.5,
    panic_speed=5.0,
    hunger_threshold=20.0,
    hunger_rate=0.006,
    nutrition_value=25.0,  # Bass candy
    depth_range=(540.0, 600.0),
    burst_escape=BurstEscapeProfile(
        trigger_radius=100.0,
        speed=5.0,
        duration_ticks=30,
        cooldown_ticks=180,
    ),
)

# =============================================================================
# FORAGE
# =============================================================================

ZOOPLANKTON = SpeciesProfile(
    name="zooplankton",
    display_name="Zooplankton",
    role=Role.FORAGE,
    weight_range_lb=(0.0001, 0.0005),
    length_range_in=(0.02, 0.08),
    cruise_speed=0.2,
    chase_speed=0.2,
    panic_speed=0.3,
    nutrition_value=1.0,
)


SPECIES: Dict[str, SpeciesProfile] = {
    profile.name: profile
    for profile in (
        LAKE_TROUT,
        NORTHERN_PIKE,
        SMALLMOUTH_BASS,
        YELLOW_PERCH,
        ALEWIFE,
        RAINBOW_SMELT,
        CISCO,
        EMERALD_SHINER,
        SLIMY_SCULPIN,
        CRAYFISH,
        ZOOPLANKTON,
    )
}


def get_species(name: str) -> Optional[SpeciesProfile]:
    return SPECIES.get(name)
