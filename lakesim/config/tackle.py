"""Session tackle models: fishing line and reel.

The player picks tackle outside the simulation; the core only reads it. Both
models are immutable pydantic models. Numbers out of range are clamped on the
way in (and logged) rather than rejected, so a stale settings file never stops
a session. Unknown materials or reel types are a configuration error.
"""

import logging
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator

from lakesim.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

MIN_TEST_STRENGTH_LB = 1.0
MAX_TEST_STRENGTH_LB = 80.0


class LineMaterial(str, Enum):
    BRAID = "braid"
    FLUOROCARBON = "fluorocarbon"
    MONOFILAMENT = "monofilament"


class ReelType(str, Enum):
    BAITCASTER = "baitcaster"
    SPINCASTER = "spincaster"


# stretch / shock absorption on a 0-10 scale, haptic sensitivity on [0, 1]
MATERIAL_PROPERTIES: Dict[LineMaterial, Dict[str, float]] = {
    LineMaterial.BRAID: {"stretch": 0.0, "shock_absorption": 0.0, "sensitivity": 1.0},
    LineMaterial.FLUOROCARBON: {"stretch": 3.0, "shock_absorption": 3.0, "sensitivity": 0.6},
    LineMaterial.MONOFILAMENT: {"stretch": 8.0, "shock_absorption": 8.0, "sensitivity": 0.4},
}

REEL_PROPERTIES: Dict[ReelType, Dict[str, float]] = {
    ReelType.BAITCASTER: {"gear_ratio": 6.2, "max_drag_lb": 25.0, "line_capacity_ft": 300.0},
    ReelType.SPINCASTER: {"gear_ratio": 5.2, "max_drag_lb": 18.0, "line_capacity_ft": 250.0},
}


def _clamp_logged(name: str, value: float, low: float, high: float) -> float:
    clamped = max(low, min(high, value))
    if clamped != value:
        logger.warning(f"{name}={value} out of range, clamped to {clamped}")
    return clamped


class LineConfig(BaseModel):
    """Fishing line profile.

    Attributes:
        test_strength_lb: Rated breaking strength in pounds, clamped to [1, 80].
        material: Line material; drives stretch, shock absorption and the
            default haptic sensitivity.
        sensitivity: Probability that a strike or tension spike is surfaced to
            the player, clamped to [0, 1]. Defaults to the material's value.
    """

    model_config = ConfigDict(frozen=True)

    test_strength_lb: float = 10.0
    material: LineMaterial = LineMaterial.BRAID
    sensitivity: float = 1.0

    @model_validator(mode="before")
    @classmethod
    def default_sensitivity_from_material(cls, data: Any) -> Any:
        if isinstance(data, Mapping) and data.get("sensitivity") is None:
            material = LineMaterial(data.get("material", LineMaterial.BRAID))
            data = {**data, "sensitivity": MATERIAL_PROPERTIES[material]["sensitivity"]}
        return data

    @field_validator("test_strength_lb")
    @classmethod
    def clamp_test_strength(cls, value: float) -> float:
        return _clamp_logged("test_strength_lb", value, MIN_TEST_STRENGTH_LB, MAX_TEST_STRENGTH_LB)

    @field_validator("sensitivity")
    @classmethod
    def clamp_sensitivity(cls, value: float) -> float:
        return _clamp_logged("sensitivity", value, 0.0, 1.0)

    @property
    def stretch_factor(self) -> float:
        """Multiplier on reel-induced tension: 0.5 for braid up to 0.9 for mono."""
        return 0.5 + MATERIAL_PROPERTIES[self.material]["stretch"] / 20.0

    @property
    def shock_multiplier(self) -> float:
        """Multiplier on break strength from the line's shock absorption."""
        return 0.5 + MATERIAL_PROPERTIES[self.material]["shock_absorption"] / 20.0


class ReelConfig(BaseModel):
    """Reel profile.

    Attributes:
        reel_type: Reel family; drives gear ratio, drag limit and capacity.
        drag_setting: Fraction of the reel's max drag in use, clamped to [0, 1].
    """

    model_config = ConfigDict(frozen=True)

    reel_type: ReelType = ReelType.BAITCASTER
    drag_setting: float = 0.5

    @field_validator("drag_setting")
    @classmethod
    def clamp_drag(cls, value: float) -> float:
        return _clamp_logged("drag_setting", value, 0.0, 1.0)

    @property
    def gear_ratio(self) -> float:
        return REEL_PROPERTIES[self.reel_type]["gear_ratio"]

    @property
    def max_drag_lb(self) -> float:
        return REEL_PROPERTIES[self.reel_type]["max_drag_lb"]

    @property
    def line_capacity_ft(self) -> float:
        return REEL_PROPERTIES[self.reel_type]["line_capacity_ft"]

    @property
    def drag_force_lb(self) -> float:
        return self.drag_setting * self.max_drag_lb


def parse_line_config(data: Optional[Mapping[str, Any]]) -> LineConfig:
    """Build a LineConfig from raw settings, raising ConfigurationError on bad input."""
    try:
        return LineConfig.model_validate(dict(data or {}))
    except (ValidationError, ValueError) as exc:
        raise ConfigurationError(f"Invalid line configuration: {exc}") from exc


def parse_reel_config(data: Optional[Mapping[str, Any]]) -> ReelConfig:
    """Build a ReelConfig from raw settings, raising ConfigurationError on bad input."""
    try:
        return ReelConfig.model_validate(dict(data or {}))
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid reel configuration: {exc}") from exc
