"""Tests for simulation config aggregation and tackle ingestion."""

import pytest

from lakesim.config.simulation_config import SimulationConfig
from lakesim.config.tackle import (
    LineConfig,
    LineMaterial,
    ReelConfig,
    ReelType,
    parse_line_config,
    parse_reel_config,
)
from lakesim.exceptions import ConfigurationError


class TestSimulationConfig:
    def test_defaults_validate(self, sim_config):
        sim_config.validate()

    def test_with_overrides_replaces_only_named_fields(self, sim_config):
        updated = sim_config.with_overrides(food_chain={"base_consume_chance": 1.0})
        assert updated.food_chain.base_consume_chance == 1.0
        assert updated.food_chain.graze_radius == sim_config.food_chain.graze_radius
        assert sim_config.food_chain.base_consume_chance == pytest.approx(0.75)

    def test_unknown_section_rejected(self, sim_config):
        with pytest.raises(ConfigurationError):
            sim_config.with_overrides(weather={"rain": True})

    def test_unknown_field_rejected(self, sim_config):
        with pytest.raises(ConfigurationError):
            sim_config.with_overrides(capture={"tension_max": 5})

    def test_validate_rejects_bad_consume_chance(self, sim_config):
        with pytest.raises(ConfigurationError):
            sim_config.with_overrides(food_chain={"base_consume_chance": 1.5}).validate()

    def test_to_dict_has_every_section(self, sim_config):
        data = sim_config.to_dict()
        for section in ("world", "capacity", "behavior", "schooling", "food_chain", "capture", "scoring"):
            assert section in data

    def test_scoring_weights_are_configuration(self):
        config = SimulationConfig().with_overrides(scoring={"edge": 0.0})
        assert config.scoring.edge == 0.0
        assert config.scoring.alignment == 1.0


class TestLineConfig:
    @pytest.mark.parametrize(
        "material,sensitivity",
        [("braid", 1.0), ("fluorocarbon", 0.6), ("monofilament", 0.4)],
    )
    def test_sensitivity_defaults_from_material(self, material, sensitivity):
        line = parse_line_config({"material": material})
        assert line.sensitivity == pytest.approx(sensitivity)

    def test_explicit_sensitivity_wins(self):
        line = LineConfig(material=LineMaterial.MONOFILAMENT, sensitivity=0.9)
        assert line.sensitivity == pytest.approx(0.9)

    def test_out_of_range_values_are_clamped(self):
        line = parse_line_config({"test_strength_lb": 500, "sensitivity": -2})
        assert line.test_strength_lb == 80.0
        assert line.sensitivity == 0.0

    def test_stretch_and_shock(self):
        braid = LineConfig(material=LineMaterial.BRAID)
        mono = LineConfig(material=LineMaterial.MONOFILAMENT)
        assert braid.stretch_factor < mono.stretch_factor
        assert braid.shock_multiplier == pytest.approx(0.5)
        assert mono.shock_multiplier == pytest.approx(0.9)

    def test_unknown_material_raises_configuration_error(self):
        with pytest.raises(ConfigurationError):
            parse_line_config({"material": "kevlar"})

    def test_is_frozen(self):
        line = LineConfig()
        with pytest.raises(Exception):
            line.test_strength_lb = 20


class TestReelConfig:
    @pytest.mark.parametrize("raw,expected", [(-0.5, 0.0), (0.3, 0.3), (2.0, 1.0)])
    def test_drag_is_clamped(self, raw, expected):
        assert parse_reel_config({"drag_setting": raw}).drag_setting == pytest.approx(expected)

    def test_reel_type_properties(self):
        spincaster = ReelConfig(reel_type=ReelType.SPINCASTER, drag_setting=0.5)
        assert spincaster.gear_ratio == pytest.approx(5.2)
        assert spincaster.line_capacity_ft == pytest.approx(250.0)
        assert spincaster.drag_force_lb == pytest.approx(9.0)

    def test_unknown_reel_type_raises(self):
        with pytest.raises(ConfigurationError):
            parse_reel_config({"reel_type": "fly"})

    def test_empty_mapping_gives_defaults(self):
        reel = parse_reel_config(None)
        assert reel.reel_type is ReelType.BAITCASTER
        assert reel.drag_setting == pytest.approx(0.5)
