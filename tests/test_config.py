import logging

import pytest

pytest.importorskip("yaml")

from biosphere_simulation.config import ConfigError, SimulationConfig, config_from_dict, load_config


def test_defaults_when_no_path_given():
    config = load_config(None)
    assert config == SimulationConfig()
    assert config.clock.cycle_seconds == 120.0
    assert config.grass.name == "grass"
    assert config.tree.vertical_layer == 0.5


def test_yaml_overrides_nested_sections(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "\n".join(
            [
                "dt: 0.05",
                "clock:",
                "  cycle_seconds: 60",
                "herbivore:",
                "  food_kinds: [grass, tree]",
                "  activity_multipliers:",
                "    grazing: 1.5",
                "initial:",
                "  trees: 3",
            ]
        ),
        encoding="utf-8",
    )

    config = load_config(path)

    assert config.dt == 0.05
    assert config.clock.cycle_seconds == 60
    assert config.clock.sunrise_hour == 6.0
    assert config.herbivore.food_kinds == ("grass", "tree")
    assert config.herbivore.activity_multipliers["grazing"] == 1.5
    assert config.herbivore.activity_multipliers["sleeping"] == SimulationConfig().herbivore.activity_multipliers["sleeping"]
    assert config.initial.trees == 3
    assert config.initial.grass == 55


def test_unknown_keys_are_ignored_with_a_warning(caplog):
    with caplog.at_level(logging.WARNING):
        config = config_from_dict({"clock": {"bogus": 1}, "nonsense": True})
    assert config == SimulationConfig()
    assert "config.clock.bogus" in caplog.text
    assert "config.nonsense" in caplog.text


def test_missing_file_raises(tmp_path):
    with pytest.raises(ConfigError):
        load_config(tmp_path / "missing.yaml")


def test_malformed_yaml_raises(tmp_path):
    path = tmp_path / "broken.yaml"
    path.write_text("clock: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(path)


def test_top_level_must_be_a_mapping(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- 1\n- 2\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(path)
