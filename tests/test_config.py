"""
Tests for configuration management module.
"""

import pytest
import tempfile
from pathlib import Path
import json

from tripoli.core.config import (
    load_config,
    save_config,
    validate_mcmc_config,
)
from tripoli.core.exceptions import ConfigurationError


def test_load_config_yaml(temp_config_file):
    """Test loading YAML configuration."""
    config = load_config(temp_config_file)
    assert "mcmc" in config
    assert config["mcmc"]["max_iterations"] == 200
    assert config["mcmc"]["prior"]["gain"] == [0.5, 1.5]


def test_load_config_json(sample_config_dict):
    """Test loading JSON configuration."""
    config_fd, config_path = tempfile.mkstemp(suffix=".json")

    try:
        with open(config_path, "w") as f:
            json.dump(sample_config_dict, f)

        config = load_config(config_path)
        assert config["mcmc"]["psig"]["log_ratio"] == 0.1
    finally:
        Path(config_path).unlink()


def test_load_config_not_found():
    """Test loading non-existent config file."""
    with pytest.raises(FileNotFoundError):
        load_config("nonexistent.yaml")


def test_load_config_invalid_format():
    """Test loading invalid file format."""
    config_fd, config_path = tempfile.mkstemp(suffix=".txt")

    try:
        with open(config_path, "w") as f:
            f.write("not yaml or json")

        with pytest.raises(ValueError, match="Unsupported config file format"):
            load_config(config_path)
    finally:
        Path(config_path).unlink()


def test_save_config_yaml(sample_config_dict, tmp_path):
    """Test saving YAML configuration."""
    config_path = tmp_path / "settings.yaml"
    save_config(sample_config_dict, config_path)
    assert config_path.exists()

    loaded = load_config(config_path)
    assert loaded == sample_config_dict


def test_save_config_json(sample_config_dict, tmp_path):
    """Test saving JSON configuration."""
    config_path = tmp_path / "settings.json"
    save_config(sample_config_dict, config_path)

    with open(config_path) as f:
        assert json.load(f) == sample_config_dict


def test_save_config_unknown_suffix_writes_yaml(sample_config_dict, tmp_path):
    """Test that an unknown suffix is written as YAML."""
    save_config(sample_config_dict, tmp_path / "settings.cfg")
    assert (tmp_path / "settings.yaml").exists()


def test_validate_mcmc_config_valid(sample_config_dict):
    """Test validation of a complete MCMC section."""
    assert validate_mcmc_config(sample_config_dict) is True


def test_validate_mcmc_config_missing_section():
    """Test that a missing mcmc section is rejected."""
    with pytest.raises(ConfigurationError, match="'mcmc' section"):
        validate_mcmc_config({"other": {}})


def test_validate_mcmc_config_missing_fields():
    """Test that missing required fields are reported."""
    with pytest.raises(ConfigurationError) as excinfo:
        validate_mcmc_config({"mcmc": {}})
    message = str(excinfo.value)
    assert "max_iterations" in message
    assert "psig" in message
    assert "prior" in message


def test_validate_mcmc_config_collects_errors(sample_config_dict):
    """Test that all problems are reported in one error."""
    mcmc = sample_config_dict["mcmc"]
    mcmc["max_iterations"] = 0
    mcmc["burn_in"] = -1
    del mcmc["psig"]["gain"]
    mcmc["prior"]["noise"] = [5.0, 1.0]

    with pytest.raises(ConfigurationError) as excinfo:
        validate_mcmc_config(sample_config_dict)
    message = str(excinfo.value)
    assert "max_iterations must be > 0" in message
    assert "burn_in must be >= 0" in message
    assert "psig missing step size for 'gain'" in message
    assert "prior['noise'] has min > max" in message


def test_validate_mcmc_config_non_numeric_values_collected(sample_config_dict):
    """Test that non-numeric values are reported alongside other errors."""
    mcmc = sample_config_dict["mcmc"]
    mcmc["max_iterations"] = "many"
    mcmc["burn_in"] = -1
    mcmc["psig"]["gain"] = "wide"
    mcmc["prior"]["intensity"] = [0.0, "high"]

    with pytest.raises(ConfigurationError) as excinfo:
        validate_mcmc_config(sample_config_dict)
    message = str(excinfo.value)
    assert "max_iterations must be numeric" in message
    assert "burn_in must be >= 0" in message
    assert "psig['gain'] must be numeric" in message
    assert "prior['intensity'] max must be numeric" in message


def test_validate_mcmc_config_bad_prior_shape(sample_config_dict):
    """Test that a prior range must be a pair."""
    sample_config_dict["mcmc"]["prior"]["baseline"] = [0.0]
    with pytest.raises(ConfigurationError, match=r"must be \[min, max\]"):
        validate_mcmc_config(sample_config_dict)


def test_configuration_error_is_value_error():
    """Test ConfigurationError is also a ValueError."""
    assert issubclass(ConfigurationError, ValueError)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
