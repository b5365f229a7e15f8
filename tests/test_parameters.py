"""
Tests for parameter layout and parameter vectors.
"""

import pytest
import numpy as np

from tripoli.core.exceptions import ConfigurationError
from tripoli.mcmc.parameters import (
    EnsembleRecord,
    ParameterCategory,
    ParameterLayout,
)


class TestParameterLayout:
    """Tests for segment arithmetic over the operation-index space."""

    def test_counts(self, layout):
        """Test model and total parameter counts."""
        assert layout.total_model_parameters == 18
        assert layout.total_variables == 22

    def test_segments(self, layout):
        """Test category segments of the flat layout."""
        assert layout.segment(ParameterCategory.LOG_RATIO) == slice(0, 3)
        assert layout.segment(ParameterCategory.INTENSITY) == slice(3, 13)
        assert layout.segment(ParameterCategory.BASELINE) == slice(13, 17)
        assert layout.segment(ParameterCategory.GAIN) == slice(17, 18)
        assert layout.segment(ParameterCategory.NOISE) == slice(18, 22)

    @pytest.mark.parametrize(
        "index,category,position",
        [
            (0, ParameterCategory.LOG_RATIO, 0),
            (2, ParameterCategory.LOG_RATIO, 2),
            (3, ParameterCategory.INTENSITY, 0),
            (5, ParameterCategory.INTENSITY, 2),
            (12, ParameterCategory.INTENSITY, 9),
            (13, ParameterCategory.BASELINE, 0),
            (16, ParameterCategory.BASELINE, 3),
            (17, ParameterCategory.GAIN, 0),
            (18, ParameterCategory.NOISE, 0),
            (20, ParameterCategory.NOISE, 2),
            (21, ParameterCategory.NOISE, 3),
        ],
    )
    def test_locate(self, layout, index, category, position):
        """Test index to category lookup."""
        assert layout.locate(index) == (category, position)

    @pytest.mark.parametrize("index", [-1, 22, 100])
    def test_locate_out_of_range(self, layout, index):
        """Test out-of-range indices are rejected."""
        with pytest.raises(ConfigurationError, match="out of range"):
            layout.locate(index)

    def test_every_index_has_one_category(self, layout):
        """Test every index maps to exactly one category."""
        categories = [layout.category_of(i) for i in range(layout.total_variables)]
        assert categories.count(ParameterCategory.GAIN) == 1
        assert categories.count(ParameterCategory.NOISE) == 4

    def test_requires_log_ratio(self):
        """Test a layout needs at least one log-ratio."""
        with pytest.raises(ConfigurationError):
            ParameterLayout(log_ratio_count=0, cycle_count=1, faraday_count=1, noise_count=1)

    def test_rejects_negative_counts(self):
        """Test negative counts are rejected."""
        with pytest.raises(ConfigurationError):
            ParameterLayout(log_ratio_count=1, cycle_count=-1, faraday_count=1, noise_count=1)

    def test_empty_segments_allowed(self):
        """Test layouts with empty segments."""
        layout = ParameterLayout(log_ratio_count=1, cycle_count=0, faraday_count=0, noise_count=0)
        assert layout.total_variables == 2
        assert layout.category_of(1) is ParameterCategory.GAIN

    def test_column_labels(self, layout):
        """Test DataFrame column labels."""
        labels = layout.column_labels()
        assert len(labels) == 18
        assert labels[0] == "log_ratio_0"
        assert labels[3] == "intensity_0"
        assert labels[13] == "baseline_0"
        assert labels[-1] == "gain"

    def test_operation_labels(self):
        """Test operation labels per category."""
        assert ParameterCategory.LOG_RATIO.operation == "changer"
        assert ParameterCategory.INTENSITY.operation == "changeI"
        assert ParameterCategory.BASELINE.operation == "changebl"
        assert ParameterCategory.GAIN.operation == "changedfg"
        assert ParameterCategory.NOISE.operation == "noise"
        assert not ParameterCategory.NOISE.is_model_parameter


class TestParameterVector:
    """Tests for immutable parameter snapshots."""

    def test_layout_from_vector(self, state, layout):
        """Test layout derived from a state."""
        assert state.layout == layout

    def test_model_parameters_order(self, state):
        """Test flat model parameter order."""
        flat = state.model_parameters()
        assert len(flat) == 18
        np.testing.assert_array_equal(flat[:3], state.log_ratios)
        np.testing.assert_array_equal(flat[3:13], state.intensities)
        np.testing.assert_array_equal(flat[13:17], state.baseline_means)
        assert flat[17] == state.detector_gain

    def test_arrays_are_read_only(self, state):
        """Test state arrays cannot be written."""
        with pytest.raises(ValueError):
            state.log_ratios[0] = 1.0
        with pytest.raises(ValueError):
            state.signal_noise_sigma[0] = 1.0
        with pytest.raises(ValueError):
            state.data[0] = 1.0

    def test_fields_cannot_be_reassigned(self, state):
        """Test state fields are frozen."""
        with pytest.raises(AttributeError):
            state.detector_gain = 2.0

    def test_construction_copies_input(self, make_state):
        """Test construction copies parameter arrays."""
        log_ratios = np.array([0.1, 0.2, 0.3])
        state = make_state(log_ratios=log_ratios)
        log_ratios[0] = 99.0
        assert state.log_ratios[0] == 0.1

    def test_with_model_parameters_round_trip(self, state):
        """Test replacing model parameters."""
        flat = state.model_parameters()
        flat[5] += 1.0
        updated = state.with_model_parameters(flat)

        assert updated is not state
        assert updated.intensities[2] == state.intensities[2] + 1.0
        np.testing.assert_array_equal(updated.signal_noise_sigma, state.signal_noise_sigma)
        np.testing.assert_array_equal(updated.baseline_stds, state.baseline_stds)
        assert updated.detector_to_faraday_index == state.detector_to_faraday_index
        # original untouched
        assert state.model_parameters()[5] == flat[5] - 1.0

    def test_data_arrays_shared(self, state):
        """Test data arrays are shared between snapshots."""
        updated = state.with_model_parameters(state.model_parameters())
        assert np.shares_memory(updated.data, state.data)

    def test_with_model_parameters_wrong_length(self, state):
        """Test wrong-length model parameters are rejected."""
        with pytest.raises(ConfigurationError):
            state.with_model_parameters(np.zeros(5))

    def test_with_signal_noise_sigma(self, state):
        """Test replacing noise sigmas."""
        updated = state.with_signal_noise_sigma([2.0, 2.0, 2.0, 2.0])
        np.testing.assert_array_equal(updated.signal_noise_sigma, [2.0] * 4)
        np.testing.assert_array_equal(updated.model_parameters(), state.model_parameters())

    def test_with_signal_noise_sigma_wrong_length(self, state):
        """Test wrong-length noise sigmas are rejected."""
        with pytest.raises(ConfigurationError):
            state.with_signal_noise_sigma([1.0])

    def test_baseline_stds_must_match(self, make_state):
        """Test baseline stds must match baseline means."""
        from tripoli.mcmc.parameters import ParameterVector

        with pytest.raises(ConfigurationError):
            ParameterVector(
                log_ratios=[0.1],
                intensities=[1.0],
                baseline_means=[0.0, 0.0],
                baseline_stds=[0.1],
                detector_gain=1.0,
                signal_noise_sigma=[1.0],
            )

    def test_faraday_count_must_match_baselines(self):
        """Test a Faraday count disagreeing with the baselines is rejected."""
        from tripoli.mcmc.parameters import ParameterVector

        with pytest.raises(ConfigurationError, match="faraday_count"):
            ParameterVector(
                log_ratios=[0.1],
                intensities=[1.0],
                baseline_means=[0.0, 0.0],
                baseline_stds=[0.1, 0.1],
                detector_gain=1.0,
                signal_noise_sigma=[1.0],
                faraday_count=3,
            )

    def test_faraday_count_zero_means_unset(self):
        """Test a zero Faraday count skips the baseline check."""
        from tripoli.mcmc.parameters import ParameterVector

        state = ParameterVector(
            log_ratios=[0.1],
            intensities=[1.0],
            baseline_means=[0.0, 0.0],
            baseline_stds=[],
            detector_gain=1.0,
            signal_noise_sigma=[1.0],
        )
        assert state.layout.faraday_count == 2


class TestEnsembleRecord:
    def test_from_vector(self, state):
        """Test record creation from a state."""
        record = EnsembleRecord.from_vector(state)
        np.testing.assert_array_equal(record.as_array(), state.model_parameters())

    def test_excludes_noise(self, state):
        """Test records hold model parameters only."""
        record = EnsembleRecord.from_vector(state)
        assert len(record.as_array()) == state.layout.total_model_parameters

    def test_read_only(self, state):
        """Test record values cannot be written."""
        record = EnsembleRecord.from_vector(state)
        with pytest.raises(ValueError):
            record.intensities[0] = 0.0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
