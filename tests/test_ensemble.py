"""
Tests for the append-only ensemble store and posterior summaries.
"""

import pytest
import numpy as np
import pandas as pd

from tripoli.core.exceptions import ConfigurationError
from tripoli.mcmc.covariance import recompute_mean_covariance
from tripoli.mcmc.ensemble import EnsembleStore, EnsembleSummary
from tripoli.mcmc.parameters import EnsembleRecord


class TestEnsembleStore:
    def test_append_state(self, state):
        """Test appending a state snapshot."""
        store = EnsembleStore()
        record = store.append_state(state)

        assert len(store) == 1
        assert store[0] is record
        np.testing.assert_array_equal(record.as_array(), state.model_parameters())

    def test_append_rejects_other_types(self, state):
        """Test that only ensemble records can be appended."""
        store = EnsembleStore()
        with pytest.raises(TypeError):
            store.append(state)

    def test_slicing_returns_list(self, make_ensemble):
        """Test slicing the store."""
        store = EnsembleStore(make_ensemble(5))
        tail = store[2:]
        assert isinstance(tail, list)
        assert len(tail) == 3

    def test_iteration_order(self, make_ensemble):
        """Test records iterate in append order."""
        records = make_ensemble(4)
        store = EnsembleStore(records)
        assert list(store) == records

    def test_feeds_covariance_estimator(self, make_ensemble):
        """Test the store works as covariance history."""
        records = make_ensemble(20)
        store = EnsembleStore(records)

        from_store = recompute_mean_covariance(store, 3)
        from_list = recompute_mean_covariance(records, 3)

        np.testing.assert_array_equal(from_store.covariance, from_list.covariance)

    def test_to_array(self, make_ensemble):
        """Test conversion to a sample array."""
        store = EnsembleStore(make_ensemble(6))
        assert store.to_array().shape == (6, 18)
        assert store.to_array(burn_in=4).shape == (2, 18)
        assert store.to_array(burn_in=10).size == 0

    def test_to_dataframe(self, make_ensemble, layout):
        """Test conversion to a labelled DataFrame."""
        store = EnsembleStore(make_ensemble(6))
        frame = store.to_dataframe(layout, burn_in=2)

        assert isinstance(frame, pd.DataFrame)
        assert list(frame.columns) == list(layout.column_labels())
        assert list(frame.index) == [2, 3, 4, 5]
        assert frame["gain"].iloc[0] == store[2].detector_gain

    def test_to_dataframe_empty(self, layout):
        """Test an empty store gives an empty DataFrame."""
        frame = EnsembleStore().to_dataframe(layout)
        assert frame.empty
        assert len(frame.columns) == 18

    def test_to_dataframe_layout_mismatch(self, make_ensemble):
        """Test a mismatched layout is rejected."""
        from tripoli.mcmc.parameters import ParameterLayout

        store = EnsembleStore(make_ensemble(3))
        with pytest.raises(ConfigurationError):
            store.to_dataframe(ParameterLayout(1, 1, 1, 1))


class TestEnsembleSummary:
    def test_summarize(self, make_ensemble, layout):
        """Test posterior summary statistics."""
        store = EnsembleStore(make_ensemble(200, scale=0.01))
        summary = store.summarize(layout)

        assert isinstance(summary, EnsembleSummary)
        assert summary.n_samples == 200
        assert summary.mean["log_ratio_0"] == pytest.approx(0.5, abs=0.005)
        assert summary.std["log_ratio_0"] == pytest.approx(0.01, rel=0.2)
        lower, upper = summary.ci_95["log_ratio_0"]
        assert lower < summary.mean["log_ratio_0"] < upper

    def test_summarize_requires_two(self, state, layout):
        """Test summarizing needs at least two records."""
        store = EnsembleStore([EnsembleRecord.from_vector(state)])
        with pytest.raises(ConfigurationError):
            store.summarize(layout)

    def test_summary_table(self, make_ensemble, layout):
        """Test ensemble summary table formatting."""
        summary = EnsembleStore(make_ensemble(10)).summarize(layout)
        table = summary.summary_table()

        assert "Ensemble Summary (10 samples)" in table
        assert "log_ratio_0" in table
        assert "gain" in table


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
