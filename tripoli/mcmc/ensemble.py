"""
Append-only store of accepted chain states.

Records are appended only after an accept decision is committed, and the
store never mutates or removes a record, so readers (the covariance
estimator, posterior summaries) always see whole states.
"""

from collections import abc
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from tripoli.core.exceptions import ConfigurationError
from tripoli.mcmc.covariance import stack_records
from tripoli.mcmc.parameters import EnsembleRecord, ParameterLayout, ParameterVector
from tripoli.mcmc.result_base import ResultTableMixin, StatisticsMixin


class EnsembleStore(abc.Sequence):
    """
    Ordered, append-only sequence of :class:`EnsembleRecord`.

    Example
    -------
    >>> store = EnsembleStore()
    >>> store.append_state(state)
    >>> estimate = recompute_mean_covariance(store, burn_in=0)
    """

    def __init__(self, records: Optional[Sequence[EnsembleRecord]] = None):
        self._records: List[EnsembleRecord] = list(records or [])

    def __getitem__(self, index: Union[int, slice]):
        if isinstance(index, slice):
            return list(self._records[index])
        return self._records[index]

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[EnsembleRecord]:
        return iter(self._records)

    def append(self, record: EnsembleRecord) -> None:
        if not isinstance(record, EnsembleRecord):
            raise TypeError(f"Expected EnsembleRecord, got {type(record).__name__}")
        self._records.append(record)

    def append_state(self, state: ParameterVector) -> EnsembleRecord:
        """Snapshot an accepted state and append it."""
        record = EnsembleRecord.from_vector(state)
        self.append(record)
        return record

    def to_array(self, burn_in: int = 0) -> np.ndarray:
        """Records from ``burn_in`` on as an (observations x parameters) array."""
        records = self._records[burn_in:]
        if not records:
            return np.empty((0, 0))
        return stack_records(records)

    def to_dataframe(self, layout: ParameterLayout, burn_in: int = 0) -> pd.DataFrame:
        """
        Records as a DataFrame with one labelled column per model parameter.

        The index is the record's position in the ensemble.
        """
        labels = list(layout.column_labels())
        samples = self.to_array(burn_in)
        if samples.size == 0:
            return pd.DataFrame(columns=labels)
        if samples.shape[1] != len(labels):
            raise ConfigurationError(
                "Layout does not match ensemble records",
                {"columns": len(labels), "record_width": samples.shape[1]},
            )
        index = pd.RangeIndex(burn_in, burn_in + len(samples), name="record")
        return pd.DataFrame(samples, columns=labels, index=index)

    def summarize(self, layout: ParameterLayout, burn_in: int = 0) -> "EnsembleSummary":
        """Posterior summary of the records after ``burn_in``."""
        frame = self.to_dataframe(layout, burn_in)
        if len(frame) < 2:
            raise ConfigurationError(
                "At least 2 ensemble records are required to summarize",
                {"records": len(frame), "burn_in": burn_in},
            )
        return EnsembleSummary.from_dataframe(frame)


@dataclass
class EnsembleSummary(ResultTableMixin, StatisticsMixin):
    """
    Posterior summary of the accepted ensemble.

    Attributes
    ----------
    mean : dict
        Column label -> posterior mean
    std : dict
        Column label -> posterior standard deviation (N-1)
    ci_95 : dict
        Column label -> (2.5%, 97.5%) interval
    n_samples : int
        Number of records summarized
    """

    mean: Dict[str, float]
    std: Dict[str, float]
    ci_95: Dict[str, Tuple[float, float]]
    n_samples: int

    @classmethod
    def from_dataframe(cls, frame: pd.DataFrame) -> "EnsembleSummary":
        mean = {col: float(v) for col, v in frame.mean(axis=0).items()}
        std = {col: float(v) for col, v in frame.std(axis=0, ddof=1).items()}
        ci_95 = {col: cls.compute_ci(frame[col].to_numpy()) for col in frame.columns}
        return cls(mean=mean, std=std, ci_95=ci_95, n_samples=len(frame))

    def summary_table(self) -> str:
        lines = [self._format_header(f"Ensemble Summary ({self.n_samples} samples)")]
        lines.append(f"{'Parameter':<20} {'Mean':>12} {'Std':>12} {'95% CI':>22}")
        lines.append(self._format_separator())
        for label, mean in self.mean.items():
            lines.append(self._format_param_row(label, mean, self.std[label], self.ci_95[label]))
        lines.append(self._format_footer())
        return "\n".join(lines)
