import numpy as np
from typing import Dict, Sequence, Tuple, Optional

from .errors import ConfigurationError


class Trajectory:
    """
    A simulated time series: an ordered sequence of (time, state) samples.

    Times are strictly increasing. States are stored as an array of shape
    (n_times, n_compartments) whose columns follow ``names``. Both arrays are
    read-only; a Trajectory never changes after construction.
    """

    def __init__(self, times: Sequence[float], states: np.ndarray,
                 names: Sequence[str], model_id: Optional[str] = None):
        """
        :param times: Sample times, strictly increasing.
        :param states: Array of shape (n_times, n_compartments).
        :param names: Compartment names, one per column of ``states``.
        :param model_id: Id of the model that produced the samples.
        """
        times = np.array(times, dtype=float)
        states = np.array(states, dtype=float)
        if states.ndim == 1:
            states = states[:, np.newaxis]

        if times.ndim != 1 or len(times) == 0:
            raise ConfigurationError("Trajectory needs a non-empty 1-D time vector")
        if states.shape != (len(times), len(names)):
            raise ConfigurationError(
                f"States of shape {states.shape} do not match {len(times)} times "
                f"and compartments {list(names)}"
            )
        if np.any(np.diff(times) <= 0):
            raise ConfigurationError("Trajectory times must be strictly increasing")

        times.setflags(write=False)
        states.setflags(write=False)
        self._times = times
        self._states = states
        self._names = tuple(names)
        self.model_id = model_id

    @property
    def times(self) -> np.ndarray:
        return self._times

    @property
    def states(self) -> np.ndarray:
        return self._states

    @property
    def names(self) -> Tuple[str, ...]:
        return self._names

    def __len__(self) -> int:
        return len(self._times)

    def __getitem__(self, name: str) -> np.ndarray:
        """Return the time series of one compartment."""
        try:
            column = self._names.index(name)
        except ValueError:
            raise KeyError(f"Unknown compartment '{name}'; trajectory has {list(self._names)}") from None
        return self._states[:, column]

    def __iter__(self):
        """Iterate over (time, state-dict) samples."""
        for i in range(len(self)):
            yield self._times[i], self.state_at(i)

    def __repr__(self) -> str:
        return (f"Trajectory(model_id={self.model_id!r}, names={list(self._names)}, "
                f"n_times={len(self)}, t=[{self._times[0]}, {self._times[-1]}])")

    def state_at(self, index: int) -> Dict[str, float]:
        return {name: float(v) for name, v in zip(self._names, self._states[index])}

    def final_state(self) -> Dict[str, float]:
        return self.state_at(-1)

    def as_dict(self) -> Dict[str, np.ndarray]:
        """Column view suitable for building a table: {'time': ..., name: ...}."""
        columns = {'time': self._times}
        for name in self._names:
            columns[name] = self[name]
        return columns

    def bounds(self, names: Optional[Sequence[str]] = None) -> np.ndarray:
        """
        Observed range of the given compartments.

        :return: Array of shape (2, D) with rows [min, max].
        """
        names = self._names if names is None else tuple(names)
        columns = np.column_stack([self[name] for name in names])
        return np.array([columns.min(axis=0), columns.max(axis=0)])
