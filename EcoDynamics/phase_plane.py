"""
Phase-plane vector fields.

A vector field is sampled on a regular grid spanning a padded bounding box of
a simulated trajectory. Each grid point is paired with the point reached by
adding the instantaneous derivative, which is what an arrow plot draws.
"""

import numpy as np
from collections.abc import Mapping
from typing import Iterator, List, Optional, Sequence, Tuple

from .config import get_model_info, validate_parameters
from .core import Trajectory
from .errors import ConfigurationError
from .grids import UniformGrid, padded_bounds


class VectorField:
    """
    Arrows of a phase-plane plot as (start, end) pairs.

    Iterating over a VectorField yields ``(start, end)`` tuples of length-2
    arrays; the ``starts``, ``ends`` and ``derivatives`` arrays give the same
    data in a form suitable for ``matplotlib.pyplot.quiver``.
    """

    def __init__(self, starts: np.ndarray, ends: np.ndarray,
                 window: np.ndarray, axes: Tuple[str, str]):
        self.starts = starts
        self.ends = ends
        self.window = window
        self.axes = axes

    @property
    def derivatives(self) -> np.ndarray:
        return self.ends - self.starts

    def __len__(self) -> int:
        return len(self.starts)

    def __iter__(self) -> Iterator[Tuple[np.ndarray, np.ndarray]]:
        return iter(zip(self.starts, self.ends))

    def pairs(self) -> List[Tuple[np.ndarray, np.ndarray]]:
        return list(self)


def vector_field(
    model_id: str,
    trajectory: Trajectory,
    params: Mapping,
    grid_density: int = 20,
    axes: Optional[Sequence[str]] = None,
    t: float = 0.0,
    strict: bool = True
) -> VectorField:
    """
    Sample the instantaneous rates of a continuous model on a phase-plane grid.

    Args:
        model_id: Continuous model id
        trajectory: Simulated trajectory of that model; its range on the two
                    plotted compartments defines the sampling window
        params: Parameter mapping
        grid_density: Points per axis (an N x N grid)
        axes: The two compartments to plot. Defaults to the model's registered
              axes or its two compartments. Any other compartment is held at
              its final value along the trajectory.
        t: Time passed to the rate function
        strict: Reject parameters the model does not use

    Returns:
        VectorField with grid_density**2 arrows

    Example:
        >>> traj = simulate_continuous('lotka_volterra', (50, 0.1), {'H': 10, 'P': 5},
        ...                            {'r': 1, 'a': 0.1, 'e': 0.5, 'd': 0.5})
        >>> field = vector_field('lotka_volterra', traj, {'r': 1, 'a': 0.1, 'e': 0.5, 'd': 0.5})
        >>> len(field)
        400
    """
    info = get_model_info('continuous', model_id)
    params = validate_parameters('continuous', model_id, params, strict=strict)
    names = info['state']

    if trajectory.names != tuple(names):
        raise ConfigurationError(
            f"Trajectory compartments {list(trajectory.names)} do not match '{model_id}' {list(names)}"
        )
    axes = tuple(axes) if axes is not None else tuple(info.get('axes', names))
    if len(axes) != 2:
        raise ConfigurationError(f"A phase plane needs exactly two compartments, got {list(axes)}")
    unknown = [a for a in axes if a not in names]
    if unknown:
        raise ConfigurationError(f"Unknown compartment(s) {unknown}; expected {list(names)}")
    if int(grid_density) < 1:
        raise ConfigurationError(f"grid_density must be at least 1, got {grid_density}")

    window = padded_bounds(trajectory.bounds(axes))
    grid = UniformGrid(window, [int(grid_density)] * 2)

    columns = [names.index(a) for a in axes]
    base_state = np.array(trajectory.states[-1], dtype=float)
    rate_func = info['func']

    starts = grid.get_points()
    derivatives = np.empty_like(starts)
    for k, point in enumerate(starts):
        state = base_state.copy()
        state[columns] = point
        derivatives[k] = np.asarray(rate_func(t, state, params))[columns]

    return VectorField(starts, starts + derivatives, window, axes)
