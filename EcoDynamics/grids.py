import numpy as np
from typing import Sequence

# Asymmetric padding of the phase-plane window: arrows should reach a little
# beyond the trajectory, mostly in the direction of growth.
LOW_FACTOR = 0.9
HIGH_FACTOR = 1.4
DEGENERATE_PAD = 1.0


def padded_bounds(bounds: np.ndarray,
                  low_factor: float = LOW_FACTOR,
                  high_factor: float = HIGH_FACTOR,
                  degenerate_pad: float = DEGENERATE_PAD) -> np.ndarray:
    """
    Expand an observed [min, max] box into a sampling window.

    Non-negative bounds are multiplied by ``low_factor`` and ``high_factor``;
    in general the lower bound moves down by (1 - low_factor)*|min| and the
    upper bound up by (high_factor - 1)*|max|. An axis with min == max is
    widened by ``degenerate_pad`` on both sides instead (and not below zero
    when the observed value is non-negative), so the window never collapses
    to a line.

    :param bounds: Array of shape (2, D) with rows [min, max].
    :return: Array of shape (2, D) with the padded window.
    """
    bounds = np.array(bounds, dtype=float)
    low, high = bounds[0].copy(), bounds[1].copy()

    for d in range(bounds.shape[1]):
        if low[d] == high[d]:
            value = low[d]
            low[d] = value - degenerate_pad
            if value >= 0:
                low[d] = max(low[d], 0.0)
            high[d] = value + degenerate_pad
        else:
            low[d] = low[d] - (1 - low_factor) * abs(low[d])
            high[d] = high[d] + (high_factor - 1) * abs(high[d])

    return np.array([low, high])


class UniformGrid:
    """
    A regular lattice of points on a rectangular domain.

    Unlike a box partition, the lattice includes the domain boundaries: along
    an axis with n divisions the points are ``np.linspace(lower, upper, n)``.
    """

    def __init__(self, bounds: np.ndarray, divisions: Sequence[int]):
        """
        :param bounds: A numpy array of shape (2, D) defining the rectangular
                       domain, where D is the dimension.
        :param divisions: Number of points along each axis (at least 1).
        """
        self.bounds = np.array(bounds, dtype=float)
        self.divisions = np.array(divisions).astype(int)
        self.dim = self.bounds.shape[1]

        if self.divisions.shape != (self.dim,):
            raise ValueError(f"divisions must have shape ({self.dim},), got {self.divisions.shape}")
        if np.any(self.divisions < 1):
            raise ValueError("Each axis needs at least one grid point")
        if np.any(self.bounds[1] < self.bounds[0]):
            raise ValueError("Upper bounds must not be below lower bounds")

        self.axes = [np.linspace(lo, hi, n)
                     for lo, hi, n in zip(self.bounds[0], self.bounds[1], self.divisions)]
        self._points = self._create_points()

    def _create_points(self) -> np.ndarray:
        """Cartesian product of the axis coordinates, first axis varying slowest."""
        mesh = np.meshgrid(*self.axes, indexing='ij')
        return np.stack([m.ravel() for m in mesh], axis=1)

    @property
    def spacing(self) -> np.ndarray:
        """Distance between neighbouring points along each axis (0 for single-point axes)."""
        return np.where(self.divisions > 1,
                        (self.bounds[1] - self.bounds[0]) / np.maximum(self.divisions - 1, 1),
                        0.0)

    def get_points(self) -> np.ndarray:
        """
        Return all lattice points.

        :return: A numpy array of shape (N, D), N = prod(divisions).
        """
        return self._points

    def __len__(self) -> int:
        return len(self._points)
