"""
Plotting functions for EcoDynamics results.

These functions only draw what the numerical modules have already computed:
trajectories, phase-plane vector fields and bifurcation diagrams.
"""

import numpy as np
import matplotlib.pyplot as plt
from typing import Optional, Sequence

from .core import Trajectory
from .phase_plane import VectorField


def _get_axes(ax):
    if ax is None:
        _, ax = plt.subplots(figsize=(8, 5))
    return ax


def plot_trajectory(trajectory: Trajectory, names: Optional[Sequence[str]] = None,
                    ax=None, discrete: bool = False, title: Optional[str] = None):
    """
    Plot each compartment of a trajectory against time.

    :param names: Compartments to draw (default: all).
    :param discrete: Draw markers at each time step, as for map iterations.
    :return: The matplotlib Axes.
    """
    ax = _get_axes(ax)
    names = trajectory.names if names is None else names
    style = 'o-' if discrete else '-'

    for name in names:
        ax.plot(trajectory.times, trajectory[name], style, label=name,
                markersize=3, linewidth=1.5)

    ax.set_xlabel('Generation' if discrete else 'Time')
    ax.set_ylabel('Population size')
    if title:
        ax.set_title(title)
    ax.grid(True, alpha=0.3)
    ax.legend(loc='best', fontsize=9)
    return ax


def plot_phase_plane(trajectory: Trajectory, field: Optional[VectorField] = None,
                     axes: Optional[Sequence[str]] = None, ax=None,
                     title: Optional[str] = None):
    """
    Plot a trajectory in the plane of two compartments, with optional arrows.

    When a VectorField is given its axes take precedence over ``axes``.
    """
    ax = _get_axes(ax)
    if field is not None:
        axes = field.axes
    elif axes is None:
        axes = trajectory.names[:2]
    x_name, y_name = axes

    if field is not None:
        d = field.derivatives
        ax.quiver(field.starts[:, 0], field.starts[:, 1], d[:, 0], d[:, 1],
                  angles='xy', color='gray', alpha=0.6, width=0.003)
        ax.set_xlim(field.window[0, 0], field.window[1, 0])
        ax.set_ylim(field.window[0, 1], field.window[1, 1])

    x, y = trajectory[x_name], trajectory[y_name]
    ax.plot(x, y, color='tab:blue', linewidth=1.5)
    # Start and end markers
    ax.scatter([x[0]], [y[0]], color='tab:green', s=60, marker='o', zorder=3, label='start')
    ax.scatter([x[-1]], [y[-1]], color='tab:red', s=60, marker='s', zorder=3, label='end')

    ax.set_xlabel(x_name)
    ax.set_ylabel(y_name)
    if title:
        ax.set_title(title)
    ax.grid(True, alpha=0.3)
    ax.legend(loc='best', fontsize=9)
    return ax


def plot_bifurcation(parameter_values: np.ndarray, states: np.ndarray,
                     param_name: str = 'parameter', ax=None,
                     title: Optional[str] = None):
    """Scatter the long-run states returned by ``bifurcation_diagram``."""
    ax = _get_axes(ax)
    ax.scatter(parameter_values, states, s=0.5, color='black', alpha=0.5)
    ax.set_xlabel(param_name)
    ax.set_ylabel('Population size')
    if title:
        ax.set_title(title)
    return ax


def save_figure(fig, output_path: str, dpi: int = 150):
    fig.savefig(output_path, dpi=dpi, bbox_inches='tight')
    plt.close(fig)
