"""
Utility modules for EcoDynamics package.

- caching: memoization of simulation results
"""

from .caching import (
    compute_simulation_hash,
    SimulationCache,
)

__all__ = [
    'compute_simulation_hash',
    'SimulationCache',
]
