"""
EcoDynamics: Numerical core for population-ecology teaching models.

This library simulates single-species, predator-prey, competition and
resource models in continuous and discrete time, samples phase-plane vector
fields, projects age-structured populations and computes closed-form
equilibria and isoclines.
"""

__version__ = "0.1.0"

# Core components
from .errors import (
    EcoDynamicsError,
    ConfigurationError,
    DomainError,
    IntegrationError,
    ConvergenceError
)
from .core import Trajectory
from .config import (
    list_models,
    get_model_info,
    get_default_parameters,
    get_default_initial_state,
    validate_parameters,
    load_scenario
)
from .simulation import (
    simulate_continuous,
    simulate_discrete,
    simulate_scenario,
    run_to_equilibrium,
    bifurcation_diagram
)
from .phase_plane import VectorField, vector_field
from .leslie import (
    build_leslie_matrix,
    leslie_project,
    leslie_eigen,
    net_reproductive_rate
)
from .analysis import (
    equilibria,
    stable_equilibrium,
    rstar,
    predator_prey_isoclines,
    competition_isoclines,
    island_equilibrium
)
from .utils import SimulationCache

# Utility modules
from . import systems
from . import utils

__all__ = [
    # Errors
    'EcoDynamicsError',
    'ConfigurationError',
    'DomainError',
    'IntegrationError',
    'ConvergenceError',
    # Core
    'Trajectory',
    'list_models',
    'get_model_info',
    'get_default_parameters',
    'get_default_initial_state',
    'validate_parameters',
    'load_scenario',
    # Simulation
    'simulate_continuous',
    'simulate_discrete',
    'simulate_scenario',
    'run_to_equilibrium',
    'bifurcation_diagram',
    'VectorField',
    'vector_field',
    'build_leslie_matrix',
    'leslie_project',
    'leslie_eigen',
    'net_reproductive_rate',
    # Analysis
    'equilibria',
    'stable_equilibrium',
    'rstar',
    'predator_prey_isoclines',
    'competition_isoclines',
    'island_equilibrium',
    'SimulationCache',
    # Modules
    'systems',
    'utils',
]
