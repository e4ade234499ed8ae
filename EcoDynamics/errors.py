"""
Exception types raised by EcoDynamics.

Model and analytic functions raise immediately on malformed input; the
calling layer is expected to catch these and report them to the user.
"""

import numpy as np


class EcoDynamicsError(Exception):
    """Base class for all EcoDynamics errors."""
    pass


class ConfigurationError(EcoDynamicsError):
    """A parameter or state key is missing, unknown, or not a finite number."""
    pass


class DomainError(EcoDynamicsError):
    """A closed-form quantity is undefined or not biologically meaningful."""
    pass


class IntegrationError(EcoDynamicsError):
    """
    The ODE solver could not reach the requested horizon.

    :param message: Description of the failure (usually the solver message).
    :param last_time: Last time point at which the solution was valid.
    :param last_state: State vector at ``last_time``.
    """

    def __init__(self, message: str, last_time: float, last_state=None):
        super().__init__(f"{message} (last valid time: {last_time})")
        self.last_time = float(last_time)
        self.last_state = None if last_state is None else np.asarray(last_state, dtype=float)


class ConvergenceError(EcoDynamicsError):
    """
    An iterative run-to-equilibrium loop exhausted its retry budget.

    :param message: Description of the failure.
    :param attempts: Number of horizon extensions tried.
    :param last_state: Final state of the longest simulation.
    :param target: Equilibrium the simulation was expected to reach.
    """

    def __init__(self, message: str, attempts: int, last_state=None, target=None):
        super().__init__(message)
        self.attempts = attempts
        self.last_state = last_state
        self.target = target
