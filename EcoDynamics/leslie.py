"""
Age-structured (Leslie matrix) population projection.

A Leslie matrix has the per-class fecundities in its first row and the
per-class survival probabilities on its sub-diagonal; every other entry is
zero. Its dominant eigenvalue is the asymptotic growth rate and the matching
eigenvector, scaled to sum to one, is the stable age distribution.

Reference:
    Leslie, P.H., "On the use of matrices in certain population mathematics"
    Biometrika 33 (3): 183-212 (1945)
"""

import numbers

import numpy as np
from typing import Sequence, Tuple, Union

from .core import Trajectory
from .errors import ConfigurationError, DomainError


def build_leslie_matrix(fecundities: Sequence[float], survivals: Sequence[float]) -> np.ndarray:
    """
    Assemble a Leslie matrix for n age classes.

    Args:
        fecundities: Offspring per individual in each of the n classes
        survivals: Probability of surviving from class i to class i+1 (n-1 values)

    Returns:
        Array of shape (n, n)

    Example:
        >>> build_leslie_matrix([0, 8, 1], [0.4, 0.8])
        array([[0. , 8. , 1. ],
               [0.4, 0. , 0. ],
               [0. , 0.8, 0. ]])
    """
    fecundities = np.asarray(fecundities, dtype=float)
    survivals = np.asarray(survivals, dtype=float)
    n = len(fecundities)

    if fecundities.ndim != 1 or n == 0:
        raise ConfigurationError("fecundities must be a non-empty 1-D sequence")
    if survivals.shape != (n - 1,):
        raise ConfigurationError(f"Expected {n - 1} survival probabilities for {n} age classes, got {survivals.size}")
    if not (np.all(np.isfinite(fecundities)) and np.all(np.isfinite(survivals))):
        raise ConfigurationError("Fecundities and survivals must be finite")
    if np.any(fecundities < 0) or np.any(survivals < 0):
        raise ConfigurationError("Fecundities and survivals must be non-negative")
    if np.any(survivals > 1):
        raise ConfigurationError("Survival probabilities cannot exceed 1")

    matrix = np.zeros((n, n))
    matrix[0, :] = fecundities
    matrix[np.arange(1, n), np.arange(n - 1)] = survivals
    return matrix


def validate_leslie_matrix(matrix, check_structure: bool = True) -> np.ndarray:
    """
    Check that ``matrix`` is a square, finite, non-negative Leslie matrix.

    :param check_structure: Also require zeros outside the first row and the
                            sub-diagonal.
    :return: The matrix as a float array.
    """
    matrix = np.array(matrix, dtype=float)
    if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1] or matrix.shape[0] == 0:
        raise ConfigurationError(f"A Leslie matrix must be square, got shape {matrix.shape}")
    if not np.all(np.isfinite(matrix)):
        raise ConfigurationError("Leslie matrix entries must be finite")
    if np.any(matrix < 0):
        raise ConfigurationError("Leslie matrix entries must be non-negative")

    if check_structure:
        n = matrix.shape[0]
        mask = np.ones((n, n), dtype=bool)
        mask[0, :] = False
        mask[np.arange(1, n), np.arange(n - 1)] = False
        if np.any(matrix[mask] != 0):
            raise ConfigurationError("Leslie matrix may only have fecundities in row 0 and survivals on the sub-diagonal")
    return matrix


def _validate_vector(matrix: np.ndarray, state) -> np.ndarray:
    state = np.array(state, dtype=float)
    if state.shape != (matrix.shape[0],):
        raise ConfigurationError(f"Age distribution must have {matrix.shape[0]} entries, got shape {state.shape}")
    if not np.all(np.isfinite(state)) or np.any(state < 0):
        raise ConfigurationError("Age distribution must be finite and non-negative")
    return state


def project(matrix: np.ndarray, state: np.ndarray) -> np.ndarray:
    """One time step of age-structured projection, n(t+1) = L n(t)."""
    return matrix @ state


def age_class_names(n: int) -> Tuple[str, ...]:
    return tuple(f'N{i + 1}' for i in range(n))


def leslie_project(matrix, init_vector, n_steps: int) -> Trajectory:
    """
    Project an age distribution forward ``n_steps`` time steps.

    Returns:
        Trajectory with times 0..n_steps and one compartment per age class
        ('N1', 'N2', ...)
    """
    matrix = validate_leslie_matrix(matrix)
    state = _validate_vector(matrix, init_vector)
    if isinstance(n_steps, bool) or not isinstance(n_steps, numbers.Integral) or n_steps < 0:
        raise ConfigurationError(f"n_steps must be a non-negative integer, got {n_steps!r}")

    states = np.empty((int(n_steps) + 1, len(state)))
    states[0] = state
    for step in range(int(n_steps)):
        state = project(matrix, state)
        states[step + 1] = state

    return Trajectory(np.arange(int(n_steps) + 1), states, age_class_names(len(state)), model_id='leslie')


def dominant_eigen(matrix) -> Tuple[Union[float, complex], np.ndarray]:
    """
    Eigenvalue of largest modulus and its eigenvector scaled to sum to one.

    When several eigenvalues share the largest modulus the one with the
    largest real part is chosen; for a primitive non-negative matrix this is
    the positive Perron-Frobenius root. Results are returned as real numbers
    whenever their imaginary parts vanish to round-off.

    Raises:
        DomainError: If the eigenvector sums to zero and cannot be normalized
    """
    matrix = np.asarray(matrix, dtype=float)
    values, vectors = np.linalg.eig(matrix)

    moduli = np.abs(values)
    ties = np.flatnonzero(np.isclose(moduli, moduli.max(), rtol=1e-9, atol=1e-12))
    index = ties[np.argmax(values[ties].real)]

    value = values[index]
    vector = vectors[:, index]
    total = vector.sum()
    if np.abs(total) < 1e-12:
        raise DomainError("Dominant eigenvector sums to zero; no proportional age structure")
    vector = vector / total

    scale = max(1.0, abs(value))
    if abs(value.imag) <= 1e-12 * scale and np.all(np.abs(vector.imag) <= 1e-12):
        return float(value.real), vector.real
    return complex(value), vector


def leslie_eigen(matrix) -> Tuple[Union[float, complex], np.ndarray]:
    """
    Asymptotic growth rate and stable age distribution of a Leslie matrix.

    lambda > 1: growing, lambda = 1: stationary, lambda < 1: declining.

    Example:
        >>> lam, v = leslie_eigen([[0, 8, 1], [0.4, 0, 0], [0, 0.8, 0]])
    """
    return dominant_eigen(validate_leslie_matrix(matrix))


def net_reproductive_rate(matrix) -> float:
    """
    Expected lifetime offspring of a newborn, R0 = sum_x F_x * l_x.

    l_x is survivorship to class x: the product of the sub-diagonal entries
    up to x (l_0 = 1). R0 > 1 exactly when the dominant eigenvalue exceeds 1.
    """
    matrix = validate_leslie_matrix(matrix)
    n = matrix.shape[0]
    survivals = matrix[np.arange(1, n), np.arange(n - 1)]
    survivorship = np.concatenate([[1.0], np.cumprod(survivals)])
    return float(np.sum(matrix[0] * survivorship))
