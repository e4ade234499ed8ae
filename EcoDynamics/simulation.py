"""
Simulation drivers for continuous and discrete population models.

Continuous models are integrated with ``scipy.integrate.solve_ivp``; the
lagged logistic model is integrated by the method of steps, reading its
delayed density from the dense output of earlier lag intervals. Discrete
models are iterated functionally from the initial state.
"""

import bisect
import numbers
import warnings
from collections.abc import Mapping
from typing import Callable, Dict, Optional, Sequence, Tuple, Union

import numpy as np
from joblib import Parallel, delayed
from scipy.integrate import solve_ivp

from .analysis import stable_equilibrium
from .config import (
    get_model_info,
    validate_parameters,
    validate_state,
)
from .core import Trajectory
from .errors import ConfigurationError, ConvergenceError, IntegrationError
from .utils.caching import SimulationCache, compute_simulation_hash

DEFAULT_STEP = 0.1

TimeSpec = Union[float, Tuple[float, float], Sequence[float], np.ndarray]


def resolve_times(time_spec: TimeSpec) -> np.ndarray:
    """
    Turn a time specification into an explicit vector of output times.

    Accepted forms:
        - a tuple (horizon, step): times 0, step, 2*step, ... up to horizon
        - a single number: the horizon, sampled every ``DEFAULT_STEP``
        - any other sequence or array: explicit output times, strictly increasing

    Example:
        >>> resolve_times((1.0, 0.25))
        array([0.  , 0.25, 0.5 , 0.75, 1.  ])
    """
    if isinstance(time_spec, tuple):
        if len(time_spec) != 2:
            raise ConfigurationError("A tuple time specification must be (horizon, step)")
        horizon, step = (float(v) for v in time_spec)
    elif isinstance(time_spec, numbers.Real) and not isinstance(time_spec, bool):
        horizon, step = float(time_spec), DEFAULT_STEP
    else:
        times = np.asarray(time_spec, dtype=float)
        if times.ndim != 1 or len(times) == 0:
            raise ConfigurationError("Explicit output times must be a non-empty 1-D sequence")
        if not np.all(np.isfinite(times)):
            raise ConfigurationError("Output times must be finite")
        if np.any(np.diff(times) <= 0):
            raise ConfigurationError("Output times must be strictly increasing")
        return times

    if not (np.isfinite(horizon) and np.isfinite(step)):
        raise ConfigurationError("Horizon and step must be finite")
    if step <= 0:
        raise ConfigurationError(f"Time step must be positive, got {step}")
    if horizon < 0:
        raise ConfigurationError(f"Horizon must be non-negative, got {horizon}")

    n_intervals = int(np.floor(horizon / step + 1e-9))
    return np.arange(n_intervals + 1) * step


# =============================================================================
# Continuous integration
# =============================================================================

def _check_finite(times: np.ndarray, states: np.ndarray) -> None:
    finite_rows = np.all(np.isfinite(states), axis=1)
    if not np.all(finite_rows):
        first_bad = int(np.argmin(finite_rows))
        last_good = max(first_bad - 1, 0)
        raise IntegrationError("Solution diverged to a non-finite value",
                               last_time=times[last_good], last_state=states[last_good])


def integrate_ode(
    rate_func: Callable,
    times: np.ndarray,
    y0: np.ndarray,
    params: Mapping,
    method: str = 'RK45',
    rtol: float = 1e-6,
    atol: float = 1e-9
) -> np.ndarray:
    """
    Integrate an ODE and sample it at the requested times.

    Args:
        rate_func: Rate function with signature f(t, y, params)
        times: Strictly increasing output times; the first is the start time
        y0: Initial state vector
        params: Parameter mapping passed to ``rate_func``
        method: Any ``solve_ivp`` method (default: adaptive Runge-Kutta 4(5))
        rtol: Relative tolerance
        atol: Absolute tolerance

    Returns:
        Array of shape (len(times), len(y0))

    Raises:
        IntegrationError: If the solver stops before the last output time
    """
    y0 = np.array(y0, dtype=float)
    if len(times) == 1:
        return y0[np.newaxis, :]

    sol = solve_ivp(
        lambda t, y: rate_func(t, y, params),
        (times[0], times[-1]),
        y0,
        method=method,
        t_eval=times,
        rtol=rtol,
        atol=atol
    )

    states = sol.y.T
    if len(sol.t):
        _check_finite(sol.t, states)

    if not sol.success or len(sol.t) < len(times):
        if len(sol.t):
            raise IntegrationError(sol.message, last_time=sol.t[-1], last_state=states[-1])
        raise IntegrationError(sol.message, last_time=times[0], last_state=y0)

    return states


class SolutionHistory:
    """
    Piecewise dense solution used to answer delayed-state queries.

    Queries at or before the start time return the initial condition (flat
    history). Later queries are answered from the dense output of the
    integration segment that covers them.
    """

    def __init__(self, t0: float, y0: np.ndarray):
        self.t0 = float(t0)
        self.y0 = np.array(y0, dtype=float)
        self._starts = []
        self._segments = []

    def append(self, t_start: float, dense_solution: Callable) -> None:
        self._starts.append(float(t_start))
        self._segments.append(dense_solution)

    def __call__(self, t: float) -> np.ndarray:
        if t <= self.t0 or not self._segments:
            return self.y0
        index = bisect.bisect_right(self._starts, t) - 1
        return np.asarray(self._segments[index](t), dtype=float)


def integrate_dde(
    rate_func: Callable,
    times: np.ndarray,
    y0: np.ndarray,
    params: Mapping,
    lag: float,
    method: str = 'RK45',
    rtol: float = 1e-6,
    atol: float = 1e-9,
    max_segments: int = 100000
) -> np.ndarray:
    """
    Integrate a delay differential equation with a single constant lag.

    Uses the method of steps: the interval is split into pieces of length
    ``lag``; on each piece the delayed state lies in a piece that is already
    solved, so an ordinary ``solve_ivp`` call with dense output suffices.
    Delayed values are interpolated with the solver's 4th-order dense output.

    Args:
        rate_func: Rate function with signature f(t, y, params, history=...)
        times: Strictly increasing output times; the first is the start time
        y0: Initial state, also used as the history before the start time
        params: Parameter mapping passed to ``rate_func``
        lag: Positive time lag
        method, rtol, atol: Passed to ``solve_ivp``
        max_segments: Upper bound on the number of lag intervals

    Returns:
        Array of shape (len(times), len(y0))
    """
    if lag <= 0:
        raise ConfigurationError(f"Time lag must be positive for delay integration, got {lag}")

    y0 = np.array(y0, dtype=float)
    t0, tf = float(times[0]), float(times[-1])
    history = SolutionHistory(t0, y0)
    if len(times) == 1:
        return y0[np.newaxis, :]

    n_segments = int(np.ceil((tf - t0) / lag))
    if n_segments > max_segments:
        raise ConfigurationError(
            f"Lag {lag} is too short for horizon {tf - t0}: {n_segments} segments needed "
            f"(max_segments={max_segments})"
        )

    fun = lambda t, y: rate_func(t, y, params, history=history)

    y_start = y0
    for k in range(n_segments):
        a = t0 + k * lag
        b = min(t0 + (k + 1) * lag, tf)
        if b <= a:
            break
        sol = solve_ivp(fun, (a, b), y_start, method=method, dense_output=True,
                        rtol=rtol, atol=atol)
        if not sol.success:
            raise IntegrationError(sol.message, last_time=sol.t[-1], last_state=sol.y[:, -1])
        if not np.all(np.isfinite(sol.y[:, -1])):
            _check_finite(sol.t, sol.y.T)
        history.append(a, sol.sol)
        y_start = sol.y[:, -1]

    return np.array([history(t) for t in times])


def _warn_if_negative(states: np.ndarray, names: Sequence[str], model_id: str) -> None:
    scale = max(1.0, float(np.max(np.abs(states))))
    minima = states.min(axis=0)
    negative = [name for name, m in zip(names, minima) if m < -1e-6 * scale]
    if negative:
        warnings.warn(
            f"Trajectory of '{model_id}' went negative in {negative} "
            f"(minimum {minima.min():.3g}); values are reported unclamped",
            RuntimeWarning
        )


def simulate_continuous(
    model_id: str,
    time_spec: TimeSpec,
    init_state,
    params: Mapping,
    method: str = 'RK45',
    rtol: float = 1e-6,
    atol: float = 1e-9,
    strict: bool = True,
    cache: Optional[SimulationCache] = None
) -> Trajectory:
    """
    Simulate a registered continuous-time model.

    Args:
        model_id: Continuous model id (see ``config.model_registry``)
        time_spec: Output times, (horizon, step) pair, or horizon
        init_state: Initial state, mapping or sequence in compartment order
        params: Parameter mapping
        method, rtol, atol: Solver options
        strict: Reject parameters the model does not use
        cache: Optional memoization cache

    Returns:
        Trajectory sampled at the requested times

    Example:
        >>> traj = simulate_continuous('exponential', [0, 1, 2], {'N': 10}, {'r': 0})
        >>> traj['N']
        array([10., 10., 10.])
    """
    info = get_model_info('continuous', model_id)
    params = validate_parameters('continuous', model_id, params, strict=strict)
    y0 = validate_state('continuous', model_id, init_state)
    times = resolve_times(time_spec)

    key = None
    if cache is not None:
        key = compute_simulation_hash('continuous', model_id, params, y0, times,
                                      {'method': method, 'rtol': rtol, 'atol': atol})
        cached = cache.get(key)
        if cached is not None:
            return cached

    lag = params[info['delay']] if 'delay' in info else 0.0
    if lag < 0:
        raise ConfigurationError(f"Time lag '{info['delay']}' must be non-negative, got {lag}")

    if lag > 0:
        states = integrate_dde(info['func'], times, y0, params, lag,
                               method=method, rtol=rtol, atol=atol)
    else:
        states = integrate_ode(info['func'], times, y0, params,
                               method=method, rtol=rtol, atol=atol)

    _warn_if_negative(states, info['state'], model_id)
    trajectory = Trajectory(times, states, info['state'], model_id=model_id)

    if cache is not None:
        cache.put(key, trajectory)
    return trajectory


# =============================================================================
# Discrete iteration
# =============================================================================

def iterate_map(map_func: Callable, y0: np.ndarray, params: Mapping, n_steps: int) -> np.ndarray:
    """
    Iterate a one-step map.

    Args:
        map_func: Map with signature f(y, params) -> y_next
        y0: Initial state vector (not modified)
        params: Parameter mapping
        n_steps: Number of iterations

    Returns:
        Array of shape (n_steps + 1, len(y0)); row 0 is the initial state
    """
    y0 = np.array(y0, dtype=float)
    states = np.empty((n_steps + 1, len(y0)))
    states[0] = y0

    current = y0
    for step in range(n_steps):
        current = map_func(current, params)
        states[step + 1] = current

    return states


def simulate_discrete(
    model_id: str,
    init_state,
    params: Mapping,
    n_steps: int,
    strict: bool = True,
    cache: Optional[SimulationCache] = None
) -> Trajectory:
    """
    Simulate a registered discrete-time model for ``n_steps`` generations.

    Returns:
        Trajectory with times 0, 1, ..., n_steps

    Example:
        >>> traj = simulate_discrete('logistic', {'N': 50}, {'rd': 3.9, 'K': 100}, 2)
        >>> traj['N'][:2]
        array([50. , 97.5])
    """
    info = get_model_info('discrete', model_id)
    params = validate_parameters('discrete', model_id, params, strict=strict)
    y0 = validate_state('discrete', model_id, init_state)
    if isinstance(n_steps, bool) or not isinstance(n_steps, numbers.Integral) or n_steps < 0:
        raise ConfigurationError(f"n_steps must be a non-negative integer, got {n_steps!r}")

    key = None
    if cache is not None:
        key = compute_simulation_hash('discrete', model_id, params, y0, int(n_steps))
        cached = cache.get(key)
        if cached is not None:
            return cached

    states = iterate_map(info['func'], y0, params, int(n_steps))
    if not np.all(np.isfinite(states)):
        warnings.warn(f"Iterates of '{model_id}' overflowed to a non-finite value", RuntimeWarning)

    trajectory = Trajectory(np.arange(n_steps + 1), states, info['state'], model_id=model_id)

    if cache is not None:
        cache.put(key, trajectory)
    return trajectory


def simulate_scenario(scenario: Dict, cache: Optional[SimulationCache] = None) -> Trajectory:
    """Run a scenario produced by ``config.parse_scenario`` or ``config.load_scenario``."""
    if scenario['model_type'] == 'discrete':
        return simulate_discrete(scenario['model_id'], scenario['init'], scenario['params'],
                                 scenario['n_steps'], cache=cache)
    return simulate_continuous(scenario['model_id'], scenario['time_spec'], scenario['init'],
                               scenario['params'], cache=cache)


# =============================================================================
# Derived runs
# =============================================================================

def run_to_equilibrium(
    model_type: str,
    model_id: str,
    init_state,
    params: Mapping,
    horizon: Optional[float] = None,
    target: Optional[Mapping] = None,
    rtol: float = 1e-6,
    atol: float = 1e-6,
    max_attempts: int = 10,
    step: float = DEFAULT_STEP,
    verbose: bool = False
) -> Trajectory:
    """
    Extend the simulation horizon until the final state reaches an equilibrium.

    The horizon (number of steps for discrete models) doubles after each
    unsuccessful attempt, up to ``max_attempts`` runs.

    Args:
        model_type: 'continuous' or 'discrete'
        model_id: Registered model id
        init_state: Initial state
        params: Parameter mapping
        horizon: First horizon to try (default: 100 time units or 50 steps)
        target: Equilibrium state to reach; defaults to the model's stable
                equilibrium from ``analysis.stable_equilibrium``
        rtol, atol: Tolerances for comparing the final state with the target
        max_attempts: Maximum number of simulations
        step: Output spacing for continuous models
        verbose: Print one line per attempt

    Returns:
        The first trajectory whose final state matches the target

    Raises:
        ConvergenceError: If no attempt reaches the target
    """
    if max_attempts < 1:
        raise ConfigurationError("max_attempts must be at least 1")

    info = get_model_info(model_type, model_id)
    if target is None:
        target = stable_equilibrium(model_type, model_id, params)
    target_vector = np.array([float(target[name]) for name in info['state']])

    length = horizon if horizon is not None else (100.0 if model_type == 'continuous' else 50)
    final = None

    for attempt in range(1, max_attempts + 1):
        if model_type == 'continuous':
            trajectory = simulate_continuous(model_id, (length, step), init_state, params)
        else:
            trajectory = simulate_discrete(model_id, init_state, params, int(length))

        final = trajectory.states[-1]
        if verbose:
            print(f"  Attempt {attempt}: horizon {length}, final state {np.round(final, 6)}")

        if np.allclose(final, target_vector, rtol=rtol, atol=atol):
            return trajectory
        length = length * 2

    raise ConvergenceError(
        f"'{model_id}' did not reach {dict(zip(info['state'], target_vector))} "
        f"after {max_attempts} attempts (final horizon {length / 2})",
        attempts=max_attempts,
        last_state=dict(zip(info['state'], final)),
        target=dict(zip(info['state'], target_vector)),
    )


def bifurcation_diagram(
    model_id: str,
    param_name: str,
    values: Sequence[float],
    init_state,
    params: Mapping,
    n_steps: int = 500,
    n_keep: int = 100,
    compartment: Optional[str] = None,
    n_jobs: int = 1,
    verbose: bool = False
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Long-run states of a discrete model across values of one parameter.

    For each value the model is iterated ``n_steps`` times and the last
    ``n_keep`` iterates of ``compartment`` are kept.

    Args:
        model_id: Discrete model id
        param_name: Parameter to sweep
        values: Parameter values
        init_state: Initial state used for every value
        params: Base parameter mapping
        n_steps: Iterations per value
        n_keep: Number of final iterates kept per value
        compartment: Compartment to record (default: the first)
        n_jobs: Number of parallel jobs passed to joblib (-1 uses all CPUs)
        verbose: Print progress messages

    Returns:
        x: Array of shape (len(values) * n_keep,) with the parameter values
        y: Array of the same shape with the recorded iterates

    Example:
        >>> x, y = bifurcation_diagram('logistic', 'rd', np.linspace(2.5, 4.0, 300),
        ...                            {'N': 50}, {'rd': 3.0, 'K': 100})
    """
    info = get_model_info('discrete', model_id)
    base = validate_parameters('discrete', model_id, params)
    if param_name not in base:
        raise ConfigurationError(f"'{param_name}' is not a parameter of discrete model '{model_id}'")
    if not 0 < n_keep <= n_steps + 1:
        raise ConfigurationError(f"n_keep must be between 1 and n_steps + 1, got {n_keep}")
    compartment = compartment or info['state'][0]
    if compartment not in info['state']:
        raise ConfigurationError(f"Unknown compartment '{compartment}'; expected {list(info['state'])}")

    values = np.asarray(values, dtype=float)
    if verbose:
        print(f"  Sweeping {param_name} over {len(values)} values ({n_steps} steps each)...")

    def tail(value):
        swept = dict(base)
        swept[param_name] = value
        trajectory = simulate_discrete(model_id, init_state, swept, n_steps)
        return trajectory[compartment][-n_keep:]

    results = Parallel(n_jobs=n_jobs)(delayed(tail)(v) for v in values)

    if verbose:
        print(f"  Completed {len(values)} values")

    return np.repeat(values, n_keep), np.concatenate(results)
