"""
Population dynamics models used throughout the teaching apps.

This module provides the right-hand sides of the continuous-time models and
the one-step maps of the discrete-time models. Every function is pure: the
same inputs always produce the same output and nothing is mutated.

Calling conventions:
    Continuous models: f(t, y, params) -> dy/dt
    Discrete models:   f(y, params) -> y_next

``y`` may be an ordered sequence following the model's compartment order
(as passed by ``scipy.integrate.solve_ivp``) or a mapping from compartment
name to value. ``params`` is a mapping from parameter name to number; keys
the model does not use are ignored.
"""

from collections.abc import Mapping
from typing import Callable, Optional, Sequence, Tuple

import numpy as np

from .errors import ConfigurationError, DomainError


def _unpack_state(y, names: Sequence[str]) -> Tuple[float, ...]:
    """Return the compartment values of ``y`` in the order given by ``names``."""
    if isinstance(y, Mapping):
        unknown = set(y) - set(names)
        if unknown:
            raise ConfigurationError(
                f"Unknown state variable(s) {sorted(unknown)}; expected {list(names)}"
            )
        try:
            return tuple(y[name] for name in names)
        except KeyError as e:
            raise ConfigurationError(
                f"Missing state variable '{e.args[0]}'; expected {list(names)}"
            ) from None

    values = tuple(y)
    if len(values) != len(names):
        raise ConfigurationError(
            f"State has {len(values)} entries but the model defines {list(names)}"
        )
    return values


def _require(params: Mapping, *names: str) -> Tuple[float, ...]:
    """Look up the named parameters, failing on the first one that is missing."""
    try:
        return tuple(params[name] for name in names)
    except KeyError as e:
        raise ConfigurationError(f"Missing parameter '{e.args[0]}'") from None


def _type2(a: float, T_h: float, R: float) -> float:
    """Per-predator Holling Type II consumption rate, a*R / (1 + a*T_h*R)."""
    return a * R / (1 + a * T_h * R)


def _monod(r: float, R: float, k: float) -> float:
    denominator = R + k
    if denominator == 0:
        return 0.0
    return r * R / denominator


# =============================================================================
# Continuous-time models: single populations
# =============================================================================

def exponential_growth(t: float, y, params: Mapping) -> np.ndarray:
    """
    Exponential growth, dN/dt = r*N.

    Args:
        t: Time (unused; required by scipy.integrate.solve_ivp)
        y: State [N]
        params: Mapping with the per-capita growth rate 'r'

    Returns:
        Time derivative [dN/dt]
    """
    N, = _unpack_state(y, ('N',))
    r, = _require(params, 'r')
    return np.array([r * N])


def logistic_growth(t: float, y, params: Mapping) -> np.ndarray:
    """
    Logistic growth, dN/dt = r*N*(1 - N/K).

    Args:
        t: Time (unused)
        y: State [N]
        params: Mapping with 'r' (intrinsic growth rate) and 'K' (carrying capacity)

    Returns:
        Time derivative [dN/dt]

    Example:
        >>> logistic_growth(0.0, [50.0], {'r': 0.1, 'K': 100.0})
        array([2.5])
    """
    N, = _unpack_state(y, ('N',))
    r, K = _require(params, 'r', 'K')
    return np.array([r * N * (1 - N / K)])


def lagged_logistic_growth(t: float, y, params: Mapping,
                           history: Optional[Callable[[float], np.ndarray]] = None) -> np.ndarray:
    """
    Logistic growth with a delayed density feedback.

        dN(t)/dt = r*N(t)*(1 - N(t - tau)/K)

    Args:
        t: Time
        y: State [N]
        params: Mapping with 'r', 'K' and the time lag 'tau'
        history: Callable returning the state at an earlier time. Queries before
                 the start of the simulation are expected to return the initial
                 condition. Without a history the current density is used, which
                 is what a phase-plane sampler sees.

    Returns:
        Time derivative [dN/dt]
    """
    N, = _unpack_state(y, ('N',))
    r, K, tau = _require(params, 'r', 'K', 'tau')
    if history is None or tau == 0:
        N_lag = N
    else:
        N_lag = history(t - tau)[0]
    return np.array([r * N * (1 - N_lag / K)])


# =============================================================================
# Continuous-time models: predator-prey
# =============================================================================

def lotka_volterra(t: float, y, params: Mapping) -> np.ndarray:
    """
    Lotka-Volterra predator-prey model with a Type I functional response.

    Equations:
        dH/dt = r*H - a*H*P
        dP/dt = e*a*H*P - d*P

    Args:
        t: Time (unused)
        y: State [H, P] (prey, predator)
        params: 'r' prey growth rate, 'a' attack rate, 'e' conversion
                efficiency, 'd' predator death rate

    Returns:
        Time derivatives [dH/dt, dP/dt]
    """
    H, P = _unpack_state(y, ('H', 'P'))
    r, a, e, d = _require(params, 'r', 'a', 'e', 'd')
    dH = r * H - a * H * P
    dP = e * a * H * P - d * P
    return np.array([dH, dP])


def lotka_volterra_logistic_prey(t: float, y, params: Mapping) -> np.ndarray:
    """
    Type I predator-prey model with logistic prey growth.

    Equations:
        dH/dt = r*H*(1 - H/K) - a*H*P
        dP/dt = e*a*H*P - d*P
    """
    H, P = _unpack_state(y, ('H', 'P'))
    r, a, e, d, K = _require(params, 'r', 'a', 'e', 'd', 'K')
    dH = r * H * (1 - H / K) - a * H * P
    dP = e * a * H * P - d * P
    return np.array([dH, dP])


def lotka_volterra_type2(t: float, y, params: Mapping) -> np.ndarray:
    """
    Predator-prey model with a saturating (Holling Type II) functional response.

    Equations:
        dH/dt = r*H - a*H*P/(1 + a*T_h*H)
        dP/dt = e*a*H*P/(1 + a*T_h*H) - d*P

    The denominator 1 + a*T_h*H is at least 1 for non-negative prey densities.
    """
    H, P = _unpack_state(y, ('H', 'P'))
    r, a, e, d, T_h = _require(params, 'r', 'a', 'e', 'd', 'T_h')
    consumption = _type2(a, T_h, H) * P
    dH = r * H - consumption
    dP = e * consumption - d * P
    return np.array([dH, dP])


def rosenzweig_macarthur(t: float, y, params: Mapping) -> np.ndarray:
    """
    Rosenzweig-MacArthur model: logistic prey with Type II predation.

    Equations:
        dH/dt = r*H*(1 - H/K) - a*H*P/(1 + a*T_h*H)
        dP/dt = e*a*H*P/(1 + a*T_h*H) - d*P

    Reference:
        Rosenzweig, M.L. and MacArthur, R.H., "Graphical representation and
        stability conditions of predator-prey interactions"
        American Naturalist 97: 209-223 (1963)
    """
    H, P = _unpack_state(y, ('H', 'P'))
    r, a, e, d, K, T_h = _require(params, 'r', 'a', 'e', 'd', 'K', 'T_h')
    consumption = _type2(a, T_h, H) * P
    dH = r * H * (1 - H / K) - consumption
    dP = e * consumption - d * P
    return np.array([dH, dP])


def two_predator(t: float, y, params: Mapping) -> np.ndarray:
    """
    Two predators competing for one self-limited resource.

    Equations:
        dR/dt  = r*R*(1 - q*R) - sum_i a_i*R*P_i/(1 + a_i*T_hi*R)
        dP_i/dt = e_i*a_i*R*P_i/(1 + a_i*T_hi*R) - d_i*P_i

    Args:
        t: Time (unused)
        y: State [R, P1, P2]
        params: 'r', 'q' (resource self-limitation), and per predator i
                'a_i', 'T_hi', 'e_i', 'd_i'

    Returns:
        Time derivatives [dR/dt, dP1/dt, dP2/dt]
    """
    R, P1, P2 = _unpack_state(y, ('R', 'P1', 'P2'))
    r, q = _require(params, 'r', 'q')
    a1, T_h1, e1, d1 = _require(params, 'a1', 'T_h1', 'e1', 'd1')
    a2, T_h2, e2, d2 = _require(params, 'a2', 'T_h2', 'e2', 'd2')
    eaten1 = _type2(a1, T_h1, R) * P1
    eaten2 = _type2(a2, T_h2, R) * P2
    dR = r * R * (1 - q * R) - eaten1 - eaten2
    dP1 = e1 * eaten1 - d1 * P1
    dP2 = e2 * eaten2 - d2 * P2
    return np.array([dR, dP1, dP2])


# =============================================================================
# Continuous-time models: competition
# =============================================================================

def tilman_essential(t: float, y, params: Mapping) -> np.ndarray:
    """
    Tilman's two-consumer, two-essential-resource competition model.

    Consumer growth follows Liebig's law of the minimum:
        mu_i = min_j r_i*R_j/(R_j + k_ij)
        dN_i/dt = N_i*(mu_i - m_i)

    Resources are supplied chemostat-style and drawn down in proportion to
    each consumer's realized growth plus mortality (that is, mu_i):
        dR_j/dt = a_j*(S_j - R_j) - sum_i c_ij*N_i*mu_i

    Args:
        t: Time (unused)
        y: State [N1, N2, R1, R2]
        params: Supply points 'S1', 'S2'; supply rates 'a1', 'a2'; maximum
                growth 'r1', 'r2'; half-saturation constants 'k11', 'k12',
                'k21', 'k22'; mortality 'm1', 'm2'; consumption coefficients
                'c11', 'c12', 'c21', 'c22'. Index ij is consumer i, resource j.

    Returns:
        Time derivatives [dN1/dt, dN2/dt, dR1/dt, dR2/dt]

    Reference:
        Tilman, D., "Resource Competition and Community Structure"
        Princeton University Press (1982)
    """
    N1, N2, R1, R2 = _unpack_state(y, ('N1', 'N2', 'R1', 'R2'))
    S1, S2, a1, a2 = _require(params, 'S1', 'S2', 'a1', 'a2')
    r1, r2, m1, m2 = _require(params, 'r1', 'r2', 'm1', 'm2')
    k11, k12, k21, k22 = _require(params, 'k11', 'k12', 'k21', 'k22')
    c11, c12, c21, c22 = _require(params, 'c11', 'c12', 'c21', 'c22')

    mu1 = min(_monod(r1, R1, k11), _monod(r1, R2, k12))
    mu2 = min(_monod(r2, R1, k21), _monod(r2, R2, k22))

    dN1 = N1 * (mu1 - m1)
    dN2 = N2 * (mu2 - m2)
    dR1 = a1 * (S1 - R1) - c11 * N1 * mu1 - c21 * N2 * mu2
    dR2 = a2 * (S2 - R2) - c12 * N1 * mu1 - c22 * N2 * mu2
    return np.array([dN1, dN2, dR1, dR2])


def lv_competition(t: float, y, params: Mapping) -> np.ndarray:
    """
    Lotka-Volterra competition, carrying-capacity parameterization.

    Equations:
        dN1/dt = r1*N1*(1 - (N1 + a12*N2)/K1)
        dN2/dt = r2*N2*(1 - (N2 + a21*N1)/K2)
    """
    N1, N2 = _unpack_state(y, ('N1', 'N2'))
    r1, r2, K1, K2, a12, a21 = _require(params, 'r1', 'r2', 'K1', 'K2', 'a12', 'a21')
    dN1 = r1 * N1 * (1 - (N1 + a12 * N2) / K1)
    dN2 = r2 * N2 * (1 - (N2 + a21 * N1) / K2)
    return np.array([dN1, dN2])


def lv_competition_absolute(t: float, y, params: Mapping) -> np.ndarray:
    """
    Lotka-Volterra competition with absolute competition coefficients.

    Equations:
        dN1/dt = r1*N1*(1 - a11*N1 - a12*N2)
        dN2/dt = r2*N2*(1 - a21*N1 - a22*N2)
    """
    N1, N2 = _unpack_state(y, ('N1', 'N2'))
    r1, r2, a11, a12, a21, a22 = _require(params, 'r1', 'r2', 'a11', 'a12', 'a21', 'a22')
    dN1 = r1 * N1 * (1 - a11 * N1 - a12 * N2)
    dN2 = r2 * N2 * (1 - a21 * N1 - a22 * N2)
    return np.array([dN1, dN2])


def competition_absolute_to_relative(params: Mapping) -> dict:
    """
    Convert absolute competition coefficients to the carrying-capacity form.

    K_i = 1/a_ii and a_ij(relative) = a_ij/a_ii.

    Raises:
        DomainError: If an intraspecific coefficient is zero (no finite K).
    """
    r1, r2, a11, a12, a21, a22 = _require(params, 'r1', 'r2', 'a11', 'a12', 'a21', 'a22')
    if a11 == 0 or a22 == 0:
        raise DomainError("Intraspecific coefficients a11 and a22 must be non-zero")
    return {
        'r1': r1,
        'r2': r2,
        'K1': 1 / a11,
        'K2': 1 / a22,
        'a12': a12 / a11,
        'a21': a21 / a22,
    }


def competition_relative_to_absolute(params: Mapping) -> dict:
    """Inverse of :func:`competition_absolute_to_relative`."""
    r1, r2, K1, K2, a12, a21 = _require(params, 'r1', 'r2', 'K1', 'K2', 'a12', 'a21')
    if K1 == 0 or K2 == 0:
        raise DomainError("Carrying capacities K1 and K2 must be non-zero")
    return {
        'r1': r1,
        'r2': r2,
        'a11': 1 / K1,
        'a12': a12 / K1,
        'a21': a21 / K2,
        'a22': 1 / K2,
    }


# =============================================================================
# Discrete-time maps
# =============================================================================

def exponential_map(y, params: Mapping) -> np.ndarray:
    """Geometric growth, N_{t+1} = lambda*N_t."""
    N, = _unpack_state(y, ('N',))
    lam, = _require(params, 'lambda')
    return np.array([lam * N])


def logistic_map(y, params: Mapping) -> np.ndarray:
    """
    Discrete logistic map, N_{t+1} = rd*N_t*(1 - N_t/K).

    Chaotic for rd above roughly 3.57. The expression is evaluated exactly as
    written, without clamping, so iterated sequences are reproducible to the
    last bit.

    Example:
        >>> logistic_map([50.0], {'rd': 3.9, 'K': 100.0})
        array([97.5])
    """
    N, = _unpack_state(y, ('N',))
    rd, K = _require(params, 'rd', 'K')
    return np.array([rd * N * (1 - N / K)])


def ricker_map(y, params: Mapping) -> np.ndarray:
    """Ricker map, N_{t+1} = N_t*exp(r*(1 - N_t/K))."""
    N, = _unpack_state(y, ('N',))
    r, K = _require(params, 'r', 'K')
    return np.array([N * np.exp(r * (1 - N / K))])


def beverton_holt_map(y, params: Mapping) -> np.ndarray:
    """Beverton-Holt map, N_{t+1} = R*N_t / (1 + ((R - 1)/K)*N_t)."""
    N, = _unpack_state(y, ('N',))
    R, K = _require(params, 'R', 'K')
    return np.array([R * N / (1 + ((R - 1) / K) * N)])


def nicholson_bailey_map(y, params: Mapping) -> np.ndarray:
    """
    Nicholson-Bailey host-parasitoid model.

    Equations:
        H_{t+1} = lambda*H_t*exp(-a*P_t)
        P_{t+1} = c*H_t*(1 - exp(-a*P_t))

    The interior equilibrium is neutrally unstable, so trajectories spiral
    outwards with growing amplitude. Large values are expected.

    Reference:
        Nicholson, A.J. and Bailey, V.A., "The balance of animal populations"
        Proceedings of the Zoological Society of London 105: 551-598 (1935)
    """
    H, P = _unpack_state(y, ('H', 'P'))
    lam, a, c = _require(params, 'lambda', 'a', 'c')
    escape = np.exp(-a * P)
    return np.array([lam * H * escape, c * H * (1 - escape)])


def nicholson_bailey_dd_map(y, params: Mapping) -> np.ndarray:
    """
    Nicholson-Bailey model with density-dependent (Ricker) host growth.

    Equations:
        H_{t+1} = H_t*exp(r*(1 - H_t/K) - a*P_t)
        P_{t+1} = c*H_t*(1 - exp(-a*P_t))
    """
    H, P = _unpack_state(y, ('H', 'P'))
    r, K, a, c = _require(params, 'r', 'K', 'a', 'c')
    H_next = H * np.exp(r * (1 - H / K) - a * P)
    P_next = c * H * (1 - np.exp(-a * P))
    return np.array([H_next, P_next])


def source_sink_rates(params: Mapping) -> Tuple[float, float]:
    """
    Annual finite rates of increase of the source and the sink habitat.

    lambda_i = pa + pj*beta_i, where pa is adult survival, pj juvenile
    survival and beta_i the per-capita fecundity in habitat i.
    """
    pa, pj, beta1, beta2 = _require(params, 'pa', 'pj', 'beta1', 'beta2')
    return pa + pj * beta1, pa + pj * beta2


def source_sink_map(y, params: Mapping) -> np.ndarray:
    """
    Pulliam's source-sink metapopulation, one breeding season per step.

    Both habitats grow by their local rate. The source holds at most N1
    breeding sites; every individual in excess emigrates to the sink in
    the same year.

        n1' = min(lambda1*n1, N1)
        n2' = lambda2*n2 + max(lambda1*n1 - N1, 0)

    Reference:
        Pulliam, H.R., "Sources, sinks, and population regulation"
        American Naturalist 132: 652-661 (1988)
    """
    n1, n2 = _unpack_state(y, ('n1', 'n2'))
    N1, = _require(params, 'N1')
    lam1, lam2 = source_sink_rates(params)
    grown = lam1 * n1
    n1_next = min(grown, N1)
    excess = max(grown - N1, 0)
    n2_next = lam2 * n2 + excess
    return np.array([n1_next, n2_next])
