"""
Closed-form equilibria and zero-growth isoclines.

Every function here is total over its algebraic domain and raises
``DomainError`` instead of returning NaN or infinity when a denominator
vanishes or a result would not be biologically meaningful.
"""

import numpy as np
from collections.abc import Mapping
from typing import Callable, Dict, Optional, Tuple

from .config import validate_parameters
from .errors import ConfigurationError, DomainError
from .systems import competition_absolute_to_relative, source_sink_rates

PREDATOR_PREY_MODELS = (
    'lotka_volterra',
    'lotka_volterra_logistic_prey',
    'lotka_volterra_type2',
    'rosenzweig_macarthur',
)
_TYPE2_MODELS = ('lotka_volterra_type2', 'rosenzweig_macarthur')
_LOGISTIC_PREY_MODELS = ('lotka_volterra_logistic_prey', 'rosenzweig_macarthur')


def _params(model_type: str, model_id: str, params: Mapping) -> Dict[str, float]:
    return validate_parameters(model_type, model_id, params, strict=False)


# =============================================================================
# Resource competition (Tilman)
# =============================================================================

def rstar_value(k: float, m: float, r: float) -> float:
    """
    Resource level at which Monod growth r*R/(R + k) balances mortality m.

        R* = k*m / (r - m)

    Raises:
        DomainError: If r <= m (the consumer cannot grow at any resource
            level) or the result is negative.
    """
    if r <= m:
        raise DomainError(f"Maximum growth rate {r} must exceed mortality {m} for a finite R*")
    value = k * m / (r - m)
    if value < 0:
        raise DomainError(f"R* = {value} is negative; check half-saturation constant and mortality")
    return value


def rstar(params: Mapping) -> np.ndarray:
    """
    R* of each consumer on each essential resource.

    Returns:
        Array of shape (2, 2) where entry [i, j] is R*_ij = k_ij*m_i/(r_i - m_i)
        for consumer i+1 and resource j+1

    Example:
        >>> rstar({'k11': 18, 'k12': 4, 'k21': 2, 'k22': 14,
        ...        'm1': 0.2, 'm2': 0.2, 'r1': 1.6, 'r2': 1.0})
        array([[2.57142857, 0.57142857],
               [0.5       , 3.5       ]])
    """
    values = np.empty((2, 2))
    for i in (1, 2):
        try:
            r, m = params[f'r{i}'], params[f'm{i}']
            ks = [params[f'k{i}{j}'] for j in (1, 2)]
        except KeyError as e:
            raise ConfigurationError(f"Missing parameter '{e.args[0]}'") from None
        for j, k in enumerate(ks):
            values[i - 1, j] = rstar_value(k, m, r)
    return values


def limiting_resources(params: Mapping) -> Dict[str, Tuple[str, float]]:
    """
    Limiting resource of each consumer under Liebig's law of the minimum.

    A consumer is limited by whichever resource requires the higher level to
    break even, i.e. the resource with the larger R*.

    Returns:
        {'N1': (resource name, R*), 'N2': (resource name, R*)}
    """
    values = rstar(params)
    result = {}
    for i, consumer in enumerate(('N1', 'N2')):
        j = int(np.argmax(values[i]))
        result[consumer] = (f'R{j + 1}', float(values[i, j]))
    return result


# =============================================================================
# Predator-prey isoclines
# =============================================================================

def h_star(model_id: str, params: Mapping) -> float:
    """
    Prey density at which the predator neither grows nor declines.

    This is the vertical isocline of the predator-prey phase plane:
        Type I:  H* = d/(e*a)
        Type II: H* = d/(e*a - a*d*T_h), requires e*a > a*d*T_h

    Raises:
        DomainError: If the denominator is not positive (the predator cannot
            persist at any prey density)
    """
    if model_id not in PREDATOR_PREY_MODELS:
        raise ConfigurationError(f"'{model_id}' is not a predator-prey model; choose from {list(PREDATOR_PREY_MODELS)}")
    p = _params('continuous', model_id, params)
    denominator = p['e'] * p['a']
    if model_id in _TYPE2_MODELS:
        denominator -= p['a'] * p['d'] * p['T_h']
    if denominator <= 0:
        raise DomainError(
            f"Predator cannot persist in '{model_id}': conversion e*a must exceed "
            f"the handling-time loss (denominator {denominator})"
        )
    return p['d'] / denominator


def p_star(H, model_id: str, params: Mapping):
    """
    Predator density at which prey growth is zero, as a function of H.

        lotka_volterra:               P*(H) = r/a
        lotka_volterra_logistic_prey: P*(H) = (r/a)*(1 - H/K)
        lotka_volterra_type2:         P*(H) = (r/a)*(1 + a*T_h*H)
        rosenzweig_macarthur:         P*(H) = (r/a)*(1 - H/K)*(1 + a*T_h*H)

    ``H`` may be a scalar or an array; the result has the same shape.
    """
    if model_id not in PREDATOR_PREY_MODELS:
        raise ConfigurationError(f"'{model_id}' is not a predator-prey model; choose from {list(PREDATOR_PREY_MODELS)}")
    p = _params('continuous', model_id, params)
    if p['a'] == 0:
        raise DomainError("Attack rate a must be non-zero for a prey isocline")

    H = np.asarray(H, dtype=float)
    value = np.full(H.shape, p['r'] / p['a'])
    if model_id in _LOGISTIC_PREY_MODELS:
        value = value * (1 - H / p['K'])
    if model_id in _TYPE2_MODELS:
        value = value * (1 + p['a'] * p['T_h'] * H)
    return value if value.ndim else float(value)


def predator_prey_isoclines(model_id: str, params: Mapping) -> Dict[str, object]:
    """
    Both zero net growth isoclines of a predator-prey model.

    Returns:
        {'H_star': predator isocline (a prey density),
         'P_star': callable H -> prey isocline}
    """
    return {
        'H_star': h_star(model_id, params),
        'P_star': lambda H: p_star(H, model_id, params),
    }


def predator_prey_interior(model_id: str, params: Mapping) -> Dict[str, float]:
    """
    Coexistence equilibrium where both isoclines cross.

    Raises:
        DomainError: If the predator cannot persist, or the crossing lies at
            non-positive predator density (H* beyond the prey carrying capacity)
    """
    H = h_star(model_id, params)
    P = p_star(H, model_id, params)
    if P <= 0:
        raise DomainError(f"No coexistence equilibrium in '{model_id}': H* = {H} leaves no room for predators")
    return {'H': H, 'P': P}


def two_predator_rstar(params: Mapping) -> Dict[str, float]:
    """
    Resource level at which each predator of the shared-resource model breaks even.

        R*_i = d_i/(e_i*a_i - a_i*d_i*T_hi)

    The predator with the lower R* excludes the other at a stable equilibrium.
    """
    p = _params('continuous', 'two_predator', params)
    result = {}
    for i in (1, 2):
        a, e, d, T_h = p[f'a{i}'], p[f'e{i}'], p[f'd{i}'], p[f'T_h{i}']
        denominator = e * a - a * d * T_h
        if denominator <= 0:
            raise DomainError(f"Predator P{i} cannot persist: e{i}*a{i} must exceed a{i}*d{i}*T_h{i}")
        result[f'P{i}'] = d / denominator
    return result


# =============================================================================
# Lotka-Volterra competition
# =============================================================================

def _relative_competition(params: Mapping, parameterization: str) -> Dict[str, float]:
    if parameterization == 'relative':
        return _params('continuous', 'lv_competition', params)
    if parameterization == 'absolute':
        p = _params('continuous', 'lv_competition_absolute', params)
        return competition_absolute_to_relative(p)
    raise ConfigurationError(f"parameterization must be 'relative' or 'absolute', got '{parameterization}'")


def competition_isoclines(params: Mapping, parameterization: str = 'relative') -> Dict[str, Dict[str, Optional[float]]]:
    """
    Axis intercepts of the two straight-line competition isoclines.

    Species 1 stops growing on N1 + a12*N2 = K1, species 2 on
    N2 + a21*N1 = K2. An intercept is None when the isocline runs parallel
    to that axis (zero interspecific coefficient).

    Returns:
        {'N1': {'N1_intercept': ..., 'N2_intercept': ...},
         'N2': {'N1_intercept': ..., 'N2_intercept': ...}}
    """
    p = _relative_competition(params, parameterization)
    return {
        'N1': {
            'N1_intercept': p['K1'],
            'N2_intercept': p['K1'] / p['a12'] if p['a12'] != 0 else None,
        },
        'N2': {
            'N1_intercept': p['K2'] / p['a21'] if p['a21'] != 0 else None,
            'N2_intercept': p['K2'],
        },
    }


def competition_interior_equilibrium(params: Mapping, parameterization: str = 'relative') -> Dict[str, float]:
    """
    Crossing point of the competition isoclines (2x2 linear solve).

        N1* = (K1 - a12*K2)/(1 - a12*a21)
        N2* = (K2 - a21*K1)/(1 - a12*a21)

    Raises:
        DomainError: If the isoclines are parallel (a12*a21 = 1) or the
            crossing has a non-positive density
    """
    p = _relative_competition(params, parameterization)
    determinant = 1 - p['a12'] * p['a21']
    if determinant == 0:
        raise DomainError("Competition isoclines are parallel (a12*a21 = 1); no unique interior equilibrium")
    matrix = np.array([[1.0, p['a12']], [p['a21'], 1.0]])
    N1, N2 = np.linalg.solve(matrix, np.array([p['K1'], p['K2']]))
    if N1 <= 0 or N2 <= 0:
        raise DomainError(f"Interior equilibrium ({N1:.4g}, {N2:.4g}) is not feasible")
    return {'N1': float(N1), 'N2': float(N2)}


def classify_competition(params: Mapping, parameterization: str = 'relative') -> str:
    """
    Outcome of two-species Lotka-Volterra competition.

    Species i can invade species j at its carrying capacity when
    K_i > a_ij*K_j. With equal carrying capacities this reduces to comparing
    each competition coefficient with 1.

    Returns:
        'coexistence', 'species1_wins', 'species2_wins' or 'priority_effect'
    """
    p = _relative_competition(params, parameterization)
    one_invades = p['K1'] > p['a12'] * p['K2']
    two_invades = p['K2'] > p['a21'] * p['K1']
    if one_invades and two_invades:
        return 'coexistence'
    if one_invades:
        return 'species1_wins'
    if two_invades:
        return 'species2_wins'
    return 'priority_effect'


def competition_equilibria(params: Mapping, parameterization: str = 'relative') -> Dict[str, object]:
    """
    Candidate equilibria of the competition model and their stability.

    Returns:
        Dictionary with
        'trivial', 'species1_only', 'species2_only': boundary equilibria,
        'interior': the coexistence point, or None if it is not feasible,
        'outcome': see :func:`classify_competition`,
        'stable': the globally attracting equilibrium, or None when the
                  outcome depends on the initial state (priority effect)
    """
    p = _relative_competition(params, parameterization)
    if 1 - p['a12'] * p['a21'] == 0:
        raise DomainError("Competition isoclines are parallel (a12*a21 = 1); no unique interior equilibrium")

    try:
        interior = competition_interior_equilibrium(p)
    except DomainError:
        interior = None

    outcome = classify_competition(p)
    boundary1 = {'N1': p['K1'], 'N2': 0.0}
    boundary2 = {'N1': 0.0, 'N2': p['K2']}
    stable = {
        'coexistence': interior,
        'species1_wins': boundary1,
        'species2_wins': boundary2,
        'priority_effect': None,
    }[outcome]

    return {
        'trivial': {'N1': 0.0, 'N2': 0.0},
        'species1_only': boundary1,
        'species2_only': boundary2,
        'interior': interior,
        'outcome': outcome,
        'stable': stable,
    }


# =============================================================================
# Discrete-time models
# =============================================================================

def nicholson_bailey_equilibrium(params: Mapping) -> Dict[str, float]:
    """
    Interior equilibrium of the Nicholson-Bailey model.

        P* = ln(lambda)/a
        H* = lambda*ln(lambda)/((lambda - 1)*a*c)
    """
    p = _params('discrete', 'nicholson_bailey', params)
    lam, a, c = p['lambda'], p['a'], p['c']
    if lam <= 1:
        raise DomainError(f"Host growth rate lambda = {lam} must exceed 1 for an interior equilibrium")
    if a <= 0 or c <= 0:
        raise DomainError("Search efficiency a and parasitoid yield c must be positive")
    log_lam = np.log(lam)
    return {
        'H': float(lam * log_lam / ((lam - 1) * a * c)),
        'P': float(log_lam / a),
    }


def source_sink_equilibrium(params: Mapping) -> Dict[str, float]:
    """
    Long-run state of Pulliam's source-sink model.

    When the source grows (lambda1 > 1) it saturates at N1 sites and exports
    (lambda1 - 1)*N1 individuals a year. The sink then settles where its own
    decline balances immigration:
        n2* = (lambda1 - 1)*N1/(1 - lambda2), requires lambda2 < 1
    A declining source (lambda1 < 1) leaves both habitats empty. A source
    that exactly replaces itself (lambda1 == 1) keeps its starting size, so
    the long-run state depends on the initial state.

    Raises:
        DomainError: If the sink grows on its own (lambda2 >= 1), so no
            finite equilibrium exists, or if lambda1 == 1
    """
    p = _params('discrete', 'source_sink', params)
    lam1, lam2 = source_sink_rates(p)
    if lam2 >= 1:
        raise DomainError(f"Sink rate lambda2 = {lam2} is not below 1; the sink grows without bound")
    if np.isclose(lam1, 1.0, rtol=0.0, atol=1e-12):
        raise DomainError("Source rate lambda1 = 1: the source keeps its initial size, "
                          "so the long-run state depends on the initial state")
    if lam1 < 1:
        return {'n1': 0.0, 'n2': 0.0}
    return {'n1': p['N1'], 'n2': (lam1 - 1) * p['N1'] / (1 - lam2)}


# =============================================================================
# Island biogeography
# =============================================================================

def immigration_rate(S, M: float, k: float, D: float):
    """
    Rate of arrival of new species on an island with S species.

        I(S) = exp(-(k/D)*(S - M)) - 1

    Args:
        S: Species on the island (scalar or array)
        M: Species in the mainland pool
        k: Scaling constant
        D: Distance from the mainland
    """
    if D <= 0:
        raise DomainError(f"Distance from mainland must be positive, got {D}")
    return np.exp(-(k / D) * (np.asarray(S, dtype=float) - M)) - 1


def extinction_rate(S, k: float, A: float):
    """Rate of species loss on an island of area A, E(S) = exp(k*A*S) - 1."""
    return np.exp(k * A * np.asarray(S, dtype=float)) - 1


def island_equilibrium(M: float, k: float, D: float, A: float) -> Dict[str, float]:
    """
    Equilibrium species richness where immigration equals extinction.

        S_eq = M/(D*A + 1)

    Returns:
        {'S': S_eq, 'rate': turnover rate I(S_eq) = E(S_eq)}
    """
    if D <= 0 or A < 0:
        raise DomainError(f"Distance must be positive and area non-negative, got D={D}, A={A}")
    S = M / (D * A + 1)
    return {'S': float(S), 'rate': float(extinction_rate(S, k, A))}


# =============================================================================
# Dispatch
# =============================================================================

def _logistic_map_equilibrium(p: Mapping) -> Dict[str, float]:
    if p['rd'] == 0:
        raise DomainError("rd must be non-zero")
    return {'N': p['K'] * (1 - 1 / p['rd'])}


def equilibria(model_id: str, params: Mapping, model_type: str = 'continuous') -> Dict[str, object]:
    """
    Named equilibrium values of a model.

    Point equilibria are returned as {compartment: value} mappings. Some
    models add derived quantities (R* tables, competitive outcome).
    'island_biogeography' is accepted for either model type and expects
    parameters M, k, D and A.

    Example:
        >>> equilibria('logistic', {'r': 0.5, 'K': 100})
        {'extinction': {'N': 0.0}, 'carrying_capacity': {'N': 100.0}}
    """
    if model_id == 'island_biogeography':
        try:
            return island_equilibrium(params['M'], params['k'], params['D'], params['A'])
        except KeyError as e:
            raise ConfigurationError(f"Missing parameter '{e.args[0]}'") from None

    # R* reads only k_ij, m_i and r_i
    if model_type == 'continuous' and model_id == 'tilman':
        values = rstar(params)
        return {
            'R_star': {f'N{i + 1}': {f'R{j + 1}': float(values[i, j]) for j in range(2)}
                       for i in range(2)},
            'limiting': limiting_resources(params),
        }

    p = _params(model_type, model_id, params)

    if model_type == 'continuous':
        if model_id == 'exponential':
            return {'extinction': {'N': 0.0}}
        if model_id in ('logistic', 'lagged_logistic'):
            return {'extinction': {'N': 0.0}, 'carrying_capacity': {'N': p['K']}}
        if model_id in PREDATOR_PREY_MODELS:
            result = {'extinction': {'H': 0.0, 'P': 0.0}}
            if model_id in _LOGISTIC_PREY_MODELS:
                result['prey_only'] = {'H': p['K'], 'P': 0.0}
            H = h_star(model_id, p)
            P = p_star(H, model_id, p)
            result['interior'] = {'H': H, 'P': P} if P > 0 else None
            return result
        if model_id == 'two_predator':
            if p['q'] <= 0:
                raise DomainError("Resource self-limitation q must be positive for a resource-only equilibrium")
            return {
                'extinction': {'R': 0.0, 'P1': 0.0, 'P2': 0.0},
                'resource_only': {'R': 1 / p['q'], 'P1': 0.0, 'P2': 0.0},
                'R_star': two_predator_rstar(p),
            }
        if model_id == 'lv_competition':
            return competition_equilibria(p, 'relative')
        if model_id == 'lv_competition_absolute':
            return competition_equilibria(p, 'absolute')

    if model_type == 'discrete':
        if model_id == 'exponential':
            return {'extinction': {'N': 0.0}}
        if model_id == 'logistic':
            return {'extinction': {'N': 0.0}, 'nontrivial': _logistic_map_equilibrium(p)}
        if model_id in ('ricker', 'beverton_holt'):
            return {'extinction': {'N': 0.0}, 'carrying_capacity': {'N': p['K']}}
        if model_id == 'nicholson_bailey':
            return {'extinction': {'H': 0.0, 'P': 0.0}, 'interior': nicholson_bailey_equilibrium(p)}
        if model_id == 'nicholson_bailey_dd':
            return {'extinction': {'H': 0.0, 'P': 0.0}, 'host_only': {'H': p['K'], 'P': 0.0}}
        if model_id == 'source_sink':
            return {'extinction': {'n1': 0.0, 'n2': 0.0}, 'long_run': source_sink_equilibrium(p)}

    raise ConfigurationError(f"No closed-form equilibria for {model_type} model '{model_id}'")


def stable_equilibrium(model_type: str, model_id: str, params: Mapping) -> Dict[str, float]:
    """
    The equilibrium a simulation of the model is expected to approach.

    Used as the default target of ``simulation.run_to_equilibrium``.

    Raises:
        ConfigurationError: If the model has no closed-form attracting state
        DomainError: If the attracting state depends on the initial condition
    """
    p = _params(model_type, model_id, params)

    if model_type == 'continuous' and model_id in ('logistic', 'lagged_logistic'):
        return {'N': p['K']}
    if model_type == 'continuous' and model_id in ('lv_competition', 'lv_competition_absolute'):
        parameterization = 'absolute' if model_id.endswith('absolute') else 'relative'
        result = competition_equilibria(p, parameterization)
        if result['stable'] is None:
            raise DomainError("Priority effect: the winning species depends on the initial state")
        return result['stable']
    if model_type == 'discrete' and model_id == 'logistic':
        return _logistic_map_equilibrium(p)
    if model_type == 'discrete' and model_id in ('ricker', 'beverton_holt'):
        return {'N': p['K']}
    if model_type == 'discrete' and model_id == 'source_sink':
        return source_sink_equilibrium(p)

    raise ConfigurationError(
        f"No closed-form stable equilibrium for {model_type} model '{model_id}'; pass target= explicitly"
    )
