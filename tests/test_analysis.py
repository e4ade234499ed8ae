import numpy as np
import pytest

from EcoDynamics.analysis import (
    classify_competition,
    competition_equilibria,
    competition_interior_equilibrium,
    competition_isoclines,
    equilibria,
    extinction_rate,
    h_star,
    immigration_rate,
    island_equilibrium,
    limiting_resources,
    nicholson_bailey_equilibrium,
    p_star,
    predator_prey_interior,
    predator_prey_isoclines,
    rstar,
    rstar_value,
    source_sink_equilibrium,
    stable_equilibrium,
    two_predator_rstar,
)
from EcoDynamics.config import get_default_parameters
from EcoDynamics.errors import ConfigurationError, DomainError
from EcoDynamics.systems import rosenzweig_macarthur


TILMAN = {'k11': 18, 'k12': 4, 'k21': 2, 'k22': 14, 'm1': 0.2, 'm2': 0.2, 'r1': 1.6, 'r2': 1.0}
PP = {'r': 0.5, 'a': 0.1, 'e': 0.2, 'd': 0.3, 'K': 50.0, 'T_h': 0.1}


def competition(a12, a21, K1=1000.0, K2=1000.0):
    return {'r1': 0.5, 'r2': 0.5, 'K1': K1, 'K2': K2, 'a12': a12, 'a21': a21}


# Resource competition

def test_rstar_values():
    values = rstar(TILMAN)
    expected = np.array([[18 * 0.2 / (1.6 - 0.2), 4 * 0.2 / (1.6 - 0.2)],
                         [2 * 0.2 / (1.0 - 0.2), 14 * 0.2 / (1.0 - 0.2)]])
    assert np.array_equal(values, expected)
    assert np.allclose(values, [[2.5714286, 0.5714286], [0.5, 3.5]])

def test_rstar_requires_growth_above_mortality():
    with pytest.raises(DomainError):
        rstar_value(1.0, 0.5, 0.5)
    with pytest.raises(DomainError):
        rstar(dict(TILMAN, r2=0.1))

def test_rstar_missing_parameter():
    params = dict(TILMAN)
    del params['k22']
    with pytest.raises(ConfigurationError):
        rstar(params)

def test_limiting_resources():
    limiting = limiting_resources(TILMAN)
    assert limiting['N1'][0] == 'R1'
    assert limiting['N2'][0] == 'R2'
    assert limiting['N2'][1] == pytest.approx(3.5)

def test_tilman_equilibria_from_defaults():
    result = equilibria('tilman', get_default_parameters('continuous', 'tilman'))
    assert result['R_star']['N1']['R1'] == pytest.approx(18 * 0.2 / 1.4)

def test_tilman_equilibria_need_only_rstar_parameters():
    result = equilibria('tilman', TILMAN)
    assert result['R_star']['N2']['R2'] == pytest.approx(3.5)
    assert result['limiting'] == limiting_resources(TILMAN)
    with pytest.raises(ConfigurationError):
        equilibria('tilman', {k: v for k, v in TILMAN.items() if k != 'm1'})


# Predator-prey

def test_h_star_type1_and_type2():
    assert h_star('lotka_volterra', PP) == pytest.approx(0.3 / (0.2 * 0.1))
    assert h_star('lotka_volterra_type2', PP) == pytest.approx(0.3 / (0.02 - 0.1 * 0.3 * 0.1))

def test_h_star_predator_cannot_persist():
    with pytest.raises(DomainError):
        h_star('rosenzweig_macarthur', dict(PP, T_h=1.0))

def test_h_star_rejects_other_models():
    with pytest.raises(ConfigurationError):
        h_star('logistic', PP)

def test_p_star_shapes():
    H = np.array([0.0, 10.0, 25.0])
    P = p_star(H, 'rosenzweig_macarthur', PP)
    expected = (0.5 / 0.1) * (1 - H / 50.0) * (1 + 0.1 * 0.1 * H)
    assert P.shape == (3,)
    assert np.allclose(P, expected)
    assert p_star(10.0, 'lotka_volterra', PP) == pytest.approx(5.0)

def test_predator_prey_isoclines():
    iso = predator_prey_isoclines('lotka_volterra_logistic_prey', PP)
    assert iso['H_star'] == pytest.approx(15.0)
    assert iso['P_star'](15.0) == pytest.approx(5.0 * (1 - 15.0 / 50.0))

def test_interior_equilibrium_is_rest_point():
    eq = predator_prey_interior('rosenzweig_macarthur', PP)
    assert np.allclose(rosenzweig_macarthur(0.0, eq, PP), 0.0, atol=1e-12)

def test_interior_beyond_carrying_capacity():
    params = dict(PP, K=10.0)
    with pytest.raises(DomainError):
        predator_prey_interior('lotka_volterra_logistic_prey', params)
    result = equilibria('lotka_volterra_logistic_prey', params)
    assert result['interior'] is None
    assert result['prey_only'] == {'H': 10.0, 'P': 0.0}

def test_two_predator_rstar():
    params = get_default_parameters('continuous', 'two_predator')
    values = two_predator_rstar(params)
    assert values['P1'] == pytest.approx(0.1 / (0.04 - 0.1 * 0.1 * 0.2))
    assert values['P2'] == pytest.approx(0.1 / (0.06 - 0.1 * 0.1 * 0.8))
    result = equilibria('two_predator', params)
    assert result['resource_only']['R'] == pytest.approx(1 / 0.0066)


# Lotka-Volterra competition

def test_competition_coexistence():
    params = competition(0.5, 0.5)
    assert classify_competition(params) == 'coexistence'
    eq = competition_interior_equilibrium(params)
    assert eq['N1'] == pytest.approx(1000.0 / 1.5)
    assert eq['N2'] == pytest.approx(1000.0 / 1.5)
    assert stable_equilibrium('continuous', 'lv_competition', params) == eq

@pytest.mark.parametrize("a12,a21,outcome", [
    (0.5, 1.5, 'species1_wins'),
    (1.5, 0.5, 'species2_wins'),
    (1.5, 1.5, 'priority_effect'),
])
def test_competition_outcomes(a12, a21, outcome):
    result = competition_equilibria(competition(a12, a21))
    assert result['outcome'] == outcome
    if outcome == 'species1_wins':
        assert result['stable'] == {'N1': 1000.0, 'N2': 0.0}
    if outcome == 'priority_effect':
        assert result['stable'] is None
        assert result['interior'] is not None

def test_priority_effect_has_no_stable_target():
    with pytest.raises(DomainError):
        stable_equilibrium('continuous', 'lv_competition', competition(1.5, 1.5))

def test_parallel_isoclines():
    with pytest.raises(DomainError):
        competition_interior_equilibrium(competition(2.0, 0.5))
    with pytest.raises(DomainError):
        equilibria('lv_competition', competition(2.0, 0.5))

def test_competition_isoclines():
    iso = competition_isoclines(competition(0.5, 0.0, K2=800.0))
    assert iso['N1'] == {'N1_intercept': 1000.0, 'N2_intercept': 2000.0}
    assert iso['N2'] == {'N1_intercept': None, 'N2_intercept': 800.0}

def test_absolute_parameterization():
    params = get_default_parameters('continuous', 'lv_competition_absolute')
    result = equilibria('lv_competition_absolute', params)
    assert result['outcome'] == 'coexistence'
    assert result['interior']['N1'] == pytest.approx(1000.0 / 1.5)
    assert classify_competition(params, parameterization='absolute') == 'coexistence'

def test_unknown_parameterization():
    with pytest.raises(ConfigurationError):
        competition_isoclines(competition(0.5, 0.5), parameterization='log')


# Discrete models

def test_nicholson_bailey_equilibrium():
    eq = nicholson_bailey_equilibrium({'lambda': 2.0, 'a': 0.1, 'c': 1.0})
    assert eq['P'] == pytest.approx(np.log(2) / 0.1)
    assert eq['H'] == pytest.approx(2 * np.log(2) / 0.1)
    with pytest.raises(DomainError):
        nicholson_bailey_equilibrium({'lambda': 0.9, 'a': 0.1, 'c': 1.0})

def test_source_sink_equilibrium_cases():
    params = {'pa': 0.7, 'pj': 0.2, 'beta1': 3.0, 'beta2': 1.0, 'N1': 300.0}
    assert source_sink_equilibrium(params) == {'n1': 300.0, 'n2': pytest.approx(900.0)}
    assert source_sink_equilibrium(dict(params, beta1=1.0)) == {'n1': 0.0, 'n2': 0.0}
    with pytest.raises(DomainError):
        source_sink_equilibrium(dict(params, pa=0.6, beta1=2.0))
    with pytest.raises(DomainError):
        source_sink_equilibrium(dict(params, beta2=2.0))

def test_discrete_equilibria():
    assert equilibria('logistic', {'rd': 2.5, 'K': 100.0}, model_type='discrete')['nontrivial']['N'] == pytest.approx(60.0)
    assert stable_equilibrium('discrete', 'ricker', {'r': 1.5, 'K': 80.0}) == {'N': 80.0}
    assert equilibria('nicholson_bailey_dd', {'r': 0.5, 'K': 50.0, 'a': 0.1, 'c': 1.0},
                      model_type='discrete')['host_only'] == {'H': 50.0, 'P': 0.0}


# Island biogeography

def test_island_equilibrium_balances_rates():
    result = island_equilibrium(M=100.0, k=0.01, D=1.0, A=1.0)
    assert result['S'] == pytest.approx(50.0)
    assert immigration_rate(result['S'], 100.0, 0.01, 1.0) == pytest.approx(extinction_rate(result['S'], 0.01, 1.0))
    assert result['rate'] == pytest.approx(np.exp(0.5) - 1)

def test_island_via_dispatcher():
    result = equilibria('island_biogeography', {'M': 100.0, 'k': 0.01, 'D': 3.0, 'A': 1.0})
    assert result['S'] == pytest.approx(25.0)
    with pytest.raises(ConfigurationError):
        equilibria('island_biogeography', {'M': 100.0})
    with pytest.raises(DomainError):
        island_equilibrium(100.0, 0.01, 0.0, 1.0)


# Dispatch

def test_logistic_equilibria():
    assert equilibria('logistic', {'r': 0.5, 'K': 100.0}) == {
        'extinction': {'N': 0.0}, 'carrying_capacity': {'N': 100.0}
    }

def test_unknown_model():
    with pytest.raises(ConfigurationError):
        equilibria('gompertz', {'r': 0.5})
