import numpy as np
import pytest

from EcoDynamics import systems
from EcoDynamics.errors import ConfigurationError, DomainError


LV_PARAMS = {'r': 1.0, 'a': 0.1, 'e': 0.5, 'd': 0.5}


def test_logistic_growth_value():
    assert np.allclose(systems.logistic_growth(0.0, [50.0], {'r': 0.1, 'K': 100.0}), [2.5])

def test_logistic_growth_zero_at_carrying_capacity():
    assert systems.logistic_growth(0.0, [100.0], {'r': 0.7, 'K': 100.0})[0] == 0.0

def test_exponential_growth():
    assert np.allclose(systems.exponential_growth(3.0, [10.0], {'r': 0.2}), [2.0])

def test_rate_functions_are_pure():
    y = np.array([10.0, 5.0])
    y_copy = y.copy()
    first = systems.lotka_volterra(0.0, y, LV_PARAMS)
    second = systems.lotka_volterra(0.0, y, LV_PARAMS)
    assert np.array_equal(first, second)
    assert np.array_equal(y, y_copy)

def test_state_mapping_matches_sequence():
    by_name = systems.lotka_volterra(0.0, {'P': 5.0, 'H': 10.0}, LV_PARAMS)
    by_order = systems.lotka_volterra(0.0, [10.0, 5.0], LV_PARAMS)
    assert np.array_equal(by_name, by_order)

def test_lotka_volterra_formula():
    dH, dP = systems.lotka_volterra(0.0, [10.0, 5.0], LV_PARAMS)
    assert dH == pytest.approx(1.0 * 10 - 0.1 * 10 * 5)
    assert dP == pytest.approx(0.5 * 0.1 * 10 * 5 - 0.5 * 5)

def test_missing_parameter_raises():
    with pytest.raises(ConfigurationError, match="'d'"):
        systems.lotka_volterra(0.0, [10.0, 5.0], {'r': 1.0, 'a': 0.1, 'e': 0.5})

def test_missing_state_variable_raises():
    with pytest.raises(ConfigurationError):
        systems.lotka_volterra(0.0, {'H': 10.0}, LV_PARAMS)

def test_unknown_state_variable_raises():
    with pytest.raises(ConfigurationError):
        systems.logistic_growth(0.0, {'N': 1.0, 'M': 2.0}, {'r': 0.1, 'K': 10.0})

def test_wrong_state_length_raises():
    with pytest.raises(ConfigurationError):
        systems.logistic_growth(0.0, [1.0, 2.0], {'r': 0.1, 'K': 10.0})

def test_extra_parameters_are_ignored():
    params = dict(LV_PARAMS, K=100.0)
    assert np.array_equal(systems.lotka_volterra(0.0, [10.0, 5.0], params),
                          systems.lotka_volterra(0.0, [10.0, 5.0], LV_PARAMS))

def test_type2_reduces_to_type1_without_handling_time():
    params = dict(LV_PARAMS, T_h=0.0)
    assert np.allclose(systems.lotka_volterra_type2(0.0, [10.0, 5.0], params),
                       systems.lotka_volterra(0.0, [10.0, 5.0], LV_PARAMS))

def test_rosenzweig_macarthur_formula():
    params = {'r': 0.5, 'a': 0.1, 'e': 0.2, 'd': 0.3, 'K': 100.0, 'T_h': 0.1}
    H, P = 20.0, 4.0
    eaten = 0.1 * H * P / (1 + 0.1 * 0.1 * H)
    dH, dP = systems.rosenzweig_macarthur(0.0, [H, P], params)
    assert dH == pytest.approx(0.5 * H * (1 - H / 100.0) - eaten)
    assert dP == pytest.approx(0.2 * eaten - 0.3 * P)

def test_lagged_logistic_without_history_is_logistic():
    params = {'r': 0.5, 'K': 100.0, 'tau': 2.0}
    assert np.allclose(systems.lagged_logistic_growth(0.0, [30.0], params),
                       systems.logistic_growth(0.0, [30.0], params))

def test_lagged_logistic_reads_history():
    params = {'r': 1.0, 'K': 100.0, 'tau': 1.0}
    queried = []

    def history(t):
        queried.append(t)
        return np.array([200.0])

    assert np.allclose(systems.lagged_logistic_growth(5.0, [10.0], params, history=history), [-10.0])
    assert queried == [4.0]

def test_two_predator_formula():
    params = {'r': 1.0, 'q': 0.01, 'a1': 0.1, 'a2': 0.1, 'T_h1': 0.0, 'T_h2': 0.0,
              'e1': 0.5, 'e2': 0.5, 'd1': 0.1, 'd2': 0.1}
    assert np.allclose(systems.two_predator(0.0, [10.0, 1.0, 2.0], params), [6.0, 0.4, 0.8])

def test_tilman_law_of_the_minimum():
    params = {'S1': 10.0, 'S2': 10.0, 'a1': 1.0, 'a2': 1.0, 'r1': 1.0, 'r2': 1.0,
              'k11': 1.0, 'k12': 1.0, 'k21': 1.0, 'k22': 1.0, 'm1': 0.1, 'm2': 0.1,
              'c11': 1.0, 'c12': 1.0, 'c21': 1.0, 'c22': 1.0}
    # R1 = 1 gives growth 0.5, R2 = 3 gives 0.75; consumer 1 is limited by R1
    derivatives = systems.tilman_essential(0.0, [1.0, 0.0, 1.0, 3.0], params)
    assert np.allclose(derivatives, [0.4, 0.0, 8.5, 6.5])

def test_competition_models_agree_after_conversion():
    absolute = {'r1': 0.5, 'r2': 0.8, 'a11': 0.01, 'a12': 0.005, 'a21': 0.002, 'a22': 0.02}
    relative = systems.competition_absolute_to_relative(absolute)
    assert relative['K1'] == pytest.approx(100.0)
    assert relative['K2'] == pytest.approx(50.0)
    assert relative['a12'] == pytest.approx(0.5)
    assert relative['a21'] == pytest.approx(0.1)

    y = [30.0, 20.0]
    assert np.allclose(systems.lv_competition(0.0, y, relative),
                       systems.lv_competition_absolute(0.0, y, absolute))

    back = systems.competition_relative_to_absolute(relative)
    for key, value in absolute.items():
        assert back[key] == pytest.approx(value)

def test_competition_conversion_rejects_zero_coefficient():
    with pytest.raises(DomainError):
        systems.competition_absolute_to_relative(
            {'r1': 0.5, 'r2': 0.5, 'a11': 0.0, 'a12': 0.1, 'a21': 0.1, 'a22': 0.1}
        )
    with pytest.raises(DomainError):
        systems.competition_relative_to_absolute(
            {'r1': 0.5, 'r2': 0.5, 'K1': 0.0, 'K2': 10.0, 'a12': 0.1, 'a21': 0.1}
        )


# Discrete maps

def test_logistic_map_step():
    assert np.array_equal(systems.logistic_map([50.0], {'rd': 3.9, 'K': 100.0}), [97.5])

def test_ricker_and_beverton_holt_fix_carrying_capacity():
    assert systems.ricker_map([100.0], {'r': 1.5, 'K': 100.0})[0] == pytest.approx(100.0)
    assert systems.beverton_holt_map([100.0], {'R': 1.5, 'K': 100.0})[0] == pytest.approx(100.0)

def test_exponential_map():
    assert np.allclose(systems.exponential_map([10.0], {'lambda': 1.5}), [15.0])

def test_nicholson_bailey_without_parasitoids():
    H, P = systems.nicholson_bailey_map([20.0, 0.0], {'lambda': 2.0, 'a': 0.1, 'c': 1.0})
    assert H == pytest.approx(40.0)
    assert P == 0.0

def test_nicholson_bailey_dd_formula():
    params = {'r': 0.5, 'K': 50.0, 'a': 0.1, 'c': 1.0}
    H, P = systems.nicholson_bailey_dd_map([20.0, 10.0], params)
    assert H == pytest.approx(20.0 * np.exp(0.5 * (1 - 20.0 / 50.0) - 1.0))
    assert P == pytest.approx(20.0 * (1 - np.exp(-1.0)))

def test_source_sink_first_step():
    params = {'pa': 0.7, 'pj': 0.2, 'beta1': 3.0, 'beta2': 1.0, 'N1': 300.0}
    n1, n2 = systems.source_sink_map([110.0, 100.0], params)
    assert n1 == pytest.approx(143.0)
    assert n2 == pytest.approx(90.0)

def test_source_sink_excess_emigrates():
    params = {'pa': 0.7, 'pj': 0.2, 'beta1': 3.0, 'beta2': 1.0, 'N1': 300.0}
    n1, n2 = systems.source_sink_map([300.0, 0.0], params)
    assert n1 == 300.0
    assert n2 == pytest.approx(90.0)
