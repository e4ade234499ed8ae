import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import numpy as np

from EcoDynamics.phase_plane import vector_field
from EcoDynamics.plot import plot_bifurcation, plot_phase_plane, plot_trajectory, save_figure
from EcoDynamics.simulation import simulate_continuous, simulate_discrete


LV_PARAMS = {'r': 1.0, 'a': 0.1, 'e': 0.5, 'd': 0.5}


def test_plot_trajectory_draws_each_compartment():
    traj = simulate_continuous('lotka_volterra', (10.0, 0.1), {'H': 20.0, 'P': 5.0}, LV_PARAMS)
    ax = plot_trajectory(traj, title='Lotka-Volterra')
    assert len(ax.get_lines()) == 2
    assert ax.get_title() == 'Lotka-Volterra'
    plt.close(ax.figure)

def test_plot_discrete_trajectory():
    traj = simulate_discrete('ricker', {'N': 10.0}, {'r': 1.5, 'K': 100.0}, 20)
    fig, ax = plt.subplots()
    assert plot_trajectory(traj, ax=ax, discrete=True) is ax
    assert ax.get_xlabel() == 'Generation'
    plt.close(fig)

def test_plot_phase_plane_with_field(tmp_path):
    traj = simulate_continuous('lotka_volterra', (10.0, 0.1), {'H': 20.0, 'P': 5.0}, LV_PARAMS)
    field = vector_field('lotka_volterra', traj, LV_PARAMS, grid_density=5)
    ax = plot_phase_plane(traj, field=field)
    assert ax.get_xlabel() == 'H'
    assert np.allclose(ax.get_xlim(), field.window[:, 0])
    output = tmp_path / 'phase.png'
    save_figure(ax.figure, str(output))
    assert output.exists()

def test_plot_bifurcation():
    ax = plot_bifurcation(np.array([1.0, 2.0]), np.array([3.0, 4.0]), param_name='rd')
    assert ax.get_xlabel() == 'rd'
    plt.close(ax.figure)
