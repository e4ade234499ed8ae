import os
import yaml
import numpy as np
from collections.abc import Mapping
from typing import Dict, Any, Optional, Callable, Tuple

from EcoDynamics import systems
from .errors import ConfigurationError


# Registry of population models.
# Each entry contains:
# 'func': The rate function (continuous) or one-step map (discrete)
# 'state': Compartment names, in the order used for state vectors
# 'params': Names of the parameters the model reads
# 'default_params': Default parameter values of the teaching apps
# 'default_init': Default initial state
# 'delay' (optional): Name of the parameter holding a time lag
# 'axes' (optional): Compartments plotted in the phase plane
model_registry: Dict[str, Dict[str, Dict[str, Any]]] = {
    'continuous': {
        'exponential': {
            'func': systems.exponential_growth,
            'state': ('N',),
            'params': ('r',),
            'default_params': {'r': 0.1},
            'default_init': {'N': 1.0},
        },
        'logistic': {
            'func': systems.logistic_growth,
            'state': ('N',),
            'params': ('r', 'K'),
            'default_params': {'r': 0.1, 'K': 500.0},
            'default_init': {'N': 1.0},
        },
        'lagged_logistic': {
            'func': systems.lagged_logistic_growth,
            'state': ('N',),
            'params': ('r', 'K', 'tau'),
            'default_params': {'r': 0.5, 'K': 500.0, 'tau': 1.0},
            'default_init': {'N': 1.0},
            'delay': 'tau',
        },
        'lotka_volterra': {
            'func': systems.lotka_volterra,
            'state': ('H', 'P'),
            'params': ('r', 'a', 'e', 'd'),
            'default_params': {'r': 0.5, 'a': 0.1, 'e': 0.2, 'd': 0.3},
            'default_init': {'H': 10.0, 'P': 10.0},
        },
        'lotka_volterra_logistic_prey': {
            'func': systems.lotka_volterra_logistic_prey,
            'state': ('H', 'P'),
            'params': ('r', 'a', 'e', 'd', 'K'),
            'default_params': {'r': 0.5, 'a': 0.1, 'e': 0.2, 'd': 0.3, 'K': 50.0},
            'default_init': {'H': 10.0, 'P': 10.0},
        },
        'lotka_volterra_type2': {
            'func': systems.lotka_volterra_type2,
            'state': ('H', 'P'),
            'params': ('r', 'a', 'e', 'd', 'T_h'),
            'default_params': {'r': 0.5, 'a': 0.1, 'e': 0.2, 'd': 0.3, 'T_h': 0.1},
            'default_init': {'H': 10.0, 'P': 10.0},
        },
        'rosenzweig_macarthur': {
            'func': systems.rosenzweig_macarthur,
            'state': ('H', 'P'),
            'params': ('r', 'a', 'e', 'd', 'K', 'T_h'),
            'default_params': {'r': 0.5, 'a': 0.1, 'e': 0.2, 'd': 0.3, 'K': 100.0, 'T_h': 0.1},
            'default_init': {'H': 10.0, 'P': 10.0},
        },
        'two_predator': {
            'func': systems.two_predator,
            'state': ('R', 'P1', 'P2'),
            'params': ('r', 'q', 'a1', 'a2', 'T_h1', 'T_h2', 'e1', 'e2', 'd1', 'd2'),
            'default_params': {
                'r': 0.5, 'q': 0.0066,
                'a1': 0.1, 'a2': 0.1,
                'T_h1': 0.2, 'T_h2': 0.8,
                'e1': 0.4, 'e2': 0.6,
                'd1': 0.1, 'd2': 0.1,
            },
            'default_init': {'R': 30.0, 'P1': 5.0, 'P2': 5.0},
            'axes': ('P1', 'P2'),
        },
        'tilman': {
            'func': systems.tilman_essential,
            'state': ('N1', 'N2', 'R1', 'R2'),
            'params': ('S1', 'S2', 'a1', 'a2', 'r1', 'r2', 'k11', 'k12', 'k21', 'k22',
                       'm1', 'm2', 'c11', 'c12', 'c21', 'c22'),
            'default_params': {
                'S1': 12.0, 'S2': 12.0, 'a1': 0.5, 'a2': 0.5,
                'r1': 1.6, 'r2': 1.0,
                'k11': 18.0, 'k12': 4.0, 'k21': 2.0, 'k22': 14.0,
                'm1': 0.2, 'm2': 0.2,
                'c11': 0.25, 'c12': 0.08, 'c21': 0.1, 'c22': 0.2,
            },
            'default_init': {'N1': 10.0, 'N2': 10.0, 'R1': 20.0, 'R2': 20.0},
            'axes': ('R1', 'R2'),
        },
        'lv_competition': {
            'func': systems.lv_competition,
            'state': ('N1', 'N2'),
            'params': ('r1', 'r2', 'K1', 'K2', 'a12', 'a21'),
            'default_params': {'r1': 0.5, 'r2': 0.5, 'K1': 1000.0, 'K2': 1000.0, 'a12': 0.5, 'a21': 0.5},
            'default_init': {'N1': 100.0, 'N2': 100.0},
        },
        'lv_competition_absolute': {
            'func': systems.lv_competition_absolute,
            'state': ('N1', 'N2'),
            'params': ('r1', 'r2', 'a11', 'a12', 'a21', 'a22'),
            'default_params': {'r1': 0.5, 'r2': 0.5, 'a11': 0.001, 'a12': 0.0005, 'a21': 0.0005, 'a22': 0.001},
            'default_init': {'N1': 100.0, 'N2': 100.0},
        },
    },
    'discrete': {
        'exponential': {
            'func': systems.exponential_map,
            'state': ('N',),
            'params': ('lambda',),
            'default_params': {'lambda': 1.1},
            'default_init': {'N': 1.0},
        },
        'logistic': {
            'func': systems.logistic_map,
            'state': ('N',),
            'params': ('rd', 'K'),
            'default_params': {'rd': 1.5, 'K': 100.0},
            'default_init': {'N': 1.0},
        },
        'ricker': {
            'func': systems.ricker_map,
            'state': ('N',),
            'params': ('r', 'K'),
            'default_params': {'r': 1.5, 'K': 100.0},
            'default_init': {'N': 1.0},
        },
        'beverton_holt': {
            'func': systems.beverton_holt_map,
            'state': ('N',),
            'params': ('R', 'K'),
            'default_params': {'R': 1.5, 'K': 100.0},
            'default_init': {'N': 1.0},
        },
        'nicholson_bailey': {
            'func': systems.nicholson_bailey_map,
            'state': ('H', 'P'),
            'params': ('lambda', 'a', 'c'),
            'default_params': {'lambda': 2.0, 'a': 0.1, 'c': 1.0},
            'default_init': {'H': 20.0, 'P': 10.0},
        },
        'nicholson_bailey_dd': {
            'func': systems.nicholson_bailey_dd_map,
            'state': ('H', 'P'),
            'params': ('r', 'K', 'a', 'c'),
            'default_params': {'r': 0.5, 'K': 50.0, 'a': 0.1, 'c': 1.0},
            'default_init': {'H': 20.0, 'P': 10.0},
        },
        'source_sink': {
            'func': systems.source_sink_map,
            'state': ('n1', 'n2'),
            'params': ('pa', 'pj', 'beta1', 'beta2', 'N1'),
            'default_params': {'pa': 0.7, 'pj': 0.2, 'beta1': 3.0, 'beta2': 1.0, 'N1': 300.0},
            'default_init': {'n1': 110.0, 'n2': 100.0},
        },
    },
}


def get_model_info(model_type: str, model_id: str) -> Dict[str, Any]:
    """Helper to retrieve model info from the registry."""
    if model_type not in model_registry:
        raise ConfigurationError(f"Unknown model type: {model_type}. Choose from {list(model_registry.keys())}")
    if model_id not in model_registry[model_type]:
        raise ConfigurationError(f"Unknown model id for {model_type}: {model_id}. Choose from {list(model_registry[model_type].keys())}")
    return model_registry[model_type][model_id]


def list_models(model_type: Optional[str] = None) -> Dict[str, list]:
    """Return the registered model ids, grouped by model type."""
    if model_type is None:
        return {kind: list(models.keys()) for kind, models in model_registry.items()}
    if model_type not in model_registry:
        raise ConfigurationError(f"Unknown model type: {model_type}. Choose from {list(model_registry.keys())}")
    return {model_type: list(model_registry[model_type].keys())}


def get_model_function(model_type: str, model_id: str) -> Callable:
    """Retrieve the rate function or one-step map of a model."""
    return get_model_info(model_type, model_id)['func']


def get_state_names(model_type: str, model_id: str) -> Tuple[str, ...]:
    return get_model_info(model_type, model_id)['state']


def get_parameter_names(model_type: str, model_id: str) -> Tuple[str, ...]:
    return get_model_info(model_type, model_id)['params']


def get_default_parameters(model_type: str, model_id: str) -> Dict[str, float]:
    """Retrieve a copy of the default parameters of a model."""
    return dict(get_model_info(model_type, model_id)['default_params'])


def get_default_initial_state(model_type: str, model_id: str) -> Dict[str, float]:
    """Retrieve a copy of the default initial state of a model."""
    return dict(get_model_info(model_type, model_id)['default_init'])


def _as_finite(name: str, value: Any, kind: str) -> float:
    if isinstance(value, bool):
        raise ConfigurationError(f"{kind} '{name}' must be a real number, got {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{kind} '{name}' must be a real number, got {value!r}") from None
    if not np.isfinite(number):
        raise ConfigurationError(f"{kind} '{name}' must be finite, got {value!r}")
    return number


def validate_parameters(model_type: str, model_id: str, params: Mapping,
                        strict: bool = True) -> Dict[str, float]:
    """
    Validate a parameter set against the model's parameter record.

    Args:
        model_type: 'continuous' or 'discrete'
        model_id: Registered model id
        params: Mapping from parameter name to value
        strict: If True, keys the model does not use are rejected

    Returns:
        New dictionary holding exactly the model's parameters as floats

    Raises:
        ConfigurationError: If a parameter is missing, unknown (strict mode),
            or not a finite real number
    """
    if not isinstance(params, Mapping):
        raise ConfigurationError(f"Parameters must be a mapping, got {type(params).__name__}")

    names = get_parameter_names(model_type, model_id)
    missing = [name for name in names if name not in params]
    if missing:
        raise ConfigurationError(f"Missing parameter(s) {missing} for {model_type} model '{model_id}'")
    if strict:
        unknown = sorted(set(params) - set(names))
        if unknown:
            raise ConfigurationError(
                f"Unknown parameter(s) {unknown} for {model_type} model '{model_id}'; expected {list(names)}"
            )
    return {name: _as_finite(name, params[name], 'Parameter') for name in names}


def validate_state(model_type: str, model_id: str, state) -> np.ndarray:
    """
    Validate an initial state and return it as a vector in compartment order.

    ``state`` may be a mapping from compartment name to value or a sequence
    in the registry's compartment order. Values must be finite and
    non-negative.
    """
    names = get_state_names(model_type, model_id)
    values = systems._unpack_state(state, names)
    vector = np.array([_as_finite(name, v, 'State variable') for name, v in zip(names, values)])
    negative = [name for name, v in zip(names, vector) if v < 0]
    if negative:
        raise ConfigurationError(f"Initial state must be non-negative; got negative {negative}")
    return vector


def load_yaml_config(config_path: str) -> Dict[str, Any]:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Dictionary containing configuration parameters

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If config file is malformed

    Example:
        >>> config_dict = load_yaml_config('scenarios/rosenzweig_macarthur.yaml')
    """
    if not os.path.exists(config_path):
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, 'r') as f:
        try:
            config_dict = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Error parsing YAML config {config_path}: {e}")

    if config_dict is None:
        raise ConfigurationError(f"Empty config file: {config_path}")

    return config_dict


def merge_configs(base_config: Dict[str, Any], override_config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge two configuration dictionaries.

    Override config takes precedence. Handles nested dictionaries recursively.

    Example:
        >>> base = {'parameters': {'r': 0.5, 'K': 100}}
        >>> override = {'parameters': {'K': 200}}
        >>> merge_configs(base, override)
        {'parameters': {'r': 0.5, 'K': 200}}
    """
    result = base_config.copy()

    for key, value in override_config.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_configs(result[key], value)
        else:
            result[key] = value

    return result


def parse_scenario(config_dict: Dict[str, Any]) -> Dict[str, Any]:
    """
    Turn a scenario dictionary into validated simulation inputs.

    Expected layout:
        model: {type: continuous, id: logistic}
        parameters: {r: 0.5}       # missing entries fall back to defaults
        initial: {N: 10}           # idem
        time: {horizon: 100, step: 0.1} or {times: [...]} or {steps: 50}

    Returns:
        Dictionary with 'model_type', 'model_id', 'params', 'init' and
        'time_spec' (continuous) or 'n_steps' (discrete)
    """
    if 'model' not in config_dict or 'id' not in config_dict['model']:
        raise ConfigurationError("Missing required config section: 'model.id'")

    model_type = config_dict['model'].get('type', 'continuous')
    model_id = config_dict['model']['id']

    defaults = {
        'parameters': get_default_parameters(model_type, model_id),
        'initial': get_default_initial_state(model_type, model_id),
    }
    merged = merge_configs(defaults, {k: v for k, v in config_dict.items()
                                      if k in ('parameters', 'initial')})

    scenario = {
        'model_type': model_type,
        'model_id': model_id,
        'params': validate_parameters(model_type, model_id, merged['parameters']),
        'init': dict(zip(get_state_names(model_type, model_id),
                         validate_state(model_type, model_id, merged['initial']))),
    }

    time = config_dict.get('time', {})
    if model_type == 'discrete':
        scenario['n_steps'] = int(time.get('steps', 50))
    elif 'times' in time:
        scenario['time_spec'] = list(time['times'])
    else:
        scenario['time_spec'] = (float(time.get('horizon', 100.0)), float(time.get('step', 0.1)))

    return scenario


def load_scenario(config_path: str, base_config_path: Optional[str] = None,
                  verbose: bool = False) -> Dict[str, Any]:
    """
    Load a simulation scenario from a YAML file.

    Args:
        config_path: Path to the scenario file
        base_config_path: Optional scenario to inherit values from
        verbose: Whether to print loading messages

    Returns:
        Validated scenario (see :func:`parse_scenario`)
    """
    if verbose:
        print(f"Loading scenario from: {config_path}")

    config_dict = load_yaml_config(config_path)

    if base_config_path is not None:
        if verbose:
            print(f"  Inheriting from: {base_config_path}")
        config_dict = merge_configs(load_yaml_config(base_config_path), config_dict)

    scenario = parse_scenario(config_dict)

    if verbose:
        print(f"  Model: {scenario['model_type']}/{scenario['model_id']}")

    return scenario
