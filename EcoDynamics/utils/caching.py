"""
Memoization utilities for simulation results.

A simulation is fully determined by its inputs (model, parameters, initial
state and time specification), and those inputs never change once a run
starts. Results can therefore be cached by a hash of the inputs without any
invalidation logic. The cache is an explicit object passed by the caller;
nothing is cached at module level.
"""

import hashlib
import json
from collections import OrderedDict
from collections.abc import Mapping
from typing import Any, Optional

import numpy as np


def _to_jsonable(obj: Any) -> Any:
    """Convert numpy values and tuples into plain JSON types."""
    if isinstance(obj, Mapping):
        return {str(k): _to_jsonable(v) for k, v in obj.items()}
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    if isinstance(obj, (list, tuple)):
        return [_to_jsonable(v) for v in obj]
    if isinstance(obj, np.generic):
        return obj.item()
    return obj


def compute_simulation_hash(
    model_type: str,
    model_id: str,
    params,
    init,
    time_spec,
    extra_params=None
) -> str:
    """
    Compute a unique hash for a simulation request.

    The hash covers the model, the parameter set, the initial state, the time
    specification (explicit times, (horizon, step) pair or number of steps)
    and any solver options passed as ``extra_params``.

    Args:
        model_type: 'continuous' or 'discrete'
        model_id: Registered model id
        params: Parameter mapping
        init: Initial state (mapping or sequence)
        time_spec: Time specification of the run
        extra_params: Optional dict of additional options to include in hash

    Returns:
        SHA256 hash string (first 16 characters for readability)

    Example:
        >>> key = compute_simulation_hash(
        ...     'continuous', 'logistic', {'r': 0.5, 'K': 100}, {'N': 10}, (50, 0.1)
        ... )
    """
    request = {
        'model_type': model_type,
        'model_id': model_id,
        'params': _to_jsonable(params),
        'init': _to_jsonable(init),
        'time_spec': _to_jsonable(time_spec),
    }

    if extra_params is not None:
        request['extra_params'] = _to_jsonable(extra_params)

    # Create sorted JSON string for consistent hashing
    request_str = json.dumps(request, sort_keys=True)

    hash_obj = hashlib.sha256(request_str.encode('utf-8'))
    return hash_obj.hexdigest()[:16]


class SimulationCache:
    """
    Least-recently-used in-memory cache of simulation results.

    Example:
        >>> cache = SimulationCache(maxsize=32)
        >>> traj = simulate_continuous('logistic', (50, 0.1), {'N': 10},
        ...                            {'r': 0.5, 'K': 100}, cache=cache)
    """

    def __init__(self, maxsize: Optional[int] = 128):
        """
        :param maxsize: Maximum number of stored results, None for unbounded.
        """
        if maxsize is not None and maxsize < 1:
            raise ValueError("maxsize must be a positive integer or None")
        self.maxsize = maxsize
        self._store = OrderedDict()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, key: str) -> bool:
        return key in self._store

    def get(self, key: str, default=None):
        if key in self._store:
            self._store.move_to_end(key)
            self.hits += 1
            return self._store[key]
        self.misses += 1
        return default

    def put(self, key: str, value) -> None:
        self._store[key] = value
        self._store.move_to_end(key)
        if self.maxsize is not None and len(self._store) > self.maxsize:
            self._store.popitem(last=False)

    def clear(self) -> None:
        self._store.clear()
        self.hits = 0
        self.misses = 0
