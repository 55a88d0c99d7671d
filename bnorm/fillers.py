"""
Parameter Fillers

A filler is any callable that takes a target (a Blob or a NumPy array) and
fills it in place. Fillers are plain closures so that new initialization
schemes can be added without touching the layers that consume them.
"""

from __future__ import annotations
from typing import Callable, Optional, Union

import numpy as np

from .blob import Blob

Filler = Callable[[Union[Blob, np.ndarray]], None]


def _target_array(target) -> np.ndarray:
    return target.data if isinstance(target, Blob) else target


def constant_filler(value: float = 0.0) -> Filler:
    def fill(target):
        _target_array(target)[...] = value
    return fill


def gaussian_filler(mean: float = 0.0, std: float = 1.0,
                    rng: Optional[np.random.Generator] = None) -> Filler:
    rng = rng if rng is not None else np.random.default_rng()

    def fill(target):
        arr = _target_array(target)
        arr[...] = rng.normal(mean, std, size=arr.shape)
    return fill


def uniform_filler(low: float = 0.0, high: float = 1.0,
                   rng: Optional[np.random.Generator] = None) -> Filler:
    if high < low:
        raise ValueError(f"uniform filler needs low <= high, got [{low}, {high}]")
    rng = rng if rng is not None else np.random.default_rng()

    def fill(target):
        arr = _target_array(target)
        arr[...] = rng.uniform(low, high, size=arr.shape)
    return fill


def get_filler(param, rng: Optional[np.random.Generator] = None) -> Filler:
    """
    Build a filler from a FillerParameter.

    - param.type: one of {"constant", "gaussian", "uniform"}
    - rng: generator forwarded to the random fillers
    """
    key = param.type.lower()
    if key == "constant":
        return constant_filler(param.value)
    if key == "gaussian":
        return gaussian_filler(param.mean, param.std, rng=rng)
    if key == "uniform":
        return uniform_filler(param.min, param.max, rng=rng)
    raise ValueError(f"Unknown filler type: {param.type}")


__all__ = [
    "Filler",
    "constant_filler",
    "gaussian_filler",
    "uniform_filler",
    "get_filler",
]
