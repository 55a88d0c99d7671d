"""
Batch Normalization: forward and backward passes

Forward:
    mean_c, var_c = per-channel statistics over (N, H, W)
    x_hat = (x - mean_c) / sqrt(var_c + eps)
    y     = scale_c * x_hat + shift_c

Backward (dy = dL/dy):
    dshift_c = sum(dy)
    dscale_c = sum(dy * x_hat)
    dx_hat   = dy * scale_c
    dx       = rstd_c * (dx_hat - mean(dx_hat) - x_hat * mean(dx_hat * x_hat))

Every input element moves its own normalized value as well as the channel
mean and variance shared by all elements of that channel. The two mean()
terms in dx carry those shared contributions; dropping them gives a
gradient that looks plausible but fails a numerical check.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from .statistics import REDUCE_AXES, channel_statistics, reduction_count


def _per_channel(v: np.ndarray) -> np.ndarray:
    # (C,) -> (1, C, 1, 1) for broadcasting against (N, C, H, W)
    return np.asarray(v).reshape(1, -1, 1, 1)


@dataclass
class BNCache:
    x_hat: np.ndarray  # (N, C, H, W)
    mean:  np.ndarray  # (C,)
    var:   np.ndarray  # (C,)
    rstd:  np.ndarray  # (C,)
    scale: np.ndarray  # (C,)
    count: int


def batch_norm_forward(x: np.ndarray, scale: np.ndarray, shift: np.ndarray,
                       eps: float = 1e-9) -> Tuple[np.ndarray, BNCache]:
    count = reduction_count(x.shape)
    stats = channel_statistics(x, count)
    rstd = stats.rstd(eps)

    scale = np.asarray(scale, dtype=np.float64)
    shift = np.asarray(shift, dtype=np.float64)
    if scale.shape != stats.mean.shape or shift.shape != stats.mean.shape:
        raise ValueError(f"Expected scale/shift of shape {stats.mean.shape}, "
                         f"got {scale.shape} and {shift.shape}")

    x_hat = (x.astype(np.float64, copy=False) - _per_channel(stats.mean)) * _per_channel(rstd)
    y = _per_channel(scale) * x_hat + _per_channel(shift)

    cache = BNCache(x_hat=x_hat, mean=stats.mean, var=stats.var, rstd=rstd,
                    scale=scale.copy(), count=count)
    return y.astype(x.dtype, copy=False), cache


def batch_norm_backward(dy: np.ndarray,
                        cache: BNCache) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    if dy.shape != cache.x_hat.shape:
        raise ValueError(f"Output gradient shape {dy.shape} does not match "
                         f"forward shape {cache.x_hat.shape}")
    x_hat = cache.x_hat
    n = cache.count
    g = dy.astype(np.float64, copy=False)

    dshift = g.sum(axis=REDUCE_AXES)
    dscale = (g * x_hat).sum(axis=REDUCE_AXES)

    # dL/dx_hat summed per channel is dscale/dshift scaled by the parameter
    dx_hat = g * _per_channel(cache.scale)
    mean_dx_hat = _per_channel(dshift * cache.scale / n)
    mean_dx_hat_x_hat = _per_channel(dscale * cache.scale / n)
    dx = (dx_hat - mean_dx_hat - x_hat * mean_dx_hat_x_hat) * _per_channel(cache.rstd)

    return dx.astype(dy.dtype, copy=False), dscale, dshift


__all__ = ["BNCache", "batch_norm_forward", "batch_norm_backward"]
