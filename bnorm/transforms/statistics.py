from __future__ import annotations
import numpy as np
from dataclasses import dataclass

# reduction axes of an (N, C, H, W) tensor: everything except channels
REDUCE_AXES = (0, 2, 3)


@dataclass
class ChannelStats:
    mean: np.ndarray  # (C,)
    var:  np.ndarray  # (C,) biased

    def rstd(self, eps: float) -> np.ndarray:
        return 1.0 / np.sqrt(self.var + eps)

    @property
    def channels(self) -> int:
        return int(self.mean.shape[0])


def reduction_count(shape) -> int:
    """Number of (sample, row, column) positions contributing to each channel."""
    if len(shape) != 4:
        raise ValueError(f"Expected an (N, C, H, W) shape, got {tuple(shape)}")
    N, _, H, W = shape
    return int(N * H * W)


def channel_statistics(x: np.ndarray, count: int | None = None) -> ChannelStats:
    # x: (N, C, H, W)
    if x.ndim != 4:
        raise ValueError(f"Expected a 4-axis tensor, got shape {x.shape}")
    if count is None:
        count = reduction_count(x.shape)
    if count <= 0:
        raise ValueError(f"Reduction count must be positive, got {count}")
    # single pass: accumulate sum and sum of squares per channel in float64
    x = x.astype(np.float64, copy=False)
    s = x.sum(axis=REDUCE_AXES)
    sumsq = (x * x).sum(axis=REDUCE_AXES)
    mean = s / count
    var = sumsq / count - mean ** 2
    return ChannelStats(mean=mean, var=var)


__all__ = ["ChannelStats", "channel_statistics", "reduction_count", "REDUCE_AXES"]
