"""
Batch Normalization Layer

Normalizes each channel of an (N, C, H, W) blob with statistics computed over
the current batch and spatial positions, then applies a learned per-channel
scale and shift. Parameters are stored as blobs[0] (scale) and blobs[1]
(shift), each shaped (1, C, 1, 1).
"""

from __future__ import annotations
import logging
from typing import Optional, Sequence, Tuple

import numpy as np

from ..blob import Blob
from ..config import LayerParameter
from ..fillers import get_filler
from ..transforms.normalize import BNCache, batch_norm_backward, batch_norm_forward
from ..transforms.statistics import reduction_count
from .base import Layer

logger = logging.getLogger(__name__)


class ShapeMismatchError(ValueError):
    """Input blob shape is incompatible with the layer's configured parameters."""


class BNLayer(Layer):
    exact_num_bottom_blobs = 1
    exact_num_top_blobs = 1

    def __init__(self, param: LayerParameter, rng: Optional[np.random.Generator] = None):
        super().__init__(param)
        self.bn_param = param.bn_param
        self.eps = self.bn_param.eps
        self.rng = rng
        self.cache: Optional[BNCache] = None

    @property
    def scale(self) -> Blob:
        return self.blobs[0]

    @property
    def shift(self) -> Blob:
        return self.blobs[1]

    @property
    def channels(self) -> int:
        return self.blobs[0].channels if self.blobs else 0

    def layer_setup(self, bottom: Sequence[Blob], top: Sequence[Blob]):
        x = bottom[0]
        count = reduction_count(x.shape)
        if x.channels == 0 or count == 0:
            raise ShapeMismatchError(f"{self.name}: bottom blob {x.shape} has no elements "
                                     f"to normalize (channels={x.channels}, count={count})")

        if self.channels != x.channels:
            C = x.channels
            scale = Blob(1, C, 1, 1, dtype=x.dtype)
            shift = Blob(1, C, 1, 1, dtype=x.dtype)
            get_filler(self.bn_param.scale_filler, rng=self.rng)(scale)
            get_filler(self.bn_param.shift_filler, rng=self.rng)(shift)
            self.blobs = [scale, shift]
        else:
            logger.debug(f"{self.name}: keeping existing parameters for {self.channels} channels")

        top[0].reshape_like(x)
        self.cache = None
        logger.info(f"Set up {self.name}: channels={x.channels}, reduction count={count}, eps={self.eps}")

    def _check_bottom(self, x: Blob):
        if not self.blobs:
            raise RuntimeError(f"{self.name}: setup() must be called before forward()")
        if x.channels != self.channels:
            raise ShapeMismatchError(f"{self.name}: bottom has {x.channels} channels, "
                                     f"parameters have {self.channels}")
        if reduction_count(x.shape) == 0:
            raise ShapeMismatchError(f"{self.name}: bottom blob {x.shape} is empty")

    def forward(self, bottom: Sequence[Blob], top: Sequence[Blob]):
        x = bottom[0]
        self._check_bottom(x)
        top[0].reshape_like(x)

        y, cache = batch_norm_forward(x.data, self.scale.data.reshape(-1),
                                      self.shift.data.reshape(-1), self.eps)
        top[0].data[...] = y
        self.cache = cache

        degenerate = np.flatnonzero(cache.var <= self.eps)
        if degenerate.size:
            logger.debug(f"{self.name}: near-zero variance in channels {degenerate.tolist()}")

    def backward_gradients(self, top_diff: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Return (bottom_diff, scale_diff, shift_diff) for the most recent forward."""
        if self.cache is None:
            raise RuntimeError(f"{self.name}: backward() called without a preceding forward()")
        return batch_norm_backward(top_diff, self.cache)

    def backward(self, top: Sequence[Blob], propagate_down: Sequence[bool],
                 bottom: Sequence[Blob]):
        dx, dscale, dshift = self.backward_gradients(top[0].diff)
        self.scale.diff[...] = dscale.reshape(self.scale.shape)
        self.shift.diff[...] = dshift.reshape(self.shift.shape)
        if propagate_down and propagate_down[0]:
            bottom[0].diff[...] = dx
