"""
PyTorch Batch Normalization

Autograd function and module computing the same per-channel batch
normalization as BNLayer, with the closed-form backward written out in
torch ops instead of relying on autograd through the statistics.
"""

import torch
import torch.nn as nn
import numpy as np
from typing import Optional

from ..config import BNParameter, LayerParameter
from ..fillers import Filler, constant_filler, get_filler
from ..layers.bn_layer import ShapeMismatchError


def _per_channel(v: torch.Tensor) -> torch.Tensor:
    return v.view(1, -1, 1, 1)


class BatchNormFunction(torch.autograd.Function):
    """y = scale * (x - mean) / sqrt(var + eps) + shift over an (N, C, H, W) batch"""

    @staticmethod
    def forward(ctx, x, scale, shift, eps):
        N, C, H, W = x.shape
        count = N * H * W

        # Single pass statistics (biased variance)
        mean = x.sum(dim=(0, 2, 3)) / count
        var = (x * x).sum(dim=(0, 2, 3)) / count - mean ** 2
        rstd = (var + eps) ** -0.5

        x_hat = (x - _per_channel(mean)) * _per_channel(rstd)
        out = x_hat * _per_channel(scale) + _per_channel(shift)

        # x_hat is recomputed in backward from (x, mean, rstd)
        ctx.save_for_backward(x, scale, mean, rstd)
        ctx.count = count
        return out

    @staticmethod
    def backward(ctx, dout):
        x, scale, mean, rstd = ctx.saved_tensors
        x_hat = (x - _per_channel(mean)) * _per_channel(rstd)

        dshift = dout.sum(dim=(0, 2, 3))
        dscale = (dout * x_hat).sum(dim=(0, 2, 3))

        dx_hat = dout * _per_channel(scale)
        dx = (dx_hat
              - dx_hat.sum(dim=(0, 2, 3), keepdim=True) / ctx.count
              - x_hat * (dx_hat * x_hat).sum(dim=(0, 2, 3), keepdim=True) / ctx.count)
        dx = dx * _per_channel(rstd)

        return dx, dscale, dshift, None


def batch_norm(x: torch.Tensor, scale: torch.Tensor, shift: torch.Tensor,
               eps: float = 1e-9) -> torch.Tensor:
    return BatchNormFunction.apply(x, scale, shift, eps)


class BatchNorm2d(nn.Module):
    """Per-channel batch normalization with learned scale and shift"""

    def __init__(self, num_features: int, eps: float = 1e-9,
                 scale_filler: Optional[Filler] = None,
                 shift_filler: Optional[Filler] = None):
        super().__init__()
        if num_features <= 0:
            raise ValueError(f"num_features must be positive, got {num_features}")
        if not eps > 0:
            raise ValueError(f"eps must be positive, got {eps}")
        self.num_features = num_features
        self.eps = eps
        self.scale_filler = scale_filler or constant_filler(1.0)
        self.shift_filler = shift_filler or constant_filler(0.0)

        self.scale = nn.Parameter(torch.empty(num_features))
        self.shift = nn.Parameter(torch.empty(num_features))
        self.reset_parameters()

    @classmethod
    def from_config(cls, param, num_features: int,
                    rng: Optional[np.random.Generator] = None) -> "BatchNorm2d":
        bn_param = param.bn_param if isinstance(param, LayerParameter) else param
        if not isinstance(bn_param, BNParameter):
            raise TypeError(f"Expected LayerParameter or BNParameter, got {type(param).__name__}")
        return cls(num_features, eps=bn_param.eps,
                   scale_filler=get_filler(bn_param.scale_filler, rng=rng),
                   shift_filler=get_filler(bn_param.shift_filler, rng=rng))

    @torch.no_grad()
    def reset_parameters(self):
        for param, filler in ((self.scale, self.scale_filler), (self.shift, self.shift_filler)):
            values = np.empty(self.num_features, dtype=np.float64)
            filler(values)
            param.copy_(torch.from_numpy(values))

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        if x.dim() != 4:
            raise ShapeMismatchError(f"BatchNorm2d expects (N, C, H, W) input, got {tuple(x.shape)}")
        if x.shape[1] != self.num_features:
            raise ShapeMismatchError(f"Input has {x.shape[1]} channels, "
                                     f"expected {self.num_features}")
        if x.shape[0] * x.shape[2] * x.shape[3] == 0:
            raise ShapeMismatchError(f"Input {tuple(x.shape)} has no elements to normalize")
        return batch_norm(x, self.scale, self.shift, self.eps)

    def extra_repr(self) -> str:
        return f"{self.num_features}, eps={self.eps}"
