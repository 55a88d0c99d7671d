"""
Batch normalization layer with per-channel statistics, affine rescaling and
an exact backward pass, plus a numerical gradient checker to verify it.
"""

from .blob import Blob
from .config import BNParameter, FillerParameter, LayerParameter, bn_layer_param, load_layer_config
from .fillers import constant_filler, gaussian_filler, get_filler, uniform_filler
from .gradient_check import GradientChecker, GradientCheckError
from .layers import BNLayer, Layer, ShapeMismatchError, create_layer

__version__ = "0.1.0"

__all__ = [
    "Blob",
    "BNParameter",
    "FillerParameter",
    "LayerParameter",
    "bn_layer_param",
    "load_layer_config",
    "constant_filler",
    "gaussian_filler",
    "uniform_filler",
    "get_filler",
    "GradientChecker",
    "GradientCheckError",
    "BNLayer",
    "Layer",
    "ShapeMismatchError",
    "create_layer",
]
