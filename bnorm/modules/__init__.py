"""
Neural Network Modules

PyTorch counterparts of the normalization layer for use inside torch models.
"""

from .batch_norm import BatchNormFunction, BatchNorm2d, batch_norm
from .cnn_blocks import ConvBNBlock2D, ResidualBNBlock2D

__all__ = [
    'BatchNormFunction', 'BatchNorm2d', 'batch_norm',
    'ConvBNBlock2D', 'ResidualBNBlock2D',
]
