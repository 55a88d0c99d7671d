"""
CNN Building Blocks

Convolutional blocks normalized with the project's BatchNorm2d.
"""

import torch
import torch.nn as nn

from .batch_norm import BatchNorm2d


class ConvBNBlock2D(nn.Module):
    """Basic 2D Convolutional Block with BatchNorm and Activation"""

    def __init__(self, in_channels, out_channels, kernel_size=3, stride=1,
                 padding=None, dilation=1, groups=1, bias=False,
                 norm_layer=BatchNorm2d, activation=nn.ReLU, dropout=0.0):
        super().__init__()

        if padding is None:
            padding = (kernel_size - 1) // 2 * dilation

        self.conv = nn.Conv2d(in_channels, out_channels, kernel_size, stride,
                              padding, dilation, groups, bias)
        self.norm = norm_layer(out_channels) if norm_layer else nn.Identity()
        self.activation = activation() if activation else nn.Identity()
        self.dropout = nn.Dropout(dropout) if dropout > 0 else nn.Identity()

    def forward(self, x):
        x = self.conv(x)
        x = self.norm(x)
        x = self.activation(x)
        x = self.dropout(x)
        return x


class ResidualBNBlock2D(nn.Module):
    """2D Residual Block: conv-bn-relu -> conv-bn, plus shortcut"""

    def __init__(self, in_channels, out_channels, kernel_size=3, stride=1, dropout=0.0):
        super().__init__()

        self.conv1 = ConvBNBlock2D(in_channels, out_channels, kernel_size, stride, dropout=dropout)
        self.conv2 = nn.Conv2d(out_channels, out_channels, kernel_size, 1,
                               (kernel_size - 1) // 2, bias=False)
        self.norm2 = BatchNorm2d(out_channels)

        # Shortcut connection
        if stride != 1 or in_channels != out_channels:
            self.shortcut = nn.Sequential(
                nn.Conv2d(in_channels, out_channels, 1, stride, bias=False),
                BatchNorm2d(out_channels)
            )
        else:
            self.shortcut = nn.Identity()

        self.activation = nn.ReLU()

    def forward(self, x):
        residual = self.shortcut(x)
        out = self.conv1(x)
        out = self.conv2(out)
        out = self.norm2(out)
        out += residual
        return self.activation(out)
