from __future__ import annotations
import numpy as np


class Blob:
    """
    Dense 4-axis array (num, channels, height, width) with a paired gradient buffer.

    `data` holds the forward values and `diff` the gradient with respect to them.
    Both always share the same shape and dtype.
    """

    def __init__(self, num: int = 0, channels: int = 0, height: int = 0, width: int = 0,
                 dtype=np.float32):
        self.dtype = np.dtype(dtype)
        self.data = np.zeros((0, 0, 0, 0), dtype=self.dtype)
        self.diff = np.zeros_like(self.data)
        self.reshape(num, channels, height, width)

    @classmethod
    def from_array(cls, array: np.ndarray, dtype=None) -> "Blob":
        array = np.asarray(array)
        if array.ndim != 4:
            raise ValueError(f"Blob expects a 4-axis array, got shape {array.shape}")
        blob = cls(*array.shape, dtype=array.dtype if dtype is None else dtype)
        blob.data[...] = array
        return blob

    def reshape(self, num: int, channels: int, height: int, width: int):
        shape = (int(num), int(channels), int(height), int(width))
        if any(d < 0 for d in shape):
            raise ValueError(f"Blob extents must be non-negative, got {shape}")
        if shape != self.data.shape:
            self.data = np.zeros(shape, dtype=self.dtype)
            self.diff = np.zeros(shape, dtype=self.dtype)

    def reshape_like(self, other: "Blob"):
        self.reshape(*other.shape)

    @property
    def shape(self):
        return self.data.shape

    @property
    def num(self) -> int:
        return self.data.shape[0]

    @property
    def channels(self) -> int:
        return self.data.shape[1]

    @property
    def height(self) -> int:
        return self.data.shape[2]

    @property
    def width(self) -> int:
        return self.data.shape[3]

    @property
    def count(self) -> int:
        return int(self.data.size)

    def data_at(self, n: int, c: int, h: int, w: int) -> float:
        return float(self.data[n, c, h, w])

    def diff_at(self, n: int, c: int, h: int, w: int) -> float:
        return float(self.diff[n, c, h, w])

    def copy(self) -> "Blob":
        out = Blob(*self.shape, dtype=self.dtype)
        out.data[...] = self.data
        out.diff[...] = self.diff
        return out

    def __repr__(self):
        return f"Blob(shape={self.shape}, dtype={self.dtype})"
