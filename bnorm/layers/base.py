from __future__ import annotations
from typing import List, Optional, Sequence

from ..blob import Blob
from ..config import LayerParameter


class Layer:
    """
    Lifecycle shared by all layers: one setup, then any number of
    forward/backward pairs driven by the caller in that order.

    bottom: input blobs, top: output blobs, blobs: learnable parameters.
    """

    exact_num_bottom_blobs: Optional[int] = None
    exact_num_top_blobs: Optional[int] = None

    def __init__(self, param: LayerParameter):
        self.param = param
        self.blobs: List[Blob] = []

    @property
    def name(self) -> str:
        return self.param.name

    def setup(self, bottom: Sequence[Blob], top: Sequence[Blob]):
        self.check_blob_counts(bottom, top)
        self.layer_setup(bottom, top)

    def check_blob_counts(self, bottom: Sequence[Blob], top: Sequence[Blob]):
        if self.exact_num_bottom_blobs is not None and len(bottom) != self.exact_num_bottom_blobs:
            raise ValueError(f"{type(self).__name__} takes {self.exact_num_bottom_blobs} "
                             f"bottom blob(s), got {len(bottom)}")
        if self.exact_num_top_blobs is not None and len(top) != self.exact_num_top_blobs:
            raise ValueError(f"{type(self).__name__} produces {self.exact_num_top_blobs} "
                             f"top blob(s), got {len(top)}")

    def layer_setup(self, bottom: Sequence[Blob], top: Sequence[Blob]):
        raise NotImplementedError

    def forward(self, bottom: Sequence[Blob], top: Sequence[Blob]):
        raise NotImplementedError

    def backward(self, top: Sequence[Blob], propagate_down: Sequence[bool],
                 bottom: Sequence[Blob]):
        raise NotImplementedError
