from ..config import LayerParameter
from .base import Layer
from .bn_layer import BNLayer, ShapeMismatchError


def create_layer(param: LayerParameter, **kwargs) -> Layer:
    """
    Build a layer from its parameter.

    - param.type: one of {"BN", "BatchNorm"}
    - kwargs: forwarded to the layer constructor
    """
    key = param.type.lower().replace("_", "")
    if key in {"bn", "batchnorm"}:
        return BNLayer(param, **kwargs)
    raise ValueError(f"Unknown layer type: {param.type}")


__all__ = ["Layer", "BNLayer", "ShapeMismatchError", "create_layer"]
