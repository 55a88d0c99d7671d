"""
Layer Configuration

Dataclasses describing a normalization layer and its parameter fillers,
loadable from YAML files such as the ones under configs/.
"""

from __future__ import annotations
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


@dataclass
class FillerParameter:
    type: str = "constant"
    value: float = 0.0   # constant
    mean: float = 0.0    # gaussian
    std: float = 1.0     # gaussian
    min: float = 0.0     # uniform
    max: float = 1.0     # uniform

    @staticmethod
    def from_dict(d: Optional[Dict[str, Any]]) -> "FillerParameter":
        d = dict(d or {})
        unknown = set(d) - set(FillerParameter.__dataclass_fields__)
        if unknown:
            raise ValueError(f"Unknown filler fields: {sorted(unknown)}")
        param = FillerParameter(**d)
        for name in ("value", "mean", "std", "min", "max"):
            setattr(param, name, float(getattr(param, name)))
        return param


@dataclass
class BNParameter:
    scale_filler: FillerParameter = field(default_factory=lambda: FillerParameter(value=1.0))
    shift_filler: FillerParameter = field(default_factory=FillerParameter)
    eps: float = 1e-9

    def __post_init__(self):
        if not self.eps > 0:
            raise ValueError(f"eps must be positive, got {self.eps}")

    @staticmethod
    def from_dict(d: Optional[Dict[str, Any]]) -> "BNParameter":
        d = dict(d or {})
        kwargs = {}
        if "scale_filler" in d:
            kwargs["scale_filler"] = FillerParameter.from_dict(d.pop("scale_filler"))
        if "shift_filler" in d:
            kwargs["shift_filler"] = FillerParameter.from_dict(d.pop("shift_filler"))
        if "eps" in d:
            kwargs["eps"] = float(d.pop("eps"))
        if d:
            raise ValueError(f"Unknown bn_param fields: {sorted(d)}")
        return BNParameter(**kwargs)


@dataclass
class LayerParameter:
    name: str = "bn"
    type: str = "BN"
    bn_param: BNParameter = field(default_factory=BNParameter)

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "LayerParameter":
        return LayerParameter(
            name=str(d.get("name", "bn")),
            type=str(d.get("type", "BN")),
            bn_param=BNParameter.from_dict(d.get("bn_param")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def bn_layer_param(scale: float = 1.0, shift: float = 0.0, eps: float = 1e-9,
                   name: str = "bn") -> LayerParameter:
    """Shortcut for the common case of constant scale/shift fillers."""
    return LayerParameter(
        name=name,
        bn_param=BNParameter(
            scale_filler=FillerParameter(value=float(scale)),
            shift_filler=FillerParameter(value=float(shift)),
            eps=eps,
        ),
    )


def load_layer_config(path: str | Path) -> LayerParameter:
    with open(path, "r") as f:
        cfg = yaml.safe_load(f)
    if not isinstance(cfg, dict):
        raise ValueError(f"Layer config must be a mapping: {path}")
    # allow either a bare layer mapping or one nested under "layer"
    return LayerParameter.from_dict(cfg.get("layer", cfg))


__all__ = [
    "FillerParameter",
    "BNParameter",
    "LayerParameter",
    "bn_layer_param",
    "load_layer_config",
]
