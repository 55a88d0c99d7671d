#!/usr/bin/env python3
"""
Verify a batch normalization layer configuration.

Fills a Gaussian (N, C, H, W) blob, runs the layer forward, reports the
per-channel mean and second moment of the output against the values implied
by the constant scale/shift fillers, then runs the exhaustive numerical
gradient check.

Example:
    python scripts/check_bn_layer.py --config configs/bn_scale_two_shift_one.yaml
"""

from __future__ import annotations
import argparse
import logging
import sys
from pathlib import Path

import numpy as np

# Ensure repo root on path when running directly
REPO_ROOT = Path(__file__).resolve().parent.parent
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from bnorm.blob import Blob
from bnorm.config import load_layer_config
from bnorm.fillers import gaussian_filler
from bnorm.gradient_check import GradientChecker, GradientCheckError
from bnorm.layers import create_layer

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--config", type=str, required=True, help="layer YAML config")
    ap.add_argument("--shape", type=int, nargs=4, default=[5, 2, 3, 4],
                    metavar=("N", "C", "H", "W"))
    ap.add_argument("--seed", type=int, default=1701)
    ap.add_argument("--dtype", type=str, default="float64", choices=["float32", "float64"])
    ap.add_argument("--stepsize", type=float, default=1e-2)
    ap.add_argument("--threshold", type=float, default=1e-3)
    ap.add_argument("--mean_tol", type=float, default=1e-3,
                    help="allowed abs error of per-channel mean and second moment")
    ap.add_argument("--skip_gradient", action="store_true")
    args = ap.parse_args()

    param = load_layer_config(args.config)
    bn = param.bn_param
    logger.info(f"Loaded {param.name} ({param.type}) from {args.config}")

    rng = np.random.default_rng(args.seed)
    bottom = Blob(*args.shape, dtype=args.dtype)
    gaussian_filler(0.0, 1.0, rng=rng)(bottom)
    top = Blob(dtype=args.dtype)

    layer = create_layer(param, rng=rng)
    layer.setup([bottom], [top])
    layer.forward([bottom], [top])

    mean = top.data.mean(axis=(0, 2, 3))
    second_moment = (top.data.astype(np.float64) ** 2).mean(axis=(0, 2, 3))
    logger.info(f"Per-channel mean: {np.round(mean, 6).tolist()}")
    logger.info(f"Per-channel second moment: {np.round(second_moment, 6).tolist()}")

    ok = True
    if bn.scale_filler.type == "constant" and bn.shift_filler.type == "constant":
        s, b = bn.scale_filler.value, bn.shift_filler.value
        mean_err = float(np.abs(mean - b).max())
        moment_err = float(np.abs(second_moment - (s * s + b * b)).max())
        logger.info(f"Max |mean - {b}|: {mean_err:.3g}; max |E[y^2] - {s * s + b * b}|: {moment_err:.3g}")
        ok = mean_err <= args.mean_tol and moment_err <= args.mean_tol
        if not ok:
            logger.error("Forward statistics outside tolerances")
    else:
        logger.warning("Non-constant fillers; skipping forward statistics check")

    if not args.skip_gradient:
        checker = GradientChecker(args.stepsize, args.threshold)
        try:
            checked = checker.check_gradient_exhaustive(layer, [bottom], [top])
            logger.info(f"Gradient check passed ({checked} comparisons)")
        except GradientCheckError as e:
            logger.error(f"Gradient check failed:\n{e}")
            ok = False

    if not ok:
        raise SystemExit(1)
    logger.info("PASSED")


if __name__ == "__main__":
    main()
