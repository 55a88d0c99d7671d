"""
Numerical Gradient Checking

Compares the analytic gradients a layer produces in backward() against
central finite differences of its forward() output. The checker only needs
the layer's setup/forward/backward methods and its parameter blobs, so any
layer following that lifecycle can be checked.

Objectives:
    - check_gradient: half the sum of squares of every top element
    - check_gradient_exhaustive: each top element on its own, one at a time
"""

from __future__ import annotations
import logging
from typing import List, Protocol, Sequence

import numpy as np

from .blob import Blob

logger = logging.getLogger(__name__)


class GradientCheckError(AssertionError):
    """Analytic and numerical gradients disagree beyond the threshold."""


class CheckableLayer(Protocol):
    blobs: List[Blob]

    def setup(self, bottom: Sequence[Blob], top: Sequence[Blob]): ...

    def forward(self, bottom: Sequence[Blob], top: Sequence[Blob]): ...

    def backward(self, top: Sequence[Blob], propagate_down: Sequence[bool],
                 bottom: Sequence[Blob]): ...


class GradientChecker:
    # weight of a single top element in the exhaustive objective
    LOSS_WEIGHT = 2.0

    def __init__(self, stepsize: float, threshold: float, max_reported: int = 10):
        if stepsize <= 0 or threshold <= 0:
            raise ValueError(f"stepsize and threshold must be positive, "
                             f"got {stepsize} and {threshold}")
        self.stepsize = stepsize
        self.threshold = threshold
        self.max_reported = max_reported

    def check_gradient(self, layer: CheckableLayer, bottom: Sequence[Blob],
                       top: Sequence[Blob], check_bottom: int = -1) -> int:
        layer.setup(bottom, top)
        return self.check_gradient_single(layer, bottom, top, check_bottom)

    def check_gradient_exhaustive(self, layer: CheckableLayer, bottom: Sequence[Blob],
                                  top: Sequence[Blob], check_bottom: int = -1) -> int:
        layer.setup(bottom, top)
        if not top:
            raise ValueError("Exhaustive gradient check needs at least one top blob")
        checked = 0
        for top_id, blob in enumerate(top):
            for top_data_id in range(blob.count):
                checked += self.check_gradient_single(layer, bottom, top, check_bottom,
                                                      top_id, top_data_id)
        logger.info(f"Exhaustive gradient check passed: {checked} comparisons")
        return checked

    def check_gradient_single(self, layer: CheckableLayer, bottom: Sequence[Blob],
                              top: Sequence[Blob], check_bottom: int = -1,
                              top_id: int = -1, top_data_id: int = -1) -> int:
        """
        Check every parameter element and the selected bottom elements against
        one objective. Returns the number of elements compared.

        - check_bottom: index of the bottom blob to check, or -1 for all of them
        - top_id, top_data_id: objective element, or -1 for the sum-of-squares objective
        """
        blobs_to_check = list(layer.blobs)
        for blob in blobs_to_check:
            blob.diff[...] = 0
        if check_bottom < 0:
            propagate_down = [True] * len(bottom)
            blobs_to_check.extend(bottom)
        else:
            if check_bottom >= len(bottom):
                raise ValueError(f"check_bottom={check_bottom} out of range for "
                                 f"{len(bottom)} bottom blob(s)")
            propagate_down = [i == check_bottom for i in range(len(bottom))]
            blobs_to_check.append(bottom[check_bottom])
        if not blobs_to_check:
            raise ValueError("No blobs to check")

        layer.forward(bottom, top)
        self.get_objective_and_gradient(top, top_id, top_data_id)
        layer.backward(top, propagate_down, bottom)
        computed_gradients = [blob.diff.astype(np.float64) for blob in blobs_to_check]

        failures = []
        checked = 0
        for blob_id, blob in enumerate(blobs_to_check):
            for feat_id in range(blob.count):
                idx = np.unravel_index(feat_id, blob.shape)
                original = blob.data[idx]

                blob.data[idx] = original + self.stepsize
                layer.forward(bottom, top)
                positive_objective = self.get_objective_and_gradient(top, top_id, top_data_id)

                blob.data[idx] = original - self.stepsize
                layer.forward(bottom, top)
                negative_objective = self.get_objective_and_gradient(top, top_id, top_data_id)

                blob.data[idx] = original
                estimated = (positive_objective - negative_objective) / self.stepsize / 2.0
                computed = float(computed_gradients[blob_id][idx])

                scale = max(abs(computed), abs(estimated), 1.0)
                if abs(computed - estimated) > self.threshold * scale:
                    failures.append((blob_id, feat_id, computed, estimated))
                checked += 1

        if failures:
            lines = [f"blob {b} element {f}: computed {c:.6g}, estimated {e:.6g}"
                     for b, f, c, e in failures[:self.max_reported]]
            raise GradientCheckError(
                f"{len(failures)} gradient mismatch(es) for objective "
                f"(top_id={top_id}, top_data_id={top_data_id}):\n" + "\n".join(lines))
        return checked

    def get_objective_and_gradient(self, top: Sequence[Blob], top_id: int = -1,
                                   top_data_id: int = -1) -> float:
        """Fill top diffs with d(objective)/d(top) and return the objective."""
        if top_id < 0:
            loss = 0.0
            for blob in top:
                blob.diff[...] = blob.data
                loss += float(np.sum(blob.data.astype(np.float64) ** 2))
            return loss / 2.0

        for blob in top:
            blob.diff[...] = 0
        target = top[top_id]
        idx = np.unravel_index(top_data_id, target.shape)
        target.diff[idx] = self.LOSS_WEIGHT
        return float(target.data[idx]) * self.LOSS_WEIGHT


__all__ = ["GradientChecker", "GradientCheckError", "CheckableLayer"]
