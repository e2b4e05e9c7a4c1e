"""
Percentile band extraction over a simulated ensemble.
"""

import math
from typing import Optional, Sequence

import numpy as np

from config import DEFAULT_PERCENTILES
from models import PercentileBands
from .engine import Ensemble


def extract_percentiles(ensemble: Ensemble,
                        percentiles: Sequence[float] = DEFAULT_PERCENTILES) -> Optional[PercentileBands]:
    """
    Collapse an ensemble into per-year percentile bands.

    For each year the path values are sorted ascending and the value at index
    floor(N * p / 100) is taken (clamped to the last index). This is a plain
    order statistic; there is no interpolation between neighbours.

    Args:
        ensemble: Simulated trajectories
        percentiles: Levels in [0, 100], e.g. (10, 50, 90)

    Returns:
        PercentileBands with one band of length years + 1 per level, or None
        when the ensemble holds no paths.
    """
    for p in percentiles:
        if not 0 <= p <= 100:
            raise ValueError(f"Percentile must be within [0, 100], got {p}")

    if ensemble.is_empty:
        return None

    n = ensemble.size
    ordered = np.sort(ensemble.paths, axis=0)  # each column sorted independently

    bands = []
    for p in percentiles:
        idx = min(math.floor(n * p / 100), n - 1)
        bands.append(ordered[idx, :].tolist())

    return PercentileBands(percentiles=[float(p) for p in percentiles], bands=bands)
