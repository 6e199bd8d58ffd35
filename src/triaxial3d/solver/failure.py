"""
Failure detection on damage snapshots.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from ..simconfig.params import DENSITY_FLOOR

logger = logging.getLogger(__name__)


@dataclass
class FailureReport:
    """Result of one damage scan."""
    failed: bool
    max_ratio: float
    voxel: Optional[Tuple[int, int, int]]   # first crossing voxel in x-fastest order
    failed_fraction: float                  # share of active voxels with ratio >= 1


class FailureMonitor:
    """Compare damage against the density-scaled critical damage.

    critical = critical_fraction * max(density, floor) / reference_density
    """

    def __init__(self, critical_fraction: float, reference_density: float):
        self.critical_fraction = critical_fraction
        self.reference_density = reference_density
        self.reset()

    def reset(self):
        self.max_ratio = 0.0
        self.first_failure_voxel = None

    def critical_damage(self, density: np.ndarray) -> np.ndarray:
        return self.critical_fraction * np.maximum(density, DENSITY_FLOOR) / self.reference_density

    def damage_ratio(self, damage: np.ndarray, density: np.ndarray, active: np.ndarray) -> np.ndarray:
        """damage / critical on active voxels, 0 elsewhere."""
        ratio = np.zeros(damage.shape)
        ratio[active] = damage[active] / self.critical_damage(density[active])
        return ratio

    def scan(self, damage: np.ndarray, density: np.ndarray, active: np.ndarray) -> FailureReport:
        """Scan a synchronized snapshot and update the running maximum."""
        n_active = int(np.count_nonzero(active))
        if n_active == 0:
            return FailureReport(False, 0.0, None, 0.0)

        ratio = self.damage_ratio(damage, density, active)
        max_ratio = float(ratio.max())
        self.max_ratio = max(self.max_ratio, max_ratio)

        crossing = active & (ratio >= 1.0)
        n_failed = int(np.count_nonzero(crossing))
        if n_failed == 0:
            return FailureReport(False, max_ratio, None, 0.0)

        flat = int(np.flatnonzero(crossing.ravel(order="F"))[0])
        voxel = tuple(int(c) for c in np.unravel_index(flat, crossing.shape, order="F"))
        if self.first_failure_voxel is None:
            self.first_failure_voxel = voxel
            logger.info("First failure at voxel %s (ratio %.3f)", voxel, float(ratio[voxel]))
        return FailureReport(True, max_ratio, voxel, n_failed / n_active)
