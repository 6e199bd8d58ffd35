import logging

import numpy as np

from .stability import find_material_bounds
from ..fields import FieldStore
from ..simconfig import StressAxis

logger = logging.getLogger(__name__)


class BoundaryLoader:
    """Stress boundary conditions on the faces of the specimen bounding box.

    Faces are the first and last material planes along each axis, so a specimen
    embedded in background voxels is loaded on its own surface.
    """

    def __init__(self, store: FieldStore, axis: StressAxis, active: np.ndarray):
        self.store = store
        self.axis = StressAxis(axis)
        self.bounds = {a: find_material_bounds(active, a) for a in StressAxis}

    @property
    def axial_bounds(self):
        return self.bounds[self.axis]

    def specimen_length(self, dx: float) -> float:
        """Initial specimen extent along the loading axis (m)."""
        if self.axial_bounds is None:
            return 0.0
        lo, hi = self.axial_bounds
        return (hi - lo + 1) * dx

    def apply(self, axial: float, confining: float, broadcast: bool = False):
        """Overwrite boundary stresses for one increment; pressures in MPa."""
        if self.axial_bounds is None:
            logger.warning("No active voxels to load; boundary conditions skipped")
            return

        axial_pa = axial * 1e6
        confining_pa = confining * 1e6
        if broadcast:
            self.store.broadcast_stress(int(self.axis), axial_pa, confining_pa)

        lo, hi = self.axial_bounds
        self.store.apply_axial_boundary(int(self.axis), lo, hi, axial_pa, confining_pa)
        for lateral in self.axis.lateral:
            lat_lo, lat_hi = self.bounds[lateral]
            self.store.apply_lateral_boundary(int(lateral), lat_lo, lat_hi, confining_pa)

        logger.debug("Applied axial %.2f MPa on %s planes %d-%d, confining %.2f MPa",
                     axial, self.axis.name, lo, hi, confining)
