"""
Time-step selection and specimen-level measurements.

All functions take NumPy snapshots indexed ``[x, y, z]``.
"""

import logging
import math
from typing import Optional, Tuple

import numpy as np

from ..simconfig import MaterialParams
from ..simconfig.params import CFL_SAFETY, DENSITY_FLOOR, MAX_P_WAVE_VELOCITY, MIN_DENSITY_FALLBACK, MIN_TIME_STEP

logger = logging.getLogger(__name__)


def find_material_bounds(active: np.ndarray, axis: int) -> Optional[Tuple[int, int]]:
    """First and last plane index along ``axis`` that contain an active voxel."""
    other = tuple(a for a in range(3) if a != axis)
    occupied = np.flatnonzero(active.any(axis=other))
    if occupied.size == 0:
        return None
    return int(occupied[0]), int(occupied[-1])


def p_wave_velocity(mat: MaterialParams, rho: float) -> float:
    """Reference P-wave speed, capped at ``MAX_P_WAVE_VELOCITY``."""
    vp = math.sqrt((mat.lam + 2.0 * mat.mu) / rho)
    return min(vp, MAX_P_WAVE_VELOCITY)


def compute_stable_timestep(density: np.ndarray, active: np.ndarray, mat: MaterialParams, dx: float) -> float:
    """CFL-limited explicit time step.

    dt = CFL_SAFETY * dx / vp with vp evaluated at the lightest active voxel.
    """
    rho = density[active]
    rho = rho[rho > 0]
    rho_min = float(rho.min()) if rho.size else MIN_DENSITY_FALLBACK
    rho_min = max(rho_min, DENSITY_FLOOR)

    vp = p_wave_velocity(mat, rho_min)
    dt = max(CFL_SAFETY * dx / vp, MIN_TIME_STEP)
    logger.info("Stable time step %.3e s (rho_min=%.1f kg/m³, vp=%.1f m/s, dx=%.3e m)", dt, rho_min, vp, dx)
    return dt


def measure_axial_strain(displacement: np.ndarray, active: np.ndarray, axis: int, length: float) -> float:
    """Axial strain from the extreme displacements along the loading axis.

    Magnitude is (max - min) / length. The sign is positive (compression) when
    the voxel moving furthest in the +axis direction lies below the voxel moving
    furthest in the -axis direction, i.e. the two ends approach each other.
    """
    if length <= 0 or not active.any():
        return 0.0
    coords = np.nonzero(active)
    u = displacement[coords]
    imax = int(np.argmax(u))
    imin = int(np.argmin(u))
    spread = float(u[imax] - u[imin])
    if spread == 0.0:
        return 0.0
    position = coords[axis]
    sign = 1.0 if position[imax] <= position[imin] else -1.0
    return sign * spread / length


def measure_axial_stress(normal_stress: np.ndarray, active: np.ndarray, axis: int,
                         bounds: Optional[Tuple[int, int]], fallback: float) -> float:
    """Mean compressive axial stress (MPa) on the two loaded planes.

    Args:
        normal_stress: stress component aligned with ``axis`` (Pa).
        active: active-material mask.
        axis: loading axis.
        bounds: (lo, hi) loaded plane indices, or None for an empty specimen.
        fallback: value returned (MPa) when no loaded voxel exists.
    """
    if bounds is None:
        return fallback
    values = []
    for index in sorted(set(bounds)):
        sl = [slice(None)] * 3
        sl[axis] = index
        sl = tuple(sl)
        values.append(-normal_stress[sl][active[sl]])
    values = np.concatenate(values)
    if values.size == 0:
        return fallback
    return float(values.mean()) / 1e6
