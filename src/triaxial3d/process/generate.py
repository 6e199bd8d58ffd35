"""
Synthetic voxel specimens.
"""

from typing import Optional, Tuple

import numpy as np

from ..simconfig import StressAxis, VolumeData


def homogeneous_block(shape: Tuple[int, int, int], density: float = 2500.0, material_id: int = 1,
                      margin: int = 0, pixel_size: float = 1e-3) -> VolumeData:
    """Rectangular specimen, optionally surrounded by ``margin`` background voxels."""
    full = tuple(n + 2 * margin for n in shape)
    labels = np.zeros(full, dtype=np.int32)
    rho = np.zeros(full)
    inner = tuple(slice(margin, margin + n) for n in shape)
    labels[inner] = material_id
    rho[inner] = density
    return VolumeData(labels, rho, pixel_size)


def cylinder_specimen(shape: Tuple[int, int, int], radius: Optional[float] = None, density: float = 2500.0,
                      material_id: int = 1, axis: StressAxis = StressAxis.Z, noise: float = 0.0,
                      seed: Optional[int] = None, pixel_size: float = 1e-3) -> VolumeData:
    """Cylindrical core aligned with ``axis``.

    Args:
        shape: grid extent (W, H, D).
        radius: cylinder radius in voxels; defaults to the largest inscribed radius.
        density: mean density [kg/m^3].
        noise: relative standard deviation of a Gaussian density perturbation.
        seed: random seed for the perturbation.
    """
    axis = StressAxis(axis)
    lateral = axis.lateral
    centers = [(shape[a] - 1) / 2.0 for a in lateral]
    if radius is None:
        radius = min(shape[a] for a in lateral) / 2.0

    grids = np.meshgrid(*[np.arange(n) for n in shape], indexing="ij")
    r2 = sum((grids[a] - c) ** 2 for a, c in zip(lateral, centers))
    inside = r2 <= radius ** 2

    labels = np.where(inside, material_id, 0).astype(np.int32)
    rho = np.full(shape, float(density))
    if noise > 0:
        rng = np.random.default_rng(seed)
        rho = rho * (1.0 + noise * rng.standard_normal(shape))
        rho = np.maximum(rho, 0.0)
    rho = np.where(inside, rho, 0.0)
    return VolumeData(labels, rho, pixel_size)
