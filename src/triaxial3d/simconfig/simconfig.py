import logging

import numpy as np

from .types import ConfigurationError, MaterialProperties, StressAxis, VolumeData
from .params import (
    CRITICAL_DAMAGE_FRACTION, DEBUG_CRITICAL_DAMAGE_FRACTION, DEFAULT_DAMPING,
    DEFAULT_REFERENCE_DENSITY, MaterialParams, SimulationParams,
)

logger = logging.getLogger(__name__)

BACKGROUND_LABEL = 0


class TriaxialConfig:
    """Configuration for a triaxial compression simulation."""

    def __init__(self,
                 volume: VolumeData,
                 material: MaterialProperties,
                 material_id: int,
                 debug_mode: bool = False,
                 damping: float = DEFAULT_DAMPING):
        if material_id == BACKGROUND_LABEL:
            raise ConfigurationError("material id 0 is reserved for the exterior/background")
        if not 0.0 <= damping < 1.0:
            raise ConfigurationError(f"damping must be in [0, 1), got {damping}")

        material.validate()

        self.volume = volume
        self.material = material
        self.material_id = int(material_id)
        self.debug_mode = bool(debug_mode)
        self.damping = float(damping)

        self.active_count = int(np.count_nonzero(volume.active_mask(self.material_id)))
        if self.active_count == 0:
            logger.warning("No voxels carry material id %d; the simulation has nothing to load",
                           self.material_id)
        self.reference_density = self._compute_reference_density()

    def _compute_reference_density(self) -> float:
        rho = self.volume.density[self.volume.active_mask(self.material_id)]
        rho = rho[rho > 0]
        if rho.size == 0:
            return DEFAULT_REFERENCE_DENSITY
        return float(rho.mean())

    @property
    def critical_fraction(self) -> float:
        return DEBUG_CRITICAL_DAMAGE_FRACTION if self.debug_mode else CRITICAL_DAMAGE_FRACTION

    def set_material_properties(self, **kwargs) -> 'TriaxialConfig':
        for key, value in kwargs.items():
            if hasattr(self.material, key):
                setattr(self.material, key, value)
            else:
                raise ConfigurationError(f"Unknown material property: {key}")
        self.material.validate()
        return self

    def material_params(self, confining_pressure: float) -> MaterialParams:
        """Build the reference material record; confining pressure in MPa."""
        lam, mu = self.material.lame()
        return MaterialParams(
            lam=lam,
            mu=mu,
            tensile_strength=self.material.tensile_strength * 1e6,
            cohesion=self.material.cohesion * 1e6,
            sin_phi=self.material.sin_phi,
            cos_phi=self.material.cos_phi,
            confining_pressure=confining_pressure * 1e6,
            flags=int(self.material.flags),
            reference_density=self.reference_density,
        )

    def simulation_params(self, dt: float, axis: StressAxis) -> SimulationParams:
        return SimulationParams(
            width=self.volume.width,
            height=self.volume.height,
            depth=self.volume.depth,
            dx=self.volume.pixel_size,
            dt=dt,
            material_id=self.material_id,
            axis=int(axis),
            critical_fraction=self.critical_fraction,
            damping=self.damping,
            debug_mode=self.debug_mode,
        )

    def summary(self) -> str:
        """Return a human-readable summary of the configuration."""
        m = self.material
        lam, mu = m.lame()
        return f"""
Triaxial Simulation Configuration:
==================================
Grid: {self.volume.width} × {self.volume.height} × {self.volume.depth} voxels
Voxel pitch: {self.volume.pixel_size} m
Material id: {self.material_id} ({self.active_count} active voxels)
Reference density: {self.reference_density:.1f} kg/m³
Damping: {self.damping}
Debug mode: {self.debug_mode}

Material Properties:
- Young's modulus: {m.youngs_modulus} MPa
- Poisson ratio: {m.poisson_ratio}
- Lamé lambda / mu: {lam:.4e} / {mu:.4e} Pa
- Tensile strength: {m.tensile_strength} MPa
- Cohesion: {m.cohesion} MPa
- Friction angle: {m.friction_angle}°
- Behaviors: {m.flags!r}
- Critical damage fraction: {self.critical_fraction}
"""
