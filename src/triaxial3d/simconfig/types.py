"""
Specimen, material and loading definitions for triaxial simulations.
"""

import math
import enum
from dataclasses import dataclass
from typing import List, Optional

import numpy as np


class ConfigurationError(ValueError):
    """Raised when a simulation input cannot describe a runnable specimen."""


class StressAxis(enum.IntEnum):
    """Loading axis of the triaxial test."""
    X = 0
    Y = 1
    Z = 2

    @property
    def lateral(self):
        """The two axes carrying only confining pressure."""
        return tuple(a for a in StressAxis if a != self)


class ModelFlags(enum.IntFlag):
    """Bitmask of enabled constitutive behaviors."""
    NONE = 0
    ELASTIC = 1
    PLASTIC = 2
    BRITTLE = 4


@dataclass
class VolumeData:
    """Labelled voxel volume with per-voxel density.

    Arrays are indexed ``[x, y, z]``, i.e. shape ``(W, H, D)``.
    """
    labels: np.ndarray
    density: np.ndarray
    pixel_size: float               # voxel pitch (m)

    def __post_init__(self):
        self.labels = np.asarray(self.labels)
        self.density = np.asarray(self.density, dtype=np.float64)
        if self.labels.ndim != 3:
            raise ConfigurationError(f"labels must be a 3-D array, got {self.labels.ndim}-D")
        if self.density.shape != self.labels.shape:
            raise ConfigurationError(
                f"density shape {self.density.shape} does not match labels shape {self.labels.shape}")
        if min(self.labels.shape) < 1:
            raise ConfigurationError(f"degenerate grid {self.labels.shape}")
        if not self.pixel_size > 0:
            raise ConfigurationError(f"pixel_size must be positive, got {self.pixel_size}")
        if not np.issubdtype(self.labels.dtype, np.integer):
            self.labels = self.labels.astype(np.int32)

    @property
    def shape(self):
        return self.labels.shape

    @property
    def width(self) -> int:
        return self.labels.shape[0]

    @property
    def height(self) -> int:
        return self.labels.shape[1]

    @property
    def depth(self) -> int:
        return self.labels.shape[2]

    def active_mask(self, material_id: int) -> np.ndarray:
        return self.labels == material_id


@dataclass
class MaterialProperties:
    """Rock properties in engineering units."""
    youngs_modulus: float = 70000.0     # MPa
    poisson_ratio: float = 0.25
    tensile_strength: float = 10.0      # MPa
    friction_angle: float = 30.0        # degrees
    cohesion: float = 5.0               # MPa

    use_elastic: bool = True
    use_plastic: bool = True
    use_brittle: bool = True

    def __post_init__(self):
        self.validate()

    def validate(self):
        if self.youngs_modulus <= 0:
            raise ConfigurationError(f"youngs_modulus must be positive, got {self.youngs_modulus}")
        if not 0.0 <= self.poisson_ratio < 0.5:
            raise ConfigurationError(f"poisson_ratio must be in [0, 0.5), got {self.poisson_ratio}")
        if self.tensile_strength < 0:
            raise ConfigurationError(f"tensile_strength must be >= 0, got {self.tensile_strength}")
        if not 0.0 <= self.friction_angle < 90.0:
            raise ConfigurationError(f"friction_angle must be in [0, 90), got {self.friction_angle}")
        if self.cohesion < 0:
            raise ConfigurationError(f"cohesion must be >= 0, got {self.cohesion}")

    def lame(self):
        """Return (lambda, mu) in Pa."""
        E = self.youngs_modulus * 1e6
        nu = self.poisson_ratio
        mu = E / (2.0 * (1.0 + nu))
        lam = E * nu / ((1.0 + nu) * (1.0 - 2.0 * nu))
        return lam, mu

    @property
    def flags(self) -> ModelFlags:
        flags = ModelFlags.NONE
        if self.use_elastic:
            flags |= ModelFlags.ELASTIC
        if self.use_plastic:
            flags |= ModelFlags.PLASTIC
        if self.use_brittle:
            flags |= ModelFlags.BRITTLE
        return flags

    @property
    def sin_phi(self) -> float:
        return math.sin(math.radians(self.friction_angle))

    @property
    def cos_phi(self) -> float:
        return math.cos(math.radians(self.friction_angle))


@dataclass
class LoadingConfig:
    """Pressure schedule of one triaxial run (pressures in MPa)."""
    confining_pressure: float = 10.0
    initial_axial_pressure: float = 10.0
    final_axial_pressure: float = 100.0
    pressure_increments: int = 20
    axis: StressAxis = StressAxis.Z
    steps_per_increment: int = 200

    record_interval: Optional[int] = None
    failure_check_interval: Optional[int] = None
    broadcast_pressure: bool = False        # spread boundary state over the whole specimen
    collapse_fraction: Optional[float] = 0.5

    def __post_init__(self):
        self.axis = StressAxis(self.axis)
        if self.pressure_increments < 1:
            raise ConfigurationError(f"pressure_increments must be >= 1, got {self.pressure_increments}")
        if self.steps_per_increment < 1:
            raise ConfigurationError(f"steps_per_increment must be >= 1, got {self.steps_per_increment}")
        if self.confining_pressure < 0:
            raise ConfigurationError(f"confining_pressure must be >= 0, got {self.confining_pressure}")
        if self.record_interval is not None and self.record_interval < 1:
            raise ConfigurationError(f"record_interval must be >= 1, got {self.record_interval}")
        if self.failure_check_interval is not None and self.failure_check_interval < 1:
            raise ConfigurationError(f"failure_check_interval must be >= 1, got {self.failure_check_interval}")
        if self.collapse_fraction is not None and not 0.0 < self.collapse_fraction <= 1.0:
            raise ConfigurationError(f"collapse_fraction must be in (0, 1], got {self.collapse_fraction}")

    def pressure_schedule(self) -> List[float]:
        """Target axial pressure (MPa) of increments 1..N."""
        step = (self.final_axial_pressure - self.initial_axial_pressure) / self.pressure_increments
        return [self.initial_axial_pressure + step * n for n in range(1, self.pressure_increments + 1)]

    def resolved_record_interval(self) -> int:
        if self.record_interval is not None:
            return self.record_interval
        return max(1, self.steps_per_increment // 10)

    def resolved_failure_interval(self, debug_mode: bool) -> int:
        if self.failure_check_interval is not None:
            return self.failure_check_interval
        return 2 if debug_mode else 5
