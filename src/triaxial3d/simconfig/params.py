"""
Derived parameter records passed to the field backends.

Both records hold SI values only (Pa, m, s, kg/m³) and are immutable for the
lifetime of a run. The module-level constants are shared by the host and
device code paths so both evaluate the same arithmetic.
"""

from dataclasses import dataclass

# =====================================
# Numerical constants
# =====================================
DENSITY_FLOOR = 100.0           # kg/m³
DEFAULT_REFERENCE_DENSITY = 2500.0
MAX_DAMAGE = 0.99
MAX_P_WAVE_VELOCITY = 6000.0    # m/s
CFL_SAFETY = 0.2
MIN_TIME_STEP = 1e-8            # s
MIN_DENSITY_FALLBACK = 100.0    # used when no active voxel has a positive density
SHEAR_EPS = 1e-7                # Pa
RETURN_MAP_CAP = 0.95
DEFAULT_DAMPING = 0.05

# damage evolution
PLASTIC_DAMAGE_RATE = 0.02
PLASTIC_DAMAGE_CAP = 0.005
DEBUG_PLASTIC_MULTIPLIER = 4.0
TENSILE_DAMAGE_RATE = 0.01
TENSILE_DAMAGE_CAP = 0.002
DEBUG_TENSILE_DAMAGE_RATE = 0.5
DEBUG_TENSILE_DAMAGE_CAP = 0.05
FAILURE_BAND_LOW = 0.65
FAILURE_BAND_HIGH = 0.75
FAILURE_BAND_BOOST = 1.5

# failure monitor
CRITICAL_DAMAGE_FRACTION = 0.75
DEBUG_CRITICAL_DAMAGE_FRACTION = 0.15


@dataclass(frozen=True)
class MaterialParams:
    """Reference material record at reference density and zero damage."""
    lam: float                  # Lamé lambda (Pa)
    mu: float                   # shear modulus (Pa)
    tensile_strength: float     # Pa
    cohesion: float             # Pa
    sin_phi: float
    cos_phi: float
    confining_pressure: float   # Pa
    flags: int                  # ModelFlags bitmask
    reference_density: float   # kg/m³


@dataclass(frozen=True)
class SimulationParams:
    """Grid and integration record."""
    width: int
    height: int
    depth: int
    dx: float                   # voxel pitch (m)
    dt: float                   # time step (s)
    material_id: int
    axis: int                   # loading axis, 0=x 1=y 2=z
    critical_fraction: float
    damping: float = DEFAULT_DAMPING
    debug_mode: bool = False

    @property
    def shape(self):
        return (self.width, self.height, self.depth)
