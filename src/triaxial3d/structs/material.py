"""
Material data structure for the device field backend.

Device-side mirror of ``MaterialParams``: reference elastic and strength values
at reference density and zero damage.
"""

import taichi as ti


@ti.dataclass
class MaterialStruct:
    """Reference material record."""
    lam: ti.f64                 # Lamé lambda (Pa)
    mu: ti.f64                  # Shear modulus (Pa)
    tensileStrength: ti.f64     # Tensile limit (Pa)
    cohesion: ti.f64            # Mohr-Coulomb cohesion (Pa)
    sinPhi: ti.f64              # sin(friction angle)
    cosPhi: ti.f64              # cos(friction angle)
    confiningPressure: ti.f64   # Pa
    flags: ti.i32               # 1 elastic, 2 plastic, 4 brittle
    referenceDensity: ti.f64    # kg/m³
