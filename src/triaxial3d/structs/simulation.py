"""
Simulation data structure for the device field backend.
"""

import taichi as ti


@ti.dataclass
class SimulationStruct:
    """Grid and integration record."""
    dx: ti.f64                  # Voxel pitch (m)
    dt: ti.f64                  # Time step (s)
    materialId: ti.i32
    axis: ti.i32                # Loading axis, 0=x 1=y 2=z
    criticalFraction: ti.f64
    damping: ti.f64             # Velocity damping per step
    debugMode: ti.i32           # 1 = accelerated damage
