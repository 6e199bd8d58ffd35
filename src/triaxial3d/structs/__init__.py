"""
Device-side parameter records for the triaxial voxel solver.

- MaterialStruct: reference Lamé constants, strength parameters and behavior flags.
- SimulationStruct: voxel pitch, time step, active material and loading axis.
"""

from .material import MaterialStruct
from .simulation import SimulationStruct

__all__ = [
    "MaterialStruct",
    "SimulationStruct",
]
