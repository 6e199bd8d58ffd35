"""
Triaxial compression simulation on voxelized rock specimens.

An explicit dynamic elastoplastic-damage solver with interchangeable NumPy
(host) and Taichi (device) field backends.
"""

from .simconfig import (ConfigurationError, LoadingConfig, MaterialProperties, ModelFlags, StressAxis,
                        TriaxialConfig, VolumeData)
from .solver import (CompletedEvent, FailureEvent, ProgressEvent, SimulationState, TriaxialSimulator)

__version__ = "0.1.0"

__all__ = [
    "ConfigurationError",
    "LoadingConfig",
    "MaterialProperties",
    "ModelFlags",
    "StressAxis",
    "TriaxialConfig",
    "VolumeData",
    "CompletedEvent",
    "FailureEvent",
    "ProgressEvent",
    "SimulationState",
    "TriaxialSimulator",
]
