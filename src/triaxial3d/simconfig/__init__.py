"""
Configuration and parameter records for triaxial simulations.
"""

from .types import ConfigurationError, StressAxis, ModelFlags, VolumeData, MaterialProperties, LoadingConfig
from .params import MaterialParams, SimulationParams
from .simconfig import TriaxialConfig, BACKGROUND_LABEL

__all__ = [
    "ConfigurationError",
    "StressAxis",
    "ModelFlags",
    "VolumeData",
    "MaterialProperties",
    "LoadingConfig",
    "MaterialParams",
    "SimulationParams",
    "TriaxialConfig",
    "BACKGROUND_LABEL",
]
