"""
Specimen generation and result post-processing.
"""

from .generate import homogeneous_block, cylinder_specimen
from .results import TriaxialResult, mohr_coulomb_peak_stress

__all__ = [
    "homogeneous_block",
    "cylinder_specimen",
    "TriaxialResult",
    "mohr_coulomb_peak_stress",
]
