"""
Post-processing of finished triaxial runs.
"""

import math
from dataclasses import dataclass
from typing import Optional

import numpy as np
import pandas as pd

from ..simconfig import LoadingConfig
from ..solver import CompletedEvent


def mohr_coulomb_peak_stress(confining: float, cohesion: float, friction_angle: float) -> float:
    """Theoretical axial stress at failure (MPa).

    sigma1 = sigma3 (1 + sin phi) / (1 - sin phi) + 2 c cos phi / (1 - sin phi)
    """
    phi = math.radians(friction_angle)
    s, c = math.sin(phi), math.cos(phi)
    return confining * (1.0 + s) / (1.0 - s) + 2.0 * cohesion * c / (1.0 - s)


@dataclass
class TriaxialResult:
    """Stress-strain curve of one run."""
    strain: np.ndarray
    stress: np.ndarray              # MPa
    increments: np.ndarray
    confining_pressure: float       # MPa
    failure_detected: bool = False
    failure_increment: int = -1
    cancelled: bool = False
    error: Optional[str] = None

    @classmethod
    def from_event(cls, event: CompletedEvent, loading: LoadingConfig) -> 'TriaxialResult':
        return cls(
            strain=np.asarray(event.strain, dtype=float),
            stress=np.asarray(event.stress, dtype=float),
            increments=np.asarray(event.increments, dtype=int),
            confining_pressure=loading.confining_pressure,
            failure_detected=event.failure_detected,
            failure_increment=event.failure_increment,
            cancelled=event.cancelled,
            error=event.error,
        )

    @property
    def peak_stress(self) -> float:
        return float(self.stress.max()) if self.stress.size else 0.0

    @property
    def peak_strain(self) -> float:
        return float(self.strain[np.argmax(self.stress)]) if self.stress.size else 0.0

    @property
    def deviatoric_stress(self) -> np.ndarray:
        return self.stress - self.confining_pressure

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({
            "increment": self.increments,
            "axial_strain": self.strain,
            "axial_stress_mpa": self.stress,
            "deviatoric_stress_mpa": self.deviatoric_stress,
        })

    def increment_summary(self) -> pd.DataFrame:
        """Last sample of every increment."""
        return self.to_frame().groupby("increment", sort=True).tail(1).reset_index(drop=True)

    def estimate_youngs_modulus(self, fraction: float = 0.2) -> float:
        """Least-squares slope (MPa) of the leading part of the curve up to the peak."""
        if self.stress.size < 2:
            return float("nan")
        peak = int(np.argmax(self.stress))
        n = max(2, int(math.ceil((peak + 1) * fraction)))
        x = self.strain[:n]
        y = self.stress[:n]
        if np.unique(x).size < 2:
            return float("nan")
        slope, _ = np.polyfit(x, y, 1)
        return float(slope)
