"""
Field Store interface shared by the host and device backends.
"""

from abc import ABC, abstractmethod

import numpy as np

from ..simconfig import MaterialParams, SimulationParams

STRESS_COMPONENTS = ("xx", "yy", "zz", "xy", "xz", "yz")


class FieldStore(ABC):
    """Per-voxel state of a W×H×D grid.

    Holds labels, density, six stress components, three velocity and three
    displacement components plus damage. All update passes only touch voxels
    whose label equals the active material id. Copy-out accessors return
    NumPy arrays indexed ``[x, y, z]`` and never expose live buffers.
    """

    backend_name = "abstract"

    def __init__(self, labels: np.ndarray, density: np.ndarray, material_id: int):
        self.shape = tuple(int(n) for n in labels.shape)
        self.Nx, self.Ny, self.Nz = self.shape
        self.material_id = int(material_id)
        self.mat: MaterialParams = None
        self.sim: SimulationParams = None

    @abstractmethod
    def initialize(self, mat: MaterialParams, sim: SimulationParams):
        """Zero velocity, displacement and damage; set active stress to -confining."""

    @abstractmethod
    def stress_pass(self):
        ...

    @abstractmethod
    def velocity_pass(self):
        ...

    @abstractmethod
    def displacement_pass(self):
        ...

    def step(self):
        """One micro-step: stress, velocity, displacement in that order."""
        self.stress_pass()
        self.velocity_pass()
        self.displacement_pass()

    @abstractmethod
    def apply_axial_boundary(self, axis: int, lo: int, hi: int, axial: float, confining: float):
        """Overwrite the normal stresses of active voxels on planes ``lo`` and ``hi`` of ``axis``."""

    @abstractmethod
    def apply_lateral_boundary(self, axis: int, lo: int, hi: int, confining: float):
        """Set the face-normal stress of active voxels on planes ``lo`` and ``hi`` of ``axis``."""

    @abstractmethod
    def broadcast_stress(self, axis: int, axial: float, confining: float):
        """Write the loading state into every active voxel."""

    def synchronize(self):
        """Block until all queued work has completed."""

    # ----- copy-out ----- #
    @abstractmethod
    def labels(self) -> np.ndarray:
        ...

    @abstractmethod
    def density(self) -> np.ndarray:
        ...

    @abstractmethod
    def damage(self) -> np.ndarray:
        ...

    @abstractmethod
    def stress(self, component: str) -> np.ndarray:
        ...

    @abstractmethod
    def displacement(self, axis: int) -> np.ndarray:
        ...

    @abstractmethod
    def velocity(self, axis: int) -> np.ndarray:
        ...

    def active_mask(self) -> np.ndarray:
        return self.labels() == self.material_id

    def normal_stress(self, axis: int) -> np.ndarray:
        return self.stress(STRESS_COMPONENTS[axis])
