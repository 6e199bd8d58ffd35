"""
NumPy field backend.

Each pass is a whole-grid array operation over the interior block
``[1:-1, 1:-1, 1:-1]``; results are merged back with the active-material
mask so non-material voxels are never written.
"""

import numpy as np

from .base import FieldStore, STRESS_COMPONENTS
from .constitutive import constitutive_update, density_ratio
from ..simconfig import MaterialParams, SimulationParams
from ..simconfig.params import DENSITY_FLOOR

INTERIOR = (slice(1, -1), slice(1, -1), slice(1, -1))


def _diff_x(a):
    return a[2:, 1:-1, 1:-1] - a[:-2, 1:-1, 1:-1]


def _diff_y(a):
    return a[1:-1, 2:, 1:-1] - a[1:-1, :-2, 1:-1]


def _diff_z(a):
    return a[1:-1, 1:-1, 2:] - a[1:-1, 1:-1, :-2]


def _plane(axis: int, index: int):
    sl = [slice(None)] * 3
    sl[axis] = index
    return tuple(sl)


class HostFieldStore(FieldStore):
    """Field Store living in host memory as NumPy arrays."""

    backend_name = "host"

    def __init__(self, labels: np.ndarray, density: np.ndarray, material_id: int):
        super().__init__(labels, density, material_id)
        self._labels = np.ascontiguousarray(labels, dtype=np.int32)
        self._density = np.ascontiguousarray(density, dtype=np.float64)
        self._rho = np.maximum(self._density, DENSITY_FLOOR)

        self._active = self._labels == self.material_id
        self._inner = self._active[INTERIOR]

        self.s = np.zeros((6,) + self.shape)    # stress xx, yy, zz, xy, xz, yz
        self.v = np.zeros((3,) + self.shape)    # velocity
        self.u = np.zeros((3,) + self.shape)    # displacement
        self.d = np.zeros(self.shape)           # damage
        self._rr = np.ones(self.shape)

    def initialize(self, mat: MaterialParams, sim: SimulationParams):
        self.mat = mat
        self.sim = sim
        self._rr = density_ratio(self._density, mat.reference_density)

        self.v.fill(0.0)
        self.u.fill(0.0)
        self.d.fill(0.0)
        self.s.fill(0.0)
        for n in range(3):
            self.s[n][self._active] = -mat.confining_pressure

    # ----- update passes ----- #
    def stress_pass(self):
        inv2dx = 0.5 / self.sim.dx
        vx, vy, vz = self.v
        grads = (
            _diff_x(vx) * inv2dx, _diff_y(vy) * inv2dx, _diff_z(vz) * inv2dx,
            _diff_y(vx) * inv2dx, _diff_z(vx) * inv2dx,
            _diff_x(vy) * inv2dx, _diff_z(vy) * inv2dx,
            _diff_x(vz) * inv2dx, _diff_y(vz) * inv2dx,
        )
        old = tuple(self.s[n][INTERIOR] for n in range(6))
        damage = self.d[INTERIOR]
        stress, new_damage = constitutive_update(old, damage, self._rr[INTERIOR], grads, self.mat, self.sim)

        inner = self._inner
        for n in range(6):
            self.s[n][INTERIOR] = np.where(inner, stress[n], old[n])
        self.d[INTERIOR] = np.where(inner, new_damage, damage)

    def velocity_pass(self):
        inv2dx = 0.5 / self.sim.dx
        dt = self.sim.dt
        keep = 1.0 - self.sim.damping
        sxx, syy, szz, sxy, sxz, syz = self.s
        forces = (
            _diff_x(sxx) + _diff_y(sxy) + _diff_z(sxz),
            _diff_x(sxy) + _diff_y(syy) + _diff_z(syz),
            _diff_x(sxz) + _diff_y(syz) + _diff_z(szz),
        )
        rho = self._rho[INTERIOR]
        for n in range(3):
            old = self.v[n][INTERIOR]
            new = keep * (old + dt * forces[n] * inv2dx / rho)
            self.v[n][INTERIOR] = np.where(self._inner, new, old)

    def displacement_pass(self):
        dt = self.sim.dt
        for n in range(3):
            self.u[n] = np.where(self._active, self.u[n] + self.v[n] * dt, self.u[n])

    # ----- boundary conditions ----- #
    def apply_axial_boundary(self, axis: int, lo: int, hi: int, axial: float, confining: float):
        for index in {lo, hi}:
            sl = _plane(axis, index)
            face = self._active[sl]
            for n in range(3):
                self.s[n][sl][face] = -axial if n == axis else -confining

    def apply_lateral_boundary(self, axis: int, lo: int, hi: int, confining: float):
        for index in {lo, hi}:
            sl = _plane(axis, index)
            self.s[axis][sl][self._active[sl]] = -confining

    def broadcast_stress(self, axis: int, axial: float, confining: float):
        for n in range(3):
            self.s[n][self._active] = -axial if n == axis else -confining

    # ----- copy-out ----- #
    def labels(self) -> np.ndarray:
        return self._labels.copy()

    def density(self) -> np.ndarray:
        return self._density.copy()

    def active_mask(self) -> np.ndarray:
        return self._active.copy()

    def damage(self) -> np.ndarray:
        return self.d.copy()

    def stress(self, component: str) -> np.ndarray:
        return self.s[STRESS_COMPONENTS.index(component)].copy()

    def displacement(self, axis: int) -> np.ndarray:
        return self.u[axis].copy()

    def velocity(self, axis: int) -> np.ndarray:
        return self.v[axis].copy()
