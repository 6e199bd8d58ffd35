"""
Taichi field backend.

Kernels launch over the 3-D index space of the grid. The constitutive
arithmetic mirrors ``constitutive.py`` operation by operation.
"""

import numpy as np
import taichi as ti

from .base import FieldStore, STRESS_COMPONENTS
from .runtime import init_taichi
from ..structs import MaterialStruct, SimulationStruct
from ..simconfig import MaterialParams, SimulationParams
from ..simconfig.params import (
    DEBUG_PLASTIC_MULTIPLIER, DEBUG_TENSILE_DAMAGE_CAP, DEBUG_TENSILE_DAMAGE_RATE, DENSITY_FLOOR,
    FAILURE_BAND_BOOST, FAILURE_BAND_HIGH, FAILURE_BAND_LOW, MAX_DAMAGE, PLASTIC_DAMAGE_CAP,
    PLASTIC_DAMAGE_RATE, RETURN_MAP_CAP, SHEAR_EPS, TENSILE_DAMAGE_CAP, TENSILE_DAMAGE_RATE,
)

# =====================================
# Type Definitions
# =====================================
Vector3 = ti.types.vector(3, ti.f64)
Gradient9 = ti.types.vector(9, ti.f64)


@ti.data_oriented
class DeviceFieldStore(FieldStore):
    """Field Store living in Taichi fields (CPU or GPU arch)."""

    backend_name = "device"

    # =========================#
    # ----- Constructor ----- #
    # =========================#
    def __init__(self, labels: np.ndarray, density: np.ndarray, material_id: int, arch: str = "gpu"):
        """Allocate the per-voxel fields.

        Args:
            labels (np.ndarray): Integer material labels, shape (W, H, D).
            density (np.ndarray): Density per voxel [kg/m^3], shape (W, H, D).
            material_id (int): Label of the material being loaded.
            arch (str): Taichi arch used when the runtime is not yet initialized.
        """
        init_taichi(arch)
        super().__init__(labels, density, material_id)
        Nx, Ny, Nz = self.shape

        # static voxel data
        self.label = ti.field(ti.i32, shape=(Nx, Ny, Nz))
        self.rho = ti.field(ti.f64, shape=(Nx, Ny, Nz))
        self.label.from_numpy(np.ascontiguousarray(labels, dtype=np.int32))
        self.rho.from_numpy(np.ascontiguousarray(density, dtype=np.float64))

        # stress tensor components (Pa, compression negative)
        self.stress_xx = ti.field(ti.f64, shape=(Nx, Ny, Nz))
        self.stress_yy = ti.field(ti.f64, shape=(Nx, Ny, Nz))
        self.stress_zz = ti.field(ti.f64, shape=(Nx, Ny, Nz))
        self.stress_xy = ti.field(ti.f64, shape=(Nx, Ny, Nz))
        self.stress_xz = ti.field(ti.f64, shape=(Nx, Ny, Nz))
        self.stress_yz = ti.field(ti.f64, shape=(Nx, Ny, Nz))

        self.vel = ti.Vector.field(3, ti.f64, shape=(Nx, Ny, Nz))    # velocity (m/s)
        self.disp = ti.Vector.field(3, ti.f64, shape=(Nx, Ny, Nz))   # displacement (m)
        self.damage_field = ti.field(ti.f64, shape=(Nx, Ny, Nz))

        self.mf = MaterialStruct.field(shape=1)
        self.sf = SimulationStruct.field(shape=1)

        self._has_interior = min(self.shape) >= 3
        self._stress_fields = {
            "xx": self.stress_xx, "yy": self.stress_yy, "zz": self.stress_zz,
            "xy": self.stress_xy, "xz": self.stress_xz, "yz": self.stress_yz,
        }

    def initialize(self, mat: MaterialParams, sim: SimulationParams):
        self.mat = mat
        self.sim = sim

        self.mf[0].lam = mat.lam
        self.mf[0].mu = mat.mu
        self.mf[0].tensileStrength = mat.tensile_strength
        self.mf[0].cohesion = mat.cohesion
        self.mf[0].sinPhi = mat.sin_phi
        self.mf[0].cosPhi = mat.cos_phi
        self.mf[0].confiningPressure = mat.confining_pressure
        self.mf[0].flags = mat.flags
        self.mf[0].referenceDensity = mat.reference_density

        self.sf[0].dx = sim.dx
        self.sf[0].dt = sim.dt
        self.sf[0].materialId = sim.material_id
        self.sf[0].axis = sim.axis
        self.sf[0].criticalFraction = sim.critical_fraction
        self.sf[0].damping = sim.damping
        self.sf[0].debugMode = 1 if sim.debug_mode else 0

        self._initialize_kernel(mat.confining_pressure)

    @ti.kernel
    def _initialize_kernel(self, confining: ti.f64):
        for i, j, k in ti.ndrange(self.Nx, self.Ny, self.Nz):
            self.vel[i, j, k] = Vector3(0.0, 0.0, 0.0)
            self.disp[i, j, k] = Vector3(0.0, 0.0, 0.0)
            self.damage_field[i, j, k] = 0.0
            self.stress_xy[i, j, k] = 0.0
            self.stress_xz[i, j, k] = 0.0
            self.stress_yz[i, j, k] = 0.0

            s = 0.0
            if self.label[i, j, k] == self.material_id:
                s = -confining
            self.stress_xx[i, j, k] = s
            self.stress_yy[i, j, k] = s
            self.stress_zz[i, j, k] = s

    # ==========================#
    # ----- Update Passes ----- #
    # ==========================#
    def stress_pass(self):
        if self._has_interior:
            self._stress_kernel()

    def velocity_pass(self):
        if self._has_interior:
            self._velocity_kernel()

    def displacement_pass(self):
        self._displacement_kernel()

    @ti.kernel
    def _stress_kernel(self):
        inv2dx = 0.5 / self.sf[0].dx
        for i, j, k in ti.ndrange((1, self.Nx - 1), (1, self.Ny - 1), (1, self.Nz - 1)):
            # only the active material is updated
            if self.label[i, j, k] != self.material_id:
                continue
            g = self.velocity_gradients(i, j, k, inv2dx)
            self.constitutive(i, j, k, g)

    @ti.func
    def velocity_gradients(self, i: int, j: int, k: int, inv2dx: ti.f64):
        """Central differences: (dvx_dx, dvy_dy, dvz_dz, dvx_dy, dvx_dz, dvy_dx, dvy_dz, dvz_dx, dvz_dy)."""
        vxp = self.vel[i + 1, j, k]
        vxm = self.vel[i - 1, j, k]
        vyp = self.vel[i, j + 1, k]
        vym = self.vel[i, j - 1, k]
        vzp = self.vel[i, j, k + 1]
        vzm = self.vel[i, j, k - 1]
        return Gradient9(
            (vxp[0] - vxm[0]) * inv2dx, (vyp[1] - vym[1]) * inv2dx, (vzp[2] - vzm[2]) * inv2dx,
            (vyp[0] - vym[0]) * inv2dx, (vzp[0] - vzm[0]) * inv2dx,
            (vxp[1] - vxm[1]) * inv2dx, (vzp[1] - vzm[1]) * inv2dx,
            (vxp[2] - vxm[2]) * inv2dx, (vyp[2] - vym[2]) * inv2dx,
        )

    @ti.func
    def constitutive(self, i: int, j: int, k: int, g):
        """Elastic predictor, Mohr-Coulomb return, damage growth and softening."""
        flags = self.mf[0].flags
        debug = self.sf[0].debugMode
        dt = self.sf[0].dt
        rr = ti.max(self.rho[i, j, k], DENSITY_FLOOR) / self.mf[0].referenceDensity

        d0 = self.damage_field[i, j, k]
        lam = (1.0 - d0) * self.mf[0].lam * rr
        mu = (1.0 - d0) * self.mf[0].mu * rr
        m = lam + 2.0 * mu

        # elastic predictor
        sxx = self.stress_xx[i, j, k] + dt * (m * g[0] + lam * (g[1] + g[2]))
        syy = self.stress_yy[i, j, k] + dt * (m * g[1] + lam * (g[0] + g[2]))
        szz = self.stress_zz[i, j, k] + dt * (m * g[2] + lam * (g[0] + g[1]))
        sxy = self.stress_xy[i, j, k] + dt * mu * (g[5] + g[3])
        sxz = self.stress_xz[i, j, k] + dt * mu * (g[7] + g[4])
        syz = self.stress_yz[i, j, k] + dt * mu * (g[8] + g[6])

        d = d0
        # Mohr-Coulomb return mapping
        if flags & 2:
            mean = (sxx + syy + szz) / 3.0
            dxx = sxx - mean
            dyy = syy - mean
            dzz = szz - mean
            j2 = 0.5 * (dxx * dxx + dyy * dyy + dzz * dzz) + (sxy * sxy + sxz * sxz + syz * syz)
            tau = ti.sqrt(ti.max(j2, 0.0))
            p = -mean
            coh = self.mf[0].cohesion * rr
            f = tau + p * self.mf[0].sinPhi - coh * self.mf[0].cosPhi
            if f > 0.0:
                fac = 0.0
                if tau > SHEAR_EPS:
                    fac = f / tau
                fac = ti.min(fac, RETURN_MAP_CAP)
                scale = 1.0 - fac
                sxx = mean + dxx * scale
                syy = mean + dyy * scale
                szz = mean + dzz * scale
                sxy = sxy * scale
                sxz = sxz * scale
                syz = syz * scale

                if flags & 4:
                    dd = ti.min(fac * PLASTIC_DAMAGE_RATE / rr, PLASTIC_DAMAGE_CAP)
                    if debug:
                        dd = dd * DEBUG_PLASTIC_MULTIPLIER
                    d = ti.min(d + dd, MAX_DAMAGE)

        # tensile cracking
        if flags & 4:
            smax = ti.max(ti.max(sxx, syy), szz)
            st = self.mf[0].tensileStrength * rr
            if smax > st and d < MAX_DAMAGE:
                over = (smax - st) / (st + 1.0)
                dd = 0.0
                if debug:
                    dd = ti.min(over * DEBUG_TENSILE_DAMAGE_RATE, DEBUG_TENSILE_DAMAGE_CAP)
                else:
                    dd = ti.min(over * TENSILE_DAMAGE_RATE, TENSILE_DAMAGE_CAP)
                if d >= FAILURE_BAND_LOW and d < FAILURE_BAND_HIGH:
                    dd = dd * FAILURE_BAND_BOOST
                d = ti.min(d + dd, MAX_DAMAGE)

        # softening
        if d > d0:
            soften = ti.max(1.0 - (d - d0) * rr, 0.0)
            sxx *= soften
            syy *= soften
            szz *= soften
            sxy *= soften
            sxz *= soften
            syz *= soften

        self.stress_xx[i, j, k] = sxx
        self.stress_yy[i, j, k] = syy
        self.stress_zz[i, j, k] = szz
        self.stress_xy[i, j, k] = sxy
        self.stress_xz[i, j, k] = sxz
        self.stress_yz[i, j, k] = syz
        self.damage_field[i, j, k] = d

    @ti.kernel
    def _velocity_kernel(self):
        inv2dx = 0.5 / self.sf[0].dx
        dt = self.sf[0].dt
        keep = 1.0 - self.sf[0].damping
        for i, j, k in ti.ndrange((1, self.Nx - 1), (1, self.Ny - 1), (1, self.Nz - 1)):
            if self.label[i, j, k] != self.material_id:
                continue
            # divergence of the stress tensor
            fx = (self.stress_xx[i + 1, j, k] - self.stress_xx[i - 1, j, k]) \
                + (self.stress_xy[i, j + 1, k] - self.stress_xy[i, j - 1, k]) \
                + (self.stress_xz[i, j, k + 1] - self.stress_xz[i, j, k - 1])
            fy = (self.stress_xy[i + 1, j, k] - self.stress_xy[i - 1, j, k]) \
                + (self.stress_yy[i, j + 1, k] - self.stress_yy[i, j - 1, k]) \
                + (self.stress_yz[i, j, k + 1] - self.stress_yz[i, j, k - 1])
            fz = (self.stress_xz[i + 1, j, k] - self.stress_xz[i - 1, j, k]) \
                + (self.stress_yz[i, j + 1, k] - self.stress_yz[i, j - 1, k]) \
                + (self.stress_zz[i, j, k + 1] - self.stress_zz[i, j, k - 1])
            rho = ti.max(self.rho[i, j, k], DENSITY_FLOOR)
            self.vel[i, j, k] = keep * (self.vel[i, j, k] + dt * Vector3(fx, fy, fz) * inv2dx / rho)

    @ti.kernel
    def _displacement_kernel(self):
        dt = self.sf[0].dt
        for i, j, k in ti.ndrange(self.Nx, self.Ny, self.Nz):
            if self.label[i, j, k] != self.material_id:
                continue
            self.disp[i, j, k] += self.vel[i, j, k] * dt

    # ================================#
    # ----- Boundary Conditions ----- #
    # ================================#
    def apply_axial_boundary(self, axis: int, lo: int, hi: int, axial: float, confining: float):
        self._axial_kernel(axis, lo, hi, axial, confining)

    def apply_lateral_boundary(self, axis: int, lo: int, hi: int, confining: float):
        self._lateral_kernel(axis, lo, hi, confining)

    def broadcast_stress(self, axis: int, axial: float, confining: float):
        self._broadcast_kernel(axis, axial, confining)

    @ti.func
    def axis_index(self, axis: int, i: int, j: int, k: int) -> int:
        idx = i
        if axis == 1:
            idx = j
        elif axis == 2:
            idx = k
        return idx

    @ti.func
    def set_normal_state(self, axis: int, i: int, j: int, k: int, axial: ti.f64, confining: ti.f64):
        sxx = -confining
        syy = -confining
        szz = -confining
        if axis == 0:
            sxx = -axial
        elif axis == 1:
            syy = -axial
        else:
            szz = -axial
        self.stress_xx[i, j, k] = sxx
        self.stress_yy[i, j, k] = syy
        self.stress_zz[i, j, k] = szz

    @ti.kernel
    def _axial_kernel(self, axis: int, lo: int, hi: int, axial: ti.f64, confining: ti.f64):
        for i, j, k in ti.ndrange(self.Nx, self.Ny, self.Nz):
            if self.label[i, j, k] != self.material_id:
                continue
            idx = self.axis_index(axis, i, j, k)
            if idx == lo or idx == hi:
                self.set_normal_state(axis, i, j, k, axial, confining)

    @ti.kernel
    def _lateral_kernel(self, axis: int, lo: int, hi: int, confining: ti.f64):
        for i, j, k in ti.ndrange(self.Nx, self.Ny, self.Nz):
            if self.label[i, j, k] != self.material_id:
                continue
            idx = self.axis_index(axis, i, j, k)
            if idx == lo or idx == hi:
                if axis == 0:
                    self.stress_xx[i, j, k] = -confining
                elif axis == 1:
                    self.stress_yy[i, j, k] = -confining
                else:
                    self.stress_zz[i, j, k] = -confining

    @ti.kernel
    def _broadcast_kernel(self, axis: int, axial: ti.f64, confining: ti.f64):
        for i, j, k in ti.ndrange(self.Nx, self.Ny, self.Nz):
            if self.label[i, j, k] != self.material_id:
                continue
            self.set_normal_state(axis, i, j, k, axial, confining)

    def synchronize(self):
        ti.sync()

    # ======================#
    # ----- Copy-out ----- #
    # ======================#
    def labels(self) -> np.ndarray:
        return self.label.to_numpy()

    def density(self) -> np.ndarray:
        return self.rho.to_numpy()

    def damage(self) -> np.ndarray:
        return self.damage_field.to_numpy()

    def stress(self, component: str) -> np.ndarray:
        if component not in STRESS_COMPONENTS:
            raise KeyError(f"Unknown stress component '{component}'")
        return self._stress_fields[component].to_numpy()

    def displacement(self, axis: int) -> np.ndarray:
        return self.disp.to_numpy()[..., axis]

    def velocity(self, axis: int) -> np.ndarray:
        return self.vel.to_numpy()[..., axis]
