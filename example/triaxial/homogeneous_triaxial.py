'''
Triaxial compression of a homogeneous rock cube.

'''

import time
import logging
import numpy as np
import matplotlib.pyplot as plt

# taichi packages (device backend, double precision)
from triaxial3d.fields import init_taichi

init_taichi("gpu")

# source package
from triaxial3d import (LoadingConfig, MaterialProperties, StressAxis, TriaxialConfig,
                        TriaxialSimulator, CompletedEvent, FailureEvent, ProgressEvent)
from triaxial3d.process import homogeneous_block, TriaxialResult, mohr_coulomb_peak_stress

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")


# ==================================#
# ----- Parameter Declaration -----#
# ==================================#
# specimen geometry
N = 24  # voxels per side
dx = 1e-3  # voxel pitch [m]
density = 2500.0  # [kg/m^3]

# rock properties
material = MaterialProperties(
    youngs_modulus=70000.0,  # [MPa]
    poisson_ratio=0.25,
    tensile_strength=10.0,  # [MPa]
    friction_angle=30.0,  # [deg]
    cohesion=5.0,  # [MPa]
)

# loading schedule
loading = LoadingConfig(
    confining_pressure=10.0,  # [MPa]
    initial_axial_pressure=10.0,  # [MPa]
    final_axial_pressure=100.0,  # [MPa]
    pressure_increments=20,
    axis=StressAxis.Z,
    steps_per_increment=200,
)

volume = homogeneous_block((N, N, N), density=density, material_id=1, margin=2, pixel_size=dx)
config = TriaxialConfig(volume, material, material_id=1)
print(config.summary())

# ======================#
# ----- Simulation -----#
# ======================#
sim = TriaxialSimulator(config, backend="device")
sim.start(loading)

start = time.time()
result = None
while result is None:
    event = sim.events.get(timeout=1.0)
    if isinstance(event, ProgressEvent):
        print(f"[{event.percent:3d}%] {event.status}")
    elif isinstance(event, FailureEvent):
        print(f"Failure at increment {event.increment}/{event.total_increments}: "
              f"{event.stress:.2f} MPa, strain {event.strain:.3e}, voxel {event.voxel}")
        sim.continue_after_failure()
    elif isinstance(event, CompletedEvent):
        result = TriaxialResult.from_event(event, loading)
sim.wait()
print(f"Elapsed time: {time.time() - start:.2f} s, time step {sim.time_step:.3e} s")

# ==========================#
# ----- Post-processing -----#
# ==========================#
theory = mohr_coulomb_peak_stress(loading.confining_pressure, material.cohesion, material.friction_angle)
print(result.increment_summary())
print(f"Peak stress: {result.peak_stress:.2f} MPa at strain {result.peak_strain:.4e}")
print(f"Mohr-Coulomb peak: {theory:.2f} MPa")
print(f"Estimated Young's modulus: {result.estimate_youngs_modulus():.1f} MPa")

damage = sim.copy_damage_to(np.zeros(volume.shape))
mid = volume.shape[1] // 2

fig, (ax1, ax2) = plt.subplots(1, 2, figsize=(11, 4.5))
ax1.plot(result.strain * 100, result.stress, "k.-", lw=1)
ax1.axhline(theory, color="r", ls="--", lw=1, label="Mohr-Coulomb")
if result.failure_detected:
    ax1.axvline(result.strain[np.argmax(result.increments >= result.failure_increment)] * 100,
                color="b", ls=":", lw=1, label="first failure")
ax1.set_xlabel("Axial strain [%]")
ax1.set_ylabel("Axial stress [MPa]")
ax1.legend()

im = ax2.imshow(damage[:, mid, :].T, origin="lower", cmap="inferno", vmin=0, vmax=1)
ax2.set_title("Damage (y mid-plane)")
ax2.set_xlabel("x")
ax2.set_ylabel("z")
fig.colorbar(im, ax=ax2)
fig.tight_layout()
plt.show()
