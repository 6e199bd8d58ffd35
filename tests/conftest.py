import numpy as np
import pytest

from triaxial3d import (FailureEvent, LoadingConfig, MaterialProperties, StressAxis, TriaxialConfig,
                        TriaxialSimulator)
from triaxial3d.fields import init_taichi
from triaxial3d.process import homogeneous_block
from triaxial3d.simconfig import MaterialParams, SimulationParams


@pytest.fixture(scope="session")
def taichi_cpu():
    """Taichi runtime on the CPU arch in double precision, shared by all device tests."""
    return init_taichi("cpu")


def make_material(**kwargs):
    props = dict(youngs_modulus=70000.0, poisson_ratio=0.25, tensile_strength=10.0,
                 friction_angle=30.0, cohesion=5.0)
    props.update(kwargs)
    return MaterialProperties(**props)


def elastic_material(**kwargs):
    return make_material(use_plastic=False, use_brittle=False, **kwargs)


def make_config(shape=(10, 10, 10), margin=0, density=2500.0, debug_mode=False, material=None):
    volume = homogeneous_block(shape, density=density, material_id=1, margin=margin, pixel_size=1e-3)
    return TriaxialConfig(volume, material or make_material(), material_id=1, debug_mode=debug_mode)


def make_loading(**kwargs):
    params = dict(confining_pressure=10.0, initial_axial_pressure=10.0, final_axial_pressure=100.0,
                  pressure_increments=20, axis=StressAxis.Z, steps_per_increment=20)
    params.update(kwargs)
    return LoadingConfig(**params)


def make_params(config: TriaxialConfig, confining=10.0, dt=1e-8, axis=StressAxis.Z):
    return config.material_params(confining), config.simulation_params(dt, axis)


def run_to_completion(sim: TriaxialSimulator, loading: LoadingConfig):
    """Run on the calling thread, continuing automatically after every failure pause."""
    failures = []

    def on_event(event):
        if isinstance(event, FailureEvent):
            failures.append(event)
            sim.continue_after_failure()

    sim.events.subscribe(on_event)
    try:
        completed = sim.run(loading)
    finally:
        sim.events.unsubscribe(on_event)
    return completed, failures


def reference_params(flags=7, debug_mode=False, dt=1e-7, cohesion=5e6, tensile=10e6):
    """Parameter records for constitutive tests (E=70 GPa, nu=0.25, phi=30 deg)."""
    mat = MaterialParams(lam=28e9, mu=28e9, tensile_strength=tensile, cohesion=cohesion,
                         sin_phi=0.5, cos_phi=np.sqrt(3.0) / 2.0, confining_pressure=10e6,
                         flags=flags, reference_density=2500.0)
    sim = SimulationParams(width=3, height=3, depth=3, dx=1e-3, dt=dt, material_id=1, axis=2,
                           critical_fraction=0.75, debug_mode=debug_mode)
    return mat, sim
