import numpy as np
import pytest

from triaxial3d.fields import STRESS_COMPONENTS
from triaxial3d.solver import create_field_store, compute_stable_timestep

from conftest import make_config


@pytest.fixture(params=["host", pytest.param("device", marks=pytest.mark.device)])
def backend(request):
    if request.param == "device":
        request.getfixturevalue("taichi_cpu")
    return request.param


def build_store(backend, config, confining=10.0):
    volume = config.volume
    store = create_field_store(backend, volume.labels, volume.density, config.material_id, arch="cpu")
    mat = config.material_params(confining)
    active = volume.active_mask(config.material_id)
    dt = compute_stable_timestep(volume.density, active, mat, volume.pixel_size)
    store.initialize(mat, config.simulation_params(dt, 2))
    return store


def set_velocity(store, index, value):
    if store.backend_name == "host":
        store.v[(slice(None),) + index] = value
    else:
        store.vel[index] = value


class TestInitialize:

    def test_confining_state(self, backend):
        config = make_config(shape=(4, 4, 4), margin=1)
        store = build_store(backend, config)
        active = store.active_mask()
        assert active.sum() == 64
        for name in ("xx", "yy", "zz"):
            s = store.stress(name)
            assert np.all(s[active] == -10e6)
            assert np.all(s[~active] == 0.0)
        for name in ("xy", "xz", "yz"):
            assert np.all(store.stress(name) == 0.0)
        assert np.all(store.damage() == 0.0)
        for axis in range(3):
            assert np.all(store.velocity(axis) == 0.0)
            assert np.all(store.displacement(axis) == 0.0)

    def test_uniform_state_stays_at_rest(self, backend):
        store = build_store(backend, make_config(shape=(6, 6, 6)))
        for _ in range(10):
            store.step()
        for axis in range(3):
            assert np.all(store.velocity(axis) == 0.0)
        assert np.all(store.damage() == 0.0)


class TestBoundary:

    def test_axial_faces(self, backend):
        store = build_store(backend, make_config(shape=(8, 8, 8)))
        store.apply_axial_boundary(2, 0, 7, 30e6, 12e6)
        szz = store.stress("zz")
        sxx = store.stress("xx")
        for z in (0, 7):
            assert np.all(szz[:, :, z] == -30e6)
            assert np.all(sxx[:, :, z] == -12e6)
        assert np.all(szz[:, :, 1:7] == -10e6)

    def test_lateral_faces_set_normal_component_only(self, backend):
        store = build_store(backend, make_config(shape=(8, 8, 8)))
        store.apply_lateral_boundary(0, 0, 7, 12e6)
        sxx = store.stress("xx")
        syy = store.stress("yy")
        assert np.all(sxx[0] == -12e6) and np.all(sxx[7] == -12e6)
        assert np.all(sxx[1:7] == -10e6)
        assert np.all(syy == -10e6)

    def test_boundary_skips_background(self, backend):
        config = make_config(shape=(4, 4, 4), margin=2)
        store = build_store(backend, config)
        store.apply_axial_boundary(2, 2, 5, 30e6, 10e6)
        szz = store.stress("zz")
        active = store.active_mask()
        assert np.all(szz[:, :, 2][active[:, :, 2]] == -30e6)
        assert np.all(szz[~active] == 0.0)

    def test_broadcast(self, backend):
        config = make_config(shape=(4, 4, 4), margin=1)
        store = build_store(backend, config)
        store.broadcast_stress(1, 40e6, 15e6)
        active = store.active_mask()
        assert np.all(store.stress("yy")[active] == -40e6)
        assert np.all(store.stress("xx")[active] == -15e6)
        assert np.all(store.stress("zz")[active] == -15e6)
        assert np.all(store.stress("yy")[~active] == 0.0)


class TestPasses:

    def test_material_masking(self, backend):
        config = make_config(shape=(6, 6, 6), margin=2, debug_mode=True)
        store = build_store(backend, config)
        active = store.active_mask()
        for _ in range(3):
            store.apply_axial_boundary(2, 2, 7, 50e6, 10e6)
            for axis in (0, 1):
                store.apply_lateral_boundary(axis, 2, 7, 10e6)
            for _ in range(20):
                store.step()

        for name in STRESS_COMPONENTS:
            assert np.all(store.stress(name)[~active] == 0.0)
        for axis in range(3):
            assert np.all(store.velocity(axis)[~active] == 0.0)
            assert np.all(store.displacement(axis)[~active] == 0.0)
        assert np.all(store.damage()[~active] == 0.0)
        assert np.abs(store.displacement(2)[active]).max() > 0.0

    def test_damage_monotonic(self, backend):
        store = build_store(backend, make_config(shape=(8, 8, 8), debug_mode=True))
        store.apply_axial_boundary(2, 0, 7, 60e6, 10e6)
        previous = store.damage()
        for _ in range(30):
            store.step()
            current = store.damage()
            assert np.all(current >= previous)
            previous = current
        assert previous.max() > 0.0
        assert previous.max() <= 0.99

    def test_displacement_integrates_boundary_voxels(self, backend):
        store = build_store(backend, make_config(shape=(5, 5, 5)))
        set_velocity(store, (0, 0, 0), (0.0, 0.0, 2.0))
        store.displacement_pass()
        assert store.displacement(2)[0, 0, 0] == pytest.approx(2.0 * store.sim.dt)
        assert store.displacement(2)[1, 1, 1] == 0.0

    def test_halo_not_updated_by_stress_or_velocity(self, backend):
        store = build_store(backend, make_config(shape=(6, 6, 6)))
        store.apply_axial_boundary(2, 0, 5, 50e6, 10e6)
        for _ in range(5):
            store.stress_pass()
            store.velocity_pass()
        assert np.all(store.stress("zz")[:, :, 0] == -50e6)
        assert np.all(store.velocity(2)[:, :, 0] == 0.0)
        assert np.abs(store.velocity(2)[1:-1, 1:-1, 1]).max() > 0.0

    def test_grid_without_interior(self, backend):
        store = build_store(backend, make_config(shape=(2, 2, 2)))
        store.apply_axial_boundary(2, 0, 1, 50e6, 10e6)
        store.step()
        assert np.all(store.velocity(2) == 0.0)
        assert np.all(store.stress("zz") == -50e6)


def test_host_copy_out_is_detached():
    store = build_store("host", make_config(shape=(4, 4, 4)))
    damage = store.damage()
    damage[...] = 1.0
    assert np.all(store.damage() == 0.0)
