import numpy as np
import pytest

from triaxial3d.solver import FailureMonitor


def uniform(shape=(4, 3, 3), density=2500.0):
    return np.ones(shape, dtype=bool), np.full(shape, density), np.zeros(shape)


class TestFailureMonitor:

    def test_below_critical(self):
        active, density, damage = uniform()
        damage[...] = 0.7
        monitor = FailureMonitor(0.75, 2500.0)
        report = monitor.scan(damage, density, active)
        assert not report.failed
        assert report.voxel is None
        assert report.max_ratio == pytest.approx(0.7 / 0.75)
        assert monitor.first_failure_voxel is None

    def test_first_voxel_in_x_fastest_order(self):
        active, density, damage = uniform()
        damage[0, 1, 0] = 0.8
        damage[2, 0, 0] = 0.8
        report = FailureMonitor(0.75, 2500.0).scan(damage, density, active)
        assert report.failed
        assert report.voxel == (2, 0, 0)

    def test_never_flags_inactive_voxels(self):
        active, density, damage = uniform()
        active[1, 1, 1] = False
        damage[1, 1, 1] = 0.99
        damage[1, 1, 2] = 0.5
        monitor = FailureMonitor(0.75, 2500.0)
        report = monitor.scan(damage, density, active)
        assert not report.failed
        assert report.max_ratio == pytest.approx(0.5 / 0.75)
        assert monitor.damage_ratio(damage, density, active)[1, 1, 1] == 0.0

    def test_density_scaled_threshold(self):
        active, density, damage = uniform()
        density[0, 0, 0] = 5000.0
        density[1, 0, 0] = 50.0     # floored to 100
        damage[0, 0, 0] = 1.2 * 0.75
        damage[1, 0, 0] = 0.75 * 100.0 / 2500.0
        report = FailureMonitor(0.75, 2500.0).scan(damage, density, active)
        assert report.failed
        assert report.voxel == (1, 0, 0)
        assert report.max_ratio == pytest.approx(1.0)

    def test_debug_threshold(self):
        active, density, damage = uniform()
        damage[3, 2, 2] = 0.15
        report = FailureMonitor(0.15, 2500.0).scan(damage, density, active)
        assert report.failed
        assert report.voxel == (3, 2, 2)

    def test_tracks_maximum_and_first_voxel(self):
        active, density, damage = uniform()
        monitor = FailureMonitor(0.75, 2500.0)
        damage[1, 1, 1] = 0.75
        monitor.scan(damage, density, active)
        damage[0, 0, 0] = 0.9
        report = monitor.scan(damage, density, active)
        assert report.voxel == (0, 0, 0)
        assert monitor.first_failure_voxel == (1, 1, 1)
        assert monitor.max_ratio == pytest.approx(0.9 / 0.75)
        monitor.reset()
        assert monitor.max_ratio == 0.0 and monitor.first_failure_voxel is None

    def test_failed_fraction(self):
        active, density, damage = uniform(shape=(2, 2, 2))
        damage[0] = 0.8
        report = FailureMonitor(0.75, 2500.0).scan(damage, density, active)
        assert report.failed_fraction == pytest.approx(0.5)

    def test_empty_material(self):
        shape = (3, 3, 3)
        report = FailureMonitor(0.75, 2500.0).scan(np.ones(shape), np.ones(shape), np.zeros(shape, dtype=bool))
        assert not report.failed
        assert report.max_ratio == 0.0
