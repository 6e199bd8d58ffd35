import numpy as np
import pandas as pd
import pytest

from triaxial3d import StressAxis
from triaxial3d.process import TriaxialResult, cylinder_specimen, homogeneous_block, mohr_coulomb_peak_stress
from triaxial3d.solver import CompletedEvent

from conftest import make_loading


def linear_result():
    strain = np.array([0.0, 1e-4, 2e-4, 3e-4, 4e-4, 5e-4])
    stress = 10.0 + 50000.0 * strain
    stress[-1] = 20.0
    return TriaxialResult(strain, stress, np.array([0, 1, 1, 2, 2, 3]), confining_pressure=10.0)


class TestTriaxialResult:

    def test_from_event(self):
        event = CompletedEvent(strain=np.array([0.0, 1e-4]), stress=np.array([10.0, 14.5]),
                               increments=np.array([0, 1]), failure_detected=True, failure_increment=1)
        result = TriaxialResult.from_event(event, make_loading())
        assert result.failure_detected and result.failure_increment == 1
        assert result.confining_pressure == 10.0
        assert result.peak_stress == 14.5

    def test_peak(self):
        result = linear_result()
        assert result.peak_stress == pytest.approx(30.0)
        assert result.peak_strain == pytest.approx(4e-4)

    def test_frame(self):
        frame = linear_result().to_frame()
        assert isinstance(frame, pd.DataFrame)
        assert list(frame.columns) == ["increment", "axial_strain", "axial_stress_mpa", "deviatoric_stress_mpa"]
        assert frame["deviatoric_stress_mpa"].iloc[0] == pytest.approx(0.0)

    def test_increment_summary(self):
        summary = linear_result().increment_summary()
        assert list(summary["increment"]) == [0, 1, 2, 3]
        assert summary["axial_strain"].iloc[1] == pytest.approx(2e-4)

    def test_youngs_modulus(self):
        assert linear_result().estimate_youngs_modulus(fraction=0.5) == pytest.approx(50000.0)

    def test_youngs_modulus_undefined(self):
        result = TriaxialResult(np.zeros(3), np.array([10.0, 11.0, 12.0]), np.arange(3), 10.0)
        assert np.isnan(result.estimate_youngs_modulus())
        assert np.isnan(TriaxialResult(np.zeros(1), np.ones(1), np.zeros(1), 10.0).estimate_youngs_modulus())


def test_mohr_coulomb_peak():
    # phi = 30 deg: (1 + sin) / (1 - sin) = 3, 2 cos / (1 - sin) = 2 sqrt(3)
    assert mohr_coulomb_peak_stress(10.0, 5.0, 30.0) == pytest.approx(30.0 + 10.0 * np.sqrt(3.0))
    assert mohr_coulomb_peak_stress(10.0, 0.0, 0.0) == pytest.approx(10.0)


class TestGenerate:

    def test_homogeneous_block_margin(self):
        volume = homogeneous_block((4, 5, 6), density=2700.0, material_id=3, margin=2)
        assert volume.shape == (8, 9, 10)
        assert (volume.labels == 3).sum() == 120
        assert volume.labels[0, 0, 0] == 0
        assert volume.density[2, 2, 2] == 2700.0
        assert volume.density[0, 0, 0] == 0.0

    def test_cylinder(self):
        volume = cylinder_specimen((11, 11, 6), radius=4.0, axis=StressAxis.Z)
        active = volume.labels == 1
        assert active[5, 5, :].all()
        assert not active[0, 0, :].any()
        assert np.array_equal(active[:, :, 0], active[:, :, 5])
        assert np.all(volume.density[~active] == 0.0)

    def test_cylinder_noise_reproducible(self):
        a = cylinder_specimen((8, 8, 8), noise=0.05, seed=1, axis=StressAxis.X)
        b = cylinder_specimen((8, 8, 8), noise=0.05, seed=1, axis=StressAxis.X)
        assert np.array_equal(a.density, b.density)
        active = a.labels == 1
        assert a.density[active].std() > 0.0
