"""
Triaxial compression driver.

Runs pressure increments and micro-steps on a Field Store, records the
stress-strain curve, watches for failure and reports through an
``EventChannel``. The loop runs either on the calling thread (``run``) or on a
background thread (``start``); in both cases the host steers it with the
pause/resume/cancel/continue calls.
"""

import logging
import threading
from typing import Optional, Tuple

import numpy as np

from .backend import create_field_store
from .boundary import BoundaryLoader
from .events import CompletedEvent, EventChannel, FailureEvent, ProgressEvent
from .failure import FailureMonitor
from .stability import compute_stable_timestep, measure_axial_stress, measure_axial_strain
from .state import RunControl, SimulationState, StateTransitionError
from ..fields import FieldStore
from ..simconfig import ConfigurationError, LoadingConfig, TriaxialConfig

logger = logging.getLogger(__name__)


def progress_percent(increment: int, step: int, total_increments: int, steps: int) -> int:
    """Percent complete inside an increment (step < steps) or at its end."""
    if step >= steps:
        return int(increment / total_increments * 100)
    return int((increment - 1) / total_increments * 100) + int(step / steps * (100 / total_increments))


class TriaxialSimulator:
    """Explicit dynamic triaxial test on a voxel specimen."""

    def __init__(self, config: TriaxialConfig, backend: str = "host", arch: str = "gpu"):
        """Prepare a simulator; fields are allocated on the first run.

        Args:
            config (TriaxialConfig): Specimen and material configuration.
            backend (str): "host", "device" or "auto".
            arch (str): Taichi arch for the device backend.
        """
        self.config = config
        self.backend = backend
        self.arch = arch

        self.events = EventChannel()
        self.control = RunControl()
        self.monitor = FailureMonitor(config.critical_fraction, config.reference_density)

        self.store: Optional[FieldStore] = None
        self.loader: Optional[BoundaryLoader] = None
        self.result: Optional[CompletedEvent] = None
        self.time_step = 0.0

        self._lock = threading.Lock()       # serializes field access between driver and copy-out
        self._thread: Optional[threading.Thread] = None
        self._reset_run_state()

    def _reset_run_state(self):
        self._strains = []
        self._stresses = []
        self._increments = []
        self._current_strain = 0.0
        self._current_stress = 0.0
        self._failure_detected = False
        self._failure_increment = -1
        self._collapse_reported = False
        self._active = None
        self._density = None
        self._length = 0.0
        self._target = 0.0
        self._percent = 0

    # ==========================#
    # ----- Control Calls ----- #
    # ==========================#
    @property
    def state(self) -> SimulationState:
        return self.control.state

    def start(self, loading: LoadingConfig, cancel_event: threading.Event = None) -> threading.Thread:
        """Run the simulation on a background thread."""
        if self._thread is not None and self._thread.is_alive():
            raise StateTransitionError("Simulation is already running")
        self.control.begin()
        self._thread = threading.Thread(target=self._execute, args=(loading, cancel_event),
                                        name="triaxial-driver", daemon=True)
        self._thread.start()
        return self._thread

    def run(self, loading: LoadingConfig, cancel_event: threading.Event = None) -> CompletedEvent:
        """Run the simulation on the calling thread and return the completion event."""
        self.control.begin()
        return self._execute(loading, cancel_event)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Join the background run; True once it has finished."""
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def pause(self) -> bool:
        return self.control.pause()

    def resume(self) -> bool:
        return self.control.resume()

    def cancel(self) -> bool:
        return self.control.cancel()

    def continue_after_failure(self) -> bool:
        return self.control.continue_after_failure()

    # ==============================#
    # ----- Read-only Queries ----- #
    # ==============================#
    @property
    def current_strain(self) -> float:
        return self._current_strain

    @property
    def current_stress(self) -> float:
        return self._current_stress

    @property
    def strain_history(self) -> np.ndarray:
        return np.array(self._strains, dtype=float)

    @property
    def stress_history(self) -> np.ndarray:
        return np.array(self._stresses, dtype=float)

    @property
    def increment_history(self) -> np.ndarray:
        return np.array(self._increments, dtype=int)

    @property
    def failure_detected(self) -> bool:
        return self._failure_detected

    def copy_damage_to(self, dest: np.ndarray) -> np.ndarray:
        """Copy the damage field into a caller buffer of the grid's shape."""
        shape = self.config.volume.shape
        if dest.shape != shape:
            raise ValueError(f"Damage buffer shape {dest.shape} does not match grid {shape}")
        if self.store is None:
            dest[...] = 0.0
            return dest
        with self._lock:
            self.store.synchronize()
            dest[...] = self.store.damage()
        return dest

    def find_max_damage_point(self) -> Tuple[int, int, int]:
        """Coordinates of the most damaged active voxel, (0, 0, 0) when undamaged."""
        if self.store is None:
            return (0, 0, 0)
        damage = self.copy_damage_to(np.zeros(self.config.volume.shape))
        active = self.config.volume.active_mask(self.config.material_id)
        masked = np.where(active, damage, 0.0)
        if not active.any() or masked.max() <= 0.0:
            return (0, 0, 0)
        flat = int(np.argmax(masked.ravel(order="F")))
        return tuple(int(c) for c in np.unravel_index(flat, masked.shape, order="F"))

    # ======================#
    # ----- Run Loop ----- #
    # ======================#
    def _execute(self, loading: LoadingConfig, cancel_event: Optional[threading.Event]) -> CompletedEvent:
        try:
            self._reset_run_state()
            self._initialize(loading)
            self._loop(loading, cancel_event)
            result = self._finish(loading, cancel_event)
        except Exception as exc:
            logger.exception("Triaxial simulation failed")
            self.control.fail()
            self.events.publish(ProgressEvent(0, 0, f"Error: {exc}"))
            result = self._completed_event(error=str(exc))
            self.events.publish(result)
        self.result = result
        return result

    def _initialize(self, loading: LoadingConfig):
        config = self.config
        if config.active_count == 0:
            raise ConfigurationError(f"no voxels carry material id {config.material_id}")

        volume = config.volume
        if self.store is None:
            self.store = create_field_store(self.backend, volume.labels, volume.density,
                                            config.material_id, arch=self.arch)
        self._active = volume.active_mask(config.material_id)
        self._density = volume.density

        mat = config.material_params(loading.confining_pressure)
        self.time_step = compute_stable_timestep(self._density, self._active, mat, volume.pixel_size)
        sim = config.simulation_params(self.time_step, loading.axis)

        self.loader = BoundaryLoader(self.store, loading.axis, self._active)
        self._length = self.loader.specimen_length(volume.pixel_size)
        logger.info("Material bounds along %s: %s, specimen length %.4e m",
                    loading.axis.name, self.loader.axial_bounds, self._length)

        self.monitor.reset()
        with self._lock:
            self.store.initialize(mat, sim)
            self.loader.apply(loading.initial_axial_pressure, loading.confining_pressure,
                              loading.broadcast_pressure)

        self._target = loading.initial_axial_pressure
        self._current_strain = 0.0
        self._current_stress = loading.initial_axial_pressure
        self._record(0.0, loading.initial_axial_pressure, 0)

    def _loop(self, loading: LoadingConfig, cancel_event: Optional[threading.Event]):
        control = self.control
        if not control.mark_running():
            return

        total = loading.pressure_increments
        steps = loading.steps_per_increment
        record_every = loading.resolved_record_interval()
        check_every = loading.resolved_failure_interval(self.config.debug_mode)

        for inc, target in enumerate(loading.pressure_schedule(), start=1):
            if not control.checkpoint(cancel_event):
                return
            self._target = target
            with self._lock:
                self.loader.apply(target, loading.confining_pressure, loading.broadcast_pressure)
            logger.info("Increment %d/%d: axial %.2f MPa", inc, total, target)

            for step in range(1, steps + 1):
                if not control.checkpoint(cancel_event):
                    return
                with self._lock:
                    self.store.step()

                if step % record_every == 0 and step < steps:
                    strain, stress = self._measure()
                    self._record(strain, stress, inc)
                    self._progress(progress_percent(inc, step, total, steps), inc,
                                   f"Loading: {target:.2f} MPa, Step {step}/{steps}")

                if step % check_every == 0:
                    self._check_failure(inc, total, loading.collapse_fraction)

            strain, stress = self._measure()
            self._record(strain, stress, inc)
            self._progress(progress_percent(inc, steps, total, steps), inc,
                           f"Loading: {target:.2f} MPa (complete)")

    def _finish(self, loading: LoadingConfig, cancel_event: Optional[threading.Event]) -> CompletedEvent:
        # a pause requested after the last step still holds the run open
        while not self.control.complete():
            if not self.control.checkpoint(cancel_event):
                break

        cancelled = self.control.cancelled
        last_increment = self._increments[-1] if self._increments else 0
        if cancelled:
            logger.info("Simulation cancelled after increment %d", last_increment)
            self._progress(self._percent, last_increment, "Cancelled")
        else:
            logger.info("Simulation completed: %d samples, peak %.2f MPa",
                        len(self._stresses), max(self._stresses))
            self._progress(100, loading.pressure_increments, "Completed")

        result = self._completed_event(cancelled=cancelled)
        self.events.publish(result)
        return result

    # ===========================#
    # ----- Loop Utilities ----- #
    # ===========================#
    def _snapshot(self, *readers):
        """Synchronize the store, then read each requested array under the field lock."""
        with self._lock:
            self.store.synchronize()
            return [read() for read in readers]

    def _measure(self):
        axis = int(self.loader.axis)
        displacement, axial_stress = self._snapshot(lambda: self.store.displacement(axis),
                                                    lambda: self.store.normal_stress(axis))
        strain = measure_axial_strain(displacement, self._active, axis, self._length)
        stress = measure_axial_stress(axial_stress, self._active, axis, self.loader.axial_bounds, self._target)
        self._current_strain = strain
        self._current_stress = stress
        logger.debug("Measured strain %.6e, stress %.4f MPa", strain, stress)
        return strain, stress

    def _record(self, strain: float, stress: float, increment: int):
        self._strains.append(strain)
        self._stresses.append(stress)
        self._increments.append(increment)

    def _progress(self, percent: int, increment: int, status: str):
        self._percent = percent
        self.events.publish(ProgressEvent(percent, increment, status))

    def _check_failure(self, increment: int, total: int, collapse_fraction: Optional[float]):
        damage, = self._snapshot(self.store.damage)
        report = self.monitor.scan(damage, self._density, self._active)
        logger.debug("Failure scan: max ratio %.4f", report.max_ratio)
        if not report.failed:
            return

        if not self._failure_detected:
            self._failure_detected = True
            self._failure_increment = increment
        elif not self.control.ignore_failure:
            return
        elif collapse_fraction is None or self._collapse_reported or report.failed_fraction < collapse_fraction:
            return
        else:
            self._collapse_reported = True
            logger.warning("Damage collapse: %.1f%% of the specimen failed", report.failed_fraction * 100)

        strain, stress = self._measure()
        if self.control.pause_on_failure():
            logger.info("Failure detected at increment %d/%d (voxel %s); paused", increment, total, report.voxel)
            self.events.publish(FailureEvent(stress, strain, increment, total, report.voxel, report.max_ratio))

    def _completed_event(self, cancelled: bool = False, error: Optional[str] = None) -> CompletedEvent:
        return CompletedEvent(
            strain=self.strain_history,
            stress=self.stress_history,
            increments=self.increment_history,
            failure_detected=self._failure_detected,
            failure_increment=self._failure_increment,
            cancelled=cancelled,
            error=error,
        )
