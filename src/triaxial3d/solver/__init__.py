"""
Triaxial loading control: time stepping, boundary loading, measurement,
failure monitoring, run-state machine, events and the simulation driver.
"""

from .stability import (compute_stable_timestep, find_material_bounds, measure_axial_strain,
                        measure_axial_stress, p_wave_velocity)
from .boundary import BoundaryLoader
from .failure import FailureMonitor, FailureReport
from .state import RunControl, SimulationState, StateTransitionError
from .events import CompletedEvent, EventChannel, FailureEvent, ProgressEvent
from .backend import create_field_store
from .driver import TriaxialSimulator, progress_percent

__all__ = [
    "compute_stable_timestep",
    "find_material_bounds",
    "measure_axial_strain",
    "measure_axial_stress",
    "p_wave_velocity",
    "BoundaryLoader",
    "FailureMonitor",
    "FailureReport",
    "RunControl",
    "SimulationState",
    "StateTransitionError",
    "CompletedEvent",
    "EventChannel",
    "FailureEvent",
    "ProgressEvent",
    "create_field_store",
    "TriaxialSimulator",
    "progress_percent",
]
