"""
Per-voxel field storage and update passes.

- FieldStore: backend-neutral interface (passes, boundary overwrites, copy-out).
- HostFieldStore: NumPy arrays, whole-grid vectorized passes.
- DeviceFieldStore: Taichi fields, one kernel launch per pass.
"""

from .base import FieldStore, STRESS_COMPONENTS
from .host import HostFieldStore
from .device import DeviceFieldStore
from .runtime import init_taichi, is_gpu_available
from .constitutive import constitutive_update

__all__ = [
    "FieldStore",
    "STRESS_COMPONENTS",
    "HostFieldStore",
    "DeviceFieldStore",
    "init_taichi",
    "is_gpu_available",
    "constitutive_update",
]
