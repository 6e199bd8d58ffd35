import logging

import numpy as np

from ..fields import FieldStore, HostFieldStore, DeviceFieldStore, is_gpu_available

logger = logging.getLogger(__name__)

BACKENDS = ("host", "device", "auto")


def create_field_store(backend: str, labels: np.ndarray, density: np.ndarray,
                       material_id: int, arch: str = "gpu") -> FieldStore:
    """Allocate a Field Store on the requested backend.

    Args:
        backend (str): "host" (NumPy), "device" (Taichi) or "auto" (device when a GPU is available).
        labels (np.ndarray): Material labels, shape (W, H, D).
        density (np.ndarray): Densities [kg/m^3], shape (W, H, D).
        material_id (int): Active material label.
        arch (str): Taichi arch for the device backend.
    """
    if backend not in BACKENDS:
        raise ValueError(f"Unknown backend '{backend}', expected one of {BACKENDS}")
    if backend == "auto":
        backend = "device" if is_gpu_available() else "host"
        logger.info("Auto-selected %s backend", backend)

    if backend == "device":
        return DeviceFieldStore(labels, density, material_id, arch=arch)
    return HostFieldStore(labels, density, material_id)
