"""
Taichi runtime initialization shared by every device field store.
"""

import logging

import taichi as ti

logger = logging.getLogger(__name__)

ARCHES = {
    "cpu": ti.cpu,
    "gpu": ti.gpu,
    "cuda": ti.cuda,
    "vulkan": ti.vulkan,
    "metal": ti.metal,
}
CPU_ARCHES = (ti.x64, ti.arm64)

_initialized_arch = None


def init_taichi(arch: str = "gpu"):
    """Initialize Taichi once per process in double precision.

    ``fast_math`` stays off so device results match the NumPy backend.
    Later calls asking for another arch keep the running runtime.
    """
    global _initialized_arch
    if arch not in ARCHES:
        raise ValueError(f"Unknown Taichi arch '{arch}', expected one of {sorted(ARCHES)}")
    if _initialized_arch is not None:
        if arch != _initialized_arch:
            logger.warning("Taichi already initialized for '%s'; ignoring request for '%s'",
                           _initialized_arch, arch)
        return current_arch()

    ti.init(arch=ARCHES[arch], default_fp=ti.f64, fast_math=False)
    _initialized_arch = arch
    logger.info("Taichi initialized (requested %s, running on %s)", arch, current_arch())
    return current_arch()


def current_arch():
    return ti.lang.impl.current_cfg().arch


def is_gpu_available() -> bool:
    """Whether the Taichi runtime executes on a GPU arch.

    Initializes the runtime with the GPU request when nothing has initialized
    it yet; Taichi itself falls back to the CPU when no GPU backend works.
    """
    if _initialized_arch is None:
        init_taichi("gpu")
    return current_arch() not in CPU_ARCHES
