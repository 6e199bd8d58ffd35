"""
Vectorized elastoplastic-damage update for the host backend.

Every function here works element-wise on NumPy arrays of any (matching)
shape. The arithmetic is written in the same order as the device kernel in
``device.py`` so both backends round identically.

Stress ordering throughout the package: (xx, yy, zz, xy, xz, yz).
Gradient ordering: (dvx_dx, dvy_dy, dvz_dz, dvx_dy, dvx_dz, dvy_dx, dvy_dz, dvz_dx, dvz_dy).
"""

import numpy as np

from ..simconfig import ModelFlags, MaterialParams, SimulationParams
from ..simconfig.params import (
    DEBUG_PLASTIC_MULTIPLIER, DEBUG_TENSILE_DAMAGE_CAP, DEBUG_TENSILE_DAMAGE_RATE, DENSITY_FLOOR,
    FAILURE_BAND_BOOST, FAILURE_BAND_HIGH, FAILURE_BAND_LOW, MAX_DAMAGE, PLASTIC_DAMAGE_CAP,
    PLASTIC_DAMAGE_RATE, RETURN_MAP_CAP, SHEAR_EPS, TENSILE_DAMAGE_CAP, TENSILE_DAMAGE_RATE,
)


def density_ratio(density, reference_density):
    """Floored density over reference density."""
    return np.maximum(density, DENSITY_FLOOR) / reference_density


def elastic_predictor(stress, grads, lam, mu, dt):
    sxx, syy, szz, sxy, sxz, syz = stress
    dvx_dx, dvy_dy, dvz_dz, dvx_dy, dvx_dz, dvy_dx, dvy_dz, dvz_dx, dvz_dy = grads
    m = lam + 2.0 * mu
    sxx = sxx + dt * (m * dvx_dx + lam * (dvy_dy + dvz_dz))
    syy = syy + dt * (m * dvy_dy + lam * (dvx_dx + dvz_dz))
    szz = szz + dt * (m * dvz_dz + lam * (dvx_dx + dvy_dy))
    sxy = sxy + dt * mu * (dvy_dx + dvx_dy)
    sxz = sxz + dt * mu * (dvz_dx + dvx_dz)
    syz = syz + dt * mu * (dvz_dy + dvy_dz)
    return sxx, syy, szz, sxy, sxz, syz


def mohr_coulomb_return(stress, rho_ratio, mat: MaterialParams):
    """Scale the deviatoric part back onto the Mohr-Coulomb surface.

    Returns:
        (stress, fac, yielding): corrected stress, the applied correction
        factor and the mask of voxels that violated the yield condition.
    """
    sxx, syy, szz, sxy, sxz, syz = stress
    mean = (sxx + syy + szz) / 3.0
    dxx = sxx - mean
    dyy = syy - mean
    dzz = szz - mean
    j2 = 0.5 * (dxx * dxx + dyy * dyy + dzz * dzz) + (sxy * sxy + sxz * sxz + syz * syz)
    tau = np.sqrt(np.maximum(j2, 0.0))
    p = -mean
    coh = mat.cohesion * rho_ratio
    f = tau + p * mat.sin_phi - coh * mat.cos_phi

    yielding = f > 0.0
    fac = np.divide(f, tau, out=np.zeros_like(f), where=yielding & (tau > SHEAR_EPS))
    fac = np.minimum(fac, RETURN_MAP_CAP)
    scale = 1.0 - fac

    corrected = (
        np.where(yielding, mean + dxx * scale, sxx),
        np.where(yielding, mean + dyy * scale, syy),
        np.where(yielding, mean + dzz * scale, szz),
        np.where(yielding, sxy * scale, sxy),
        np.where(yielding, sxz * scale, sxz),
        np.where(yielding, syz * scale, syz),
    )
    return corrected, fac, yielding


def plastic_damage(damage, fac, yielding, rho_ratio, debug_mode: bool):
    dd = np.minimum(fac * PLASTIC_DAMAGE_RATE / rho_ratio, PLASTIC_DAMAGE_CAP)
    if debug_mode:
        dd = dd * DEBUG_PLASTIC_MULTIPLIER
    return np.where(yielding, np.minimum(damage + dd, MAX_DAMAGE), damage)


def tensile_damage(stress, damage, rho_ratio, mat: MaterialParams, debug_mode: bool):
    sxx, syy, szz = stress[0], stress[1], stress[2]
    smax = np.maximum(np.maximum(sxx, syy), szz)
    st = mat.tensile_strength * rho_ratio
    cracking = (smax > st) & (damage < MAX_DAMAGE)

    over = (smax - st) / (st + 1.0)
    if debug_mode:
        dd = np.minimum(over * DEBUG_TENSILE_DAMAGE_RATE, DEBUG_TENSILE_DAMAGE_CAP)
    else:
        dd = np.minimum(over * TENSILE_DAMAGE_RATE, TENSILE_DAMAGE_CAP)
    near_failure = (damage >= FAILURE_BAND_LOW) & (damage < FAILURE_BAND_HIGH)
    dd = np.where(near_failure, dd * FAILURE_BAND_BOOST, dd)
    return np.where(cracking, np.minimum(damage + dd, MAX_DAMAGE), damage)


def constitutive_update(stress, damage, rho_ratio, grads, mat: MaterialParams, sim: SimulationParams):
    """Advance stress and damage of a block of voxels by one time step.

    Args:
        stress: six arrays (xx, yy, zz, xy, xz, yz) in Pa, compression negative.
        damage: damage array in [0, 0.99].
        rho_ratio: floored density over reference density.
        grads: nine velocity-gradient arrays, see module docstring.
        mat: reference material record.
        sim: simulation record (dt, debug flag).

    Returns:
        (stress, damage): updated six-tuple and damage array.
    """
    flags = ModelFlags(mat.flags)
    d0 = damage
    lam = (1.0 - d0) * mat.lam * rho_ratio
    mu = (1.0 - d0) * mat.mu * rho_ratio

    stress = elastic_predictor(stress, grads, lam, mu, sim.dt)

    if ModelFlags.PLASTIC in flags:
        stress, fac, yielding = mohr_coulomb_return(stress, rho_ratio, mat)
        if ModelFlags.BRITTLE in flags:
            damage = plastic_damage(damage, fac, yielding, rho_ratio, sim.debug_mode)

    if ModelFlags.BRITTLE in flags:
        damage = tensile_damage(stress, damage, rho_ratio, mat, sim.debug_mode)

    grown = damage > d0
    soften = np.where(grown, np.maximum(1.0 - (damage - d0) * rho_ratio, 0.0), 1.0)
    stress = tuple(s * soften for s in stress)
    return stress, damage
