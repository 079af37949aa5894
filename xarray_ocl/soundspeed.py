"""
Sound speed in sea water

Chen and Millero (1977) as adjusted by Millero and Li (1994); valid for
pressure 0-1000 bar, temperature 0-40 deg C and salinity 0-40 ppt.
"""

import numpy as np

DEFAULT_SALINITY = 35.0

# range_status bits
PRESSURE_OUT_OF_RANGE = 1
TEMPERATURE_OUT_OF_RANGE = 2
SALINITY_OUT_OF_RANGE = 4


def depth_to_pressure(depth):
    """Approximate pressure in bars from depth in meters"""
    return 0.1 * np.asarray(depth, dtype=np.float64) / 0.99


def range_status(p, t, s):
    """Bit mask of inputs outside the validity range, 0 where all are valid

    NaN inputs count as out of range.
    """
    p = np.asarray(p, dtype=np.float64)
    t = np.asarray(t, dtype=np.float64)
    s = np.asarray(s, dtype=np.float64)
    status = np.zeros(np.broadcast(p, t, s).shape, dtype=np.int8)
    status |= np.where(~((p >= 0) & (p <= 1000)), PRESSURE_OUT_OF_RANGE, 0).astype(np.int8)
    status |= np.where(~((t >= 0) & (t <= 40)), TEMPERATURE_OUT_OF_RANGE, 0).astype(np.int8)
    status |= np.where(~((s >= 0) & (s <= 40)), SALINITY_OUT_OF_RANGE, 0).astype(np.int8)
    return status


def sound_speed(p, t, s):
    """Speed of sound in m/s

    Args:
        p: Pressure in bars
        t: Temperature in deg C
        s: Salinity in ppt

    Returns:
        Sound speed, NaN where any input is out of range (scalar in, scalar out)
    """
    P = np.asarray(p, dtype=np.float64)
    T = np.asarray(t, dtype=np.float64)
    S = np.asarray(s, dtype=np.float64)

    SR = np.sqrt(np.abs(S))

    D = 1.727e-3 - 7.9836e-6 * P

    B1 = 7.3637e-5 + 1.7945e-7 * T
    B0 = -1.922e-2 - 4.42e-5 * T
    B = B0 + B1 * P

    A3 = (-3.389e-13 * T + 6.649e-12) * T + 1.100e-10
    A2 = ((7.988e-12 * T - 1.6002e-10) * T + 9.1041e-9) * T - 3.9064e-7
    A1 = (((-2.0122e-10 * T + 1.0507e-8) * T - 6.4885e-8) * T - 1.2580e-5) * T + 9.4742e-5
    A0 = (((-3.21e-8 * T + 2.006e-6) * T + 7.164e-5) * T - 1.262e-2) * T + 1.389
    A = ((A3 * P + A2) * P + A1) * P + A0

    C3 = (-2.3643e-12 * T + 3.8504e-10) * T - 9.7729e-9
    C2 = (((1.0405e-12 * T - 2.5335e-10) * T + 2.5974e-8) * T - 1.7107e-6) * T + 3.1260e-5
    C1 = (((-6.1185e-10 * T + 1.3621e-7) * T - 8.1788e-6) * T + 6.8982e-4) * T + 0.153563
    C0 = (
        (((3.1464e-9 * T - 1.47800e-6) * T + 3.3420e-4) * T - 5.80852e-2) * T + 5.03711
    ) * T + 1402.388

    # Millero and Li correction
    CC1 = (1.4e-5 * T - 2.19e-4) * T + 0.0029
    CC2 = (-2.59e-8 * T + 3.47e-7) * T - 4.76e-6
    CC3 = 2.68e-9
    CC = ((CC3 * P + CC2) * P + CC1) * P

    C = ((C3 * P + C2) * P + C1) * P + C0 - CC

    speed = C + (A + B * SR + D * S) * S
    speed = np.where(range_status(P, T, S) == 0, speed, np.nan)
    return speed[()] if speed.ndim == 0 else speed


def bin_profile(depths, columns, bin_size):
    """Average profile columns over depth bins

    Bins are ``[k * bin_size, (k + 1) * bin_size)`` and are labelled by their
    shallow edge; empty bins are left out.

    Args:
        depths: Level depths in meters
        columns: Mapping of name to per-level values
        bin_size: Bin height in meters

    Returns:
        Tuple of (bin_depths, means, stds, counts) where means and stds map
        each column name to per-bin population statistics
    """
    if bin_size <= 0:
        raise ValueError(f"Bin size must be positive, got {bin_size}")
    depths = np.asarray(depths, dtype=np.float64)
    good = np.isfinite(depths)
    bins = np.floor(depths[good] / bin_size)
    keys, inverse, counts = np.unique(bins, return_inverse=True, return_counts=True)

    means = {}
    stds = {}
    for name, values in columns.items():
        values = np.asarray(values, dtype=np.float64)[good]
        sums = np.bincount(inverse, weights=values, minlength=len(keys))
        mean = sums / counts
        sq = np.bincount(inverse, weights=(values - mean[inverse]) ** 2, minlength=len(keys))
        means[name] = mean
        stds[name] = np.sqrt(sq / counts)

    return keys * bin_size, means, stds, counts
