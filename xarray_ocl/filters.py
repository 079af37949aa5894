"""
Station inclusion filters

All checks here work on header fields that are already decoded; nothing in
this module touches the stream.
"""

from __future__ import annotations

import math
import re
from collections.abc import Sequence
from pathlib import Path

from .station import BottomDepthDecision, FilterFlags, ProfileLevel, Station

# Coordinates closer to zero than this are treated as exactly zero
ZERO_EPSILON = 1e-7

_WMO_RE = re.compile(r"(\d{4})(?:\.[A-Za-z0-9]+)*$")


class FilterCriteria:
    """Which filters to apply; None disables a filter"""

    def __init__(
        self,
        var_list: Sequence[int] | None = None,
        min_levels: int | None = None,
        region: Sequence[float] | None = None,
        year_range: Sequence[int] | None = None,
        month_range: Sequence[int] | None = None,
        wmo_square: str | None = None,
    ):
        """
        Args:
            var_list: Variable codes every station must carry, error free
            min_levels: Minimum number of profile levels
            region: (west, east, south, north) in decimal degrees, inclusive
            year_range: (first, last) year, inclusive
            month_range: (first, last) month, inclusive
            wmo_square: Four digit WMO square; enables the zero lat/lon check
        """
        if region is not None and len(region) != 4:
            raise ValueError(f"Region must be west, east, south, north, got {region}")
        if year_range is not None and len(year_range) != 2:
            raise ValueError(f"Year range must be first, last, got {year_range}")
        if month_range is not None and len(month_range) != 2:
            raise ValueError(f"Month range must be first, last, got {month_range}")
        if wmo_square is not None and (len(wmo_square) != 4 or not wmo_square.isdigit()):
            raise ValueError(f"WMO square must be four digits, got {wmo_square!r}")

        self.var_list = list(var_list) if var_list is not None else None
        self.min_levels = min_levels
        self.region = tuple(region) if region is not None else None
        self.year_range = tuple(year_range) if year_range is not None else None
        self.month_range = tuple(month_range) if month_range is not None else None
        self.wmo_square = wmo_square

    def __repr__(self):
        fields = ", ".join(f"{k}={v!r}" for k, v in vars(self).items() if v is not None)
        return f"FilterCriteria({fields})"


def vars_included_without_errors(var_list: Sequence[int], station: Station) -> bool:
    """True if every requested variable is present and no matching column is flagged"""
    for code in var_list:
        matches = [c for c in station.columns if c.code == code]
        if not matches:
            return False
        if any(c.error_flag > 0 for c in matches):
            return False
    return True


def zero_coordinate_okay(wmo_square: str, axis: str) -> bool:
    """Can a zero latitude/longitude be genuine inside this WMO square?

    The second digit of a WMO square is the tens of degrees of latitude,
    the last two the tens of degrees of longitude.
    """
    if axis == "lat":
        return wmo_square[1] == "0"
    if axis == "lon":
        return wmo_square[2:4] == "00"
    raise ValueError(f"axis must be 'lat' or 'lon', got {axis!r}")


def is_zero_coordinate(value: float) -> bool:
    return -ZERO_EPSILON < value < ZERO_EPSILON


def _in_range(value, bounds) -> bool:
    return bounds[0] <= value <= bounds[1]


def evaluate_filters(station: Station, criteria: FilterCriteria | None) -> FilterFlags:
    """Compute the inclusion flags of a station from its header"""
    flags = FilterFlags()
    if criteria is None:
        return flags

    if criteria.var_list is not None:
        flags.variables = vars_included_without_errors(criteria.var_list, station)

    if criteria.region is not None:
        west, east, south, north = criteria.region
        flags.region = west <= station.lon <= east and south <= station.lat <= north

    if criteria.year_range is not None:
        flags.years = _in_range(station.year, criteria.year_range)

    if criteria.month_range is not None:
        flags.months = _in_range(station.month, criteria.month_range)

    if criteria.min_levels is not None:
        flags.levels = station.n_levels >= criteria.min_levels

    if criteria.wmo_square is not None:
        bad = False
        if is_zero_coordinate(station.lat) and not zero_coordinate_okay(criteria.wmo_square, "lat"):
            bad = True
        if is_zero_coordinate(station.lon) and not zero_coordinate_okay(criteria.wmo_square, "lon"):
            bad = True
        flags.bad_zero_coordinate = bad

    return flags


def bottom_depth_in_range(
    decision: BottomDepthDecision, window: Sequence[float] | None
) -> bool:
    """Bottom depth window check; stations without a bottom depth pass"""
    if window is None or not decision.exists:
        return True
    shallow, deep = window
    return shallow <= decision.value <= deep


def station_selected(
    station: Station, depth_window: Sequence[float] | None = None
) -> bool:
    """Should a decoded station be reported?"""
    return station.flags.passes and bottom_depth_in_range(station.bottom_depth, depth_window)


def level_has_flagged_data(
    station: Station, level: ProfileLevel, var_list: Sequence[int] | None
) -> bool:
    """True if a requested variable is error-flagged or missing at this level"""
    if not var_list:
        return False
    for idx, column in enumerate(station.columns):
        if column.code not in var_list:
            continue
        if level.flags[idx] != 0 or math.isnan(level.values[idx]):
            return True
    return False


def wmo_square_from_filename(filename: str | Path) -> str | None:
    """Pull the WMO square out of an OCL filename such as ``nbds1106.gz``"""
    match = _WMO_RE.search(Path(filename).name)
    return match.group(1) if match else None
