"""
Station records decoded from OCL files
"""

from __future__ import annotations

import math
from enum import Enum
from typing import NamedTuple

import numpy as np

# Depths of the standard levels, indexed by profile level
STANDARD_DEPTHS = (
    0, 10, 20, 30, 50, 75, 100, 125, 150, 200, 250, 300, 400, 500, 600, 700,
    800, 900, 1000, 1100, 1200, 1300, 1400, 1500, 1750, 2000, 2500, 3000,
    3500, 4000, 4500, 5000, 5500, 6000, 6500, 7000, 7500, 8000, 8500, 9000,
)


class StationKind(Enum):
    OBSERVED = 0
    STANDARD_LEVELS = 1

    @classmethod
    def from_flag(cls, flag: int) -> StationKind:
        return cls.OBSERVED if flag == 0 else cls.STANDARD_LEVELS

    @property
    def label(self) -> str:
        return "observed" if self is StationKind.OBSERVED else "standard"


class DepthSource(Enum):
    HEADER = "h"
    DATABASE = "d"
    PROFILE = "p"
    NONE = "-"


class VariableColumn(NamedTuple):
    code: int
    error_flag: int = 0


class SecondaryHeaderEntry(NamedTuple):
    code: int
    value: float


class ProfileLevel(NamedTuple):
    """One depth of a profile, values parallel to the station's columns"""

    depth: float
    depth_flag: int
    values: tuple[float, ...]
    flags: tuple[int, ...]


class BottomDepthDecision(NamedTuple):
    value: float | None = None
    source: DepthSource = DepthSource.NONE

    @property
    def exists(self) -> bool:
        return self.source is not DepthSource.NONE


NO_BOTTOM_DEPTH = BottomDepthDecision()


class FilterFlags:
    """Inclusion flags for one station, True meaning "passes"

    A flag is vacuously True when its filter was not requested.
    ``bad_zero_coordinate`` is the odd one out: True means exclude.
    """

    def __init__(
        self,
        variables: bool = True,
        region: bool = True,
        years: bool = True,
        months: bool = True,
        levels: bool = True,
        bad_zero_coordinate: bool = False,
    ):
        self.variables = variables
        self.region = region
        self.years = years
        self.months = months
        self.levels = levels
        self.bad_zero_coordinate = bad_zero_coordinate

    @property
    def passes(self) -> bool:
        """True if no requested filter rejects the station"""
        return (
            self.variables
            and self.region
            and self.years
            and self.months
            and self.levels
            and not self.bad_zero_coordinate
        )

    def __eq__(self, other):
        if not isinstance(other, FilterFlags):
            return NotImplemented
        return vars(self) == vars(other)

    def __repr__(self):
        fields = ", ".join(f"{k}={v}" for k, v in vars(self).items())
        return f"FilterFlags({fields})"


class Station:
    """One OCL station: header, descriptors and, when read, the profile

    A station is filled in by the reader while its record is decoded and is
    not touched afterwards.  If the reader stopped early (filters, or the
    caller did not want the profile) ``profile_read`` is False and
    ``levels`` is empty.
    """

    def __init__(self, index: int):
        self.index = index
        self.bytes_in_station = 0
        self.station_id = -1
        self.country_code = -1
        self.cruise = -1
        self.year = -1
        self.month = -1
        self.day = -1
        self.time = math.nan
        self.lat = math.nan
        self.lon = math.nan
        self.n_levels = 0
        self.kind = StationKind.OBSERVED
        self.columns: list[VariableColumn] = []
        self.bytes_in_free_text = 0
        self.bytes_in_secondary_header = 0
        self.secondary_header: list[SecondaryHeaderEntry] = []
        self.bytes_in_bio_header = 0
        self.levels: list[ProfileLevel] = []

        self.profile_read = False
        self.truncated_levels = 0
        self.deepest_depth: float | None = None
        self.database_depth: float | None = None
        self.bottom_depth = NO_BOTTOM_DEPTH
        self.flags = FilterFlags()
        self.bytes_remaining: int | None = None

    @property
    def var_codes(self) -> list[int]:
        return [c.code for c in self.columns]

    def has_variable(self, code: int) -> bool:
        return any(c.code == code for c in self.columns)

    def column_index(self, code: int) -> int | None:
        """Position of variable ``code`` among the columns, None if absent"""
        for idx, column in enumerate(self.columns):
            if column.code == code:
                return idx
        return None

    def header_value(self, code: int) -> float | None:
        """Value of secondary header entry ``code`` (last one wins)"""
        value = None
        for entry in self.secondary_header:
            if entry.code == code:
                value = entry.value
        return value

    def profile_arrays(self) -> dict[str, np.ndarray]:
        """Profile as numpy arrays

        Returns:
            Dictionary with ``depth`` and ``depth_flag`` of shape (levels,)
            and ``values`` and ``flags`` of shape (levels, columns)
        """
        n_levels = len(self.levels)
        n_vars = len(self.columns)
        depth = np.full(n_levels, np.nan, dtype=np.float64)
        depth_flag = np.zeros(n_levels, dtype=np.int8)
        values = np.full((n_levels, n_vars), np.nan, dtype=np.float64)
        flags = np.zeros((n_levels, n_vars), dtype=np.int8)
        for idx, level in enumerate(self.levels):
            depth[idx] = level.depth
            depth_flag[idx] = level.depth_flag
            values[idx, :] = level.values
            flags[idx, :] = level.flags
        return {"depth": depth, "depth_flag": depth_flag, "values": values, "flags": flags}

    def __repr__(self):
        return (
            f"Station(index={self.index}, id={self.station_id}, "
            f"lat={self.lat}, lon={self.lon}, levels={self.n_levels}, "
            f"vars={self.var_codes})"
        )
