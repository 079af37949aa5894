"""
Bathymetry side channel

An OCL file can be paired with an ASCII file holding one line per station::

    <lon> <lat> <station index> <elevation>

typically made by feeding ``write_station_positions`` output through GMT's
``grdtrack``.  Elevations are negative below sea level.  The file is read in
lockstep with the station stream and never rewound.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import TextIO

from .bottom_depth import LATITUDE_LIMIT
from .errors import BathymetryMismatchError, MalformedFieldError, UnexpectedEndOfStreamError
from .filters import is_zero_coordinate, zero_coordinate_okay
from .station import Station

logger = logging.getLogger(__name__)

# Where stations with unusable positions are parked for grdtrack
DEFAULT_BAD_POSITION = (70.0, 30.0)


def _lon_difference(a: float, b: float) -> float:
    """Smallest angular difference between two longitudes"""
    return abs((a - b + 180.0) % 360.0 - 180.0)


class BathymetryReader:
    """Reads the bathymetry side channel one station at a time

    With ``check`` False the file is trusted blindly, which reproduces the
    historical behaviour exactly.  With ``check`` True every line is cross
    checked against the station it is consumed for.
    """

    def __init__(
        self,
        source: str | Path | TextIO,
        check: bool = False,
        tolerance: float = 0.01,
    ):
        """
        Args:
            source: Filename or open text stream
            check: Cross check station index and position of every line
            tolerance: Allowed position disagreement in degrees when checking
        """
        if isinstance(source, (str, Path)):
            self.fp = open(source, encoding="ascii")
            self._owns_fp = True
        else:
            self.fp = source
            self._owns_fp = False
        self.check = check
        self.tolerance = tolerance
        self.lines_read = 0

    def _next_fields(self, index: int) -> tuple[float, float, int, float]:
        line = self.fp.readline()
        while line and not line.strip():
            line = self.fp.readline()
        if not line:
            raise UnexpectedEndOfStreamError(
                f"Bathymetry file ran out after {self.lines_read} lines, "
                f"needed a line for station {index}"
            )
        self.lines_read += 1
        parts = line.split()
        if len(parts) < 4:
            raise MalformedFieldError(f"Bathymetry line {self.lines_read}: {line.strip()!r}")
        try:
            return float(parts[0]), float(parts[1]), int(parts[2]), float(parts[3])
        except ValueError:
            raise MalformedFieldError(
                f"Bathymetry line {self.lines_read}: {line.strip()!r}"
            ) from None

    def _check_index(self, line_index: int, index: int):
        if self.check and line_index != index:
            raise BathymetryMismatchError(
                f"Line {self.lines_read} is for station {line_index}, expected {index}"
            )

    def skip(self, index: int):
        """Consume the line of a station that is being skipped"""
        _, _, line_index, _ = self._next_fields(index)
        self._check_index(line_index, index)

    def next_depth(self, station: Station) -> float | None:
        """Consume the next line and return its depth (positive down)

        Returns:
            Depth in meters, or None if the line holds no usable value
        """
        lon, lat, line_index, elevation = self._next_fields(station.index)
        self._check_index(line_index, station.index)
        if math.isnan(elevation):
            return None
        if self.check and abs(station.lat) <= LATITUDE_LIMIT:
            if (
                abs(lat - station.lat) > self.tolerance
                or _lon_difference(lon, station.lon) > self.tolerance
            ):
                logger.warning(
                    "Bathymetry position %.4f %.4f does not match station %d at %.4f %.4f",
                    lon,
                    lat,
                    station.index,
                    station.lon,
                    station.lat,
                )
                return None
        return -elevation

    def close(self):
        if self._owns_fp:
            self.fp.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


def station_positions(
    stations: Iterable[Station],
    wmo_square: str | None = None,
    bad_position: tuple[float, float] = DEFAULT_BAD_POSITION,
) -> Iterator[tuple[float, float, int]]:
    """Yield ``(lon, lat, index)`` for every station, ready for grdtrack

    Stations whose position cannot be looked up (zero coordinates outside
    the equator/prime meridian squares, or beyond the latitude band) are
    given ``bad_position`` so that grdtrack still emits a line for them.
    """
    for station in stations:
        bad = abs(station.lat) > LATITUDE_LIMIT or math.isnan(station.lat)
        if wmo_square is not None:
            if is_zero_coordinate(station.lon) and not zero_coordinate_okay(wmo_square, "lon"):
                bad = True
            if is_zero_coordinate(station.lat) and not zero_coordinate_okay(wmo_square, "lat"):
                bad = True
        if bad:
            yield bad_position[0], bad_position[1], station.index
        else:
            yield station.lon, station.lat, station.index


def write_station_positions(
    fp: TextIO,
    stations: Iterable[Station],
    wmo_square: str | None = None,
    bad_position: tuple[float, float] = DEFAULT_BAD_POSITION,
) -> int:
    """Write station positions, one per line; returns the number written"""
    n = 0
    for lon, lat, index in station_positions(stations, wmo_square, bad_position):
        fp.write(f"{lon:f}  {lat:f} {index}\n")
        n += 1
    return n
