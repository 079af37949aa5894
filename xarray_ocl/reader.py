"""
Station-by-station OCL reader

An OCL file is a plain sequence of stations.  Each station is laid out as

    header -> variable descriptors -> character/PI data -> secondary header
    -> biological header -> profile

and begins with its own length in bytes.  The reader walks those sections in
order and stops early when the caller cannot use the rest of the station;
whatever is left is skipped by byte count so the stream stays aligned on the
next station.  There is no way to resynchronise after a misread byte, so any
decoding problem ends the whole run.
"""

from __future__ import annotations

import logging
import math
import warnings
from collections.abc import Iterator
from enum import Enum
from pathlib import Path
from typing import BinaryIO, NamedTuple, Union

from .accountant import ByteAccountant
from .bathymetry import BathymetryReader
from .bottom_depth import resolve_after_profile, resolve_before_profile
from .decompression import open_ocl_file
from .errors import MalformedFieldError, OCLError, ReaderHaltedError
from .fields import MISSING_FLOAT, MISSING_INT, FieldReader
from .filters import FilterCriteria, evaluate_filters
from .station import (
    STANDARD_DEPTHS,
    ProfileLevel,
    SecondaryHeaderEntry,
    Station,
    StationKind,
    VariableColumn,
)

logger = logging.getLogger(__name__)

# Profile levels kept per station; deeper levels are decoded but dropped
MAX_LEVELS = 6000


class ReadOptions:
    """What the caller wants out of each station"""

    def __init__(
        self,
        want_profile: bool = True,
        skip_to: int | None = None,
        criteria: FilterCriteria | None = None,
        max_levels: int = MAX_LEVELS,
    ):
        """
        Args:
            want_profile: Decode profiles; False reads headers only (profiles
                are still decoded when they are the only bottom depth source)
            skip_to: Fast-skip every station before this index
            criteria: Filters deciding whether a profile is worth decoding
            max_levels: Profile levels stored per station
        """
        if skip_to is not None and skip_to < 0:
            raise ValueError(f"skip_to must not be negative, got {skip_to}")
        if max_levels < 1:
            raise ValueError(f"max_levels must be positive, got {max_levels}")
        self.want_profile = want_profile
        self.skip_to = skip_to
        self.criteria = criteria if criteria is not None else FilterCriteria()
        self.max_levels = max_levels


class StationStatus(Enum):
    SUCCESS = "success"
    SKIPPED = "skipped"
    FATAL = "fatal"


class StationResult(NamedTuple):
    index: int
    status: StationStatus
    station: Station
    error: OCLError | None = None


class OCLReader:
    """Sequential reader for OCL station files"""

    def __init__(
        self,
        source: Union[str, Path, BinaryIO],
        options: ReadOptions | None = None,
        bathymetry: BathymetryReader | None = None,
        strict: bool = False,
        buffer_size: int = 65536,
    ):
        """
        Args:
            source: Filename (plain, .gz or .lz4) or binary stream
            options: Per-station read options (defaults read everything)
            bathymetry: Side channel of database depths, one line per station
            strict: Treat undecoded bytes left in a fully read station as an error
            buffer_size: Read size used on the underlying stream
        """
        if isinstance(source, (str, Path)):
            self.filename: Path | None = Path(source)
            self.fp = open_ocl_file(self.filename)
            self._owns_fp = True
        else:
            self.filename = None
            self.fp = source
            self._owns_fp = False

        self.options = options if options is not None else ReadOptions()
        self.bathymetry = bathymetry
        self.strict = strict
        self.accountant = ByteAccountant()
        self.fields = FieldReader(self.fp, self.accountant, buffer_size)
        self.next_index = 0
        self.halted: OCLError | None = None

    # -- public interface --------------------------------------------------

    def at_end(self) -> bool:
        return self.fields.at_end()

    def read_station(self) -> StationResult:
        """Decode the next station

        Fatal problems are returned as a FATAL result carrying the error and
        the partially decoded station; the reader refuses to continue after
        one.
        """
        if self.halted is not None:
            raise ReaderHaltedError(f"after {self.halted}")

        index = self.next_index
        self.next_index += 1
        station = Station(index)
        try:
            status = self._decode(station)
        except OCLError as e:
            if e.station_index is None:
                e.station_index = index
            self.halted = e
            return StationResult(index, StationStatus.FATAL, station, e)
        return StationResult(index, status, station)

    def decode_station(self) -> Station:
        """Like ``read_station`` but raising the fatal error"""
        result = self.read_station()
        if result.status is StationStatus.FATAL:
            raise result.error
        return result.station

    def __iter__(self) -> Iterator[StationResult]:
        """Yield results until end of stream or the first fatal error"""
        while self.halted is None and not self.at_end():
            result = self.read_station()
            yield result
            if result.status is StationStatus.FATAL:
                return

    def stations(self) -> Iterator[Station]:
        """Yield decoded stations, raising on the first fatal error"""
        for result in self:
            if result.status is StationStatus.FATAL:
                raise result.error
            if result.status is StationStatus.SUCCESS:
                yield result.station

    def close(self):
        if self._owns_fp:
            self.fp.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __repr__(self):
        return f"OCLReader(filename={self.filename}, next_index={self.next_index})"

    # -- state machine -----------------------------------------------------

    def _decode(self, station: Station) -> StationStatus:
        self.accountant.reset()
        f = self.fields

        length = f.read_varlen_int("station byte count")
        if length.missing:
            raise MalformedFieldError("Station byte count is missing")
        station.bytes_in_station = length.value
        station.station_id = f.read_varlen_int("station number").value_or(MISSING_INT)

        skip_to = self.options.skip_to
        if skip_to is not None and station.index < skip_to:
            if self.bathymetry is not None:
                self.bathymetry.skip(station.index)
            self._resync(station, complete=False)
            return StationStatus.SKIPPED

        self._read_header(station)
        self._skip_free_text(station)
        self._read_secondary_header(station)

        database_depth = None
        if self.bathymetry is not None:
            database_depth = self.bathymetry.next_depth(station)
        station.database_depth = database_depth
        station.bottom_depth = resolve_before_profile(station, database_depth)
        station.flags = evaluate_filters(station, self.options.criteria)

        # With no bottom depth yet the profile is the last resort
        want_profile = self.options.want_profile or not station.bottom_depth.exists
        if want_profile and station.flags.passes:
            self._skip_bio_header(station)
            self._read_profile(station)
            station.bottom_depth = resolve_after_profile(
                station, station.bottom_depth, database_depth
            )

        self._resync(station, complete=station.profile_read)
        return StationStatus.SUCCESS

    def _read_header(self, station: Station):
        f = self.fields
        station.country_code = f.read_digits(2, "country code").value_or(MISSING_INT)
        station.cruise = f.read_varlen_int("cruise number").value_or(MISSING_INT)
        station.year = f.read_digits(4, "year").value_or(MISSING_INT)
        station.month = f.read_digits(2, "month").value_or(MISSING_INT)
        station.day = f.read_digits(2, "day").value_or(MISSING_INT)
        station.time = f.read_varlen_float("time").value_or(MISSING_FLOAT)
        station.lat = f.read_varlen_float("latitude").value_or(MISSING_FLOAT)
        station.lon = f.read_varlen_float("longitude").value_or(MISSING_FLOAT)
        station.n_levels = f.read_varlen_int("number of levels").value_or(0)
        station.kind = StationKind.from_flag(f.read_digits(1, "station type").value_or(0))

        n_vars = f.read_digits(2, "number of variables").value_or(0)
        for _ in range(n_vars):
            code = f.read_varlen_int("variable code").value_or(MISSING_INT)
            flag = f.read_digits(1, "variable error flag").value_or(0)
            station.columns.append(VariableColumn(code, flag))

    def _skip_free_text(self, station: Station):
        n_bytes = self.fields.read_varlen_int("character data byte count")
        if n_bytes.ok:
            station.bytes_in_free_text = n_bytes.value
            self.fields.skip(n_bytes.value, "character data")

    def _read_secondary_header(self, station: Station):
        f = self.fields
        n_bytes = f.read_varlen_int("secondary header byte count")
        if n_bytes.missing:
            return
        station.bytes_in_secondary_header = n_bytes.value
        n_entries = f.read_varlen_int("secondary header entries").value_or(0)
        for _ in range(n_entries):
            code = f.read_varlen_int("secondary header code").value_or(MISSING_INT)
            value = f.read_varlen_float("secondary header value").value_or(MISSING_FLOAT)
            station.secondary_header.append(SecondaryHeaderEntry(code, value))

    def _skip_bio_header(self, station: Station):
        # Taxonomic and biomass data live inside this section and go with it
        n_bytes = self.fields.read_varlen_int("biological header byte count")
        if n_bytes.ok:
            station.bytes_in_bio_header = n_bytes.value
            self.fields.skip(n_bytes.value, "biological data")

    def _read_profile(self, station: Station):
        f = self.fields
        n_levels = station.n_levels
        n_vars = len(station.columns)
        max_levels = self.options.max_levels
        observed = station.kind is StationKind.OBSERVED

        if n_levels > max_levels:
            station.truncated_levels = n_levels - max_levels
            warnings.warn(
                f"Station {station.index} has {n_levels} levels, more than "
                f"max_levels={max_levels}; only the first {max_levels} are kept"
            )
        if not observed and n_levels > len(STANDARD_DEPTHS):
            logger.warning(
                "Station %d has %d standard levels, only %d standard depths exist",
                station.index,
                n_levels,
                len(STANDARD_DEPTHS),
            )

        deepest = None
        for j in range(n_levels):
            if observed:
                result = f.read_varlen_float("depth")
                depth = result.value_or(MISSING_FLOAT)
                depth_flag = 0
                if not result.missing:
                    depth_flag = f.read_digits(1, "depth error flag").value_or(0)
            else:
                depth = float(STANDARD_DEPTHS[j]) if j < len(STANDARD_DEPTHS) else MISSING_FLOAT
                depth_flag = 0

            values = []
            flags = []
            for _ in range(n_vars):
                result = f.read_varlen_float("profile value")
                values.append(result.value_or(MISSING_FLOAT))
                flag = 0
                if not result.missing:
                    flag = f.read_digits(1, "value error flag").value_or(0)
                flags.append(flag)

            if not math.isnan(depth) and (deepest is None or depth > deepest):
                deepest = depth
            if j < max_levels:
                station.levels.append(ProfileLevel(depth, depth_flag, tuple(values), tuple(flags)))

        station.deepest_depth = deepest
        station.profile_read = True

    def _resync(self, station: Station, complete: bool):
        """Skip whatever is left of the station and the rest of its line"""
        accountant = self.accountant
        accountant.check(strict=self.strict and complete)
        remaining = accountant.remaining
        station.bytes_remaining = remaining
        if complete and remaining:
            logger.warning(
                "Station %d: %d of %d bytes left after decoding the profile",
                station.index,
                remaining,
                station.bytes_in_station,
            )
        self.fields.skip(remaining, "rest of station")
        self.fields.skip_line()


def read_stations(
    filename: Union[str, Path],
    options: ReadOptions | None = None,
    bathymetry: Union[str, Path, None] = None,
    check_bathymetry: bool = False,
    strict: bool = False,
) -> list[Station]:
    """Read every station of a file that passes the filters

    Args:
        filename: OCL file to read
        options: Read options (profiles, skipping, filters)
        bathymetry: Optional bathymetry side channel file
        check_bathymetry: Cross check side channel lines against stations
        strict: Reject stations with undecoded bytes left over

    Returns:
        Stations passing every requested filter, in file order
    """
    bathy = None
    if bathymetry is not None:
        bathy = BathymetryReader(bathymetry, check=check_bathymetry)
    try:
        with OCLReader(filename, options=options, bathymetry=bathy, strict=strict) as reader:
            return [s for s in reader.stations() if s.flags.passes]
    finally:
        if bathy is not None:
            bathy.close()
