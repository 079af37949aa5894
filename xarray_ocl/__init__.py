"""
xarray-ocl: An xarray backend for NODC Ocean Climate Laboratory (OCL) files

This package decodes the ASCII station records of the WOD98 OCL format,
selects stations by header filters and resolves each station's bottom depth,
exposing the result as xarray Datasets or plain station objects.
"""

from .backend import (
    OCLBackendEntrypoint,
    open_multi_ocl_dataset,
    open_ocl_dataset,
    read_multiple_ocl_files,
    stations_to_dataset,
)
from .bathymetry import BathymetryReader, write_station_positions
from .errors import OCLError
from .filters import FilterCriteria
from .reader import OCLReader, ReadOptions, StationStatus, read_stations
from .soundspeed import sound_speed
from .station import Station

__version__ = "0.1"
__all__ = [
    "BathymetryReader",
    "FilterCriteria",
    "OCLBackendEntrypoint",
    "OCLError",
    "OCLReader",
    "ReadOptions",
    "Station",
    "StationStatus",
    "open_multi_ocl_dataset",
    "open_ocl_dataset",
    "read_multiple_ocl_files",
    "read_stations",
    "sound_speed",
    "stations_to_dataset",
    "write_station_positions",
]
