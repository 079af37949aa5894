"""
Xarray backend engine for OCL files
"""

from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any

import numpy as np
import xarray as xr
from xarray.backends import BackendEntrypoint

from .codes import var_label, var_units
from .reader import ReadOptions, read_stations
from .station import Station


def _column_codes(stations: Sequence[Station]) -> list[int]:
    """Variable codes in order of first appearance across stations"""
    codes: list[int] = []
    for station in stations:
        for code in station.var_codes:
            if code not in codes:
                codes.append(code)
    return codes


def stations_to_dataset(
    stations: Sequence[Station], attrs: dict[str, Any] | None = None
) -> xr.Dataset:
    """Pack decoded stations into a (station, level) Dataset

    Stations without a decoded profile keep their header variables and have
    all-NaN profile rows.  Each variable gets a ``<label>_flag`` companion
    holding the per-level error flags.
    """
    n_stations = len(stations)
    n_levels = max((len(s.levels) for s in stations), default=0)
    codes = _column_codes(stations)

    depth = np.full((n_stations, n_levels), np.nan, dtype=np.float64)
    depth_flag = np.zeros((n_stations, n_levels), dtype=np.int8)
    values = {code: np.full((n_stations, n_levels), np.nan, dtype=np.float64) for code in codes}
    flags = {code: np.zeros((n_stations, n_levels), dtype=np.int8) for code in codes}

    for i, station in enumerate(stations):
        profile = station.profile_arrays()
        n = len(station.levels)
        depth[i, :n] = profile["depth"]
        depth_flag[i, :n] = profile["depth_flag"]
        for j, code in enumerate(station.var_codes):
            values[code][i, :n] = profile["values"][:, j]
            flags[code][i, :n] = profile["flags"][:, j]

    def header(attr, dtype):
        return np.array([getattr(s, attr) for s in stations], dtype=dtype)

    bottom = np.array(
        [s.bottom_depth.value if s.bottom_depth.exists else np.nan for s in stations],
        dtype=np.float64,
    )
    source = np.array([s.bottom_depth.source.value for s in stations], dtype="U1")

    sdims = ("station",)
    pdims = ("station", "level")
    data_vars = {
        "station_id": xr.Variable(sdims, header("station_id", np.int64)),
        "country_code": xr.Variable(sdims, header("country_code", np.int32)),
        "cruise": xr.Variable(sdims, header("cruise", np.int64)),
        "year": xr.Variable(sdims, header("year", np.int32)),
        "month": xr.Variable(sdims, header("month", np.int32)),
        "day": xr.Variable(sdims, header("day", np.int32)),
        "time": xr.Variable(
            sdims, header("time", np.float64), attrs={"long_name": "time of day, decimal hours"}
        ),
        "lat": xr.Variable(sdims, header("lat", np.float64), attrs={"units": "degrees_north"}),
        "lon": xr.Variable(sdims, header("lon", np.float64), attrs={"units": "degrees_east"}),
        "n_levels": xr.Variable(sdims, header("n_levels", np.int32)),
        "standard_levels": xr.Variable(
            sdims, np.array([s.kind.value for s in stations], dtype=np.int8)
        ),
        "bottom_depth": xr.Variable(sdims, bottom, attrs={"units": "m"}),
        "bottom_depth_source": xr.Variable(
            sdims, source, attrs={"flag_meanings": "h=header d=database p=profile -=none"}
        ),
        "depth": xr.Variable(pdims, depth, attrs={"units": "m"}),
        "depth_flag": xr.Variable(pdims, depth_flag),
    }

    for code in codes:
        label = var_label(code)
        data_vars[label] = xr.Variable(
            pdims, values[code], attrs={"units": var_units(code), "ocl_code": code}
        )
        data_vars[f"{label}_flag"] = xr.Variable(pdims, flags[code])

    return xr.Dataset(data_vars, attrs=attrs or {})


class OCLBackendEntrypoint(BackendEntrypoint):
    """Xarray backend entrypoint for OCL files"""

    description = "Backend for reading Ocean Climate Laboratory (OCL) station files"

    def open_dataset(  # type: ignore[override]
        self,
        filename_or_obj: str | Path,
        *,
        drop_variables: tuple[str] | None = None,
        options: ReadOptions | None = None,
        bathymetry: str | Path | None = None,
        check_bathymetry: bool = False,
        strict: bool = False,
    ) -> xr.Dataset:
        """Open an OCL file as an xarray Dataset

        Parameters
        ----------
        filename_or_obj : str or Path
            Path to OCL file (plain, .gz or .lz4)
        drop_variables : tuple of str, optional
            Variables to drop from the dataset
        options : ReadOptions, optional
            Station filters and profile options
        bathymetry : str or Path, optional
            Bathymetry side channel file, one line per station
        check_bathymetry : bool, default False
            Cross check side channel lines against stations
        strict : bool, default False
            Reject stations with undecoded bytes left over

        Returns
        -------
        dataset : xarray.Dataset
        """
        filename = Path(filename_or_obj)
        stations = read_stations(
            filename,
            options=options,
            bathymetry=bathymetry,
            check_bathymetry=check_bathymetry,
            strict=strict,
        )
        ds = stations_to_dataset(
            stations, attrs={"source_file": str(filename), "n_stations": len(stations)}
        )
        if drop_variables:
            ds = ds.drop_vars([v for v in drop_variables if v in ds.variables])
        return ds

    def guess_can_open(self, filename_or_obj: str | Path) -> bool:  # type: ignore[override]
        """Guess if this backend can open the file

        Checks for .ocl (optionally compressed) and WOD98 names like nbds1106.gz
        """
        try:
            filename = Path(filename_or_obj)
        except TypeError:
            return False
        name = filename.name.lower()
        for suffix in (".gz", ".lz4"):
            if name.endswith(suffix):
                name = name[: -len(suffix)]
        if name.endswith(".ocl"):
            return True
        stem = name.split(".")[0]
        return len(stem) > 4 and stem[-4:].isdigit() and stem[:-4].isalpha()


def open_ocl_dataset(
    filename: str | Path,
    options: ReadOptions | None = None,
    bathymetry: str | Path | None = None,
    check_bathymetry: bool = False,
    strict: bool = False,
    drop_variables: list | None = None,
) -> xr.Dataset:
    """Open an OCL file as an xarray Dataset

    This is a convenience function that uses the OCL backend.

    Examples
    --------
    >>> import xarray_ocl as xocl
    >>> ds = xocl.open_ocl_dataset('nbds1106.gz')
    >>> print(ds['Temp'])
    """
    return xr.open_dataset(
        filename,
        engine=OCLBackendEntrypoint,
        options=options,
        bathymetry=bathymetry,
        check_bathymetry=check_bathymetry,
        strict=strict,
        drop_variables=drop_variables,
    )


def read_multiple_ocl_files(
    filenames: Iterable[str | Path],
    options: ReadOptions | None = None,
    strict: bool = False,
) -> tuple[list[Station], dict[str, Any]]:
    """Read stations from several files

    Returns:
        Tuple of (stations, metadata) with stations in file order
    """
    stations: list[Station] = []
    n_files = 0
    for filename in filenames:
        stations.extend(read_stations(filename, options=options, strict=strict))
        n_files += 1
    return stations, {"n_files": n_files, "total_stations": len(stations)}


def open_multi_ocl_dataset(
    filenames: Iterable[str | Path],
    options: ReadOptions | None = None,
    strict: bool = False,
) -> xr.Dataset:
    """Open several OCL files as a single xarray Dataset

    Examples
    --------
    >>> import xarray_ocl as xocl
    >>> from pathlib import Path
    >>> ds = xocl.open_multi_ocl_dataset(sorted(Path('.').glob('nbds*.gz')))
    """
    filenames = [Path(f) for f in filenames]
    stations, metadata = read_multiple_ocl_files(filenames, options=options, strict=strict)
    return stations_to_dataset(stations, attrs=metadata)
