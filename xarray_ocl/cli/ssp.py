#
# ssp subcommand, the sspcomp companion of filt
#
# Computes the sound speed at every level of the selected stations from
# temperature and salinity (35 ppt when a station carries none), optionally
# against a constant comparison salinity and averaged over depth bins.
#

from __future__ import annotations

import logging
import sys
from argparse import ArgumentParser
from pathlib import Path
from typing import TextIO

import numpy as np

import xarray_ocl as xocl
from xarray_ocl.bathymetry import BathymetryReader
from xarray_ocl.codes import SALINITY, TEMPERATURE
from xarray_ocl.errors import OCLError
from xarray_ocl.filters import level_has_flagged_data, station_selected
from xarray_ocl.reader import OCLReader, ReadOptions
from xarray_ocl.soundspeed import DEFAULT_SALINITY, bin_profile, depth_to_pressure, sound_speed
from xarray_ocl.station import Station

from . import logger
from .filt import add_filter_args, criteria_from_args, format_station_title

NO_SALINITY_NOTE = "%(salinity data not present in input profile - assuming 35ppt.)"

_LINE = "%7.4f %7.4f %4d %2d %2d %5.2f %8.3f %8.3f %8.3f %9.3f"


def header_lines(label: str | None, compare: bool, binned: bool) -> list[str]:
    """Column title lines"""
    lines = []
    if label:
        lines.append(f"% {label}")
    names = "%%%7s %8s %4s %2s %2s %5s %8s %8s %8s %9s" % (
        "Lat  ", "Lon  ", "Year", "Mo", "Dy", " Time", "Depth ", "Temp  ", "Saln ", "Calcd_SSP",
    )
    units = "%%%7s %8s %4s %2s %2s %5s %8s %8s %8s %9s" % (
        "deg  ", "deg  ", "yyyy", "mm", "dd", "hrs", "meters ", "deg C ", "ppt ", "m/s   ",
    )
    rule = "%" + "-" * 72
    if compare:
        names += " %8s %9s %7s" % ("CompSaln", "CompSSP", "DiffSSP")
        units += " %8s %9s %7s" % ("ppt ", "m/s ", "m/s ")
        rule += "-" * 29
        if binned:
            names += " %7s %2s" % ("StdvDif", "N")
            units += " %7s %2s" % ("m/s ", "#")
            rule += "-" * 10
    return lines + [names, units, rule]


def station_columns(
    station: Station, comp_salinity: float | None = None
) -> dict[str, np.ndarray] | None:
    """Per-level depth, temperature, salinity and sound speed of a station

    Levels with flagged or missing temperature or salinity are dropped.

    Returns:
        Dictionary of equal length arrays, or None without a temperature column
    """
    t_idx = station.column_index(TEMPERATURE)
    if t_idx is None:
        return None
    s_idx = station.column_index(SALINITY)
    required = [TEMPERATURE] if s_idx is None else [TEMPERATURE, SALINITY]
    levels = [lvl for lvl in station.levels if not level_has_flagged_data(station, lvl, required)]

    depth = np.array([lvl.depth for lvl in levels], dtype=np.float64)
    temp = np.array([lvl.values[t_idx] for lvl in levels], dtype=np.float64)
    if s_idx is None:
        sal = np.full(len(levels), DEFAULT_SALINITY)
    else:
        sal = np.array([lvl.values[s_idx] for lvl in levels], dtype=np.float64)

    pres = depth_to_pressure(depth)
    columns = {"depth": depth, "temp": temp, "sal": sal, "ssp": sound_speed(pres, temp, sal)}
    if comp_salinity is not None:
        comp_sal = np.full(len(levels), comp_salinity)
        comp_ssp = sound_speed(pres, temp, comp_sal)
        columns["comp_sal"] = comp_sal
        columns["comp_ssp"] = comp_ssp
        columns["diff"] = columns["ssp"] - comp_ssp
    return columns


def station_lines(
    station: Station,
    columns: dict[str, np.ndarray],
    bin_size: float | None = None,
) -> list[str]:
    """Data lines of one station"""
    compare = "comp_sal" in columns
    prefix = (station.lat, station.lon, station.year, station.month, station.day, station.time)
    lines = []

    if bin_size is None:
        for j in range(len(columns["depth"])):
            line = _LINE % (
                *prefix,
                columns["depth"][j],
                columns["temp"][j],
                columns["sal"][j],
                columns["ssp"][j],
            )
            if compare:
                line += " %8.3f %9.3f %7.3f" % (
                    columns["comp_sal"][j],
                    columns["comp_ssp"][j],
                    columns["diff"][j],
                )
            lines.append(line)
        return lines

    data = {k: v for k, v in columns.items() if k != "depth"}
    bins, means, stds, counts = bin_profile(columns["depth"], data, bin_size)
    for j, top in enumerate(bins):
        line = _LINE % (*prefix, top, means["temp"][j], means["sal"][j], means["ssp"][j])
        if compare:
            line += " %8.3f %9.3f %7.3f %7.3f %2d" % (
                means["comp_sal"][j],
                means["comp_ssp"][j],
                means["diff"][j],
                stds["diff"][j],
                counts[j],
            )
        lines.append(line)
    return lines


def write_sound_speeds(
    reader: OCLReader,
    fp: TextIO,
    comp_salinity: float | None = None,
    bin_size: float | None = None,
    titles: bool = True,
    label: str | None = None,
) -> int:
    """Write sound speed lines for the selected stations; returns stations written"""
    if titles:
        for line in header_lines(label, comp_salinity is not None, bin_size is not None):
            print(line, file=fp)

    n = 0
    for station in reader.stations():
        if not station_selected(station):
            continue
        columns = station_columns(station, comp_salinity)
        if columns is None:
            logging.debug("Station %d has no temperature, skipped", station.index)
            continue
        print(format_station_title(station)[1], file=fp)
        if station.column_index(SALINITY) is None:
            print(NO_SALINITY_NOTE, file=fp)
        for line in station_lines(station, columns, bin_size):
            print(line, file=fp)
        n += 1
    return n


def _add_common_args(parser) -> None:
    """Add arguments shared between the subcommand and standalone entry point."""
    parser.add_argument(
        "input",
        nargs="?",
        type=Path,
        help="OCL file, plain, .gz or .lz4 (default: stdin)",
    )
    parser.add_argument(
        "-o", "--output", type=Path, metavar="filename", help="Output file (default: stdout)"
    )
    parser.add_argument(
        "-c",
        "--comp-salinity",
        type=float,
        metavar="ppt",
        help="Also compute sound speed with this constant salinity",
    )
    parser.add_argument(
        "-D",
        "--depth-bin",
        type=float,
        metavar="meters",
        help="Average levels over depth bins of this size",
    )
    parser.add_argument(
        "--label", type=str, metavar="text", help="Extra comment line above the column titles"
    )
    parser.add_argument(
        "-t", "--no-titles", action="store_true", help="Do not output the column title lines"
    )
    add_filter_args(parser)
    logger.add_args(parser)


def add_args(subparsers) -> None:
    """Register the 'ssp' subcommand."""
    parser = subparsers.add_parser(
        "ssp",
        help="Compute sound speed profiles",
        description="Compute sound speed at every level of the selected OCL stations",
    )
    _add_common_args(parser)
    parser.set_defaults(func=run)


def run(args) -> int:
    """Execute the ssp subcommand."""
    logger.mk_logger(args)

    if args.input is not None and not args.input.exists():
        logging.error("File not found: %s", args.input)
        return 1
    if args.depth_bin is not None and args.depth_bin <= 0:
        logging.error("Depth bin size must be positive, got %s", args.depth_bin)
        return 1

    bathymetry = None
    fp_out = None
    try:
        options = ReadOptions(skip_to=args.skip_to, criteria=criteria_from_args(args, args.input))
        if args.bathymetry is not None:
            bathymetry = BathymetryReader(args.bathymetry, check=args.check_bathymetry)
        source = args.input if args.input is not None else sys.stdin.buffer
        with OCLReader(source, options=options, bathymetry=bathymetry, strict=args.strict) as reader:
            fp_out = open(args.output, "w", encoding="ascii") if args.output else sys.stdout
            n = write_sound_speeds(
                reader,
                fp_out,
                comp_salinity=args.comp_salinity,
                bin_size=args.depth_bin,
                titles=not args.no_titles,
                label=args.label,
            )
        logging.info("Wrote sound speeds for %d stations", n)
        return 0
    except OCLError as e:
        logging.error("Failure decoding station #%s: %s", e.station_index, e)
        logging.debug("Traceback:", exc_info=True)
        return 1
    except (OSError, ValueError) as e:
        logging.error("Error: %s", e)
        logging.debug("Traceback:", exc_info=True)
        return 1
    finally:
        if fp_out is not None and args.output:
            fp_out.close()
        if bathymetry is not None:
            bathymetry.close()


def main():
    """Standalone entry point."""
    parser = ArgumentParser(
        description="Compute sound speed at every level of the selected OCL stations",
    )
    _add_common_args(parser)
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"%(prog)s {xocl.__version__}",
    )
    args = parser.parse_args()
    sys.exit(run(args))


if __name__ == "__main__":
    main()
