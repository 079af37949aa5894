#
# filt subcommand, a drop-in for the oclfilt tool
#
# Decodes an OCL file, applies the station filters and prints the selected
# stations as %-commented ASCII columns, one-line queries, a full field dump
# or just the end statistics.
#

from __future__ import annotations

import logging
import sys
from argparse import ArgumentParser, ArgumentTypeError
from collections.abc import Sequence
from pathlib import Path
from typing import TextIO

import xarray_ocl as xocl
from xarray_ocl.bathymetry import BathymetryReader
from xarray_ocl.codes import parse_code_list, read_code_list, var_label, var_units
from xarray_ocl.errors import OCLError
from xarray_ocl.filters import (
    FilterCriteria,
    level_has_flagged_data,
    station_selected,
    wmo_square_from_filename,
)
from xarray_ocl.reader import OCLReader, ReadOptions, StationStatus
from xarray_ocl.station import ProfileLevel, Station

from . import logger

QUERY_HEADER = (
    "%  stn year mo dy  time       lat       lon   bytes numlvls botdepth  vars",
    "%----- ---- -- -- ----- --------- --------- ------- ------- --------  ----------",
)


def _pair(cast):
    """argparse type for ``first,second``"""

    def parse(text: str):
        parts = text.split(",")
        if len(parts) != 2:
            raise ArgumentTypeError(f"expected two comma separated values, got {text!r}")
        try:
            return cast(parts[0]), cast(parts[1])
        except ValueError:
            raise ArgumentTypeError(f"invalid value in {text!r}") from None

    return parse


def _region(text: str) -> tuple[float, float, float, float]:
    """argparse type for ``west/east/south/north``"""
    parts = text.split("/")
    if len(parts) != 4:
        raise ArgumentTypeError(f"expected west/east/south/north, got {text!r}")
    try:
        west, east, south, north = (float(x) for x in parts)
    except ValueError:
        raise ArgumentTypeError(f"invalid region {text!r}") from None
    return west, east, south, north


def _codes(text: str) -> list[int]:
    try:
        return parse_code_list(text)
    except ValueError as e:
        raise ArgumentTypeError(str(e)) from None


def add_filter_args(parser) -> None:
    """Station selection options shared by the decoding subcommands."""
    grp = parser.add_argument_group("Station Selection Options")
    grp.add_argument(
        "-d",
        "--bathymetry",
        type=Path,
        metavar="filename",
        help="Bathymetry file of lon lat index depth lines, one per station",
    )
    grp.add_argument(
        "--check-bathymetry",
        action="store_true",
        help="Verify bathymetry lines belong to the station they are used for",
    )
    grp.add_argument(
        "-l",
        "--region",
        type=_region,
        metavar="w/e/s/n",
        help="Only stations inside this region, bounds included",
    )
    grp.add_argument(
        "-m", "--months", type=_pair(int), metavar="min,max", help="Inclusive month range"
    )
    grp.add_argument(
        "-p", "--min-levels", type=int, metavar="count", help="Minimum number of profile levels"
    )
    grp.add_argument(
        "-s", "--skip-to", type=int, metavar="station", help="Start at this station number"
    )
    grp.add_argument(
        "-v",
        "--vars",
        type=_codes,
        metavar="codes",
        help="Variable codes that must be present and unflagged, e.g. 1,2",
    )
    grp.add_argument(
        "--vars-file", type=Path, metavar="filename", help="File of variable codes, as for -v"
    )
    grp.add_argument(
        "-w",
        "--wmo-square",
        type=str,
        metavar="square",
        help="Reject zero lat/lon outside this WMO square ('auto' takes it from the filename)",
    )
    grp.add_argument(
        "-y", "--years", type=_pair(int), metavar="min,max", help="Inclusive year range"
    )
    grp.add_argument(
        "--strict",
        action="store_true",
        help="Fail on stations with undecoded bytes left over",
    )


def var_list_from_args(args) -> list[int] | None:
    var_list = list(args.vars) if args.vars else []
    if args.vars_file is not None:
        var_list.extend(read_code_list(args.vars_file))
    return var_list or None


def criteria_from_args(args, source: Path | None = None) -> FilterCriteria:
    """Build filter criteria from parsed command line options."""
    wmo_square = args.wmo_square
    if wmo_square == "auto":
        wmo_square = wmo_square_from_filename(source) if source is not None else None
        if wmo_square is None:
            raise ValueError(f"Can not find a WMO square in the name of {source}")
        logging.info("Using WMO square %s from %s", wmo_square, source)
    return FilterCriteria(
        var_list=var_list_from_args(args),
        min_levels=args.min_levels,
        region=args.region,
        year_range=args.years,
        month_range=args.months,
        wmo_square=wmo_square,
    )


# -- formatting ---------------------------------------------------------------


def format_query_line(station: Station) -> str:
    decision = station.bottom_depth
    if decision.exists:
        bot = "%6.1f %s" % (decision.value, decision.source.value)
    else:
        bot = "   --  -"
    codes = [f"{c.code}*" if c.error_flag > 0 else str(c.code) for c in station.columns]
    var_str = ",".join(codes) if codes else "  --  "
    return "%6d %4d %2d %2d %5.2f %9.4f %9.4f %7d %7d %8s  %-9s" % (
        station.index,
        station.year,
        station.month,
        station.day,
        station.time,
        station.lat,
        station.lon,
        station.bytes_in_station,
        station.n_levels,
        bot,
        var_str,
    )


def format_station_title(station: Station) -> list[str]:
    decision = station.bottom_depth
    bot = "%.2f m" % decision.value if decision.exists else "[no data]"
    codes = station.var_codes
    return [
        "%",
        "%%Station #%d, bottom depth %9s (from %s),  %s level data"
        % (station.index, bot, decision.source.value, station.kind.label),
        "%Columns: Lat, Lon, Year, Month, Day, Time, Depth"
        + "".join(f", {var_label(c)}" for c in codes),
        "%Units:   deg, deg, yyyy, mm, dd, hrs, m" + "".join(f", {var_units(c)}" for c in codes),
    ]


def format_level_line(station: Station, level: ProfileLevel, with_flags: bool = False) -> str:
    line = "%.4f  %.4f  %4d %2d %2d %.2f  %.2f" % (
        station.lat,
        station.lon,
        station.year,
        station.month,
        station.day,
        station.time,
        level.depth,
    )
    if with_flags:
        line += f" ({level.depth_flag})"
    for value, flag in zip(level.values, level.flags, strict=True):
        line += f"  {value:.3f}"
        if with_flags:
            line += f" ({flag})"
    return line


def format_full_dump(station: Station) -> list[str]:
    i = station.index
    lines = [
        f"bytesInStation({i})={station.bytes_in_station}",
        f"oclStationNumber({i})={station.station_id}",
        f"countryCode({i})={station.country_code}",
        f"cruiseNumber({i})={station.cruise}",
        f"date({i})={station.year}-{station.month}-{station.day}",
        f"time({i})={station.time:f}",
        f"lat({i})={station.lat:f}",
        f"lon({i})={station.lon:f}",
        f"numberOfLevels({i})={station.n_levels}",
        f"stationType({i})={station.kind.value}",
        f"numberOfVarCodes({i})={len(station.columns)}",
    ]
    for j, column in enumerate(station.columns):
        lines.append(
            f"  varCode({j:2d})={column.code:3d}     errCodeForVarCode({j:2d})={column.error_flag}"
        )
    lines += [
        f"bytesInCharPI({i})={station.bytes_in_free_text}",
        f"bytesInSecHdr({i})={station.bytes_in_secondary_header}",
        f"bytesInBioHdr({i})={station.bytes_in_bio_header}",
        f"numberOfSecHdrEntries({i})={len(station.secondary_header)}",
    ]
    for j, entry in enumerate(station.secondary_header):
        lines.append(f"  secHdrCode({j:2d})={entry.code:3d}     secHdrValue({j:2d})={entry.value:f}")
    lines.append("depth, var1, var2, etc:")
    for level in station.levels:
        line = f"{level.depth:f} ({level.depth_flag})     "
        for value, flag in zip(level.values, level.flags, strict=True):
            line += f"{value:f} ({flag})     "
        lines.append(line)
    lines.append(f"bytesLeftInStation({i})={station.bytes_remaining}")
    bottom = station.bottom_depth.value if station.bottom_depth.exists else float("nan")
    lines.append(f"bottomDepth({i})={bottom:f}")
    return lines


def format_summary(n_out: int, n_total: int, bytes_out: int, bytes_total: int) -> list[str]:
    return [
        "% summary value units: #Stns / total#Stns, Bytes / totalBytes",
        f"% summary:  {n_out} / {n_total} , {bytes_out} / {bytes_total}",
    ]


# -- driver -------------------------------------------------------------------


def filter_stations(
    reader: OCLReader,
    fp: TextIO,
    mode: str = "profile",
    titles: bool = True,
    include_flagged: bool = False,
    var_list: Sequence[int] | None = None,
    depth_window: Sequence[float] | None = None,
    max_stations: int | None = None,
) -> tuple[int, int, int, int]:
    """Write every selected station of ``reader`` to ``fp``

    Args:
        reader: Open station reader
        fp: Text output
        mode: One of profile, query, full or stats
        titles: Write the %-comment title lines
        include_flagged: Write flagged levels too, with their error flags
        var_list: Variables whose flagged values drop a level
        depth_window: (shallow, deep) bottom depth window
        max_stations: Stop after this many stations are selected

    Returns:
        Tuple of (stations selected, stations read, bytes selected, bytes read)

    Raises:
        OCLError: On the first undecodable station
    """
    if mode not in ("profile", "query", "full", "stats"):
        raise ValueError(f"Unknown output mode {mode!r}")

    n_out = bytes_out = bytes_total = 0

    if mode == "query" and titles:
        for line in QUERY_HEADER:
            print(line, file=fp)

    for result in reader:
        if result.status is StationStatus.FATAL:
            raise result.error
        if result.status is StationStatus.SKIPPED:
            continue

        station = result.station
        bytes_total += station.bytes_in_station
        if not station_selected(station, depth_window):
            continue

        n_out += 1
        bytes_out += station.bytes_in_station

        if mode == "full":
            lines = format_full_dump(station)
        elif mode == "query":
            lines = [format_query_line(station)]
        elif mode == "profile":
            lines = format_station_title(station) if titles else []
            for level in station.levels:
                flagged = level_has_flagged_data(station, level, var_list)
                if not flagged or include_flagged:
                    lines.append(format_level_line(station, level, include_flagged))
        else:
            lines = []
        for line in lines:
            print(line, file=fp)

        if max_stations is not None and n_out >= max_stations:
            break

    # Total is stations read, so the one that reached -n is counted
    # rather than stopping at the loop counter
    if mode in ("query", "stats"):
        for line in format_summary(n_out, reader.next_index, bytes_out, bytes_total):
            print(line, file=fp)

    return n_out, reader.next_index, bytes_out, bytes_total


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
        "-b",
        "--bottom-depth",
        type=_pair(float),
        metavar="shallow,deep",
        help="Only stations whose bottom depth lies in this window",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "-e", "--end-stats", action="store_true", help="Only output the end statistics"
    )
    mode.add_argument("-f", "--full", action="store_true", help="Dump every field of each station")
    mode.add_argument(
        "-q", "--query", action="store_true", help="One line per station: position, size, variables"
    )
    parser.add_argument(
        "-n", "--max-stations", type=int, metavar="count", help="Stop after this many stations"
    )
    parser.add_argument(
        "-r",
        "--include-flagged",
        action="store_true",
        help="Output error-flagged levels too, with error flags appended",
    )
    parser.add_argument(
        "-t", "--no-titles", action="store_true", help="Do not output the %%-comment title lines"
    )
    add_filter_args(parser)
    logger.add_args(parser)


def add_args(subparsers) -> None:
    """Register the 'filt' subcommand."""
    parser = subparsers.add_parser(
        "filt",
        help="Filter OCL stations and output them as ASCII columns",
        description="Decode, filter and print the stations of an OCL file",
    )
    _add_common_args(parser)
    parser.set_defaults(func=run)


def _mode(args) -> str:
    if args.full:
        return "full"
    if args.query:
        return "query"
    if args.end_stats:
        return "stats"
    return "profile"


def run(args) -> int:
    """Execute the filt subcommand."""
    logger.mk_logger(args)

    if args.input is not None and not args.input.exists():
        logging.error("File not found: %s", args.input)
        return 1
    if args.bathymetry is not None and not args.bathymetry.exists():
        logging.error("Bathymetry file not found: %s", args.bathymetry)
        return 1

    mode = _mode(args)
    bathymetry = None
    reader = None
    fp_out = None
    try:
        criteria = criteria_from_args(args, args.input)
        options = ReadOptions(
            want_profile=mode != "stats",
            skip_to=args.skip_to,
            criteria=criteria,
        )
        if args.bathymetry is not None:
            bathymetry = BathymetryReader(args.bathymetry, check=args.check_bathymetry)
        source = args.input if args.input is not None else sys.stdin.buffer
        reader = OCLReader(source, options=options, bathymetry=bathymetry, strict=args.strict)
        fp_out = open(args.output, "w", encoding="ascii") if args.output else sys.stdout

        n_out, n_total, _, _ = filter_stations(
            reader,
            fp_out,
            mode=mode,
            titles=not args.no_titles,
            include_flagged=args.include_flagged,
            var_list=criteria.var_list,
            depth_window=args.bottom_depth,
            max_stations=args.max_stations,
        )
        logging.info("Selected %d of %d stations", n_out, n_total)
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
        if reader is not None:
            reader.close()
        if bathymetry is not None:
            bathymetry.close()


def main():
    """Standalone entry point for oclfilt."""
    parser = ArgumentParser(
        prog="oclfilt",
        description="Decode, filter and print the stations of an OCL file",
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
