#
# latlons subcommand
#
# Writes "lon  lat index" for every station of an OCL file, the input
# grdtrack needs to build the bathymetry file used by filt -d.
#

from __future__ import annotations

import logging
import sys
from argparse import ArgumentParser, ArgumentTypeError
from pathlib import Path

import xarray_ocl as xocl
from xarray_ocl.bathymetry import DEFAULT_BAD_POSITION, write_station_positions
from xarray_ocl.errors import OCLError
from xarray_ocl.filters import wmo_square_from_filename
from xarray_ocl.reader import OCLReader, ReadOptions

from . import logger


def _position(text: str) -> tuple[float, float]:
    try:
        lon, lat = (float(x) for x in text.split(","))
    except ValueError:
        raise ArgumentTypeError(f"expected lon,lat, got {text!r}") from None
    return lon, lat


def _add_common_args(parser) -> None:
    """Add arguments shared between the subcommand and standalone entry point."""
    parser.add_argument(
        "input",
        nargs="?",
        type=Path,
        help="OCL file, plain, .gz or .lz4 (default: stdin)",
    )
    parser.add_argument(
        "-w",
        "--wmo-square",
        type=str,
        metavar="square",
        help="WMO square of the file (default: taken from the filename)",
    )
    parser.add_argument(
        "--bad-position",
        type=_position,
        default=DEFAULT_BAD_POSITION,
        metavar="lon,lat",
        help="Stand-in position for stations that can not be looked up",
    )
    parser.add_argument(
        "-o", "--output", type=Path, metavar="filename", help="Output file (default: stdout)"
    )
    logger.add_args(parser)


def add_args(subparsers) -> None:
    """Register the 'latlons' subcommand."""
    parser = subparsers.add_parser(
        "latlons",
        help="List station positions for building a bathymetry file",
        description="Write lon, lat and station index for every station of an OCL file",
    )
    _add_common_args(parser)
    parser.set_defaults(func=run)


def run(args) -> int:
    """Execute the latlons subcommand."""
    logger.mk_logger(args)

    if args.input is not None and not args.input.exists():
        logging.error("File not found: %s", args.input)
        return 1

    wmo_square = args.wmo_square
    if wmo_square is None and args.input is not None:
        wmo_square = wmo_square_from_filename(args.input)
    if wmo_square is None:
        logging.warning("No WMO square given, zero lat/lon values are not checked")

    source = args.input if args.input is not None else sys.stdin.buffer
    fp_out = None
    try:
        with OCLReader(source, options=ReadOptions(want_profile=False)) as reader:
            fp_out = open(args.output, "w", encoding="ascii") if args.output else sys.stdout
            n = write_station_positions(
                fp_out, reader.stations(), wmo_square, tuple(args.bad_position)
            )
        logging.info("Wrote %d station positions", n)
        return 0
    except OCLError as e:
        logging.error("Failure decoding station #%s: %s", e.station_index, e)
        logging.debug("Traceback:", exc_info=True)
        return 1
    except OSError as e:
        logging.error("Error: %s", e)
        logging.debug("Traceback:", exc_info=True)
        return 1
    finally:
        if fp_out is not None and args.output:
            fp_out.close()


def main():
    """Standalone entry point."""
    parser = ArgumentParser(
        description="Write lon, lat and station index for every station of an OCL file",
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
