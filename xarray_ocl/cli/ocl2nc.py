#!/usr/bin/env python3
"""
Convert OCL station files to NetCDF format.
"""

from __future__ import annotations

import logging
import sys
from argparse import ArgumentParser
from pathlib import Path

import numpy as np

import xarray_ocl as xocl
from xarray_ocl.errors import OCLError
from xarray_ocl.reader import ReadOptions

from . import logger
from .filt import add_filter_args, criteria_from_args


def _add_common_args(parser) -> None:
    """Add arguments shared between the subcommand and standalone entry point."""
    parser.add_argument("files", nargs="+", type=Path, help="OCL files to process")
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        metavar="filename",
        required=True,
        help="Where to store the data",
    )
    parser.add_argument(
        "--headers-only",
        action="store_true",
        help="Only store station headers, not profiles",
    )
    parser.add_argument(
        "--compression",
        type=int,
        default=5,
        metavar="level",
        help="NetCDF compression level 1-9 (default: 5, <=0 to disable)",
    )
    add_filter_args(parser)
    logger.add_args(parser)


def add_args(subparsers) -> None:
    """Register the '2nc' subcommand."""
    parser = subparsers.add_parser(
        "2nc",
        help="Convert OCL files to NetCDF",
        description="Convert OCL station files to NetCDF format",
    )
    _add_common_args(parser)
    parser.set_defaults(func=run)


def _nc_encoding(ds, complevel: int) -> dict | None:
    """Build NetCDF encoding dict with zlib compression, or None if disabled."""
    if complevel <= 0:
        return None
    try:
        import netCDF4  # noqa: F401
    except ImportError:
        logging.info("netCDF4 not available, writing uncompressed")
        return None
    return {
        var: {"zlib": True, "complevel": complevel}
        for var in ds.data_vars
        if np.issubdtype(ds[var].dtype, np.number)
    }


def run(args) -> int:
    """Execute the 2nc / ocl2nc conversion."""
    logger.mk_logger(args)

    for f in args.files:
        if not f.exists():
            logging.error("File not found: %s", f)
            return 1

    if args.bathymetry is not None and len(args.files) > 1:
        logging.error("A bathymetry file can only be used with a single OCL file")
        return 1

    try:
        logging.info("Processing %d file(s)...", len(args.files))
        if len(args.files) == 1:
            options = ReadOptions(
                want_profile=not args.headers_only,
                skip_to=args.skip_to,
                criteria=criteria_from_args(args, args.files[0]),
            )
            ds = xocl.open_ocl_dataset(
                args.files[0],
                options=options,
                bathymetry=args.bathymetry,
                check_bathymetry=args.check_bathymetry,
                strict=args.strict,
            )
        else:
            if args.wmo_square == "auto":
                logging.error("-w auto needs a single input file")
                return 1
            if args.skip_to is not None:
                logging.error("--skip-to needs a single input file")
                return 1
            options = ReadOptions(
                want_profile=not args.headers_only,
                criteria=criteria_from_args(args),
            )
            ds = xocl.open_multi_ocl_dataset(args.files, options=options, strict=args.strict)

        logging.info("Read %d stations, %d variables", ds.sizes.get("station", 0), len(ds.data_vars))
        if args.output.exists():
            logging.info("Overwriting existing file: %s", args.output)
        ds.to_netcdf(str(args.output), encoding=_nc_encoding(ds, args.compression))
        logging.info("Successfully wrote %s", args.output)
        return 0

    except OCLError as e:
        logging.error("Failure decoding station #%s: %s", e.station_index, e)
        logging.debug("Traceback:", exc_info=True)
        return 1
    except (OSError, ValueError, RuntimeError) as e:
        logging.error("Error: %s", e)
        logging.debug("Traceback:", exc_info=True)
        return 1


def main():
    """Standalone entry point for ocl2nc."""
    parser = ArgumentParser(
        description="Convert OCL station files to NetCDF format",
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
