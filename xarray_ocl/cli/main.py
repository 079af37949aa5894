#!/usr/bin/env python3
"""
Unified CLI for xarray-ocl: xocl

Subcommands:
    filt    - Filter OCL stations and print them as ASCII columns
    latlons - List station positions for building a bathymetry file
    2nc     - Convert OCL files to NetCDF
    ssp     - Compute sound speed profiles
"""

import sys
from argparse import ArgumentParser

import xarray_ocl as xocl
from xarray_ocl.cli import filt, latlons, ocl2nc, ssp


def main():
    parser = ArgumentParser(
        prog="xocl",
        description="xarray-ocl command-line tools for NODC OCL station files",
    )
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"%(prog)s {xocl.__version__}",
    )

    subparsers = parser.add_subparsers(dest="command")
    subparsers.required = True

    filt.add_args(subparsers)
    latlons.add_args(subparsers)
    ocl2nc.add_args(subparsers)
    ssp.add_args(subparsers)

    args = parser.parse_args()
    sys.exit(args.func(args))


if __name__ == "__main__":
    main()
