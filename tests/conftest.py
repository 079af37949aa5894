"""Shared fixtures and a synthetic OCL station encoder for xarray-ocl tests."""

from __future__ import annotations

import gzip
from pathlib import Path

import pytest

MISSING = None
EMPTY = "empty"  # float field written with zero digits


def encode_digits(value: int, width: int) -> str:
    return f"{value:0{width}d}"


def encode_varlen_int(value: int | None) -> str:
    """Length digit followed by the digits; None encodes the missing sentinel"""
    if value is None:
        return "0"
    text = str(value)
    assert len(text) <= 9
    return f"{len(text)}{text}"


def encode_varlen_float(value: float | str | None, precision: int = 2) -> str:
    """Significant digits, total digits and precision, then the mantissa"""
    if value is None:
        return "-"
    if value == EMPTY:
        return "100"
    mantissa = str(int(round(value * 10**precision)))
    significant = max(1, len(mantissa.lstrip("-")))
    assert len(mantissa) <= 9
    return f"{significant}{len(mantissa)}{precision}{mantissa}"


def _with_length(body: str, length_adjust: int = 0) -> str:
    """Prefix ``body`` with the record length field, which counts itself"""
    for n_digits in range(1, 10):
        total = len(body) + 1 + n_digits
        if len(str(total)) == n_digits:
            declared = total + length_adjust
            assert len(str(declared)) == n_digits
            return encode_varlen_int(declared) + body
    raise ValueError("Station too long")


def build_station(
    station_id: int = 1,
    country: int = 31,
    cruise: int = 1234,
    year: int = 1995,
    month: int = 6,
    day: int = 15,
    time: float | None = 12.5,
    lat: float | None = 45.25,
    lon: float | None = -30.5,
    kind: int = 0,
    columns=((1, 0), (25, 0)),
    char_data: str = "",
    secondary=((10, 120.5),),
    bio_data: str = "",
    levels=None,
    n_levels: int | None = None,
    trailer: str = "",
    length_adjust: int = 0,
    wrap: int | None = None,
) -> str:
    """Encode one OCL station

    Args:
        columns: (code, error flag) per variable
        secondary: (code, value) secondary header entries, None for none at all
        levels: (depth, depth flag, [(value, flag), ...]) per level; depth is
            ignored for standard level stations and None values are missing
        trailer: Significant bytes appended after the profile (counted)
        length_adjust: Added to the declared station length
        wrap: Insert a newline every ``wrap`` characters
    """
    if levels is None:
        levels = [
            (0.0, 0, [(15.25, 0), (0.0, 0)]),
            (50.0, 0, [(12.5, 0), (50.5, 0)]),
            (100.0, 0, [(8.75, 0), (101.0, 0)]),
        ]
    if n_levels is None:
        n_levels = len(levels)

    parts = [
        encode_varlen_int(station_id),
        encode_digits(country, 2),
        encode_varlen_int(cruise),
        encode_digits(year, 4),
        encode_digits(month, 2),
        encode_digits(day, 2),
        encode_varlen_float(time, 2),
        encode_varlen_float(lat, 3),
        encode_varlen_float(lon, 3),
        encode_varlen_int(n_levels),
        str(kind),
        encode_digits(len(columns), 2),
    ]
    for code, flag in columns:
        parts.append(encode_varlen_int(code) + str(flag))

    parts.append(encode_varlen_int(len(char_data) if char_data else None) + char_data)

    if secondary is None:
        parts.append(encode_varlen_int(None))
    else:
        entries = encode_varlen_int(len(secondary)) + "".join(
            encode_varlen_int(code) + encode_varlen_float(value, 1) for code, value in secondary
        )
        parts.append(encode_varlen_int(len(entries)) + entries)

    parts.append(encode_varlen_int(len(bio_data) if bio_data else None) + bio_data)

    for depth, depth_flag, values in levels:
        if kind == 0:
            parts.append(encode_varlen_float(depth, 1))
            if depth is not None:
                parts.append(str(depth_flag))
        for value, flag in values:
            parts.append(encode_varlen_float(value, 3))
            if value is not None:
                parts.append(str(flag))

    parts.append(trailer)
    record = _with_length("".join(parts), length_adjust)
    if wrap:
        record = "\n".join(record[i:i + wrap] for i in range(0, len(record), wrap))
    return record + "\n"


def declared_length(record: str) -> int:
    """Station length declared at the start of an encoded record"""
    n = int(record[0])
    return int(record[1:1 + n])


@pytest.fixture()
def ocl_bytes() -> bytes:
    """Two well formed stations"""
    return (build_station(station_id=1) + build_station(station_id=2, lat=-10.5)).encode("ascii")


@pytest.fixture()
def ocl_file(tmp_path, ocl_bytes) -> Path:
    path = tmp_path / "1106.ocl"
    path.write_bytes(ocl_bytes)
    return path


@pytest.fixture()
def ocl_gz_file(tmp_path, ocl_bytes) -> Path:
    path = tmp_path / "nbds1106.gz"
    with gzip.open(path, "wb") as f:
        f.write(ocl_bytes)
    return path
