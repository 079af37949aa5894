"""Tests for CLI entry points: logger setup, output formats and exit codes."""

from __future__ import annotations

import logging
import logging.handlers
import subprocess
import sys
from argparse import ArgumentParser, Namespace

import pytest
from conftest import build_station

from xarray_ocl import __version__
from xarray_ocl.cli import filt, latlons, ocl2nc, ssp
from xarray_ocl.cli.filt import format_summary
from xarray_ocl.cli.ssp import NO_SALINITY_NOTE, header_lines


@pytest.fixture(autouse=True)
def _restore_root_logger():
    """run() reconfigures the root logger; put it back for the other tests"""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    logging.captureWarnings(False)


def parse(module, command: str, argv: list[str]) -> Namespace:
    """Parse ``argv`` the way the xocl dispatcher would for ``command``."""
    parser = ArgumentParser(prog="xocl")
    subparsers = parser.add_subparsers(dest="command")
    module.add_args(subparsers)
    return parser.parse_args([command, *argv])


def logger_args(**kwargs) -> Namespace:
    args = dict(
        logfile=None,
        log_bytes=10000000,
        log_count=3,
        debug=False,
        verbose=False,
        mail_to=None,
        mail_from=None,
        mail_subject=None,
        smtp_host="localhost",
    )
    args.update(kwargs)
    return Namespace(**args)


def data_lines(text: str) -> list[str]:
    return [line for line in text.splitlines() if line and not line.startswith("%")]


# =============================================================================
# logger.py
# =============================================================================


class TestMkLogger:
    """Unit tests for xarray_ocl.cli.logger.mk_logger."""

    def test_mk_logger_default(self):
        from xarray_ocl.cli.logger import mk_logger

        lg = mk_logger(logger_args(), name="test_default", log_level="WARNING")
        assert lg.level == logging.WARNING
        assert len(lg.handlers) == 1
        assert isinstance(lg.handlers[0], logging.StreamHandler)

    def test_mk_logger_debug(self):
        from xarray_ocl.cli.logger import mk_logger

        lg = mk_logger(logger_args(debug=True), name="test_debug")
        assert lg.level == logging.DEBUG

    def test_mk_logger_verbose(self):
        from xarray_ocl.cli.logger import mk_logger

        lg = mk_logger(logger_args(verbose=True), name="test_verbose")
        assert lg.level == logging.INFO

    def test_mk_logger_logfile(self, tmp_path):
        from xarray_ocl.cli.logger import mk_logger

        lg = mk_logger(logger_args(logfile=str(tmp_path / "test.log")), name="test_logfile")
        assert len(lg.handlers) == 1
        assert isinstance(lg.handlers[0], logging.handlers.RotatingFileHandler)

    def test_mk_logger_mail(self):
        from xarray_ocl.cli.logger import mk_logger

        lg = mk_logger(logger_args(mail_to=["ops@example.com"]), name="test_mail")
        assert len(lg.handlers) == 2
        mail = lg.handlers[1]
        assert isinstance(mail, logging.handlers.SMTPHandler)
        assert mail.level == logging.ERROR

    def test_mk_logger_replaces_handlers(self):
        from xarray_ocl.cli.logger import mk_logger

        mk_logger(logger_args(), name="test_twice")
        lg = mk_logger(logger_args(), name="test_twice")
        assert len(lg.handlers) == 1


# =============================================================================
# filt
# =============================================================================


class TestFilt:
    def test_query(self, ocl_file, capsys):
        args = parse(filt, "filt", [str(ocl_file), "-q"])
        assert args.func(args) == 0
        out = capsys.readouterr().out
        lines = data_lines(out)
        assert len(lines) == 2
        fields = lines[0].split()
        assert fields[:7] == ["0", "1995", "6", "15", "12.50", "45.2500", "-30.5000"]
        assert fields[8:] == ["3", "120.5", "h", "1,25"]
        assert "% summary:  2 / 2 , " in out

    def test_profile(self, ocl_file, capsys):
        args = parse(filt, "filt", [str(ocl_file)])
        assert args.func(args) == 0
        out = capsys.readouterr().out
        assert "%Station #0, bottom depth  120.50 m (from h),  observed level data" in out
        assert "%Columns: Lat, Lon, Year, Month, Day, Time, Depth, Temp, Pres" in out
        lines = data_lines(out)
        assert len(lines) == 6
        assert lines[0].split() == [
            "45.2500", "-30.5000", "1995", "6", "15", "12.50", "0.00", "15.250", "0.000",
        ]

    def test_no_titles(self, ocl_file, capsys):
        args = parse(filt, "filt", [str(ocl_file), "-t"])
        assert args.func(args) == 0
        out = capsys.readouterr().out
        assert "%" not in out
        assert len(out.splitlines()) == 6

    def test_flagged_levels(self, tmp_path, capsys):
        levels = [(10.0, 0, [(5.0, 0), (1.0, 0)]), (20.0, 0, [(4.0, 3), (2.0, 0)])]
        path = tmp_path / "1106.ocl"
        path.write_text(build_station(levels=levels), encoding="ascii")

        args = parse(filt, "filt", [str(path), "-v", "1"])
        assert args.func(args) == 0
        assert len(data_lines(capsys.readouterr().out)) == 1

        args = parse(filt, "filt", [str(path), "-v", "1", "-r"])
        assert args.func(args) == 0
        lines = data_lines(capsys.readouterr().out)
        assert len(lines) == 2
        assert "4.000 (3)" in lines[1]

    def test_region(self, ocl_file, capsys):
        args = parse(filt, "filt", [str(ocl_file), "-q", "--region=-40/0/-20/0"])
        assert args.func(args) == 0
        out = capsys.readouterr().out
        assert len(data_lines(out)) == 1
        assert "% summary:  1 / 2 , " in out

    def test_end_stats(self, ocl_file, capsys):
        args = parse(filt, "filt", [str(ocl_file), "-e"])
        assert args.func(args) == 0
        out = capsys.readouterr().out
        assert data_lines(out) == []
        assert "% summary:  2 / 2 , " in out

    def test_max_stations(self, ocl_file, capsys):
        args = parse(filt, "filt", [str(ocl_file), "-q", "-n", "1"])
        assert args.func(args) == 0
        out = capsys.readouterr().out
        assert len(data_lines(out)) == 1
        assert "% summary:  1 / 1 , " in out

    def test_full_dump(self, ocl_file, capsys):
        args = parse(filt, "filt", [str(ocl_file), "-f", "-n", "1"])
        assert args.func(args) == 0
        out = capsys.readouterr().out
        assert "oclStationNumber(0)=1" in out
        assert "numberOfLevels(0)=3" in out
        assert "bytesLeftInStation(0)=0" in out

    def test_output_file(self, ocl_file, tmp_path):
        output = tmp_path / "out.txt"
        args = parse(filt, "filt", [str(ocl_file), "-q", "-o", str(output)])
        assert args.func(args) == 0
        assert len(data_lines(output.read_text(encoding="ascii"))) == 2

    def test_wmo_square_auto(self, ocl_file, capsys):
        args = parse(filt, "filt", [str(ocl_file), "-q", "-w", "auto"])
        assert args.func(args) == 0
        assert len(data_lines(capsys.readouterr().out)) == 2

    def test_wmo_square_auto_without_square(self, tmp_path, ocl_bytes):
        path = tmp_path / "stations.dat"
        path.write_bytes(ocl_bytes)
        args = parse(filt, "filt", [str(path), "-w", "auto"])
        assert args.func(args) == 1

    def test_fatal_station(self, tmp_path, capsys):
        path = tmp_path / "1106.ocl"
        path.write_text(build_station() + build_station()[:20], encoding="ascii")
        args = parse(filt, "filt", [str(path), "-q"])
        assert args.func(args) == 1
        assert "Failure decoding station #1" in capsys.readouterr().err

    def test_missing_file(self, tmp_path):
        args = parse(filt, "filt", [str(tmp_path / "nope.ocl")])
        assert args.func(args) == 1

    def test_bad_region(self, capsys):
        with pytest.raises(SystemExit):
            parse(filt, "filt", ["-l", "1/2/3"])

    def test_bathymetry(self, ocl_file, tmp_path, capsys):
        bathy = tmp_path / "bathy.txt"
        bathy.write_text("-30.5 45.25 0 -3000\n-30.5 -10.5 1 -4000\n", encoding="ascii")
        args = parse(filt, "filt", [str(ocl_file), "-q", "-d", str(bathy), "--check-bathymetry"])
        assert args.func(args) == 0
        lines = data_lines(capsys.readouterr().out)
        assert lines[0].split()[9:11] == ["3000.0", "d"]
        assert lines[1].split()[9:11] == ["4000.0", "d"]

    def test_summary_format(self):
        assert format_summary(1, 3, 100, 300)[1] == "% summary:  1 / 3 , 100 / 300"


# =============================================================================
# latlons
# =============================================================================


class TestLatLons:
    def test_positions(self, ocl_file, capsys):
        args = parse(latlons, "latlons", [str(ocl_file)])
        assert args.func(args) == 0
        assert capsys.readouterr().out.splitlines() == [
            "-30.500000  45.250000 0",
            "-30.500000  -10.500000 1",
        ]

    def test_bad_position(self, tmp_path, capsys):
        path = tmp_path / "1106.ocl"
        path.write_text(build_station(lat=0.0), encoding="ascii")
        args = parse(latlons, "latlons", [str(path), "--bad-position", "1,2"])
        assert args.func(args) == 0
        assert capsys.readouterr().out.split() == ["1.000000", "2.000000", "0"]


# =============================================================================
# ssp
# =============================================================================


class TestSsp:
    def test_without_salinity(self, tmp_path, capsys):
        path = tmp_path / "1106.ocl"
        text = build_station(columns=((1, 0),), levels=[(10.0, 0, [(10.0, 0)])])
        path.write_text(text, encoding="ascii")
        args = parse(ssp, "ssp", [str(path)])
        assert args.func(args) == 0
        out = capsys.readouterr().out
        assert NO_SALINITY_NOTE in out
        (line,) = data_lines(out)
        fields = line.split()
        assert fields[6:9] == ["10.000", "10.000", "35.000"]
        assert 1480.0 < float(fields[9]) < 1500.0

    def test_compare_and_bin(self, tmp_path, capsys):
        path = tmp_path / "1106.ocl"
        levels = [
            (0.0, 0, [(10.0, 0), (35.0, 0)]),
            (5.0, 0, [(10.0, 0), (35.0, 0)]),
            (15.0, 0, [(9.0, 0), (34.0, 0)]),
        ]
        path.write_text(build_station(columns=((1, 0), (2, 0)), levels=levels), encoding="ascii")
        args = parse(ssp, "ssp", [str(path), "-c", "35", "-D", "10"])
        assert args.func(args) == 0
        lines = data_lines(capsys.readouterr().out)
        assert len(lines) == 2
        first = lines[0].split()
        assert first[6] == "0.000"
        assert first[-3:] == ["0.000", "0.000", "2"]

    def test_no_temperature_skipped(self, tmp_path, capsys):
        path = tmp_path / "1106.ocl"
        path.write_text(
            build_station(columns=((2, 0),), levels=[(10.0, 0, [(35.0, 0)])]), encoding="ascii"
        )
        args = parse(ssp, "ssp", [str(path), "-t"])
        assert args.func(args) == 0
        assert capsys.readouterr().out == ""

    def test_bad_bin_size(self, ocl_file):
        args = parse(ssp, "ssp", [str(ocl_file), "-D", "0"])
        assert args.func(args) == 1

    def test_header_widths(self):
        plain = header_lines(None, False, False)
        binned = header_lines("run 1", True, True)
        assert len(plain) == 3
        assert binned[0] == "% run 1"
        assert len(binned[-1]) == len(plain[-1]) + 29 + 10


# =============================================================================
# 2nc
# =============================================================================


class TestOcl2nc:
    def test_convert(self, ocl_file, tmp_path):
        pytest.importorskip("netCDF4")
        import xarray as xr

        output = tmp_path / "out.nc"
        args = parse(ocl2nc, "2nc", [str(ocl_file), "-o", str(output)])
        assert args.func(args) == 0
        with xr.open_dataset(output) as ds:
            assert ds.sizes["station"] == 2
            assert "Temp" in ds

    def test_multi_rejects_skip_to(self, ocl_file, ocl_gz_file, tmp_path):
        output = tmp_path / "out.nc"
        args = parse(
            ocl2nc, "2nc", [str(ocl_file), str(ocl_gz_file), "-o", str(output), "-s", "1"]
        )
        assert args.func(args) == 1
        assert not output.exists()

    def test_multi_rejects_bathymetry(self, ocl_file, ocl_gz_file, tmp_path):
        bathy = tmp_path / "bathy.txt"
        bathy.write_text("", encoding="ascii")
        output = tmp_path / "out.nc"
        args = parse(
            ocl2nc, "2nc", [str(ocl_file), str(ocl_gz_file), "-o", str(output), "-d", str(bathy)]
        )
        assert args.func(args) == 1


# =============================================================================
# Entry points
# =============================================================================


def test_xocl_version():
    result = subprocess.run(
        [sys.executable, "-m", "xarray_ocl.cli.main", "-V"],
        capture_output=True,
        text=True,
        check=True,
    )
    assert __version__ in result.stdout


def test_xocl_requires_command():
    result = subprocess.run(
        [sys.executable, "-m", "xarray_ocl.cli.main"],
        capture_output=True,
        text=True,
    )
    assert result.returncode != 0
