"""
Variable and secondary header codes used in OCL files
"""

from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)

# Secondary header code carrying the reported bottom depth
BOTTOM_DEPTH_CODE = 10

TEMPERATURE = 1
SALINITY = 2
PRESSURE = 25

# code: (label, units)
VARIABLES = {
    1: ("Temp", "deg C"),
    2: ("Sal", "ppt"),
    3: ("Oxy", "ml/l"),
    4: ("Phos", "micromolar"),
    6: ("Silic", "micromolar"),
    7: ("Nitri", "micromolar"),
    8: ("Nitra", "micromolar"),
    9: ("pH", "unitless"),
    11: ("Chlor", "ug/l"),
    17: ("Alka", "meq/l"),
    25: ("Pres", "dbars"),
}


def var_label(code: int) -> str:
    """Short column label for a variable code"""
    if code in VARIABLES:
        return VARIABLES[code][0]
    logger.debug("No label for variable code %s", code)
    return f"Var{code}"


def var_units(code: int) -> str:
    if code in VARIABLES:
        return VARIABLES[code][1]
    return ""


def parse_code_list(text: str) -> list[int]:
    """Parse a comma separated list of variable codes, e.g. ``1,2,25``"""
    codes = []
    for part in text.replace(",", " ").split():
        try:
            codes.append(int(part))
        except ValueError:
            raise ValueError(f"Invalid variable code {part!r} in {text!r}") from None
    if not codes:
        raise ValueError(f"No variable codes in {text!r}")
    return codes


def read_code_list(filename: Path) -> list[int]:
    """Read variable codes from a file (comma/space separated, # comments)"""
    codes = []
    with open(filename, encoding="utf-8") as f:
        for line in f:
            line = line.split("#")[0].strip()
            if not line:
                continue
            codes.extend(parse_code_list(line))
    return codes
