"""
Bottom depth resolution

Up to three candidates compete for a station's bottom depth:

1. the reported depth in the secondary header (code 10),
2. an external bathymetry database value, only inside +/- 72 degrees latitude,
3. the deepest depth of the decoded profile.

The choice is made once from the header (so header-only reads still get a
depth) and revisited after the profile, since a profile reaching deeper than
the chosen bottom proves that choice wrong.
"""

from __future__ import annotations

import math

from .codes import BOTTOM_DEPTH_CODE
from .station import NO_BOTTOM_DEPTH, BottomDepthDecision, DepthSource, Station

# The bathymetry database only covers this latitude band
LATITUDE_LIMIT = 72.0

# Header and database depths further apart than this (m) favour the database
DATABASE_TOLERANCE = 80.0


def database_available(station: Station, database_depth: float | None) -> bool:
    """Is the database value usable for this station?"""
    return (
        database_depth is not None
        and math.isfinite(database_depth)
        and -LATITUDE_LIMIT <= station.lat <= LATITUDE_LIMIT
    )


def resolve_before_profile(
    station: Station, database_depth: float | None = None
) -> BottomDepthDecision:
    """Pick a bottom depth from the header and the database

    A header depth agreeing with the database to within
    ``DATABASE_TOLERANCE`` is kept as the header value.
    """
    decision = NO_BOTTOM_DEPTH
    header_depth = station.header_value(BOTTOM_DEPTH_CODE)
    if header_depth is not None and not math.isnan(header_depth):
        decision = BottomDepthDecision(header_depth, DepthSource.HEADER)

    if database_available(station, database_depth):
        if (
            decision.source is not DepthSource.HEADER
            or abs(decision.value - database_depth) > DATABASE_TOLERANCE
        ):
            decision = BottomDepthDecision(database_depth, DepthSource.DATABASE)

    return decision


def resolve_after_profile(
    station: Station,
    decision: BottomDepthDecision,
    database_depth: float | None = None,
) -> BottomDepthDecision:
    """Revisit the choice once the profile is known

    A bottom shallower than the deepest profile level is wrong.  A wrong
    header depth is replaced by the database value when that reaches below
    the profile, otherwise by the deepest profile depth.
    """
    deepest = station.deepest_depth
    if deepest is None:
        return decision

    if not decision.exists:
        return BottomDepthDecision(deepest, DepthSource.PROFILE)

    if decision.value >= deepest:
        return decision

    if (
        decision.source is DepthSource.HEADER
        and database_available(station, database_depth)
        and database_depth >= deepest
    ):
        return BottomDepthDecision(database_depth, DepthSource.DATABASE)

    return BottomDepthDecision(deepest, DepthSource.PROFILE)
