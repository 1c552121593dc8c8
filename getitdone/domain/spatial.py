"""
Spatial binning with H3 hexagons.

Runners and errand pickups are stored with the H3 cell they fall in.  A
"within R km" lookup first selects every cell in a disk that covers the
radius (an indexed ``IN`` query), then the caller applies the exact
Haversine check from :mod:`getitdone.domain.geolocation`.

Complexity
----------
* ``cell_for``:            O(1)
* ``cells_within_radius``: O(k²) cells, k = rings needed to cover R
"""

from __future__ import annotations

import math

import h3


def cell_for(lng: float, lat: float, resolution: int = 7) -> str:
    """Map a geo-point to an H3 hexagonal cell index.  O(1)."""
    return h3.latlng_to_cell(lat, lng, resolution)


def rings_for_radius(radius_km: float, resolution: int = 7) -> int:
    """
    Number of k-rings whose union covers every point within *radius_km*
    of any point in the centre cell.

    Adjacent cell centres are ``edge * sqrt(3)`` apart; one extra ring
    absorbs the offset between the query point and its cell centre.
    """
    edge_km = h3.average_hexagon_edge_length(resolution, unit="km")
    return math.ceil(radius_km / (edge_km * math.sqrt(3))) + 1


def cells_within_radius(
    lng: float, lat: float, radius_km: float, resolution: int = 7
) -> list[str]:
    origin = cell_for(lng, lat, resolution)
    return list(h3.grid_disk(origin, rings_for_radius(radius_km, resolution)))
