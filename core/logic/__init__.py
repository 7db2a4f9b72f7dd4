"""
Core Business Logic Package.

Pure functions that operate on the core models. No I/O, no locking.

Exports:
    Geometry: parse_geometry, to_wkt, area_of_interest, intersects,
              world_polygon, ellipse_around, first_geometry
    Matching: record_matches_dataset, subscription_matches
    Delta: compute_delta
    Groupings: diff_groupings, detach_peer, GroupingDiff
"""

from .geometry import (
    parse_geometry,
    to_wkt,
    area_of_interest,
    intersects,
    world_polygon,
    ellipse_around,
    first_geometry,
)

from .matching import (
    record_matches_dataset,
    subscription_matches,
)

from .delta import compute_delta

from .groupings import (
    GroupingDiff,
    diff_groupings,
    detach_peer,
)

__all__ = [
    'parse_geometry',
    'to_wkt',
    'area_of_interest',
    'intersects',
    'world_polygon',
    'ellipse_around',
    'first_geometry',
    'record_matches_dataset',
    'subscription_matches',
    'compute_delta',
    'GroupingDiff',
    'diff_groupings',
    'detach_peer',
]
