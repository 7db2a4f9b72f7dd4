"""
Geometry Helpers.

Pure shapely helpers for the only spatial operations the pipeline needs:
parsing, inclusive intersection, and the derived shapes used for
subscriptions (UN/LOCODE ellipse, whole-world fallback).

All geometries are EPSG:4326 longitude/latitude.

Exports:
    parse_geometry: WKT / GeoJSON / shapely -> shapely geometry
    to_wkt: Canonical WKT for storage and serialization
    area_of_interest: Parse a listener polygon, None when it matches nothing
    intersects: Inclusive intersection test tolerant of None
    world_polygon: The whole-world polygon
    ellipse_around: Ellipse of a given diameter in meters around a point
    first_geometry: First non-empty geometry of several candidates
"""

import math
from typing import Any, Optional

import shapely
from shapely import wkt
from shapely.errors import ShapelyError
from shapely.geometry import Polygon, box, shape
from shapely.geometry.base import BaseGeometry


# Length in meters of 1 degree of latitude
METERS_PER_DEGREE_LATITUDE = 111320.0
# Equatorial circumference in meters
EARTH_CIRCUMFERENCE_METERS = 40075000.0
ELLIPSE_POINTS = 64


def parse_geometry(value: Any) -> Optional[BaseGeometry]:
    """
    Parse a geometry from WKT, a GeoJSON mapping or a shapely geometry.

    Returns None for None or a blank string.

    Raises:
        ValueError: the value cannot be parsed as a geometry
    """
    if value is None:
        return None
    if isinstance(value, BaseGeometry):
        return value
    if isinstance(value, str):
        if not value.strip():
            return None
        try:
            return wkt.loads(value)
        except (ShapelyError, ValueError, TypeError) as e:
            raise ValueError(f"Invalid WKT geometry: {e}") from e
    if isinstance(value, dict):
        try:
            return shape(value)
        except (ShapelyError, ValueError, TypeError, KeyError, AttributeError) as e:
            raise ValueError(f"Invalid GeoJSON geometry: {e}") from e
    raise ValueError(f"Unsupported geometry value of type {type(value).__name__}")


def to_wkt(geometry: Optional[BaseGeometry]) -> Optional[str]:
    """Full-precision WKT, None for None."""
    if geometry is None:
        return None
    return shapely.to_wkt(geometry, rounding_precision=-1)


def area_of_interest(value: Any) -> Optional[BaseGeometry]:
    """
    Parse a listener's area of interest.

    Returns None when the polygon is empty, unparseable or invalid.
    None matches nothing.
    """
    try:
        geometry = parse_geometry(value)
    except ValueError:
        return None
    if geometry is None or geometry.is_empty or not geometry.is_valid:
        return None
    if geometry.geom_type not in ("Polygon", "MultiPolygon"):
        return None
    return geometry


def intersects(a: Optional[BaseGeometry], b: Optional[BaseGeometry]) -> bool:
    """
    Inclusive intersection: touching boundaries count.

    None or empty on either side never intersects.
    """
    if a is None or b is None or a.is_empty or b.is_empty:
        return False
    return a.intersects(b)


def world_polygon() -> Polygon:
    return box(-180.0, -90.0, 180.0, 90.0)


def ellipse_around(longitude: float, latitude: float,
                   diameter_meters: float = 1000.0,
                   num_points: int = ELLIPSE_POINTS) -> Polygon:
    """
    Ellipse of the given diameter around a coordinate.

    The longitudinal extent is diameter / 111320 degrees and the latitudinal
    extent is diameter / (40075000 * cos(lat) / 360) degrees.
    """
    width = diameter_meters / METERS_PER_DEGREE_LATITUDE
    cos_lat = math.cos(math.radians(latitude))
    if abs(cos_lat) < 1e-12:
        height = width
    else:
        height = diameter_meters / (EARTH_CIRCUMFERENCE_METERS * cos_lat / 360.0)
    half_w = width / 2.0
    half_h = abs(height) / 2.0

    coords = []
    for i in range(num_points):
        angle = 2.0 * math.pi * i / num_points
        coords.append((longitude + half_w * math.cos(angle),
                       latitude + half_h * math.sin(angle)))
    coords.append(coords[0])
    return Polygon(coords)


def first_geometry(*candidates: Optional[BaseGeometry]) -> Optional[BaseGeometry]:
    """Return the first candidate that is not None and not empty."""
    for candidate in candidates:
        if candidate is not None and not candidate.is_empty:
            return candidate
    return None
