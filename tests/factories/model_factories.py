"""
Randomized model factories - anti-overfitting design.

Every factory call generates randomized non-identity fields
(descriptions, names, suffixes) so tests cannot rely on specific
default values.
"""

import random
import string
from datetime import date, timedelta


def _random_suffix(length: int = 6) -> str:
    """Generate random alphanumeric suffix."""
    return "".join(random.choices(string.ascii_lowercase + string.digits, k=length))


def point_wkt(lon: float, lat: float) -> str:
    return f"POINT ({lon} {lat})"


def box_wkt(min_lon: float, min_lat: float, max_lon: float, max_lat: float) -> str:
    return (
        f"POLYGON (({min_lon} {min_lat}, {max_lon} {min_lat}, {max_lon} {max_lat}, "
        f"{min_lon} {max_lat}, {min_lon} {min_lat}))"
    )


def make_aton_record(id_code: str = None, lon: float = None, lat: float = None,
                     kind: str = "lateral_buoy", **overrides):
    """
    Build an AtonRecord mapping with randomized non-identity fields.

    Position defaults to a random point in the North Sea box
    (0..3 E, 52..55 N).

    Returns:
        dict suitable for AtonRecord(**result) or an event payload
    """
    suffix = _random_suffix()
    lon = lon if lon is not None else round(random.uniform(0.0, 3.0), 5)
    lat = lat if lat is not None else round(random.uniform(52.0, 55.0), 5)

    base = {
        "id_code": id_code or f"AtoN-{suffix}",
        "aton_number": f"N{random.randint(1000, 9999)}",
        "geometry": point_wkt(lon, lat),
        "date_start": None,
        "date_end": None,
        "textual_description": f"test buoy {suffix}",
        "informations": [],
        "payload": {"kind": kind, "object_name": f"Buoy {suffix}", "colours": ["red"]},
        "aggregations": [],
        "associations": [],
    }
    base.update(overrides)
    return base


def make_record(id_code: str = None, **overrides):
    """AtonRecord instance built from make_aton_record."""
    from core.models import AtonRecord
    return AtonRecord(**make_aton_record(id_code=id_code, **overrides))


def make_dataset(geometry: str = None, **overrides):
    """
    Build a Dataset mapping. Geometry defaults to the North Sea box.
    """
    suffix = _random_suffix()
    base = {
        "title": f"Dataset {suffix}",
        "file_identifier": f"S125_{suffix.upper()}.gml",
        "geometry": geometry if geometry is not None else box_wkt(0, 52, 3, 55),
        "cancelled": False,
    }
    base.update(overrides)
    return base


def make_subscription(client_mrn: str = None, **overrides):
    """
    Build a SubscriptionRequest mapping with no geometry filter (whole world).
    """
    suffix = _random_suffix()
    base = {
        "client_mrn": client_mrn or f"urn:mrn:test:vessel:{suffix}",
        "data_product_type": "S125",
        "product_version": "1.0.0",
    }
    base.update(overrides)
    return base


def validity(days_before: int = 30, days_after: int = 30):
    """(date_start, date_end) around today."""
    today = date.today()
    return today - timedelta(days=days_before), today + timedelta(days=days_after)
