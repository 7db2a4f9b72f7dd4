"""
Matching Rules.

Pure predicates deciding which datasets a record belongs to and which
subscriptions a change concerns.

Exports:
    record_matches_dataset: Geometry intersects AND validity covers as_of
    subscription_matches: Geometry intersects AND window overlaps
"""

from datetime import datetime
from typing import Optional

from shapely.geometry.base import BaseGeometry

from .geometry import intersects


def record_matches_dataset(record, dataset, as_of: datetime) -> bool:
    """
    A dataset matches a record when the record's geometry intersects the
    dataset's bounding geometry (boundary inclusive) and
    date_start <= as_of <= date_end (open bounds always valid).
    """
    if not intersects(record.shape, dataset.shape):
        return False
    return record.is_valid_at(as_of)


def subscription_matches(subscription, geometry: Optional[BaseGeometry],
                         from_time: Optional[datetime],
                         to_time: Optional[datetime]) -> bool:
    """
    A subscription matches when its derived geometry intersects ``geometry``
    and its window overlaps [from_time, to_time].

    A None geometry or time bound is unconstrained.
    """
    if geometry is not None and not intersects(subscription.subscription_shape, geometry):
        return False
    return subscription.overlaps(from_time, to_time)
