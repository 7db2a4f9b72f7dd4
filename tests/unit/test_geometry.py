"""
Geometry and matching rule tests.
"""

from datetime import date, datetime, timezone

import pytest
from shapely.geometry import Point, box

from core.logic import (
    area_of_interest,
    ellipse_around,
    first_geometry,
    intersects,
    parse_geometry,
    record_matches_dataset,
    subscription_matches,
    world_polygon,
)
from core.models import AtonRecord, Dataset, SubscriptionRequest
from tests.factories.model_factories import box_wkt, make_aton_record, make_dataset


class TestIntersects:

    def test_boundary_is_inclusive(self):
        assert intersects(Point(1, 1), box(0, 0, 1, 1))

    def test_corner_touch_is_inclusive(self):
        assert intersects(box(0, 0, 1, 1), box(1, 1, 2, 2))

    def test_disjoint(self):
        assert not intersects(Point(5, 5), box(0, 0, 1, 1))

    def test_none_never_intersects(self):
        assert not intersects(None, box(0, 0, 1, 1))
        assert not intersects(Point(0, 0), None)

    def test_empty_never_intersects(self):
        assert not intersects(parse_geometry("POLYGON EMPTY"), world_polygon())


class TestAreaOfInterest:

    def test_polygon_accepted(self):
        assert area_of_interest(box_wkt(0, 0, 1, 1)) is not None

    @pytest.mark.parametrize("value", ["POLYGON EMPTY", "", None, "not a polygon", "POINT (1 1)"])
    def test_unusable_area_matches_nothing(self, value):
        assert area_of_interest(value) is None

    def test_self_intersecting_polygon_rejected(self):
        bowtie = "POLYGON ((0 0, 1 1, 1 0, 0 1, 0 0))"
        assert area_of_interest(bowtie) is None


class TestEllipse:

    def test_width_and_height_at_equator(self):
        ellipse = ellipse_around(0.0, 0.0, 1000.0)
        min_x, min_y, max_x, max_y = ellipse.bounds
        assert max_x - min_x == pytest.approx(1000.0 / 111320.0)
        assert max_y - min_y == pytest.approx(1000.0 / (40075000.0 / 360.0))

    def test_height_grows_with_latitude(self):
        ellipse = ellipse_around(0.0, 60.0, 1000.0)
        _, min_y, _, max_y = ellipse.bounds
        assert max_y - min_y == pytest.approx(1000.0 / (40075000.0 * 0.5 / 360.0), rel=1e-6)

    def test_point_count(self):
        assert len(ellipse_around(1.0, 50.0).exterior.coords) == 65

    def test_contains_centre(self):
        assert ellipse_around(-0.33, 53.74).contains(Point(-0.33, 53.74))


class TestFirstGeometry:

    def test_skips_none_and_empty(self):
        target = Point(1, 2)
        assert first_geometry(None, parse_geometry("POLYGON EMPTY"), target) is target

    def test_all_missing(self):
        assert first_geometry(None, None) is None


class TestRecordMatchesDataset:

    def test_inside_and_valid(self):
        record = AtonRecord(**make_aton_record(lon=1.0, lat=53.0))
        dataset = Dataset(**make_dataset())
        assert record_matches_dataset(record, dataset, datetime.now(timezone.utc))

    def test_on_dataset_boundary(self):
        record = AtonRecord(**make_aton_record(lon=3.0, lat=55.0))
        dataset = Dataset(**make_dataset(geometry=box_wkt(0, 52, 3, 55)))
        assert record_matches_dataset(record, dataset, datetime.now(timezone.utc))

    def test_expired_record_does_not_match(self):
        record = AtonRecord(**make_aton_record(
            lon=1.0, lat=53.0, date_start=date(2020, 1, 1), date_end=date(2020, 12, 31)
        ))
        dataset = Dataset(**make_dataset())
        assert not record_matches_dataset(record, dataset, datetime(2021, 1, 1, tzinfo=timezone.utc))

    def test_dataset_without_geometry_covers_world(self):
        record = AtonRecord(**make_aton_record(lon=-120.0, lat=-40.0))
        dataset = Dataset(**make_dataset(geometry=None))
        assert record_matches_dataset(record, dataset, datetime.now(timezone.utc))


class TestSubscriptionMatches:

    def _subscription(self, **overrides):
        data = {
            "client_mrn": "urn:mrn:test:ship",
            "subscription_geometry": box_wkt(0, 52, 3, 55),
        }
        data.update(overrides)
        return SubscriptionRequest(**data)

    def test_geometry_and_window_overlap(self):
        sub = self._subscription(
            subscription_period_start=datetime(2024, 1, 1, tzinfo=timezone.utc),
            subscription_period_end=datetime(2024, 12, 31, tzinfo=timezone.utc),
        )
        assert subscription_matches(
            sub, Point(1, 53),
            datetime(2024, 6, 1, tzinfo=timezone.utc), datetime(2025, 6, 1, tzinfo=timezone.utc)
        )

    def test_window_before_subscription(self):
        sub = self._subscription(subscription_period_start=datetime(2024, 1, 1, tzinfo=timezone.utc))
        assert not subscription_matches(
            sub, Point(1, 53), None, datetime(2023, 12, 31, tzinfo=timezone.utc)
        )

    def test_outside_geometry(self):
        assert not subscription_matches(self._subscription(), Point(20, 20), None, None)

    def test_none_geometry_unconstrained(self):
        assert subscription_matches(self._subscription(), None, None, None)

    def test_naive_period_treated_as_utc(self):
        sub = self._subscription(subscription_period_end=datetime(2024, 1, 1))
        assert sub.subscription_period_end.tzinfo is not None
