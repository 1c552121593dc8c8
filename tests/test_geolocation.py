"""Unit tests for Haversine distance, ETA, radius checks and H3 binning."""

import pytest

from getitdone.domain.errors import InvalidInput
from getitdone.domain.geolocation import (
    compute_distance,
    compute_eta,
    haversine_km,
    is_within_radius,
)
from getitdone.domain.spatial import cell_for, cells_within_radius, rings_for_radius

LAGOS = [3.3792, 6.5244]
IKEJA = [3.3515, 6.6018]
LEKKI = [3.4739, 6.4474]
ABUJA = [7.4951, 9.0579]


class TestHaversine:
    def test_same_point_is_zero(self):
        assert compute_distance(LAGOS, LAGOS) == 0.0

    def test_known_distance(self):
        # Lagos -> Abuja is roughly 530 km as the crow flies
        assert 500 < compute_distance(LAGOS, ABUJA) < 560

    def test_symmetric(self):
        assert compute_distance(LAGOS, IKEJA) == pytest.approx(compute_distance(IKEJA, LAGOS))

    @pytest.mark.parametrize(
        "a,b,c",
        [(LAGOS, IKEJA, LEKKI), (IKEJA, LEKKI, ABUJA), (LAGOS, ABUJA, LEKKI)],
    )
    def test_triangle_inequality(self, a, b, c):
        assert compute_distance(a, c) <= compute_distance(a, b) + compute_distance(b, c) + 1e-9

    def test_argument_order_is_lat_lng(self):
        assert haversine_km(6.5244, 3.3792, 6.5244, 3.3892) == pytest.approx(
            compute_distance([3.3792, 6.5244], [3.3892, 6.5244])
        )

    def test_antipodal_points_do_not_blow_up(self):
        d = compute_distance([0.0, 0.0], [180.0, 0.0])
        assert d == pytest.approx(3.141592653589793 * 6371.0, rel=1e-6)


class TestEta:
    def test_rounds_up(self):
        assert compute_eta(1.0) == 2
        assert compute_eta(1.01) == 3

    def test_custom_speed(self):
        assert compute_eta(10.0, speed_kmh=60.0) == 10

    def test_zero_distance(self):
        assert compute_eta(0.0) == 0

    def test_rejects_negative_distance(self):
        with pytest.raises(InvalidInput):
            compute_eta(-1.0)

    def test_rejects_zero_speed(self):
        with pytest.raises(InvalidInput):
            compute_eta(1.0, speed_kmh=0)


class TestRadius:
    def test_inside(self):
        assert is_within_radius(LAGOS, [3.3892, 6.5244], 5.0)

    def test_outside(self):
        assert not is_within_radius(LAGOS, ABUJA, 5.0)

    def test_boundary_is_inclusive(self):
        d = compute_distance(LAGOS, IKEJA)
        assert is_within_radius(LAGOS, IKEJA, d)


class TestH3Binning:
    def test_cell_is_deterministic(self):
        assert cell_for(*LAGOS, 7) == cell_for(*LAGOS, 7)

    def test_nearby_point_cell_is_in_disk(self):
        cells = set(cells_within_radius(*LAGOS, radius_km=5.0, resolution=7))
        assert cell_for(3.3892, 6.5244, 7) in cells
        assert cell_for(*LAGOS, 7) in cells

    def test_far_point_cell_not_in_disk(self):
        cells = set(cells_within_radius(*LAGOS, radius_km=5.0, resolution=7))
        assert cell_for(*ABUJA, 7) not in cells

    def test_larger_radius_needs_more_rings(self):
        assert rings_for_radius(20.0, 7) > rings_for_radius(2.0, 7)

    @pytest.mark.parametrize("offset", [0.02, 0.03, 0.04])
    def test_disk_covers_points_within_radius(self, offset):
        point = [LAGOS[0] + offset, LAGOS[1]]
        radius = compute_distance(LAGOS, point)
        cells = set(cells_within_radius(*LAGOS, radius_km=radius, resolution=7))
        assert cell_for(*point, 7) in cells
