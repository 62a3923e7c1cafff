"""
Unit tests for the proximity monitor.

Tests curb distances, pairwise distances and the panel labels.
"""

import unittest
import math

import numpy as np

from pystreetsim.simulation.kinematics import GroundPoint
from pystreetsim.simulation.proximity import (
    CurbPolicy, RoadGeometry, VehiclePosition, StaticVehicle,
    VehicleDistance, ProximityReport, ProximityMonitor
)
from pystreetsim.core.exceptions import InvalidConfigValueError


def default_scene():
    return [
        StaticVehicle("red_car", GroundPoint(3.0, -8.0), "red"),
        StaticVehicle("yellow_car", GroundPoint(3.0, 8.0), "yellow"),
        VehiclePosition("player", GroundPoint(0.0, 0.0), "blue"),
    ]


class TestRoadGeometry(unittest.TestCase):
    """Test road geometry validation."""

    def test_defaults(self):
        """Test default road layout."""
        road = RoadGeometry()

        self.assertEqual(road.road_width, 8.0)
        self.assertEqual(road.left_curb_x, -4.25)
        self.assertEqual(road.right_curb_x, 4.25)

    def test_invalid_geometry(self):
        """Test rejected road layouts."""
        with self.assertRaises(InvalidConfigValueError):
            RoadGeometry(road_width=0.0)
        with self.assertRaises(InvalidConfigValueError):
            RoadGeometry(left_curb_x=5.0, right_curb_x=4.25)


class TestCurbDistance(unittest.TestCase):
    """Test distance to the road boundary."""

    def test_right_curb_policy(self):
        """Parked cars at x=3 sit 1.25m from the right curb."""
        monitor = ProximityMonitor(RoadGeometry())
        red, yellow, player = default_scene()

        self.assertAlmostEqual(monitor.distance_to_curb(red), 1.25)
        self.assertAlmostEqual(monitor.distance_to_curb(yellow), 1.25)
        self.assertAlmostEqual(monitor.distance_to_curb(player), 4.25)

    def test_right_curb_ignores_left_side(self):
        """The default policy measures against the right curb even near the left one."""
        monitor = ProximityMonitor(RoadGeometry())
        vehicle = VehiclePosition("v", GroundPoint(-3.0, 0.0), "green")

        self.assertAlmostEqual(monitor.distance_to_curb(vehicle), 7.25)

    def test_nearest_curb_policy(self):
        """The nearest policy picks the closer curb."""
        monitor = ProximityMonitor(RoadGeometry(), CurbPolicy.NEAREST)

        left = VehiclePosition("left", GroundPoint(-3.0, 0.0), "green")
        right = VehiclePosition("right", GroundPoint(3.0, 0.0), "green")
        self.assertAlmostEqual(monitor.distance_to_curb(left), 1.25)
        self.assertAlmostEqual(monitor.distance_to_curb(right), 1.25)

    def test_curb_distance_is_non_negative(self):
        """A vehicle beyond the curb still gets a non-negative distance."""
        monitor = ProximityMonitor(RoadGeometry())
        vehicle = VehiclePosition("v", GroundPoint(6.0, 0.0), "green")

        self.assertAlmostEqual(monitor.distance_to_curb(vehicle), 1.75)


class TestPairwiseDistances(unittest.TestCase):
    """Test vehicle to vehicle distances."""

    def setUp(self):
        """Set up test fixtures."""
        self.monitor = ProximityMonitor(RoadGeometry())
        self.vehicles = default_scene()

    def test_excludes_self(self):
        """Each vehicle gets one entry per other vehicle, in input order."""
        for vehicle in self.vehicles:
            distances = self.monitor.pairwise_distances(vehicle, self.vehicles)
            ids = [entry.vehicle_id for entry in distances]

            self.assertEqual(len(distances), len(self.vehicles) - 1)
            self.assertNotIn(vehicle.vehicle_id, ids)
            self.assertEqual(ids, [v.vehicle_id for v in self.vehicles if v is not vehicle])

    def test_known_distances(self):
        """Test distances in the default scene."""
        red, yellow, player = self.vehicles
        distances = {entry.vehicle_id: entry.distance
                     for entry in self.monitor.pairwise_distances(player, self.vehicles)}

        self.assertAlmostEqual(distances["red_car"], math.hypot(3.0, 8.0))
        self.assertAlmostEqual(distances["yellow_car"], math.hypot(3.0, 8.0))

        red_report = self.monitor.report(red, self.vehicles)
        self.assertAlmostEqual(red_report.distance_to("yellow_car"), 16.0)

    def test_symmetry(self):
        """d(A, B) == d(B, A) for every pair."""
        vehicles = self.vehicles + [VehiclePosition("other", GroundPoint(-1.7, 2.3), "green")]
        for a in vehicles:
            for b in vehicles:
                if a is b:
                    continue
                d_ab = self.monitor.report(a, vehicles).distance_to(b.vehicle_id)
                d_ba = self.monitor.report(b, vehicles).distance_to(a.vehicle_id)
                self.assertAlmostEqual(d_ab, d_ba)

    def test_repeated_colors(self):
        """Two vehicles with the same color are still told apart by id."""
        vehicles = [
            VehiclePosition("a", GroundPoint(0.0, 0.0), "red"),
            VehiclePosition("b", GroundPoint(0.0, 5.0), "red"),
        ]
        reports = self.monitor.build_reports(vehicles)

        self.assertEqual(len(reports[0].distances), 1)
        self.assertEqual(reports[0].distances[0].vehicle_id, "b")
        self.assertAlmostEqual(reports[0].distances[0].distance, 5.0)

    def test_single_vehicle(self):
        """A lone vehicle has no pairwise entries."""
        player = VehiclePosition("player", GroundPoint(1.0, 1.0), "blue")

        self.assertEqual(self.monitor.pairwise_distances(player, [player]), [])
        reports = self.monitor.build_reports([player])
        self.assertEqual(reports[0].distances, ())
        self.assertIsNone(reports[0].nearest())

    def test_empty_world(self):
        """No vehicles, no reports."""
        self.assertEqual(self.monitor.build_reports([]), [])


class TestDistanceMatrix(unittest.TestCase):
    """Test the vectorized distance matrix."""

    def test_matrix_matches_pairwise(self):
        """Matrix entries agree with the per-vehicle distances."""
        monitor = ProximityMonitor(RoadGeometry())
        vehicles = default_scene()
        matrix = monitor.distance_matrix(vehicles)

        self.assertEqual(matrix.shape, (3, 3))
        np.testing.assert_allclose(np.diag(matrix), 0.0)
        np.testing.assert_array_equal(matrix, matrix.T)

        for i, vehicle in enumerate(vehicles):
            for entry in monitor.pairwise_distances(vehicle, vehicles):
                j = next(k for k, v in enumerate(vehicles) if v.vehicle_id == entry.vehicle_id)
                self.assertAlmostEqual(matrix[i, j], entry.distance)


class TestProximityReport(unittest.TestCase):
    """Test report helpers and panel labels."""

    def test_labels(self):
        """Labels use two decimals and the other vehicle's color."""
        monitor = ProximityMonitor(RoadGeometry())
        reports = monitor.build_reports(default_scene())
        player_report = reports[2]

        self.assertEqual(player_report.vehicle_id, "player")
        self.assertEqual(player_report.labels(), [
            "Distance to curb: 4.25m",
            "To red car: 8.54m",
            "To yellow car: 8.54m",
        ])
        self.assertEqual(reports[0].curb_label(), "Distance to curb: 1.25m")
        self.assertIn("To yellow car: 16.00m", reports[0].labels())

    def test_nearest(self):
        """nearest() picks the smallest distance."""
        report = ProximityReport("player", "blue", 4.25, (
            VehicleDistance("far", "red", 10.0),
            VehicleDistance("near", "yellow", 2.5),
        ))

        self.assertEqual(report.nearest().vehicle_id, "near")
        self.assertEqual(report.distance_to("far"), 10.0)
        self.assertIsNone(report.distance_to("missing"))

    def test_reports_follow_current_positions(self):
        """Reports are recomputed from the positions given, nothing cached."""
        monitor = ProximityMonitor(RoadGeometry())
        vehicles = default_scene()
        before = monitor.build_reports(vehicles)[2].distance_to("yellow_car")

        vehicles[2] = VehiclePosition("player", GroundPoint(3.0, 5.0), "blue")
        after = monitor.build_reports(vehicles)[2].distance_to("yellow_car")

        self.assertAlmostEqual(before, math.hypot(3.0, 8.0))
        self.assertAlmostEqual(after, 3.0)


if __name__ == '__main__':
    unittest.main(verbosity=2)
