"""
Proximity monitor for the overhead panel.

For every vehicle in the scene, parked or driven, computes the distance to
the road boundary and to each other vehicle. Nothing is cached: reports are
rebuilt from the current positions every frame.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .kinematics import GroundPoint
from ..core.exceptions import InvalidConfigValueError


class CurbPolicy(Enum):
    """Which curb distance_to_curb measures against."""
    RIGHT = "right"      # right curb only
    NEAREST = "nearest"  # closer of the two curbs


@dataclass(frozen=True)
class RoadGeometry:
    """Straight road along the z axis, curbs given as lateral x offsets."""
    road_width: float = 8.0
    left_curb_x: float = -4.25
    right_curb_x: float = 4.25

    def __post_init__(self):
        if self.road_width <= 0:
            raise InvalidConfigValueError("road.width", self.road_width, "a positive number")
        if self.left_curb_x >= self.right_curb_x:
            raise InvalidConfigValueError("road.left_curb_x", self.left_curb_x,
                                          f"a value left of the right curb ({self.right_curb_x})")


@dataclass(frozen=True)
class VehiclePosition:
    """Where a vehicle is this frame, and how it is labelled."""
    vehicle_id: str
    position: GroundPoint
    color: str

    @property
    def x(self) -> float:
        return self.position.x

    @property
    def z(self) -> float:
        return self.position.z


@dataclass(frozen=True)
class StaticVehicle(VehiclePosition):
    """A parked, display-only vehicle. It never moves."""


@dataclass(frozen=True)
class VehicleDistance:
    """Distance from a report's vehicle to one other vehicle."""
    vehicle_id: str
    color: str
    distance: float

    def label(self) -> str:
        return f"To {self.color} car: {self.distance:.2f}m"


@dataclass(frozen=True)
class ProximityReport:
    """Per-frame distances for one vehicle."""
    vehicle_id: str
    color: str
    distance_to_curb: float
    distances: Tuple[VehicleDistance, ...] = ()

    def distance_to(self, vehicle_id: str) -> Optional[float]:
        for entry in self.distances:
            if entry.vehicle_id == vehicle_id:
                return entry.distance
        return None

    def nearest(self) -> Optional[VehicleDistance]:
        if not self.distances:
            return None
        return min(self.distances, key=lambda entry: entry.distance)

    def curb_label(self) -> str:
        return f"Distance to curb: {self.distance_to_curb:.2f}m"

    def labels(self) -> List[str]:
        """Text lines for the overhead panel, curb line first."""
        return [self.curb_label()] + [entry.label() for entry in self.distances]


def _coordinates(vehicles: Sequence[VehiclePosition]) -> Tuple[np.ndarray, np.ndarray]:
    xs = np.fromiter((v.x for v in vehicles), dtype=float, count=len(vehicles))
    zs = np.fromiter((v.z for v in vehicles), dtype=float, count=len(vehicles))
    return xs, zs


class ProximityMonitor:
    """Stateless distance computations over a set of vehicle positions."""

    def __init__(self, road: RoadGeometry, curb_policy: CurbPolicy = CurbPolicy.RIGHT):
        self.road = road
        self.curb_policy = curb_policy

    def distance_to_curb(self, vehicle: VehiclePosition) -> float:
        """Lateral distance from the vehicle to the curb selected by the policy."""
        right = abs(self.road.right_curb_x - vehicle.x)
        if self.curb_policy is CurbPolicy.NEAREST:
            return min(right, abs(vehicle.x - self.road.left_curb_x))
        return right

    def pairwise_distances(self, vehicle: VehiclePosition,
                           all_vehicles: Sequence[VehiclePosition]) -> List[VehicleDistance]:
        """
        Ground-plane distance from ``vehicle`` to every other vehicle.

        Vehicles are matched by id, so repeated colors are fine. The result
        keeps the order of ``all_vehicles``.
        """
        others = [other for other in all_vehicles if other.vehicle_id != vehicle.vehicle_id]
        if not others:
            return []
        xs, zs = _coordinates(others)
        distances = np.hypot(vehicle.x - xs, vehicle.z - zs)
        return [VehicleDistance(other.vehicle_id, other.color, float(d))
                for other, d in zip(others, distances)]

    def distance_matrix(self, all_vehicles: Sequence[VehiclePosition]) -> np.ndarray:
        """Symmetric N x N matrix of ground-plane distances, zero diagonal."""
        xs, zs = _coordinates(all_vehicles)
        return np.hypot(xs[:, None] - xs[None, :], zs[:, None] - zs[None, :])

    def report(self, vehicle: VehiclePosition,
               all_vehicles: Sequence[VehiclePosition]) -> ProximityReport:
        return ProximityReport(
            vehicle_id=vehicle.vehicle_id,
            color=vehicle.color,
            distance_to_curb=self.distance_to_curb(vehicle),
            distances=tuple(self.pairwise_distances(vehicle, all_vehicles)),
        )

    def build_reports(self, all_vehicles: Sequence[VehiclePosition]) -> List[ProximityReport]:
        """One report per vehicle, in input order."""
        if not all_vehicles:
            return []
        matrix = self.distance_matrix(all_vehicles)
        reports = []
        for i, vehicle in enumerate(all_vehicles):
            distances = tuple(
                VehicleDistance(other.vehicle_id, other.color, float(matrix[i, j]))
                for j, other in enumerate(all_vehicles)
                if other.vehicle_id != vehicle.vehicle_id
            )
            reports.append(ProximityReport(
                vehicle_id=vehicle.vehicle_id,
                color=vehicle.color,
                distance_to_curb=self.distance_to_curb(vehicle),
                distances=distances,
            ))
        return reports
