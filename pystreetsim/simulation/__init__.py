"""
Street scene simulation: kinematics, proximity and the composition root.

The interactive and headless frame loops live in ``simulation.runner``.
"""

from .kinematics import (
    GroundPoint,
    ORIGIN,
    VehicleState,
    DecayMode,
    KinematicsParameters,
    VehicleKinematicsModel,
    forward_vector,
    validate_timestep,
)
from .proximity import (
    CurbPolicy,
    RoadGeometry,
    VehiclePosition,
    StaticVehicle,
    VehicleDistance,
    ProximityReport,
    ProximityMonitor,
)
from .publisher import PositionPublisher, PublishedPose, UNAVAILABLE
from .scene import StreetScene, VehicleSpawn, SceneStats, FrameResult

__all__ = [
    # Kinematics
    "GroundPoint",
    "ORIGIN",
    "VehicleState",
    "DecayMode",
    "KinematicsParameters",
    "VehicleKinematicsModel",
    "forward_vector",
    "validate_timestep",

    # Proximity
    "CurbPolicy",
    "RoadGeometry",
    "VehiclePosition",
    "StaticVehicle",
    "VehicleDistance",
    "ProximityReport",
    "ProximityMonitor",

    # Publisher
    "PositionPublisher",
    "PublishedPose",
    "UNAVAILABLE",

    # Scene
    "StreetScene",
    "VehicleSpawn",
    "SceneStats",
    "FrameResult",
]
