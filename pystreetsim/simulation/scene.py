"""
Street scene composition root.

Owns the road, the parked vehicles, the controllable vehicles and their
command sets, the position publisher and the proximity monitor, and runs
them in order once per frame:

    commands -> kinematics -> publisher -> proximity reports
"""

import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from .kinematics import (
    GroundPoint, VehicleState, VehicleKinematicsModel, KinematicsParameters, ORIGIN
)
from .proximity import (
    CurbPolicy, ProximityMonitor, ProximityReport, RoadGeometry, StaticVehicle, VehiclePosition
)
from .publisher import PositionPublisher
from ..input.commands import InputCommandSet
from ..config import get_settings
from ..core.exceptions import DuplicateVehicleError, InvalidTimestepError
from ..core.logging import get_logger


@dataclass(frozen=True)
class VehicleSpawn:
    """Initial pose and label of a controllable vehicle."""
    vehicle_id: str = "player"
    color: str = "blue"
    position: GroundPoint = ORIGIN
    heading: float = 0.0

    def initial_state(self) -> VehicleState:
        return VehicleState.at_rest(self.position, self.heading)


@dataclass
class SceneStats:
    """Frame counters for a scene."""
    frames: int = 0
    skipped_frames: int = 0
    simulated_time: float = 0.0


@dataclass(frozen=True)
class FrameResult:
    """Everything a renderer needs from one frame."""
    frame_index: int
    dt: float
    skipped: bool
    states: Dict[str, VehicleState]
    positions: Tuple[VehiclePosition, ...]
    reports: Tuple[ProximityReport, ...]

    def report_for(self, vehicle_id: str) -> Optional[ProximityReport]:
        for report in self.reports:
            if report.vehicle_id == vehicle_id:
                return report
        return None


class StreetScene:
    """
    A straight road with parked cars and one or more driven cars.

    Anything not passed explicitly is taken from the settings.
    """

    def __init__(self,
                 settings=None,
                 road: Optional[RoadGeometry] = None,
                 static_vehicles: Optional[Sequence[StaticVehicle]] = None,
                 controllables: Optional[Sequence[VehicleSpawn]] = None,
                 parameters: Optional[KinematicsParameters] = None,
                 key_bindings=None,
                 curb_policy: Optional[CurbPolicy] = None,
                 wheel_rotation_speed: Optional[float] = None):
        settings = settings or get_settings()
        self.logger = get_logger("simulation.scene")

        self.road = road or settings.road_geometry()
        self.static_vehicles: Tuple[StaticVehicle, ...] = tuple(
            settings.static_vehicles() if static_vehicles is None else static_vehicles)
        self.spawns: Tuple[VehicleSpawn, ...] = tuple(
            controllables or [settings.player_spawn()])
        self.model = VehicleKinematicsModel(parameters or settings.kinematics_parameters())
        self.monitor = ProximityMonitor(
            self.road, curb_policy if curb_policy is not None else settings.curb_policy)
        self.publisher = PositionPublisher()
        self.wheel_rotation_speed = (settings.wheel_rotation_speed
                                     if wheel_rotation_speed is None else wheel_rotation_speed)

        self._check_unique_ids()

        bindings = key_bindings if key_bindings is not None else settings.key_bindings()
        self._commands: Dict[str, InputCommandSet] = {
            spawn.vehicle_id: InputCommandSet(bindings) for spawn in self.spawns
        }
        self._states: Dict[str, VehicleState] = {}
        self._wheel_rotation: Dict[str, float] = {}
        self._reports: Tuple[ProximityReport, ...] = ()
        self.stats = SceneStats()

        self._place_vehicles()

        self.logger.info("Street scene created", extra={
            "static_vehicles": len(self.static_vehicles),
            "controllable_vehicles": len(self.spawns),
            "curb_policy": self.monitor.curb_policy.value,
        })

    def _check_unique_ids(self) -> None:
        seen = set()
        for vehicle_id in [v.vehicle_id for v in self.static_vehicles] + \
                          [s.vehicle_id for s in self.spawns]:
            if vehicle_id in seen:
                raise DuplicateVehicleError(vehicle_id)
            seen.add(vehicle_id)

    def _place_vehicles(self) -> None:
        self.publisher.clear()
        for spawn in self.spawns:
            self._states[spawn.vehicle_id] = spawn.initial_state()
            self._wheel_rotation[spawn.vehicle_id] = 0.0
        self._reports = tuple(self.monitor.build_reports(self.vehicle_positions()))

    @property
    def player_id(self) -> str:
        return self.spawns[0].vehicle_id

    @property
    def commands(self) -> InputCommandSet:
        """Command set of the first controllable vehicle."""
        return self._commands[self.player_id]

    def commands_for(self, vehicle_id: str) -> InputCommandSet:
        return self._commands[vehicle_id]

    def state(self, vehicle_id: Optional[str] = None) -> VehicleState:
        return self._states[vehicle_id or self.player_id]

    def states(self) -> Dict[str, VehicleState]:
        return dict(self._states)

    def wheel_rotation(self, vehicle_id: Optional[str] = None) -> float:
        """Accumulated wheel spin angle in radians, for renderers."""
        return self._wheel_rotation[vehicle_id or self.player_id]

    @property
    def reports(self) -> Tuple[ProximityReport, ...]:
        """Proximity reports from the most recent frame."""
        return self._reports

    def vehicle_positions(self) -> List[VehiclePosition]:
        """Parked vehicles first, then the driven ones."""
        positions: List[VehiclePosition] = list(self.static_vehicles)
        for spawn in self.spawns:
            positions.append(VehiclePosition(
                spawn.vehicle_id, self._states[spawn.vehicle_id].position, spawn.color))
        return positions

    def step(self, dt: float) -> FrameResult:
        """
        Run one frame.

        An invalid dt skips the frame: states, published poses and reports
        stay as they were and the result is flagged ``skipped``.
        """
        try:
            new_states = {
                vehicle_id: self.model.advance(state, self._commands[vehicle_id].snapshot(), dt)
                for vehicle_id, state in self._states.items()
            }
        except InvalidTimestepError as e:
            self.stats.skipped_frames += 1
            self.logger.warning("Skipping frame with invalid timestep", extra={
                "dt": repr(dt),
                "error_code": e.error_code,
            })
            return self._result(dt, skipped=True)

        for vehicle_id, state in new_states.items():
            if not state.is_finite():
                self.logger.error("Non-finite vehicle state, keeping previous state", extra={
                    "vehicle_id": vehicle_id,
                })
                continue
            self._states[vehicle_id] = state
            self._wheel_rotation[vehicle_id] = math.fmod(
                self._wheel_rotation[vehicle_id] + state.velocity * self.wheel_rotation_speed * dt,
                2.0 * math.pi)
            self.publisher.publish(vehicle_id, state.position, state.heading)

        self._reports = tuple(self.monitor.build_reports(self.vehicle_positions()))
        self.stats.frames += 1
        self.stats.simulated_time += dt
        return self._result(dt, skipped=False)

    def _result(self, dt: float, skipped: bool) -> FrameResult:
        return FrameResult(
            frame_index=self.stats.frames,
            dt=dt,
            skipped=skipped,
            states=dict(self._states),
            positions=tuple(self.vehicle_positions()),
            reports=self._reports,
        )

    def reset(self) -> None:
        """Put every driven vehicle back at its spawn pose, intents released."""
        for commands in self._commands.values():
            commands.release_all()
        self._place_vehicles()
        self.logger.info("Street scene reset")
