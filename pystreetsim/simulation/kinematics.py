"""
Vehicle kinematics model for PyStreetSim.

Turns the intents held during a frame into an acceleration -> velocity ->
position/heading update. The model is a pure function of
``(state, commands, dt)``; it never mutates the state it is given.

Two things about the update that callers should know:

- velocity integrates the bare acceleration value, not ``acceleration * dt``;
- the damping factors (acceleration decay, handbrake, low-speed settle,
  steering centering) are applied once per tick, so the feel of the car
  depends on the frame rate. ``DecayMode.CONTINUOUS`` rescales each factor
  to ``factor ** (dt * reference_fps)``, which is identical at the reference
  frame rate.
"""

import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Tuple

from ..input.commands import CommandSnapshot
from ..core.exceptions import InvalidConfigValueError, InvalidTimestepError
from ..core.logging import get_logger


@dataclass(frozen=True)
class GroundPoint:
    """Point on the ground plane. The vertical axis carries no kinematics."""
    x: float
    z: float

    def __add__(self, other: 'GroundPoint') -> 'GroundPoint':
        return GroundPoint(self.x + other.x, self.z + other.z)

    def __sub__(self, other: 'GroundPoint') -> 'GroundPoint':
        return GroundPoint(self.x - other.x, self.z - other.z)

    def __mul__(self, scalar: float) -> 'GroundPoint':
        return GroundPoint(self.x * scalar, self.z * scalar)

    def distance_to(self, other: 'GroundPoint') -> float:
        """Euclidean distance in the ground plane."""
        return math.hypot(self.x - other.x, self.z - other.z)

    def to_tuple(self) -> Tuple[float, float]:
        return (self.x, self.z)


ORIGIN = GroundPoint(0.0, 0.0)


def forward_vector(heading: float) -> GroundPoint:
    """Unit vector a vehicle with this heading drives along; heading 0 is +z."""
    return GroundPoint(math.sin(heading), math.cos(heading))


@dataclass(frozen=True)
class VehicleState:
    """Pose and motion of one controllable vehicle."""
    position: GroundPoint = ORIGIN
    heading: float = 0.0         # radians
    velocity: float = 0.0        # forward-positive
    steering_angle: float = 0.0  # rate proxy, not a wheel angle
    acceleration: float = 0.0

    @classmethod
    def at_rest(cls, position: GroundPoint = ORIGIN, heading: float = 0.0) -> 'VehicleState':
        return cls(position=position, heading=heading)

    @property
    def speed(self) -> float:
        return abs(self.velocity)

    def is_finite(self) -> bool:
        return all(math.isfinite(v) for v in (
            self.position.x, self.position.z, self.heading,
            self.velocity, self.steering_angle, self.acceleration))


class DecayMode(Enum):
    """How the damping factors relate to the frame interval."""
    PER_TICK = "per_tick"
    CONTINUOUS = "continuous"


@dataclass(frozen=True)
class KinematicsParameters:
    """Tuning constants of the kinematics model."""
    max_speed: float = 8.0
    accel_rate: float = 0.8
    turn_rate: float = 1.5
    movement_scale: float = 2.0
    brake_factor: float = 0.85
    acceleration_decay: float = 0.95
    settle_threshold: float = 0.1
    settle_factor: float = 0.9
    steering_floor: float = 0.5
    centering_base: float = 0.9
    centering_speed_gain: float = 0.1
    decay_mode: DecayMode = DecayMode.PER_TICK
    reference_fps: float = 60.0

    def __post_init__(self):
        if not self.max_speed > 0:
            raise InvalidConfigValueError("vehicle.max_speed", self.max_speed, "a positive number")
        if not self.reference_fps > 0:
            raise InvalidConfigValueError("vehicle.reference_fps", self.reference_fps, "a positive number")
        for name in ("brake_factor", "acceleration_decay", "settle_factor"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise InvalidConfigValueError(f"vehicle.{name}", value, "a factor between 0 and 1")
        if not 0.0 <= self.steering_floor <= 1.0:
            raise InvalidConfigValueError("vehicle.steering_floor", self.steering_floor,
                                          "a factor between 0 and 1")

    @property
    def min_velocity(self) -> float:
        """Reverse is limited to half the forward top speed."""
        return -self.max_speed * 0.5


def validate_timestep(dt) -> float:
    """
    Check a frame interval.

    Raises:
        InvalidTimestepError: If dt is not a positive finite number
    """
    if isinstance(dt, bool):
        raise InvalidTimestepError(dt)
    try:
        value = float(dt)
    except (TypeError, ValueError) as e:
        raise InvalidTimestepError(dt, cause=e) from e
    if not math.isfinite(value) or value <= 0.0:
        raise InvalidTimestepError(dt)
    return value


class VehicleKinematicsModel:
    """
    Per-tick integrator for a controllable vehicle.

    The model holds only its parameters, so one instance can advance any
    number of vehicles.
    """

    def __init__(self, parameters: KinematicsParameters = None):
        self.parameters = parameters or KinematicsParameters()
        self.logger = get_logger("simulation.kinematics")
        self.logger.debug("Kinematics model created", extra={
            "max_speed": self.parameters.max_speed,
            "decay_mode": self.parameters.decay_mode.value,
        })

    def _damp(self, factor: float, dt: float) -> float:
        """Damping factor to apply for this tick."""
        if self.parameters.decay_mode is DecayMode.CONTINUOUS:
            return max(factor, 0.0) ** (dt * self.parameters.reference_fps)
        return factor

    def steering_power(self, velocity: float) -> float:
        """Steering responsiveness: 1 at rest, falling to the floor at top speed."""
        p = self.parameters
        return max(p.steering_floor, 1.0 - abs(velocity) / p.max_speed)

    def centering_factor(self, velocity: float) -> float:
        """Per-tick self-centering multiplier; centers faster at speed."""
        p = self.parameters
        return p.centering_base - (abs(velocity) / p.max_speed) * p.centering_speed_gain

    def clamp_velocity(self, velocity: float) -> float:
        p = self.parameters
        return max(min(velocity, p.max_speed), p.min_velocity)

    def advance(self, state: VehicleState, commands: CommandSnapshot, dt: float) -> VehicleState:
        """
        Advance one vehicle by one tick.

        Args:
            state: State at the start of the tick
            commands: Intents held during the tick
            dt: Frame interval in seconds

        Returns:
            The state at the end of the tick

        Raises:
            InvalidTimestepError: If dt is non-finite, zero or negative
        """
        dt = validate_timestep(dt)
        p = self.parameters

        # 1. throttle / brake, or let acceleration die away
        acceleration = state.acceleration
        if commands.accelerate:
            acceleration += p.accel_rate * dt
        if commands.brake:
            acceleration -= p.accel_rate * dt
        if commands.is_idle:
            acceleration *= self._damp(p.acceleration_decay, dt)

        # 2. raw acceleration, not acceleration * dt
        velocity = state.velocity + acceleration

        # 3. handbrake
        if commands.handbrake:
            brake = self._damp(p.brake_factor, dt)
            velocity *= brake
            acceleration *= brake

        # 4. reverse is capped at half the forward top speed
        velocity = self.clamp_velocity(velocity)

        # 5. stop slow creep
        if abs(velocity) < p.settle_threshold:
            velocity *= self._damp(p.settle_factor, dt)

        # 6. steering
        steering = state.steering_angle
        power = self.steering_power(velocity)
        if commands.steer_left:
            steering += p.turn_rate * dt * power
        if commands.steer_right:
            steering -= p.turn_rate * dt * power
        steering *= self._damp(self.centering_factor(velocity), dt)

        # 7. move along the heading held at the start of the tick, then turn;
        # turning scales with velocity so a stopped car cannot spin in place
        position = state.position + forward_vector(state.heading) * (velocity * dt * p.movement_scale)
        heading = state.heading + steering * velocity * dt

        return replace(
            state,
            position=position,
            heading=heading,
            velocity=velocity,
            steering_angle=steering,
            acceleration=acceleration,
        )
