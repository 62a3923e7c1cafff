"""
Latest-pose broadcast cell for controllable vehicles.

Each vehicle id has a single slot holding the most recent pose. Publishing
overwrites the slot; there is no history and no queue. Reading a slot that
has never been written returns the ``UNAVAILABLE`` marker.
"""

import threading
from dataclasses import dataclass
from typing import Callable, Dict, List, Union

from .kinematics import GroundPoint
from ..core.logging import get_logger


class _Unavailable:
    """Marker for a vehicle whose pose has not been published yet."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "UNAVAILABLE"


UNAVAILABLE = _Unavailable()


@dataclass(frozen=True)
class PublishedPose:
    """A published position/heading, stamped with a publish sequence number."""
    vehicle_id: str
    position: GroundPoint
    heading: float
    sequence: int


PoseCallback = Callable[[PublishedPose], None]


class PositionPublisher:
    """
    Last-value-wins pose cell per vehicle.

    Slot swaps happen under a lock, so a reader on another thread sees either
    the previous pose or the new one, never a mix.
    """

    def __init__(self):
        self.logger = get_logger("simulation.publisher")
        self._lock = threading.Lock()
        self._slots: Dict[str, PublishedPose] = {}
        self._subscribers: List[PoseCallback] = []
        self._sequence = 0

    def publish(self, vehicle_id: str, position: GroundPoint, heading: float = 0.0) -> PublishedPose:
        """
        Overwrite the vehicle's slot and notify subscribers.

        Returns:
            The pose now held in the slot
        """
        with self._lock:
            self._sequence += 1
            pose = PublishedPose(vehicle_id, position, heading, self._sequence)
            self._slots[vehicle_id] = pose
            subscribers = list(self._subscribers)

        for callback in subscribers:
            try:
                callback(pose)
            except Exception as e:
                self.logger.error("Error in pose subscriber", extra={
                    "vehicle_id": vehicle_id,
                    "error": str(e),
                    "error_type": type(e).__name__
                })
        return pose

    def read(self, vehicle_id: str) -> Union[PublishedPose, _Unavailable]:
        """Latest pose for the vehicle, or UNAVAILABLE before its first publish."""
        with self._lock:
            return self._slots.get(vehicle_id, UNAVAILABLE)

    def is_available(self, vehicle_id: str) -> bool:
        return self.read(vehicle_id) is not UNAVAILABLE

    def vehicle_ids(self) -> List[str]:
        """Ids published at least once, in first-publish order."""
        with self._lock:
            return list(self._slots)

    def subscribe(self, callback: PoseCallback) -> None:
        """Call ``callback`` with every pose published from now on."""
        with self._lock:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: PoseCallback) -> None:
        with self._lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

    def clear(self) -> None:
        """Forget every published pose; subscribers stay registered."""
        with self._lock:
            self._slots.clear()
