"""
Overhead status panel.

Draws the road, both curbs and every vehicle from above, with each
vehicle's proximity labels next to it.
"""

from dataclasses import dataclass
from typing import Dict, Sequence, Tuple

import pygame

from ..simulation.kinematics import GroundPoint
from ..simulation.proximity import ProximityReport, RoadGeometry, VehiclePosition
from ..core.logging import get_logger

TITLE = "AV Environment Monitor"

BACKGROUND = (0, 0, 0)
ROAD_COLOR = (68, 68, 68)
CURB_COLOR = (128, 128, 128)
LABEL_BACKGROUND = (0, 0, 0, 128)
TEXT_COLOR = (255, 255, 255)
UNKNOWN_VEHICLE_COLOR = (160, 160, 160)


@dataclass
class PanelLayout:
    """Pixel geometry of the map area."""
    scale: float = 20.0      # pixels per metre
    map_width: int = 300
    map_height: int = 200
    origin: Tuple[int, int] = (10, 30)
    car_size: Tuple[int, int] = (20, 40)
    line_height: int = 12


class OverheadPanel:
    """Top-down view of the scene with distance labels."""

    def __init__(self, road: RoadGeometry, layout: PanelLayout = None):
        self.road = road
        self.layout = layout or PanelLayout()
        self._font = None
        self._colors: Dict[str, tuple] = {}
        self.logger = get_logger("ui.overhead_panel")

    def to_screen(self, point: GroundPoint) -> Tuple[int, int]:
        """World ground point to panel pixels; +z points up the screen."""
        layout = self.layout
        sx = layout.origin[0] + layout.map_width / 2 + point.x * layout.scale
        sy = layout.origin[1] + layout.map_height / 2 - point.z * layout.scale
        return int(round(sx)), int(round(sy))

    def vehicle_color(self, name: str) -> tuple:
        """RGB for a color name; names pygame does not know are drawn gray."""
        if name not in self._colors:
            try:
                color = pygame.Color(name)
                self._colors[name] = (color.r, color.g, color.b)
            except ValueError:
                self.logger.warning("Unknown vehicle color, drawing it gray", extra={"color": name})
                self._colors[name] = UNKNOWN_VEHICLE_COLOR
        return self._colors[name]

    def label_lines(self, reports: Sequence[ProximityReport]) -> Dict[str, list]:
        return {report.vehicle_id: report.labels() for report in reports}

    def _get_font(self):
        if self._font is None:
            if not pygame.font.get_init():
                pygame.font.init()
            self._font = pygame.font.SysFont("monospace", 11)
        return self._font

    def draw(self, surface, positions: Sequence[VehiclePosition],
             reports: Sequence[ProximityReport]) -> None:
        """Render one frame of the panel onto ``surface``."""
        layout = self.layout
        font = self._get_font()
        left, top = layout.origin

        surface.fill(BACKGROUND)
        surface.blit(font.render(TITLE, True, TEXT_COLOR), (left, 8))

        road_left, _ = self.to_screen(GroundPoint(-self.road.road_width / 2, 0.0))
        pygame.draw.rect(surface, ROAD_COLOR, pygame.Rect(
            road_left, top, int(self.road.road_width * layout.scale), layout.map_height))

        for curb_x in (self.road.left_curb_x, self.road.right_curb_x):
            sx, _ = self.to_screen(GroundPoint(curb_x, 0.0))
            pygame.draw.line(surface, CURB_COLOR, (sx, top), (sx, top + layout.map_height), 3)

        labels = self.label_lines(reports)
        car_w, car_h = layout.car_size
        for vehicle in positions:
            sx, sy = self.to_screen(vehicle.position)
            pygame.draw.rect(surface, self.vehicle_color(vehicle.color),
                             pygame.Rect(sx - car_w // 2, sy - car_h // 2, car_w, car_h))

            lines = labels.get(vehicle.vehicle_id, [])
            if not lines:
                continue
            box = pygame.Surface((180, layout.line_height * (len(lines) + 1)), pygame.SRCALPHA)
            box.fill(LABEL_BACKGROUND)
            surface.blit(box, (sx + 15, sy - car_h // 2))
            for index, line in enumerate(lines):
                surface.blit(font.render(line, True, TEXT_COLOR),
                             (sx + 20, sy - car_h // 2 + 2 + index * layout.line_height))
