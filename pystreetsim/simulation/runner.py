"""
Frame loops for PyStreetSim.

``StreetSimulation`` is the interactive host: a pygame window, a keyboard
feeding the player's command set, the scene stepped once per rendered frame
and the overhead panel drawn from the result. ``run_headless`` drives the
same scene at a fixed timestep with a fixed set of held intents.
"""

import math
import time
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

import pygame

from .scene import FrameResult, StreetScene
from ..input.commands import Intent
from ..input.keyboard import KeyboardAdapter
from ..ui.overhead_panel import OverheadPanel, TITLE
from ..config import get_settings
from ..core.exceptions import SimulationError
from ..core.logging import get_logger


class SimulationState(Enum):
    """Simulation execution states."""
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    RUNNING = "running"
    PAUSED = "paused"
    STOPPING = "stopping"
    STOPPED = "stopped"
    ERROR = "error"


@dataclass
class SimulationConfig:
    """Configuration for the interactive loop."""
    target_fps: int = 60
    window_width: int = 520
    window_height: int = 260
    window_title: str = f"PyStreetSim - {TITLE}"
    max_frame_dt: float = 0.25   # longer stalls are integrated as this
    performance_log_interval: float = 5.0


class StreetSimulation:
    """
    Interactive host for a StreetScene.

    Esc quits, R resets the scene, P pauses. Every other key goes to the
    player's command set.
    """

    def __init__(self, scene: Optional[StreetScene] = None,
                 config: Optional[SimulationConfig] = None):
        if config is None:
            settings = get_settings()
            config = SimulationConfig(
                target_fps=settings.target_fps,
                window_width=settings.window_width,
                window_height=settings.window_height,
                window_title=f"{settings.app_name} - {TITLE}",
            )
        self.config = config
        self.scene = scene or StreetScene()
        self.logger = get_logger("simulation.runner")

        self.state = SimulationState.UNINITIALIZED
        self.keyboard = KeyboardAdapter(self.scene.commands)
        self.panel = OverheadPanel(self.scene.road)
        self.last_result: Optional[FrameResult] = None

        self._screen = None
        self._clock = None
        self._last_performance_log = 0.0

    def initialize(self) -> bool:
        """Open the window. Returns False if pygame could not start."""
        if self.state != SimulationState.UNINITIALIZED:
            return True
        try:
            pygame.init()
            self._screen = pygame.display.set_mode(
                (self.config.window_width, self.config.window_height))
            pygame.display.set_caption(self.config.window_title)
            self._clock = pygame.time.Clock()
        except pygame.error as e:
            self.state = SimulationState.ERROR
            self.logger.error("Failed to initialize display", extra={"error": str(e)})
            return False

        self.state = SimulationState.READY
        self.logger.info("Simulation initialized", extra={
            "window": (self.config.window_width, self.config.window_height),
            "target_fps": self.config.target_fps,
        })
        return True

    def run(self) -> None:
        """Run until the window is closed or Esc is pressed."""
        if self.state != SimulationState.READY and not self.initialize():
            raise SimulationError("Cannot run simulation: initialization failed")

        self.state = SimulationState.RUNNING
        self.logger.info("Starting simulation")
        try:
            while self.state in (SimulationState.RUNNING, SimulationState.PAUSED):
                dt = min(self._clock.tick(self.config.target_fps) / 1000.0,
                         self.config.max_frame_dt)

                if not self._handle_events():
                    break

                if self.state == SimulationState.RUNNING:
                    self.last_result = self.scene.step(dt)

                self._render()
                self._log_performance_if_needed()
        except KeyboardInterrupt:
            self.logger.info("Simulation interrupted by user")
        finally:
            self._shutdown()

    def stop(self) -> None:
        if self.state in (SimulationState.RUNNING, SimulationState.PAUSED):
            self.state = SimulationState.STOPPING
            self.logger.info("Simulation stop requested")

    def toggle_pause(self) -> None:
        if self.state == SimulationState.RUNNING:
            self.state = SimulationState.PAUSED
            self.scene.commands.release_all()
        elif self.state == SimulationState.PAUSED:
            self.state = SimulationState.RUNNING
        self.logger.info("Pause toggled", extra={"state": self.state.value})

    def _handle_events(self) -> bool:
        """Returns False if the loop should exit."""
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                self.stop()
                return False
            if event.type == pygame.WINDOWFOCUSLOST:
                self.keyboard.on_focus_lost()
            elif event.type == pygame.KEYDOWN and event.key == pygame.K_ESCAPE:
                self.stop()
                return False
            elif event.type == pygame.KEYDOWN and event.key == pygame.K_r:
                self.scene.reset()
            elif event.type == pygame.KEYDOWN and event.key == pygame.K_p:
                self.toggle_pause()
            else:
                self.keyboard.handle_event(event)
        return True

    def _render(self) -> None:
        if self._screen is None:
            return
        positions = self.scene.vehicle_positions()
        self.panel.draw(self._screen, positions, self.scene.reports)
        pygame.display.flip()

    def _log_performance_if_needed(self) -> None:
        current_time = time.time()
        if current_time - self._last_performance_log >= self.config.performance_log_interval:
            state = self.scene.state()
            self.logger.debug("Simulation performance", extra={
                "fps": round(self._clock.get_fps(), 1) if self._clock else 0.0,
                "frames": self.scene.stats.frames,
                "skipped_frames": self.scene.stats.skipped_frames,
                "player_position": state.position.to_tuple(),
                "player_velocity": round(state.velocity, 3),
            })
            self._last_performance_log = current_time

    def _shutdown(self) -> None:
        self.state = SimulationState.STOPPED
        pygame.quit()
        self.logger.info("Simulation completed", extra={
            "frames": self.scene.stats.frames,
            "skipped_frames": self.scene.stats.skipped_frames,
            "simulated_time": round(self.scene.stats.simulated_time, 3),
        })


def parse_intents(names: Iterable[str]) -> list:
    """``["accelerate", "steer_left"]`` to Intent members; blanks are skipped."""
    intents = []
    for name in names:
        name = name.strip().lower()
        if not name:
            continue
        try:
            intents.append(Intent(name))
        except ValueError:
            raise ValueError(
                f"Unknown intent '{name}'. Choose from: {', '.join(i.value for i in Intent)}")
    return intents


def run_headless(scene: StreetScene, duration: float, fps: int = 60,
                 held: Iterable[Intent] = ()) -> FrameResult:
    """
    Step ``scene`` for ``duration`` seconds at ``1/fps`` with ``held`` intents.

    Returns:
        The result of the last frame
    """
    if fps <= 0:
        raise ValueError(f"fps must be positive, got {fps}")
    if not math.isfinite(duration) or duration <= 0:
        raise ValueError(f"duration must be a positive number of seconds, got {duration}")
    logger = get_logger("simulation.headless")
    dt = 1.0 / fps
    frames = max(1, int(round(duration * fps)))

    for intent in held:
        scene.commands.set_intent(intent, True)

    logger.info("Headless run starting", extra={"frames": frames, "dt": dt})
    result = None
    for _ in range(frames):
        result = scene.step(dt)
    logger.info("Headless run finished", extra={
        "final_position": scene.state().position.to_tuple(),
        "final_velocity": round(scene.state().velocity, 4),
    })
    return result
