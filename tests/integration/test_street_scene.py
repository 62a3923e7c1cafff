"""
Integration tests for the street scene.

Runs the full frame pipeline (commands, kinematics, publisher, proximity)
against settings loaded from a temporary config file.
"""

import unittest
import io
import json
import math
import os
import tempfile
from pathlib import Path
from unittest.mock import Mock, patch

import pygame

from pystreetsim.config import Config, Settings, reset_config, reset_settings, set_settings
from pystreetsim.core.exceptions import DuplicateVehicleError
from pystreetsim.input.commands import Intent
from pystreetsim.simulation import (
    StreetScene, VehicleSpawn, StaticVehicle, GroundPoint, ORIGIN,
    KinematicsParameters, CurbPolicy, UNAVAILABLE
)
from pystreetsim.simulation.runner import StreetSimulation, parse_intents, run_headless
from pystreetsim.ui.overhead_panel import OverheadPanel, PanelLayout, TITLE, UNKNOWN_VEHICLE_COLOR

DT = 1.0 / 60.0


class SceneTestCase(unittest.TestCase):
    """Base class building scenes from an isolated configuration."""

    def setUp(self):
        """Set up test fixtures."""
        self.temp_dir = tempfile.TemporaryDirectory()
        self.temp_path = Path(self.temp_dir.name)

        self.user_path_patcher = patch.object(
            Config, '_get_user_config_path',
            return_value=self.temp_path / "home" / "config.json")
        self.user_path_patcher.start()

        self.env_patcher = patch.dict(os.environ, {
            key: value for key, value in os.environ.items()
            if not key.startswith(Config.ENV_PREFIX)
        }, clear=True)
        self.env_patcher.start()

        self.config_file = self.temp_path / "config.json"
        self.config_file.write_text("{}", encoding="utf-8")
        self.settings = Settings(Config(self.config_file))

    def tearDown(self):
        """Clean up test fixtures."""
        self.env_patcher.stop()
        self.user_path_patcher.stop()
        self.temp_dir.cleanup()

    def drive(self, scene, intents, frames, dt=DT):
        for intent in intents:
            scene.commands.set_intent(intent, True)
        result = None
        for _ in range(frames):
            result = scene.step(dt)
        return result


class TestStreetScene(SceneTestCase):
    """Test scene composition and stepping."""

    def test_initial_scene(self):
        """The default scene has two parked cars and the player at the origin."""
        scene = StreetScene(self.settings)

        positions = scene.vehicle_positions()
        self.assertEqual([p.vehicle_id for p in positions], ["red_car", "yellow_car", "player"])
        self.assertEqual(scene.state().position, ORIGIN)
        self.assertEqual(len(scene.reports), 3)
        self.assertIs(scene.publisher.read("player"), UNAVAILABLE)

    def test_straight_drive(self):
        """One second of throttle moves the player straight up the road."""
        scene = StreetScene(self.settings)
        result = self.drive(scene, [Intent.ACCELERATE], 60)

        state = scene.state()
        self.assertFalse(result.skipped)
        self.assertEqual(result.frame_index, 60)
        self.assertGreater(state.position.z, 0.0)
        self.assertEqual(state.position.x, 0.0)
        self.assertAlmostEqual(scene.stats.simulated_time, 1.0)

        report = result.report_for("player")
        self.assertGreater(report.distance_to("red_car"), math.hypot(3.0, 8.0))
        self.assertAlmostEqual(report.distance_to_curb, 4.25)

    def test_publisher_updated(self):
        """Each frame publishes the player's latest pose."""
        scene = StreetScene(self.settings)
        self.drive(scene, [Intent.ACCELERATE, Intent.STEER_LEFT], 30)

        pose = scene.publisher.read("player")
        self.assertEqual(pose.position, scene.state().position)
        self.assertEqual(pose.heading, scene.state().heading)
        self.assertEqual(pose.sequence, 30)

    def test_reports_follow_player(self):
        """Parked cars see the player's current position."""
        scene = StreetScene(self.settings)
        result = self.drive(scene, [Intent.ACCELERATE], 30)

        red_report = result.report_for("red_car")
        player = scene.state().position
        self.assertAlmostEqual(red_report.distance_to("player"),
                               math.hypot(player.x - 3.0, player.z + 8.0))
        self.assertAlmostEqual(red_report.distance_to_curb, 1.25)

    def test_invalid_timestep_skips_frame(self):
        """A bad dt leaves state, poses and reports unchanged."""
        scene = StreetScene(self.settings)
        self.drive(scene, [Intent.ACCELERATE], 5)
        before = scene.state()
        reports_before = scene.reports

        for dt in (0.0, -DT, float('nan'), float('inf')):
            with self.assertLogs("pystreetsim.simulation.scene", level="WARNING"):
                result = scene.step(dt)
            self.assertTrue(result.skipped)

        self.assertEqual(scene.state(), before)
        self.assertIs(scene.reports, reports_before)
        self.assertEqual(scene.stats.frames, 5)
        self.assertEqual(scene.stats.skipped_frames, 4)

        self.assertFalse(scene.step(DT).skipped)

    def test_wheel_rotation(self):
        """Wheel spin accumulates with velocity and stays within one turn."""
        scene = StreetScene(self.settings)
        self.assertEqual(scene.wheel_rotation(), 0.0)

        self.drive(scene, [Intent.ACCELERATE], 120)
        angle = scene.wheel_rotation()
        self.assertGreaterEqual(angle, 0.0)
        self.assertLess(angle, 2 * math.pi)

    def test_reset(self):
        """reset puts the player back and releases all intents."""
        scene = StreetScene(self.settings)
        self.drive(scene, [Intent.ACCELERATE, Intent.STEER_RIGHT], 30)

        scene.reset()
        self.assertEqual(scene.state().position, ORIGIN)
        self.assertEqual(scene.state().velocity, 0.0)
        self.assertFalse(scene.commands.is_active(Intent.ACCELERATE))
        self.assertIs(scene.publisher.read("player"), UNAVAILABLE)
        self.assertEqual(scene.wheel_rotation(), 0.0)

    def test_duplicate_ids_rejected(self):
        """Two vehicles may not share an id."""
        with self.assertRaises(DuplicateVehicleError):
            StreetScene(self.settings, static_vehicles=[
                StaticVehicle("player", GroundPoint(1.0, 1.0), "red"),
            ])

    def test_repeated_colors_allowed(self):
        """Vehicles with the same color but different ids are fine."""
        scene = StreetScene(self.settings, static_vehicles=[
            StaticVehicle("a", GroundPoint(3.0, 5.0), "red"),
            StaticVehicle("b", GroundPoint(3.0, -5.0), "red"),
        ])

        self.assertEqual(len(scene.reports[2].distances), 2)

    def test_two_controllable_vehicles(self):
        """Each driven vehicle has its own command set."""
        scene = StreetScene(self.settings, static_vehicles=[], controllables=[
            VehicleSpawn("player", "blue"),
            VehicleSpawn("other", "green", GroundPoint(-2.0, 0.0)),
        ])
        scene.commands_for("other").set_intent(Intent.ACCELERATE, True)
        for _ in range(30):
            scene.step(DT)

        self.assertEqual(scene.state("player").position, ORIGIN)
        self.assertGreater(scene.state("other").position.z, 0.0)
        self.assertEqual(set(scene.publisher.vehicle_ids()), {"player", "other"})

    def test_explicit_overrides(self):
        """Explicit arguments take precedence over settings."""
        scene = StreetScene(self.settings,
                            parameters=KinematicsParameters(max_speed=2.0),
                            curb_policy=CurbPolicy.NEAREST)
        self.drive(scene, [Intent.ACCELERATE], 120)

        self.assertEqual(scene.state().velocity, 2.0)
        self.assertEqual(scene.monitor.curb_policy, CurbPolicy.NEAREST)


class TestHeadlessRunner(SceneTestCase):
    """Test the fixed-timestep runner."""

    def test_run_headless(self):
        """run_headless steps round(duration * fps) frames."""
        scene = StreetScene(self.settings)
        result = run_headless(scene, 0.5, 60, [Intent.ACCELERATE])

        self.assertEqual(result.frame_index, 30)
        self.assertGreater(scene.state().position.z, 0.0)

    def test_run_headless_without_input(self):
        """Nothing moves without intents."""
        scene = StreetScene(self.settings)
        result = run_headless(scene, 0.1, 60)

        self.assertEqual(result.states["player"].position, ORIGIN)

    def test_invalid_fps(self):
        """fps must be positive."""
        with self.assertRaises(ValueError):
            run_headless(StreetScene(self.settings), 1.0, 0)

    def test_invalid_duration(self):
        """duration must be a positive finite number of seconds."""
        scene = StreetScene(self.settings)
        for duration in (float('nan'), float('inf'), 0.0, -1.0):
            with self.subTest(duration=duration):
                with self.assertRaises(ValueError):
                    run_headless(scene, duration, 60)
        self.assertEqual(scene.stats.frames, 0)

    def test_window_title_uses_app_name(self):
        """The interactive window is titled with the configured app name."""
        self.config_file.write_text(json.dumps({"app": {"name": "Street Lab"}}), encoding="utf-8")
        set_settings(Settings(Config(self.config_file)))
        try:
            simulation = StreetSimulation(StreetScene(self.settings))
        finally:
            reset_settings()

        self.assertEqual(simulation.config.window_title, f"Street Lab - {TITLE}")

    def test_parse_intents(self):
        """Intent names are case-insensitive and blanks are skipped."""
        self.assertEqual(parse_intents(["accelerate", " ", "Steer_Left"]),
                         [Intent.ACCELERATE, Intent.STEER_LEFT])
        with self.assertRaises(ValueError):
            parse_intents(["fly"])


class TestOverheadPanel(SceneTestCase):
    """Test panel geometry without opening a window."""

    def test_to_screen(self):
        """World origin maps to the centre of the map area, +z points up."""
        panel = OverheadPanel(self.settings.road_geometry(), PanelLayout())

        self.assertEqual(panel.to_screen(ORIGIN), (160, 130))
        self.assertEqual(panel.to_screen(GroundPoint(1.0, 1.0)), (180, 110))

    def test_label_lines(self):
        """Labels are grouped per vehicle id."""
        scene = StreetScene(self.settings)
        lines = OverheadPanel(scene.road).label_lines(scene.reports)

        self.assertEqual(lines["red_car"][0], "Distance to curb: 1.25m")
        self.assertEqual(lines["player"][1:], ["To red car: 8.54m", "To yellow car: 8.54m"])

    def test_vehicle_color(self):
        """Known color names resolve to RGB, unknown ones to gray."""
        panel = OverheadPanel(self.settings.road_geometry())

        self.assertEqual(panel.vehicle_color("red"), (255, 0, 0))
        with self.assertLogs("pystreetsim.ui.overhead_panel", level="WARNING"):
            self.assertEqual(panel.vehicle_color("purplish"), UNKNOWN_VEHICLE_COLOR)

    def test_draw_unknown_color(self):
        """A misspelled color in the scene config is drawn gray instead of failing."""
        panel = OverheadPanel(self.settings.road_geometry())
        surface = pygame.Surface((520, 260))
        font = Mock()
        font.render.return_value = pygame.Surface((1, 1))
        vehicle = StaticVehicle("a", GroundPoint(0.0, 0.0), "purplish")

        with patch.object(panel, '_get_font', return_value=font), \
                self.assertLogs("pystreetsim.ui.overhead_panel", level="WARNING"):
            panel.draw(surface, [vehicle], [])

        self.assertEqual(tuple(surface.get_at(panel.to_screen(ORIGIN)))[:3], UNKNOWN_VEHICLE_COLOR)


class TestCommandLine(SceneTestCase):
    """Test the command line entry point in headless mode."""

    def setUp(self):
        """Set up test fixtures."""
        super().setUp()
        self.patchers = [
            patch('pystreetsim.main.configure_logging'),
            patch('pystreetsim.main.setup_exception_handling'),
            patch('pystreetsim.main.shutdown_logging'),
        ]
        for patcher in self.patchers:
            patcher.start()

    def tearDown(self):
        """Clean up test fixtures."""
        for patcher in self.patchers:
            patcher.stop()
        reset_config()
        reset_settings()
        super().tearDown()

    def run_main(self, *argv):
        from pystreetsim.main import main

        with patch('sys.stdout', new_callable=io.StringIO) as stdout, \
                patch('sys.stderr', new_callable=io.StringIO):
            code = main(["--config", str(self.config_file)] + list(argv))
        return code, stdout.getvalue()

    def test_headless_drive(self):
        """A headless run prints the proximity table."""
        code, output = self.run_main("--headless", "--duration", "0.5", "--hold", "accelerate")

        self.assertEqual(code, 0)
        self.assertIn("red car (red_car)", output)
        self.assertIn("Distance to curb: 1.25m", output)
        self.assertIn("To blue car:", output)

    def test_unknown_intent(self):
        """An unknown --hold intent is a usage error."""
        code, _ = self.run_main("--headless", "--hold", "fly")
        self.assertEqual(code, 2)

    def test_invalid_duration(self):
        """A non-finite or non-positive --duration is a usage error."""
        for duration in ("nan", "inf", "0", "-2"):
            with self.subTest(duration=duration):
                code, output = self.run_main("--headless", "--duration", duration)
                self.assertEqual(code, 2)
                self.assertEqual(output, "")

    def test_overrides(self):
        """Command line flags override the loaded configuration."""
        code, _ = self.run_main("--headless", "--curb-policy", "nearest",
                                "--window-size", "640x480", "--duration", "0.1")

        from pystreetsim.config import get_settings
        self.assertEqual(code, 0)
        self.assertEqual(get_settings().curb_policy, CurbPolicy.NEAREST)
        self.assertEqual(get_settings().window_size, (640, 480))

    def test_missing_config_file(self):
        """A config path that does not exist fails initialization."""
        from pystreetsim.main import main

        with patch('sys.stderr', new_callable=io.StringIO):
            self.assertEqual(main(["--config", str(self.temp_path / "missing.json"),
                                   "--headless"]), 1)

    def test_parse_window_size(self):
        """Test WIDTHxHEIGHT parsing."""
        from pystreetsim.main import parse_window_size

        self.assertEqual(parse_window_size("800x400"), (800, 400))
        with self.assertRaises(ValueError):
            parse_window_size("800")
        with self.assertRaises(ValueError):
            parse_window_size("0x400")


if __name__ == '__main__':
    unittest.main(verbosity=2)
