"""
pygame application for the conjugate base equilibrium beaker.

Runs one `Beaker.step()` per frame (scaled by the speed buttons) and draws the
resulting snapshot. Scenarios are loaded from YAML presets.
"""

from __future__ import annotations

import argparse
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Dict, Any


try:
    import pygame
except ImportError:  # pragma: no cover
    pygame = None  # type: ignore

from sim import Beaker, BeakerSnapshot, ParticleKind, SolutionRegion  # type: ignore
from src.config_loader import load_beaker_from_yaml
from src.particle_data import get_particle_rule
from .viewport import BeakerViewport
from .panels import ControlDockPanel, PopulationPanel
from .controllers import SimulationController, UIController


logger = logging.getLogger(__name__)

DEFAULT_PRESET = Path(__file__).resolve().parents[2] / "config" / "presets" / "weak_conjugate_base.yaml"
PARTICLES_PER_CLICK = 1


@dataclass
class AppConfig:
    width: int = 960
    height: int = 640
    title: str = "Conjugate Base Equilibrium"
    target_fps: int = 60
    enable_vsync: bool = False

    @classmethod
    def from_mapping(cls, values: Dict[str, Any]) -> "AppConfig":
        config = cls()
        for key in ("width", "height", "target_fps"):
            if key in values:
                setattr(config, key, int(values[key]))
        if "title" in values:
            config.title = str(values["title"])
        if "enable_vsync" in values:
            config.enable_vsync = bool(values["enable_vsync"])
        return config


@dataclass
class AppState:
    running: bool = True
    clock: Optional["pygame.time.Clock"] = field(default=None, repr=False)


class BeakerApp:
    """
    High-level pygame application manager.

    Owns the window, routes events to the UI controller and advances the
    beaker while the simulation is running.
    """

    def __init__(self, preset_path: Optional[Path] = None, config: AppConfig | None = None):
        if pygame is None:
            raise RuntimeError("pygame is not installed. Install it to run the beaker UI.")
        self.preset_path = preset_path
        self.metadata: Dict[str, Any] = {}
        self.beaker, ui_settings = self._load_beaker()
        self.config = config or AppConfig.from_mapping(ui_settings)
        self.state = AppState()
        self.screen: Optional["pygame.Surface"] = None
        self.sim_controller = SimulationController(self.beaker, is_running=True)
        self.viewport: Optional[BeakerViewport] = None
        self.control_panel: Optional[ControlDockPanel] = None
        self.population_panel: Optional[PopulationPanel] = None
        self.ui_controller: Optional[UIController] = None
        self._latest_snapshot: Optional[BeakerSnapshot] = None
        self.kind_labels = {
            kind.value: (get_particle_rule(kind.value) or {}).get("label", kind.value)
            for kind in ParticleKind
        }

    def setup(self) -> None:
        """Initialize pygame context and create root surfaces."""
        pygame.init()
        flags = pygame.SCALED if self.config.enable_vsync else 0
        self.screen = pygame.display.set_mode((self.config.width, self.config.height), flags)
        pygame.display.set_caption(self.config.title)
        self.state.clock = pygame.time.Clock()

        font = pygame.font.SysFont("Helvetica", 18)
        sidebar_width = 300
        population_height = 220

        viewport_rect = pygame.Rect(0, 0, self.config.width - sidebar_width, self.config.height)
        control_rect = pygame.Rect(
            self.config.width - sidebar_width, 0, sidebar_width, self.config.height - population_height
        )
        population_rect = pygame.Rect(
            self.config.width - sidebar_width,
            self.config.height - population_height,
            sidebar_width,
            population_height,
        )

        self.viewport = BeakerViewport(viewport_rect)
        self.control_panel = ControlDockPanel(
            rect=control_rect,
            font=font,
            particle_kinds=[kind.value for kind in ParticleKind],
            kind_labels=self.kind_labels,
            on_toggle_run=self._toggle_run,
            on_step=self._step_once,
            on_reset=self._reset_simulation,
            on_add=self._add_particle,
            on_remove=self._remove_particle,
            on_speed_change=self._on_speed_change,
        )
        self.population_panel = PopulationPanel(rect=population_rect, font=font)
        self._rebuild_ui_controller()
        self._latest_snapshot = self.sim_controller.snapshot()

    def handle_event(self, event: "pygame.event.Event") -> None:
        """Dispatch a single pygame event."""
        if event.type == pygame.QUIT:
            self.state.running = False
            return

        if event.type == pygame.KEYDOWN:
            if event.key == pygame.K_SPACE:
                self.sim_controller.toggle_running()
            elif event.key == pygame.K_PERIOD:
                self.sim_controller.step(1)

        if self.ui_controller:
            self.ui_controller.handle_event(event)

    def update(self) -> None:
        """Advance simulation and UI state."""
        if self.ui_controller:
            self._latest_snapshot = self.ui_controller.update()

    def render(self) -> None:
        """Render the current frame."""
        if self.screen is None or self._latest_snapshot is None or self.ui_controller is None:
            return
        self.screen.fill((10, 10, 30))
        self.ui_controller.render(self.screen, self._latest_snapshot)
        pygame.display.flip()

    def run(self) -> None:
        """Main loop entry point."""
        if self.screen is None or self.state.clock is None:
            self.setup()

        assert self.state.clock is not None
        while self.state.running:
            self.state.clock.tick(self.config.target_fps)
            for event in pygame.event.get():
                self.handle_event(event)
            self.update()
            self.render()

        pygame.quit()

    def _toggle_run(self) -> None:
        self.sim_controller.toggle_running()

    def _step_once(self) -> None:
        self.sim_controller.step(1)

    def _add_particle(self, kind: str) -> None:
        self.beaker.add_particles(kind, PARTICLES_PER_CLICK)

    def _remove_particle(self, kind: str) -> None:
        self.beaker.remove_particles(kind, PARTICLES_PER_CLICK)

    def _reset_simulation(self) -> None:
        self.beaker, _ = self._load_beaker()
        self.sim_controller.reset(self.beaker)
        if self.viewport:
            self.viewport.set_selected_particle(None)
        self._rebuild_ui_controller()
        self._latest_snapshot = self.sim_controller.snapshot()

    def _rebuild_ui_controller(self) -> None:
        if not all([self.viewport, self.control_panel, self.population_panel]):
            return
        self.ui_controller = UIController(
            simulation_controller=self.sim_controller,
            viewport=self.viewport,
            control_panel=self.control_panel,
            population_panel=self.population_panel,
            kind_labels=self.kind_labels,
        )
        if self.control_panel:
            self.control_panel.is_running = self.sim_controller.is_running
            self.control_panel.speed_multiplier = self.sim_controller.speed_multiplier

    def _on_speed_change(self, multiplier: float) -> None:
        self.sim_controller.speed_multiplier = multiplier

    def _load_beaker(self) -> tuple[Beaker, Dict[str, Any]]:
        """Build the beaker from the preset, or an empty default beaker."""
        path = self.preset_path
        if path is None or not path.exists():
            if path is not None:
                logger.warning("Preset %s not found; starting with an empty beaker", path)
            return Beaker(SolutionRegion(x=60, y=140, width=520, height=360)), {}
        bundle = load_beaker_from_yaml(path)
        self.metadata = bundle.metadata
        logger.info("Loaded preset %s (%s)", path, bundle.metadata.get("name", "unnamed"))
        return bundle.beaker, bundle.ui


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the conjugate base equilibrium beaker.")
    parser.add_argument(
        "preset",
        nargs="?",
        type=Path,
        default=DEFAULT_PRESET,
        help="YAML scenario to load (defaults to the weak conjugate base preset).",
    )
    parser.add_argument("--verbose", action="store_true", help="Log bond events at DEBUG level.")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = BeakerApp(preset_path=args.preset)
    app.run()


if __name__ == "__main__":
    main()
