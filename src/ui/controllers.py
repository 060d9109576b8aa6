"""
Controller scaffolding connecting pygame UI and the beaker core.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Optional, TYPE_CHECKING

try:
    import pygame
except ImportError:  # pragma: no cover
    pygame = None  # type: ignore

from sim import ParticleKind
from .viewport import BeakerViewport
from .panels import ControlDockPanel, PopulationPanel

if TYPE_CHECKING:  # pragma: no cover
    from sim import Beaker, BeakerSnapshot


def population_counts(snapshot: "BeakerSnapshot", kind_labels: Dict[str, str]) -> Dict[str, int]:
    """Particles per kind (zero for absent kinds) plus the bonded pair count."""
    counts: Dict[str, int] = {kind_labels.get(kind.value, kind.value): 0 for kind in ParticleKind}
    for state in snapshot.particle_states:
        counts[kind_labels.get(state.kind.value, state.kind.value)] += 1
    counts["Bonded pairs"] = len(snapshot.bonds)
    return counts


@dataclass
class SimulationController:
    beaker: "Beaker"
    is_running: bool = False
    speed_multiplier: float = 1.0
    _step_accumulator: float = 0.0

    def toggle_running(self) -> None:
        self.is_running = not self.is_running

    def step(self, steps: int = 1) -> None:
        for _ in range(steps):
            self.beaker.step()

    def reset(self, beaker: "Beaker") -> None:
        """Swap in a freshly loaded beaker, keeping run state and speed."""
        self.beaker = beaker
        self._step_accumulator = 0.0

    def update(self) -> None:
        if not self.is_running:
            return
        self._step_accumulator += self.speed_multiplier
        steps = int(self._step_accumulator)
        if steps >= 1:
            self.step(steps)
            self._step_accumulator -= steps

    def snapshot(self) -> "BeakerSnapshot":
        return self.beaker.snapshot()


class UIController:
    """
    Routes pygame events to panels and handles particle selection.
    """

    def __init__(
        self,
        simulation_controller: SimulationController,
        viewport: BeakerViewport,
        control_panel: ControlDockPanel,
        population_panel: PopulationPanel,
        kind_labels: Dict[str, str],
    ):
        if pygame is None:
            raise RuntimeError("pygame must be installed to use UIController.")
        self.simulation_controller = simulation_controller
        self.viewport = viewport
        self.control_panel = control_panel
        self.population_panel = population_panel
        self.kind_labels = kind_labels
        self.selected_particle_id: Optional[int] = None
        self._latest_snapshot: Optional["BeakerSnapshot"] = None

    def handle_event(self, event: "pygame.event.Event") -> None:
        if event.type == pygame.MOUSEBUTTONDOWN and event.button == 1 and hasattr(event, "pos"):
            if self.viewport.rect.collidepoint(event.pos):
                self._select_particle_at(event.pos)
        self.control_panel.handle_event(event)

    def update(self) -> "BeakerSnapshot":
        self.simulation_controller.update()
        snapshot = self.simulation_controller.snapshot()
        self._latest_snapshot = snapshot
        self.control_panel.is_running = self.simulation_controller.is_running
        self.control_panel.speed_multiplier = self.simulation_controller.speed_multiplier
        self.viewport.set_selected_particle(self.selected_particle_id)
        self._update_population(snapshot)
        return snapshot

    def render(self, screen: "pygame.Surface", snapshot: "BeakerSnapshot") -> None:
        viewport_surface = screen.subsurface(self.viewport.rect)
        self.viewport.render(viewport_surface, snapshot)
        self.control_panel.render(screen)
        self.population_panel.render(screen)

    def _select_particle_at(self, position_px: tuple[int, int]) -> None:
        if self._latest_snapshot is None:
            return
        x, y = self.viewport.screen_to_beaker(position_px)
        chosen_id: Optional[int] = None
        best_distance = float("inf")
        for state in self._latest_snapshot.particle_states:
            distance = math.hypot(state.position[0] - x, state.position[1] - y)
            if distance <= state.collider_radius + 4 and distance < best_distance:
                best_distance = distance
                chosen_id = state.id
        self.selected_particle_id = chosen_id
        self.viewport.set_selected_particle(chosen_id)

    def _update_population(self, snapshot: "BeakerSnapshot") -> None:
        self.population_panel.update_counts(population_counts(snapshot, self.kind_labels))

        if self.selected_particle_id is None:
            self.population_panel.update_selection(None, {})
            return
        state = next((s for s in snapshot.particle_states if s.id == self.selected_particle_id), None)
        if state is None:
            self.selected_particle_id = None
            self.population_panel.update_selection(None, {})
            self.viewport.set_selected_particle(None)
            return
        speed = math.hypot(state.velocity[0], state.velocity[1])
        info: Dict[str, str] = {
            "Selected": self.kind_labels.get(state.kind.value, state.kind.value),
            "Position (px)": f"{state.position[0]:.1f}, {state.position[1]:.1f}",
            "Speed (px/tick)": f"{speed:.2f}",
        }
        bond = next(
            (b for b in snapshot.bonds if state.id in (b.base_id, b.proton_id)),
            None,
        )
        info["Bond"] = bond.phase.value if bond else "free"
        self.population_panel.update_selection(state.id, info)
