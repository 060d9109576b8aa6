"""
Panel scaffolding for pygame UI components (control dock, population readout).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

try:
    import pygame
except ImportError:  # pragma: no cover
    pygame = None  # type: ignore


SPEED_STEPS = (0.25, 0.5, 1.0, 2.0, 4.0)


@dataclass
class ControlDockPanel:
    rect: "pygame.Rect"
    font: "pygame.font.Font"
    particle_kinds: List[str]
    on_toggle_run: Callable[[], None]
    on_step: Callable[[], None]
    on_reset: Callable[[], None]
    on_add: Callable[[str], None]
    on_remove: Callable[[str], None]
    on_speed_change: Callable[[float], None]
    kind_labels: Dict[str, str] = field(default_factory=dict)
    is_running: bool = False
    speed_multiplier: float = 1.0
    _button_rects: Dict[str, "pygame.Rect"] = field(default_factory=dict, init=False, repr=False)

    def render(self, surface: "pygame.Surface") -> None:
        if pygame is None:
            return
        pygame.draw.rect(surface, (25, 25, 45), self.rect)
        status_text = "Running" if self.is_running else "Paused"
        status = self.font.render(f"{status_text} at {self.speed_multiplier:g}x", True, (230, 230, 240))
        surface.blit(status, (self.rect.x + 16, self.rect.y + 16))

        self._button_rects = {}
        top_row = [
            ("run", "Pause" if self.is_running else "Run"),
            ("step", "Step"),
            ("reset", "Reset"),
        ]
        self._layout_row(surface, top_row, self.rect.y + 48, width=84)
        self._layout_row(surface, [("slower", "Slower"), ("faster", "Faster")], self.rect.y + 88, width=130)

        # One row of remove/add buttons per particle kind.
        row_y = self.rect.y + 140
        for kind in self.particle_kinds:
            label = self.font.render(self.kind_labels.get(kind, kind), True, (220, 220, 235))
            surface.blit(label, (self.rect.x + 16, row_y + 6))
            for key, text, x in ((f"remove:{kind}", "-", self.rect.right - 96), (f"add:{kind}", "+", self.rect.right - 52)):
                rect = pygame.Rect(x, row_y, 36, 28)
                self._draw_button(surface, rect, text)
                self._button_rects[key] = rect
            row_y += 40

    def handle_event(self, event: "pygame.event.Event") -> None:
        if pygame is None:
            return
        if event.type == pygame.MOUSEBUTTONDOWN and event.button == 1 and hasattr(event, "pos"):
            key = next((k for k, rect in self._button_rects.items() if rect.collidepoint(event.pos)), None)
            if key is not None:
                self.dispatch(key)

    def dispatch(self, key: str) -> None:
        """Run the action bound to a button key such as ``run`` or ``add:Proton``."""
        if key == "run":
            self.on_toggle_run()
        elif key == "step":
            self.on_step()
        elif key == "reset":
            self.on_reset()
        elif key in ("slower", "faster"):
            self._shift_speed(-1 if key == "slower" else 1)
        elif key.startswith("add:"):
            self.on_add(key.split(":", 1)[1])
        elif key.startswith("remove:"):
            self.on_remove(key.split(":", 1)[1])

    def _shift_speed(self, direction: int) -> None:
        # Snap to the nearest step, then move one notch.
        nearest = min(range(len(SPEED_STEPS)), key=lambda i: abs(SPEED_STEPS[i] - self.speed_multiplier))
        index = max(0, min(len(SPEED_STEPS) - 1, nearest + direction))
        self.speed_multiplier = SPEED_STEPS[index]
        self.on_speed_change(self.speed_multiplier)

    def _layout_row(self, surface: "pygame.Surface", buttons, y: int, width: int) -> None:
        for idx, (key, label) in enumerate(buttons):
            rect = pygame.Rect(self.rect.x + 16 + idx * (width + 12), y, width, 32)
            self._draw_button(surface, rect, label)
            self._button_rects[key] = rect

    def _draw_button(self, surface: "pygame.Surface", rect: "pygame.Rect", label: str) -> None:
        pygame.draw.rect(surface, (45, 45, 70), rect, border_radius=6)
        text_surface = self.font.render(label, True, (240, 240, 255))
        surface.blit(text_surface, text_surface.get_rect(center=rect.center))


@dataclass
class PopulationPanel:
    """Counts per particle kind plus details for the selected particle."""

    rect: "pygame.Rect"
    font: "pygame.font.Font"
    counts: Dict[str, int] = field(default_factory=dict)
    selected_particle_id: Optional[int] = None
    selected_info: Dict[str, str] = field(default_factory=dict)

    def render(self, surface: "pygame.Surface") -> None:
        if pygame is None:
            return
        pygame.draw.rect(surface, (18, 18, 32), self.rect)
        title = self.font.render("Population", True, (200, 200, 210))
        surface.blit(title, (self.rect.x + 12, self.rect.y + 12))
        y = self.rect.y + 40
        for key, value in list(self.counts.items()) + list(self.selected_info.items()):
            label = self.font.render(f"{key}: {value}", True, (180, 180, 190))
            surface.blit(label, (self.rect.x + 12, y))
            y += 20

    def update_counts(self, counts: Dict[str, int]) -> None:
        self.counts = counts

    def update_selection(self, particle_id: Optional[int], info: Dict[str, str]) -> None:
        self.selected_particle_id = particle_id
        self.selected_info = info
