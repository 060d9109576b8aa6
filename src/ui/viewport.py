"""
Beaker viewport rendering helpers for the pygame UI.

The viewport consumes `BeakerSnapshot` objects from `sim.py` and draws, in
order, the beaker background, the particles sorted by depth and the
foreground graduation markings. Particle images are loaded from their
`image_path` when the asset exists; otherwise a coloured disc is drawn.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Dict, Optional, Tuple, TYPE_CHECKING

try:
    import pygame
except ImportError:  # pragma: no cover
    pygame = None  # type: ignore

from src.particle_data import get_particle_rule

if TYPE_CHECKING:  # pragma: no cover
    from sim import BeakerSnapshot, ParticleState, SolutionRegion

Color = Tuple[int, int, int]

logger = logging.getLogger(__name__)

ASSET_ROOT = Path(__file__).resolve().parents[2]


@dataclass
class ViewportConfig:
    width: int
    height: int
    background_color: Color = (15, 15, 30)
    glass_color: Color = (190, 200, 215)
    solution_color: Color = (30, 60, 95)
    marking_color: Color = (210, 215, 230)
    selection_color: Color = (255, 255, 0)
    glass_thickness_px: int = 4
    graduation_count: int = 5


class BeakerViewport:
    """
    Draws the beaker and its particles in screen space.

    Solution coordinates are viewport pixels, so no world transform is needed
    beyond the viewport's own offset on the screen.
    """

    def __init__(self, rect: "pygame.Rect", config: Optional[ViewportConfig] = None):
        if pygame is None:
            raise RuntimeError("pygame must be installed to use BeakerViewport.")
        self.rect = rect
        self.config = config or ViewportConfig(width=rect.width, height=rect.height)
        self.selected_particle_id: Optional[int] = None
        self._images: Dict[str, Optional["pygame.Surface"]] = {}

    def screen_to_beaker(self, position_px: Tuple[int, int]) -> Tuple[float, float]:
        return float(position_px[0] - self.rect.x), float(position_px[1] - self.rect.y)

    def render(self, surface: "pygame.Surface", snapshot: "BeakerSnapshot") -> None:
        surface.fill(self.config.background_color)
        if pygame is None:
            return
        self._draw_background(surface, snapshot.solution)
        # Snapshot order is draw order; bonded protons sit just above their base.
        for state in snapshot.particle_states:
            self._draw_particle(surface, state)
        self._draw_foreground(surface, snapshot.solution)

    def set_selected_particle(self, particle_id: Optional[int]) -> None:
        self.selected_particle_id = particle_id

    def _solution_rect(self, solution: "SolutionRegion") -> "pygame.Rect":
        return pygame.Rect(int(solution.x), int(solution.y), int(solution.width), int(solution.height))

    def _draw_background(self, surface: "pygame.Surface", solution: "SolutionRegion") -> None:
        pygame.draw.rect(surface, self.config.solution_color, self._solution_rect(solution))

    def _draw_foreground(self, surface: "pygame.Surface", solution: "SolutionRegion") -> None:
        rect = self._solution_rect(solution)
        thickness = self.config.glass_thickness_px
        color = self.config.glass_color
        # Open-topped glass: left, right and bottom walls.
        pygame.draw.line(surface, color, rect.topleft, rect.bottomleft, thickness)
        pygame.draw.line(surface, color, rect.topright, rect.bottomright, thickness)
        pygame.draw.line(surface, color, rect.bottomleft, rect.bottomright, thickness)

        count = max(1, self.config.graduation_count)
        spacing = rect.height / (count + 1)
        for idx in range(1, count + 1):
            y = int(rect.bottom - idx * spacing)
            length = 24 if idx % 2 == 0 else 14
            pygame.draw.line(surface, self.config.marking_color, (rect.left, y), (rect.left + length, y), 2)

    def _draw_particle(self, surface: "pygame.Surface", state: "ParticleState") -> None:
        center = (int(round(state.position[0])), int(round(state.position[1])))
        radius = max(1, int(round(state.collider_radius)))
        image = self._load_image(state.image_path)
        if image is not None:
            surface.blit(image, image.get_rect(center=center))
        else:
            rule = get_particle_rule(state.kind.value) or {}
            color = rule.get("color", (200, 200, 200))
            pygame.draw.circle(surface, color, center, radius)
        if state.id == self.selected_particle_id:
            pygame.draw.circle(surface, self.config.selection_color, center, radius + 3, width=2)

    def _load_image(self, image_path: Optional[str]) -> Optional["pygame.Surface"]:
        if image_path is None:
            return None
        if image_path not in self._images:
            path = ASSET_ROOT / image_path
            image = None
            if path.exists():
                try:
                    image = pygame.image.load(str(path)).convert_alpha()
                except pygame.error as exc:
                    logger.warning("Could not load %s: %s", path, exc)
            self._images[image_path] = image
        return self._images[image_path]
